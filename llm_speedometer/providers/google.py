"""
Google Generative Language API (Gemini) ``streamGenerateContent``.

Without ``alt=sse`` the endpoint streams a JSON array whose elements are
written one per line, so each line is an object possibly wrapped in the
array's ``[``, ``,`` and ``]`` punctuation.
"""

import json
from urllib.parse import quote

from ..models import BenchmarkRequest, ProviderEndpoint, ProviderFamily, StreamEvent, TextDelta, UsagePartial
from .base import ProviderAdapter, StreamDecoder, as_token_count, dig, normalize_base_url, strip_sse_data


class GoogleDecoder(StreamDecoder):
    """Newline-delimited JSON objects."""

    def parse_line(self, line: str) -> list[StreamEvent]:
        payload = strip_sse_data(line)
        if payload is None:
            payload = line.strip("[],").strip()
        if not payload:
            return []

        data = json.loads(payload)
        if not isinstance(data, dict):
            raise ValueError("expected a JSON object")

        events: list[StreamEvent] = []
        text = dig(data, "candidates", 0, "content", "parts", 0, "text")
        if isinstance(text, str) and text:
            events.append(TextDelta(text))

        usage = data.get("usageMetadata")
        if isinstance(usage, dict):
            events.append(UsagePartial(
                input_tokens=as_token_count(usage.get("promptTokenCount")),
                output_tokens=as_token_count(usage.get("candidatesTokenCount")),
            ))
        return events


class GoogleAdapter(ProviderAdapter):
    family = ProviderFamily.GOOGLE

    def build_url(self, endpoint: ProviderEndpoint, request: BenchmarkRequest) -> str:
        model_id = quote(request.model_ref.model_id, safe="-._/")
        return f"{normalize_base_url(endpoint.base_url)}/models/{model_id}:streamGenerateContent"

    def auth_headers(self, endpoint: ProviderEndpoint) -> dict[str, str]:
        return {"x-goog-api-key": endpoint.api_key}

    def build_body(self, request: BenchmarkRequest) -> dict:
        return {
            "contents": [{"parts": [{"text": request.prompt}]}],
            "generationConfig": {
                "maxOutputTokens": request.max_tokens,
                "temperature": request.temperature,
            },
        }

    def new_decoder(self) -> StreamDecoder:
        return GoogleDecoder()
