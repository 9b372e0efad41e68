"""
OpenAI-compatible chat completions (OpenAI, OpenRouter, most proxies).
"""

import json

from ..models import BenchmarkRequest, End, ProviderEndpoint, ProviderFamily, StreamEvent, TextDelta, UsagePartial
from .base import DONE_SENTINEL, ProviderAdapter, StreamDecoder, as_token_count, dig, strip_sse_data

# SSE fields and comments that carry nothing for us
SSE_IGNORED_PREFIXES = ("event:", "id:", "retry:", ":")


class OpenAICompatibleDecoder(StreamDecoder):
    """Server-sent events with ``data:`` payloads and a ``[DONE]`` sentinel."""

    def parse_line(self, line: str) -> list[StreamEvent]:
        payload = strip_sse_data(line)
        if payload is None:
            if line.startswith(SSE_IGNORED_PREFIXES):
                return []
            raise ValueError("not an SSE line")
        if payload == DONE_SENTINEL:
            return [End()]

        data = json.loads(payload)
        if not isinstance(data, dict):
            raise ValueError("expected a JSON object")

        events: list[StreamEvent] = []
        content = dig(data, "choices", 0, "delta", "content")
        if isinstance(content, str) and content:
            events.append(TextDelta(content))

        usage = data.get("usage")
        if isinstance(usage, dict):
            events.append(UsagePartial(
                input_tokens=as_token_count(usage.get("prompt_tokens")),
                output_tokens=as_token_count(usage.get("completion_tokens")),
            ))
        return events


class OpenAICompatibleAdapter(ProviderAdapter):
    family = ProviderFamily.OPENAI_COMPATIBLE
    path_suffix = "/chat/completions"

    def auth_headers(self, endpoint: ProviderEndpoint) -> dict[str, str]:
        return {"Authorization": f"Bearer {endpoint.api_key}"}

    def build_body(self, request: BenchmarkRequest) -> dict:
        return {
            "model": request.model_ref.model_id,
            "messages": [{"role": "user", "content": request.prompt}],
            "max_tokens": request.max_tokens,
            "temperature": request.temperature,
            "stream": request.streaming,
        }

    def new_decoder(self) -> StreamDecoder:
        return OpenAICompatibleDecoder()
