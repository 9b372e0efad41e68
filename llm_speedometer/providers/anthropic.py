"""
Anthropic Messages API.

Streams arrive as SSE (``event:`` / ``data:`` pairs), though some
Anthropic-compatible gateways send the JSON events as bare lines.
"""

import json

from ..models import BenchmarkRequest, End, ProviderEndpoint, ProviderFamily, StreamEvent, TextDelta, UsagePartial
from .base import DONE_SENTINEL, ProviderAdapter, StreamDecoder, as_token_count, dig, strip_sse_data

ANTHROPIC_VERSION = "2023-06-01"


class AnthropicDecoder(StreamDecoder):

    def parse_line(self, line: str) -> list[StreamEvent]:
        if line.startswith("event:"):
            return []
        payload = strip_sse_data(line)
        if payload is None:
            payload = line
        if payload == DONE_SENTINEL:
            return [End()]

        data = json.loads(payload)
        if not isinstance(data, dict):
            raise ValueError("expected a JSON object")

        event_type = data.get("type")
        if event_type == "content_block_delta":
            text = dig(data, "delta", "text")
            if isinstance(text, str) and text:
                return [TextDelta(text)]
        elif event_type == "message_start":
            input_tokens = as_token_count(dig(data, "message", "usage", "input_tokens"))
            if input_tokens is not None:
                return [UsagePartial(input_tokens=input_tokens)]
        elif event_type == "message_delta":
            usage = data.get("usage")
            if isinstance(usage, dict):
                return [UsagePartial(
                    input_tokens=as_token_count(usage.get("input_tokens")),
                    output_tokens=as_token_count(usage.get("output_tokens")),
                )]
        elif event_type == "message_stop":
            return [End()]
        elif event_type == "error":
            error_type = dig(data, "error", "type") or "error"
            message = dig(data, "error", "message")
            self.stream_error = f"{error_type}: {message}" if message else str(error_type)
        return []


class AnthropicAdapter(ProviderAdapter):
    family = ProviderFamily.ANTHROPIC
    path_suffix = "/messages"

    def auth_headers(self, endpoint: ProviderEndpoint) -> dict[str, str]:
        return {
            "x-api-key": endpoint.api_key,
            "anthropic-version": ANTHROPIC_VERSION,
            # Anthropic-compatible gateways often only read the bearer token
            "Authorization": f"Bearer {endpoint.api_key}",
        }

    def build_body(self, request: BenchmarkRequest) -> dict:
        return {
            "model": request.model_ref.model_id,
            "messages": [{"role": "user", "content": request.prompt}],
            "max_tokens": request.max_tokens,
            "stream": request.streaming,
        }

    def new_decoder(self) -> StreamDecoder:
        return AnthropicDecoder()
