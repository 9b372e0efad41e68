"""
Provider adapter and stream decoder base classes.

An adapter turns a BenchmarkRequest into an HTTP request for one provider
family and hands out a decoder for that family's streaming response. The
decoder turns raw response bytes into StreamEvents.

Decoding is line oriented. Bytes are decoded incrementally as UTF-8 so a
multi-byte character split across two network chunks survives, and the
trailing partial line is held back until the next chunk completes it.
"""

import codecs
import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Optional

from ..errors import ConfigurationError
from ..models import BenchmarkRequest, End, ProviderEndpoint, StreamEvent

logger = logging.getLogger(__name__)

DONE_SENTINEL = "[DONE]"
SSE_DATA_PREFIX = "data:"


@dataclass
class PreparedRequest:
    """An HTTP request ready to be sent."""

    url: str
    headers: dict[str, str]
    body: bytes
    method: str = "POST"

    def json(self) -> dict:
        return json.loads(self.body.decode("utf-8"))


class StreamDecoder(ABC):
    """Incremental line decoder for one provider family.

    Push bytes with ``feed`` and finish with ``close``, or iterate
    ``decode`` over an async byte source. Once ``End`` has been produced
    the decoder ignores everything that follows.
    """

    def __init__(self):
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""
        self.finished = False
        self.skipped_lines = 0
        # Set when the provider reports an error inside a 2xx stream
        self.stream_error: Optional[str] = None

    @abstractmethod
    def parse_line(self, line: str) -> list[StreamEvent]:
        """Classify one stripped, non-empty line.

        Raise ValueError (json.JSONDecodeError included), KeyError,
        IndexError or TypeError for a line that cannot be understood;
        the caller counts it as skipped.
        """

    def feed(self, chunk: bytes) -> list[StreamEvent]:
        """Decode a chunk of bytes and return the events it completes."""
        if self.finished or not chunk:
            return []
        self._buffer += self._decoder.decode(chunk)
        lines = self._buffer.split("\n")
        self._buffer = lines.pop()
        return self._process(lines)

    def close(self) -> list[StreamEvent]:
        """Flush the trailing partial line and end the stream."""
        if self.finished:
            return []
        self._buffer += self._decoder.decode(b"", final=True)
        tail, self._buffer = self._buffer, ""
        events = self._process([tail])
        if not self.finished:
            self.finished = True
            events.append(End())
        return events

    async def decode(self, chunks: AsyncIterator[bytes]) -> AsyncIterator[StreamEvent]:
        """Yield events lazily as chunks arrive."""
        async for chunk in chunks:
            for event in self.feed(chunk):
                yield event
            if self.finished:
                return
        for event in self.close():
            yield event

    def _process(self, lines: list[str]) -> list[StreamEvent]:
        events: list[StreamEvent] = []
        for raw in lines:
            if self.finished:
                break
            line = raw.strip()
            if not line:
                continue
            try:
                parsed = self.parse_line(line)
            except (ValueError, KeyError, IndexError, TypeError) as e:
                self.skipped_lines += 1
                logger.debug("Skipping unparseable line (%s): %.200s", e, line)
                continue
            for event in parsed:
                events.append(event)
                if isinstance(event, End):
                    self.finished = True
                    break
        return events


def strip_sse_data(line: str) -> Optional[str]:
    """Return the payload of an SSE ``data:`` line, or None for other lines."""
    if not line.startswith(SSE_DATA_PREFIX):
        return None
    return line[len(SSE_DATA_PREFIX):].strip()


def dig(payload: Any, *path: Any) -> Any:
    """Walk nested dicts/lists, returning None when any step is missing."""
    current = payload
    for step in path:
        if isinstance(step, int):
            if not isinstance(current, list) or len(current) <= step:
                return None
        elif not isinstance(current, dict):
            return None
        else:
            if step not in current:
                return None
        current = current[step]
    return current


def as_token_count(value: Any) -> Optional[int]:
    """Coerce a usage field to a token count, or None if it is not one."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return int(value)
    return None


class ProviderAdapter(ABC):
    """Builds requests for one provider family."""

    family = None
    path_suffix = ""

    def build_request(
        self,
        endpoint: ProviderEndpoint,
        request: BenchmarkRequest,
    ) -> PreparedRequest:
        """Validate the endpoint and build the HTTP request.

        Raises ConfigurationError before any network activity when the
        endpoint lacks an API key or base URL.
        """
        if not endpoint.api_key:
            raise ConfigurationError(f"Missing API key for provider {endpoint.display_name or endpoint.id}")
        if not endpoint.base_url:
            raise ConfigurationError(f"Missing base URL for provider {endpoint.display_name or endpoint.id}")

        url = self.build_url(endpoint, request)
        headers = {"Content-Type": "application/json"}
        headers.update(self.auth_headers(endpoint))
        body = json.dumps(self.build_body(request)).encode("utf-8")
        return PreparedRequest(url=url, headers=headers, body=body)

    def build_url(self, endpoint: ProviderEndpoint, request: BenchmarkRequest) -> str:
        return normalize_base_url(endpoint.base_url) + self.path_suffix

    @abstractmethod
    def auth_headers(self, endpoint: ProviderEndpoint) -> dict[str, str]:
        """Authentication headers for this family."""

    @abstractmethod
    def build_body(self, request: BenchmarkRequest) -> dict:
        """JSON body for this family."""

    @abstractmethod
    def new_decoder(self) -> StreamDecoder:
        """A fresh decoder for one response."""


def normalize_base_url(base_url: str) -> str:
    """Drop a single trailing slash."""
    if base_url.endswith("/"):
        return base_url[:-1]
    return base_url
