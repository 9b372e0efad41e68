"""
Transports: how a benchmark request reaches a provider.

``RestTransport`` is the default. It speaks each family's HTTP streaming
protocol directly through aiohttp and stamps TTFT at the first non-empty
network chunk.

``AnthropicSdkTransport`` goes through the official ``anthropic`` client
instead. It only serves Anthropic-family endpoints; TTFT is stamped at the
first text event the SDK surfaces.

Both yield StreamEvents and raise SpeedometerError subclasses; the runner
owns timing decisions and result construction.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import AsyncIterator, Optional

import aiohttp
import anthropic

from ..errors import ConfigurationError, ProtocolError, TransportError
from ..instrumentation.timing import StreamingTimer, timed_chunks
from ..models import BenchmarkRequest, ProviderEndpoint, ProviderFamily, StreamEvent, TextDelta, UsagePartial
from ..providers import get_adapter

ERROR_BODY_LIMIT = 500


@dataclass
class StreamStats:
    """Side information about one stream, filled in by the transport."""

    skipped_lines: int = 0
    status: Optional[int] = None
    stream_error: Optional[str] = None


class Transport(ABC):
    """Sends one request and yields the events of its response."""

    method = ""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)

    @abstractmethod
    def stream(
        self,
        session: aiohttp.ClientSession,
        endpoint: ProviderEndpoint,
        request: BenchmarkRequest,
        timer: StreamingTimer,
        stats: StreamStats,
    ) -> AsyncIterator[StreamEvent]:
        """Async generator of events for one request.

        Raises ConfigurationError before any I/O, ProtocolError on a
        non-2xx status and TransportError on connection failures.
        """


class RestTransport(Transport):
    method = "rest-api"

    async def stream(
        self,
        session: aiohttp.ClientSession,
        endpoint: ProviderEndpoint,
        request: BenchmarkRequest,
        timer: StreamingTimer,
        stats: StreamStats,
    ) -> AsyncIterator[StreamEvent]:
        adapter = get_adapter(endpoint.family)
        prepared = adapter.build_request(endpoint, request)
        decoder = adapter.new_decoder()
        self.logger.debug("POST %s (%s)", prepared.url, endpoint.family.value)

        try:
            async with session.post(prepared.url, data=prepared.body, headers=prepared.headers) as response:
                stats.status = response.status
                if not 200 <= response.status < 300:
                    raise ProtocolError(response.status, response.reason or "", await _error_body(response))

                try:
                    async for event in decoder.decode(timed_chunks(response.content.iter_any(), timer)):
                        yield event
                finally:
                    stats.skipped_lines = decoder.skipped_lines
                    stats.stream_error = decoder.stream_error
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            raise TransportError(_describe(e)) from e


class AnthropicSdkTransport(Transport):
    method = "anthropic-sdk"

    def client_for(self, endpoint: ProviderEndpoint) -> anthropic.AsyncAnthropic:
        return anthropic.AsyncAnthropic(
            api_key=endpoint.api_key,
            base_url=sdk_base_url(endpoint.base_url),
            max_retries=0,
        )

    async def stream(
        self,
        session: aiohttp.ClientSession,
        endpoint: ProviderEndpoint,
        request: BenchmarkRequest,
        timer: StreamingTimer,
        stats: StreamStats,
    ) -> AsyncIterator[StreamEvent]:
        if endpoint.family is not ProviderFamily.ANTHROPIC:
            raise ConfigurationError(
                f"The anthropic-sdk transport only supports Anthropic providers, not {endpoint.family.value}"
            )
        if not endpoint.api_key:
            raise ConfigurationError(f"Missing API key for provider {endpoint.display_name or endpoint.id}")
        if not endpoint.base_url:
            raise ConfigurationError(f"Missing base URL for provider {endpoint.display_name or endpoint.id}")

        client = self.client_for(endpoint)
        try:
            async with client.messages.stream(
                model=request.model_ref.model_id,
                max_tokens=request.max_tokens,
                messages=[{"role": "user", "content": request.prompt}],
            ) as stream:
                async for text in stream.text_stream:
                    if text:
                        timer.record_chunk(len(text.encode("utf-8")))
                        yield TextDelta(text)

                final_message = await stream.get_final_message()
                yield UsagePartial(
                    input_tokens=final_message.usage.input_tokens,
                    output_tokens=final_message.usage.output_tokens,
                )
        except anthropic.APIStatusError as e:
            stats.status = e.status_code
            raise ProtocolError(e.status_code, _reason(e), str(e.message)[:ERROR_BODY_LIMIT]) from e
        except anthropic.APIConnectionError as e:
            raise TransportError(_describe(e)) from e
        finally:
            await client.close()


TRANSPORTS = {
    RestTransport.method: RestTransport,
    AnthropicSdkTransport.method: AnthropicSdkTransport,
}


def get_transport(method: str, logger: Optional[logging.Logger] = None) -> Transport:
    try:
        return TRANSPORTS[method](logger=logger)
    except KeyError:
        raise ConfigurationError(f"Unknown transport {method!r}; expected one of {sorted(TRANSPORTS)}") from None


def sdk_base_url(base_url: str) -> str:
    """The SDK appends ``/v1/messages`` itself."""
    base_url = base_url.rstrip("/")
    if base_url.endswith("/v1"):
        base_url = base_url[: -len("/v1")]
    return base_url


async def _error_body(response: aiohttp.ClientResponse) -> str:
    try:
        body = await response.text(errors="replace")
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        return f"<unreadable body: {_describe(e)}>"
    body = body.strip()
    if len(body) > ERROR_BODY_LIMIT:
        body = body[:ERROR_BODY_LIMIT] + "..."
    return body


def _reason(error: anthropic.APIStatusError) -> str:
    return getattr(error.response, "reason_phrase", "") or ""


def _describe(error: BaseException) -> str:
    text = str(error)
    name = type(error).__name__
    return f"{name}: {text}" if text else name
