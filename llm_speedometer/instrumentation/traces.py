"""
OpenTelemetry tracing for benchmark requests.

A Tracer is created by the CLI when ``--trace`` is given and passed to the
runner. Without one the runner records nothing.
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional

from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import (
    ConsoleSpanExporter,
    SimpleSpanProcessor,
    SpanExporter,
)
from opentelemetry.trace import Status, StatusCode


class TracingConfig:
    """Configuration for tracing setup."""

    def __init__(
        self,
        service_name: str = "llm-speedometer",
        enable_console_export: bool = True,
        exporter: Optional[SpanExporter] = None,
    ):
        self.service_name = service_name
        self.enable_console_export = enable_console_export
        self.exporter = exporter


class Tracer:
    """Owns a private TracerProvider; the global OTel provider is left alone."""

    def __init__(self, config: Optional[TracingConfig] = None):
        self.config = config or TracingConfig()
        self._provider: Optional[TracerProvider] = None
        self._otel_tracer = None

    def initialize(self) -> "Tracer":
        if self._provider is not None:
            return self

        resource = Resource.create({"service.name": self.config.service_name})
        self._provider = TracerProvider(resource=resource)

        if self.config.exporter is not None:
            self._provider.add_span_processor(SimpleSpanProcessor(self.config.exporter))
        elif self.config.enable_console_export:
            self._provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))

        self._otel_tracer = self._provider.get_tracer(self.config.service_name)
        return self

    def shutdown(self) -> None:
        if self._provider is not None:
            self._provider.shutdown()
            self._provider = None
            self._otel_tracer = None

    @asynccontextmanager
    async def async_span(
        self,
        name: str,
        attributes: Optional[dict] = None,
    ) -> AsyncIterator[Any]:
        """Create a traced span for async operations.

        Usage:
            async with tracer.async_span("llm.benchmark", {"llm.model": m}) as span:
                ...
                span.set_attribute("llm.ttft_ms", ttft)
        """
        self.initialize()

        span = self._otel_tracer.start_span(name)
        for key, value in (attributes or {}).items():
            if value is not None:
                span.set_attribute(key, value)

        try:
            yield span
        except Exception as e:
            span.set_status(Status(StatusCode.ERROR, str(e)))
            span.record_exception(e)
            raise
        finally:
            span.end()
