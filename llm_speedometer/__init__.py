"""
LLM Speedometer - Streaming latency and throughput benchmarks for LLM endpoints.

Measures total time, time to first token and tokens/second for
OpenAI-compatible, Anthropic and Google endpoints, one model at a time or
many concurrently.

Key modules:
- providers: Wire protocols, credentials and the provider catalog
- harness: Orchestration, token accounting, ranking and reporting
- instrumentation: Stream timing, logging and tracing
- scenarios: Named benchmark prompts
"""

__version__ = "0.1.0"

from .errors import (
    ConfigurationError,
    DecodeError,
    ProtocolError,
    SpeedometerError,
    TransportError,
)
from .models import (
    BenchmarkRequest,
    BenchmarkResult,
    End,
    ModelRef,
    ProviderEndpoint,
    ProviderFamily,
    StreamEvent,
    TextDelta,
    UsagePartial,
)

__all__ = [
    "BenchmarkRequest",
    "BenchmarkResult",
    "ConfigurationError",
    "DecodeError",
    "End",
    "ModelRef",
    "ProtocolError",
    "ProviderEndpoint",
    "ProviderFamily",
    "SpeedometerError",
    "StreamEvent",
    "TextDelta",
    "TransportError",
    "UsagePartial",
]
