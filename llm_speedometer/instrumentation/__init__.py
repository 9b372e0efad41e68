"""
Instrumentation for benchmark runs.

Provides stream timing, logging setup and tracing.
"""

from .logs import LoggingManager
from .timing import StreamingTimer, timed_chunks
from .traces import Tracer, TracingConfig

__all__ = [
    # Timing
    "StreamingTimer",
    "timed_chunks",
    # Logging
    "LoggingManager",
    # Tracing
    "Tracer",
    "TracingConfig",
]
