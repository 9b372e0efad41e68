"""
Error types raised inside the benchmark engine.

The runner converts every one of these into a failed BenchmarkResult,
so nothing here escapes a batch run.
"""

from typing import Optional


class SpeedometerError(Exception):
    """Base class for all benchmark engine errors."""

    pass


class ConfigurationError(SpeedometerError):
    """Missing or unusable provider configuration (key, URL, family)."""

    pass


class TransportError(SpeedometerError):
    """Connection-level failure: DNS, refused connection, reset mid-stream."""

    pass


class ProtocolError(SpeedometerError):
    """The endpoint answered with a non-success HTTP status."""

    def __init__(self, status: int, reason: str = "", body: Optional[str] = None):
        self.status = status
        self.reason = reason or ""
        self.body = body
        message = f"API request failed: {status} {self.reason}".rstrip()
        if body:
            message = f"{message}: {body}"
        super().__init__(message)


class DecodeError(SpeedometerError):
    """The stream produced nothing usable or reported an error in-band."""

    pass
