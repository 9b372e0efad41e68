"""
Benchmark harness.

Provides orchestration, token accounting, ranking and reporting.
"""

from .accounting import TokenAccountant, TokenCounts, estimate_tokens

from .aggregator import BatchSummary, RankedResult, aggregate, ordinal

from .runner import (
    BenchmarkRunner,
    RequestState,
    RunConfig,
    Tracker,
)

from .reporter import (
    ChartReporter,
    ConsoleReporter,
    CSVReporter,
    JSONReporter,
)

from .transports import (
    AnthropicSdkTransport,
    RestTransport,
    Transport,
    get_transport,
)

__all__ = [
    # Accounting
    "TokenAccountant",
    "TokenCounts",
    "estimate_tokens",
    # Aggregation
    "BatchSummary",
    "RankedResult",
    "aggregate",
    "ordinal",
    # Runner
    "BenchmarkRunner",
    "RequestState",
    "RunConfig",
    "Tracker",
    # Reporter
    "ChartReporter",
    "ConsoleReporter",
    "CSVReporter",
    "JSONReporter",
    # Transports
    "AnthropicSdkTransport",
    "RestTransport",
    "Transport",
    "get_transport",
]
