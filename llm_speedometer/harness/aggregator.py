"""
Ranking and summary statistics over a finished batch.

Only successful results are ranked or averaged. Failed results are kept
aside, in input order, for separate reporting.
"""

from dataclasses import dataclass, field
from typing import Optional

from ..models import BenchmarkResult


def ordinal(rank: int) -> str:
    """1 -> '1st', 2 -> '2nd', 11 -> '11th', 23 -> '23rd'."""
    if 10 <= rank % 100 <= 20:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(rank % 10, "th")
    return f"{rank}{suffix}"


@dataclass(frozen=True)
class RankedResult:
    rank: int
    result: BenchmarkResult

    @property
    def label(self) -> str:
        return ordinal(self.rank)


@dataclass
class BatchSummary:
    """Partitioned, ranked view of one batch."""

    successful: list[BenchmarkResult] = field(default_factory=list)
    failed: list[BenchmarkResult] = field(default_factory=list)
    by_total_time: list[RankedResult] = field(default_factory=list)
    by_throughput: list[RankedResult] = field(default_factory=list)
    mean_tokens_per_second: float = 0.0
    fastest: Optional[BenchmarkResult] = None
    slowest: Optional[BenchmarkResult] = None

    @property
    def total(self) -> int:
        return len(self.successful) + len(self.failed)

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "successful": len(self.successful),
            "failed": len(self.failed),
            "meanTokensPerSecond": self.mean_tokens_per_second,
            "fastest": self.fastest.to_dict() if self.fastest else None,
            "slowest": self.slowest.to_dict() if self.slowest else None,
            "byTotalTime": [
                {"rank": r.rank, "provider": r.result.model_ref.provider_label,
                 "model": r.result.model_ref.name, "totalTimeMs": r.result.total_time_ms}
                for r in self.by_total_time
            ],
            "byThroughput": [
                {"rank": r.rank, "provider": r.result.model_ref.provider_label,
                 "model": r.result.model_ref.name, "tokensPerSecond": r.result.tokens_per_second}
                for r in self.by_throughput
            ],
            "failures": [
                {"provider": r.model_ref.provider_label, "model": r.model_ref.name, "error": r.error}
                for r in self.failed
            ],
        }


def _ranked(results: list[BenchmarkResult]) -> list[RankedResult]:
    return [RankedResult(rank=i, result=r) for i, r in enumerate(results, start=1)]


def aggregate(results: list[BenchmarkResult]) -> BatchSummary:
    """Partition, rank and summarize a batch. Does not modify ``results``."""
    successful = [r for r in results if r.success]
    failed = [r for r in results if not r.success]

    # sorted() is stable, so ties keep input order in both directions
    by_total_time = sorted(successful, key=lambda r: r.total_time_ms)
    by_throughput = sorted(successful, key=lambda r: r.tokens_per_second, reverse=True)

    summary = BatchSummary(
        successful=successful,
        failed=failed,
        by_total_time=_ranked(by_total_time),
        by_throughput=_ranked(by_throughput),
    )
    if successful:
        summary.mean_tokens_per_second = sum(r.tokens_per_second for r in successful) / len(successful)
        summary.fastest = by_throughput[0]
        summary.slowest = min(successful, key=lambda r: r.tokens_per_second)
    return summary
