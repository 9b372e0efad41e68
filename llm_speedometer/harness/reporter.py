"""
Result reporting: console tables and rankings, JSON, tracker CSV and charts.
"""

import csv
import json
from datetime import datetime
from pathlib import Path
from typing import Optional

from ..models import BenchmarkResult
from .aggregator import BatchSummary, RankedResult, aggregate

BAR_WIDTH = 25
CSV_HEADER = ["timestamp", "provider_model", "tokens_per_second", "total_tokens", "duration_seconds"]


class ConsoleReporter:
    """Generates console/CLI reports."""

    def __init__(self, use_color: bool = True):
        self.use_color = use_color

    def _color(self, text: str, color: str) -> str:
        """Apply ANSI color if enabled."""
        if not self.use_color:
            return text

        colors = {
            "green": "\033[92m",
            "red": "\033[91m",
            "yellow": "\033[93m",
            "blue": "\033[94m",
            "magenta": "\033[95m",
            "cyan": "\033[96m",
            "dim": "\033[2m",
            "bold": "\033[1m",
            "reset": "\033[0m",
        }

        return f"{colors.get(color, '')}{text}{colors['reset']}"

    def format_duration(self, ms: float) -> str:
        """Format duration for display."""
        if ms < 1000:
            return f"{ms:.1f}ms"
        return f"{ms / 1000:.2f}s"

    def _tokens(self, count: int, estimated: bool) -> str:
        return f"{count} [est]" if estimated else str(count)

    def bar(self, value: float, maximum: float, color: str) -> str:
        """Fixed-width bar proportional to ``value / maximum``."""
        filled = int(value / maximum * BAR_WIDTH) if maximum > 0 else 0
        filled = max(0, min(BAR_WIDTH, filled))
        return self._color("█" * filled, color) + self._color("░" * (BAR_WIDTH - filled), "dim")

    def results_table(self, summary: BatchSummary) -> str:
        """Successful results, highest throughput first."""
        if not summary.successful:
            return self._color("No successful benchmarks to display.", "red")

        headers = ["Model", "Provider", "Total", "TTFT", "Tokens/s", "Output", "Prompt", "Total Tok"]
        rows = []
        for ranked in summary.by_throughput:
            r = ranked.result
            rows.append([
                r.model_ref.name,
                r.model_ref.provider_label,
                self.format_duration(r.total_time_ms),
                self.format_duration(r.ttft_ms),
                f"{r.tokens_per_second:.1f}",
                self._tokens(r.output_tokens, r.estimated_output),
                self._tokens(r.input_tokens, r.estimated_input),
                self._tokens(r.total_tokens, r.is_estimated),
            ])

        col_widths = [
            max(len(headers[i]), *(len(row[i]) for row in rows)) + 2
            for i in range(len(headers))
        ]

        lines = []
        lines.append(self._color(f"\n{'=' * sum(col_widths)}", "blue"))
        lines.append(self._color("Benchmark Results", "bold"))
        lines.append(self._color(f"{'=' * sum(col_widths)}", "blue"))
        lines.append(self._color("".join(f"{h:<{col_widths[i]}}" for i, h in enumerate(headers)), "bold"))
        lines.append("-" * sum(col_widths))
        for row in rows:
            lines.append("".join(f"{cell:<{col_widths[i]}}" for i, cell in enumerate(row)))

        if any(r.is_estimated for r in summary.successful):
            lines.append(self._color(
                "[est] token counts were estimated (the API did not report usage).", "dim"
            ))
        return "\n".join(lines)

    def _ranking_line(self, ranked: RankedResult, primary: str, secondary: str, bar: str, widths: tuple) -> str:
        model_width, provider_width = widths
        r = ranked.result
        badge_color = "yellow" if ranked.rank == 1 else "bold" if ranked.rank <= 3 else "reset"
        sep = self._color(" | ", "dim")
        return (
            self._color(f"{ranked.label:>6}", badge_color)
            + sep + primary
            + sep + secondary
            + sep + f"{r.model_ref.name:<{model_width}}"
            + sep + self._color(f"{r.model_ref.provider_label:<{provider_width}}", "cyan")
            + sep + bar
        )

    def rankings(self, summary: BatchSummary) -> str:
        """Total-time and throughput rankings with bars."""
        if not summary.successful:
            return ""

        widths = (
            max(len(r.model_ref.name) for r in summary.successful),
            max(len(r.model_ref.provider_label) for r in summary.successful),
        )
        max_time = max(r.total_time_ms for r in summary.successful)
        max_tps = max(r.tokens_per_second for r in summary.successful)

        lines = []
        lines.append(self._color("\nTOTAL TIME RANKING (lower is better)", "cyan"))
        for ranked in summary.by_total_time:
            r = ranked.result
            lines.append(self._ranking_line(
                ranked,
                self._color(f"{r.total_time_seconds:>7.2f}s", "red"),
                self._color(f"{r.tokens_per_second:>7.1f} tok/s", "magenta"),
                self.bar(r.total_time_ms, max_time, "red"),
                widths,
            ))

        lines.append(self._color("\nTOKENS PER SECOND RANKING (higher is better)", "cyan"))
        for ranked in summary.by_throughput:
            r = ranked.result
            lines.append(self._ranking_line(
                ranked,
                self._color(f"{r.tokens_per_second:>7.1f} tok/s", "green"),
                self._color(f"{r.total_time_seconds:>7.2f}s", "red"),
                self.bar(r.tokens_per_second, max_tps, "green"),
                widths,
            ))
        return "\n".join(lines)

    def summary(self, summary: BatchSummary) -> str:
        lines = [self._color("\nSummary:", "bold")]
        lines.append(f"  Total benchmarks: {summary.total}")
        lines.append(f"  Successful: {len(summary.successful)}")
        lines.append(f"  Failed: {len(summary.failed)}")
        if summary.successful:
            lines.append(f"  Average tokens/sec: {summary.mean_tokens_per_second:.2f}")
            fastest, slowest = summary.fastest, summary.slowest
            lines.append(f"  Fastest: {fastest.model_ref.provider_label}/{fastest.model_ref.name} "
                         f"({fastest.tokens_per_second:.2f} tokens/sec)")
            lines.append(f"  Slowest: {slowest.model_ref.provider_label}/{slowest.model_ref.name} "
                         f"({slowest.tokens_per_second:.2f} tokens/sec)")
        return "\n".join(lines)

    def failures(self, summary: BatchSummary) -> str:
        if not summary.failed:
            return ""
        lines = [self._color("\nFailed benchmarks:", "red")]
        for r in summary.failed:
            lines.append(f"  - {r.model_ref.name} ({r.model_ref.provider_label}): {r.error}")
        return "\n".join(lines)

    def warnings(self, summary: BatchSummary) -> str:
        degraded = [r for r in summary.successful if r.warning]
        if not degraded:
            return ""
        lines = [self._color("\nPartial results:", "yellow")]
        for r in degraded:
            lines.append(f"  - {r.model_ref.name} ({r.model_ref.provider_label}): {r.warning}")
        return "\n".join(lines)

    def batch_report(self, results: list[BenchmarkResult]) -> str:
        """Full report for one batch."""
        summary = aggregate(results)
        sections = [
            self.results_table(summary),
            self.rankings(summary),
            self.warnings(summary),
            self.failures(summary),
            self.summary(summary),
        ]
        return "\n".join(s for s in sections if s)

    def single_result(self, result: BenchmarkResult) -> str:
        """Report for one result."""
        ref = result.model_ref
        lines = [self._color(f"\n{ref.provider_label} / {ref.name}", "bold")]
        if not result.success:
            lines.append(self._color(f"  Failed: {result.error}", "red"))
            return "\n".join(lines)
        lines.append(f"  Total time:  {self.format_duration(result.total_time_ms)}")
        lines.append(f"  TTFT:        {self.format_duration(result.ttft_ms)}")
        lines.append(f"  Tokens/sec:  {result.tokens_per_second:.1f}")
        lines.append(f"  Tokens:      {self._tokens(result.input_tokens, result.estimated_input)} in, "
                     f"{self._tokens(result.output_tokens, result.estimated_output)} out")
        if result.warning:
            lines.append(self._color(f"  Warning: {result.warning}", "yellow"))
        return "\n".join(lines)

    def cycle_summary(self, results: list[BenchmarkResult]) -> str:
        """One-paragraph summary for a tracker cycle."""
        summary = aggregate(results)
        lines = [f"  Completed: {len(summary.successful)} successful, {len(summary.failed)} failed"]
        if summary.successful:
            lines.append(f"  Average tokens/sec: {summary.mean_tokens_per_second:.2f}")
        if summary.failed:
            names = ", ".join(f"{r.model_ref.provider_label}/{r.model_ref.name}" for r in summary.failed)
            lines.append(self._color(f"  Failed: {names}", "red"))
        return "\n".join(lines)


class JSONReporter:
    """Exports results as JSON."""

    def __init__(self, output_dir: Optional[Path] = None):
        self.output_dir = output_dir or Path("results")

    def dumps(self, result: BenchmarkResult, formatted: bool = False) -> str:
        """The single-result record printed by the headless CLI."""
        if formatted:
            return json.dumps(result.to_dict(), indent=2, ensure_ascii=False)
        return json.dumps(result.to_dict(), separators=(",", ":"), ensure_ascii=False)

    def save_batch(
        self,
        results: list[BenchmarkResult],
        name: str = "benchmark",
        config: Optional[dict] = None,
    ) -> Path:
        """Save a batch with its summary."""
        self.output_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        filepath = self.output_dir / f"{name}_{timestamp}.json"

        data = {
            "name": name,
            "timestamp": timestamp,
            "config": config or {},
            "summary": aggregate(results).to_dict(),
            "results": [r.to_dict() for r in results],
        }

        with open(filepath, "w") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)

        return filepath


class CSVReporter:
    """Appends successful results to a tracker CSV."""

    def __init__(self, path: Optional[Path] = None):
        if path is None:
            stamp = datetime.now().strftime("%Y-%m-%dT%H-%M-%S")
            path = Path(f"llm_benchmark_results_{stamp}.csv")
        self.path = path

    def initialize(self) -> Path:
        """Write the header unless the file already has content."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        if not self.path.exists() or self.path.stat().st_size == 0:
            with open(self.path, "w", newline="") as f:
                csv.writer(f).writerow(CSV_HEADER)
        return self.path

    def rows(self, results: list[BenchmarkResult], timestamp: datetime) -> list[list]:
        return [
            [
                timestamp.isoformat(timespec="seconds"),
                r.model_ref.key,
                round(r.tokens_per_second, 2),
                r.total_tokens,
                round(r.total_time_seconds, 3),
            ]
            for r in results
            if r.success
        ]

    def append(self, results: list[BenchmarkResult], timestamp: Optional[datetime] = None) -> int:
        """Append one row per successful result; returns the row count."""
        rows = self.rows(results, timestamp or datetime.now())
        if not self.path.exists():
            self.initialize()
        if rows:
            with open(self.path, "a", newline="") as f:
                csv.writer(f).writerows(rows)
        return len(rows)


class ChartReporter:
    """Generates charts using matplotlib."""

    def __init__(self, output_dir: Optional[Path] = None):
        import matplotlib

        matplotlib.use("Agg")  # Non-interactive backend
        self.output_dir = output_dir or Path("results/charts")

    def _save(self, fig, filename: str) -> Path:
        import matplotlib.pyplot as plt

        self.output_dir.mkdir(parents=True, exist_ok=True)
        filepath = self.output_dir / filename
        fig.savefig(filepath, dpi=150, bbox_inches="tight")
        plt.close(fig)
        return filepath

    def throughput_ranking(
        self,
        results: list[BenchmarkResult],
        filename: str = "throughput_ranking.png",
    ) -> Optional[Path]:
        """Horizontal bar chart of tokens/sec, best at the top."""
        import matplotlib.pyplot as plt
        import numpy as np

        ranked = aggregate(results).by_throughput
        if not ranked:
            return None

        labels = [f"{r.result.model_ref.name}\n({r.result.model_ref.provider_label})" for r in ranked]
        values = [r.result.tokens_per_second for r in ranked]
        y = np.arange(len(labels))

        fig, ax = plt.subplots(figsize=(10, max(3, 0.6 * len(labels) + 1)))
        ax.barh(y, values, color="seagreen")
        ax.set_yticks(y)
        ax.set_yticklabels(labels)
        ax.invert_yaxis()
        ax.set_xlabel("Tokens / second")
        ax.set_title("Throughput Ranking")
        for yi, value in zip(y, values):
            ax.text(value, yi, f" {value:.1f}", va="center")
        fig.tight_layout()

        return self._save(fig, filename)

    def ttft_vs_total_latency(
        self,
        results: list[BenchmarkResult],
        filename: str = "ttft_vs_total.png",
    ) -> Optional[Path]:
        """Scatter plot of TTFT vs total time, one point per model."""
        import matplotlib.pyplot as plt

        successful = [r for r in results if r.success]
        if not successful:
            return None

        fig, ax = plt.subplots(figsize=(10, 6))
        for r in successful:
            ax.scatter([r.ttft_ms], [r.total_time_ms], label=str(r.model_ref), alpha=0.8)

        ax.set_xlabel("Time to First Token (ms)")
        ax.set_ylabel("Total Time (ms)")
        ax.set_title("TTFT vs Total Time")
        ax.legend(fontsize="small")

        return self._save(fig, filename)
