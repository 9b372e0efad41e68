"""Unit tests for console, JSON, CSV and chart reporters."""

import csv
import json
from datetime import datetime

import pytest

from llm_speedometer.harness.aggregator import aggregate
from llm_speedometer.harness.reporter import (
    BAR_WIDTH,
    CSV_HEADER,
    ChartReporter,
    ConsoleReporter,
    CSVReporter,
    JSONReporter,
)
from llm_speedometer.models import BenchmarkResult

from ..helpers import make_ref


def ok(model_id, tps, total_ms=2000.0, provider_id="openai", **kwargs):
    return BenchmarkResult(
        model_ref=make_ref(provider_id=provider_id, model_id=model_id),
        success=True,
        total_time_ms=total_ms,
        ttft_ms=300.0,
        input_tokens=10,
        output_tokens=90,
        total_tokens=100,
        tokens_per_second=tps,
        **kwargs,
    )


@pytest.fixture
def batch():
    return [
        ok("model-b", 81.5, 1500.0),
        BenchmarkResult.failed(make_ref(model_id="model-x"), "API request failed: 401 Unauthorized"),
        ok("model-a", 178.6, 800.0, provider_id="anthropic"),
        ok("model-c", 72.9, 2500.0, estimated_output=True),
    ]


class TestConsoleReporter:
    """Test the plain-text console report."""

    def test_no_color_output_is_plain(self, batch):
        """Test ANSI codes are omitted when color is off."""
        report = ConsoleReporter(use_color=False).batch_report(batch)
        assert "\033[" not in report

    def test_color_output_has_codes(self, batch):
        """Test ANSI codes are present when color is on."""
        assert "\033[" in ConsoleReporter(use_color=True).batch_report(batch)

    def test_rankings_order(self, batch):
        """Test both ranking headings and throughput order."""
        text = ConsoleReporter(use_color=False).rankings(aggregate(batch))
        assert "TOTAL TIME RANKING (lower is better)" in text
        assert "TOKENS PER SECOND RANKING (higher is better)" in text

        throughput = text.split("TOKENS PER SECOND RANKING")[1]
        assert throughput.index("model-a") < throughput.index("model-b") < throughput.index("model-c")
        assert "1st" in throughput and "2nd" in throughput and "3rd" in throughput

    def test_failures_listed_separately(self, batch):
        """Test failed results appear only in the failure section."""
        reporter = ConsoleReporter(use_color=False)
        summary = aggregate(batch)
        assert "model-x" not in reporter.results_table(summary)
        assert "model-x" not in reporter.rankings(summary)
        failures = reporter.failures(summary)
        assert "Failed benchmarks:" in failures
        assert "401" in failures

    def test_estimated_marker(self, batch):
        """Test estimated counts carry the [est] marker."""
        table = ConsoleReporter(use_color=False).results_table(aggregate(batch))
        assert "90 [est]" in table
        assert "[est] token counts were estimated" in table

    def test_summary_counts(self, batch):
        """Test the summary block."""
        text = ConsoleReporter(use_color=False).summary(aggregate(batch))
        assert "Total benchmarks: 4" in text
        assert "Successful: 3" in text
        assert "Failed: 1" in text
        assert "Fastest: Anthropic/model-a (178.60 tokens/sec)" in text
        assert "Slowest: Openai/model-c (72.90 tokens/sec)" in text

    def test_all_failed(self):
        """Test a batch with no successes still reports."""
        report = ConsoleReporter(use_color=False).batch_report(
            [BenchmarkResult.failed(make_ref(), "boom")]
        )
        assert "No successful benchmarks to display." in report
        assert "boom" in report
        assert "RANKING" not in report

    def test_warning_section(self):
        """Test degraded results are listed with their warning."""
        result = ok("partial", 10.0, warning="Stream interrupted: connection reset")
        report = ConsoleReporter(use_color=False).batch_report([result])
        assert "Partial results:" in report
        assert "connection reset" in report

    @pytest.mark.parametrize("value, maximum, filled", [
        (0, 100, 0),
        (50, 100, BAR_WIDTH // 2),
        (100, 100, BAR_WIDTH),
        (150, 100, BAR_WIDTH),
        (10, 0, 0),
    ])
    def test_bar(self, value, maximum, filled):
        """Test bars are fixed width and clamped."""
        bar = ConsoleReporter(use_color=False).bar(value, maximum, "green")
        assert len(bar) == BAR_WIDTH
        assert bar.count("█") == filled

    @pytest.mark.parametrize("ms, text", [(250.0, "250.0ms"), (1500.0, "1.50s")])
    def test_format_duration(self, ms, text):
        """Test millisecond and second formatting."""
        assert ConsoleReporter(use_color=False).format_duration(ms) == text

    def test_single_result(self):
        """Test the single-result report."""
        text = ConsoleReporter(use_color=False).single_result(ok("solo", 42.0))
        assert "Openai / solo" in text
        assert "Tokens/sec:  42.0" in text

    def test_cycle_summary(self, batch):
        """Test the tracker cycle summary names failures."""
        text = ConsoleReporter(use_color=False).cycle_summary(batch)
        assert "3 successful, 1 failed" in text
        assert "Openai/model-x" in text


class TestJSONReporter:
    """Test JSON output."""

    def test_compact_is_single_line(self):
        """Test the default record is one compact line."""
        text = JSONReporter().dumps(ok("m", 1.0))
        assert "\n" not in text
        assert '"model":"m"' in text

    def test_formatted_is_indented(self):
        """Test formatted output parses to the same record."""
        result = ok("m", 1.0)
        text = JSONReporter().dumps(result, formatted=True)
        assert "\n  " in text
        assert json.loads(text) == json.loads(JSONReporter().dumps(result))

    def test_save_batch(self, tmp_path, batch):
        """Test a saved batch includes results and summary."""
        reporter = JSONReporter(tmp_path)
        path = reporter.save_batch(batch, name="nightly", config={"maxTokens": 500})

        assert path.parent == tmp_path
        assert path.name.startswith("nightly_")
        data = json.loads(path.read_text())
        assert len(data["results"]) == 4
        assert data["summary"]["failed"] == 1
        assert data["config"] == {"maxTokens": 500}


class TestCSVReporter:
    """Test the tracker CSV."""

    def test_header_then_successes_only(self, tmp_path, batch):
        """Test rows are written for successful results only."""
        reporter = CSVReporter(tmp_path / "track.csv")
        reporter.initialize()
        written = reporter.append(batch, timestamp=datetime(2024, 5, 1, 12, 0, 0))

        with open(reporter.path, newline="") as f:
            rows = list(csv.reader(f))
        assert written == 3
        assert rows[0] == CSV_HEADER
        assert rows[1] == ["2024-05-01T12:00:00", "Openai+model-b", "81.5", "100", "1.5"]
        assert len(rows) == 4

    def test_initialize_does_not_repeat_header(self, tmp_path, batch):
        """Test re-initializing an existing file keeps its content."""
        reporter = CSVReporter(tmp_path / "track.csv")
        reporter.initialize()
        reporter.append(batch)
        reporter.initialize()

        with open(reporter.path, newline="") as f:
            rows = list(csv.reader(f))
        assert sum(row == CSV_HEADER for row in rows) == 1

    def test_append_creates_file(self, tmp_path):
        """Test append writes the header when the file is missing."""
        reporter = CSVReporter(tmp_path / "sub" / "new.csv")
        assert reporter.append([]) == 0
        assert reporter.path.read_text().strip() == ",".join(CSV_HEADER)

    def test_default_path(self):
        """Test the default file name is timestamped."""
        assert CSVReporter().path.name.startswith("llm_benchmark_results_")


class TestChartReporter:
    """Test chart generation."""

    def test_throughput_chart(self, tmp_path, batch):
        """Test the ranking chart is written as a PNG."""
        path = ChartReporter(tmp_path).throughput_ranking(batch)
        assert path.exists()
        assert path.suffix == ".png"

    def test_scatter_chart(self, tmp_path, batch):
        """Test the TTFT scatter plot is written."""
        assert ChartReporter(tmp_path).ttft_vs_total_latency(batch).exists()

    def test_no_successes_no_chart(self, tmp_path):
        """Test nothing is written for an all-failed batch."""
        failed = [BenchmarkResult.failed(make_ref(), "boom")]
        reporter = ChartReporter(tmp_path)
        assert reporter.throughput_ranking(failed) is None
        assert reporter.ttft_vs_total_latency(failed) is None
