"""
Benchmark orchestrator.

Runs one request, or a batch of requests concurrently, and turns every
outcome (including every failure) into exactly one BenchmarkResult.

Per-request lifecycle:

    PENDING -> DISPATCHED -> AWAITING_FIRST_BYTE -> STREAMING -> COMPLETED

Any state before COMPLETED may move to FAILED.

A request that received usable data before its stream broke is still
COMPLETED, with the interruption recorded as a warning.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, AsyncIterator, Callable, Optional

import aiohttp

from ..errors import ConfigurationError, DecodeError, SpeedometerError
from ..instrumentation.timing import StreamingTimer
from ..instrumentation.traces import Tracer
from ..models import BenchmarkRequest, BenchmarkResult, ModelRef
from ..providers.credentials import CredentialStore
from ..scenarios.definitions import DEFAULT_PROMPT
from .accounting import TokenAccountant
from .transports import RestTransport, StreamStats, Transport, get_transport


class RequestState(Enum):
    PENDING = "pending"
    DISPATCHED = "dispatched"
    AWAITING_FIRST_BYTE = "awaiting_first_byte"
    STREAMING = "streaming"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class RunConfig:
    """Settings shared by every request in a run."""

    prompt: str = DEFAULT_PROMPT
    max_tokens: int = 500
    temperature: float = 0.7
    method: str = RestTransport.method
    max_concurrency: Optional[int] = None
    name: str = "benchmark"

    def request_for(self, model_ref: ModelRef) -> BenchmarkRequest:
        return BenchmarkRequest(
            model_ref=model_ref,
            prompt=self.prompt,
            max_tokens=self.max_tokens,
            temperature=self.temperature,
        )

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "prompt": self.prompt,
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
            "method": self.method,
            "max_concurrency": self.max_concurrency,
        }


def default_session() -> aiohttp.ClientSession:
    """Session with no connection cap and no request timeout."""
    return aiohttp.ClientSession(
        connector=aiohttp.TCPConnector(limit=0),
        timeout=aiohttp.ClientTimeout(total=None),
    )


class BenchmarkRunner:
    """Runs benchmark requests and collects results."""

    def __init__(
        self,
        credentials: CredentialStore,
        config: Optional[RunConfig] = None,
        logger: Optional[logging.Logger] = None,
        tracer: Optional[Tracer] = None,
        transport: Optional[Transport] = None,
        session_factory: Callable[[], aiohttp.ClientSession] = default_session,
    ):
        self.credentials = credentials
        self.config = config or RunConfig()
        self.logger = logger or logging.getLogger(__name__)
        self.tracer = tracer
        self.transport = transport or get_transport(self.config.method, logger=self.logger)
        self.session_factory = session_factory
        self._semaphore: Optional[asyncio.Semaphore] = None

    def _transition(self, request: BenchmarkRequest, state: RequestState) -> RequestState:
        self.logger.debug("%s -> %s", request.model_ref, state.value)
        return state

    @asynccontextmanager
    async def _span(self, request: BenchmarkRequest) -> AsyncIterator[Any]:
        if self.tracer is None:
            yield None
            return
        attributes = {
            "llm.provider": request.model_ref.provider_id,
            "llm.model": request.model_ref.model_id,
            "llm.transport": self.transport.method,
        }
        async with self.tracer.async_span("llm.benchmark", attributes) as span:
            yield span

    async def run_single(
        self,
        request: BenchmarkRequest,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> BenchmarkResult:
        """Run one request. Never raises except on task cancellation."""
        if session is None:
            async with self.session_factory() as own_session:
                return await self.run_single(request, own_session)

        async with self._span(request) as span:
            result = await self._execute(request, session, span)
            if span is not None:
                span.set_attribute("llm.success", result.success)
                span.set_attribute("llm.ttft_ms", result.ttft_ms)
                span.set_attribute("llm.total_time_ms", result.total_time_ms)
                span.set_attribute("llm.tokens_per_second", result.tokens_per_second)
                span.set_attribute("llm.input_tokens", result.input_tokens)
                span.set_attribute("llm.output_tokens", result.output_tokens)
                if result.error:
                    span.set_attribute("llm.error", result.error)
        return result

    async def _execute(
        self,
        request: BenchmarkRequest,
        session: aiohttp.ClientSession,
        span: Any = None,
    ) -> BenchmarkResult:
        model_ref = request.model_ref
        method = self.transport.method
        started_at = datetime.now()
        state = self._transition(request, RequestState.PENDING)

        try:
            endpoint = self.credentials.endpoint_for(model_ref.provider_id)
        except ConfigurationError as e:
            self._transition(request, RequestState.FAILED)
            self.logger.warning("%s: %s", model_ref, e)
            return BenchmarkResult.failed(model_ref, str(e), method=method, started_at=started_at)

        timer = StreamingTimer(str(model_ref))
        accountant = TokenAccountant()
        stats = StreamStats()
        error: Optional[Exception] = None

        timer.start()
        state = self._transition(request, RequestState.DISPATCHED)
        try:
            events = self.transport.stream(session, endpoint, request, timer, stats)
            state = self._transition(request, RequestState.AWAITING_FIRST_BYTE)
            async for event in events:
                if state is RequestState.AWAITING_FIRST_BYTE and timer.received_data:
                    state = self._transition(request, RequestState.STREAMING)
                accountant.observe(event)
        except asyncio.CancelledError:
            raise
        except SpeedometerError as e:
            error = e
        except Exception as e:
            self.logger.exception("Unexpected error benchmarking %s", model_ref)
            error = e
        finally:
            timer.stop()

        if span is not None:
            span.set_attribute("llm.chunk_count", timer.chunk_count)
            span.set_attribute("llm.avg_inter_chunk_ms", timer.avg_inter_chunk_latency_ms)

        if error is None and stats.stream_error:
            error = DecodeError(f"Provider reported an error in the stream: {stats.stream_error}")

        if error is None and not accountant.has_data:
            if stats.skipped_lines:
                error = DecodeError(f"No usable data in response ({stats.skipped_lines} unparseable lines)")
            else:
                error = DecodeError("Response stream contained no data")

        if error is not None and not accountant.has_data:
            self._transition(request, RequestState.FAILED)
            message = str(error) or type(error).__name__
            self.logger.warning("%s failed: %s", model_ref, message)
            return BenchmarkResult.failed(model_ref, message, method=method, started_at=started_at)

        total_time_ms = timer.total_latency_ms
        ttft_ms = timer.ttft_ms if timer.ttft_ms is not None else total_time_ms
        ttft_ms = min(max(ttft_ms, 0.0), total_time_ms)
        counts = accountant.finalize(request.prompt)
        tokens_per_second = counts.total_tokens / total_time_ms * 1000 if total_time_ms > 0 else 0.0

        warning = None
        if error is not None:
            warning = f"Stream interrupted: {error}"
            self.logger.warning("%s: %s; using partial data", model_ref, warning)
        if stats.skipped_lines:
            self.logger.debug("%s: skipped %d unparseable lines", model_ref, stats.skipped_lines)

        self._transition(request, RequestState.COMPLETED)
        return BenchmarkResult(
            model_ref=model_ref,
            success=True,
            total_time_ms=total_time_ms,
            ttft_ms=ttft_ms,
            input_tokens=counts.input_tokens,
            output_tokens=counts.output_tokens,
            total_tokens=counts.total_tokens,
            tokens_per_second=tokens_per_second,
            estimated_input=counts.estimated_input,
            estimated_output=counts.estimated_output,
            warning=warning,
            method=method,
            started_at=started_at,
        )

    async def _run_bounded(self, request: BenchmarkRequest, session: aiohttp.ClientSession) -> BenchmarkResult:
        if self._semaphore is None:
            return await self.run_single(request, session)
        async with self._semaphore:
            return await self.run_single(request, session)

    async def run_all(self, requests: list[BenchmarkRequest]) -> list[BenchmarkResult]:
        """Run every request concurrently and wait for all of them.

        Returns one result per request, in request order.
        """
        if not requests:
            return []

        max_concurrency = self.config.max_concurrency
        self._semaphore = asyncio.Semaphore(max_concurrency) if max_concurrency else None

        self.logger.info("Running %d benchmark(s)", len(requests))
        async with self.session_factory() as session:
            outcomes = await asyncio.gather(
                *(self._run_bounded(request, session) for request in requests),
                return_exceptions=True,
            )

        results = []
        for request, outcome in zip(requests, outcomes):
            if isinstance(outcome, BaseException):
                message = str(outcome) or type(outcome).__name__
                self.logger.error("%s did not settle cleanly: %s", request.model_ref, message)
                outcome = BenchmarkResult.failed(request.model_ref, message, method=self.transport.method)
            results.append(outcome)
        return results

    async def run_models(self, model_refs: list[ModelRef]) -> list[BenchmarkResult]:
        """Build requests from the run config and run them all."""
        return await self.run_all([self.config.request_for(ref) for ref in model_refs])


class Tracker:
    """Benchmarks the same models over and over, appending rows to a CSV."""

    def __init__(
        self,
        runner: BenchmarkRunner,
        model_refs: list[ModelRef],
        csv_reporter,
        console_reporter=None,
        interval_seconds: float = 60.0,
        logger: Optional[logging.Logger] = None,
    ):
        self.runner = runner
        self.model_refs = model_refs
        self.csv_reporter = csv_reporter
        self.console_reporter = console_reporter
        self.interval_seconds = interval_seconds
        self.logger = logger or logging.getLogger(__name__)
        self.cycles_completed = 0
        self.running = False

    def stop(self) -> None:
        self.running = False

    async def run_cycle(self) -> list[BenchmarkResult]:
        timestamp = datetime.now()
        if self.console_reporter is not None:
            print(f"[{timestamp.isoformat(timespec='seconds')}] Running benchmark cycle...")
        results = await self.runner.run_models(self.model_refs)
        self.csv_reporter.append(results, timestamp)
        if self.console_reporter is not None:
            print(self.console_reporter.cycle_summary(results))
        self.cycles_completed += 1
        return results

    async def run(self, max_cycles: Optional[int] = None) -> int:
        """Run cycles until stopped, cancelled or ``max_cycles`` is reached."""
        self.running = True
        self.csv_reporter.initialize()
        try:
            while self.running:
                await self.run_cycle()
                if max_cycles is not None and self.cycles_completed >= max_cycles:
                    break
                await asyncio.sleep(self.interval_seconds)
        finally:
            self.running = False
            self.logger.info("Tracking stopped after %d cycle(s)", self.cycles_completed)
        return self.cycles_completed
