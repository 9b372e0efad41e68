"""
Timing utilities for streaming benchmarks.

Captures, per request:
- TTFT (time to the first non-empty network chunk)
- Total latency
- Chunk arrival times
"""

import time
from typing import AsyncIterator, Optional


class StreamingTimer:
    """Timer specialized for streaming LLM responses.

    TTFT is recorded at the first non-empty chunk off the wire, before any
    parsing, so it means the same thing for every provider family.
    """

    def __init__(self, name: str = "streaming"):
        self.name = name
        self.start_time: float = 0.0
        self.ttft: Optional[float] = None
        self.end_time: float = 0.0
        self.chunk_times: list[float] = []
        self.bytes_received: int = 0
        self._running = False

    def start(self) -> "StreamingTimer":
        """Start the streaming timer."""
        self.start_time = time.perf_counter()
        self._running = True
        return self

    def record_chunk(self, size: int = 0) -> "StreamingTimer":
        """Record a chunk arrival."""
        current_time = time.perf_counter()
        if self.ttft is None:
            self.ttft = current_time
        self.chunk_times.append(current_time)
        self.bytes_received += size
        return self

    def stop(self) -> "StreamingTimer":
        """Stop the streaming timer."""
        if self._running:
            self.end_time = time.perf_counter()
            self._running = False
        return self

    @property
    def chunk_count(self) -> int:
        return len(self.chunk_times)

    @property
    def received_data(self) -> bool:
        return self.ttft is not None

    @property
    def ttft_ms(self) -> Optional[float]:
        """Time to first chunk in milliseconds."""
        if self.ttft is None:
            return None
        return (self.ttft - self.start_time) * 1000

    @property
    def total_latency_ms(self) -> float:
        """Total latency in milliseconds."""
        end = self.end_time if not self._running else time.perf_counter()
        return (end - self.start_time) * 1000

    @property
    def inter_chunk_latencies_ms(self) -> list[float]:
        """Gaps between consecutive chunks in milliseconds."""
        if len(self.chunk_times) < 2:
            return []
        latencies = []
        prev = self.chunk_times[0]
        for t in self.chunk_times[1:]:
            latencies.append((t - prev) * 1000)
            prev = t
        return latencies

    @property
    def avg_inter_chunk_latency_ms(self) -> float:
        latencies = self.inter_chunk_latencies_ms
        if not latencies:
            return 0.0
        return sum(latencies) / len(latencies)


async def timed_chunks(chunks: AsyncIterator[bytes], timer: StreamingTimer) -> AsyncIterator[bytes]:
    """Pass chunks through, stamping each non-empty one on the timer."""
    async for chunk in chunks:
        if not chunk:
            continue
        timer.record_chunk(len(chunk))
        yield chunk
