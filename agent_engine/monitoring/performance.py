"""
Performance monitoring for the engine.

Samples process memory on a timer, records every inbound request and keeps
error samples, all in bounded buffers. Snapshots are pure aggregations over
those buffers and return zero-valued defaults when nothing has been recorded.
"""
from __future__ import annotations

import asyncio
import logging
import os
import time
from collections import deque
from typing import Any, Callable, Deque, Dict, List, Optional, Tuple

import psutil

from agent_engine.core.models import RequestRecord
from agent_engine.core.ring_buffer import MetricsRingBuffer
from agent_engine.logging_config import get_structured_logger

logger = get_structured_logger(__name__)

AVG_LATENCY_WINDOW = 10
HEALTH_WINDOW = 5
HEALTHY_LATENCY_MS = 200.0
REQUESTS_PER_MINUTE_WINDOW = 60.0


def process_memory_mb() -> float:
    """Resident set size of the current process in megabytes."""
    return psutil.Process(os.getpid()).memory_info().rss / (1024 * 1024)


class PerformanceMonitor:
    """Collects rolling latency, memory and error metrics."""

    def __init__(
        self,
        *,
        buffer_size: int = 100,
        request_log_size: int = 1000,
        memory_interval: float = 30.0,
        memory_probe: Callable[[], float] = process_memory_mb,
        agent_counts: Optional[Callable[[], Dict[str, int]]] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._clock = clock
        self._memory_interval = memory_interval
        self._memory_probe = memory_probe
        self._agent_counts = agent_counts
        self.latency = MetricsRingBuffer(buffer_size)
        self.memory = MetricsRingBuffer(buffer_size)
        self.errors = MetricsRingBuffer(buffer_size)
        self._error_messages: Deque[Tuple[float, str]] = deque(maxlen=buffer_size)
        self._requests: Deque[RequestRecord] = deque(maxlen=request_log_size)
        self._request_count = 0
        self._error_count = 0
        self._started_at = clock()
        self._sampler: Optional[asyncio.Task[None]] = None

    async def start(self) -> None:
        """Start the background memory sampler."""
        if self._sampler is not None:
            return
        self._sampler = asyncio.create_task(self._sample_loop())

    async def stop(self) -> None:
        if self._sampler is None:
            return
        self._sampler.cancel()
        try:
            await self._sampler
        except asyncio.CancelledError:
            pass
        self._sampler = None

    @property
    def running(self) -> bool:
        return self._sampler is not None

    async def _sample_loop(self) -> None:
        while True:
            self.sample_memory()
            await asyncio.sleep(self._memory_interval)

    def sample_memory(self) -> float:
        """Record one memory sample; probe failures record a zero sample."""
        try:
            value = float(self._memory_probe())
        except Exception as exc:
            logger.structured(logging.WARNING, "Memory sampling failed", {"error": str(exc)})
            value = 0.0
        self.memory.append(value, timestamp=self._clock())
        return value

    def record_request(self, method: str, path: str, status: int, latency_ms: float) -> RequestRecord:
        now = self._clock()
        record = RequestRecord(timestamp=now, method=method, path=path, status=status, latency_ms=latency_ms)
        self._requests.append(record)
        self._request_count += 1
        self.latency.append(latency_ms, timestamp=now)
        if status >= 500:
            self.record_error(f"{method} {path} returned {status}")
        return record

    def record_error(self, message: str) -> None:
        now = self._clock()
        self._error_count += 1
        self.errors.append(1.0, timestamp=now)
        self._error_messages.append((now, message))

    @property
    def uptime(self) -> float:
        return self._clock() - self._started_at

    def avg_latency(self, last: int = AVG_LATENCY_WINDOW) -> float:
        return self.latency.mean(last=last)

    def requests_per_minute(self, window: float = REQUESTS_PER_MINUTE_WINDOW) -> int:
        cutoff = self._clock() - window
        count = 0
        for record in reversed(self._requests):
            if record.timestamp < cutoff:
                break
            count += 1
        return count

    def recent_requests(self, count: int = 20) -> List[Dict[str, Any]]:
        return [
            {
                "timestamp": record.timestamp,
                "method": record.method,
                "path": record.path,
                "status": record.status,
                "latencyMs": record.latency_ms,
            }
            for record in list(self._requests)[-count:]
        ]

    def health(self) -> Dict[str, Any]:
        """Healthy unless recent latency is high or a recent request failed."""
        avg = self.avg_latency(HEALTH_WINDOW)
        recent = list(self._requests)[-HEALTH_WINDOW:]
        failing = any(record.status >= 500 for record in recent)
        status = "healthy" if avg < HEALTHY_LATENCY_MS and not failing else "degraded"
        return {"status": status, "avgLatency": avg}

    def snapshot(self) -> Dict[str, Any]:
        agent_counts = self._agent_counts() if self._agent_counts else {}
        return {
            "uptime": self.uptime,
            "requestCount": self._request_count,
            "avgLatency": self.avg_latency(),
            "requestsPerMinute": self.requests_per_minute(),
            "memoryHistory": [sample.to_dict() for sample in self.memory],
            "agentCounts": dict(agent_counts),
            "errorCount": self._error_count,
            "recentErrors": [
                {"timestamp": ts, "message": message} for ts, message in list(self._error_messages)[-5:]
            ],
            "health": self.health(),
        }

    def reset(self) -> None:
        """Clear every buffer and counter; uptime is preserved."""
        self.latency.clear()
        self.memory.clear()
        self.errors.clear()
        self._error_messages.clear()
        self._requests.clear()
        self._request_count = 0
        self._error_count = 0
