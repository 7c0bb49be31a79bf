"""Fixed-capacity sample store backing the rolling metrics."""
from __future__ import annotations

import time
from collections import deque
from typing import Deque, Iterator, List, Optional

from .models import MetricSample


class MetricsRingBuffer:
    """Append-only FIFO of samples that evicts the oldest entry past capacity."""

    def __init__(self, capacity: int = 100) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._samples: Deque[MetricSample] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._samples.maxlen or 0

    def append(self, value: float, timestamp: Optional[float] = None) -> MetricSample:
        sample = MetricSample(timestamp=time.time() if timestamp is None else timestamp, value=float(value))
        self._samples.append(sample)
        return sample

    def values(self) -> List[float]:
        return [sample.value for sample in self._samples]

    def samples(self) -> List[MetricSample]:
        return list(self._samples)

    def last(self, count: int) -> List[MetricSample]:
        """Return up to ``count`` most recent samples, oldest first."""
        if count <= 0:
            return []
        return list(self._samples)[-count:]

    def mean(self, last: Optional[int] = None) -> float:
        window = self.samples() if last is None else self.last(last)
        if not window:
            return 0.0
        return sum(sample.value for sample in window) / len(window)

    def count_since(self, timestamp: float) -> int:
        # Samples are appended in time order, so scan from the newest end.
        count = 0
        for sample in reversed(self._samples):
            if sample.timestamp < timestamp:
                break
            count += 1
        return count

    def clear(self) -> None:
        self._samples.clear()

    def __len__(self) -> int:
        return len(self._samples)

    def __iter__(self) -> Iterator[MetricSample]:
        return iter(list(self._samples))
