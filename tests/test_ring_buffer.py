"""Tests for the fixed-capacity metrics buffer."""
from __future__ import annotations

import pytest

from agent_engine.core.ring_buffer import MetricsRingBuffer


def test_never_exceeds_capacity() -> None:
    buffer = MetricsRingBuffer(capacity=5)
    for i in range(1, 50):
        buffer.append(i)
        assert len(buffer) <= 5


def test_overflow_keeps_last_samples_in_order() -> None:
    buffer = MetricsRingBuffer(capacity=4)
    for value in range(7):
        buffer.append(value)

    assert buffer.values() == [3.0, 4.0, 5.0, 6.0]
    assert buffer.capacity == 4


def test_mean_over_recent_window() -> None:
    buffer = MetricsRingBuffer(capacity=10)
    for value in (10, 20, 30, 40):
        buffer.append(value)

    assert buffer.mean() == 25.0
    assert buffer.mean(last=2) == 35.0
    assert [s.value for s in buffer.last(1)] == [40.0]


def test_empty_buffer_defaults() -> None:
    buffer = MetricsRingBuffer(capacity=3)

    assert buffer.mean() == 0.0
    assert buffer.last(5) == []
    assert buffer.count_since(0) == 0


def test_count_since_uses_timestamps() -> None:
    buffer = MetricsRingBuffer(capacity=10)
    for ts in (100.0, 110.0, 120.0, 130.0):
        buffer.append(1, timestamp=ts)

    assert buffer.count_since(115.0) == 2
    assert buffer.count_since(100.0) == 4


def test_clear_and_invalid_capacity() -> None:
    buffer = MetricsRingBuffer(capacity=2)
    buffer.append(1)
    buffer.clear()
    assert len(buffer) == 0

    with pytest.raises(ValueError):
        MetricsRingBuffer(capacity=0)
