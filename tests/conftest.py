"""Shared fixtures for engine tests."""
from __future__ import annotations

from typing import Any, Dict, Optional

import pytest

from agent_engine.config import EngineSettings
from agent_engine.core.models import Step
from agent_engine.engine import AgentEngine


class FixedResultGenerator:
    """Deterministic results; raises for steps named in ``fail_on``."""

    def __init__(self, fail_on: Optional[set] = None) -> None:
        self.fail_on = fail_on or set()
        self.calls = 0

    def generate(self, step: Step) -> Dict[str, Any]:
        self.calls += 1
        if step.name in self.fail_on:
            raise RuntimeError(f"simulated failure in {step.name}")
        return {"type": step.kind.value, "data": {"step": step.name, "index": step.index}}


FAST_SETTINGS = EngineSettings(
    step_latency_min_ms=1,
    step_latency_max_ms=3,
    demo_delay=0.0,
)


@pytest.fixture
def fast_settings() -> EngineSettings:
    return FAST_SETTINGS


@pytest.fixture
def engine() -> AgentEngine:
    return AgentEngine.from_settings(FAST_SETTINGS, generator=FixedResultGenerator())
