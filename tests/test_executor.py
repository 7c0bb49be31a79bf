"""Tests for step result shapes and latency handling."""
from __future__ import annotations

import random
from typing import List

import pytest

from agent_engine.core.errors import TaskExecutionError
from agent_engine.core.models import Step, StepKind
from agent_engine.orchestration.executor import RandomStepResultGenerator, StepExecutor

from conftest import FixedResultGenerator


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


def step(kind: StepKind, name: str = "step") -> Step:
    return Step(index=0, name=name, kind=kind)


def test_result_shapes_per_kind() -> None:
    generator = RandomStepResultGenerator(random.Random(7))

    analysis = generator.generate(step(StepKind.ANALYSIS))
    assert analysis["type"] == "analysis_result"
    assert 10 <= analysis["data"]["filesAnalyzed"] <= 59
    assert 0 <= analysis["data"]["issuesFound"] <= 4
    assert len(analysis["data"]["recommendations"]) == 3

    planning = generator.generate(step(StepKind.PLANNING))
    assert planning == {
        "type": "plan",
        "data": {
            "strategy": "Component-based architecture",
            "estimatedTime": "15 minutes",
            "dependencies": ["React", "TypeScript", "Styled Components"],
        },
    }

    coding = generator.generate(step(StepKind.CODING))
    assert coding["type"] == "code_generated"
    assert 1 <= coding["data"]["filesCreated"] <= 3
    assert 50 <= coding["data"]["linesOfCode"] <= 249
    assert coding["data"]["language"] == "TypeScript"

    testing = generator.generate(step(StepKind.TESTING))
    assert testing["type"] == "test_results"
    assert 5 <= testing["data"]["testsCreated"] <= 14
    assert 70 <= testing["data"]["coverage"] <= 99
    assert testing["data"]["passed"] is True

    integration = generator.generate(step(StepKind.INTEGRATION))
    assert integration["type"] == "integration_result"
    assert integration["data"]["success"] is True
    assert 0 <= integration["data"]["conflictsResolved"] <= 2
    assert integration["data"]["buildStatus"] == "passing"


def test_setup_steps_use_coding_shape() -> None:
    result = RandomStepResultGenerator(random.Random(1)).generate(step(StepKind.SETUP))

    assert result["type"] == "code_generated"
    assert set(result["data"]) == {"filesCreated", "linesOfCode", "language"}


def test_latency_within_configured_range() -> None:
    executor = StepExecutor(latency_range_ms=(1000, 3000), rng=random.Random(3))

    for _ in range(200):
        assert 1000 <= executor.sample_latency() <= 3000


@pytest.mark.anyio
async def test_execute_waits_for_drawn_latency() -> None:
    slept: List[float] = []

    async def fake_sleep(seconds: float) -> None:
        slept.append(seconds)

    executor = StepExecutor(
        generator=FixedResultGenerator(),
        latency_range_ms=(1000, 3000),
        rng=random.Random(5),
        sleep=fake_sleep,
    )

    outcome = await executor.execute(step(StepKind.CODING, "Generate"))

    assert outcome.result == {"type": "coding", "data": {"step": "Generate", "index": 0}}
    assert slept == [outcome.latency_ms / 1000.0]
    assert 1.0 <= slept[0] <= 3.0


def test_generator_failure_becomes_task_execution_error() -> None:
    executor = StepExecutor(generator=FixedResultGenerator(fail_on={"Boom"}), latency_range_ms=(0, 0))

    with pytest.raises(TaskExecutionError) as excinfo:
        executor.simulate(step(StepKind.CODING, "Boom"))

    assert excinfo.value.step_name == "Boom"
    assert excinfo.value.code == "ENG_2001"
    assert isinstance(excinfo.value.__cause__, RuntimeError)


def test_invalid_latency_range() -> None:
    with pytest.raises(ValueError):
        StepExecutor(latency_range_ms=(50, 10))
    with pytest.raises(ValueError):
        StepExecutor(latency_range_ms=(-1, 10))
