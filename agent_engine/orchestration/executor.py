"""Step simulation: produce a kind-specific result and a latency suspension."""
from __future__ import annotations

import asyncio
import random
from typing import Any, Awaitable, Callable, Dict, Optional, Protocol, Tuple

from agent_engine.core.errors import TaskExecutionError
from agent_engine.core.models import Step, StepKind, StepOutcome

Sleeper = Callable[[float], Awaitable[Any]]


class StepResultGenerator(Protocol):
    """Produces the result payload for a step."""

    def generate(self, step: Step) -> Dict[str, Any]:
        ...


class RandomStepResultGenerator:
    """Fills each result schema with random values from fixed ranges."""

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self._rng = rng or random.Random()

    def generate(self, step: Step) -> Dict[str, Any]:
        builder = self._builders.get(step.kind, RandomStepResultGenerator._coding)
        return builder(self)

    def _analysis(self) -> Dict[str, Any]:
        return {
            "type": "analysis_result",
            "data": {
                "filesAnalyzed": self._rng.randint(10, 59),
                "issuesFound": self._rng.randint(0, 4),
                "recommendations": ["Optimize imports", "Reduce complexity", "Add error handling"],
            },
        }

    def _planning(self) -> Dict[str, Any]:
        return {
            "type": "plan",
            "data": {
                "strategy": "Component-based architecture",
                "estimatedTime": "15 minutes",
                "dependencies": ["React", "TypeScript", "Styled Components"],
            },
        }

    def _coding(self) -> Dict[str, Any]:
        return {
            "type": "code_generated",
            "data": {
                "filesCreated": self._rng.randint(1, 3),
                "linesOfCode": self._rng.randint(50, 249),
                "language": "TypeScript",
            },
        }

    def _testing(self) -> Dict[str, Any]:
        return {
            "type": "test_results",
            "data": {
                "testsCreated": self._rng.randint(5, 14),
                "coverage": self._rng.randint(70, 99),
                "passed": True,
            },
        }

    def _integration(self) -> Dict[str, Any]:
        return {
            "type": "integration_result",
            "data": {
                "success": True,
                "conflictsResolved": self._rng.randint(0, 2),
                "buildStatus": "passing",
            },
        }

    # Setup steps fall back to the coding shape.
    _builders: Dict[StepKind, Callable[[RandomStepResultGenerator], Dict[str, Any]]] = {
        StepKind.ANALYSIS: _analysis,
        StepKind.PLANNING: _planning,
        StepKind.CODING: _coding,
        StepKind.TESTING: _testing,
        StepKind.INTEGRATION: _integration,
    }


class StepExecutor:
    """Executes one step: builds its result, then waits out its latency."""

    def __init__(
        self,
        *,
        generator: Optional[StepResultGenerator] = None,
        latency_range_ms: Tuple[float, float] = (1000.0, 3000.0),
        rng: Optional[random.Random] = None,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        low, high = latency_range_ms
        if low < 0 or high < low:
            raise ValueError(f"Invalid latency range: {latency_range_ms}")
        self._rng = rng or random.Random()
        self._generator = generator or RandomStepResultGenerator(self._rng)
        self._latency_range_ms = (low, high)
        self._sleep = sleep

    def sample_latency(self) -> float:
        low, high = self._latency_range_ms
        return self._rng.uniform(low, high)

    def simulate(self, step: Step) -> StepOutcome:
        """Build the step result and draw its latency without waiting."""
        try:
            result = self._generator.generate(step)
        except Exception as exc:
            raise TaskExecutionError(f"Step '{step.name}' failed: {exc}", step_name=step.name) from exc
        return StepOutcome(step=step, result=result, latency_ms=self.sample_latency())

    async def wait(self, outcome: StepOutcome) -> None:
        await self._sleep(outcome.latency_ms / 1000.0)

    async def execute(self, step: Step) -> StepOutcome:
        outcome = self.simulate(step)
        await self.wait(outcome)
        return outcome
