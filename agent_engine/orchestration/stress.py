"""
Stress harness

Runs N agents x M tasks through the orchestrator under a global concurrency
ceiling and reports throughput, latency and success rate. A failing task is
recorded in the report and never cancels its siblings.
"""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence

from agent_engine.agents.registry import AgentRegistry
from agent_engine.core.errors import AdmissionRejectedError, EngineError
from agent_engine.core.models import AgentRecord, AgentType, Task
from agent_engine.logging_config import get_structured_logger

from .orchestrator import AgentOrchestrator

logger = get_structured_logger(__name__)

SYNTHETIC_TASK_TYPES: Sequence[str] = ("create_component", "refactor_codebase", "stress_generic")


@dataclass
class StressReport:
    """Aggregate outcome of a stress run."""

    agents_created: int
    tasks_requested: int
    tasks_completed: int
    duration_ms: float
    peak_concurrency: int
    errors: List[Dict[str, Any]] = field(default_factory=list)
    task_latencies_ms: List[float] = field(default_factory=list)

    @property
    def throughput(self) -> float:
        """Completed tasks per second of wall-clock time."""
        if self.duration_ms <= 0:
            return 0.0
        return self.tasks_completed / (self.duration_ms / 1000.0)

    @property
    def success_rate(self) -> float:
        if self.tasks_requested == 0:
            return 0.0
        return self.tasks_completed / self.tasks_requested

    @property
    def avg_task_latency_ms(self) -> float:
        if not self.task_latencies_ms:
            return 0.0
        return sum(self.task_latencies_ms) / len(self.task_latencies_ms)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "agentsCreated": self.agents_created,
            "tasksRequested": self.tasks_requested,
            "tasksCompleted": self.tasks_completed,
            "errors": list(self.errors),
            "durationMs": self.duration_ms,
            "throughput": self.throughput,
            "successRate": self.success_rate,
            "avgTaskLatencyMs": self.avg_task_latency_ms,
            "peakConcurrency": self.peak_concurrency,
        }


class StressHarness:
    """Drive many orchestration runs with a semaphore-bounded worker pool."""

    def __init__(self, *, registry: AgentRegistry, orchestrator: AgentOrchestrator) -> None:
        self._registry = registry
        self._orchestrator = orchestrator

    async def run(self, agent_count: int, task_count: int, concurrency_limit: int) -> StressReport:
        if agent_count < 1:
            raise ValueError("agent_count must be at least 1")
        if task_count < 0:
            raise ValueError("task_count must not be negative")
        if concurrency_limit < 1:
            raise ValueError("concurrency_limit must be at least 1")

        logger.structured(
            logging.INFO,
            "Stress run started",
            {"agents": agent_count, "tasks": task_count, "concurrency_limit": concurrency_limit},
        )
        started = time.perf_counter()

        agent_types = list(AgentType)
        agents: List[AgentRecord] = await asyncio.gather(
            *(
                self._registry.create(agent_types[i % len(agent_types)], {"stress": True, "index": i})
                for i in range(agent_count)
            )
        )

        # The orchestrator rejects runs past its own limit, so never ask for more.
        ceiling = min(concurrency_limit, self._orchestrator.max_active_runs)
        semaphore = asyncio.Semaphore(ceiling)
        # Tasks sharing an agent queue behind each other instead of tripping the busy guard.
        agent_locks = {agent.agent_id: asyncio.Lock() for agent in agents}
        report = StressReport(
            agents_created=len(agents),
            tasks_requested=task_count,
            tasks_completed=0,
            duration_ms=0.0,
            peak_concurrency=0,
        )
        in_flight = 0

        def record_failure(index: int, agent: AgentRecord, task: Task, exc: Exception) -> None:
            report.errors.append(
                {
                    "taskIndex": index,
                    "agentId": agent.agent_id,
                    "taskType": task.type,
                    "code": exc.code if isinstance(exc, EngineError) else None,
                    "error": str(exc),
                }
            )
            logger.structured(
                logging.WARNING,
                "Stress task failed",
                {"task_index": index, "agent_id": agent.agent_id, "error": str(exc)},
            )

        async def worker(index: int, agent: AgentRecord) -> None:
            nonlocal in_flight
            task = Task(
                type=SYNTHETIC_TASK_TYPES[index % len(SYNTHETIC_TASK_TYPES)],
                description=f"Stress task {index + 1}",
                complexity="low",
            )
            async with agent_locks[agent.agent_id]:
                async with semaphore:
                    in_flight += 1
                    # Admission is decided before the run first suspends, so a
                    # rejected run never overlaps another worker.
                    concurrent = in_flight
                    task_started = time.perf_counter()
                    try:
                        await self._orchestrator.run(agent.agent_id, task)
                    except AdmissionRejectedError as exc:
                        record_failure(index, agent, task, exc)
                    except Exception as exc:
                        report.peak_concurrency = max(report.peak_concurrency, concurrent)
                        record_failure(index, agent, task, exc)
                    else:
                        report.peak_concurrency = max(report.peak_concurrency, concurrent)
                        report.tasks_completed += 1
                        report.task_latencies_ms.append((time.perf_counter() - task_started) * 1000.0)
                    finally:
                        in_flight -= 1

        await asyncio.gather(*(worker(i, agents[i % len(agents)]) for i in range(task_count)))

        report.duration_ms = (time.perf_counter() - started) * 1000.0
        logger.structured(logging.INFO, "Stress run finished", report.to_dict())
        return report
