"""Engine context wiring the registry, orchestrator, broadcaster and monitor."""
from __future__ import annotations

import asyncio
import logging
import random
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional, Set, Union

from agent_engine.agents.capabilities import capabilities_for, describe_agent_types
from agent_engine.agents.registry import AgentRegistry
from agent_engine.config import EngineSettings
from agent_engine.core.broadcaster import ProgressBroadcaster, Subscription
from agent_engine.core.errors import EngineError, TaskExecutionError
from agent_engine.core.models import (
    AgentCreatedEvent,
    AgentRecord,
    AgentType,
    SessionJoinedEvent,
    Task,
    TaskResult,
)
from agent_engine.logging_config import get_structured_logger
from agent_engine.monitoring.performance import PerformanceMonitor
from agent_engine.orchestration.executor import StepExecutor, StepResultGenerator
from agent_engine.orchestration.orchestrator import AgentOrchestrator
from agent_engine.orchestration.planner import TaskPlanner
from agent_engine.orchestration.stress import StressHarness, StressReport

logger = get_structured_logger(__name__)


class AgentEngine:
    """Explicitly owned engine state exposing the collaborator-facing API.

    Each instance is isolated: nothing here is process-global, so tests can
    build as many engines as they need.
    """

    def __init__(
        self,
        *,
        registry: AgentRegistry,
        broadcaster: ProgressBroadcaster,
        orchestrator: AgentOrchestrator,
        monitor: PerformanceMonitor,
        demo_delay: float = 1.0,
    ) -> None:
        self.registry = registry
        self.broadcaster = broadcaster
        self.orchestrator = orchestrator
        self.monitor = monitor
        self.stress = StressHarness(registry=registry, orchestrator=orchestrator)
        self._demo_delay = demo_delay
        self._background: Set[asyncio.Task[Any]] = set()

    @classmethod
    def from_settings(
        cls,
        settings: Optional[EngineSettings] = None,
        *,
        generator: Optional[StepResultGenerator] = None,
        rng: Optional[random.Random] = None,
        monitor: Optional[PerformanceMonitor] = None,
    ) -> AgentEngine:
        settings = settings or EngineSettings()
        registry = AgentRegistry()
        broadcaster = ProgressBroadcaster(queue_size=settings.subscriber_queue_size)
        executor = StepExecutor(
            generator=generator,
            latency_range_ms=(settings.step_latency_min_ms, settings.step_latency_max_ms),
            rng=rng,
        )
        orchestrator = AgentOrchestrator(
            registry=registry,
            broadcaster=broadcaster,
            planner=TaskPlanner(),
            executor=executor,
            max_active_runs=settings.max_active_runs,
        )
        if monitor is None:
            monitor = PerformanceMonitor(
                buffer_size=settings.metrics_buffer_size,
                request_log_size=settings.request_log_size,
                memory_interval=settings.memory_sample_interval,
                agent_counts=registry.counts,
            )
        return cls(
            registry=registry,
            broadcaster=broadcaster,
            orchestrator=orchestrator,
            monitor=monitor,
            demo_delay=settings.demo_delay,
        )

    async def start(self) -> None:
        await self.monitor.start()
        logger.structured(logging.INFO, "Engine started")

    async def shutdown(self) -> None:
        """Cancel pending demos and in-flight runs, then stop sampling."""
        pending = list(self._background)
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        await self.orchestrator.cancel_all()
        await self.monitor.stop()
        logger.structured(logging.INFO, "Engine stopped")

    async def create_agent(
        self,
        agent_type: Union[AgentType, str],
        config: Optional[Dict[str, Any]] = None,
    ) -> AgentRecord:
        agent = await self.registry.create(agent_type, config)
        self.broadcaster.publish(AgentCreatedEvent(agent=agent))
        return agent

    def get_agent(self, agent_id: str) -> AgentRecord:
        return self.registry.get(agent_id)

    def list_agents(self) -> List[AgentRecord]:
        return self.registry.list()

    async def remove_agent(self, agent_id: str) -> AgentRecord:
        await self.orchestrator.cancel(agent_id)
        return await self.registry.remove(agent_id)

    @staticmethod
    def get_capabilities(agent_type: Union[AgentType, str]) -> List[str]:
        return list(capabilities_for(agent_type))

    @staticmethod
    def describe_agent_types() -> Dict[str, Dict[str, object]]:
        return describe_agent_types()

    async def execute_task(self, agent_id: str, task: Task) -> TaskResult:
        try:
            return await self.orchestrator.run(agent_id, task)
        except TaskExecutionError as exc:
            self.monitor.record_error(str(exc))
            raise

    @asynccontextmanager
    async def subscribe(self, session_id: str) -> AsyncIterator[Subscription]:
        """Subscribe a session and acknowledge the join on its stream."""
        async with self.broadcaster.subscribe(session_id) as subscription:
            self.join_session(session_id)
            yield subscription

    def join_session(self, session_id: str) -> SessionJoinedEvent:
        return self.broadcaster.join(session_id)

    async def unsubscribe(self, session_id: str) -> None:
        await self.broadcaster.unsubscribe(session_id)

    def get_metrics_snapshot(self) -> Dict[str, Any]:
        snapshot = self.monitor.snapshot()
        snapshot["activeRuns"] = self.orchestrator.active_runs
        snapshot["subscribers"] = self.broadcaster.subscriber_count()
        return snapshot

    async def run_stress_test(self, agent_count: int, task_count: int, concurrency_limit: int) -> StressReport:
        report = await self.stress.run(agent_count, task_count, concurrency_limit)
        for error in report.errors:
            self.monitor.record_error(f"Stress task {error['taskIndex']} failed: {error['error']}")
        return report

    async def request_agent_demo(
        self,
        agent_type: Union[AgentType, str],
        config: Optional[Dict[str, Any]] = None,
        *,
        demo_task: Optional[str] = None,
        description: Optional[str] = None,
        complexity: Optional[str] = None,
    ) -> AgentRecord:
        """Create an agent and start a demo task on it after a short delay."""
        agent = await self.create_agent(agent_type, config)
        task = Task(
            type=demo_task or "create_component",
            description=description or "Create a sample React component",
            complexity=complexity or "medium",
        )
        runner = asyncio.create_task(self._run_demo(agent.agent_id, task))
        self._background.add(runner)
        runner.add_done_callback(self._background.discard)
        return agent

    async def _run_demo(self, agent_id: str, task: Task) -> None:
        await asyncio.sleep(self._demo_delay)
        try:
            await self.execute_task(agent_id, task)
        except EngineError as exc:
            logger.structured(logging.WARNING, "Demo task failed", {"agent_id": agent_id, "error": str(exc)})

    @property
    def pending_demos(self) -> int:
        return len(self._background)
