"""Orchestrator driving agents through their planned tasks."""
from __future__ import annotations

import asyncio
import logging
from typing import Dict, List, Optional

from agent_engine.agents.registry import AgentRegistry
from agent_engine.core.broadcaster import ProgressBroadcaster
from agent_engine.core.errors import AdmissionRejectedError, TaskExecutionError
from agent_engine.core.models import CompletionEvent, ProgressEvent, Task, TaskResult
from agent_engine.logging_config import agent_id_var, get_structured_logger

from .executor import StepExecutor
from .planner import TaskPlanner

logger = get_structured_logger(__name__)


class AgentOrchestrator:
    """Run tasks step by step and publish progress for each agent.

    At most one run is active per agent; a second request against a busy
    agent raises :class:`~agent_engine.core.errors.AgentBusyError`. Runs for
    different agents proceed concurrently. The number of runs in flight is
    capped by ``max_active_runs``.
    """

    def __init__(
        self,
        *,
        registry: AgentRegistry,
        broadcaster: ProgressBroadcaster,
        planner: Optional[TaskPlanner] = None,
        executor: Optional[StepExecutor] = None,
        max_active_runs: int = 256,
    ) -> None:
        if max_active_runs < 1:
            raise ValueError("max_active_runs must be at least 1")
        self._registry = registry
        self._broadcaster = broadcaster
        self._planner = planner or TaskPlanner()
        self._executor = executor or StepExecutor()
        self._max_active_runs = max_active_runs
        self._admitted = 0
        self._runs: Dict[str, asyncio.Task] = {}

    @property
    def active_runs(self) -> int:
        return self._admitted

    @property
    def planner(self) -> TaskPlanner:
        return self._planner

    @property
    def max_active_runs(self) -> int:
        return self._max_active_runs

    async def run(self, agent_id: str, task: Task) -> TaskResult:
        """Execute ``task`` on the agent and return its ordered results.

        The steps run in a task of their own so :meth:`cancel` stops the run
        without cancelling the caller. A run cancelled that way surfaces here
        as :class:`~agent_engine.core.errors.TaskExecutionError`.
        """
        if self._admitted >= self._max_active_runs:
            logger.structured(
                logging.WARNING,
                "Run rejected by admission limit",
                {"agent_id": agent_id, "limit": self._max_active_runs},
            )
            raise AdmissionRejectedError(self._max_active_runs)

        self._admitted += 1
        runner = asyncio.create_task(self._execute(agent_id, task))
        try:
            return await asyncio.shield(runner)
        except asyncio.CancelledError:
            if runner.cancelled():
                raise TaskExecutionError(f"Run on agent {agent_id} was cancelled", agent_id=agent_id) from None
            # The caller went away; stop the run before propagating.
            runner.cancel()
            await asyncio.gather(runner, return_exceptions=True)
            raise
        finally:
            self._admitted -= 1

    async def _execute(self, agent_id: str, task: Task) -> TaskResult:
        token = agent_id_var.set(agent_id)
        try:
            await self._registry.begin_task(agent_id, task)
            current = asyncio.current_task()
            if current is not None:
                self._runs[agent_id] = current
            try:
                return await self._drive(agent_id, task)
            except asyncio.CancelledError:
                await self._registry.abort_task(agent_id)
                logger.structured(logging.INFO, "Run cancelled", {"task_type": task.type})
                raise
            except Exception as exc:
                await self._registry.abort_task(agent_id)
                logger.structured(
                    logging.ERROR,
                    "Run failed",
                    {"task_type": task.type, "error": str(exc)},
                )
                if isinstance(exc, TaskExecutionError):
                    exc.agent_id = agent_id
                    raise
                raise TaskExecutionError(str(exc), agent_id=agent_id) from exc
            finally:
                self._runs.pop(agent_id, None)
        finally:
            agent_id_var.reset(token)

    async def _drive(self, agent_id: str, task: Task) -> TaskResult:
        steps = self._planner.plan(task)
        total = len(steps)
        results: List[dict] = []
        logger.structured(
            logging.INFO,
            "Run started",
            {"task_type": task.type, "total_steps": total},
        )

        for position, step in enumerate(steps, start=1):
            outcome = self._executor.simulate(step)
            results.append(outcome.result)
            self._broadcaster.publish(
                ProgressEvent(
                    agent_id=agent_id,
                    step=position,
                    total_steps=total,
                    current_step=step.name,
                    result=outcome.result,
                )
            )
            await self._executor.wait(outcome)

        agent = await self._registry.finish_task(agent_id)
        self._broadcaster.publish(CompletionEvent(agent_id=agent_id, results=list(results), agent=agent))
        logger.structured(
            logging.INFO,
            "Run completed",
            {"task_type": task.type, "completed_tasks": agent.completed_tasks},
        )
        return TaskResult(success=True, results=results, agent=agent)

    def is_running(self, agent_id: str) -> bool:
        return agent_id in self._runs

    async def cancel(self, agent_id: str) -> bool:
        """Cancel the agent's active run, if any."""
        run = self._runs.get(agent_id)
        if run is None or run is asyncio.current_task():
            return False
        run.cancel()
        await asyncio.gather(run, return_exceptions=True)
        return True

    async def cancel_all(self) -> None:
        """Cancel every in-flight run, leaving their agents idle."""
        runs = [run for run in self._runs.values() if run is not asyncio.current_task()]
        for run in runs:
            run.cancel()
        await asyncio.gather(*runs, return_exceptions=True)
