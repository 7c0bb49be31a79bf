"""Tests for the engine facade that wires every component together."""
from __future__ import annotations

import asyncio
from dataclasses import replace

import pytest

from agent_engine.agents.registry import AgentRegistry
from agent_engine.core.broadcaster import ProgressBroadcaster
from agent_engine.core.errors import AgentNotFoundError, TaskExecutionError
from agent_engine.core.models import (
    AgentCreatedEvent,
    AgentStatus,
    AgentType,
    CompletionEvent,
    ProgressEvent,
    SessionJoinedEvent,
    Task,
)
from agent_engine.engine import AgentEngine
from agent_engine.monitoring.performance import PerformanceMonitor
from agent_engine.orchestration.executor import StepExecutor
from agent_engine.orchestration.orchestrator import AgentOrchestrator

from conftest import FAST_SETTINGS, FixedResultGenerator


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


def engine_with_sleep(sleep) -> AgentEngine:
    registry = AgentRegistry()
    broadcaster = ProgressBroadcaster()
    orchestrator = AgentOrchestrator(
        registry=registry,
        broadcaster=broadcaster,
        executor=StepExecutor(generator=FixedResultGenerator(), latency_range_ms=(1, 2), sleep=sleep),
    )
    return AgentEngine(
        registry=registry,
        broadcaster=broadcaster,
        orchestrator=orchestrator,
        monitor=PerformanceMonitor(agent_counts=registry.counts),
        demo_delay=0.0,
    )


@pytest.mark.anyio
async def test_join_ack_is_first_then_agent_created(engine: AgentEngine) -> None:
    async with engine.subscribe("session-1") as stream:
        agent = await engine.create_agent("autonomous", {"model": "gpt-4"})

        joined = stream.get_nowait()
        created = stream.get_nowait()

    assert joined == SessionJoinedEvent(session_id="session-1")
    assert isinstance(created, AgentCreatedEvent)
    assert created.to_dict()["id"] == agent.agent_id
    assert created.to_dict()["config"] == {"model": "gpt-4"}
    assert agent.status is AgentStatus.INITIALIZING


@pytest.mark.anyio
async def test_execute_task_streams_progress_and_completion(engine: AgentEngine) -> None:
    agent = await engine.create_agent(AgentType.SPECIALIZED)

    async with engine.subscribe("watcher") as stream:
        result = await engine.execute_task(agent.agent_id, Task(type="refactor_codebase"))
        events = []
        while stream.pending():
            events.append(stream.get_nowait())

    assert isinstance(events[0], SessionJoinedEvent)
    progress = [e for e in events if isinstance(e, ProgressEvent)]
    assert [e.current_step for e in progress] == [
        "Scan Codebase",
        "Identify Refactoring Opportunities",
        "Plan Refactoring Strategy",
        "Execute Refactoring",
        "Run Tests and Verify",
    ]
    assert isinstance(events[-1], CompletionEvent)
    assert events[-1].to_dict()["result"]["agent"]["completedTasks"] == 1
    assert result.success
    assert engine.get_agent(agent.agent_id).completed_tasks == 1


@pytest.mark.anyio
async def test_task_failure_is_counted_as_error() -> None:
    engine = AgentEngine.from_settings(FAST_SETTINGS, generator=FixedResultGenerator({"Verify Results"}))
    agent = await engine.create_agent("collaborative")

    with pytest.raises(TaskExecutionError):
        await engine.execute_task(agent.agent_id, Task(type="anything"))

    snapshot = engine.get_metrics_snapshot()
    assert snapshot["errorCount"] == 1
    assert engine.get_agent(agent.agent_id).status is AgentStatus.IDLE


def test_capabilities() -> None:
    assert AgentEngine.get_capabilities("autonomous") == [
        "code_generation",
        "file_manipulation",
        "terminal_commands",
        "debugging",
        "testing",
        "task_planning",
        "multi_file_refactoring",
        "architecture_design",
    ]
    assert AgentEngine.get_capabilities("unknown") == [
        "code_generation",
        "file_manipulation",
        "terminal_commands",
        "debugging",
        "testing",
    ]
    assert set(AgentEngine.describe_agent_types()) == {t.value for t in AgentType}


@pytest.mark.anyio
async def test_metrics_snapshot_reports_agents_and_runs(engine: AgentEngine) -> None:
    await engine.create_agent("autonomous")
    await engine.create_agent("multimodal")

    snapshot = engine.get_metrics_snapshot()

    assert snapshot["agentCounts"]["total"] == 2
    assert snapshot["activeRuns"] == 0
    assert snapshot["subscribers"] == 0


@pytest.mark.anyio
async def test_stress_run_through_engine(engine: AgentEngine) -> None:
    report = await engine.run_stress_test(agent_count=3, task_count=6, concurrency_limit=2)

    assert report.agents_created == 3
    assert report.tasks_completed == 6
    assert report.peak_concurrency <= 2
    assert len(engine.list_agents()) == 3


@pytest.mark.anyio
async def test_agent_demo_runs_in_background(engine: AgentEngine) -> None:
    async with engine.subscribe("demo") as stream:
        agent = await engine.request_agent_demo("autonomous", {"demo": True})
        assert engine.pending_demos == 1

        completion = None
        while completion is None:
            event = await asyncio.wait_for(stream.get(), timeout=5)
            if isinstance(event, CompletionEvent):
                completion = event

    assert completion.agent_id == agent.agent_id
    for _ in range(50):
        if not engine.pending_demos:
            break
        await asyncio.sleep(0.01)
    assert engine.pending_demos == 0
    assert engine.get_agent(agent.agent_id).completed_tasks == 1


@pytest.mark.anyio
async def test_remove_agent_cancels_active_run() -> None:
    started = asyncio.Event()

    async def hanging_sleep(seconds: float) -> None:
        started.set()
        await asyncio.Event().wait()

    engine = engine_with_sleep(hanging_sleep)
    agent = await engine.create_agent("autonomous")
    run = asyncio.create_task(engine.execute_task(agent.agent_id, Task(type="create_component")))
    await started.wait()

    removed = await engine.remove_agent(agent.agent_id)

    assert removed.agent_id == agent.agent_id
    with pytest.raises(TaskExecutionError, match="cancelled"):
        await run
    with pytest.raises(AgentNotFoundError):
        engine.get_agent(agent.agent_id)


@pytest.mark.anyio
async def test_shutdown_cancels_pending_demos() -> None:
    engine = AgentEngine.from_settings(replace(FAST_SETTINGS, demo_delay=60.0), generator=FixedResultGenerator())
    await engine.start()
    agent = await engine.request_agent_demo("specialized")

    await engine.shutdown()

    assert engine.pending_demos == 0
    assert not engine.monitor.running
    assert engine.get_agent(agent.agent_id).completed_tasks == 0


@pytest.mark.anyio
async def test_removing_agent_mid_stress_keeps_the_report() -> None:
    entered = 0
    all_started = asyncio.Event()
    release = asyncio.Event()

    async def gated_sleep(seconds: float) -> None:
        nonlocal entered
        entered += 1
        if entered == 3:
            all_started.set()
        await release.wait()

    engine = engine_with_sleep(gated_sleep)
    stress = asyncio.create_task(engine.run_stress_test(agent_count=3, task_count=6, concurrency_limit=3))
    await asyncio.wait_for(all_started.wait(), timeout=5)

    victim = engine.list_agents()[0]
    await engine.remove_agent(victim.agent_id)
    release.set()
    report = await asyncio.wait_for(stress, timeout=5)

    assert report.tasks_completed + len(report.errors) == 6
    assert report.tasks_completed == 4
    assert {e["agentId"] for e in report.errors} == {victim.agent_id}
    assert {e["code"] for e in report.errors} <= {"ENG_1001", "ENG_2001"}
    assert engine.get_metrics_snapshot()["errorCount"] == 2
    assert engine.orchestrator.active_runs == 0
