"""CLI demonstration of an agent running a task with live progress."""
from __future__ import annotations

import argparse
import asyncio
from typing import List, Optional

from agent_engine.config import EngineSettings
from agent_engine.core.models import CompletionEvent, ProgressEvent, Task
from agent_engine.engine import AgentEngine
from agent_engine.logging_config import setup_logging


async def main(agent_type: str, task_type: str, fast: bool) -> None:
    settings = EngineSettings(step_latency_min_ms=50, step_latency_max_ms=150) if fast else EngineSettings()
    engine = AgentEngine.from_settings(settings)
    await engine.start()

    agent = await engine.create_agent(agent_type, {"source": "demo"})
    print(f"Created agent {agent.agent_id} ({agent.type_name}) with {len(agent.capabilities)} capabilities")

    async with engine.subscribe("demo-session") as stream:
        run = asyncio.create_task(engine.execute_task(agent.agent_id, Task(type=task_type)))
        async for event in stream:
            if isinstance(event, ProgressEvent):
                print(f"[{event.step}/{event.total_steps}] {event.current_step}: {event.result['type']}")
            elif isinstance(event, CompletionEvent):
                print(f"Task completed; agent has {event.agent.completed_tasks} completed task(s)")
                break
            else:
                print(f"{event.name}: {event.to_dict()}")
        await run

    print(f"Metrics: {engine.get_metrics_snapshot()['agentCounts']}")
    await engine.shutdown()


def run(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Run a simulated agent task")
    parser.add_argument("--agent-type", default="autonomous")
    parser.add_argument("--task-type", default="create_component")
    parser.add_argument("--fast", action="store_true", help="Use millisecond step latencies")
    args = parser.parse_args(argv)
    setup_logging("WARNING")
    asyncio.run(main(args.agent_type, args.task_type, args.fast))


if __name__ == "__main__":
    run()
