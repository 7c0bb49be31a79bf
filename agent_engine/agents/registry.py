"""Registry owning the live agent records."""
from __future__ import annotations

import asyncio
import logging
import random
import string
import time
from typing import Any, Dict, Iterable, List, Optional, Union

from agent_engine.core.errors import AgentBusyError, AgentNotFoundError
from agent_engine.core.models import AgentRecord, AgentStatus, AgentType, Task
from agent_engine.logging_config import get_structured_logger

from .capabilities import capabilities_for, resolve_agent_type

logger = get_structured_logger(__name__)

_ID_ALPHABET = string.ascii_lowercase + string.digits


def generate_agent_id(rng: Optional[random.Random] = None) -> str:
    """Return an id of the form ``agent_<epoch-ms>_<9 base36 chars>``."""
    source = rng or random
    suffix = "".join(source.choice(_ID_ALPHABET) for _ in range(9))
    return f"agent_{int(time.time() * 1000)}_{suffix}"


class AgentRegistry:
    """Create, look up and mutate agents.

    Status and counter changes go through the ``begin_task``/``finish_task``/
    ``abort_task`` helpers, which hold the registry lock so concurrent runs
    never lose updates.
    """

    def __init__(self) -> None:
        self._agents: Dict[str, AgentRecord] = {}
        self._lock = asyncio.Lock()

    async def create(
        self,
        agent_type: Union[AgentType, str],
        config: Optional[Dict[str, Any]] = None,
    ) -> AgentRecord:
        resolved = resolve_agent_type(agent_type)
        async with self._lock:
            agent_id = generate_agent_id()
            while agent_id in self._agents:
                agent_id = generate_agent_id()
            agent = AgentRecord(
                agent_id=agent_id,
                agent_type=resolved,
                capabilities=capabilities_for(resolved),
                config=dict(config or {}),
            )
            self._agents[agent_id] = agent
        logger.structured(
            logging.INFO,
            "Agent created",
            {"agent_id": agent_id, "agent_type": agent.type_name},
        )
        return agent.snapshot()

    def get(self, agent_id: str) -> AgentRecord:
        return self._resolve(agent_id).snapshot()

    def _resolve(self, agent_id: str) -> AgentRecord:
        agent = self._agents.get(agent_id)
        if agent is None:
            raise AgentNotFoundError(agent_id)
        return agent

    def list(self) -> List[AgentRecord]:
        return [agent.snapshot() for agent in self._agents.values()]

    async def remove(self, agent_id: str) -> AgentRecord:
        async with self._lock:
            agent = self._agents.pop(agent_id, None)
        if agent is None:
            raise AgentNotFoundError(agent_id)
        logger.structured(logging.INFO, "Agent removed", {"agent_id": agent_id})
        return agent

    async def begin_task(self, agent_id: str, task: Task) -> AgentRecord:
        """Mark the agent as working on ``task``; rejects agents already working."""
        async with self._lock:
            agent = self._resolve(agent_id)
            if agent.status is AgentStatus.WORKING:
                raise AgentBusyError(agent_id)
            agent.status = AgentStatus.WORKING
            agent.active_task = task
            return agent.snapshot()

    async def finish_task(self, agent_id: str) -> AgentRecord:
        async with self._lock:
            agent = self._resolve(agent_id)
            agent.status = AgentStatus.IDLE
            agent.active_task = None
            agent.completed_tasks += 1
            return agent.snapshot()

    async def abort_task(self, agent_id: str) -> Optional[AgentRecord]:
        """Return an agent to idle without counting the task as completed."""
        async with self._lock:
            agent = self._agents.get(agent_id)
            if agent is None:
                return None
            agent.status = AgentStatus.IDLE
            agent.active_task = None
            return agent.snapshot()

    def counts(self) -> Dict[str, int]:
        counts = {"total": len(self._agents)}
        for status in AgentStatus:
            counts[status.value] = 0
        for agent in self._agents.values():
            counts[agent.status.value] += 1
        return counts

    def __contains__(self, agent_id: object) -> bool:
        return agent_id in self._agents

    def __len__(self) -> int:
        return len(self._agents)

    def ids(self) -> Iterable[str]:
        return list(self._agents.keys())
