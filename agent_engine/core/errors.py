"""Error types raised by the engine.

Each error carries a machine-readable ``code`` used in API responses and
structured logs.
"""
from __future__ import annotations

from typing import Any, Dict, Optional


class EngineError(Exception):
    """Base class for engine errors."""

    code = "ENG_0000"

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "error": str(self)}


class AgentNotFoundError(EngineError):
    """Agent id does not resolve to a registered agent."""

    code = "ENG_1001"

    def __init__(self, agent_id: str) -> None:
        super().__init__(f"Agent not found: {agent_id}")
        self.agent_id = agent_id


class AgentBusyError(EngineError):
    """Agent already has an active run."""

    code = "ENG_1002"

    def __init__(self, agent_id: str) -> None:
        super().__init__(f"Agent {agent_id} is already working on a task")
        self.agent_id = agent_id


class AdmissionRejectedError(EngineError):
    """Orchestrator is at its active run limit."""

    code = "ENG_1003"

    def __init__(self, limit: int) -> None:
        super().__init__(f"Too many active runs (limit {limit})")
        self.limit = limit


class TaskExecutionError(EngineError):
    """A step failed while executing a task."""

    code = "ENG_2001"

    def __init__(
        self,
        message: str,
        *,
        agent_id: Optional[str] = None,
        step_name: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.agent_id = agent_id
        self.step_name = step_name
