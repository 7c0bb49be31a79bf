"""Core data models shared across engine components."""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union


class AgentType(str, Enum):
    """Known agent flavours; each adds its own capabilities to the base set."""

    AUTONOMOUS = "autonomous"
    COLLABORATIVE = "collaborative"
    SPECIALIZED = "specialized"
    MULTIMODAL = "multimodal"


class AgentStatus(str, Enum):
    """Lifecycle states of an agent."""

    INITIALIZING = "initializing"
    IDLE = "idle"
    WORKING = "working"


class StepKind(str, Enum):
    """Step categories; the kind selects the shape of the step result."""

    ANALYSIS = "analysis"
    PLANNING = "planning"
    CODING = "coding"
    TESTING = "testing"
    INTEGRATION = "integration"
    SETUP = "setup"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class Task:
    """Unit of requested work; ``type`` selects the step plan."""

    type: str
    description: str = ""
    complexity: str = "medium"

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "description": self.description, "complexity": self.complexity}


@dataclass(slots=True)
class AgentRecord:
    """Registry entry for one simulated agent."""

    agent_id: str
    agent_type: Union[AgentType, str]
    capabilities: Tuple[str, ...]
    config: Dict[str, Any] = field(default_factory=dict)
    status: AgentStatus = AgentStatus.INITIALIZING
    created_at: datetime = field(default_factory=utcnow)
    completed_tasks: int = 0
    active_task: Optional[Task] = None

    @property
    def type_name(self) -> str:
        if isinstance(self.agent_type, AgentType):
            return self.agent_type.value
        return self.agent_type

    def snapshot(self) -> AgentRecord:
        """Return a detached copy safe to hand to observers."""
        return replace(self, config=dict(self.config))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.agent_id,
            "type": self.type_name,
            "config": dict(self.config),
            "status": self.status.value,
            "capabilities": list(self.capabilities),
            "createdAt": self.created_at.isoformat(),
            "completedTasks": self.completed_tasks,
            "activeTask": self.active_task.to_dict() if self.active_task else None,
        }


@dataclass(frozen=True, slots=True)
class Step:
    """One planned unit of work inside a task."""

    index: int
    name: str
    kind: StepKind


@dataclass(frozen=True, slots=True)
class StepOutcome:
    """Recorded result of an executed step."""

    step: Step
    result: Dict[str, Any]
    latency_ms: float


@dataclass(frozen=True, slots=True)
class TaskResult:
    """Value returned by a completed orchestration run."""

    success: bool
    results: List[Dict[str, Any]]
    agent: AgentRecord

    def to_dict(self) -> Dict[str, Any]:
        return {"success": self.success, "results": list(self.results), "agent": self.agent.to_dict()}


@dataclass(frozen=True, slots=True)
class ProgressEvent:
    """Published once per executed step."""

    agent_id: str
    step: int
    total_steps: int
    current_step: str
    result: Dict[str, Any]

    name = "agent_progress"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "agentId": self.agent_id,
            "step": self.step,
            "totalSteps": self.total_steps,
            "currentStep": self.current_step,
            "result": self.result,
        }


@dataclass(frozen=True, slots=True)
class CompletionEvent:
    """Published once when a run finishes all of its steps."""

    agent_id: str
    results: List[Dict[str, Any]]
    agent: AgentRecord

    name = "task_completed"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "agentId": self.agent_id,
            "result": {"success": True, "results": list(self.results), "agent": self.agent.to_dict()},
        }


@dataclass(frozen=True, slots=True)
class AgentCreatedEvent:
    agent: AgentRecord

    name = "agent_created"

    def to_dict(self) -> Dict[str, Any]:
        return self.agent.to_dict()


@dataclass(frozen=True, slots=True)
class SessionJoinedEvent:
    """Acknowledgement sent to a session when it joins the broadcaster."""

    session_id: str

    name = "session_joined"

    def to_dict(self) -> Dict[str, Any]:
        return {"sessionId": self.session_id}


Event = Union[ProgressEvent, CompletionEvent, AgentCreatedEvent, SessionJoinedEvent]


@dataclass(frozen=True, slots=True)
class MetricSample:
    timestamp: float
    value: float

    def to_dict(self) -> Dict[str, float]:
        return {"timestamp": self.timestamp, "value": self.value}


@dataclass(frozen=True, slots=True)
class RequestRecord:
    """One inbound request observed by the performance monitor."""

    timestamp: float
    method: str
    path: str
    status: int
    latency_ms: float
