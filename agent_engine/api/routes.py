"""HTTP API exposing agent management and task execution."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from agent_engine.core.errors import (
    AdmissionRejectedError,
    AgentBusyError,
    AgentNotFoundError,
    TaskExecutionError,
)
from agent_engine.core.models import AgentRecord, Task
from agent_engine.engine import AgentEngine
from agent_engine.runtime import get_engine

router = APIRouter(prefix="/api", tags=["agents"])


class AgentCreateRequest(BaseModel):
    type: str = Field(..., description="Agent type (autonomous, collaborative, specialized, multimodal)")
    config: Dict[str, Any] = Field(default_factory=dict)


class TaskRequest(BaseModel):
    type: str = Field(..., description="Task type selecting the step plan")
    description: str = ""
    complexity: str = "medium"

    def to_task(self) -> Task:
        return Task(type=self.type, description=self.description, complexity=self.complexity)


class ExecuteRequest(BaseModel):
    task: TaskRequest


class AgentResponse(BaseModel):
    id: str
    type: str
    config: Dict[str, Any]
    status: str
    capabilities: List[str]
    createdAt: datetime
    completedTasks: int
    activeTask: Optional[Dict[str, Any]] = None

    @classmethod
    def from_record(cls, agent: AgentRecord) -> "AgentResponse":
        return cls(**agent.to_dict())


class AgentEnvelope(BaseModel):
    success: bool = True
    agent: AgentResponse


class AgentListResponse(BaseModel):
    agents: List[AgentResponse]


class ExecuteResponse(BaseModel):
    success: bool
    results: List[Dict[str, Any]]
    agent: AgentResponse


def _not_found(exc: AgentNotFoundError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=exc.to_dict())


@router.get("/agents", response_model=AgentListResponse)
async def list_agents(engine: AgentEngine = Depends(get_engine)) -> AgentListResponse:
    return AgentListResponse(agents=[AgentResponse.from_record(agent) for agent in engine.list_agents()])


@router.post("/agents", response_model=AgentEnvelope, status_code=status.HTTP_201_CREATED)
async def create_agent(
    request: AgentCreateRequest,
    engine: AgentEngine = Depends(get_engine),
) -> AgentEnvelope:
    agent = await engine.create_agent(request.type, request.config)
    return AgentEnvelope(agent=AgentResponse.from_record(agent))


@router.get("/agents/{agent_id}", response_model=AgentResponse)
async def get_agent(agent_id: str, engine: AgentEngine = Depends(get_engine)) -> AgentResponse:
    try:
        return AgentResponse.from_record(engine.get_agent(agent_id))
    except AgentNotFoundError as exc:
        raise _not_found(exc) from exc


@router.delete("/agents/{agent_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_agent(agent_id: str, engine: AgentEngine = Depends(get_engine)) -> None:
    try:
        await engine.remove_agent(agent_id)
    except AgentNotFoundError as exc:
        raise _not_found(exc) from exc


@router.post("/agents/{agent_id}/execute", response_model=ExecuteResponse)
async def execute_task(
    agent_id: str,
    request: ExecuteRequest,
    engine: AgentEngine = Depends(get_engine),
) -> ExecuteResponse:
    try:
        result = await engine.execute_task(agent_id, request.task.to_task())
    except AgentNotFoundError as exc:
        raise _not_found(exc) from exc
    except AgentBusyError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=exc.to_dict()) from exc
    except AdmissionRejectedError as exc:
        raise HTTPException(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail=exc.to_dict()) from exc
    except TaskExecutionError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=exc.to_dict()) from exc
    return ExecuteResponse(
        success=result.success,
        results=result.results,
        agent=AgentResponse.from_record(result.agent),
    )


@router.get("/capabilities")
async def capabilities(engine: AgentEngine = Depends(get_engine)) -> Dict[str, Any]:
    return {"agentTypes": engine.describe_agent_types()}
