"""Metrics and stress-test endpoints."""
from __future__ import annotations

from typing import Any, Dict, List

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from agent_engine.engine import AgentEngine
from agent_engine.runtime import get_engine

router = APIRouter(prefix="/api", tags=["metrics"])


class StressRequest(BaseModel):
    agentCount: int = Field(5, ge=1, le=500)
    taskCount: int = Field(10, ge=0, le=5000)
    concurrencyLimit: int = Field(3, ge=1, le=500)


class StressResponse(BaseModel):
    agentsCreated: int
    tasksRequested: int
    tasksCompleted: int
    errors: List[Dict[str, Any]]
    durationMs: float
    throughput: float
    successRate: float
    avgTaskLatencyMs: float
    peakConcurrency: int


@router.get("/metrics")
async def metrics_snapshot(engine: AgentEngine = Depends(get_engine)) -> Dict[str, Any]:
    return engine.get_metrics_snapshot()


@router.get("/metrics/health")
async def metrics_health(engine: AgentEngine = Depends(get_engine)) -> Dict[str, Any]:
    return engine.monitor.health()


@router.get("/metrics/requests")
async def recent_requests(limit: int = 20, engine: AgentEngine = Depends(get_engine)) -> Dict[str, Any]:
    return {"requests": engine.monitor.recent_requests(limit)}


@router.post("/metrics/reset", status_code=status.HTTP_204_NO_CONTENT)
async def reset_metrics(engine: AgentEngine = Depends(get_engine)) -> None:
    engine.monitor.reset()


@router.post("/stress", response_model=StressResponse)
async def run_stress_test(
    request: StressRequest,
    engine: AgentEngine = Depends(get_engine),
) -> StressResponse:
    report = await engine.run_stress_test(request.agentCount, request.taskCount, request.concurrencyLimit)
    return StressResponse(**report.to_dict())
