"""FastAPI entry-point exposing the agent engine."""
from __future__ import annotations

import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from agent_engine.api.metrics import router as metrics_router
from agent_engine.api.routes import router as agents_router
from agent_engine.api.sessions import router as sessions_router
from agent_engine.config import config
from agent_engine.engine import AgentEngine
from agent_engine.logging_config import setup_logging
from agent_engine.runtime import get_engine


def resolve_engine(app: FastAPI) -> AgentEngine:
    """Engine used by the app, honouring dependency overrides."""
    provider = app.dependency_overrides.get(get_engine, get_engine)
    return provider()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifecycle manager for FastAPI application."""
    setup_logging(config.log_level, config.log_dir)
    engine = resolve_engine(app)
    # Startup: begin memory sampling
    await engine.start()
    yield
    # Shutdown: cancel demos and in-flight runs
    await engine.shutdown()


app = FastAPI(title="Agent Engine", lifespan=lifespan)
app.include_router(agents_router)
app.include_router(metrics_router)
app.include_router(sessions_router)


@app.middleware("http")
async def record_request_metrics(request: Request, call_next):
    started = time.perf_counter()
    status_code = 500
    try:
        response = await call_next(request)
        status_code = response.status_code
        return response
    finally:
        latency_ms = (time.perf_counter() - started) * 1000.0
        resolve_engine(request.app).monitor.record_request(
            request.method, request.url.path, status_code, latency_ms
        )


@app.get("/health")
async def health() -> dict:
    return {"status": "ok"}
