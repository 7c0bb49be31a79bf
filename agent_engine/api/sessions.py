"""Session event stream over WebSocket."""
from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from fastapi.websockets import WebSocketState

from agent_engine.core.broadcaster import Subscription
from agent_engine.engine import AgentEngine
from agent_engine.logging_config import get_structured_logger, session_id_var
from agent_engine.runtime import get_engine

logger = get_structured_logger(__name__)

router = APIRouter(prefix="/sessions", tags=["sessions"])


def _frame(event: str, data: Dict[str, Any]) -> Dict[str, Any]:
    return {"event": event, "data": data}


@router.websocket("/{session_id}/events")
async def session_events(
    websocket: WebSocket,
    session_id: str,
    engine: AgentEngine = Depends(get_engine),
) -> None:
    """Stream engine events to one session.

    The first frame is the ``session_joined`` acknowledgement. Afterwards
    every published event is forwarded as ``{"event": name, "data": payload}``.

    Client can send:
    - {"type": "ping"}: answered with ``pong``
    - {"type": "request_agent_demo", "agentType": ..., "config": {...},
      "demoTask": ..., "description": ..., "complexity": ...}: answered with
      ``demo_agent_created``, or ``demo_error`` if the agent cannot be created
    """
    await websocket.accept()
    token = session_id_var.set(session_id)
    logger.structured(logging.INFO, "Client connected")
    try:
        async with engine.subscribe(session_id) as stream:
            forward = asyncio.create_task(_forward_events(websocket, stream))
            receive = asyncio.create_task(_receive_commands(websocket, engine))
            done, pending = await asyncio.wait({forward, receive}, return_when=asyncio.FIRST_COMPLETED)
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
            for task in done:
                exc = task.exception()
                if exc is not None and not isinstance(exc, WebSocketDisconnect):
                    logger.structured(logging.ERROR, "Session stream failed", {"error": str(exc)})
    finally:
        if websocket.application_state is WebSocketState.CONNECTED and (
            websocket.client_state is WebSocketState.CONNECTED
        ):
            await websocket.close()
        logger.structured(logging.INFO, "Client disconnected")
        session_id_var.reset(token)


async def _forward_events(websocket: WebSocket, stream: Subscription) -> None:
    async for event in stream:
        await websocket.send_json(_frame(event.name, event.to_dict()))


async def _receive_commands(websocket: WebSocket, engine: AgentEngine) -> None:
    while True:
        raw = await websocket.receive_text()
        try:
            message = json.loads(raw)
        except ValueError:
            await websocket.send_json(_frame("error", {"error": "Messages must be JSON"}))
            continue
        command = message.get("type") if isinstance(message, dict) else None

        if command == "ping":
            await websocket.send_json(_frame("pong", {}))
        elif command == "request_agent_demo":
            await _request_agent_demo(websocket, engine, message)
        else:
            await websocket.send_json(_frame("error", {"error": f"Unknown command: {command}"}))


async def _request_agent_demo(websocket: WebSocket, engine: AgentEngine, message: Dict[str, Any]) -> None:
    config = message.get("config") or {}
    if not isinstance(config, dict):
        await websocket.send_json(_frame("demo_error", {"error": "config must be an object"}))
        return
    try:
        agent = await engine.request_agent_demo(
            message.get("agentType", "autonomous"),
            config,
            demo_task=message.get("demoTask"),
            description=message.get("description"),
            complexity=message.get("complexity"),
        )
    except Exception as exc:
        logger.structured(logging.WARNING, "Demo request failed", {"error": str(exc)})
        await websocket.send_json(_frame("demo_error", {"error": str(exc)}))
        return
    await websocket.send_json(_frame("demo_agent_created", agent.to_dict()))
