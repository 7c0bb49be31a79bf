"""Application runtime composition helpers."""
from __future__ import annotations

from functools import lru_cache

from agent_engine.config import config
from agent_engine.engine import AgentEngine


@lru_cache
def get_engine() -> AgentEngine:
    """Engine shared by the HTTP application; tests override this dependency."""
    return AgentEngine.from_settings(config.engine)
