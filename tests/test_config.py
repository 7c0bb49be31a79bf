"""Tests for environment configuration and structured logging."""
from __future__ import annotations

import json
import logging

from agent_engine.config import Config, EngineSettings
from agent_engine.logging_config import StructuredJsonFormatter, agent_id_var, get_structured_logger


def test_defaults_when_environment_is_empty(monkeypatch) -> None:
    for name in ("ENGINE_STEP_LATENCY_MIN_MS", "ENGINE_DEMO_DELAY", "LOG_LEVEL", "LOG_DIR"):
        monkeypatch.delenv(name, raising=False)

    loaded = Config.from_env()

    assert loaded.engine == EngineSettings()
    assert loaded.log_level == "INFO"
    assert loaded.log_dir is None


def test_environment_overrides(monkeypatch) -> None:
    monkeypatch.setenv("ENGINE_STEP_LATENCY_MIN_MS", "5")
    monkeypatch.setenv("ENGINE_STEP_LATENCY_MAX_MS", "10")
    monkeypatch.setenv("ENGINE_MAX_ACTIVE_RUNS", "4")
    monkeypatch.setenv("ENGINE_DEMO_DELAY", "0")
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")

    loaded = Config.from_env()

    assert loaded.engine.step_latency_min_ms == 5.0
    assert loaded.engine.step_latency_max_ms == 10.0
    assert loaded.engine.max_active_runs == 4
    assert loaded.engine.demo_delay == 0.0
    assert loaded.log_level == "DEBUG"


def test_formatter_emits_json_with_agent_context() -> None:
    formatter = StructuredJsonFormatter()
    record = logging.LogRecord("agent_engine.test", logging.INFO, __file__, 1, "Run started", None, None)
    record.extra_data = {"total_steps": 5}

    token = agent_id_var.set("agent_1_abc")
    try:
        entry = json.loads(formatter.format(record))
    finally:
        agent_id_var.reset(token)

    assert entry["message"] == "Run started"
    assert entry["level"] == "INFO"
    assert entry["agent_id"] == "agent_1_abc"
    assert entry["data"] == {"total_steps": 5}
    assert "session_id" not in entry


def test_structured_logger_attaches_data(caplog) -> None:
    logger = get_structured_logger("agent_engine.test")

    with caplog.at_level(logging.INFO, logger="agent_engine.test"):
        logger.structured(logging.INFO, "Agent created", {"agent_id": "agent_1"})

    assert caplog.records[-1].extra_data == {"agent_id": "agent_1"}
