"""
Structured JSON logging for the agent engine.

Every record is emitted as a single-line JSON object. Records produced while
an orchestration run is in progress carry the id of the agent driving it.
"""
from __future__ import annotations

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

agent_id_var: ContextVar[str] = ContextVar("agent_id", default="")
session_id_var: ContextVar[str] = ContextVar("session_id", default="")


class StructuredJsonFormatter(logging.Formatter):
    """JSON formatter attaching run context and structured extra data."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "function": record.funcName,
            "message": record.getMessage(),
        }

        agent_id = agent_id_var.get("")
        if agent_id:
            entry["agent_id"] = agent_id

        session_id = session_id_var.get("")
        if session_id:
            entry["session_id"] = session_id

        extra_data = getattr(record, "extra_data", None)
        if isinstance(extra_data, dict):
            entry["data"] = extra_data

        if record.exc_info and record.exc_info[1] is not None:
            entry["exception"] = {
                "type": type(record.exc_info[1]).__name__,
                "message": str(record.exc_info[1]),
            }

        return json.dumps(entry, default=str)


class StructuredLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that forwards structured data to the formatter."""

    def process(self, msg: str, kwargs: Dict[str, Any]) -> Tuple[str, Dict[str, Any]]:
        extra = kwargs.get("extra", {})
        if self.extra:
            extra.update(self.extra)
        kwargs["extra"] = extra
        return msg, kwargs

    def structured(
        self, level: int, msg: str, data: Optional[Dict[str, Any]] = None, **kwargs: Any
    ) -> None:
        """Log ``msg`` at ``level`` with ``data`` attached to the record."""
        if data:
            kwargs.setdefault("extra", {})["extra_data"] = data
        self.log(level, msg, **kwargs)


def get_structured_logger(name: str) -> StructuredLoggerAdapter:
    """Return a structured logger for a module (typically ``__name__``)."""
    return StructuredLoggerAdapter(logging.getLogger(name), {})


def setup_logging(level: str = "INFO", log_dir: Optional[str] = None, log_file: str = "engine.log") -> None:
    """Configure JSON logging on the root logger.

    Call once at application start-up. When ``log_dir`` is given, records are
    also written to ``<log_dir>/<log_file>``.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    formatter = StructuredJsonFormatter()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)

    root = logging.getLogger()
    root.setLevel(numeric_level)
    root.handlers.clear()
    root.addHandler(console_handler)

    if log_dir:
        resolved_dir = Path(log_dir)
        resolved_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(resolved_dir / log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    logging.getLogger("asyncio").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
