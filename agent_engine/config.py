"""Configuration management for the agent engine."""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class EngineSettings:
    """Tunables for step simulation, metrics buffers and admission control."""

    step_latency_min_ms: float = 1000.0
    step_latency_max_ms: float = 3000.0
    memory_sample_interval: float = 30.0
    request_log_size: int = 1000
    metrics_buffer_size: int = 100
    subscriber_queue_size: int = 256
    max_active_runs: int = 256
    demo_delay: float = 1.0


@dataclass(frozen=True)
class Config:
    """Application configuration loaded from environment variables."""

    engine: EngineSettings = field(default_factory=EngineSettings)
    environment: str = "development"
    log_level: str = "INFO"
    log_dir: Optional[str] = None

    @classmethod
    def from_env(cls) -> Config:
        """Load configuration from environment variables."""
        engine = EngineSettings(
            step_latency_min_ms=float(os.getenv("ENGINE_STEP_LATENCY_MIN_MS", "1000")),
            step_latency_max_ms=float(os.getenv("ENGINE_STEP_LATENCY_MAX_MS", "3000")),
            memory_sample_interval=float(os.getenv("ENGINE_MEMORY_SAMPLE_INTERVAL", "30")),
            request_log_size=int(os.getenv("ENGINE_REQUEST_LOG_SIZE", "1000")),
            metrics_buffer_size=int(os.getenv("ENGINE_METRICS_BUFFER_SIZE", "100")),
            subscriber_queue_size=int(os.getenv("ENGINE_SUBSCRIBER_QUEUE_SIZE", "256")),
            max_active_runs=int(os.getenv("ENGINE_MAX_ACTIVE_RUNS", "256")),
            demo_delay=float(os.getenv("ENGINE_DEMO_DELAY", "1.0")),
        )

        return cls(
            engine=engine,
            environment=os.getenv("ENVIRONMENT", "development"),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_dir=os.getenv("LOG_DIR") or None,
        )


# Global config instance
config = Config.from_env()
