"""
Centralized settings for jobspine.

Manifesto:
    Configuration should be explicit, validated, and environment-driven.
    One cached settings object decides which lock store backs the Lock
    Guard, where the Execution Ledger lives, and how logs and traces are
    emitted.

    - **Pydantic validation:** Type-checked at startup, not runtime
    - **Environment-driven:** Reads ``JOBSPINE_*`` env vars and ``.env`` files
    - **Sensible defaults:** In-memory lock store, local SQLite ledger

Examples:
    >>> import os
    >>> os.environ["JOBSPINE_LOCK_BACKEND"] = "redis"
    >>> os.environ["JOBSPINE_REDIS_URL"] = "redis://cache:6379/0"
    >>> settings = get_settings()
    >>> settings.lock_backend
    <LockBackend.REDIS: 'redis'>

Tags:
    settings, configuration, pydantic, environment, jobspine

Doc-Types:
    - API Reference
    - Configuration Guide
"""

from __future__ import annotations

import socket
from enum import Enum
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LockBackend(str, Enum):
    """Supported shared lock stores."""

    MEMORY = "memory"
    REDIS = "redis"
    SQL = "sql"


class JobspineSettings(BaseSettings):
    """jobspine configuration.

    All fields can be set via ``JOBSPINE_*`` environment variables (e.g.
    ``JOBSPINE_LOCK_BACKEND=redis``) or through a ``.env`` file.
    """

    model_config = SettingsConfigDict(
        env_prefix="JOBSPINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Locks ────────────────────────────────────────────────────
    lock_backend: LockBackend = Field(default=LockBackend.MEMORY)
    redis_url: str | None = Field(default=None, description="Required for the redis lock backend")
    default_lock_ttl_seconds: float = Field(default=300.0)
    instance_id: str = Field(
        default_factory=socket.gethostname,
        description="Identifies this replica in lock holder tokens",
    )

    # ── Ledger ───────────────────────────────────────────────────
    database_path: Path = Field(
        default_factory=lambda: Path.home() / ".jobspine" / "jobspine.db",
        description="SQLite file holding job_executions and job_locks",
    )

    # ── Observability ────────────────────────────────────────────
    service_name: str = "jobspine"
    log_level: str = "INFO"
    log_json: bool | None = None
    tracing_enabled: bool = False
    otlp_endpoint: str = "http://localhost:4317"

    @field_validator("default_lock_ttl_seconds")
    @classmethod
    def _positive_ttl(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("default_lock_ttl_seconds must be positive")
        return value

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level: {value}")
        return level

    @model_validator(mode="after")
    def _redis_needs_url(self) -> JobspineSettings:
        if self.lock_backend == LockBackend.REDIS and not self.redis_url:
            raise ValueError("JOBSPINE_REDIS_URL is required when lock_backend=redis")
        return self


@lru_cache(maxsize=1)
def get_settings() -> JobspineSettings:
    """Return the process-wide cached settings."""
    return JobspineSettings()


def reset_settings() -> None:
    """Drop the cached settings (tests, reconfiguration)."""
    get_settings.cache_clear()


__all__ = [
    "JobspineSettings",
    "LockBackend",
    "get_settings",
    "reset_settings",
]
