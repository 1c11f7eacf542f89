"""
Shared pytest fixtures for jobspine tests.

This module provides:
- In-memory SQLite connections with the ledger / lock schemas
- Deterministic clocks for runner timing and lock expiry
- Lock stores (healthy and unreachable)
- Settings and structlog isolation between tests
"""

from __future__ import annotations

import sqlite3
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any, Generator

import pytest
import structlog

from jobspine.core.errors import LockStoreUnavailableError
from jobspine.core.settings import reset_settings
from jobspine.execution.ledger import ExecutionLedger
from jobspine.locks.client import LockClient
from jobspine.locks.memory import InMemoryLockStore


# =============================================================================
# Test Markers Configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Mark every test without an explicit marker as a unit test."""
    for item in items:
        markers = {mark.name for mark in item.iter_markers()}
        if not markers.intersection({"unit", "integration"}):
            item.add_marker(pytest.mark.unit)


# =============================================================================
# Isolation
# =============================================================================


@pytest.fixture(autouse=True)
def _isolate_global_state(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Generator[None, None, None]:
    """Keep settings and structlog configuration from leaking between tests."""
    monkeypatch.setenv("JOBSPINE_DATABASE_PATH", str(tmp_path / "jobspine.db"))
    reset_settings()
    yield
    reset_settings()
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()


# =============================================================================
# Clocks
# =============================================================================


class FakeClock:
    """Manually advanced wall clock returning aware datetimes."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2025, 1, 15, 2, 0, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class FakeMonotonic:
    """Manually advanced monotonic clock returning float seconds."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def monotonic() -> FakeMonotonic:
    return FakeMonotonic()


# =============================================================================
# Storage
# =============================================================================


@pytest.fixture
def conn() -> Generator[sqlite3.Connection, None, None]:
    """In-memory SQLite usable from the TestClient worker threads."""
    conn = sqlite3.connect(":memory:", check_same_thread=False)
    yield conn
    conn.close()


@pytest.fixture
def ledger(conn: sqlite3.Connection) -> ExecutionLedger:
    ledger = ExecutionLedger(conn)
    ledger.initialize()
    return ledger


# =============================================================================
# Locks
# =============================================================================


class UnreachableLockStore:
    """Lock store whose every call fails as if the network were down."""

    name = "unreachable"

    def __init__(self) -> None:
        self.calls: list[str] = []

    def _fail(self, op: str, key: str) -> Any:
        self.calls.append(op)
        raise LockStoreUnavailableError(f"connection refused during {op}").with_context(lock_key=key)

    def set_if_absent(self, key: str, holder: str, ttl_seconds: float) -> bool:
        return self._fail("set_if_absent", key)

    def delete_if_holder(self, key: str, holder: str) -> bool:
        return self._fail("delete_if_holder", key)

    def get_holder(self, key: str) -> str | None:
        return self._fail("get_holder", key)


@pytest.fixture
def memory_store(monotonic: FakeMonotonic) -> InMemoryLockStore:
    return InMemoryLockStore(clock=monotonic)


@pytest.fixture
def lock_client(memory_store: InMemoryLockStore) -> LockClient:
    return LockClient(memory_store, instance_id="instance-a")


@pytest.fixture
def unreachable_store() -> UnreachableLockStore:
    return UnreachableLockStore()
