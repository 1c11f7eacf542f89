"""Execution ledger - durable history of job executions.

The ExecutionLedger records one row per job invocation in the
``job_executions`` table. Rows are append-only historical facts: once a row
reaches a terminal status it is never updated again.

Architecture:

    .. code-block:: text

        ExecutionLedger
        ┌───────────────────────────────────────────────────────────┐
        │  create_execution()   → PENDING   (trigger time)          │
        │  mark_running()       → RUNNING   (runner starts fn)      │
        │  complete()           → SUCCESS | FAILED                  │
        │  get_execution() / list_executions()  (polling reads)     │
        ├───────────────────────────────────────────────────────────┤
        │  Transitions are conditional UPDATEs on the current       │
        │  status, so two writers can never both move a row out of  │
        │  the same state, and terminal rows reject all updates.    │
        └───────────────────────────────────────────────────────────┘

Example:
    >>> import sqlite3
    >>> ledger = ExecutionLedger(sqlite3.connect(":memory:"))
    >>> ledger.initialize()
    >>> row = ledger.create_execution("nightly-sync", triggered_by=SYSTEM_TRIGGER)
    >>> ledger.mark_running(row.id)
"""

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from jobspine.core.errors import InvalidTransitionError, LedgerError
from jobspine.core.protocols import Connection

from .result import JobResult, JobStatus

SYSTEM_TRIGGER = "system"
"""``triggered_by`` sentinel for cron/scheduler initiated executions."""

SCHEMA = """
CREATE TABLE IF NOT EXISTS job_executions (
    id TEXT PRIMARY KEY,
    job_name TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'PENDING',
    triggered_by TEXT NOT NULL DEFAULT 'system',
    created_at TEXT NOT NULL,
    started_at TEXT,
    completed_at TEXT,
    result TEXT
)
"""

INDEXES = (
    "CREATE INDEX IF NOT EXISTS idx_job_executions_job_name ON job_executions (job_name, created_at)",
    "CREATE INDEX IF NOT EXISTS idx_job_executions_status ON job_executions (status)",
)

_COLUMNS = "id, job_name, status, triggered_by, created_at, started_at, completed_at, result"


def utcnow() -> datetime:
    """Return timezone-aware UTC datetime."""
    return datetime.now(UTC)


class LedgerStatus(str, Enum):
    """Persisted status of a ledger row."""

    PENDING = "PENDING"
    RUNNING = "RUNNING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in (LedgerStatus.SUCCESS, LedgerStatus.FAILED)

    @classmethod
    def from_job_status(cls, status: JobStatus) -> LedgerStatus:
        return cls(status.value.upper())


LEDGER_VALID_TRANSITIONS: dict[LedgerStatus, frozenset[LedgerStatus]] = {
    LedgerStatus.PENDING: frozenset({LedgerStatus.RUNNING}),
    LedgerStatus.RUNNING: frozenset({LedgerStatus.SUCCESS, LedgerStatus.FAILED}),
    LedgerStatus.SUCCESS: frozenset(),
    LedgerStatus.FAILED: frozenset(),
}


@dataclass
class JobExecution:
    """One row of ``job_executions``."""

    id: str
    job_name: str
    status: LedgerStatus
    triggered_by: str
    created_at: datetime
    started_at: datetime | None = None
    completed_at: datetime | None = None
    result: dict[str, Any] | None = None

    @classmethod
    def create(cls, job_name: str, triggered_by: str = SYSTEM_TRIGGER) -> JobExecution:
        if not job_name:
            raise ValueError("job_name must be non-empty")
        return cls(
            id=str(uuid.uuid4()),
            job_name=job_name,
            status=LedgerStatus.PENDING,
            triggered_by=triggered_by or SYSTEM_TRIGGER,
            created_at=utcnow(),
        )

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @property
    def duration_ms(self) -> float | None:
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds() * 1000
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "job_name": self.job_name,
            "status": self.status.value,
            "triggered_by": self.triggered_by,
            "created_at": self.created_at.isoformat(),
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_ms": self.duration_ms,
            "result": self.result,
        }


class ExecutionLedger:
    """Reads and writes ``job_executions`` rows.

    Works with any DB-API connection using ``?`` placeholders
    (``sqlite3.Connection`` out of the box).
    """

    def __init__(self, conn: Connection):
        self._conn = conn

    def initialize(self) -> None:
        """Create the ``job_executions`` table and indexes if missing."""
        self._conn.execute(SCHEMA)
        for statement in INDEXES:
            self._conn.execute(statement)
        self._conn.commit()

    # =========================================================================
    # WRITES
    # =========================================================================

    def create_execution(self, job_name: str, triggered_by: str = SYSTEM_TRIGGER) -> JobExecution:
        """Insert a PENDING row at trigger time."""
        execution = JobExecution.create(job_name, triggered_by)
        self._conn.execute(
            f"INSERT INTO job_executions ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
            (
                execution.id,
                execution.job_name,
                execution.status.value,
                execution.triggered_by,
                execution.created_at.isoformat(),
                None,
                None,
                None,
            ),
        )
        self._conn.commit()
        return execution

    def mark_running(self, execution_id: str, started_at: datetime | None = None) -> None:
        """Move a PENDING row to RUNNING."""
        started = started_at or utcnow()
        self._transition(
            execution_id,
            LedgerStatus.RUNNING,
            "started_at = ?",
            (started.isoformat(),),
        )

    def complete(self, execution_id: str, result: JobResult[Any]) -> None:
        """Record the terminal status of a RUNNING row from a JobResult."""
        if not result.is_terminal:
            raise ValueError(f"cannot complete execution with non-terminal result {result.status.value!r}")
        payload: dict[str, Any]
        if result.error is not None:
            payload = {"error": result.error.to_dict()}
        else:
            payload = {"output": result.output}
        completed_at = result.timing.completed_at or utcnow()
        self._transition(
            execution_id,
            LedgerStatus.from_job_status(result.status),
            "completed_at = ?, result = ?",
            (completed_at.isoformat(), json.dumps(payload, default=str)),
        )

    def _transition(
        self,
        execution_id: str,
        target: LedgerStatus,
        assignments: str,
        values: tuple[Any, ...],
    ) -> None:
        current = self.get_execution(execution_id)
        if current is None:
            raise LedgerError(f"Execution not found: {execution_id}").with_context(execution_id=execution_id)
        if target not in LEDGER_VALID_TRANSITIONS[current.status]:
            raise InvalidTransitionError(current.status.value, target.value, "LedgerStatus")

        cursor = self._conn.execute(
            f"UPDATE job_executions SET status = ?, {assignments} WHERE id = ? AND status = ?",
            (target.value, *values, execution_id, current.status.value),
        )
        self._conn.commit()
        if cursor.rowcount == 0:
            # Another writer moved the row between our read and the update.
            latest = self.get_execution(execution_id)
            latest_status = latest.status.value if latest else "missing"
            raise InvalidTransitionError(latest_status, target.value, "LedgerStatus")

    # =========================================================================
    # READS
    # =========================================================================

    def get_execution(self, execution_id: str) -> JobExecution | None:
        cursor = self._conn.execute(
            f"SELECT {_COLUMNS} FROM job_executions WHERE id = ?",
            (execution_id,),
        )
        row = cursor.fetchone()
        if row is None:
            return None
        return self._row_to_execution(row)

    def list_executions(
        self,
        job_name: str | None = None,
        status: LedgerStatus | None = None,
        limit: int = 100,
    ) -> list[JobExecution]:
        """List executions, newest first, with optional filters."""
        query = f"SELECT {_COLUMNS} FROM job_executions WHERE 1=1"
        params: list[Any] = []

        if job_name:
            query += " AND job_name = ?"
            params.append(job_name)
        if status:
            query += " AND status = ?"
            params.append(status.value)

        query += " ORDER BY created_at DESC LIMIT ?"
        params.append(limit)

        cursor = self._conn.execute(query, params)
        return [self._row_to_execution(row) for row in cursor.fetchall()]

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _row_to_execution(self, row: tuple) -> JobExecution:
        return JobExecution(
            id=row[0],
            job_name=row[1],
            status=LedgerStatus(row[2]),
            triggered_by=row[3],
            created_at=datetime.fromisoformat(row[4]),
            started_at=datetime.fromisoformat(row[5]) if row[5] else None,
            completed_at=datetime.fromisoformat(row[6]) if row[6] else None,
            result=json.loads(row[7]) if row[7] else None,
        )


__all__ = [
    "ExecutionLedger",
    "JobExecution",
    "LEDGER_VALID_TRANSITIONS",
    "LedgerStatus",
    "SCHEMA",
    "SYSTEM_TRIGGER",
]
