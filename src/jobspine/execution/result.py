"""Job results and the job state machine.

Defines the value objects produced by every job invocation:

- ``JobStatus``: ``pending → running → {success | failed}``
- ``JobTiming``: start/completion timestamps and the derived duration
- ``JobError``: the captured failure (message, type, traceback)
- ``JobResult``: the structured outcome of one invocation
- ``Skipped``: what a lock guard returns when it did not run the job

Valid transition graph::

    PENDING  → RUNNING
    RUNNING  → SUCCESS | FAILED
    SUCCESS  → (terminal)
    FAILED   → (terminal)

A ``JobResult`` is frozen, so a terminal result can never change after the
runner hands it out.

Tags:
    jobspine, execution, result, state-machine

Doc-Types:
    api-reference
"""

from __future__ import annotations

import traceback as tb
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Generic, TypeVar

from jobspine.core.errors import InvalidTransitionError

T = TypeVar("T")


class JobStatus(str, Enum):
    """Status of a single job invocation."""

    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES: frozenset[JobStatus] = frozenset({JobStatus.SUCCESS, JobStatus.FAILED})

VALID_TRANSITIONS: dict[JobStatus, frozenset[JobStatus]] = {
    JobStatus.PENDING: frozenset({JobStatus.RUNNING}),
    JobStatus.RUNNING: frozenset({JobStatus.SUCCESS, JobStatus.FAILED}),
    JobStatus.SUCCESS: frozenset(),  # terminal
    JobStatus.FAILED: frozenset(),  # terminal
}


def validate_transition(current: JobStatus, target: JobStatus) -> None:
    """Raise :class:`InvalidTransitionError` if *current → target* is illegal.

    Example:
        >>> validate_transition(JobStatus.RUNNING, JobStatus.SUCCESS)
        >>> validate_transition(JobStatus.SUCCESS, JobStatus.RUNNING)
        Traceback (most recent call last):
        ...
        InvalidTransitionError: Invalid JobStatus transition: success → running
    """
    if target not in VALID_TRANSITIONS.get(current, frozenset()):
        raise InvalidTransitionError(current.value, target.value, "JobStatus")


@dataclass(frozen=True)
class JobTiming:
    """When a job started and completed.

    ``duration_ms`` is derived from the two timestamps, so it always equals
    ``completed_at - started_at``.
    """

    started_at: datetime
    completed_at: datetime | None = None

    def __post_init__(self) -> None:
        if self.completed_at is not None and self.completed_at < self.started_at:
            raise ValueError("completed_at must not be earlier than started_at")

    @property
    def duration_ms(self) -> float | None:
        if self.completed_at is None:
            return None
        return (self.completed_at - self.started_at) / timedelta(milliseconds=1)

    def to_dict(self) -> dict[str, Any]:
        return {
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_ms": self.duration_ms,
        }


@dataclass(frozen=True)
class JobError:
    """A failure captured by the Job Runner."""

    message: str
    error_type: str = "Exception"
    traceback: str | None = None
    context: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_exception(cls, exc: BaseException, **context: Any) -> JobError:
        formatted = "".join(tb.format_exception(type(exc), exc, exc.__traceback__))
        return cls(
            message=str(exc) or type(exc).__name__,
            error_type=type(exc).__name__,
            traceback=formatted,
            context=context,
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"message": self.message, "error_type": self.error_type}
        if self.traceback:
            data["traceback"] = self.traceback
        if self.context:
            data["context"] = dict(self.context)
        return data


@dataclass(frozen=True)
class JobResult(Generic[T]):
    """Structured outcome of one job invocation.

    Invariants checked on construction:

    - ``name`` is non-empty
    - terminal status ⇔ ``timing.completed_at`` is set
    - ``error`` is present iff status is ``failed``
    - ``output`` is only carried by ``success`` results
    """

    name: str
    status: JobStatus
    timing: JobTiming
    output: T | None = None
    error: JobError | None = None
    execution_id: str | None = None

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("JobResult.name must be non-empty")
        completed = self.timing.completed_at is not None
        if self.status.is_terminal != completed:
            raise ValueError(
                f"status {self.status.value!r} is inconsistent with completed_at={self.timing.completed_at}"
            )
        if (self.status == JobStatus.FAILED) != (self.error is not None):
            raise ValueError("error must be set exactly when status is 'failed'")
        if self.output is not None and self.status != JobStatus.SUCCESS:
            raise ValueError("output is only allowed on successful results")

    # ── Constructors ────────────────────────────────────────────────

    @classmethod
    def succeeded(
        cls,
        name: str,
        output: T,
        started_at: datetime,
        completed_at: datetime,
        execution_id: str | None = None,
    ) -> JobResult[T]:
        return cls(
            name=name,
            status=JobStatus.SUCCESS,
            timing=JobTiming(started_at, completed_at),
            output=output,
            execution_id=execution_id,
        )

    @classmethod
    def failed(
        cls,
        name: str,
        error: JobError,
        started_at: datetime,
        completed_at: datetime,
        execution_id: str | None = None,
    ) -> JobResult[Any]:
        return cls(
            name=name,
            status=JobStatus.FAILED,
            timing=JobTiming(started_at, completed_at),
            error=error,
            execution_id=execution_id,
        )

    # ── Queries ─────────────────────────────────────────────────────

    @property
    def ok(self) -> bool:
        return self.status == JobStatus.SUCCESS

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @property
    def duration_ms(self) -> float | None:
        return self.timing.duration_ms

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "name": self.name,
            "status": self.status.value,
            "timing": self.timing.to_dict(),
        }
        if self.status == JobStatus.SUCCESS:
            data["output"] = self.output
        if self.error is not None:
            data["error"] = self.error.to_dict()
        if self.execution_id is not None:
            data["execution_id"] = self.execution_id
        return data


class SkipReason(str, Enum):
    """Why a lock guard did not run its job."""

    CONTENDED = "contended"
    STORE_UNAVAILABLE = "store_unavailable"


@dataclass(frozen=True)
class Skipped:
    """A guarded invocation that never ran.

    Not an error: a contended schedule simply runs again on its next tick.
    """

    key: str
    reason: SkipReason
    holder: str | None = None
    detail: str | None = None

    status = "skipped"

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "status": self.status,
            "reason": self.reason.value,
            "holder": self.holder,
            "detail": self.detail,
        }


__all__ = [
    "JobError",
    "JobResult",
    "JobStatus",
    "JobTiming",
    "SkipReason",
    "Skipped",
    "TERMINAL_STATUSES",
    "VALID_TRANSITIONS",
    "validate_transition",
]
