"""Job Runner - executes a unit of work and captures its outcome.

Manifesto:
    A job failing must never take down the thread that runs it, and it must
    never go unrecorded. The runner converts every outcome into a
    :class:`~jobspine.execution.result.JobResult` value: exceptions raised by
    the unit of work are caught here and never escape ``run()``.

    Turning a failed result back into an exception is the job of the
    Consumer Boundary (see :mod:`jobspine.boundary.consumer`).

ARCHITECTURE
────────────
::

    SyncJobRunner.run(name, fn)
      ├── ledger.create_execution()      PENDING  (optional)
      ├── validate PENDING → RUNNING
      ├── ledger.mark_running()          RUNNING  (optional)
      ├── span "job.run" + "Job started: <name>"
      ├── fn()  ── raises ──► JobError captured
      ├── completed_at recorded (always)
      ├── "Job succeeded|failed: <name>, duration=<ms>"
      └── ledger.complete()              SUCCESS | FAILED (optional)

The runner is synchronous and executes ``fn`` on the calling thread. Code
that depends on :class:`JobRunner` rather than :class:`SyncJobRunner` can
later be handed a queued/asynchronous implementation without changing the
Runnable contract or the ledger schema.

Tags:
    jobspine, execution, runner, observability
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import Any, Protocol, TypeVar, runtime_checkable

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from jobspine.core.logging import LogContext, get_logger
from jobspine.core.tracing import get_tracer, trace_span

from .ledger import SYSTEM_TRIGGER, ExecutionLedger
from .result import JobError, JobResult, JobStatus, validate_transition

T = TypeVar("T")

logger = get_logger(__name__)

_TRIGGERED_BY: ContextVar[str] = ContextVar("jobspine_triggered_by", default=SYSTEM_TRIGGER)


def utcnow() -> datetime:
    """Return timezone-aware UTC datetime."""
    return datetime.now(UTC)


@contextmanager
def trigger_context(triggered_by: str) -> Iterator[None]:
    """Attribute runs started inside the block to ``triggered_by`` (e.g. an API user id)."""
    token = _TRIGGERED_BY.set(triggered_by or SYSTEM_TRIGGER)
    try:
        yield
    finally:
        _TRIGGERED_BY.reset(token)


@runtime_checkable
class JobRunner(Protocol):
    """Anything that can execute a named unit of work into a JobResult."""

    def run(self, name: str, fn: Callable[[], T], *, triggered_by: str | None = None) -> JobResult[T]:
        """Execute ``fn`` and return its result. Must never raise for job failures."""
        ...


class SyncJobRunner:
    """Synchronous Job Runner.

    Args:
        ledger: Optional Execution Ledger; when set every invocation is
            recorded as PENDING → RUNNING → terminal.
        clock: Returns the current timezone-aware datetime (tests inject a
            fake clock).
        tracer: OpenTelemetry tracer; defaults to the global jobspine tracer.

    Example:
        >>> runner = SyncJobRunner()
        >>> result = runner.run("report", lambda: 42)
        >>> result.status, result.output
        (<JobStatus.SUCCESS: 'success'>, 42)
    """

    def __init__(
        self,
        ledger: ExecutionLedger | None = None,
        clock: Callable[[], datetime] = utcnow,
        tracer: trace.Tracer | None = None,
    ) -> None:
        self.ledger = ledger
        self._clock = clock
        self._tracer = tracer

    def run(
        self,
        name: str,
        fn: Callable[[], T],
        *,
        triggered_by: str | None = None,
    ) -> JobResult[T]:
        if not name:
            raise ValueError("job name must be non-empty")
        triggered_by = triggered_by or _TRIGGERED_BY.get()

        status = JobStatus.PENDING
        execution_id = self._record_created(name, triggered_by)

        validate_transition(status, JobStatus.RUNNING)
        status = JobStatus.RUNNING
        started_at = self._clock()
        self._record_running(execution_id, started_at)

        with LogContext(job_name=name, execution_id=execution_id), trace_span(
            "job.run",
            attributes={"job.name": name},
            tracer=self._tracer or get_tracer(),
        ) as span:
            logger.info(f"Job started: {name}", job_name=name, status=status.value)

            error: JobError | None = None
            output: Any = None
            try:
                output = fn()
            except Exception as exc:
                error = JobError.from_exception(exc)
                span.record_exception(exc)
            else:
                if isinstance(output, BaseException):
                    # An error returned as a value still counts as a failure.
                    error = JobError.from_exception(output)
                    output = None

            completed_at = max(self._clock(), started_at)

            if error is None:
                validate_transition(status, JobStatus.SUCCESS)
                result: JobResult[Any] = JobResult.succeeded(
                    name, output, started_at, completed_at, execution_id=execution_id
                )
            else:
                validate_transition(status, JobStatus.FAILED)
                result = JobResult.failed(
                    name, error, started_at, completed_at, execution_id=execution_id
                )

            duration_ms = result.duration_ms
            span.set_attribute("job.status", result.status.value)
            span.set_attribute("job.duration_ms", duration_ms)

            if result.ok:
                logger.info(
                    f"Job succeeded: {name}, duration={duration_ms:.0f}ms",
                    job_name=name,
                    status=result.status.value,
                    duration_ms=duration_ms,
                )
            else:
                span.set_status(Status(StatusCode.ERROR, error.message))
                logger.error(
                    f"Job failed: {name}, duration={duration_ms:.0f}ms",
                    job_name=name,
                    status=result.status.value,
                    duration_ms=duration_ms,
                    error=error.message,
                    error_type=error.error_type,
                )

        self._record_completed(result)
        return result

    # ── Ledger bookkeeping ──────────────────────────────────────────
    # Ledger failures are logged and never change the JobResult.

    def _record_created(self, name: str, triggered_by: str) -> str | None:
        if self.ledger is None:
            return None
        try:
            return self.ledger.create_execution(name, triggered_by=triggered_by).id
        except Exception as e:
            logger.error(f"Ledger create failed for {name}: {e}", job_name=name)
            return None

    def _record_running(self, execution_id: str | None, started_at: datetime) -> None:
        if self.ledger is None or execution_id is None:
            return
        try:
            self.ledger.mark_running(execution_id, started_at)
        except Exception as e:
            logger.error(f"Ledger update failed for {execution_id}: {e}", execution_id=execution_id)

    def _record_completed(self, result: JobResult[Any]) -> None:
        if self.ledger is None or result.execution_id is None:
            return
        try:
            self.ledger.complete(result.execution_id, result)
        except Exception as e:
            logger.error(
                f"Ledger update failed for {result.execution_id}: {e}",
                execution_id=result.execution_id,
            )


__all__ = ["JobRunner", "SyncJobRunner", "trigger_context"]
