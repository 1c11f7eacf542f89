"""Consumer Boundary - where failed results become raised errors.

The Job Runner swallows job exceptions into ``failed`` results so one bad
job never crashes its caller. That makes the boundary responsible for the
opposite half of the contract: every consumer (cron handler, API
controller, CLI) must pass the result through :func:`raise_for_result`,
otherwise a job can fail while the surrounding system reports success.

    result = job.run()
    raise_for_result(result)     # JobFailedError if result.status == failed

Cron handlers additionally sit behind the Lock Guard. A skipped tick is
not a failure and is returned as-is.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Any, TypeVar, overload

from jobspine.core.errors import JobFailedError
from jobspine.core.logging import get_logger
from jobspine.core.settings import get_settings
from jobspine.execution.result import JobResult, JobStatus, Skipped
from jobspine.execution.runnable import Runnable
from jobspine.locks.client import LockClient, ttl_to_seconds
from jobspine.locks.guard import with_lock

logger = get_logger(__name__)

T = TypeVar("T")


@overload
def raise_for_result(result: JobResult[T]) -> JobResult[T]: ...


@overload
def raise_for_result(result: Skipped) -> Skipped: ...


def raise_for_result(result: JobResult[Any] | Skipped) -> JobResult[Any] | Skipped:
    """Raise :class:`JobFailedError` for a failed result, else return it unchanged.

    Raises:
        JobFailedError: ``result.status`` is ``failed``; the message contains
            the captured error message.
        ValueError: ``result`` is not terminal (a runner bug).
    """
    if isinstance(result, Skipped):
        return result
    if result.status == JobStatus.FAILED:
        raise JobFailedError(result)
    if result.status != JobStatus.SUCCESS:
        raise ValueError(f"Job {result.name!r} returned non-terminal status {result.status.value!r}")
    return result


def run_job(job: Runnable) -> JobResult[Any]:
    """Run ``job`` and enforce the propagation policy."""
    return raise_for_result(job.run())


class CronHandler:
    """Scheduler entry point for one job.

    Each replica's scheduler calls the handler on every tick. The handler
    takes the distributed lock, runs the job, and raises if it failed, so
    the scheduler's own error reporting sees the failure.

    Args:
        job: The Runnable to execute.
        lock_client: Client for the shared lock store.
        ttl: Lock TTL; must exceed the job's worst-case runtime. Defaults to
            ``default_lock_ttl_seconds`` from the settings.
        key: Fleet-wide lock key; defaults to ``"cron:<job.name>"``.

    Example:
        >>> handler = CronHandler(NightlySync(repo, runner), lock_client, ttl=600)
        >>> scheduler.add_job(handler, "cron", hour=2)
    """

    def __init__(
        self,
        job: Runnable,
        lock_client: LockClient,
        ttl: float | timedelta | None = None,
        key: str | None = None,
    ) -> None:
        self.job = job
        self.lock_client = lock_client
        if ttl is None:
            ttl = get_settings().default_lock_ttl_seconds
        self.ttl_seconds = ttl_to_seconds(ttl)
        self.key = key or f"cron:{job.name}"

    def __call__(self) -> JobResult[Any] | Skipped:
        outcome = with_lock(self.lock_client, self.key, self.ttl_seconds, self.job.run)
        if isinstance(outcome, Skipped):
            logger.info(
                f"Cron tick skipped for {self.job.name}: {outcome.reason.value}",
                job_name=self.job.name,
                lock_key=self.key,
            )
            return outcome
        return raise_for_result(outcome)

    def __repr__(self) -> str:
        return f"CronHandler(job={self.job.name!r}, key={self.key!r}, ttl={self.ttl_seconds})"


__all__ = ["CronHandler", "raise_for_result", "run_job"]
