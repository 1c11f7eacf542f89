"""
jobspine - background job execution for replicated services.

Runs scheduled and manually triggered jobs with at-most-one concurrent
execution per job across the fleet, uniform logs and traces, and a strict
split between internal error capture and boundary error propagation.

    from jobspine import (
        CronHandler, FunctionJob, InMemoryLockStore, LockClient, SyncJobRunner,
    )

    runner = SyncJobRunner()
    job = FunctionJob("nightly-sync", sync_all, runner=runner)
    handler = CronHandler(job, LockClient(InMemoryLockStore()), ttl=600)
    handler()   # JobResult, Skipped, or raises JobFailedError
"""

__version__ = "0.1.0"

from jobspine.boundary.consumer import CronHandler, raise_for_result, run_job
from jobspine.core.errors import (
    InvalidTransitionError,
    JobFailedError,
    JobNotFoundError,
    JobspineError,
    LockStoreUnavailableError,
)
from jobspine.execution import (
    SYSTEM_TRIGGER,
    ExecutionLedger,
    FunctionJob,
    JobError,
    JobExecution,
    JobRegistry,
    JobResult,
    JobRunner,
    JobStatus,
    LedgerStatus,
    Runnable,
    SkipReason,
    Skipped,
    SyncJobRunner,
)
from jobspine.locks import (
    InMemoryLockStore,
    Lock,
    LockClient,
    RedisLockStore,
    SqlLockStore,
    distributed_lock,
    with_lock,
)

__all__ = [
    "CronHandler",
    "ExecutionLedger",
    "FunctionJob",
    "InMemoryLockStore",
    "InvalidTransitionError",
    "JobError",
    "JobExecution",
    "JobFailedError",
    "JobNotFoundError",
    "JobRegistry",
    "JobResult",
    "JobRunner",
    "JobStatus",
    "JobspineError",
    "LedgerStatus",
    "Lock",
    "LockClient",
    "LockStoreUnavailableError",
    "RedisLockStore",
    "Runnable",
    "SYSTEM_TRIGGER",
    "SkipReason",
    "Skipped",
    "SqlLockStore",
    "SyncJobRunner",
    "distributed_lock",
    "raise_for_result",
    "run_job",
    "with_lock",
]
