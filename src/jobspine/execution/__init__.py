"""Job execution - results, runner, Runnable contract, registry and ledger.

    result.py     JobResult / JobStatus state machine / Skipped
    runner.py     JobRunner protocol + SyncJobRunner
    runnable.py   Runnable protocol + FunctionJob
    registry.py   JobRegistry
    ledger.py     ExecutionLedger (job_executions)
"""

from .ledger import SYSTEM_TRIGGER, ExecutionLedger, JobExecution, LedgerStatus
from .registry import JobRegistry, register_job
from .result import (
    JobError,
    JobResult,
    JobStatus,
    JobTiming,
    SkipReason,
    Skipped,
    validate_transition,
)
from .runnable import FunctionJob, Runnable
from .runner import JobRunner, SyncJobRunner, trigger_context

__all__ = [
    "ExecutionLedger",
    "FunctionJob",
    "JobError",
    "JobExecution",
    "JobRegistry",
    "JobResult",
    "JobRunner",
    "JobStatus",
    "JobTiming",
    "LedgerStatus",
    "Runnable",
    "SYSTEM_TRIGGER",
    "SkipReason",
    "Skipped",
    "SyncJobRunner",
    "register_job",
    "trigger_context",
    "validate_transition",
]
