"""
Structured error types for jobspine.

Every error raised by the framework extends :class:`JobspineError` so callers
can catch one base type and still get a category, structured context and the
chained cause for logging and alerting.

Manifesto:
    - **Typed Error Hierarchy:** Different error types for different concerns
    - **Rich Context:** Errors carry metadata for logging and alerting
    - **Error Chaining:** Preserve original exceptions while adding context

    Execution failures inside a job are NOT raised by the framework. The
    Job Runner captures them into ``JobResult.error``; only the Consumer
    Boundary turns a failed result back into :class:`JobFailedError`.

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────────┐
        │                      JobspineError                               │
        │  (category, context, cause)                                      │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                  │
        │  JobFailedError         LockError            ConfigError         │
        │  (EXECUTION)            (LOCK)               (CONFIG)            │
        │                            │                                     │
        │  JobNotFoundError       LockStoreUnavailableError                │
        │  (REGISTRY)                                                      │
        │                                                                  │
        │  InvalidTransitionError (STATE, also a ValueError)               │
        └─────────────────────────────────────────────────────────────────┘

Tags:
    errors, exception-hierarchy, error-context, jobspine, observability

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from jobspine.execution.result import JobResult


class ErrorCategory(str, Enum):
    """Standard error categories for classification and routing."""

    EXECUTION = "EXECUTION"  # A job's unit of work failed
    LOCK = "LOCK"  # Distributed lock store problems
    STATE = "STATE"  # Illegal state machine transition
    REGISTRY = "REGISTRY"  # Unknown job names
    CONFIG = "CONFIG"  # Missing or invalid settings
    DATABASE = "DATABASE"  # Ledger persistence
    INTERNAL = "INTERNAL"  # Bugs, unexpected state


@dataclass
class ErrorContext:
    """Structured metadata attached to an error.

    Only non-empty fields are serialized by :meth:`to_dict`. Anything without
    a dedicated field goes into ``metadata``.
    """

    job_name: str | None = None
    execution_id: str | None = None
    lock_key: str | None = None
    backend: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {}
        for name in ("job_name", "execution_id", "lock_key", "backend"):
            value = getattr(self, name)
            if value is not None:
                result[name] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class JobspineError(Exception):
    """
    Base exception for all jobspine errors.

    Subclasses set ``default_category`` to classify themselves.

    Examples:
        >>> error = JobspineError("Something went wrong")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>

        Adding context fluently:

        >>> error = LockError("acquire failed").with_context(lock_key="nightly-sync")
        >>> error.context.lock_key
        'nightly-sync'
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: ErrorContext | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> JobspineError:
        """Add context to this error (fluent API)."""
        for key, value in kwargs.items():
            if key != "metadata" and hasattr(self.context, key):
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# EXECUTION
# =============================================================================


class JobFailedError(JobspineError):
    """Raised by a Consumer Boundary when a job's result is ``failed``.

    The message embeds the captured error message so upstream exception
    trackers and HTTP error responses show what actually went wrong.
    The originating :class:`~jobspine.execution.result.JobResult` is kept on
    ``result``.
    """

    default_category = ErrorCategory.EXECUTION

    def __init__(self, result: JobResult):
        captured = result.error.message if result.error else "unknown error"
        super().__init__(
            f"Job {result.name!r} failed: {captured}",
            context=ErrorContext(job_name=result.name, execution_id=result.execution_id),
        )
        self.result = result
        self.job_name = result.name
        self.error_message = captured

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        if self.result.error is not None:
            data["job_error"] = self.result.error.to_dict()
        return data


class JobNotFoundError(JobspineError):
    """No job is registered under the requested name."""

    default_category = ErrorCategory.REGISTRY

    def __init__(self, name: str):
        super().__init__(f"Job not found: {name}", context=ErrorContext(job_name=name))
        self.job_name = name


# =============================================================================
# LOCKS
# =============================================================================


class LockError(JobspineError):
    """Base class for distributed lock problems."""

    default_category = ErrorCategory.LOCK


class LockStoreUnavailableError(LockError):
    """The shared lock store could not be reached.

    Lock guards treat this as "could not acquire" and skip the job
    (fail closed).
    """


# =============================================================================
# STATE / CONFIG
# =============================================================================


class InvalidTransitionError(JobspineError, ValueError):
    """Raised when an illegal state transition is attempted.

    Applies to both the in-memory job state machine and Execution Ledger
    rows, whose terminal statuses are absorbing.
    """

    default_category = ErrorCategory.STATE

    def __init__(self, current: str, target: str, enum_name: str = "JobStatus") -> None:
        self.current = current
        self.target = target
        super().__init__(f"Invalid {enum_name} transition: {current} → {target}")


class ConfigError(JobspineError):
    """Missing or invalid configuration."""

    default_category = ErrorCategory.CONFIG


class LedgerError(JobspineError):
    """The Execution Ledger could not be read or written."""

    default_category = ErrorCategory.DATABASE


__all__ = [
    "ConfigError",
    "ErrorCategory",
    "ErrorContext",
    "InvalidTransitionError",
    "JobFailedError",
    "JobNotFoundError",
    "JobspineError",
    "LedgerError",
    "LockError",
    "LockStoreUnavailableError",
]
