"""jobspine core -- settings, logging, tracing, errors and storage protocols.

Layer 1 -- Type System & Errors
    errors.py       Structured error hierarchy (JobspineError, JobFailedError)
    protocols.py    Connection protocol shared by the ledger and SQL lock store

Layer 2 -- Ambient Stack
    settings.py     JobspineSettings (pydantic-settings, JOBSPINE_ prefix)
    logging.py      structlog configuration + get_logger
    tracing.py      OpenTelemetry tracer + trace_span
"""

from jobspine.core.errors import (
    ConfigError,
    ErrorCategory,
    ErrorContext,
    InvalidTransitionError,
    JobFailedError,
    JobNotFoundError,
    JobspineError,
    LedgerError,
    LockError,
    LockStoreUnavailableError,
)
from jobspine.core.logging import LogContext, configure_logging, get_logger
from jobspine.core.protocols import Connection
from jobspine.core.settings import JobspineSettings, LockBackend, get_settings, reset_settings

__all__ = [
    "ConfigError",
    "Connection",
    "ErrorCategory",
    "ErrorContext",
    "InvalidTransitionError",
    "JobFailedError",
    "JobNotFoundError",
    "JobspineError",
    "JobspineSettings",
    "LedgerError",
    "LockBackend",
    "LockError",
    "LockStoreUnavailableError",
    "LogContext",
    "configure_logging",
    "get_logger",
    "get_settings",
    "reset_settings",
]
