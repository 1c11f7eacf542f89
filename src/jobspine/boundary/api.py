"""FastAPI controller - trigger jobs manually over HTTP.

ARCHITECTURE
────────────
::

    create_jobs_router(registry, ledger=None) → APIRouter
      GET    /jobs                         ─ registered jobs
      POST   /jobs/{name}/run              ─ run synchronously, 200 + JobResult
      GET    /jobs/{name}/executions       ─ ledger history (newest first)
      GET    /executions/{execution_id}    ─ one ledger row

    install_error_handlers(app)
      JobFailedError   → 500 {"error": {"code": "JOB_FAILED", "message": ...}}
      JobNotFoundError → 404

Runs are synchronous: the request is held open until the job finishes, so
callers of long jobs need a transport timeout longer than the job.
Endpoints are plain ``def`` functions so FastAPI runs them in its
threadpool instead of blocking the event loop.

A failed job is NOT turned into an error response inside the route. The
route raises :class:`JobFailedError` through :func:`run_job` like every
other consumer, and the app-level handler renders it.
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any

from fastapi import APIRouter, FastAPI, Header, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from jobspine.core.errors import JobFailedError, JobNotFoundError
from jobspine.core.logging import get_logger
from jobspine.execution.ledger import ExecutionLedger, JobExecution, LedgerStatus
from jobspine.execution.result import JobResult
from jobspine.execution.registry import JobRegistry
from jobspine.execution.runner import trigger_context

from .consumer import run_job

logger = get_logger(__name__)

API_TRIGGER = "api"
"""``triggered_by`` recorded when a request carries no ``X-User-Id`` header."""


# === PYDANTIC MODELS FOR API ===


class JobInfo(BaseModel):
    name: str
    description: str | None = None
    tags: dict[str, str] = Field(default_factory=dict)


class JobResultResponse(BaseModel):
    """Response body for a completed run."""

    name: str
    status: str
    started_at: datetime
    completed_at: datetime | None = None
    duration_ms: float | None = None
    output: Any = None
    execution_id: str | None = None

    @classmethod
    def from_result(cls, result: JobResult[Any]) -> JobResultResponse:
        return cls(
            name=result.name,
            status=result.status.value,
            started_at=result.timing.started_at,
            completed_at=result.timing.completed_at,
            duration_ms=result.duration_ms,
            output=json.loads(json.dumps(result.output, default=str)),
            execution_id=result.execution_id,
        )


class ExecutionResponse(BaseModel):
    """Response body for a ledger row."""

    id: str
    job_name: str
    status: str
    triggered_by: str
    created_at: datetime
    started_at: datetime | None = None
    completed_at: datetime | None = None
    duration_ms: float | None = None
    result: dict[str, Any] | None = None

    @classmethod
    def from_execution(cls, execution: JobExecution) -> ExecutionResponse:
        return cls(
            id=execution.id,
            job_name=execution.job_name,
            status=execution.status.value,
            triggered_by=execution.triggered_by,
            created_at=execution.created_at,
            started_at=execution.started_at,
            completed_at=execution.completed_at,
            duration_ms=execution.duration_ms,
            result=execution.result,
        )


# === ROUTER ===


def create_jobs_router(
    registry: JobRegistry,
    ledger: ExecutionLedger | None = None,
    tags: list[str] | None = None,
) -> APIRouter:
    """Create the jobs router.

    Args:
        registry: Jobs that may be triggered by name.
        ledger: Execution Ledger for the history endpoints; without it they
            answer 404.
        tags: OpenAPI tags (default: ["jobs"])

    Example:
        >>> app = FastAPI()
        >>> app.include_router(create_jobs_router(registry, ledger))
        >>> install_error_handlers(app)
    """
    router = APIRouter(tags=tags or ["jobs"])

    def _require_ledger() -> ExecutionLedger:
        if ledger is None:
            raise HTTPException(404, "Execution ledger is not configured")
        return ledger

    @router.get("/jobs", response_model=list[JobInfo])
    def list_jobs():
        return [JobInfo(**meta) for meta in registry.list_with_metadata()]

    @router.post("/jobs/{name}/run", response_model=JobResultResponse)
    def run_named_job(name: str, x_user_id: str | None = Header(default=None)):
        """Run a job synchronously and return its result.

        A failed job raises ``JobFailedError``; the app's error handler turns
        it into a 500 response carrying the captured error message.
        """
        if not registry.has(name):
            raise HTTPException(404, f"Job not found: {name}")
        job = registry.get(name)

        with trigger_context(x_user_id or API_TRIGGER):
            result = run_job(job)
        return JobResultResponse.from_result(result)

    @router.get("/jobs/{name}/executions", response_model=list[ExecutionResponse])
    def list_job_executions(
        name: str,
        status: str | None = None,
        limit: int = Query(50, ge=1, le=500),
    ):
        status_enum = None
        if status:
            try:
                status_enum = LedgerStatus(status.upper())
            except ValueError:
                raise HTTPException(400, f"Invalid status: {status}") from None

        rows = _require_ledger().list_executions(job_name=name, status=status_enum, limit=limit)
        return [ExecutionResponse.from_execution(row) for row in rows]

    @router.get("/executions/{execution_id}", response_model=ExecutionResponse)
    def get_execution(execution_id: str):
        execution = _require_ledger().get_execution(execution_id)
        if execution is None:
            raise HTTPException(404, f"Execution {execution_id} not found")
        return ExecutionResponse.from_execution(execution)

    return router


# === ERROR HANDLERS ===


async def job_failed_handler(request: Request, exc: JobFailedError) -> JSONResponse:
    logger.error(
        f"Job {exc.job_name} failed for {request.method} {request.url.path}: {exc.error_message}",
        job_name=exc.job_name,
    )
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "JOB_FAILED",
                "message": exc.error_message,
                "job_name": exc.job_name,
                "execution_id": exc.result.execution_id,
            }
        },
    )


async def job_not_found_handler(request: Request, exc: JobNotFoundError) -> JSONResponse:
    return JSONResponse(
        status_code=404,
        content={"error": {"code": "NOT_FOUND", "message": exc.message, "job_name": exc.job_name}},
    )


def install_error_handlers(app: FastAPI) -> None:
    """Register jobspine exception handlers on ``app``."""
    app.add_exception_handler(JobFailedError, job_failed_handler)
    app.add_exception_handler(JobNotFoundError, job_not_found_handler)


def create_app(registry: JobRegistry, ledger: ExecutionLedger | None = None) -> FastAPI:
    """Build a FastAPI app exposing the jobs router with error handlers installed."""
    app = FastAPI(title="jobspine", description="Manually trigger and inspect background jobs.")
    app.include_router(create_jobs_router(registry, ledger))
    install_error_handlers(app)
    return app


__all__ = [
    "API_TRIGGER",
    "ExecutionResponse",
    "JobInfo",
    "JobResultResponse",
    "create_app",
    "create_jobs_router",
    "install_error_handlers",
]
