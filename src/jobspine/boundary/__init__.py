"""Consumer Boundary - cron handler, propagation helpers and the HTTP controller."""

from .api import create_app, create_jobs_router, install_error_handlers
from .consumer import CronHandler, raise_for_result, run_job

__all__ = [
    "CronHandler",
    "create_app",
    "create_jobs_router",
    "install_error_handlers",
    "raise_for_result",
    "run_job",
]
