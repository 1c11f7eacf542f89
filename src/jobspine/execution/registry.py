"""Job Registry - injectable name → Runnable lookup.

Manifesto:
The API controller receives a job *name* and needs the Runnable behind it.
The registry decouples registration (at startup, with each job's
dependencies already injected) from resolution (at request time).

ARCHITECTURE
────────────
::

    JobRegistry
      ├── .register(job)        ─ store a Runnable under job.name
      ├── .get(name)            ─ lookup, JobNotFoundError if missing
      ├── .has(name)            ─ existence check
      ├── .list_jobs()          ─ sorted names
      └── .list_with_metadata() ─ names + description + tags

    register_job(name, registry)  ─ decorator turning a function into a FunctionJob

Tags:
    jobspine, execution, registry, lookup
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from jobspine.core.errors import JobNotFoundError

from .runnable import FunctionJob, Runnable
from .runner import JobRunner


class JobRegistry:
    """Registry of Runnables keyed by name.

    Example:
        >>> registry = JobRegistry()
        >>> registry.register(FunctionJob("report", lambda: 42))
        >>> registry.get("report").run().output
        42
    """

    def __init__(self) -> None:
        self._jobs: dict[str, Runnable] = {}
        self._metadata: dict[str, dict[str, Any]] = {}

    def register(
        self,
        job: Runnable,
        description: str | None = None,
        tags: dict[str, str] | None = None,
    ) -> None:
        """Register a job under ``job.name``.

        Raises:
            TypeError: If ``job`` does not satisfy :class:`Runnable`.
            ValueError: If a different job already uses the name.
        """
        if not isinstance(job, Runnable):
            raise TypeError(f"{job!r} does not implement run()")
        existing = self._jobs.get(job.name)
        if existing is not None and existing is not job:
            raise ValueError(f"Job already registered: {job.name}")

        self._jobs[job.name] = job
        self._metadata[job.name] = {
            "name": job.name,
            "description": description or getattr(job, "description", None),
            "tags": tags or {},
        }

    def get(self, name: str) -> Runnable:
        try:
            return self._jobs[name]
        except KeyError:
            raise JobNotFoundError(name) from None

    def has(self, name: str) -> bool:
        return name in self._jobs

    def list_jobs(self) -> list[str]:
        return sorted(self._jobs)

    def list_with_metadata(self) -> list[dict[str, Any]]:
        return [dict(self._metadata[name]) for name in self.list_jobs()]

    def unregister(self, name: str) -> bool:
        if name in self._jobs:
            del self._jobs[name]
            del self._metadata[name]
            return True
        return False

    def clear(self) -> None:
        """Clear all jobs (for testing)."""
        self._jobs.clear()
        self._metadata.clear()

    def __len__(self) -> int:
        return len(self._jobs)


def register_job(
    name: str,
    registry: JobRegistry,
    runner: JobRunner | None = None,
    description: str | None = None,
    tags: dict[str, str] | None = None,
) -> Callable[[Callable[[], Any]], Callable[[], Any]]:
    """Decorator registering a zero-argument function as a job.

    Example:
        >>> registry = JobRegistry()
        >>> @register_job("cleanup", registry)
        ... def cleanup():
        ...     return {"deleted": 3}
    """

    def decorator(func: Callable[[], Any]) -> Callable[[], Any]:
        job = FunctionJob(name, func, runner=runner, description=description or func.__doc__)
        registry.register(job, tags=tags)
        return func

    return decorator


__all__ = ["JobRegistry", "register_job"]
