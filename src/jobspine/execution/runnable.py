"""Runnable protocol - the capability every job implements.

Manifesto:
    Any object that can "run" should expose a single interface.
    Jobs are plain classes with their own injected dependencies; there is
    no base class to inherit from. Anything with ``name`` and ``run()``
    satisfies the protocol.

Usage::

    class NightlyReport:
        name = "nightly-report"

        def __init__(self, repo, runner):
            self._repo = repo
            self._runner = runner

        def run(self) -> JobResult:
            return self._runner.run(self.name, self._repo.compile_report)

Tags:
    jobspine, execution, runnable, protocol, interface

Doc-Types:
    api-reference
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Generic, Protocol, TypeVar, runtime_checkable

from .result import JobResult
from .runner import JobRunner, SyncJobRunner

T = TypeVar("T")


@runtime_checkable
class Runnable(Protocol):
    """A named unit of work that produces a :class:`JobResult` when run."""

    name: str

    def run(self) -> JobResult[Any]:
        """Execute the job. Failures come back as a ``failed`` result."""
        ...


class FunctionJob(Generic[T]):
    """Adapt a zero-argument callable into a :class:`Runnable`.

    Example:
        >>> job = FunctionJob("report", lambda: 42)
        >>> job.run().output
        42
    """

    def __init__(
        self,
        name: str,
        fn: Callable[[], T],
        runner: JobRunner | None = None,
        description: str | None = None,
    ) -> None:
        if not name:
            raise ValueError("job name must be non-empty")
        self.name = name
        self.description = description
        self._fn = fn
        self._runner = runner or SyncJobRunner()

    def run(self) -> JobResult[T]:
        return self._runner.run(self.name, self._fn)

    def __repr__(self) -> str:
        return f"FunctionJob(name={self.name!r})"


__all__ = ["FunctionJob", "Runnable"]
