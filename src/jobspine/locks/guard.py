"""Distributed Lock Guard - run a thunk on at most one replica at a time.

Every replica fires the same scheduled trigger; the guard makes all but
one of them skip. Composition is explicit::

    guarded = distributed_lock(client, "nightly-sync", ttl=600)(handler)
    guarded()            # JobResult, or Skipped when another replica holds the key

    with_lock(client, "nightly-sync", 600, handler)   # same thing, called immediately

Outcomes:

    acquired            → fn() runs, lock released in ``finally``
    contended           → Skipped(CONTENDED), warning log, fn not called
    store unreachable   → Skipped(STORE_UNAVAILABLE), error log, fn not called

The store being unreachable fails closed: the job is skipped rather than
run unguarded.

The TTL must exceed the worst-case runtime of ``fn``. If it does not, the
lock expires mid-run and another replica may start a second concurrent
execution. The guard logs the overrun when ``fn`` returns; it does not
renew the lock.
"""

from __future__ import annotations

import functools
import time
from collections.abc import Callable
from datetime import timedelta
from typing import TypeVar

from jobspine.core.errors import LockStoreUnavailableError
from jobspine.core.logging import get_logger
from jobspine.execution.result import JobResult, SkipReason, Skipped

from .client import Lock, LockClient, ttl_to_seconds

R = TypeVar("R", bound=JobResult)

logger = get_logger(__name__)


def with_lock(
    client: LockClient,
    key: str,
    ttl: float | timedelta,
    fn: Callable[[], R],
    *,
    monotonic: Callable[[], float] = time.monotonic,
) -> R | Skipped:
    """Run ``fn`` while holding the distributed lock ``key``.

    Args:
        client: Lock Client bound to the shared store.
        key: Fleet-wide unique, stable name of the protected job.
        ttl: Lock expiry in seconds (or a ``timedelta``).
        fn: Thunk producing a JobResult (typically a Runnable's ``run``).

    Raises:
        ValueError: If ``key`` is empty or ``ttl`` is not positive.
    """
    if not key:
        raise ValueError("lock key must be non-empty")
    ttl_seconds = ttl_to_seconds(ttl)

    try:
        lock = client.acquire(key, ttl_seconds)
    except LockStoreUnavailableError as e:
        logger.error(f"Lock store unavailable, skipping {key}: {e}", lock_key=key)
        return Skipped(key=key, reason=SkipReason.STORE_UNAVAILABLE, detail=str(e))
    except Exception as e:
        logger.exception(f"Lock acquire failed, skipping {key}: {e}", lock_key=key)
        return Skipped(key=key, reason=SkipReason.STORE_UNAVAILABLE, detail=str(e))

    if lock is None:
        holder = _current_holder(client, key)
        logger.warning(f"Lock held by another instance, skipping {key}", lock_key=key, holder=holder)
        return Skipped(key=key, reason=SkipReason.CONTENDED, holder=holder)

    started = monotonic()
    try:
        return fn()
    finally:
        elapsed = monotonic() - started
        if elapsed > ttl_seconds:
            logger.warning(
                f"Job under lock {key} ran {elapsed:.1f}s, longer than its {ttl_seconds:.1f}s TTL; "
                "another instance may have run concurrently",
                lock_key=key,
                elapsed_seconds=elapsed,
                ttl_seconds=ttl_seconds,
            )
        _release(client, lock)


def distributed_lock(
    client: LockClient,
    key: str,
    ttl: float | timedelta,
) -> Callable[[Callable[[], R]], Callable[[], R | Skipped]]:
    """Return a decorator that wraps a thunk in :func:`with_lock`.

    Example:
        >>> @distributed_lock(client, "nightly-sync", ttl=600)
        ... def nightly_sync():
        ...     return runner.run("nightly-sync", sync_all)
    """
    if not key:
        raise ValueError("lock key must be non-empty")
    ttl_to_seconds(ttl)

    def decorator(fn: Callable[[], R]) -> Callable[[], R | Skipped]:
        @functools.wraps(fn)
        def guarded() -> R | Skipped:
            return with_lock(client, key, ttl, fn)

        return guarded

    return decorator


def _current_holder(client: LockClient, key: str) -> str | None:
    try:
        return client.get_holder(key)
    except Exception as e:
        logger.debug(f"Could not read holder of {key}: {e}", lock_key=key)
        return None


def _release(client: LockClient, lock: Lock) -> None:
    try:
        client.release(lock)
    except Exception as e:
        logger.error(
            f"Lock release failed for {lock.key}, it will expire after {lock.ttl_seconds:.0f}s: {e}",
            lock_key=lock.key,
        )


__all__ = ["distributed_lock", "with_lock"]
