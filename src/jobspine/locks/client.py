"""Lock Client - cluster-wide mutual exclusion with expiry.

The Lock Client is the only component that talks to the shared lock
store. It mints a fresh holder token for every acquisition attempt
(``<instance_id>:<uuid>``) so a release can only ever remove the lock that
this attempt created.

Lock Flow::

    Instance A: acquire("nightly-sync", 60) → Lock(holder="a:1f..")
    Instance B: acquire("nightly-sync", 60) → None   (contended)
    Instance A: release(lock)               → True
    Instance B: acquire("nightly-sync", 60) → Lock(holder="b:9c..")

If A crashes instead of releasing, the store expires the key after the
TTL and B's next attempt succeeds.
"""

from __future__ import annotations

import socket
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from uuid import uuid4

from jobspine.core.logging import get_logger

from .store import LockStore

logger = get_logger(__name__)


def utcnow() -> datetime:
    """Return timezone-aware UTC datetime."""
    return datetime.now(UTC)


def ttl_to_seconds(ttl: float | timedelta) -> float:
    """Normalize a TTL to positive seconds."""
    seconds = ttl.total_seconds() if isinstance(ttl, timedelta) else float(ttl)
    if seconds <= 0:
        raise ValueError(f"ttl must be positive, got {ttl!r}")
    return seconds


@dataclass(frozen=True)
class Lock:
    """A lock held in the shared store."""

    key: str
    holder: str
    ttl_seconds: float
    acquired_at: datetime
    expires_at: datetime


class LockClient:
    """Acquire and release distributed locks on a :class:`LockStore`.

    Args:
        store: Shared lock store (injected, never global).
        instance_id: Identifies this replica; defaults to the hostname.
        clock: Wall clock used for the informational timestamps on
            :class:`Lock`. Expiry itself is enforced by the store.

    Raises:
        LockStoreUnavailableError: From any method, when the store is unreachable.
    """

    def __init__(
        self,
        store: LockStore,
        instance_id: str | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.store = store
        self.instance_id = instance_id or socket.gethostname()
        self._clock = clock

    def _new_holder(self) -> str:
        return f"{self.instance_id}:{uuid4().hex}"

    def acquire(self, key: str, ttl: float | timedelta) -> Lock | None:
        """Single non-blocking attempt. Returns ``None`` if another holder has the key."""
        if not key:
            raise ValueError("lock key must be non-empty")
        ttl_seconds = ttl_to_seconds(ttl)
        holder = self._new_holder()

        if not self.store.set_if_absent(key, holder, ttl_seconds):
            logger.debug(f"Lock already held for {key}", lock_key=key)
            return None

        now = self._clock()
        logger.debug(f"Acquired lock for {key}", lock_key=key, holder=holder, ttl_seconds=ttl_seconds)
        return Lock(
            key=key,
            holder=holder,
            ttl_seconds=ttl_seconds,
            acquired_at=now,
            expires_at=now + timedelta(seconds=ttl_seconds),
        )

    def release(self, lock: Lock) -> bool:
        """Release ``lock``. Returns ``False`` if it had already expired or been taken over."""
        released = self.store.delete_if_holder(lock.key, lock.holder)
        if released:
            logger.debug(f"Released lock for {lock.key}", lock_key=lock.key)
        else:
            logger.warning(
                f"Lock for {lock.key} was no longer held at release",
                lock_key=lock.key,
                holder=lock.holder,
            )
        return released

    def is_locked(self, key: str) -> bool:
        return self.store.get_holder(key) is not None

    def get_holder(self, key: str) -> str | None:
        return self.store.get_holder(key)


__all__ = ["Lock", "LockClient", "ttl_to_seconds"]
