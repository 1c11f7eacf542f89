"""In-memory lock store.

Thread-safe for a single process. Useful for tests, local development and
single-instance deployments; it provides no exclusion across processes.
Expiry uses a monotonic clock, injectable so tests can advance time.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable


class InMemoryLockStore:
    """Dict-backed :class:`~jobspine.locks.store.LockStore`.

    Example:
        >>> store = InMemoryLockStore()
        >>> store.set_if_absent("nightly-sync", "host-a:1", ttl_seconds=60)
        True
        >>> store.set_if_absent("nightly-sync", "host-b:1", ttl_seconds=60)
        False
    """

    name = "memory"

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._entries: dict[str, tuple[str, float]] = {}
        self._lock = threading.Lock()

    def _live_entry(self, key: str, now: float) -> tuple[str, float] | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry[1] <= now:
            del self._entries[key]
            return None
        return entry

    def set_if_absent(self, key: str, holder: str, ttl_seconds: float) -> bool:
        with self._lock:
            now = self._clock()
            if self._live_entry(key, now) is not None:
                return False
            self._entries[key] = (holder, now + ttl_seconds)
            return True

    def delete_if_holder(self, key: str, holder: str) -> bool:
        with self._lock:
            entry = self._live_entry(key, self._clock())
            if entry is None or entry[0] != holder:
                return False
            del self._entries[key]
            return True

    def get_holder(self, key: str) -> str | None:
        with self._lock:
            entry = self._live_entry(key, self._clock())
            return entry[0] if entry else None

    def keys(self) -> list[str]:
        """Unexpired keys, sorted."""
        with self._lock:
            now = self._clock()
            return sorted(k for k in list(self._entries) if self._live_entry(k, now))

    def __len__(self) -> int:
        return len(self.keys())


__all__ = ["InMemoryLockStore"]
