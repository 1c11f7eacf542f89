"""Lock store protocol - the shared key-value store behind the Lock Client.

Every store provides three atomic operations. Nothing else in jobspine
touches the store directly; the Lock Client is its only caller.

    set_if_absent(key, holder, ttl_seconds)  → True if stored, False if held
    delete_if_holder(key, holder)            → True if deleted
    get_holder(key)                          → current unexpired holder or None

Stores raise :class:`~jobspine.core.errors.LockStoreUnavailableError` when
the backing store cannot be reached. They never return ``True`` from
``set_if_absent`` unless the key was actually written.

Implementations:
    * ``InMemoryLockStore`` - single process, tests and local development
    * ``RedisLockStore``    - ``SET NX PX`` + compare-and-delete script
    * ``SqlLockStore``      - ``job_locks`` table with INSERT-or-ignore
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class LockStore(Protocol):
    """Atomic set-if-absent-with-TTL and holder-checked delete."""

    name: str

    def set_if_absent(self, key: str, holder: str, ttl_seconds: float) -> bool:
        """Store ``holder`` under ``key`` for ``ttl_seconds`` unless an unexpired entry exists."""
        ...

    def delete_if_holder(self, key: str, holder: str) -> bool:
        """Delete ``key`` only if its current value is ``holder``."""
        ...

    def get_holder(self, key: str) -> str | None:
        """Return the unexpired holder of ``key`` or ``None``."""
        ...


__all__ = ["LockStore"]
