"""Distributed locks - stores, client and guard.

    store.py    LockStore protocol
    memory.py   InMemoryLockStore
    redis.py    RedisLockStore
    sql.py      SqlLockStore
    client.py   LockClient + Lock
    guard.py    with_lock / distributed_lock
"""

from __future__ import annotations

import sqlite3

from jobspine.core.settings import JobspineSettings, LockBackend, get_settings

from .client import Lock, LockClient
from .guard import distributed_lock, with_lock
from .memory import InMemoryLockStore
from .redis import RedisLockStore
from .sql import SqlLockStore
from .store import LockStore


def build_lock_store(settings: JobspineSettings | None = None) -> LockStore:
    """Create the lock store selected by ``settings.lock_backend``.

    The settings model already rejects a redis backend without a URL.
    """
    settings = settings or get_settings()

    if settings.lock_backend == LockBackend.REDIS:
        return RedisLockStore.from_url(settings.redis_url)
    if settings.lock_backend == LockBackend.SQL:
        settings.database_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(settings.database_path, check_same_thread=False)
        store = SqlLockStore(conn)
        store.initialize()
        return store
    return InMemoryLockStore()


def build_lock_client(settings: JobspineSettings | None = None) -> LockClient:
    """Create a LockClient on the configured store, tagged with this instance's id."""
    settings = settings or get_settings()
    return LockClient(build_lock_store(settings), instance_id=settings.instance_id)


__all__ = [
    "InMemoryLockStore",
    "Lock",
    "LockClient",
    "LockStore",
    "RedisLockStore",
    "SqlLockStore",
    "build_lock_client",
    "build_lock_store",
    "distributed_lock",
    "with_lock",
]
