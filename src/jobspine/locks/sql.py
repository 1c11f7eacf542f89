"""Database-backed lock store.

Manifesto:
    Deployments that already share one relational database can use it as
    the lock store. INSERT-or-ignore on the primary key gives O(1)
    conflict detection; an expired row for the same key is purged first so
    crashed instances don't cause permanent deadlocks.

Tags:
    jobspine, locks, distributed-locks, TTL, sql
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from jobspine.core.errors import LockStoreUnavailableError
from jobspine.core.logging import get_logger
from jobspine.core.protocols import Connection

logger = get_logger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS job_locks (
    lock_key TEXT PRIMARY KEY,
    holder TEXT NOT NULL,
    acquired_at REAL NOT NULL,
    expires_at REAL NOT NULL
)
"""


class SqlLockStore:
    """:class:`~jobspine.locks.store.LockStore` on a ``job_locks`` table.

    Expiry timestamps are epoch seconds from ``clock`` (wall clock by
    default, since every replica must agree on it). One connection is
    shared by every thread of the process, so statements and their commit
    run under an instance lock.

    Example:
        >>> store = SqlLockStore(sqlite3.connect("jobs.db"))
        >>> store.initialize()
        >>> store.set_if_absent("nightly-sync", "host-a:1", ttl_seconds=60)
        True
    """

    name = "sql"

    def __init__(self, conn: Connection, clock: Callable[[], float] = time.time) -> None:
        self.conn = conn
        self._clock = clock
        self._lock = threading.Lock()

    def initialize(self) -> None:
        with self._lock:
            self.conn.execute(SCHEMA)
            self.conn.commit()

    def _execute(self, sql: str, params: tuple[Any, ...], key: str | None = None) -> Any:
        # Caller holds self._lock.
        try:
            cursor = self.conn.execute(sql, params)
            self.conn.commit()
            return cursor
        except Exception as e:
            try:
                self.conn.rollback()
            except Exception as rollback_error:
                logger.debug(f"Rollback failed: {rollback_error}")
            raise LockStoreUnavailableError(
                f"Lock table unavailable: {e}", cause=e
            ).with_context(lock_key=key, backend=self.name) from e

    def set_if_absent(self, key: str, holder: str, ttl_seconds: float) -> bool:
        with self._lock:
            now = self._clock()
            self._execute(
                "DELETE FROM job_locks WHERE lock_key = ? AND expires_at <= ?",
                (key, now),
                key,
            )
            cursor = self._execute(
                "INSERT OR IGNORE INTO job_locks (lock_key, holder, acquired_at, expires_at) VALUES (?, ?, ?, ?)",
                (key, holder, now, now + ttl_seconds),
                key,
            )
            return cursor.rowcount > 0

    def delete_if_holder(self, key: str, holder: str) -> bool:
        with self._lock:
            cursor = self._execute(
                "DELETE FROM job_locks WHERE lock_key = ? AND holder = ? AND expires_at > ?",
                (key, holder, self._clock()),
                key,
            )
            return cursor.rowcount > 0

    def get_holder(self, key: str) -> str | None:
        with self._lock:
            cursor = self._execute(
                "SELECT holder FROM job_locks WHERE lock_key = ? AND expires_at > ?",
                (key, self._clock()),
                key,
            )
            row = cursor.fetchone()
        return row[0] if row else None

    # === Maintenance ===

    def cleanup_expired(self) -> int:
        """Remove all expired locks. Returns the number removed."""
        with self._lock:
            cursor = self._execute("DELETE FROM job_locks WHERE expires_at <= ?", (self._clock(),))
            count = cursor.rowcount
        if count > 0:
            logger.info(f"Cleaned up {count} expired locks")
        return count

    def list_active(self) -> list[dict[str, Any]]:
        """List all unexpired locks, oldest first."""
        with self._lock:
            cursor = self._execute(
                "SELECT lock_key, holder, acquired_at, expires_at FROM job_locks "
                "WHERE expires_at > ? ORDER BY acquired_at",
                (self._clock(),),
            )
            rows = cursor.fetchall()
        return [
            {
                "key": row[0],
                "holder": row[1],
                "acquired_at": datetime.fromtimestamp(row[2], UTC).isoformat(),
                "expires_at": datetime.fromtimestamp(row[3], UTC).isoformat(),
            }
            for row in rows
        ]


__all__ = ["SCHEMA", "SqlLockStore"]
