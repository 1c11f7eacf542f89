"""
Canonical protocol definitions for jobspine storage.

The Execution Ledger and the SQL lock store depend on this shape rather
than on ``sqlite3`` directly, so any DB-API connection using ``?``
placeholders works (sqlite3, or an adapter around another driver).

Tags:
    protocol, connection, database, jobspine
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class Connection(Protocol):
    """
    Minimal SYNCHRONOUS connection interface for database operations.

    Examples:
        >>> cursor = conn.execute("SELECT * FROM job_executions WHERE id = ?", ("abc",))
        >>> row = cursor.fetchone()
        >>> conn.commit()
    """

    def execute(self, sql: str, params: Any = ()) -> Any:
        """Execute SQL statement with optional parameters; returns a cursor."""
        ...

    def commit(self) -> None:
        """Commit current transaction."""
        ...

    def rollback(self) -> None:
        """Rollback current transaction."""
        ...


__all__ = ["Connection"]
