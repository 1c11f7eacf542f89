"""
CLI: ``jobspine locks`` - inspect and clean the SQL lock table.
"""

from __future__ import annotations

import typer

from jobspine.cli.utils import console, get_connection, output_items
from jobspine.locks.sql import SqlLockStore

app = typer.Typer(no_args_is_help=True)


def _store(database: str | None) -> SqlLockStore:
    store = SqlLockStore(get_connection(database))
    store.initialize()
    return store


@app.command("list")
def list_locks(
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """List unexpired locks."""
    output_items(_store(database).list_active(), as_json=json_out, title="Active locks")


@app.command("cleanup")
def cleanup_locks(
    database: str | None = typer.Option(None, "--database", "-d"),
) -> None:
    """Delete expired lock rows left behind by crashed instances."""
    removed = _store(database).cleanup_expired()
    console.print(f"Removed {removed} expired lock(s)")
