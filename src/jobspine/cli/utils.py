"""
CLI utility helpers - output formatting and connection management.
"""

from __future__ import annotations

import json
import sqlite3
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from jobspine.core.settings import get_settings

console = Console()
err_console = Console(stderr=True)


# ── Connection helper ────────────────────────────────────────────────────


def get_connection(database: str | None = None) -> sqlite3.Connection:
    """Open the jobspine database. Defaults to ``JOBSPINE_DATABASE_PATH``."""
    db_path = Path(database) if database else get_settings().database_path
    db_path.parent.mkdir(parents=True, exist_ok=True)
    return sqlite3.connect(db_path)


# ── Output helpers ───────────────────────────────────────────────────────


def fail(message: str, code: str = "ERROR") -> None:
    """Print an error and exit with status 1."""
    err_console.print(f"[bold red]Error[/bold red] ({code}): {message}")
    raise typer.Exit(code=1)


def output_items(items: list[dict[str, Any]], *, as_json: bool = False, title: str = "") -> None:
    """Render a list of dicts as JSON or a Rich table."""
    if as_json:
        console.print_json(json.dumps(items, default=str))
        return

    if not items:
        console.print("[dim]No items.[/dim]")
        return

    table = Table(title=title or None, show_lines=False, pad_edge=False)
    for col in items[0]:
        table.add_column(col, overflow="fold")
    for item in items:
        table.add_row(*(str(v) if v is not None else "" for v in item.values()))
    console.print(table)


def output_item(item: dict[str, Any], *, as_json: bool = False, title: str = "") -> None:
    """Render a single dict as JSON or key-value pairs."""
    if as_json:
        console.print_json(json.dumps(item, default=str))
        return

    if title:
        console.print(f"[bold]{title}[/bold]")
    for k, v in item.items():
        console.print(f"  [cyan]{k}[/cyan]: {v}")
