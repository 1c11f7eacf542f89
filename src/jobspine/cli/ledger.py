"""
CLI: ``jobspine ledger`` - inspect the Execution Ledger.
"""

from __future__ import annotations

import typer

from jobspine.cli.utils import console, fail, get_connection, output_item, output_items
from jobspine.execution.ledger import ExecutionLedger, LedgerStatus

app = typer.Typer(no_args_is_help=True)


@app.command("init")
def init_ledger(
    database: str | None = typer.Option(None, "--database", "-d"),
) -> None:
    """Create the job_executions table."""
    ExecutionLedger(get_connection(database)).initialize()
    console.print("[green]job_executions ready[/green]")


@app.command("list")
def list_executions(
    job: str | None = typer.Option(None, "--job", "-j", help="Filter by job name"),
    status: str | None = typer.Option(None, "--status", "-s", help="PENDING, RUNNING, SUCCESS or FAILED"),
    limit: int = typer.Option(50, "--limit", "-n"),
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """List job executions, newest first."""
    status_enum = None
    if status:
        try:
            status_enum = LedgerStatus(status.upper())
        except ValueError:
            fail(f"Invalid status: {status}", code="INVALID_INPUT")

    ledger = ExecutionLedger(get_connection(database))
    rows = ledger.list_executions(job_name=job, status=status_enum, limit=limit)
    items = [
        {
            "id": row.id,
            "job_name": row.job_name,
            "status": row.status.value,
            "triggered_by": row.triggered_by,
            "started_at": row.started_at.isoformat() if row.started_at else None,
            "duration_ms": round(row.duration_ms) if row.duration_ms is not None else None,
        }
        for row in rows
    ]
    output_items(items, as_json=json_out, title="Executions")


@app.command("show")
def show_execution(
    execution_id: str = typer.Argument(..., help="Execution ID"),
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Show one execution including its result payload."""
    execution = ExecutionLedger(get_connection(database)).get_execution(execution_id)
    if execution is None:
        fail(f"Execution {execution_id} not found", code="NOT_FOUND")
    output_item(execution.to_dict(), as_json=json_out, title=f"Execution: {execution_id}")
