"""
Root Typer application for the jobspine CLI.
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as pkg_version

import typer
from typer import Typer

from jobspine.cli.ledger import app as ledger_app
from jobspine.cli.locks import app as locks_app
from jobspine.core.logging import configure_logging
from jobspine.core.settings import get_settings

app = Typer(
    name="jobspine",
    help="jobspine - background job execution ledger and lock tools.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    if value:
        try:
            v = pkg_version("jobspine")
        except PackageNotFoundError:
            from jobspine import __version__ as v
        typer.echo(f"jobspine {v}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """jobspine CLI - inspect job executions and distributed locks."""
    settings = get_settings()
    configure_logging(level=settings.log_level, json_format=settings.log_json, service=settings.service_name)


app.add_typer(ledger_app, name="ledger", help="Execution ledger inspection.")
app.add_typer(locks_app, name="locks", help="SQL lock store maintenance.")
