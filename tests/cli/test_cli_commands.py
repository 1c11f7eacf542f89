"""Tests for jobspine.cli - command smoke tests via CliRunner.

Each test points the CLI at a temporary SQLite file with ``--database``.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import time

import pytest
from typer.testing import CliRunner

from jobspine.cli.app import app
from jobspine.execution.ledger import ExecutionLedger
from jobspine.execution.runner import SyncJobRunner
from jobspine.locks.sql import SqlLockStore

runner = CliRunner()


@pytest.fixture(autouse=True)
def _drop_root_handlers():
    yield
    root = logging.getLogger()
    for handler in list(root.handlers):
        if isinstance(handler, logging.StreamHandler) and not type(handler).__module__.startswith("_pytest"):
            root.removeHandler(handler)


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "jobspine.db"


@pytest.fixture
def populated(db_path):
    """Ledger with one successful and one failed execution."""
    conn = sqlite3.connect(db_path)
    ledger = ExecutionLedger(conn)
    ledger.initialize()
    job_runner = SyncJobRunner(ledger=ledger)

    def boom():
        raise RuntimeError("disk full")

    ok = job_runner.run("report", lambda: {"rows": 3})
    failed = job_runner.run("cleanup", boom)
    conn.close()
    return {"ok": ok, "failed": failed}


class TestRootCommand:
    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert result.output.strip().startswith("jobspine ")

    def test_no_args_shows_help(self):
        result = runner.invoke(app, [])
        assert "ledger" in result.output
        assert "locks" in result.output


class TestLedgerCLI:
    def test_init_creates_table(self, db_path):
        result = runner.invoke(app, ["ledger", "init", "--database", str(db_path)])

        assert result.exit_code == 0, result.output
        conn = sqlite3.connect(db_path)
        tables = {row[0] for row in conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")}
        assert "job_executions" in tables

    def test_list_json(self, db_path, populated):
        result = runner.invoke(app, ["ledger", "list", "--database", str(db_path), "--json"])

        assert result.exit_code == 0, result.output
        rows = json.loads(result.output)
        assert {row["job_name"] for row in rows} == {"report", "cleanup"}
        assert {row["status"] for row in rows} == {"SUCCESS", "FAILED"}

    def test_list_filters(self, db_path, populated):
        result = runner.invoke(
            app, ["ledger", "list", "--database", str(db_path), "--status", "failed", "--json"]
        )

        rows = json.loads(result.output)
        assert [row["job_name"] for row in rows] == ["cleanup"]

    def test_list_table(self, db_path, populated):
        result = runner.invoke(app, ["ledger", "list", "--database", str(db_path)])
        assert result.exit_code == 0
        assert "Executions" in result.output

    def test_invalid_status(self, db_path, populated):
        result = runner.invoke(app, ["ledger", "list", "--database", str(db_path), "--status", "bogus"])
        assert result.exit_code == 1

    def test_show(self, db_path, populated):
        execution_id = populated["failed"].execution_id

        result = runner.invoke(app, ["ledger", "show", execution_id, "--database", str(db_path), "--json"])

        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["status"] == "FAILED"
        assert data["result"]["error"]["message"] == "disk full"

    def test_show_missing(self, db_path, populated):
        result = runner.invoke(app, ["ledger", "show", "missing", "--database", str(db_path)])
        assert result.exit_code == 1


class TestLocksCLI:
    def test_list_and_cleanup(self, db_path):
        conn = sqlite3.connect(db_path)
        store = SqlLockStore(conn)
        store.initialize()
        store.set_if_absent("cron:report", "worker-1:abc", 600)
        conn.execute(
            "INSERT INTO job_locks (lock_key, holder, acquired_at, expires_at) VALUES (?, ?, ?, ?)",
            ("cron:stale", "worker-2:def", time.time() - 120, time.time() - 60),
        )
        conn.commit()
        conn.close()

        listed = runner.invoke(app, ["locks", "list", "--database", str(db_path), "--json"])
        assert listed.exit_code == 0, listed.output
        assert [lock["key"] for lock in json.loads(listed.output)] == ["cron:report"]

        cleaned = runner.invoke(app, ["locks", "cleanup", "--database", str(db_path)])
        assert cleaned.exit_code == 0
        assert "Removed 1 expired lock(s)" in cleaned.output

    def test_list_empty(self, db_path):
        result = runner.invoke(app, ["locks", "list", "--database", str(db_path)])
        assert result.exit_code == 0
        assert "No items" in result.output
