"""Tests for the jobs HTTP controller using FastAPI TestClient."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from jobspine.boundary.api import create_app
from jobspine.execution.registry import JobRegistry
from jobspine.execution.runnable import FunctionJob
from jobspine.execution.runner import SyncJobRunner


def _disk_full():
    raise OSError("disk full")


class _ExportFile:
    def __init__(self, path):
        self.path = path

    def __str__(self):
        return f"ExportFile({self.path})"


@pytest.fixture
def registry(ledger):
    runner = SyncJobRunner(ledger=ledger)
    registry = JobRegistry()
    registry.register(FunctionJob("report", lambda: {"rows": 3}, runner=runner), description="Daily report")
    registry.register(FunctionJob("broken", _disk_full, runner=runner))
    return registry


@pytest.fixture
def client(registry, ledger):
    with TestClient(create_app(registry, ledger)) as c:
        yield c


class TestListJobs:
    def test_lists_registered_jobs(self, client):
        resp = client.get("/jobs")

        assert resp.status_code == 200
        body = resp.json()
        assert [job["name"] for job in body] == ["broken", "report"]
        assert body[1]["description"] == "Daily report"


class TestRunJob:
    def test_success(self, client):
        resp = client.post("/jobs/report/run")

        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "success"
        assert body["output"] == {"rows": 3}
        assert body["duration_ms"] >= 0
        assert body["execution_id"]

    def test_failure_is_500_with_captured_message(self, client):
        resp = client.post("/jobs/broken/run")

        assert resp.status_code == 500
        error = resp.json()["error"]
        assert error["code"] == "JOB_FAILED"
        assert "disk full" in error["message"]
        assert error["job_name"] == "broken"
        assert error["execution_id"]

    def test_unknown_job_is_404(self, client):
        resp = client.post("/jobs/missing/run")
        assert resp.status_code == 404

    def test_user_header_recorded_as_trigger(self, client, ledger):
        resp = client.post("/jobs/report/run", headers={"X-User-Id": "alice"})

        row = ledger.get_execution(resp.json()["execution_id"])
        assert row.triggered_by == "alice"

    def test_trigger_defaults_to_api(self, client, ledger):
        resp = client.post("/jobs/report/run")
        assert ledger.get_execution(resp.json()["execution_id"]).triggered_by == "api"

    def test_non_json_output_is_stringified(self, ledger):
        registry = JobRegistry()
        registry.register(FunctionJob("export", lambda: {"file": _ExportFile("daily.csv")}))

        with TestClient(create_app(registry, ledger)) as c:
            resp = c.post("/jobs/export/run")

        assert resp.status_code == 200
        assert resp.json()["output"] == {"file": "ExportFile(daily.csv)"}


class TestExecutionHistory:
    def test_job_executions(self, client):
        client.post("/jobs/report/run")
        client.post("/jobs/broken/run")

        resp = client.get("/jobs/report/executions")

        assert resp.status_code == 200
        rows = resp.json()
        assert len(rows) == 1
        assert rows[0]["status"] == "SUCCESS"
        assert rows[0]["result"] == {"output": {"rows": 3}}

    def test_status_filter(self, client):
        client.post("/jobs/broken/run")

        failed = client.get("/jobs/broken/executions", params={"status": "failed"}).json()
        assert [row["status"] for row in failed] == ["FAILED"]
        assert client.get("/jobs/broken/executions", params={"status": "success"}).json() == []

    def test_invalid_status_is_400(self, client):
        assert client.get("/jobs/report/executions", params={"status": "bogus"}).status_code == 400

    def test_get_execution(self, client):
        execution_id = client.post("/jobs/broken/run").json()["error"]["execution_id"]

        resp = client.get(f"/executions/{execution_id}")

        assert resp.status_code == 200
        body = resp.json()
        assert body["job_name"] == "broken"
        assert body["status"] == "FAILED"
        assert body["result"]["error"]["message"] == "disk full"

    def test_unknown_execution_is_404(self, client):
        assert client.get("/executions/missing").status_code == 404

    def test_history_without_ledger_is_404(self, registry):
        with TestClient(create_app(registry)) as c:
            assert c.get("/jobs/report/executions").status_code == 404
            assert c.post("/jobs/report/run").status_code == 200
