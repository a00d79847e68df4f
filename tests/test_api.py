"""Tests for the HTTP surface."""

from unittest.mock import Mock, patch

import pytest
from fastapi.testclient import TestClient

from api.main import app
from modules.models import RunStatus, RunSummary


def _summary(status=RunStatus.PARTIAL_FAILURE, errors=("senate: blocked",)) -> RunSummary:
    return RunSummary(
        run_id=7, status=status, total_found=4, total_saved=2,
        per_source_found={"house": 4, "senate": 0}, per_source_saved={"house": 2, "senate": 0},
        errors=list(errors), duration_ms=120,
    )


@pytest.fixture
def client(db):
    with patch("api.main.get_db", return_value=db):
        with TestClient(app) as test_client:
            yield test_client


class TestScrape:
    def test_test_mode_run(self, client):
        response = client.post("/api/scrape", json={"testMode": True})

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["status"] == "Success"
        assert data["totalSaved"] > 0
        assert list(data["perSourceSaved"]) == ["synthetic"]
        assert data["errors"] == []
        assert isinstance(data["runId"], int)
        assert "durationMs" in data

    def test_partial_failure_is_still_200(self, client):
        with patch("api.routes.scrape.IngestOrchestrator") as orchestrator_cls:
            orchestrator_cls.return_value.run.return_value = _summary()
            response = client.post("/api/scrape", json={"maxPages": 2})

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "PartialFailure"
        assert data["errors"] == ["senate: blocked"]
        assert data["perSourceFound"] == {"house": 4, "senate": 0}
        orchestrator_cls.return_value.run.assert_called_once_with(2)

    def test_default_body(self, client):
        with patch("api.routes.scrape.IngestOrchestrator") as orchestrator_cls:
            orchestrator_cls.return_value.run.return_value = _summary(RunStatus.NO_DATA, ())
            response = client.post("/api/scrape")

        assert response.status_code == 200
        orchestrator_cls.return_value.run.assert_called_once_with(3)

    def test_orchestrator_construction_failure_is_500(self, client):
        with patch("api.routes.scrape.IngestOrchestrator",
                   side_effect=RuntimeError("unable to open database file")):
            response = client.post("/api/scrape", json={})

        assert response.status_code == 500
        assert "unable to open database file" in response.json()["detail"]


class TestCron:
    def test_status(self, client):
        response = client.get("/api/cron")

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert {t["name"] for t in data["tasks"]} == {"daily-scrape", "weekly-deep-scrape"}
        assert all("isRunning" in t for t in data["tasks"])

    def test_stop_one_then_start_all(self, client):
        response = client.post("/api/cron", json={"action": "stop:daily-scrape"})
        assert response.status_code == 200
        tasks = {t["name"]: t["isRunning"] for t in response.json()["tasks"]}
        assert tasks == {"daily-scrape": False, "weekly-deep-scrape": True}

        response = client.post("/api/cron", json={"action": "start-all"})
        assert all(t["isRunning"] for t in response.json()["tasks"])

    def test_stop_all(self, client):
        client.post("/api/cron", json={"action": "stop-all"})
        tasks = client.get("/api/cron").json()["tasks"]
        assert not any(t["isRunning"] for t in tasks)

    def test_trigger_daily_returns_summary(self, client):
        run_fn = Mock(return_value=_summary(RunStatus.SUCCESS, ()))
        client.app.state.scheduler.run_fn = run_fn

        response = client.post("/api/cron", json={"action": "trigger-daily"})

        assert response.status_code == 200
        data = response.json()
        assert data["result"]["totalSaved"] == 2
        run_fn.assert_called_once_with(max_pages=3)

    def test_trigger_failure_is_500(self, client):
        client.app.state.scheduler.run_fn = Mock(side_effect=RuntimeError("database locked"))
        response = client.post("/api/cron", json={"action": "trigger-weekly"})
        assert response.status_code == 500

    @pytest.mark.parametrize("action", ["reboot", "stop:hourly-scrape", ""])
    def test_unknown_action_is_400(self, client, action):
        response = client.post("/api/cron", json={"action": action})
        assert response.status_code == 400


class TestSystem:
    def test_runs_history(self, client):
        run_id = client.post("/api/scrape", json={"testMode": True}).json()["runId"]

        runs = client.get("/api/runs").json()
        assert runs[0]["id"] == run_id
        assert runs[0]["testMode"] is True

        run = client.get(f"/api/runs/{run_id}").json()
        assert run["status"] == "Success"
        assert run["perSourceSaved"]["synthetic"] == run["totalSaved"]

    def test_missing_run_is_404(self, client):
        assert client.get("/api/runs/99999").status_code == 404

    def test_stats_by_provenance(self, client):
        client.post("/api/scrape", json={"testMode": True})
        stats = client.get("/api/stats").json()
        assert stats["total_transactions"] > 0
        assert set(stats["by_provenance"]) == {"synthetic"}
        assert stats["total_runs"] == 1

    def test_logs(self, client):
        client.post("/api/scrape", json={"testMode": True})
        logs = client.get("/api/logs", params={"limit": 5}).json()
        assert logs
        assert all(log["module"] == "orchestrator" for log in logs)

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "ok"}
