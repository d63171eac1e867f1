"""Tests for the status API."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from harvest.api.app import create_app

LAST_RUN = {
    "id": 2,
    "status": "RUN_PARTIAL",
    "mode": "scheduled",
    "dry_run": False,
    "started_at": "2026-05-01T08:00:00.000000+00:00",
    "finished_at": "2026-05-01T08:00:02.500000+00:00",
    "duration_seconds": 2.5,
    "stats": {"sessions_scanned": 3, "inserted": 7, "errors": 1},
    "error": None,
}

TOTALS = {
    "total_runs": 2,
    "total_items_extracted": 12,
    "first_run_at": "2026-04-30T08:00:00.000000+00:00",
}


@pytest.fixture
def client():
    """Create a test client for the API."""
    app = create_app()
    return TestClient(app)


@pytest.fixture
def mock_database():
    """Create a mock database with one recorded run."""
    mock_db = MagicMock()
    mock_db.get_last_run.return_value = LAST_RUN
    mock_db.get_run_totals.return_value = TOTALS
    return mock_db


class TestHealthEndpoint:
    """Tests for GET /health endpoint."""

    def test_health_returns_status(self, client: TestClient, mock_database: MagicMock):
        """Health check returns identity and last run."""
        with patch("harvest.api.routes.health.get_database", return_value=mock_database):
            response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["ok"] is True
        assert data["service"] == "harvest"
        assert data["version"] == "1.0.0"
        assert data["database"] == "connected"
        assert data["last_run_at"] == LAST_RUN["finished_at"]
        assert data["last_result"]["status"] == "RUN_PARTIAL"
        assert data["last_result"]["duration"] == "2.5s"
        assert data["last_result"]["inserted"] == 7
        assert data["total_runs"] == 2
        assert data["total_items_extracted"] == 12

    def test_health_before_first_run(self, client: TestClient, mock_database: MagicMock):
        """Health check works with an empty run history."""
        mock_database.get_last_run.return_value = None
        mock_database.get_run_totals.return_value = {
            "total_runs": 0,
            "total_items_extracted": 0,
            "first_run_at": None,
        }
        with patch("harvest.api.routes.health.get_database", return_value=mock_database):
            response = client.get("/health")

        data = response.json()
        assert data["last_run_at"] is None
        assert data["last_result"] is None
        assert data["total_runs"] == 0

    def test_health_handles_db_error(self, client: TestClient):
        """Health check reports database errors instead of failing."""
        with patch(
            "harvest.api.routes.health.get_database",
            side_effect=Exception("DB connection failed"),
        ):
            response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["ok"] is True
        assert data["database"] == "error"
        assert data["total_runs"] == 0


class TestStatusEndpoint:
    """Tests for GET /status endpoint."""

    def test_status_returns_run_counters(self, client: TestClient, mock_database: MagicMock):
        with patch("harvest.api.routes.health.get_database", return_value=mock_database):
            response = client.get("/status")

        assert response.status_code == 200
        data = response.json()
        assert data["last_result"]["mode"] == "scheduled"
        assert data["last_result"]["errors"] == 1
        assert data["first_run_at"] == TOTALS["first_run_at"]
        assert "version" not in data

    def test_status_against_real_store(self, client: TestClient, test_db):
        with patch("harvest.api.routes.health.get_database", return_value=test_db):
            response = client.get("/status")

        assert response.status_code == 200
        assert response.json()["total_runs"] == 0


class TestCors:
    """Tests for CORS configuration."""

    def test_any_origin_may_read(self, client: TestClient, mock_database: MagicMock):
        with patch("harvest.api.routes.health.get_database", return_value=mock_database):
            response = client.get("/health", headers={"Origin": "http://dashboard.local"})

        assert response.headers["access-control-allow-origin"] == "*"
