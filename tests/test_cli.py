"""Tests for the command line interface."""

import json
from datetime import timedelta

import pytest
from click.testing import CliRunner

from harvest.cli.main import cli
from harvest.db.database import Database
from harvest.utils.text import utc_now


TRANSCRIPT = """USER: Please look at the checkout flow for the dashboard
ASSISTANT: Looking now.
BUG: checkout drops the coupon code
"""


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def cli_db(temp_dir, monkeypatch):
    """Point the CLI at a fresh database holding one ai-chad session."""
    db_path = temp_dir / "cli.db"
    monkeypatch.setenv("HARVEST_DB_PATH", str(db_path))
    monkeypatch.setattr("harvest.cli.main.setup_logging", lambda: None)

    db = Database(db_path)
    db.migrate()
    db.upsert_project("p-chad", "ai-chad")
    db.insert_session("s1", "ai-chad", created_at=utc_now() - timedelta(minutes=10))
    db.insert_clean_transcript("s1", TRANSCRIPT)
    yield db
    db.close()


class TestExtractCommand:
    """Tests for `harvest extract`."""

    def test_json_report(self, runner, cli_db):
        result = runner.invoke(cli, ["extract", "--json"])

        assert result.exit_code == 0, result.output
        report = json.loads(result.stdout)
        assert report["status"] == "RUN_OK"
        assert report["mode"] == "manual"
        assert report["inserted"] == 2
        assert report["bugs"] == 1
        assert cli_db.get_session("s1")["status"] == "extracted"

    def test_dry_run(self, runner, cli_db):
        result = runner.invoke(cli, ["extract", "--dry-run", "--scheduled", "--json"])

        assert result.exit_code == 0, result.output
        report = json.loads(result.stdout)
        assert report["dry_run"] is True
        assert report["mode"] == "scheduled"
        assert report["inserted"] == 0
        assert [p["bucket"] for p in report["previews"]] == ["Work Log", "Bugs Open"]
        assert cli_db.get_staged_items() == []

    def test_single_session(self, runner, cli_db):
        result = runner.invoke(cli, ["extract", "--session", "s1", "--json"])

        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout)["sessions_scanned"] == 1

    def test_window_excludes_old_sessions(self, runner, cli_db):
        result = runner.invoke(cli, ["extract", "--since", "5m", "--json"])

        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout)["sessions_scanned"] == 0

    def test_status_any(self, runner, cli_db):
        cli_db.update_session("s1", status="active")

        result = runner.invoke(cli, ["extract", "--status", "any", "--json"])

        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout)["sessions_scanned"] == 1

    def test_invalid_slugs_exit_nonzero(self, runner, cli_db):
        result = runner.invoke(cli, ["extract", "--slugs", "terminal,unassigned"])

        assert result.exit_code == 1
        assert "No valid slugs provided" in result.output
        assert cli_db.get_last_run() is None

    @pytest.mark.parametrize("limit", ["0", "-1"])
    def test_limit_must_be_positive(self, runner, cli_db, limit):
        result = runner.invoke(cli, ["extract", "--limit", limit])

        assert result.exit_code == 2
        assert cli_db.get_last_run() is None
        assert cli_db.get_staged_items() == []

    def test_human_report(self, runner, cli_db):
        result = runner.invoke(cli, ["extract", "--slugs", "ai-chad"])

        assert result.exit_code == 0, result.output
        assert "EXTRACTION COMPLETE - RUN_OK" in result.output
        assert "inserted=2" in result.output


class TestOtherCommands:
    """Tests for init, status and version."""

    def test_init(self, runner, temp_dir, monkeypatch):
        db_path = temp_dir / "fresh.db"
        monkeypatch.setenv("HARVEST_DB_PATH", str(db_path))
        monkeypatch.setattr("harvest.cli.main.setup_logging", lambda: None)

        result = runner.invoke(cli, ["init"])

        assert result.exit_code == 0, result.output
        assert db_path.exists()

    def test_status_after_run(self, runner, cli_db):
        runner.invoke(cli, ["extract", "--json"])

        result = runner.invoke(cli, ["status"])

        assert result.exit_code == 0, result.output
        payload = json.loads(result.stdout)
        assert payload["total_runs"] == 1
        assert payload["total_items_extracted"] == 2
        assert payload["last_result"]["status"] == "RUN_OK"

    def test_version(self, runner):
        result = runner.invoke(cli, ["--version"])

        assert result.exit_code == 0
        assert "1.0.0" in result.output
