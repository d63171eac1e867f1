"""Health and status endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter

from harvest import __version__
from harvest.api.schemas import HealthResponse, StatusResponse
from harvest.db.database import Database, get_database
from harvest.utils.text import utc_timestamp

router = APIRouter()


def build_status(db: Database) -> dict[str, Any]:
    """Assemble last-run statistics and cumulative counters from run history."""
    last = db.get_last_run()
    totals = db.get_run_totals()

    last_result = None
    if last is not None:
        last_result = {
            "status": last["status"],
            "mode": last["mode"],
            "dry_run": last["dry_run"],
            "started_at": last["started_at"],
            "finished_at": last["finished_at"],
            "duration": f"{last['duration_seconds']:.1f}s",
            "error": last.get("error"),
            **(last.get("stats") or {}),
        }

    return {
        "last_run_at": last["finished_at"] if last else None,
        "last_result": last_result,
        "last_error": last.get("error") if last else None,
        **totals,
    }


@router.get("/health", response_model=HealthResponse)
def health_check() -> dict[str, Any]:
    """Health check endpoint.

    Returns service identity, database state and the last run.
    """
    try:
        status = build_status(get_database())
        db_status = "connected"
    except Exception:
        status = {}
        db_status = "error"

    return {
        "ok": True,
        "version": __version__,
        "timestamp": utc_timestamp(),
        "database": db_status,
        **status,
    }


@router.get("/status", response_model=StatusResponse)
def run_status() -> dict[str, Any]:
    """Last run statistics and cumulative run counters."""
    return build_status(get_database())
