"""Pydantic models for status responses."""

from __future__ import annotations

from pydantic import BaseModel, Field


class RunSummary(BaseModel):
    """Outcome of the most recent extraction run."""

    status: str = Field(..., description="RUN_OK, RUN_PARTIAL or RUN_FAILED")
    mode: str
    dry_run: bool
    started_at: str
    finished_at: str
    duration: str
    error: str | None = None
    sessions_scanned: int = 0
    sessions_processed: int = 0
    todos: int = 0
    bugs: int = 0
    worklogs: int = 0
    decisions: int = 0
    inserted: int = 0
    duplicates: int = 0
    rejected: int = 0
    errors: int = 0


class StatusResponse(BaseModel):
    """Last run statistics and cumulative counters."""

    last_run_at: str | None = None
    last_result: RunSummary | None = None
    last_error: str | None = None
    total_runs: int = 0
    total_items_extracted: int = 0
    first_run_at: str | None = None


class HealthResponse(StatusResponse):
    """Health payload: service identity plus status."""

    ok: bool = True
    service: str = "harvest"
    role: str = "Guardrailed Extraction Scheduler"
    version: str
    timestamp: str
    database: str
