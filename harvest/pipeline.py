"""Extraction run orchestration.

A run selects sessions, then processes them one at a time:
load -> extract -> validate -> (dry run: preview) | (stage + mark, one transaction).
A failure inside one session is logged, counted and annotated on that
session; the run moves on to the next one. Only failures outside the
per-session loop, or a run without any allowed slug, fail the run.
"""

from __future__ import annotations

import logging
import sqlite3
import time
from collections.abc import Sequence
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any

from harvest import __version__
from harvest.buckets import stats_key_for
from harvest.config import Config, get_config
from harvest.db.database import Database, get_database
from harvest.extract.items import CandidateItem, extract_items
from harvest.extract.validate import validate_items
from harvest.projects.resolver import ProjectCache, ProjectResolver
from harvest.sessions.select import select_sessions
from harvest.sessions.state import mark_extracted, mark_extraction_failed
from harvest.sessions.transcript import load_transcript
from harvest.stage.staging import insert_staging
from harvest.utils.text import utc_now

logger = logging.getLogger(__name__)

RUN_OK = "RUN_OK"
RUN_PARTIAL = "RUN_PARTIAL"
RUN_FAILED = "RUN_FAILED"

PREVIEWS_PER_SESSION = 3


class NoValidSlugsError(ValueError):
    """None of the requested slugs is on the allowlist."""


class SessionStateError(RuntimeError):
    """A session could not be marked; its staged rows are rolled back."""


@dataclass
class RunOptions:
    """Options for one extraction run."""

    session_id: str | None = None
    since: str = "3h"
    slugs: list[str] = field(default_factory=list)
    limit: int = 10
    dry_run: bool = False
    scheduled: bool = False
    status: str | None = "cleaned"
    verify_transcripts: bool = True
    normalize: bool = False

    @property
    def mode(self) -> str:
        return "scheduled" if self.scheduled else "manual"

    @classmethod
    def from_config(cls, config: Config | None = None, **overrides: Any) -> RunOptions:
        """Build options from configuration, with explicit overrides winning.

        Overrides set to None are ignored, except ``session_id``.
        """
        extraction = (config or get_config()).extraction
        options = cls(
            since=extraction.since,
            slugs=list(extraction.allowed_slugs),
            limit=extraction.limit,
            status=extraction.status,
            verify_transcripts=extraction.verify_transcripts,
            normalize=extraction.normalize_transcripts,
        )
        for key, value in overrides.items():
            if value is not None or key == "session_id":
                setattr(options, key, value)
        return options


@dataclass
class RunStats:
    """Counters accumulated over a run."""

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

    def count_items(self, items: Sequence[CandidateItem]) -> None:
        """Add valid items to the per-bucket counters."""
        for item in items:
            key = stats_key_for(item.bucket)
            if key:
                setattr(self, key, getattr(self, key) + 1)

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


@dataclass
class ItemPreview:
    """Short description of an item a dry run would stage."""

    session_id: str
    bucket: str
    text: str


@dataclass
class RunReport:
    """Outcome of an extraction run."""

    mode: str
    dry_run: bool
    started_at: datetime
    stats: RunStats = field(default_factory=RunStats)
    finished_at: datetime | None = None
    duration_seconds: float = 0.0
    previews: list[ItemPreview] = field(default_factory=list)
    error: str | None = None

    @property
    def status(self) -> str:
        if self.error:
            return RUN_FAILED
        return RUN_OK if self.stats.errors == 0 else RUN_PARTIAL

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "mode": self.mode,
            "dry_run": self.dry_run,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "duration": f"{self.duration_seconds:.1f}s",
            "error": self.error,
            **self.stats.to_dict(),
        }


def filter_allowed_slugs(slugs: Sequence[str], allowed: Sequence[str]) -> list[str]:
    """Keep requested slugs that start with an allowlisted slug.

    Examples:
        >>> filter_allowed_slugs(["ai-chad", "terminal", " nextbid-web "], ["ai-chad", "nextbid"])
        ['ai-chad', 'nextbid-web']
    """
    cleaned = [slug.strip() for slug in slugs if slug and slug.strip()]
    return [slug for slug in cleaned if any(slug.startswith(a) for a in allowed)]


def _process_session(
    session: dict[str, Any],
    options: RunOptions,
    report: RunReport,
    *,
    db: Database,
    resolver: ProjectResolver,
) -> None:
    """Run one session through the pipeline. Exceptions propagate to the caller."""
    session_id = session["id"]
    slug = session.get("project_slug")
    stats = report.stats

    logger.info(f"Processing session {session_id} (slug={slug}, created={session.get('created_at')})")

    transcript = load_transcript(session_id, db=db, normalize=options.normalize)
    if transcript is None:
        logger.warning(f"No transcript content for session {session_id}")
        return

    items = extract_items(transcript, session)
    result = validate_items(items)

    if result.invalid:
        reasons = [entry.error for entry in result.invalid[:3]]
        logger.warning(f"{len(result.invalid)} items failed validation for {session_id}: {reasons}")

    if not result.valid:
        logger.info(f"No valid items extracted from session {session_id}")
        return

    stats.count_items(result.valid)

    if options.dry_run:
        logger.info(f"[DRY RUN] Would stage {len(result.valid)} items from {session_id}")
        for item in result.valid[:PREVIEWS_PER_SESSION]:
            report.previews.append(
                ItemPreview(
                    session_id=session_id,
                    bucket=item.bucket,
                    text=(item.title or item.content)[:60],
                )
            )
        stats.sessions_processed += 1
        return

    # Staged rows and the status change commit together.
    with db.transaction():
        staged = insert_staging(result.valid, session_id, slug, resolver=resolver, db=db)
        if not staged.guardrail_rejected:
            marked = mark_extracted(
                session_id,
                {
                    "extraction_version": __version__,
                    "items_created": staged.inserted,
                    "duplicates_skipped": staged.duplicates,
                    "items_rejected": staged.rejected,
                },
                db=db,
            )
            if not marked:
                raise SessionStateError(f"Could not mark session {session_id} as extracted")

    stats.inserted += staged.inserted
    stats.duplicates += staged.duplicates
    stats.rejected += staged.rejected

    if staged.guardrail_rejected:
        mark_extraction_failed(session_id, staged.error or "staging rejected", db=db)
        return

    stats.sessions_processed += 1


def _record_run(db: Database, report: RunReport) -> None:
    try:
        db.record_run(
            started_at=report.started_at,
            finished_at=report.finished_at or utc_now(),
            mode=report.mode,
            dry_run=report.dry_run,
            status=report.status,
            duration_seconds=report.duration_seconds,
            stats=report.stats.to_dict(),
            error=report.error,
        )
    except sqlite3.Error as e:
        logger.error(f"Failed to record run history: {e}")


def run_extraction(
    options: RunOptions,
    *,
    allowed_slugs: Sequence[str] | None = None,
    db: Database | None = None,
    resolver: ProjectResolver | None = None,
    record: bool = True,
) -> RunReport:
    """Run one extraction pass.

    Args:
        options: Run options.
        allowed_slugs: Slug allowlist (defaults to configuration).
        db: Record store (defaults to the global database).
        resolver: Project resolver; one cache is shared across the run.
        record: Persist the run outcome for the status surface.

    Raises:
        NoValidSlugsError: If no requested slug is allowed. Nothing is touched.

    Returns:
        The run report. Unexpected errors outside the session loop are
        recorded on the report and re-raised.
    """
    config = get_config()
    allowed = list(allowed_slugs if allowed_slugs is not None else config.extraction.allowed_slugs)

    valid_slugs = filter_allowed_slugs(options.slugs, allowed)
    if not valid_slugs:
        logger.error(f"No valid slugs provided: {list(options.slugs)} (allowed: {allowed})")
        raise NoValidSlugsError("No valid slugs provided")

    db = db or get_database()
    resolver = resolver or ProjectResolver(
        db, ProjectCache(ttl_seconds=config.projects.cache_ttl_seconds)
    )

    report = RunReport(mode=options.mode, dry_run=options.dry_run, started_at=utc_now())
    started = time.monotonic()

    logger.info(
        f"Starting extraction run (mode={options.mode}, since={options.since}, "
        f"dry_run={options.dry_run})"
    )

    try:
        if options.session_id:
            sessions = select_sessions(session_id=options.session_id, db=db)
        else:
            sessions = select_sessions(
                since=options.since,
                slugs=valid_slugs,
                limit=options.limit,
                status=options.status,
                verify_transcripts=options.verify_transcripts,
                overfetch_factor=config.extraction.overfetch_factor,
                db=db,
            )

        report.stats.sessions_scanned = len(sessions)
        logger.info(f"Found {len(sessions)} sessions to process")

        for session in sessions:
            try:
                _process_session(session, options, report, db=db, resolver=resolver)
            except Exception as e:
                logger.exception(f"Error processing session {session.get('id')}")
                report.stats.errors += 1
                if not options.dry_run:
                    mark_extraction_failed(session["id"], str(e), db=db)

    except Exception as e:
        logger.exception("Extraction run failed")
        report.error = str(e)
        report.stats.errors += 1
        raise
    finally:
        report.finished_at = utc_now()
        report.duration_seconds = time.monotonic() - started
        if record:
            _record_run(db, report)
        _log_report(report)

    return report


def _log_report(report: RunReport) -> None:
    stats = report.stats
    logger.info(
        f"{report.status} sessions_scanned={stats.sessions_scanned} "
        f"sessions_processed={stats.sessions_processed} todos={stats.todos} "
        f"bugs={stats.bugs} worklogs={stats.worklogs} decisions={stats.decisions} "
        f"inserted={stats.inserted} duplicates={stats.duplicates} "
        f"rejected={stats.rejected} errors={stats.errors} "
        f"duration={report.duration_seconds:.1f}s"
    )
