"""Write validated items to the staging area.

Items are only staged with a resolved project ID: when a session's slug
cannot be resolved, the whole batch is rejected. Each item is keyed by a
content fingerprint under a unique index; an insert that hits the index
counts as a duplicate, which keeps re-runs over overlapping windows
idempotent.
"""

from __future__ import annotations

import dataclasses
import hashlib
import logging
import sqlite3
from dataclasses import dataclass
from typing import Any

from harvest import __version__
from harvest.buckets import bucket_value, category_for
from harvest.config import get_config
from harvest.db.database import Database, get_database
from harvest.extract.items import CandidateItem
from harvest.projects.resolver import ProjectMatch, ProjectResolver
from harvest.utils.text import utc_timestamp

logger = logging.getLogger(__name__)

UNRESOLVED_PROJECT = "project_id unresolved"


@dataclass
class StagingResult:
    """Counts from one staging batch."""

    inserted: int = 0
    duplicates: int = 0
    rejected: int = 0
    error: str | None = None

    @property
    def guardrail_rejected(self) -> bool:
        return self.error == UNRESOLVED_PROJECT


def compute_fingerprint(item: CandidateItem) -> str:
    """Compute the dedup key of an item.

    SHA-256 over the title, the first 200 characters of content and the
    first evidence entry's session reference.
    """
    session_ref = ""
    if item.evidence:
        session_ref = item.evidence[0].session_id or ""
    data = "|".join([item.title or "", (item.content or "")[:200], session_ref])
    return hashlib.sha256(data.encode()).hexdigest()


def build_staged_row(
    item: CandidateItem,
    *,
    session_id: str,
    project: ProjectMatch,
    project_slug: str | None,
    fingerprint: str,
) -> dict[str, Any]:
    """Build the staged record for a validated item."""
    now = utc_timestamp()
    title = item.title or item.content[:200].split("\n")[0]

    metadata: dict[str, Any] = {
        "evidence": [dataclasses.asdict(entry) for entry in item.evidence],
        "extractor": get_config().extraction.extractor_name,
        "extractor_version": __version__,
        "project_slug": project_slug,
        "resolved_slug": project.slug,
        "resolved_via": project.strategy,
        "extracted_at": now,
    }
    if item.metadata:
        metadata["item"] = item.metadata

    return {
        "bucket": bucket_value(item.bucket),
        "category": category_for(item.bucket),
        "content": item.content,
        "title": title,
        "priority": item.priority or "medium",
        "status": "pending",
        "session_id": session_id,
        "project_id": project.project_id,
        "fingerprint": fingerprint,
        "metadata": metadata,
        "created_at": now,
    }


def insert_staging(
    items: list[CandidateItem],
    session_id: str,
    project_slug: str | None = None,
    *,
    resolver: ProjectResolver | None = None,
    db: Database | None = None,
) -> StagingResult:
    """Stage validated items for a session.

    Args:
        items: Validated items.
        session_id: Session the items came from.
        project_slug: The session's project slug.
        resolver: Project resolver (a fresh one over ``db`` by default).
        db: Record store (defaults to the global database).

    Returns:
        Inserted, duplicate and rejected counts. An unresolved project
        rejects the whole batch and sets ``error``.
    """
    db = db or get_database()
    resolver = resolver or ProjectResolver(db)

    project = resolver.resolve_match(project_slug)
    if project is None:
        logger.error(
            f"REJECTED: cannot resolve project for slug {project_slug!r} "
            f"(session={session_id}, items={len(items)})"
        )
        return StagingResult(rejected=len(items), error=UNRESOLVED_PROJECT)

    logger.info(
        f"Resolved project {project_slug!r} -> {project.project_id[:8]} ({project.strategy})"
    )

    result = StagingResult()
    for item in items:
        row = build_staged_row(
            item,
            session_id=session_id,
            project=project,
            project_slug=project_slug,
            fingerprint=compute_fingerprint(item),
        )
        try:
            db.insert_staged_item(row)
            result.inserted += 1

        except sqlite3.IntegrityError as e:
            if "UNIQUE" not in str(e):
                logger.error(f"Insert failed for {bucket_value(item.bucket)} item: {e}")
                result.rejected += 1
                continue
            logger.debug(f"Duplicate fingerprint {row['fingerprint'][:12]} for {session_id}")
            result.duplicates += 1
        except sqlite3.Error as e:
            logger.error(f"Insert failed for {bucket_value(item.bucket)} item: {e}")
            result.rejected += 1

    logger.info(
        f"Staging complete for {session_id}: inserted={result.inserted} "
        f"duplicates={result.duplicates} rejected={result.rejected}"
    )
    return result
