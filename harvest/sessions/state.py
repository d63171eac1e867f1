"""Session state transitions after an extraction attempt.

Both transitions are best effort: a store error is logged and reported
through the return value, never raised. Staged items already written are
not rolled back; a session left unmarked is re-selected on a later run and
its items are caught by fingerprint dedup.
"""

from __future__ import annotations

import logging
import sqlite3
from typing import Any

from harvest.config import get_config
from harvest.db.database import Database, get_database
from harvest.utils.text import utc_timestamp

logger = logging.getLogger(__name__)


def mark_extracted(
    session_id: str,
    metadata: dict[str, Any] | None = None,
    db: Database | None = None,
) -> bool:
    """Move a session to the terminal ``extracted`` state.

    Args:
        session_id: Session ID.
        metadata: Extraction metadata (extractor version, items created,
            duplicates skipped).
        db: Record store (defaults to the global database).

    Returns:
        True if the session row was updated.
    """
    db = db or get_database()
    metadata = metadata or {}
    now = utc_timestamp()

    try:
        updated = db.update_session(
            session_id,
            status="extracted",
            extracted_at=now,
            extraction_metadata={
                **metadata,
                "extractor": get_config().extraction.extractor_name,
                "timestamp": now,
            },
        )
    except sqlite3.Error as e:
        logger.error(f"Failed to mark session {session_id} as extracted: {e}")
        return False

    if not updated:
        logger.error(f"Failed to mark session {session_id} as extracted: no such session")
        return False

    logger.info(
        f"Session {session_id} marked as extracted "
        f"(items={metadata.get('items_created')}, "
        f"duplicates={metadata.get('duplicates_skipped')})"
    )
    return True


def mark_extraction_failed(session_id: str, reason: str, db: Database | None = None) -> bool:
    """Annotate a failed extraction without advancing the session status.

    The session stays eligible for the next run.
    """
    db = db or get_database()

    try:
        updated = db.update_session(
            session_id,
            extraction_metadata={
                "failed": True,
                "reason": reason,
                "timestamp": utc_timestamp(),
            },
        )
    except sqlite3.Error as e:
        logger.error(f"Failed to record extraction failure for {session_id}: {e}")
        return False

    if updated:
        logger.info(f"Recorded extraction failure for {session_id}: {reason}")
    return bool(updated)
