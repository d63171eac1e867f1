"""Load clean transcript content for a session."""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass, field
from typing import Any

from harvest.db.database import Database, get_database
from harvest.utils.text import normalize_transcript

logger = logging.getLogger(__name__)


@dataclass
class Transcript:
    """Clean transcript text plus lightweight session metadata."""

    content: str
    metadata: dict[str, Any] = field(default_factory=dict)


def load_transcript(
    session_id: str,
    db: Database | None = None,
    *,
    normalize: bool = False,
) -> Transcript | None:
    """Load the clean transcript for a session.

    Args:
        session_id: Session ID.
        db: Record store (defaults to the global database).
        normalize: Strip escape sequences and blank-line runs from the text.

    Returns:
        The transcript, or None when no clean text is stored or the store
        fails. Missing session metadata is not an error.
    """
    db = db or get_database()

    try:
        record = db.get_clean_transcript(session_id)
    except sqlite3.Error as e:
        logger.error(f"Error loading transcript for {session_id}: {e}")
        return None

    if record is None:
        logger.warning(f"No clean transcript found for session {session_id}")
        return None

    clean_text = record.get("clean_text")
    if not clean_text:
        logger.warning(f"Empty clean text for session {session_id}")
        return None

    session: dict[str, Any] | None = None
    try:
        session = db.get_session(session_id)
    except sqlite3.Error as e:
        logger.debug(f"Session metadata unavailable for {session_id}: {e}")

    if normalize:
        clean_text = normalize_transcript(clean_text)

    file_refs = record.get("file_refs") or []
    logger.info(
        f"Loaded clean transcript for {session_id} "
        f"({len(clean_text)} chars, {len(file_refs)} file refs)"
    )

    return Transcript(
        content=clean_text,
        metadata={
            "source": "clean_transcripts",
            "summary": session.get("summary") if session else None,
            "slug": session.get("project_slug") if session else None,
            "file_refs": file_refs,
        },
    )
