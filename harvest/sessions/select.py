"""Select sessions ready for extraction.

Selection criteria:
1. Created inside the lookback window (newest first)
2. Status filter when one is given; ``extracted`` sessions are never returned
3. Project slug passes the truth gate
4. Optionally, a clean transcript is stored for the session
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Sequence
from typing import Any

from harvest.db.database import Database, get_database
from harvest.utils.duration import cutoff_from

logger = logging.getLogger(__name__)

RESERVED_SLUGS = frozenset({"unassigned", "terminal"})

EXTRACTED_STATUS = "extracted"


def passes_truth_gate(slug: str | None, allowed: Sequence[str] = ()) -> bool:
    """Decide whether a session's project slug admits it to extraction.

    With an allowlist, the slug must contain at least one allowed token.
    Without one, any slug other than the reserved sentinels passes. An empty
    slug never passes.

    Examples:
        >>> passes_truth_gate("ai-chad-2", ["ai-chad"])
        True
        >>> passes_truth_gate("terminal")
        False
        >>> passes_truth_gate("", ["ai-chad"])
        False
    """
    if not slug:
        return False
    if allowed:
        return any(token in slug for token in allowed)
    return slug not in RESERVED_SLUGS


def select_sessions(
    *,
    session_id: str | None = None,
    since: str = "3h",
    slugs: Sequence[str] = (),
    limit: int = 10,
    status: str | None = None,
    verify_transcripts: bool = False,
    overfetch_factor: int = 3,
    db: Database | None = None,
) -> list[dict[str, Any]]:
    """Select sessions ready for extraction.

    Args:
        session_id: Fetch exactly this session (all other filters ignored).
        since: Lookback duration, e.g. ``30m`` or ``3h``.
        slugs: Allowed slug tokens for the truth gate.
        limit: Maximum number of sessions returned.
        status: Required session status (None = any non-extracted status).
        verify_transcripts: Only keep sessions with a stored clean transcript.
        overfetch_factor: Rows fetched per requested session before filtering.
        db: Record store (defaults to the global database).

    Returns:
        Selected sessions; empty on any store error or a limit below 1.
    """
    db = db or get_database()

    try:
        if session_id:
            session = db.get_session(session_id)
            if session is None:
                logger.warning(f"Session not found: {session_id}")
                return []
            return [session]

        if limit < 1:
            logger.warning(f"Session limit must be at least 1, got {limit}")
            return []

        cutoff = cutoff_from(since)
        sessions = db.query_sessions(
            created_after=cutoff,
            status=status,
            exclude_status=EXTRACTED_STATUS,
            limit=limit * overfetch_factor,
        )

        if not sessions:
            logger.info(f"No sessions found since {since} (status={status or 'any'})")
            return []

        gated = [s for s in sessions if passes_truth_gate(s.get("project_slug"), slugs)]

        if verify_transcripts:
            eligible = [s for s in gated if db.has_clean_transcript(s["id"])]
        else:
            eligible = gated

        result = eligible[:limit]

        logger.info(
            f"Selected {len(result)} sessions for extraction "
            f"(fetched={len(sessions)}, after_slug_filter={len(gated)}, "
            f"with_transcript={len(eligible) if verify_transcripts else 'unchecked'}, "
            f"since={since}, status={status or 'any'})"
        )
        return result

    except (sqlite3.Error, OverflowError) as e:
        logger.error(f"Error selecting sessions: {e}")
        return []
