"""Deterministic item extraction from clean transcripts.

Every processed session yields exactly one mechanically generated worklog
plus zero or more items found by strict markers. No model calls, no
randomness.
"""

from __future__ import annotations

import logging
import re
from collections import Counter
from dataclasses import dataclass, field
from typing import Any

from harvest.buckets import Bucket
from harvest.extract.patterns import find_markers
from harvest.sessions.transcript import Transcript

logger = logging.getLogger(__name__)

MARKER_LOCATION = "strict-marker"
WORKLOG_LOCATION = "session-summary"
DEFAULT_TOPIC = "Development work"

_TURN_PATTERN = re.compile(r"^(?:USER|ASSISTANT):", re.MULTILINE)
_FIRST_USER_TOPIC = re.compile(r"^USER:\s*(.{20,200})", re.MULTILINE)


@dataclass
class Evidence:
    """Where an item came from."""

    session_id: str | None
    excerpt: str | None = None
    location: str | None = None


@dataclass
class CandidateItem:
    """An item extracted from a transcript, before validation."""

    bucket: str
    content: str
    title: str | None = None
    priority: str | None = None
    evidence: list[Evidence] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)


def generate_worklog(content: str, session: dict[str, Any]) -> CandidateItem:
    """Build the single worklog entry for a session.

    The topic is the first ``USER:`` turn carrying at least 20 characters;
    the body states the slug and the number of USER/ASSISTANT turns.
    """
    slug = session.get("project_slug") or "unknown"
    turns = len(_TURN_PATTERN.findall(content))

    match = _FIRST_USER_TOPIC.search(content)
    topic = match.group(1).strip() if match else DEFAULT_TOPIC

    return CandidateItem(
        bucket=Bucket.WORK_LOG.value,
        title=f"{slug}: {topic[:80]}",
        content=f"Development session on {slug}. {turns} conversation turns.",
        evidence=[
            Evidence(session_id=session.get("id"), excerpt=topic, location=WORKLOG_LOCATION)
        ],
        metadata={"tags": [slug]},
    )


def extract_with_rules(content: str, session: dict[str, Any]) -> list[CandidateItem]:
    """Extract todo, bug and decision items from explicit markers.

    Text already seen in this pass (case-insensitive) is dropped.
    """
    items: list[CandidateItem] = []
    seen: set[str] = set()

    for match in find_markers(content):
        text = match.text
        key = text.lower()
        if len(text) < 10 or key in seen:
            continue
        seen.add(key)

        items.append(
            CandidateItem(
                bucket=match.pattern.bucket,
                title=text[:150],
                content=text,
                priority=match.pattern.priority,
                evidence=[
                    Evidence(
                        session_id=session.get("id"),
                        excerpt=match.line[:150],
                        location=MARKER_LOCATION,
                    )
                ],
                metadata={"marker": match.pattern.name, "line": match.line_number},
            )
        )

    return items


def extract_items(transcript: Transcript | None, session: dict[str, Any]) -> list[CandidateItem]:
    """Extract all candidate items for a session.

    Args:
        transcript: Loaded clean transcript.
        session: Session record (``id`` and ``project_slug`` are used).

    Returns:
        The worklog followed by marker items; empty without transcript text.
    """
    if transcript is None or not transcript.content:
        return []

    items = [generate_worklog(transcript.content, session)]
    rule_items = extract_with_rules(transcript.content, session)
    items.extend(rule_items)

    counts = Counter(item.bucket for item in rule_items)
    logger.info(
        f"Extracted from {session.get('id')} ({session.get('project_slug')}): "
        f"worklog=1 todos={counts[Bucket.TODOS.value]} "
        f"bugs={counts[Bucket.BUGS_OPEN.value]} decisions={counts[Bucket.DECISIONS.value]}"
    )
    return items
