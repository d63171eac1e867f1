"""Text and timestamp utilities for harvest."""

from __future__ import annotations

import re
from datetime import UTC, datetime

# CSI sequences (colors, cursor movement) and OSC sequences (titles, links).
_ANSI_CSI = re.compile(r"\x1b\[[0-9;]*[a-zA-Z]")
_ANSI_OSC = re.compile(r"\x1b\][^\x07]*\x07")
_BLANK_RUNS = re.compile(r"\n{3,}")


def normalize_transcript(content: str | None) -> str:
    """Strip terminal escape sequences and tidy whitespace.

    Trailing whitespace is trimmed per line and runs of three or more
    newlines collapse to a single blank line.

    Examples:
        >>> normalize_transcript("\\x1b[31mred\\x1b[0m  \\n\\n\\n\\nnext")
        'red\\n\\nnext'
        >>> normalize_transcript(None)
        ''
    """
    if not content:
        return ""

    cleaned = _ANSI_CSI.sub("", content)
    cleaned = _ANSI_OSC.sub("", cleaned)
    cleaned = "\n".join(line.rstrip() for line in cleaned.split("\n"))
    cleaned = _BLANK_RUNS.sub("\n\n", cleaned)
    return cleaned.strip()


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(UTC)


def utc_timestamp(value: datetime | None = None) -> str:
    """Format a datetime as the ISO-8601 UTC string stored in the database.

    Naive datetimes are taken to be UTC. A fixed microsecond precision keeps
    stored timestamps comparable as plain strings.
    """
    moment = value or utc_now()
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    return moment.astimezone(UTC).isoformat(timespec="microseconds")
