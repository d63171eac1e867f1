"""Lookback duration parsing."""

from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta

from harvest.utils.text import utc_now

logger = logging.getLogger(__name__)

_DURATION_PATTERN = re.compile(r"^(?P<value>\d+)(?P<unit>[mhd])$")

_UNIT_MS = {
    "m": 60 * 1000,
    "h": 60 * 60 * 1000,
    "d": 24 * 60 * 60 * 1000,
}

DEFAULT_LOOKBACK_MS = 3 * _UNIT_MS["h"]


def parse_duration(raw: str | None) -> int:
    """Parse a lookback expression such as ``30m``, ``2h`` or ``7d`` into milliseconds.

    Malformed input falls back to ``DEFAULT_LOOKBACK_MS`` instead of raising,
    so a bad flag never fails a scheduled run.

    Examples:
        >>> parse_duration("30m")
        1800000
        >>> parse_duration("2h")
        7200000
        >>> parse_duration("soon") == DEFAULT_LOOKBACK_MS
        True
    """
    if not raw:
        return DEFAULT_LOOKBACK_MS
    match = _DURATION_PATTERN.match(raw.strip())
    if not match:
        return DEFAULT_LOOKBACK_MS
    return int(match.group("value")) * _UNIT_MS[match.group("unit")]


def cutoff_from(raw: str | None, now: datetime | None = None) -> datetime:
    """Return the absolute UTC instant ``raw`` before ``now``.

    A lookback reaching past the earliest representable date falls back to
    the default window.
    """
    reference = now or utc_now()
    try:
        return reference - timedelta(milliseconds=parse_duration(raw))
    except OverflowError:
        logger.warning(f"Lookback {raw!r} is out of range, using the default window")
        return reference - timedelta(milliseconds=DEFAULT_LOOKBACK_MS)
