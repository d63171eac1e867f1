"""Small helpers shared across harvest."""

from harvest.utils.duration import DEFAULT_LOOKBACK_MS, cutoff_from, parse_duration
from harvest.utils.text import normalize_transcript, utc_now, utc_timestamp

__all__ = [
    "DEFAULT_LOOKBACK_MS",
    "cutoff_from",
    "normalize_transcript",
    "parse_duration",
    "utc_now",
    "utc_timestamp",
]
