"""Session selection, transcript loading and state transitions."""

from harvest.sessions.select import RESERVED_SLUGS, passes_truth_gate, select_sessions
from harvest.sessions.state import mark_extracted, mark_extraction_failed
from harvest.sessions.transcript import Transcript, load_transcript

__all__ = [
    "RESERVED_SLUGS",
    "Transcript",
    "load_transcript",
    "mark_extracted",
    "mark_extraction_failed",
    "passes_truth_gate",
    "select_sessions",
]
