"""harvest - guardrailed extraction of work items from session transcripts."""

__version__ = "1.0.0"
