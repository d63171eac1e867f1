"""Bucket and category table shared by extraction, validation and staging."""

from __future__ import annotations

from enum import Enum


class Bucket(str, Enum):
    """Closed set of buckets an extracted item may be routed to."""

    BUGS_OPEN = "Bugs Open"
    BUGS_FIXED = "Bugs Fixed"
    TODOS = "Todos"
    JOURNAL = "Journal"
    WORK_LOG = "Work Log"
    IDEAS = "Ideas"
    DECISIONS = "Decisions"
    LESSONS = "Lessons"
    SYSTEM_BREAKDOWN = "System Breakdown"
    HOW_TO_GUIDE = "How-To Guide"
    SCHEMATIC = "Schematic"
    REFERENCE = "Reference"
    NAMING_CONVENTIONS = "Naming Conventions"
    FILE_STRUCTURE = "File Structure"
    DATABASE_PATTERNS = "Database Patterns"
    API_PATTERNS = "API Patterns"
    COMPONENT_PATTERNS = "Component Patterns"
    QUIRKS_AND_GOTCHAS = "Quirks & Gotchas"
    SNIPPETS = "Snippets"
    OTHER = "Other"


BUCKET_CATEGORIES: dict[str, str] = {
    Bucket.BUGS_OPEN.value: "bug",
    Bucket.BUGS_FIXED.value: "bug",
    Bucket.TODOS.value: "todo",
    Bucket.JOURNAL.value: "general",
    Bucket.WORK_LOG.value: "general",
    Bucket.IDEAS.value: "knowledge",
    Bucket.DECISIONS.value: "decision",
    Bucket.LESSONS.value: "lesson",
    Bucket.SYSTEM_BREAKDOWN.value: "knowledge",
    Bucket.HOW_TO_GUIDE.value: "knowledge",
    Bucket.SCHEMATIC.value: "knowledge",
    Bucket.REFERENCE.value: "knowledge",
    Bucket.NAMING_CONVENTIONS.value: "config",
    Bucket.FILE_STRUCTURE.value: "config",
    Bucket.DATABASE_PATTERNS.value: "config",
    Bucket.API_PATTERNS.value: "config",
    Bucket.COMPONENT_PATTERNS.value: "config",
    Bucket.QUIRKS_AND_GOTCHAS.value: "knowledge",
    Bucket.SNIPPETS.value: "knowledge",
    Bucket.OTHER.value: "general",
}

# Run report counters; buckets outside these groups are not counted.
STATS_KEYS: dict[str, str] = {
    Bucket.TODOS.value: "todos",
    Bucket.BUGS_OPEN.value: "bugs",
    Bucket.BUGS_FIXED.value: "bugs",
    Bucket.WORK_LOG.value: "worklogs",
    Bucket.DECISIONS.value: "decisions",
}


def bucket_value(bucket: Bucket | str) -> str:
    """Return the plain string label of a bucket."""
    return bucket.value if isinstance(bucket, Bucket) else str(bucket)


def category_for(bucket: Bucket | str) -> str:
    """Map a bucket to its downstream category (``general`` when unknown)."""
    return BUCKET_CATEGORIES.get(bucket_value(bucket), "general")


def stats_key_for(bucket: Bucket | str) -> str | None:
    """Return the run-report counter a bucket contributes to, if any."""
    return STATS_KEYS.get(bucket_value(bucket))
