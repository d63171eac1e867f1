"""Validate extracted items against a strict schema and guardrails.

Every item MUST have:
- a bucket from the closed bucket set
- non-empty content of at least 10 characters
- evidence with at least one session reference

Items are never repaired; anything failing is rejected with its reasons.
"""

from __future__ import annotations

import dataclasses
import logging
import re
from dataclasses import dataclass
from typing import Any, Literal

from pydantic import BaseModel, Field, ValidationError

from harvest.buckets import Bucket
from harvest.extract.items import CandidateItem

logger = logging.getLogger(__name__)

MIN_MEANINGFUL_CONTENT = 10

# Transcript formatting artifacts that leak into titles.
GARBAGE_TITLE_PATTERNS = [
    re.compile(r"^\|"),  # table rows
    re.compile(r"^\[\d+\]"),  # numbered references
    re.compile(r"^[a-z][a-z0-9+.\-]*://", re.IGNORECASE),  # URLs
    re.compile(r"^\s*$"),
    re.compile(r"^[^a-zA-Z]*$"),  # no letters at all
]


class EvidenceSchema(BaseModel):
    """Schema for a single evidence entry."""

    session_id: str
    excerpt: str | None = Field(default=None, max_length=500)
    location: str | None = None


class CandidateSchema(BaseModel):
    """Structural schema every candidate item must satisfy."""

    bucket: Bucket
    title: str | None = Field(default=None, min_length=1, max_length=500)
    content: str = Field(..., min_length=5, max_length=10000)
    priority: Literal["low", "medium", "high", "critical"] | None = None
    evidence: list[EvidenceSchema] = Field(..., min_length=1)
    metadata: dict[str, Any] = Field(default_factory=dict)


def _schema_errors(item: CandidateItem) -> list[str]:
    try:
        CandidateSchema.model_validate(dataclasses.asdict(item))
    except ValidationError as e:
        return [
            f"/{'/'.join(str(part) for part in error['loc'])} {error['msg']}"
            for error in e.errors()
        ]
    return []


def _is_garbage_title(title: str) -> bool:
    return any(pattern.search(title) for pattern in GARBAGE_TITLE_PATTERNS)


def validate_item(item: CandidateItem) -> list[str]:
    """Validate a single item.

    Returns:
        Every failing reason; an empty list means the item is valid.
    """
    errors = _schema_errors(item)

    content = item.content if isinstance(item.content, str) else ""

    if not content.strip():
        errors.append("content is empty or whitespace only")

    evidence = item.evidence if isinstance(item.evidence, list) else []
    if not any(getattr(entry, "session_id", None) for entry in evidence):
        errors.append("evidence must include at least one session_id")

    if content and len(content) < MIN_MEANINGFUL_CONTENT:
        errors.append("content too short to be meaningful")

    if item.title is not None and isinstance(item.title, str) and _is_garbage_title(item.title):
        errors.append("title appears to be garbage")

    return errors


@dataclass
class InvalidItem:
    """A rejected item and its joined failure reasons."""

    item: CandidateItem
    error: str


@dataclass
class ValidationResult:
    """Deterministic partition of items into valid and invalid."""

    valid: list[CandidateItem]
    invalid: list[InvalidItem]


def validate_items(items: list[CandidateItem]) -> ValidationResult:
    """Partition items into valid and invalid, preserving input order."""
    valid: list[CandidateItem] = []
    invalid: list[InvalidItem] = []

    for item in items:
        errors = validate_item(item)
        if errors:
            invalid.append(InvalidItem(item=item, error="; ".join(errors)))
        else:
            valid.append(item)

    if invalid:
        logger.warning(f"Validation rejected {len(invalid)} of {len(items)} items")

    return ValidationResult(valid=valid, invalid=invalid)
