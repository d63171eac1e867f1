"""Marker-based extraction and validation of work items."""

from harvest.extract.items import (
    CandidateItem,
    Evidence,
    extract_items,
    extract_with_rules,
    generate_worklog,
)
from harvest.extract.patterns import ALL_PATTERNS, MarkerMatch, MarkerPattern, find_markers
from harvest.extract.validate import (
    InvalidItem,
    ValidationResult,
    validate_item,
    validate_items,
)

__all__ = [
    "ALL_PATTERNS",
    "CandidateItem",
    "Evidence",
    "InvalidItem",
    "MarkerMatch",
    "MarkerPattern",
    "ValidationResult",
    "extract_items",
    "extract_with_rules",
    "find_markers",
    "generate_worklog",
    "validate_item",
    "validate_items",
]
