"""Strict marker patterns for rule-based extraction.

Only explicit markers are recognized; loose language such as "we should"
or "need to" is deliberately not matched. Each marker must be followed by
10-200 characters on the same line.
"""

from __future__ import annotations

import re
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Pattern

from harvest.buckets import Bucket

CAPTURE = r"(.{10,200})$"


@dataclass
class MarkerPattern:
    """A marker that introduces an item on a single line."""

    name: str
    family: str  # todo, bug or decision
    pattern: Pattern[str]
    bucket: str
    priority: str | None


def _marker(name: str, family: str, marker: str, bucket: Bucket, priority: str | None) -> MarkerPattern:
    return MarkerPattern(
        name=name,
        family=family,
        pattern=re.compile(rf"^\s*{marker}\s*{CAPTURE}", re.IGNORECASE),
        bucket=bucket.value,
        priority=priority,
    )


TODO_PATTERNS = [
    _marker("todo", "todo", "TODO:", Bucket.TODOS, "medium"),
    _marker("fixme", "todo", "FIXME:", Bucket.TODOS, "medium"),
    _marker("action_item", "todo", "ACTION ITEM:", Bucket.TODOS, "medium"),
    MarkerPattern(
        name="checkbox",
        family="todo",
        pattern=re.compile(r"^\s*[-*]\s*\[\s*\]\s+" + CAPTURE),
        bucket=Bucket.TODOS.value,
        priority="medium",
    ),
]

BUG_PATTERNS = [
    _marker("bug", "bug", "BUG:", Bucket.BUGS_OPEN, "high"),
    _marker("issue", "bug", "ISSUE:", Bucket.BUGS_OPEN, "high"),
    _marker("error", "bug", "ERROR:", Bucket.BUGS_OPEN, "high"),
]

DECISION_PATTERNS = [
    _marker("decision", "decision", "DECISION:", Bucket.DECISIONS, None),
    _marker("decided", "decision", "DECIDED:", Bucket.DECISIONS, None),
]

# Families in precedence order: when the same text appears under two
# markers, the earlier family keeps it.
ALL_PATTERNS = TODO_PATTERNS + BUG_PATTERNS + DECISION_PATTERNS


@dataclass
class MarkerMatch:
    """A marker found on one line."""

    pattern: MarkerPattern
    text: str
    line: str
    line_number: int


def find_markers(
    text: str,
    patterns: list[MarkerPattern] | None = None,
) -> Iterator[MarkerMatch]:
    """Yield marker matches pattern by pattern, line by line.

    Args:
        text: Transcript text.
        patterns: Patterns to apply (defaults to ``ALL_PATTERNS``).

    Yields:
        One match per line per pattern, in pattern order then line order.
    """
    lines = text.split("\n")
    for marker in patterns or ALL_PATTERNS:
        for number, line in enumerate(lines, 1):
            match = marker.pattern.match(line.rstrip("\r"))
            if match:
                yield MarkerMatch(
                    pattern=marker,
                    text=match.group(1).strip(),
                    line=match.group(0),
                    line_number=number,
                )
