"""Resolve session project slugs to durable project identities.

Session slugs are free text and rarely match a project slug exactly, so
resolution falls back from an exact match to a ``<slug>-`` prefix match
and finally to a substring match. The project list is small and reused
across every session in a run, so it is loaded in full and cached.
"""

from __future__ import annotations

import logging
import sqlite3
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from harvest.db.database import Database

logger = logging.getLogger(__name__)

# Slugs that are never attributed to a project.
UNRESOLVABLE_SLUGS = frozenset({"null", "unassigned", "terminal"})

ProjectList = list[dict[str, Any]]


class ProjectCache:
    """Time-boxed cache of the project list.

    Entries are refreshed lazily on the first read after expiry; nothing is
    invalidated eagerly.
    """

    def __init__(self, ttl_seconds: float = 300.0, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._projects: ProjectList | None = None
        self._loaded_at = 0.0

    @property
    def is_fresh(self) -> bool:
        """True when cached data exists and has not expired."""
        return (
            self._projects is not None
            and (self._clock() - self._loaded_at) < self.ttl_seconds
        )

    def get_or_refresh(self, loader: Callable[[], ProjectList | None]) -> ProjectList:
        """Return cached projects, reloading through ``loader`` when stale.

        A loader returning None signals a failed load; the failure is not
        cached, so the next call retries.
        """
        if self.is_fresh:
            return self._projects or []

        projects = loader()
        if projects is None:
            return []

        self._projects = projects
        self._loaded_at = self._clock()
        return projects

    def invalidate(self) -> None:
        """Drop cached data."""
        self._projects = None
        self._loaded_at = 0.0


@dataclass
class ProjectMatch:
    """A resolved project and how it was matched."""

    project_id: str
    slug: str
    strategy: str  # exact, prefix or contains


class ProjectResolver:
    """Map free-text session slugs to project IDs."""

    def __init__(self, db: Database, cache: ProjectCache | None = None) -> None:
        self.db = db
        self.cache = cache or ProjectCache()

    def _load_projects(self) -> ProjectList | None:
        try:
            return self.db.list_projects()
        except sqlite3.Error as e:
            logger.error(f"Failed to load projects: {e}")
            return None

    def projects(self) -> ProjectList:
        """Current project list (empty when the store is unavailable)."""
        return self.cache.get_or_refresh(self._load_projects)

    def resolve_match(self, slug: str | None) -> ProjectMatch | None:
        """Resolve a slug, reporting which strategy matched.

        Args:
            slug: The session's project slug.

        Returns:
            The first matching project, or None if the slug is a sentinel
            or nothing matches.
        """
        if not slug or slug in UNRESOLVABLE_SLUGS:
            return None

        projects = [p for p in self.projects() if p.get("slug")]

        strategies: list[tuple[str, Callable[[str], bool]]] = [
            ("exact", lambda candidate: candidate == slug),
            ("prefix", lambda candidate: candidate.startswith(f"{slug}-")),
            ("contains", lambda candidate: slug in candidate),
        ]
        for strategy, predicate in strategies:
            for project in projects:
                if predicate(project["slug"]):
                    return ProjectMatch(
                        project_id=str(project["id"]),
                        slug=project["slug"],
                        strategy=strategy,
                    )

        logger.warning(f"Could not resolve project slug: {slug}")
        return None

    def resolve(self, slug: str | None) -> str | None:
        """Resolve a slug to a project ID, or None."""
        match = self.resolve_match(slug)
        return match.project_id if match else None
