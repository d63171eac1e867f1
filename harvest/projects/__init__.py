"""Project identity resolution."""

from harvest.projects.resolver import (
    UNRESOLVABLE_SLUGS,
    ProjectCache,
    ProjectMatch,
    ProjectResolver,
)

__all__ = ["UNRESOLVABLE_SLUGS", "ProjectCache", "ProjectMatch", "ProjectResolver"]
