"""Staging of validated items for downstream routing."""

from harvest.stage.staging import (
    UNRESOLVED_PROJECT,
    StagingResult,
    build_staged_row,
    compute_fingerprint,
    insert_staging,
)

__all__ = [
    "UNRESOLVED_PROJECT",
    "StagingResult",
    "build_staged_row",
    "compute_fingerprint",
    "insert_staging",
]
