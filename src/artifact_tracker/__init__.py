"""Artifact tracker: versioned documents with text-anchored comments."""

from artifact_tracker.errors import (
    ArtifactTrackerError,
    Busy,
    Conflict,
    InvalidInput,
    NotFound,
    SourceFileNotFound,
    Unavailable,
)
from artifact_tracker.service import ArtifactService

__version__ = "0.1.0"

__all__ = [
    "ArtifactService",
    "ArtifactTrackerError",
    "Busy",
    "Conflict",
    "InvalidInput",
    "NotFound",
    "SourceFileNotFound",
    "Unavailable",
]
