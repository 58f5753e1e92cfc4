"""Error taxonomy for the artifact tracker.

Every error carries a stable ``code`` so the CLI and the MCP server can
report it without inspecting the exception type.
"""


class ArtifactTrackerError(Exception):
    """Base class for all artifact tracker errors."""

    code = "INTERNAL_ERROR"
    retryable = False


class NotFound(ArtifactTrackerError):  # noqa: N818
    """Raised for an unknown artifact, version, or comment id."""

    code = "NOT_FOUND"


class SourceFileNotFound(NotFound):  # noqa: N818
    """Raised when the backing file of an artifact does not exist."""

    code = "FILE_NOT_FOUND"


class Conflict(ArtifactTrackerError):  # noqa: N818
    """Raised when a commit raced another writer, or a move target is taken."""

    code = "CONFLICT"


class InvalidInput(ArtifactTrackerError):  # noqa: N818
    """Raised when a request is malformed."""

    code = "INVALID_INPUT"


class Unavailable(ArtifactTrackerError):  # noqa: N818
    """Raised when the file collaborator or the state directory fails."""

    code = "UNAVAILABLE"


class Busy(ArtifactTrackerError):  # noqa: N818
    """Raised when an artifact could not be locked in time, or retries ran out."""

    code = "BUSY"
    retryable = True
