"""Data models for artifacts, versions, comments, and anchors."""

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field, field_validator
from ulid import new as new_ulid

from artifact_tracker.hashing import HASH_PATTERN


def utc_timestamp() -> str:
    """Current time as ISO 8601 UTC with a "Z" suffix."""
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def new_id() -> str:
    return str(new_ulid())


def _check_utc(v: str) -> str:
    try:
        dt = datetime.fromisoformat(v.replace("Z", "+00:00"))
        if dt.tzinfo is None or dt.utcoffset() != timezone.utc.utcoffset(None):
            raise ValueError("Timestamp must be in UTC timezone")
        return v
    except (ValueError, AttributeError) as e:
        raise ValueError(f"Invalid ISO 8601 UTC timestamp: {v}") from e


def _check_ulid(v: str) -> str:
    if len(v) != 26:
        raise ValueError(f"ULID must be exactly 26 characters, got {len(v)}")
    return v


class CommentStatus(str, Enum):
    """Comment lifecycle status. Transitions only open -> resolved."""

    OPEN = "open"
    RESOLVED = "resolved"


class StatusFilter(str, Enum):
    """Filter accepted by list_comments."""

    OPEN = "open"
    RESOLVED = "resolved"
    ALL = "all"


class AnchorHealth(str, Enum):
    """Outcome of the most recent relocation of an anchor."""

    ANCHORED = "anchored"  # Found at the hinted line
    DRIFTED = "drifted"  # Found, but on a different line
    ORPHANED = "orphaned"  # Target text absent from latest content


class SyncStatus(str, Enum):
    """Outcome of a sync."""

    REGISTERED = "registered"  # First version of a new artifact
    UNCHANGED = "unchanged"  # Content identical to latest version
    SYNCED = "synced"  # New version committed


class FileStatus(str, Enum):
    """Whether an artifact's backing file exists at its current path."""

    OK = "ok"
    MISSING = "missing"


class Anchor(BaseModel):
    """Text-based attachment of a comment to document content.

    The target text and its surrounding context are the source of truth;
    line_hint is only a cache refreshed on every sync.
    """

    target_text: str = Field(..., min_length=1)
    prefix: str = Field(default="", description="Text immediately before the target")
    suffix: str = Field(default="", description="Text immediately after the target")
    line_hint: int = Field(..., ge=1, description="1-indexed line where the target starts")
    health: AnchorHealth = AnchorHealth.ANCHORED
    drift_distance: int = Field(
        default=0, ge=0, description="Lines moved during the last relocation"
    )


class Comment(BaseModel):
    """A text-anchored annotation on an artifact."""

    id: str = Field(default_factory=new_id)
    artifact_id: str
    anchor: Anchor
    message: str = Field(..., min_length=1, max_length=10000)
    author: str = Field(..., min_length=1, max_length=200)
    status: CommentStatus = CommentStatus.OPEN
    created_at: str = Field(default_factory=utc_timestamp)
    resolved_by: str | None = None
    resolved_at: str | None = None

    @field_validator("id")
    @classmethod
    def validate_ulid(cls, v: str) -> str:
        """Validate that id is a valid ULID (26 characters)."""
        return _check_ulid(v)

    @field_validator("created_at")
    @classmethod
    def validate_created_at(cls, v: str) -> str:
        return _check_utc(v)

    @field_validator("resolved_at")
    @classmethod
    def validate_resolved_at(cls, v: str | None) -> str | None:
        if v is None:
            return v
        return _check_utc(v)

    @property
    def is_orphaned(self) -> bool:
        return self.anchor.health == AnchorHealth.ORPHANED

    def resolve(self, resolver: str) -> None:
        """Mark the comment as resolved.

        Args:
            resolver: Identity of the person/agent resolving the comment

        Raises:
            ValueError: If the comment is already resolved
        """
        if self.status == CommentStatus.RESOLVED:
            raise ValueError("Comment is already resolved")

        self.status = CommentStatus.RESOLVED
        self.resolved_by = resolver
        self.resolved_at = utc_timestamp()


class VersionRecord(BaseModel, frozen=True):
    """Immutable metadata of one committed version.

    The content itself lives in the run's blob store, keyed by content_hash.
    """

    version: int = Field(..., ge=1)
    content_hash: str = Field(..., pattern=HASH_PATTERN)
    title: str
    lines_added: int = Field(default=0, ge=0)
    lines_removed: int = Field(default=0, ge=0)
    synced_at: str = Field(default_factory=utc_timestamp)

    @field_validator("synced_at")
    @classmethod
    def validate_synced_at(cls, v: str) -> str:
        return _check_utc(v)


class ArtifactState(BaseModel):
    """Root structure of an artifact's state file.

    revision increments on every commit and is the compare-and-swap token
    for concurrent writers.
    """

    artifact_id: str
    run_id: str
    title: str
    revision: int = Field(default=0, ge=0)
    created_at: str = Field(default_factory=utc_timestamp)
    updated_at: str = Field(default_factory=utc_timestamp)
    schema_version: str = Field(default="1.0")
    versions: list[VersionRecord] = Field(default_factory=list)
    comments: list[Comment] = Field(default_factory=list)

    @field_validator("versions")
    @classmethod
    def validate_version_sequence(cls, v: list[VersionRecord]) -> list[VersionRecord]:
        """Versions must be exactly 1..N in order."""
        for expected, record in enumerate(v, start=1):
            if record.version != expected:
                raise ValueError(
                    f"Version history has a gap: expected {expected}, found {record.version}"
                )
        return v

    @property
    def current_version(self) -> int:
        return self.versions[-1].version if self.versions else 0

    @property
    def latest(self) -> VersionRecord | None:
        return self.versions[-1] if self.versions else None

    def find_comment(self, comment_id: str) -> Comment | None:
        for comment in self.comments:
            if comment.id == comment_id:
                return comment
        return None


class RegistryEntry(BaseModel):
    """Current path of one artifact."""

    path: str = Field(..., min_length=1)
    created_at: str = Field(default_factory=utc_timestamp)


class RegistryFile(BaseModel):
    """Root structure of a run's registry.json (artifact id -> entry)."""

    run_id: str
    schema_version: str = Field(default="1.0")
    artifacts: dict[str, RegistryEntry] = Field(default_factory=dict)

    def find_by_path(self, path: str) -> str | None:
        for artifact_id, entry in self.artifacts.items():
            if entry.path == path:
                return artifact_id
        return None


class Artifact(BaseModel):
    """Read view of a tracked document."""

    id: str
    run_id: str
    path: str
    title: str
    current_version: int = Field(..., ge=0)
    created_at: str
    updated_at: str


class SyncResult(BaseModel):
    """Result of a sync."""

    status: SyncStatus
    artifact_id: str
    version: int = Field(..., ge=1)
    title: str
    lines_added: int = Field(default=0, ge=0)
    lines_removed: int = Field(default=0, ge=0)
    comments_relocated: int = Field(default=0, ge=0)
    comments_orphaned: int = Field(default=0, ge=0)


class MoveResult(BaseModel):
    """Result of a move."""

    file_moved: bool
    comments_preserved: int = Field(..., ge=0)


class VersionSummary(BaseModel):
    """One row of list_versions."""

    version: int = Field(..., ge=1)
    timestamp: str
    lines_added: int = Field(..., ge=0)
    lines_removed: int = Field(..., ge=0)
    initial: bool = Field(default=False, description="True for version 1 (no predecessor)")


class VersionContent(BaseModel):
    """Full content of one version."""

    version: int = Field(..., ge=1)
    title: str
    content: str
    timestamp: str


class ArtifactSummary(BaseModel):
    """One row of list_artifacts."""

    artifact_id: str
    path: str
    status: FileStatus
    title: str
    current_version: int = Field(..., ge=0)
    comment_count: int = Field(..., ge=0)
    version_count: int = Field(..., ge=0)
