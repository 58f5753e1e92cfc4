"""Operation surface of the artifact tracker.

ArtifactService is the single entry point used by the CLI and the MCP
server. It normalizes caller paths and run ids, then delegates to the
registry, the version store, and the comment store. Every method returns a
model or raises an ArtifactTrackerError subclass.
"""

from pathlib import Path

from artifact_tracker.comments import CommentStore, ResolveOutcome
from artifact_tracker.config import TrackerSettings, get_settings, resolve_store_root
from artifact_tracker.errors import InvalidInput
from artifact_tracker.files import FileSystem, LocalFileSystem, normalize_artifact_path
from artifact_tracker.models import (
    Artifact,
    ArtifactSummary,
    Comment,
    MoveResult,
    StatusFilter,
    SyncResult,
    VersionContent,
    VersionSummary,
)
from artifact_tracker.registry import ArtifactRegistry
from artifact_tracker.storage import StateStore, validate_run_id
from artifact_tracker.versions import VersionStore


class ArtifactService:
    """Artifact version store and comment-anchor engine for one project."""

    def __init__(
        self,
        project_root: Path,
        settings: TrackerSettings | None = None,
        files: FileSystem | None = None,
    ) -> None:
        """
        Args:
            project_root: Directory artifact paths are relative to
            settings: Configuration (defaults to environment settings)
            files: File collaborator (defaults to the local disk under project_root)
        """
        self.project_root = Path(project_root).resolve()
        self.settings = settings or get_settings()
        self.files = files or LocalFileSystem(self.project_root)

        self.store = StateStore(
            resolve_store_root(self.settings, self.project_root),
            lock_timeout=self.settings.lock_timeout,
            max_retries=self.settings.max_retries,
        )
        self.registry = ArtifactRegistry(self.store, self.files)
        self.versions = VersionStore(
            self.store, self.registry, context_chars=self.settings.context_chars
        )
        self.comments = CommentStore(
            self.store, self.registry, self.versions, context_chars=self.settings.context_chars
        )

    def _path(self, path: str | Path) -> str:
        return normalize_artifact_path(path, self.project_root)

    def _run(self, run_id: str | None) -> str:
        return validate_run_id(run_id or self.settings.default_run)

    # ------------------------------------------------------------------
    # Versions
    # ------------------------------------------------------------------

    def sync(self, run_id: str | None, path: str | Path, content: str | None = None) -> SyncResult:
        """
        Sync a content snapshot; when content is None the file is read from disk.

        Raises:
            SourceFileNotFound: If content is None and the file does not exist
        """
        run = self._run(run_id)
        rel_path = self._path(path)
        if content is None:
            content = self.files.read_text(rel_path)
        return self.versions.sync(run, rel_path, content)

    def list_versions(self, run_id: str | None, path: str | Path) -> list[VersionSummary]:
        return self.versions.list_versions(self._run(run_id), self._path(path))

    def get_version(self, run_id: str | None, path: str | Path, version: int) -> VersionContent:
        return self.versions.get_version(self._run(run_id), self._path(path), version)

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------

    def get_artifact(self, run_id: str | None, path: str | Path) -> Artifact:
        return self.registry.get(self._run(run_id), self._path(path))

    def list_artifacts(self, run_id: str | None) -> list[ArtifactSummary]:
        return self.registry.list_artifacts(self._run(run_id))

    def move(
        self,
        run_id: str | None,
        old_path: str | Path,
        new_path: str | Path,
        refs_only: bool = False,
    ) -> MoveResult:
        return self.registry.move(
            self._run(run_id), self._path(old_path), self._path(new_path), refs_only
        )

    # ------------------------------------------------------------------
    # Comments
    # ------------------------------------------------------------------

    def add_comment(
        self,
        run_id: str | None,
        path: str | Path,
        target_text: str,
        message: str,
        author: str,
        line_hint: int | None = None,
    ) -> Comment:
        return self.comments.add_comment(
            self._run(run_id), self._path(path), target_text, message, author, line_hint
        )

    def list_comments(
        self,
        run_id: str | None,
        path: str | Path,
        status_filter: StatusFilter | str = StatusFilter.OPEN,
    ) -> list[Comment]:
        try:
            status = StatusFilter(status_filter)
        except ValueError:
            raise InvalidInput(
                f"Invalid status filter: {status_filter!r} (expected open, resolved, or all)"
            ) from None
        return self.comments.list_comments(self._run(run_id), self._path(path), status)

    def resolve_comment(self, run_id: str | None, comment_id: str, resolver: str) -> ResolveOutcome:
        return self.comments.resolve_comment(self._run(run_id), comment_id, resolver)
