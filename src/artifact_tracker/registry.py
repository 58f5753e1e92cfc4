"""Artifact registry: path to identity mapping, listing, and moves.

The registry of a run is the only place an artifact's current path is
stored, so a move is a single registry write and never touches version
history or comments.
"""

from collections.abc import Callable

from artifact_tracker.errors import Conflict, NotFound, SourceFileNotFound, Unavailable
from artifact_tracker.files import FileSystem
from artifact_tracker.models import (
    Artifact,
    ArtifactState,
    ArtifactSummary,
    FileStatus,
    MoveResult,
    RegistryEntry,
    new_id,
)
from artifact_tracker.storage import StateStore
from artifact_tracker.utils.logging import get_logger


class ArtifactRegistry:
    """Resolves paths to artifact ids within a run."""

    def __init__(self, store: StateStore, files: FileSystem) -> None:
        self.store = store
        self.files = files

    def resolve(self, run_id: str, path: str) -> str | None:
        """Artifact id currently at path, or None."""
        return self.store.read_registry(run_id).find_by_path(path)

    def require(self, run_id: str, path: str) -> str:
        """
        Artifact id currently at path.

        Raises:
            NotFound: If no artifact is tracked at path
        """
        artifact_id = self.resolve(run_id, path)
        if artifact_id is None:
            raise NotFound(f"Artifact not tracked: {path}")
        return artifact_id

    def read_state(self, run_id: str, artifact_id: str) -> ArtifactState:
        """
        Committed state of an artifact.

        Raises:
            NotFound: If the artifact has no state
        """
        try:
            return self.store.read_state(run_id, artifact_id)
        except FileNotFoundError:
            raise NotFound(f"Artifact not found: {artifact_id}") from None

    def register(
        self, run_id: str, path: str, build_state: Callable[[str], ArtifactState]
    ) -> tuple[str, bool]:
        """
        Create an artifact at path unless another caller got there first.

        The initial state is committed before the registry entry is
        written, so a registry entry always points at existing state.

        Args:
            run_id: Run the artifact belongs to
            path: Normalized artifact path
            build_state: Builds the initial state for a freshly minted id

        Returns:
            (artifact_id, created). created is False when the path was
            registered concurrently; build_state is not called in that case.
        """
        with self.store.registry_lock(run_id):
            registry = self.store.read_registry(run_id)
            existing = registry.find_by_path(path)
            if existing is not None:
                return existing, False

            artifact_id = new_id()
            state = build_state(artifact_id)
            self.store.commit_state(state, expected_revision=0)

            registry.artifacts[artifact_id] = RegistryEntry(path=path, created_at=state.created_at)
            self.store.write_registry(registry)

        get_logger().debug("Artifact registered", run_id=run_id, path=path, artifact_id=artifact_id)
        return artifact_id, True

    def get(self, run_id: str, path: str) -> Artifact:
        """Read view of the artifact at path."""
        artifact_id = self.require(run_id, path)
        state = self.read_state(run_id, artifact_id)
        return Artifact(
            id=artifact_id,
            run_id=run_id,
            path=path,
            title=state.title,
            current_version=state.current_version,
            created_at=state.created_at,
            updated_at=state.updated_at,
        )

    def list_artifacts(self, run_id: str) -> list[ArtifactSummary]:
        """
        Summaries of every artifact in a run, ordered by path.

        Status is computed now: "ok" if a file exists at the artifact's
        path, "missing" otherwise. An unknown run has no artifacts.
        """
        registry = self.store.read_registry(run_id)
        summaries: list[ArtifactSummary] = []
        for artifact_id, entry in registry.artifacts.items():
            state = self.read_state(run_id, artifact_id)
            summaries.append(
                ArtifactSummary(
                    artifact_id=artifact_id,
                    path=entry.path,
                    status=FileStatus.OK if self.files.exists(entry.path) else FileStatus.MISSING,
                    title=state.title,
                    current_version=state.current_version,
                    comment_count=len(state.comments),
                    version_count=len(state.versions),
                )
            )
        return sorted(summaries, key=lambda s: s.path)

    def move(self, run_id: str, old_path: str, new_path: str, refs_only: bool) -> MoveResult:
        """
        Point an artifact at a new path.

        Comments are anchored to content, not paths, so they are preserved
        as-is.

        Args:
            run_id: Run the artifact belongs to
            old_path: Normalized current path
            new_path: Normalized target path
            refs_only: If True, the file was already moved by the caller and
                only the stored path changes; otherwise the file is renamed

        Returns:
            MoveResult with file_moved and the number of comments preserved

        Raises:
            NotFound: If old_path is not a tracked artifact
            Conflict: If new_path belongs to a different artifact
            SourceFileNotFound: If refs_only and no file exists at new_path
            Unavailable: If the rename or the registry write fails
        """
        with self.store.registry_lock(run_id):
            registry = self.store.read_registry(run_id)
            artifact_id = registry.find_by_path(old_path)
            if artifact_id is None:
                raise NotFound(f"Artifact not tracked: {old_path}")

            comment_count = len(self.read_state(run_id, artifact_id).comments)
            if new_path == old_path:
                return MoveResult(file_moved=False, comments_preserved=comment_count)

            owner = registry.find_by_path(new_path)
            if owner is not None and owner != artifact_id:
                raise Conflict(f"Path already tracked by another artifact: {new_path}")

            file_moved = False
            if refs_only:
                if not self.files.exists(new_path):
                    raise SourceFileNotFound(f"File not found at new path: {new_path}")
            else:
                self.files.rename(old_path, new_path)
                file_moved = True

            registry.artifacts[artifact_id] = registry.artifacts[artifact_id].model_copy(
                update={"path": new_path}
            )
            try:
                self.store.write_registry(registry)
            except Unavailable:
                if file_moved:
                    get_logger().warning(
                        f"Registry update failed, moving {new_path} back to {old_path}"
                    )
                    self.files.rename(new_path, old_path)
                raise

        get_logger().debug(
            "Artifact moved",
            run_id=run_id,
            old_path=old_path,
            new_path=new_path,
            file_moved=file_moved,
        )
        return MoveResult(file_moved=file_moved, comments_preserved=comment_count)
