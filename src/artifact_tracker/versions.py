"""Version store: sync, version listing, and version retrieval.

A sync is a single optimistic transaction over the artifact's state file:
hash, diff against the latest version, relocate open comments, then commit
the new version record and the relocated anchors in one atomic write. A
concurrent commit makes the transaction start over from the new latest
version, so version numbers are never assigned twice.
"""

import re
from pathlib import PurePosixPath

from artifact_tracker.anchors import DEFAULT_CONTEXT_CHARS
from artifact_tracker.differ import LineDiff, diff_lines, split_lines
from artifact_tracker.errors import InvalidInput, NotFound
from artifact_tracker.files import require_utf8
from artifact_tracker.hashing import compute_content_hash
from artifact_tracker.models import (
    ArtifactState,
    SyncResult,
    SyncStatus,
    VersionContent,
    VersionRecord,
    VersionSummary,
    utc_timestamp,
)
from artifact_tracker.registry import ArtifactRegistry
from artifact_tracker.relocation import relocate_comments
from artifact_tracker.storage import StateStore, StateUpdate
from artifact_tracker.utils.logging import get_logger

_HEADING_RE = re.compile(r"^ {0,3}#[ \t]+(.+?)(?:[ \t]+#+)?[ \t]*$")
_FENCE_RE = re.compile(r"^ {0,3}(```|~~~)")


def derive_title(content: str, path: str) -> str:
    """
    Title of a document.

    The text of the first level-one heading ("# Title") outside fenced code
    blocks; otherwise the filename without its extension.
    """
    fence: str | None = None
    for line in split_lines(content):
        fence_match = _FENCE_RE.match(line)
        if fence_match:
            marker = fence_match.group(1)
            if fence is None:
                fence = marker
            elif marker == fence:
                fence = None
            continue
        if fence is not None:
            continue

        match = _HEADING_RE.match(line.rstrip("\r"))
        if match and match.group(1).strip():
            return match.group(1).strip()

    name = PurePosixPath(path)
    return name.stem or name.name


class VersionStore:
    """Append-only content history of the artifacts in a store."""

    def __init__(
        self,
        store: StateStore,
        registry: ArtifactRegistry,
        context_chars: int = DEFAULT_CONTEXT_CHARS,
    ) -> None:
        self.store = store
        self.registry = registry
        self.context_chars = context_chars

    def sync(self, run_id: str, path: str, content: str) -> SyncResult:
        """
        Record a snapshot of an artifact's content.

        Unknown paths are registered with the snapshot as version 1. For a
        known artifact, content identical to the latest version returns
        "unchanged"; anything else becomes version current + 1 with line
        statistics and relocated comments.

        Args:
            run_id: Run the artifact belongs to
            path: Normalized artifact path
            content: Full document text

        Returns:
            SyncResult with status registered, unchanged, or synced

        Raises:
            InvalidInput: If content looks binary or cannot be encoded as UTF-8
            Busy: If the commit kept conflicting or the lock timed out
            Unavailable: If stored state or content cannot be read or written
        """
        if "\x00" in content:
            raise InvalidInput(f"Binary content not supported: {path}")
        require_utf8(content, "Content")

        logger = get_logger()
        artifact_id = self.registry.resolve(run_id, path)

        if artifact_id is None:
            artifact_id, created = self._register(run_id, path, content)
            if created:
                result = self._initial_result(run_id, artifact_id)
                logger.debug("Sync registered", path=path, version=result.version)
                return result

        try:
            result = self.store.update_state_with_retry(
                run_id,
                artifact_id,
                lambda current: self._next_version(current, path, content),
            )
        except FileNotFoundError:
            raise NotFound(f"Artifact not found: {artifact_id}") from None

        logger.debug(
            f"Sync {result.status.value}",
            path=path,
            version=result.version,
            relocated=result.comments_relocated,
            orphaned=result.comments_orphaned,
        )
        return result

    def _register(self, run_id: str, path: str, content: str) -> tuple[str, bool]:
        content_hash = self.store.write_blob(run_id, content)
        title = derive_title(content, path)

        def build_state(artifact_id: str) -> ArtifactState:
            now = utc_timestamp()
            return ArtifactState(
                artifact_id=artifact_id,
                run_id=run_id,
                title=title,
                created_at=now,
                updated_at=now,
                versions=[
                    VersionRecord(version=1, content_hash=content_hash, title=title, synced_at=now)
                ],
            )

        return self.registry.register(run_id, path, build_state)

    def _initial_result(self, run_id: str, artifact_id: str) -> SyncResult:
        state = self.registry.read_state(run_id, artifact_id)
        first = state.versions[0]
        return SyncResult(
            status=SyncStatus.REGISTERED,
            artifact_id=artifact_id,
            version=first.version,
            title=first.title,
        )

    def _next_version(
        self, current: ArtifactState, path: str, content: str
    ) -> StateUpdate[SyncResult]:
        """Compute the state after syncing content onto current (no I/O besides blobs)."""
        latest = current.latest
        content_hash = compute_content_hash(content)

        if latest is not None and latest.content_hash == content_hash:
            return StateUpdate(
                None,
                SyncResult(
                    status=SyncStatus.UNCHANGED,
                    artifact_id=current.artifact_id,
                    version=latest.version,
                    title=current.title,
                ),
            )

        line_diff: LineDiff | None = None
        if latest is not None:
            old_content = self.store.read_blob(current.run_id, latest.content_hash)
            line_diff = diff_lines(split_lines(old_content), split_lines(content))

        self.store.write_blob(current.run_id, content)
        outcome = relocate_comments(current.comments, content, line_diff, self.context_chars)

        version = current.current_version + 1
        title = derive_title(content, path)
        record = VersionRecord(
            version=version,
            content_hash=content_hash,
            title=title,
            lines_added=line_diff.lines_added if line_diff else 0,
            lines_removed=line_diff.lines_removed if line_diff else 0,
        )
        new_state = current.model_copy(
            update={
                "title": title,
                "versions": [*current.versions, record],
                "comments": outcome.comments,
            }
        )
        return StateUpdate(
            new_state,
            SyncResult(
                status=SyncStatus.REGISTERED if version == 1 else SyncStatus.SYNCED,
                artifact_id=current.artifact_id,
                version=version,
                title=title,
                lines_added=record.lines_added,
                lines_removed=record.lines_removed,
                comments_relocated=outcome.relocated,
                comments_orphaned=outcome.orphaned,
            ),
        )

    def list_versions(self, run_id: str, path: str) -> list[VersionSummary]:
        """
        Version summaries of the artifact at path, ascending by version.

        Raises:
            NotFound: If path is not a tracked artifact
        """
        artifact_id = self.registry.require(run_id, path)
        state = self.registry.read_state(run_id, artifact_id)
        return [
            VersionSummary(
                version=record.version,
                timestamp=record.synced_at,
                lines_added=record.lines_added,
                lines_removed=record.lines_removed,
                initial=record.version == 1,
            )
            for record in state.versions
        ]

    def get_version(self, run_id: str, path: str, version: int) -> VersionContent:
        """
        Full content of one version.

        Raises:
            InvalidInput: If version is not positive
            NotFound: If the artifact or the version does not exist
        """
        if version < 1:
            raise InvalidInput(f"Version must be a positive integer, got {version}")

        artifact_id = self.registry.require(run_id, path)
        state = self.registry.read_state(run_id, artifact_id)
        if version > len(state.versions):
            raise NotFound(
                f"Version {version} not found for {path} (latest is {state.current_version})"
            )

        record = state.versions[version - 1]
        return VersionContent(
            version=record.version,
            title=record.title,
            content=self.store.read_blob(run_id, record.content_hash),
            timestamp=record.synced_at,
        )

    def latest_content(self, state: ArtifactState) -> str:
        """
        Content of the latest committed version.

        Raises:
            NotFound: If the artifact has no versions
        """
        if state.latest is None:
            raise NotFound(f"Artifact {state.artifact_id} has no versions")
        return self.store.read_blob(state.run_id, state.latest.content_hash)
