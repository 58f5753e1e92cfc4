"""Comment operations: add, list, and resolve text-anchored comments.

Comments are written through the same revision-checked commit as syncs,
so a comment is always anchored against the latest committed content and
never lost to a concurrent sync.
"""

from typing import NamedTuple

from pydantic import ValidationError

from artifact_tracker.anchors import DEFAULT_CONTEXT_CHARS, create_anchor
from artifact_tracker.errors import InvalidInput, NotFound
from artifact_tracker.files import require_utf8
from artifact_tracker.models import (
    ArtifactState,
    Comment,
    CommentStatus,
    StatusFilter,
)
from artifact_tracker.registry import ArtifactRegistry
from artifact_tracker.storage import StateStore, StateUpdate
from artifact_tracker.versions import VersionStore


class ResolveOutcome(NamedTuple):
    """Result of resolve_comment."""

    comment: Comment
    already_resolved: bool


class CommentStore:
    """Comments of the artifacts in a store."""

    def __init__(
        self,
        store: StateStore,
        registry: ArtifactRegistry,
        versions: VersionStore,
        context_chars: int = DEFAULT_CONTEXT_CHARS,
    ) -> None:
        self.store = store
        self.registry = registry
        self.versions = versions
        self.context_chars = context_chars

    def add_comment(
        self,
        run_id: str,
        path: str,
        target_text: str,
        message: str,
        author: str,
        line_hint: int | None = None,
    ) -> Comment:
        """
        Anchor a new comment to target_text in the latest version.

        Args:
            run_id: Run the artifact belongs to
            path: Normalized artifact path
            target_text: Exact text to anchor to
            message: Comment body
            author: Caller identity
            line_hint: Optional line to pick among repeated occurrences

        Returns:
            The committed Comment

        Raises:
            InvalidInput: If target_text is empty or absent, or message/author invalid
            NotFound: If path is unknown or has never been synced
        """
        if not target_text:
            raise InvalidInput("target_text must not be empty")
        require_utf8(target_text, "target_text")
        require_utf8(message, "message")
        require_utf8(author, "author")
        if line_hint is not None and line_hint < 1:
            raise InvalidInput(f"line_hint must be a positive integer, got {line_hint}")

        artifact_id = self.registry.require(run_id, path)

        def update(current: ArtifactState) -> StateUpdate[Comment]:
            content = self.versions.latest_content(current)
            anchor = create_anchor(content, target_text, line_hint, self.context_chars)
            try:
                comment = Comment(
                    artifact_id=current.artifact_id,
                    anchor=anchor,
                    message=message,
                    author=author,
                )
            except ValidationError as e:
                raise InvalidInput(f"Invalid comment: {e}") from e
            return StateUpdate(
                current.model_copy(update={"comments": [*current.comments, comment]}),
                comment,
            )

        return self._update(run_id, artifact_id, update)

    def list_comments(
        self, run_id: str, path: str, status_filter: StatusFilter = StatusFilter.OPEN
    ) -> list[Comment]:
        """
        Comments of the artifact at path in creation order.

        Raises:
            NotFound: If path is not a tracked artifact
        """
        artifact_id = self.registry.require(run_id, path)
        state = self.registry.read_state(run_id, artifact_id)
        status_filter = StatusFilter(status_filter)
        if status_filter == StatusFilter.ALL:
            return list(state.comments)
        wanted = CommentStatus(status_filter.value)
        return [c for c in state.comments if c.status == wanted]

    def find_comment(self, run_id: str, comment_id: str) -> tuple[str, Comment]:
        """
        Locate a comment anywhere in a run.

        Returns:
            (artifact_id, comment)

        Raises:
            NotFound: If no artifact of the run has the comment
        """
        registry = self.store.read_registry(run_id)
        for artifact_id in registry.artifacts:
            comment = self.registry.read_state(run_id, artifact_id).find_comment(comment_id)
            if comment is not None:
                return artifact_id, comment
        raise NotFound(f"Comment not found: {comment_id}")

    def resolve_comment(self, run_id: str, comment_id: str, resolver: str) -> ResolveOutcome:
        """
        Resolve a comment. Resolving an already resolved comment changes nothing.

        Raises:
            InvalidInput: If resolver is empty
            NotFound: If the comment does not exist in the run
        """
        if not resolver or not resolver.strip():
            raise InvalidInput("resolver must not be empty")
        require_utf8(resolver, "resolver")

        artifact_id, _ = self.find_comment(run_id, comment_id)

        def update(current: ArtifactState) -> StateUpdate[ResolveOutcome]:
            comments = list(current.comments)
            for index, comment in enumerate(comments):
                if comment.id != comment_id:
                    continue
                if comment.status == CommentStatus.RESOLVED:
                    return StateUpdate(None, ResolveOutcome(comment, already_resolved=True))
                resolved = comment.model_copy(deep=True)
                resolved.resolve(resolver)
                comments[index] = resolved
                return StateUpdate(
                    current.model_copy(update={"comments": comments}),
                    ResolveOutcome(resolved, already_resolved=False),
                )
            raise NotFound(f"Comment not found: {comment_id}")

        return self._update(run_id, artifact_id, update)

    def _update(self, run_id: str, artifact_id: str, update_fn):
        try:
            return self.store.update_state_with_retry(run_id, artifact_id, update_fn)
        except FileNotFoundError:
            raise NotFound(f"Artifact not found: {artifact_id}") from None
