"""Relocation of every open comment of an artifact after a content change."""

from typing import NamedTuple

from artifact_tracker.anchors import DEFAULT_CONTEXT_CHARS, relocate_anchor
from artifact_tracker.differ import LineDiff
from artifact_tracker.models import Comment, CommentStatus
from artifact_tracker.utils.logging import get_logger


class RelocationOutcome(NamedTuple):
    """Comments after relocation plus the counts reported by sync."""

    comments: list[Comment]
    relocated: int
    orphaned: int


def relocate_comments(
    comments: list[Comment],
    new_content: str,
    line_diff: LineDiff | None,
    context_chars: int = DEFAULT_CONTEXT_CHARS,
) -> RelocationOutcome:
    """
    Relocate open comments into new content.

    Resolved comments are returned untouched and are not counted. Each open
    comment is searched with its old hint mapped through line_diff (the old
    hint itself when the line has no counterpart in the new content); orphaned
    comments are kept and flagged so a later sync can pick them up again.

    Args:
        comments: All comments of the artifact, in stored order
        new_content: Content of the version being committed
        line_diff: Alignment from the previous version, or None for a first sync
        context_chars: Characters of context captured on each side

    Returns:
        RelocationOutcome with new Comment objects in the same order. The
        input list and its comments are not modified.
    """
    logger = get_logger()
    updated: list[Comment] = []
    relocated = orphaned = 0

    for comment in comments:
        if comment.status != CommentStatus.OPEN:
            updated.append(comment)
            continue

        hint = comment.anchor.line_hint
        if line_diff is not None:
            mapped = line_diff.map_old_line(hint)
            if mapped is not None:
                hint = mapped

        result = relocate_anchor(comment.anchor, new_content, hint, context_chars)
        updated.append(comment.model_copy(update={"anchor": result.anchor}))

        if result.relocated:
            relocated += 1
        else:
            orphaned += 1
            logger.debug(
                "Comment orphaned",
                comment_id=comment.id,
                target_text=comment.anchor.target_text[:60],
            )

    return RelocationOutcome(comments=updated, relocated=relocated, orphaned=orphaned)
