"""Anchor creation and relocation.

An anchor pins a comment to a passage of text, not to a position. On every
sync the anchor is searched for in the new content:

1. Find every exact, case-sensitive occurrence of the target text
2. One occurrence: relocate there
3. Several occurrences: score each by context similarity and proximity to
   the hint line; ties go to the nearest occurrence, then the earliest
4. No occurrence: orphan the anchor, keeping its last known context and hint
"""

from typing import NamedTuple

from artifact_tracker.errors import InvalidInput
from artifact_tracker.fuzzy import context_similarity
from artifact_tracker.models import Anchor, AnchorHealth

DEFAULT_CONTEXT_CHARS = 80

# Weights of the two signals used to rank competing occurrences
CONTEXT_WEIGHT = 0.75
PROXIMITY_WEIGHT = 0.25

# Scores closer than this are treated as a tie
_SCORE_EPSILON = 1e-9


class Occurrence(NamedTuple):
    """One exact occurrence of the target text."""

    offset: int  # character offset into the content
    line: int  # 1-indexed line of the first character


class RelocationResult(NamedTuple):
    """Anchor after a relocation attempt."""

    anchor: Anchor
    relocated: bool


def line_of_offset(content: str, offset: int) -> int:
    """1-indexed line number containing the character at offset."""
    return content.count("\n", 0, offset) + 1


def find_occurrences(content: str, target_text: str) -> list[Occurrence]:
    """
    Find every exact occurrence of target_text, overlapping ones included.

    Returns:
        Occurrences in document order
    """
    occurrences: list[Occurrence] = []
    if not target_text:
        return occurrences

    start = content.find(target_text)
    line = 1
    line_counted_to = 0
    while start != -1:
        line += content.count("\n", line_counted_to, start)
        line_counted_to = start
        occurrences.append(Occurrence(offset=start, line=line))
        start = content.find(target_text, start + 1)
    return occurrences


def capture_context(
    content: str, offset: int, length: int, context_chars: int = DEFAULT_CONTEXT_CHARS
) -> tuple[str, str]:
    """Return (prefix, suffix): up to context_chars characters around a span."""
    prefix = content[max(0, offset - context_chars) : offset]
    suffix = content[offset + length : offset + length + context_chars]
    return prefix, suffix


def create_anchor(
    content: str,
    target_text: str,
    line_hint: int | None = None,
    context_chars: int = DEFAULT_CONTEXT_CHARS,
) -> Anchor:
    """
    Anchor target_text in content.

    With several occurrences, the one nearest to line_hint is used (ties go
    to the earliest); without a hint the earliest occurrence is used.

    Args:
        content: Latest committed content of the artifact
        target_text: Exact text to anchor to
        line_hint: Optional 1-indexed line to disambiguate repeated text
        context_chars: Characters of context captured on each side

    Returns:
        New Anchor with health=anchored

    Raises:
        InvalidInput: If target_text is empty or does not occur in content
    """
    if not target_text:
        raise InvalidInput("target_text must not be empty")

    occurrences = find_occurrences(content, target_text)
    if not occurrences:
        raise InvalidInput(f"Target text not found in latest version: {target_text[:60]!r}")

    if line_hint is None:
        chosen = occurrences[0]
    else:
        chosen = min(occurrences, key=lambda o: (abs(o.line - line_hint), o.offset))

    prefix, suffix = capture_context(content, chosen.offset, len(target_text), context_chars)
    return Anchor(
        target_text=target_text,
        prefix=prefix,
        suffix=suffix,
        line_hint=chosen.line,
        health=AnchorHealth.ANCHORED,
        drift_distance=0,
    )


def score_occurrence(
    anchor: Anchor,
    content: str,
    occurrence: Occurrence,
    hint_line: int | None,
) -> float:
    """Combined context/proximity score of one occurrence (0-1 scale)."""
    prefix, suffix = capture_context(
        content,
        occurrence.offset,
        len(anchor.target_text),
        max(len(anchor.prefix), len(anchor.suffix)),
    )
    context = context_similarity(anchor.prefix, prefix, anchor.suffix, suffix)
    proximity = 0.0
    if hint_line is not None:
        proximity = 1.0 / (1.0 + abs(occurrence.line - hint_line))
    return CONTEXT_WEIGHT * context + PROXIMITY_WEIGHT * proximity


def choose_occurrence(
    anchor: Anchor,
    content: str,
    occurrences: list[Occurrence],
    hint_line: int | None,
) -> Occurrence:
    """
    Pick the best of several occurrences.

    Highest score wins. Exact ties go to the occurrence nearest to hint_line,
    then to the earliest position.
    """
    if len(occurrences) == 1:
        return occurrences[0]

    scored = [(score_occurrence(anchor, content, o, hint_line), o) for o in occurrences]
    best_score = max(score for score, _ in scored)
    ties = [o for score, o in scored if best_score - score <= _SCORE_EPSILON]

    def tie_key(o: Occurrence) -> tuple[int, int]:
        distance = abs(o.line - hint_line) if hint_line is not None else 0
        return (distance, o.offset)

    return min(ties, key=tie_key)


def relocate_anchor(
    anchor: Anchor,
    content: str,
    hint_line: int | None = None,
    context_chars: int = DEFAULT_CONTEXT_CHARS,
) -> RelocationResult:
    """
    Relocate an anchor into new content.

    Args:
        anchor: Anchor as of the previous version
        content: New content
        hint_line: Expected 1-indexed line of the target in the new content,
            usually the old hint mapped through the line diff
        context_chars: Characters of context captured on each side

    Returns:
        RelocationResult. A relocated anchor has a fresh hint and context; an
        orphaned anchor keeps its previous target, context, and hint.
    """
    occurrences = find_occurrences(content, anchor.target_text)

    if not occurrences:
        orphaned = anchor.model_copy(
            update={"health": AnchorHealth.ORPHANED, "drift_distance": 0}
        )
        return RelocationResult(anchor=orphaned, relocated=False)

    chosen = choose_occurrence(anchor, content, occurrences, hint_line)
    prefix, suffix = capture_context(content, chosen.offset, len(anchor.target_text), context_chars)
    drift = abs(chosen.line - anchor.line_hint)

    relocated = Anchor(
        target_text=anchor.target_text,
        prefix=prefix,
        suffix=suffix,
        line_hint=chosen.line,
        health=AnchorHealth.ANCHORED if drift == 0 else AnchorHealth.DRIFTED,
        drift_distance=drift,
    )
    return RelocationResult(anchor=relocated, relocated=True)
