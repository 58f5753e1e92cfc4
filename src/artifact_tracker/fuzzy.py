"""Text similarity used to score candidate anchor positions.

Combines a normalized Levenshtein ratio (character edits) with a Jaccard
index over word bigrams (phrase overlap). Both are pure Python and
deterministic, so relocation always picks the same occurrence for the same
inputs.
"""

import unicodedata
from typing import NamedTuple


class SimilarityScore(NamedTuple):
    """Combined similarity metrics for two strings."""

    levenshtein: float  # 0-1, higher is more similar
    jaccard: float  # 0-1, higher is more similar
    combined: float  # (levenshtein + jaccard) / 2


def normalize_text(text: str) -> str:
    """Normalize unicode to NFC so equivalent text compares equal."""
    return unicodedata.normalize("NFC", text)


def levenshtein_similarity(s1: str, s2: str) -> float:
    """
    Compute normalized Levenshtein similarity (0-1 scale).

    Wagner-Fischer with a single-row buffer sized to the shorter string.

    Args:
        s1: First string (normalized automatically)
        s2: Second string (normalized automatically)

    Returns:
        1.0 for identical strings, 0.0 when nothing lines up
    """
    s1 = normalize_text(s1)
    s2 = normalize_text(s2)

    if s1 == s2:
        return 1.0
    if not s1 or not s2:
        return 0.0

    if len(s1) > len(s2):
        s1, s2 = s2, s1

    prev_row = list(range(len(s1) + 1))
    curr_row = [0] * (len(s1) + 1)

    for i, c2 in enumerate(s2, start=1):
        curr_row[0] = i
        for j, c1 in enumerate(s1, start=1):
            if c1 == c2:
                curr_row[j] = prev_row[j - 1]
            else:
                curr_row[j] = 1 + min(prev_row[j], curr_row[j - 1], prev_row[j - 1])
        prev_row, curr_row = curr_row, prev_row

    distance = prev_row[len(s1)]
    return 1.0 - (distance / len(s2))


def _word_bigrams(text: str) -> set[str]:
    """Word bigrams of text; single words when there are fewer than two."""
    words = normalize_text(text).split()
    if len(words) < 2:
        return set(words)
    return {f"{words[i]} {words[i + 1]}" for i in range(len(words) - 1)}


def jaccard_similarity(s1: str, s2: str) -> float:
    """Jaccard index over word bigrams (0-1 scale); two blank strings are identical."""
    bigrams1 = _word_bigrams(s1)
    bigrams2 = _word_bigrams(s2)

    if not bigrams1 and not bigrams2:
        return 1.0
    if not bigrams1 or not bigrams2:
        return 0.0
    return len(bigrams1 & bigrams2) / len(bigrams1 | bigrams2)


def compute_similarity(s1: str, s2: str) -> SimilarityScore:
    """Combine Levenshtein and Jaccard similarity into one score."""
    lev = levenshtein_similarity(s1, s2)
    jac = jaccard_similarity(s1, s2)
    return SimilarityScore(levenshtein=lev, jaccard=jac, combined=(lev + jac) / 2.0)


def context_similarity(
    stored_prefix: str, candidate_prefix: str, stored_suffix: str, candidate_suffix: str
) -> float:
    """
    Score how well a candidate's surroundings match the stored context.

    Prefixes are compared right-aligned and suffixes left-aligned: the
    candidate side is cut to the stored length first, so text far from the
    anchor does not dilute the score.

    Returns:
        Average of the prefix and suffix combined similarity (0-1 scale)
    """
    if stored_prefix:
        candidate_prefix = candidate_prefix[-len(stored_prefix) :]
    else:
        candidate_prefix = candidate_prefix[:0]
    candidate_suffix = candidate_suffix[: len(stored_suffix)]

    prefix_score = compute_similarity(stored_prefix, candidate_prefix).combined
    suffix_score = compute_similarity(stored_suffix, candidate_suffix).combined
    return (prefix_score + suffix_score) / 2.0
