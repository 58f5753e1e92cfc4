"""Tests for text similarity scoring."""

import pytest

from artifact_tracker.fuzzy import (
    compute_similarity,
    context_similarity,
    jaccard_similarity,
    levenshtein_similarity,
    normalize_text,
)


class TestLevenshteinSimilarity:
    """Tests for levenshtein_similarity()."""

    def test_identical_strings(self) -> None:
        assert levenshtein_similarity("hello", "hello") == 1.0

    def test_both_empty(self) -> None:
        assert levenshtein_similarity("", "") == 1.0

    def test_one_empty(self) -> None:
        assert levenshtein_similarity("abc", "") == 0.0
        assert levenshtein_similarity("", "abc") == 0.0

    def test_classic_example(self) -> None:
        """kitten -> sitting is three edits over seven characters."""
        assert levenshtein_similarity("kitten", "sitting") == pytest.approx(1 - 3 / 7)

    def test_symmetric(self) -> None:
        assert levenshtein_similarity("flaw", "lawn") == levenshtein_similarity("lawn", "flaw")

    def test_unicode_normalized(self) -> None:
        """Composed and decomposed accents compare equal."""
        assert levenshtein_similarity("caf\u00e9", "cafe\u0301") == 1.0


class TestJaccardSimilarity:
    """Tests for jaccard_similarity()."""

    def test_shared_bigrams(self) -> None:
        score = jaccard_similarity("the quick brown fox", "the quick red fox")
        assert score == pytest.approx(1 / 5)

    def test_single_words_compared_as_words(self) -> None:
        assert jaccard_similarity("alpha", "alpha") == 1.0
        assert jaccard_similarity("alpha", "beta") == 0.0

    def test_blank_strings(self) -> None:
        assert jaccard_similarity("", "   ") == 1.0
        assert jaccard_similarity("", "words here") == 0.0


class TestComputeSimilarity:
    """Tests for compute_similarity()."""

    def test_combined_is_average(self) -> None:
        score = compute_similarity("the quick brown fox", "the quick red fox")
        assert score.combined == pytest.approx((score.levenshtein + score.jaccard) / 2)

    def test_identical(self) -> None:
        score = compute_similarity("same text", "same text")
        assert score == (1.0, 1.0, 1.0)


class TestContextSimilarity:
    """Tests for context_similarity()."""

    def test_identical_context(self) -> None:
        assert context_similarity("before ", "before ", " after", " after") == 1.0

    def test_empty_stored_context_matches_anything(self) -> None:
        """Nothing stored means nothing to disagree with."""
        assert context_similarity("", "anything", "", "else") == 1.0

    def test_candidate_prefix_right_aligned(self) -> None:
        """Only the characters nearest the anchor are compared on the prefix side."""
        assert context_similarity("abc", "unrelated abc", "", "") == 1.0

    def test_candidate_suffix_left_aligned(self) -> None:
        assert context_similarity("", "", "xyz", "xyz and more") == 1.0

    def test_different_context_scores_lower(self) -> None:
        same = context_similarity("## Setup\n", "## Setup\n", "\nnext", "\nnext")
        different = context_similarity("## Setup\n", "## Usage\n", "\nnext", "\nother")
        assert different < same


def test_normalize_text_nfc() -> None:
    assert normalize_text("cafe\u0301") == "caf\u00e9"
