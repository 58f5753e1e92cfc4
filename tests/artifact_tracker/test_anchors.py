"""Tests for anchor creation and relocation."""

import pytest

from artifact_tracker.anchors import (
    Occurrence,
    capture_context,
    choose_occurrence,
    create_anchor,
    find_occurrences,
    line_of_offset,
    relocate_anchor,
    score_occurrence,
)
from artifact_tracker.errors import InvalidInput
from artifact_tracker.models import Anchor, AnchorHealth

REPEATED = "alpha\nTODO one\nbeta\nTODO two\n"


class TestFindOccurrences:
    """Tests for find_occurrences() and line_of_offset()."""

    def test_all_occurrences_with_lines(self) -> None:
        assert find_occurrences(REPEATED, "TODO") == [
            Occurrence(offset=6, line=2),
            Occurrence(offset=20, line=4),
        ]

    def test_case_sensitive(self) -> None:
        assert find_occurrences(REPEATED, "todo") == []

    def test_overlapping_occurrences(self) -> None:
        assert find_occurrences("aaa", "aa") == [Occurrence(0, 1), Occurrence(1, 1)]

    def test_multiline_target(self) -> None:
        assert find_occurrences(REPEATED, "one\nbeta") == [Occurrence(offset=11, line=2)]

    def test_empty_target(self) -> None:
        assert find_occurrences(REPEATED, "") == []

    def test_line_of_offset(self) -> None:
        assert line_of_offset(REPEATED, 0) == 1
        assert line_of_offset(REPEATED, 6) == 2
        assert line_of_offset(REPEATED, 20) == 4


class TestCaptureContext:
    """Tests for capture_context()."""

    def test_bounded_context(self) -> None:
        assert capture_context("0123456789", 5, 2, context_chars=3) == ("234", "789")

    def test_context_clipped_at_edges(self) -> None:
        assert capture_context("0123456789", 1, 1, context_chars=3) == ("0", "234")
        assert capture_context("0123456789", 8, 2, context_chars=3) == ("567", "")


class TestCreateAnchor:
    """Tests for create_anchor()."""

    def test_first_occurrence_by_default(self) -> None:
        anchor = create_anchor(REPEATED, "TODO")

        assert anchor.line_hint == 2
        assert anchor.prefix == "alpha\n"
        assert anchor.suffix == " one\nbeta\nTODO two\n"
        assert anchor.health == AnchorHealth.ANCHORED
        assert anchor.drift_distance == 0

    def test_line_hint_selects_nearest_occurrence(self) -> None:
        assert create_anchor(REPEATED, "TODO", line_hint=4).line_hint == 4

    def test_line_hint_tie_goes_to_earliest(self) -> None:
        assert create_anchor(REPEATED, "TODO", line_hint=3).line_hint == 2

    def test_context_chars_limits_context(self) -> None:
        anchor = create_anchor(REPEATED, "beta", context_chars=4)
        assert anchor.prefix == "one\n"
        assert anchor.suffix == "\nTOD"

    def test_empty_target_rejected(self) -> None:
        with pytest.raises(InvalidInput, match="must not be empty"):
            create_anchor(REPEATED, "")

    def test_absent_target_rejected(self) -> None:
        with pytest.raises(InvalidInput, match="not found"):
            create_anchor(REPEATED, "gamma")


class TestRelocateAnchor:
    """Tests for relocate_anchor()."""

    def test_unmoved_target_stays_anchored(self) -> None:
        anchor = create_anchor("# T\nintro\ntarget here\n", "target here")

        result = relocate_anchor(anchor, "# T\nintro\ntarget here\nmore\n", hint_line=3)

        assert result.relocated is True
        assert result.anchor.line_hint == 3
        assert result.anchor.health == AnchorHealth.ANCHORED
        assert result.anchor.drift_distance == 0
        assert result.anchor.suffix == "\nmore\n"

    def test_moved_target_drifts(self) -> None:
        anchor = create_anchor("# Title\nline1\nline2", "line1")

        result = relocate_anchor(anchor, "# Title\nline0\nline1\nline2", hint_line=3)

        assert result.relocated is True
        assert result.anchor.line_hint == 3
        assert result.anchor.health == AnchorHealth.DRIFTED
        assert result.anchor.drift_distance == 1

    def test_missing_target_orphans_and_keeps_anchor(self) -> None:
        anchor = create_anchor("# T\nkeep me\nbye\n", "bye")

        result = relocate_anchor(anchor, "# T\nkeep me\n")

        assert result.relocated is False
        assert result.anchor.health == AnchorHealth.ORPHANED
        assert result.anchor.line_hint == anchor.line_hint
        assert result.anchor.prefix == anchor.prefix
        assert result.anchor.target_text == "bye"

    def test_orphan_recovers_when_text_returns(self) -> None:
        anchor = create_anchor("# T\nbye\n", "bye")
        orphaned = relocate_anchor(anchor, "# T\n").anchor

        result = relocate_anchor(orphaned, "# T\nnew\nbye\n")

        assert result.relocated is True
        assert result.anchor.health == AnchorHealth.DRIFTED
        assert result.anchor.line_hint == 3

    def test_input_anchor_not_modified(self) -> None:
        anchor = create_anchor("# T\nbye\n", "bye")
        relocate_anchor(anchor, "nothing")
        assert anchor.health == AnchorHealth.ANCHORED


class TestChooseOccurrence:
    """Tests for scoring among repeated occurrences."""

    def test_context_beats_proximity(self) -> None:
        """Lines swapped: the occurrence with matching surroundings wins."""
        old = "aaa X bbb\nccc X ddd\n"
        anchor = create_anchor(old, "X", line_hint=2, context_chars=4)
        assert (anchor.prefix, anchor.suffix) == ("ccc ", " ddd")

        new = "ccc X ddd\naaa X bbb\n"
        result = relocate_anchor(anchor, new, hint_line=2, context_chars=4)

        assert result.anchor.line_hint == 1
        assert result.anchor.health == AnchorHealth.DRIFTED
        assert result.anchor.drift_distance == 1

    def test_proximity_decides_equal_context(self) -> None:
        anchor = Anchor(target_text="X", line_hint=2)
        content = "X\nX\nX\nX\n"
        occurrences = find_occurrences(content, "X")

        chosen = choose_occurrence(anchor, content, occurrences, hint_line=4)
        assert chosen.line == 4

    def test_tie_goes_to_nearest_then_earliest(self) -> None:
        anchor = Anchor(target_text="X", line_hint=1)
        content = "a\nX\nb\nX\n"
        occurrences = find_occurrences(content, "X")

        # Lines 2 and 4 are both one line from the hint
        chosen = choose_occurrence(anchor, content, occurrences, hint_line=3)
        assert chosen.line == 2

    def test_no_hint_picks_earliest_on_tie(self) -> None:
        anchor = Anchor(target_text="X", line_hint=1)
        content = "X\nX\n"

        chosen = choose_occurrence(anchor, content, find_occurrences(content, "X"), None)
        assert chosen == Occurrence(offset=0, line=1)

    def test_score_perfect_match(self) -> None:
        anchor = Anchor(target_text="X", line_hint=1)
        score = score_occurrence(anchor, "X", Occurrence(0, 1), hint_line=1)
        assert score == pytest.approx(1.0)

    def test_score_without_hint_is_context_only(self) -> None:
        anchor = Anchor(target_text="X", line_hint=1)
        score = score_occurrence(anchor, "X", Occurrence(0, 1), hint_line=None)
        assert score == pytest.approx(0.75)
