"""Tests for adding, listing, and resolving comments."""

from pathlib import Path

import pytest

from artifact_tracker.errors import InvalidInput, NotFound
from artifact_tracker.models import AnchorHealth, CommentStatus
from artifact_tracker.service import ArtifactService

RUN = "default"
PATH = "docs/plan.md"
CONTENT = "# Plan\nWe scale linearly.\nTODO: benchmark\nMore text.\nTODO: benchmark\n"


@pytest.fixture
def synced(service: ArtifactService) -> ArtifactService:
    service.sync(RUN, PATH, CONTENT)
    return service


class TestAddComment:
    """Tests for add_comment()."""

    def test_creates_open_anchored_comment(self, synced: ArtifactService) -> None:
        comment = synced.add_comment(RUN, PATH, "scale linearly", "Past 1k nodes?", "alice")

        assert len(comment.id) == 26
        assert comment.status == CommentStatus.OPEN
        assert comment.author == "alice"
        assert comment.anchor.target_text == "scale linearly"
        assert comment.anchor.line_hint == 2
        assert comment.anchor.prefix == "# Plan\nWe "
        assert comment.anchor.health == AnchorHealth.ANCHORED
        assert comment.artifact_id == synced.get_artifact(RUN, PATH).id

    def test_comment_persisted(self, synced: ArtifactService) -> None:
        comment = synced.add_comment(RUN, PATH, "More text", "msg", "alice")
        assert [c.id for c in synced.list_comments(RUN, PATH)] == [comment.id]

    def test_repeated_text_uses_first_occurrence(self, synced: ArtifactService) -> None:
        comment = synced.add_comment(RUN, PATH, "TODO: benchmark", "msg", "alice")
        assert comment.anchor.line_hint == 3

    def test_line_hint_selects_occurrence(self, synced: ArtifactService) -> None:
        comment = synced.add_comment(RUN, PATH, "TODO: benchmark", "msg", "alice", line_hint=5)
        assert comment.anchor.line_hint == 5

    def test_multiline_target(self, synced: ArtifactService) -> None:
        comment = synced.add_comment(RUN, PATH, "linearly.\nTODO", "msg", "alice")
        assert comment.anchor.line_hint == 2

    def test_anchors_against_latest_version_not_disk(
        self, synced: ArtifactService, project: Path
    ) -> None:
        (project / "docs" / "plan.md").write_text("# Plan\nunsynced edit\n")

        with pytest.raises(InvalidInput, match="not found in latest version"):
            synced.add_comment(RUN, PATH, "unsynced edit", "msg", "alice")

    def test_unknown_artifact(self, service: ArtifactService) -> None:
        with pytest.raises(NotFound, match="not tracked"):
            service.add_comment(RUN, "docs/none.md", "x", "msg", "alice")

    @pytest.mark.parametrize(
        ("target", "message", "author", "line_hint"),
        [
            ("", "msg", "alice", None),
            ("absent text", "msg", "alice", None),
            ("More text", "", "alice", None),
            ("More text", "msg", "", None),
            ("More text", "msg", "alice", 0),
        ],
    )
    def test_invalid_input(
        self,
        synced: ArtifactService,
        target: str,
        message: str,
        author: str,
        line_hint: int | None,
    ) -> None:
        with pytest.raises(InvalidInput):
            synced.add_comment(RUN, PATH, target, message, author, line_hint)
        assert synced.list_comments(RUN, PATH, "all") == []

    @pytest.mark.parametrize(
        "target,message,author,field",
        [
            ("More\ud800", "msg", "alice", "target_text"),
            ("More text", "bad \udc80 body", "alice", "message"),
            ("More text", "msg", "al\ud83dice", "author"),
        ],
    )
    def test_unencodable_text_rejected(
        self,
        synced: ArtifactService,
        target: str,
        message: str,
        author: str,
        field: str,
    ) -> None:
        """Lone surrogates (as decoded from JSON) are invalid input, not a storage failure."""
        with pytest.raises(InvalidInput, match=f"{field} is not valid text"):
            synced.add_comment(RUN, PATH, target, message, author)
        assert synced.list_comments(RUN, PATH, "all") == []

    def test_comment_added_during_sync_is_relocated(
        self, synced: ArtifactService, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """A comment committed mid-sync is picked up when the sync retries."""
        original = synced.versions._next_version
        added = []

        def racing(current, path, content):
            if not added:
                added.append(synced.add_comment(RUN, PATH, "More text", "msg", "alice"))
            return original(current, path, content)

        monkeypatch.setattr(synced.versions, "_next_version", racing)

        result = synced.sync(RUN, PATH, "# Plan\nIntro.\n" + CONTENT.split("\n", 1)[1])

        assert result.version == 2
        assert result.comments_relocated == 1
        [comment] = synced.list_comments(RUN, PATH)
        assert comment.id == added[0].id
        assert comment.anchor.line_hint == 5


class TestListComments:
    """Tests for list_comments()."""

    def test_status_filters(self, synced: ArtifactService) -> None:
        first = synced.add_comment(RUN, PATH, "scale linearly", "one", "alice")
        second = synced.add_comment(RUN, PATH, "More text", "two", "alice")
        synced.resolve_comment(RUN, first.id, "bob")

        assert [c.id for c in synced.list_comments(RUN, PATH)] == [second.id]
        assert [c.id for c in synced.list_comments(RUN, PATH, "resolved")] == [first.id]
        assert [c.id for c in synced.list_comments(RUN, PATH, "all")] == [first.id, second.id]

    def test_invalid_filter(self, synced: ArtifactService) -> None:
        with pytest.raises(InvalidInput, match="Invalid status filter"):
            synced.list_comments(RUN, PATH, "wontfix")

    def test_no_comments(self, synced: ArtifactService) -> None:
        assert synced.list_comments(RUN, PATH, "all") == []

    def test_unknown_artifact(self, service: ArtifactService) -> None:
        with pytest.raises(NotFound):
            service.list_comments(RUN, "docs/none.md")


class TestResolveComment:
    """Tests for resolve_comment()."""

    def test_resolve(self, synced: ArtifactService) -> None:
        comment = synced.add_comment(RUN, PATH, "More text", "msg", "alice")

        outcome = synced.resolve_comment(RUN, comment.id, "bob")

        assert outcome.already_resolved is False
        assert outcome.comment.status == CommentStatus.RESOLVED
        assert outcome.comment.resolved_by == "bob"
        assert outcome.comment.resolved_at is not None
        [stored] = synced.list_comments(RUN, PATH, "resolved")
        assert stored.resolved_by == "bob"

    def test_resolve_twice_is_noop(self, synced: ArtifactService) -> None:
        comment = synced.add_comment(RUN, PATH, "More text", "msg", "alice")
        first = synced.resolve_comment(RUN, comment.id, "bob")
        artifact_id = synced.get_artifact(RUN, PATH).id
        revision = synced.store.read_state(RUN, artifact_id).revision

        second = synced.resolve_comment(RUN, comment.id, "carol")

        assert second.already_resolved is True
        assert second.comment.resolved_by == "bob"
        assert second.comment.resolved_at == first.comment.resolved_at
        assert synced.store.read_state(RUN, artifact_id).revision == revision

    def test_resolved_comment_survives_sync(self, synced: ArtifactService) -> None:
        comment = synced.add_comment(RUN, PATH, "More text", "msg", "alice")
        synced.resolve_comment(RUN, comment.id, "bob")

        synced.sync(RUN, PATH, "# Plan\n")

        [stored] = synced.list_comments(RUN, PATH, "resolved")
        assert stored.status == CommentStatus.RESOLVED

    def test_unknown_comment(self, synced: ArtifactService) -> None:
        with pytest.raises(NotFound, match="Comment not found"):
            synced.resolve_comment(RUN, "01ARZ3NDEKTSV4RRFFQ69G5FAV", "bob")

    def test_comment_of_other_run_not_found(self, synced: ArtifactService) -> None:
        comment = synced.add_comment(RUN, PATH, "More text", "msg", "alice")
        synced.sync("other", PATH, CONTENT)

        with pytest.raises(NotFound):
            synced.resolve_comment("other", comment.id, "bob")

    def test_empty_resolver(self, synced: ArtifactService) -> None:
        comment = synced.add_comment(RUN, PATH, "More text", "msg", "alice")
        with pytest.raises(InvalidInput, match="resolver"):
            synced.resolve_comment(RUN, comment.id, "  ")

    def test_unencodable_resolver(self, synced: ArtifactService) -> None:
        comment = synced.add_comment(RUN, PATH, "More text", "msg", "alice")
        with pytest.raises(InvalidInput, match="resolver is not valid text"):
            synced.resolve_comment(RUN, comment.id, "bob\ud800")
        assert synced.list_comments(RUN, PATH)[0].status == CommentStatus.OPEN
