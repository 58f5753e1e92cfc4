"""Unit tests for artifact tracker data models."""

import pytest
from pydantic import ValidationError

from artifact_tracker.hashing import compute_content_hash
from artifact_tracker.models import (
    Anchor,
    AnchorHealth,
    ArtifactState,
    Comment,
    CommentStatus,
    RegistryEntry,
    RegistryFile,
    VersionRecord,
    new_id,
    utc_timestamp,
)


def make_anchor(**kwargs) -> Anchor:
    return Anchor(target_text=kwargs.pop("target_text", "text"), line_hint=1, **kwargs)


def make_record(version: int) -> VersionRecord:
    return VersionRecord(
        version=version,
        content_hash=compute_content_hash(str(version)),
        title="T",
        synced_at="2026-02-01T10:00:00Z",
    )


class TestTimestampsAndIds:
    """Tests for utc_timestamp() and new_id()."""

    def test_utc_timestamp_format(self):
        assert utc_timestamp().endswith("Z")
        assert "+00:00" not in utc_timestamp()

    def test_new_id_is_ulid(self):
        first, second = new_id(), new_id()
        assert len(first) == 26
        assert first != second


class TestAnchor:
    """Tests for Anchor model."""

    def test_defaults(self):
        anchor = make_anchor()
        assert anchor.prefix == ""
        assert anchor.suffix == ""
        assert anchor.health == AnchorHealth.ANCHORED
        assert anchor.drift_distance == 0

    def test_rejects_empty_target(self):
        with pytest.raises(ValidationError):
            make_anchor(target_text="")

    def test_rejects_non_positive_line_hint(self):
        with pytest.raises(ValidationError):
            Anchor(target_text="x", line_hint=0)


class TestComment:
    """Tests for Comment model."""

    def test_creation_defaults(self):
        comment = Comment(artifact_id="A1", anchor=make_anchor(), message="m", author="alice")

        assert len(comment.id) == 26
        assert comment.status == CommentStatus.OPEN
        assert comment.resolved_by is None
        assert comment.is_orphaned is False

    def test_rejects_bad_id(self):
        with pytest.raises(ValidationError, match="ULID"):
            Comment(id="short", artifact_id="A1", anchor=make_anchor(), message="m", author="a")

    def test_rejects_non_utc_timestamp(self):
        with pytest.raises(ValidationError):
            Comment(
                artifact_id="A1",
                anchor=make_anchor(),
                message="m",
                author="a",
                created_at="2026-02-01T10:00:00+02:00",
            )

    def test_rejects_long_message(self):
        with pytest.raises(ValidationError):
            Comment(artifact_id="A1", anchor=make_anchor(), message="x" * 10001, author="a")

    def test_resolve(self):
        comment = Comment(artifact_id="A1", anchor=make_anchor(), message="m", author="alice")

        comment.resolve("bob")

        assert comment.status == CommentStatus.RESOLVED
        assert comment.resolved_by == "bob"
        assert comment.resolved_at is not None

    def test_resolve_twice_raises(self):
        comment = Comment(artifact_id="A1", anchor=make_anchor(), message="m", author="alice")
        comment.resolve("bob")

        with pytest.raises(ValueError, match="already resolved"):
            comment.resolve("carol")
        assert comment.resolved_by == "bob"

    def test_is_orphaned(self):
        comment = Comment(
            artifact_id="A1",
            anchor=make_anchor(health=AnchorHealth.ORPHANED),
            message="m",
            author="a",
        )
        assert comment.is_orphaned is True


class TestVersionRecord:
    """Tests for VersionRecord model."""

    def test_is_immutable(self):
        record = make_record(1)
        with pytest.raises(ValidationError):
            record.title = "Changed"  # type: ignore

    def test_rejects_bad_hash(self):
        with pytest.raises(ValidationError):
            VersionRecord(version=1, content_hash="md5:abc", title="T")

    def test_rejects_version_zero(self):
        with pytest.raises(ValidationError):
            VersionRecord(version=0, content_hash=compute_content_hash(""), title="T")


class TestArtifactState:
    """Tests for ArtifactState model."""

    def test_empty_history(self):
        state = ArtifactState(artifact_id="A1", run_id="default", title="T")

        assert state.current_version == 0
        assert state.latest is None
        assert state.revision == 0

    def test_current_version(self):
        state = ArtifactState(
            artifact_id="A1",
            run_id="default",
            title="T",
            versions=[make_record(1), make_record(2)],
        )
        assert state.current_version == 2
        assert state.latest.version == 2

    def test_rejects_gap_in_history(self):
        with pytest.raises(ValidationError, match="gap"):
            ArtifactState(
                artifact_id="A1",
                run_id="default",
                title="T",
                versions=[make_record(1), make_record(3)],
            )

    def test_find_comment(self):
        comment = Comment(artifact_id="A1", anchor=make_anchor(), message="m", author="a")
        state = ArtifactState(artifact_id="A1", run_id="default", title="T", comments=[comment])

        assert state.find_comment(comment.id) is comment
        assert state.find_comment(new_id()) is None

    def test_json_round_trip_preserves_comments(self):
        comment = Comment(artifact_id="A1", anchor=make_anchor(), message="m", author="a")
        state = ArtifactState(
            artifact_id="A1",
            run_id="default",
            title="T",
            versions=[make_record(1)],
            comments=[comment],
        )

        restored = ArtifactState.model_validate(state.model_dump(mode="json"))

        assert restored == state


class TestRegistryFile:
    """Tests for RegistryFile model."""

    def test_find_by_path(self):
        registry = RegistryFile(
            run_id="default",
            artifacts={"A1": RegistryEntry(path="docs/a.md"), "A2": RegistryEntry(path="b.md")},
        )

        assert registry.find_by_path("b.md") == "A2"
        assert registry.find_by_path("missing.md") is None
