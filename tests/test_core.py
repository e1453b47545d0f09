"""Tests for gitreplay.core module."""

from pathlib import Path

import pytest

from gitreplay.core import (
    ChangeTracker,
    CheckpointNotFoundError,
    Commit,
    PathDecodeError,
    ReplayError,
    ReplayResult,
)


class TestCommit:
    """Tests for Commit dataclass."""

    def test_from_api(self):
        """Should map sha, message and parent shas from an API payload."""
        payload = {
            "sha": "c3" * 20,
            "commit": {"message": "Fix parser\n\nLonger body"},
            "parents": [{"sha": "p1" * 20}, {"sha": "p2" * 20}],
        }
        commit = Commit.from_api(payload)
        assert commit.sha == "c3" * 20
        assert commit.message == "Fix parser\n\nLonger body"
        assert commit.parent_shas == ("p1" * 20, "p2" * 20)

    def test_from_api_root_commit(self):
        """A root commit has no parents."""
        commit = Commit.from_api({"sha": "abc", "commit": {"message": "init"}, "parents": []})
        assert commit.parent_shas == ()
        assert commit.first_parent is None

    def test_from_api_missing_sha(self):
        """A payload without sha is not a commit."""
        with pytest.raises(KeyError):
            Commit.from_api({"message": "Not Found"})

    def test_first_parent(self):
        """Should return only the first parent of a merge."""
        commit = Commit(sha="m", parent_shas=("a", "b"))
        assert commit.first_parent == "a"

    def test_subject_and_short_sha(self):
        """Should expose the first message line and a 7-character sha."""
        commit = Commit(sha="0123456789abcdef", message="Subject line  \n\nBody")
        assert commit.subject == "Subject line"
        assert commit.short_sha == "0123456"

    def test_commit_is_immutable(self):
        """Commits cannot be changed once fetched."""
        commit = Commit(sha="abc")
        with pytest.raises(AttributeError):
            commit.sha = "def"


class TestChangeTracker:
    """Tests for ChangeTracker."""

    def test_starts_empty(self):
        """A new tracker has no changes."""
        changes = ChangeTracker()
        assert not changes
        assert changes.created == frozenset()
        assert changes.deleted == frozenset()
        assert changes.modified == frozenset()

    def test_records_are_sets(self):
        """Recording the same path twice keeps one entry."""
        changes = ChangeTracker()
        changes.record_modified(Path("/m/a.txt"))
        changes.record_modified(Path("/m/a.txt"))
        assert changes.modified == {Path("/m/a.txt")}
        assert changes

    def test_views_are_read_only(self):
        """Views are snapshots that cannot be mutated."""
        changes = ChangeTracker()
        changes.record_created(Path("/m/a.txt"))
        view = changes.created
        assert not hasattr(view, "add")
        changes.record_created(Path("/m/b.txt"))
        assert len(view) == 1
        assert len(changes.created) == 2

    def test_categories_are_independent(self):
        """A path may be both created and deleted in one session."""
        changes = ChangeTracker()
        changes.record_created(Path("/m/a.txt"))
        changes.record_deleted(Path("/m/a.txt"))
        assert Path("/m/a.txt") in changes.created
        assert Path("/m/a.txt") in changes.deleted
        assert changes.modified == frozenset()


class TestErrors:
    """Tests for the error hierarchy."""

    def test_checkpoint_not_found_message(self):
        """Should carry the target and the number of commits walked."""
        error = CheckpointNotFoundError("deadbeef", 12, "too many commits")
        assert isinstance(error, ReplayError)
        assert error.target_sha == "deadbeef"
        assert error.hops == 12
        assert "deadbeef" in str(error)

    def test_path_decode_error_is_value_error(self):
        """Decoding failures are also ValueErrors."""
        assert issubclass(PathDecodeError, ValueError)
        assert issubclass(PathDecodeError, ReplayError)


class TestReplayResult:
    """Tests for ReplayResult."""

    def test_up_to_date(self):
        """A result without applied commits is up to date."""
        assert ReplayResult(head_sha="abc").up_to_date
        assert not ReplayResult(head_sha="abc", applied=[Commit(sha="abc")]).up_to_date
