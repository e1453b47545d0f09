"""Tests for gitreplay.history module."""

import pytest

from gitreplay.core import CheckpointNotFoundError, Commit
from gitreplay.history import (
    STRATEGIES,
    BreadthFirstStrategy,
    CommitHistoryWalker,
    FirstParentStrategy,
)


class FakeSource:
    """In-memory commit graph standing in for the GitHub API."""

    def __init__(self, head, *commits):
        self.head = head
        self.commits = {c.sha: c for c in (head, *commits)}
        self.fetched = []

    def fetch_head(self):
        return self.head

    def fetch_commit(self, sha):
        self.fetched.append(sha)
        return self.commits[sha]


C1 = Commit(sha="c1", message="first")
C2 = Commit(sha="c2", message="second", parent_shas=("c1",))
C3 = Commit(sha="c3", message="third", parent_shas=("c2",))


def shas(commits):
    return [c.sha for c in commits]


class TestCommitHistoryWalker:
    """Tests for CommitHistoryWalker with the default strategy."""

    def test_up_to_date(self):
        """Head equal to the checkpoint yields nothing."""
        source = FakeSource(C3, C2, C1)
        assert CommitHistoryWalker(source).commits_since("c3") == []
        assert source.fetched == []

    def test_linear_history(self):
        """Newest-first, ending with the checkpoint commit."""
        source = FakeSource(C3, C2, C1)
        commits = CommitHistoryWalker(source).commits_since("c1")
        assert shas(commits) == ["c3", "c2", "c1"]
        assert source.fetched == ["c2", "c1"]

    def test_checkpoint_is_parent_of_head(self):
        source = FakeSource(C3, C2, C1)
        assert shas(CommitHistoryWalker(source).commits_since("c2")) == ["c3", "c2"]

    def test_root_reached(self):
        """Walking off the root without meeting the target fails."""
        source = FakeSource(C3, C2, C1)
        with pytest.raises(CheckpointNotFoundError) as exc_info:
            CommitHistoryWalker(source).commits_since("unknown")
        assert exc_info.value.target_sha == "unknown"
        assert exc_info.value.hops == 2
        assert "root" in str(exc_info.value)

    def test_max_hops(self):
        """The walk stops after max_hops fetches."""
        source = FakeSource(C3, C2, C1)
        with pytest.raises(CheckpointNotFoundError, match="too many commits"):
            CommitHistoryWalker(source, max_hops=1).commits_since("c1")
        assert source.fetched == ["c2"]

    def test_max_hops_exactly_enough(self):
        source = FakeSource(C3, C2, C1)
        assert shas(CommitHistoryWalker(source, max_hops=2).commits_since("c1")) == [
            "c3",
            "c2",
            "c1",
        ]

    def test_default_strategy(self):
        walker = CommitHistoryWalker(FakeSource(C1))
        assert isinstance(walker.strategy, FirstParentStrategy)


class TestMergeHistory:
    """Tests for histories containing a merge after the checkpoint."""

    B1 = Commit(sha="b1", message="branch work", parent_shas=("c1",))
    M = Commit(sha="m", message="merge", parent_shas=("c2", "b1"))

    def source(self):
        return FakeSource(self.M, C2, self.B1, C1)

    def test_first_parent_skips_merged_branch(self):
        """Only the first-parent chain is walked."""
        walker = CommitHistoryWalker(self.source(), FirstParentStrategy())
        assert shas(walker.commits_since("c1")) == ["m", "c2", "c1"]

    def test_breadth_first_includes_merged_branch(self):
        """Every commit after the checkpoint appears before its parents."""
        walker = CommitHistoryWalker(self.source(), BreadthFirstStrategy())
        assert shas(walker.commits_since("c1")) == ["m", "c2", "b1", "c1"]

    def test_breadth_first_fetches_each_commit_once(self):
        source = self.source()
        CommitHistoryWalker(source, BreadthFirstStrategy()).commits_since("c1")
        assert sorted(source.fetched) == ["b1", "c1", "c2"]

    def test_breadth_first_children_precede_parents(self):
        """A longer side branch is still ordered before shared ancestors."""
        b2 = Commit(sha="b2", parent_shas=("b1",))
        m = Commit(sha="m", parent_shas=("c2", "b2"))
        source = FakeSource(m, C2, b2, self.B1, C1)
        commits = CommitHistoryWalker(source, BreadthFirstStrategy()).commits_since("c1")
        order = shas(commits)
        assert order[0] == "m"
        assert order[-1] == "c1"
        assert order.index("b2") < order.index("b1")
        assert set(order) == {"m", "c2", "b2", "b1", "c1"}

    def test_breadth_first_missing_target(self):
        source = self.source()
        with pytest.raises(CheckpointNotFoundError, match="no ancestor path"):
            CommitHistoryWalker(source, BreadthFirstStrategy()).commits_since("zzz")

    def test_breadth_first_max_hops(self):
        with pytest.raises(CheckpointNotFoundError, match="too many commits"):
            CommitHistoryWalker(self.source(), BreadthFirstStrategy(), max_hops=1).commits_since(
                "c1"
            )


class TestStrategies:
    """Tests for the strategy registry."""

    def test_names(self):
        assert STRATEGIES["first-parent"] is FirstParentStrategy
        assert STRATEGIES["breadth-first"] is BreadthFirstStrategy
