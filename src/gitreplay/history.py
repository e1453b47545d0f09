"""Discovery of the commits between a local checkpoint and the remote head."""

from __future__ import annotations

import logging
from collections import deque
from typing import Callable, Protocol

from gitreplay.core import CheckpointNotFoundError, Commit
from gitreplay.settings import DEFAULT_MAX_HOPS

logger = logging.getLogger(__name__)

FetchCommit = Callable[[str], Commit]


class CommitSource(Protocol):
    """Anything that can report the head commit and look up commits by sha."""

    def fetch_head(self) -> Commit: ...

    def fetch_commit(self, sha: str) -> Commit: ...


class AncestryStrategy(Protocol):
    """How to walk from the head back to the checkpoint commit."""

    name: str

    def walk(
        self, head: Commit, target_sha: str, fetch_commit: FetchCommit, max_hops: int
    ) -> list[Commit]:
        """Return the commits from ``head`` back to ``target_sha``, newest-first.

        The target commit itself is the last element.

        Raises:
            CheckpointNotFoundError: If the target cannot be reached within
                ``max_hops`` fetches.
        """
        ...


class FirstParentStrategy:
    """Follow first parents only. Correct for linear history."""

    name = "first-parent"

    def walk(
        self, head: Commit, target_sha: str, fetch_commit: FetchCommit, max_hops: int
    ) -> list[Commit]:
        commits: list[Commit] = []
        commit = head
        hops = 0
        while commit.sha != target_sha:
            commits.append(commit)
            parent = commit.first_parent
            if parent is None:
                raise CheckpointNotFoundError(
                    target_sha, hops, f"reached root commit {commit.short_sha}"
                )
            if hops >= max_hops:
                raise CheckpointNotFoundError(target_sha, hops, "too many commits")
            commit = fetch_commit(parent)
            hops += 1
        commits.append(commit)
        return commits


class BreadthFirstStrategy:
    """Walk every parent, merge parents included, without revisiting commits.

    The walk does not expand past the target commit. Branches that forked
    before the target are followed until ``max_hops`` runs out, so this
    strategy suits histories whose merges all happened after the checkpoint.
    """

    name = "breadth-first"

    def walk(
        self, head: Commit, target_sha: str, fetch_commit: FetchCommit, max_hops: int
    ) -> list[Commit]:
        collected: dict[str, Commit] = {}
        target: Commit | None = None
        seen = {head.sha}
        queue = deque([head])
        hops = 0

        while queue:
            commit = queue.popleft()
            if commit.sha == target_sha:
                target = commit
                continue
            collected[commit.sha] = commit
            for parent in commit.parent_shas:
                if parent in seen:
                    continue
                seen.add(parent)
                if hops >= max_hops:
                    raise CheckpointNotFoundError(target_sha, hops, "too many commits")
                queue.append(fetch_commit(parent))
                hops += 1

        if target is None:
            raise CheckpointNotFoundError(target_sha, hops, "no ancestor path to the checkpoint")
        return _children_first(collected) + [target]


def _children_first(commits: dict[str, Commit]) -> list[Commit]:
    """Order commits so each one precedes all of its parents."""
    children = {sha: 0 for sha in commits}
    for commit in commits.values():
        for parent in commit.parent_shas:
            if parent in children:
                children[parent] += 1

    ready = deque(sha for sha, count in children.items() if count == 0)
    ordered = []
    while ready:
        commit = commits[ready.popleft()]
        ordered.append(commit)
        for parent in commit.parent_shas:
            if parent in children:
                children[parent] -= 1
                if children[parent] == 0:
                    ready.append(parent)
    return ordered


STRATEGIES: dict[str, type] = {
    FirstParentStrategy.name: FirstParentStrategy,
    BreadthFirstStrategy.name: BreadthFirstStrategy,
}


class CommitHistoryWalker:
    """Collect the commits that separate a checkpoint from the remote head."""

    def __init__(
        self,
        source: CommitSource,
        strategy: AncestryStrategy | None = None,
        max_hops: int = DEFAULT_MAX_HOPS,
    ):
        self.source = source
        self.strategy = strategy or FirstParentStrategy()
        self.max_hops = max_hops

    def commits_since(self, target_sha: str) -> list[Commit]:
        """Return the commits from the remote head back to ``target_sha``.

        The list is newest-first and ends with the checkpoint commit. It is
        empty when the head already is the checkpoint.
        """
        head = self.source.fetch_head()
        if head.sha == target_sha:
            logger.debug("Head %s is the checkpoint, nothing to walk", head.short_sha)
            return []

        commits = self.strategy.walk(head, target_sha, self.source.fetch_commit, self.max_hops)
        logger.debug(
            "Walked %d commits from %s to %s (%s)",
            len(commits),
            head.short_sha,
            target_sha[:7],
            self.strategy.name,
        )
        return commits
