"""Replication of a remote repository's history onto a local mirror."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Protocol

from gitreplay.codecs import PathCodec
from gitreplay.core import ChangeTracker, Commit, ReplayResult
from gitreplay.diff_apply import DiffApplier
from gitreplay.history import CommitHistoryWalker, CommitSource

logger = logging.getLogger(__name__)


class DiffFetcher(CommitSource, Protocol):
    """A commit source that can also return each commit's unified diff."""

    def fetch_diff(self, sha: str) -> str: ...


class ReplicationEngine:
    """Bring a local mirror from a checkpoint commit up to the remote head.

    One engine is one replay session: its ``changes`` accumulate over every
    diff it applies. Sessions against the same mirror must not overlap.
    """

    def __init__(
        self,
        fetcher: DiffFetcher,
        codec: PathCodec,
        walker: CommitHistoryWalker | None = None,
    ):
        self.fetcher = fetcher
        self.codec = codec
        self.walker = walker or CommitHistoryWalker(fetcher)
        self.changes = ChangeTracker()

    def commits_since(self, target_sha: str) -> list[Commit]:
        """Newest-first commits from the remote head back to ``target_sha``."""
        return self.walker.commits_since(target_sha)

    def apply_diff(self, diff_text: str, local_root: Path | str) -> ChangeTracker:
        """Patch the mirror at ``local_root`` with one commit's diff."""
        return DiffApplier(local_root, self.codec, self.changes).apply(diff_text)

    def apply_commits(
        self,
        commits: list[Commit],
        local_root: Path | str,
        checkpoint_sha: str | None = None,
        on_applied: Callable[[Commit], None] | None = None,
    ) -> list[Commit]:
        """Apply a newest-first commit range, oldest commit first.

        The checkpoint commit is already reflected in the mirror and is
        skipped. ``on_applied`` is called after each commit reaches the
        mirror, so a caller can advance its checkpoint before the next one.

        Returns:
            The commits that were applied, oldest first.
        """
        applied = []
        for commit in reversed(commits):
            if commit.sha == checkpoint_sha:
                continue
            logger.debug("Applying commit %s: %s", commit.short_sha, commit.subject)
            self.apply_diff(self.fetcher.fetch_diff(commit.sha), local_root)
            applied.append(commit)
            if on_applied is not None:
                on_applied(commit)
        return applied

    def replay(
        self,
        target_sha: str,
        local_root: Path | str,
        on_applied: Callable[[Commit], None] | None = None,
    ) -> ReplayResult:
        """Replay every remote commit after ``target_sha`` onto the mirror.

        Raises:
            CheckpointNotFoundError: If ``target_sha`` is not an ancestor of
                the remote head.
        """
        commits = self.commits_since(target_sha)
        if not commits:
            logger.info("Mirror %s is up to date at %s", local_root, target_sha[:7])
            return ReplayResult(head_sha=target_sha, changes=self.changes)

        applied = self.apply_commits(
            commits, local_root, checkpoint_sha=target_sha, on_applied=on_applied
        )
        logger.info(
            "Applied %d commits to %s: %d created, %d modified, %d deleted",
            len(applied),
            local_root,
            len(self.changes.created),
            len(self.changes.modified),
            len(self.changes.deleted),
        )
        return ReplayResult(head_sha=commits[0].sha, applied=applied, changes=self.changes)
