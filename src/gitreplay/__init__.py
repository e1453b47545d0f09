"""gitreplay - Replicate a remote repository onto a local mirror from commit diffs."""

from __future__ import annotations

from pathlib import Path

from gitreplay.codecs import Base62PathCodec, PathCodec, PlainPathCodec
from gitreplay.core import (
    ChangeTracker,
    CheckpointNotFoundError,
    Commit,
    FetchError,
    MalformedDiffError,
    MirrorWriteError,
    PathDecodeError,
    ReplayError,
    ReplayResult,
)
from gitreplay.diff_apply import DiffApplier
from gitreplay.engine import ReplicationEngine
from gitreplay.github_api import GitHubDiffFetcher
from gitreplay.history import BreadthFirstStrategy, CommitHistoryWalker, FirstParentStrategy

__version__ = "0.1.0"

__all__ = [
    # Core types
    "Commit",
    "ChangeTracker",
    "ReplayResult",
    # Errors
    "ReplayError",
    "FetchError",
    "CheckpointNotFoundError",
    "MalformedDiffError",
    "MirrorWriteError",
    "PathDecodeError",
    # Components
    "PathCodec",
    "Base62PathCodec",
    "PlainPathCodec",
    "GitHubDiffFetcher",
    "CommitHistoryWalker",
    "FirstParentStrategy",
    "BreadthFirstStrategy",
    "DiffApplier",
    "ReplicationEngine",
    # Main functions
    "replay",
]


def replay(
    owner: str,
    repo: str,
    since_sha: str,
    local_root: Path | str,
    token: str | None = None,
    codec: PathCodec | None = None,
) -> ReplayResult:
    """Replay a GitHub repository's commits after ``since_sha`` onto a mirror.

    Args:
        owner: Repository owner.
        repo: Repository name.
        since_sha: Commit already reflected in the mirror.
        local_root: Root directory of the mirror.
        token: Optional API token.
        codec: Path codec for the repository's file names. Defaults to base62.

    Returns:
        ReplayResult with the new head sha, applied commits and changed files.
    """
    with GitHubDiffFetcher(owner, repo, token) as fetcher:
        engine = ReplicationEngine(fetcher, codec or Base62PathCodec())
        return engine.replay(since_sha, local_root)
