"""Core dataclasses and errors for gitreplay."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any


class ReplayError(Exception):
    """Base class for errors raised while replicating a remote repository."""

    pass


class FetchError(ReplayError):
    """Error fetching commit metadata or diff text from the remote."""

    pass


class CheckpointNotFoundError(ReplayError):
    """The ancestry walk could not reach the checkpoint commit."""

    def __init__(self, target_sha: str, hops: int, reason: str):
        self.target_sha = target_sha
        self.hops = hops
        super().__init__(
            f"Checkpoint {target_sha} not found after {hops} commits: {reason}"
        )


class MalformedDiffError(ReplayError):
    """Diff text that cannot be applied to the local mirror."""

    pass


class MirrorWriteError(ReplayError):
    """A file or directory in the local mirror could not be changed."""

    pass


class PathDecodeError(ReplayError, ValueError):
    """A path segment is not valid under the path codec."""

    pass


@dataclass(frozen=True)
class Commit:
    """A commit as reported by the hosting API.

    Only the first parent is followed by the default ancestry walk;
    later entries in ``parent_shas`` are merge parents.
    """

    sha: str
    message: str = ""
    parent_shas: tuple[str, ...] = ()

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> "Commit":
        """Build a Commit from a ``/repos/{owner}/{repo}/commits`` entry."""
        details = payload.get("commit") or {}
        parents = payload.get("parents") or []
        return cls(
            sha=payload["sha"],
            message=details.get("message", ""),
            parent_shas=tuple(parent["sha"] for parent in parents),
        )

    @property
    def short_sha(self) -> str:
        """First 7 characters of the sha for display."""
        return self.sha[:7]

    @property
    def subject(self) -> str:
        """First line of the commit message."""
        return self.message.split("\n", 1)[0].strip()

    @property
    def first_parent(self) -> str | None:
        return self.parent_shas[0] if self.parent_shas else None


class ChangeTracker:
    """Files created, deleted and modified during a replay session.

    Sets only grow. Entries are resolved local filesystem paths.
    """

    def __init__(self) -> None:
        self._created: set[Path] = set()
        self._deleted: set[Path] = set()
        self._modified: set[Path] = set()

    @property
    def created(self) -> frozenset[Path]:
        return frozenset(self._created)

    @property
    def deleted(self) -> frozenset[Path]:
        return frozenset(self._deleted)

    @property
    def modified(self) -> frozenset[Path]:
        return frozenset(self._modified)

    def record_created(self, path: Path) -> None:
        self._created.add(path)

    def record_deleted(self, path: Path) -> None:
        self._deleted.add(path)

    def record_modified(self, path: Path) -> None:
        self._modified.add(path)

    def __bool__(self) -> bool:
        return bool(self._created or self._deleted or self._modified)

    def __repr__(self) -> str:
        return (
            f"ChangeTracker(created={len(self._created)}, "
            f"modified={len(self._modified)}, deleted={len(self._deleted)})"
        )


@dataclass
class ReplayResult:
    """Outcome of replaying remote commits onto a local mirror."""

    head_sha: str
    applied: list[Commit] = field(default_factory=list)
    changes: ChangeTracker = field(default_factory=ChangeTracker)

    @property
    def up_to_date(self) -> bool:
        """True when there was nothing to apply."""
        return not self.applied
