"""Checkpoint state for local mirrors.

Each mirror remembers which remote repository it follows and the last
commit already reflected on disk. The state is kept in
~/.gitreplay/mirrors.yml rather than inside the mirror, so that the mirror
tree only ever changes through diff application.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

MIRRORS_PATH = Path.home() / ".gitreplay" / "mirrors.yml"


@dataclass
class MirrorState:
    """Configuration for a single local mirror."""

    repo: str | None = None
    checkpoint: str | None = None

    @property
    def owner_and_name(self) -> tuple[str, str]:
        """Split ``repo`` into (owner, name).

        Raises:
            ValueError: If ``repo`` is unset or not of the form owner/name.
        """
        return parse_repo_slug(self.repo or "")


def parse_repo_slug(slug: str) -> tuple[str, str]:
    """Split an ``owner/name`` slug.

    Raises:
        ValueError: If the slug does not have exactly one slash.
    """
    owner, sep, name = slug.strip().partition("/")
    if not sep or not owner or not name or "/" in name:
        raise ValueError(f"Expected a repository of the form owner/name, got '{slug}'")
    return owner, name


def _mirror_key(root: Path) -> str:
    return str(root.expanduser().resolve())


def _read_mirrors() -> dict[str, dict[str, str]]:
    if not MIRRORS_PATH.exists():
        return {}
    try:
        data = yaml.safe_load(MIRRORS_PATH.read_text()) or {}
    except (yaml.YAMLError, OSError) as e:
        logger.warning("Could not read %s: %s", MIRRORS_PATH, e)
        return {}
    return data if isinstance(data, dict) else {}


def load_mirror_state(root: Path) -> MirrorState:
    """Load the stored state for the mirror at ``root``.

    Returns:
        MirrorState with saved settings, or defaults if none are stored.
    """
    entry = _read_mirrors().get(_mirror_key(root)) or {}
    return MirrorState(repo=entry.get("repo"), checkpoint=entry.get("checkpoint"))


def save_mirror_state(root: Path, state: MirrorState) -> None:
    """Store ``state`` for the mirror at ``root``.

    Fields left as None keep their previously stored value.
    """
    mirrors = _read_mirrors()
    entry = dict(mirrors.get(_mirror_key(root)) or {})
    if state.repo is not None:
        entry["repo"] = state.repo
    if state.checkpoint is not None:
        entry["checkpoint"] = state.checkpoint
    mirrors[_mirror_key(root)] = entry

    MIRRORS_PATH.parent.mkdir(parents=True, exist_ok=True)
    MIRRORS_PATH.write_text(yaml.dump(mirrors, default_flow_style=False, sort_keys=True))
