"""Global settings management for gitreplay.

This module handles the global config file at ~/.gitreplay/config.yml.
For per-mirror checkpoints, see config.py.
"""

from __future__ import annotations

import logging
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

# Global config file path
CONFIG_PATH = Path.home() / ".gitreplay" / "config.yml"

DEFAULT_API_URL = "https://api.github.com"
DEFAULT_MAX_HOPS = 10_000

TOKEN_ENV_VARS = ("GITREPLAY_TOKEN", "GITHUB_TOKEN")


@dataclass
class ReplaySettings:
    """Settings shared by every mirror."""

    api_url: str = DEFAULT_API_URL
    token: str | None = None
    codec: str = "base62"
    max_hops: int = DEFAULT_MAX_HOPS
    retry_delay: float = 0.0
    max_retries: int | None = None
    timeout: float = 30.0
    plugins: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ReplaySettings":
        allowed = set(cls.__dataclass_fields__)
        unknown = set(data) - allowed
        if unknown:
            logger.warning("Ignoring unknown settings: %s", ", ".join(sorted(unknown)))
        return cls(**{key: value for key, value in data.items() if key in allowed})


def get_config() -> dict[str, Any]:
    """Get the raw gitreplay configuration.

    Config file format (~/.gitreplay/config.yml):
    ```yaml
    api_url: https://api.github.com
    codec: base62
    retry_delay: 0.5
    plugins:
      - mycodecs.rot13:Rot13Plugin
    ```

    Returns:
        The config dict, or empty dict if not exists.
    """
    if not CONFIG_PATH.exists():
        return {}

    try:
        content = CONFIG_PATH.read_text()
        data = yaml.safe_load(content) or {}
    except (yaml.YAMLError, OSError) as e:
        logger.warning("Could not read %s: %s", CONFIG_PATH, e)
        return {}

    if not isinstance(data, dict):
        logger.warning("Ignoring %s: expected a mapping at the top level", CONFIG_PATH)
        return {}
    return data


def load_settings() -> ReplaySettings:
    """Load settings from the config file, applying environment overrides.

    ``GITREPLAY_TOKEN`` (or ``GITHUB_TOKEN``) replaces the configured token.
    """
    settings = ReplaySettings.from_dict(get_config())
    for var in TOKEN_ENV_VARS:
        token = os.environ.get(var)
        if token:
            settings.token = token
            break
    return settings


def save_config(config: dict[str, Any]) -> None:
    """Save the raw gitreplay configuration."""
    CONFIG_PATH.parent.mkdir(parents=True, exist_ok=True)
    CONFIG_PATH.write_text(yaml.dump(config, default_flow_style=False, sort_keys=False))


def save_settings(settings: ReplaySettings) -> None:
    """Save settings, leaving out the token when it came from the environment."""
    data = asdict(settings)
    if any(os.environ.get(var) == settings.token for var in TOKEN_ENV_VARS):
        data.pop("token")
    save_config(data)
