"""Shared fixtures for gitreplay tests."""

import pytest

from gitreplay.plugins import reset_plugin_manager
from gitreplay.settings import TOKEN_ENV_VARS


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep settings, mirror state and plugins away from the real home directory."""
    config_dir = tmp_path / ".gitreplay"
    monkeypatch.setattr("gitreplay.settings.CONFIG_PATH", config_dir / "config.yml")
    monkeypatch.setattr("gitreplay.config.MIRRORS_PATH", config_dir / "mirrors.yml")
    for var in TOKEN_ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    reset_plugin_manager()
    yield config_dir
    reset_plugin_manager()


@pytest.fixture
def mirror(tmp_path):
    """An empty local mirror directory."""
    root = tmp_path / "mirror"
    root.mkdir()
    return root
