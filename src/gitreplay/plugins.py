"""Pluggy hookspecs for gitreplay path codecs."""

from __future__ import annotations

import importlib
import importlib.util
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

import pluggy

if TYPE_CHECKING:
    from gitreplay.codecs import PathCodec

logger = logging.getLogger(__name__)

hookspec = pluggy.HookspecMarker("gitreplay")
hookimpl = pluggy.HookimplMarker("gitreplay")


class GitReplaySpec:
    """Hook specifications for gitreplay plugins."""

    @hookspec
    def gitreplay_get_plugin_info(self) -> dict[str, str] | None:
        """Return plugin identification info.

        Returns:
            Dict with 'name' (the codec name, like 'base62') and
            'description' (human-readable description), or None.
        """

    @hookspec(firstresult=True)
    def gitreplay_get_path_codec(self, name: str) -> PathCodec | None:
        """Return the path codec registered under ``name``.

        Args:
            name: Codec name requested by the user or settings file.

        Returns:
            An object with ``encode(text, delimiter)`` and
            ``decode(text, delimiter)``, or None if this plugin does not
            provide ``name``.
        """


def get_plugin_manager() -> pluggy.PluginManager:
    """Create and configure the plugin manager."""
    pm = pluggy.PluginManager("gitreplay")
    pm.add_hookspecs(GitReplaySpec)
    return pm


def register_builtin_plugins(pm: pluggy.PluginManager) -> None:
    """Register the built-in codec plugins."""
    from gitreplay.codecs import Base62CodecPlugin, PlainCodecPlugin

    pm.register(Base62CodecPlugin())
    pm.register(PlainCodecPlugin())


def load_plugins_from_entry_points(pm: pluggy.PluginManager) -> int:
    """Load plugins declared under the ``gitreplay`` entry-point group.

    Classes are instantiated; other objects are registered as-is.

    Returns:
        Number of plugins loaded.
    """
    from importlib.metadata import entry_points

    count = 0
    for ep in entry_points(group="gitreplay"):
        try:
            plugin_obj = ep.load()
            if isinstance(plugin_obj, type):
                plugin_obj = plugin_obj()
            if not pm.is_registered(plugin_obj):
                pm.register(plugin_obj, name=ep.name)
                count += 1
        except Exception as e:
            logger.warning("Skipping plugin entry point %s: %s", ep.name, e)

    return count


def load_plugins_from_settings(pm: pluggy.PluginManager, specs: list[str]) -> int:
    """Load plugins listed under ``plugins`` in the settings file.

    Returns:
        Number of plugins loaded.
    """
    count = 0
    for plugin_spec in specs:
        try:
            plugin = load_plugin_from_spec(plugin_spec)
            if plugin and not pm.is_registered(plugin):
                pm.register(plugin)
                count += 1
        except Exception as e:
            logger.warning("Skipping plugin %s: %s", plugin_spec, e)

    return count


def load_plugin_from_spec(spec: str) -> Any:
    """Load a plugin from a specification string.

    Args:
        spec: Either "package.module:ClassName" or "/path/to/file.py:ClassName"

    Returns:
        Instantiated plugin object.
    """
    if ":" not in spec:
        raise ValueError(f"Invalid plugin spec '{spec}': must contain ':'")

    module_path, class_name = spec.rsplit(":", 1)

    if module_path.endswith(".py"):
        file_path = Path(module_path).expanduser().resolve()
        if not file_path.exists():
            raise FileNotFoundError(f"Plugin file not found: {file_path}")

        spec_obj = importlib.util.spec_from_file_location(file_path.stem, file_path)
        if spec_obj is None or spec_obj.loader is None:
            raise ImportError(f"Cannot load module from {file_path}")

        module = importlib.util.module_from_spec(spec_obj)
        spec_obj.loader.exec_module(module)
    else:
        module = importlib.import_module(module_path)

    plugin_class = getattr(module, class_name)
    return plugin_class()


_configured_plugin_manager: pluggy.PluginManager | None = None


def get_configured_plugin_manager() -> pluggy.PluginManager:
    """Get a plugin manager with all plugins registered.

    Loads plugins from:
    1. Built-in codecs (base62, plain)
    2. Pip-installed plugins (via entry points)
    3. The ``plugins`` list in ~/.gitreplay/config.yml

    The manager is cached, so repeated calls return the same instance.
    """
    global _configured_plugin_manager
    if _configured_plugin_manager is None:
        from gitreplay.settings import load_settings

        pm = get_plugin_manager()
        register_builtin_plugins(pm)
        load_plugins_from_entry_points(pm)
        load_plugins_from_settings(pm, load_settings().plugins)
        _configured_plugin_manager = pm
    return _configured_plugin_manager


def reset_plugin_manager() -> None:
    """Reset the cached plugin manager.

    Call this to force reloading of plugins.
    """
    global _configured_plugin_manager
    _configured_plugin_manager = None


def get_path_codec(name: str) -> PathCodec:
    """Look up a path codec by name.

    Raises:
        ValueError: If no registered plugin provides ``name``.
    """
    pm = get_configured_plugin_manager()
    codec = pm.hook.gitreplay_get_path_codec(name=name)
    if codec is None:
        available = ", ".join(sorted(list_codecs()))
        raise ValueError(f"Unknown path codec '{name}' (available: {available})")
    return codec


def list_codecs() -> dict[str, str]:
    """Map each registered codec name to its description."""
    pm = get_configured_plugin_manager()
    codecs = {}
    for info in pm.hook.gitreplay_get_plugin_info():
        if info and "name" in info:
            codecs[info["name"]] = info.get("description", "")
    return codecs
