"""Plugin discovery, loading, and catalog collection.

Discovery: entry_points (pip-installed) via pluggy setuptools entrypoints,
plus local directory discovery from ``.apex/plugins/``.
Capabilities: extra commands, recipes, and natural-language rules.
"""

from __future__ import annotations

import importlib.util
import inspect
import logging
import sys
from pathlib import Path
from typing import Any

import pluggy

from apexctl.domain.catalog import CatalogContribution, parse_rules
from apexctl.errors import CatalogError
from apexctl.plugins.hookspecs import ApexHookSpec

PROJECT_NAME = "apexctl"
ENTRY_POINT_GROUP = "apexctl.plugins"

logger = logging.getLogger(__name__)


class PluginManager:
    """Manages plugin discovery, loading, and catalog contributions."""

    def __init__(self) -> None:
        self._pm = pluggy.PluginManager(PROJECT_NAME)
        self._pm.add_hookspecs(ApexHookSpec)
        self._loaded: bool = False

    def discover_and_load(self, *, local_dir: Path | None = None) -> list[str]:
        """Discover plugins from entry points and an optional local directory.

        Returns a list of loaded plugin names.
        """
        try:
            self._pm.load_setuptools_entrypoints(ENTRY_POINT_GROUP)
        except Exception:
            logger.warning("Failed to load entry-point plugins", exc_info=True)
        self._normalize_plugin_instances()
        if local_dir is not None:
            self._discover_local(local_dir)
        self._loaded = True
        return self.list_plugin_names()

    def register_plugin(self, plugin: object, name: str | None = None) -> None:
        """Register a plugin instance directly."""
        resolved_name = name or plugin.__class__.__name__
        self._pm.register(plugin, name=resolved_name)
        logger.debug("Registered plugin: %s", resolved_name)

    def unregister(self, plugin: object) -> None:
        self._pm.unregister(plugin)

    @property
    def is_loaded(self) -> bool:
        """Whether discover_and_load() has been called."""
        return self._loaded

    @property
    def hook(self) -> pluggy.HookRelay:
        return self._pm.hook

    def list_plugin_names(self) -> list[str]:
        return [self._pm.get_name(p) or p.__class__.__name__ for p in self._pm.get_plugins()]

    # ------------------------------------------------------------------
    # Catalog collection
    # ------------------------------------------------------------------

    def collect_contributions(self) -> list[CatalogContribution]:
        """Ask every plugin for catalog entries, one contribution per plugin.

        A plugin whose hook raises or returns malformed data is skipped
        with a warning; the other plugins still contribute.
        """
        contributions: list[CatalogContribution] = []
        for plugin in self._pm.get_plugins():
            name = self._pm.get_name(plugin) or plugin.__class__.__name__
            try:
                contribution = self._contribution_for(plugin, name)
            except (CatalogError, TypeError, ValueError):
                logger.warning("Ignoring catalog entries from plugin %s", name, exc_info=True)
                continue
            except Exception:
                logger.warning("Plugin %s failed while contributing", name, exc_info=True)
                continue
            if contribution is not None:
                contributions.append(contribution)
        return contributions

    @staticmethod
    def _contribution_for(plugin: object, name: str) -> CatalogContribution | None:
        commands = _call_hook(plugin, "apex_commands") or {}
        recipes = _call_hook(plugin, "apex_recipes") or {}
        patterns = _call_hook(plugin, "apex_patterns") or []
        if not (commands or recipes or patterns):
            return None
        if not isinstance(commands, dict) or not isinstance(recipes, dict):
            msg = f"plugin {name} returned non-dict commands or recipes"
            raise TypeError(msg)
        return CatalogContribution(
            source=f"plugin:{name}",
            commands={str(k): v for k, v in commands.items()},
            recipes={str(k): tuple(v) for k, v in recipes.items()},
            primary=parse_rules(patterns, source=f"plugin:{name}"),
        )

    # ------------------------------------------------------------------
    # Local directory discovery
    # ------------------------------------------------------------------

    def _discover_local(self, local_dir: Path) -> None:
        """Scan *local_dir* for single-file Python plugins.

        Each ``*.py`` file (excluding ``_``-prefixed names) is loaded as a
        module. Classes inside the module that carry pluggy hookimpl-decorated
        methods are instantiated and registered.

        Errors are logged as warnings but never raised.
        """
        if not local_dir.is_dir():
            return

        for py_file in sorted(local_dir.glob("*.py")):
            if py_file.name.startswith("_"):
                continue
            module_name = f"apexctl_local_plugin_{py_file.stem}"
            try:
                spec = importlib.util.spec_from_file_location(module_name, py_file)
                if spec is None or spec.loader is None:
                    logger.warning("Could not create module spec for %s", py_file)
                    continue
                module = importlib.util.module_from_spec(spec)
                sys.modules[module_name] = module
                spec.loader.exec_module(module)
            except Exception:
                logger.warning("Failed to load local plugin %s", py_file, exc_info=True)
                sys.modules.pop(module_name, None)
                continue

            for _attr_name, obj in inspect.getmembers(module, inspect.isclass):
                if obj.__module__ != module_name:
                    continue
                if not self._has_hook_impls(obj):
                    continue
                try:
                    self.register_plugin(obj(), name=f"{module_name}.{obj.__name__}")
                except Exception:
                    logger.warning(
                        "Failed to instantiate plugin class %s from %s",
                        obj.__name__,
                        py_file,
                        exc_info=True,
                    )

    def _normalize_plugin_instances(self) -> None:
        """Replace registered plugin classes with instantiated objects.

        Entry-point loading may register a plugin class directly. Hook dispatch
        against class objects leaves ``self`` unbound and fails at runtime.
        """
        for plugin in list(self._pm.get_plugins()):
            if not inspect.isclass(plugin):
                continue
            if not self._has_hook_impls(plugin):
                continue

            plugin_name = self._pm.get_name(plugin) or plugin.__name__
            self._pm.unregister(plugin)
            try:
                instance = plugin()
            except Exception:
                logger.warning(
                    "Failed to instantiate entry-point plugin %s",
                    plugin_name,
                    exc_info=True,
                )
                continue
            self._pm.register(instance, name=plugin_name)

    @staticmethod
    def _has_hook_impls(cls: type) -> bool:
        """Check whether *cls* has any methods decorated with ``@hookimpl``.

        Pluggy's ``HookimplMarker("apexctl")`` sets an ``apexctl_impl``
        attribute on decorated methods.
        """
        for name in dir(cls):
            if name.startswith("_"):
                continue
            method = getattr(cls, name, None)
            if callable(method) and getattr(method, "apexctl_impl", None):
                return True
        return False


def _call_hook(plugin: object, hook_name: str) -> Any:
    hook = getattr(plugin, hook_name, None)
    if hook is None:
        return None
    return hook()
