"""Plugin discovery, loading, and hook access."""

from __future__ import annotations

import importlib.util
import inspect
import logging
import sys
from pathlib import Path

import pluggy

from bookkeeper.plugins.hookspecs import BookkeeperHookSpec

PROJECT_NAME = "bookkeeper"
ENTRY_POINT_GROUP = "bookkeeper.plugins"

logger = logging.getLogger(__name__)


def _has_hook_impls(cls: type) -> bool:
    """Whether any public method of *cls* carries a ``@hookimpl`` marker."""
    marker = f"{PROJECT_NAME}_impl"
    return any(
        getattr(getattr(cls, name, None), marker, None)
        for name in dir(cls)
        if not name.startswith("_")
    )


class PluginManager:
    """Manages plugin discovery, loading, and hook dispatch."""

    def __init__(self) -> None:
        self._pm = pluggy.PluginManager(PROJECT_NAME)
        self._pm.add_hookspecs(BookkeeperHookSpec)
        self._loaded = False

    def discover_and_load(self, *, local_dir: Path | None = None) -> list[str]:
        """Load entry-point plugins and single-file plugins from *local_dir*.

        Returns the names of all registered plugins.
        """
        self._pm.load_setuptools_entrypoints(ENTRY_POINT_GROUP)
        self._instantiate_classes()
        if local_dir is not None:
            self._discover_local(local_dir)
        self._loaded = True
        return self.list_plugin_names()

    def register_plugin(self, plugin: object, name: str | None = None) -> None:
        """Register a plugin instance directly."""
        resolved = name or plugin.__class__.__name__
        self._pm.register(plugin, name=resolved)
        logger.debug("Registered plugin: %s", resolved)

    def unregister(self, plugin: object) -> None:
        self._pm.unregister(plugin)

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    @property
    def hook(self) -> pluggy.HookRelay:
        return self._pm.hook

    def list_plugin_names(self) -> list[str]:
        return [self._pm.get_name(p) or p.__class__.__name__ for p in self._pm.get_plugins()]

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _instantiate_classes(self) -> None:
        """Entry points may register a bare class; swap in an instance."""
        for plugin in list(self._pm.get_plugins()):
            if not inspect.isclass(plugin) or not _has_hook_impls(plugin):
                continue
            name = self._pm.get_name(plugin) or plugin.__name__
            self._pm.unregister(plugin)
            try:
                instance = plugin()
            except Exception:
                logger.warning("Failed to instantiate entry-point plugin %s", name, exc_info=True)
                continue
            self._pm.register(instance, name=name)

    def _discover_local(self, local_dir: Path) -> None:
        """Register hook classes found in ``*.py`` files of *local_dir*.

        Files starting with ``_`` are skipped. A broken file is logged and
        skipped.
        """
        if not local_dir.is_dir():
            return

        for py_file in sorted(local_dir.glob("*.py")):
            if py_file.name.startswith("_"):
                continue
            module_name = f"bookkeeper_local_plugin_{py_file.stem}"
            try:
                spec = importlib.util.spec_from_file_location(module_name, py_file)
                if spec is None or spec.loader is None:
                    logger.warning("Cannot load plugin file %s", py_file)
                    continue
                module = importlib.util.module_from_spec(spec)
                sys.modules[module_name] = module
                spec.loader.exec_module(module)
            except Exception:
                logger.warning("Failed to load local plugin %s", py_file, exc_info=True)
                sys.modules.pop(module_name, None)
                continue

            for _, cls in inspect.getmembers(module, inspect.isclass):
                if cls.__module__ != module_name or not _has_hook_impls(cls):
                    continue
                try:
                    self.register_plugin(cls(), name=f"{module_name}.{cls.__name__}")
                except Exception:
                    logger.warning(
                        "Failed to instantiate plugin %s from %s",
                        cls.__name__,
                        py_file,
                        exc_info=True,
                    )
