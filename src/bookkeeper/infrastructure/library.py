"""Library — dependency container for a single book library directory.

Owns the process-wide :class:`CollectionCache` and wires the record store,
lookup client, plugin manager, and template environment from settings.
Collaborators that touch the network or import plugins are created lazily.
"""

from __future__ import annotations

import logging
from functools import cached_property
from pathlib import Path
from typing import TYPE_CHECKING

from bookkeeper.domain.merge import MergePolicy
from bookkeeper.infrastructure.openlibrary import OpenLibraryClient, RateLimiter
from bookkeeper.infrastructure.record_store import CollectionCache, RecordStore
from bookkeeper.infrastructure.storage import VaultStorage
from bookkeeper.infrastructure.templates import build_template_environment

if TYPE_CHECKING:
    from jinja2 import Environment

    from bookkeeper.config.settings import BookkeeperSettings
    from bookkeeper.plugins.manager import PluginManager

logger = logging.getLogger(__name__)

PLUGINS_DIR = Path(".bookkeeper") / "plugins"


class Library:
    """Everything a service needs to operate on one library root."""

    def __init__(
        self,
        settings: BookkeeperSettings,
        *,
        cache: CollectionCache | None = None,
        lookup: OpenLibraryClient | None = None,
        plugin_manager: PluginManager | None = None,
    ) -> None:
        self.settings = settings
        self.root: Path = settings.library_root
        self.storage = VaultStorage(self.root)
        self.cache = cache if cache is not None else CollectionCache()
        self.store = RecordStore(self.storage, self.cache)
        self._lookup = lookup
        self._plugin_manager = plugin_manager

    @property
    def collection_path(self) -> str:
        return self.settings.library.collection_path

    @property
    def lookup(self) -> OpenLibraryClient:
        """Metadata lookup client, built from ``[lookup]`` on first use."""
        if self._lookup is None:
            cfg = self.settings.lookup
            self._lookup = OpenLibraryClient(
                rate_limiter=RateLimiter(cfg.rate_limit, cfg.rate_window_seconds),
                merge_policy=MergePolicy(
                    unknown_values=frozenset(cfg.unknown_values),
                    prefer_longer=frozenset(cfg.prefer_longer),
                ),
                merge_sources=cfg.merge_sources,
                timeout=cfg.timeout_seconds,
                user_agent=cfg.user_agent,
            )
        return self._lookup

    @property
    def plugin_manager(self) -> PluginManager:
        """Plugin manager with entry-point and local plugins loaded."""
        if self._plugin_manager is None:
            from bookkeeper.plugins.manager import PluginManager

            self._plugin_manager = PluginManager()
        if not self._plugin_manager.is_loaded:
            names = self._plugin_manager.discover_and_load(local_dir=self.root / PLUGINS_DIR)
            logger.debug("Plugins loaded: %s", names)
        return self._plugin_manager

    @cached_property
    def template_env(self) -> Environment:
        return build_template_environment("notes", library_root=self.root)
