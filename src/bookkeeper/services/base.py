"""Common plumbing for bookkeeper services."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from bookkeeper.infrastructure.library import Library

logger = logging.getLogger(__name__)


class BaseService:
    """Holds the :class:`Library` a service works against.

    Subclasses reach the record store, lookup client, note templates, and
    plugins through ``self._library``. Results go back to callers as
    :class:`~bookkeeper.services.result.ServiceResult`; services do not
    raise for expected failures.
    """

    def __init__(self, library: Library) -> None:
        self._library = library

    def _dispatch_event(self, hook_name: str, payload: dict[str, Any], warnings: list[str]) -> None:
        """Call every plugin's *hook_name* implementation with *payload*.

        A plugin that raises turns into an entry on *warnings*; the
        operation that fired the event still succeeds.
        """
        hook = getattr(self._library.plugin_manager.hook, hook_name, None)
        if hook is None:
            logger.debug("No plugin hook named %s", hook_name)
            warnings.append(f"Unknown plugin hook {hook_name}")
            return
        try:
            hook(**payload)
        except Exception as exc:
            logger.debug("Plugin hook %s failed", hook_name, exc_info=True)
            warnings.append(f"Plugin hook {hook_name} failed: {exc}")
