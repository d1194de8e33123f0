"""Pluggy hook specifications for bookkeeper lifecycle events.

Hooks run synchronously after the triggering write has succeeded.
"""

from __future__ import annotations

import pluggy

hookspec = pluggy.HookspecMarker("bookkeeper")


class BookkeeperHookSpec:
    """Hook specifications for the bookkeeper plugin system."""

    @hookspec
    def post_library_init(self, root: str, collection_path: str) -> None:
        """Called after a library's collection file is created."""

    @hookspec
    def post_book_add(self, isbn: str, title: str, source_id: str) -> None:
        """Called after a record is appended to a collection."""

    @hookspec
    def post_book_update(self, isbn: str, fields_changed: list[str], source_id: str) -> None:
        """Called after a record is updated."""

    @hookspec
    def post_note_create(self, isbn: str, path: str) -> None:
        """Called after a linked book note is written."""
