"""Command: create the collection file for a library."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from bookkeeper.commands._base import BookCommand

if TYPE_CHECKING:
    from bookkeeper.commands._context import AppContext


@click.command(
    "init",
    cls=BookCommand,
    examples="""\
  bookkeeper init
  bookkeeper -c ~/vault/bookkeeper.toml init""",
)
@click.pass_obj
def init_cmd(app: AppContext) -> None:
    """Create an empty book collection if none exists."""
    app.emit(app.books.init_library())
