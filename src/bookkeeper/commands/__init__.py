"""Subcommand modules for bookkeeper.

register_commands() imports command modules lazily so ``bookkeeper --help``
stays fast.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register all commands on the root CLI group."""
    from bookkeeper.commands.books import add, add_manual, get, list_cmd, status, update
    from bookkeeper.commands.init_cmd import init_cmd

    for command in (init_cmd, add, add_manual, get, update, list_cmd, status):
        cli.add_command(command)
