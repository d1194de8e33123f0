"""Shared Click building blocks for bookkeeper commands.

- :class:`BookCommand` / :class:`BookGroup` take an ``examples`` string and
  expose it through an eager ``--examples`` flag, keeping ``--help`` short.
- The record-field options are declared once here and reused by
  ``add-manual`` and ``update``.
"""

from __future__ import annotations

import textwrap
from collections.abc import Callable
from typing import Any

import click

from bookkeeper.domain.types import BookStatus

STATUS_CHOICE = click.Choice([s.value for s in BookStatus], case_sensitive=False)

# (option flag, record field, click kwargs)
FIELD_OPTIONS: list[tuple[str, str, dict[str, Any]]] = [
    ("--status", "status", {"type": STATUS_CHOICE, "help": "Reading status."}),
    ("--started", "started_date", {"help": "Date started (YYYY-MM-DD)."}),
    ("--finished", "finished_date", {"help": "Date finished (YYYY-MM-DD)."}),
    ("--rating", "rating", {"type": click.FloatRange(0, 5), "help": "Rating from 0 to 5."}),
    ("--pages", "pages", {"type": click.IntRange(min=1), "help": "Page count."}),
    ("--genre", "genre", {"help": "Genre."}),
    ("--publisher", "publisher", {"help": "Publisher."}),
    ("--year", "year_published", {"help": "Year published."}),
    ("--description", "description", {"help": "Short description."}),
]

_RECORD_FIELDS = frozenset(name for _, name, _ in FIELD_OPTIONS) | {"title", "author"}


def field_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Attach every ``FIELD_OPTIONS`` option, all defaulting to None."""
    for flag, name, kwargs in reversed(FIELD_OPTIONS):
        func = click.option(flag, name, default=None, **kwargs)(func)
    return func


def note_flag(func: Callable[..., Any]) -> Callable[..., Any]:
    return click.option(
        "--note/--no-note",
        "create_note",
        default=None,
        help="Create a linked book note (default from config).",
    )(func)


def collect_fields(values: dict[str, Any]) -> dict[str, Any]:
    """Record fields the user actually passed."""
    return {k: v for k, v in values.items() if k in _RECORD_FIELDS and v is not None}


class _ExamplesMixin:
    """Adds ``--examples`` to the parameters Click parses and documents."""

    examples: str | None

    def get_params(self, ctx: click.Context) -> list[click.Parameter]:
        params: list[click.Parameter] = super().get_params(ctx)  # type: ignore[misc]
        if self.examples:
            params.append(self._examples_option())
        return params

    def _examples_option(self) -> click.Option:
        text = textwrap.dedent(self.examples or "").strip("\n")

        def show(ctx: click.Context, _param: click.Parameter, value: bool) -> None:
            if not value or ctx.resilient_parsing:
                return
            click.echo(f"Examples for '{ctx.command_path}':\n")
            click.echo(textwrap.indent(text, "  "))
            ctx.exit(0)

        return click.Option(
            ["--examples"],
            is_flag=True,
            expose_value=False,
            is_eager=True,
            callback=show,
            help="Show usage examples and exit.",
        )


class BookCommand(_ExamplesMixin, click.Command):
    def __init__(self, *args: Any, examples: str | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.examples = examples


class BookGroup(_ExamplesMixin, click.Group):
    """Group whose subcommands default to :class:`BookCommand`."""

    command_class = BookCommand

    def __init__(self, *args: Any, examples: str | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.examples = examples
