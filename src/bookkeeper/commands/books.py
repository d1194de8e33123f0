"""Commands: add, add-manual, get, update, list, status."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import click

from bookkeeper.commands._base import (
    STATUS_CHOICE,
    BookCommand,
    collect_fields,
    field_options,
    note_flag,
)
from bookkeeper.domain.types import BookStatus

if TYPE_CHECKING:
    from bookkeeper.commands._context import AppContext


@click.command(
    cls=BookCommand,
    examples="""\
  bookkeeper add 9780306406157
  bookkeeper add 0-306-40615-2 --status reading
  bookkeeper --json add 9780306406157 --no-note""",
)
@click.argument("isbn")
@click.option("--status", type=STATUS_CHOICE, default=None, help="Initial reading status.")
@note_flag
@click.pass_obj
def add(app: AppContext, isbn: str, status: str | None, create_note: bool | None) -> None:
    """Look up a book by ISBN and add it to the collection."""
    app.emit(
        app.books.add_by_isbn(
            isbn,
            status=BookStatus(status) if status else None,
            create_note=create_note,
        )
    )


@click.command(
    "add-manual",
    cls=BookCommand,
    examples="""\
  bookkeeper add-manual --title "Dune" --author "Frank Herbert" --isbn 9780441013593
  bookkeeper add-manual --title "Dune" --author "Frank Herbert" --isbn 0441013597 --pages 604""",
)
@click.option("--title", required=True, help="Book title.")
@click.option("--author", required=True, help="Author name.")
@click.option("--isbn", required=True, help="ISBN-10 or ISBN-13.")
@field_options
@note_flag
@click.pass_obj
def add_manual(app: AppContext, isbn: str, create_note: bool | None, **values: Any) -> None:
    """Add a book without looking it up."""
    fields = collect_fields(values)
    title = fields.pop("title")
    author = fields.pop("author")
    app.emit(
        app.books.add_manual(
            title=title,
            author=author,
            isbn=isbn,
            create_note=create_note,
            **fields,
        )
    )


@click.command(
    cls=BookCommand,
    examples="""\
  bookkeeper get 9780306406157
  bookkeeper --json get 0-306-40615-2""",
)
@click.argument("isbn")
@click.pass_obj
def get(app: AppContext, isbn: str) -> None:
    """Show one book."""
    app.emit(app.books.get_book(isbn))


@click.command(
    cls=BookCommand,
    examples="""\
  bookkeeper update 9780306406157 --status reading --started 2024-03-01
  bookkeeper update 9780306406157 --status completed --rating 4.5""",
)
@click.argument("isbn")
@click.option("--title", default=None, help="New title.")
@click.option("--author", default=None, help="New author.")
@field_options
@click.pass_obj
def update(app: AppContext, isbn: str, **values: Any) -> None:
    """Change fields of a stored book; other fields are kept."""
    changes = collect_fields(values)
    if not changes:
        click.echo("No changes specified. Use --help for options.", err=True)
        raise SystemExit(1)
    app.emit(app.books.update_book(isbn, changes))


@click.command(
    "list",
    cls=BookCommand,
    examples="""\
  bookkeeper list
  bookkeeper list --status reading
  bookkeeper -q list""",
)
@click.option("--status", type=STATUS_CHOICE, default=None, help="Only books with this status.")
@click.pass_obj
def list_cmd(app: AppContext, status: str | None) -> None:
    """List books in insertion order."""
    app.emit(app.books.list_books(status=BookStatus(status) if status else None))


@click.command(
    cls=BookCommand,
    examples="""\
  bookkeeper status
  bookkeeper --json status""",
)
@click.pass_obj
def status(app: AppContext) -> None:
    """Show the lookup rate-limit state."""
    app.emit(app.books.lookup_status())
