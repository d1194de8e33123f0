"""Rich/JSON output for ServiceResult.

Three modes: ``--json`` (the full result as JSON), ``--quiet`` (isbns or a
one-line status), and human output rendered with Rich. Record text is
stored entity-encoded; human output decodes it for the terminal, where it
is printed as plain Text and never interpreted as markup.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel
from rich.table import Table
from rich.text import Text

from bookkeeper.domain.sanitize import decode_entities
from bookkeeper.output.console import create_console, get_output, rating_stars, style_for_status

if TYPE_CHECKING:
    from rich.console import Console

    from bookkeeper.services.result import ServiceResult

RECORD_KEY_ORDER = (
    "title",
    "author",
    "isbn",
    "status",
    "rating",
    "pages",
    "genre",
    "publisher",
    "year_published",
    "started_date",
    "finished_date",
    "notes_link",
    "cover_path",
    "description",
)


class OutputSettings(BaseModel):
    """Output flags relevant to formatting."""

    model_config = {"frozen": True}

    json_output: bool = False
    quiet: bool = False
    verbose: bool = False


def format_result(result: ServiceResult, *, settings: OutputSettings | None = None) -> str:
    """Format a ServiceResult for display."""
    settings = settings or OutputSettings()
    if settings.json_output:
        return result.model_dump_json(indent=2)
    if settings.quiet:
        return _render_quiet(result)

    console = create_console()
    if result.ok:
        _OP_RENDERERS.get(result.op, _render_generic)(result, console)
    else:
        _render_error(result, console, verbose=settings.verbose)
    return get_output(console).rstrip("\n")


# ---------------------------------------------------------------------------
# Renderers
# ---------------------------------------------------------------------------


def _plain(value: Any) -> str:
    return decode_entities(value) if isinstance(value, str) else str(value)


def _render_quiet(result: ServiceResult) -> str:
    if not result.ok:
        message = result.error.message if result.error else "Unknown error"
        return f"ERROR: {result.op}: {message}"
    items = result.data.get("items")
    if isinstance(items, list):
        return "\n".join(str(item.get("isbn", "")) for item in items)
    record = result.data.get("record")
    if isinstance(record, dict):
        return str(record.get("isbn", ""))
    return f"OK: {result.op}"


def _status_line(console: Console, result: ServiceResult) -> None:
    console.print(Text("OK", style="bk.ok"), Text(f"  {result.op}", style="bk.op"))


def _field(console: Console, key: str, value: Any) -> None:
    if key == "isbn":
        style = "bk.isbn"
    elif key in ("path", "note_path", "collection_path", "root"):
        style = "bk.path"
    elif key == "title":
        style = "bk.title"
    elif key == "status":
        style = style_for_status(str(value))
    elif key == "rating" and isinstance(value, (int, float)):
        style = "bk.rating"
        value = f"{value:g} {rating_stars(value)}"
    else:
        style = ""
    console.print(Text(f"  {key}: ", style="bk.key"), Text(_plain(value), style=style))


def _render_generic(result: ServiceResult, console: Console) -> None:
    _status_line(console, result)
    for key, value in result.data.items():
        if value is None:
            continue
        if isinstance(value, (dict, list)):
            value = json.dumps(value, separators=(",", ":"), ensure_ascii=False)
        _field(console, key, value)


def _render_record(result: ServiceResult, console: Console) -> None:
    _status_line(console, result)
    record: dict[str, Any] = result.data.get("record") or {}
    for key in RECORD_KEY_ORDER:
        if key in record:
            _field(console, key, record[key])
    if result.data.get("note_path"):
        _field(console, "note_path", result.data["note_path"])
    changed = result.data.get("fields_changed")
    if changed:
        _field(console, "fields_changed", ", ".join(changed))


def _render_list(result: ServiceResult, console: Console) -> None:
    items: list[dict[str, Any]] = result.data.get("items", [])
    if not items:
        console.print(Text("No books found.", style="bk.key"))
        return

    table = Table(show_edge=False, pad_edge=False)
    table.add_column("Title", style="bk.title")
    table.add_column("Author")
    table.add_column("ISBN", style="bk.isbn")
    table.add_column("Status")
    table.add_column("Rating", justify="right")
    for item in items:
        status = str(item.get("status", ""))
        rating = item.get("rating")
        table.add_row(
            Text(_plain(item.get("title", ""))),
            Text(_plain(item.get("author", ""))),
            Text(str(item.get("isbn", ""))),
            Text(status, style=style_for_status(status)),
            Text("" if rating is None else f"{rating:g} {rating_stars(rating)}", style="bk.rating"),
        )
    console.print(table)
    console.print(Text(f"{result.data.get('count', len(items))} book(s)", style="bk.key"))


def _render_error(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    error = result.error
    console.print(
        Text("ERROR", style="bk.error"),
        Text(f"  {result.op}", style="bk.op"),
        Text(f"  {_plain(error.message) if error else 'Unknown error'}"),
    )
    if error is not None:
        if verbose:
            _field(console, "code", error.code.value)
        for key, value in error.detail.items():
            _field(console, key, value)


_OP_RENDERERS: dict[str, Callable[[ServiceResult, Console], None]] = {
    "add_by_isbn": _render_record,
    "add_manual": _render_record,
    "get_book": _render_record,
    "update_book": _render_record,
    "list_books": _render_list,
}
