"""Rich console, theme, and small display helpers for bookkeeper output.

Consoles render into a StringIO buffer so formatters return plain strings.
In non-TTY environments (tests, pipes) Rich disables color codes.
"""

from __future__ import annotations

import math
from io import StringIO

from rich.console import Console
from rich.theme import Theme

from bookkeeper.domain.types import BookStatus

STATUS_STYLES: dict[str, str] = {
    BookStatus.TO_READ: "yellow",
    BookStatus.READING: "cyan",
    BookStatus.COMPLETED: "green",
}

BK_THEME = Theme(
    {
        "bk.ok": "bold green",
        "bk.error": "bold red",
        "bk.warning": "bold yellow",
        "bk.op": "bold cyan",
        "bk.key": "dim",
        "bk.isbn": "bold blue",
        "bk.path": "dim",
        "bk.title": "bold",
        "bk.rating": "magenta",
        **{f"bk.status.{status}": style for status, style in STATUS_STYLES.items()},
    }
)

_FULL_STAR = "★"
_HALF_STAR = "½"


def create_console(*, no_color: bool = False, width: int | None = None) -> Console:
    return Console(
        file=StringIO(),
        theme=BK_THEME,
        no_color=no_color,
        highlight=False,
        width=width or 120,
    )


def get_output(console: Console) -> str:
    """Rendered text of a console made by :func:`create_console`."""
    assert isinstance(console.file, StringIO)
    return console.file.getvalue()


def style_for_status(status: str) -> str:
    """Theme style for a reading status; unknown statuses are unstyled."""
    return f"bk.status.{status}" if status in STATUS_STYLES else ""


def rating_stars(rating: float) -> str:
    """``4.5`` -> ``★★★★½``. Ratings are rounded down to the nearest half."""
    halves = math.floor(max(0.0, min(rating, 5.0)) * 2)
    return _FULL_STAR * (halves // 2) + (_HALF_STAR if halves % 2 else "")
