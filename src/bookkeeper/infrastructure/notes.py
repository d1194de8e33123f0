"""Book note rendering — YAML frontmatter plus a Jinja2 body template.

Record text is stored display-encoded. For notes it is decoded and then
re-encoded with the narrower template context, which keeps prose readable
(``Dune: Messiah`` rather than ``Dune&#x3A; Messiah``) while still
preventing HTML, wikilink, and placeholder injection.
"""

from __future__ import annotations

from io import StringIO
from typing import TYPE_CHECKING, Any

from jinja2 import TemplateError
from ruamel.yaml import YAML

from bookkeeper.domain.books import BookRecord
from bookkeeper.domain.sanitize import decode_entities, sanitize_file_name, sanitize_for_template

if TYPE_CHECKING:
    from jinja2 import Environment

    from bookkeeper.domain.validation import SafeFileName

NOTE_TAG = "book"

CANONICAL_KEY_ORDER: list[str] = [
    "title",
    "author",
    "isbn",
    "status",
    "tags",
    "rating",
    "pages",
    "genre",
    "publisher",
    "year_published",
    "started_date",
    "finished_date",
    "cover_path",
]

_FRONTMATTER_DELIMITER = "---"


class NoteRenderError(Exception):
    """The note template could not be rendered."""


def _new_yaml() -> YAML:
    y = YAML()
    y.default_flow_style = False
    return y


def _note_text(value: Any) -> str:
    if value is None:
        return ""
    result = sanitize_for_template(decode_entities(str(value)))
    return str(result.value) if result.ok else ""


def note_name(record: BookRecord) -> SafeFileName:
    """File name stem for *record*'s note: ``<title> - <author>``."""
    stem = f"{decode_entities(record.title)} - {decode_entities(record.author)}"
    result = sanitize_file_name(stem)
    # Title and author are non-empty, so the stem never fails validation
    assert result.ok
    return result.value


def note_context(record: BookRecord) -> dict[str, str]:
    """Template variables for *record*; unset fields render as empty strings."""
    context = {name: _note_text(getattr(record, name)) for name in BookRecord.model_fields}
    if record.rating is not None:
        context["rating"] = f"{record.rating:g}"
    return context


def render_frontmatter(record: BookRecord) -> str:
    """YAML frontmatter block for *record*, tagged for collection filters."""
    data: dict[str, Any] = {}
    for key in CANONICAL_KEY_ORDER:
        if key == "tags":
            data["tags"] = [NOTE_TAG]
            continue
        value = getattr(record, key)
        if value is None:
            continue
        data[key] = value if isinstance(value, (int, float)) else _note_text(value)

    buf = StringIO()
    _new_yaml().dump(data, buf)
    return f"{_FRONTMATTER_DELIMITER}\n{buf.getvalue()}{_FRONTMATTER_DELIMITER}\n"


def render_book_note(record: BookRecord, env: Environment, template_name: str) -> str:
    """Render the complete markdown note for *record*.

    Raises:
        NoteRenderError: If the template is missing or fails to render.
    """
    try:
        body = env.get_template(template_name).render(**note_context(record))
    except TemplateError as exc:
        msg = f"Cannot render note template {template_name!r}: {exc}"
        raise NoteRenderError(msg) from exc
    return render_frontmatter(record) + "\n" + body
