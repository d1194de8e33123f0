"""BookRecord model, collection schema, and record <-> entry conversion.

A collection file holds flat entries (``{"title": ..., "pages": 320}``).
Entries read back from disk are untrusted: :func:`entry_to_record`
display-sanitizes every string, re-validates the isbn, and replaces a row
whose required fields are unusable with a placeholder record so that one
corrupted row never aborts a read of the whole collection.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator

from bookkeeper.domain.isbn import validate_isbn
from bookkeeper.domain.sanitize import sanitize_for_display
from bookkeeper.domain.types import BookStatus, ErrorKind, FieldType
from bookkeeper.domain.validation import Err, Ok, ValidationResult

PLACEHOLDER_TITLE = "Unknown Title"
PLACEHOLDER_AUTHOR = "Unknown Author"
PLACEHOLDER_ISBN = "0000000000"

REQUIRED_FIELDS: tuple[str, ...] = ("title", "author", "isbn")
OPTIONAL_TEXT_FIELDS: tuple[str, ...] = (
    "started_date",
    "finished_date",
    "genre",
    "publisher",
    "year_published",
    "description",
    "cover_path",
    "notes_link",
)


class BookRecord(BaseModel):
    """A tracked book. The isbn is the collection's unique key."""

    model_config = {"frozen": True, "extra": "forbid"}

    title: str = Field(min_length=1)
    author: str = Field(min_length=1)
    isbn: str
    status: BookStatus = BookStatus.TO_READ
    started_date: str | None = None
    finished_date: str | None = None
    rating: float | None = Field(default=None, ge=0, le=5, allow_inf_nan=False)
    pages: int | None = Field(default=None, gt=0)
    genre: str | None = None
    publisher: str | None = None
    year_published: str | None = None
    description: str | None = None
    cover_path: str | None = None
    notes_link: str | None = None

    @field_validator("title", "author")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            msg = "must not be blank"
            raise ValueError(msg)
        return value

    @field_validator("isbn")
    @classmethod
    def _valid_isbn(cls, value: str) -> str:
        result = validate_isbn(value)
        if not result.ok:
            raise ValueError(result.message)
        return str(result.value)


# ---------------------------------------------------------------------------
# Collection schema
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CollectionField:
    """One column declaration in a collection file."""

    name: str
    type: FieldType
    options: tuple[str, ...] | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"name": self.name, "type": self.type.value}
        if self.options is not None:
            data["options"] = list(self.options)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CollectionField:
        options = data.get("options")
        return cls(
            name=data["name"],
            type=FieldType(data["type"]),
            options=tuple(options) if options is not None else None,
        )


DEFAULT_FIELDS: tuple[CollectionField, ...] = (
    CollectionField("title", FieldType.TEXT),
    CollectionField("author", FieldType.TEXT),
    CollectionField("isbn", FieldType.TEXT),
    CollectionField("status", FieldType.SELECT, tuple(s.value for s in BookStatus)),
    CollectionField("started_date", FieldType.DATE),
    CollectionField("finished_date", FieldType.DATE),
    CollectionField("rating", FieldType.NUMBER),
    CollectionField("pages", FieldType.NUMBER),
    CollectionField("genre", FieldType.TEXT),
    CollectionField("publisher", FieldType.TEXT),
    CollectionField("year_published", FieldType.TEXT),
    CollectionField("description", FieldType.TEXT),
    CollectionField("cover_path", FieldType.TEXT),
    CollectionField("notes_link", FieldType.LINK),
)


@dataclass
class CollectionDocument:
    """Decoded collection: column declarations plus records in insertion order."""

    fields: list[CollectionField] = field(default_factory=lambda: list(DEFAULT_FIELDS))
    records: list[BookRecord] = field(default_factory=list)

    def find(self, isbn: str) -> int | None:
        """Index of the record with *isbn*, or None."""
        for index, record in enumerate(self.records):
            if record.isbn == isbn:
                return index
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "fields": [f.to_dict() for f in self.fields],
            "entries": [record_to_entry(r) for r in self.records],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CollectionDocument:
        """Build from a dict that already passed ``is_collection_document``."""
        return cls(
            fields=[CollectionField.from_dict(f) for f in data["fields"]],
            records=[entry_to_record(e) for e in data["entries"]],
        )


# ---------------------------------------------------------------------------
# Record <-> entry
# ---------------------------------------------------------------------------


def record_to_entry(record: BookRecord) -> dict[str, str | int | float]:
    """Flatten *record* into a collection entry, omitting unset optionals."""
    return record.model_dump(mode="json", exclude_none=True)


def _clean_text(value: Any) -> str | None:
    if not isinstance(value, str) or not value.strip():
        return None
    result = sanitize_for_display(value.strip())
    return str(result.value) if result.ok else None


def _clean_rating(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value) or not 0 <= value <= 5:
        return None
    return float(value)


def _clean_pages(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, int) and value > 0:
        return value
    return None


def _clean_status(value: Any) -> BookStatus:
    if isinstance(value, str) and value in BookStatus._value2member_map_:
        return BookStatus(value)
    return BookStatus.TO_READ


def placeholder_record(isbn: str | None = None) -> BookRecord:
    """The safe stand-in for an unreadable row."""
    return BookRecord(
        title=PLACEHOLDER_TITLE,
        author=PLACEHOLDER_AUTHOR,
        isbn=isbn or PLACEHOLDER_ISBN,
        status=BookStatus.TO_READ,
    )


def entry_to_record(entry: dict[str, Any]) -> BookRecord:
    """Convert an untrusted collection entry into a :class:`BookRecord`."""
    isbn_result = validate_isbn(entry.get("isbn"))
    isbn = str(isbn_result.value) if isbn_result.ok else None
    title = _clean_text(entry.get("title"))
    author = _clean_text(entry.get("author"))
    if isbn is None or title is None or author is None:
        return placeholder_record(isbn)

    data: dict[str, Any] = {
        "title": title,
        "author": author,
        "isbn": isbn,
        "status": _clean_status(entry.get("status")),
        "rating": _clean_rating(entry.get("rating")),
        "pages": _clean_pages(entry.get("pages")),
    }
    for name in OPTIONAL_TEXT_FIELDS:
        data[name] = _clean_text(entry.get(name))

    try:
        return BookRecord.model_validate(data)
    except ValidationError:
        return placeholder_record(isbn)


def clean_record(record: BookRecord) -> ValidationResult[BookRecord]:
    """Display-sanitize every text field of a caller-supplied *record*.

    Unlike :func:`entry_to_record` nothing is dropped or replaced: the
    first field that cannot be sanitized is reported as an ``Err``.
    """
    updates: dict[str, Any] = {}
    for name in ("title", "author", *OPTIONAL_TEXT_FIELDS):
        value = getattr(record, name)
        if value is None:
            continue
        if name in OPTIONAL_TEXT_FIELDS and not value.strip():
            updates[name] = None
            continue
        result = sanitize_for_display(value.strip())
        if not result.ok:
            return Err(result.kind, f"Field '{name}': {result.message}")
        updates[name] = str(result.value)

    try:
        return Ok(BookRecord.model_validate({**record.model_dump(), **updates}))
    except ValidationError as exc:
        error = exc.errors()[0]
        where = ".".join(str(part) for part in error["loc"])
        return Err(ErrorKind.INVALID_INPUT, f"Field '{where}': {error['msg']}")
