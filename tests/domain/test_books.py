"""Tests for BookRecord, the collection schema, and entry conversion."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from bookkeeper.domain.books import (
    DEFAULT_FIELDS,
    PLACEHOLDER_AUTHOR,
    PLACEHOLDER_ISBN,
    PLACEHOLDER_TITLE,
    BookRecord,
    CollectionDocument,
    clean_record,
    entry_to_record,
    placeholder_record,
    record_to_entry,
)
from bookkeeper.domain.sanitize import MAX_DISPLAY_LENGTH
from bookkeeper.domain.types import BookStatus, ErrorKind

ISBN = "9780441013593"


def _record(**overrides: object) -> BookRecord:
    data: dict[str, object] = {"title": "Dune", "author": "Frank Herbert", "isbn": ISBN}
    data.update(overrides)
    return BookRecord.model_validate(data)


class TestBookRecord:
    def test_defaults(self) -> None:
        record = _record()
        assert record.status == BookStatus.TO_READ
        assert record.rating is None
        assert record.notes_link is None

    def test_isbn_compacted(self) -> None:
        assert _record(isbn="0-441-01359-7").isbn == "0441013597"

    @pytest.mark.parametrize(
        "overrides",
        [
            {"isbn": "9780441013594"},
            {"title": ""},
            {"author": "   "},
            {"rating": 5.5},
            {"rating": -1},
            {"rating": float("nan")},
            {"pages": 0},
            {"status": "abandoned"},
            {"shelf": "kitchen"},
        ],
    )
    def test_invalid_values(self, overrides: dict[str, object]) -> None:
        with pytest.raises(ValidationError):
            _record(**overrides)

    def test_frozen(self) -> None:
        record = _record()
        with pytest.raises(ValidationError):
            record.title = "Other"  # type: ignore[misc]


class TestEntryConversion:
    def test_record_to_entry_omits_unset(self) -> None:
        entry = record_to_entry(_record(pages=604, rating=4.5))
        assert entry == {
            "title": "Dune",
            "author": "Frank Herbert",
            "isbn": ISBN,
            "status": "to-read",
            "rating": 4.5,
            "pages": 604,
        }

    def test_round_trip(self) -> None:
        record = _record(pages=604, genre="Science fiction", status=BookStatus.READING)
        assert entry_to_record(record_to_entry(record)) == record

    def test_strings_display_sanitized(self) -> None:
        record = entry_to_record({"title": "<i>Dune</i>", "author": "Frank Herbert", "isbn": ISBN})
        assert record.title == "&lt;i&gt;Dune&lt;&#x2F;i&gt;"

    def test_missing_title_gives_placeholder_with_isbn(self) -> None:
        record = entry_to_record({"author": "Frank Herbert", "isbn": ISBN, "pages": 604})
        assert record.title == PLACEHOLDER_TITLE
        assert record.author == PLACEHOLDER_AUTHOR
        assert record.isbn == ISBN
        assert record.pages is None

    def test_invalid_isbn_gives_placeholder_isbn(self) -> None:
        record = entry_to_record({"title": "Dune", "author": "Frank Herbert", "isbn": "123"})
        assert record.isbn == PLACEHOLDER_ISBN

    def test_bad_optional_values_dropped(self) -> None:
        record = entry_to_record(
            {
                "title": "Dune",
                "author": "Frank Herbert",
                "isbn": ISBN,
                "status": "abandoned",
                "rating": "5",
                "pages": 604.0,
                "genre": "   ",
                "publisher": 12,
            }
        )
        assert record.status == BookStatus.TO_READ
        assert record.rating is None
        assert record.pages == 604
        assert record.genre is None
        assert record.publisher is None

    @pytest.mark.parametrize("status", [["reading"], {"v": 1}, 7])
    def test_non_string_status_defaults(self, status: object) -> None:
        record = entry_to_record(
            {"title": "Dune", "author": "Frank Herbert", "isbn": ISBN, "status": status}
        )
        assert record.title == "Dune"
        assert record.status == BookStatus.TO_READ

    def test_placeholder_is_valid(self) -> None:
        assert placeholder_record().isbn == PLACEHOLDER_ISBN


class TestCleanRecord:
    def test_text_fields_sanitized(self) -> None:
        result = clean_record(_record(title=" <Dune> ", genre="SF & F", publisher="  "))
        assert result.ok
        assert result.value.title == "&lt;Dune&gt;"
        assert result.value.genre == "SF &amp; F"
        assert result.value.publisher is None

    def test_non_text_fields_kept(self) -> None:
        result = clean_record(_record(pages=604, rating=4.5, status="reading"))
        assert result.ok
        assert (result.value.pages, result.value.rating) == (604, 4.5)
        assert result.value.status == BookStatus.READING

    @pytest.mark.parametrize("field", ["title", "author", "description"])
    def test_oversize_field_is_an_error(self, field: str) -> None:
        result = clean_record(_record(**{field: "x" * (MAX_DISPLAY_LENGTH + 1)}))
        assert not result.ok
        assert result.kind == ErrorKind.INVALID_INPUT
        assert field in result.message


class TestCollectionDocument:
    def test_defaults(self) -> None:
        doc = CollectionDocument()
        assert doc.fields == list(DEFAULT_FIELDS)
        assert doc.records == []

    def test_to_dict_shape(self) -> None:
        data = CollectionDocument(records=[_record()]).to_dict()
        assert set(data) == {"fields", "entries"}
        status_field = next(f for f in data["fields"] if f["name"] == "status")
        assert status_field == {
            "name": "status",
            "type": "select",
            "options": ["to-read", "reading", "completed"],
        }
        assert data["entries"][0]["isbn"] == ISBN

    def test_from_dict_round_trip(self) -> None:
        doc = CollectionDocument(records=[_record(), _record(isbn="9780306406157", title="Other")])
        again = CollectionDocument.from_dict(doc.to_dict())
        assert again.fields == doc.fields
        assert again.records == doc.records

    def test_find(self) -> None:
        doc = CollectionDocument(records=[_record()])
        assert doc.find(ISBN) == 0
        assert doc.find("9780306406157") is None
