"""Tests for ISBN-10 / ISBN-13 validation."""

from __future__ import annotations

import pytest

from bookkeeper.domain.isbn import is_valid_isbn, is_valid_isbn10, is_valid_isbn13, validate_isbn
from bookkeeper.domain.types import ErrorKind
from bookkeeper.domain.validation import ValidatedISBN

ISBN10 = "0306406152"
ISBN13 = "9780306406157"


def _mutations(isbn: str) -> list[str]:
    """Every single-digit change of *isbn* (digit d -> d+1 mod 10)."""
    out = []
    for i, ch in enumerate(isbn):
        if ch.isdigit():
            out.append(isbn[:i] + str((int(ch) + 1) % 10) + isbn[i + 1 :])
    return out


class TestChecksums:
    def test_known_valid(self) -> None:
        assert is_valid_isbn10(ISBN10)
        assert is_valid_isbn13(ISBN13)
        assert is_valid_isbn10("080442957X")
        assert is_valid_isbn10("080442957x")

    @pytest.mark.parametrize("mutated", _mutations(ISBN10))
    def test_isbn10_single_digit_mutation_fails(self, mutated: str) -> None:
        assert not is_valid_isbn10(mutated)

    @pytest.mark.parametrize("mutated", _mutations(ISBN13))
    def test_isbn13_single_digit_mutation_fails(self, mutated: str) -> None:
        assert not is_valid_isbn13(mutated)

    def test_wrong_check_digit(self) -> None:
        assert not is_valid_isbn13("9780306406158")

    def test_non_ascii_digits_rejected(self) -> None:
        assert not is_valid_isbn13("٩٧٨٠٣٠٦٤٠٦١٥٧")


class TestValidateIsbn:
    @pytest.mark.parametrize(
        ("raw", "compact"),
        [
            (ISBN10, ISBN10),
            (ISBN13, ISBN13),
            ("978-0-306-40615-7", ISBN13),
            ("978 0 306 40615 7", ISBN13),
            ("0-306-40615-2", ISBN10),
            ("0-8044-2957-x", "080442957X"),
        ],
    )
    def test_valid_compacts(self, raw: str, compact: str) -> None:
        result = validate_isbn(raw)
        assert result.ok
        assert result.value == compact
        assert isinstance(result.value, ValidatedISBN)

    def test_bad_checksum(self) -> None:
        result = validate_isbn("9780306406158")
        assert not result.ok
        assert result.kind == ErrorKind.INVALID_INPUT
        assert "checksum" in result.message

    @pytest.mark.parametrize("raw", ["12345", "97803064061X7", "030640615Y", "abcdefghij"])
    def test_malformed(self, raw: str) -> None:
        result = validate_isbn(raw)
        assert not result.ok
        assert result.kind == ErrorKind.INVALID_INPUT

    @pytest.mark.parametrize(
        "raw",
        ["978<script>0306406157", "9780306406157&#x3C;", "0306406152/", "isbn:0306406152"],
    )
    def test_markup_is_security_violation(self, raw: str) -> None:
        result = validate_isbn(raw)
        assert not result.ok
        assert result.kind == ErrorKind.SECURITY_VIOLATION

    @pytest.mark.parametrize("raw", [None, 9780306406157, ["9780306406157"]])
    def test_non_string(self, raw: object) -> None:
        result = validate_isbn(raw)
        assert not result.ok
        assert result.kind == ErrorKind.INVALID_INPUT

    def test_is_valid_isbn(self) -> None:
        assert is_valid_isbn(ISBN13)
        assert not is_valid_isbn("9780306406158")
