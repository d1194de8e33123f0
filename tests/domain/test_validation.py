"""Tests for Ok/Err results and branded strings."""

from __future__ import annotations

import copy
import pickle

import pytest

from bookkeeper.domain.isbn import validate_isbn
from bookkeeper.domain.sanitize import sanitize_for_display
from bookkeeper.domain.types import ErrorKind
from bookkeeper.domain.validation import Err, Ok, SafeDisplayText, ValidatedISBN


class TestResults:
    def test_ok(self) -> None:
        result = Ok("x")
        assert result.ok is True
        assert result.value == "x"

    def test_err(self) -> None:
        result = Err(ErrorKind.NOT_FOUND, "missing")
        assert result.ok is False
        assert result.kind == ErrorKind.NOT_FOUND
        assert result.message == "missing"


class TestBrandedStrings:
    @pytest.mark.parametrize("cls", [SafeDisplayText, ValidatedISBN])
    def test_direct_construction_refused(self, cls: type) -> None:
        with pytest.raises(TypeError):
            cls("9780306406157")

    def test_branded_value_is_a_str(self) -> None:
        value = sanitize_for_display("a<b").value
        assert isinstance(value, str)
        assert value == "a&lt;b"
        assert value.upper() == "A&LT;B"

    def test_copy_keeps_brand(self) -> None:
        value = validate_isbn("9780306406157").value
        assert type(copy.deepcopy(value)) is ValidatedISBN
        assert type(copy.copy(value)) is ValidatedISBN

    def test_pickle_keeps_brand(self) -> None:
        value = validate_isbn("9780306406157").value
        restored = pickle.loads(pickle.dumps(value))
        assert type(restored) is ValidatedISBN
        assert restored == value
