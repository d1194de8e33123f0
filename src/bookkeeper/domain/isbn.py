"""ISBN-10 / ISBN-13 structural and checksum validation.

Source formatting is irrelevant: ``978-0-306-40615-7``, ``978 0306406157``
and ``9780306406157`` all validate to the compact ``9780306406157``.

INVARIANT: ``ValidatedISBN`` values come only from :func:`validate_isbn`.
"""

from __future__ import annotations

import re
from typing import Any

from bookkeeper.domain.sanitize import DISPLAY_SPECIAL_CHARS, decode_entities, sanitize_for_display
from bookkeeper.domain.types import ErrorKind
from bookkeeper.domain.validation import Err, Ok, ValidatedISBN, ValidationResult, _brand

_ISBN10_RE = re.compile(r"^[0-9]{9}[0-9X]$")
_ISBN13_RE = re.compile(r"^[0-9]{13}$")
_SEPARATORS_RE = re.compile(r"[-\s]")


def is_valid_isbn10(isbn: str) -> bool:
    """Check a compact ISBN-10 (digits, optional trailing ``X``)."""
    isbn = isbn.upper()
    if not _ISBN10_RE.match(isbn):
        return False
    total = sum(int(digit) * (10 - i) for i, digit in enumerate(isbn[:9]))
    check = (11 - total % 11) % 11
    expected = "X" if check == 10 else str(check)
    return isbn[9] == expected


def is_valid_isbn13(isbn: str) -> bool:
    """Check a compact ISBN-13 (13 digits)."""
    if not _ISBN13_RE.match(isbn):
        return False
    total = sum(int(digit) * (1 if i % 2 == 0 else 3) for i, digit in enumerate(isbn[:12]))
    return (10 - total % 10) % 10 == int(isbn[12])


def validate_isbn(raw: Any) -> ValidationResult[ValidatedISBN]:
    """Validate *raw* as an ISBN-10 or ISBN-13 and return its compact form.

    The input is display-encoded and then fully decoded first; any markup
    character that survives the round trip is treated as an injection
    attempt rather than a typo.
    """
    if not isinstance(raw, str):
        return Err(ErrorKind.INVALID_INPUT, "ISBN must be a string")

    encoded = sanitize_for_display(raw)
    if not encoded.ok:
        return encoded

    decoded = decode_entities(encoded.value)
    if any(ch in DISPLAY_SPECIAL_CHARS for ch in decoded):
        return Err(ErrorKind.SECURITY_VIOLATION, "ISBN contains markup characters")

    compact = _SEPARATORS_RE.sub("", decoded)
    if len(compact) == 10:
        compact = compact[:9] + compact[9].upper()
        if not _ISBN10_RE.match(compact):
            return Err(ErrorKind.INVALID_INPUT, "ISBN-10 must be 9 digits followed by a digit or X")
        if not is_valid_isbn10(compact):
            return Err(ErrorKind.INVALID_INPUT, "ISBN-10 checksum does not match")
    elif len(compact) == 13:
        if not _ISBN13_RE.match(compact):
            return Err(ErrorKind.INVALID_INPUT, "ISBN-13 must be 13 digits")
        if not is_valid_isbn13(compact):
            return Err(ErrorKind.INVALID_INPUT, "ISBN-13 checksum does not match")
    else:
        return Err(ErrorKind.INVALID_INPUT, f"ISBN must have 10 or 13 digits, got {len(compact)}")

    return Ok(_brand(ValidatedISBN, compact))


def is_valid_isbn(raw: Any) -> bool:
    """Boolean shorthand for :func:`validate_isbn`."""
    return validate_isbn(raw).ok
