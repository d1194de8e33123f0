"""Safe decoding of untrusted JSON text and deep validation of parsed values.

Two entry points:

- :func:`parse` turns text into a value only if it passes a caller-supplied
  shape predicate (``is_collection_document``, ``is_open_library_book`` ...).
- :func:`validate_untrusted_object` walks an already-parsed mapping,
  rejecting dangerous keys and display-sanitizing every string leaf.

Both refuse keys named ``__proto__``, ``constructor`` or ``prototype``.
Such keys mean nothing to Python, but the collection file is shared with
JavaScript-based readers in the host application.
"""

from __future__ import annotations

import json
import math
import re
from collections.abc import Callable, Mapping
from typing import Any, TypeVar

from bookkeeper.domain.sanitize import sanitize_for_display
from bookkeeper.domain.types import ErrorKind, FieldType
from bookkeeper.domain.validation import Err, Ok, ValidationResult

T = TypeVar("T")

MAX_DEPTH = 10

FORBIDDEN_KEYS = frozenset({"__proto__", "constructor", "prototype"})

# An escaped quote is part of a string value, not the start of a key
_FORBIDDEN_KEY_TEXT_RE = re.compile(r'(?<!\\)"(?:__proto__|constructor|prototype)"\s*:')
_SAFE_KEY_RE = re.compile(r"^[A-Za-z0-9_.\-]+$")


class _Rejected(Exception):
    """Internal signal that aborts a walk; converted to ``Err`` at the boundary."""

    def __init__(self, kind: ErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message


# ---------------------------------------------------------------------------
# parse()
# ---------------------------------------------------------------------------


def _reject_forbidden_pairs(pairs: list[tuple[str, Any]]) -> dict[str, Any]:
    for key, _value in pairs:
        if key in FORBIDDEN_KEYS:
            raise _Rejected(ErrorKind.SECURITY_VIOLATION, f"Forbidden key {key!r} in document")
    return dict(pairs)


def _reject_constant(name: str) -> Any:
    msg = f"Non-finite number {name} is not valid JSON"
    raise ValueError(msg)


def _check_depth(value: Any, depth: int = 0) -> None:
    if depth > MAX_DEPTH:
        raise _Rejected(
            ErrorKind.SECURITY_VIOLATION,
            f"Document nesting exceeds {MAX_DEPTH} levels",
        )
    if isinstance(value, dict):
        for item in value.values():
            _check_depth(item, depth + 1)
    elif isinstance(value, list):
        for item in value:
            _check_depth(item, depth + 1)


def parse(text: Any, predicate: Callable[[Any], bool]) -> ValidationResult[Any]:
    """Decode *text* as JSON and return it only if ``predicate(value)`` holds.

    The parsed value never appears in error messages.
    """
    if not isinstance(text, str):
        return Err(ErrorKind.INVALID_INPUT, "Input must be a string")

    if _FORBIDDEN_KEY_TEXT_RE.search(text):
        return Err(ErrorKind.SECURITY_VIOLATION, "Potential prototype pollution detected")

    try:
        value = json.loads(
            text,
            object_pairs_hook=_reject_forbidden_pairs,
            parse_constant=_reject_constant,
        )
        _check_depth(value)
    except _Rejected as exc:
        return Err(exc.kind, exc.message)
    except RecursionError:
        return Err(ErrorKind.SECURITY_VIOLATION, f"Document nesting exceeds {MAX_DEPTH} levels")
    except ValueError as exc:
        return Err(ErrorKind.PARSE_FAILURE, f"JSON parsing failed: {exc}")

    if not predicate(value):
        return Err(ErrorKind.SCHEMA_VIOLATION, "Data does not match expected schema")
    return Ok(value)


# ---------------------------------------------------------------------------
# validate_untrusted_object()
# ---------------------------------------------------------------------------

_DROP = object()


def _validate_key(key: Any) -> str:
    if not isinstance(key, str):
        raise _Rejected(ErrorKind.INVALID_INPUT, f"Non-string object key: {key!r}")
    if key in FORBIDDEN_KEYS:
        raise _Rejected(ErrorKind.SECURITY_VIOLATION, f"Forbidden key {key!r} in document")
    if not _SAFE_KEY_RE.match(key):
        raise _Rejected(ErrorKind.INVALID_INPUT, f"Invalid characters in object key: {key!r}")
    return key


def _validate_value(value: Any, depth: int) -> Any:
    if isinstance(value, str):
        sanitized = sanitize_for_display(value)
        return sanitized.value if sanitized.ok else _DROP
    if isinstance(value, bool) or value is None:
        return value
    if isinstance(value, (int, float)):
        return value if math.isfinite(value) else _DROP
    if isinstance(value, Mapping):
        return _validate_mapping(value, depth + 1)
    if isinstance(value, (list, tuple)):
        if depth + 1 > MAX_DEPTH:
            raise _Rejected(
                ErrorKind.SECURITY_VIOLATION, f"Object nesting exceeds {MAX_DEPTH} levels"
            )
        items = (_validate_value(item, depth + 1) for item in value)
        return [item for item in items if item is not _DROP]
    return _DROP


def _validate_mapping(obj: Mapping[Any, Any], depth: int) -> dict[str, Any]:
    if depth > MAX_DEPTH:
        raise _Rejected(
            ErrorKind.SECURITY_VIOLATION, f"Object nesting exceeds {MAX_DEPTH} levels"
        )
    result: dict[str, Any] = {}
    for key, value in obj.items():
        safe_key = _validate_key(key)
        cleaned = _validate_value(value, depth)
        if cleaned is not _DROP:
            result[safe_key] = cleaned
    return result


def validate_untrusted_object(value: Any) -> ValidationResult[dict[str, Any]]:
    """Deep-validate a decoded mapping from an untrusted source.

    Bad keys reject the whole document. Bad leaves (non-finite numbers,
    oversized strings, values of unknown type) are dropped and the rest of
    the document survives.
    """
    if not isinstance(value, Mapping):
        return Err(ErrorKind.INVALID_INPUT, "Untrusted document must be an object")
    try:
        return Ok(_validate_mapping(value, 0))
    except _Rejected as exc:
        return Err(exc.kind, exc.message)


# ---------------------------------------------------------------------------
# Shape predicates
# ---------------------------------------------------------------------------

_FIELD_TYPES = frozenset(t.value for t in FieldType)


def _is_named_list(value: Any) -> bool:
    return isinstance(value, list) and all(
        isinstance(item, dict) and isinstance(item.get("name"), str) for item in value
    )


def _is_str_list(value: Any) -> bool:
    return isinstance(value, list) and all(isinstance(item, str) for item in value)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def is_collection_document(value: Any) -> bool:
    """A ``{"fields": [...], "entries": [...]}`` collection file."""
    if not isinstance(value, dict):
        return False
    fields = value.get("fields")
    entries = value.get("entries")
    if not isinstance(fields, list) or not isinstance(entries, list):
        return False
    for field in fields:
        if not isinstance(field, dict):
            return False
        if not isinstance(field.get("name"), str) or field.get("type") not in _FIELD_TYPES:
            return False
        if "options" in field and not _is_str_list(field["options"]):
            return False
    return all(isinstance(entry, dict) for entry in entries)


def is_open_library_book(value: Any) -> bool:
    """One book object from the Open Library Books API (``jscmd=data``)."""
    if not isinstance(value, dict):
        return False
    checks = [
        ("title", lambda v: isinstance(v, str)),
        ("authors", _is_named_list),
        ("number_of_pages", _is_number),
        ("publishers", _is_named_list),
        ("publish_date", lambda v: isinstance(v, str)),
        ("subjects", _is_named_list),
    ]
    return all(key not in value or check(value[key]) for key, check in checks)


def is_open_library_search(value: Any) -> bool:
    """A response from the Open Library Search API."""
    return (
        isinstance(value, dict)
        and isinstance(value.get("docs"), list)
        and all(isinstance(doc, dict) for doc in value["docs"])
    )
