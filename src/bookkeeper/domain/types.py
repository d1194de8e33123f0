"""Status, field, and error-kind enums shared across the package."""

from __future__ import annotations

from enum import StrEnum


class BookStatus(StrEnum):
    """Reading status of a book."""

    TO_READ = "to-read"
    READING = "reading"
    COMPLETED = "completed"


class FieldType(StrEnum):
    """Column types allowed in a collection file's ``fields`` list."""

    TEXT = "text"
    SELECT = "select"
    DATE = "date"
    NUMBER = "number"
    LINK = "link"


class ErrorKind(StrEnum):
    """Failure categories carried by ``Err`` results and store errors."""

    INVALID_INPUT = "INVALID_INPUT"
    SECURITY_VIOLATION = "SECURITY_VIOLATION"
    PATH_TRAVERSAL = "PATH_TRAVERSAL"
    SCHEMA_VIOLATION = "SCHEMA_VIOLATION"
    PARSE_FAILURE = "PARSE_FAILURE"
    NOT_FOUND = "NOT_FOUND"
    DUPLICATE = "DUPLICATE"
    STORAGE_FAILURE = "STORAGE_FAILURE"
    LOOKUP_FAILURE = "LOOKUP_FAILURE"
