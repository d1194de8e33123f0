"""Tagged validation results and branded (validated) string values.

Every sanitizer, validator, and decoder in the domain layer returns a
:data:`ValidationResult` instead of raising. Callers branch on
``result.ok``::

    result = validate_isbn(raw)
    if not result.ok:
        log.warning("rejected isbn", kind=result.kind, reason=result.message)
        return None
    isbn = result.value

INVARIANT: A branded value can only be produced by its validator. The
constructors refuse to run without the module-private mint token.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, Literal, TypeVar

from bookkeeper.domain.types import ErrorKind

T = TypeVar("T")

_MINT = object()


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful validation carrying the validated value."""

    value: T
    ok: Literal[True] = True


@dataclass(frozen=True)
class Err:
    """Failed validation carrying an error kind and a human-readable reason."""

    kind: ErrorKind
    message: str
    ok: Literal[False] = False


ValidationResult = Ok[T] | Err


# ---------------------------------------------------------------------------
# Branded values
# ---------------------------------------------------------------------------


def _restore(cls: type[BrandedStr], value: str) -> BrandedStr:
    """Rebuild a branded value during copy/pickle."""
    return cls(value, _token=_MINT)


class BrandedStr(str):
    """A ``str`` that can only be created by the validator that owns it."""

    __slots__ = ()

    def __new__(cls, value: str, *, _token: Any = None) -> BrandedStr:
        if _token is not _MINT:
            msg = f"{cls.__name__} values are only produced by their validator"
            raise TypeError(msg)
        return super().__new__(cls, value)

    def __reduce__(self) -> tuple[Any, ...]:
        return (_restore, (type(self), str(self)))


def _brand(cls: type[BrandedStr], value: str) -> Any:
    """Brand *value* as *cls*. Only the domain validators call this."""
    return cls(value, _token=_MINT)


class SafeDisplayText(BrandedStr):
    """Text entity-encoded for safe display in HTML-capable renderers."""

    __slots__ = ()


class SafeMarkdownText(BrandedStr):
    """Text that cannot inject raw HTML, wikilinks, or code spans into markdown."""

    __slots__ = ()


class SafeTemplateText(BrandedStr):
    """Markdown-safe text that also cannot form a template placeholder."""

    __slots__ = ()


class SafeFileName(BrandedStr):
    """A single path component safe to create on any common filesystem."""

    __slots__ = ()


class ValidatedURL(BrandedStr):
    """An allow-listed, credential-free URL pointing at a public host."""

    __slots__ = ()


class ValidatedFilePath(BrandedStr):
    """A relative path with no traversal, drive letter, or control characters."""

    __slots__ = ()


class ValidatedISBN(BrandedStr):
    """A compact ISBN-10 or ISBN-13 that passed its checksum."""

    __slots__ = ()
