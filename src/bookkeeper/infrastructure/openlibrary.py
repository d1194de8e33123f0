"""Open Library metadata lookup with a sliding-window rate limit.

Every response is untrusted: it passes ``validate_untrusted_object`` (key
checks and display sanitization of all strings) and a shape predicate
before any value reaches a :class:`BookRecord`.

Lookup order: Books API (``jscmd=data``), then the Search API as a
fallback. With ``merge_sources`` enabled both are queried and combined
through a :class:`MergePolicy`.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import requests
from pydantic import ValidationError

from bookkeeper.domain.books import PLACEHOLDER_AUTHOR, PLACEHOLDER_TITLE, BookRecord
from bookkeeper.domain.decode import (
    is_open_library_book,
    is_open_library_search,
    validate_untrusted_object,
)
from bookkeeper.domain.merge import MergePolicy, merge_metadata
from bookkeeper.domain.types import BookStatus
from bookkeeper.domain.validation import ValidatedISBN

logger = logging.getLogger(__name__)

BOOKS_URL = "https://openlibrary.org/api/books"
SEARCH_URL = "https://openlibrary.org/search.json"
DEFAULT_USER_AGENT = "bookkeeper/0.1 (+https://openlibrary.org/developers/api)"


class MetadataLookupError(Exception):
    """The metadata provider could not be queried or returned unusable data."""


# ---------------------------------------------------------------------------
# Rate limiting
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RateLimitStatus:
    """Remaining calls in the current window and when the oldest call expires.

    *reset_at* is on the limiter's clock; *reset_in* is seconds from now.
    """

    remaining: int
    reset_at: float
    reset_in: float


class RateLimiter:
    """At most *limit* calls per rolling *window* seconds.

    ``clock`` and ``sleep`` are injectable so tests can run without real
    waiting.
    """

    def __init__(
        self,
        limit: int = 10,
        window: float = 60.0,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.limit = limit
        self.window = window
        self._clock = clock
        self._sleep = sleep
        self._calls: deque[float] = deque()
        self._lock = threading.Lock()

    def _prune(self, now: float) -> None:
        while self._calls and now - self._calls[0] >= self.window:
            self._calls.popleft()

    def await_slot(self) -> None:
        """Block until another call fits in the window."""
        while True:
            with self._lock:
                now = self._clock()
                self._prune(now)
                if len(self._calls) < self.limit:
                    return
                wait = self.window - (now - self._calls[0]) + 0.1
            logger.info("Rate limit reached, waiting %.1fs", wait)
            self._sleep(wait)

    def record_use(self) -> None:
        with self._lock:
            now = self._clock()
            self._calls.append(now)
            self._prune(now)

    def status(self) -> RateLimitStatus:
        with self._lock:
            now = self._clock()
            self._prune(now)
            reset_at = self._calls[0] + self.window if self._calls else now
            return RateLimitStatus(
                remaining=max(0, self.limit - len(self._calls)),
                reset_at=reset_at,
                reset_in=max(0.0, reset_at - now),
            )

    def clear(self) -> None:
        with self._lock:
            self._calls.clear()


# ---------------------------------------------------------------------------
# Field extraction
# ---------------------------------------------------------------------------


def _text(value: Any) -> str | None:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        value = str(value)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _first(value: Any, key: str | None = None) -> str | None:
    if not isinstance(value, list) or not value:
        return None
    item = value[0]
    if key is not None:
        item = item.get(key) if isinstance(item, dict) else None
    return _text(item)


def _positive_int(value: Any) -> int | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if isinstance(value, float) and not math.isfinite(value):
        return None
    count = int(value)
    return count if count > 0 else None


def _description(value: Any) -> str | None:
    # Open Library sends either a string or {"type": ..., "value": ...}
    if isinstance(value, dict):
        value = value.get("value")
    if isinstance(value, list):
        return _first(value)
    return _text(value)


def _drop_none(fields: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in fields.items() if v is not None}


def fields_from_book(book: dict[str, Any]) -> dict[str, Any]:
    """Flat record fields from a validated Books API object."""
    return _drop_none(
        {
            "title": _text(book.get("title")),
            "author": _first(book.get("authors"), "name"),
            "pages": _positive_int(book.get("number_of_pages")),
            "publisher": _first(book.get("publishers"), "name"),
            "year_published": _text(book.get("publish_date")),
            "genre": _first(book.get("subjects"), "name"),
            "description": _description(book.get("notes")),
        }
    )


def fields_from_search_doc(doc: dict[str, Any]) -> dict[str, Any]:
    """Flat record fields from a validated Search API document."""
    return _drop_none(
        {
            "title": _text(doc.get("title")),
            "author": _first(doc.get("author_name")),
            "pages": _positive_int(doc.get("number_of_pages_median")),
            "publisher": _first(doc.get("publisher")),
            "year_published": _text(doc.get("first_publish_year")),
            "genre": _first(doc.get("subject")),
            "description": _description(doc.get("description"))
            or _description(doc.get("first_sentence")),
        }
    )


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class OpenLibraryClient:
    """Fetches book metadata by ISBN from Open Library."""

    def __init__(
        self,
        *,
        session: requests.Session | None = None,
        rate_limiter: RateLimiter | None = None,
        merge_policy: MergePolicy | None = None,
        merge_sources: bool = False,
        timeout: float = 10.0,
        user_agent: str = DEFAULT_USER_AGENT,
        books_url: str = BOOKS_URL,
        search_url: str = SEARCH_URL,
    ) -> None:
        self._session = session or requests.Session()
        self.rate_limiter = rate_limiter or RateLimiter()
        self._merge_policy = merge_policy or MergePolicy()
        self._merge_sources = merge_sources
        self._timeout = timeout
        self._headers = {"User-Agent": user_agent, "Accept": "application/json"}
        self._books_url = books_url
        self._search_url = search_url

    def fetch(
        self, isbn: ValidatedISBN, *, status: BookStatus = BookStatus.TO_READ
    ) -> BookRecord | None:
        """Look up *isbn*. Returns None when no source knows the book.

        Raises:
            MetadataLookupError: If the fallback source fails.
        """
        primary = self._fetch_primary(isbn)
        if primary and not self._merge_sources:
            return self._to_record(isbn, primary, status)

        try:
            secondary = self._fetch_search(isbn)
        except MetadataLookupError:
            if not primary:
                raise
            logger.warning("Search API failed for %s, using Books API data only", isbn)
            secondary = None

        if primary and secondary:
            fields = merge_metadata(primary, secondary, self._merge_policy)
        else:
            fields = primary or secondary
        if not fields:
            return None
        return self._to_record(isbn, fields, status)

    # ------------------------------------------------------------------
    # Sources
    # ------------------------------------------------------------------

    def _get_json(self, url: str, params: dict[str, Any]) -> Any:
        self.rate_limiter.await_slot()
        self.rate_limiter.record_use()
        response = self._session.get(
            url, params=params, headers=self._headers, timeout=self._timeout
        )
        response.raise_for_status()
        return response.json()

    def _fetch_primary(self, isbn: str) -> dict[str, Any] | None:
        bibkey = f"ISBN:{isbn}"
        try:
            payload = self._get_json(
                self._books_url,
                {"bibkeys": bibkey, "format": "json", "jscmd": "data"},
            )
        except (requests.RequestException, ValueError) as exc:
            logger.warning("Books API failed for %s, trying search: %s", isbn, exc)
            return None

        # The bibkey contains a colon, so unwrap before key validation
        book = payload.get(bibkey) if isinstance(payload, dict) else None
        if book is None:
            return None
        validated = validate_untrusted_object(book)
        if not validated.ok:
            logger.warning("Rejected Books API response for %s: %s", isbn, validated.message)
            return None
        if not is_open_library_book(validated.value):
            logger.warning("Unexpected Books API response shape for %s", isbn)
            return None
        return fields_from_book(validated.value)

    def _fetch_search(self, isbn: str) -> dict[str, Any] | None:
        try:
            payload = self._get_json(self._search_url, {"isbn": isbn, "limit": 1})
        except (requests.RequestException, ValueError) as exc:
            msg = f"Unable to find book information: {exc}"
            raise MetadataLookupError(msg) from exc

        validated = validate_untrusted_object(payload)
        if not validated.ok:
            msg = f"Invalid search API response: {validated.message}"
            raise MetadataLookupError(msg)
        if not is_open_library_search(validated.value):
            msg = "Invalid search API response format"
            raise MetadataLookupError(msg)

        docs = validated.value["docs"]
        return fields_from_search_doc(docs[0]) if docs else None

    @staticmethod
    def _to_record(isbn: str, fields: dict[str, Any], status: BookStatus) -> BookRecord:
        try:
            return BookRecord(
                **{
                    **fields,
                    "title": fields.get("title") or PLACEHOLDER_TITLE,
                    "author": fields.get("author") or PLACEHOLDER_AUTHOR,
                    "isbn": isbn,
                    "status": status,
                }
            )
        except ValidationError as exc:
            error = exc.errors()[0]
            where = ".".join(str(part) for part in error["loc"])
            msg = f"Unusable metadata for ISBN {isbn}: {where}: {error['msg']}"
            raise MetadataLookupError(msg) from exc
