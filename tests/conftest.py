"""Shared pytest fixtures for bookkeeper tests."""

from __future__ import annotations

import logging
from collections.abc import Generator
from pathlib import Path
from typing import Any

import pytest
import requests
from click.testing import CliRunner

from bookkeeper.config.logging import HANDLER_NAME
from bookkeeper.config.settings import BookkeeperSettings
from bookkeeper.infrastructure.library import Library
from bookkeeper.infrastructure.openlibrary import BOOKS_URL, OpenLibraryClient, RateLimiter
from bookkeeper.infrastructure.record_store import RecordStore
from bookkeeper.infrastructure.storage import VaultStorage
from bookkeeper.plugins.manager import PluginManager

DUNE_ISBN = "9780441013593"

DUNE_BOOK: dict[str, Any] = {
    "title": "Dune",
    "authors": [{"name": "Frank Herbert", "url": "https://openlibrary.org/authors/OL79034A"}],
    "number_of_pages": 604,
    "publishers": [{"name": "Ace Books"}],
    "publish_date": "2005",
    "subjects": [{"name": "Science fiction"}, {"name": "Arrakis"}],
}

DUNE_DOC: dict[str, Any] = {
    "title": "Dune",
    "author_name": ["Frank Herbert"],
    "first_publish_year": 1965,
    "publisher": ["Chilton Books"],
    "number_of_pages_median": 412,
    "subject": ["Fiction"],
    "first_sentence": ["In the week before their departure to Arrakis..."],
}


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeResponse:
    def __init__(self, payload: Any, status_code: int = 200) -> None:
        self._payload = payload
        self.status_code = status_code

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self) -> Any:
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


class FakeSession:
    """Stands in for ``requests.Session`` against the two Open Library APIs.

    *books* maps isbn -> Books API object, *search* maps isbn -> search docs.
    URLs in *fail* raise a connection error; *overrides* maps a URL to a raw
    payload returned as-is.
    """

    def __init__(
        self,
        books: dict[str, Any] | None = None,
        search: dict[str, list[Any]] | None = None,
        *,
        fail: tuple[str, ...] = (),
        overrides: dict[str, Any] | None = None,
    ) -> None:
        self.books = books or {}
        self.search = search or {}
        self.fail = fail
        self.overrides = overrides or {}
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def get(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> FakeResponse:
        params = dict(params or {})
        self.calls.append((url, params))
        if url in self.fail:
            raise requests.ConnectionError("network unreachable")
        if url in self.overrides:
            return FakeResponse(self.overrides[url])
        if url == BOOKS_URL:
            bibkey = params["bibkeys"]
            isbn = bibkey.split(":", 1)[1]
            return FakeResponse({bibkey: self.books[isbn]} if isbn in self.books else {})
        return FakeResponse({"numFound": 0, "docs": self.search.get(params["isbn"], [])})


class FakeClock:
    """Monotonic clock whose ``sleep`` advances time instantly."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's own config out of the tests."""
    monkeypatch.delenv("BOOKKEEPER_CONFIG", raising=False)


@pytest.fixture(autouse=True)
def _drop_cli_log_handler() -> Generator[None]:
    """CLI runs bind a stderr handler to the runner's stream; remove it afterwards."""
    yield
    root = logging.getLogger()
    for handler in [h for h in root.handlers if h.get_name() == HANDLER_NAME]:
        root.removeHandler(handler)


@pytest.fixture
def cli_runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def library_root(tmp_path: Path) -> Path:
    root = tmp_path / "vault"
    root.mkdir()
    return root


@pytest.fixture
def settings(library_root: Path) -> BookkeeperSettings:
    return BookkeeperSettings.from_cli(library_root=library_root)


@pytest.fixture
def storage(library_root: Path) -> VaultStorage:
    return VaultStorage(library_root)


@pytest.fixture
def store(storage: VaultStorage) -> RecordStore:
    return RecordStore(storage)


@pytest.fixture
def fake_session() -> FakeSession:
    return FakeSession(books={DUNE_ISBN: DUNE_BOOK}, search={DUNE_ISBN: [DUNE_DOC]})


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def rate_limiter(fake_clock: FakeClock) -> RateLimiter:
    return RateLimiter(10, 60.0, clock=fake_clock, sleep=fake_clock.sleep)


@pytest.fixture
def lookup(fake_session: FakeSession, rate_limiter: RateLimiter) -> OpenLibraryClient:
    return OpenLibraryClient(session=fake_session, rate_limiter=rate_limiter)


@pytest.fixture
def plugin_manager() -> PluginManager:
    return PluginManager()


@pytest.fixture
def library(
    settings: BookkeeperSettings,
    lookup: OpenLibraryClient,
    plugin_manager: PluginManager,
) -> Library:
    return Library(settings, lookup=lookup, plugin_manager=plugin_manager)


@pytest.fixture
def _isolated_library(
    library_root: Path,
    fake_session: FakeSession,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """Run CLI tests inside a temp library with the fake HTTP session.

    Use via ``@pytest.mark.usefixtures("_isolated_library")``.
    """
    monkeypatch.chdir(library_root)
    monkeypatch.setattr(requests, "Session", lambda: fake_session)
