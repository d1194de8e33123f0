"""RecordStore — cached, duplicate-safe access to book collection files.

Read path: compare the backing file's modification time with the cached
entry. A cache entry at least as new as the file is served as a copy;
anything else is re-read and decoded through the safe decoder.

Write path (``add`` / ``update``): sanitize the incoming record, load,
merge, persist the whole document, then refresh the cache with the
post-write modification time. A record that cannot be sanitized is
rejected before anything is written. Each cycle holds the per-source lock from the shared
:class:`CollectionCache`, so concurrent writers cannot lose each other's
updates. The cache only changes after a successful write.
"""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from bookkeeper.domain.books import BookRecord, CollectionDocument, clean_record
from bookkeeper.domain.decode import is_collection_document, parse
from bookkeeper.domain.isbn import validate_isbn
from bookkeeper.domain.types import ErrorKind

if TYPE_CHECKING:
    from bookkeeper.infrastructure.storage import Storage

logger = logging.getLogger(__name__)


class RecordStoreError(Exception):
    """A collection could not be read, decoded, or written."""

    def __init__(self, kind: ErrorKind, message: str, *, source_id: str | None = None) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.source_id = source_id


# ---------------------------------------------------------------------------
# Cache
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CacheEntry:
    """A decoded collection and the modification time it was read at."""

    source_id: str
    document: CollectionDocument
    mtime: int


class CollectionCache:
    """Cache of decoded collections shared by every store in the process.

    Create one at startup and pass it to each :class:`RecordStore`. Also
    hands out the per-source locks that serialize read-merge-write cycles.
    """

    def __init__(self) -> None:
        self._entries: dict[str, CacheEntry] = {}
        self._locks: dict[str, threading.RLock] = {}
        self._guard = threading.Lock()

    def get(self, source_id: str) -> CacheEntry | None:
        with self._guard:
            return self._entries.get(source_id)

    def put(self, entry: CacheEntry) -> None:
        with self._guard:
            self._entries[entry.source_id] = entry

    def clear(self, source_id: str | None = None) -> None:
        with self._guard:
            if source_id is None:
                self._entries.clear()
            else:
                self._entries.pop(source_id, None)

    def lock_for(self, source_id: str) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(source_id)
            if lock is None:
                lock = threading.RLock()
                self._locks[source_id] = lock
            return lock

    def __contains__(self, source_id: object) -> bool:
        with self._guard:
            return source_id in self._entries

    def __len__(self) -> int:
        with self._guard:
            return len(self._entries)


def _copy_document(document: CollectionDocument) -> CollectionDocument:
    return CollectionDocument(
        fields=list(document.fields),
        records=[record.model_copy(deep=True) for record in document.records],
    )


# ---------------------------------------------------------------------------
# RecordStore
# ---------------------------------------------------------------------------


class RecordStore:
    """Book collection access backed by a :class:`Storage` collaborator."""

    def __init__(self, storage: Storage, cache: CollectionCache | None = None) -> None:
        self._storage = storage
        self._cache = cache if cache is not None else CollectionCache()

    @property
    def cache(self) -> CollectionCache:
        return self._cache

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def ensure_exists(self, source_id: str) -> bool:
        """Create an empty collection at *source_id* if none exists.

        Returns True if a file was created.
        """
        with self._cache.lock_for(source_id):
            if self._call(source_id, self._storage.exists, source_id):
                return False
            folder, _, _ = source_id.replace("\\", "/").rpartition("/")
            if folder:
                self._call(source_id, self._storage.create_folder, folder)
            self._persist(source_id, CollectionDocument())
            logger.info("Created empty collection at %s", source_id)
            return True

    def add(self, source_id: str, record: BookRecord) -> bool:
        """Append *record* unless its isbn is already present.

        Returns False for a duplicate; nothing is written in that case.

        Raises:
            RecordStoreError: If a text field cannot be sanitized, or for a
                storage failure.
        """
        record = self._sanitized(source_id, record)
        self.ensure_exists(source_id)
        with self._cache.lock_for(source_id):
            document = self._load(source_id)
            if document.find(record.isbn) is not None:
                logger.debug("Duplicate isbn %s in %s", record.isbn, source_id)
                return False
            document.records.append(record)
            self._persist(source_id, document)
        logger.info("Added %s to %s", record.isbn, source_id)
        return True

    def update(self, source_id: str, isbn: str, changes: dict[str, Any]) -> BookRecord | None:
        """Merge *changes* over the record with *isbn*.

        Only the supplied keys change. Returns the stored record, or None
        if no record has that isbn (nothing is written).

        Raises:
            RecordStoreError: For unknown fields, invalid values, an isbn
                change, or a storage failure.
        """
        unknown = set(changes) - set(BookRecord.model_fields)
        if unknown:
            raise RecordStoreError(
                ErrorKind.INVALID_INPUT,
                f"Unknown fields: {', '.join(sorted(unknown))}",
                source_id=source_id,
            )

        with self._cache.lock_for(source_id):
            document = self._load(source_id)
            index = self._index_of(document, isbn)
            if index is None:
                return None

            current = document.records[index]
            if "isbn" in changes:
                requested = validate_isbn(changes["isbn"])
                if not requested.ok or str(requested.value) != current.isbn:
                    raise RecordStoreError(
                        ErrorKind.INVALID_INPUT,
                        "Field 'isbn' cannot be changed",
                        source_id=source_id,
                    )

            try:
                merged = BookRecord.model_validate({**current.model_dump(), **changes})
            except ValidationError as exc:
                raise RecordStoreError(
                    ErrorKind.INVALID_INPUT,
                    f"Invalid update: {exc.errors()[0]['msg']}",
                    source_id=source_id,
                ) from exc

            stored = self._sanitized(source_id, merged)
            document.records[index] = stored
            self._persist(source_id, document)
        logger.info("Updated %s in %s: %s", isbn, source_id, sorted(changes))
        return stored.model_copy(deep=True)

    def get(self, source_id: str, isbn: str) -> BookRecord | None:
        """Return the record with *isbn*, or None."""
        document = self._load(source_id)
        index = self._index_of(document, isbn)
        return None if index is None else document.records[index]

    def list(self, source_id: str) -> list[BookRecord]:
        """All records in insertion order."""
        return self._load(source_id).records

    def fields(self, source_id: str) -> list[dict[str, Any]]:
        """The collection's column declarations."""
        return [f.to_dict() for f in self._load(source_id).fields]

    def clear(self, source_id: str | None = None) -> None:
        """Drop cached collections. The backing files are untouched."""
        self._cache.clear(source_id)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _sanitized(source_id: str, record: BookRecord) -> BookRecord:
        result = clean_record(record)
        if not result.ok:
            raise RecordStoreError(ErrorKind.INVALID_INPUT, result.message, source_id=source_id)
        return result.value

    @staticmethod
    def _index_of(document: CollectionDocument, isbn: str) -> int | None:
        result = validate_isbn(isbn)
        if not result.ok:
            return None
        return document.find(str(result.value))

    def _call(self, source_id: str, func: Any, *args: Any) -> Any:
        """Invoke a storage operation, wrapping failures."""
        try:
            return func(*args)
        except (OSError, ValueError) as exc:
            raise RecordStoreError(
                ErrorKind.STORAGE_FAILURE,
                f"Storage operation failed for {source_id}: {exc}",
                source_id=source_id,
            ) from exc

    def _load(self, source_id: str) -> CollectionDocument:
        """Caching read path. Always returns a copy the caller may mutate."""
        mtime = self._call(source_id, self._storage.stat_mtime, source_id)
        cached = self._cache.get(source_id)
        if cached is not None and cached.mtime >= mtime:
            return _copy_document(cached.document)

        text = self._call(source_id, self._storage.read, source_id)
        decoded = parse(text, is_collection_document)
        if not decoded.ok:
            raise RecordStoreError(
                decoded.kind,
                f"Cannot read collection {source_id}: {decoded.message}",
                source_id=source_id,
            )

        document = CollectionDocument.from_dict(decoded.value)
        self._cache.put(CacheEntry(source_id=source_id, document=document, mtime=mtime))
        logger.debug("Loaded %d records from %s", len(document.records), source_id)
        return _copy_document(document)

    def _persist(self, source_id: str, document: CollectionDocument) -> None:
        text = json.dumps(document.to_dict(), indent=2, ensure_ascii=False) + "\n"
        self._call(source_id, self._storage.write, source_id, text)
        mtime = self._call(source_id, self._storage.stat_mtime, source_id)
        self._cache.put(
            CacheEntry(source_id=source_id, document=_copy_document(document), mtime=mtime)
        )
