"""BookService — library setup, book intake, updates, and queries.

Intake pipeline: VALIDATE → DUPLICATE CHECK → LOOKUP → NOTE → STORE → NOTIFY

Record-store, lookup, and validation failures become error results.
Note creation and plugin hooks are best-effort: their failures are
reported as warnings and never undo a stored record.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from bookkeeper.domain.books import BookRecord, record_to_entry
from bookkeeper.domain.isbn import validate_isbn
from bookkeeper.domain.sanitize import sanitize_for_display
from bookkeeper.domain.types import BookStatus, ErrorKind
from bookkeeper.infrastructure.notes import NoteRenderError, note_name, render_book_note
from bookkeeper.infrastructure.openlibrary import MetadataLookupError
from bookkeeper.infrastructure.record_store import RecordStoreError
from bookkeeper.services.base import BaseService
from bookkeeper.services.result import ServiceResult

logger = logging.getLogger(__name__)


class BookService(BaseService):
    """Operations on the library's book collection."""

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    def init_library(self) -> ServiceResult:
        """Create the collection file (and notes folder) if missing."""
        op = "init_library"
        warnings: list[str] = []
        lib = self._library
        path = lib.collection_path

        try:
            created = lib.store.ensure_exists(path)
            if lib.settings.library.notes_folder:
                lib.storage.create_folder(lib.settings.library.notes_folder)
        except RecordStoreError as exc:
            return ServiceResult.failure(op, exc.kind, exc.message, path=path)
        except (OSError, ValueError) as exc:
            return ServiceResult.failure(op, ErrorKind.STORAGE_FAILURE, str(exc), path=path)

        if created:
            self._dispatch_event(
                "post_library_init",
                {"root": str(lib.root), "collection_path": path},
                warnings,
            )
        return ServiceResult(
            ok=True,
            op=op,
            data={"root": str(lib.root), "collection_path": path, "created": created},
            warnings=warnings,
        )

    # ------------------------------------------------------------------
    # Intake
    # ------------------------------------------------------------------

    def add_by_isbn(
        self,
        isbn: str,
        *,
        status: BookStatus | None = None,
        create_note: bool | None = None,
    ) -> ServiceResult:
        """Look up *isbn* and add the book to the collection."""
        op = "add_by_isbn"
        checked = validate_isbn(isbn)
        if not checked.ok:
            return ServiceResult.failure(op, checked.kind, checked.message, isbn=str(isbn))
        compact = str(checked.value)

        existing = self._find(op, compact)
        if isinstance(existing, ServiceResult):
            return existing
        if existing is not None:
            return self._duplicate(op, existing)

        try:
            record = self._library.lookup.fetch(
                checked.value,
                status=status or self._library.settings.library.default_status,
            )
        except MetadataLookupError as exc:
            return ServiceResult.failure(op, ErrorKind.LOOKUP_FAILURE, str(exc), isbn=compact)
        if record is None:
            return ServiceResult.failure(
                op,
                ErrorKind.NOT_FOUND,
                f"No book information found for ISBN {compact}",
                isbn=compact,
            )

        return self._store(op, record, create_note=create_note)

    def add_manual(
        self,
        *,
        title: str,
        author: str,
        isbn: str,
        create_note: bool | None = None,
        **fields: Any,
    ) -> ServiceResult:
        """Add a book from user-entered fields; no lookup is performed."""
        op = "add_manual"
        checked = validate_isbn(isbn)
        if not checked.ok:
            return ServiceResult.failure(op, checked.kind, checked.message, isbn=str(isbn))

        data: dict[str, Any] = {"status": self._library.settings.library.default_status}
        data.update({k: v for k, v in fields.items() if v is not None})
        for name, value in [("title", title), ("author", author), *data.items()]:
            if not isinstance(value, str) or name == "status":
                continue
            clean = sanitize_for_display(value.strip())
            if not clean.ok:
                return ServiceResult.failure(op, clean.kind, f"{name}: {clean.message}")
            data[name] = str(clean.value)
        data["isbn"] = str(checked.value)

        try:
            record = BookRecord.model_validate(data)
        except ValidationError as exc:
            first = exc.errors()[0]
            field_name = ".".join(str(p) for p in first["loc"])
            return ServiceResult.failure(
                op, ErrorKind.INVALID_INPUT, f"Invalid {field_name}: {first['msg']}"
            )

        existing = self._find(op, record.isbn)
        if isinstance(existing, ServiceResult):
            return existing
        if existing is not None:
            return self._duplicate(op, existing)
        return self._store(op, record, create_note=create_note)

    # ------------------------------------------------------------------
    # Updates and queries
    # ------------------------------------------------------------------

    def update_book(self, isbn: str, changes: dict[str, Any]) -> ServiceResult:
        """Merge *changes* over the stored record; other fields are kept."""
        op = "update_book"
        warnings: list[str] = []
        if not changes:
            return ServiceResult.failure(op, ErrorKind.INVALID_INPUT, "No changes given")
        checked = validate_isbn(isbn)
        if not checked.ok:
            return ServiceResult.failure(op, checked.kind, checked.message, isbn=str(isbn))
        compact = str(checked.value)

        lib = self._library
        try:
            lib.store.ensure_exists(lib.collection_path)
            updated = lib.store.update(lib.collection_path, compact, changes)
        except RecordStoreError as exc:
            return ServiceResult.failure(op, exc.kind, exc.message, isbn=compact)
        if updated is None:
            return ServiceResult.failure(
                op, ErrorKind.NOT_FOUND, f"No book with ISBN {compact}", isbn=compact
            )

        fields_changed = sorted(changes)
        self._dispatch_event(
            "post_book_update",
            {
                "isbn": compact,
                "fields_changed": fields_changed,
                "source_id": self._library.collection_path,
            },
            warnings,
        )
        return ServiceResult(
            ok=True,
            op=op,
            data={"record": record_to_entry(updated), "fields_changed": fields_changed},
            warnings=warnings,
        )

    def get_book(self, isbn: str) -> ServiceResult:
        op = "get_book"
        checked = validate_isbn(isbn)
        if not checked.ok:
            return ServiceResult.failure(op, checked.kind, checked.message, isbn=str(isbn))
        compact = str(checked.value)

        found = self._find(op, compact)
        if isinstance(found, ServiceResult):
            return found
        if found is None:
            return ServiceResult.failure(
                op, ErrorKind.NOT_FOUND, f"No book with ISBN {compact}", isbn=compact
            )
        return ServiceResult(ok=True, op=op, data={"record": record_to_entry(found)})

    def list_books(self, *, status: BookStatus | None = None) -> ServiceResult:
        """All records in insertion order, optionally filtered by status."""
        op = "list_books"
        lib = self._library
        try:
            lib.store.ensure_exists(lib.collection_path)
            records = lib.store.list(lib.collection_path)
        except RecordStoreError as exc:
            return ServiceResult.failure(op, exc.kind, exc.message)

        if status is not None:
            records = [r for r in records if r.status == status]
        items = [record_to_entry(r) for r in records]
        return ServiceResult(ok=True, op=op, data={"count": len(items), "items": items})

    def lookup_status(self) -> ServiceResult:
        """Rate-limit state of the metadata lookup client."""
        limiter = self._library.lookup.rate_limiter
        state = limiter.status()
        return ServiceResult(
            ok=True,
            op="lookup_status",
            data={
                "limit": limiter.limit,
                "window_seconds": limiter.window,
                "remaining": state.remaining,
                "reset_in_seconds": round(state.reset_in, 1),
            },
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _find(self, op: str, isbn: str) -> BookRecord | ServiceResult | None:
        lib = self._library
        try:
            lib.store.ensure_exists(lib.collection_path)
            return lib.store.get(lib.collection_path, isbn)
        except RecordStoreError as exc:
            return ServiceResult.failure(op, exc.kind, exc.message, isbn=isbn)

    @staticmethod
    def _duplicate(op: str, existing: BookRecord) -> ServiceResult:
        return ServiceResult.failure(
            op,
            ErrorKind.DUPLICATE,
            f"Book already exists: {existing.title}",
            isbn=existing.isbn,
        )

    def _store(self, op: str, record: BookRecord, *, create_note: bool | None) -> ServiceResult:
        lib = self._library
        warnings: list[str] = []
        if create_note is None:
            create_note = lib.settings.library.create_linked_notes

        try:
            if not lib.store.add(lib.collection_path, record):
                return self._duplicate(op, record)
            record = lib.store.get(lib.collection_path, record.isbn) or record
        except RecordStoreError as exc:
            return ServiceResult.failure(op, exc.kind, exc.message, isbn=record.isbn)

        # The note is only written once the record is stored, then linked
        note_path: str | None = None
        if create_note:
            note_path = self._write_note(record, warnings)
        if note_path is not None:
            record = self._link_note(record, warnings)
            self._dispatch_event(
                "post_note_create", {"isbn": record.isbn, "path": note_path}, warnings
            )
        self._dispatch_event(
            "post_book_add",
            {"isbn": record.isbn, "title": record.title, "source_id": lib.collection_path},
            warnings,
        )
        return ServiceResult(
            ok=True,
            op=op,
            data={"record": record_to_entry(record), "note_path": note_path},
            warnings=warnings,
        )

    def _link_note(self, record: BookRecord, warnings: list[str]) -> BookRecord:
        """Point the stored record at its note; a failure is only a warning."""
        lib = self._library
        link = str(note_name(record))
        try:
            linked = lib.store.update(lib.collection_path, record.isbn, {"notes_link": link})
        except RecordStoreError as exc:
            logger.warning("Could not link note for %s: %s", record.isbn, exc.message)
            warnings.append(f"Note not linked: {exc.message}")
            return record
        return linked if linked is not None else record

    def _write_note(self, record: BookRecord, warnings: list[str]) -> str | None:
        """Write the linked note; an existing note is linked, not overwritten."""
        lib = self._library
        folder = lib.settings.library.notes_folder.strip("/")
        name = f"{note_name(record)}.md"
        path = f"{folder}/{name}" if folder else name
        try:
            if lib.storage.exists(path):
                logger.info("Linking existing note %s", path)
                return path
            text = render_book_note(record, lib.template_env, lib.settings.library.note_template)
            lib.storage.write(path, text)
        except (NoteRenderError, OSError, ValueError) as exc:
            logger.warning("Note creation failed for %s: %s", record.isbn, exc)
            warnings.append(f"Note not created: {exc}")
            return None
        logger.info("Created note %s", path)
        return path
