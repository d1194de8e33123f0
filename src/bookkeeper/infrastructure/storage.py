"""Persistence collaborator — read/write of text blobs inside a library root.

The record store talks to storage only through the :class:`Storage`
protocol. :class:`VaultStorage` is the filesystem implementation.

INVARIANT: Every source id is a validated relative path that resolves
inside the root. Writes replace the whole file atomically.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Protocol

from bookkeeper.domain.sanitize import validate_file_path

logger = logging.getLogger(__name__)


class Storage(Protocol):
    """Text storage addressed by source id (a relative path)."""

    def read(self, source_id: str) -> str: ...

    def write(self, source_id: str, text: str) -> None: ...

    def exists(self, source_id: str) -> bool: ...

    def stat_mtime(self, source_id: str) -> int: ...

    def create_folder(self, folder_id: str) -> None: ...


class VaultStorage:
    """Filesystem storage rooted at a vault directory."""

    def __init__(self, root: Path) -> None:
        self.root = root

    def resolve(self, source_id: str) -> Path:
        """Map *source_id* to an absolute path inside the root.

        Raises:
            ValueError: If the id is not a safe relative path.
        """
        result = validate_file_path(source_id)
        if not result.ok:
            msg = f"Unsafe source id {source_id!r}: {result.message}"
            raise ValueError(msg)

        path = self.root / result.value
        # Guard against symlinks escaping the root
        if not path.resolve().is_relative_to(self.root.resolve()):
            msg = f"Path escapes library root: {path}"
            raise ValueError(msg)
        return path

    def read(self, source_id: str) -> str:
        return self.resolve(source_id).read_text(encoding="utf-8")

    def write(self, source_id: str, text: str) -> None:
        """Replace the file's content; readers never see a partial write."""
        path = self.resolve(source_id)
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(text)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        logger.debug("Wrote %s (%d chars)", source_id, len(text))

    def exists(self, source_id: str) -> bool:
        return self.resolve(source_id).is_file()

    def stat_mtime(self, source_id: str) -> int:
        """Modification time in nanoseconds."""
        return self.resolve(source_id).stat().st_mtime_ns

    def create_folder(self, folder_id: str) -> None:
        self.resolve(folder_id).mkdir(parents=True, exist_ok=True)
