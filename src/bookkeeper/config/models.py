"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, bookkeeper.toml only contains
overrides. A fresh library needs no config file at all.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from bookkeeper.domain.books import PLACEHOLDER_AUTHOR, PLACEHOLDER_TITLE
from bookkeeper.domain.sanitize import validate_file_path
from bookkeeper.domain.types import BookStatus

# --- bookkeeper.toml sections ---


class LibraryConfig(BaseModel):
    """[library] section."""

    model_config = {"frozen": True}

    collection_path: str = "Books.json"
    notes_folder: str = ""
    create_linked_notes: bool = True
    default_status: BookStatus = BookStatus.TO_READ
    note_template: str = "book.md.j2"

    @field_validator("collection_path")
    @classmethod
    def _collection_in_library(cls, value: str) -> str:
        checked = validate_file_path(value)
        if not checked.ok:
            raise ValueError(checked.message)
        if not value.lower().endswith(".json"):
            msg = "collection_path must name a .json file"
            raise ValueError(msg)
        return value

    @field_validator("notes_folder")
    @classmethod
    def _notes_folder_in_library(cls, value: str) -> str:
        # "" means the library root itself
        value = value.strip().strip("/")
        if value:
            checked = validate_file_path(value)
            if not checked.ok:
                raise ValueError(checked.message)
        return value


class LookupConfig(BaseModel):
    """[lookup] section."""

    model_config = {"frozen": True}

    rate_limit: int = Field(default=10, gt=0)
    rate_window_seconds: float = Field(default=60.0, gt=0)
    timeout_seconds: float = Field(default=10.0, gt=0)
    user_agent: str = "bookkeeper/0.1 (+https://openlibrary.org/developers/api)"
    merge_sources: bool = False
    unknown_values: list[str] = Field(
        default_factory=lambda: [PLACEHOLDER_TITLE, PLACEHOLDER_AUTHOR, ""]
    )
    prefer_longer: list[str] = Field(default_factory=lambda: ["description"])


class BookkeeperConfig(BaseModel):
    """Root configuration composing all sections."""

    model_config = {"frozen": True}

    library: LibraryConfig = Field(default_factory=LibraryConfig)
    lookup: LookupConfig = Field(default_factory=LookupConfig)
