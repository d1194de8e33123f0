"""Tests for config section models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from bookkeeper.config.models import BookkeeperConfig, LibraryConfig, LookupConfig


class TestSectionModels:
    def test_lookup_defaults(self) -> None:
        cfg = LookupConfig()
        assert cfg.unknown_values == ["Unknown Title", "Unknown Author", ""]
        assert cfg.prefer_longer == ["description"]

    @pytest.mark.parametrize("field", ["rate_limit", "rate_window_seconds", "timeout_seconds"])
    def test_lookup_limits_must_be_positive(self, field: str) -> None:
        with pytest.raises(ValidationError):
            LookupConfig.model_validate({field: 0})

    def test_unknown_status_rejected(self) -> None:
        with pytest.raises(ValidationError):
            LibraryConfig(default_status="abandoned")  # type: ignore[arg-type]

    def test_root_composes_sections(self) -> None:
        cfg = BookkeeperConfig.model_validate({"library": {"note_template": "short.md.j2"}})
        assert cfg.library.note_template == "short.md.j2"
        assert cfg.lookup == LookupConfig()


class TestLibraryPaths:
    @pytest.mark.parametrize("path", ["../Books.json", "/tmp/Books.json", "Books.csv", ""])
    def test_collection_path_rejected(self, path: str) -> None:
        with pytest.raises(ValidationError):
            LibraryConfig(collection_path=path)

    def test_nested_collection_path(self) -> None:
        assert LibraryConfig(collection_path="Reading/Books.json").collection_path == "Reading/Books.json"

    def test_notes_folder_normalized(self) -> None:
        assert LibraryConfig(notes_folder=" Reading/Notes/ ").notes_folder == "Reading/Notes"

    def test_notes_folder_traversal_rejected(self) -> None:
        with pytest.raises(ValidationError):
            LibraryConfig(notes_folder="../outside")
