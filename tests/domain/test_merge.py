"""Tests for two-source metadata merging."""

from __future__ import annotations

from bookkeeper.domain.merge import MergePolicy, merge_metadata


class TestMergeMetadata:
    def test_first_source_wins(self) -> None:
        merged = merge_metadata({"title": "Dune", "pages": 604}, {"title": "DUNE", "pages": 412})
        assert merged == {"title": "Dune", "pages": 604}

    def test_unknown_placeholder_replaced(self) -> None:
        merged = merge_metadata(
            {"title": "Unknown Title", "author": ""},
            {"title": "Dune", "author": "Frank Herbert"},
        )
        assert merged == {"title": "Dune", "author": "Frank Herbert"}

    def test_missing_keys_filled_from_second(self) -> None:
        merged = merge_metadata({"title": "Dune"}, {"genre": "Fiction"})
        assert merged == {"title": "Dune", "genre": "Fiction"}

    def test_unknown_in_both_omitted(self) -> None:
        assert merge_metadata({"title": "Unknown Title"}, {"title": ""}) == {}

    def test_longer_description_wins(self) -> None:
        merged = merge_metadata({"description": "Short."}, {"description": "A much longer text."})
        assert merged["description"] == "A much longer text."

    def test_custom_policy(self) -> None:
        policy = MergePolicy(unknown_values=frozenset({"n/a"}), prefer_longer=frozenset({"genre"}))
        merged = merge_metadata(
            {"title": "n/a", "genre": "SF", "description": "Short."},
            {"title": "Dune", "genre": "Science fiction", "description": "Longer text here."},
            policy,
        )
        assert merged == {"title": "Dune", "genre": "Science fiction", "description": "Short."}


class TestMergePolicy:
    def test_is_unknown(self) -> None:
        policy = MergePolicy()
        assert policy.is_unknown(None)
        assert policy.is_unknown("  Unknown Author ")
        assert not policy.is_unknown("Frank Herbert")
        assert not policy.is_unknown(0)
