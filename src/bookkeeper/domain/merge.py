"""Precedence rules for combining metadata from two lookup sources."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from bookkeeper.domain.books import PLACEHOLDER_AUTHOR, PLACEHOLDER_TITLE


class MergePolicy(BaseModel):
    """How to pick a field value when both sources supply one.

    The first source wins unless its value is one of *unknown_values*.
    For *prefer_longer* fields (free-form text) the longer value wins.
    """

    model_config = {"frozen": True}

    unknown_values: frozenset[str] = Field(
        default_factory=lambda: frozenset({PLACEHOLDER_TITLE, PLACEHOLDER_AUTHOR, ""})
    )
    prefer_longer: frozenset[str] = Field(default_factory=lambda: frozenset({"description"}))

    def is_unknown(self, value: Any) -> bool:
        if value is None:
            return True
        return isinstance(value, str) and value.strip() in self.unknown_values

    def pick(self, name: str, first: Any, second: Any) -> Any:
        if self.is_unknown(first):
            return None if self.is_unknown(second) else second
        if self.is_unknown(second):
            return first
        if name in self.prefer_longer and isinstance(first, str) and isinstance(second, str):
            return second if len(second) > len(first) else first
        return first


def merge_metadata(
    first: dict[str, Any],
    second: dict[str, Any],
    policy: MergePolicy | None = None,
) -> dict[str, Any]:
    """Merge two flat field dicts; keys missing from both are omitted."""
    policy = policy or MergePolicy()
    merged: dict[str, Any] = {}
    for name in [*first, *(k for k in second if k not in first)]:
        value = policy.pick(name, first.get(name), second.get(name))
        if value is not None:
            merged[name] = value
    return merged
