"""Parametrized help tests for all CLI commands."""

from __future__ import annotations

import pytest
from click.testing import CliRunner

from bookkeeper.cli import cli

# (CLI args, expected keywords in output)
HELP_COMMANDS: list[tuple[list[str], list[str]]] = [
    (["--help"], ["init", "add", "add-manual", "get", "update", "list", "status", "--library"]),
    (["init", "--help"], ["collection"]),
    (["add", "--help"], ["ISBN", "--status", "--note / --no-note"]),
    (["add-manual", "--help"], ["--title", "--author", "--isbn", "--rating", "--pages"]),
    (["get", "--help"], ["ISBN"]),
    (["update", "--help"], ["ISBN", "--title", "--status", "--started", "--finished"]),
    (["list", "--help"], ["--status"]),
    (["status", "--help"], ["rate-limit"]),
]


def _help_id(item: tuple[list[str], list[str]]) -> str:
    args, _ = item
    return "_".join(a for a in args if a != "--help") or "root"


@pytest.mark.parametrize(
    "args,expected_keywords",
    HELP_COMMANDS,
    ids=[_help_id(item) for item in HELP_COMMANDS],
)
def test_help(cli_runner: CliRunner, args: list[str], expected_keywords: list[str]) -> None:
    result = cli_runner.invoke(cli, args)
    assert result.exit_code == 0
    for kw in expected_keywords:
        assert kw in result.output, f"Expected '{kw}' in help output for {args}"


def test_no_subcommand_prints_help(cli_runner: CliRunner) -> None:
    result = cli_runner.invoke(cli, [])
    assert result.exit_code == 0
    assert "Usage:" in result.output


def test_version(cli_runner: CliRunner) -> None:
    result = cli_runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert "bookkeeper" in result.output
