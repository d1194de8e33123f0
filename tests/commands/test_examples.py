"""Tests for the --examples flag on CLI commands."""

from __future__ import annotations

import pytest
from click.testing import CliRunner

from bookkeeper.cli import cli

# (CLI args, expected keywords in output)
EXAMPLES_COMMANDS: list[tuple[list[str], list[str]]] = [
    (["--examples"], ["bookkeeper init", "bookkeeper list --status reading"]),
    (["init", "--examples"], ["bookkeeper init"]),
    (["add", "--examples"], ["bookkeeper add 9780306406157", "--no-note"]),
    (["add-manual", "--examples"], ["--title", "--pages 604"]),
    (["get", "--examples"], ["bookkeeper get"]),
    (["update", "--examples"], ["--rating 4.5"]),
    (["list", "--examples"], ["bookkeeper -q list"]),
    (["status", "--examples"], ["bookkeeper --json status"]),
]


def _examples_id(item: tuple[list[str], list[str]]) -> str:
    args, _ = item
    return "_".join(a for a in args if a != "--examples") or "root"


@pytest.mark.parametrize(
    "args,expected_keywords",
    EXAMPLES_COMMANDS,
    ids=[_examples_id(item) for item in EXAMPLES_COMMANDS],
)
def test_examples_flag(
    cli_runner: CliRunner, args: list[str], expected_keywords: list[str]
) -> None:
    result = cli_runner.invoke(cli, args)
    assert result.exit_code == 0
    assert "Examples for" in result.output
    for kw in expected_keywords:
        assert kw in result.output, f"Expected '{kw}' in examples output for {args}"


class TestExamplesEagerExit:
    """--examples exits before argument validation."""

    def test_skips_required_argument(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["get", "--examples"])
        assert result.exit_code == 0

    def test_skips_required_options(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["add-manual", "--examples"])
        assert result.exit_code == 0
