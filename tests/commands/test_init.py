"""Tests for the init CLI command."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from bookkeeper.cli import cli


@pytest.mark.usefixtures("_isolated_library")
class TestInitCommand:
    def test_init_basic(self, cli_runner: CliRunner, library_root: Path) -> None:
        result = cli_runner.invoke(cli, ["init"])
        assert result.exit_code == 0
        assert "init_library" in result.stdout
        assert (library_root / "Books.json").is_file()

    def test_init_json_output(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["--json", "init"])
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["ok"] is True
        assert data["op"] == "init_library"
        assert data["data"]["created"] is True

    def test_init_twice(self, cli_runner: CliRunner) -> None:
        cli_runner.invoke(cli, ["init"])
        result = cli_runner.invoke(cli, ["--json", "init"])
        assert result.exit_code == 0
        assert json.loads(result.stdout)["data"]["created"] is False

    def test_init_uses_config(self, cli_runner: CliRunner, library_root: Path) -> None:
        (library_root / "bookkeeper.toml").write_text(
            '[library]\ncollection_path = "Library/Reading.json"\nnotes_folder = "Notes"\n',
            encoding="utf-8",
        )
        result = cli_runner.invoke(cli, ["--json", "init"])
        assert result.exit_code == 0, result.stderr
        assert json.loads(result.stdout)["data"]["collection_path"] == "Library/Reading.json"
        assert (library_root / "Library" / "Reading.json").is_file()
        assert (library_root / "Notes").is_dir()

    def test_invalid_config(self, cli_runner: CliRunner, library_root: Path) -> None:
        (library_root / "bookkeeper.toml").write_text("[library\n", encoding="utf-8")
        result = cli_runner.invoke(cli, ["init"])
        assert result.exit_code != 0
        assert "Invalid TOML" in result.stderr


class TestGlobalFlags:
    def test_library_option(self, cli_runner: CliRunner, tmp_path: Path) -> None:
        target = tmp_path / "elsewhere"
        target.mkdir()
        result = cli_runner.invoke(cli, ["--library", str(target), "init"])
        assert result.exit_code == 0, result.stderr
        assert (target / "Books.json").is_file()

    def test_library_must_exist(self, cli_runner: CliRunner, tmp_path: Path) -> None:
        result = cli_runner.invoke(cli, ["-L", str(tmp_path / "missing"), "init"])
        assert result.exit_code == 2

    def test_quiet_and_verbose_conflict(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["-q", "-v", "init"])
        assert result.exit_code == 2
        assert "cannot be used together" in result.stderr
