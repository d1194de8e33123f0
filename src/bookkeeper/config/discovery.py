"""Locating and reading bookkeeper.toml.

The file is looked up the way git finds ``.git/``: from the working
directory upward. The walk stops at the first vault root (a directory
holding ``.obsidian/`` or ``.bookkeeper/``) so a config file above the
vault never applies to it. ``BOOKKEEPER_CONFIG`` bypasses the walk.
"""

from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path
from typing import Any

import click

from bookkeeper.config.models import BookkeeperConfig

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "bookkeeper.toml"
CONFIG_ENV_VAR = "BOOKKEEPER_CONFIG"
VAULT_MARKERS: tuple[str, ...] = (".obsidian", ".bookkeeper")
CONFIG_SECTIONS: tuple[str, ...] = tuple(BookkeeperConfig.model_fields)


def _is_vault_root(directory: Path) -> bool:
    return any((directory / marker).is_dir() for marker in VAULT_MARKERS)


def find_config(start: Path | None = None) -> Path | None:
    """Return the bookkeeper.toml that applies to *start* (default: cwd), or None."""
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        p = Path(env_path).expanduser()
        return p if p.is_file() else None

    directory = (start or Path.cwd()).resolve()
    for candidate_dir in (directory, *directory.parents):
        candidate = candidate_dir / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
        if _is_vault_root(candidate_dir):
            break
    return None


def read_config_tables(path: Path) -> dict[str, Any]:
    """The known top-level tables of the TOML file at *path*.

    Unknown tables are logged and dropped so a file written for a newer
    release still loads.

    Raises:
        click.ClickException: If the file cannot be read or is not TOML.
    """
    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        msg = f"Invalid TOML in {path}: {exc}"
        raise click.ClickException(msg) from exc
    except OSError as exc:
        msg = f"Cannot read config {path}: {exc}"
        raise click.ClickException(msg) from exc

    tables: dict[str, Any] = {}
    for key, value in data.items():
        if key in CONFIG_SECTIONS:
            tables[key] = value
        else:
            logger.warning("Ignoring unknown section [%s] in %s", key, path)
    return tables


def load_config(path: Path | None = None, cwd: Path | None = None) -> BookkeeperConfig:
    """Validated config from *path*, or from the file that applies to *cwd*.

    Returns the defaults when there is no file.
    """
    if path is None:
        path = find_config(cwd)
    if path is None:
        return BookkeeperConfig()
    return BookkeeperConfig.model_validate(read_config_tables(path))
