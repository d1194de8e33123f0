"""BookkeeperSettings — CLI flags, env vars, and bookkeeper.toml in one object.

Priority chain (highest to lowest):
  1. Init kwargs  — CLI flags passed by Click
  2. Env vars     — ``BOOKKEEPER_*``; sections nested with ``__``
                    (``BOOKKEEPER_LOOKUP__RATE_LIMIT=5``)
  3. TOML file    — ``bookkeeper.toml`` found by walk-up, or ``--config``
  4. Code defaults — the section models in :mod:`bookkeeper.config.models`
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Any

import click
from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from bookkeeper.config.discovery import find_config, read_config_tables
from bookkeeper.config.models import LibraryConfig, LookupConfig


class TomlSettingsSource(PydanticBaseSettingsSource):
    """Section tables from a bookkeeper.toml, below env vars in priority."""

    def __init__(self, settings_cls: type[BaseSettings], toml_path: Path | None) -> None:
        super().__init__(settings_cls)
        self._sections: dict[str, Any] = read_config_tables(toml_path) if toml_path else {}

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        return self._sections.get(field_name), field_name, field_name in self._sections

    def __call__(self) -> dict[str, Any]:
        return dict(self._sections)


# The TOML path is chosen in from_cli() and read back while sources are
# assembled, which happens inside BaseSettings.__init__.
_tls = threading.local()


class BookkeeperSettings(BaseSettings):
    """Everything a command needs to know about where and how to run.

    Attributes:
        library_root: Directory that holds the collection and notes. The
            directory of ``bookkeeper.toml`` unless given explicitly, and
            the working directory when there is no config file.
        config_path: The bookkeeper.toml in effect, or None.
    """

    model_config = {
        "frozen": True,
        "env_prefix": "BOOKKEEPER_",
        "env_nested_delimiter": "__",
    }

    library_root: Path = Field(default_factory=Path.cwd)
    config_path: Path | None = None

    json_output: bool = False
    quiet: bool = False
    verbose: bool = False
    log_json: bool = False

    library: LibraryConfig = Field(default_factory=LibraryConfig)
    lookup: LookupConfig = Field(default_factory=LookupConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            TomlSettingsSource(settings_cls, getattr(_tls, "toml_path", None)),
        )

    @classmethod
    def from_cli(
        cls,
        *,
        config_path: str | None = None,
        library_root: Path | None = None,
        **cli_flags: Any,
    ) -> BookkeeperSettings:
        """Build settings for one CLI invocation.

        An explicit *config_path* must exist; otherwise bookkeeper.toml is
        searched upward from *library_root* (or the working directory).

        Raises:
            click.ClickException: If the config file is missing, unreadable,
                or holds invalid values.
        """
        toml_path: Path | None
        if config_path:
            toml_path = Path(config_path).expanduser()
            if not toml_path.is_file():
                msg = f"Config file not found: {config_path}"
                raise click.ClickException(msg)
        else:
            toml_path = find_config(library_root)

        if library_root is None:
            library_root = toml_path.parent if toml_path else Path.cwd()

        _tls.toml_path = toml_path
        try:
            return cls(library_root=library_root, config_path=toml_path, **cli_flags)
        except ValidationError as exc:
            first = exc.errors()[0]
            where = ".".join(str(part) for part in first["loc"])
            source = toml_path or "environment"
            msg = f"Invalid configuration ({source}): {where}: {first['msg']}"
            raise click.ClickException(msg) from exc
        finally:
            _tls.toml_path = None
