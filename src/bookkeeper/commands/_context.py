"""AppContext: the object every bookkeeper command receives via ``@click.pass_obj``."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from bookkeeper.config.logging import configure_logging
from bookkeeper.output.formatters import OutputSettings, format_result

if TYPE_CHECKING:
    from bookkeeper.config.settings import BookkeeperSettings
    from bookkeeper.infrastructure.library import Library
    from bookkeeper.services.books import BookService
    from bookkeeper.services.result import ServiceResult


class AppContext:
    """Settings for this invocation plus lazily built services.

    Nothing touches the library directory until a command asks for
    :attr:`library` or :attr:`books`, so ``--help`` and ``--examples``
    work anywhere.
    """

    def __init__(self, settings: BookkeeperSettings) -> None:
        self.settings = settings
        self._library: Library | None = None
        self._books: BookService | None = None
        configure_logging(verbose=settings.verbose, log_json=settings.log_json)

    @property
    def library(self) -> Library:
        if self._library is None:
            from bookkeeper.infrastructure.library import Library

            self._library = Library(self.settings)
        return self._library

    @property
    def books(self) -> BookService:
        if self._books is None:
            from bookkeeper.services.books import BookService

            self._books = BookService(self.library)
        return self._books

    @property
    def output_settings(self) -> OutputSettings:
        return OutputSettings(
            json_output=self.settings.json_output,
            quiet=self.settings.quiet,
            verbose=self.settings.verbose,
        )

    def emit(self, result: ServiceResult) -> None:
        """Print *result* and set the exit status.

        A successful result is written to stdout and its warnings to
        stderr (JSON output already carries them). A failed result is
        written to stderr and the process exits with status 1.
        """
        settings = self.output_settings
        output = format_result(result, settings=settings)
        if not result.ok:
            click.echo(output, err=True)
            raise SystemExit(1)

        click.echo(output)
        if not settings.json_output:
            for warning in result.warnings:
                click.echo(f"WARNING: {warning}", err=True)
