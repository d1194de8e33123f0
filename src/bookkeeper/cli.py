"""The ``bookkeeper`` command: global flags, settings, and subcommands."""

from __future__ import annotations

from pathlib import Path

import click

from bookkeeper import __version__
from bookkeeper.commands import register_commands
from bookkeeper.commands._base import BookGroup
from bookkeeper.commands._context import AppContext
from bookkeeper.config.settings import BookkeeperSettings


@click.group(
    cls=BookGroup,
    invoke_without_command=True,
    examples="""\
  bookkeeper init
  bookkeeper add 9780306406157
  bookkeeper list --status reading
  bookkeeper --json get 9780306406157
  bookkeeper -L ~/vault status""",
)
@click.version_option(version=__version__, prog_name="bookkeeper")
@click.option("--json", "json_output", is_flag=True, help="Structured JSON output.")
@click.option("-q", "--quiet", is_flag=True, help="Minimal output.")
@click.option("-v", "--verbose", is_flag=True, help="Detailed output with debug logging.")
@click.option("--log-json", is_flag=True, help="Structured JSON log output to stderr.")
@click.option("-c", "--config", "config_path", default=None, help="Override config file path.")
@click.option(
    "-L",
    "--library",
    "library_root",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
    help="Library directory (default: where bookkeeper.toml is, else cwd).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    json_output: bool,
    quiet: bool,
    verbose: bool,
    log_json: bool,
    config_path: str | None,
    library_root: Path | None,
) -> None:
    """bookkeeper — track books in a markdown vault."""
    if quiet and verbose:
        raise click.UsageError("--quiet and --verbose cannot be used together.")
    settings = BookkeeperSettings.from_cli(
        config_path=config_path,
        library_root=library_root,
        json_output=json_output,
        quiet=quiet,
        verbose=verbose,
        log_json=log_json,
    )
    ctx.obj = AppContext(settings)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


register_commands(cli)
