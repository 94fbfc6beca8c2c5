"""Main CLI application entry point.

Defines the Typer application, global options and logging setup.
"""

import logging
from pathlib import Path
from typing import Annotated

import typer
from rich.logging import RichHandler

from fstree import __version__
from fstree.cli.commands import archive, config, delete, scan, transfer, watch
from fstree.core.config import ConfigError, load_config_or_default
from fstree.utils.formatting import err_console

# Create main Typer app
app = typer.Typer(
    name="fstree",
    help="Copy, move, delete, scan and watch directory trees with glob patterns.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"fstree version {__version__}")
        raise typer.Exit()


def configure_logging(level: int | str) -> None:
    """Route log records through Rich on the shared stderr console."""
    handler = RichHandler(console=err_console, show_path=False, markup=False)
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[handler],
        force=True,
    )


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable verbose output.",
        ),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option(
            "--quiet",
            "-q",
            help="Suppress non-essential output.",
        ),
    ] = False,
    config_path: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Use this config file instead of the default one.",
            dir_okay=False,
        ),
    ] = None,
) -> None:
    """fstree - Glob-driven file tree operations.

    Copy, move and delete selected parts of directory trees, scan them,
    watch them for changes, and pack them into archives.
    """
    # Store options in context for subcommands
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["config_path"] = config_path

    # A broken config only fails the commands that need it
    try:
        settings = load_config_or_default(config_path)
    except ConfigError as e:
        ctx.obj["config_error"] = e
        log_level: int | str = logging.WARNING
    else:
        ctx.obj["config"] = settings
        log_level = settings.log_level

    if verbose:
        log_level = logging.DEBUG
    elif quiet:
        log_level = logging.ERROR
    configure_logging(log_level)


# Register commands
app.command(name="copy")(transfer.copy)
app.command(name="move")(transfer.move)
app.command(name="delete")(delete.delete)
app.command(name="watch")(watch.watch)
app.command(name="pack")(archive.pack)
app.command(name="unpack")(archive.unpack)
app.add_typer(scan.app, name="scan")
app.add_typer(config.app, name="config")


if __name__ == "__main__":
    app()
