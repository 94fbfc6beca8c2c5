"""Config commands.

Show the effective configuration and create a default config file.
"""

from pathlib import Path
from typing import Annotated

import tomli_w
import typer
from rich.syntax import Syntax

from fstree.cli.types import get_config
from fstree.core.config import ConfigError, FsTreeConfig, save_config
from fstree.core.paths import get_config_path
from fstree.utils.formatting import console, print_error, print_info, print_success

app = typer.Typer(
    help="Show or create the fstree configuration.",
    no_args_is_help=True,
)


def _config_path(ctx: typer.Context) -> Path:
    path: Path | None = ctx.ensure_object(dict).get("config_path")
    return path or get_config_path()


@app.command()
def show(ctx: typer.Context) -> None:
    """Print the effective configuration as TOML."""
    config = get_config(ctx)
    path = _config_path(ctx)

    source = str(path) if path.exists() else "defaults (no config file)"
    console.print(f"[dim]# {source}[/dim]")
    data = config.model_dump(mode="json", exclude_none=True)
    console.print(Syntax(tomli_w.dumps(data), "toml", background_color="default"))


@app.command()
def init(
    ctx: typer.Context,
    force: Annotated[
        bool,
        typer.Option(
            "--force",
            "-f",
            help="Overwrite an existing config file.",
        ),
    ] = False,
) -> None:
    """Write a config file with the default settings."""
    path = _config_path(ctx)

    if path.exists() and not force:
        print_error(f"Config already exists: {path}")
        print_info("Use --force to overwrite.")
        raise typer.Exit(code=1)

    # An overwritten file keeps a .bak unless the current config turns that off.
    current: FsTreeConfig | None = ctx.ensure_object(dict).get("config")
    backup = current.atomic_backup if current is not None else True

    try:
        saved = save_config(FsTreeConfig(), path, backup=backup)
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    print_success(f"Config written to {saved}")
