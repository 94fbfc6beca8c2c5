"""Shared types and utilities for CLI commands.

This module provides the option declarations and the Option resolution
used by several command modules, so that every command merges the user
configuration the same way.
"""

from pathlib import Path
from typing import Annotated

import typer

from fstree.core.config import ConfigError, FsTreeConfig
from fstree.utils.formatting import print_error, print_info
from fstree.walk.option import ConflictPolicy, Option

GlobOption = Annotated[
    list[str] | None,
    typer.Option(
        "--glob",
        "-g",
        help="Glob pattern selecting entries (repeatable, '!' prefix excludes).",
    ),
]

DepthOption = Annotated[
    int | None,
    typer.Option(
        "--depth",
        "-d",
        min=0,
        help="Deepest level to visit (the root is 0).",
    ),
]

PolicyOption = Annotated[
    ConflictPolicy | None,
    typer.Option(
        "--policy",
        "-p",
        help="What to do with existing destination files.",
        case_sensitive=False,
    ),
]


def get_config(ctx: typer.Context) -> FsTreeConfig:
    """Return the configuration loaded by the main callback.

    Raises:
        typer.Exit: If the config file exists but is invalid.
    """
    obj = ctx.ensure_object(dict)
    error: ConfigError | None = obj.get("config_error")
    if error is not None:
        print_error(f"Failed to load config: {error}")
        print_info("Fix the file or run 'fstree config init --force'.")
        raise typer.Exit(code=1)
    config: FsTreeConfig | None = obj.get("config")
    return config if config is not None else FsTreeConfig()


def is_quiet(ctx: typer.Context) -> bool:
    return bool(ctx.ensure_object(dict).get("quiet", False))


def resolve_option(
    config: FsTreeConfig,
    patterns: list[str] | None,
    *,
    depth: int | None = None,
    strip: int | None = None,
    into: str | None = None,
    policy: ConflictPolicy | None = None,
    sync: bool = False,
) -> Option:
    """Build the Option for a command from its flags and the configuration.

    User patterns decide the default strip count; configured exclusions are
    appended after them. Flags given on the command line win over the
    configuration.
    """
    option = Option.of(*(patterns or [])).glob(*config.exclude)
    option = option.with_policy(policy or config.conflict_policy)
    if depth is not None:
        option = option.depth(depth)
    if strip is not None:
        option = option.strip(strip)
    if into:
        option = option.allocate_in(into)
    if sync:
        option = option.sync()
    return option


def require_existing(path: Path) -> Path:
    """Exit with an error unless path exists."""
    if not path.exists():
        print_error(f"Path not found: {path}")
        raise typer.Exit(code=1)
    return path
