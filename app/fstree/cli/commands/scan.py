"""Scan commands.

List the files or directories of a tree that the glob patterns select.
"""

import json
from enum import Enum
from pathlib import Path
from typing import Annotated

import typer

from fstree.cli.types import DepthOption, GlobOption, get_config, require_existing, resolve_option
from fstree.core.errors import FsTreeError
from fstree.utils.formatting import (
    console,
    create_scan_table,
    format_scan_row,
    format_size,
    print_error,
    print_success,
)
from fstree.walk.engine import run_operation
from fstree.walk.models import OperationKind, TraversalEvent

app = typer.Typer(
    help="List the files or directories of a tree.",
    no_args_is_help=True,
)


class OutputFormat(str, Enum):
    """Output format options for scans."""

    TABLE = "table"
    JSON = "json"


RootArgument = Annotated[Path, typer.Argument(help="Directory to scan.")]
FormatOption = Annotated[
    OutputFormat,
    typer.Option(
        "--format",
        "-f",
        help="Output format.",
        case_sensitive=False,
    ),
]
LimitOption = Annotated[
    int | None,
    typer.Option(
        "--limit",
        "-l",
        min=1,
        help="Limit number of results.",
    ),
]


def _scan(
    ctx: typer.Context,
    kind: OperationKind,
    root: Path,
    patterns: list[str] | None,
    depth: int | None,
    output_format: OutputFormat,
    limit: int | None,
) -> None:
    config = get_config(ctx)
    require_existing(root)
    if not root.is_dir():
        print_error(f"Not a directory: {root}")
        raise typer.Exit(code=1)

    try:
        option = resolve_option(config, patterns, depth=depth)
        if kind is OperationKind.SCAN_DIRECTORIES:
            # Scans list what is inside the root, never the root itself.
            option = option.strip()
        stream = run_operation(kind, root, option=option)
        if limit:
            stream = stream.take(limit)
        events = stream.to_list()
    except (FsTreeError, OSError) as e:
        print_error(f"Scan failed: {e}")
        raise typer.Exit(code=1) from e

    if output_format == OutputFormat.JSON:
        _print_json(events)
        return

    if not events:
        print_success("Nothing matches.")
        return

    title = "Files" if kind is OperationKind.SCAN_FILES else "Directories"
    table = create_scan_table(f"{title} in {root}")
    for event in events:
        table.add_row(*format_scan_row(event))
    console.print(table)

    if kind is OperationKind.SCAN_FILES:
        total = sum(event.size for event in events)
        console.print(f"\n[dim]Found {len(events)} files ({format_size(total)} total)[/dim]")
    else:
        console.print(f"\n[dim]Found {len(events)} directories[/dim]")
    if limit and len(events) == limit:
        console.print(f"[dim](limited to {limit})[/dim]")


def _print_json(events: list[TraversalEvent]) -> None:
    data = [
        {
            "path": str(event.path),
            "relative_path": event.relative_path,
            "kind": event.entry_kind.value,
            "size": event.size,
        }
        for event in events
    ]
    console.print_json(json.dumps(data))


@app.command()
def files(
    ctx: typer.Context,
    root: RootArgument,
    patterns: GlobOption = None,
    depth: DepthOption = None,
    output_format: FormatOption = OutputFormat.TABLE,
    limit: LimitOption = None,
) -> None:
    """List the files below ROOT.

    Examples:
        fstree scan files src -g "**/*.py"
        fstree scan files src -g "!**/.git/**" --format json
    """
    _scan(ctx, OperationKind.SCAN_FILES, root, patterns, depth, output_format, limit)


@app.command()
def dirs(
    ctx: typer.Context,
    root: RootArgument,
    patterns: GlobOption = None,
    depth: DepthOption = None,
    output_format: FormatOption = OutputFormat.TABLE,
    limit: LimitOption = None,
) -> None:
    """List the directories below ROOT."""
    _scan(ctx, OperationKind.SCAN_DIRECTORIES, root, patterns, depth, output_format, limit)
