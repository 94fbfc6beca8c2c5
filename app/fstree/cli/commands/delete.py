"""Delete command implementation.

Deletes a whole tree, or only the entries the glob patterns select.
"""

from pathlib import Path
from typing import Annotated

import typer

from fstree.cli.types import DepthOption, GlobOption, get_config, resolve_option
from fstree.core.errors import FsTreeError
from fstree.utils.formatting import (
    console,
    create_scan_table,
    format_event_line,
    format_scan_row,
    format_size,
    print_error,
    print_info,
    print_success,
)
from fstree.walk.engine import run_operation
from fstree.walk.models import OperationKind
from fstree.walk.option import Option


def delete(
    ctx: typer.Context,
    target: Annotated[Path, typer.Argument(help="File or directory to delete.")],
    patterns: GlobOption = None,
    depth: DepthOption = None,
    dry_run: Annotated[
        bool,
        typer.Option(
            "--dry-run",
            "-n",
            help="List the files that would be deleted without deleting them.",
        ),
    ] = False,
) -> None:
    """Delete a tree, or only the entries matching --glob.

    Without patterns the target itself is removed. With patterns the
    target is kept and directories emptied by the deletion are removed.

    Examples:
        fstree delete build                   # remove build/
        fstree delete src -g "**/*.pyc"       # remove compiled files only
        fstree delete src -g "**/cache**" -n  # preview
    """
    config = get_config(ctx)

    if not target.exists() and not target.is_symlink():
        print_info(f"Nothing to delete, {target} does not exist.")
        return

    if target.is_file() or target.is_symlink():
        if dry_run:
            console.print(f"[muted]Would delete[/] {target}")
            return
        try:
            target.unlink()
        except OSError as e:
            print_error(f"Failed to delete {target}: {e}")
            raise typer.Exit(code=1) from e
        print_success(f"Deleted {target}")
        return

    try:
        option = resolve_option(config, patterns, depth=depth)
        if dry_run:
            _preview(target, option)
            return

        files = 0
        size = 0
        for event in run_operation(OperationKind.DELETE, target, option=option):
            if event.is_file:
                files += 1
                size += event.size
            if ctx.ensure_object(dict).get("verbose"):
                console.print(format_event_line(event))
    except (FsTreeError, OSError) as e:
        print_error(f"Delete failed: {e}")
        raise typer.Exit(code=1) from e

    print_success(f"Deleted {files} files ({format_size(size)}) from {target}")


def _preview(target: Path, option: Option) -> None:
    events = run_operation(OperationKind.SCAN_FILES, target, option=option).to_list()
    if not events:
        print_info("No files match.")
        return
    table = create_scan_table(f"Would delete from {target}")
    for event in events:
        table.add_row(*format_scan_row(event))
    console.print(table)
    total = sum(event.size for event in events)
    console.print(f"\n[dim]{len(events)} files ({format_size(total)} total)[/dim]")
