"""Copy and move commands.

Both commands mirror a source tree (or the entries the glob patterns
select inside it) into a destination directory and show a progress bar
while doing so.
"""

from pathlib import Path
from typing import Annotated

import typer
from rich.progress import BarColumn, DownloadColumn, TaskProgressColumn, TextColumn
from rich.progress import Progress as ProgressBar

from fstree.cli.types import (
    DepthOption,
    GlobOption,
    PolicyOption,
    get_config,
    is_quiet,
    require_existing,
    resolve_option,
)
from fstree.core.errors import FsTreeError
from fstree.location import Directory, File
from fstree.utils.formatting import console, format_size, print_error, print_success
from fstree.walk.models import OperationKind
from fstree.walk.option import ConflictPolicy, Option
from fstree.walk.progress import Progress, track

SourceArgument = Annotated[Path, typer.Argument(help="File or directory to transfer.")]
DestinationArgument = Annotated[Path, typer.Argument(help="Destination directory.")]
StripOption = Annotated[
    int | None,
    typer.Option(
        "--strip",
        "-s",
        min=0,
        help="Leading path segments to drop (0 keeps the source name).",
    ),
]
IntoOption = Annotated[
    str | None,
    typer.Option("--into", "-i", help="Relative directory to create below the destination."),
]
SyncOption = Annotated[
    bool,
    typer.Option("--sync", help="Delete destination entries the source no longer has."),
]


def _run_with_progress(
    kind: OperationKind, source: Path, destination: Path, option: Option, quiet: bool
) -> Progress | None:
    """Run a tracked operation, returning the final Progress snapshot."""
    verb = "Copying" if kind is OperationKind.COPY else "Moving"
    last: Progress | None = None
    with ProgressBar(
        TextColumn("[info]{task.description}[/]"),
        BarColumn(),
        TaskProgressColumn(),
        DownloadColumn(),
        console=console,
        transient=True,
        disable=quiet,
    ) as bar:
        task = bar.add_task(f"{verb} {source.name}", total=None)
        for progress in track(kind, source, destination, option):
            bar.update(task, total=progress.total_size, completed=progress.completed_size)
            last = progress
    return last


def _transfer_file(kind: OperationKind, source: Path, destination: Path, option: Option) -> None:
    """Single files go through the File façade."""
    target = Directory(destination)
    file = File(source)
    if kind is OperationKind.MOVE:
        result = file.move_to(target, option=lambda _: option)
    else:
        result = file.copy_to(target, option=lambda _: option)
    if result.exists():
        print_success(f"{source} -> {result}")
    else:
        print_error(f"Failed to transfer {source}")
        raise typer.Exit(code=1)


def _transfer(
    ctx: typer.Context,
    kind: OperationKind,
    source: Path,
    destination: Path,
    patterns: list[str] | None,
    strip: int | None,
    into: str | None,
    depth: int | None,
    policy: ConflictPolicy | None,
    sync: bool,
) -> None:
    config = get_config(ctx)
    require_existing(source)

    try:
        option = resolve_option(
            config,
            patterns,
            depth=depth,
            strip=strip,
            into=into,
            policy=policy,
            sync=sync,
        )
        if source.is_file():
            _transfer_file(kind, source, destination, option)
            return
        final = _run_with_progress(kind, source, destination, option, is_quiet(ctx))
    except (FsTreeError, OSError) as e:
        print_error(f"{kind.value.capitalize()} failed: {e}")
        raise typer.Exit(code=1) from e

    base = option.mirror_base(destination, source.name)
    if final is None:
        print_success(f"Nothing to {kind.value} in {source}")
        return
    verb = "Copied" if kind is OperationKind.COPY else "Moved"
    print_success(
        f"{verb} {final.completed_files} files "
        f"({format_size(final.completed_size)}) to {base}"
    )


def copy(
    ctx: typer.Context,
    source: SourceArgument,
    destination: DestinationArgument,
    patterns: GlobOption = None,
    strip: StripOption = None,
    into: IntoOption = None,
    depth: DepthOption = None,
    policy: PolicyOption = None,
    sync: SyncOption = False,
) -> None:
    """Copy a tree, or the entries matching --glob, into a directory.

    Examples:
        fstree copy src backup                  # backup/src/...
        fstree copy src backup -g "**/*.py"     # backup/... (Python files only)
        fstree copy src backup -p replace_if_newer --sync
    """
    _transfer(
        ctx, OperationKind.COPY, source, destination, patterns, strip, into, depth, policy, sync
    )


def move(
    ctx: typer.Context,
    source: SourceArgument,
    destination: DestinationArgument,
    patterns: GlobOption = None,
    strip: StripOption = None,
    into: IntoOption = None,
    depth: DepthOption = None,
    policy: PolicyOption = None,
    sync: SyncOption = False,
) -> None:
    """Move a tree, or the entries matching --glob, into a directory.

    Source directories left empty by the move are removed.
    """
    _transfer(
        ctx, OperationKind.MOVE, source, destination, patterns, strip, into, depth, policy, sync
    )
