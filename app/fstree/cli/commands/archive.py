"""Pack and unpack commands.

Archives are zip or tar files, chosen by extension (.zip, .jar, .tar,
.tar.gz, .tgz, .tar.bz2, .tar.xz).
"""

from pathlib import Path
from typing import Annotated

import typer

from fstree.archive.transfer import pack as pack_tree
from fstree.archive.transfer import unpack as unpack_archive
from fstree.cli.types import GlobOption, PolicyOption, get_config, require_existing, resolve_option
from fstree.core.errors import FsTreeError
from fstree.storage.temporary import TemporaryArea
from fstree.utils.formatting import (
    console,
    format_event_line,
    format_size,
    print_error,
    print_success,
)
from fstree.walk.models import Action
from fstree.walk.operations import move_file


def pack(
    ctx: typer.Context,
    source: Annotated[Path, typer.Argument(help="Directory to pack.")],
    archive: Annotated[Path, typer.Argument(help="Archive file to create.")],
    patterns: GlobOption = None,
    keep_root: Annotated[
        bool,
        typer.Option("--keep-root", help="Store entries below the source directory's name."),
    ] = False,
) -> None:
    """Pack the files below SOURCE into ARCHIVE.

    The archive is assembled in the temporary area and only moved to
    ARCHIVE once complete.

    Examples:
        fstree pack src src.zip
        fstree pack src src.tar.gz -g "**/*.py" --keep-root
    """
    config = get_config(ctx)
    require_existing(source)
    if not source.is_dir():
        print_error(f"Not a directory: {source}")
        raise typer.Exit(code=1)

    verbose = ctx.ensure_object(dict).get("verbose", False)
    files = 0
    size = 0
    area = TemporaryArea(config.temporary_root, config.stale_after_seconds)
    try:
        # Entry names are relative to the source unless asked otherwise.
        option = resolve_option(config, patterns, strip=0 if keep_root else 1)
        staging = area.allocate_file("".join(archive.suffixes))
        for event in pack_tree(source, staging, option):
            files += 1
            size += event.size
            if verbose:
                console.print(format_event_line(event))
        archive.parent.mkdir(parents=True, exist_ok=True)
        move_file(staging, archive)
    except (FsTreeError, OSError, RuntimeError) as e:
        print_error(f"Pack failed: {e}")
        raise typer.Exit(code=1) from e
    finally:
        area.dispose_all()

    print_success(f"Packed {files} files ({format_size(size)}) into {archive}")


def unpack(
    ctx: typer.Context,
    archive: Annotated[Path, typer.Argument(help="Archive file to extract.")],
    destination: Annotated[Path, typer.Argument(help="Directory to extract into.")],
    patterns: GlobOption = None,
    policy: PolicyOption = None,
    keep_root: Annotated[
        bool,
        typer.Option("--keep-root", help="Extract into a directory named after the archive."),
    ] = False,
) -> None:
    """Extract ARCHIVE, or the members matching --glob, into DESTINATION."""
    config = get_config(ctx)
    require_existing(archive)

    verbose = ctx.ensure_object(dict).get("verbose", False)
    extracted = 0
    skipped = 0
    try:
        option = resolve_option(config, patterns, policy=policy, strip=0 if keep_root else 1)
        for event in unpack_archive(archive, destination, option):
            if event.action is Action.SKIPPED:
                skipped += 1
            elif event.is_file:
                extracted += 1
            if verbose:
                console.print(format_event_line(event))
    except (FsTreeError, OSError) as e:
        print_error(f"Unpack failed: {e}")
        raise typer.Exit(code=1) from e

    message = f"Extracted {extracted} files into {destination}"
    if skipped:
        message += f" ({skipped} kept)"
    print_success(message)
