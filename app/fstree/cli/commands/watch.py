"""Watch command implementation.

Prints the changes below a directory until interrupted.
"""

import logging
import time
from pathlib import Path
from typing import Annotated

import typer

from fstree.cli.types import DepthOption, GlobOption, get_config, resolve_option
from fstree.core.errors import FsTreeError
from fstree.utils.formatting import (
    console,
    format_watch_event,
    print_error,
    print_info,
    print_warning,
)
from fstree.watch.engine import WatchEngine
from fstree.watch.models import WatchEvent, WatchState

logger = logging.getLogger(__name__)

_POLL_INTERVAL = 0.2


def watch(
    ctx: typer.Context,
    root: Annotated[Path, typer.Argument(help="Directory to watch.")],
    patterns: GlobOption = None,
    depth: DepthOption = None,
    timeout: Annotated[
        float | None,
        typer.Option(
            "--timeout",
            "-t",
            min=0,
            help="Stop after this many seconds instead of waiting for Ctrl-C.",
        ),
    ] = None,
) -> None:
    """Print created, modified and deleted entries below ROOT.

    Examples:
        fstree watch src -g "**/*.py"
        fstree watch logs -g "*" --timeout 60
    """
    config = get_config(ctx)
    if not root.is_dir():
        print_error(f"Not a directory: {root}")
        raise typer.Exit(code=1)

    def on_event(event: WatchEvent) -> None:
        console.print(format_watch_event(event))

    try:
        engine = WatchEngine(root, resolve_option(config, patterns, depth=depth))
        engine.start(on_event)
    except (FsTreeError, OSError) as e:
        print_error(f"Cannot watch {root}: {e}")
        raise typer.Exit(code=1) from e

    print_info(f"Watching {root} (Ctrl-C to stop)")
    deadline = None if timeout is None else time.monotonic() + timeout
    try:
        with engine:
            while not engine.disposed:
                if deadline is not None and time.monotonic() >= deadline:
                    break
                time.sleep(_POLL_INTERVAL)
    except KeyboardInterrupt:
        logger.debug("Interrupted")

    if engine.state is WatchState.SERVICE_CLOSED:
        print_warning(f"Watch service for {root} closed unexpectedly.")
        raise typer.Exit(code=1)
    print_info("Stopped.")
