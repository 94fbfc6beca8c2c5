"""Rich console formatting utilities.

Provides consistent formatting for CLI output using Rich.
"""

from __future__ import annotations

import sys

from rich.console import Console
from rich.table import Table

from fstree.core.theme import get_theme
from fstree.walk.models import TraversalEvent
from fstree.watch.models import WatchEvent


def _detect_color_system() -> str | None:
    """Detect the best color system for the current terminal.

    Returns "truecolor" for interactive terminals to enable full hex color support,
    None otherwise to let Rich auto-detect.
    """
    if sys.stdout.isatty():
        return "truecolor"
    return None


# Shared console instances (theme loaded once at import)
console = Console(theme=get_theme(), color_system=_detect_color_system())
err_console = Console(theme=get_theme(), stderr=True, color_system=_detect_color_system())


def format_size(size: int) -> str:
    """Format a byte count as a human-readable string.

    Args:
        size: Number of bytes.

    Returns:
        String such as "512 B", "1.5 KB" or "2.0 GB".
    """
    value = float(size)
    for unit in ("B", "KB", "MB", "GB"):
        if value < 1024:
            return f"{int(value)} {unit}" if unit == "B" else f"{value:.1f} {unit}"
        value /= 1024
    return f"{value:.1f} TB"


def create_scan_table(title: str) -> Table:
    """Create a pre-configured table for scan results."""
    table = Table(
        title=title,
        show_header=True,
        header_style="bold_header",
        border_style="border",
        row_styles=["", "on grey7"],
    )
    table.add_column("Path", overflow="fold")
    table.add_column("Size", style="entry.size", justify="right")
    return table


def format_scan_row(event: TraversalEvent) -> tuple[str, str]:
    if event.is_directory:
        return (f"[entry.directory]{event.relative_path or '.'}/[/]", "-")
    return (f"[entry.file]{event.relative_path}[/]", format_size(event.size))


def format_event_line(event: TraversalEvent) -> str:
    """Single-line markup for streaming output."""
    action = f"[action.{event.action.value}]{event.action.value:>8}[/]"
    style = "entry.directory" if event.is_directory else "entry.file"
    line = f"{action} [{style}]{event.path}[/]"
    if event.destination is not None:
        line += f" [muted]->[/] {event.destination}"
    return line


def format_watch_event(event: WatchEvent) -> str:
    action = f"[action.{event.kind.value}]{event.kind.value:>8}[/]"
    style = "entry.directory" if event.is_directory else "entry.file"
    suffix = "/" if event.is_directory else ""
    return f"{action} [{style}]{event.relative_path}{suffix}[/]"


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[info]{message}[/]")


def print_warning(message: str) -> None:
    """Print a warning message."""
    err_console.print(f"[warning]Warning:[/] {message}")


def print_error(message: str) -> None:
    """Print an error message."""
    err_console.print(f"[error]Error:[/] {message}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[success]{message}[/]")
