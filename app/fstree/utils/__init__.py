"""Utility modules for fstree.

This module exports commonly used utility functions.
"""

from fstree.utils.formatting import (
    console,
    create_scan_table,
    err_console,
    format_event_line,
    format_scan_row,
    format_size,
    format_watch_event,
    print_error,
    print_info,
    print_success,
    print_warning,
)

__all__ = [
    "console",
    "create_scan_table",
    "err_console",
    "format_event_line",
    "format_scan_row",
    "format_size",
    "format_watch_event",
    "print_error",
    "print_info",
    "print_success",
    "print_warning",
]
