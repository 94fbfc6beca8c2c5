"""CLI commands for fstree.

This package contains all subcommand implementations.
"""

from fstree.cli.commands import archive, config, delete, scan, transfer, watch

__all__ = ["archive", "config", "delete", "scan", "transfer", "watch"]
