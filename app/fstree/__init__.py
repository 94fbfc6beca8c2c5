"""fstree - declarative copy, move, delete, scan and watch for file trees."""

__version__ = "0.1.0"
