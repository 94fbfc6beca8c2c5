"""Traversal domain models.

This module defines the values a tree operation produces: what kind of
entry was visited and what was done to it.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path


class EntryKind(str, Enum):
    """Type of a visited entry.

    Attributes:
        FILE: Regular file (or anything that is not a directory).
        DIRECTORY: Directory.
    """

    FILE = "file"
    DIRECTORY = "directory"


class Action(str, Enum):
    """What a traversal did to an entry.

    Attributes:
        COPIED: Written to the destination.
        MOVED: Relocated to the destination.
        DELETED: Removed from the file system.
        OBSERVED: Reported without mutation (scans).
        SKIPPED: Left alone because the conflict policy said so.
    """

    COPIED = "copied"
    MOVED = "moved"
    DELETED = "deleted"
    OBSERVED = "observed"
    SKIPPED = "skipped"


class OperationKind(str, Enum):
    """Tree operations the engine can run."""

    COPY = "copy"
    MOVE = "move"
    DELETE = "delete"
    SCAN_FILES = "scan_files"
    SCAN_DIRECTORIES = "scan_directories"

    @property
    def needs_destination(self) -> bool:
        return self in (OperationKind.COPY, OperationKind.MOVE)


@dataclass(frozen=True, slots=True)
class TraversalEvent:
    """One visited entry and the action taken on it.

    Attributes:
        path: Source path of the entry.
        relative_path: POSIX path relative to the traversal root.
        entry_kind: File or directory.
        action: What was done.
        destination: Where the entry went (copy, move, unpack).
        size: Size in bytes for files, 0 for directories.
    """

    path: Path
    relative_path: str
    entry_kind: EntryKind
    action: Action
    destination: Path | None = None
    size: int = 0

    @property
    def is_file(self) -> bool:
        return self.entry_kind is EntryKind.FILE

    @property
    def is_directory(self) -> bool:
        return self.entry_kind is EntryKind.DIRECTORY

    @property
    def location(self) -> Path:
        """The path that now holds the entry, if any."""
        return self.destination if self.destination is not None else self.path
