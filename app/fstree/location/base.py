"""Common behaviour of file and directory locations.

A Location is a typed handle on a path. It never caches anything about
the file system: every query stats the path again, because other code
may change the tree between two calls.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from fstree.location.directory import Directory
    from fstree.location.file import File


class Location:
    """Base class of File and Directory.

    Attributes:
        path: The wrapped path (absolute or relative, as given).
    """

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self.path = Path(path)

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def parent(self) -> Directory:
        from fstree.location.directory import Directory

        return Directory(self.path.parent)

    def exists(self) -> bool:
        return self.path.exists()

    def is_file(self) -> bool:
        return self.path.is_file()

    def is_directory(self) -> bool:
        return self.path.is_dir()

    def is_absolute(self) -> bool:
        return self.path.is_absolute()

    def as_file(self) -> File | None:
        """View this location as a File, or None if it is an existing directory."""
        from fstree.location.file import File

        if self.path.is_dir():
            return None
        return self if isinstance(self, File) else File(self.path)

    def as_directory(self) -> Directory | None:
        """View this location as a Directory, or None if it is an existing file."""
        from fstree.location.directory import Directory

        if self.path.exists() and not self.path.is_dir():
            return None
        return self if isinstance(self, Directory) else Directory(self.path)

    def last_modified(self) -> float | None:
        """Modification time as a POSIX timestamp, None if absent."""
        try:
            return self.path.stat().st_mtime
        except FileNotFoundError:
            return None

    def touch_modified(self, timestamp: float) -> None:
        """Set access and modification time."""
        os.utime(self.path, (timestamp, timestamp))

    def relative_path(self, other: Location) -> str:
        """POSIX path of other relative to this location."""
        return other.path.relative_to(self.path).as_posix()

    def __fspath__(self) -> str:
        return os.fspath(self.path)

    def __str__(self) -> str:
        return str(self.path)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({str(self.path)!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Location):
            return NotImplemented
        return type(self) is type(other) and self.path == other.path

    def __hash__(self) -> int:
        return hash((type(self).__name__, self.path))
