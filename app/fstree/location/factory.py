"""Location factories."""

import os

from fstree.location.base import Location
from fstree.location.directory import Directory
from fstree.location.file import File
from fstree.storage.temporary import TemporaryArea


def locate(path: str | os.PathLike[str]) -> File | Directory:
    """Wrap a path, choosing the variant by probing the file system once.

    An existing directory becomes a Directory; anything else, including
    an absent path, becomes a File. Use as_directory() to treat an absent
    path as a directory.
    """
    location = Location(path)
    if location.is_directory():
        return Directory(location.path)
    return File(location.path)


def temporary_file(area: TemporaryArea, suffix: str = "") -> File:
    """Allocate a new empty file in the process's temporary area."""
    return File(area.allocate_file(suffix))


def temporary_directory(area: TemporaryArea) -> Directory:
    """Allocate a new empty directory in the process's temporary area."""
    return Directory(area.allocate_directory())
