"""Typed file and directory handles with tree operations.

This module provides the Location façade: File and Directory wrap a path
and expose copy, move, delete, scan, watch and archive operations driven
by glob patterns and Option transforms. Folder groups several of them
into one virtual tree.
"""

from fstree.location.base import Location
from fstree.location.directory import Directory
from fstree.location.factory import locate, temporary_directory, temporary_file
from fstree.location.file import File
from fstree.location.folder import Folder

__all__ = [
    "Directory",
    "File",
    "Folder",
    "Location",
    "locate",
    "temporary_directory",
    "temporary_file",
]
