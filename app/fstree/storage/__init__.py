"""Safe file storage primitives.

This module provides atomic single-file writes, advisory file locks and
the per-process temporary area.
"""

from fstree.storage.atomic import AtomicWriter, backup_path
from fstree.storage.locks import FileLock
from fstree.storage.temporary import TemporaryArea

__all__ = ["AtomicWriter", "FileLock", "TemporaryArea", "backup_path"]
