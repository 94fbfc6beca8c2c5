"""Live watching of directory trees.

This module exports the WatchEngine and the events it delivers.
"""

from fstree.watch.engine import WatchEngine, watch
from fstree.watch.models import WatchEvent, WatchKind, WatchState

__all__ = ["WatchEngine", "WatchEvent", "WatchKind", "WatchState", "watch"]
