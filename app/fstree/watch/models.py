"""Watch domain models."""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path


class WatchKind(str, Enum):
    """High-level change reported by a watch.

    Attributes:
        CREATED: Entry appeared (also the target side of a rename).
        DELETED: Entry disappeared (also the source side of a rename).
        MODIFIED: Entry content or metadata changed.
    """

    CREATED = "created"
    DELETED = "deleted"
    MODIFIED = "modified"


class WatchState(str, Enum):
    """Lifecycle of a WatchEngine. Terminal states are never left."""

    REGISTERING = "registering"
    RUNNING = "running"
    DISPOSED = "disposed"
    SERVICE_CLOSED = "service_closed"

    @property
    def is_terminal(self) -> bool:
        return self in (WatchState.DISPOSED, WatchState.SERVICE_CLOSED)


@dataclass(frozen=True, slots=True)
class WatchEvent:
    """One accepted change below a watched root.

    Attributes:
        path: Absolute path of the changed entry.
        relative_path: POSIX path relative to the watched root.
        kind: What happened.
        is_directory: Whether the entry is (or was) a directory.
    """

    path: Path
    relative_path: str
    kind: WatchKind
    is_directory: bool = False
