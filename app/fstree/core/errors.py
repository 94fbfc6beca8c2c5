"""Exception taxonomy shared by the traversal, watch and storage layers.

Absent entries are not represented here: deleting or reading something
that does not exist is a successful no-op throughout fstree.
"""

from pathlib import Path


class FsTreeError(Exception):
    """Base exception for all fstree failures."""


class OptionError(FsTreeError, ValueError):
    """Raised when an Option is built from invalid configuration."""


class AlreadyExistsError(FsTreeError, FileExistsError):
    """Raised when a destination exists under the fail-if-existing policy."""

    def __init__(self, source: Path, destination: Path) -> None:
        self.source = source
        self.destination = destination
        super().__init__(f"Destination already exists: {destination} (source: {source})")


class TraversalError(FsTreeError):
    """An I/O failure that terminated a tree operation.

    Attributes:
        path: Entry being processed when the failure happened.
    """

    def __init__(self, path: Path, cause: OSError) -> None:
        self.path = path
        super().__init__(f"{cause.strerror or cause} [{path}]")


class AtomicWriteError(FsTreeError, OSError):
    """Raised when a temp file could not be moved onto its destination.

    Attributes:
        destination: File that was meant to receive the new content.
        causes: Underlying failures, in the order they happened.
    """

    def __init__(self, destination: Path, *causes: BaseException) -> None:
        self.destination = destination
        self.causes = causes
        details = "; ".join(str(c) for c in causes)
        super().__init__(f"Failed to replace {destination}: {details}")


class LockUnavailableError(FsTreeError):
    """Raised when an advisory lock is held elsewhere or unsupported."""


class WatchServiceClosedError(FsTreeError):
    """Signals that a watch service was closed while waiting for events."""


class UnsupportedArchiveError(FsTreeError):
    """Raised when no codec is registered for an archive's extension."""
