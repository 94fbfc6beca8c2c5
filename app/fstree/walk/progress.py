"""Completion statistics for long-running tree operations."""

import logging
import time
from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path

from fstree.walk.engine import TreeOperationEngine
from fstree.walk.models import Action, OperationKind, TraversalEvent
from fstree.walk.option import Option
from fstree.walk.stream import Cancellation, EventStream

logger = logging.getLogger(__name__)


@dataclass
class Progress:
    """Mutable accumulator fed by a traversal's events.

    Totals come from a scan before the operation starts. Completed counts
    never exceed them, even when the tree grows while being processed.

    Attributes:
        total_files: Number of files the operation is expected to touch.
        total_size: Their combined size in bytes.
        current_location: Entry of the most recent event.
    """

    total_files: int
    total_size: int
    current_location: Path | None = None
    started_at: float = field(default_factory=time.monotonic)
    _completed_files: int = field(default=0, init=False)
    _completed_size: int = field(default=0, init=False)

    @property
    def completed_files(self) -> int:
        return self._completed_files

    @property
    def completed_size(self) -> int:
        return self._completed_size

    @property
    def remaining_files(self) -> int:
        return self.total_files - self._completed_files

    @property
    def remaining_size(self) -> int:
        return self.total_size - self._completed_size

    def update(self, event: TraversalEvent) -> "Progress":
        """Account for one event. Directory events only move the location."""
        self.current_location = event.path
        if event.is_file:
            self._completed_files = min(self._completed_files + 1, self.total_files)
            self._completed_size = min(self._completed_size + event.size, self.total_size)
        return self

    def rate_by_files(self) -> int:
        """Completion percentage by file count (100 for an empty job)."""
        if self.total_files == 0:
            return 100
        return self._completed_files * 100 // self.total_files

    def rate_by_size(self) -> int:
        """Completion percentage by bytes (100 for an empty job)."""
        if self.total_size == 0:
            return 100
        return self._completed_size * 100 // self.total_size

    def elapsed_time(self) -> float:
        """Seconds since the operation started."""
        return time.monotonic() - self.started_at

    def remaining_time(self) -> float:
        """Estimated seconds left, extrapolated from throughput so far."""
        if self._completed_size == 0:
            return 0.0
        return self.elapsed_time() * self.remaining_size / self._completed_size


def measure(root: Path, option: Option | None = None) -> Progress:
    """Scan the files an operation would touch and return a fresh Progress."""
    files = 0
    size = 0
    for event in TreeOperationEngine(root, None, OperationKind.SCAN_FILES, option).run():
        files += 1
        size += event.size
    logger.debug("Measured %s: %d files, %d bytes", root, files, size)
    return Progress(total_files=files, total_size=size)


def track(
    kind: OperationKind,
    source: Path,
    destination: Path | None = None,
    option: Option | None = None,
) -> EventStream[Progress]:
    """Run an operation and report a Progress snapshot after every event.

    The same Progress instance is emitted each time, updated in place.
    """
    option = option or Option()

    def produce(token: Cancellation) -> Iterator[Progress]:
        progress = measure(source, option)
        stream = TreeOperationEngine(source, destination, kind, option).run()
        for event in stream.iterate(token):
            # Sync removals are not part of the totals.
            if event.action is Action.DELETED and kind is not OperationKind.DELETE:
                continue
            yield progress.update(event)

    return EventStream(produce)
