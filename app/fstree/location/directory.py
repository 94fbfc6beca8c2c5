"""Directory locations and their tree operations.

Every tree operation comes in up to three flavours:

- ``copy_to`` / ``move_to`` / ``delete``: run to completion, absorb
  failures (logged as warnings) and return the resulting location.
- ``observe_*``: a cold EventStream of TraversalEvents; errors arrive
  through the stream.
- ``track_*``: a cold EventStream of Progress snapshots.

All of them accept glob patterns positionally and an optional Option
transform. Giving patterns selects content *inside* the directory, so the
directory's own name is dropped from destinations (``strip()``); without
patterns the directory itself is the subject and keeps its name.
"""

from __future__ import annotations

from fstree.archive.transfer import pack
from fstree.location.base import Location
from fstree.location.file import File
from fstree.walk.engine import TreeOperationEngine
from fstree.walk.models import OperationKind, TraversalEvent
from fstree.walk.option import Option, OptionTransform, build_option, chain
from fstree.walk.progress import Progress, track
from fstree.walk.stream import EventStream
from fstree.watch.engine import WatchCallback, WatchEngine


class Directory(Location):
    """A path that is (or is going to be) a directory."""

    def file(self, relative: str) -> File:
        return File(self.path / relative)

    def directory(self, relative: str) -> Directory:
        return Directory(self.path / relative)

    def children(self) -> list[Location]:
        """Direct children sorted by name (empty if absent)."""
        try:
            entries = sorted(self.path.iterdir())
        except FileNotFoundError:
            return []
        return [Directory(p) if p.is_dir() else File(p) for p in entries]

    def is_empty(self) -> bool:
        try:
            return next(self.path.iterdir(), None) is None
        except FileNotFoundError:
            return True

    def create(self) -> Directory:
        self.path.mkdir(parents=True, exist_ok=True)
        return self

    def size(self, *patterns: str, option: OptionTransform | None = None) -> int:
        """Combined size of all accepted files below this directory."""
        return sum(
            event.size for event in self._run(OperationKind.SCAN_FILES, None, patterns, option)
        )

    # Scans

    def _run(
        self,
        kind: OperationKind,
        destination: Directory | None,
        patterns: tuple[str, ...],
        option: OptionTransform | None,
    ) -> EventStream[TraversalEvent]:
        resolved = build_option(*patterns, option=option)
        target = destination.path if destination is not None else None
        return TreeOperationEngine(self.path, target, kind, resolved).run()

    def walk_files(
        self, *patterns: str, option: OptionTransform | None = None
    ) -> EventStream[File]:
        """Stream every accepted file below this directory."""
        return self._run(OperationKind.SCAN_FILES, None, patterns, option).map(
            lambda event: File(event.path)
        )

    def walk_directories(
        self, *patterns: str, option: OptionTransform | None = None
    ) -> EventStream[Directory]:
        """Stream every accepted directory below this one.

        The directory itself is left out unless keep_root() is applied.
        """
        resolved = chain(option)(Option().strip().glob(*patterns))
        stream = TreeOperationEngine(
            self.path, None, OperationKind.SCAN_DIRECTORIES, resolved
        ).run()
        return stream.map(lambda event: Directory(event.path))

    # Observed operations

    def observe_copying_to(
        self, destination: Directory, *patterns: str, option: OptionTransform | None = None
    ) -> EventStream[TraversalEvent]:
        return self._run(OperationKind.COPY, destination, patterns, option)

    def observe_moving_to(
        self, destination: Directory, *patterns: str, option: OptionTransform | None = None
    ) -> EventStream[TraversalEvent]:
        return self._run(OperationKind.MOVE, destination, patterns, option)

    def observe_deleting(
        self, *patterns: str, option: OptionTransform | None = None
    ) -> EventStream[TraversalEvent]:
        return self._run(OperationKind.DELETE, None, patterns, option)

    def observe_packing_to(
        self, archive: File, *patterns: str, option: OptionTransform | None = None
    ) -> EventStream[TraversalEvent]:
        return pack(self.path, archive.path, build_option(*patterns, option=option))

    # Tracked operations

    def track_copying_to(
        self, destination: Directory, *patterns: str, option: OptionTransform | None = None
    ) -> EventStream[Progress]:
        resolved = build_option(*patterns, option=option)
        return track(OperationKind.COPY, self.path, destination.path, resolved)

    def track_moving_to(
        self, destination: Directory, *patterns: str, option: OptionTransform | None = None
    ) -> EventStream[Progress]:
        resolved = build_option(*patterns, option=option)
        return track(OperationKind.MOVE, self.path, destination.path, resolved)

    def track_deleting(
        self, *patterns: str, option: OptionTransform | None = None
    ) -> EventStream[Progress]:
        resolved = build_option(*patterns, option=option)
        return track(OperationKind.DELETE, self.path, None, resolved)

    # Fire-and-forget operations

    def copy_to(
        self, destination: Directory, *patterns: str, option: OptionTransform | None = None
    ) -> Directory:
        """Copy into destination and return the directory holding the copy."""
        self.observe_copying_to(destination, *patterns, option=option).run_quietly(
            f"Copying {self.path} to {destination.path}"
        )
        return self._mirror(destination, patterns, option)

    def move_to(
        self, destination: Directory, *patterns: str, option: OptionTransform | None = None
    ) -> Directory:
        """Move into destination and return the directory holding the result."""
        self.observe_moving_to(destination, *patterns, option=option).run_quietly(
            f"Moving {self.path} to {destination.path}"
        )
        return self._mirror(destination, patterns, option)

    def delete(self, *patterns: str, option: OptionTransform | None = None) -> None:
        """Delete this directory, or only the entries matching patterns."""
        self.observe_deleting(*patterns, option=option).run_quietly(f"Deleting {self.path}")

    def pack_to(
        self, archive: File, *patterns: str, option: OptionTransform | None = None
    ) -> File:
        self.observe_packing_to(archive, *patterns, option=option).run_quietly(
            f"Packing {self.path} into {archive.path}"
        )
        return archive

    def _mirror(
        self,
        destination: Directory,
        patterns: tuple[str, ...],
        option: OptionTransform | None,
    ) -> Directory:
        resolved = build_option(*patterns, option=option)
        return Directory(resolved.mirror_base(destination.path, self.name))

    # Watching

    def watch(
        self,
        on_event: WatchCallback,
        *patterns: str,
        option: OptionTransform | None = None,
    ) -> WatchEngine:
        """Start watching this tree. Dispose the returned engine to stop."""
        resolved = chain(option)(Option().glob(*patterns))
        return WatchEngine(self.path, resolved).start(on_event)
