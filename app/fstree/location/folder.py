"""Virtual folders: files and directories from anywhere handled as one tree.

A Folder collects entries in the order they are added. A directory entry
may carry its own glob patterns and Option transform, and every entry may
be placed below a relative path of the destination with add_into(). Copy,
move, delete, scan and pack then run over all entries in turn, with the
same patterns-strip-the-root rule as Directory.

Example:
    >>> Folder().add("README.md").add("src", "**/*.py").add_into(
    ...     "docs", lambda f: f.add("manual")
    ... ).copy_to(Directory("out"))
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Iterator
from dataclasses import dataclass, replace
from pathlib import Path, PurePosixPath

from fstree.archive.transfer import PackSource, pack_all
from fstree.core.errors import AlreadyExistsError, FsTreeError, TraversalError
from fstree.location.base import Location
from fstree.location.directory import Directory
from fstree.location.factory import locate
from fstree.location.file import File
from fstree.walk.engine import TreeOperationEngine
from fstree.walk.models import Action, EntryKind, OperationKind, TraversalEvent
from fstree.walk.operations import copy_entry, move_file
from fstree.walk.option import Option, OptionTransform, Outcome, chain
from fstree.walk.stream import Cancellation, EventStream

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Entry:
    location: File | Directory
    patterns: tuple[str, ...] = ()
    option: OptionTransform | None = None
    into: PurePosixPath = PurePosixPath()

    def resolve(
        self,
        patterns: tuple[str, ...],
        option: OptionTransform | None,
        *,
        strip: bool = False,
    ) -> Option:
        """Option of one run: entry patterns first, then the call's."""
        if isinstance(self.location, File):
            return chain(self.option, option)(Option())
        combined = (*self.patterns, *patterns)
        base = Option().strip().glob(*combined) if strip else Option.of(*combined)
        return chain(self.option, option)(base)

    def target(self, destination: Directory | None) -> Path | None:
        if destination is None:
            return None
        return destination.path.joinpath(*self.into.parts)


def _file_events(
    kind: OperationKind, path: Path, target_dir: Path | None, option: Option
) -> Iterator[TraversalEvent]:
    """Run one operation on a single file entry."""
    try:
        size = path.lstat().st_size
    except FileNotFoundError:
        logger.debug("Nothing to %s, %s does not exist", kind.value, path)
        return
    except OSError as e:
        raise TraversalError(path, e) from e

    if kind is OperationKind.SCAN_DIRECTORIES:
        return
    if kind is OperationKind.SCAN_FILES:
        yield TraversalEvent(path, path.name, EntryKind.FILE, Action.OBSERVED, size=size)
        return

    try:
        if kind is OperationKind.DELETE:
            path.unlink(missing_ok=True)
            logger.debug("Deleted %s", path)
            event = TraversalEvent(path, path.name, EntryKind.FILE, Action.DELETED, size=size)
        else:
            if target_dir is None:
                msg = f"{kind.value} requires a destination"
                raise ValueError(msg)
            target = target_dir.joinpath(*option.destination_sub_path.parts, path.name)
            event = _transfer_file(kind, path, target, option, size)
    except FsTreeError:
        raise
    except OSError as e:
        raise TraversalError(path, e) from e
    yield event


def _transfer_file(
    kind: OperationKind, path: Path, target: Path, option: Option, size: int
) -> TraversalEvent:
    outcome = option.resolve_conflict(path, target)
    if outcome is Outcome.FAILED:
        raise AlreadyExistsError(path, target)
    if outcome is Outcome.SKIPPED:
        logger.debug("Skipped %s, destination %s is kept", path, target)
        return TraversalEvent(path, path.name, EntryKind.FILE, Action.SKIPPED, target, size)

    target.parent.mkdir(parents=True, exist_ok=True)
    if kind is OperationKind.MOVE:
        move_file(path, target)
        action = Action.MOVED
    else:
        copy_entry(path, target)
        action = Action.COPIED
    return TraversalEvent(path, path.name, EntryKind.FILE, action, target, size)


class Folder:
    """An ordered set of files and directories treated as one source.

    Patterns only select content inside directory entries; a file entry
    is always taken as a whole. Absent entries contribute nothing.
    """

    def __init__(self) -> None:
        self._entries: list[_Entry] = []

    def add(
        self,
        entry: str | os.PathLike[str] | Location | Folder | None,
        *patterns: str,
        option: OptionTransform | None = None,
    ) -> Folder:
        """Add a path, a location or every entry of another Folder.

        None is ignored, so optional inputs can be passed straight through.
        Patterns and option given with a Folder apply to each of its
        directory entries in addition to their own.
        """
        if entry is None:
            return self
        if isinstance(entry, Folder):
            for inner in entry._entries:
                self._entries.append(
                    replace(
                        inner,
                        patterns=(*inner.patterns, *patterns),
                        option=chain(inner.option, option) if option else inner.option,
                    )
                )
            return self
        if isinstance(entry, (File, Directory)):
            location = entry
        elif isinstance(entry, Location):
            location = locate(entry.path)
        else:
            location = locate(entry)
        self._entries.append(_Entry(location, tuple(patterns), option))
        return self

    def add_into(
        self, relative: str | PurePosixPath, build: Callable[[Folder], object]
    ) -> Folder:
        """Add the entries built on a fresh Folder below a relative path.

        Raises:
            OptionError: If relative is absolute or climbs out with "..".
        """
        into = Option().allocate_in(relative).destination_sub_path
        inner = Folder()
        build(inner)
        for entry in inner._entries:
            self._entries.append(replace(entry, into=into / entry.into))
        return self

    def entries(self) -> list[File | Directory]:
        return [entry.location for entry in self._entries]

    def is_empty(self) -> bool:
        return not self._entries

    def size(self, *patterns: str, option: OptionTransform | None = None) -> int:
        """Combined size of every accepted file of every entry."""
        stream = self._run(OperationKind.SCAN_FILES, None, patterns, option)
        return sum(event.size for event in stream)

    def _run(
        self,
        kind: OperationKind,
        destination: Directory | None,
        patterns: tuple[str, ...],
        option: OptionTransform | None,
    ) -> EventStream[TraversalEvent]:
        entries = list(self._entries)

        def produce(token: Cancellation) -> Iterator[TraversalEvent]:
            for entry in entries:
                if token.cancelled:
                    return
                resolved = entry.resolve(patterns, option)
                target = entry.target(destination)
                if isinstance(entry.location, Directory):
                    engine = TreeOperationEngine(entry.location.path, target, kind, resolved)
                    yield from engine.run().iterate(token)
                else:
                    yield from _file_events(kind, entry.location.path, target, resolved)

        return EventStream(produce)

    # Scans

    def walk_files(
        self, *patterns: str, option: OptionTransform | None = None
    ) -> EventStream[File]:
        return self._run(OperationKind.SCAN_FILES, None, patterns, option).map(
            lambda event: File(event.path)
        )

    def walk_directories(
        self, *patterns: str, option: OptionTransform | None = None
    ) -> EventStream[Directory]:
        """Stream the accepted directories below every directory entry.

        The entries themselves are left out unless keep_root() is applied.
        """
        entries = [e for e in self._entries if isinstance(e.location, Directory)]

        def produce(token: Cancellation) -> Iterator[TraversalEvent]:
            for entry in entries:
                if token.cancelled:
                    return
                resolved = entry.resolve(patterns, option, strip=True)
                engine = TreeOperationEngine(
                    entry.location.path, None, OperationKind.SCAN_DIRECTORIES, resolved
                )
                yield from engine.run().iterate(token)

        return EventStream(produce).map(lambda event: Directory(event.path))

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
        sources = [
            PackSource(entry.location.path, entry.resolve(patterns, option), entry.into)
            for entry in self._entries
        ]
        return pack_all(sources, archive.path)

    # Fire-and-forget operations

    def copy_to(
        self, destination: Directory, *patterns: str, option: OptionTransform | None = None
    ) -> Directory:
        self.observe_copying_to(destination, *patterns, option=option).run_quietly(
            f"Copying folder to {destination.path}"
        )
        return destination

    def move_to(
        self, destination: Directory, *patterns: str, option: OptionTransform | None = None
    ) -> Directory:
        self.observe_moving_to(destination, *patterns, option=option).run_quietly(
            f"Moving folder to {destination.path}"
        )
        return destination

    def delete(self, *patterns: str, option: OptionTransform | None = None) -> None:
        self.observe_deleting(*patterns, option=option).run_quietly("Deleting folder")

    def pack_to(
        self, archive: File, *patterns: str, option: OptionTransform | None = None
    ) -> File:
        self.observe_packing_to(archive, *patterns, option=option).run_quietly(
            f"Packing folder into {archive.path}"
        )
        return archive

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"Folder({[str(entry.location) for entry in self._entries]!r})"
