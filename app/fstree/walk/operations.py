"""Tree operation variants.

Each operation implements the same three visitor steps, called by the
engine during one depth-first walk:

- pre_directory: before a directory's children are visited
- visit_file: for every accepted file
- post_directory: after a directory's children were visited

Every step returns the events it produced. Copy and Move additionally
implement synchronize(), the optional post-pass over the destination.
"""

import errno
import logging
import os
import shutil
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from pathlib import Path

from fstree.core.errors import AlreadyExistsError
from fstree.walk.glob import PatternSet
from fstree.walk.models import Action, EntryKind, OperationKind, TraversalEvent
from fstree.walk.option import Option, Outcome
from fstree.walk.stream import Cancellation

logger = logging.getLogger(__name__)


@dataclass
class WalkContext:
    """State shared by the engine and the operation for one run."""

    source: Path
    destination: Path | None
    option: Option
    token: Cancellation = field(default_factory=Cancellation)

    @property
    def root_name(self) -> str:
        return self.source.name

    @property
    def patterns(self) -> PatternSet:
        return self.option.pattern_set

    def target_of(self, relative: str, *, is_directory: bool = False) -> Path:
        """Destination path of a source entry."""
        if self.destination is None:
            msg = "Operation has no destination"
            raise ValueError(msg)
        return self.option.destination_for(
            self.destination, self.root_name, relative, is_directory=is_directory
        )

    @property
    def mirror_base(self) -> Path | None:
        if self.destination is None:
            return None
        return self.option.mirror_base(self.destination, self.root_name)

    def selects_directory(self, directory: Path, relative: str) -> bool:
        """Whether a directory is itself chosen by the patterns."""
        if not relative:
            return self.patterns.matches_everything
        return self.patterns.accepts(relative, directory)


def copy_entry(source: Path, target: Path) -> None:
    """Copy a walked entry with its attributes. Symlinks are copied as links."""
    if source.is_symlink() or target.is_symlink():
        target.unlink(missing_ok=True)
    shutil.copy2(source, target, follow_symlinks=False)


def move_file(source: Path, target: Path) -> None:
    """Rename source onto target, copying across file systems."""
    try:
        os.replace(source, target)
    except OSError as e:
        if e.errno != errno.EXDEV:
            raise
        logger.debug("Cross-device move of %s, copying instead", source)
        copy_entry(source, target)
        source.unlink()


def is_empty_directory(path: Path) -> bool:
    try:
        with os.scandir(path) as entries:
            return next(entries, None) is None
    except FileNotFoundError:
        return False


def _ancestors(relative: str) -> Iterator[str]:
    """Yield every ancestor of a relative path, innermost first, root ("") last."""
    while relative:
        relative = relative.rpartition("/")[0]
        yield relative


class TreeOperation:
    """Base visitor. Observes nothing and mutates nothing."""

    kind: OperationKind

    def __init__(self, context: WalkContext) -> None:
        self.context = context

    def pre_directory(self, directory: Path, relative: str) -> Iterable[TraversalEvent]:
        return ()

    def visit_file(
        self, path: Path, relative: str, stat: os.stat_result
    ) -> Iterable[TraversalEvent]:
        return ()

    def post_directory(self, directory: Path, relative: str) -> Iterable[TraversalEvent]:
        return ()

    def finish(self) -> Iterable[TraversalEvent]:
        return ()


class ScanFiles(TreeOperation):
    kind = OperationKind.SCAN_FILES

    def visit_file(
        self, path: Path, relative: str, stat: os.stat_result
    ) -> Iterable[TraversalEvent]:
        yield TraversalEvent(path, relative, EntryKind.FILE, Action.OBSERVED, size=stat.st_size)


class ScanDirectories(TreeOperation):
    """Reports accepted directories. The root itself only when strip count is 0."""

    kind = OperationKind.SCAN_DIRECTORIES

    def pre_directory(self, directory: Path, relative: str) -> Iterable[TraversalEvent]:
        if not relative and self.context.option.strip_count != 0:
            return
        if self.context.patterns.accepts(relative, directory):
            yield TraversalEvent(directory, relative, EntryKind.DIRECTORY, Action.OBSERVED)


class _SourceCleanup:
    """Tracks which source directories lost entries during a walk."""

    def __init__(self) -> None:
        self.touched: set[str] = set()

    def mark(self, relative: str) -> None:
        for ancestor in _ancestors(relative):
            if ancestor in self.touched:
                break
            self.touched.add(ancestor)

    def remove_if_emptied(
        self, context: WalkContext, directory: Path, relative: str
    ) -> Iterator[TraversalEvent]:
        if not relative and context.option.strip_count != 0:
            return
        if relative not in self.touched and not context.selects_directory(directory, relative):
            return
        if not is_empty_directory(directory):
            return
        directory.rmdir()
        logger.debug("Removed emptied directory %s", directory)
        yield TraversalEvent(directory, relative, EntryKind.DIRECTORY, Action.DELETED)


class Delete(TreeOperation):
    kind = OperationKind.DELETE

    def __init__(self, context: WalkContext) -> None:
        super().__init__(context)
        self._cleanup = _SourceCleanup()

    def visit_file(
        self, path: Path, relative: str, stat: os.stat_result
    ) -> Iterable[TraversalEvent]:
        path.unlink(missing_ok=True)
        self._cleanup.mark(relative)
        logger.debug("Deleted %s", path)
        yield TraversalEvent(path, relative, EntryKind.FILE, Action.DELETED, size=stat.st_size)

    def post_directory(self, directory: Path, relative: str) -> Iterable[TraversalEvent]:
        return self._cleanup.remove_if_emptied(self.context, directory, relative)


class _Transfer(TreeOperation):
    """Shared behaviour of Copy and Move: mirrored directories and sync."""

    action: Action

    def __init__(self, context: WalkContext) -> None:
        super().__init__(context)
        # Destination paths of every entry the source still accounts for.
        self.survivors: set[Path] = set()
        self._created: set[Path] = set()

    def pre_directory(self, directory: Path, relative: str) -> Iterable[TraversalEvent]:
        target = self.context.target_of(relative, is_directory=True)
        if not target.is_dir():
            target.mkdir(parents=True, exist_ok=True)
            self._created.add(target)
        self.survivors.add(target)
        return ()

    def post_directory(self, directory: Path, relative: str) -> Iterable[TraversalEvent]:
        target = self.context.target_of(relative, is_directory=True)
        if target == self.context.destination:
            return ()

        if is_empty_directory(target):
            if target in self._created and not self.context.selects_directory(
                directory, relative
            ):
                target.rmdir()
                self.survivors.discard(target)
                logger.debug("Removed empty mirrored directory %s", target)
        else:
            try:
                stat = directory.stat()
            except FileNotFoundError:
                # Move already removed the emptied source directory.
                return ()
            os.utime(target, ns=(stat.st_atime_ns, stat.st_mtime_ns))
        return ()

    def visit_file(
        self, path: Path, relative: str, stat: os.stat_result
    ) -> Iterable[TraversalEvent]:
        target = self.context.target_of(relative)
        self.survivors.add(target)

        outcome = self.context.option.resolve_conflict(path, target)
        if outcome is Outcome.FAILED:
            raise AlreadyExistsError(path, target)
        if outcome is Outcome.SKIPPED:
            logger.debug("Skipped %s, destination %s is kept", path, target)
            yield TraversalEvent(
                path, relative, EntryKind.FILE, Action.SKIPPED, target, stat.st_size
            )
            return

        target.parent.mkdir(parents=True, exist_ok=True)
        self.transfer(path, target)
        yield TraversalEvent(path, relative, EntryKind.FILE, self.action, target, stat.st_size)

    def transfer(self, source: Path, target: Path) -> None:
        raise NotImplementedError

    def finish(self) -> Iterable[TraversalEvent]:
        if self.context.option.synchronize:
            return self.synchronize()
        return ()

    def synchronize(self) -> Iterator[TraversalEvent]:
        """Delete destination entries without a surviving source counterpart.

        Destination entries are matched against the patterns as if they were
        relative to the mirrored root; pruned subtrees are left alone.
        """
        base = self.context.mirror_base
        if base is None or not base.is_dir():
            return

        patterns = self.context.patterns
        max_depth = self.context.option.max_depth
        token = self.context.token

        def sweep(directory: Path, relative: str, depth: int) -> Iterator[TraversalEvent]:
            with os.scandir(directory) as it:
                entries = sorted(it, key=lambda e: e.name)

            for entry in entries:
                if token.cancelled:
                    return
                path = Path(entry.path)
                child = f"{relative}/{entry.name}" if relative else entry.name

                if entry.is_dir(follow_symlinks=False):
                    if patterns.exclude_directory(child) or depth + 1 > max_depth:
                        continue
                    yield from sweep(path, child, depth + 1)
                    if (
                        path not in self.survivors
                        and is_empty_directory(path)
                        and (patterns.matches_everything or patterns.accepts(child, path))
                    ):
                        path.rmdir()
                        yield TraversalEvent(path, child, EntryKind.DIRECTORY, Action.DELETED)
                elif (
                    depth + 1 <= max_depth
                    and path not in self.survivors
                    and patterns.accepts(child, path)
                ):
                    size = entry.stat(follow_symlinks=False).st_size
                    path.unlink(missing_ok=True)
                    logger.debug("Synchronized away %s", path)
                    yield TraversalEvent(path, child, EntryKind.FILE, Action.DELETED, size=size)

        yield from sweep(base, "", 0)


class Copy(_Transfer):
    kind = OperationKind.COPY
    action = Action.COPIED

    def transfer(self, source: Path, target: Path) -> None:
        copy_entry(source, target)
        logger.debug("Copied %s to %s", source, target)


class Move(_Transfer):
    kind = OperationKind.MOVE
    action = Action.MOVED

    def __init__(self, context: WalkContext) -> None:
        super().__init__(context)
        self._cleanup = _SourceCleanup()

    def visit_file(
        self, path: Path, relative: str, stat: os.stat_result
    ) -> Iterable[TraversalEvent]:
        for event in super().visit_file(path, relative, stat):
            if event.action is Action.MOVED:
                self._cleanup.mark(relative)
            yield event

    def transfer(self, source: Path, target: Path) -> None:
        move_file(source, target)
        logger.debug("Moved %s to %s", source, target)

    def post_directory(self, directory: Path, relative: str) -> Iterable[TraversalEvent]:
        yield from super().post_directory(directory, relative)
        yield from self._cleanup.remove_if_emptied(self.context, directory, relative)


OPERATIONS: dict[OperationKind, type[TreeOperation]] = {
    OperationKind.COPY: Copy,
    OperationKind.MOVE: Move,
    OperationKind.DELETE: Delete,
    OperationKind.SCAN_FILES: ScanFiles,
    OperationKind.SCAN_DIRECTORIES: ScanDirectories,
}


def create_operation(kind: OperationKind, context: WalkContext) -> TreeOperation:
    """Select the operation variant for a run."""
    return OPERATIONS[kind](context)
