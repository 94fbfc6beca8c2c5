"""Tree operation engine.

Runs one depth-first walk over a source directory and hands every step to
the operation variant selected for the run. The walk is lazy: it happens
while the returned EventStream is consumed, and stops at the next step
once the consumer cancels.

Walk rules:
- The root is depth 0. Directories at max_depth are visited but not
  descended into.
- Directories matching a "!dir/**" pattern are pruned with their subtree.
- Entries are visited in name order; symlinked directories are reported
  as files and never followed.
- An absent source produces an empty stream.
- Any OSError ends the stream with a TraversalError naming the entry.
"""

import logging
import os
from collections.abc import Callable, Iterable, Iterator
from pathlib import Path

from fstree.core.errors import FsTreeError, TraversalError
from fstree.walk.models import OperationKind, TraversalEvent
from fstree.walk.operations import TreeOperation, WalkContext, create_operation
from fstree.walk.option import Option, describe
from fstree.walk.stream import Cancellation, EventStream

logger = logging.getLogger(__name__)


def _guard(
    path: Path, step: Callable[..., Iterable[TraversalEvent]], *args: object
) -> Iterator[TraversalEvent]:
    try:
        yield from step(*args)
    except FsTreeError:
        raise
    except OSError as e:
        raise TraversalError(path, e) from e


def _relative_inside(path: Path, root: Path) -> str | None:
    try:
        relative = path.resolve().relative_to(root.resolve())
    except ValueError:
        return None
    return relative.as_posix() if relative.parts else None


class TreeOperationEngine:
    """Runs a copy, move, delete or scan over a directory tree.

    Args:
        source: Root directory of the traversal.
        destination: Destination root (copy and move only).
        kind: Which operation to run.
        option: Traversal configuration. Defaults to Option().

    Example:
        >>> engine = TreeOperationEngine(Path("src"), Path("out"), OperationKind.COPY)
        >>> copied = engine.run().to_list()
    """

    def __init__(
        self,
        source: Path,
        destination: Path | None,
        kind: OperationKind,
        option: Option | None = None,
    ) -> None:
        if kind.needs_destination and destination is None:
            msg = f"{kind.value} requires a destination"
            raise ValueError(msg)
        self.source = Path(source)
        self.destination = Path(destination) if destination is not None else None
        self.kind = kind
        self.option = option or Option()

    def run(self) -> EventStream[TraversalEvent]:
        """Return a cold stream that performs the operation when consumed."""
        return EventStream(self._produce)

    def _produce(self, token: Cancellation) -> Iterator[TraversalEvent]:
        if not self.source.is_dir():
            logger.debug("Nothing to %s, %s is not a directory", self.kind.value, self.source)
            return

        context = WalkContext(self.source, self.destination, self.option, token)
        operation = create_operation(self.kind, context)
        # The patterns compile lazily; compile them before touching anything.
        _ = context.patterns

        avoid = self._destination_inside_source(context)
        logger.debug(
            "Starting %s of %s (%s)", self.kind.value, self.source, describe(self.option)
        )

        count = 0
        for event in self._walk(operation, context, self.source, "", 0, avoid):
            count += 1
            yield event
        if token.cancelled:
            logger.debug("%s of %s cancelled", self.kind.value, self.source)
            return

        for event in _guard(self.source, operation.finish):
            count += 1
            yield event
        logger.info("Finished %s of %s: %d entries", self.kind.value, self.source, count)

    def _destination_inside_source(self, context: WalkContext) -> str | None:
        base = context.mirror_base
        if base is None:
            return None
        return _relative_inside(base, self.source)

    def _walk(
        self,
        operation: TreeOperation,
        context: WalkContext,
        directory: Path,
        relative: str,
        depth: int,
        avoid: str | None,
    ) -> Iterator[TraversalEvent]:
        token = context.token
        patterns = context.patterns
        max_depth = context.option.max_depth

        if token.cancelled:
            return
        if relative and (patterns.exclude_directory(relative) or relative == avoid):
            logger.debug("Pruned %s", directory)
            return

        yield from _guard(directory, operation.pre_directory, directory, relative)

        if depth < max_depth:
            try:
                with os.scandir(directory) as it:
                    entries = sorted(it, key=lambda e: e.name)
            except FileNotFoundError:
                entries = []
            except OSError as e:
                raise TraversalError(directory, e) from e

            for entry in entries:
                if token.cancelled:
                    return
                path = Path(entry.path)
                child = f"{relative}/{entry.name}" if relative else entry.name

                try:
                    is_directory = entry.is_dir(follow_symlinks=False)
                    stat = None if is_directory else entry.stat(follow_symlinks=False)
                except FileNotFoundError:
                    continue
                except OSError as e:
                    raise TraversalError(path, e) from e

                if is_directory:
                    yield from self._walk(operation, context, path, child, depth + 1, avoid)
                elif stat is not None and patterns.accepts(child, path, stat):
                    yield from _guard(path, operation.visit_file, path, child, stat)

        if token.cancelled:
            return
        yield from _guard(directory, operation.post_directory, directory, relative)


def run_operation(
    kind: OperationKind,
    source: Path,
    destination: Path | None = None,
    option: Option | None = None,
) -> EventStream[TraversalEvent]:
    """Shortcut for TreeOperationEngine(...).run()."""
    return TreeOperationEngine(source, destination, kind, option).run()
