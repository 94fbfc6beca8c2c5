"""Packing directory trees into archives and unpacking them again.

Both directions honour the same Option as tree operations: patterns pick
the entries, strip count and sub path decide entry names (pack) or
destination paths (unpack), and the conflict policy guards existing files
when unpacking. Attribute filters need real files and are not applied to
archive members.
"""

import logging
import os
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath

from fstree.archive.codec import ArchiveEntry, Opener, codec_for
from fstree.core.errors import FsTreeError, TraversalError
from fstree.storage.atomic import AtomicWriter
from fstree.walk.engine import TreeOperationEngine
from fstree.walk.models import Action, EntryKind, OperationKind, TraversalEvent
from fstree.walk.option import Option
from fstree.walk.stream import Cancellation, EventStream

logger = logging.getLogger(__name__)

_ARCHIVE_COPY_CHUNK = 1024 * 1024


def archive_stem(path: Path) -> str:
    """Archive name without its container extensions ("a.tar.gz" -> "a")."""
    name = path.name
    for suffix in (".gz", ".bz2", ".xz"):
        if name.lower().endswith(".tar" + suffix):
            return name[: -len(".tar" + suffix)]
    return path.stem


@dataclass(frozen=True)
class PackSource:
    """A directory tree or a single file written into an archive.

    Attributes:
        path: Directory (walked with option) or file (stored by its name).
        option: Patterns, depth, strip count and sub path for the entry names.
        prefix: Extra directory every entry name is placed under.
    """

    path: Path
    option: Option = field(default_factory=Option)
    prefix: PurePosixPath = PurePosixPath()


def _members(
    source: PackSource, archive: Path, token: Cancellation
) -> Iterator[tuple[TraversalEvent, PurePosixPath]]:
    """Yield the scanned files of one source with their member names."""
    path = source.path
    option = source.option

    if path.is_dir():
        scan = TreeOperationEngine(path, None, OperationKind.SCAN_FILES, option).run()
        for event in scan.iterate(token):
            if event.path == archive:
                continue
            target = option.destination_relative(path.name, event.relative_path)
            if target is not None:
                yield event, source.prefix / target
        return

    try:
        size = path.stat().st_size
    except FileNotFoundError:
        logger.debug("Nothing to pack, %s does not exist", path)
        return
    except OSError as e:
        raise TraversalError(path, e) from e
    event = TraversalEvent(path, path.name, EntryKind.FILE, Action.OBSERVED, size=size)
    yield event, source.prefix.joinpath(*option.destination_sub_path.parts, path.name)


def pack(source: Path, archive: Path, option: Option | None = None) -> EventStream[TraversalEvent]:
    """Write the accepted files below source into a new archive.

    Raises (through the stream):
        UnsupportedArchiveError: If the archive extension is unknown.
        TraversalError: On I/O failure.
    """
    return pack_all([PackSource(Path(source), option or Option())], archive)


def pack_all(sources: Sequence[PackSource], archive: Path) -> EventStream[TraversalEvent]:
    """Write several sources into one new archive, in order."""
    archive = Path(archive)
    sources = list(sources)

    def produce(token: Cancellation) -> Iterator[TraversalEvent]:
        codec = codec_for(archive)
        archive.parent.mkdir(parents=True, exist_ok=True)

        count = 0
        with codec.open_sink(archive) as sink:
            for source in sources:
                for event, name in _members(source, archive, token):
                    try:
                        modified = event.path.stat().st_mtime
                        sink.add(name.as_posix(), event.path, event.size, modified)
                    except OSError as e:
                        raise TraversalError(event.path, e) from e
                    count += 1
                    yield TraversalEvent(
                        event.path,
                        event.relative_path,
                        EntryKind.FILE,
                        Action.COPIED,
                        archive,
                        event.size,
                    )
                if token.cancelled:
                    return
        logger.info("Packed %d files into %s", count, archive)

    return EventStream(produce)


def _safe_name(name: str) -> PurePosixPath | None:
    path = PurePosixPath(name)
    if not path.parts or path.is_absolute() or ".." in path.parts:
        return None
    return path


def unpack(
    archive: Path, destination: Path, option: Option | None = None
) -> EventStream[TraversalEvent]:
    """Extract the accepted members of an archive below destination.

    Member names that are absolute or climb out with ".." are skipped.
    Files are written through AtomicWriter and get their archived
    modification time back.
    """
    option = option or Option()
    archive = Path(archive)
    destination = Path(destination)

    def produce(token: Cancellation) -> Iterator[TraversalEvent]:
        if not archive.is_file():
            logger.debug("Nothing to unpack, %s does not exist", archive)
            return

        codec = codec_for(archive)
        patterns = option.pattern_set
        root_name = archive_stem(archive)

        for entry, opener in codec.read_entries(archive):
            if token.cancelled:
                return

            name = _safe_name(entry.name)
            if name is None:
                logger.warning("Skipping unsafe archive member %r in %s", entry.name, archive)
                continue
            relative = name.as_posix()
            if len(name.parts) > option.max_depth:
                continue
            if patterns.within_excluded_directory(relative):
                continue
            if patterns.exclude(relative) or not patterns.include(relative):
                continue

            target = option.destination_for(
                destination, root_name, relative, is_directory=entry.is_directory
            )
            try:
                if entry.is_directory:
                    target.mkdir(parents=True, exist_ok=True)
                    continue
                yield _unpack_file(archive, relative, entry, opener, target, option)
            except FsTreeError:
                raise
            except OSError as e:
                raise TraversalError(target, e) from e

        logger.info("Unpacked %s into %s", archive, destination)

    return EventStream(produce)


def _unpack_file(
    archive: Path,
    relative: str,
    entry: ArchiveEntry,
    opener: Opener,
    target: Path,
    option: Option,
) -> TraversalEvent:
    member = archive / relative
    if not option.can_replace_with(member, entry.size, entry.modified, target):
        logger.debug("Skipped %s, %s is kept", relative, target)
        return TraversalEvent(
            archive, relative, EntryKind.FILE, Action.SKIPPED, target, entry.size
        )

    target.parent.mkdir(parents=True, exist_ok=True)
    with opener() as src, AtomicWriter(target, "wb", backup=False) as out:
        while chunk := src.read(_ARCHIVE_COPY_CHUNK):
            out.write(chunk)
    os.utime(target, (entry.modified, entry.modified))
    return TraversalEvent(archive, relative, EntryKind.FILE, Action.COPIED, target, entry.size)

