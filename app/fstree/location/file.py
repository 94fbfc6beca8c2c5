"""File locations."""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path
from typing import IO, TYPE_CHECKING, Any

from fstree.archive.transfer import unpack
from fstree.location.base import Location
from fstree.storage.atomic import AtomicWriter
from fstree.walk.glob import escape
from fstree.walk.models import TraversalEvent
from fstree.walk.operations import move_file
from fstree.walk.option import Option, OptionTransform, chain
from fstree.walk.stream import EventStream
from fstree.watch.engine import WatchCallback, WatchEngine

if TYPE_CHECKING:
    from fstree.location.directory import Directory

logger = logging.getLogger(__name__)


class File(Location):
    """A path that is (or is going to be) a regular file.

    Reading an absent file yields empty content and deleting one is a
    no-op. Copy, move and delete absorb failures and log them, returning
    what they could do.
    """

    @property
    def base_name(self) -> str:
        """Name without the last extension."""
        return self.path.stem

    @property
    def extension(self) -> str:
        """Last extension without the dot ("" if there is none)."""
        return self.path.suffix.removeprefix(".")

    def with_extension(self, extension: str) -> File:
        suffix = f".{extension}" if extension and not extension.startswith(".") else extension
        return File(self.path.with_suffix(suffix))

    def size(self) -> int:
        try:
            return self.path.stat().st_size
        except FileNotFoundError:
            return 0

    # Reading

    def text(self, encoding: str = "utf-8") -> str:
        try:
            return self.path.read_text(encoding=encoding)
        except FileNotFoundError:
            return ""

    def bytes(self) -> bytes:
        try:
            return self.path.read_bytes()
        except FileNotFoundError:
            return b""

    def lines(self, encoding: str = "utf-8") -> list[str]:
        return self.text(encoding).splitlines()

    # Writing

    def create(self) -> File:
        """Create the file (and its parents) if missing."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.touch(exist_ok=True)
        return self

    def open_writer(
        self,
        *,
        atomic: bool = False,
        append: bool = False,
        binary: bool = False,
        backup: bool = True,
    ) -> IO[Any] | AtomicWriter:
        """Open the file for writing, creating parent directories.

        Args:
            atomic: Publish the content only on close (see AtomicWriter).
            append: Keep the current content and write after it.
            binary: Write bytes instead of text.
            backup: Keep the replaced content as a .bak file (atomic only).
        """
        mode = ("a" if append else "w") + ("b" if binary else "")
        if atomic:
            return AtomicWriter(self.path, mode, backup=backup)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        if binary:
            return open(self.path, mode)  # noqa: SIM115
        return open(self.path, mode, encoding="utf-8")  # noqa: SIM115

    def write_text(self, text: str, *, atomic: bool = False, backup: bool = True) -> File:
        with self.open_writer(atomic=atomic, backup=backup) as out:
            out.write(text)
        return self

    def write_bytes(self, data: bytes, *, atomic: bool = False, backup: bool = True) -> File:
        with self.open_writer(atomic=atomic, binary=True, backup=backup) as out:
            out.write(data)
        return self

    # Tree-like operations

    def _target(self, destination: Directory | File, option: Option) -> Path:
        from fstree.location.directory import Directory

        if isinstance(destination, Directory):
            return destination.path.joinpath(*option.destination_sub_path.parts, self.name)
        return destination.path

    def copy_to(self, destination: Directory | File, option: OptionTransform | None = None) -> File:
        """Copy into a directory (keeping the name) or onto a file path.

        Returns:
            The destination file (unchanged if the policy skipped the copy).
        """
        resolved = chain(option)(Option())
        target = File(self._target(destination, resolved))
        try:
            if not resolved.can_replace(self.path, target.path):
                logger.debug("Skipped copying %s, %s is kept", self.path, target)
                return target
            target.path.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(self.path, target.path)
        except FileNotFoundError:
            logger.debug("Nothing to copy, %s does not exist", self.path)
        except OSError as e:
            logger.warning("Copying %s to %s failed: %s", self.path, target, e)
        return target

    def move_to(self, destination: Directory | File, option: OptionTransform | None = None) -> File:
        """Move into a directory (keeping the name) or onto a file path."""
        resolved = chain(option)(Option())
        target = File(self._target(destination, resolved))
        try:
            if not resolved.can_replace(self.path, target.path):
                logger.debug("Skipped moving %s, %s is kept", self.path, target)
                return self
            target.path.parent.mkdir(parents=True, exist_ok=True)
            move_file(self.path, target.path)
        except FileNotFoundError:
            logger.debug("Nothing to move, %s does not exist", self.path)
            return self
        except OSError as e:
            logger.warning("Moving %s to %s failed: %s", self.path, target, e)
            return self
        return target

    def rename_to(self, name: str) -> File:
        """Move within the same directory under a new name."""
        if "/" in name or os.sep in name:
            msg = f"New name must not contain a separator: {name!r}"
            raise ValueError(msg)
        return self.move_to(File(self.path.with_name(name)))

    def delete(self) -> None:
        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning("Deleting %s failed: %s", self.path, e)

    # Watching and archives

    def watch(self, on_event: WatchCallback) -> WatchEngine:
        """Watch this single file through its parent directory."""
        option = Option().glob(escape(self.name)).depth(1)
        return WatchEngine(self.path.parent, option).start(on_event)

    def observe_unpacking_to(
        self, destination: Directory, *patterns: str, option: OptionTransform | None = None
    ) -> EventStream[TraversalEvent]:
        """Stream the extraction of this archive into destination.

        Members land directly in destination; keep_root() adds a directory
        named after the archive.
        """
        resolved = chain(option)(Option().strip().glob(*patterns))
        return unpack(self.path, destination.path, resolved)

    def unpack_to(
        self, destination: Directory, *patterns: str, option: OptionTransform | None = None
    ) -> Directory:
        self.observe_unpacking_to(destination, *patterns, option=option).run_quietly(
            f"Unpacking {self.path}"
        )
        return destination

