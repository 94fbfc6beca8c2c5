"""Atomic file writes.

All writes land on a temp file beside the destination. Only closing the
writer touches the destination path, through a single rename, so a
reader sees either the complete old content or the complete new one.

Close protocol:
1. Lock the destination (best effort).
2. Replace ``<name>.bak`` with a hard link to the current destination
   (best effort).
3. Rename the temp file onto the destination.
4. If the rename fails, copy the temp file over the destination instead;
   if that fails too, delete the temp file and raise AtomicWriteError.
"""

import atexit
import contextlib
import logging
import os
import secrets
import shutil
import threading
from pathlib import Path
from types import TracebackType
from typing import IO, Any

from fstree.core.errors import AtomicWriteError
from fstree.storage.locks import FileLock

logger = logging.getLogger(__name__)

TEMP_SUFFIX = ".atomic"
BACKUP_SUFFIX = ".bak"

_VALID_MODES = ("w", "wb", "a", "ab")

# Temp files not yet committed or discarded, removed at interpreter exit.
_pending: set[Path] = set()
_pending_lock = threading.Lock()


def _cleanup_pending() -> None:
    with _pending_lock:
        leftovers = list(_pending)
        _pending.clear()
    for path in leftovers:
        with contextlib.suppress(OSError):
            path.unlink()


atexit.register(_cleanup_pending)


def backup_path(destination: Path) -> Path:
    """Return the backup path used for a destination file."""
    return destination.with_name(destination.name + BACKUP_SUFFIX)


class AtomicWriter:
    """Writable handle that publishes its content atomically on close.

    Args:
        destination: File that receives the content on close.
        mode: "w"/"a" for text, "wb"/"ab" for bytes. Append modes start
            from the destination's current content.
        encoding: Text encoding for text modes (default utf-8).
        backup: Keep a hard-linked ``.bak`` of the replaced content.

    Example:
        >>> with AtomicWriter(Path("settings.toml")) as out:
        ...     out.write("key = 1\\n")
    """

    def __init__(
        self,
        destination: Path,
        mode: str = "w",
        encoding: str | None = None,
        *,
        backup: bool = True,
    ) -> None:
        if mode not in _VALID_MODES:
            msg = f"Unsupported mode {mode!r}, expected one of {_VALID_MODES}"
            raise ValueError(msg)

        self.destination = Path(destination)
        self.backup = backup
        self.temp_path = self._create_temp()

        try:
            if mode.startswith("a") and self.destination.is_file():
                shutil.copyfile(self.destination, self.temp_path)
            binary = mode.endswith("b")
            self._handle: IO[Any] = open(  # noqa: SIM115
                self.temp_path,
                "ab" if binary else "a",
                encoding=None if binary else (encoding or "utf-8"),
            )
        except OSError:
            self._forget_temp(delete=True)
            raise

        self._closed = False

    def _create_temp(self) -> Path:
        parent = self.destination.parent
        parent.mkdir(parents=True, exist_ok=True)

        while True:
            candidate = parent / f"{self.destination.name}.{secrets.token_hex(6)}{TEMP_SUFFIX}"
            try:
                fd = os.open(candidate, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o644)
            except FileExistsError:
                continue
            os.close(fd)
            with _pending_lock:
                _pending.add(candidate)
            return candidate

    def _forget_temp(self, *, delete: bool) -> None:
        with _pending_lock:
            _pending.discard(self.temp_path)
        if delete:
            with contextlib.suppress(FileNotFoundError):
                self.temp_path.unlink()

    @property
    def closed(self) -> bool:
        """Whether the writer was committed or discarded."""
        return self._closed

    def write(self, data: Any) -> int:
        """Write to the temp file."""
        return self._handle.write(data)

    def writelines(self, lines: Any) -> None:
        """Write a sequence of strings or bytes to the temp file."""
        self._handle.writelines(lines)

    def flush(self) -> None:
        """Flush buffered data to the temp file. The destination is untouched."""
        self._handle.flush()

    def discard(self) -> None:
        """Drop everything written so far and leave the destination as it was."""
        if self._closed:
            return
        self._closed = True
        self._handle.close()
        self._forget_temp(delete=True)
        logger.debug("Discarded atomic write to %s", self.destination)

    def close(self) -> None:
        """Publish the written content on the destination path.

        Raises:
            AtomicWriteError: If neither the atomic rename nor the fallback
                replace succeeded. The temp file is removed in that case.
        """
        if self._closed:
            return
        self._closed = True

        self._handle.flush()
        os.fsync(self._handle.fileno())
        self._handle.close()

        # Locking an absent destination would create it, so only existing
        # files are locked.
        existed = self.destination.is_file()
        lock = FileLock(self.destination)
        locked = False
        if existed:
            try:
                locked = lock.try_acquire()
            except OSError as e:
                logger.debug("Cannot lock %s, writing without lock: %s", self.destination, e)

        try:
            if self.backup and existed:
                self._link_backup()
            self._replace()
        finally:
            if locked:
                lock.release()

    def _link_backup(self) -> None:
        bak = backup_path(self.destination)
        try:
            bak.unlink(missing_ok=True)
            os.link(self.destination, bak)
        except OSError as e:
            logger.debug("Backup of %s skipped: %s", self.destination, e)

    def _replace(self) -> None:
        try:
            os.replace(self.temp_path, self.destination)
        except OSError as rename_error:
            logger.warning(
                "Atomic rename onto %s failed, falling back to copy: %s",
                self.destination,
                rename_error,
            )
            try:
                shutil.copyfile(self.temp_path, self.destination)
            except OSError as replace_error:
                self._forget_temp(delete=True)
                raise AtomicWriteError(self.destination, rename_error, replace_error) from (
                    replace_error
                )
            self._forget_temp(delete=True)
        else:
            self._forget_temp(delete=False)

    def __enter__(self) -> "AtomicWriter":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if exc_type is not None:
            self.discard()
        else:
            self.close()
