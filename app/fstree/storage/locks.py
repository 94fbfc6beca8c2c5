"""Advisory file locks for cross-process coordination.

Locks are always attempted without blocking. Two cooperating processes
must never wait on each other, so a held lock is reported as
unavailable instead.
"""

import logging
import os
import sys
from pathlib import Path
from types import TracebackType

from fstree.core.errors import LockUnavailableError

if sys.platform == "win32":
    import msvcrt
else:
    import fcntl

logger = logging.getLogger(__name__)


class FileLock:
    """Exclusive, non-blocking advisory lock on a single file.

    The lock file is created if missing. Locks belong to the open file
    handle, so a second FileLock on the same path fails even inside the
    process that holds the first one.

    Attributes:
        path: Path of the lock file.
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        self._fd: int | None = None

    @property
    def held(self) -> bool:
        """Whether this instance currently holds the lock."""
        return self._fd is not None

    def try_acquire(self) -> bool:
        """Try to take the lock without waiting.

        Returns:
            True if the lock is now held, False if another holder has it.

        Raises:
            OSError: If the lock file cannot be opened.
        """
        if self._fd is not None:
            return True

        fd = os.open(self.path, os.O_RDWR | os.O_CREAT, 0o644)
        try:
            _lock(fd)
        except OSError:
            os.close(fd)
            return False

        self._fd = fd
        return True

    def acquire(self) -> None:
        """Take the lock or raise.

        Raises:
            LockUnavailableError: If the lock is held by someone else.
        """
        try:
            acquired = self.try_acquire()
        except OSError as e:
            raise LockUnavailableError(f"Cannot open lock file {self.path}: {e}") from e
        if not acquired:
            raise LockUnavailableError(f"Lock is held elsewhere: {self.path}")

    def release(self) -> None:
        """Release the lock if held. Safe to call repeatedly."""
        if self._fd is None:
            return
        fd, self._fd = self._fd, None
        try:
            _unlock(fd)
        except OSError as e:
            logger.debug("Unlocking %s failed: %s", self.path, e)
        finally:
            os.close(fd)

    def __enter__(self) -> "FileLock":
        self.acquire()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.release()


def _lock(fd: int) -> None:
    if sys.platform == "win32":
        msvcrt.locking(fd, msvcrt.LK_NBLCK, 1)
    else:
        fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)


def _unlock(fd: int) -> None:
    if sys.platform == "win32":
        os.lseek(fd, 0, os.SEEK_SET)
        msvcrt.locking(fd, msvcrt.LK_UNLCK, 1)
    else:
        fcntl.flock(fd, fcntl.LOCK_UN)
