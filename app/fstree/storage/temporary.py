"""Process-scoped temporary area with cross-process reclamation.

One shared root per machine holds one ``temporary<random>`` directory per
process. Each of those carries a ``lock`` sentinel file that its owner
keeps locked for as long as it lives. Another process may delete such a
directory only after it has aged past the staleness threshold and its
sentinel lock can be taken, which proves the owner is gone.
"""

import logging
import os
import secrets
import shutil
import tempfile
import threading
import time
from pathlib import Path
from types import TracebackType

from fstree.core.paths import ensure_temporary_root
from fstree.storage.locks import FileLock

logger = logging.getLogger(__name__)

DIRECTORY_PREFIX = "temporary"
SENTINEL_NAME = "lock"
DEFAULT_STALE_AFTER = 3600.0


class TemporaryArea:
    """Allocates unique, empty files and directories for one process.

    The area initialises itself lazily on first allocation. Callers own
    the instance and are expected to call dispose_all() (or use it as a
    context manager) when the process is done with it.

    Args:
        root: Shared root directory. Defaults to <system temp>/fstree.
        stale_after: Minimum age in seconds before another process's
            directory may be reclaimed.
    """

    def __init__(self, root: Path | None = None, stale_after: float = DEFAULT_STALE_AFTER) -> None:
        self._root = root
        self._stale_after = stale_after
        self._directory: Path | None = None
        self._sentinel: FileLock | None = None
        self._init_lock = threading.Lock()
        self._reclaimers: list[threading.Thread] = []
        self._disposed = False

    @property
    def directory(self) -> Path:
        """This process's own temporary directory (initialises the area)."""
        return self._ensure_initialized()

    def _ensure_initialized(self) -> Path:
        directory = self._directory
        if directory is not None:
            return directory

        with self._init_lock:
            if self._disposed:
                msg = "TemporaryArea has been disposed"
                raise RuntimeError(msg)
            if self._directory is None:
                self._directory = self._initialize()
            return self._directory

    def _initialize(self) -> Path:
        root = ensure_temporary_root(self._root)
        self._reclaim_stale(root)

        directory = Path(tempfile.mkdtemp(prefix=DIRECTORY_PREFIX, dir=root))
        sentinel = FileLock(directory / SENTINEL_NAME)
        if not sentinel.try_acquire():
            # Nobody else can know this directory yet.
            logger.warning("Could not lock fresh temporary directory %s", directory)
        self._sentinel = sentinel

        logger.debug("Temporary area initialised at %s", directory)
        return directory

    def _reclaim_stale(self, root: Path) -> None:
        now = time.time()

        for candidate in root.glob(f"{DIRECTORY_PREFIX}*"):
            try:
                if not candidate.is_dir():
                    continue
                age = now - candidate.stat().st_mtime
            except OSError:
                continue
            if age < self._stale_after:
                continue

            probe = FileLock(candidate / SENTINEL_NAME)
            try:
                owner_gone = probe.try_acquire()
            except OSError as e:
                logger.debug("Cannot probe %s: %s", candidate, e)
                continue
            probe.release()

            if not owner_gone:
                logger.debug("Temporary directory %s is still owned", candidate)
                continue

            logger.info("Reclaiming stale temporary directory %s", candidate)
            worker = threading.Thread(
                target=_delete_tree,
                args=(candidate,),
                name=f"fstree-reclaim-{candidate.name}",
                daemon=True,
            )
            worker.start()
            self._reclaimers.append(worker)

    def wait_for_reclamation(self, timeout: float | None = None) -> None:
        """Block until scheduled stale-directory deletions have finished."""
        for worker in self._reclaimers:
            worker.join(timeout)

    def allocate_file(self, suffix: str = "") -> Path:
        """Create a new empty file with an unguessable name.

        Args:
            suffix: Optional suffix such as ".zip".

        Returns:
            Path of the newly created file.
        """
        directory = self._ensure_initialized()
        while True:
            path = directory / f"{secrets.token_hex(8)}{suffix}"
            try:
                fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
            except FileExistsError:
                continue
            os.close(fd)
            return path

    def allocate_directory(self) -> Path:
        """Create a new empty directory with an unguessable name.

        Returns:
            Path of the newly created directory.
        """
        directory = self._ensure_initialized()
        while True:
            path = directory / secrets.token_hex(8)
            try:
                path.mkdir(mode=0o700)
            except FileExistsError:
                continue
            return path

    def dispose_all(self) -> None:
        """Release the sentinel lock and delete this process's directory."""
        with self._init_lock:
            self._disposed = True
            directory, self._directory = self._directory, None
            sentinel, self._sentinel = self._sentinel, None

        if sentinel is not None:
            sentinel.release()
        if directory is not None:
            _delete_tree(directory)

    def __enter__(self) -> "TemporaryArea":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.dispose_all()


def _delete_tree(path: Path) -> None:
    def _log_failure(function: object, failed: str, exc: BaseException) -> None:
        logger.warning("Could not delete %s: %s", failed, exc)

    shutil.rmtree(path, onexc=_log_failure)
