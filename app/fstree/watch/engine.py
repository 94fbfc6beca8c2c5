"""Recursive directory watching on top of watchdog.

Every registered directory gets its own non-recursive watchdog watch, so
the set of watched directories follows the active patterns exactly:
pruned subtrees are never watched and depth limits are honoured. New
directories are registered as soon as their creation is seen, together
with any subdirectories they already contain (a whole tree moved in).

Notifications are queued by the observer thread and processed by one
receive thread per engine, which applies the patterns and calls the
consumer's callback.
"""

import logging
import os
import queue
import threading
from collections.abc import Callable
from pathlib import Path
from types import TracebackType

from watchdog.events import (
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer
from watchdog.observers.api import BaseObserver, ObservedWatch

from fstree.core.errors import WatchServiceClosedError
from fstree.walk.option import Option
from fstree.watch.models import WatchEvent, WatchKind, WatchState

logger = logging.getLogger(__name__)

WatchCallback = Callable[[WatchEvent], object]
ObserverFactory = Callable[[], BaseObserver]

_KINDS = {
    EVENT_TYPE_CREATED: WatchKind.CREATED,
    EVENT_TYPE_DELETED: WatchKind.DELETED,
    EVENT_TYPE_MODIFIED: WatchKind.MODIFIED,
}

# How often the receive loop checks that the observer is still alive.
_POLL_INTERVAL = 0.5
_JOIN_TIMEOUT = 5.0

_CLOSED = object()


class _QueueingHandler(FileSystemEventHandler):
    """Forwards every watchdog notification to the engine's queue."""

    def __init__(self, sink: "queue.Queue[object]") -> None:
        super().__init__()
        self._sink = sink

    def dispatch(self, event: FileSystemEvent) -> None:
        self._sink.put(event)


def _decode(path: str | bytes) -> Path:
    return Path(os.fsdecode(path))


class WatchEngine:
    """Long-running watch over a directory tree.

    Args:
        root: Directory to watch.
        option: Patterns and depth limit. Only accepted entries are reported.
        observer_factory: Builds the watchdog observer (injectable for tests).

    Example:
        >>> with WatchEngine(Path("src"), Option.of("**/*.py")).start(print):
        ...     input("Press enter to stop")
    """

    def __init__(
        self,
        root: Path,
        option: Option | None = None,
        *,
        observer_factory: ObserverFactory = Observer,
    ) -> None:
        self.root = Path(os.path.abspath(root))
        self.option = option or Option()
        self.state = WatchState.REGISTERING
        self.registrations: dict[Path, ObservedWatch] = {}

        self._observer_factory = observer_factory
        self._observer: BaseObserver | None = None
        self._queue: queue.Queue[object] = queue.Queue()
        self._handler = _QueueingHandler(self._queue)
        self._lock = threading.RLock()
        self._thread: threading.Thread | None = None
        self._on_event: WatchCallback | None = None
        # A lone "*" include only concerns the root's direct children.
        includes = [p for p in self.option.patterns if not p.startswith("!")]
        self._direct_children_only = includes == ["*"]

    def start(self, on_event: WatchCallback) -> "WatchEngine":
        """Register the tree and start delivering events to on_event.

        Raises:
            RuntimeError: If the engine was already started.
            OSError: If the root cannot be watched.
        """
        with self._lock:
            if self._observer is not None or self.state.is_terminal:
                msg = "WatchEngine can only be started once"
                raise RuntimeError(msg)
            self._on_event = on_event
            self._observer = self._observer_factory()

            self._register(self.root)
            if not self._direct_children_only:
                self._register_subdirectories(self.root, "")

            self._observer.start()
            self.state = WatchState.RUNNING

        self._thread = threading.Thread(
            target=self._loop, name=f"fstree-watch-{self.root.name}", daemon=True
        )
        self._thread.start()
        logger.info("Watching %s (%d directories)", self.root, len(self.registrations))
        return self

    # Registration

    def _register(self, directory: Path) -> None:
        with self._lock:
            if directory in self.registrations or self._observer is None:
                return
            watch = self._observer.schedule(self._handler, str(directory), recursive=False)
            self.registrations[directory] = watch
        logger.debug("Registered %s", directory)

    def _register_subdirectories(self, directory: Path, relative: str) -> None:
        patterns = self.option.pattern_set
        depth = relative.count("/") + 1 if relative else 0
        if depth + 1 >= self.option.max_depth:
            return

        try:
            with os.scandir(directory) as it:
                children = sorted(e.name for e in it if e.is_dir(follow_symlinks=False))
        except FileNotFoundError:
            return

        for name in children:
            child = f"{relative}/{name}" if relative else name
            if patterns.exclude_directory(child):
                continue
            path = directory / name
            self._register(path)
            self._register_subdirectories(path, child)

    def _register_created(self, path: Path, relative: str) -> None:
        if self._direct_children_only:
            return
        if self.option.pattern_set.within_excluded_directory(relative):
            return
        if relative.count("/") + 1 >= self.option.max_depth:
            return
        self._register(path)
        self._register_subdirectories(path, relative)

    # Event loop

    def _next(self) -> FileSystemEvent:
        """Block until the next notification.

        Raises:
            WatchServiceClosedError: When the engine was disposed or the
                observer died.
        """
        while True:
            try:
                item = self._queue.get(timeout=_POLL_INTERVAL)
            except queue.Empty:
                observer = self._observer
                if observer is None or not observer.is_alive():
                    msg = f"Watch service for {self.root} is closed"
                    raise WatchServiceClosedError(msg) from None
                continue
            if item is _CLOSED:
                msg = f"Watch service for {self.root} is closed"
                raise WatchServiceClosedError(msg)
            return item  # type: ignore[return-value]

    def _loop(self) -> None:
        while True:
            try:
                event = self._next()
            except WatchServiceClosedError:
                with self._lock:
                    if not self.state.is_terminal:
                        self.state = WatchState.SERVICE_CLOSED
                logger.debug("Watch loop for %s finished (%s)", self.root, self.state.value)
                return

            try:
                self._dispatch(event)
            except Exception as e:
                logger.warning("Ignoring failed notification %s: %s", event, e)

    def _dispatch(self, event: FileSystemEvent) -> None:
        """Map one watchdog notification onto high-level events."""
        if event.event_type == EVENT_TYPE_MOVED:
            self._emit(_decode(event.src_path), WatchKind.DELETED, event.is_directory)
            self._emit(_decode(event.dest_path), WatchKind.CREATED, event.is_directory)
            return

        kind = _KINDS.get(event.event_type)
        if kind is None:
            # opened / closed / closed_no_write
            return
        self._emit(_decode(event.src_path), kind, event.is_directory)

    def _emit(self, path: Path, kind: WatchKind, is_directory: bool) -> None:
        if path == self.root:
            return
        try:
            relative = path.relative_to(self.root).as_posix()
        except ValueError:
            return

        patterns = self.option.pattern_set
        if patterns.within_excluded_directory(relative):
            return
        if relative.count("/") + 1 > self.option.max_depth:
            return

        if not patterns.accepts(relative, path):
            return
        if self._on_event is not None:
            self._on_event(WatchEvent(path, relative, kind, is_directory))
        if kind is WatchKind.CREATED and is_directory:
            self._register_created(path, relative)

    # Disposal

    def dispose(self) -> None:
        """Stop watching. Safe to call repeatedly and from the callback."""
        with self._lock:
            if self.state.is_terminal:
                return
            self.state = WatchState.DISPOSED
            observer = self._observer

        if observer is not None:
            observer.stop()
            if observer.is_alive() and observer is not threading.current_thread():
                observer.join(_JOIN_TIMEOUT)
        self._queue.put(_CLOSED)

        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(_JOIN_TIMEOUT)
        logger.info("Stopped watching %s", self.root)

    @property
    def disposed(self) -> bool:
        return self.state.is_terminal

    def __enter__(self) -> "WatchEngine":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.dispose()


def watch(root: Path, on_event: WatchCallback, option: Option | None = None) -> WatchEngine:
    """Start watching root; dispose the returned engine to stop."""
    return WatchEngine(root, option).start(on_event)
