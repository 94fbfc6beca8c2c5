"""Cold, cancellable event streams.

An EventStream wraps a generator factory. Nothing runs until the stream
is iterated or subscribed, and every subscription runs the producer from
scratch. Producers receive a Cancellation token and check it between
steps; disposing a subscription sets the token.
"""

import logging
import threading
from collections.abc import Callable, Iterator
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


class Cancellation:
    """Thread-safe cancellation flag shared by a producer and its consumer."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


class Subscription:
    """Handle returned by EventStream.subscribe()."""

    def __init__(self, cancellation: Cancellation) -> None:
        self._cancellation = cancellation
        self._done = threading.Event()

    def dispose(self) -> None:
        """Ask the producer to stop at its next step."""
        self._cancellation.cancel()

    @property
    def disposed(self) -> bool:
        return self._cancellation.cancelled

    @property
    def done(self) -> bool:
        """Whether the stream has completed, failed or been cut short."""
        return self._done.is_set()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the stream finishes. Returns False on timeout."""
        return self._done.wait(timeout)

    def _finish(self) -> None:
        self._done.set()


Producer = Callable[[Cancellation], Iterator[T]]


class EventStream(Generic[T]):
    """Cold producer of items with completion, error and cancellation.

    Example:
        >>> stream = EventStream(lambda token: iter([1, 2, 3]))
        >>> stream.map(lambda n: n * 2).to_list()
        [2, 4, 6]
    """

    def __init__(self, producer: Producer[T]) -> None:
        self._producer = producer

    @classmethod
    def empty(cls) -> "EventStream[T]":
        return cls(lambda _token: iter(()))

    def iterate(self, token: Cancellation) -> Iterator[T]:
        """Run the producer under a token owned by the caller."""
        return self._producer(token)

    def __iter__(self) -> Iterator[T]:
        token = Cancellation()
        iterator = self._producer(token)
        try:
            yield from iterator
        finally:
            # Abandoning iteration counts as cancellation.
            token.cancel()
            close = getattr(iterator, "close", None)
            if close is not None:
                close()

    def subscribe(
        self,
        on_next: Callable[[T], object] | None = None,
        on_error: Callable[[BaseException], object] | None = None,
        on_complete: Callable[[], object] | None = None,
        *,
        cancellation: Cancellation | None = None,
    ) -> Subscription:
        """Run the stream synchronously, pushing items to callbacks.

        Errors raised by the producer go to on_error. Without an on_error
        callback they propagate to the caller. on_complete is not called
        when the subscription was disposed before the end.

        Args:
            on_next: Called for every item.
            on_error: Called with the failure that ended the stream.
            on_complete: Called after the last item.
            cancellation: Token to share with the caller, so that on_next
                (or another thread) can stop the stream midway.

        Returns:
            The (already finished) Subscription.
        """
        token = cancellation if cancellation is not None else Cancellation()
        subscription = Subscription(token)
        try:
            for item in self._producer(token):
                if on_next is not None:
                    on_next(item)
                if token.cancelled:
                    break
        except Exception as e:
            subscription._finish()
            if on_error is None:
                raise
            on_error(e)
            return subscription

        subscription._finish()
        if not token.cancelled and on_complete is not None:
            on_complete()
        return subscription

    def map(self, function: Callable[[T], R]) -> "EventStream[R]":
        producer = self._producer

        def mapped(token: Cancellation) -> Iterator[R]:
            for item in producer(token):
                yield function(item)

        return EventStream(mapped)

    def filter(self, predicate: Callable[[T], bool]) -> "EventStream[T]":
        producer = self._producer

        def filtered(token: Cancellation) -> Iterator[T]:
            for item in producer(token):
                if predicate(item):
                    yield item

        return EventStream(filtered)

    def take(self, count: int) -> "EventStream[T]":
        producer = self._producer

        def limited(token: Cancellation) -> Iterator[T]:
            if count <= 0:
                return
            for index, item in enumerate(producer(token), start=1):
                yield item
                if index >= count:
                    return

        return EventStream(limited)

    def to_list(self) -> list[T]:
        """Run the stream and collect every item. Errors propagate."""
        return list(self)

    def run(self) -> int:
        """Run the stream for its side effects. Returns the item count."""
        count = 0
        for _ in self:
            count += 1
        return count

    def run_quietly(self, description: str) -> int:
        """Run the stream, logging instead of raising on failure.

        Used by fire-and-forget entry points.
        """
        try:
            return self.run()
        except Exception as e:
            logger.warning("%s failed: %s", description, e)
            return 0
