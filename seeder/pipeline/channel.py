"""
Bounded backpressure channel between the producer and the worker pool.
"""
import queue
import threading
from typing import Any, Iterator

from common.errors import ChannelClosedError

# Close marker; re-queued by whichever consumer sees it so every consumer stops
_CLOSED = object()


class BackpressureChannel:
    """
    Bounded FIFO hand-off with a one-time close signal.

    put() blocks the producer while the channel is full, get() blocks a
    consumer while it is empty. close() enqueues a marker behind every
    buffered item, so consumers drain all real items before they see the
    channel as exhausted.
    """

    def __init__(self, capacity: int):
        """
        Args:
            capacity: Maximum buffered items (batch size x worker count is a good default)
        """
        if capacity < 1:
            raise ValueError("channel capacity must be at least 1")
        self.capacity = capacity
        self._queue: "queue.Queue[Any]" = queue.Queue(maxsize=capacity)
        self._closed = False
        self._close_lock = threading.Lock()

    @property
    def closed(self) -> bool:
        return self._closed

    def qsize(self) -> int:
        """Approximate number of buffered items"""
        return self._queue.qsize()

    def put(self, item: Any) -> None:
        """Enqueue an item, blocking while the channel is full."""
        if self._closed:
            raise ChannelClosedError("put on closed channel")
        self._queue.put(item)

    def close(self) -> None:
        """Signal that no further items will arrive. Blocks while full."""
        with self._close_lock:
            if self._closed:
                raise ChannelClosedError("channel already closed")
            self._closed = True
        self._queue.put(_CLOSED)

    def get(self) -> Any:
        """Dequeue the next item, blocking while empty and open."""
        item = self._queue.get()
        if item is _CLOSED:
            # Only one marker exists and nothing else is enqueued after close,
            # so there is always room to hand it on to the next consumer
            self._queue.put_nowait(_CLOSED)
            raise ChannelClosedError("channel closed and drained")
        return item

    def __iter__(self) -> Iterator[Any]:
        while True:
            try:
                yield self.get()
            except ChannelClosedError:
                return
