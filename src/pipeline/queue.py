"""
Bounded FIFO work queue with close semantics.

Wraps `asyncio.Queue` so producers get backpressure when the queue is full,
consumers can be woken by a stop signal, and closing the queue releases
everyone blocked on it.
"""

import asyncio
from typing import Generic, Optional, TypeVar

from loguru import logger

from shared.exceptions import QueueClosedError

T = TypeVar("T")


class BoundedWorkQueue(Generic[T]):
    """Multi-producer, multi-consumer FIFO queue with a fixed capacity."""

    def __init__(self, capacity: int, name: str = "queue"):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.name = name
        self._capacity = capacity
        self._queue: asyncio.Queue[T] = asyncio.Queue(maxsize=capacity)
        self._closed = asyncio.Event()

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    @property
    def count(self) -> int:
        """Current depth (a snapshot, may be stale immediately)."""
        return self._queue.qsize()

    def close(self) -> None:
        """Stop accepting items. Blocked producers raise, idle consumers return None."""
        if not self.closed:
            logger.debug(f"Closing {self.name} queue ({self.count} items left)")
            self._closed.set()

    async def enqueue(self, item: T) -> None:
        """
        Add an item, waiting while the queue is full.

        Raises:
            QueueClosedError: the queue is closed, or was closed while waiting
        """
        if self.closed:
            raise QueueClosedError(f"{self.name} queue is closed")

        if not self._queue.full():
            self._queue.put_nowait(item)
            return

        put_task = asyncio.ensure_future(self._queue.put(item))
        closed_task = asyncio.ensure_future(self._closed.wait())
        try:
            await asyncio.wait({put_task, closed_task}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            closed_task.cancel()
            if not put_task.done():
                put_task.cancel()

        if put_task.done() and not put_task.cancelled():
            return
        raise QueueClosedError(f"{self.name} queue was closed while waiting for space")

    async def dequeue(self, stop_event: Optional[asyncio.Event] = None) -> Optional[T]:
        """
        Take the next item, waiting while the queue is empty.

        Returns None when the stop event is set, or when the queue is closed
        and has been drained.
        """
        while True:
            if stop_event is not None and stop_event.is_set():
                return None
            if not self._queue.empty():
                return self._queue.get_nowait()
            if self.closed:
                return None

            get_task = asyncio.ensure_future(self._queue.get())
            signals = [asyncio.ensure_future(self._closed.wait())]
            if stop_event is not None:
                signals.append(asyncio.ensure_future(stop_event.wait()))

            try:
                await asyncio.wait([get_task, *signals], return_when=asyncio.FIRST_COMPLETED)
            finally:
                for signal in signals:
                    signal.cancel()
                if not get_task.done():
                    get_task.cancel()

            if get_task.done() and not get_task.cancelled():
                return get_task.result()
