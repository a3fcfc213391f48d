"""
Test cases for the bounded work queue
"""
import asyncio

import pytest

from pipeline.queue import BoundedWorkQueue
from shared.exceptions import QueueClosedError


class TestBoundedWorkQueue:
    """Test cases for BoundedWorkQueue"""

    async def test_fifo(self):
        queue = BoundedWorkQueue(10)
        for i in range(3):
            await queue.enqueue(i)

        assert queue.count == 3
        assert [await queue.dequeue() for _ in range(3)] == [0, 1, 2]
        assert queue.count == 0

    def test_invalid_capacity(self):
        with pytest.raises(ValueError):
            BoundedWorkQueue(0)

    async def test_enqueue_blocks_until_dequeue_frees_space(self):
        queue = BoundedWorkQueue(3)
        for i in range(3):
            await queue.enqueue(i)

        blocked = asyncio.create_task(queue.enqueue(3))
        await asyncio.sleep(0.01)
        assert not blocked.done()

        assert await queue.dequeue() == 0
        await asyncio.wait_for(blocked, timeout=1)
        assert queue.count == 3
        assert [await queue.dequeue() for _ in range(3)] == [1, 2, 3]

    async def test_dequeue_waits_for_item(self):
        queue = BoundedWorkQueue(1)
        waiter = asyncio.create_task(queue.dequeue())
        await asyncio.sleep(0.01)
        assert not waiter.done()

        await queue.enqueue("job")
        assert await asyncio.wait_for(waiter, timeout=1) == "job"

    async def test_stop_event_wakes_idle_consumer(self):
        queue = BoundedWorkQueue(1)
        stop = asyncio.Event()
        waiter = asyncio.create_task(queue.dequeue(stop))
        await asyncio.sleep(0.01)

        stop.set()
        assert await asyncio.wait_for(waiter, timeout=1) is None

        # nothing was consumed on the way out
        await queue.enqueue("job")
        assert await queue.dequeue() == "job"

    async def test_enqueue_after_close_raises(self):
        queue = BoundedWorkQueue(1)
        queue.close()
        assert queue.closed
        with pytest.raises(QueueClosedError):
            await queue.enqueue("job")

    async def test_close_releases_blocked_producer(self):
        queue = BoundedWorkQueue(1)
        await queue.enqueue("first")
        blocked = asyncio.create_task(queue.enqueue("second"))
        await asyncio.sleep(0.01)

        queue.close()
        with pytest.raises(QueueClosedError):
            await asyncio.wait_for(blocked, timeout=1)

    async def test_closed_queue_drains_then_returns_none(self):
        queue = BoundedWorkQueue(5)
        await queue.enqueue("a")
        await queue.enqueue("b")
        queue.close()

        assert await queue.dequeue() == "a"
        assert await queue.dequeue() == "b"
        assert await queue.dequeue() is None

    async def test_close_wakes_idle_consumer(self):
        queue = BoundedWorkQueue(1)
        waiter = asyncio.create_task(queue.dequeue())
        await asyncio.sleep(0.01)

        queue.close()
        assert await asyncio.wait_for(waiter, timeout=1) is None

    async def test_many_producers_and_consumers(self):
        queue = BoundedWorkQueue(2)
        received = []

        async def produce(start):
            for i in range(start, start + 10):
                await queue.enqueue(i)

        async def consume():
            while (item := await queue.dequeue()) is not None:
                received.append(item)

        consumers = [asyncio.create_task(consume()) for _ in range(3)]
        await asyncio.gather(produce(0), produce(100))
        while queue.count:
            await asyncio.sleep(0.001)
        queue.close()
        await asyncio.wait_for(asyncio.gather(*consumers), timeout=1)

        assert sorted(received) == list(range(10)) + list(range(100, 110))
