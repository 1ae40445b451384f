"""Unit tests for the bounded-concurrency dispatcher."""
from __future__ import annotations

import asyncio

import pytest

from auction_worker.infra.messaging.dispatcher import BoundedDispatcher
from auction_worker.infra.messaging.exceptions import DeliveryStreamClosedError
from auction_worker.infra.metrics.prometheus import REGISTRY
from tests.fakes import FakeChannel, FakeMessage, FakeQueue

QUEUE = "auction.bid.all.v1"


class ConcurrencyTracker:
    """Delivery processor that records peak concurrency."""

    def __init__(self, hold: float = 0.01) -> None:
        self.hold = hold
        self.current = 0
        self.peak = 0
        self.processed: list[int] = []

    async def __call__(self, message: FakeMessage) -> None:
        self.current += 1
        self.peak = max(self.peak, self.current)
        try:
            await asyncio.sleep(self.hold)
            self.processed.append(message.delivery_tag)
        finally:
            self.current -= 1


def _channel_with_queue() -> tuple[FakeChannel, FakeQueue]:
    channel = FakeChannel()
    queue = channel.add_queue(FakeQueue(QUEUE, durable=True))
    return channel, queue


async def _wait_until(predicate, timeout: float = 2.0) -> None:
    async with asyncio.timeout(timeout):
        while not predicate():
            await asyncio.sleep(0.001)


@pytest.mark.unit
class TestBoundedDispatcher:
    """Test suite for BoundedDispatcher."""

    async def test_burst_never_exceeds_worker_pool(self):
        """A burst larger than the pool is processed with at most pool-size handlers."""
        channel, queue = _channel_with_queue()
        queue.feed(*(FakeMessage(delivery_tag=n) for n in range(50)))
        queue.close_stream()
        tracker = ConcurrencyTracker()
        dispatcher = BoundedDispatcher(channel, QUEUE, prefetch_count=10, worker_pool_size=5)

        with pytest.raises(DeliveryStreamClosedError):
            await dispatcher.run(tracker)

        assert tracker.peak == 5
        assert sorted(tracker.processed) == list(range(50))
        assert dispatcher.in_flight == 0

    async def test_sets_channel_prefetch_and_consumer_tag(self):
        channel, queue = _channel_with_queue()
        queue.close_stream()
        dispatcher = BoundedDispatcher(
            channel, QUEUE, prefetch_count=7, worker_pool_size=2, consumer_tag="item-service"
        )

        with pytest.raises(DeliveryStreamClosedError):
            await dispatcher.run(ConcurrencyTracker())

        assert channel.prefetch_count == 7
        assert queue.streams[0].consumer_tag == "item-service"
        assert queue.streams[0].closed is True

    async def test_missing_queue_fails_before_consuming(self):
        dispatcher = BoundedDispatcher(FakeChannel(), QUEUE, prefetch_count=1, worker_pool_size=1)

        with pytest.raises(LookupError):
            await dispatcher.run(ConcurrencyTracker())

    async def test_stream_error_raises_stream_closed(self):
        channel, queue = _channel_with_queue()
        queue.feed(FakeMessage(delivery_tag=1))
        queue.fail_stream(ConnectionResetError("channel closed"))
        tracker = ConcurrencyTracker()
        dispatcher = BoundedDispatcher(channel, QUEUE, prefetch_count=1, worker_pool_size=1)

        with pytest.raises(DeliveryStreamClosedError) as exc_info:
            await dispatcher.run(tracker)

        assert isinstance(exc_info.value.__cause__, ConnectionResetError)
        # the delivery taken before the failure still finished
        assert tracker.processed == [1]

    async def test_processor_errors_release_slots(self):
        """A failing processor does not leak worker slots."""
        channel, queue = _channel_with_queue()
        queue.feed(*(FakeMessage(delivery_tag=n) for n in range(3)))
        queue.close_stream()
        calls: list[int] = []

        async def explode(message: FakeMessage) -> None:
            calls.append(message.delivery_tag)
            raise RuntimeError("bug")

        dispatcher = BoundedDispatcher(channel, QUEUE, prefetch_count=1, worker_pool_size=1)

        with pytest.raises(DeliveryStreamClosedError):
            await dispatcher.run(explode)

        assert calls == [0, 1, 2]
        assert dispatcher.in_flight == 0

    async def test_cancellation_drains_in_flight(self):
        """Shutdown stops intake and waits for in-flight deliveries to finish."""
        channel, queue = _channel_with_queue()
        queue.feed(FakeMessage(delivery_tag=1), FakeMessage(delivery_tag=2))
        gate = asyncio.Event()
        finished: list[int] = []

        async def slow(message: FakeMessage) -> None:
            await gate.wait()
            finished.append(message.delivery_tag)

        dispatcher = BoundedDispatcher(channel, QUEUE, prefetch_count=10, worker_pool_size=4)
        task = asyncio.create_task(dispatcher.run(slow))
        await _wait_until(lambda: dispatcher.in_flight == 2)

        task.cancel()
        asyncio.get_running_loop().call_later(0.02, gate.set)

        with pytest.raises(asyncio.CancelledError):
            await task

        assert sorted(finished) == [1, 2]
        assert dispatcher.in_flight == 0

    async def test_intake_pauses_when_pool_is_full(self):
        """With every slot busy the next delivery stays unread."""
        channel, queue = _channel_with_queue()
        queue.feed(*(FakeMessage(delivery_tag=n) for n in range(3)))
        gate = asyncio.Event()

        async def blocked(message: FakeMessage) -> None:
            await gate.wait()

        dispatcher = BoundedDispatcher(channel, QUEUE, prefetch_count=10, worker_pool_size=2)
        task = asyncio.create_task(dispatcher.run(blocked))
        await _wait_until(lambda: dispatcher.in_flight == 2)
        await asyncio.sleep(0.01)

        assert dispatcher.in_flight == 2
        assert queue.deliveries.qsize() == 0  # third delivery taken, waiting for a slot
        assert REGISTRY.get_sample_value("messaging_handlers_in_flight", {"queue": QUEUE}) == 2

        gate.set()
        queue.close_stream()
        with pytest.raises(DeliveryStreamClosedError):
            await task

    def test_rejects_non_positive_sizes(self):
        with pytest.raises(ValueError):
            BoundedDispatcher(FakeChannel(), QUEUE, prefetch_count=1, worker_pool_size=0)
        with pytest.raises(ValueError):
            BoundedDispatcher(FakeChannel(), QUEUE, prefetch_count=0, worker_pool_size=1)
