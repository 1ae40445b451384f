"""Bounded-concurrency delivery dispatcher.

A single intake loop pulls deliveries off one queue and hands each to its
own task. A semaphore of ``worker_pool_size`` permits is acquired *before*
the task is created, so when every slot is busy the loop stops reading and
unacknowledged deliveries stay with the broker (bounded by the channel
prefetch).
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from auction_worker.infra.messaging.exceptions import DeliveryStreamClosedError
from auction_worker.infra.metrics.tracking import update_handlers_in_flight

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from aio_pika.abc import AbstractChannel, AbstractIncomingMessage

    DeliveryProcessor = Callable[[AbstractIncomingMessage], Awaitable[Any]]


class BoundedDispatcher:
    """Consume one queue with at most ``worker_pool_size`` concurrent handlers.

    Example:
        dispatcher = BoundedDispatcher(
            channel, "auction.bid.all.v1", prefetch_count=10, worker_pool_size=20
        )
        await dispatcher.run(controller)  # returns only via cancellation or error
    """

    def __init__(
        self,
        channel: AbstractChannel,
        queue_name: str,
        *,
        prefetch_count: int,
        worker_pool_size: int,
        consumer_tag: str | None = None,
        logger: logging.Logger | logging.LoggerAdapter | None = None,
    ) -> None:
        if worker_pool_size < 1:
            msg = "worker_pool_size must be at least 1"
            raise ValueError(msg)
        if prefetch_count < 1:
            msg = "prefetch_count must be at least 1"
            raise ValueError(msg)
        self._channel = channel
        self._queue_name = queue_name
        self._prefetch_count = prefetch_count
        self._worker_pool_size = worker_pool_size
        self._consumer_tag = consumer_tag
        self._logger = logger or logging.getLogger(__name__)
        self._slots = asyncio.Semaphore(worker_pool_size)
        self._tasks: set[asyncio.Task[None]] = set()
        self._in_flight = 0

    @property
    def in_flight(self) -> int:
        """Deliveries currently holding a worker slot."""
        return self._in_flight

    @property
    def worker_pool_size(self) -> int:
        return self._worker_pool_size

    async def run(self, process: DeliveryProcessor) -> None:
        """Consume until cancelled or the delivery stream ends.

        On cancellation intake stops first, then every in-flight delivery is
        awaited (not cancelled) so that it can settle, then the cancellation
        propagates.

        Raises:
            DeliveryStreamClosedError: The stream ended or the channel closed.
        """
        await self._channel.set_qos(prefetch_count=self._prefetch_count)
        queue = await self._channel.get_queue(self._queue_name)

        self._logger.info(
            "Consumer started",
            extra={
                "queue": self._queue_name,
                "prefetch_count": self._prefetch_count,
                "worker_pool_size": self._worker_pool_size,
            },
        )

        iterator_kwargs: dict[str, Any] = {"no_ack": False}
        if self._consumer_tag:
            iterator_kwargs["consumer_tag"] = self._consumer_tag

        try:
            async with queue.iterator(**iterator_kwargs) as stream:
                async for message in stream:
                    await self._slots.acquire()
                    self._spawn(process, message)
        except asyncio.CancelledError:
            self._logger.info(
                "Consumer stopping, draining in-flight deliveries",
                extra={"queue": self._queue_name, "in_flight": self._in_flight},
            )
            await self.drain()
            raise
        except Exception as exc:
            await self.drain()
            raise DeliveryStreamClosedError(
                "Delivery stream failed", details={"queue": self._queue_name, "error": str(exc)}
            ) from exc

        await self.drain()
        raise DeliveryStreamClosedError(
            "Delivery stream closed", details={"queue": self._queue_name}
        )

    async def drain(self) -> None:
        """Wait for every in-flight delivery task without cancelling it."""
        while self._tasks:
            await asyncio.wait(set(self._tasks))

    def _spawn(self, process: DeliveryProcessor, message: AbstractIncomingMessage) -> None:
        self._in_flight += 1
        update_handlers_in_flight(self._queue_name, self._in_flight)
        task = asyncio.create_task(self._run_one(process, message))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run_one(self, process: DeliveryProcessor, message: AbstractIncomingMessage) -> None:
        try:
            await process(message)
        except Exception:
            # the processor settles its own deliveries; anything reaching here is a bug
            self._logger.exception(
                "Delivery processor raised",
                extra={"queue": self._queue_name, "delivery_tag": message.delivery_tag},
            )
        finally:
            self._in_flight -= 1
            update_handlers_in_flight(self._queue_name, self._in_flight)
            self._slots.release()


__all__ = ["BoundedDispatcher"]
