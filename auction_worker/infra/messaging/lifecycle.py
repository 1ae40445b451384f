"""Per-delivery lifecycle: decode, handle under a deadline, settle once.

Settlement policy:

    decode failed            -> reject(requeue=False)  rejected_malformed
    handler exceeded timeout -> reject(requeue=False)  rejected_timeout
    handler raised           -> reject(requeue=False)  rejected_failed
    handler returned         -> ack()                  acked

Rejected deliveries are routed by the broker to the queue's dead-letter
exchange. Nothing is ever requeued.
"""

from __future__ import annotations

import asyncio
from enum import StrEnum
import logging
import time
from typing import TYPE_CHECKING

from opentelemetry import trace
from opentelemetry.trace import SpanKind, Status, StatusCode

from auction_worker.infra.messaging.events import DeliveryContext, DeliveryHeaders, Event
from auction_worker.infra.messaging.exceptions import EventDecodeError
from auction_worker.infra.metrics.tracking import (
    observe_handler_duration,
    track_delivery,
    track_settle_failure,
)

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from aio_pika.abc import AbstractIncomingMessage
    from opentelemetry.trace import Span, Tracer

    EventHandler = Callable[[Event, DeliveryContext], Awaitable[None]]


class DeliveryOutcome(StrEnum):
    """How a delivery was settled."""

    ACKED = "acked"
    REJECTED_MALFORMED = "rejected_malformed"
    REJECTED_FAILED = "rejected_failed"
    REJECTED_TIMEOUT = "rejected_timeout"

    @property
    def is_ack(self) -> bool:
        return self is DeliveryOutcome.ACKED


class DeliveryLifecycleController:
    """Run one delivery through decode, handling and settlement.

    The controller owns the settlement of every delivery it receives; the
    handler must not ack or reject on its own.
    """

    def __init__(
        self,
        handler: EventHandler,
        *,
        queue_name: str,
        processing_timeout: float = 30.0,
        logger: logging.Logger | logging.LoggerAdapter | None = None,
        tracer: Tracer | None = None,
    ) -> None:
        if processing_timeout <= 0:
            msg = "processing_timeout must be positive"
            raise ValueError(msg)
        self._handler = handler
        self._queue_name = queue_name
        self._processing_timeout = processing_timeout
        self._logger = logger or logging.getLogger(__name__)
        self._tracer = tracer or trace.get_tracer(__name__)

    @property
    def processing_timeout(self) -> float:
        return self._processing_timeout

    async def __call__(self, message: AbstractIncomingMessage) -> DeliveryOutcome:
        headers = DeliveryHeaders.from_amqp(message.headers)
        routing_key = message.routing_key or ""

        with self._tracer.start_as_current_span("message.process", kind=SpanKind.CONSUMER) as span:
            span.set_attribute("messaging.system", "rabbitmq")
            span.set_attribute("messaging.destination.name", self._queue_name)
            span.set_attribute("messaging.rabbitmq.destination.routing_key", routing_key)

            try:
                event = Event.from_body(message.body)
            except EventDecodeError as exc:
                context = DeliveryContext.build(
                    routing_key=routing_key,
                    redelivered=bool(message.redelivered),
                    headers=headers,
                    logger=self._logger,
                )
                context.logger.warning(
                    "Malformed delivery body",
                    extra={"queue": self._queue_name, "error": str(exc)},
                )
                span.record_exception(exc)
                return await self._finish(
                    message, span, context, "", DeliveryOutcome.REJECTED_MALFORMED
                )

            context = DeliveryContext.build(
                routing_key=routing_key,
                redelivered=bool(message.redelivered),
                headers=headers,
                event=event,
                logger=self._logger,
            )
            span.set_attribute("messaging.event", event.event)
            if context.trace_id:
                span.set_attribute("auction.trace_id", context.trace_id)

            outcome = await self._handle(event, context, span)
            return await self._finish(message, span, context, event.event, outcome)

    async def _handle(
        self, event: Event, context: DeliveryContext, span: Span
    ) -> DeliveryOutcome:
        started = time.perf_counter()
        try:
            async with asyncio.timeout(self._processing_timeout) as deadline:
                await self._handler(event, context)
        except TimeoutError as exc:
            span.record_exception(exc)
            if deadline.expired():
                context.logger.error(
                    "Handler exceeded processing timeout",
                    extra={"event": event.event, "timeout": self._processing_timeout},
                )
                return DeliveryOutcome.REJECTED_TIMEOUT
            context.logger.exception("Handler failed", extra={"event": event.event})
            return DeliveryOutcome.REJECTED_FAILED
        except Exception as exc:
            span.record_exception(exc)
            context.logger.exception("Handler failed", extra={"event": event.event})
            return DeliveryOutcome.REJECTED_FAILED
        finally:
            observe_handler_duration(
                self._queue_name, event.event, time.perf_counter() - started
            )
        return DeliveryOutcome.ACKED

    async def _finish(
        self,
        message: AbstractIncomingMessage,
        span: Span,
        context: DeliveryContext,
        event_name: str,
        outcome: DeliveryOutcome,
    ) -> DeliveryOutcome:
        await self._settle(message, context, outcome)
        track_delivery(self._queue_name, outcome.value)

        span.set_attribute("messaging.outcome", outcome.value)
        if outcome.is_ack:
            span.set_status(Status(StatusCode.OK))
        else:
            span.set_status(Status(StatusCode.ERROR, outcome.value))

        context.logger.info(
            "Delivery settled",
            extra={
                "queue": self._queue_name,
                "event": event_name,
                "outcome": outcome.value,
                "redelivered": context.redelivered,
                "delivery_tag": message.delivery_tag,
            },
        )
        return outcome

    async def _settle(
        self,
        message: AbstractIncomingMessage,
        context: DeliveryContext,
        outcome: DeliveryOutcome,
    ) -> None:
        action = "ack" if outcome.is_ack else "reject"
        try:
            if outcome.is_ack:
                await message.ack()
            else:
                await message.reject(requeue=False)
        except Exception as exc:
            # the broker redelivers unsettled messages once the channel closes
            track_settle_failure(self._queue_name, action)
            context.logger.error(
                "Failed to settle delivery",
                extra={"queue": self._queue_name, "action": action, "error": str(exc)},
            )


__all__ = ["DeliveryLifecycleController", "DeliveryOutcome"]
