"""Unit tests for the per-delivery lifecycle controller."""
from __future__ import annotations

import asyncio
import logging
from uuid import uuid4

import pytest

from auction_worker.infra.messaging.events import DeliveryContext, Event
from auction_worker.infra.messaging.lifecycle import (
    DeliveryLifecycleController,
    DeliveryOutcome,
)
from auction_worker.infra.metrics.prometheus import REGISTRY
from tests.fakes import FakeMessage, envelope


class RecordingHandler:
    def __init__(self, *, error: BaseException | None = None, delay: float = 0.0) -> None:
        self.error = error
        self.delay = delay
        self.calls: list[tuple[Event, DeliveryContext]] = []

    async def __call__(self, event: Event, context: DeliveryContext) -> None:
        self.calls.append((event, context))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error


def _queue() -> str:
    # a fresh label set per test keeps counter assertions independent
    return f"test.{uuid4().hex[:8]}"


def _deliveries(queue: str, outcome: str) -> float:
    return REGISTRY.get_sample_value(
        "messaging_deliveries_total", {"queue": queue, "outcome": outcome}
    ) or 0.0


@pytest.mark.unit
class TestDeliveryLifecycleController:
    """Test suite for DeliveryLifecycleController."""

    async def test_successful_handler_acks(self):
        queue = _queue()
        handler = RecordingHandler()
        controller = DeliveryLifecycleController(handler, queue_name=queue)
        message = FakeMessage(envelope(payload={"itemId": "item-1", "amount": 10}))

        outcome = await controller(message)

        assert outcome is DeliveryOutcome.ACKED
        assert message.acks == 1
        assert message.rejects == []
        assert handler.calls[0][0].event == "bid.placed"
        assert _deliveries(queue, "acked") == 1

    async def test_malformed_body_rejected_without_handler(self):
        """Undecodable bodies are dead-lettered and never reach the handler."""
        queue = _queue()
        handler = RecordingHandler()
        controller = DeliveryLifecycleController(handler, queue_name=queue)
        message = FakeMessage(b"{not json")

        outcome = await controller(message)

        assert outcome is DeliveryOutcome.REJECTED_MALFORMED
        assert handler.calls == []
        assert message.rejects == [False]
        assert message.acks == 0
        assert _deliveries(queue, "rejected_malformed") == 1

    async def test_missing_event_name_is_malformed(self):
        controller = DeliveryLifecycleController(RecordingHandler(), queue_name=_queue())
        message = FakeMessage({"version": "v1", "payload": {}})

        assert await controller(message) is DeliveryOutcome.REJECTED_MALFORMED
        assert message.rejects == [False]

    async def test_handler_error_rejects_without_requeue(self):
        queue = _queue()
        controller = DeliveryLifecycleController(
            RecordingHandler(error=RuntimeError("db down")), queue_name=queue
        )
        message = FakeMessage(envelope(payload={}))

        outcome = await controller(message)

        assert outcome is DeliveryOutcome.REJECTED_FAILED
        assert message.rejects == [False]
        assert message.acks == 0
        assert _deliveries(queue, "rejected_failed") == 1

    async def test_slow_handler_times_out(self):
        """A handler exceeding the deadline is cancelled and its delivery rejected."""
        queue = _queue()
        handler = RecordingHandler(delay=5.0)
        controller = DeliveryLifecycleController(handler, queue_name=queue, processing_timeout=0.05)
        message = FakeMessage(envelope(payload={}))

        outcome = await asyncio.wait_for(controller(message), timeout=2.0)

        assert outcome is DeliveryOutcome.REJECTED_TIMEOUT
        assert message.rejects == [False]
        assert _deliveries(queue, "rejected_timeout") == 1

    async def test_handler_raising_timeout_error_is_a_failure(self):
        """A TimeoutError from inside the handler is not mistaken for the deadline."""
        controller = DeliveryLifecycleController(
            RecordingHandler(error=TimeoutError("upstream")),
            queue_name=_queue(),
            processing_timeout=5.0,
        )
        message = FakeMessage(envelope(payload={}))

        assert await controller(message) is DeliveryOutcome.REJECTED_FAILED

    async def test_ack_failure_is_counted_not_raised(self):
        queue = _queue()
        controller = DeliveryLifecycleController(RecordingHandler(), queue_name=queue)
        message = FakeMessage(envelope(payload={}), ack_error=ConnectionError("channel closed"))

        outcome = await controller(message)

        assert outcome is DeliveryOutcome.ACKED
        assert message.acks == 1
        assert message.rejects == []
        assert REGISTRY.get_sample_value(
            "messaging_settle_failures_total", {"queue": queue, "action": "ack"}
        ) == 1

    async def test_reject_failure_is_counted_not_raised(self):
        queue = _queue()
        controller = DeliveryLifecycleController(RecordingHandler(), queue_name=queue)
        message = FakeMessage(b"[]", reject_error=ConnectionError("channel closed"))

        assert await controller(message) is DeliveryOutcome.REJECTED_MALFORMED
        assert REGISTRY.get_sample_value(
            "messaging_settle_failures_total", {"queue": queue, "action": "reject"}
        ) == 1

    @pytest.mark.parametrize(
        "handler",
        [
            RecordingHandler(),
            RecordingHandler(error=ValueError("bad")),
        ],
    )
    async def test_every_delivery_settled_exactly_once(self, handler):
        controller = DeliveryLifecycleController(handler, queue_name=_queue())
        message = FakeMessage(envelope(payload={}))

        await controller(message)

        assert message.settle_calls == 1

    async def test_header_identifiers_win_over_envelope(self):
        handler = RecordingHandler()
        controller = DeliveryLifecycleController(handler, queue_name=_queue())
        message = FakeMessage(
            envelope(payload={}, trace_id="body-trace", correlation_id="body-corr"),
            headers={"x-trace-id": "hdr-trace", "x-service": "api"},
            redelivered=True,
        )

        await controller(message)

        _, context = handler.calls[0]
        assert context.trace_id == "hdr-trace"
        assert context.correlation_id == "body-corr"
        assert context.headers.service == "api"
        assert context.redelivered is True
        assert context.routing_key == "bid.placed.v1"

    async def test_settlement_logged_with_outcome(self, caplog):
        logger = logging.getLogger("tests.lifecycle")
        controller = DeliveryLifecycleController(RecordingHandler(), queue_name=_queue(), logger=logger)
        message = FakeMessage(envelope(payload={}, trace_id="t-1"), delivery_tag=42)

        with caplog.at_level(logging.INFO, logger="tests.lifecycle"):
            await controller(message)

        settled = [r for r in caplog.records if r.getMessage() == "Delivery settled"]
        assert len(settled) == 1
        assert settled[0].outcome == "acked"
        assert settled[0].delivery_tag == 42
        assert settled[0].trace_id == "t-1"

    async def test_handler_duration_observed(self):
        queue = _queue()
        controller = DeliveryLifecycleController(RecordingHandler(), queue_name=queue)

        await controller(FakeMessage(envelope(event="bid.won", payload={})))

        assert REGISTRY.get_sample_value(
            "messaging_handler_duration_seconds_count", {"queue": queue, "event": "bid.won"}
        ) == 1

    def test_non_positive_timeout_rejected(self):
        with pytest.raises(ValueError):
            DeliveryLifecycleController(RecordingHandler(), queue_name="q", processing_timeout=0)
