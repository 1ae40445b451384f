"""Dead-letter inspection and manual replay.

The DLQ depth is the primary signal of stuck deliveries. Replay moves
dead-lettered messages back onto the work exchange under their original
routing key; each message leaves the DLQ only after its republish was
confirmed, so an interrupted replay never loses a message.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import TYPE_CHECKING, Any

from aio_pika import DeliveryMode, Message

from auction_worker.infra.metrics.tracking import update_queue_depth

if TYPE_CHECKING:
    from aio_pika.abc import AbstractChannel, AbstractIncomingMessage

    from auction_worker.infra.messaging.topology import TopologySpec

X_DEATH_HEADER = "x-death"


@dataclass(frozen=True, slots=True)
class QueueDepth:
    """Broker-reported counters of one queue."""

    name: str
    message_count: int
    consumer_count: int


async def queue_depths(channel: AbstractChannel, spec: TopologySpec) -> list[QueueDepth]:
    """Passively query the work queue and its DLQ.

    Raises whatever the broker raises for a missing queue; the channel is
    closed by the broker in that case.
    """
    return [await _passive_depth(channel, name) for name in (spec.queue_name, spec.dlq_name)]


async def _passive_depth(channel: AbstractChannel, name: str) -> QueueDepth:
    queue = await channel.get_queue(name, ensure=False)
    declaration = await queue.declare()
    depth = QueueDepth(
        name=name,
        message_count=declaration.message_count or 0,
        consumer_count=declaration.consumer_count or 0,
    )
    update_queue_depth(name, depth.message_count)
    return depth


def _text(value: Any) -> str:
    if isinstance(value, bytes | bytearray):
        return bytes(value).decode("utf-8", errors="replace")
    return str(value) if value is not None else ""


def original_routing_key(message: AbstractIncomingMessage) -> str:
    """Routing key the message carried before it was dead-lettered.

    Taken from the first ``x-death`` entry when present, otherwise from the
    delivery itself (dead-lettering keeps the key unless overridden).
    """
    deaths = (message.headers or {}).get(X_DEATH_HEADER)
    if isinstance(deaths, list | tuple):
        for death in deaths:
            if not isinstance(death, dict):
                continue
            keys = death.get("routing-keys")
            if isinstance(keys, list | tuple) and keys:
                return _text(keys[0])
    return message.routing_key or ""


def _republished(message: AbstractIncomingMessage) -> Message:
    headers = {k: v for k, v in (message.headers or {}).items() if k != X_DEATH_HEADER}
    return Message(
        body=message.body,
        headers=headers,
        content_type=message.content_type or "application/json",
        content_encoding=message.content_encoding,
        correlation_id=message.correlation_id,
        message_id=message.message_id,
        timestamp=message.timestamp,
        type=message.type,
        app_id=message.app_id,
        delivery_mode=DeliveryMode.PERSISTENT,
    )


async def replay_dead_letters(
    channel: AbstractChannel,
    spec: TopologySpec,
    *,
    limit: int | None = None,
    logger: logging.Logger | logging.LoggerAdapter | None = None,
) -> int:
    """Republish dead-lettered messages to the work exchange.

    Args:
        limit: Maximum number of messages to move. ``None`` moves the
            messages present when the replay starts; messages that are
            dead-lettered again meanwhile stay in the DLQ for a later run.

    Returns:
        Number of messages replayed.

    Raises:
        Exception: A publish failed. The failing message is returned to the
            DLQ and earlier replays stay done.
    """
    log = logger or logging.getLogger(__name__)
    if limit is not None and limit < 0:
        msg = "limit must be non-negative"
        raise ValueError(msg)

    exchange = await channel.get_exchange(spec.exchange_name, ensure=True)
    dlq = await channel.get_queue(spec.dlq_name, ensure=True)

    # Bounded by the starting depth: a replayed poison message is rejected
    # by the running worker and lands back in this DLQ.
    depth = await _passive_depth(channel, spec.dlq_name)
    budget = depth.message_count if limit is None else min(limit, depth.message_count)

    replayed = 0
    while replayed < budget:
        message = await dlq.get(no_ack=False, fail=False)
        if message is None:
            break

        key = original_routing_key(message)
        try:
            await exchange.publish(_republished(message), routing_key=key)
        except Exception:
            log.exception(
                "Replay publish failed, returning message to DLQ",
                extra={"dlq": spec.dlq_name, "routing_key": key},
            )
            await message.nack(requeue=True)
            raise

        await message.ack()
        replayed += 1
        log.info(
            "Replayed dead-lettered message",
            extra={"dlq": spec.dlq_name, "exchange": spec.exchange_name, "routing_key": key},
        )

    log.info("Dead-letter replay finished", extra={"dlq": spec.dlq_name, "replayed": replayed})
    return replayed


__all__ = [
    "X_DEATH_HEADER",
    "QueueDepth",
    "original_routing_key",
    "queue_depths",
    "replay_dead_letters",
]
