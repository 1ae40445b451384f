"""Broker topology declaration.

One consumer owns one durable work queue bound to a topic exchange, plus a
dead-letter exchange/queue pair that receives every rejected delivery:

    auction.bid  --bid.*.v1-->  auction.bid.all.v1
        (reject, requeue=False)          |
                                         v
    auction.bid.dlx --bid.*.v1-->  auction.bid.all.v1.dlq

Declarations are idempotent; re-running them against an existing, matching
topology is a no-op. A mismatching pre-existing declaration closes the
channel with PRECONDITION_FAILED, which surfaces as TopologyError.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from aio_pika import ExchangeType

from auction_worker.infra.messaging.conventions import dlq_name, dlx_name
from auction_worker.infra.messaging.exceptions import TopologyError

if TYPE_CHECKING:
    from aio_pika.abc import AbstractChannel, AbstractQueue

    from auction_worker.core.settings.consumer import ConsumerSettings

logger = logging.getLogger(__name__)

DEAD_LETTER_EXCHANGE_ARG = "x-dead-letter-exchange"


@dataclass(frozen=True, slots=True)
class TopologySpec:
    """Names that make up one consumer's topology."""

    exchange_name: str
    queue_name: str
    routing_keys: tuple[str, ...]
    service_name: str = ""

    def __post_init__(self) -> None:
        if not self.exchange_name or not self.queue_name:
            raise TopologyError("Exchange and queue names are required")
        if not self.routing_keys or any(not key for key in self.routing_keys):
            raise TopologyError(
                "At least one non-empty routing key is required",
                details={"queue": self.queue_name},
            )

    @property
    def dlx_name(self) -> str:
        return dlx_name(self.exchange_name)

    @property
    def dlq_name(self) -> str:
        return dlq_name(self.queue_name)

    @classmethod
    def from_settings(cls, settings: ConsumerSettings) -> TopologySpec:
        return cls(
            exchange_name=settings.exchange_name,
            queue_name=settings.queue_name,
            routing_keys=tuple(settings.routing_keys),
            service_name=settings.service_name,
        )


async def declare_topology(channel: AbstractChannel, spec: TopologySpec) -> AbstractQueue:
    """Declare exchange, DLX, work queue, DLQ and all bindings.

    The DLQ is bound before the work queue starts receiving so that a
    delivery rejected immediately after binding is never dropped.

    Returns:
        The declared work queue.

    Raises:
        TopologyError: Any declaration or binding failed.
    """
    log_extra = {
        "exchange": spec.exchange_name,
        "queue": spec.queue_name,
        "routing_keys": list(spec.routing_keys),
    }
    try:
        exchange = await channel.declare_exchange(
            spec.exchange_name, ExchangeType.TOPIC, durable=True
        )
        dead_letter_exchange = await channel.declare_exchange(
            spec.dlx_name, ExchangeType.TOPIC, durable=True
        )
        queue = await channel.declare_queue(
            spec.queue_name,
            durable=True,
            arguments={DEAD_LETTER_EXCHANGE_ARG: spec.dlx_name},
        )
        dead_letter_queue = await channel.declare_queue(spec.dlq_name, durable=True)

        for key in spec.routing_keys:
            await dead_letter_queue.bind(dead_letter_exchange, routing_key=key)
        for key in spec.routing_keys:
            await queue.bind(exchange, routing_key=key)
    except Exception as exc:
        logger.error("Topology declaration failed", extra={**log_extra, "error": str(exc)})
        raise TopologyError(
            "Failed to declare broker topology",
            details={"queue": spec.queue_name, "error": str(exc)},
        ) from exc

    logger.info(
        "Topology declared",
        extra={**log_extra, "dlx": spec.dlx_name, "dlq": spec.dlq_name},
    )
    return queue


__all__ = ["DEAD_LETTER_EXCHANGE_ARG", "TopologySpec", "declare_topology"]
