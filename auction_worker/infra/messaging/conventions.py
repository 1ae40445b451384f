"""Exchange, queue and routing key naming conventions.

Queues follow ``<service>.<domain>.<scope>.<version>`` (``auction.bid.all.v1``)
and routing keys ``<event>.<version>`` (``bid.placed.v1``). Every work
exchange and queue has a dead-letter twin derived from its name.
"""

from __future__ import annotations

DLX_SUFFIX = ".dlx"
DLQ_SUFFIX = ".dlq"


def dlx_name(exchange_name: str) -> str:
    """Dead-letter exchange paired with ``exchange_name``.

    Example:
        >>> dlx_name("auction.bid")
        'auction.bid.dlx'
    """
    return f"{exchange_name}{DLX_SUFFIX}"


def dlq_name(queue_name: str) -> str:
    """Dead-letter queue paired with ``queue_name``.

    Example:
        >>> dlq_name("auction.bid.all.v1")
        'auction.bid.all.v1.dlq'
    """
    return f"{queue_name}{DLQ_SUFFIX}"


def routing_key(event: str, version: str) -> str:
    """Routing key for an event name and schema version.

    Example:
        >>> routing_key("bid.placed", "v1")
        'bid.placed.v1'
    """
    if not version:
        return event
    return f"{event}.{version}"


def queue_name(service: str, domain: str, scope: str, version: str) -> str:
    """Fully qualified work queue name.

    Example:
        >>> queue_name("auction", "bid", "all", "v1")
        'auction.bid.all.v1'
    """
    parts = (service, domain, scope, version)
    if not all(parts):
        msg = "queue name parts must be non-empty"
        raise ValueError(msg)
    return ".".join(parts)


__all__ = [
    "DLQ_SUFFIX",
    "DLX_SUFFIX",
    "dlq_name",
    "dlx_name",
    "queue_name",
    "routing_key",
]
