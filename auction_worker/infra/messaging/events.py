"""Event envelope and per-delivery context.

Every message on the bid exchange carries the same JSON envelope:

    {"event": "bid.placed", "version": "v1", "timestamp": "...",
     "payload": {...}, "traceId": "...", "correlationId": "..."}

AMQP headers ``x-trace-id``, ``x-correlation-id`` and ``x-service`` carry
the same identifiers outside the body.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from auction_worker.infra.logging import ContextAdapter, bind_logger
from auction_worker.infra.messaging.conventions import routing_key as make_routing_key
from auction_worker.infra.messaging.exceptions import EventDecodeError

if TYPE_CHECKING:
    from collections.abc import Mapping

HEADER_TRACE_ID = "x-trace-id"
HEADER_CORRELATION_ID = "x-correlation-id"
HEADER_SERVICE = "x-service"


class Event(BaseModel):
    """Immutable event envelope decoded from a message body."""

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    event: str = Field(min_length=1, description="Event name, e.g. bid.placed")
    version: str = Field(default="", description="Schema version, e.g. v1")
    timestamp: datetime | None = Field(default=None, description="Occurrence time (RFC 3339)")
    payload: Any = Field(default=None, description="Event specific data")
    trace_id: str = Field(default="", alias="traceId")
    correlation_id: str = Field(default="", alias="correlationId")

    @property
    def routing_key(self) -> str:
        return make_routing_key(self.event, self.version)

    @classmethod
    def from_body(cls, body: bytes | str) -> Event:
        """Decode a message body.

        Raises:
            EventDecodeError: The body is not JSON, not an object, or misses
                the event name.
        """
        try:
            return cls.model_validate_json(body)
        except ValidationError as exc:
            raise EventDecodeError(
                "Malformed event envelope",
                details={"errors": exc.error_count(), "first_error": exc.errors()[0]["msg"]},
            ) from exc

    def to_body(self) -> bytes:
        """Encode using the wire field names."""
        return self.model_dump_json(by_alias=True).encode()


def _header_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes | bytearray):
        return bytes(value).decode("utf-8", errors="replace")
    return str(value)


@dataclass(frozen=True, slots=True)
class DeliveryHeaders:
    """Tracing headers of one delivery; missing values are empty strings."""

    trace_id: str = ""
    correlation_id: str = ""
    service: str = ""

    @classmethod
    def from_amqp(cls, headers: Mapping[str, Any] | None) -> DeliveryHeaders:
        """Extract known headers, never raising on odd types."""
        if not headers:
            return cls()
        return cls(
            trace_id=_header_text(headers.get(HEADER_TRACE_ID)),
            correlation_id=_header_text(headers.get(HEADER_CORRELATION_ID)),
            service=_header_text(headers.get(HEADER_SERVICE)),
        )


@dataclass(frozen=True, slots=True)
class DeliveryContext:
    """Explicit per-delivery context handed to domain handlers.

    ``logger`` is already bound to the delivery's identifiers so handlers
    never look up ambient state.
    """

    routing_key: str
    redelivered: bool
    headers: DeliveryHeaders
    logger: ContextAdapter

    @property
    def trace_id(self) -> str:
        return self.headers.trace_id

    @property
    def correlation_id(self) -> str:
        return self.headers.correlation_id

    @classmethod
    def build(
        cls,
        *,
        routing_key: str,
        redelivered: bool,
        headers: DeliveryHeaders,
        event: Event | None = None,
        logger: logging.Logger | logging.LoggerAdapter | None = None,
    ) -> DeliveryContext:
        """Create a context, filling identifiers missing from headers from the envelope."""
        if event is not None:
            headers = DeliveryHeaders(
                trace_id=headers.trace_id or event.trace_id,
                correlation_id=headers.correlation_id or event.correlation_id,
                service=headers.service,
            )
        bound = bind_logger(
            logger or logging.getLogger(__name__),
            trace_id=headers.trace_id,
            correlation_id=headers.correlation_id,
            source_service=headers.service,
            routing_key=routing_key,
        )
        return cls(
            routing_key=routing_key,
            redelivered=redelivered,
            headers=headers,
            logger=bound,
        )


__all__ = [
    "HEADER_CORRELATION_ID",
    "HEADER_SERVICE",
    "HEADER_TRACE_ID",
    "DeliveryContext",
    "DeliveryHeaders",
    "Event",
]
