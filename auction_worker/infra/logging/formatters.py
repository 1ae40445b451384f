"""JSON Lines formatter with OpenTelemetry span correlation."""

from __future__ import annotations

from datetime import UTC, datetime
import json
import logging
from typing import Any

from opentelemetry import trace

# Attributes every LogRecord has; anything else arrived through ``extra``.
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {
    "message",
    "asctime",
}


class JSONFormatter(logging.Formatter):
    """One JSON object per record, ready for Loki or Elasticsearch.

    Output keys come from ``fmt_keys`` (output key -> record attribute),
    then ``timestamp`` (UTC, millisecond ISO 8601), ``exception`` and
    ``stack_trace`` when present, the ``static`` fields, and every ``extra``
    or adapter-bound field. The active span, if any, is added as
    ``otel_trace_id`` / ``otel_span_id`` so that delivery ``trace_id``
    headers passed in ``extra`` are not overwritten.

        {"level": "INFO", "logger": "auction_worker.infra.messaging.lifecycle",
         "message": "Delivery settled", "timestamp": "2025-01-01T00:00:00.123Z",
         "service": "item-service", "event": "bid.placed", "outcome": "acked"}
    """

    def __init__(
        self,
        fmt_keys: dict[str, str] | None = None,
        static: dict[str, Any] | None = None,
    ) -> None:
        super().__init__()
        self.fmt_keys = fmt_keys or {"level": "levelname", "logger": "name", "message": "message"}
        self.static = static or {}

    def format(self, record: logging.LogRecord) -> str:
        record.message = record.getMessage()
        payload: dict[str, Any] = {
            key: getattr(record, attr, None) for key, attr in self.fmt_keys.items()
        }
        stamp = datetime.fromtimestamp(record.created, tz=UTC)
        payload["timestamp"] = stamp.isoformat(timespec="milliseconds").replace("+00:00", "Z")

        # exc_text is pre-rendered when the record came through the log queue
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        elif record.exc_text:
            payload["exception"] = record.exc_text
        if record.stack_info:
            payload["stack_trace"] = record.stack_info

        payload.update(self.static)
        for key, value in vars(record).items():
            if key not in _RECORD_ATTRS:
                payload.setdefault(key, value)

        span_context = trace.get_current_span().get_span_context()
        if span_context.is_valid:
            payload["otel_trace_id"] = format(span_context.trace_id, "032x")
            payload["otel_span_id"] = format(span_context.span_id, "016x")

        # str() covers Decimal, datetime and enum values passed as extras
        return json.dumps(payload, ensure_ascii=False, default=str)
