"""Structured logging for the worker.

JSON Lines output through a background queue listener, OpenTelemetry span
correlation, and per-delivery context bound explicitly with ``bind_logger``:

    log = bind_logger(__name__, trace_id="abc-123", correlation_id="req-9")
    log.info("Processing delivery")  # record carries both ids
"""

from auction_worker.infra.logging.config import configure_logging, setup_logging, shutdown
from auction_worker.infra.logging.context import ContextAdapter, bind_logger
from auction_worker.infra.logging.formatters import JSONFormatter

__all__ = [
    "ContextAdapter",
    "JSONFormatter",
    "bind_logger",
    "configure_logging",
    "setup_logging",
    "shutdown",
]
