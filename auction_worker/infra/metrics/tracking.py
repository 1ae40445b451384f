"""Thin call-site helpers over the metric objects, keyed by label values."""

from __future__ import annotations

import logging

from auction_worker.infra.metrics import business, prometheus

logger = logging.getLogger(__name__)


# retries


def track_retry_attempt(operation: str, attempt_number: int) -> None:
    """Count a retry; ``attempt_number`` is the 1-based attempt about to run."""
    business.retry_attempts_total.labels(
        operation=operation,
        attempt_number=str(attempt_number),
    ).inc()


def track_retry_exhausted(operation: str) -> None:
    """Count an operation that ran out of attempts."""
    business.retry_exhausted_total.labels(operation=operation).inc()


def track_retry_success(operation: str, attempts_needed: int) -> None:
    """Count an operation that succeeded only after retrying."""
    business.retry_success_after_failure_total.labels(
        operation=operation,
        attempts_needed=str(attempts_needed),
    ).inc()


# deliveries


def track_delivery(queue: str, outcome: str) -> None:
    """Count a settled delivery by outcome (acked, rejected_*)."""
    prometheus.messaging_deliveries_total.labels(queue=queue, outcome=outcome).inc()


def track_settle_failure(queue: str, action: str) -> None:
    """Count an ack/reject call that raised."""
    prometheus.messaging_settle_failures_total.labels(queue=queue, action=action).inc()


def observe_handler_duration(queue: str, event: str, seconds: float) -> None:
    """Record how long the domain handler ran for one delivery."""
    prometheus.messaging_handler_duration_seconds.labels(queue=queue, event=event).observe(
        seconds
    )


def update_handlers_in_flight(queue: str, count: int) -> None:
    """Mirror the dispatcher's in-flight count."""
    prometheus.messaging_handlers_in_flight.labels(queue=queue).set(count)


def update_queue_depth(queue: str, message_count: int) -> None:
    """Record a queue's ready-message count."""
    prometheus.messaging_queue_messages.labels(queue=queue).set(message_count)


# bids


def track_bid_conflict(event: str) -> None:
    """Count an optimistic-lock conflict while applying a bid event."""
    business.auction_bid_conflicts_total.labels(event=event).inc()


def track_bid_applied(event: str) -> None:
    """Count a bid event that was persisted."""
    business.auction_bids_applied_total.labels(event=event).inc()


def track_extension() -> None:
    """Count an anti-snipe end date extension."""
    business.auction_extensions_total.inc()


# database pool


def track_pool_checkout_timeout() -> None:
    """Count a pool checkout that exceeded pool_timeout."""
    prometheus.database_pool_checkout_timeout_total.inc()
    logger.warning("Database pool checkout timed out")


def observe_pool_wait(seconds: float, *, waited: bool) -> None:
    """Record one connection acquisition; ``waited`` when no idle connection was free."""
    prometheus.database_pool_wait_seconds.observe(seconds)
    if waited:
        prometheus.database_pool_waits_total.inc()
