"""Prometheus metrics for the worker's infrastructure layers."""

from __future__ import annotations

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram

# Worker-owned registry; the default one also carries process collectors
REGISTRY = CollectorRegistry()

# Covers handler times from 1ms to 30s (the default processing deadline)
HANDLER_LATENCY_BUCKETS = (0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0)

# SQLAlchemy pool: fed by pool events (session.instrument_pool) and PoolMonitor
database_pool_size = Gauge(
    "database_pool_size",
    "pool_size the engine was created with.",
    registry=REGISTRY,
)
database_pool_max_overflow = Gauge(
    "database_pool_max_overflow",
    "max_overflow the engine was created with.",
    registry=REGISTRY,
)
database_pool_checkedout = Gauge(
    "database_pool_checkedout",
    "Connections handed out and not yet returned.",
    registry=REGISTRY,
)
database_pool_overflow = Gauge(
    "database_pool_overflow",
    "Connections open beyond pool_size.",
    registry=REGISTRY,
)
database_pool_checkout_time_seconds = Histogram(
    "database_pool_checkout_time_seconds",
    "How long a connection was held between checkout and checkin.",
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
    registry=REGISTRY,
)
database_pool_checkout_timeout_total = Counter(
    "database_pool_checkout_timeout_total",
    "Checkouts that gave up after pool_timeout; the pool is too small for the load.",
    registry=REGISTRY,
)
database_pool_invalidations_total = Counter(
    "database_pool_invalidations_total",
    "Connections discarded from the pool, by cause (error or explicit).",
    ["reason"],
    registry=REGISTRY,
)
database_pool_wait_seconds = Histogram(
    "database_pool_wait_seconds",
    "Time a unit of work waited for its connection, from request to checkout.",
    buckets=(0.0005, 0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
    registry=REGISTRY,
)
database_pool_waits_total = Counter(
    "database_pool_waits_total",
    "Connection requests that found no idle connection in the pool.",
    registry=REGISTRY,
)

# Messaging metrics
messaging_deliveries_total = Counter(
    "messaging_deliveries_total",
    "Deliveries settled by the lifecycle controller, by final outcome.",
    ["queue", "outcome"],
    registry=REGISTRY,
)

messaging_settle_failures_total = Counter(
    "messaging_settle_failures_total",
    "Ack or reject calls that raised. The broker redelivers such messages.",
    ["queue", "action"],
    registry=REGISTRY,
)

messaging_handler_duration_seconds = Histogram(
    "messaging_handler_duration_seconds",
    "Domain handler duration in seconds, including timed-out runs.",
    ["queue", "event"],
    buckets=HANDLER_LATENCY_BUCKETS,
    registry=REGISTRY,
)

messaging_handlers_in_flight = Gauge(
    "messaging_handlers_in_flight",
    "Deliveries currently holding a worker slot.",
    ["queue"],
    registry=REGISTRY,
)

messaging_queue_messages = Gauge(
    "messaging_queue_messages",
    "Ready message count reported by a passive queue declare.",
    ["queue"],
    registry=REGISTRY,
)
