"""Database infrastructure: engine, sessions, pool monitoring."""

from __future__ import annotations

from auction_worker.infra.database.monitor import (
    PoolMonitor,
    PoolStats,
    PoolWaitStats,
    sample_pool,
    sample_pool_waits,
)
from auction_worker.infra.database.session import (
    acquire_connection,
    close_database,
    create_engine,
    create_session_factory,
    init_database,
    instrument_pool,
)

__all__ = [
    "PoolMonitor",
    "PoolStats",
    "PoolWaitStats",
    "acquire_connection",
    "close_database",
    "create_engine",
    "create_session_factory",
    "init_database",
    "instrument_pool",
    "sample_pool",
    "sample_pool_waits",
]
