"""Periodic connection pool statistics.

Samples the SQLAlchemy pool on a fixed interval, exports the numbers as
gauges and writes one log line per sample. Sustained overflow, a checked-out
count pinned at ``pool_size + max_overflow`` or a climbing wait count means
handlers are queueing for connections.
"""

from __future__ import annotations

import asyncio
from dataclasses import asdict, dataclass
import logging
from typing import TYPE_CHECKING

from auction_worker.infra.metrics.prometheus import (
    REGISTRY,
    database_pool_checkedout,
    database_pool_overflow,
)

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine


@dataclass(frozen=True, slots=True)
class PoolStats:
    """Snapshot of pool occupancy."""

    size: int
    checked_in: int
    checked_out: int
    overflow: int


@dataclass(frozen=True, slots=True)
class PoolWaitStats:
    """Connection waits since process start (see ``acquire_connection``)."""

    wait_count: int
    wait_duration_ms: float


def sample_pool(engine: AsyncEngine) -> PoolStats:
    """Read current pool counters; pools without a counter report 0."""
    pool = engine.sync_engine.pool

    def _read(name: str) -> int:
        method = getattr(pool, name, None)
        return int(method()) if callable(method) else 0

    return PoolStats(
        size=_read("size"),
        checked_in=_read("checkedin"),
        checked_out=_read("checkedout"),
        overflow=max(0, _read("overflow")),
    )


def sample_pool_waits() -> PoolWaitStats:
    """Cumulative wait count and total wait time from the exported metrics."""
    count = REGISTRY.get_sample_value("database_pool_waits_total") or 0.0
    seconds = REGISTRY.get_sample_value("database_pool_wait_seconds_sum") or 0.0
    return PoolWaitStats(wait_count=int(count), wait_duration_ms=round(seconds * 1000, 3))


class PoolMonitor:
    """Background task that reports pool statistics every ``interval`` seconds."""

    def __init__(
        self,
        engine: AsyncEngine,
        *,
        interval: float = 30.0,
        logger: logging.Logger | logging.LoggerAdapter | None = None,
    ) -> None:
        self._engine = engine
        self._interval = interval
        self._logger = logger or logging.getLogger(__name__)

    def report(self) -> PoolStats:
        """Take one sample, export it and log it with the wait totals."""
        stats = sample_pool(self._engine)
        database_pool_checkedout.set(stats.checked_out)
        database_pool_overflow.set(stats.overflow)
        self._logger.info(
            "Database pool stats", extra={**asdict(stats), **asdict(sample_pool_waits())}
        )
        return stats

    async def run(self) -> None:
        """Report until cancelled."""
        while True:
            await asyncio.sleep(self._interval)
            self.report()
