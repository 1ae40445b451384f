"""Database engine and session management with psycopg3 async driver.

The worker builds its engine explicitly from ``PostgresSettings`` at startup
instead of at import time, so tests can point the same helpers at SQLite.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Any

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import (
    AsyncConnection,
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from auction_worker.infra.metrics.prometheus import (
    database_pool_checkedout,
    database_pool_checkout_time_seconds,
    database_pool_invalidations_total,
    database_pool_max_overflow,
    database_pool_overflow,
    database_pool_size,
)
from auction_worker.infra.metrics.tracking import observe_pool_wait
from auction_worker.utils.retry import retry

if TYPE_CHECKING:
    from auction_worker.core.settings.postgres import PostgresSettings

logger = logging.getLogger(__name__)


def create_engine(db_settings: PostgresSettings) -> AsyncEngine:
    """Create an instrumented async engine from database settings."""
    engine = create_async_engine(db_settings.url, **db_settings.sqlalchemy_engine_kwargs())
    database_pool_size.set(db_settings.pool_size)
    database_pool_max_overflow.set(db_settings.max_overflow)
    instrument_pool(engine)
    return engine


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory used by handlers: one session per unit of work."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


_HOLD_START = "auction_worker.checkout_at"


def _current_overflow(pool: Any) -> int:
    # Only QueuePool tracks overflow; StaticPool/NullPool report none.
    overflow = getattr(pool, "overflow", None)
    return max(0, overflow()) if callable(overflow) else 0


def instrument_pool(engine: AsyncEngine) -> None:
    """Feed the database_pool_* metrics from the engine's pool events.

    Checkout marks the connection record with a start time; checkin observes
    how long it was held. Invalidations are counted by cause.
    """
    pool = engine.sync_engine.pool

    def on_checkout(_dbapi_conn: Any, record: Any, _proxy: Any) -> None:
        record.info[_HOLD_START] = time.perf_counter()
        database_pool_checkedout.inc()
        database_pool_overflow.set(_current_overflow(pool))

    def on_checkin(_dbapi_conn: Any, record: Any) -> None:
        started = record.info.pop(_HOLD_START, None)
        if started is None:
            # Connection was invalidated or never handed out.
            return
        database_pool_checkout_time_seconds.observe(time.perf_counter() - started)
        database_pool_checkedout.dec()
        database_pool_overflow.set(_current_overflow(pool))

    def on_invalidate(_dbapi_conn: Any, _record: Any, exception: BaseException | None) -> None:
        cause = "explicit" if exception is None else "error"
        database_pool_invalidations_total.labels(reason=cause).inc()
        logger.debug("Pooled connection invalidated", extra={"reason": cause})

    event.listen(pool, "checkout", on_checkout)
    event.listen(pool, "checkin", on_checkin)
    event.listen(pool, "invalidate", on_invalidate)


async def acquire_connection(session: AsyncSession) -> AsyncConnection:
    """Check out the session's connection, recording how long it took.

    A session that already holds a connection returns it unrecorded. The
    request counts as a wait when the pool had no idle connection to hand
    out, so it had to open one or queue behind other holders.
    """
    if session.in_transaction():
        return await session.connection()

    idle = getattr(getattr(session.get_bind(), "pool", None), "checkedin", None)
    waited = callable(idle) and idle() == 0
    started = time.perf_counter()
    connection = await session.connection()
    observe_pool_wait(time.perf_counter() - started, waited=waited)
    return connection


async def init_database(engine: AsyncEngine, db_settings: PostgresSettings) -> None:
    """Ping the database, retrying while it is still starting."""

    @retry(
        max_attempts=db_settings.startup_retry_attempts,
        initial_delay=db_settings.startup_retry_delay,
        max_delay=30.0,
        operation="init_database",
    )
    async def ping() -> None:
        async with engine.connect() as connection:
            await connection.execute(text("SELECT 1"))

    logger.info(
        "Connecting to database",
        extra={"host": db_settings.host, "database": db_settings.name},
    )
    await ping()
    logger.info(
        "Database reachable",
        extra={"pool_size": db_settings.pool_size, "max_overflow": db_settings.max_overflow},
    )


async def close_database(engine: AsyncEngine) -> None:
    """Dispose the engine and its pooled connections."""
    await engine.dispose()
    logger.info("Database engine disposed")


__all__ = [
    "acquire_connection",
    "close_database",
    "create_engine",
    "create_session_factory",
    "init_database",
    "instrument_pool",
]
