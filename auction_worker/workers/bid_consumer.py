"""Bid consumer worker process.

Startup order (any failure is fatal and ends the process):

    database ping -> broker connect -> topology -> consume

Shutdown: SIGINT/SIGTERM cancel the dispatcher, which stops intake, waits
for in-flight deliveries to settle and returns; the broker connection and
the engine are closed afterwards.
"""

from __future__ import annotations

import asyncio
import logging
import signal
from typing import TYPE_CHECKING

from auction_worker.features.auctions import AuctionItemRepository, BidEventHandler
from auction_worker.infra.database import (
    PoolMonitor,
    close_database,
    create_engine,
    create_session_factory,
    init_database,
)
from auction_worker.infra.logging import bind_logger
from auction_worker.infra.messaging import (
    BoundedDispatcher,
    DeliveryLifecycleController,
    TopologySpec,
    connect_with_retry,
    declare_topology,
)
from auction_worker.infra.metrics import start_metrics_server

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

    from auction_worker.core.settings import (
        AppSettings,
        ConsumerSettings,
        PostgresSettings,
        RabbitSettings,
    )

logger = logging.getLogger(__name__)

SHUTDOWN_SIGNALS = (signal.SIGINT, signal.SIGTERM)


def check_pool_capacity(
    db_settings: PostgresSettings,
    consumer_settings: ConsumerSettings,
    log: logging.Logger | logging.LoggerAdapter = logger,
) -> bool:
    """Warn when handlers can outnumber database connections.

    Returns:
        True when ``pool_size + max_overflow`` covers ``worker_pool_size``.
    """
    if db_settings.max_connections >= consumer_settings.worker_pool_size:
        return True
    log.warning(
        "Database pool smaller than worker pool; handlers will queue for connections",
        extra={
            "pool_size": db_settings.pool_size,
            "max_overflow": db_settings.max_overflow,
            "worker_pool_size": consumer_settings.worker_pool_size,
        },
    )
    return False


async def run_bid_consumer(
    *,
    app_settings: AppSettings,
    db_settings: PostgresSettings,
    rabbit_settings: RabbitSettings,
    consumer_settings: ConsumerSettings,
) -> None:
    """Run the bid consumer until a shutdown signal arrives.

    Raises:
        RetryError: Database or broker unreachable at startup.
        TopologyError: Topology declaration failed.
        DeliveryStreamClosedError: The broker closed the delivery stream.
    """
    log = bind_logger(
        logger,
        service=app_settings.service_name,
        environment=app_settings.environment,
        queue=consumer_settings.queue_name,
    )
    log.info(
        "Starting bid consumer",
        extra={
            "version": app_settings.version,
            "prefetch_count": consumer_settings.prefetch_count,
            "worker_pool_size": consumer_settings.worker_pool_size,
            "processing_timeout": consumer_settings.processing_timeout,
        },
    )
    check_pool_capacity(db_settings, consumer_settings, log)

    if consumer_settings.metrics_port is not None:
        start_metrics_server(consumer_settings.metrics_port)
        log.info("Metrics server started", extra={"port": consumer_settings.metrics_port})

    engine = create_engine(db_settings)
    try:
        await init_database(engine, db_settings)
        connection = await connect_with_retry(rabbit_settings)
        try:
            channel = await connection.channel()
            spec = TopologySpec.from_settings(consumer_settings)
            await declare_topology(channel, spec)

            handler = BidEventHandler(
                AuctionItemRepository(),
                create_session_factory(engine),
                max_attempts=consumer_settings.bid_max_attempts,
                conflict_backoff=consumer_settings.bid_conflict_backoff,
            )
            controller = DeliveryLifecycleController(
                handler.handle_event,
                queue_name=spec.queue_name,
                processing_timeout=consumer_settings.processing_timeout,
                logger=logging.getLogger("auction_worker.delivery"),
            )
            dispatcher = BoundedDispatcher(
                channel,
                spec.queue_name,
                prefetch_count=consumer_settings.prefetch_count,
                worker_pool_size=consumer_settings.worker_pool_size,
                consumer_tag=consumer_settings.service_name or None,
                logger=log,
            )
            await _consume_until_signalled(dispatcher, controller, engine, consumer_settings, log)
        finally:
            await connection.close()
            log.info("Broker connection closed")
    finally:
        await close_database(engine)


async def _consume_until_signalled(
    dispatcher: BoundedDispatcher,
    controller: DeliveryLifecycleController,
    engine: AsyncEngine,
    consumer_settings: ConsumerSettings,
    log: logging.LoggerAdapter,
) -> None:
    loop = asyncio.get_running_loop()
    monitor = PoolMonitor(engine, interval=consumer_settings.pool_monitor_interval, logger=log)
    monitor_task = asyncio.create_task(monitor.run(), name="pool-monitor")
    consume_task = asyncio.create_task(dispatcher.run(controller), name="bid-dispatcher")

    def _request_shutdown(sig: signal.Signals) -> None:
        log.info("Shutdown signal received", extra={"signal": sig.name})
        consume_task.cancel()

    for sig in SHUTDOWN_SIGNALS:
        loop.add_signal_handler(sig, _request_shutdown, sig)

    try:
        await consume_task
    except asyncio.CancelledError:
        current = asyncio.current_task()
        if not consume_task.cancelled() or (current is not None and current.cancelling()):
            raise
        log.info("Bid consumer stopped")
    finally:
        for sig in SHUTDOWN_SIGNALS:
            loop.remove_signal_handler(sig)
        monitor_task.cancel()
        await asyncio.gather(monitor_task, return_exceptions=True)


__all__ = ["SHUTDOWN_SIGNALS", "check_pool_capacity", "run_bid_consumer"]
