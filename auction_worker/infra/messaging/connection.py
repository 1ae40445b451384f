"""Broker connection with bounded startup retries.

The connection is not "robust": if it drops after startup the
delivery stream ends and the worker exits for its supervisor to restart it.
Only the initial connect is retried, with linear backoff.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import aio_pika
from aio_pika.exceptions import AMQPConnectionError

from auction_worker.utils.retry import retry

if TYPE_CHECKING:
    from aio_pika.abc import AbstractConnection

    from auction_worker.core.settings.rabbit import RabbitSettings

logger = logging.getLogger(__name__)

RETRYABLE_CONNECT_ERRORS: tuple[type[Exception], ...] = (
    AMQPConnectionError,
    OSError,
    TimeoutError,
)


async def connect_with_retry(rabbit_settings: RabbitSettings) -> AbstractConnection:
    """Open an AMQP connection, retrying transient failures.

    Attempt ``n`` (1-based) that fails waits ``retry_backoff * n`` seconds
    before the next one.

    Raises:
        RetryError: All ``retry_attempts`` attempts failed.
    """

    @retry(
        max_attempts=rabbit_settings.retry_attempts,
        initial_delay=rabbit_settings.retry_backoff,
        max_delay=rabbit_settings.retry_backoff * rabbit_settings.retry_attempts,
        jitter=False,
        backoff="linear",
        exceptions=RETRYABLE_CONNECT_ERRORS,
        operation="rabbitmq.connect",
    )
    async def _connect() -> AbstractConnection:
        return await aio_pika.connect(
            f"{rabbit_settings.url}?heartbeat={rabbit_settings.heartbeat}",
            timeout=rabbit_settings.connection_timeout,
            client_properties={"connection_name": rabbit_settings.connection_name},
        )

    logger.info(
        "Connecting to RabbitMQ",
        extra={
            "host": rabbit_settings.host,
            "port": rabbit_settings.port,
            "vhost": rabbit_settings.vhost,
            "max_attempts": rabbit_settings.retry_attempts,
        },
    )
    connection = await _connect()
    logger.info("Connected to RabbitMQ", extra={"host": rabbit_settings.host})
    return connection


__all__ = ["RETRYABLE_CONNECT_ERRORS", "connect_with_retry"]
