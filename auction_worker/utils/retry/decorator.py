"""Async retry decorator with metrics."""

from __future__ import annotations

import asyncio
from functools import wraps
import logging
import time
from typing import TYPE_CHECKING, ParamSpec, TypeVar

from auction_worker.infra.metrics.tracking import (
    track_retry_attempt,
    track_retry_exhausted,
    track_retry_success,
)

from .exceptions import RetryError, RetryStatistics
from .strategies import Backoff, RetryStrategy

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

P = ParamSpec("P")
R = TypeVar("R")


def retry(
    max_attempts: int = 3,
    initial_delay: float = 1.0,
    max_delay: float = 60.0,
    exponential_base: float = 2.0,
    jitter: bool = True,
    jitter_range: tuple[float, float] = (0.5, 1.5),
    exceptions: tuple[type[Exception], ...] = (Exception,),
    retry_if: Callable[[Exception], bool] | None = None,
    stop_after_delay: float | None = None,
    on_retry: Callable[[Exception, int], None] | None = None,
    backoff: Backoff = "exponential",
    operation: str | None = None,
    sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]]:
    """Retry an async callable on selected exceptions.

    Non-retryable exceptions propagate unchanged; once attempts (or
    ``stop_after_delay``) run out the last failure is wrapped in
    ``RetryError``. ``on_retry(exc, attempt)`` runs before each wait with
    the 1-based number of the attempt that failed.

    Example:
        @retry(max_attempts=5, initial_delay=1.0, backoff="linear",
               exceptions=(ConnectionError,), operation="rabbitmq.connect")
        async def connect() -> AbstractConnection: ...
    """
    strategy = RetryStrategy(
        max_attempts=max_attempts,
        initial_delay=initial_delay,
        max_delay=max_delay,
        exponential_base=exponential_base,
        jitter=jitter,
        jitter_range=jitter_range,
        exceptions=exceptions,
        retry_if=retry_if,
        stop_after_delay=stop_after_delay,
        backoff=backoff,
    )

    def decorator(func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
        name = operation or func.__name__

        @wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            stats = RetryStatistics()
            attempt = 0
            while True:
                attempt += 1
                try:
                    result = await func(*args, **kwargs)
                except Exception as exc:
                    if not strategy.should_retry(exc):
                        raise
                    stats.errors.append(type(exc).__name__)

                    if strategy.is_exhausted(attempt, stats.elapsed):
                        stats.finished = time.monotonic()
                        track_retry_exhausted(name)
                        logger.error(
                            "Retries exhausted",
                            extra={
                                "operation": name,
                                "attempts": attempt,
                                "error": str(exc),
                                "total_delay": stats.total_delay,
                            },
                        )
                        raise RetryError(exc, attempt, stats, operation=name) from exc

                    delay = strategy.delay_for(attempt)
                    stats.delays.append(delay)
                    track_retry_attempt(name, attempt + 1)
                    logger.warning(
                        "Retrying after failure",
                        extra={
                            "operation": name,
                            "attempt": attempt,
                            "max_attempts": max_attempts,
                            "delay": round(delay, 3),
                            "error": str(exc),
                        },
                    )
                    if on_retry is not None:
                        on_retry(exc, attempt)
                    await sleep(delay)
                else:
                    if stats.retries:
                        track_retry_success(name, attempt)
                    return result

        return wrapper

    return decorator
