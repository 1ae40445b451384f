"""Backoff policies for ``retry``."""

from __future__ import annotations

from collections.abc import Callable
import random
from typing import Literal

Backoff = Literal["exponential", "linear"]


class RetryStrategy:
    """Which failures are retried and how long to wait after each.

    Delays for failed attempt ``n`` (1-based), before the cap and jitter:

        exponential: initial_delay * exponential_base ** (n - 1)
        linear:      initial_delay * n
    """

    def __init__(
        self,
        max_attempts: int = 3,
        initial_delay: float = 1.0,
        max_delay: float = 60.0,
        exponential_base: float = 2.0,
        jitter: bool = True,
        jitter_range: tuple[float, float] = (0.5, 1.5),
        exceptions: tuple[type[Exception], ...] = (Exception,),
        retry_if: Callable[[Exception], bool] | None = None,
        stop_after_delay: float | None = None,
        backoff: Backoff = "exponential",
    ) -> None:
        if max_attempts < 1:
            msg = "max_attempts must be at least 1"
            raise ValueError(msg)
        self.max_attempts = max_attempts
        self.initial_delay = initial_delay
        self.max_delay = max_delay
        self.exponential_base = exponential_base
        self.jitter = jitter
        self.jitter_range = jitter_range
        self.exceptions = exceptions
        self.retry_if = retry_if
        self.stop_after_delay = stop_after_delay
        self.backoff = backoff

    def should_retry(self, exception: Exception) -> bool:
        """``retry_if`` when given, otherwise an isinstance check on ``exceptions``."""
        if self.retry_if is not None:
            return self.retry_if(exception)
        return isinstance(exception, self.exceptions)

    def is_exhausted(self, attempt: int, elapsed: float) -> bool:
        """True when no attempt may follow attempt number ``attempt``."""
        if attempt >= self.max_attempts:
            return True
        return self.stop_after_delay is not None and elapsed >= self.stop_after_delay

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after failed attempt number ``attempt`` (1-based)."""
        if self.backoff == "linear":
            delay = self.initial_delay * attempt
        else:
            delay = self.initial_delay * self.exponential_base ** (attempt - 1)
        delay = min(delay, self.max_delay)
        if self.jitter:
            low, high = self.jitter_range
            delay *= random.uniform(low, high)
        return delay
