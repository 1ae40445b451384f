"""Retry outcome types."""

from __future__ import annotations

from dataclasses import dataclass, field
import time


@dataclass
class RetryStatistics:
    """What happened across the attempts of one retried call."""

    started: float = field(default_factory=time.monotonic)
    finished: float | None = None
    delays: list[float] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def retries(self) -> int:
        return len(self.delays)

    @property
    def total_delay(self) -> float:
        return sum(self.delays)

    @property
    def elapsed(self) -> float:
        end = self.finished if self.finished is not None else time.monotonic()
        return end - self.started


class RetryError(Exception):
    """Every allowed attempt failed with a retryable exception.

    The last failure is kept as ``last_exception`` and chained as ``__cause__``.
    """

    def __init__(
        self,
        last_exception: Exception,
        attempts: int,
        statistics: RetryStatistics | None = None,
        operation: str = "operation",
    ) -> None:
        self.last_exception = last_exception
        self.attempts = attempts
        self.statistics = statistics
        self.operation = operation
        super().__init__(f"{operation} failed after {attempts} attempts: {last_exception}")
