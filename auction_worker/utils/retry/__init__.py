"""Retry with backoff for async callables.

Used for the startup connects (database ping, broker connection) and for
optimistic-lock conflicts while applying bids.
"""

from __future__ import annotations

from auction_worker.utils.retry.decorator import retry
from auction_worker.utils.retry.exceptions import RetryError, RetryStatistics
from auction_worker.utils.retry.strategies import Backoff, RetryStrategy

__all__ = ["Backoff", "RetryError", "RetryStatistics", "RetryStrategy", "retry"]
