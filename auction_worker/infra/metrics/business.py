"""Business and resilience counters."""

from __future__ import annotations

from prometheus_client import Counter

from auction_worker.infra.metrics.prometheus import REGISTRY

# Retries (utils.retry)

retry_attempts_total = Counter(
    "retry_attempts_total",
    "Retries started, by operation and the attempt number about to run",
    ["operation", "attempt_number"],
    registry=REGISTRY,
)

retry_exhausted_total = Counter(
    "retry_exhausted_total",
    "Retried operations that failed on their last allowed attempt",
    ["operation"],
    registry=REGISTRY,
)

retry_success_after_failure_total = Counter(
    "retry_success_after_failure_total",
    "Retried operations that eventually succeeded, by attempts used",
    ["operation", "attempts_needed"],
    registry=REGISTRY,
)

# Bid handling

auction_bid_conflicts_total = Counter(
    "auction_bid_conflicts_total",
    "Versioned item updates that lost a race to a concurrent writer",
    ["event"],
    registry=REGISTRY,
)

auction_extensions_total = Counter(
    "auction_extensions_total",
    "Auction end dates pushed back by a late bid",
    registry=REGISTRY,
)

auction_bids_applied_total = Counter(
    "auction_bids_applied_total",
    "Bid events applied to an item",
    ["event"],
    registry=REGISTRY,
)
