"""Utility modules for common operations.

This package provides reusable utilities for:
- Retry patterns
- UTC clock helpers
"""

from auction_worker.utils.clock import ensure_utc, utc_now

__all__ = [
    "ensure_utc",
    "utc_now",
]
