"""CLI utilities for running async operations and formatting output."""

from auction_worker.cli.utils.async_runner import coro
from auction_worker.cli.utils.formatters import error, header, success, warning

__all__ = [
    "coro",
    "error",
    "header",
    "success",
    "warning",
]
