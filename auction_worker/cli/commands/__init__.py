"""CLI command modules."""

from auction_worker.cli.commands import messaging, run

__all__ = [
    "messaging",
    "run",
]
