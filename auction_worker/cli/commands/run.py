"""Run commands for workers."""
from __future__ import annotations

import sys

import click

from auction_worker.cli.utils import coro, error, header


@click.group()
def run() -> None:
    """Run long-lived worker processes."""


@run.command(name="bid-consumer")
@coro
async def bid_consumer() -> None:
    """Consume bid events and apply them to auction items.

    Runs until SIGINT/SIGTERM; in-flight deliveries settle before exit.
    Exits non-zero when startup fails or the broker closes the stream.

    Examples:
        \b
        auction-worker run bid-consumer
        CONSUMER_WORKER_POOL_SIZE=40 auction-worker run bid-consumer
    """
    from auction_worker.core.settings import (
        get_app_settings,
        get_consumer_settings,
        get_db_settings,
        get_rabbit_settings,
    )
    from auction_worker.workers.bid_consumer import run_bid_consumer

    consumer_settings = get_consumer_settings()
    header(f"Starting bid consumer on {consumer_settings.queue_name}")

    try:
        await run_bid_consumer(
            app_settings=get_app_settings(),
            db_settings=get_db_settings(),
            rabbit_settings=get_rabbit_settings(),
            consumer_settings=consumer_settings,
        )
    except Exception as e:
        error(f"Bid consumer failed: {e}")
        sys.exit(1)
