"""Broker topology and dead-letter commands."""
from __future__ import annotations

from contextlib import asynccontextmanager
import sys
from typing import TYPE_CHECKING

import click

from auction_worker.cli.utils import coro, error, header, success, warning

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from aio_pika.abc import AbstractChannel

    from auction_worker.infra.messaging import TopologySpec


@asynccontextmanager
async def _broker_channel() -> AsyncIterator[tuple[AbstractChannel, TopologySpec]]:
    from auction_worker.core.settings import get_consumer_settings, get_rabbit_settings
    from auction_worker.infra.messaging import TopologySpec, connect_with_retry

    spec = TopologySpec.from_settings(get_consumer_settings())
    connection = await connect_with_retry(get_rabbit_settings())
    async with connection:
        channel = await connection.channel()
        yield channel, spec


@click.group(name="messaging")
def messaging() -> None:
    """RabbitMQ topology and dead-letter queue commands."""


@messaging.command(name="declare")
@coro
async def declare() -> None:
    """Declare exchange, dead-letter exchange, queues and bindings, then exit."""
    from auction_worker.infra.messaging import declare_topology

    try:
        async with _broker_channel() as (channel, spec):
            header("Declaring topology")
            await declare_topology(channel, spec)
            click.echo(f"  Exchange:  {spec.exchange_name} (dlx: {spec.dlx_name})")
            click.echo(f"  Queue:     {spec.queue_name} (dlq: {spec.dlq_name})")
            click.echo(f"  Bindings:  {', '.join(spec.routing_keys)}")
    except Exception as e:
        error(f"Failed to declare topology: {e}")
        sys.exit(1)

    success("Topology declared")


@messaging.command(name="dlq-depth")
@coro
async def dlq_depth() -> None:
    """Show message and consumer counts of the work queue and its DLQ."""
    from auction_worker.infra.messaging import queue_depths

    try:
        async with _broker_channel() as (channel, spec):
            depths = await queue_depths(channel, spec)
    except Exception as e:
        error(f"Failed to get queue stats: {e}")
        sys.exit(1)

    header("Queue Depths")
    click.echo()
    click.echo(f"  {'Queue':<40} {'Messages':<12} {'Consumers':<12}")
    click.echo("  " + "-" * 64)
    for depth in depths:
        click.echo(f"  {depth.name:<40} {depth.message_count:<12} {depth.consumer_count:<12}")
    click.echo()

    dead = depths[-1]
    if dead.message_count:
        warning(f"{dead.message_count} message(s) dead-lettered in {dead.name}")


@messaging.command(name="dlq-replay")
@click.option(
    "--limit",
    type=click.IntRange(min=0),
    default=None,
    help="Maximum number of messages to replay (default: those queued at start)",
)
@coro
async def dlq_replay(limit: int | None) -> None:
    """Republish dead-lettered messages to the work exchange.

    Each message is removed from the DLQ only after its republish succeeded.
    Messages dead-lettered again while the replay runs wait for the next run.

    Examples:
        \b
        auction-worker messaging dlq-replay --limit 10
    """
    from auction_worker.infra.messaging import replay_dead_letters

    try:
        async with _broker_channel() as (channel, spec):
            replayed = await replay_dead_letters(channel, spec, limit=limit)
    except Exception as e:
        error(f"Replay failed: {e}")
        sys.exit(1)

    success(f"Replayed {replayed} message(s)")
