"""Main CLI entry point for auction-worker commands."""

import click

from auction_worker.cli.commands import messaging, run
from auction_worker.infra.logging.config import setup_logging


@click.group()
@click.version_option(package_name="auction-worker", prog_name="auction-worker")
@click.pass_context
def cli(ctx: click.Context) -> None:
    """Auction Worker CLI - bid event consumer and broker tooling.

    \b
    Command Groups:
      run        Worker processes
      messaging  Topology and dead-letter queue operations

    \b
    Quick Start:
      auction-worker messaging declare          # Declare exchanges and queues
      auction-worker run bid-consumer           # Start consuming bid events
      auction-worker messaging dlq-depth        # Check for stuck deliveries
      auction-worker messaging dlq-replay       # Republish dead-lettered messages
    """
    ctx.ensure_object(dict)


cli.add_command(run.run)
cli.add_command(messaging.messaging)


def main() -> None:
    """Entry point for CLI."""
    setup_logging()
    cli(obj={})


if __name__ == "__main__":
    main()
