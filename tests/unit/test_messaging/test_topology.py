"""Unit tests for broker topology declaration."""
from __future__ import annotations

from aio_pika import ExchangeType
import pytest

from auction_worker.core.settings import ConsumerSettings
from auction_worker.infra.messaging.exceptions import TopologyError
from auction_worker.infra.messaging.topology import TopologySpec, declare_topology
from tests.fakes import FakeChannel


def _spec(*keys: str) -> TopologySpec:
    return TopologySpec(
        exchange_name="auction.bid",
        queue_name="auction.bid.all.v1",
        routing_keys=keys or ("bid.*.v1",),
    )


@pytest.mark.unit
class TestTopologySpec:
    def test_derived_dead_letter_names(self):
        spec = _spec()

        assert spec.dlx_name == "auction.bid.dlx"
        assert spec.dlq_name == "auction.bid.all.v1.dlq"

    def test_from_settings(self):
        spec = TopologySpec.from_settings(
            ConsumerSettings(routing_keys=["bid.placed.v1", "bid.won.v1"])
        )

        assert spec.exchange_name == "auction.bid"
        assert spec.routing_keys == ("bid.placed.v1", "bid.won.v1")

    def test_empty_routing_keys_rejected(self):
        with pytest.raises(TopologyError):
            TopologySpec(exchange_name="auction.bid", queue_name="q", routing_keys=())

    def test_blank_routing_key_rejected(self):
        with pytest.raises(TopologyError):
            TopologySpec(exchange_name="auction.bid", queue_name="q", routing_keys=("",))


@pytest.mark.unit
class TestDeclareTopology:
    async def test_declares_in_order(self):
        channel = FakeChannel()

        queue = await declare_topology(channel, _spec())

        assert channel.calls == [
            ("declare_exchange", "auction.bid"),
            ("declare_exchange", "auction.bid.dlx"),
            ("declare_queue", "auction.bid.all.v1"),
            ("declare_queue", "auction.bid.all.v1.dlq"),
        ]
        assert queue is channel.queues["auction.bid.all.v1"]

    async def test_durable_topic_exchanges(self):
        channel = FakeChannel()

        await declare_topology(channel, _spec())

        for name in ("auction.bid", "auction.bid.dlx"):
            assert channel.exchanges[name].type == ExchangeType.TOPIC
            assert channel.exchanges[name].durable is True

    async def test_work_queue_dead_letters_to_dlx(self):
        channel = FakeChannel()

        await declare_topology(channel, _spec())

        work = channel.queues["auction.bid.all.v1"]
        dead = channel.queues["auction.bid.all.v1.dlq"]
        assert work.durable is True
        assert work.arguments == {"x-dead-letter-exchange": "auction.bid.dlx"}
        assert dead.durable is True

    async def test_binds_every_routing_key(self):
        channel = FakeChannel()

        await declare_topology(channel, _spec("bid.placed.v1", "bid.won.v1"))

        assert channel.queues["auction.bid.all.v1"].bindings == [
            ("auction.bid", "bid.placed.v1"),
            ("auction.bid", "bid.won.v1"),
        ]
        assert channel.queues["auction.bid.all.v1.dlq"].bindings == [
            ("auction.bid.dlx", "bid.placed.v1"),
            ("auction.bid.dlx", "bid.won.v1"),
        ]

    async def test_redeclare_is_idempotent(self):
        channel = FakeChannel()

        first = await declare_topology(channel, _spec())
        second = await declare_topology(channel, _spec())

        assert first is second
        assert len(channel.queues) == 2

    async def test_declaration_failure_raises_topology_error(self):
        channel = FakeChannel(
            fail_on={"auction.bid.all.v1": RuntimeError("PRECONDITION_FAILED - inequivalent arg")}
        )

        with pytest.raises(TopologyError) as exc_info:
            await declare_topology(channel, _spec())

        assert "PRECONDITION_FAILED" in str(exc_info.value)
        assert isinstance(exc_info.value.__cause__, RuntimeError)
