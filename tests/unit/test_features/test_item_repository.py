"""Unit tests for AuctionItemRepository against SQLite."""
from __future__ import annotations

from decimal import Decimal

import pytest

from auction_worker.core.database import NotFoundError, OptimisticLockError
from auction_worker.features.auctions.repository import AuctionItemRepository
from auction_worker.infra.metrics.prometheus import REGISTRY


@pytest.fixture
def repository() -> AuctionItemRepository:
    return AuctionItemRepository()


@pytest.mark.unit
class TestAuctionItemRepository:
    """Test suite for AuctionItemRepository."""

    async def test_get_item_returns_stored_row(self, repository, session_factory, item_factory):
        await item_factory()

        async with session_factory() as session:
            item = await repository.get_item(session, "item-1")

        assert item.name == "Vintage camera"
        assert item.version == 1

    async def test_get_item_missing_raises_not_found(self, repository, session_factory):
        async with session_factory() as session:
            with pytest.raises(NotFoundError) as exc_info:
                await repository.get_item(session, "missing")

        assert exc_info.value.identifier == {"id": "missing"}

    async def test_update_bumps_version(self, repository, session_factory, item_factory, fetch_item):
        await item_factory()

        async with session_factory() as session:
            item = await repository.get_item(session, "item-1")
            item.current_price = Decimal("125.00")
            await repository.update(session, item)

        assert item.version == 2
        stored = await fetch_item()
        assert stored.version == 2
        assert stored.current_price == Decimal("125.00")

    async def test_stale_update_raises_and_keeps_row(
        self, repository, session_factory, item_factory, fetch_item
    ):
        """The slower of two writers that read the same version loses."""
        await item_factory()

        async with session_factory() as first, session_factory() as second:
            mine = await repository.get_item(first, "item-1")
            theirs = await repository.get_item(second, "item-1")

            theirs.current_price = Decimal("300.00")
            await repository.update(second, theirs)

            mine.current_price = Decimal("200.00")
            with pytest.raises(OptimisticLockError) as exc_info:
                await repository.update(first, mine)

        assert exc_info.value.expected_version == 1
        assert exc_info.value.identifier == {"id": "item-1"}
        stored = await fetch_item()
        assert stored.current_price == Decimal("300.00")
        assert stored.version == 2

    async def test_get_item_refreshes_identity_map(self, repository, session_factory, item_factory):
        """A re-read in the same session sees writes committed elsewhere."""
        await item_factory()

        async with session_factory() as session:
            cached = await repository.get_item(session, "item-1")
            await session.commit()

            async with session_factory() as other:
                row = await repository.get_item(other, "item-1")
                row.name = "Renamed"
                await repository.update(other, row)

            again = await repository.get_item(session, "item-1")

        assert again is cached
        assert again.name == "Renamed"
        assert again.version == 2

    async def test_get_item_records_connection_wait(self, repository, session_factory, item_factory):
        await item_factory()
        before = REGISTRY.get_sample_value("database_pool_wait_seconds_count") or 0.0

        async with session_factory() as session:
            await repository.get_item(session, "item-1")

        assert REGISTRY.get_sample_value("database_pool_wait_seconds_count") == before + 1
