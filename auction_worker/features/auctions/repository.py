"""Repository for auction items.

Writes go through the mapper's version counter, so ``update`` either
commits exactly the state the caller read-modified or raises
``OptimisticLockError`` and leaves the stored row untouched.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm.exc import StaleDataError

from auction_worker.core.database import BaseRepository, OptimisticLockError
from auction_worker.features.auctions.models import AuctionItem
from auction_worker.infra.database.session import acquire_connection
from auction_worker.infra.metrics.tracking import track_pool_checkout_timeout

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession


class AuctionItemRepository(BaseRepository[AuctionItem]):
    """Fresh reads and version-checked writes of auction items."""

    def __init__(self) -> None:
        """Initialize with AuctionItem model."""
        super().__init__(AuctionItem)

    async def get_item(self, session: AsyncSession, item_id: str) -> AuctionItem:
        """Read the current stored state of an item.

        Any copy already in the session's identity map is overwritten so that
        the version used for the next update is the latest committed one. The
        time spent waiting for a pooled connection is recorded.

        Raises:
            NotFoundError: No item with ``item_id``.
        """
        try:
            await acquire_connection(session)
            return await self.get_or_raise(session, item_id, fresh=True)
        except PoolTimeoutError:
            track_pool_checkout_timeout()
            raise

    async def update(self, session: AsyncSession, item: AuctionItem) -> AuctionItem:
        """Flush and commit pending changes to ``item``.

        Raises:
            OptimisticLockError: Another writer committed first.
        """
        item_id = item.id
        expected_version = item.version
        try:
            session.add(item)
            await session.flush()
            await session.commit()
        except StaleDataError as exc:
            await session.rollback()
            self._logger.info(
                "Optimistic lock conflict",
                extra={
                    "entity": self.model.__name__,
                    "id": item_id,
                    "expected_version": expected_version,
                },
            )
            raise OptimisticLockError(
                self.model.__name__, {"id": item_id}, expected_version=expected_version
            ) from exc
        except PoolTimeoutError:
            track_pool_checkout_timeout()
            await session.rollback()
            raise
        except Exception:
            await session.rollback()
            raise

        self._logger.debug(
            "db.update",
            extra={"entity": self.model.__name__, "id": item_id, "version": item.version},
        )
        return item


__all__ = ["AuctionItemRepository"]
