"""Bid event handlers.

``bid.placed`` runs a read-modify-write cycle on the item under optimistic
concurrency control; concurrent bids on the same item serialize through the
version counter and the loser re-reads and retries:

    attempt 1: read v3 -> price, maybe extend -> UPDATE ... version=3  (0 rows)
    sleep conflict_backoff * 1
    attempt 2: read v4 -> price, maybe extend -> UPDATE ... version=4  (1 row)

``bid.won`` closes the auction in a single attempt.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from auction_worker.core.database import OptimisticLockError
from auction_worker.features.auctions.models import AuctionItem, ItemStatus
from auction_worker.features.auctions.schemas import BidPlacedPayload, BidWonPayload
from auction_worker.infra.metrics.tracking import (
    track_bid_applied,
    track_bid_conflict,
    track_extension,
)
from auction_worker.utils.clock import ensure_utc, utc_now
from auction_worker.utils.retry import retry

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable
    from datetime import datetime

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from auction_worker.features.auctions.repository import AuctionItemRepository
    from auction_worker.infra.messaging.events import DeliveryContext, Event

BID_PLACED = "bid.placed"
BID_WON = "bid.won"


class BidEventHandler:
    """Apply bid events to auction items.

    One instance serves every delivery of the consumer; it holds no
    per-delivery state. Each attempt opens its own session from
    ``session_factory``.
    """

    def __init__(
        self,
        repository: AuctionItemRepository,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        clock: Callable[[], datetime] = utc_now,
        max_attempts: int = 3,
        conflict_backoff: float = 0.01,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    ) -> None:
        if max_attempts < 1:
            msg = "max_attempts must be at least 1"
            raise ValueError(msg)
        self._repository = repository
        self._session_factory = session_factory
        self._clock = clock
        self._max_attempts = max_attempts
        self._conflict_backoff = conflict_backoff
        self._sleep = sleep
        self._routes: dict[str, Callable[[Event, DeliveryContext], Awaitable[None]]] = {
            BID_PLACED: self.handle_bid_placed,
            BID_WON: self.handle_bid_won,
        }

    @property
    def event_names(self) -> frozenset[str]:
        return frozenset(self._routes)

    async def handle_event(self, event: Event, context: DeliveryContext) -> None:
        """Dispatch by event name; unknown names are logged and ignored."""
        handler = self._routes.get(event.event)
        if handler is None:
            context.logger.warning(
                "Unknown event, ignoring", extra={"event": event.event, "version": event.version}
            )
            return
        await handler(event, context)

    __call__ = handle_event

    async def handle_bid_placed(self, event: Event, context: DeliveryContext) -> None:
        """Set the current price and apply the anti-sniping extension.

        Raises:
            PayloadError: Missing item id or invalid amount.
            NotFoundError: Unknown item.
            RetryError: Every attempt lost an optimistic lock race.
        """
        payload = BidPlacedPayload.parse(event.event, event.payload)
        bid_time = ensure_utc(payload.timestamp or event.timestamp or self._clock())
        log = context.logger.bind(item_id=payload.item_id)

        def _on_conflict(exc: Exception, attempt: int) -> None:
            track_bid_conflict(event.event)

        @retry(
            max_attempts=self._max_attempts,
            initial_delay=self._conflict_backoff,
            max_delay=self._conflict_backoff * self._max_attempts,
            jitter=False,
            backoff="linear",
            exceptions=(OptimisticLockError,),
            on_retry=_on_conflict,
            operation="auction.bid_placed",
            sleep=self._sleep,
        )
        async def _apply() -> AuctionItem:
            return await self._apply_bid_once(payload, bid_time, log)

        item = await _apply()
        track_bid_applied(event.event)
        log.info(
            "Bid applied",
            extra={
                "amount": str(payload.amount),
                "end_date": item.end_date.isoformat(),
                "version": item.version,
            },
        )

    async def _apply_bid_once(
        self,
        payload: BidPlacedPayload,
        bid_time: datetime,
        log: logging.LoggerAdapter,
    ) -> AuctionItem:
        async with self._session_factory() as session:
            item = await self._repository.get_item(session, payload.item_id)
            item.current_price = payload.amount

            extended = item.should_extend_for_bid(bid_time)
            if extended:
                previous_end = ensure_utc(item.end_date)
                item.end_date = item.extended_end_date()

            item.updated_at = self._clock()
            await self._repository.update(session, item)

        if extended:
            track_extension()
            log.info(
                "Auction extended",
                extra={
                    "bid_time": bid_time.isoformat(),
                    "previous_end_date": previous_end.isoformat(),
                    "end_date": ensure_utc(item.end_date).isoformat(),
                },
            )
        return item

    async def handle_bid_won(self, event: Event, context: DeliveryContext) -> None:
        """Mark the item sold to the winning buyer.

        Raises:
            PayloadError: Missing item id, buyer id or final amount.
            NotFoundError: Unknown item.
            OptimisticLockError: A concurrent write landed first; not retried.
        """
        payload = BidWonPayload.parse(event.event, event.payload)
        log = context.logger.bind(item_id=payload.item_id)

        async with self._session_factory() as session:
            item = await self._repository.get_item(session, payload.item_id)
            item.status = ItemStatus.SOLD
            item.buyer_id = payload.buyer_id
            item.current_price = payload.final_amount
            item.end_price = payload.final_amount
            item.updated_at = self._clock()
            await self._repository.update(session, item)

        track_bid_applied(event.event)
        log.info(
            "Auction closed",
            extra={"buyer_id": payload.buyer_id, "final_amount": str(payload.final_amount)},
        )


__all__ = ["BID_PLACED", "BID_WON", "BidEventHandler"]
