"""Auction items feature package."""

from .exceptions import PayloadError
from .handlers import BID_PLACED, BID_WON, BidEventHandler
from .models import AuctionItem, ItemStatus
from .repository import AuctionItemRepository

__all__ = [
    "BID_PLACED",
    "BID_WON",
    "AuctionItem",
    "AuctionItemRepository",
    "BidEventHandler",
    "ItemStatus",
    "PayloadError",
]
