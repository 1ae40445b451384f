"""Unit tests for bid payload parsing."""
from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal

import pytest

from auction_worker.features.auctions.exceptions import PayloadError
from auction_worker.features.auctions.schemas import BidPlacedPayload, BidWonPayload


@pytest.mark.unit
class TestBidPlacedPayload:
    """Test suite for BidPlacedPayload."""

    @pytest.mark.parametrize(
        "raw",
        [
            {"itemId": "item-1", "amount": "150.50"},
            {"ItemID": "item-1", "Amount": 150.5},
            {"item_id": "item-1", "amount": "150.5"},
        ],
    )
    def test_accepts_all_key_spellings(self, raw):
        payload = BidPlacedPayload.parse("bid.placed", raw)

        assert payload.item_id == "item-1"
        assert payload.amount == Decimal("150.50")

    def test_parses_timestamp(self):
        payload = BidPlacedPayload.parse(
            "bid.placed", {"itemId": "item-1", "amount": 1, "timestamp": "2024-05-01T09:57:00Z"}
        )

        assert payload.timestamp == datetime(2024, 5, 1, 9, 57, tzinfo=UTC)

    def test_unparseable_timestamp_is_ignored(self):
        payload = BidPlacedPayload.parse(
            "bid.placed", {"itemId": "item-1", "amount": 1, "timestamp": "five to ten"}
        )

        assert payload.timestamp is None

    @pytest.mark.parametrize(
        "raw",
        [
            {"amount": 10},
            {"itemId": "   ", "amount": 10},
            {"itemId": "item-1"},
            {"itemId": "item-1", "amount": "-1"},
            {"itemId": "item-1", "amount": "ten"},
            {"itemId": "item-1", "amount": "NaN"},
            {"itemId": "item-1", "amount": "Infinity"},
            None,
            ["item-1", 10],
        ],
    )
    def test_invalid_payload_raises_payload_error(self, raw):
        with pytest.raises(PayloadError) as exc_info:
            BidPlacedPayload.parse("bid.placed", raw)

        assert exc_info.value.event == "bid.placed"
        assert str(exc_info.value).startswith("bid.placed: invalid payload")

    def test_unknown_keys_ignored(self):
        payload = BidPlacedPayload.parse(
            "bid.placed", {"itemId": "item-1", "amount": 1, "bidderId": "user-7"}
        )

        assert payload.item_id == "item-1"


@pytest.mark.unit
class TestBidWonPayload:
    def test_accepts_all_key_spellings(self):
        camel = BidWonPayload.parse(
            "bid.won", {"itemId": "item-1", "buyerId": "buyer-9", "finalAmount": "210.00"}
        )
        pascal = BidWonPayload.parse(
            "bid.won", {"ItemID": "item-1", "BuyerID": "buyer-9", "FinalAmount": 210}
        )

        assert camel == pascal
        assert camel.final_amount == Decimal("210")

    def test_missing_buyer_rejected(self):
        with pytest.raises(PayloadError):
            BidWonPayload.parse("bid.won", {"itemId": "item-1", "finalAmount": 210})
