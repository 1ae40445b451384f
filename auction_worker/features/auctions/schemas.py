"""Pydantic schemas for bid event payloads.

Producers are not consistent about key casing, so every field accepts the
camelCase, PascalCase and snake_case spelling:

    {"itemId": "...", "amount": "150.00", "timestamp": "2024-05-01T09:57:00Z"}
    {"ItemID": "...", "Amount": 150, "Timestamp": "..."}
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Self

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    ValidatorFunctionWrapHandler,
    field_validator,
)

from auction_worker.features.auctions.exceptions import PayloadError


class _Payload(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore", str_strip_whitespace=True)

    @classmethod
    def parse(cls, event: str, payload: Any) -> Self:
        """Validate an envelope payload.

        Raises:
            PayloadError: Missing or invalid fields.
        """
        try:
            return cls.model_validate(payload)
        except ValidationError as exc:
            fields = sorted({".".join(str(p) for p in err["loc"]) or "payload" for err in exc.errors()})
            raise PayloadError(event, "invalid payload", details={"fields": fields}) from exc


class BidPlacedPayload(_Payload):
    """Payload of ``bid.placed``."""

    item_id: str = Field(min_length=1, validation_alias=AliasChoices("itemId", "ItemID", "item_id"))
    amount: Decimal = Field(
        ge=0,
        allow_inf_nan=False,
        validation_alias=AliasChoices("amount", "Amount"),
    )
    timestamp: datetime | None = Field(
        default=None,
        validation_alias=AliasChoices("timestamp", "Timestamp"),
        description="Bid time; unparseable values are ignored",
    )

    @field_validator("timestamp", mode="wrap")
    @classmethod
    def _ignore_unparseable(cls, value: Any, handler: ValidatorFunctionWrapHandler) -> datetime | None:
        try:
            return handler(value)
        except ValidationError:
            return None


class BidWonPayload(_Payload):
    """Payload of ``bid.won``."""

    item_id: str = Field(min_length=1, validation_alias=AliasChoices("itemId", "ItemID", "item_id"))
    buyer_id: str = Field(
        min_length=1, validation_alias=AliasChoices("buyerId", "BuyerID", "buyer_id")
    )
    final_amount: Decimal = Field(
        ge=0,
        allow_inf_nan=False,
        validation_alias=AliasChoices("finalAmount", "FinalAmount", "final_amount"),
    )


__all__ = ["BidPlacedPayload", "BidWonPayload"]
