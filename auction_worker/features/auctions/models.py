"""SQLAlchemy models for auction items."""
from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal
from enum import StrEnum
from uuid import uuid4

from sqlalchemy import CheckConstraint, DateTime, Enum, Index, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from auction_worker.core.database import Base, TimestampMixin
from auction_worker.utils.clock import ensure_utc

DEFAULT_EXTENSION_THRESHOLD = timedelta(minutes=10)
DEFAULT_EXTENSION_DURATION = timedelta(minutes=5)


class ItemStatus(StrEnum):
    """Lifecycle status of an auction item."""

    DRAFT = "draft"
    ACTIVE = "active"
    SOLD = "sold"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


class AuctionItem(Base, TimestampMixin):
    """Item listed for auction.

    ``version`` is the mapper's version counter: every flushed UPDATE is
    issued as ``... WHERE id = :id AND version = :expected`` and bumps it.
    A flush that matches no row raises ``StaleDataError``.

    Anti-sniping: a bid arriving within ``extension_threshold`` of
    ``end_date`` pushes ``end_date`` back by ``extension_duration``.
    """

    __tablename__ = "items"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    seller_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    buyer_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    currency_code: Mapped[str] = mapped_column(
        String(3), nullable=False, default="TRY", server_default="TRY"
    )

    start_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    current_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    end_price: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)

    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)

    status: Mapped[ItemStatus] = mapped_column(
        Enum(
            ItemStatus,
            native_enum=False,
            length=32,
            values_callable=lambda enum: [member.value for member in enum],
            validate_strings=True,
        ),
        nullable=False,
        default=ItemStatus.DRAFT,
        server_default=ItemStatus.DRAFT.value,
        index=True,
    )

    # Per-item anti-sniping overrides (minutes); NULL means the defaults
    extension_threshold_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    extension_duration_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)

    version: Mapped[int] = mapped_column(Integer, nullable=False, server_default="1")

    __mapper_args__ = {"version_id_col": version}  # noqa: RUF012

    __table_args__ = (
        CheckConstraint("start_price >= 0", name="start_price_non_negative"),
        CheckConstraint("current_price >= 0", name="current_price_non_negative"),
        CheckConstraint(
            "end_price IS NULL OR end_price >= start_price", name="end_price_gte_start_price"
        ),
        CheckConstraint("end_date > start_date", name="end_date_after_start_date"),
        CheckConstraint(
            "extension_threshold_minutes IS NULL OR extension_threshold_minutes > 0",
            name="extension_threshold_positive",
        ),
        CheckConstraint(
            "extension_duration_minutes IS NULL OR extension_duration_minutes > 0",
            name="extension_duration_positive",
        ),
        Index("ix_items_id_version", "id", "version"),
    )

    @property
    def extension_threshold(self) -> timedelta:
        if self.extension_threshold_minutes and self.extension_threshold_minutes > 0:
            return timedelta(minutes=self.extension_threshold_minutes)
        return DEFAULT_EXTENSION_THRESHOLD

    @property
    def extension_duration(self) -> timedelta:
        if self.extension_duration_minutes and self.extension_duration_minutes > 0:
            return timedelta(minutes=self.extension_duration_minutes)
        return DEFAULT_EXTENSION_DURATION

    def should_extend_for_bid(self, bid_time: datetime) -> bool:
        """True when ``bid_time`` falls inside the closing window.

        A bid at or after ``end_date`` never extends the auction.
        """
        remaining = ensure_utc(self.end_date) - ensure_utc(bid_time)
        return timedelta(0) < remaining <= self.extension_threshold

    def extended_end_date(self) -> datetime:
        return ensure_utc(self.end_date) + self.extension_duration

    def __repr__(self) -> str:
        return f"<AuctionItem(id={self.id!r}, status={self.status!r}, version={self.version!r})>"


__all__ = [
    "DEFAULT_EXTENSION_DURATION",
    "DEFAULT_EXTENSION_THRESHOLD",
    "AuctionItem",
    "ItemStatus",
]
