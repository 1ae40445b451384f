"""create_items

Revision ID: 4c1f2a9e7b3d
Revises:
Create Date: 2026-03-01 09:00:00.000000+00:00

"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op


# revision identifiers, used by Alembic.
revision: str = "4c1f2a9e7b3d"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create the items table.

    ``version`` backs optimistic concurrency control: every write is issued
    as ``UPDATE ... WHERE id = :id AND version = :expected`` and bumps it.
    The extension columns override the anti-sniping window per item.
    """
    op.create_table(
        "items",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("seller_id", sa.String(length=36), nullable=False),
        sa.Column("buyer_id", sa.String(length=36), nullable=True),
        sa.Column("currency_code", sa.String(length=3), server_default="TRY", nullable=False),
        sa.Column("start_price", sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column("current_price", sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column("end_price", sa.Numeric(precision=10, scale=2), nullable=True),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "status",
            sa.Enum(
                "draft",
                "active",
                "sold",
                "cancelled",
                "expired",
                name="itemstatus",
                native_enum=False,
                length=32,
            ),
            server_default="draft",
            nullable=False,
        ),
        sa.Column("extension_threshold_minutes", sa.Integer(), nullable=True),
        sa.Column("extension_duration_minutes", sa.Integer(), nullable=True),
        sa.Column("version", sa.Integer(), server_default="1", nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
            comment="Timestamp of record creation",
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
            comment="Timestamp of last update",
        ),
        sa.CheckConstraint("start_price >= 0", name=op.f("ck_items_start_price_non_negative")),
        sa.CheckConstraint(
            "current_price >= 0", name=op.f("ck_items_current_price_non_negative")
        ),
        sa.CheckConstraint(
            "end_price IS NULL OR end_price >= start_price",
            name=op.f("ck_items_end_price_gte_start_price"),
        ),
        sa.CheckConstraint("end_date > start_date", name=op.f("ck_items_end_date_after_start_date")),
        sa.CheckConstraint(
            "extension_threshold_minutes IS NULL OR extension_threshold_minutes > 0",
            name=op.f("ck_items_extension_threshold_positive"),
        ),
        sa.CheckConstraint(
            "extension_duration_minutes IS NULL OR extension_duration_minutes > 0",
            name=op.f("ck_items_extension_duration_positive"),
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_items")),
    )
    op.create_index(op.f("ix_items_end_date"), "items", ["end_date"], unique=False)
    op.create_index(op.f("ix_items_status"), "items", ["status"], unique=False)
    op.create_index(op.f("ix_items_seller_id"), "items", ["seller_id"], unique=False)
    op.create_index("ix_items_id_version", "items", ["id", "version"], unique=False)


def downgrade() -> None:
    """Drop the items table."""
    op.drop_index("ix_items_id_version", table_name="items")
    op.drop_index(op.f("ix_items_seller_id"), table_name="items")
    op.drop_index(op.f("ix_items_status"), table_name="items")
    op.drop_index(op.f("ix_items_end_date"), table_name="items")
    op.drop_table("items")
