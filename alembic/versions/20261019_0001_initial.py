"""Initial tables for auction records, products and price audit rows.

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19 09:00:00
"""

from collections.abc import Sequence

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "20261019_0001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    """Upgrade schema."""

    op.create_table(
        "auction_records",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("auction_date", sa.Date(), nullable=False),
        sa.Column("auctioneer", sa.Text(), nullable=False),
        sa.Column("serial_number", sa.Integer(), nullable=True),
        sa.Column("lots_count", sa.Integer(), nullable=True),
        sa.Column("total_arrived_kg", sa.Numeric(precision=14, scale=2), nullable=True),
        sa.Column("sold_kg", sa.Numeric(precision=14, scale=2), nullable=True),
        sa.Column("max_price_per_kg", sa.Numeric(precision=10, scale=2), nullable=True),
        sa.Column("avg_price_per_kg", sa.Numeric(precision=10, scale=2), nullable=True),
        sa.Column("source_url", sa.Text(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    # Rows without a serial number must still collide on the natural key.
    op.create_unique_constraint(
        "uq_auction_records_natural_key",
        "auction_records",
        ["auction_date", "auctioneer", "serial_number"],
        postgresql_nulls_not_distinct=True,
    )
    op.create_index(
        "idx_auction_records_date", "auction_records", ["auction_date"], unique=False
    )

    op.create_table(
        "products",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("sku", sa.String(length=64), nullable=True),
        sa.Column(
            "price_inr",
            sa.Numeric(precision=12, scale=2),
            server_default="0",
            nullable=False,
        ),
        sa.Column("sort_order", sa.Integer(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "price_changes",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("product_id", sa.String(length=64), nullable=False),
        sa.Column("old_price", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("new_price", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("changed_by", sa.Text(), nullable=False),
        sa.Column(
            "changed_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "idx_price_changes_product", "price_changes", ["product_id"], unique=False
    )
    op.create_index(
        "idx_price_changes_date", "price_changes", ["changed_at"], unique=False
    )


def downgrade() -> None:
    """Downgrade schema."""

    op.drop_index("idx_price_changes_date", table_name="price_changes")
    op.drop_index("idx_price_changes_product", table_name="price_changes")
    op.drop_table("price_changes")
    op.drop_table("products")
    op.drop_index("idx_auction_records_date", table_name="auction_records")
    op.drop_constraint(
        "uq_auction_records_natural_key", "auction_records", type_="unique"
    )
    op.drop_table("auction_records")
