"""Auction price table model."""

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    Date,
    DateTime,
    Index,
    Integer,
    Numeric,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from spiceboard.models.base import Base

NATURAL_KEY_CONSTRAINT = "uq_auction_records_natural_key"


class AuctionRecord(Base):
    """One row of the Spices Board small cardamom auction archive."""

    __tablename__ = "auction_records"
    __table_args__ = (
        UniqueConstraint(
            "auction_date",
            "auctioneer",
            "serial_number",
            name=NATURAL_KEY_CONSTRAINT,
            postgresql_nulls_not_distinct=True,
        ),
        Index("idx_auction_records_date", "auction_date"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    auction_date: Mapped[date] = mapped_column(Date, nullable=False)
    auctioneer: Mapped[str] = mapped_column(Text, nullable=False)
    serial_number: Mapped[int | None] = mapped_column(Integer, nullable=True)
    lots_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    total_arrived_kg: Mapped[Decimal | None] = mapped_column(
        Numeric(14, 2), nullable=True
    )
    sold_kg: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    max_price_per_kg: Mapped[Decimal | None] = mapped_column(
        Numeric(10, 2), nullable=True
    )
    avg_price_per_kg: Mapped[Decimal | None] = mapped_column(
        Numeric(10, 2), nullable=True
    )
    source_url: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
