"""Price change audit table model."""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, Index, Numeric, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from spiceboard.models.base import Base


class PriceChange(Base):
    """Append-only audit record of a product price mutation."""

    __tablename__ = "price_changes"
    __table_args__ = (
        Index("idx_price_changes_product", "product_id"),
        Index("idx_price_changes_date", "changed_at"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    # No foreign key: audit rows outlive deleted products.
    product_id: Mapped[str] = mapped_column(String(64), nullable=False)
    old_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    new_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    changed_by: Mapped[str] = mapped_column(Text, nullable=False)
    changed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
