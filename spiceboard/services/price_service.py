"""Price list reads and audited price mutations."""

from __future__ import annotations

import logging
import math
from datetime import UTC, datetime
from decimal import Decimal
from typing import Final

from sqlalchemy.ext.asyncio import AsyncSession

from spiceboard.db.repositories import (
    PriceChangeInsert,
    ProductPriceUpdate,
    fetch_price_changes,
    fetch_products,
    fetch_products_by_ids,
    insert_price_changes,
    update_product_prices,
)
from spiceboard.db.session import STORE_ERRORS
from spiceboard.errors import NotFoundError, PersistenceError, ValidationError
from spiceboard.models.product import Product

logger = logging.getLogger(__name__)

BULK_MODES: Final = ("add", "subtract")
DEFAULT_PRICE_CHANGES_LIMIT: Final = 50
MAX_PRICE_CHANGES_LIMIT: Final = 200
AUDIT_WARNING: Final = "price updated but audit logging failed"
BULK_AUDIT_WARNING: Final = "prices updated, audit logging failed"
_ZERO: Final = Decimal("0")


def _to_price(value: object, *, field_name: str) -> Decimal:
    # bool is an int subclass; reject it explicitly.
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        raise ValidationError(f"{field_name} must be a number")
    if isinstance(value, float) and not math.isfinite(value):
        raise ValidationError(f"{field_name} must be a finite number")
    if isinstance(value, Decimal) and not value.is_finite():
        raise ValidationError(f"{field_name} must be a finite number")
    return Decimal(str(value))


def clamp_price(value: Decimal) -> Decimal:
    """Prices never go below zero."""

    return value if value > _ZERO else _ZERO


def adjust_price(old_price: Decimal, mode: str, amount: Decimal) -> Decimal:
    delta = amount if mode == "add" else -amount
    return clamp_price(old_price + delta)


class PriceService:
    """Service layer for the admin price editor and bulk adjustments."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def _read_products(self, product_ids: list[str]) -> list[Product]:
        try:
            return await fetch_products_by_ids(self._session, product_ids)
        except STORE_ERRORS as e:
            logger.exception(f"Failed to read products {product_ids}")
            raise PersistenceError("Failed to read products") from e

    async def _write_prices(
        self, updates: list[ProductPriceUpdate], updated_at: datetime
    ) -> None:
        try:
            await update_product_prices(self._session, updates, updated_at=updated_at)
        except STORE_ERRORS as e:
            await self._session.rollback()
            logger.exception(
                f"Failed to write prices for {[u.product_id for u in updates]}"
            )
            raise PersistenceError("Failed to update product prices") from e

    async def _append_audit(self, rows: list[PriceChangeInsert]) -> bool:
        """Best-effort audit write; the price change stands either way."""

        try:
            await insert_price_changes(self._session, rows)
        except STORE_ERRORS:
            await self._session.rollback()
            logger.exception(
                f"Audit insert failed for {[row.product_id for row in rows]}"
            )
            return False
        return True

    async def update_price(
        self, product_id: str, new_price: object, *, actor: str
    ) -> dict[str, object]:
        """Set one product's price and record the change."""

        if not product_id:
            raise ValidationError("Product id is required")
        price = clamp_price(_to_price(new_price, field_name="new_price"))

        products = await self._read_products([product_id])
        if not products:
            raise NotFoundError("Product not found")
        product = products[0]
        old_price = Decimal(product.price_inr)

        now = datetime.now(UTC)
        await self._write_prices(
            [ProductPriceUpdate(product_id=product.id, price_inr=price)], now
        )
        logger.info(f"Price of {product.id} changed {old_price} -> {price} by {actor}")

        audited = await self._append_audit(
            [
                PriceChangeInsert(
                    product_id=product.id,
                    old_price=old_price,
                    new_price=price,
                    changed_by=actor,
                    changed_at=now,
                )
            ]
        )
        if not audited:
            return {"success": True, "warning": AUDIT_WARNING}
        return {"success": True}

    async def bulk_adjust(
        self,
        product_ids: list[str],
        mode: str,
        amount: object,
        *,
        actor: str,
    ) -> dict[str, object]:
        """Add or subtract a fixed amount across several products."""

        if not product_ids:
            raise ValidationError("No product IDs provided")
        if mode not in BULK_MODES:
            raise ValidationError("Invalid mode")
        delta = _to_price(amount, field_name="amount")
        if delta <= _ZERO:
            raise ValidationError("Amount must be a number > 0")

        products = await self._read_products(list(dict.fromkeys(product_ids)))
        if not products:
            raise NotFoundError("No matching products found")

        now = datetime.now(UTC)
        updates: list[ProductPriceUpdate] = []
        audits: list[PriceChangeInsert] = []
        for product in products:
            old_price = Decimal(product.price_inr)
            new_price = adjust_price(old_price, mode, delta)
            updates.append(ProductPriceUpdate(product_id=product.id, price_inr=new_price))
            audits.append(
                PriceChangeInsert(
                    product_id=product.id,
                    old_price=old_price,
                    new_price=new_price,
                    changed_by=actor,
                    changed_at=now,
                )
            )

        await self._write_prices(updates, now)
        logger.info(
            f"Bulk {mode} {delta} applied to {len(updates)} products by {actor}"
        )

        response: dict[str, object] = {"success": True, "count": len(updates)}
        if not await self._append_audit(audits):
            response["warning"] = BULK_AUDIT_WARNING
        return response

    async def list_products(self) -> list[dict[str, object]]:
        """Return the price list in display order."""

        try:
            products = await fetch_products(self._session)
        except STORE_ERRORS as e:
            logger.exception("Failed to read price list")
            raise PersistenceError("Failed to read products") from e
        return [
            {
                "id": product.id,
                "name": product.name,
                "sku": product.sku or "",
                "price_inr": float(product.price_inr),
            }
            for product in products
        ]

    async def list_price_changes(
        self, limit: int = DEFAULT_PRICE_CHANGES_LIMIT
    ) -> list[dict[str, object]]:
        """Return recent audit rows, newest first."""

        limit = max(1, min(limit, MAX_PRICE_CHANGES_LIMIT))
        try:
            rows = await fetch_price_changes(self._session, limit=limit)
        except STORE_ERRORS as e:
            logger.exception("Failed to read price changes")
            raise PersistenceError("Failed to read price changes") from e
        return [
            {
                "id": row.id,
                "product_id": row.product_id,
                "product_name": row.product_name,
                "old_price": float(row.old_price),
                "new_price": float(row.new_price),
                "changed_by": row.changed_by,
                "changed_at": row.changed_at.isoformat(),
            }
            for row in rows
        ]
