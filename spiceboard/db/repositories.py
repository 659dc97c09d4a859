"""Repository helpers for auction records, products and price audit rows."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import func, insert, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from spiceboard.models.auction_record import NATURAL_KEY_CONSTRAINT, AuctionRecord
from spiceboard.models.price_change import PriceChange
from spiceboard.models.product import Product

AuctionKey = tuple[date, str, int | None]

_AUCTION_VALUE_COLUMNS = (
    "lots_count",
    "total_arrived_kg",
    "sold_kg",
    "max_price_per_kg",
    "avg_price_per_kg",
    "source_url",
)


@dataclass(slots=True)
class AuctionRecordUpsert:
    """Payload used to insert or refresh auction archive rows."""

    auction_date: date
    auctioneer: str
    serial_number: int | None
    lots_count: int | None
    total_arrived_kg: Decimal | None
    sold_kg: Decimal | None
    max_price_per_kg: Decimal | None
    avg_price_per_kg: Decimal | None
    source_url: str

    @property
    def natural_key(self) -> AuctionKey:
        return (self.auction_date, self.auctioneer, self.serial_number)


@dataclass(slots=True)
class ProductPriceUpdate:
    """New price for a single product, keyed by primary key."""

    product_id: str
    price_inr: Decimal


@dataclass(slots=True)
class PriceChangeInsert:
    """Payload used to append price audit rows."""

    product_id: str
    old_price: Decimal
    new_price: Decimal
    changed_by: str
    changed_at: datetime


@dataclass(slots=True)
class PriceChangeRow:
    """Audit row joined with the (possibly deleted) product name."""

    id: int
    product_id: str
    product_name: str | None
    old_price: Decimal
    new_price: Decimal
    changed_by: str
    changed_at: datetime


def dedupe_auction_rows(rows: list[AuctionRecordUpsert]) -> list[AuctionRecordUpsert]:
    """Collapse rows sharing a natural key, keeping the last one seen."""

    seen: dict[AuctionKey, AuctionRecordUpsert] = {}
    for row in rows:
        seen[row.natural_key] = row
    return list(seen.values())


async def upsert_auction_records(
    session: AsyncSession, rows: list[AuctionRecordUpsert]
) -> int:
    """Insert auction rows or overwrite non-key columns on natural key conflict."""

    if not rows:
        return 0

    rows = dedupe_auction_rows(rows)
    dialect_name = session.get_bind().dialect.name

    if dialect_name == "postgresql":
        values = [asdict(row) for row in rows]
        stmt = pg_insert(AuctionRecord).values(values)
        stmt = stmt.on_conflict_do_update(
            constraint=NATURAL_KEY_CONSTRAINT,
            set_={
                **{column: stmt.excluded[column] for column in _AUCTION_VALUE_COLUMNS},
                "updated_at": func.now(),
            },
        ).returning(AuctionRecord.id)
        result = await session.execute(stmt)
        affected_ids = result.scalars().all()
        await session.commit()
        return len(affected_ids)

    for row in rows:
        serial_filter = (
            AuctionRecord.serial_number.is_(None)
            if row.serial_number is None
            else AuctionRecord.serial_number == row.serial_number
        )
        existing_stmt = (
            select(AuctionRecord)
            .where(AuctionRecord.auction_date == row.auction_date)
            .where(AuctionRecord.auctioneer == row.auctioneer)
            .where(serial_filter)
        )
        existing = (await session.execute(existing_stmt)).scalar_one_or_none()
        if existing is None:
            session.add(AuctionRecord(**asdict(row)))
            continue
        for column in _AUCTION_VALUE_COLUMNS:
            setattr(existing, column, getattr(row, column))

    await session.commit()
    return len(rows)


async def fetch_auction_records(
    session: AsyncSession,
    *,
    from_date: date | None = None,
    to_date: date | None = None,
) -> list[AuctionRecord]:
    """Fetch stored auction rows ordered by auction date ascending."""

    stmt = select(AuctionRecord).order_by(
        AuctionRecord.auction_date.asc(),
        AuctionRecord.auctioneer.asc(),
        AuctionRecord.serial_number.asc(),
    )
    if from_date is not None:
        stmt = stmt.where(AuctionRecord.auction_date >= from_date)
    if to_date is not None:
        stmt = stmt.where(AuctionRecord.auction_date <= to_date)

    result = await session.execute(stmt)
    return list(result.scalars().all())


async def fetch_products(session: AsyncSession) -> list[Product]:
    """Fetch the price list in display order."""

    stmt = (
        select(Product)
        .order_by(Product.sort_order.asc().nulls_last(), Product.created_at.asc())
        .execution_options(populate_existing=True)
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def fetch_products_by_ids(
    session: AsyncSession, product_ids: list[str]
) -> list[Product]:
    """Fetch products matching the given primary keys."""

    if not product_ids:
        return []

    # Bulk price writes bypass the identity map.
    stmt = (
        select(Product)
        .where(Product.id.in_(product_ids))
        .execution_options(populate_existing=True)
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def update_product_prices(
    session: AsyncSession,
    updates: list[ProductPriceUpdate],
    *,
    updated_at: datetime,
) -> int:
    """Write new prices in one batch keyed by primary key."""

    if not updates:
        return 0

    await session.execute(
        update(Product),
        [
            {"id": row.product_id, "price_inr": row.price_inr, "updated_at": updated_at}
            for row in updates
        ],
    )
    await session.commit()
    return len(updates)


async def insert_price_changes(
    session: AsyncSession, rows: list[PriceChangeInsert]
) -> int:
    """Append audit rows."""

    if not rows:
        return 0

    await session.execute(insert(PriceChange), [asdict(row) for row in rows])
    await session.commit()
    return len(rows)


async def fetch_price_changes(
    session: AsyncSession, *, limit: int = 50
) -> list[PriceChangeRow]:
    """Fetch the newest audit rows with product names where still available."""

    stmt = (
        select(PriceChange, Product.name)
        .outerjoin(Product, Product.id == PriceChange.product_id)
        .order_by(PriceChange.changed_at.desc(), PriceChange.id.desc())
        .limit(limit)
    )
    result = await session.execute(stmt)
    return [
        PriceChangeRow(
            id=change.id,
            product_id=change.product_id,
            product_name=product_name,
            old_price=change.old_price,
            new_price=change.new_price,
            changed_by=change.changed_by,
            changed_at=change.changed_at,
        )
        for change, product_name in result.all()
    ]
