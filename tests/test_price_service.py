from __future__ import annotations

from decimal import Decimal

import pytest
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from spiceboard.errors import NotFoundError, PersistenceError, ValidationError
from spiceboard.models import PriceChange, Product
from spiceboard.services.price_service import (
    AUDIT_WARNING,
    BULK_AUDIT_WARNING,
    PriceService,
    adjust_price,
)

ADMIN = "admin@example.test"


async def _seed(session: AsyncSession) -> None:
    session.add_all(
        [
            Product(id="p-extra", name="Extra Bold 8mm+", sku="EB8", price_inr=Decimal("2800"), sort_order=1),
            Product(id="p-bold", name="Bold 7-8mm", sku=None, price_inr=Decimal("2500"), sort_order=2),
        ]
    )
    await session.commit()


async def _price_of(session: AsyncSession, product_id: str) -> Decimal:
    session.expire_all()
    result = await session.execute(
        select(Product.price_inr).where(Product.id == product_id)
    )
    return result.scalar_one()


async def _audit_rows(session: AsyncSession) -> list[PriceChange]:
    result = await session.execute(select(PriceChange).order_by(PriceChange.product_id))
    return list(result.scalars().all())


@pytest.mark.anyio
async def test_adjust_price_clamps_at_zero() -> None:
    assert adjust_price(Decimal("2800"), "subtract", Decimal("5000")) == Decimal("0")
    assert adjust_price(Decimal("2800"), "add", Decimal("150.50")) == Decimal("2950.50")


@pytest.mark.anyio
async def test_bulk_subtract_clamps_and_audits(db_session: AsyncSession) -> None:
    await _seed(db_session)

    result = await PriceService(db_session).bulk_adjust(
        ["p-extra"], "subtract", 5000, actor=ADMIN
    )

    assert result == {"success": True, "count": 1}
    assert await _price_of(db_session, "p-extra") == Decimal("0")

    audits = await _audit_rows(db_session)
    assert len(audits) == 1
    assert audits[0].product_id == "p-extra"
    assert audits[0].old_price == Decimal("2800")
    assert audits[0].new_price == Decimal("0")
    assert audits[0].changed_by == ADMIN


@pytest.mark.anyio
async def test_bulk_add_updates_every_selected_product(db_session: AsyncSession) -> None:
    await _seed(db_session)

    result = await PriceService(db_session).bulk_adjust(
        ["p-extra", "p-bold", "p-extra"], "add", 100, actor=ADMIN
    )

    assert result == {"success": True, "count": 2}
    assert await _price_of(db_session, "p-extra") == Decimal("2900")
    assert await _price_of(db_session, "p-bold") == Decimal("2600")

    audits = await _audit_rows(db_session)
    assert [a.product_id for a in audits] == ["p-bold", "p-extra"]
    assert audits[0].changed_at == audits[1].changed_at


@pytest.mark.anyio
@pytest.mark.parametrize(
    ("product_ids", "mode", "amount"),
    [
        ([], "add", 10),
        (["p-extra"], "multiply", 10),
        (["p-extra"], "add", 0),
        (["p-extra"], "add", -5),
        (["p-extra"], "add", "10"),
        (["p-extra"], "add", float("nan")),
        (["p-extra"], "add", True),
    ],
)
async def test_bulk_adjust_rejects_invalid_input(
    db_session: AsyncSession, product_ids: list[str], mode: str, amount: object
) -> None:
    await _seed(db_session)

    with pytest.raises(ValidationError):
        await PriceService(db_session).bulk_adjust(
            product_ids, mode, amount, actor=ADMIN
        )

    assert await _price_of(db_session, "p-extra") == Decimal("2800")
    assert await _audit_rows(db_session) == []


@pytest.mark.anyio
async def test_bulk_adjust_unknown_products_not_found(db_session: AsyncSession) -> None:
    await _seed(db_session)

    with pytest.raises(NotFoundError):
        await PriceService(db_session).bulk_adjust(
            ["missing"], "add", 10, actor=ADMIN
        )


@pytest.mark.anyio
async def test_update_price_sets_value_and_audits(db_session: AsyncSession) -> None:
    await _seed(db_session)

    result = await PriceService(db_session).update_price(
        "p-bold", 2650.5, actor=ADMIN
    )

    assert result == {"success": True}
    assert await _price_of(db_session, "p-bold") == Decimal("2650.50")
    audits = await _audit_rows(db_session)
    assert len(audits) == 1
    assert audits[0].old_price == Decimal("2500")
    assert audits[0].new_price == Decimal("2650.50")


@pytest.mark.anyio
async def test_update_price_clamps_negative_to_zero(db_session: AsyncSession) -> None:
    await _seed(db_session)

    await PriceService(db_session).update_price("p-bold", -10, actor=ADMIN)

    assert await _price_of(db_session, "p-bold") == Decimal("0")


@pytest.mark.anyio
async def test_update_price_missing_product(db_session: AsyncSession) -> None:
    await _seed(db_session)

    with pytest.raises(NotFoundError):
        await PriceService(db_session).update_price("missing", 10, actor=ADMIN)
    with pytest.raises(ValidationError):
        await PriceService(db_session).update_price("", 10, actor=ADMIN)


@pytest.mark.anyio
async def test_audit_failure_keeps_price_and_warns(
    monkeypatch: pytest.MonkeyPatch, db_session: AsyncSession
) -> None:
    await _seed(db_session)

    async def failing_insert(*_args: object, **_kwargs: object) -> int:
        raise SQLAlchemyError("audit table unavailable")

    monkeypatch.setattr(
        "spiceboard.services.price_service.insert_price_changes", failing_insert
    )
    service = PriceService(db_session)

    single = await service.update_price("p-bold", 2700, actor=ADMIN)
    bulk = await service.bulk_adjust(["p-extra"], "add", 50, actor=ADMIN)

    assert single == {"success": True, "warning": AUDIT_WARNING}
    assert bulk == {"success": True, "count": 1, "warning": BULK_AUDIT_WARNING}
    assert await _price_of(db_session, "p-bold") == Decimal("2700")
    assert await _price_of(db_session, "p-extra") == Decimal("2850")
    assert await _audit_rows(db_session) == []


@pytest.mark.anyio
async def test_price_write_failure_raises_persistence_error(
    monkeypatch: pytest.MonkeyPatch, db_session: AsyncSession
) -> None:
    await _seed(db_session)

    async def failing_update(*_args: object, **_kwargs: object) -> int:
        raise SQLAlchemyError("write failed")

    monkeypatch.setattr(
        "spiceboard.services.price_service.update_product_prices", failing_update
    )

    with pytest.raises(PersistenceError):
        await PriceService(db_session).update_price("p-bold", 2700, actor=ADMIN)

    assert await _audit_rows(db_session) == []


@pytest.mark.anyio
@pytest.mark.parametrize(
    "target",
    [
        "spiceboard.services.price_service.fetch_products_by_ids",
        "spiceboard.services.price_service.update_product_prices",
    ],
)
async def test_unreachable_store_raises_persistence_error(
    monkeypatch: pytest.MonkeyPatch, db_session: AsyncSession, target: str
) -> None:
    await _seed(db_session)

    async def refused(*_args: object, **_kwargs: object) -> object:
        raise ConnectionRefusedError(111, "Connect call failed")

    monkeypatch.setattr(target, refused)

    with pytest.raises(PersistenceError) as exc_info:
        await PriceService(db_session).bulk_adjust(
            ["p-extra"], "add", 10, actor=ADMIN
        )

    assert exc_info.value.kind == "persistence"
    assert await _audit_rows(db_session) == []


@pytest.mark.anyio
async def test_list_products_and_price_changes(db_session: AsyncSession) -> None:
    await _seed(db_session)
    service = PriceService(db_session)
    await service.update_price("p-extra", 3000, actor=ADMIN)

    products = await service.list_products()
    assert products == [
        {"id": "p-extra", "name": "Extra Bold 8mm+", "sku": "EB8", "price_inr": 3000.0},
        {"id": "p-bold", "name": "Bold 7-8mm", "sku": "", "price_inr": 2500.0},
    ]

    changes = await service.list_price_changes(limit=500)
    assert len(changes) == 1
    assert changes[0]["product_name"] == "Extra Bold 8mm+"
    assert changes[0]["old_price"] == 2800.0
    assert changes[0]["new_price"] == 3000.0
    assert changes[0]["changed_by"] == ADMIN
