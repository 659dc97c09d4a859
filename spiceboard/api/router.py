"""JSON API for the price list admin panel and auction archive."""

from datetime import UTC, date, datetime

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from spiceboard.api.schemas import (
    BackfillRequest,
    BulkUpdatePricesRequest,
    UpdatePriceRequest,
)
from spiceboard.auth import Identity, require_admin
from spiceboard.db.session import get_db_session
from spiceboard.services import AuctionService, PriceService
from spiceboard.services.price_service import (
    DEFAULT_PRICE_CHANGES_LIMIT,
    MAX_PRICE_CHANGES_LIMIT,
)
from spiceboard.taskiq_app.tasks import enqueue_backfill_auction_history

router = APIRouter(prefix="/api", tags=["api"])


@router.get("/auctions/latest")
async def scrape_latest_auctions(
    session: AsyncSession = Depends(get_db_session),
) -> dict[str, object]:
    """Scrape the live archive page, merge it into the store and return it."""

    return await AuctionService(session).ingest()


@router.get("/auctions/history")
async def auction_history(
    session: AsyncSession = Depends(get_db_session),
    from_date: date | None = None,
    to_date: date | None = None,
) -> dict[str, object]:
    rows = await AuctionService(session).get_history(
        from_date=from_date, to_date=to_date
    )
    return {"rows": rows}


@router.post("/auctions/backfill")
async def trigger_backfill(
    body: BackfillRequest,
    identity: Identity = Depends(require_admin),
) -> dict[str, object]:
    """Enqueue the paginated archive backfill."""

    fingerprint = f"{body.start_page or 'default'}-{body.end_page or 'default'}"
    if body.force:
        fingerprint = f"force-{datetime.now(UTC).isoformat()}"

    result = await enqueue_backfill_auction_history(
        start_page=body.start_page,
        end_page=body.end_page,
        fingerprint=fingerprint,
    )
    return {**result, "requested_by": identity.email}


@router.get("/products")
async def list_products(
    session: AsyncSession = Depends(get_db_session),
) -> list[dict[str, object]]:
    return await PriceService(session).list_products()


@router.get("/price-changes")
async def list_price_changes(
    session: AsyncSession = Depends(get_db_session),
    limit: int = Query(DEFAULT_PRICE_CHANGES_LIMIT, ge=1, le=MAX_PRICE_CHANGES_LIMIT),
) -> list[dict[str, object]]:
    return await PriceService(session).list_price_changes(limit=limit)


@router.post("/prices/update")
async def update_price(
    body: UpdatePriceRequest,
    identity: Identity = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
) -> dict[str, object]:
    """Set a single product price (admin only)."""

    return await PriceService(session).update_price(
        body.id, body.new_price, actor=identity.email
    )


@router.post("/prices/bulk-update")
async def bulk_update_prices(
    body: BulkUpdatePricesRequest,
    identity: Identity = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
) -> dict[str, object]:
    """Add or subtract an amount across selected products (admin only)."""

    return await PriceService(session).bulk_adjust(
        body.product_ids, body.mode, body.amount, actor=identity.email
    )
