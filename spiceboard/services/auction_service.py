"""Scrape, normalize and merge auction archive rows into the store."""

import asyncio
import logging
from datetime import date

from sqlalchemy.ext.asyncio import AsyncSession

from spiceboard.config import Settings, get_settings
from spiceboard.crawlers.spices_board import SpicesBoardCrawler
from spiceboard.crawlers.tables import ScrapedRow
from spiceboard.db.repositories import (
    AuctionRecordUpsert,
    fetch_auction_records,
    upsert_auction_records,
)
from spiceboard.db.session import STORE_ERRORS
from spiceboard.errors import NoTableFoundError, UpstreamError, ValidationError

logger = logging.getLogger(__name__)


def _records_for(rows: list[ScrapedRow], source_url: str) -> list[AuctionRecordUpsert]:
    records: list[AuctionRecordUpsert] = []
    for row in rows:
        record = row.to_record(source_url)
        if record is not None:
            records.append(record)
    return records


class AuctionService:
    """Service layer for the auction price archive."""

    def __init__(
        self,
        session: AsyncSession,
        crawler: SpicesBoardCrawler | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._session = session
        self._settings = settings or get_settings()
        self._crawler = crawler or SpicesBoardCrawler(self._settings)

    async def _persist(self, rows: list[ScrapedRow], source_url: str) -> int:
        records = _records_for(rows, source_url)
        try:
            return await upsert_auction_records(self._session, records)
        except STORE_ERRORS:
            await self._session.rollback()
            raise

    async def ingest(self, page: int = 1) -> dict[str, object]:
        """Scrape one page and return the live rows.

        Persistence is best-effort: a failed upsert is logged and reported as a
        warning while the scraped rows are still returned.
        """

        result = await self._crawler.run(page)

        response: dict[str, object] = {
            "source_url": result.source_url,
            "rows": [row.to_dict() for row in result.rows],
        }
        try:
            response["stored"] = await self._persist(result.rows, result.source_url)
        except STORE_ERRORS:
            logger.exception(f"Failed to upsert auction rows from {result.source_url}")
            response["stored"] = 0
            response["warning"] = "rows scraped but saving to the archive failed"
        return response

    async def backfill(
        self,
        start_page: int,
        end_page: int,
        *,
        delay_seconds: float | None = None,
    ) -> dict[str, object]:
        """Walk archive pages in order, merging each into the store.

        Stops at the first page without rows. A page whose fetch or upsert
        fails is recorded in ``errors`` and skipped. Requests are separated by
        a fixed delay.
        """

        if start_page < 1 or end_page < start_page:
            raise ValidationError(
                f"Invalid page range {start_page}..{end_page}"
            )

        delay = (
            self._settings.spices_board_page_delay_seconds
            if delay_seconds is None
            else delay_seconds
        )
        pages_fetched = 0
        rows_scraped = 0
        rows_stored = 0
        stopped_early = False
        last_page = start_page
        errors: list[str] = []

        logger.info(f"Backfilling auction archive pages {start_page} -> {end_page}")

        async with self._crawler.build_client() as client:
            for page in range(start_page, end_page + 1):
                last_page = page
                if page > start_page:
                    await asyncio.sleep(delay)

                try:
                    result = await self._crawler.fetch_page(client, page)
                except NoTableFoundError:
                    logger.warning(f"No archive table found on page {page}, stopping")
                    stopped_early = True
                    break
                except UpstreamError as e:
                    error_msg = f"Page {page}: {e.message}"
                    logger.warning(error_msg)
                    errors.append(error_msg)
                    continue

                pages_fetched += 1
                if result.is_empty:
                    logger.info(f"No rows on page {page}, stopping")
                    stopped_early = True
                    break

                rows_scraped += result.count
                errors.extend(result.errors)
                try:
                    stored = await self._persist(result.rows, result.source_url)
                except STORE_ERRORS as e:
                    error_msg = f"Page {page}: upsert failed: {e}"
                    logger.exception(error_msg)
                    errors.append(error_msg)
                    continue

                rows_stored += stored
                logger.info(f"Saved {stored} rows from page {page}")

        logger.info(
            f"Backfill finished: pages_fetched={pages_fetched}, "
            f"rows_scraped={rows_scraped}, rows_stored={rows_stored}, "
            f"errors={len(errors)}"
        )
        return {
            "pages_fetched": pages_fetched,
            "rows_scraped": rows_scraped,
            "rows_stored": rows_stored,
            "stopped_early": stopped_early,
            "last_page": last_page,
            "errors": errors,
        }

    async def get_history(
        self,
        *,
        from_date: date | None = None,
        to_date: date | None = None,
    ) -> list[dict[str, object]]:
        """Return stored archive rows ordered by auction date."""

        if from_date and to_date and from_date > to_date:
            raise ValidationError("from_date must not be after to_date")

        records = await fetch_auction_records(
            self._session, from_date=from_date, to_date=to_date
        )
        return [
            {
                "auction_date": record.auction_date.isoformat(),
                "auctioneer": record.auctioneer,
                "serial_number": record.serial_number,
                "lots_count": record.lots_count,
                "total_arrived_kg": float(record.total_arrived_kg)
                if record.total_arrived_kg is not None
                else None,
                "sold_kg": float(record.sold_kg) if record.sold_kg is not None else None,
                "max_price_per_kg": float(record.max_price_per_kg)
                if record.max_price_per_kg is not None
                else None,
                "avg_price_per_kg": float(record.avg_price_per_kg)
                if record.avg_price_per_kg is not None
                else None,
            }
            for record in records
        ]
