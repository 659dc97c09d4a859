"""Locate the auction archive table in a parsed page and read its rows."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Final, Protocol

from bs4 import BeautifulSoup
from bs4.element import Tag

from spiceboard.crawlers.normalize import (
    normalize_date,
    normalize_integer,
    normalize_number,
)
from spiceboard.db.repositories import AuctionRecordUpsert
from spiceboard.errors import NoTableFoundError

ARCHIVE_HEADER_PHRASE: Final = (
    "Sno Date of Auction Auctioneer No.of Lots Total Qty Arrived (Kgs) "
    "Qty Sold (Kgs) MaxPrice (Rs./Kg) Avg.Price (Rs./Kg)"
)
ARCHIVE_COLUMN_COUNT: Final = 8


def _collapse_whitespace(text: str) -> str:
    return " ".join(text.split())


def _table_text(table: Tag) -> str:
    return _collapse_whitespace(table.get_text(" ")).casefold()


def _as_float(value: Decimal | None) -> float | None:
    return float(value) if value is not None else None


@dataclass(slots=True)
class ScrapedRow:
    """One archive row as read from the page."""

    serial_number: int | None
    auction_date_raw: str
    auction_date: str | None
    auctioneer: str
    lots_count: int | None
    total_arrived_kg: Decimal | None
    sold_kg: Decimal | None
    max_price_per_kg: Decimal | None
    avg_price_per_kg: Decimal | None

    def to_dict(self) -> dict[str, object]:
        return {
            "serial_number": self.serial_number,
            "auction_date_raw": self.auction_date_raw,
            "auction_date": self.auction_date,
            "auctioneer": self.auctioneer,
            "lots_count": self.lots_count,
            "total_arrived_kg": _as_float(self.total_arrived_kg),
            "sold_kg": _as_float(self.sold_kg),
            "max_price_per_kg": _as_float(self.max_price_per_kg),
            "avg_price_per_kg": _as_float(self.avg_price_per_kg),
        }

    def to_record(self, source_url: str) -> AuctionRecordUpsert | None:
        """Build the store payload, or ``None`` when the row has no usable date."""

        if self.auction_date is None:
            return None
        return AuctionRecordUpsert(
            auction_date=date.fromisoformat(self.auction_date),
            auctioneer=self.auctioneer,
            serial_number=self.serial_number,
            lots_count=self.lots_count,
            total_arrived_kg=self.total_arrived_kg,
            sold_kg=self.sold_kg,
            max_price_per_kg=self.max_price_per_kg,
            avg_price_per_kg=self.avg_price_per_kg,
            source_url=source_url,
        )


class TableSelector(Protocol):
    """Strategy that picks the archive table out of a parsed page."""

    def select(self, soup: BeautifulSoup) -> Tag | None: ...


@dataclass(slots=True)
class HeaderPhraseTableSelector:
    """Pick the first table whose text contains the archive header.

    Layout tables that merely wrap the archive table are skipped in favour of
    the innermost match. When nothing matches, the last table on the page is
    used since the archive is normally the final table.
    """

    header_phrase: str = ARCHIVE_HEADER_PHRASE
    fallback_to_last: bool = True
    _needle: str = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._needle = _collapse_whitespace(self.header_phrase).casefold()

    def _matches(self, table: Tag) -> bool:
        return self._needle in _table_text(table)

    def select(self, soup: BeautifulSoup) -> Tag | None:
        tables = soup.find_all("table")
        if not tables:
            return None

        for table in tables:
            if not self._matches(table):
                continue
            if any(self._matches(inner) for inner in table.find_all("table")):
                continue
            return table

        return tables[-1] if self.fallback_to_last else None


@dataclass(slots=True)
class IndexTableSelector:
    """Pick a table by its position on the page (negative counts from the end)."""

    index: int

    def select(self, soup: BeautifulSoup) -> Tag | None:
        tables = soup.find_all("table")
        try:
            return tables[self.index]
        except IndexError:
            return None


def _parse_cells(cells: list[str]) -> ScrapedRow:
    (
        serial,
        auction_date,
        auctioneer,
        lots,
        arrived,
        sold,
        max_price,
        avg_price,
    ) = cells[:ARCHIVE_COLUMN_COUNT]
    return ScrapedRow(
        serial_number=normalize_integer(serial),
        auction_date_raw=auction_date,
        auction_date=normalize_date(auction_date),
        auctioneer=auctioneer,
        lots_count=normalize_integer(lots),
        total_arrived_kg=normalize_number(arrived),
        sold_kg=normalize_number(sold),
        max_price_per_kg=normalize_number(max_price),
        avg_price_per_kg=normalize_number(avg_price),
    )


def extract_rows(
    soup: BeautifulSoup, selector: TableSelector | None = None
) -> list[ScrapedRow]:
    """Return the archive data rows in page order.

    The first row is treated as the header and rows with fewer than eight
    cells are skipped. Raises ``NoTableFoundError`` when the selector finds no
    table.
    """

    table = (selector or HeaderPhraseTableSelector()).select(soup)
    if table is None:
        raise NoTableFoundError()

    rows: list[ScrapedRow] = []
    for index, tr in enumerate(table.find_all("tr")):
        if index == 0:
            continue
        cells = tr.find_all("td")
        if len(cells) < ARCHIVE_COLUMN_COUNT:
            continue
        texts = [_collapse_whitespace(td.get_text(" ")) for td in cells]
        rows.append(_parse_cells(texts))
    return rows
