"""Crawler implementations."""

from spiceboard.crawlers.base import CrawlResult
from spiceboard.crawlers.spices_board import SpicesBoardCrawler
from spiceboard.crawlers.tables import (
    HeaderPhraseTableSelector,
    IndexTableSelector,
    ScrapedRow,
    TableSelector,
    extract_rows,
)

__all__ = [
    "CrawlResult",
    "HeaderPhraseTableSelector",
    "IndexTableSelector",
    "ScrapedRow",
    "SpicesBoardCrawler",
    "TableSelector",
    "extract_rows",
]
