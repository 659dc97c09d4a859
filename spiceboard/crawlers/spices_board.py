"""Spices Board small cardamom auction archive crawler."""

import logging

import httpx
from bs4 import BeautifulSoup

from spiceboard.config import Settings, get_settings
from spiceboard.crawlers.base import CrawlResult
from spiceboard.crawlers.tables import (
    HeaderPhraseTableSelector,
    ScrapedRow,
    TableSelector,
    extract_rows,
)
from spiceboard.errors import UpstreamError

logger = logging.getLogger(__name__)


class SpicesBoardCrawler:
    """Fetch and parse the public auction price archive."""

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        table_selector: TableSelector | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._table_selector = table_selector or HeaderPhraseTableSelector()

        # The site rejects requests without a browser identity.
        self._headers = {
            "User-Agent": self._settings.spices_board_user_agent,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "en-IN,en;q=0.9",
        }

    @property
    def base_url(self) -> str:
        return self._settings.spices_board_url

    def page_url(self, page: int = 1) -> str:
        if page < 1:
            raise ValueError(f"page must be >= 1, got {page}")
        if page == 1:
            return self.base_url
        return f"{self.base_url}?page={page}"

    def build_client(self) -> httpx.AsyncClient:
        timeout = httpx.Timeout(self._settings.spices_board_request_timeout_seconds)
        return httpx.AsyncClient(
            timeout=timeout, headers=self._headers, follow_redirects=True
        )

    async def _request_html(self, client: httpx.AsyncClient, url: str) -> str:
        try:
            response = await client.get(url, headers=self._headers)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            logger.warning(f"HTTP {status_code} fetching {url}")
            raise UpstreamError(
                f"Failed to fetch Spices Board page (HTTP {status_code})"
            ) from e
        except httpx.HTTPError as e:
            logger.warning(f"Request error fetching {url}: {e!r}")
            raise UpstreamError("Failed to fetch Spices Board page") from e
        return response.text

    async def fetch_page(
        self, client: httpx.AsyncClient, page: int = 1
    ) -> CrawlResult[ScrapedRow]:
        """Fetch one archive page and parse its rows.

        Raises ``UpstreamError`` on any non-success response and
        ``NoTableFoundError`` when the page holds no table at all.
        """

        url = self.page_url(page)
        html = await self._request_html(client, url)
        soup = BeautifulSoup(html, "lxml")
        rows = extract_rows(soup, self._table_selector)

        errors = [
            f"Could not parse date {row.auction_date_raw!r} on page {page}"
            for row in rows
            if row.auction_date is None
        ]
        for error in errors:
            logger.warning(error)

        logger.info(f"Parsed {len(rows)} rows from page {page} ({url})")
        return CrawlResult(source_url=url, rows=rows, errors=errors)

    async def run(self, page: int = 1) -> CrawlResult[ScrapedRow]:
        """Fetch a single page with a short-lived client."""

        async with self.build_client() as client:
            return await self.fetch_page(client, page)
