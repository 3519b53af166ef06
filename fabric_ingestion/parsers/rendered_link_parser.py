"""Linked-download adapter.

The supplier's page does not hold the data itself; it links to it. The page
is fetched (or rendered in headless Chromium when its links are generated
by scripts), the first anchor whose text contains one of the vendor's link
keywords is followed, and the linked spreadsheet is read. Google Sheets
links are rewritten to their xlsx export URL.
"""
from typing import List, Optional
from urllib.parse import urljoin

import structlog
from bs4 import BeautifulSoup
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import async_playwright

from fabric_ingestion.config import settings
from fabric_ingestion.errors.exceptions import SourceUnavailableError
from fabric_ingestion.parsers.base_parser import DEFAULT_HEADERS
from fabric_ingestion.parsers.excel_parser import ExcelUrlAdapter, to_export_url
from fabric_ingestion.parsers.readers import SourceTable

logger = structlog.get_logger(__name__)

DEFAULT_LINK_KEYWORDS = ["скачать", "остатки", "download"]

CHROMIUM_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
]


def find_link(markup: str, page_url: str, keywords: List[str]) -> Optional[str]:
    """Absolute href of the first anchor whose text contains any keyword."""
    lowered = [keyword.lower() for keyword in keywords if keyword]
    soup = BeautifulSoup(markup or "", "html.parser")
    for anchor in soup.find_all("a", href=True):
        text = anchor.get_text(" ", strip=True).lower()
        if any(keyword in text for keyword in lowered):
            return urljoin(page_url, anchor["href"])
    return None


async def render_page(url: str) -> str:
    """Return the page DOM after scripts have run.

    Raises:
        SourceUnavailableError: If the browser cannot load the page
    """
    try:
        async with async_playwright() as playwright:
            browser = await playwright.chromium.launch(headless=True, args=CHROMIUM_ARGS)
            try:
                page = await browser.new_page(user_agent=DEFAULT_HEADERS["User-Agent"])
                await page.goto(url, wait_until="networkidle", timeout=settings.headless_timeout_ms)
                return await page.content()
            finally:
                await browser.close()
    except PlaywrightError as e:
        logger.warning("page_render_failed", url=url, error=str(e))
        raise SourceUnavailableError(f"Cannot render page {url}: {e}") from e


class RenderedLinkAdapter(ExcelUrlAdapter):
    """Follows a download link found on the supplier's page."""

    def get_adapter_name(self) -> str:
        """Return adapter identifier."""
        return "rendered_link"

    async def page_markup(self, url: str) -> str:
        """Page HTML, rendered headlessly when the vendor needs it."""
        if self.fetch_options.render_page:
            return await render_page(url)
        async with self.http_session() as client:
            response = await self.fetch(client, url)
        return response.text

    async def load_table(self, source: str) -> SourceTable:
        if not source:
            raise SourceUnavailableError("Supplier has no parsing URL")
        keywords = self.fetch_options.link_keywords or DEFAULT_LINK_KEYWORDS
        markup = await self.page_markup(source)
        link = find_link(markup, source, keywords)
        if link is None:
            raise SourceUnavailableError(
                f"No download link matching {keywords} found on {source}"
            )

        download_url = to_export_url(link)
        logger.info("download_link_found", page=source, link=link, download_url=download_url)
        async with self.http_session() as client:
            response = await self.fetch(client, download_url)
        return self.decode_download(response.content, download_url)
