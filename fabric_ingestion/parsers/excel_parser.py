"""Spreadsheet-by-URL adapter.

Downloads an .xlsx/.xls file (or a zip holding one) from the supplier's
parsing URL and reads every sheet with pandas. Google Sheets edit links
are rewritten to their xlsx export URL first.
"""
import re
from pathlib import PurePosixPath
from typing import Optional
from urllib.parse import urlparse

import structlog

from fabric_ingestion.errors.exceptions import SourceUnavailableError
from fabric_ingestion.parsers.base_parser import SourceAdapter
from fabric_ingestion.parsers.readers import SourceTable, read_spreadsheet_payload

logger = structlog.get_logger(__name__)

GOOGLE_SHEET_ID_RE = re.compile(r"docs\.google\.com/spreadsheets/d/([a-zA-Z0-9_-]+)")


def to_export_url(url: str) -> str:
    """Rewrite a Google Sheets link to its xlsx export URL; other URLs pass through."""
    match = GOOGLE_SHEET_ID_RE.search(url)
    if not match:
        return url
    sheet_id = match.group(1)
    return f"https://docs.google.com/spreadsheets/d/{sheet_id}/export?format=xlsx&id={sheet_id}"


def filename_from_url(url: str) -> Optional[str]:
    """Last path segment of a URL, or None when it is empty."""
    name = PurePosixPath(urlparse(url).path).name
    return name or None


class ExcelUrlAdapter(SourceAdapter):
    """Reads a spreadsheet published at a fixed URL."""

    def get_adapter_name(self) -> str:
        """Return adapter identifier."""
        return "excel_url"

    async def load_table(self, source: str) -> SourceTable:
        if not source:
            raise SourceUnavailableError("Supplier has no parsing URL")
        url = to_export_url(source)
        async with self.http_session() as client:
            response = await self.fetch(client, url)
        return self.decode_download(response.content, url)

    def decode_download(self, content: bytes, url: str) -> SourceTable:
        """Decode a downloaded spreadsheet (or zip) payload."""
        filename = filename_from_url(url)
        logger.info("spreadsheet_downloaded", adapter=self.get_adapter_name(), url=url, size=len(content))
        table = read_spreadsheet_payload(content, filename)
        table.source_name = table.source_name or url
        return table
