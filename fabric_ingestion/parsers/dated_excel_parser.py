"""Dated-URL spreadsheet adapter.

Some vendors publish a new file every day and embed the date in the file
name. The configured URL is only a template: the date part is replaced
with today's date, then with each earlier day, until a download succeeds
or the look-back window is exhausted.

Two template forms are understood:
- a literal ``{date}`` placeholder, rendered with ``url_date_replacement``
  as a strftime format (``%d.%m.%Y`` when unset);
- a regex (``url_date_pattern``) matching the date already present in the
  URL, replaced with ``url_date_replacement`` rendered by strftime.
"""
import re
from datetime import date, timedelta
from typing import List, Optional

import structlog

from fabric_ingestion.config import settings
from fabric_ingestion.errors.exceptions import SourceUnavailableError
from fabric_ingestion.parsers.excel_parser import ExcelUrlAdapter
from fabric_ingestion.parsers.readers import SourceTable

logger = structlog.get_logger(__name__)

DATE_PLACEHOLDER = "{date}"
DEFAULT_DATE_FORMAT = "%d.%m.%Y"


def dated_candidates(
    url: str,
    pattern: Optional[str],
    replacement: Optional[str],
    window_days: int,
    today: Optional[date] = None,
) -> List[str]:
    """URLs to try, newest first: the date part of ``url`` set to today, yesterday, ...

    Returns just ``[url]`` when the URL carries no recognizable date part.
    """
    today = today or date.today()
    days = [today - timedelta(days=offset) for offset in range(max(window_days, 1))]

    if DATE_PLACEHOLDER in url:
        fmt = replacement or DEFAULT_DATE_FORMAT
        return [url.replace(DATE_PLACEHOLDER, day.strftime(fmt)) for day in days]

    if not pattern or not replacement:
        return [url]
    regex = re.compile(pattern)
    if not regex.search(url):
        return [url]
    return [regex.sub(lambda _m, d=day: d.strftime(replacement), url, count=1) for day in days]


class DatedExcelUrlAdapter(ExcelUrlAdapter):
    """Reads the most recent dated spreadsheet within the look-back window."""

    def get_adapter_name(self) -> str:
        """Return adapter identifier."""
        return "dated_excel_url"

    async def load_table(self, source: str) -> SourceTable:
        if not source:
            raise SourceUnavailableError("Supplier has no parsing URL")
        options = self.fetch_options
        window = options.window_days if options.window_days is not None else settings.dated_url_window_days
        candidates = dated_candidates(
            source, options.url_date_pattern, options.url_date_replacement, window
        )
        if len(candidates) == 1:
            return await super().load_table(candidates[0])

        async with self.http_session() as client:
            for url in candidates:
                response = await self.fetch(client, url, missing_ok=True)
                if response is None:
                    logger.debug("dated_source_missing", url=url)
                    continue
                logger.info("dated_source_found", url=url)
                return self.decode_download(response.content, url)

        raise SourceUnavailableError(
            f"No dated file found within the last {window} days for {source}"
        )
