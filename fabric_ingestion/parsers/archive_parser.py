"""Compressed-container adapter: a zip (by URL or local path) holding the price list."""
from pathlib import Path

import structlog

from fabric_ingestion.errors.exceptions import SourceUnavailableError
from fabric_ingestion.parsers.base_parser import SourceAdapter
from fabric_ingestion.parsers.email_excel_parser import read_local_file
from fabric_ingestion.parsers.excel_parser import filename_from_url
from fabric_ingestion.parsers.readers import SourceTable, read_workbook, unpack_spreadsheet

logger = structlog.get_logger(__name__)


def _is_url(source: str) -> bool:
    return source.lower().startswith(("http://", "https://"))


class ArchiveAdapter(SourceAdapter):
    """Unpacks a zip and reads the first .xlsx/.xls member."""

    def get_adapter_name(self) -> str:
        """Return adapter identifier."""
        return "archive"

    async def load_table(self, source: str) -> SourceTable:
        if not source:
            raise SourceUnavailableError("Supplier has no archive source")
        if _is_url(source):
            async with self.http_session() as client:
                response = await self.fetch(client, source)
            content, archive_name = response.content, filename_from_url(source)
        else:
            content, archive_name = await read_local_file(source), Path(source).name

        member_name, member = unpack_spreadsheet(content, archive_name)
        logger.info("archive_unpacked", archive=archive_name, member=member_name)
        return read_workbook(member, member_name)
