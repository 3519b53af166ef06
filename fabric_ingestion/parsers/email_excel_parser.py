"""Staged-file adapter for spreadsheets received as email attachments.

The source is a local path produced by the email selector (or by a manual
upload). Zip attachments are unpacked in memory.
"""
import asyncio
from pathlib import Path

import structlog

from fabric_ingestion.errors.exceptions import (
    SourceUnavailableError,
    UnsupportedFormatError,
)
from fabric_ingestion.parsers.base_parser import SourceAdapter
from fabric_ingestion.parsers.readers import SourceTable, read_spreadsheet_payload
from fabric_ingestion.services.normalization.record import row_texts

logger = structlog.get_logger(__name__)

STAGED_EXTENSIONS = (".xlsx", ".xls", ".zip")

# Report boilerplate that does not count as data when validating a file
BOILERPLATE_MARKERS = ("отчет создан", "ед.изм.")
BOILERPLATE_CELLS = ("пог. м",)


async def read_local_file(path: str) -> bytes:
    """Read a staged file off the event loop.

    Raises:
        SourceUnavailableError: If the file is missing or unreadable
    """
    try:
        return await asyncio.to_thread(Path(path).read_bytes)
    except OSError as e:
        raise SourceUnavailableError(f"Cannot read staged file {path}: {e}") from e


def _is_data_cell(text: str) -> bool:
    if not text:
        return False
    lowered = text.lower()
    if any(marker in lowered for marker in BOILERPLATE_MARKERS):
        return False
    return text not in BOILERPLATE_CELLS


def has_data_rows(table: SourceTable) -> bool:
    """True when some row holds at least two non-boilerplate cells."""
    for _, rows in table.sheets:
        for row in rows:
            if sum(1 for text in row_texts(row) if _is_data_cell(text)) >= 2:
                return True
    return False


class EmailExcelAdapter(SourceAdapter):
    """Reads a locally staged spreadsheet or zip."""

    def get_adapter_name(self) -> str:
        """Return adapter identifier."""
        return "email_excel"

    async def load_table(self, source: str) -> SourceTable:
        if not source:
            raise SourceUnavailableError("No staged file to parse")
        content = await read_local_file(source)
        table = read_spreadsheet_payload(content, Path(source).name)
        table.source_name = Path(source).name
        return table

    async def validate_file(self, path: str) -> bool:
        """Check that a staged attachment is a non-empty workbook with data rows."""
        log = logger.bind(path=path)
        file_path = Path(path)
        if not file_path.is_file():
            log.info("staged_file_missing")
            return False
        if file_path.stat().st_size == 0:
            log.info("staged_file_empty")
            return False
        if not file_path.name.lower().endswith(STAGED_EXTENSIONS):
            log.info("staged_file_wrong_extension")
            return False
        try:
            table = await self.load_table(path)
        except (UnsupportedFormatError, SourceUnavailableError) as e:
            log.info("staged_file_unreadable", error=e.message)
            return False
        if not table.sheets:
            log.info("staged_file_has_no_sheets")
            return False
        if not has_data_rows(table):
            log.info("staged_file_has_no_data_rows", sheets=table.sheet_names)
            return False
        return True
