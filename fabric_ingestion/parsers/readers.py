"""Decoding of downloaded payloads into row-major cell tables.

- Spreadsheets are read with pandas (openpyxl for .xlsx, xlrd for .xls).
- HTML tables are read with BeautifulSoup.
- Zip containers are unpacked in memory to locate the spreadsheet inside.

Every reader raises UnsupportedFormatError when the payload cannot be
decoded at all.
"""
import io
import zipfile
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Any, List, Optional, Tuple

import pandas as pd
import structlog
from bs4 import BeautifulSoup

from fabric_ingestion.errors.exceptions import UnsupportedFormatError

logger = structlog.get_logger(__name__)

SPREADSHEET_EXTENSIONS = (".xlsx", ".xls")
ARCHIVE_EXTENSIONS = (".zip",)

_ZIP_SIGNATURE = b"PK\x03\x04"
_OLE_SIGNATURE = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"


@dataclass
class SourceTable:
    """Decoded source: one or more named sheets of raw cell rows.

    ``sheet_names`` is None for sources that have no notion of sheets
    (HTML pages).
    """
    sheets: List[Tuple[str, List[List[Any]]]] = field(default_factory=list)
    sheet_names: Optional[List[str]] = None
    source_name: Optional[str] = None

    def first_rows(self) -> List[List[Any]]:
        """Rows of the first sheet, or an empty list."""
        return self.sheets[0][1] if self.sheets else []


# ============================================================================
# Spreadsheets
# ============================================================================


def detect_excel_engine(content: bytes, filename: Optional[str] = None) -> str:
    """Pick the pandas engine from the file extension, falling back to magic bytes."""
    extension = PurePosixPath(filename or "").suffix.lower()
    if extension == ".xlsx":
        return "openpyxl"
    if extension == ".xls":
        return "xlrd"
    if content.startswith(_ZIP_SIGNATURE):
        return "openpyxl"
    if content.startswith(_OLE_SIGNATURE):
        return "xlrd"
    raise UnsupportedFormatError(
        f"Payload '{filename or 'unnamed'}' is not a recognizable spreadsheet"
    )


def _frame_to_rows(frame: pd.DataFrame) -> List[List[Any]]:
    cleaned = frame.astype(object).where(pd.notna(frame), None)
    return cleaned.values.tolist()


def read_workbook(content: bytes, filename: Optional[str] = None) -> SourceTable:
    """Read every sheet of a spreadsheet payload.

    Raises:
        UnsupportedFormatError: If the payload is empty or not a readable workbook
    """
    if not content:
        raise UnsupportedFormatError(f"Spreadsheet '{filename or 'unnamed'}' is empty")
    engine = detect_excel_engine(content, filename)
    try:
        frames = pd.read_excel(
            io.BytesIO(content),
            sheet_name=None,
            header=None,
            dtype=object,
            engine=engine,
        )
    except Exception as e:
        raise UnsupportedFormatError(
            f"Cannot read spreadsheet '{filename or 'unnamed'}': {e}"
        ) from e

    if not frames:
        raise UnsupportedFormatError(f"Spreadsheet '{filename or 'unnamed'}' has no sheets")

    sheets = [(str(name), _frame_to_rows(frame)) for name, frame in frames.items()]
    logger.debug("workbook_read", filename=filename, engine=engine, sheet_count=len(sheets))
    return SourceTable(
        sheets=sheets,
        sheet_names=[name for name, _ in sheets],
        source_name=filename,
    )


# ============================================================================
# HTML
# ============================================================================


def read_html_table(markup: str, source_name: Optional[str] = None) -> SourceTable:
    """Read the largest ``<table>`` of a page into rows of cell texts.

    Raises:
        UnsupportedFormatError: If the page holds no table rows
    """
    soup = BeautifulSoup(markup or "", "html.parser")
    best: List[List[Any]] = []
    for table in soup.find_all("table"):
        rows = []
        for tr in table.find_all("tr"):
            cells = [cell.get_text(" ", strip=True) for cell in tr.find_all(["td", "th"])]
            if cells:
                rows.append(cells)
        if len(rows) > len(best):
            best = rows
    if not best:
        raise UnsupportedFormatError(f"No table rows found in page '{source_name or 'unnamed'}'")
    return SourceTable(sheets=[("table", best)], sheet_names=None, source_name=source_name)


# ============================================================================
# Archives
# ============================================================================


def is_archive(content: bytes, filename: Optional[str] = None) -> bool:
    """True for zip payloads that are not themselves .xlsx workbooks."""
    name = (filename or "").lower()
    if name.endswith(ARCHIVE_EXTENSIONS):
        return True
    if name.endswith(SPREADSHEET_EXTENSIONS):
        return False
    if not content.startswith(_ZIP_SIGNATURE):
        return False
    try:
        with zipfile.ZipFile(io.BytesIO(content)) as archive:
            return "[Content_Types].xml" not in archive.namelist()
    except zipfile.BadZipFile:
        return False


def unpack_spreadsheet(content: bytes, filename: Optional[str] = None) -> Tuple[str, bytes]:
    """Return ``(member_name, member_bytes)`` of the first spreadsheet in a zip.

    Raises:
        UnsupportedFormatError: If the archive is corrupt or holds no spreadsheet
    """
    try:
        with zipfile.ZipFile(io.BytesIO(content)) as archive:
            members = sorted(
                (
                    info for info in archive.infolist()
                    if not info.is_dir()
                    and not info.filename.startswith("__MACOSX/")
                    and info.filename.lower().endswith(SPREADSHEET_EXTENSIONS)
                ),
                key=lambda info: info.filename,
            )
            if not members:
                raise UnsupportedFormatError(
                    f"Archive '{filename or 'unnamed'}' contains no .xlsx/.xls file"
                )
            member = members[0]
            logger.debug("archive_member_selected", archive=filename, member=member.filename)
            return PurePosixPath(member.filename).name, archive.read(member)
    except zipfile.BadZipFile as e:
        raise UnsupportedFormatError(f"Archive '{filename or 'unnamed'}' is corrupt: {e}") from e
    except (RuntimeError, NotImplementedError, zipfile.LargeZipFile) as e:
        # encrypted members, unsupported compression, zip64 limits
        raise UnsupportedFormatError(f"Archive '{filename or 'unnamed'}' cannot be extracted: {e}") from e


def read_spreadsheet_payload(content: bytes, filename: Optional[str] = None) -> SourceTable:
    """Read a spreadsheet payload, unpacking it first when it is a zip."""
    if is_archive(content, filename):
        filename, content = unpack_spreadsheet(content, filename)
    return read_workbook(content, filename)
