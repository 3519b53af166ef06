"""Rule-driven walk over decoded rows, shared by every source adapter."""
from typing import Any, List, Optional, Sequence, Tuple

import structlog

from fabric_ingestion.errors.exceptions import RowParseError
from fabric_ingestion.models.parsed_fabric import ParsedFabricRecord
from fabric_ingestion.models.parsing_rules import ParsingRules
from fabric_ingestion.models.source import DataStructureFingerprint, ParseOutcome, SourceAnalysis
from fabric_ingestion.parsers.readers import SourceTable
from fabric_ingestion.services.normalization.record import build_record, row_texts
from fabric_ingestion.services.rules.rule_inference import find_header_row

logger = structlog.get_logger(__name__)

# Rows scanned for a stock-marker header when the rules have no header row
MARKER_HEADER_SCAN_ROWS = 15


def _squash(text: str) -> str:
    return "".join(text.split()).lower()


def find_stock_marker_column(rows: Sequence[Sequence[Any]], rules: ParsingRules) -> Optional[int]:
    """Locate the column holding stock markers.

    The marker sits in the column right after the header cell that contains
    ``stock_marker_header``; without such a header the mapped in_stock column
    is used.
    """
    special = rules.special_rules
    if not special.stock_marker:
        return None
    if special.stock_marker_header:
        needle = _squash(special.stock_marker_header)
        if rules.header_row is not None and rules.header_row <= len(rows):
            candidates = [rows[rules.header_row - 1]]
        else:
            candidates = list(rows[:MARKER_HEADER_SCAN_ROWS])
        for row in candidates:
            for index, text in enumerate(row_texts(row)):
                if text and needle in _squash(text):
                    return index + 1
    return rules.column_mappings.in_stock


def walk_rows(
    rows: Sequence[Sequence[Any]],
    rules: ParsingRules,
    sheet_name: Optional[str] = None,
) -> Tuple[List[ParsedFabricRecord], int]:
    """Apply rules to every row of one sheet.

    Rows at or above the header, rows listed in skip_rows, blank rows and
    rows containing a skip pattern are ignored. Rows that fail to normalize
    are counted and skipped.

    Returns:
        Tuple of (records, skipped_row_count)
    """
    skip = set(rules.skip_rows)
    header_row = rules.header_row or 0
    patterns = [pattern.lower() for pattern in rules.skip_patterns if pattern]
    marker_column = find_stock_marker_column(rows, rules)

    records: List[ParsedFabricRecord] = []
    skipped = 0
    for index, cells in enumerate(rows):
        row_number = index + 1
        if row_number <= header_row or row_number in skip:
            continue
        texts = row_texts(cells)
        if not any(texts):
            continue
        if patterns:
            joined = " ".join(texts).lower()
            if any(pattern in joined for pattern in patterns):
                continue
        try:
            record = build_record(cells, rules, row_number, marker_column)
        except RowParseError as e:
            skipped += 1
            logger.warning("row_parse_failed", sheet=sheet_name, row=row_number, error=e.message)
            continue
        if record is not None:
            records.append(record)
    return records, skipped


def select_sheets(table: SourceTable, rules: ParsingRules) -> List[Tuple[str, List[List[Any]]]]:
    """Sheets named by the rules (case-insensitive), or the first sheet."""
    wanted = [name.strip().lower() for name in rules.special_rules.sheet_names if name.strip()]
    if not wanted:
        return table.sheets[:1]
    selected = [(name, rows) for name, rows in table.sheets if name.strip().lower() in wanted]
    if not selected:
        logger.warning(
            "configured_sheets_not_found",
            wanted=rules.special_rules.sheet_names,
            available=table.sheet_names,
        )
    return selected


def build_fingerprint(
    rows: Sequence[Sequence[Any]],
    sheet_names: Optional[List[str]] = None,
) -> DataStructureFingerprint:
    """Fingerprint the layout of a sheet."""
    return DataStructureFingerprint(
        row_count=len(rows),
        column_count=max((len(row) for row in rows), default=0),
        first_row_values=row_texts(rows[0]) if rows else [],
        sheet_names=sheet_names,
    )


def parse_table(table: SourceTable, rules: ParsingRules) -> ParseOutcome:
    """Turn a decoded source into records plus its layout fingerprint."""
    selected = select_sheets(table, rules)
    records: List[ParsedFabricRecord] = []
    skipped = 0
    for sheet_name, rows in selected:
        sheet_records, sheet_skipped = walk_rows(rows, rules, sheet_name)
        records.extend(sheet_records)
        skipped += sheet_skipped

    fingerprint_rows = selected[0][1] if selected else table.first_rows()
    logger.info(
        "source_rows_parsed",
        source=table.source_name,
        sheets=[name for name, _ in selected],
        records=len(records),
        skipped_rows=skipped,
    )
    return ParseOutcome(
        records=records,
        fingerprint=build_fingerprint(fingerprint_rows, table.sheet_names),
        skipped_rows=skipped,
        source_name=table.source_name,
    )


def analyze_table(table: SourceTable, sample_limit: int) -> SourceAnalysis:
    """Sample the leading rows of the first sheet and detect its header."""
    sample = [row_texts(row) for row in table.first_rows()[:sample_limit]]
    header_row = find_header_row(sample)
    return SourceAnalysis(
        sample_rows=sample,
        header_row=header_row,
        header_values=sample[header_row - 1] if header_row else [],
        sheet_names=table.sheet_names,
    )
