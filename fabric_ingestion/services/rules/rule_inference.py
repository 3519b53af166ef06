"""Rule inference from sample rows.

Inference runs once per supplier: when no rules are stored, the adapter's
sample is scanned for a header row, the vendor's default rules (if any)
are merged with what the scan found, and the result is persisted. Once
rules exist they are never re-inferred; operators edit them instead.
"""
from typing import TYPE_CHECKING, Dict, Final, List, Optional, Sequence

import structlog

from fabric_ingestion.errors.exceptions import RulesMissingError
from fabric_ingestion.models.parsing_rules import ColumnMappings, ParsingRules
from fabric_ingestion.models.source import SourceAnalysis

if TYPE_CHECKING:
    from fabric_ingestion.parsers.vendor_profiles import VendorProfile

logger = structlog.get_logger(__name__)


# Keywords that mark a header row (matched as case-insensitive substrings)
HEADER_KEYWORDS: Final[List[str]] = [
    "коллекция", "цвет", "наличие", "метраж", "дата", "комментарий", "цена",
    "collection", "color", "colour", "stock", "meterage", "date", "comment", "price",
]

# Column roles in assignment order, each with its keyword lexicon
FIELD_KEYWORDS: Final[Dict[str, List[str]]] = {
    "collection": ["коллекция", "наименование", "название", "товар", "номенклатура", "collection", "name"],
    "color": ["цвет", "color", "colour"],
    "in_stock": ["наличие", "в наличии", "availability", "stock"],
    "meterage": ["метраж", "остаток", "пог.м", "пог. м", "кол-во", "количество", "meterage", "quantity"],
    "price": ["цена", "стоимость", "price"],
    "next_arrival_date": ["дата", "поступлен", "приход", "arrival", "date"],
    "comment": ["комментарий", "примечание", "comment", "note"],
}


def is_header_row(cells: Sequence[str]) -> bool:
    """True when any cell contains a header keyword."""
    for cell in cells:
        text = cell.lower()
        if any(keyword in text for keyword in HEADER_KEYWORDS):
            return True
    return False


def find_header_row(rows: Sequence[Sequence[str]], limit: int = 10) -> Optional[int]:
    """Return the 1-based number of the first header-like row within ``limit`` rows."""
    for index, row in enumerate(rows[:limit]):
        if is_header_row(row):
            return index + 1
    return None


def propose_column_mappings(header_values: Sequence[str]) -> ColumnMappings:
    """Map header cells to field roles by keyword, one column per role."""
    lowered = [value.lower().strip() for value in header_values]
    used: set = set()
    proposed: Dict[str, int] = {}
    for role, keywords in FIELD_KEYWORDS.items():
        for index, text in enumerate(lowered):
            if index in used or not text:
                continue
            if any(keyword in text for keyword in keywords):
                proposed[role] = index
                used.add(index)
                break
    return ColumnMappings(**proposed)


def infer_rules(
    analysis: SourceAnalysis,
    vendor_profile: Optional["VendorProfile"] = None,
    sample_limit: int = 10,
) -> ParsingRules:
    """Build parsing rules from an adapter analysis.

    Args:
        analysis: Sample rows and detected header of the source
        vendor_profile: Known vendor defaults, if the supplier has a profile
        sample_limit: How many leading rows are scanned for a header

    Returns:
        ParsingRules ready to be persisted

    Raises:
        RulesMissingError: If no collection column can be determined
    """
    if vendor_profile is not None:
        rules = vendor_profile.default_rules.model_copy(deep=True)
    else:
        rules = ParsingRules()

    header_row = analysis.header_row or find_header_row(analysis.sample_rows, sample_limit)
    if header_row is not None:
        rules.skip_rows = sorted(set(rules.skip_rows) | set(range(1, header_row + 1)))
        if rules.header_row is None:
            rules.header_row = header_row

    if rules.column_mappings.collection is None:
        header_values = analysis.header_values
        if not header_values and header_row is not None and header_row <= len(analysis.sample_rows):
            header_values = analysis.sample_rows[header_row - 1]
        rules.column_mappings = propose_column_mappings(header_values)
        if rules.column_mappings.collection is None:
            raise RulesMissingError(
                "Could not infer parsing rules: no collection column found in sample"
            )

    logger.info(
        "rules_inferred",
        header_row=rules.header_row,
        skip_rows=rules.skip_rows,
        has_vendor_profile=vendor_profile is not None,
        column_mappings=rules.column_mappings.model_dump(exclude_none=True),
    )
    return rules
