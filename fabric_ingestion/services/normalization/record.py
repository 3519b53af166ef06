"""Turn one raw source row into a canonical fabric record."""
from typing import Any, List, Optional, Sequence

from pydantic import ValidationError as PydanticValidationError

from fabric_ingestion.errors.exceptions import RowParseError
from fabric_ingestion.models.parsed_fabric import ParsedFabricRecord
from fabric_ingestion.models.parsing_rules import ParsingRules
from fabric_ingestion.services.normalization.collection_color import (
    parse_collection_and_color,
    strip_noise,
)
from fabric_ingestion.services.normalization.values import (
    apply_low_stock_comment,
    parse_boolean,
    parse_date,
    parse_number,
    parse_price,
)


def cell_to_text(value: Any) -> str:
    """Render a raw cell value as stripped text, mapping empty/NaN to ''."""
    if value is None:
        return ""
    if isinstance(value, float):
        if value != value:
            return ""
        if value.is_integer():
            return str(int(value))
    return str(value).strip()


def _cell(cells: Sequence[Any], index: Optional[int]) -> Any:
    if index is None or index >= len(cells):
        return None
    value = cells[index]
    if isinstance(value, float) and value != value:
        return None
    if isinstance(value, str) and not value.strip():
        return None
    return value


def build_record(
    cells: Sequence[Any],
    rules: ParsingRules,
    row_number: int = 0,
    stock_marker_column: Optional[int] = None,
) -> Optional[ParsedFabricRecord]:
    """Normalize one row according to the supplier's rules.

    Args:
        cells: Raw cell values of the row
        rules: Supplier parsing rules
        row_number: 1-based source row number, used in error messages
        stock_marker_column: Column whose marker value means "in stock"

    Returns:
        The record, or None when the row carries no collection at all

    Raises:
        RowParseError: If the row has a collection but cannot form a valid record
    """
    mapping = rules.column_mappings
    special = rules.special_rules
    if mapping.collection is None:
        raise RowParseError("No collection column mapped", row_number=row_number)

    collection_text = cell_to_text(_cell(cells, mapping.collection))
    if not collection_text:
        return None

    if mapping.color is None or mapping.color == mapping.collection:
        collection, color = parse_collection_and_color(collection_text, special)
    else:
        collection = strip_noise(collection_text, special)
        color = cell_to_text(_cell(cells, mapping.color))
    if not collection:
        return None

    meterage = parse_number(_cell(cells, mapping.meterage))
    comment_value = _cell(cells, mapping.comment)
    comment = cell_to_text(comment_value) if comment_value is not None else None

    if stock_marker_column is not None and special.stock_marker:
        marker = cell_to_text(_cell(cells, stock_marker_column))
        in_stock = marker.lower() == special.stock_marker.lower()
        if marker and not in_stock:
            comment = f"{comment} {marker}".strip() if comment else marker
    else:
        in_stock = parse_boolean(_cell(cells, mapping.in_stock))
        if in_stock is None and meterage is not None:
            in_stock = meterage > 0

    try:
        return ParsedFabricRecord(
            collection=collection,
            color_number=color,
            in_stock=in_stock,
            meterage=meterage,
            price=parse_price(_cell(cells, mapping.price)),
            next_arrival_date=parse_date(_cell(cells, mapping.next_arrival_date)),
            comment=apply_low_stock_comment(meterage, comment),
        )
    except PydanticValidationError as e:
        raise RowParseError(f"Row {row_number} failed validation: {e}", row_number=row_number) from e


def row_texts(cells: Sequence[Any]) -> List[str]:
    """Text of every cell in a row."""
    return [cell_to_text(value) for value in cells]
