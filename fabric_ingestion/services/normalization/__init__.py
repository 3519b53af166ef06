"""Record normalization: text splitting and tolerant value parsing."""
from fabric_ingestion.services.normalization.collection_color import (
    parse_collection_and_color,
    split_with_strategies,
    strip_noise,
)
from fabric_ingestion.services.normalization.record import (
    build_record,
    cell_to_text,
    row_texts,
)
from fabric_ingestion.services.normalization.values import (
    LOW_STOCK_COMMENT,
    LOW_STOCK_THRESHOLD,
    apply_low_stock_comment,
    calculate_price_per_meter,
    parse_boolean,
    parse_date,
    parse_number,
    parse_price,
    validate_date,
)

__all__ = [
    "parse_collection_and_color",
    "split_with_strategies",
    "strip_noise",
    "build_record",
    "cell_to_text",
    "row_texts",
    "LOW_STOCK_COMMENT",
    "LOW_STOCK_THRESHOLD",
    "apply_low_stock_comment",
    "calculate_price_per_meter",
    "parse_boolean",
    "parse_date",
    "parse_number",
    "parse_price",
    "validate_date",
]
