"""Parsing rule storage and inference."""
from fabric_ingestion.services.rules.rule_inference import (
    FIELD_KEYWORDS,
    HEADER_KEYWORDS,
    find_header_row,
    infer_rules,
    is_header_row,
    propose_column_mappings,
)
from fabric_ingestion.services.rules.rule_store import RuleStore

__all__ = [
    "FIELD_KEYWORDS",
    "HEADER_KEYWORDS",
    "find_header_row",
    "infer_rules",
    "is_header_row",
    "propose_column_mappings",
    "RuleStore",
]
