"""Catalog reconciliation: category tiers, manual-lock gate and upsert engine."""
from fabric_ingestion.services.reconciliation.categories import (
    DEFAULT_CATEGORIES,
    category_for_price_per_meter,
)
from fabric_ingestion.services.reconciliation.engine import (
    ReconciliationEngine,
    merge_values,
    same_values,
)
from fabric_ingestion.services.reconciliation.gate import (
    LOCKED_FIELDS,
    compared_fields,
    should_update,
    values_differ,
)

__all__ = [
    "DEFAULT_CATEGORIES",
    "category_for_price_per_meter",
    "ReconciliationEngine",
    "merge_values",
    "same_values",
    "LOCKED_FIELDS",
    "compared_fields",
    "should_update",
    "values_differ",
]
