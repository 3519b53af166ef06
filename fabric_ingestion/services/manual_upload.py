"""Operator manual upload of a stock or price file.

A manual upload is authoritative: it replaces the supplier's non-excluded
catalog rows in one transaction and leaves an active lock behind. While the
lock is active, automated runs only write when the vendor data moved in the
locked fields (see the reconciliation gate).
"""
from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID

import structlog

from fabric_ingestion.db.catalog_store import CatalogStore, FabricRow
from fabric_ingestion.errors.exceptions import ValidationError
from fabric_ingestion.models.catalog import LockType, RunResult
from fabric_ingestion.models.supplier_profile import SupplierStatus
from fabric_ingestion.parsers.email_excel_parser import EmailExcelAdapter
from fabric_ingestion.parsers.vendor_profiles import get_vendor_profile
from fabric_ingestion.services.reconciliation.categories import DEFAULT_CATEGORIES
from fabric_ingestion.services.reconciliation.engine import merge_values
from fabric_ingestion.services.rules.rule_store import RuleStore

logger = structlog.get_logger(__name__)


async def apply_manual_upload(
    store: CatalogStore,
    supplier_id: UUID,
    path: str,
    lock_type: LockType,
    rule_store: Optional[RuleStore] = None,
) -> RunResult:
    """Parse an operator file and make it the supplier's catalog.

    The file is parsed with the staged-file adapter and the supplier's
    rules (inferred from the file itself when none are stored). Only after
    a successful parse is the lock switched and the catalog replaced.

    Raises:
        ValidationError: If the supplier does not exist or the file is not a usable workbook
        UnsupportedFormatError: If the file cannot be decoded
        DatabaseError: If the replacement transaction fails
    """
    log = logger.bind(supplier_id=str(supplier_id), stage="manual_upload", lock_type=lock_type.value)
    supplier = await store.get_supplier(supplier_id)
    if supplier is None:
        raise ValidationError(f"Supplier {supplier_id} not found")

    profile = get_vendor_profile(supplier.name)
    adapter = EmailExcelAdapter(profile=profile)
    if not await adapter.validate_file(path):
        raise ValidationError(f"Uploaded file is not a usable workbook: {path}")

    rule_store = rule_store or RuleStore(store)
    rules = await rule_store.ensure_rules(supplier_id, adapter, path, profile)
    outcome = await adapter.parse(path, rules)
    log.info("manual_upload_parsed", records=len(outcome.records), skipped_rows=outcome.skipped_rows)

    stored = await store.list_fabrics(supplier_id)
    excluded_keys = {row.key for row in stored if row.excluded_from_parsing}
    categories = await store.list_categories() or DEFAULT_CATEGORIES

    rows: List[FabricRow] = []
    skipped_excluded = 0
    for record in outcome.records:
        if record.key in excluded_keys:
            skipped_excluded += 1
            continue
        values = merge_values(record, None, categories)
        rows.append((record.collection, record.color_number, values))

    await store.activate_lock(supplier_id, lock_type)
    created = await store.replace_fabrics(supplier_id, rows)

    now = datetime.now(timezone.utc)
    await store.update_supplier_status(
        supplier_id,
        SupplierStatus.ACTIVE,
        error_message=None,
        fabrics_count=await store.count_fabrics(supplier_id),
        last_updated_at=now,
    )
    log.info("manual_upload_applied", created=created, skipped_excluded=skipped_excluded)
    return RunResult(
        supplier_id=supplier_id,
        supplier_name=supplier.name,
        success=True,
        created=created,
        skipped_excluded=skipped_excluded,
        skipped_unchanged=len(rows) - created,
    )
