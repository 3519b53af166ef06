"""Reconciliation of parsed records against a supplier's catalog.

Automated runs never delete rows. Each run:

1. drops records that match an exclusion marker;
2. collapses duplicate keys (first occurrence wins);
3. asks the manual-lock gate whether anything should be written at all;
4. upserts the remaining records in bounded concurrent batches;
5. refreshes active locks and the supplier aggregate.

There is no transaction over a whole run: a failing record is counted and
the others still land.
"""
import asyncio
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence
from uuid import UUID

import structlog

from fabric_ingestion.config import settings
from fabric_ingestion.db.catalog_store import CatalogStore
from fabric_ingestion.models.catalog import (
    CategoryBucket,
    FabricValues,
    LockType,
    ManualOverrideLock,
    ReconciliationResult,
    StoredFabric,
)
from fabric_ingestion.models.parsed_fabric import ParsedFabricRecord
from fabric_ingestion.models.supplier_profile import SupplierStatus
from fabric_ingestion.services.normalization.values import calculate_price_per_meter
from fabric_ingestion.services.reconciliation.categories import (
    DEFAULT_CATEGORIES,
    category_for_price_per_meter,
)
from fabric_ingestion.services.reconciliation.gate import should_update, values_differ

logger = structlog.get_logger(__name__)

CREATED = "created"
UPDATED = "updated"
UNCHANGED = "unchanged"


def merge_values(
    record: ParsedFabricRecord,
    current: Optional[StoredFabric],
    categories: Sequence[CategoryBucket],
    stock_locked: bool = False,
) -> FabricValues:
    """Values to persist for a parsed record, given the row it would update.

    A missing parsed price keeps the stored price, price per meter and
    category. Under a stock lock a missing in_stock or meterage keeps the
    stored value.
    """
    in_stock = record.in_stock
    meterage = record.meterage
    if current is not None and stock_locked:
        if in_stock is None:
            in_stock = current.in_stock
        if meterage is None:
            meterage = current.meterage

    if record.price is None:
        price = current.price if current else None
        price_per_meter = current.price_per_meter if current else None
        category = current.category if current else None
    else:
        price = record.price
        price_per_meter = calculate_price_per_meter(price, meterage)
        category = category_for_price_per_meter(price_per_meter, categories)

    return FabricValues(
        in_stock=in_stock,
        meterage=meterage,
        price=price,
        price_per_meter=price_per_meter,
        category=category,
        next_arrival_date=record.next_arrival_date,
        comment=record.comment,
    )


def same_values(current: StoredFabric, values: FabricValues) -> bool:
    """True when writing ``values`` would not change the row."""
    for name in FabricValues.model_fields:
        if values_differ(getattr(current, name), getattr(values, name)):
            return False
    return True


class ReconciliationEngine:
    """Applies parsed records to the catalog through a CatalogStore."""

    def __init__(self, store: CatalogStore, batch_size: Optional[int] = None) -> None:
        self._store = store
        self._batch_size = batch_size or settings.upsert_batch_size

    async def reconcile(
        self,
        supplier_id: UUID,
        records: Sequence[ParsedFabricRecord],
        now: Optional[datetime] = None,
    ) -> ReconciliationResult:
        """Reconcile one supplier's parsed records.

        Returns:
            ReconciliationResult with created/updated/skipped/failed counts
        """
        now = now or datetime.now(timezone.utc)
        log = logger.bind(supplier_id=str(supplier_id), stage="reconciliation")
        result = ReconciliationResult()

        stored = await self._store.list_fabrics(supplier_id)
        excluded_keys = {row.key for row in stored if row.excluded_from_parsing}
        existing: Dict[str, StoredFabric] = {
            row.key: row for row in stored if not row.excluded_from_parsing
        }

        unique: Dict[str, ParsedFabricRecord] = {}
        for record in records:
            key = record.key
            if key in excluded_keys:
                result.skipped_excluded += 1
                continue
            if key in unique:
                result.skipped_unchanged += 1
                log.debug("duplicate_record_collapsed", key=key)
                continue
            unique[key] = record

        locks = [lock for lock in await self._store.get_active_locks(supplier_id) if lock.is_active]
        if locks and not should_update(locks, existing.values(), unique.values(), excluded_keys):
            await self._touch_locks(locks, now)
            result.skipped_unchanged += len(unique)
            result.gated = True
            await self._update_aggregate(supplier_id, last_updated_at=None)
            log.info(
                "reconciliation_gated",
                locks=[lock.type.value for lock in locks],
                skipped_unchanged=result.skipped_unchanged,
                skipped_excluded=result.skipped_excluded,
            )
            return result

        categories = await self._store.list_categories() or DEFAULT_CATEGORIES
        stock_locked = any(lock.type == LockType.STOCK for lock in locks)

        items = list(unique.items())
        for start in range(0, len(items), self._batch_size):
            batch = items[start:start + self._batch_size]
            outcomes = await asyncio.gather(
                *(
                    self._upsert_one(supplier_id, record, existing.get(key), categories, stock_locked)
                    for key, record in batch
                ),
                return_exceptions=True,
            )
            for (key, _record), outcome in zip(batch, outcomes):
                if isinstance(outcome, Exception):
                    result.failed += 1
                    log.error("record_upsert_failed", key=key, error=str(outcome))
                elif isinstance(outcome, BaseException):
                    raise outcome
                elif outcome == CREATED:
                    result.created += 1
                elif outcome == UPDATED:
                    result.updated += 1
                else:
                    result.skipped_unchanged += 1

        if locks:
            await self._touch_locks(locks, now)
        await self._update_aggregate(supplier_id, last_updated_at=now)

        log.info(
            "reconciliation_completed",
            created=result.created,
            updated=result.updated,
            skipped_excluded=result.skipped_excluded,
            skipped_unchanged=result.skipped_unchanged,
            failed=result.failed,
        )
        return result

    async def _upsert_one(
        self,
        supplier_id: UUID,
        record: ParsedFabricRecord,
        current: Optional[StoredFabric],
        categories: Sequence[CategoryBucket],
        stock_locked: bool,
    ) -> str:
        values = merge_values(record, current, categories, stock_locked)
        if current is None:
            await self._store.create_fabric(supplier_id, record.collection, record.color_number, values)
            return CREATED
        if same_values(current, values):
            return UNCHANGED
        await self._store.update_fabric(current.id, values)
        return UPDATED

    async def _touch_locks(self, locks: List[ManualOverrideLock], now: datetime) -> None:
        for lock in locks:
            if lock.id is not None:
                await self._store.touch_lock(lock.id, now)

    async def _update_aggregate(self, supplier_id: UUID, last_updated_at: Optional[datetime]) -> None:
        count = await self._store.count_fabrics(supplier_id)
        await self._store.update_supplier_status(
            supplier_id,
            SupplierStatus.ACTIVE,
            error_message=None,
            fabrics_count=count,
            last_updated_at=last_updated_at,
        )
