"""Helpers shared by unit tests: an in-memory catalog store and workbook builders."""
import io
import zipfile
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Set
from uuid import UUID, uuid4

import pandas as pd

from fabric_ingestion.db.catalog_store import CatalogStore, FabricRow
from fabric_ingestion.errors.exceptions import DatabaseError
from fabric_ingestion.models.catalog import (
    CategoryBucket,
    EmailAttachmentRecord,
    FabricValues,
    LockType,
    ManualOverrideLock,
    StoredFabric,
)
from fabric_ingestion.models.parsed_fabric import fabric_key
from fabric_ingestion.models.supplier_profile import SupplierProfile, SupplierStatus


class InMemoryCatalogStore(CatalogStore):
    """Dict-backed CatalogStore with call counters for assertions.

    ``fail_keys`` makes create/update raise DatabaseError for the given
    fabric keys, to exercise per-record failure handling.
    """

    def __init__(self) -> None:
        self.suppliers: Dict[UUID, SupplierProfile] = {}
        self.rules: Dict[UUID, Dict[str, Any]] = {}
        self.structures: Dict[UUID, Dict[str, Any]] = {}
        self.fabrics: Dict[UUID, StoredFabric] = {}
        self.locks: List[ManualOverrideLock] = []
        self.categories: List[CategoryBucket] = []
        self.attachments: List[EmailAttachmentRecord] = []
        self.fail_keys: Set[str] = set()
        self.create_calls = 0
        self.update_calls = 0
        self.replace_calls = 0
        self.status_updates: List[Dict[str, Any]] = []

    # ------------------------------------------------------------------
    # Test setup helpers
    # ------------------------------------------------------------------

    def add_supplier(self, supplier: SupplierProfile) -> SupplierProfile:
        self.suppliers[supplier.id] = supplier
        return supplier

    def add_fabric(
        self,
        supplier_id: UUID,
        collection: str,
        color_number: str,
        excluded: bool = False,
        **values: Any,
    ) -> StoredFabric:
        row = StoredFabric(
            id=uuid4(),
            supplier_id=supplier_id,
            collection=collection,
            color_number=color_number,
            excluded_from_parsing=excluded,
            **values,
        )
        self.fabrics[row.id] = row
        return row

    def add_lock(self, supplier_id: UUID, lock_type: LockType) -> ManualOverrideLock:
        lock = ManualOverrideLock(id=uuid4(), supplier_id=supplier_id, type=lock_type)
        self.locks.append(lock)
        return lock

    def rows_for(self, supplier_id: UUID, include_excluded: bool = False) -> List[StoredFabric]:
        return [
            row for row in self.fabrics.values()
            if row.supplier_id == supplier_id and (include_excluded or not row.excluded_from_parsing)
        ]

    def row_by_key(self, supplier_id: UUID, key: str) -> Optional[StoredFabric]:
        for row in self.rows_for(supplier_id):
            if row.key == key:
                return row
        return None

    # ------------------------------------------------------------------
    # Suppliers
    # ------------------------------------------------------------------

    async def list_suppliers(self) -> List[SupplierProfile]:
        return list(self.suppliers.values())

    async def get_supplier(self, supplier_id: UUID) -> Optional[SupplierProfile]:
        return self.suppliers.get(supplier_id)

    async def update_supplier_status(
        self,
        supplier_id: UUID,
        status: SupplierStatus,
        error_message: Optional[str] = None,
        fabrics_count: Optional[int] = None,
        last_updated_at: Optional[datetime] = None,
    ) -> None:
        update: Dict[str, Any] = {"status": status, "error_message": error_message}
        if fabrics_count is not None:
            update["fabrics_count"] = fabrics_count
        if last_updated_at is not None:
            update["last_updated_at"] = last_updated_at
        self.status_updates.append(dict(update, supplier_id=supplier_id))
        supplier = self.suppliers.get(supplier_id)
        if supplier is not None:
            self.suppliers[supplier_id] = supplier.model_copy(update=update)

    # ------------------------------------------------------------------
    # Rules and structure
    # ------------------------------------------------------------------

    async def load_rules(self, supplier_id: UUID) -> Optional[Dict[str, Any]]:
        return self.rules.get(supplier_id)

    async def save_rules(self, supplier_id: UUID, rules: Dict[str, Any]) -> None:
        self.rules[supplier_id] = rules

    async def load_structure(self, supplier_id: UUID) -> Optional[Dict[str, Any]]:
        return self.structures.get(supplier_id)

    async def save_structure(self, supplier_id: UUID, fingerprint: Dict[str, Any]) -> None:
        self.structures[supplier_id] = fingerprint

    # ------------------------------------------------------------------
    # Catalog rows
    # ------------------------------------------------------------------

    async def list_fabrics(self, supplier_id: UUID) -> List[StoredFabric]:
        return self.rows_for(supplier_id, include_excluded=True)

    async def create_fabric(
        self,
        supplier_id: UUID,
        collection: str,
        color_number: str,
        values: FabricValues,
    ) -> StoredFabric:
        key = fabric_key(collection, color_number)
        if key in self.fail_keys:
            raise DatabaseError(f"create failed for {key}")
        if self.row_by_key(supplier_id, key) is not None:
            raise DatabaseError(f"duplicate key {key}")
        self.create_calls += 1
        row = StoredFabric(
            id=uuid4(),
            supplier_id=supplier_id,
            collection=collection,
            color_number=color_number,
            last_updated_at=datetime.now(timezone.utc),
            **values.model_dump(),
        )
        self.fabrics[row.id] = row
        return row

    async def update_fabric(self, fabric_id: UUID, values: FabricValues) -> None:
        row = self.fabrics[fabric_id]
        if row.key in self.fail_keys:
            raise DatabaseError(f"update failed for {row.key}")
        self.update_calls += 1
        self.fabrics[fabric_id] = row.model_copy(
            update=dict(values.model_dump(), last_updated_at=datetime.now(timezone.utc))
        )

    async def count_fabrics(self, supplier_id: UUID) -> int:
        return len(self.rows_for(supplier_id))

    async def set_exclusion(
        self,
        supplier_id: UUID,
        collection: str,
        color_number: Optional[str],
        excluded: bool,
    ) -> int:
        touched = 0
        for row in self.rows_for(supplier_id, include_excluded=True):
            if row.collection.strip().lower() != collection.strip().lower():
                continue
            if color_number is not None and row.color_number.strip().lower() != color_number.strip().lower():
                continue
            self.fabrics[row.id] = row.model_copy(update={"excluded_from_parsing": excluded})
            touched += 1
        return touched

    async def replace_fabrics(self, supplier_id: UUID, rows: List[FabricRow]) -> int:
        self.replace_calls += 1
        excluded = {row.key for row in self.rows_for(supplier_id, include_excluded=True) if row.excluded_from_parsing}
        for row in self.rows_for(supplier_id):
            del self.fabrics[row.id]
        created = 0
        seen: Set[str] = set()
        for collection, color_number, values in rows:
            key = fabric_key(collection, color_number)
            if key in excluded or key in seen:
                continue
            seen.add(key)
            row = StoredFabric(
                id=uuid4(),
                supplier_id=supplier_id,
                collection=collection,
                color_number=color_number,
                last_updated_at=datetime.now(timezone.utc),
                **values.model_dump(),
            )
            self.fabrics[row.id] = row
            created += 1
        return created

    # ------------------------------------------------------------------
    # Manual override locks
    # ------------------------------------------------------------------

    async def get_active_locks(self, supplier_id: UUID) -> List[ManualOverrideLock]:
        return [lock for lock in self.locks if lock.supplier_id == supplier_id and lock.is_active]

    async def activate_lock(self, supplier_id: UUID, lock_type: LockType) -> ManualOverrideLock:
        self.locks = [
            lock.model_copy(update={"is_active": False})
            if lock.supplier_id == supplier_id and lock.type == lock_type
            else lock
            for lock in self.locks
        ]
        return self.add_lock(supplier_id, lock_type)

    async def touch_lock(self, lock_id: UUID, at: datetime) -> None:
        self.locks = [
            lock.model_copy(update={"last_parser_update": at}) if lock.id == lock_id else lock
            for lock in self.locks
        ]

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------

    async def list_categories(self) -> List[CategoryBucket]:
        return list(self.categories)

    # ------------------------------------------------------------------
    # Email attachments
    # ------------------------------------------------------------------

    async def record_email_attachment(
        self,
        record: EmailAttachmentRecord,
    ) -> EmailAttachmentRecord:
        stored = record.model_copy(update={"id": uuid4()})
        self.attachments.append(stored)
        return stored

    async def latest_email_attachment(
        self,
        supplier_id: UUID,
        include_processed: bool = False,
    ) -> Optional[EmailAttachmentRecord]:
        candidates = [
            a for a in self.attachments
            if a.supplier_id == supplier_id and (include_processed or not a.processed)
        ]
        if not candidates:
            return None
        return max(candidates, key=lambda a: a.received_at)

    async def mark_attachment_processed(self, attachment_id: UUID, at: datetime) -> None:
        self.attachments = [
            a.model_copy(update={"processed": True, "processed_at": at}) if a.id == attachment_id else a
            for a in self.attachments
        ]


# =============================================================================
# Workbook builders
# =============================================================================


def make_xlsx(rows: Sequence[Sequence[Any]], sheet_name: str = "Sheet1") -> bytes:
    """Build an .xlsx payload holding ``rows`` (no header row added)."""
    return make_multi_sheet_xlsx({sheet_name: rows})


def make_multi_sheet_xlsx(sheets: Dict[str, Sequence[Sequence[Any]]]) -> bytes:
    """Build an .xlsx payload with one worksheet per entry."""
    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        for name, rows in sheets.items():
            pd.DataFrame(list(rows)).to_excel(writer, sheet_name=name, header=False, index=False)
    return buffer.getvalue()


def make_zip(members: Dict[str, bytes]) -> bytes:
    """Build a zip payload from ``{member_name: content}``."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        for name, content in members.items():
            archive.writestr(name, content)
    return buffer.getvalue()


def mark_zip_encrypted(payload: bytes) -> bytes:
    """Set the encryption flag on every member of a zip without encrypting it.

    zipfile then refuses to extract the members without a password.
    """
    data = bytearray(payload)
    for signature, flag_offset in ((b"PK\x03\x04", 6), (b"PK\x01\x02", 8)):
        start = data.find(signature)
        while start != -1:
            data[start + flag_offset] |= 0x01
            start = data.find(signature, start + 4)
    return bytes(data)


PRICE_LIST_ROWS: List[List[Any]] = [
    ["Остатки тканей на складе", None, None, None],
    ["Коллекция", "Цвет", "Наличие", "Метраж"],
    ["Mira", "014 blue", "есть", 85.6],
    ["Mira", "015 red", "нет", 0],
    ["Orion", "2", "есть", 7],
]
