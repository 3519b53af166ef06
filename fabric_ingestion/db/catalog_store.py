"""Abstract catalog store used by the ingestion core.

The core never issues queries itself. Everything it persists or reads goes
through this interface, keyed by supplier and by normalized fabric identity.
Each call is atomic on its own; no transaction spans several calls except
:meth:`CatalogStore.replace_fabrics`.
"""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from fabric_ingestion.models.catalog import (
    CategoryBucket,
    EmailAttachmentRecord,
    FabricValues,
    LockType,
    ManualOverrideLock,
    StoredFabric,
)
from fabric_ingestion.models.supplier_profile import SupplierProfile, SupplierStatus

# (collection, color_number, values) triple for bulk writes
FabricRow = Tuple[str, str, FabricValues]


class CatalogStore(ABC):
    """Persistence collaborator for suppliers, rules, catalog rows and locks."""

    # ------------------------------------------------------------------
    # Suppliers
    # ------------------------------------------------------------------

    @abstractmethod
    async def list_suppliers(self) -> List[SupplierProfile]:
        """Return every supplier profile."""

    @abstractmethod
    async def get_supplier(self, supplier_id: UUID) -> Optional[SupplierProfile]:
        """Return one supplier profile or None."""

    @abstractmethod
    async def update_supplier_status(
        self,
        supplier_id: UUID,
        status: SupplierStatus,
        error_message: Optional[str] = None,
        fabrics_count: Optional[int] = None,
        last_updated_at: Optional[datetime] = None,
    ) -> None:
        """Set supplier status; counts and timestamps only when given."""

    # ------------------------------------------------------------------
    # Rules and structure
    # ------------------------------------------------------------------

    @abstractmethod
    async def load_rules(self, supplier_id: UUID) -> Optional[Dict[str, Any]]:
        """Return the stored rules JSON or None."""

    @abstractmethod
    async def save_rules(self, supplier_id: UUID, rules: Dict[str, Any]) -> None:
        """Store rules JSON, overwriting in place."""

    @abstractmethod
    async def load_structure(self, supplier_id: UUID) -> Optional[Dict[str, Any]]:
        """Return the last stored structure fingerprint or None."""

    @abstractmethod
    async def save_structure(self, supplier_id: UUID, fingerprint: Dict[str, Any]) -> None:
        """Store the structure fingerprint, overwriting in place."""

    # ------------------------------------------------------------------
    # Catalog rows
    # ------------------------------------------------------------------

    @abstractmethod
    async def list_fabrics(self, supplier_id: UUID) -> List[StoredFabric]:
        """Return every catalog row of a supplier, excluded rows included."""

    @abstractmethod
    async def create_fabric(
        self,
        supplier_id: UUID,
        collection: str,
        color_number: str,
        values: FabricValues,
    ) -> StoredFabric:
        """Create a catalog row."""

    @abstractmethod
    async def update_fabric(self, fabric_id: UUID, values: FabricValues) -> None:
        """Overwrite mutable fields of a catalog row and bump last_updated_at."""

    @abstractmethod
    async def count_fabrics(self, supplier_id: UUID) -> int:
        """Count non-excluded catalog rows of a supplier."""

    @abstractmethod
    async def set_exclusion(
        self,
        supplier_id: UUID,
        collection: str,
        color_number: Optional[str],
        excluded: bool,
    ) -> int:
        """Set or clear the exclusion marker.

        ``color_number=None`` marks every row of the collection. Returns the
        number of rows touched.
        """

    @abstractmethod
    async def replace_fabrics(self, supplier_id: UUID, rows: List[FabricRow]) -> int:
        """Delete non-excluded rows and recreate them in one transaction.

        Rows whose key matches an excluded row are not created. Returns the
        number of rows created.
        """

    # ------------------------------------------------------------------
    # Manual override locks
    # ------------------------------------------------------------------

    @abstractmethod
    async def get_active_locks(self, supplier_id: UUID) -> List[ManualOverrideLock]:
        """Return the supplier's active manual-upload locks."""

    @abstractmethod
    async def activate_lock(self, supplier_id: UUID, lock_type: LockType) -> ManualOverrideLock:
        """Deactivate prior locks of this type and create an active one."""

    @abstractmethod
    async def touch_lock(self, lock_id: UUID, at: datetime) -> None:
        """Record when the parser last looked at a locked supplier."""

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------

    @abstractmethod
    async def list_categories(self) -> List[CategoryBucket]:
        """Return configured category buckets (any order)."""

    # ------------------------------------------------------------------
    # Email attachments
    # ------------------------------------------------------------------

    @abstractmethod
    async def record_email_attachment(
        self,
        record: EmailAttachmentRecord,
    ) -> EmailAttachmentRecord:
        """Persist a selected attachment as a tracked processing unit."""

    @abstractmethod
    async def latest_email_attachment(
        self,
        supplier_id: UUID,
        include_processed: bool = False,
    ) -> Optional[EmailAttachmentRecord]:
        """Return the newest tracked attachment of a supplier."""

    @abstractmethod
    async def mark_attachment_processed(self, attachment_id: UUID, at: datetime) -> None:
        """Flag a tracked attachment as processed."""
