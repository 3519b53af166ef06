"""Pydantic models for the persisted catalog as seen by reconciliation."""
from pydantic import BaseModel, Field
from datetime import date, datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from fabric_ingestion.models.parsed_fabric import fabric_key


class LockType(str, Enum):
    """Kind of operator-authoritative data a manual upload provides."""
    STOCK = "stock"
    PRICE = "price"


class ManualOverrideLock(BaseModel):
    """Active/inactive marker left by an operator manual upload."""
    id: Optional[UUID] = None
    supplier_id: UUID
    type: LockType
    is_active: bool = True
    last_parser_update: Optional[datetime] = None


class CategoryBucket(BaseModel):
    """Price-per-meter tier: a fabric belongs to the first bucket it fits."""
    category: int = Field(..., ge=1)
    price_threshold: float = Field(..., gt=0)


class FabricValues(BaseModel):
    """Mutable catalog fields written by reconciliation or manual upload."""
    in_stock: Optional[bool] = None
    meterage: Optional[float] = None
    price: Optional[float] = None
    price_per_meter: Optional[float] = None
    category: Optional[int] = None
    next_arrival_date: Optional[date] = None
    comment: Optional[str] = None


class StoredFabric(FabricValues):
    """A persisted catalog row."""
    id: UUID
    supplier_id: UUID
    collection: str
    color_number: str
    excluded_from_parsing: bool = False
    last_updated_at: Optional[datetime] = None

    @property
    def key(self) -> str:
        """Normalized identity key."""
        return fabric_key(self.collection, self.color_number)


class EmailAttachmentRecord(BaseModel):
    """Tracked processing unit for a selected email attachment."""
    id: Optional[UUID] = None
    supplier_id: UUID
    message_id: str
    filename: str
    file_path: str
    received_at: datetime
    processed: bool = False
    processed_at: Optional[datetime] = None


class ReconciliationResult(BaseModel):
    """Counts produced by one reconciliation pass.

    Attributes:
        created: New catalog rows
        updated: Existing rows whose values changed
        skipped_excluded: Parsed records matching an exclusion marker
        skipped_unchanged: Records needing no write (gate closed or equal values)
        failed: Records whose write raised
        gated: True when the manual-lock gate suppressed all writes
    """
    created: int = Field(default=0, ge=0)
    updated: int = Field(default=0, ge=0)
    skipped_excluded: int = Field(default=0, ge=0)
    skipped_unchanged: int = Field(default=0, ge=0)
    failed: int = Field(default=0, ge=0)
    gated: bool = False

    @property
    def writes(self) -> int:
        """Total catalog writes performed."""
        return self.created + self.updated


class RunResult(BaseModel):
    """Aggregated outcome of one supplier run, returned to the orchestrator."""
    supplier_id: UUID
    supplier_name: Optional[str] = None
    success: bool
    created: int = 0
    updated: int = 0
    skipped_excluded: int = 0
    skipped_unchanged: int = 0
    failed: int = 0
    structure_changed: bool = False
    error_message: Optional[str] = None

    @classmethod
    def from_reconciliation(
        cls,
        supplier_id: UUID,
        supplier_name: Optional[str],
        result: ReconciliationResult,
        structure_changed: bool = False,
    ) -> "RunResult":
        """Build a successful run result from reconciliation counts."""
        return cls(
            supplier_id=supplier_id,
            supplier_name=supplier_name,
            success=True,
            created=result.created,
            updated=result.updated,
            skipped_excluded=result.skipped_excluded,
            skipped_unchanged=result.skipped_unchanged,
            failed=result.failed,
            structure_changed=structure_changed,
        )

    @classmethod
    def failure(
        cls,
        supplier_id: UUID,
        supplier_name: Optional[str],
        error_message: str,
    ) -> "RunResult":
        """Build a failed run result."""
        return cls(
            supplier_id=supplier_id,
            supplier_name=supplier_name,
            success=False,
            error_message=error_message,
        )
