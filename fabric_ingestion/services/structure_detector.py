"""Source layout drift detection.

A fingerprint is stored after every run. Comparing the new fingerprint with
the stored one tells an operator that a vendor changed its export layout;
the result never blocks parsing or changes reconciliation.
"""
from typing import Optional
from uuid import UUID

import structlog

from fabric_ingestion.db.catalog_store import CatalogStore
from fabric_ingestion.models.source import DataStructureFingerprint

logger = structlog.get_logger(__name__)


class StructureDetector:
    """Compares and stores per-supplier structure fingerprints."""

    def __init__(self, store: CatalogStore) -> None:
        self._store = store

    async def load_structure(self, supplier_id: UUID) -> Optional[DataStructureFingerprint]:
        """Return the previously stored fingerprint, if any."""
        data = await self._store.load_structure(supplier_id)
        if not data:
            return None
        return DataStructureFingerprint.model_validate(data)

    async def compare_structure(
        self,
        supplier_id: UUID,
        fingerprint: DataStructureFingerprint,
    ) -> bool:
        """True when the fingerprint equals the stored one (or none is stored)."""
        previous = await self.load_structure(supplier_id)
        if previous is None:
            return True
        equal = previous.model_dump() == fingerprint.model_dump()
        if not equal:
            logger.warning(
                "structure_changed",
                supplier_id=str(supplier_id),
                previous_rows=previous.row_count,
                current_rows=fingerprint.row_count,
                previous_columns=previous.column_count,
                current_columns=fingerprint.column_count,
                first_row_changed=previous.first_row_values != fingerprint.first_row_values,
                sheets_changed=previous.sheet_names != fingerprint.sheet_names,
            )
        return equal

    async def save_data_structure(
        self,
        supplier_id: UUID,
        fingerprint: DataStructureFingerprint,
    ) -> None:
        """Persist the latest fingerprint unconditionally."""
        await self._store.save_structure(supplier_id, fingerprint.model_dump(mode="json"))

    async def check_and_save(
        self,
        supplier_id: UUID,
        fingerprint: DataStructureFingerprint,
    ) -> bool:
        """Compare with the stored fingerprint, then store the new one.

        Returns:
            True when the layout changed since the previous run
        """
        unchanged = await self.compare_structure(supplier_id, fingerprint)
        await self.save_data_structure(supplier_id, fingerprint)
        return not unchanged
