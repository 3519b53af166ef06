"""Operator exclusion markers.

An excluded catalog row is never created, updated or replaced by an
automated run or a manual upload. Operators exclude a whole collection or
one color of it, and can lift the marker again.
"""
from typing import Optional
from uuid import UUID

import structlog

from fabric_ingestion.db.catalog_store import CatalogStore
from fabric_ingestion.errors.exceptions import ValidationError

logger = structlog.get_logger(__name__)


async def set_exclusion(
    store: CatalogStore,
    supplier_id: UUID,
    collection: str,
    color_number: Optional[str] = None,
    excluded: bool = True,
) -> int:
    """Set or clear the exclusion marker and refresh the supplier's row count.

    Args:
        collection: Collection name; matched on the normalized key
        color_number: One color of the collection, or None for all of them
        excluded: True to exclude, False to let runs manage the rows again

    Returns:
        Number of catalog rows touched

    Raises:
        ValidationError: If the supplier does not exist or the collection is blank
    """
    if not collection or not collection.strip():
        raise ValidationError("Collection is required to set an exclusion")
    if color_number is not None and not color_number.strip():
        color_number = None

    supplier = await store.get_supplier(supplier_id)
    if supplier is None:
        raise ValidationError(f"Supplier {supplier_id} not found")

    touched = await store.set_exclusion(supplier_id, collection, color_number, excluded)
    await store.update_supplier_status(
        supplier_id,
        supplier.status,
        error_message=supplier.error_message,
        fabrics_count=await store.count_fabrics(supplier_id),
    )
    logger.info(
        "exclusion_updated",
        supplier_id=str(supplier_id),
        collection=collection,
        color_number=color_number,
        excluded=excluded,
        touched=touched,
    )
    return touched
