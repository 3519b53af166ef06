"""
Catalog Repository
==================

SQLAlchemy implementation of :class:`CatalogStore`.

Every public method opens its own session and commits before returning,
so each call is atomic on its own. ``replace_fabrics`` is the only method
that deletes catalog rows and it does so inside a single transaction.
"""
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Callable, Dict, List, Optional
from uuid import UUID

import structlog
from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from fabric_ingestion.db.catalog_store import CatalogStore, FabricRow
from fabric_ingestion.db.models import (
    DataStructure,
    EmailAttachment,
    Fabric,
    FabricCategory,
    ManualUpload,
    ParsingRule,
    Supplier,
)
from fabric_ingestion.errors.exceptions import DatabaseError
from fabric_ingestion.models.catalog import (
    CategoryBucket,
    EmailAttachmentRecord,
    FabricValues,
    LockType,
    ManualOverrideLock,
    StoredFabric,
)
from fabric_ingestion.models.parsed_fabric import fabric_key, normalize_key_part
from fabric_ingestion.models.supplier_profile import (
    EmailConfig,
    ParsingMethod,
    SupplierProfile,
    SupplierStatus,
)
from fabric_ingestion.services.normalization.values import validate_date

logger = structlog.get_logger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _to_profile(row: Supplier) -> SupplierProfile:
    return SupplierProfile(
        id=row.id,
        name=row.name,
        parsing_method=ParsingMethod(row.parsing_method),
        parsing_url=row.parsing_url,
        email_config=EmailConfig(**row.email_config) if row.email_config else None,
        status=SupplierStatus(row.status),
        error_message=row.error_message,
        fabrics_count=row.fabrics_count,
        last_updated_at=row.last_updated_at,
    )


def _to_stored(row: Fabric) -> StoredFabric:
    return StoredFabric(
        id=row.id,
        supplier_id=row.supplier_id,
        collection=row.collection,
        color_number=row.color_number,
        in_stock=row.in_stock,
        meterage=row.meterage,
        price=row.price,
        price_per_meter=row.price_per_meter,
        category=row.category,
        next_arrival_date=row.next_arrival_date,
        comment=row.comment,
        excluded_from_parsing=row.excluded_from_parsing,
        last_updated_at=row.last_updated_at,
    )


def _to_lock(row: ManualUpload) -> ManualOverrideLock:
    return ManualOverrideLock(
        id=row.id,
        supplier_id=row.supplier_id,
        type=LockType(row.type),
        is_active=row.is_active,
        last_parser_update=row.last_parser_update,
    )


def _to_attachment(row: EmailAttachment) -> EmailAttachmentRecord:
    return EmailAttachmentRecord(
        id=row.id,
        supplier_id=row.supplier_id,
        message_id=row.message_id,
        filename=row.filename,
        file_path=row.file_path,
        received_at=row.received_at,
        processed=row.processed,
        processed_at=row.processed_at,
    )


def _fabric_columns(values: FabricValues) -> Dict[str, Any]:
    columns = values.model_dump()
    columns["next_arrival_date"] = validate_date(values.next_arrival_date)
    columns["last_updated_at"] = _now()
    return columns


class SqlCatalogStore(CatalogStore):
    """Catalog store backed by PostgreSQL through SQLAlchemy async sessions."""

    def __init__(self, session_factory: Optional[Callable[[], AsyncSession]] = None) -> None:
        """
        Args:
            session_factory: Callable returning a new AsyncSession
                (defaults to the application's async_session_maker)
        """
        if session_factory is None:
            from fabric_ingestion.db.base import async_session_maker
            session_factory = async_session_maker
        self._session_factory = session_factory

    @asynccontextmanager
    async def _transaction(self, operation: str, **context: Any) -> AsyncIterator[AsyncSession]:
        """Yield a session, commit on success, translate failures to DatabaseError."""
        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error("catalog_store_operation_failed", operation=operation, error=str(e), **context)
                raise DatabaseError(f"Catalog store operation '{operation}' failed: {e}") from e

    # ------------------------------------------------------------------
    # Suppliers
    # ------------------------------------------------------------------

    async def list_suppliers(self) -> List[SupplierProfile]:
        async with self._transaction("list_suppliers") as session:
            result = await session.execute(select(Supplier).order_by(Supplier.name))
            return [_to_profile(row) for row in result.scalars().all()]

    async def get_supplier(self, supplier_id: UUID) -> Optional[SupplierProfile]:
        async with self._transaction("get_supplier", supplier_id=str(supplier_id)) as session:
            row = await session.get(Supplier, supplier_id)
            return _to_profile(row) if row else None

    async def update_supplier_status(
        self,
        supplier_id: UUID,
        status: SupplierStatus,
        error_message: Optional[str] = None,
        fabrics_count: Optional[int] = None,
        last_updated_at: Optional[datetime] = None,
    ) -> None:
        values: Dict[str, Any] = {"status": status.value, "error_message": error_message}
        if fabrics_count is not None:
            values["fabrics_count"] = fabrics_count
        if last_updated_at is not None:
            values["last_updated_at"] = last_updated_at
        async with self._transaction("update_supplier_status", supplier_id=str(supplier_id)) as session:
            await session.execute(
                update(Supplier).where(Supplier.id == supplier_id).values(**values)
            )

    # ------------------------------------------------------------------
    # Rules and structure
    # ------------------------------------------------------------------

    async def load_rules(self, supplier_id: UUID) -> Optional[Dict[str, Any]]:
        async with self._transaction("load_rules", supplier_id=str(supplier_id)) as session:
            result = await session.execute(
                select(ParsingRule.rules).where(ParsingRule.supplier_id == supplier_id)
            )
            return result.scalar_one_or_none()

    async def save_rules(self, supplier_id: UUID, rules: Dict[str, Any]) -> None:
        async with self._transaction("save_rules", supplier_id=str(supplier_id)) as session:
            result = await session.execute(
                select(ParsingRule).where(ParsingRule.supplier_id == supplier_id)
            )
            row = result.scalar_one_or_none()
            if row is None:
                session.add(ParsingRule(supplier_id=supplier_id, rules=rules))
            else:
                row.rules = rules

    async def load_structure(self, supplier_id: UUID) -> Optional[Dict[str, Any]]:
        async with self._transaction("load_structure", supplier_id=str(supplier_id)) as session:
            result = await session.execute(
                select(DataStructure.structure).where(DataStructure.supplier_id == supplier_id)
            )
            return result.scalar_one_or_none()

    async def save_structure(self, supplier_id: UUID, fingerprint: Dict[str, Any]) -> None:
        async with self._transaction("save_structure", supplier_id=str(supplier_id)) as session:
            result = await session.execute(
                select(DataStructure).where(DataStructure.supplier_id == supplier_id)
            )
            row = result.scalar_one_or_none()
            if row is None:
                session.add(DataStructure(supplier_id=supplier_id, structure=fingerprint))
            else:
                row.structure = fingerprint

    # ------------------------------------------------------------------
    # Catalog rows
    # ------------------------------------------------------------------

    async def list_fabrics(self, supplier_id: UUID) -> List[StoredFabric]:
        async with self._transaction("list_fabrics", supplier_id=str(supplier_id)) as session:
            result = await session.execute(
                select(Fabric).where(Fabric.supplier_id == supplier_id)
            )
            return [_to_stored(row) for row in result.scalars().all()]

    async def create_fabric(
        self,
        supplier_id: UUID,
        collection: str,
        color_number: str,
        values: FabricValues,
    ) -> StoredFabric:
        async with self._transaction(
            "create_fabric",
            supplier_id=str(supplier_id),
            collection=collection,
            color_number=color_number,
        ) as session:
            row = Fabric(
                supplier_id=supplier_id,
                collection=collection,
                color_number=color_number,
                collection_key=normalize_key_part(collection),
                color_key=normalize_key_part(color_number),
                excluded_from_parsing=False,
                **_fabric_columns(values),
            )
            session.add(row)
            await session.flush()
            return _to_stored(row)

    async def update_fabric(self, fabric_id: UUID, values: FabricValues) -> None:
        async with self._transaction("update_fabric", fabric_id=str(fabric_id)) as session:
            await session.execute(
                update(Fabric).where(Fabric.id == fabric_id).values(**_fabric_columns(values))
            )

    async def count_fabrics(self, supplier_id: UUID) -> int:
        async with self._transaction("count_fabrics", supplier_id=str(supplier_id)) as session:
            result = await session.execute(
                select(func.count(Fabric.id))
                .where(Fabric.supplier_id == supplier_id)
                .where(Fabric.excluded_from_parsing.is_(False))
            )
            return int(result.scalar_one())

    async def set_exclusion(
        self,
        supplier_id: UUID,
        collection: str,
        color_number: Optional[str],
        excluded: bool,
    ) -> int:
        statement = (
            update(Fabric)
            .where(Fabric.supplier_id == supplier_id)
            .where(Fabric.collection_key == normalize_key_part(collection))
        )
        if color_number is not None:
            statement = statement.where(Fabric.color_key == normalize_key_part(color_number))
        async with self._transaction("set_exclusion", supplier_id=str(supplier_id), collection=collection) as session:
            result = await session.execute(statement.values(excluded_from_parsing=excluded))
            return result.rowcount or 0

    async def replace_fabrics(self, supplier_id: UUID, rows: List[FabricRow]) -> int:
        async with self._transaction("replace_fabrics", supplier_id=str(supplier_id)) as session:
            result = await session.execute(
                select(Fabric.collection_key, Fabric.color_key)
                .where(Fabric.supplier_id == supplier_id)
                .where(Fabric.excluded_from_parsing.is_(True))
            )
            excluded = {f"{collection}|{color}" for collection, color in result.all()}

            await session.execute(
                delete(Fabric)
                .where(Fabric.supplier_id == supplier_id)
                .where(Fabric.excluded_from_parsing.is_(False))
            )

            created = 0
            seen = set()
            for collection, color_number, values in rows:
                key = fabric_key(collection, color_number)
                if key in excluded or key in seen:
                    continue
                seen.add(key)
                session.add(Fabric(
                    supplier_id=supplier_id,
                    collection=collection,
                    color_number=color_number,
                    collection_key=normalize_key_part(collection),
                    color_key=normalize_key_part(color_number),
                    excluded_from_parsing=False,
                    **_fabric_columns(values),
                ))
                created += 1
            return created

    # ------------------------------------------------------------------
    # Manual override locks
    # ------------------------------------------------------------------

    async def get_active_locks(self, supplier_id: UUID) -> List[ManualOverrideLock]:
        async with self._transaction("get_active_locks", supplier_id=str(supplier_id)) as session:
            result = await session.execute(
                select(ManualUpload)
                .where(ManualUpload.supplier_id == supplier_id)
                .where(ManualUpload.is_active.is_(True))
            )
            return [_to_lock(row) for row in result.scalars().all()]

    async def activate_lock(self, supplier_id: UUID, lock_type: LockType) -> ManualOverrideLock:
        async with self._transaction("activate_lock", supplier_id=str(supplier_id), lock_type=lock_type.value) as session:
            await session.execute(
                update(ManualUpload)
                .where(ManualUpload.supplier_id == supplier_id)
                .where(ManualUpload.type == lock_type.value)
                .where(ManualUpload.is_active.is_(True))
                .values(is_active=False)
            )
            row = ManualUpload(supplier_id=supplier_id, type=lock_type.value, is_active=True)
            session.add(row)
            await session.flush()
            return _to_lock(row)

    async def touch_lock(self, lock_id: UUID, at: datetime) -> None:
        async with self._transaction("touch_lock", lock_id=str(lock_id)) as session:
            await session.execute(
                update(ManualUpload).where(ManualUpload.id == lock_id).values(last_parser_update=at)
            )

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------

    async def list_categories(self) -> List[CategoryBucket]:
        async with self._transaction("list_categories") as session:
            result = await session.execute(
                select(FabricCategory).order_by(FabricCategory.price_threshold)
            )
            return [
                CategoryBucket(category=row.category, price_threshold=row.price_threshold)
                for row in result.scalars().all()
            ]

    # ------------------------------------------------------------------
    # Email attachments
    # ------------------------------------------------------------------

    async def record_email_attachment(
        self,
        record: EmailAttachmentRecord,
    ) -> EmailAttachmentRecord:
        async with self._transaction("record_email_attachment", supplier_id=str(record.supplier_id)) as session:
            row = EmailAttachment(
                supplier_id=record.supplier_id,
                message_id=record.message_id,
                filename=record.filename,
                file_path=record.file_path,
                received_at=record.received_at,
                processed=record.processed,
            )
            session.add(row)
            await session.flush()
            return _to_attachment(row)

    async def latest_email_attachment(
        self,
        supplier_id: UUID,
        include_processed: bool = False,
    ) -> Optional[EmailAttachmentRecord]:
        statement = select(EmailAttachment).where(EmailAttachment.supplier_id == supplier_id)
        if not include_processed:
            statement = statement.where(EmailAttachment.processed.is_(False))
        statement = statement.order_by(EmailAttachment.received_at.desc()).limit(1)
        async with self._transaction("latest_email_attachment", supplier_id=str(supplier_id)) as session:
            result = await session.execute(statement)
            row = result.scalar_one_or_none()
            return _to_attachment(row) if row else None

    async def mark_attachment_processed(self, attachment_id: UUID, at: datetime) -> None:
        async with self._transaction("mark_attachment_processed", attachment_id=str(attachment_id)) as session:
            await session.execute(
                update(EmailAttachment)
                .where(EmailAttachment.id == attachment_id)
                .values(processed=True, processed_at=at)
            )
