"""Manual upload lock ORM model."""
from sqlalchemy import String, ForeignKey, Boolean, DateTime, CheckConstraint, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship
from fabric_ingestion.db.base import Base, UUIDMixin, TimestampMixin
from datetime import datetime
from typing import Optional, TYPE_CHECKING
import uuid

if TYPE_CHECKING:
    from fabric_ingestion.db.models.supplier import Supplier


class ManualUpload(Base, UUIDMixin, TimestampMixin):
    """Operator upload of authoritative stock or price data.

    While ``is_active`` is set, automated runs for the supplier only write
    when the parsed data differs from the catalog.
    """

    __tablename__ = "manual_uploads"
    __table_args__ = (
        CheckConstraint("type IN ('stock', 'price')", name="check_manual_upload_type"),
        Index("idx_manual_uploads_supplier_active", "supplier_id", "type", "is_active"),
    )

    supplier_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("suppliers.id", ondelete="CASCADE"),
        nullable=False,
    )
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default="true")
    filename: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    last_parser_update: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # Relationships
    supplier: Mapped["Supplier"] = relationship(back_populates="manual_uploads")

    def __repr__(self) -> str:
        return f"<ManualUpload(id={self.id}, type='{self.type}', is_active={self.is_active})>"
