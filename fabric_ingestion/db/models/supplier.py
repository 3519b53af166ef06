"""Supplier ORM model."""
from sqlalchemy import String, CheckConstraint, Text, Integer, DateTime
from sqlalchemy.dialects import postgresql
from sqlalchemy.orm import Mapped, mapped_column, relationship
from fabric_ingestion.db.base import Base, UUIDMixin, TimestampMixin
from datetime import datetime
from typing import Dict, Any, List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from fabric_ingestion.db.models.fabric import Fabric
    from fabric_ingestion.db.models.manual_upload import ManualUpload
    from fabric_ingestion.db.models.email_attachment import EmailAttachment


class Supplier(Base, UUIDMixin, TimestampMixin):
    """Fabric supplier and its delivery mechanism.

    Attributes:
        name: Supplier name, also the key into the vendor profile registry
        parsing_method: html, excel or email
        parsing_url: Page or spreadsheet URL for html/excel suppliers
        email_config: IMAP parameters and filters for email suppliers
        status: active or error, set after every run
        error_message: Message of the last failed run
        fabrics_count: Cached count of non-excluded catalog rows
        last_updated_at: When the last successful reconciliation finished
    """

    __tablename__ = "suppliers"
    __table_args__ = (
        CheckConstraint(
            "parsing_method IN ('html', 'excel', 'email')",
            name="check_parsing_method"
        ),
        CheckConstraint(
            "status IN ('active', 'error')",
            name="check_supplier_status"
        ),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    parsing_method: Mapped[str] = mapped_column(String(20), nullable=False)
    parsing_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    email_config: Mapped[Optional[Dict[str, Any]]] = mapped_column(
        postgresql.JSONB(astext_type=Text),
        nullable=True,
    )
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        server_default="active",
        index=True,
    )
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    fabrics_count: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    last_updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # Relationships
    fabrics: Mapped[List["Fabric"]] = relationship(
        back_populates="supplier",
        cascade="all, delete-orphan"
    )
    manual_uploads: Mapped[List["ManualUpload"]] = relationship(
        back_populates="supplier",
        cascade="all, delete-orphan"
    )
    email_attachments: Mapped[List["EmailAttachment"]] = relationship(
        back_populates="supplier",
        cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Supplier(id={self.id}, name='{self.name}', status='{self.status}')>"
