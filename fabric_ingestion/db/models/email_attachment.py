"""Tracked email attachment ORM model."""
from sqlalchemy import String, ForeignKey, Boolean, DateTime, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship
from fabric_ingestion.db.base import Base, UUIDMixin, TimestampMixin
from datetime import datetime
from typing import Optional, TYPE_CHECKING
import uuid

if TYPE_CHECKING:
    from fabric_ingestion.db.models.supplier import Supplier


class EmailAttachment(Base, UUIDMixin, TimestampMixin):
    """Attachment selected from a supplier mailbox, awaiting or past processing."""

    __tablename__ = "email_attachments"

    supplier_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("suppliers.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    message_id: Mapped[str] = mapped_column(String(500), nullable=False)
    filename: Mapped[str] = mapped_column(String(500), nullable=False)
    file_path: Mapped[str] = mapped_column(Text, nullable=False)
    received_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    processed: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        server_default="false",
        index=True,
    )
    processed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # Relationships
    supplier: Mapped["Supplier"] = relationship(back_populates="email_attachments")

    def __repr__(self) -> str:
        return f"<EmailAttachment(id={self.id}, filename='{self.filename}', processed={self.processed})>"
