"""Fabric ORM model: one canonical catalog row per supplier fabric."""
from sqlalchemy import (
    String, ForeignKey, Float, Integer, Boolean, Date, DateTime, Text, Index, text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from fabric_ingestion.db.base import Base, UUIDMixin, TimestampMixin
from datetime import date, datetime
from typing import Optional, TYPE_CHECKING
import uuid

if TYPE_CHECKING:
    from fabric_ingestion.db.models.supplier import Supplier


class Fabric(Base, UUIDMixin, TimestampMixin):
    """Catalog row keyed by normalized (supplier, collection, color).

    ``collection_key`` and ``color_key`` hold the trimmed lowercase identity.
    A partial unique index keeps non-excluded rows unique per supplier.

    Attributes:
        collection: Collection name as parsed
        color_number: Color name or number as parsed
        in_stock: Availability, None when unknown
        meterage: Available meters
        price: Supplier price
        price_per_meter: price / meterage when both positive
        category: Price tier derived from price_per_meter
        next_arrival_date: Expected restock date
        comment: Source comment or low-stock annotation
        excluded_from_parsing: Operator exclusion marker
        last_updated_at: Last write by reconciliation or manual upload
    """

    __tablename__ = "fabrics"
    __table_args__ = (
        Index(
            "uq_fabrics_supplier_key_active",
            "supplier_id",
            "collection_key",
            "color_key",
            unique=True,
            postgresql_where=text("NOT excluded_from_parsing"),
        ),
        Index("idx_fabrics_supplier_collection", "supplier_id", "collection_key"),
    )

    supplier_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("suppliers.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    collection: Mapped[str] = mapped_column(String(255), nullable=False)
    color_number: Mapped[str] = mapped_column(String(255), nullable=False, server_default="")
    collection_key: Mapped[str] = mapped_column(String(255), nullable=False)
    color_key: Mapped[str] = mapped_column(String(255), nullable=False)
    in_stock: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    meterage: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    price: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    price_per_meter: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    category: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    next_arrival_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    comment: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    excluded_from_parsing: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        server_default="false",
        default=False,
    )
    last_updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # Relationships
    supplier: Mapped["Supplier"] = relationship(back_populates="fabrics")

    def __repr__(self) -> str:
        return (
            f"<Fabric(id={self.id}, collection='{self.collection}', "
            f"color_number='{self.color_number}', excluded={self.excluded_from_parsing})>"
        )
