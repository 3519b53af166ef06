"""Per-supplier parsing rules and structure fingerprint ORM models."""
from sqlalchemy import ForeignKey, Text
from sqlalchemy.dialects import postgresql
from sqlalchemy.orm import Mapped, mapped_column
from fabric_ingestion.db.base import Base, UUIDMixin, TimestampMixin
from typing import Dict, Any
import uuid


class ParsingRule(Base, UUIDMixin, TimestampMixin):
    """Stored ParsingRules JSON, one row per supplier, overwritten in place."""

    __tablename__ = "parsing_rules"

    supplier_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("suppliers.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    rules: Mapped[Dict[str, Any]] = mapped_column(
        postgresql.JSONB(astext_type=Text),
        nullable=False,
        server_default="{}",
    )

    def __repr__(self) -> str:
        return f"<ParsingRule(supplier_id={self.supplier_id})>"


class DataStructure(Base, UUIDMixin, TimestampMixin):
    """Last seen source structure fingerprint of a supplier."""

    __tablename__ = "data_structures"

    supplier_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("suppliers.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    structure: Mapped[Dict[str, Any]] = mapped_column(
        postgresql.JSONB(astext_type=Text),
        nullable=False,
        server_default="{}",
    )

    def __repr__(self) -> str:
        return f"<DataStructure(supplier_id={self.supplier_id})>"
