"""Fabric price category ORM model."""
from sqlalchemy import Integer, Float
from sqlalchemy.orm import Mapped, mapped_column
from fabric_ingestion.db.base import Base, UUIDMixin, TimestampMixin


class FabricCategory(Base, UUIDMixin, TimestampMixin):
    """Price-per-meter tier; fabrics fall into the first tier they fit."""

    __tablename__ = "fabric_categories"

    category: Mapped[int] = mapped_column(Integer, nullable=False, unique=True)
    price_threshold: Mapped[float] = mapped_column(Float, nullable=False)

    def __repr__(self) -> str:
        return f"<FabricCategory(category={self.category}, price_threshold={self.price_threshold})>"
