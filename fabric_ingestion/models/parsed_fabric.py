"""Pydantic models for parsed fabric records."""
from pydantic import BaseModel, Field, field_validator
from datetime import date
from typing import Optional


class ParsedFabricRecord(BaseModel):
    """Canonical fabric record produced from one source row.

    Records are ephemeral: the reconciliation engine consumes them
    immediately and only the catalog row is persisted.
    """

    collection: str = Field(
        ...,
        min_length=1,
        max_length=255,
        description="Fabric collection name"
    )
    color_number: str = Field(
        default="",
        max_length=255,
        description="Color name or number within the collection"
    )
    in_stock: Optional[bool] = Field(
        default=None,
        description="Availability: True, False or None when unknown"
    )
    meterage: Optional[float] = Field(
        default=None,
        description="Available quantity in meters"
    )
    price: Optional[float] = Field(
        default=None,
        description="Price for the supplier unit"
    )
    next_arrival_date: Optional[date] = Field(
        default=None,
        description="Expected restock date"
    )
    comment: Optional[str] = Field(
        default=None,
        description="Free-text comment from the source or low-stock annotation"
    )

    @field_validator('collection', 'color_number')
    @classmethod
    def strip_text(cls, v: str) -> str:
        """Strip surrounding whitespace."""
        return v.strip()

    @field_validator('comment')
    @classmethod
    def validate_comment(cls, v: Optional[str]) -> Optional[str]:
        """Strip whitespace from comment and drop it when empty."""
        if v is not None:
            v = v.strip()
            if not v:
                return None
        return v

    @property
    def key(self) -> str:
        """Normalized identity key."""
        return fabric_key(self.collection, self.color_number)

    model_config = {
        "json_schema_extra": {
            "example": {
                "collection": "Mira",
                "color_number": "014 blue",
                "in_stock": True,
                "meterage": 85.6,
                "price": 1250.0,
                "next_arrival_date": None,
                "comment": None,
            }
        }
    }


def normalize_key_part(value: Optional[str]) -> str:
    """Normalize one part of a fabric identity (trim + lowercase)."""
    return (value or "").strip().lower()


def fabric_key(collection: Optional[str], color_number: Optional[str]) -> str:
    """Build the normalized identity key used across parsed and persisted records."""
    return f"{normalize_key_part(collection)}|{normalize_key_part(color_number)}"
