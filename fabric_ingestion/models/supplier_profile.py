"""Pydantic models describing suppliers and their delivery mechanisms."""
from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID


class ParsingMethod(str, Enum):
    """How a supplier delivers its price list."""
    HTML = "html"
    EXCEL = "excel"
    EMAIL = "email"


class SupplierStatus(str, Enum):
    """Two-state supplier health, set by the run error boundary."""
    ACTIVE = "active"
    ERROR = "error"


class EmailConfig(BaseModel):
    """IMAP connection parameters and message filters for an email supplier.

    Attributes:
        host: IMAP server host
        port: IMAP server port
        secure: Use an SSL connection
        user: Mailbox login
        password: Mailbox password
        from_email: Only consider messages from this sender
        subject_filter: Only consider messages whose subject contains this text
        search_unread_only: Only consider unseen messages
        search_days: Only consider messages received within this many days
        use_any_latest_attachment: Fall back to the latest stored attachment even
            when it was already processed
    """
    host: str = Field(..., min_length=1)
    port: int = Field(default=993, ge=1, le=65535)
    secure: bool = True
    user: str = Field(..., min_length=1)
    password: str
    from_email: Optional[str] = None
    subject_filter: Optional[str] = None
    search_unread_only: bool = False
    search_days: int = Field(default=90, ge=1, le=3650)
    use_any_latest_attachment: bool = False

    @field_validator('from_email', 'subject_filter')
    @classmethod
    def validate_filters(cls, v: Optional[str]) -> Optional[str]:
        """Treat blank filters as absent."""
        if v is not None:
            v = v.strip()
            if not v:
                return None
        return v


class SupplierProfile(BaseModel):
    """A supplier as seen by the ingestion core (read-only connection data)."""
    id: UUID
    name: str = Field(..., min_length=1, max_length=255)
    parsing_method: ParsingMethod
    parsing_url: Optional[str] = None
    email_config: Optional[EmailConfig] = None
    status: SupplierStatus = SupplierStatus.ACTIVE
    error_message: Optional[str] = None
    fabrics_count: int = 0
    last_updated_at: Optional[datetime] = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Strip whitespace from supplier name."""
        return v.strip()
