"""Error handling module."""
from fabric_ingestion.errors.exceptions import (
    DataIngestionError,
    ParserError,
    SourceUnavailableError,
    UnsupportedFormatError,
    RulesMissingError,
    RowParseError,
    ValidationError,
    DatabaseError,
)

__all__ = [
    "DataIngestionError",
    "ParserError",
    "SourceUnavailableError",
    "UnsupportedFormatError",
    "RulesMissingError",
    "RowParseError",
    "ValidationError",
    "DatabaseError",
]
