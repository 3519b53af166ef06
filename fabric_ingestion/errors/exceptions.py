"""Custom exception hierarchy for fabric ingestion errors."""


class DataIngestionError(Exception):
    """Base exception for all data ingestion errors."""

    def __init__(self, message: str, *args, **kwargs):
        """Initialize error with message."""
        self.message = message
        super().__init__(message, *args, **kwargs)


class ParserError(DataIngestionError):
    """Raised when a source adapter cannot produce records at all."""
    pass


class SourceUnavailableError(ParserError):
    """Raised when the vendor source cannot be reached or downloaded."""
    pass


class UnsupportedFormatError(ParserError):
    """Raised when a payload cannot be decoded as a spreadsheet or HTML table."""
    pass


class RulesMissingError(DataIngestionError):
    """Raised when no parsing rules are stored and none could be inferred."""
    pass


class RowParseError(DataIngestionError):
    """Raised when a single row cannot be normalized into a fabric record.

    Row walkers catch this, skip the row and count it.
    """

    def __init__(self, message: str, row_number: int = 0, *args, **kwargs):
        self.row_number = row_number
        super().__init__(message, *args, **kwargs)


class ValidationError(DataIngestionError):
    """Raised when configuration or a staged file fails validation."""
    pass


class DatabaseError(DataIngestionError):
    """Raised when catalog store operations fail."""
    pass
