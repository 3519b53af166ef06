"""Models exchanged between source adapters and the pipeline."""
from pydantic import BaseModel, Field
from typing import List, Optional

from fabric_ingestion.models.parsed_fabric import ParsedFabricRecord


class DataStructureFingerprint(BaseModel):
    """Lightweight shape signature of a source, used for drift warnings only."""
    row_count: int = Field(default=0, ge=0)
    column_count: int = Field(default=0, ge=0)
    first_row_values: List[str] = Field(default_factory=list)
    sheet_names: Optional[List[str]] = None


class SourceAnalysis(BaseModel):
    """Sample of a source used by rule inference.

    Attributes:
        sample_rows: First rows of the source as strings
        header_row: 1-based row number of the detected header row, if any
        header_values: Cells of the detected header row
        sheet_names: Worksheet names for spreadsheet sources
    """
    sample_rows: List[List[str]] = Field(default_factory=list)
    header_row: Optional[int] = None
    header_values: List[str] = Field(default_factory=list)
    sheet_names: Optional[List[str]] = None


class ParseOutcome(BaseModel):
    """Records produced by one adapter parse plus diagnostics."""
    records: List[ParsedFabricRecord] = Field(default_factory=list)
    fingerprint: DataStructureFingerprint = Field(default_factory=DataStructureFingerprint)
    skipped_rows: int = Field(default=0, ge=0)
    source_name: Optional[str] = None

