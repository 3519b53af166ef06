"""Pydantic validation models."""

from fabric_ingestion.models.parsed_fabric import (
    ParsedFabricRecord,
    fabric_key,
    normalize_key_part,
)
from fabric_ingestion.models.parsing_rules import (
    ColumnMappings,
    SpecialRules,
    ParsingRules,
    SplitStrategy,
    PrefixPatternStrategy,
    SeparatorSplitStrategy,
    DigitsColorStrategy,
    CodeColorStrategy,
    FirstTokenStrategy,
    LettersThenDigitsStrategy,
)
from fabric_ingestion.models.supplier_profile import (
    ParsingMethod,
    SupplierStatus,
    EmailConfig,
    SupplierProfile,
)
from fabric_ingestion.models.source import (
    DataStructureFingerprint,
    SourceAnalysis,
    ParseOutcome,
)
from fabric_ingestion.models.catalog import (
    LockType,
    ManualOverrideLock,
    CategoryBucket,
    FabricValues,
    StoredFabric,
    EmailAttachmentRecord,
    ReconciliationResult,
    RunResult,
)

__all__ = [
    # Records
    "ParsedFabricRecord",
    "fabric_key",
    "normalize_key_part",
    # Rules
    "ColumnMappings",
    "SpecialRules",
    "ParsingRules",
    "SplitStrategy",
    "PrefixPatternStrategy",
    "SeparatorSplitStrategy",
    "DigitsColorStrategy",
    "CodeColorStrategy",
    "FirstTokenStrategy",
    "LettersThenDigitsStrategy",
    # Suppliers
    "ParsingMethod",
    "SupplierStatus",
    "EmailConfig",
    "SupplierProfile",
    # Sources
    "DataStructureFingerprint",
    "SourceAnalysis",
    "ParseOutcome",
    # Catalog
    "LockType",
    "ManualOverrideLock",
    "CategoryBucket",
    "FabricValues",
    "StoredFabric",
    "EmailAttachmentRecord",
    "ReconciliationResult",
    "RunResult",
]
