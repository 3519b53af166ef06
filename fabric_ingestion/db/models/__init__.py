"""Database models for fabric ingestion."""
from fabric_ingestion.db.models.supplier import Supplier
from fabric_ingestion.db.models.fabric import Fabric
from fabric_ingestion.db.models.parsing_rule import ParsingRule, DataStructure
from fabric_ingestion.db.models.manual_upload import ManualUpload
from fabric_ingestion.db.models.email_attachment import EmailAttachment
from fabric_ingestion.db.models.fabric_category import FabricCategory

__all__ = [
    "Supplier",
    "Fabric",
    "ParsingRule",
    "DataStructure",
    "ManualUpload",
    "EmailAttachment",
    "FabricCategory",
]
