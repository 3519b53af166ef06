"""Database module.

Importing this package does not create the engine; import
``fabric_ingestion.db.base`` for the engine and session factory.
"""
from fabric_ingestion.db.catalog_store import CatalogStore, FabricRow

__all__ = [
    "CatalogStore",
    "FabricRow",
]
