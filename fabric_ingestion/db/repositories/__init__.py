"""Repository implementations of the catalog store."""
from fabric_ingestion.db.repositories.catalog_repo import SqlCatalogStore

__all__ = ["SqlCatalogStore"]
