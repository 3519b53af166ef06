"""Adapter registry for dynamic adapter registration and retrieval."""
from typing import Dict, List, Optional, Tuple, Type

import httpx

from fabric_ingestion.errors.exceptions import ParserError
from fabric_ingestion.models.supplier_profile import SupplierProfile
from fabric_ingestion.parsers.base_parser import SourceAdapter
from fabric_ingestion.parsers.vendor_profiles import (
    DEFAULT_ADAPTER_KINDS,
    VendorProfile,
    get_vendor_profile,
)


# Global registry mapping adapter kind strings to adapter classes
_adapter_registry: Dict[str, Type[SourceAdapter]] = {}


def register_adapter(adapter_kind: str, adapter_class: Type[SourceAdapter]) -> None:
    """Register an adapter class for a given adapter kind.

    Args:
        adapter_kind: Unique identifier for the adapter (e.g., "html_table")
        adapter_class: Adapter class that inherits from SourceAdapter

    Raises:
        ValueError: If adapter_kind is already registered
        TypeError: If adapter_class does not inherit from SourceAdapter
    """
    if not isinstance(adapter_class, type) or not issubclass(adapter_class, SourceAdapter):
        raise TypeError(
            f"Adapter class {getattr(adapter_class, '__name__', adapter_class)} "
            f"must inherit from SourceAdapter"
        )

    if adapter_kind in _adapter_registry:
        raise ValueError(
            f"Adapter kind '{adapter_kind}' is already registered. "
            f"Existing: {_adapter_registry[adapter_kind].__name__}"
        )

    _adapter_registry[adapter_kind] = adapter_class


def get_adapter(adapter_kind: str) -> Optional[Type[SourceAdapter]]:
    """Get adapter class for a given adapter kind, or None."""
    return _adapter_registry.get(adapter_kind)


def create_adapter_instance(adapter_kind: str, **kwargs) -> SourceAdapter:
    """Create an instance of an adapter for a given adapter kind.

    Raises:
        ParserError: If adapter kind is not registered or construction fails
    """
    adapter_class = get_adapter(adapter_kind)
    if adapter_class is None:
        available = ", ".join(_adapter_registry.keys()) if _adapter_registry else "none"
        raise ParserError(
            f"Adapter kind '{adapter_kind}' is not registered. "
            f"Available adapters: {available}"
        )

    try:
        return adapter_class(**kwargs)
    except Exception as e:
        raise ParserError(
            f"Failed to create adapter instance for '{adapter_kind}': {e}"
        ) from e


def list_registered_adapters() -> List[str]:
    """List all registered adapter kinds."""
    return list(_adapter_registry.keys())


def resolve_adapter(
    supplier: SupplierProfile,
    http_client: Optional[httpx.AsyncClient] = None,
) -> Tuple[SourceAdapter, Optional[VendorProfile]]:
    """Pick the adapter for a supplier.

    A vendor profile registered under the supplier's name wins; otherwise
    the generic adapter for the supplier's parsing method is used.

    Returns:
        Tuple of (adapter instance, vendor profile or None)

    Raises:
        ParserError: If no adapter is registered for the resolved kind
    """
    profile = get_vendor_profile(supplier.name)
    adapter_kind = profile.adapter_kind if profile else DEFAULT_ADAPTER_KINDS[supplier.parsing_method]
    adapter = create_adapter_instance(adapter_kind, profile=profile, http_client=http_client)
    return adapter, profile
