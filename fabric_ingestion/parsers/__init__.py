"""Source adapter modules for supplier price lists."""
from fabric_ingestion.parsers.base_parser import SourceAdapter
from fabric_ingestion.parsers.parser_registry import (
    register_adapter,
    get_adapter,
    create_adapter_instance,
    list_registered_adapters,
    resolve_adapter,
)
from fabric_ingestion.parsers.html_table_parser import HtmlTableAdapter
from fabric_ingestion.parsers.excel_parser import ExcelUrlAdapter
from fabric_ingestion.parsers.dated_excel_parser import DatedExcelUrlAdapter
from fabric_ingestion.parsers.archive_parser import ArchiveAdapter
from fabric_ingestion.parsers.rendered_link_parser import RenderedLinkAdapter
from fabric_ingestion.parsers.email_excel_parser import EmailExcelAdapter
from fabric_ingestion.parsers.vendor_profiles import (
    DEFAULT_ADAPTER_KINDS,
    VENDOR_PROFILES,
    FetchOptions,
    VendorProfile,
    get_vendor_profile,
)

# Register adapters
register_adapter("html_table", HtmlTableAdapter)
register_adapter("excel_url", ExcelUrlAdapter)
register_adapter("dated_excel_url", DatedExcelUrlAdapter)
register_adapter("archive", ArchiveAdapter)
register_adapter("rendered_link", RenderedLinkAdapter)
register_adapter("email_excel", EmailExcelAdapter)

__all__ = [
    "SourceAdapter",
    "register_adapter",
    "get_adapter",
    "create_adapter_instance",
    "list_registered_adapters",
    "resolve_adapter",
    "HtmlTableAdapter",
    "ExcelUrlAdapter",
    "DatedExcelUrlAdapter",
    "ArchiveAdapter",
    "RenderedLinkAdapter",
    "EmailExcelAdapter",
    "DEFAULT_ADAPTER_KINDS",
    "VENDOR_PROFILES",
    "FetchOptions",
    "VendorProfile",
    "get_vendor_profile",
]
