"""Vendor profile table: supplier name -> adapter kind, fetch options, default rules.

Adding a vendor is a data change here, not a new parser class. Suppliers
missing from the table fall back to a generic adapter picked by their
parsing method and get rules from header inference alone.
"""
from pydantic import BaseModel, Field
from typing import Dict, List, Optional

from fabric_ingestion.models.parsing_rules import ColumnMappings, ParsingRules, SpecialRules
from fabric_ingestion.models.supplier_profile import ParsingMethod


class FetchOptions(BaseModel):
    """Vendor-specific fetch settings consumed by source adapters.

    Attributes:
        url_date_pattern: Regex matching the date part of a dated URL
        url_date_replacement: strftime template substituted for url_date_pattern
        window_days: Days tried backward for dated URLs (None uses settings)
        link_keywords: Anchor texts that lead to the real download
        render_page: Render the page in a headless browser before link lookup
    """
    url_date_pattern: Optional[str] = None
    url_date_replacement: Optional[str] = None
    window_days: Optional[int] = Field(default=None, ge=0)
    link_keywords: List[str] = Field(default_factory=list)
    render_page: bool = False


class VendorProfile(BaseModel):
    """How one known vendor is fetched and parsed by default."""
    adapter_kind: str
    default_rules: ParsingRules = Field(default_factory=ParsingRules)
    fetch: FetchOptions = Field(default_factory=FetchOptions)


# Generic adapter per parsing method for suppliers without a profile
DEFAULT_ADAPTER_KINDS: Dict[ParsingMethod, str] = {
    ParsingMethod.HTML: "html_table",
    ParsingMethod.EXCEL: "excel_url",
    ParsingMethod.EMAIL: "email_excel",
}


def _rules(
    header_row: Optional[int] = None,
    skip_rows: Optional[List[int]] = None,
    skip_patterns: Optional[List[str]] = None,
    special: Optional[SpecialRules] = None,
    **columns: int,
) -> ParsingRules:
    if skip_rows is None:
        skip_rows = list(range(1, header_row + 1)) if header_row else []
    return ParsingRules(
        column_mappings=ColumnMappings(**columns),
        skip_rows=skip_rows,
        skip_patterns=skip_patterns or [],
        header_row=header_row,
        special_rules=special or SpecialRules(),
    )


VENDOR_PROFILES: Dict[str, VendorProfile] = {
    "Artvision": VendorProfile(
        adapter_kind="html_table",
        default_rules=_rules(
            header_row=1,
            special=SpecialRules(separator="-"),
            collection=0, in_stock=1, meterage=2, next_arrival_date=3,
        ),
    ),
    "Союз-М": VendorProfile(
        adapter_kind="excel_url",
        default_rules=_rules(
            header_row=1,
            collection=1, in_stock=2, next_arrival_date=3, comment=4,
        ),
    ),
    "Домиарт": VendorProfile(
        adapter_kind="excel_url",
        default_rules=_rules(
            header_row=1,
            special=SpecialRules(collection_prefix=r"Alfa\s+2303"),
            collection=0, in_stock=1, next_arrival_date=2,
        ),
    ),
    "Артекс": VendorProfile(
        adapter_kind="dated_excel_url",
        fetch=FetchOptions(
            url_date_pattern=r"\d{2}\.\d{2}\.\d{4}-\d+\.xlsx",
            url_date_replacement="%d.%m.%Y-2.xlsx",
        ),
        default_rules=_rules(
            header_row=1,
            special=SpecialRules(remove_furniture_text=True),
            collection=0, in_stock=1, next_arrival_date=2,
        ),
    ),
    "Эгида": VendorProfile(
        adapter_kind="dated_excel_url",
        fetch=FetchOptions(
            url_date_pattern=r"\d{2}\.\d{2}\.\d{2}(?=_)",
            url_date_replacement="%d.%m.%y",
        ),
        default_rules=_rules(
            header_row=1,
            special=SpecialRules(remove_furniture_text=True, remove_quotes=True),
            in_stock=0, collection=1, comment=2, meterage=3,
        ),
    ),
    "TextileData": VendorProfile(
        adapter_kind="html_table",
        default_rules=_rules(
            header_row=1,
            special=SpecialRules(remove_underscore_backslash=True, digits_color=True),
            collection=0, meterage=1, comment=2, next_arrival_date=3,
        ),
    ),
    "NoFrames": VendorProfile(
        adapter_kind="excel_url",
        default_rules=_rules(
            header_row=6,
            special=SpecialRules(remove_furniture_text=True, remove_quotes=True),
            collection=1, in_stock=3, next_arrival_date=4,
        ),
    ),
    "Tex.Group": VendorProfile(
        adapter_kind="excel_url",
        default_rules=_rules(
            header_row=1,
            special=SpecialRules(first_token=True, first_token_requires_digit=True),
            collection=1, in_stock=3,
        ),
    ),
    "Vektor": VendorProfile(
        adapter_kind="excel_url",
        default_rules=_rules(
            header_row=1,
            special=SpecialRules(code_color=True),
            collection=0, in_stock=5,
        ),
    ),
    "TextileNova": VendorProfile(
        adapter_kind="rendered_link",
        fetch=FetchOptions(
            link_keywords=["получить остатки", "остатки"],
            render_page=True,
        ),
        default_rules=_rules(
            header_row=1,
            special=SpecialRules(first_token=True, first_token_min_tokens=2),
            collection=0, in_stock=1, next_arrival_date=2,
        ),
    ),
    "Viptextil": VendorProfile(
        adapter_kind="html_table",
        default_rules=_rules(
            special=SpecialRules(first_token=True, first_token_min_tokens=2),
            collection=0, in_stock=1,
        ),
    ),
    "Artefact": VendorProfile(
        adapter_kind="rendered_link",
        fetch=FetchOptions(link_keywords=["остатки", "скачать"]),
        default_rules=_rules(
            header_row=1,
            special=SpecialRules(remove_furniture_text=True),
            collection=2, color=3, in_stock=5,
        ),
    ),
    # Arrives as a zip attachment; the staged-file adapter unpacks it
    "Аметист": VendorProfile(
        adapter_kind="email_excel",
        default_rules=_rules(
            header_row=1,
            collection=2, color=4, meterage=6, next_arrival_date=9,
        ),
    ),
    "Нортекс": VendorProfile(
        adapter_kind="email_excel",
        default_rules=_rules(
            header_row=10,
            skip_patterns=["пог. м", "ед.изм.", "отчет создан"],
            special=SpecialRules(
                first_token=True,
                remove_tkan_prefix=True,
                stock_marker="V",
                stock_marker_header="пог.м",
            ),
            collection=2,
        ),
    ),
}
# Same price list, second brand name
VENDOR_PROFILES["Fancy Fabric"] = VENDOR_PROFILES["Tex.Group"]


def get_vendor_profile(supplier_name: str) -> Optional[VendorProfile]:
    """Return the vendor profile for a supplier name, if one is registered."""
    return VENDOR_PROFILES.get(supplier_name.strip())
