"""Tolerant parsers for availability, quantity, price and date cells.

Every parser here accepts whatever a spreadsheet or HTML cell produced
(str, int, float, datetime, None) and returns a canonical value or None.
None of them raise on malformed input.
"""
import math
import re
from datetime import date, datetime, timedelta
from typing import Any, Final, Optional


# =============================================================================
# Availability
# =============================================================================

TRUE_TOKENS: Final[frozenset] = frozenset({
    "есть", "да", "yes", "true", "+", "много", "в наличии", "v",
})
FALSE_TOKENS: Final[frozenset] = frozenset({
    "нет", "no", "false", "-", "мало", "нет в наличии",
})


def parse_boolean(value: Any) -> Optional[bool]:
    """Map an availability cell to True/False, or None when unrecognized."""
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if not text:
        return None
    if text in TRUE_TOKENS:
        return True
    if text in FALSE_TOKENS:
        return False
    return None


# =============================================================================
# Quantities
# =============================================================================

_EMPTY_TOKENS: Final[frozenset] = frozenset({"", "-", "нет", "—"})
_COMPARISON_CHARS: Final[str] = "<>≤≥ "
_DIGIT_GROUP_SPACE = re.compile(r"(?<=\d)\s+(?=\d{3}(?!\d))")
_DECIMAL = re.compile(r"(\d+)[,.](\d+)")
_INTEGER = re.compile(r"\d+")


def _finite(value: float) -> Optional[float]:
    if math.isnan(value) or math.isinf(value):
        return None
    return value


def parse_number(value: Any) -> Optional[float]:
    """Parse a quantity such as ``"85,6 м"``, ``">100"`` or ``"1 500"``.

    Comparison operators and unit suffixes are dropped. A decimal match
    (comma or dot separator) is preferred over the first bare integer.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return _finite(float(value))

    text = str(value).strip()
    if text.lower() in _EMPTY_TOKENS:
        return None
    text = text.strip(_COMPARISON_CHARS)
    text = _DIGIT_GROUP_SPACE.sub("", text)

    decimal_match = _DECIMAL.search(text)
    if decimal_match:
        return float(f"{decimal_match.group(1)}.{decimal_match.group(2)}")

    integer_match = _INTEGER.search(text)
    if integer_match:
        return float(integer_match.group(0))
    return None


# =============================================================================
# Prices
# =============================================================================

_CURRENCY_NOISE = re.compile(r"[^\d.,\s]")


def parse_price(value: Any) -> Optional[float]:
    """Parse a price in any of the common thousands/decimal formats.

    Examples:
        "3.171,00"  -> 3171.0
        "3 171,00р." -> 3171.0
        "3,171.00"  -> 3171.0
        "1000 руб"  -> 1000.0

    Returns None for empty, unparseable or non-positive prices.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        result = _finite(float(value))
        return result if result is not None and result > 0 else None

    text = str(value).strip()
    if not text or text == "-":
        return None
    text = _CURRENCY_NOISE.sub("", text).strip(" .,")

    has_comma = "," in text
    has_dot = "." in text
    if has_comma and has_dot:
        if text.rfind(",") > text.rfind("."):
            text = text.replace(".", "").replace(",", ".")
        else:
            text = text.replace(",", "")
    elif has_comma:
        text = text.replace(",", ".")
    text = re.sub(r"\s+", "", text)

    # Several dots left means dots were thousands separators
    if text.count(".") > 1:
        text = text.replace(".", "")

    try:
        result = float(text)
    except ValueError:
        return None
    if math.isnan(result) or result <= 0:
        return None
    return result


def calculate_price_per_meter(
    price: Optional[float],
    meterage: Optional[float],
) -> Optional[float]:
    """Price divided by meterage when both are positive."""
    if not price or not meterage or price <= 0 or meterage <= 0:
        return None
    return price / meterage


# =============================================================================
# Dates
# =============================================================================

MIN_YEAR: Final[int] = 1900
MAX_YEAR: Final[int] = 2100
EXCEL_EPOCH: Final[date] = date(1899, 12, 30)

# found anywhere in the cell, e.g. "ожидается 15.03.2025"
_DMY_DOT = re.compile(r"(?<!\d)(\d{1,2})\.(\d{1,2})\.(\d{4})(?!\d)")
_DMY_SLASH = re.compile(r"(?<!\d)(\d{1,2})/(\d{1,2})/(\d{4})(?!\d)")
_YMD_DASH = re.compile(r"(?<!\d)(\d{4})-(\d{1,2})-(\d{1,2})(?!\d)")


def validate_date(value: Optional[date]) -> Optional[date]:
    """Return the date when its year is within [1900, 2100], else None."""
    if value is None:
        return None
    if isinstance(value, datetime):
        value = value.date()
    if value.year < MIN_YEAR or value.year > MAX_YEAR:
        return None
    return value


def _safe_date(year: int, month: int, day: int) -> Optional[date]:
    try:
        return validate_date(date(year, month, day))
    except ValueError:
        return None


def parse_date(value: Any) -> Optional[date]:
    """Parse an arrival date cell.

    Accepts date/datetime objects, Excel serial day numbers, ISO strings
    and the DD.MM.YYYY, DD/MM/YYYY and YYYY-MM-DD forms. Years outside
    [1900, 2100] yield None.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return validate_date(value.date())
    if isinstance(value, date):
        return validate_date(value)
    if isinstance(value, (int, float)):
        if math.isnan(value) or value <= 0:
            return None
        try:
            return validate_date(EXCEL_EPOCH + timedelta(days=int(value)))
        except OverflowError:
            return None

    text = str(value).strip()
    if not text or text.lower() in _EMPTY_TOKENS:
        return None

    try:
        return validate_date(datetime.fromisoformat(text).date())
    except ValueError:
        pass

    match = _DMY_DOT.search(text) or _DMY_SLASH.search(text)
    if match:
        day, month, year = (int(part) for part in match.groups())
        return _safe_date(year, month, day)

    match = _YMD_DASH.search(text)
    if match:
        year, month, day = (int(part) for part in match.groups())
        return _safe_date(year, month, day)
    return None


# =============================================================================
# Low stock annotation
# =============================================================================

LOW_STOCK_THRESHOLD: Final[float] = 10
LOW_STOCK_COMMENT: Final[str] = "ВНИМАНИЕ, МАЛО!"


def apply_low_stock_comment(
    meterage: Optional[float],
    comment: Optional[str],
) -> Optional[str]:
    """Prepend the low-stock annotation for positive quantities below the threshold."""
    if meterage is None or meterage <= 0 or meterage >= LOW_STOCK_THRESHOLD:
        return comment
    if not comment:
        return LOW_STOCK_COMMENT
    if LOW_STOCK_COMMENT in comment:
        return comment
    return f"{LOW_STOCK_COMMENT} {comment}"
