"""Split a combined "collection + color" cell into its two parts.

Suppliers rarely give collection and color in separate columns. A cell
such as ``"Мебельная ткань Mira 014 blue"`` is cleaned of noise first,
then the supplier's split strategies are tried in fixed priority order.
The first strategy that matches wins; if none does, the whole text
becomes the collection and the color is empty.
"""
import re
from typing import Callable, Dict, Final, List, Optional, Tuple

from fabric_ingestion.models.parsing_rules import (
    CodeColorStrategy,
    FirstTokenStrategy,
    PrefixPatternStrategy,
    SeparatorSplitStrategy,
    SpecialRules,
    SplitStrategy,
)

CollectionColor = Tuple[str, str]

_FURNITURE_TEXT = re.compile(r"мебельная\s+ткань|ткань\s+мебельная", re.IGNORECASE)
_KOZH_ZAM = re.compile(r"КОЖ\.?\s*ЗАМ\.?(\s+АВТО)?", re.IGNORECASE)
_TKAN_PREFIX = re.compile(r"^ткань\s+", re.IGNORECASE)
_QUOTES: Final[str] = "\"'«»„“”‘’`"
_UNDERSCORE_BACKSLASH = re.compile(r"[_\\]+")
_WHITESPACE = re.compile(r"\s+")

_LETTERS_THEN_DIGITS = re.compile(r"^([A-Za-zА-Яа-яЁё\s]+?)\s+(\d.*)$")
_CODE_WITH_DASH = re.compile(r"^([A-Z0-9-]+)-([A-Z0-9]+)\s+(.+)$", re.IGNORECASE)
_CODE_THEN_COLOR_CODE = re.compile(r"^([A-Z0-9-]+)\s+([A-Z]{1,3}\d+[A-Z0-9]*)\s+(.+)$", re.IGNORECASE)
_NAME_THEN_NUMBER = re.compile(r"^([A-Za-zА-Яа-яЁё0-9]+)\s+(\d+.*)$")
_ALNUM_THEN_DIGITS = re.compile(r"^([A-Za-zА-Яа-яЁё0-9-]+?)\s*(\d+.*)$")
_HAS_LETTER = re.compile(r"[A-Za-zА-Яа-яЁё]")
_HAS_DIGIT = re.compile(r"\d")


def _squash(text: str) -> str:
    return _WHITESPACE.sub(" ", text).strip()


def strip_noise(text: str, rules: SpecialRules) -> str:
    """Remove configured boilerplate phrases and quote characters."""
    cleaned = text
    if rules.remove_furniture_text:
        cleaned = _FURNITURE_TEXT.sub(" ", cleaned)
    if rules.remove_kozh_zam:
        cleaned = _KOZH_ZAM.sub(" ", cleaned)
    for phrase in rules.noise_phrases:
        cleaned = re.sub(re.escape(phrase), " ", cleaned, flags=re.IGNORECASE)
    if rules.remove_quotes:
        cleaned = cleaned.translate({ord(ch): None for ch in _QUOTES})
    if rules.remove_underscore_backslash:
        cleaned = _UNDERSCORE_BACKSLASH.sub(" ", cleaned)
    cleaned = _squash(cleaned)
    if rules.remove_tkan_prefix:
        cleaned = _TKAN_PREFIX.sub("", cleaned)
    return cleaned


# ============================================================================
# Strategies
# ============================================================================


def _split_prefix(text: str, strategy: PrefixPatternStrategy) -> Optional[CollectionColor]:
    match = re.match(rf"^({strategy.pattern})\s+(.+)$", text, re.IGNORECASE)
    if match:
        return _squash(match.group(1)), match.group(2).strip()
    return None


def _split_separator(text: str, strategy: SeparatorSplitStrategy) -> Optional[CollectionColor]:
    match = re.match(rf"^(.+?)\s*{re.escape(strategy.separator)}\s*(.+)$", text)
    if match:
        collection, color = match.group(1).strip(), match.group(2).strip()
        if collection and color:
            return collection, color
    return None


def _split_digits_color(text: str, strategy: SplitStrategy) -> Optional[CollectionColor]:
    digits = re.search(r"\d+", text)
    if not digits:
        return None
    collection = _squash(re.sub(r"\d+", " ", text))
    if collection:
        return collection, digits.group(0)
    return None


def _split_code_color(text: str, strategy: CodeColorStrategy) -> Optional[CollectionColor]:
    match = _CODE_WITH_DASH.match(text)
    if match:
        return match.group(1), f"{match.group(2)} {match.group(3)}".strip()
    match = _CODE_THEN_COLOR_CODE.match(text)
    if match:
        return match.group(1), f"{match.group(2)} {match.group(3)}".strip()
    match = _NAME_THEN_NUMBER.match(text)
    if match:
        return match.group(1), match.group(2).strip()
    if _HAS_LETTER.search(text) and _HAS_DIGIT.search(text):
        match = _ALNUM_THEN_DIGITS.match(text)
        if match:
            return match.group(1).strip(), match.group(2).strip()
    return None


def _split_first_token(text: str, strategy: FirstTokenStrategy) -> Optional[CollectionColor]:
    parts = text.split()
    if len(parts) < strategy.min_tokens or not parts:
        return None
    collection, color = parts[0], " ".join(parts[1:])
    if strategy.require_digit and not _HAS_DIGIT.search(color):
        return None
    return collection, color


def _split_letters_then_digits(text: str, strategy: SplitStrategy) -> Optional[CollectionColor]:
    match = _LETTERS_THEN_DIGITS.match(text)
    if match:
        return _squash(match.group(1)), match.group(2).strip()
    return None


_STRATEGY_HANDLERS: Dict[str, Callable[[str, SplitStrategy], Optional[CollectionColor]]] = {
    "prefix_pattern": _split_prefix,
    "separator_split": _split_separator,
    "digits_color": _split_digits_color,
    "code_color": _split_code_color,
    "first_token": _split_first_token,
    "letters_then_digits": _split_letters_then_digits,
}


def split_with_strategies(text: str, strategies: List[SplitStrategy]) -> CollectionColor:
    """Apply strategies in order, returning the first match or the fallback."""
    for strategy in strategies:
        result = _STRATEGY_HANDLERS[strategy.kind](text, strategy)
        if result is not None:
            return result
    return text, ""


def parse_collection_and_color(
    text: Optional[str],
    special_rules: Optional[SpecialRules] = None,
) -> CollectionColor:
    """Split one cell into ``(collection, color)``.

    Args:
        text: Raw cell text
        special_rules: Supplier normalization flags (defaults: generic split only)

    Returns:
        Tuple of collection and color; color is '' when nothing matched
    """
    rules = special_rules or SpecialRules()
    cleaned = strip_noise(text or "", rules)
    if not cleaned:
        return "", ""
    return split_with_strategies(cleaned, rules.strategies())
