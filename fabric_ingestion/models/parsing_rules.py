"""Pydantic models for per-supplier parsing rules.

Rules are persisted as JSON with camelCase keys::

    {
        "columnMappings": {"collection": 0, "color": 1, "inStock": 2, ...},
        "skipRows": [1, 2],
        "skipPatterns": ["итого"],
        "headerRow": 2,
        "specialRules": {"removeQuotes": true, "separator": "-"}
    }

``specialRules`` is a closed set of named flags. Unknown flags are rejected
so a typo in an operator-edited blob fails loudly instead of silently
switching a heuristic off. The flags compile into an ordered list of tagged
split strategies consumed by the record normalizer.
"""
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel
from typing import Annotated, Any, Dict, List, Literal, Optional, Union


_CAMEL_CONFIG = ConfigDict(
    alias_generator=to_camel,
    populate_by_name=True,
    extra="forbid",
)


class ColumnMappings(BaseModel):
    """Zero-based column index per field role."""

    model_config = _CAMEL_CONFIG

    collection: Optional[int] = Field(default=None, ge=0)
    color: Optional[int] = Field(default=None, ge=0)
    in_stock: Optional[int] = Field(default=None, ge=0)
    meterage: Optional[int] = Field(default=None, ge=0)
    price: Optional[int] = Field(default=None, ge=0)
    next_arrival_date: Optional[int] = Field(default=None, ge=0)
    comment: Optional[int] = Field(default=None, ge=0)

    def max_index(self) -> int:
        """Highest mapped column index, -1 when nothing is mapped."""
        indices = [v for v in self.model_dump().values() if v is not None]
        return max(indices) if indices else -1


# ============================================================================
# Split strategies
# ============================================================================


class PrefixPatternStrategy(BaseModel):
    """Collection is a fixed leading pattern, the remainder is the color."""
    kind: Literal["prefix_pattern"] = "prefix_pattern"
    pattern: str


class SeparatorSplitStrategy(BaseModel):
    """Collection and color are divided by an explicit separator."""
    kind: Literal["separator_split"] = "separator_split"
    separator: str = "-"


class DigitsColorStrategy(BaseModel):
    """Color is the first run of digits, collection is the text without digits."""
    kind: Literal["digits_color"] = "digits_color"


class CodeColorStrategy(BaseModel):
    """Article-code collections such as ``YW-0415 B2 BLACK``."""
    kind: Literal["code_color"] = "code_color"


class FirstTokenStrategy(BaseModel):
    """First whitespace token is the collection, the remainder is the color."""
    kind: Literal["first_token"] = "first_token"
    require_digit: bool = False
    min_tokens: int = Field(default=1, ge=1)


class LettersThenDigitsStrategy(BaseModel):
    """Letters-only prefix is the collection, a digit-led remainder is the color."""
    kind: Literal["letters_then_digits"] = "letters_then_digits"


SplitStrategy = Annotated[
    Union[
        PrefixPatternStrategy,
        SeparatorSplitStrategy,
        DigitsColorStrategy,
        CodeColorStrategy,
        FirstTokenStrategy,
        LettersThenDigitsStrategy,
    ],
    Field(discriminator="kind"),
]


# Flag names written by older rule blobs, translated to the current flags.
_LEGACY_FLAGS: Dict[str, Dict[str, Any]] = {
    "alfa2303Pattern": {"collectionPrefix": r"Alfa\s+2303"},
    "artvisionDashPattern": {"separator": "-"},
    "colorOnlyNumbers": {"digitsColor": True},
    "vektorPattern": {"codeColor": True},
    "nortexPattern": {"firstToken": True, "removeTkanPrefix": True},
    "texGroupPattern": {"firstToken": True, "firstTokenRequiresDigit": True},
    "textilenovaPattern": {"firstToken": True, "firstTokenMinTokens": 2},
    "viptextilPattern": {"firstToken": True, "firstTokenMinTokens": 2},
}


class SpecialRules(BaseModel):
    """Named normalization flags for one supplier.

    Noise flags run before any split strategy. Split flags select which
    strategies are tried, always in the fixed priority order of
    :meth:`strategies`.
    """

    model_config = _CAMEL_CONFIG

    # Noise stripping
    remove_furniture_text: bool = False
    remove_quotes: bool = False
    remove_underscore_backslash: bool = False
    remove_kozh_zam: bool = False
    remove_tkan_prefix: bool = False
    noise_phrases: List[str] = Field(default_factory=list)

    # Split strategies
    collection_prefix: Optional[str] = None
    separator: Optional[str] = None
    digits_color: bool = False
    code_color: bool = False
    first_token: bool = False
    first_token_requires_digit: bool = False
    first_token_min_tokens: int = Field(default=1, ge=1)
    generic_split: bool = True

    # Source layout
    sheet_names: List[str] = Field(default_factory=list)
    stock_marker: Optional[str] = None
    stock_marker_header: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def translate_legacy_flags(cls, data: Any) -> Any:
        """Expand legacy vendor flag names into the named flags they stand for."""
        if not isinstance(data, dict):
            return data
        translated = dict(data)
        for legacy_name, replacement in _LEGACY_FLAGS.items():
            if legacy_name in translated:
                enabled = translated.pop(legacy_name)
                if enabled:
                    for key, value in replacement.items():
                        translated.setdefault(key, value)
        return translated

    @field_validator('separator')
    @classmethod
    def validate_separator(cls, v: Optional[str]) -> Optional[str]:
        """Reject blank separators."""
        if v is not None and not v.strip():
            raise ValueError("separator must not be blank")
        return v

    def strategies(self) -> List[SplitStrategy]:
        """Compile flags into split strategies in fixed priority order."""
        result: List[SplitStrategy] = []
        if self.collection_prefix:
            result.append(PrefixPatternStrategy(pattern=self.collection_prefix))
        if self.separator:
            result.append(SeparatorSplitStrategy(separator=self.separator))
        if self.digits_color:
            result.append(DigitsColorStrategy())
        if self.code_color:
            result.append(CodeColorStrategy())
        if self.first_token:
            result.append(FirstTokenStrategy(
                require_digit=self.first_token_requires_digit,
                min_tokens=self.first_token_min_tokens,
            ))
        if self.generic_split:
            result.append(LettersThenDigitsStrategy())
        return result


class ParsingRules(BaseModel):
    """Column mapping and strategy configuration for one supplier's source."""

    model_config = _CAMEL_CONFIG

    column_mappings: ColumnMappings = Field(default_factory=ColumnMappings)
    skip_rows: List[int] = Field(
        default_factory=list,
        description="1-based row numbers that never hold data"
    )
    skip_patterns: List[str] = Field(
        default_factory=list,
        description="Rows whose joined text contains any of these are skipped"
    )
    header_row: Optional[int] = Field(
        default=None,
        ge=1,
        description="1-based row number of the header row; data starts below it"
    )
    special_rules: SpecialRules = Field(default_factory=SpecialRules)

    @field_validator('skip_rows')
    @classmethod
    def validate_skip_rows(cls, v: List[int]) -> List[int]:
        """Keep skip rows positive, unique and sorted."""
        if any(row < 1 for row in v):
            raise ValueError("skipRows are 1-based row numbers")
        return sorted(set(v))

    def to_json_dict(self) -> Dict[str, Any]:
        """Serialize to the persisted camelCase JSON shape."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    @classmethod
    def from_json_dict(cls, data: Dict[str, Any]) -> "ParsingRules":
        """Load from the persisted camelCase JSON shape."""
        return cls.model_validate(data)
