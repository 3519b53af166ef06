"""Unit tests for rule inference and the rule store."""
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from fabric_ingestion.errors.exceptions import RulesMissingError, ValidationError
from fabric_ingestion.models.parsing_rules import ColumnMappings, ParsingRules
from fabric_ingestion.models.source import SourceAnalysis
from fabric_ingestion.parsers.vendor_profiles import VENDOR_PROFILES, get_vendor_profile
from fabric_ingestion.services.rules import (
    RuleStore,
    find_header_row,
    infer_rules,
    is_header_row,
    propose_column_mappings,
)


SAMPLE = [
    ["Прайс-лист на 01.10.2026", "", ""],
    ["", "", ""],
    ["Коллекция", "Наличие", "Комментарий"],
    ["Mira 014", "есть", ""],
]


class TestHeaderDetection:
    """Test header row detection over sample rows."""

    def test_is_header_row(self):
        assert is_header_row(["Наименование", "ЦВЕТ"])
        assert not is_header_row(["Mira 014", "есть"])

    def test_find_header_row_is_one_based(self):
        assert find_header_row(SAMPLE) == 3

    def test_find_header_row_respects_limit(self):
        assert find_header_row(SAMPLE, limit=2) is None

    def test_no_header(self):
        assert find_header_row([["Mira 014", "есть"]]) is None


class TestProposeColumnMappings:
    """Header keyword matching, one column per role."""

    def test_russian_headers(self):
        mappings = propose_column_mappings(["№", "Коллекция", "Цвет", "Остаток, пог.м", "Цена", "Дата поступления"])
        assert mappings == ColumnMappings(
            collection=1, color=2, meterage=3, price=4, next_arrival_date=5,
        )

    def test_english_headers(self):
        mappings = propose_column_mappings(["Name", "Stock", "Price", "Comment"])
        assert mappings.collection == 0
        assert mappings.in_stock == 1
        assert mappings.price == 2
        assert mappings.comment == 3

    def test_nothing_recognized(self):
        assert propose_column_mappings(["a", "b"]).collection is None


class TestInferRules:
    """Test infer_rules with and without a vendor profile."""

    def test_infers_from_header(self):
        analysis = SourceAnalysis(sample_rows=SAMPLE)
        rules = infer_rules(analysis)
        assert rules.header_row == 3
        assert rules.skip_rows == [1, 2, 3]
        assert rules.column_mappings.collection == 0
        assert rules.column_mappings.in_stock == 1
        assert rules.column_mappings.comment == 2

    def test_uses_detected_header_values(self):
        analysis = SourceAnalysis(
            sample_rows=SAMPLE,
            header_row=3,
            header_values=["Коллекция", "Наличие", "Комментарий"],
        )
        assert infer_rules(analysis).column_mappings.comment == 2

    def test_vendor_defaults_are_kept(self):
        profile = get_vendor_profile("Vektor")
        analysis = SourceAnalysis(sample_rows=[["Артикул", "x"], ["Коллекция", "y"]])
        rules = infer_rules(analysis, profile)
        # Vendor mapping wins over the header scan
        assert rules.column_mappings == profile.default_rules.column_mappings
        assert rules.special_rules.code_color is True
        assert rules.header_row == 1
        assert rules.skip_rows == [1, 2]

    def test_vendor_defaults_are_not_mutated(self):
        profile = get_vendor_profile("Vektor")
        before = profile.default_rules.model_copy(deep=True)
        infer_rules(SourceAnalysis(sample_rows=SAMPLE), profile)
        assert profile.default_rules == before

    def test_missing_collection_raises(self):
        with pytest.raises(RulesMissingError):
            infer_rules(SourceAnalysis(sample_rows=[["1", "2"], ["3", "4"]]))


class TestVendorProfiles:
    """Every registered profile carries a collection mapping."""

    @pytest.mark.parametrize("name", sorted(VENDOR_PROFILES))
    def test_profile_maps_collection(self, name):
        assert VENDOR_PROFILES[name].default_rules.column_mappings.collection is not None

    def test_lookup_strips_whitespace(self):
        assert get_vendor_profile("  Vektor ") is VENDOR_PROFILES["Vektor"]
        assert get_vendor_profile("Unknown Vendor") is None


class TestRuleStore:
    """Test RuleStore load/save/ensure."""

    def _adapter(self, analysis: SourceAnalysis) -> MagicMock:
        adapter = MagicMock()
        adapter.analyze = AsyncMock(return_value=analysis)
        adapter.get_adapter_name.return_value = "excel_url"
        return adapter

    @pytest.mark.asyncio
    async def test_ensure_rules_infers_once_and_persists(self, store):
        supplier_id = uuid4()
        adapter = self._adapter(SourceAnalysis(sample_rows=SAMPLE))
        rule_store = RuleStore(store)

        first = await rule_store.ensure_rules(supplier_id, adapter, "https://x/prices.xlsx")
        second = await rule_store.ensure_rules(supplier_id, adapter, "https://x/prices.xlsx")

        assert first == second
        adapter.analyze.assert_awaited_once_with("https://x/prices.xlsx")
        assert store.rules[supplier_id]["headerRow"] == 3

    @pytest.mark.asyncio
    async def test_stored_rules_are_never_reinferred(self, store):
        supplier_id = uuid4()
        stored = ParsingRules(column_mappings=ColumnMappings(collection=4))
        store.rules[supplier_id] = stored.to_json_dict()
        adapter = self._adapter(SourceAnalysis(sample_rows=SAMPLE))

        rules = await RuleStore(store).ensure_rules(supplier_id, adapter, "source")

        assert rules.column_mappings.collection == 4
        adapter.analyze.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_invalid_stored_rules_raise(self, store):
        supplier_id = uuid4()
        store.rules[supplier_id] = {"specialRules": {"noSuchFlag": True}}
        with pytest.raises(ValidationError):
            await RuleStore(store).load_rules(supplier_id)

    @pytest.mark.asyncio
    async def test_inference_failure_saves_nothing(self, store):
        supplier_id = uuid4()
        adapter = self._adapter(SourceAnalysis(sample_rows=[["1", "2"]]))
        with pytest.raises(RulesMissingError):
            await RuleStore(store).ensure_rules(supplier_id, adapter, "source")
        assert supplier_id not in store.rules
