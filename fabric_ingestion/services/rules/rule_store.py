"""Per-supplier rule persistence with one-time inference fallback."""
from typing import TYPE_CHECKING, Optional
from uuid import UUID

import structlog
from pydantic import ValidationError as PydanticValidationError

from fabric_ingestion.db.catalog_store import CatalogStore
from fabric_ingestion.errors.exceptions import ValidationError
from fabric_ingestion.models.parsing_rules import ParsingRules
from fabric_ingestion.services.rules.rule_inference import infer_rules

if TYPE_CHECKING:
    from fabric_ingestion.parsers.base_parser import SourceAdapter
    from fabric_ingestion.parsers.vendor_profiles import VendorProfile

logger = structlog.get_logger(__name__)


class RuleStore:
    """Loads, saves and (once) infers a supplier's parsing rules."""

    def __init__(self, store: CatalogStore, sample_limit: int = 10) -> None:
        self._store = store
        self._sample_limit = sample_limit

    async def load_rules(self, supplier_id: UUID) -> Optional[ParsingRules]:
        """Return stored rules, or None when the supplier has none.

        Raises:
            ValidationError: If the stored blob does not match the rules schema
        """
        data = await self._store.load_rules(supplier_id)
        if not data:
            return None
        try:
            return ParsingRules.from_json_dict(data)
        except PydanticValidationError as e:
            logger.error("stored_rules_invalid", supplier_id=str(supplier_id), error=str(e))
            raise ValidationError(f"Stored parsing rules are invalid: {e}") from e

    async def save_rules(self, supplier_id: UUID, rules: ParsingRules) -> None:
        """Persist rules, replacing whatever was stored."""
        await self._store.save_rules(supplier_id, rules.to_json_dict())
        logger.info("rules_saved", supplier_id=str(supplier_id))

    async def ensure_rules(
        self,
        supplier_id: UUID,
        adapter: "SourceAdapter",
        source: str,
        vendor_profile: Optional["VendorProfile"] = None,
    ) -> ParsingRules:
        """Return stored rules, inferring and persisting them on first use.

        Raises:
            RulesMissingError: If inference cannot produce usable rules
            SourceUnavailableError: If the sample cannot be fetched
        """
        rules = await self.load_rules(supplier_id)
        if rules is not None:
            return rules

        log = logger.bind(supplier_id=str(supplier_id), stage="rule_inference")
        log.info("rules_missing_running_inference", adapter=adapter.get_adapter_name())
        analysis = await adapter.analyze(source)
        rules = infer_rules(analysis, vendor_profile, self._sample_limit)
        await self.save_rules(supplier_id, rules)
        return rules
