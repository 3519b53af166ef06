"""Orchestration of supplier runs.

``run_supplier`` is the error boundary of one run: whatever fails inside it
ends up as ``status=error`` with a message on the supplier and a failed
RunResult, never as an exception to the caller. ``run_all_suppliers`` fans
out one run per supplier and collects every result.
"""
import asyncio
from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID

import httpx
import structlog

from fabric_ingestion.config import settings
from fabric_ingestion.db.catalog_store import CatalogStore
from fabric_ingestion.errors.exceptions import (
    DatabaseError,
    DataIngestionError,
    SourceUnavailableError,
)
from fabric_ingestion.models.catalog import EmailAttachmentRecord, RunResult
from fabric_ingestion.models.supplier_profile import (
    ParsingMethod,
    SupplierProfile,
    SupplierStatus,
)
from fabric_ingestion.parsers import resolve_adapter
from fabric_ingestion.parsers.base_parser import SourceAdapter
from fabric_ingestion.services.email.imap_client import MailboxClient
from fabric_ingestion.services.email.selector import EmailSourceSelector
from fabric_ingestion.services.reconciliation.engine import ReconciliationEngine
from fabric_ingestion.services.rules.rule_store import RuleStore
from fabric_ingestion.services.snapshot import export_snapshot
from fabric_ingestion.services.structure_detector import StructureDetector

logger = structlog.get_logger(__name__)


class SupplierRunner:
    """Runs the ingestion pipeline for one or all suppliers.

    Pipeline per supplier:
        1. Resolve adapter and vendor profile from the registry
        2. Email suppliers: select the attachment to parse
        3. Load rules (inferring them once when none are stored)
        4. Parse the source
        5. Compare and store the structure fingerprint
        6. Reconcile records with the catalog
        7. Mark the email attachment processed, export a snapshot
    """

    def __init__(
        self,
        store: CatalogStore,
        http_client: Optional[httpx.AsyncClient] = None,
        mailbox: Optional[MailboxClient] = None,
        engine: Optional[ReconciliationEngine] = None,
        export_snapshots: Optional[bool] = None,
    ) -> None:
        self._store = store
        self._http_client = http_client
        self._rule_store = RuleStore(store, sample_limit=settings.rule_sample_rows)
        self._detector = StructureDetector(store)
        self._engine = engine or ReconciliationEngine(store)
        self._selector = EmailSourceSelector(store, mailbox=mailbox)
        self._export_snapshots = (
            settings.export_snapshots if export_snapshots is None else export_snapshots
        )

    async def run_supplier(self, supplier_id: UUID) -> RunResult:
        """Run one supplier end to end; failures become an error status."""
        supplier = await self._store.get_supplier(supplier_id)
        if supplier is None:
            logger.warning("supplier_not_found", supplier_id=str(supplier_id))
            return RunResult.failure(supplier_id, None, "Supplier not found")

        log = logger.bind(supplier_id=str(supplier.id), supplier_name=supplier.name)
        log.info("supplier_run_started", parsing_method=supplier.parsing_method.value)
        try:
            return await self._run(supplier)
        except DataIngestionError as e:
            message = e.message
            log.error("supplier_run_failed", error_type=type(e).__name__, error=message)
        except Exception as e:
            message = f"Unexpected error: {e}"
            log.exception("supplier_run_crashed", error_type=type(e).__name__, error=str(e))

        await self._mark_error(supplier, message)
        return RunResult.failure(supplier.id, supplier.name, message)

    async def run_all_suppliers(
        self,
        parsing_method: Optional[ParsingMethod] = None,
    ) -> List[RunResult]:
        """Run every supplier (optionally one parsing method) concurrently."""
        suppliers = await self._store.list_suppliers()
        if parsing_method is not None:
            suppliers = [s for s in suppliers if s.parsing_method == parsing_method]
        logger.info("run_all_started", supplier_count=len(suppliers))

        outcomes = await asyncio.gather(
            *(self.run_supplier(supplier.id) for supplier in suppliers),
            return_exceptions=True,
        )

        results: List[RunResult] = []
        for supplier, outcome in zip(suppliers, outcomes):
            if isinstance(outcome, BaseException):
                logger.error(
                    "supplier_run_escaped",
                    supplier_id=str(supplier.id),
                    error_type=type(outcome).__name__,
                    error=str(outcome),
                )
                results.append(RunResult.failure(supplier.id, supplier.name, str(outcome)))
            else:
                results.append(outcome)

        logger.info(
            "run_all_completed",
            supplier_count=len(results),
            succeeded=sum(1 for r in results if r.success),
            failed=sum(1 for r in results if not r.success),
        )
        return results

    # ========================================================================
    # Pipeline
    # ========================================================================

    async def _run(self, supplier: SupplierProfile) -> RunResult:
        log = logger.bind(supplier_id=str(supplier.id), supplier_name=supplier.name)
        adapter, profile = resolve_adapter(supplier, http_client=self._http_client)
        log.info("adapter_resolved", adapter=adapter.get_adapter_name(), has_profile=profile is not None)

        attachment: Optional[EmailAttachmentRecord] = None
        if supplier.parsing_method == ParsingMethod.EMAIL:
            attachment = await self._pick_attachment(supplier, adapter)
            if attachment is None:
                log.info("email_no_attachment", stage="email_selection")
                return RunResult(supplier_id=supplier.id, supplier_name=supplier.name, success=True)
            source = attachment.file_path
        else:
            source = supplier.parsing_url
            if not source:
                raise SourceUnavailableError("Supplier has no parsing URL")

        rules = await self._rule_store.ensure_rules(supplier.id, adapter, source, profile)

        outcome = await adapter.parse(source, rules)
        log.info(
            "source_parsed",
            stage="parse",
            records=len(outcome.records),
            skipped_rows=outcome.skipped_rows,
        )

        try:
            structure_changed = await self._detector.check_and_save(supplier.id, outcome.fingerprint)
        except DatabaseError as e:
            # the fingerprint is informational, the catalog write goes on
            log.warning("structure_check_failed", stage="structure", error=e.message)
            structure_changed = False

        result = await self._engine.reconcile(supplier.id, outcome.records)

        if attachment is not None and attachment.id is not None:
            await self._store.mark_attachment_processed(attachment.id, datetime.now(timezone.utc))

        if self._export_snapshots:
            await export_snapshot(supplier.id, outcome.records)

        log.info(
            "supplier_run_completed",
            created=result.created,
            updated=result.updated,
            skipped_excluded=result.skipped_excluded,
            skipped_unchanged=result.skipped_unchanged,
            failed=result.failed,
            gated=result.gated,
            structure_changed=structure_changed,
        )
        return RunResult.from_reconciliation(supplier.id, supplier.name, result, structure_changed)

    async def _pick_attachment(
        self,
        supplier: SupplierProfile,
        adapter: SourceAdapter,
    ) -> Optional[EmailAttachmentRecord]:
        """Newest valid attachment from the mailbox, else the latest stored one."""
        selected = await self._selector.select(supplier, adapter)
        if selected is not None:
            return selected
        include_processed = bool(supplier.email_config and supplier.email_config.use_any_latest_attachment)
        fallback = await self._store.latest_email_attachment(supplier.id, include_processed=include_processed)
        if fallback is not None:
            logger.info(
                "email_attachment_fallback",
                supplier_id=str(supplier.id),
                filename=fallback.filename,
                processed=fallback.processed,
            )
        return fallback

    async def _mark_error(self, supplier: SupplierProfile, message: str) -> None:
        try:
            await self._store.update_supplier_status(
                supplier.id,
                SupplierStatus.ERROR,
                error_message=message,
            )
        except DatabaseError as e:
            logger.error(
                "supplier_status_update_failed",
                supplier_id=str(supplier.id),
                error=e.message,
            )
