"""
Supplier Ingestion Tasks

arq entry points for supplier runs. The worker context carries the shared
``SupplierRunner`` (built in ``on_startup``); tasks return plain dicts so
results stay JSON-friendly in Redis.
"""

from typing import Any, Dict, List, Optional
from uuid import UUID

import structlog

from fabric_ingestion.db.catalog_store import CatalogStore
from fabric_ingestion.models.catalog import LockType, RunResult
from fabric_ingestion.models.supplier_profile import ParsingMethod
from fabric_ingestion.services.exclusions import set_exclusion
from fabric_ingestion.services.manual_upload import apply_manual_upload
from fabric_ingestion.services.supplier_runner import SupplierRunner

logger = structlog.get_logger(__name__)


# =============================================================================
# Helper Functions
# =============================================================================


def _runner(ctx: Dict[str, Any]) -> SupplierRunner:
    runner = ctx.get("runner")
    if runner is None:
        raise RuntimeError("Worker context has no supplier runner; on_startup did not run")
    return runner


def _store(ctx: Dict[str, Any]) -> CatalogStore:
    store = ctx.get("store")
    if store is None:
        raise RuntimeError("Worker context has no catalog store; on_startup did not run")
    return store


def _summarize(results: List[RunResult]) -> Dict[str, Any]:
    return {
        "total": len(results),
        "succeeded": sum(1 for r in results if r.success),
        "failed": sum(1 for r in results if not r.success),
        "results": [r.model_dump(mode="json") for r in results],
    }


# =============================================================================
# Tasks
# =============================================================================


async def run_supplier_task(ctx: Dict[str, Any], supplier_id: str) -> Dict[str, Any]:
    """Run one supplier; the runner turns failures into an error status."""
    log = logger.bind(job_id=ctx.get("job_id"), supplier_id=supplier_id)
    log.info("run_supplier_task_started")
    result = await _runner(ctx).run_supplier(UUID(supplier_id))
    log.info("run_supplier_task_completed", success=result.success)
    return result.model_dump(mode="json")


async def run_all_suppliers_task(ctx: Dict[str, Any]) -> Dict[str, Any]:
    """Run every supplier concurrently."""
    logger.info("run_all_suppliers_task_started", job_id=ctx.get("job_id"))
    results = await _runner(ctx).run_all_suppliers()
    return _summarize(results)


async def check_email_suppliers_task(ctx: Dict[str, Any]) -> Dict[str, Any]:
    """Cron: run every email supplier (mailbox check, selection, reconcile)."""
    logger.info("check_email_suppliers_task_started")
    results = await _runner(ctx).run_all_suppliers(parsing_method=ParsingMethod.EMAIL)
    return _summarize(results)


async def apply_manual_upload_task(
    ctx: Dict[str, Any],
    supplier_id: str,
    file_path: str,
    lock_type: str,
) -> Dict[str, Any]:
    """Apply an operator upload that was staged on the shared volume."""
    log = logger.bind(job_id=ctx.get("job_id"), supplier_id=supplier_id, lock_type=lock_type)
    log.info("manual_upload_task_started", file_path=file_path)
    result = await apply_manual_upload(_store(ctx), UUID(supplier_id), file_path, LockType(lock_type))
    return result.model_dump(mode="json")


async def set_exclusion_task(
    ctx: Dict[str, Any],
    supplier_id: str,
    collection: str,
    color_number: Optional[str] = None,
    excluded: bool = True,
) -> Dict[str, Any]:
    """Exclude (or re-include) a collection, or one color of it, from automated runs."""
    touched = await set_exclusion(_store(ctx), UUID(supplier_id), collection, color_number, excluded)
    return {
        "supplier_id": supplier_id,
        "collection": collection,
        "color_number": color_number,
        "excluded": excluded,
        "touched": touched,
    }
