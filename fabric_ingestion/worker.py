"""arq worker configuration for supplier ingestion.

This module configures the arq worker with:
    - run_supplier_task: Run one supplier end to end
    - run_all_suppliers_task: Run every supplier concurrently
    - apply_manual_upload_task: Apply an operator stock/price upload
    - check_email_suppliers_task: Cron job running email suppliers
    - monitor_queue_depth: Cron job logging queue depth
"""
from arq.connections import RedisSettings, ArqRedis
from arq import cron
from typing import Dict, Any
import httpx
import structlog

from fabric_ingestion.config import settings, configure_logging
from fabric_ingestion.parsers.base_parser import DEFAULT_HEADERS
from fabric_ingestion.services.supplier_runner import SupplierRunner
from fabric_ingestion.tasks.ingestion_tasks import (
    apply_manual_upload_task,
    check_email_suppliers_task,
    run_all_suppliers_task,
    run_supplier_task,
    set_exclusion_task,
)

# Configure logging
configure_logging(settings.log_level)
logger = structlog.get_logger(__name__)


def email_check_minutes() -> set:
    """Minutes of the hour at which email suppliers are checked."""
    return set(range(0, 60, settings.email_check_interval_minutes))


async def on_startup(ctx: Dict[str, Any]) -> None:
    """Build the shared HTTP client, catalog store and supplier runner."""
    from fabric_ingestion.db.repositories.catalog_repo import SqlCatalogStore

    http_client = httpx.AsyncClient(
        timeout=settings.http_timeout,
        headers=DEFAULT_HEADERS,
        follow_redirects=True,
    )
    store = SqlCatalogStore()
    ctx["http_client"] = http_client
    ctx["store"] = store
    ctx["runner"] = SupplierRunner(store, http_client=http_client)
    logger.info("worker_started", queue_name=settings.queue_name, max_jobs=settings.max_workers)


async def on_shutdown(ctx: Dict[str, Any]) -> None:
    """Close the HTTP client and the database pool."""
    from fabric_ingestion.db.base import dispose_engine

    http_client = ctx.get("http_client")
    if http_client is not None:
        await http_client.aclose()
    await dispose_engine()
    logger.info("worker_stopped")


async def monitor_queue_depth(ctx: Dict[str, Any]) -> None:
    """Periodic task to log queue depth for monitoring.

    Args:
        ctx: Worker context (contains Redis connection)
    """
    redis: ArqRedis = ctx.get("redis")
    if not redis:
        logger.warning("monitor_queue_depth_no_redis")
        return
    queue_depth = await redis.zcard(settings.queue_name)
    logger.info("queue_depth_monitor", queue_name=settings.queue_name, queue_depth=queue_depth)


class WorkerSettings:
    """arq worker configuration settings.

    This class is imported by arq CLI: `arq fabric_ingestion.worker.WorkerSettings`

    Registered Tasks:
        - run_supplier_task: Run one supplier
        - run_all_suppliers_task: Run all suppliers
        - apply_manual_upload_task: Apply an operator upload
        - check_email_suppliers_task: Run email suppliers (also cron)

    Cron Jobs:
        - check_email_suppliers_task: Every EMAIL_CHECK_INTERVAL_MINUTES
        - monitor_queue_depth: Every 5 minutes
    """

    redis_settings = RedisSettings.from_dsn(settings.redis_url)
    queue_name = settings.queue_name
    max_jobs = settings.max_workers
    job_timeout = settings.job_timeout
    keep_result = 3600  # Keep results for 1 hour
    # Runs are not retried; a failed run is recorded on the supplier
    max_tries = 1

    functions = [
        run_supplier_task,
        run_all_suppliers_task,
        apply_manual_upload_task,
        check_email_suppliers_task,
        set_exclusion_task,
    ]

    on_startup = on_startup
    on_shutdown = on_shutdown

    cron_jobs = [
        cron(
            check_email_suppliers_task,
            minute=email_check_minutes(),
            unique=True,
            run_at_startup=False,
        ),
        cron(monitor_queue_depth, minute={0, 5, 10, 15, 20, 25, 30, 35, 40, 45, 50, 55}),
    ]
