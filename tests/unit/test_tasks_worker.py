"""Unit tests for arq task entry points and worker configuration."""
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest

from fabric_ingestion.models.catalog import RunResult
from fabric_ingestion.models.supplier_profile import ParsingMethod
from fabric_ingestion.tasks import (
    apply_manual_upload_task,
    check_email_suppliers_task,
    run_all_suppliers_task,
    run_supplier_task,
    set_exclusion_task,
)
from fabric_ingestion.worker import WorkerSettings, email_check_minutes, monitor_queue_depth


def _runner(*results):
    runner = MagicMock()
    runner.run_supplier = AsyncMock(return_value=results[0] if results else None)
    runner.run_all_suppliers = AsyncMock(return_value=list(results))
    return runner


class TestIngestionTasks:
    """Tasks delegate to the runner held in the worker context."""

    @pytest.mark.asyncio
    async def test_run_supplier_task(self):
        supplier_id = uuid4()
        runner = _runner(RunResult(supplier_id=supplier_id, success=True, created=2))

        result = await run_supplier_task({"runner": runner, "job_id": "job-1"}, str(supplier_id))

        runner.run_supplier.assert_awaited_once_with(supplier_id)
        assert result["success"] is True
        assert result["created"] == 2
        assert result["supplier_id"] == str(supplier_id)

    @pytest.mark.asyncio
    async def test_run_all_suppliers_task_summarizes(self):
        ok = RunResult(supplier_id=uuid4(), success=True)
        failed = RunResult.failure(uuid4(), "Broken", "Supplier has no parsing URL")
        runner = _runner(ok, failed)

        summary = await run_all_suppliers_task({"runner": runner})

        runner.run_all_suppliers.assert_awaited_once_with()
        assert summary["total"] == 2
        assert summary["succeeded"] == 1
        assert summary["failed"] == 1
        assert summary["results"][1]["error_message"] == "Supplier has no parsing URL"

    @pytest.mark.asyncio
    async def test_check_email_suppliers_task(self):
        runner = _runner()

        summary = await check_email_suppliers_task({"runner": runner})

        runner.run_all_suppliers.assert_awaited_once_with(parsing_method=ParsingMethod.EMAIL)
        assert summary["total"] == 0

    @pytest.mark.asyncio
    async def test_missing_runner_raises(self):
        with pytest.raises(RuntimeError):
            await run_supplier_task({}, str(uuid4()))

    @pytest.mark.asyncio
    async def test_apply_manual_upload_task(self, store):
        supplier_id = uuid4()
        expected = RunResult(supplier_id=supplier_id, success=True, created=5)
        with patch(
            "fabric_ingestion.tasks.ingestion_tasks.apply_manual_upload",
            new=AsyncMock(return_value=expected),
        ) as apply:
            result = await apply_manual_upload_task({"store": store}, str(supplier_id), "/uploads/a.xlsx", "price")

        apply.assert_awaited_once()
        args = apply.await_args.args
        assert args[0] is store
        assert args[1] == supplier_id
        assert args[3].value == "price"
        assert result["created"] == 5

    @pytest.mark.asyncio
    async def test_manual_upload_task_requires_store(self):
        with pytest.raises(RuntimeError):
            await apply_manual_upload_task({}, str(uuid4()), "/uploads/a.xlsx", "stock")

    @pytest.mark.asyncio
    async def test_set_exclusion_task(self, store, excel_supplier):
        store.add_supplier(excel_supplier)
        row = store.add_fabric(excel_supplier.id, "Mira", "015 red", in_stock=True)

        result = await set_exclusion_task({"store": store}, str(excel_supplier.id), "Mira", "015 red")

        assert result["touched"] == 1
        assert result["excluded"] is True
        assert store.fabrics[row.id].excluded_from_parsing is True

    @pytest.mark.asyncio
    async def test_set_exclusion_task_requires_store(self):
        with pytest.raises(RuntimeError):
            await set_exclusion_task({}, str(uuid4()), "Mira")


class TestWorker:
    """Worker settings and cron helpers."""

    def test_email_check_minutes_default_interval(self):
        assert email_check_minutes() == {0, 30}

    def test_functions_registered(self):
        names = {f.__name__ for f in WorkerSettings.functions}
        assert names == {
            "run_supplier_task",
            "run_all_suppliers_task",
            "apply_manual_upload_task",
            "check_email_suppliers_task",
            "set_exclusion_task",
        }
        assert WorkerSettings.max_tries == 1

    @pytest.mark.asyncio
    async def test_monitor_queue_depth(self):
        redis = MagicMock()
        redis.zcard = AsyncMock(return_value=4)

        await monitor_queue_depth({"redis": redis})

        redis.zcard.assert_awaited_once_with(WorkerSettings.queue_name)

    @pytest.mark.asyncio
    async def test_monitor_queue_depth_without_redis(self):
        await monitor_queue_depth({})
