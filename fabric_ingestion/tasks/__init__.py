"""Queue task definitions for supplier ingestion.

This module contains arq task functions for:
    - run_supplier_task: Run one supplier end to end
    - run_all_suppliers_task: Run every supplier concurrently
    - check_email_suppliers_task: Cron run of email suppliers
    - apply_manual_upload_task: Apply an operator stock/price upload
    - set_exclusion_task: Exclude or re-include catalog rows
"""
from fabric_ingestion.tasks.ingestion_tasks import (
    apply_manual_upload_task,
    check_email_suppliers_task,
    run_all_suppliers_task,
    run_supplier_task,
    set_exclusion_task,
)

__all__ = [
    "apply_manual_upload_task",
    "check_email_suppliers_task",
    "run_all_suppliers_task",
    "run_supplier_task",
    "set_exclusion_task",
]
