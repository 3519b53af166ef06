"""Parsed-data snapshot export.

After a successful run the parsed records are written to
``<snapshot_dir>/<supplier_id>_<timestamp>.xlsx`` so operators can see
exactly what the parser produced. Only the newest snapshot per supplier is
kept. Export problems are logged and never fail a run.
"""
import asyncio
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Sequence
from uuid import UUID

import pandas as pd
import structlog

from fabric_ingestion.config import settings
from fabric_ingestion.models.parsed_fabric import ParsedFabricRecord

logger = structlog.get_logger(__name__)

SNAPSHOT_COLUMNS: List[str] = [
    "collection",
    "color_number",
    "in_stock",
    "meterage",
    "price",
    "next_arrival_date",
    "comment",
]


def records_to_frame(records: Sequence[ParsedFabricRecord]) -> pd.DataFrame:
    """Tabulate records in a fixed column order."""
    rows = [record.model_dump() for record in records]
    return pd.DataFrame(rows, columns=SNAPSHOT_COLUMNS)


def write_snapshot(
    supplier_id: UUID,
    records: Sequence[ParsedFabricRecord],
    snapshot_dir: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Path:
    """Write the snapshot workbook and remove the supplier's older ones."""
    directory = Path(snapshot_dir or settings.snapshot_dir)
    directory.mkdir(parents=True, exist_ok=True)
    stamp = (now or datetime.now(timezone.utc)).strftime("%Y%m%dT%H%M%S%f")
    path = directory / f"{supplier_id}_{stamp}.xlsx"

    records_to_frame(records).to_excel(path, index=False, engine="openpyxl")

    for old in directory.glob(f"{supplier_id}_*.xlsx"):
        if old != path:
            old.unlink(missing_ok=True)
    return path


async def export_snapshot(
    supplier_id: UUID,
    records: Sequence[ParsedFabricRecord],
    snapshot_dir: Optional[str] = None,
) -> Optional[Path]:
    """Export off the event loop; returns None when the export failed."""
    try:
        path = await asyncio.to_thread(write_snapshot, supplier_id, records, snapshot_dir)
    except (OSError, ValueError) as e:
        logger.warning("snapshot_export_failed", supplier_id=str(supplier_id), error=str(e))
        return None
    logger.info("snapshot_exported", supplier_id=str(supplier_id), path=str(path), records=len(records))
    return path
