"""Unit tests for snapshot export and structure drift detection."""
from datetime import datetime, timezone
from unittest.mock import patch
from uuid import uuid4

import pandas as pd
import pytest

from fabric_ingestion.models.parsed_fabric import ParsedFabricRecord
from fabric_ingestion.models.source import DataStructureFingerprint
from fabric_ingestion.services.snapshot import SNAPSHOT_COLUMNS, export_snapshot, write_snapshot
from fabric_ingestion.services.structure_detector import StructureDetector

RECORDS = [
    ParsedFabricRecord(collection="Mira", color_number="014 blue", in_stock=True, meterage=85.6),
    ParsedFabricRecord(collection="Orion", color_number="2", in_stock=False, comment="под заказ"),
]


class TestSnapshot:
    """Workbook snapshots of parsed records."""

    def test_write_snapshot(self, tmp_path):
        supplier_id = uuid4()
        now = datetime(2026, 10, 17, 8, 0, tzinfo=timezone.utc)

        path = write_snapshot(supplier_id, RECORDS, str(tmp_path), now)

        assert path.name.startswith(f"{supplier_id}_20261017T080000")
        frame = pd.read_excel(path, engine="openpyxl")
        assert list(frame.columns) == SNAPSHOT_COLUMNS
        assert list(frame["collection"]) == ["Mira", "Orion"]

    def test_only_newest_snapshot_is_kept(self, tmp_path):
        supplier_id = uuid4()
        other = write_snapshot(uuid4(), RECORDS, str(tmp_path))
        write_snapshot(supplier_id, RECORDS, str(tmp_path), datetime(2026, 10, 16, tzinfo=timezone.utc))

        latest = write_snapshot(supplier_id, RECORDS, str(tmp_path), datetime(2026, 10, 17, tzinfo=timezone.utc))

        assert list(tmp_path.glob(f"{supplier_id}_*.xlsx")) == [latest]
        assert other.exists()

    @pytest.mark.asyncio
    async def test_export_failure_is_not_raised(self, tmp_path):
        with patch("fabric_ingestion.services.snapshot.write_snapshot", side_effect=OSError("disk full")):
            assert await export_snapshot(uuid4(), RECORDS, str(tmp_path)) is None

    @pytest.mark.asyncio
    async def test_export_snapshot(self, tmp_path):
        path = await export_snapshot(uuid4(), RECORDS, str(tmp_path))
        assert path is not None and path.exists()


class TestStructureDetector:
    """Fingerprint comparison and storage."""

    FINGERPRINT = DataStructureFingerprint(
        row_count=5, column_count=4, first_row_values=["Коллекция", "Цвет"], sheet_names=["Sheet1"],
    )

    @pytest.mark.asyncio
    async def test_first_run_is_not_a_change(self, store):
        supplier_id = uuid4()
        detector = StructureDetector(store)

        assert await detector.check_and_save(supplier_id, self.FINGERPRINT) is False
        assert store.structures[supplier_id]["row_count"] == 5

    @pytest.mark.asyncio
    async def test_same_layout(self, store):
        supplier_id = uuid4()
        detector = StructureDetector(store)
        await detector.check_and_save(supplier_id, self.FINGERPRINT)

        assert await detector.check_and_save(supplier_id, self.FINGERPRINT.model_copy()) is False

    @pytest.mark.asyncio
    async def test_changed_layout_is_reported_and_stored(self, store):
        supplier_id = uuid4()
        detector = StructureDetector(store)
        await detector.check_and_save(supplier_id, self.FINGERPRINT)
        changed = self.FINGERPRINT.model_copy(update={"column_count": 6})

        assert await detector.check_and_save(supplier_id, changed) is True
        assert (await detector.load_structure(supplier_id)).column_count == 6
