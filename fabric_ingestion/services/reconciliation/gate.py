"""Manual-lock update gate.

While an operator upload is authoritative (an active stock or price lock),
a parser run may only write when the vendor data actually moved in the
fields the lock covers.
"""
from typing import Dict, Iterable, List, Optional, Set

import structlog

from fabric_ingestion.models.catalog import LockType, ManualOverrideLock, StoredFabric
from fabric_ingestion.models.parsed_fabric import ParsedFabricRecord

logger = structlog.get_logger(__name__)

NUMERIC_TOLERANCE = 0.01

LOCKED_FIELDS: Dict[LockType, List[str]] = {
    LockType.STOCK: ["in_stock", "meterage"],
    LockType.PRICE: ["price"],
}


def values_differ(current, incoming) -> bool:
    """Numbers differ beyond the tolerance; None against a value is a change."""
    if current is None and incoming is None:
        return False
    if current is None or incoming is None:
        return True
    if isinstance(current, bool) or isinstance(incoming, bool):
        return bool(current) != bool(incoming)
    if isinstance(current, (int, float)) and isinstance(incoming, (int, float)):
        return abs(float(current) - float(incoming)) > NUMERIC_TOLERANCE
    return current != incoming


def compared_fields(locks: Iterable[ManualOverrideLock]) -> List[str]:
    """Fields guarded by the active locks."""
    fields: List[str] = []
    for lock in locks:
        if not lock.is_active:
            continue
        for name in LOCKED_FIELDS[lock.type]:
            if name not in fields:
                fields.append(name)
    return fields


def should_update(
    locks: Iterable[ManualOverrideLock],
    persisted: Iterable[StoredFabric],
    parsed: Iterable[ParsedFabricRecord],
    excluded_keys: Optional[Set[str]] = None,
) -> bool:
    """Decide whether a locked supplier's parsed data warrants writes.

    Args:
        locks: The supplier's manual-upload locks
        persisted: Non-excluded catalog rows
        parsed: Parsed records
        excluded_keys: Keys hidden from reconciliation

    Returns:
        True when no lock is active or the guarded data changed
    """
    fields = compared_fields(locks)
    if not fields:
        return True

    excluded_keys = excluded_keys or set()
    current: Dict[str, StoredFabric] = {
        row.key: row for row in persisted if not row.excluded_from_parsing
    }
    incoming: Dict[str, ParsedFabricRecord] = {}
    for record in parsed:
        key = record.key
        if key in excluded_keys:
            continue
        incoming.setdefault(key, record)

    log = logger.bind(stage="update_gate", fields=fields)
    if not current and incoming:
        log.info("gate_open", reason="empty_catalog", parsed=len(incoming))
        return True
    if current and not incoming:
        log.info("gate_open", reason="empty_parse", persisted=len(current))
        return True
    if len(current) != len(incoming):
        log.info("gate_open", reason="size_changed", persisted=len(current), parsed=len(incoming))
        return True

    for key, record in incoming.items():
        row = current.get(key)
        if row is None:
            log.info("gate_open", reason="new_key", key=key)
            return True
        for name in fields:
            if values_differ(getattr(row, name), getattr(record, name)):
                log.info("gate_open", reason="value_changed", key=key, field=name)
                return True

    log.info("gate_closed", compared=len(incoming))
    return False
