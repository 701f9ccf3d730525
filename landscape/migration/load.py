"""
Target store and reconciliation for migration loads.

The target store is an in-memory stand-in for the receiving system: one
bucket per (target, object) holding the loaded rows in their nested
header / item shape.  Loads write in fixed batches.
"""

from __future__ import annotations

import logging
import threading

logger = logging.getLogger(__name__)

LOAD_BATCH_SIZE = 100
LOAD_TARGETS = ("sandbox", "staging", "production")

# Load target -> security operation
LOAD_OPERATIONS = {
    "sandbox": "migration.load_sandbox",
    "staging": "migration.load_staging",
    "production": "migration.load_production",
}


def nest_row(row: dict) -> dict:
    """Group ``GROUP-FIELD`` keys into ``{"GROUP": {"FIELD": ...}}``."""
    out: dict = {}
    for key, value in row.items():
        group, sep, name = key.partition("-")
        if sep and name:
            out.setdefault(group, {})[name] = value
        else:
            out[key] = value
    return out


def batched(rows: list, size: int = LOAD_BATCH_SIZE):
    for start in range(0, len(rows), size):
        yield rows[start:start + size]


class TargetStore:
    def __init__(self) -> None:
        self._buckets: dict[tuple[str, str], list[dict]] = {}
        self._lock = threading.Lock()

    def write_batch(self, target: str, object_id: str, rows: list[dict]) -> int:
        with self._lock:
            self._buckets.setdefault((target, object_id), []).extend(nest_row(r) for r in rows)
        return len(rows)

    def rows(self, target: str, object_id: str) -> list[dict]:
        return list(self._buckets.get((target, object_id), []))

    def count(self, target: str, object_id: str) -> int:
        return len(self._buckets.get((target, object_id), []))

    def clear(self, target: str | None = None, object_id: str | None = None) -> None:
        with self._lock:
            for key in list(self._buckets):
                if (target is None or key[0] == target) and (object_id is None or key[1] == object_id):
                    del self._buckets[key]

    def summary(self) -> dict:
        return {f"{t}/{o}": len(rows) for (t, o), rows in sorted(self._buckets.items())}


def reconcile(object_id: str, source_count: int, target_count: int) -> dict:
    """Compare extracted and loaded counts."""
    variance = source_count - target_count
    variance_pct = round(abs(variance) / source_count * 100, 2) if source_count > 0 else 0.0
    status = "matched" if variance == 0 else "variance"
    if status != "matched":
        logger.warning(
            "Reconciliation variance object_id=%s source=%d target=%d",
            object_id, source_count, target_count,
        )
    return {
        "objectId": object_id,
        "sourceCount": source_count,
        "targetCount": target_count,
        "variance": variance,
        "variancePct": variance_pct,
        "status": status,
    }
