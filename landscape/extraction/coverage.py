"""
Coverage tracker — per (extractor, table) status of the last extraction attempt.

Statuses: pending → extracted | failed | skipped.  Once a key is
``extracted`` later events only add row counts; the status never reverts.
"""

from __future__ import annotations

import logging
import threading

logger = logging.getLogger(__name__)

EXTRACTED = "extracted"
FAILED = "failed"
SKIPPED = "skipped"
PENDING = "pending"
COVERAGE_STATUSES = (EXTRACTED, FAILED, SKIPPED, PENDING)


def _aggregate(records: list[dict]) -> dict:
    total = len(records)
    if total == 0:
        return {"extracted": 0, "total": 0, "coverage": 0}
    counts = {s: 0 for s in COVERAGE_STATUSES}
    for rec in records:
        counts[rec["status"]] += 1
    pct = round(100 * counts[EXTRACTED] / total)
    return {
        "extracted": counts[EXTRACTED],
        "failed": counts[FAILED],
        "skipped": counts[SKIPPED],
        "pending": counts[PENDING],
        "total": total,
        "coverage": pct,
        "coveragePct": pct,
    }


class CoverageTracker:
    """Thread-safe coverage ledger.

    Records are kept in first-seen order; writes from one extractor are
    applied in call order.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._records: dict[tuple[str, str], dict] = {}

    # ── Writes ───────────────────────────────────────────────────────────────

    def register_expected(self, extractor_id: str, module: str, tables: list[str]) -> None:
        """Declare expected tables as ``pending`` (existing keys untouched)."""
        with self._lock:
            for table in tables:
                self._records.setdefault(
                    (extractor_id, table),
                    {"extractorId": extractor_id, "table": table, "module": module,
                     "status": PENDING, "metadata": {}},
                )

    def track(
        self,
        extractor_id: str,
        table: str,
        status: str,
        metadata: dict | None = None,
        *,
        module: str | None = None,
    ) -> dict:
        if status not in COVERAGE_STATUSES:
            raise ValueError(f"Invalid coverage status: {status!r}")
        metadata = dict(metadata or {})
        with self._lock:
            rec = self._records.get((extractor_id, table))
            if rec is None:
                rec = {"extractorId": extractor_id, "table": table, "module": module or "",
                       "status": PENDING, "metadata": {}}
                self._records[(extractor_id, table)] = rec
            elif module and not rec["module"]:
                rec["module"] = module

            if rec["status"] == EXTRACTED:
                if status == EXTRACTED and "rowCount" in metadata:
                    rec["metadata"]["rowCount"] = rec["metadata"].get("rowCount", 0) + metadata["rowCount"]
                elif status != EXTRACTED:
                    logger.debug(
                        "Coverage status kept extractor_id=%s table=%s ignored=%s",
                        extractor_id, table, status,
                    )
                return dict(rec)

            rec["status"] = status
            rec["metadata"].update(metadata)
            return dict(rec)

    # ── Reads ────────────────────────────────────────────────────────────────

    def _snapshot(self) -> list[dict]:
        with self._lock:
            return [dict(r, metadata=dict(r["metadata"])) for r in self._records.values()]

    def status(self, extractor_id: str, table: str) -> str | None:
        with self._lock:
            rec = self._records.get((extractor_id, table))
            return rec["status"] if rec else None

    def entries(self, extractor_id: str | None = None) -> list[dict]:
        return [r for r in self._snapshot() if extractor_id is None or r["extractorId"] == extractor_id]

    def report(self, extractor_id: str) -> dict:
        return _aggregate(self.entries(extractor_id))

    def module_report(self, module_prefix: str) -> dict:
        records = [r for r in self._snapshot() if r["module"].startswith(module_prefix)]
        result = _aggregate(records)
        result["extractorCount"] = len({r["extractorId"] for r in records})
        return result

    def extractor_ids(self) -> list[str]:
        seen: dict[str, None] = {}
        for rec in self._snapshot():
            seen.setdefault(rec["extractorId"], None)
        return list(seen)

    def modules(self) -> list[str]:
        return sorted({r["module"] for r in self._snapshot()})

    def system_report(self) -> dict:
        records = self._snapshot()
        result = _aggregate(records)
        ids = self.extractor_ids()
        result["extractorCount"] = len(ids)
        result["byExtractor"] = {eid: self.report(eid) for eid in ids}
        result["byModule"] = {m: self.module_report(m) for m in self.modules()}
        return result

    def gaps(self) -> list[dict]:
        """Every non-extracted entry, ordered by (module, extractorId, table)."""
        out = []
        for rec in self._snapshot():
            if rec["status"] == EXTRACTED:
                continue
            meta = rec["metadata"]
            out.append({
                "module": rec["module"],
                "extractorId": rec["extractorId"],
                "table": rec["table"],
                "status": rec["status"],
                "reason": meta.get("reason") or meta.get("error") or rec["status"],
                "kind": meta.get("kind"),
            })
        out.sort(key=lambda g: (g["module"], g["extractorId"], g["table"]))
        return out

    # ── Serialization ────────────────────────────────────────────────────────

    def to_dict(self) -> dict:
        """Flat map keyed ``"<extractorId>.<table>"``."""
        return {
            f"{r['extractorId']}.{r['table']}": {
                "extractorId": r["extractorId"],
                "table": r["table"],
                "module": r["module"],
                "status": r["status"],
                "metadata": r["metadata"],
            }
            for r in self._snapshot()
        }

    @classmethod
    def from_dict(cls, data: dict) -> CoverageTracker:
        tracker = cls()
        for rec in data.values():
            tracker._records[(rec["extractorId"], rec["table"])] = {
                "extractorId": rec["extractorId"],
                "table": rec["table"],
                "module": rec.get("module", ""),
                "status": rec["status"],
                "metadata": dict(rec.get("metadata") or {}),
            }
        return tracker
