"""
Operation logger.

Every executed operation is kept in a bounded in-memory ring (oldest
evicted first).  Operations at tier >= 2 are also appended to the
hash-chained ``operation_audit_chain`` table, which is never evicted.
The chain append needs an app context.
"""

from __future__ import annotations

import logging
import threading
import uuid
from collections import Counter, deque
from datetime import datetime, timezone

from landscape.models.audit import append_audit_entry
from landscape.security.tiers import TIERS

logger = logging.getLogger(__name__)

CHAINED_MIN_TIER = 2


class OperationLogger:
    def __init__(self, *, max_entries: int = 10_000) -> None:
        self.max_entries = max_entries
        self._entries: deque[dict] = deque(maxlen=max_entries)
        self._lock = threading.Lock()

    def log_operation(
        self,
        operation: str,
        tier: int,
        user: str,
        details: dict | None = None,
        result: dict | None = None,
        approval_id: str | None = None,
    ) -> dict:
        result = result or {}
        status = result.get("status", "success")
        entry = {
            "id": str(uuid.uuid4()),
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "operation": operation,
            "tier": tier,
            "tierLabel": TIERS[tier].label if tier in TIERS else f"Tier {tier}",
            "user": user,
            "details": details or {},
            "result": {
                "status": status,
                "durationMs": result.get("durationMs"),
                "error": result.get("error"),
            },
            "approvalId": approval_id,
            "chainSequence": None,
        }

        if tier >= CHAINED_MIN_TIER:
            link = append_audit_entry(
                operation=operation,
                tier=tier,
                user=user,
                status=status,
                details=entry["details"],
                result=entry["result"],
                approval_id=approval_id,
            )
            entry["chainSequence"] = link.sequence

        with self._lock:
            self._entries.append(entry)

        logger.info(
            "Operation logged operation=%s tier=%d user=%s status=%s",
            operation, tier, user, status,
        )
        return dict(entry)

    def get_audit_trail(
        self,
        *,
        operation: str | None = None,
        tier: int | None = None,
        user: str | None = None,
        status: str | None = None,
        since: str | None = None,
        until: str | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> dict:
        with self._lock:
            rows = list(self._entries)
        if operation:
            rows = [e for e in rows if e["operation"] == operation]
        if tier is not None:
            rows = [e for e in rows if e["tier"] == tier]
        if user:
            rows = [e for e in rows if e["user"] == user]
        if status:
            rows = [e for e in rows if e["result"]["status"] == status]
        if since:
            rows = [e for e in rows if e["timestamp"] >= since]
        if until:
            rows = [e for e in rows if e["timestamp"] <= until]
        return {"total": len(rows), "entries": rows[offset:offset + limit]}

    def get_operation_history(self, operation: str, limit: int = 50) -> list[dict]:
        with self._lock:
            rows = [e for e in self._entries if e["operation"] == operation]
        return rows[-limit:]

    def get_stats(self) -> dict:
        with self._lock:
            rows = list(self._entries)
        by_tier = {t: 0 for t in TIERS}
        by_tier.update(Counter(e["tier"] for e in rows))
        return {
            "totalEntries": len(rows),
            "byTier": by_tier,
            "byStatus": dict(Counter(e["result"]["status"] for e in rows)),
            "byOperation": dict(Counter(e["operation"] for e in rows)),
            "byUser": dict(Counter(e["user"] for e in rows)),
            "oldestEntry": rows[0]["timestamp"] if rows else None,
            "newestEntry": rows[-1]["timestamp"] if rows else None,
        }

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
