"""
ERP Landscape Analyzer
Operation audit domain model.

Models:
    - OperationAuditEntry: immutable, append-only, hash-chained record of
      every tier >= 2 operation.

Each row stores the hash of its predecessor.  ``entry_hash`` is
sha256 over the canonical JSON of the row (hash columns excluded) plus
``prev_hash``, so editing or deleting any row breaks verification from
that point on.
"""

import hashlib
import json
import threading
from datetime import UTC, datetime

from landscape.models import db

# Single writer for the whole process
_chain_lock = threading.Lock()

_HASH_FIELDS = {"entry_hash", "prev_hash", "id"}


class OperationAuditEntry(db.Model):
    """One link of the hash chain.  Never updated, never deleted."""

    __tablename__ = "operation_audit_chain"
    __table_args__ = (
        db.Index("idx_opaudit_operation", "operation"),
        db.Index("idx_opaudit_user", "user"),
        db.Index("idx_opaudit_tier", "tier"),
    )

    id = db.Column(db.Integer, primary_key=True)
    sequence = db.Column(db.Integer, nullable=False, unique=True)

    operation = db.Column(db.String(80), nullable=False,
                          comment="extraction.run | migration.load_staging | …")
    tier = db.Column(db.Integer, nullable=False)
    user = db.Column(db.String(150), nullable=False, default="system")
    status = db.Column(db.String(20), nullable=False,
                       comment="success | failed | denied")
    details_json = db.Column(db.Text, default="{}")
    result_json = db.Column(db.Text, default="{}")
    approval_id = db.Column(db.String(36), nullable=True)

    # ISO-8601 string so the hashed form survives any DB round-trip
    timestamp = db.Column(db.String(40), nullable=False)

    prev_hash = db.Column(db.String(64), nullable=False, default="")
    entry_hash = db.Column(db.String(64), nullable=False, unique=True)

    # ── Helpers ──────────────────────────────────────────────────────────

    def material(self) -> dict:
        """The hashed view of the row."""
        return {
            "sequence": self.sequence,
            "operation": self.operation,
            "tier": self.tier,
            "user": self.user,
            "status": self.status,
            "details": json.loads(self.details_json or "{}"),
            "result": json.loads(self.result_json or "{}"),
            "approvalId": self.approval_id,
            "timestamp": self.timestamp,
        }

    def to_dict(self) -> dict:
        data = self.material()
        data["id"] = self.id
        data["prevHash"] = self.prev_hash
        data["entryHash"] = self.entry_hash
        return data

    def __repr__(self):
        return f"<OperationAuditEntry #{self.sequence}: {self.operation} tier={self.tier}>"


# ── Hashing ──────────────────────────────────────────────────────────────────

def compute_entry_hash(material: dict, prev_hash: str) -> str:
    body = {k: v for k, v in material.items() if k not in _HASH_FIELDS}
    body["prev_hash"] = prev_hash
    blob = json.dumps(body, ensure_ascii=False, sort_keys=True,
                      separators=(",", ":"), default=str)
    return hashlib.sha256(blob.encode("utf-8")).hexdigest()


def tail_hash() -> str:
    """Hash of the newest link, or "" for an empty chain."""
    last = (
        OperationAuditEntry.query
        .order_by(OperationAuditEntry.sequence.desc())
        .first()
    )
    return last.entry_hash if last else ""


# ── Convenience writer ───────────────────────────────────────────────────────

def append_audit_entry(
    *,
    operation: str,
    tier: int,
    user: str = "system",
    status: str = "success",
    details: dict | None = None,
    result: dict | None = None,
    approval_id: str | None = None,
    timestamp: datetime | None = None,
) -> OperationAuditEntry:
    """
    Append one link and commit it.

    The read of the tail and the insert happen under one process-wide lock
    so concurrent writers cannot fork the chain.
    """
    ts = (timestamp or datetime.now(UTC)).isoformat()
    with _chain_lock:
        last = (
            OperationAuditEntry.query
            .order_by(OperationAuditEntry.sequence.desc())
            .first()
        )
        prev_hash = last.entry_hash if last else ""
        sequence = (last.sequence + 1) if last else 1

        entry = OperationAuditEntry(
            sequence=sequence,
            operation=operation,
            tier=int(tier),
            user=user or "system",
            status=status,
            details_json=json.dumps(details or {}, sort_keys=True, default=str),
            result_json=json.dumps(result or {}, sort_keys=True, default=str),
            approval_id=approval_id,
            timestamp=ts,
            prev_hash=prev_hash,
        )
        entry.entry_hash = compute_entry_hash(entry.material(), prev_hash)
        db.session.add(entry)
        db.session.commit()
    return entry


def verify_audit_chain() -> dict:
    """
    Walk the chain in sequence order and recompute every link.

    Returns:
        {valid, checkedCount, reason, lastHash}.  ``reason`` is None when
        valid, else ``prev_hash_mismatch`` or ``entry_hash_mismatch``; on
        failure ``sequence`` names the first broken link.
    """
    prev_hash = ""
    checked = 0
    for entry in OperationAuditEntry.query.order_by(OperationAuditEntry.sequence.asc()):
        if (entry.prev_hash or "") != prev_hash:
            return {
                "valid": False,
                "checkedCount": checked,
                "reason": "prev_hash_mismatch",
                "sequence": entry.sequence,
                "lastHash": prev_hash,
            }
        expected = compute_entry_hash(entry.material(), entry.prev_hash or "")
        if expected != entry.entry_hash:
            return {
                "valid": False,
                "checkedCount": checked,
                "reason": "entry_hash_mismatch",
                "sequence": entry.sequence,
                "lastHash": prev_hash,
            }
        prev_hash = entry.entry_hash
        checked += 1
    return {"valid": True, "checkedCount": checked, "reason": None, "lastHash": prev_hash}
