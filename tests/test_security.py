"""
tests/test_security.py — Security tiers, approvals, tier manager, operation audit chain.

Covers:
    1.  Operation → tier resolution (exact, wildcard, default)
    2.  Approval gate: auto-approval, self-approval, duplicates, two-approver tier,
        reject / cancel, lazy expiry, single use
    3.  Tier manager: denied / failed / success logging, approval consumption
    4.  Operation logger: ring buffer, filters, stats
    5.  Hash chain: linkage, verification, tamper detection
"""

from datetime import datetime, timedelta, timezone

import pytest

from landscape.core.exceptions import ApprovalRequiredError, ConflictError, NotFoundError, ValidationError
from landscape.models import db
from landscape.models.audit import (
    OperationAuditEntry,
    append_audit_entry,
    tail_hash,
    verify_audit_chain,
)
from landscape.security.approval import ApprovalGate
from landscape.security.operation_logger import OperationLogger
from landscape.security.tier_manager import TierManager
from landscape.security.tiers import (
    DEFAULT_TIER,
    TIERS,
    get_tier_for_operation,
    list_operations,
    requires_approval,
)


class _Clock:
    def __init__(self):
        self.now = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now


# ═════════════════════════════════════════════════════════════════════════════
# 1. Tiers
# ═════════════════════════════════════════════════════════════════════════════


class TestTiers:
    def test_exact_operations(self):
        assert get_tier_for_operation("system.audit_verify") == 1
        assert get_tier_for_operation("extraction.export") == 1
        assert get_tier_for_operation("migration.load_sandbox") == 2
        assert get_tier_for_operation("migration.load_staging") == 3
        assert get_tier_for_operation("migration.load_production") == 4

    def test_wildcard_and_default(self):
        assert get_tier_for_operation("migration.something_new") == 2
        assert get_tier_for_operation("extraction.anything") == 1
        assert get_tier_for_operation("unheard.of") == DEFAULT_TIER == 4

    def test_tier_definitions(self):
        assert [TIERS[t].approvers for t in (1, 2, 3, 4)] == [0, 0, 1, 2]
        assert not requires_approval("migration.load_sandbox")
        assert requires_approval("migration.load_staging")

    def test_list_operations(self):
        ops = list_operations(tier=4)
        assert {"operation": "migration.load_production", "tier": 4} in ops
        assert all(not o["operation"].endswith(".*") for o in list_operations())


# ═════════════════════════════════════════════════════════════════════════════
# 2. Approval gate
# ═════════════════════════════════════════════════════════════════════════════


class TestApprovalGate:
    def test_low_tiers_auto_approved(self):
        gate = ApprovalGate()
        req = gate.request_approval("migration.load_sandbox", "alice")
        assert req.request_id is None
        assert req.auto_approved
        assert req.status == "approved"
        assert gate.list_requests() == []

    def test_requester_required(self):
        with pytest.raises(ValidationError):
            ApprovalGate().request_approval("migration.load_staging", "")

    def test_single_approver_flow(self):
        gate = ApprovalGate()
        req = gate.request_approval("migration.load_staging", "alice", {"objects": ["ITEM"]})
        assert req.status == "pending"
        assert not gate.is_approved(req.request_id, "migration.load_staging")
        gate.approve(req.request_id, "bob", "looks fine")
        assert req.status == "approved"
        assert req.approvals[0]["approvedBy"] == "bob"
        assert gate.is_approved(req.request_id, "migration.load_staging")
        # Approval is bound to its operation
        assert not gate.is_approved(req.request_id, "migration.load_production")

    def test_self_approval_rejected(self):
        gate = ApprovalGate()
        req = gate.request_approval("migration.load_staging", "alice")
        with pytest.raises(ValidationError):
            gate.approve(req.request_id, "alice")
        assert req.status == "pending"

    def test_production_needs_two_distinct_approvers(self):
        gate = ApprovalGate()
        req = gate.request_approval("migration.load_production", "alice")
        gate.approve(req.request_id, "bob")
        assert req.status == "pending"
        with pytest.raises(ConflictError):
            gate.approve(req.request_id, "bob")
        gate.approve(req.request_id, "carol")
        assert req.status == "approved"
        assert len(req.approvals) == 2

    def test_reject(self):
        gate = ApprovalGate()
        req = gate.request_approval("migration.load_staging", "alice")
        gate.reject(req.request_id, "bob", "not yet")
        assert req.status == "rejected"
        assert req.rejection["reason"] == "not yet"
        with pytest.raises(ConflictError):
            gate.approve(req.request_id, "carol")

    def test_cancel_only_by_requester(self):
        gate = ApprovalGate()
        req = gate.request_approval("migration.load_staging", "alice")
        with pytest.raises(ValidationError):
            gate.cancel(req.request_id, "bob")
        gate.cancel(req.request_id, "alice")
        assert req.status == "cancelled"

    def test_expiry(self):
        clock = _Clock()
        gate = ApprovalGate(expiry_hours=24, clock=clock)
        req = gate.request_approval("migration.load_staging", "alice")
        clock.now += timedelta(hours=25)
        assert gate.get(req.request_id).status == "expired"
        with pytest.raises(ConflictError):
            gate.approve(req.request_id, "bob")

    def test_approved_request_does_not_expire(self):
        clock = _Clock()
        gate = ApprovalGate(expiry_hours=1, clock=clock)
        req = gate.request_approval("migration.load_staging", "alice")
        gate.approve(req.request_id, "bob")
        clock.now += timedelta(hours=5)
        assert gate.is_approved(req.request_id, "migration.load_staging")

    def test_unknown_request(self):
        with pytest.raises(NotFoundError):
            ApprovalGate().get("nope")

    def test_pending_for(self):
        gate = ApprovalGate()
        mine = gate.request_approval("migration.load_staging", "alice")
        theirs = gate.request_approval("migration.load_staging", "bob")
        assert [r.request_id for r in gate.pending_for("alice")] == [theirs.request_id]
        assert [r.request_id for r in gate.list_requests(status="pending")] == [mine.request_id, theirs.request_id]

    def test_to_dict(self):
        data = ApprovalGate().request_approval("migration.load_staging", "alice").to_dict()
        assert data["tier"] == 3
        assert data["requiredApprovers"] == 1
        assert data["expiresAt"] is not None

    def test_consume_once(self):
        gate = ApprovalGate()
        req = gate.request_approval("migration.load_staging", "alice")
        assert not gate.consume(req.request_id, "migration.load_staging")
        gate.approve(req.request_id, "bob")
        assert not gate.consume(req.request_id, "migration.load_production")
        assert gate.consume(req.request_id, "migration.load_staging")
        assert not gate.consume(req.request_id, "migration.load_staging")
        assert not gate.is_approved(req.request_id, "migration.load_staging")
        data = req.to_dict()
        assert data["status"] == "consumed"
        assert data["consumedAt"] is not None


# ═════════════════════════════════════════════════════════════════════════════
# 3. Tier manager
# ═════════════════════════════════════════════════════════════════════════════


class TestTierManager:
    def test_classify(self):
        info = TierManager().classify("migration.load_production")
        assert info == {
            "operation": "migration.load_production", "tier": 4, "label": "Production",
            "requiresApproval": True, "requiredApprovers": 2,
        }

    def test_low_tier_runs(self):
        manager = TierManager()
        assert manager.execute("extraction.export", "alice", lambda: 42) == 42
        entry = manager.op_logger.get_operation_history("extraction.export")[-1]
        assert entry["result"]["status"] == "success"
        assert entry["chainSequence"] is None

    def test_denied_without_approval(self):
        manager = TierManager()
        calls = []
        with pytest.raises(ApprovalRequiredError) as exc:
            manager.execute("migration.load_staging", "alice", lambda: calls.append(1))
        assert exc.value.tier == 3
        assert calls == []
        entry = manager.op_logger.get_operation_history("migration.load_staging")[-1]
        assert entry["result"]["status"] == "denied"
        assert entry["chainSequence"] == 1

    def test_approved_operation_runs(self):
        manager = TierManager()
        req = manager.gate.request_approval("migration.load_staging", "alice")
        manager.gate.approve(req.request_id, "bob")
        assert manager.execute("migration.load_staging", "alice", lambda: "ok", approval_id=req.request_id) == "ok"

    def test_approval_authorizes_one_execution(self):
        manager = TierManager()
        req = manager.gate.request_approval("migration.load_staging", "alice")
        manager.gate.approve(req.request_id, "bob")
        calls = []
        manager.execute("migration.load_staging", "alice", lambda: calls.append(1), approval_id=req.request_id)
        with pytest.raises(ApprovalRequiredError):
            manager.execute("migration.load_staging", "alice", lambda: calls.append(2), approval_id=req.request_id)
        assert calls == [1]
        statuses = [e["result"]["status"] for e in manager.op_logger.get_operation_history("migration.load_staging")]
        assert statuses == ["success", "denied"]

    def test_unconsumed_approval_stays_usable(self):
        manager = TierManager()
        req = manager.gate.request_approval("migration.load_staging", "alice")
        manager.gate.approve(req.request_id, "bob")
        for _ in range(2):
            manager.execute("migration.load_staging", "alice", lambda: None,
                            approval_id=req.request_id, consume_approval=False)
        assert manager.gate.is_approved(req.request_id, "migration.load_staging")

    def test_failure_logged_and_reraised(self):
        manager = TierManager()

        def boom():
            raise RuntimeError("disk full")

        with pytest.raises(RuntimeError):
            manager.execute("migration.load_sandbox", "alice", boom)
        entry = manager.op_logger.get_operation_history("migration.load_sandbox")[-1]
        assert entry["result"]["status"] == "failed"
        assert entry["result"]["error"] == "disk full"


# ═════════════════════════════════════════════════════════════════════════════
# 4. Operation logger
# ═════════════════════════════════════════════════════════════════════════════


class TestOperationLogger:
    def test_ring_evicts_oldest(self):
        log = OperationLogger(max_entries=3)
        for i in range(5):
            log.log_operation("extraction.run", 1, f"user{i}")
        trail = log.get_audit_trail()
        assert trail["total"] == 3
        assert [e["user"] for e in trail["entries"]] == ["user2", "user3", "user4"]

    def test_filters_and_stats(self):
        log = OperationLogger()
        log.log_operation("extraction.run", 1, "alice")
        log.log_operation("extraction.export", 1, "bob", result={"status": "failed"})
        assert log.get_audit_trail(user="bob")["total"] == 1
        assert log.get_audit_trail(status="failed")["entries"][0]["operation"] == "extraction.export"
        stats = log.get_stats()
        assert stats["totalEntries"] == 2
        assert stats["byTier"] == {1: 2, 2: 0, 3: 0, 4: 0}
        assert stats["byStatus"] == {"success": 1, "failed": 1}
        log.clear()
        assert log.get_stats()["totalEntries"] == 0

    def test_chained_tiers_survive_ring_eviction(self):
        log = OperationLogger(max_entries=1)
        log.log_operation("migration.load_sandbox", 2, "alice")
        log.log_operation("migration.load_sandbox", 2, "alice")
        assert log.get_audit_trail()["total"] == 1
        assert OperationAuditEntry.query.count() == 2


# ═════════════════════════════════════════════════════════════════════════════
# 5. Hash chain
# ═════════════════════════════════════════════════════════════════════════════


class TestAuditChain:
    def test_empty_chain_valid(self):
        assert verify_audit_chain() == {"valid": True, "checkedCount": 0, "reason": None, "lastHash": ""}

    def test_links(self):
        first = append_audit_entry(operation="migration.load_sandbox", tier=2, user="alice")
        assert first.sequence == 1
        assert first.prev_hash == ""
        tail = tail_hash()
        second = append_audit_entry(operation="migration.load_staging", tier=3, user="bob", status="denied")
        assert second.prev_hash == tail == first.entry_hash
        result = verify_audit_chain()
        assert result["valid"]
        assert result["checkedCount"] == 2
        assert result["lastHash"] == second.entry_hash

    def test_edited_row_detected(self):
        for i in range(3):
            append_audit_entry(operation="migration.load_sandbox", tier=2, details={"i": i})
        row = OperationAuditEntry.query.filter_by(sequence=2).one()
        row.details_json = '{"i": 99}'
        db.session.commit()
        result = verify_audit_chain()
        assert not result["valid"]
        assert result["reason"] == "entry_hash_mismatch"
        assert result["sequence"] == 2
        assert result["checkedCount"] == 1

    def test_relinked_row_detected(self):
        for _ in range(2):
            append_audit_entry(operation="migration.load_sandbox", tier=2)
        row = OperationAuditEntry.query.filter_by(sequence=2).one()
        row.prev_hash = "0" * 64
        db.session.commit()
        result = verify_audit_chain()
        assert result["reason"] == "prev_hash_mismatch"
        assert result["sequence"] == 2

    def test_deleted_row_detected(self):
        for _ in range(3):
            append_audit_entry(operation="migration.load_sandbox", tier=2)
        db.session.delete(OperationAuditEntry.query.filter_by(sequence=2).one())
        db.session.commit()
        result = verify_audit_chain()
        assert not result["valid"]
        assert result["sequence"] == 3

    def test_to_dict(self):
        entry = append_audit_entry(operation="migration.load_sandbox", tier=2, details={"rows": 5})
        data = entry.to_dict()
        assert data["details"] == {"rows": 5}
        assert data["entryHash"] == entry.entry_hash
