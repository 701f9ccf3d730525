"""
Tier manager — authorize, run, time and log an operation.

    manager = get_tier_manager()
    manager.execute("migration.load_staging", "alice", fn, approval_id=req_id)

Tier 3 and 4 operations need an approved request for the same operation;
a missing or unapproved request is logged as ``denied`` and raises
ApprovalRequiredError.  The request is consumed before ``fn`` runs, so it
authorizes exactly one execution; callers that batch several writes under
one approval pass ``consume_approval=False`` and consume it themselves.
Exceptions from ``fn`` are logged as ``failed`` and re-raised.
"""

from __future__ import annotations

import logging
import threading
import time

from flask import current_app, has_app_context

from landscape.core.exceptions import ApprovalRequiredError
from landscape.security.approval import ApprovalGate
from landscape.security.operation_logger import OperationLogger
from landscape.security.tiers import TIERS, get_tier_for_operation

logger = logging.getLogger(__name__)


class TierManager:
    def __init__(self, *, gate: ApprovalGate | None = None, op_logger: OperationLogger | None = None) -> None:
        self.gate = gate or ApprovalGate()
        self.op_logger = op_logger or OperationLogger()

    def classify(self, operation: str) -> dict:
        tier = get_tier_for_operation(operation)
        tier_def = TIERS[tier]
        return {
            "operation": operation,
            "tier": tier,
            "label": tier_def.label,
            "requiresApproval": tier_def.requires_approval,
            "requiredApprovers": tier_def.approvers,
        }

    def check_authorization(self, operation: str, approval_id: str | None = None) -> tuple[bool, str]:
        tier = get_tier_for_operation(operation)
        if not TIERS[tier].requires_approval:
            return True, "approval not required"
        if not approval_id:
            return False, "approval id required"
        if not self.gate.is_approved(approval_id, operation):
            return False, "approval request is not approved for this operation"
        return True, "approved"

    def execute(self, operation: str, user: str, fn, details: dict | None = None,
                approval_id: str | None = None, consume_approval: bool = True):
        tier = get_tier_for_operation(operation)
        allowed, reason = self.check_authorization(operation, approval_id)
        if allowed and consume_approval and TIERS[tier].requires_approval:
            if not self.gate.consume(approval_id, operation):
                allowed, reason = False, "approval request was already used"
        if not allowed:
            self.op_logger.log_operation(
                operation, tier, user, details,
                {"status": "denied", "error": reason}, approval_id,
            )
            logger.warning("Operation denied operation=%s tier=%d user=%s reason=%s",
                           operation, tier, user, reason)
            raise ApprovalRequiredError(operation, tier, reason)

        started = time.monotonic()
        try:
            value = fn()
        except Exception as exc:
            self.op_logger.log_operation(
                operation, tier, user, details,
                {"status": "failed", "error": str(exc),
                 "durationMs": int((time.monotonic() - started) * 1000)},
                approval_id,
            )
            raise
        self.op_logger.log_operation(
            operation, tier, user, details,
            {"status": "success", "durationMs": int((time.monotonic() - started) * 1000)},
            approval_id,
        )
        return value


# ── Process-wide instance ───────────────────────────────────────────────────

_manager: TierManager | None = None
_manager_lock = threading.Lock()


def get_tier_manager() -> TierManager:
    global _manager
    with _manager_lock:
        if _manager is None:
            expiry, max_entries = 24, 10_000
            if has_app_context():
                expiry = current_app.config.get("APPROVAL_EXPIRY_HOURS", expiry)
                max_entries = current_app.config.get("OPERATION_LOG_MAX_ENTRIES", max_entries)
            _manager = TierManager(
                gate=ApprovalGate(expiry_hours=expiry),
                op_logger=OperationLogger(max_entries=max_entries),
            )
        return _manager


def reset_tier_manager() -> None:
    global _manager
    with _manager_lock:
        _manager = None
