"""
Approval gate for tier 3 / 4 operations.

Requests live in memory for the lifetime of the process.  Tier 1-2
operations are auto-approved and never stored.  A pending request expires
``expiry_hours`` after creation; expiry is applied lazily on every read.

Rules:
  - the requester may not approve their own request
  - one approval per approver
  - only the requester may cancel
  - approve / reject / cancel only act on a pending request
  - an approved request authorizes one execution and is then ``consumed``
"""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from landscape.core.exceptions import ConflictError, NotFoundError, ValidationError
from landscape.security.tiers import TIERS, get_tier_for_operation

logger = logging.getLogger(__name__)

PENDING = "pending"
APPROVED = "approved"
REJECTED = "rejected"
EXPIRED = "expired"
CANCELLED = "cancelled"
CONSUMED = "consumed"

APPROVAL_STATUSES = (PENDING, APPROVED, REJECTED, EXPIRED, CANCELLED, CONSUMED)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ApprovalRequest:
    request_id: str | None
    operation: str
    tier: int
    requested_by: str
    required_approvers: int
    details: dict = field(default_factory=dict)
    status: str = PENDING
    approvals: list[dict] = field(default_factory=list)
    rejection: dict | None = None
    created_at: datetime = field(default_factory=_utcnow)
    expires_at: datetime | None = None
    resolved_at: datetime | None = None
    consumed_at: datetime | None = None
    auto_approved: bool = False

    def to_dict(self) -> dict:
        return {
            "requestId": self.request_id,
            "operation": self.operation,
            "tier": self.tier,
            "requestedBy": self.requested_by,
            "requiredApprovers": self.required_approvers,
            "details": self.details,
            "status": self.status,
            "approvals": list(self.approvals),
            "rejection": self.rejection,
            "createdAt": self.created_at.isoformat(),
            "expiresAt": self.expires_at.isoformat() if self.expires_at else None,
            "resolvedAt": self.resolved_at.isoformat() if self.resolved_at else None,
            "consumedAt": self.consumed_at.isoformat() if self.consumed_at else None,
            "autoApproved": self.auto_approved,
        }


class ApprovalGate:
    def __init__(self, *, expiry_hours: int = 24, clock=_utcnow) -> None:
        self.expiry = timedelta(hours=expiry_hours)
        self._clock = clock
        self._requests: dict[str, ApprovalRequest] = {}
        self._lock = threading.Lock()

    # ── Lifecycle ────────────────────────────────────────────────────────────

    def request_approval(self, operation: str, requested_by: str, details: dict | None = None) -> ApprovalRequest:
        if not requested_by:
            raise ValidationError("requested_by is required", details={"requestedBy": requested_by})
        tier = get_tier_for_operation(operation)
        tier_def = TIERS[tier]
        now = self._clock()
        if not tier_def.requires_approval:
            return ApprovalRequest(
                request_id=None, operation=operation, tier=tier, requested_by=requested_by,
                required_approvers=0, details=details or {}, status=APPROVED,
                created_at=now, resolved_at=now, auto_approved=True,
            )

        req = ApprovalRequest(
            request_id=str(uuid.uuid4()), operation=operation, tier=tier,
            requested_by=requested_by, required_approvers=tier_def.approvers,
            details=details or {}, created_at=now, expires_at=now + self.expiry,
        )
        with self._lock:
            self._requests[req.request_id] = req
        logger.info(
            "Approval requested request_id=%s operation=%s tier=%d by=%s",
            req.request_id, operation, tier, requested_by,
        )
        return req

    def approve(self, request_id: str, approved_by: str, comment: str | None = None) -> ApprovalRequest:
        with self._lock:
            req = self._pending(request_id, "approve")
            if req.requested_by == approved_by:
                raise ValidationError(
                    f"Cannot self-approve: requester '{approved_by}' cannot approve own request",
                    details={"requestId": request_id},
                )
            if any(a["approvedBy"] == approved_by for a in req.approvals):
                raise ConflictError("ApprovalRequest", "approvedBy", approved_by)
            req.approvals.append({
                "approvedBy": approved_by,
                "comment": comment,
                "timestamp": self._clock().isoformat(),
            })
            if len(req.approvals) >= req.required_approvers:
                req.status = APPROVED
                req.resolved_at = self._clock()
        logger.info(
            "Approval recorded request_id=%s approvals=%d/%d status=%s",
            request_id, len(req.approvals), req.required_approvers, req.status,
        )
        return req

    def reject(self, request_id: str, rejected_by: str, reason: str | None = None) -> ApprovalRequest:
        with self._lock:
            req = self._pending(request_id, "reject")
            req.status = REJECTED
            req.rejection = {"rejectedBy": rejected_by, "reason": reason, "timestamp": self._clock().isoformat()}
            req.resolved_at = self._clock()
        logger.info("Approval rejected request_id=%s by=%s", request_id, rejected_by)
        return req

    def cancel(self, request_id: str, cancelled_by: str) -> ApprovalRequest:
        with self._lock:
            req = self._pending(request_id, "cancel")
            if req.requested_by != cancelled_by:
                raise ValidationError(
                    f"Only the requester can cancel: expected '{req.requested_by}' got '{cancelled_by}'",
                    details={"requestId": request_id},
                )
            req.status = CANCELLED
            req.resolved_at = self._clock()
        logger.info("Approval cancelled request_id=%s", request_id)
        return req

    def consume(self, request_id: str | None, operation: str) -> bool:
        """Claim an approved request for one execution of *operation*.

        Returns False when the request is unknown, for another operation,
        or no longer approved (already consumed included).
        """
        if not request_id:
            return False
        with self._lock:
            req = self._requests.get(request_id)
            if req is None or req.operation != operation:
                return False
            self._expire_if_due(req)
            if req.status != APPROVED:
                return False
            req.status = CONSUMED
            req.consumed_at = self._clock()
        logger.info("Approval consumed request_id=%s operation=%s", request_id, operation)
        return True

    # ── Queries ──────────────────────────────────────────────────────────────

    def get(self, request_id: str) -> ApprovalRequest:
        req = self._requests.get(request_id)
        if req is None:
            raise NotFoundError(resource="ApprovalRequest", resource_id=request_id)
        self._expire_if_due(req)
        return req

    def is_approved(self, request_id: str | None, operation: str) -> bool:
        if not request_id:
            return False
        req = self._requests.get(request_id)
        if req is None or req.operation != operation:
            return False
        self._expire_if_due(req)
        return req.status == APPROVED

    def list_requests(self, status: str | None = None, operation: str | None = None) -> list[ApprovalRequest]:
        out = []
        for req in self._requests.values():
            self._expire_if_due(req)
            if status and req.status != status:
                continue
            if operation and req.operation != operation:
                continue
            out.append(req)
        return sorted(out, key=lambda r: r.created_at)

    def pending_for(self, approver: str) -> list[ApprovalRequest]:
        return [
            r for r in self.list_requests(status=PENDING)
            if r.requested_by != approver and all(a["approvedBy"] != approver for a in r.approvals)
        ]

    # ── Internals ────────────────────────────────────────────────────────────

    def _expire_if_due(self, req: ApprovalRequest) -> None:
        if req.status == PENDING and req.expires_at and self._clock() > req.expires_at:
            req.status = EXPIRED
            req.resolved_at = req.expires_at
            logger.info("Approval expired request_id=%s", req.request_id)

    def _pending(self, request_id: str, action: str) -> ApprovalRequest:
        req = self._requests.get(request_id)
        if req is None:
            raise NotFoundError(resource="ApprovalRequest", resource_id=request_id)
        self._expire_if_due(req)
        if req.status != PENDING:
            raise ConflictError("ApprovalRequest", "status", req.status)
        return req
