"""
Reference process models — best-practice end-to-end flows.

Each model is a directed multigraph over named activities with:
  - edges typed sequence | parallel | choice
  - non-empty start / end activity sets
  - SLA targets keyed by ``"from -> to"``
  - critical transitions that auditors verify

Supported families: O2C, P2P, R2R, A2R, H2R, P2M, M2S.

Usage:
    from landscape.mining.reference_models import get_reference_model

    model = get_reference_model("O2C")
    model.is_valid_transition("Create Sales Order", "Credit Check")   # True
    model.critical_path()
"""

from __future__ import annotations

import logging
from collections import deque

logger = logging.getLogger(__name__)

EDGE_TYPES = ("sequence", "parallel", "choice")

_UNIT_HOURS = {"hours": 1, "days": 24, "weeks": 168}


def transition_key(from_activity: str, to_activity: str) -> str:
    return f"{from_activity} -> {to_activity}"


def sla_hours(sla: dict) -> float:
    """Convert an SLA target ``{target, unit}`` to hours."""
    return float(sla["target"]) * _UNIT_HOURS.get(sla.get("unit", "days"), 24)


class ReferenceModel:
    """Immutable reference process graph with precomputed adjacency.

    Raises ValueError when an edge has an unknown type or endpoint, or when
    the start or end set is empty or names an unknown activity.
    """

    def __init__(
        self,
        *,
        id: str,
        name: str,
        activities: list[str],
        edges: list[tuple[str, str, str]],
        start_activities: list[str],
        end_activities: list[str],
        sla_targets: dict[str, dict] | None = None,
        critical_transitions: list[str] | None = None,
    ) -> None:
        self.id = id
        self.name = name
        self.activities = list(activities)
        self.edges = [{"from": f, "to": t, "type": kind} for f, t, kind in edges]
        self.start_activities = list(start_activities)
        self.end_activities = list(end_activities)
        self.sla_targets = dict(sla_targets or {})
        self.critical_transitions = list(critical_transitions or [])

        acts = set(self.activities)
        for edge in self.edges:
            if edge["type"] not in EDGE_TYPES:
                raise ValueError(f"{id}: edge {edge['from']} -> {edge['to']} has unknown type {edge['type']!r}")
            missing = [a for a in (edge["from"], edge["to"]) if a not in acts]
            if missing:
                raise ValueError(f"{id}: edge {edge['from']} -> {edge['to']} names unknown activity {missing[0]!r}")
        for label, chosen in (("start", self.start_activities), ("end", self.end_activities)):
            if not chosen:
                raise ValueError(f"{id}: {label} activity set is empty")
            unknown = sorted(set(chosen) - acts)
            if unknown:
                raise ValueError(f"{id}: unknown {label} activities {unknown}")

        self._successors: dict[str, list[str]] = {a: [] for a in self.activities}
        self._predecessors: dict[str, list[str]] = {a: [] for a in self.activities}
        self._edge_index: dict[str, dict] = {}
        for edge in self.edges:
            succ = self._successors.setdefault(edge["from"], [])
            if edge["to"] not in succ:
                succ.append(edge["to"])
            pred = self._predecessors.setdefault(edge["to"], [])
            if edge["from"] not in pred:
                pred.append(edge["from"])
            self._edge_index[transition_key(edge["from"], edge["to"])] = edge

        logger.debug("Loaded reference model id=%s activities=%d edges=%d",
                     id, len(self.activities), len(self.edges))

    # ── Lookups ──────────────────────────────────────────────────────────

    def successors(self, activity: str) -> list[str]:
        return list(self._successors.get(activity, []))

    def predecessors(self, activity: str) -> list[str]:
        return list(self._predecessors.get(activity, []))

    def is_valid_transition(self, from_activity: str, to_activity: str) -> bool:
        return transition_key(from_activity, to_activity) in self._edge_index

    def is_start_activity(self, activity: str) -> bool:
        return activity in self.start_activities

    def is_end_activity(self, activity: str) -> bool:
        return activity in self.end_activities

    def sla_target(self, from_activity: str, to_activity: str) -> dict | None:
        return self.sla_targets.get(transition_key(from_activity, to_activity))

    def is_acyclic(self) -> bool:
        in_degree = {a: 0 for a in self._successors}
        for targets in self._successors.values():
            for t in targets:
                in_degree[t] = in_degree.get(t, 0) + 1
        queue = deque(a for a, d in in_degree.items() if d == 0)
        seen = 0
        while queue:
            node = queue.popleft()
            seen += 1
            for succ in self._successors.get(node, []):
                in_degree[succ] -= 1
                if in_degree[succ] == 0:
                    queue.append(succ)
        return seen == len(in_degree)

    # ── Critical path ────────────────────────────────────────────────────

    def critical_path(self) -> list[str]:
        """
        Longest activity chain from a start activity to an end activity.

        Acyclic models use topological DP restricted to nodes reachable from
        the start set; models with loops fall back to a longest simple path
        search (the graphs are small).
        """
        if self.is_acyclic():
            path = self._longest_path_dag()
            if path:
                return path
        return self._longest_simple_path()

    def _longest_path_dag(self) -> list[str]:
        in_degree = {a: 0 for a in self._successors}
        for targets in self._successors.values():
            for t in targets:
                in_degree[t] += 1
        queue = deque(a for a in self._successors if in_degree[a] == 0)
        order: list[str] = []
        while queue:
            node = queue.popleft()
            order.append(node)
            for succ in self._successors[node]:
                in_degree[succ] -= 1
                if in_degree[succ] == 0:
                    queue.append(succ)

        dist: dict[str, int] = {a: 0 for a in order}
        prev: dict[str, str | None] = {a: None for a in order}
        for start in self.start_activities:
            if start in dist:
                dist[start] = 1
        for node in order:
            if dist[node] == 0:
                continue
            for succ in self._successors[node]:
                if dist[node] + 1 > dist[succ]:
                    dist[succ] = dist[node] + 1
                    prev[succ] = node

        best_end, best = None, 0
        for end in self.end_activities:
            if dist.get(end, 0) > best:
                best_end, best = end, dist[end]
        if best_end is None:
            return []

        path: list[str] = []
        node: str | None = best_end
        while node is not None:
            path.append(node)
            node = prev[node]
        path.reverse()
        return path

    def _longest_simple_path(self) -> list[str]:
        longest: list[str] = []
        for start in self.start_activities:
            stack = [(start, [start])]
            while stack:
                node, path = stack.pop()
                if node in self.end_activities and len(path) > len(longest):
                    longest = list(path)
                for succ in self._successors.get(node, []):
                    if succ not in path:
                        stack.append((succ, path + [succ]))
        return longest

    # ── Serialization ────────────────────────────────────────────────────

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "activities": list(self.activities),
            "edges": [dict(e) for e in self.edges],
            "startActivities": list(self.start_activities),
            "endActivities": list(self.end_activities),
            "slaTargets": {k: dict(v) for k, v in self.sla_targets.items()},
            "criticalTransitions": list(self.critical_transitions),
        }

    def __repr__(self):
        return f"<ReferenceModel {self.id} activities={len(self.activities)}>"


def _sla(target: float, unit: str, severity: str) -> dict:
    return {"target": target, "unit": unit, "severity": severity}


# ═════════════════════════════════════════════════════════════════════════════
# Model definitions
# ═════════════════════════════════════════════════════════════════════════════

# ── O2C: Order to Cash ─────────────────────────────────────────────────────
O2C = ReferenceModel(
    id="O2C",
    name="Order to Cash",
    activities=[
        "Create Sales Order", "Change Sales Order", "Credit Check", "Approve Credit",
        "Block Order", "Release Order", "Create Delivery", "Pick", "Pack",
        "Goods Issue", "Create Invoice", "Send Invoice", "Dunning",
        "Payment Received", "Clear Invoice",
    ],
    edges=[
        ("Create Sales Order", "Credit Check", "sequence"),
        ("Credit Check", "Create Delivery", "sequence"),
        ("Create Delivery", "Pick", "sequence"),
        ("Pick", "Pack", "sequence"),
        ("Pack", "Goods Issue", "sequence"),
        ("Goods Issue", "Create Invoice", "sequence"),
        ("Create Invoice", "Send Invoice", "sequence"),
        ("Send Invoice", "Payment Received", "sequence"),
        ("Payment Received", "Clear Invoice", "sequence"),
        # credit block
        ("Credit Check", "Block Order", "choice"),
        ("Block Order", "Approve Credit", "sequence"),
        ("Approve Credit", "Release Order", "sequence"),
        ("Release Order", "Create Delivery", "sequence"),
        # change / rework
        ("Create Sales Order", "Change Sales Order", "choice"),
        ("Change Sales Order", "Credit Check", "sequence"),
        ("Create Sales Order", "Create Delivery", "parallel"),
        # dunning loop
        ("Send Invoice", "Dunning", "choice"),
        ("Dunning", "Payment Received", "sequence"),
        ("Dunning", "Dunning", "choice"),
    ],
    start_activities=["Create Sales Order"],
    end_activities=["Clear Invoice"],
    sla_targets={
        transition_key("Create Sales Order", "Create Delivery"): _sla(3, "days", "warning"),
        transition_key("Create Delivery", "Goods Issue"): _sla(1, "days", "warning"),
        transition_key("Goods Issue", "Create Invoice"): _sla(2, "days", "warning"),
        transition_key("Create Invoice", "Payment Received"): _sla(30, "days", "critical"),
        transition_key("Create Sales Order", "Payment Received"): _sla(45, "days", "critical"),
        transition_key("Create Sales Order", "Clear Invoice"): _sla(50, "days", "critical"),
        transition_key("Credit Check", "Block Order"): _sla(1, "hours", "warning"),
        transition_key("Block Order", "Release Order"): _sla(2, "days", "warning"),
    },
    critical_transitions=[
        transition_key("Goods Issue", "Create Invoice"),
        transition_key("Create Invoice", "Payment Received"),
        transition_key("Payment Received", "Clear Invoice"),
        transition_key("Create Sales Order", "Credit Check"),
    ],
)

# ── P2P: Procure to Pay ────────────────────────────────────────────────────
P2P = ReferenceModel(
    id="P2P",
    name="Procure to Pay",
    activities=[
        "Create Purchase Requisition", "Approve Purchase Requisition",
        "Reject Purchase Requisition", "Create Purchase Order", "Approve Purchase Order",
        "Send Purchase Order", "Goods Receipt", "Invoice Receipt", "Three-Way Match",
        "Block Invoice", "Release Invoice", "Schedule Payment", "Payment Run",
        "Payment Clearing",
    ],
    edges=[
        ("Create Purchase Requisition", "Approve Purchase Requisition", "sequence"),
        ("Approve Purchase Requisition", "Create Purchase Order", "sequence"),
        ("Create Purchase Order", "Approve Purchase Order", "sequence"),
        ("Approve Purchase Order", "Send Purchase Order", "sequence"),
        ("Send Purchase Order", "Goods Receipt", "sequence"),
        ("Goods Receipt", "Invoice Receipt", "sequence"),
        ("Invoice Receipt", "Three-Way Match", "sequence"),
        ("Three-Way Match", "Schedule Payment", "sequence"),
        ("Schedule Payment", "Payment Run", "sequence"),
        ("Payment Run", "Payment Clearing", "sequence"),
        ("Create Purchase Requisition", "Reject Purchase Requisition", "choice"),
        ("Three-Way Match", "Block Invoice", "choice"),
        ("Block Invoice", "Release Invoice", "sequence"),
        ("Release Invoice", "Schedule Payment", "sequence"),
        ("Create Purchase Order", "Send Purchase Order", "parallel"),
        ("Send Purchase Order", "Invoice Receipt", "parallel"),
        ("Goods Receipt", "Three-Way Match", "parallel"),
    ],
    start_activities=["Create Purchase Requisition", "Create Purchase Order"],
    end_activities=["Payment Clearing", "Reject Purchase Requisition"],
    sla_targets={
        transition_key("Create Purchase Requisition", "Approve Purchase Requisition"): _sla(2, "days", "warning"),
        transition_key("Approve Purchase Requisition", "Create Purchase Order"): _sla(3, "days", "warning"),
        transition_key("Create Purchase Order", "Send Purchase Order"): _sla(1, "days", "warning"),
        transition_key("Send Purchase Order", "Goods Receipt"): _sla(14, "days", "warning"),
        transition_key("Goods Receipt", "Invoice Receipt"): _sla(5, "days", "warning"),
        transition_key("Invoice Receipt", "Three-Way Match"): _sla(2, "days", "warning"),
        transition_key("Three-Way Match", "Schedule Payment"): _sla(3, "days", "warning"),
        transition_key("Invoice Receipt", "Payment Clearing"): _sla(30, "days", "critical"),
        transition_key("Create Purchase Requisition", "Payment Clearing"): _sla(60, "days", "critical"),
        transition_key("Block Invoice", "Release Invoice"): _sla(5, "days", "warning"),
    },
    critical_transitions=[
        transition_key("Goods Receipt", "Invoice Receipt"),
        transition_key("Invoice Receipt", "Three-Way Match"),
        transition_key("Three-Way Match", "Schedule Payment"),
        transition_key("Payment Run", "Payment Clearing"),
    ],
)

# ── R2R: Record to Report ──────────────────────────────────────────────────
R2R = ReferenceModel(
    id="R2R",
    name="Record to Report",
    activities=[
        "Create Journal Entry", "Park Journal Entry", "Approve Journal Entry",
        "Post Journal Entry", "Reverse Journal Entry", "Clear Line Item",
        "Run Automatic Clearing", "Period Close Posting", "Execute Reconciliation",
        "Close Period",
    ],
    edges=[
        ("Create Journal Entry", "Post Journal Entry", "sequence"),
        ("Post Journal Entry", "Clear Line Item", "sequence"),
        ("Clear Line Item", "Run Automatic Clearing", "sequence"),
        ("Run Automatic Clearing", "Period Close Posting", "sequence"),
        ("Period Close Posting", "Execute Reconciliation", "sequence"),
        ("Execute Reconciliation", "Close Period", "sequence"),
        ("Create Journal Entry", "Park Journal Entry", "choice"),
        ("Park Journal Entry", "Approve Journal Entry", "sequence"),
        ("Approve Journal Entry", "Post Journal Entry", "sequence"),
        ("Post Journal Entry", "Reverse Journal Entry", "choice"),
        ("Reverse Journal Entry", "Create Journal Entry", "sequence"),
        ("Post Journal Entry", "Run Automatic Clearing", "parallel"),
        ("Period Close Posting", "Close Period", "parallel"),
    ],
    start_activities=["Create Journal Entry"],
    end_activities=["Close Period"],
    sla_targets={
        transition_key("Create Journal Entry", "Post Journal Entry"): _sla(1, "days", "warning"),
        transition_key("Park Journal Entry", "Approve Journal Entry"): _sla(1, "days", "warning"),
        transition_key("Approve Journal Entry", "Post Journal Entry"): _sla(4, "hours", "warning"),
        transition_key("Period Close Posting", "Close Period"): _sla(5, "days", "critical"),
        transition_key("Execute Reconciliation", "Close Period"): _sla(2, "days", "critical"),
        transition_key("Post Journal Entry", "Clear Line Item"): _sla(3, "days", "warning"),
        transition_key("Run Automatic Clearing", "Period Close Posting"): _sla(1, "days", "warning"),
    },
    critical_transitions=[
        transition_key("Approve Journal Entry", "Post Journal Entry"),
        transition_key("Execute Reconciliation", "Close Period"),
        transition_key("Period Close Posting", "Close Period"),
    ],
)

# ── A2R: Acquire to Retire ─────────────────────────────────────────────────
A2R = ReferenceModel(
    id="A2R",
    name="Acquire to Retire",
    activities=[
        "Create Asset Master", "Post Asset Acquisition", "Capitalize Asset",
        "Post Depreciation", "Transfer Asset", "Revalue Asset", "Retire Asset",
        "Scrap Asset", "Settle Asset",
    ],
    edges=[
        ("Create Asset Master", "Post Asset Acquisition", "sequence"),
        ("Post Asset Acquisition", "Capitalize Asset", "sequence"),
        ("Capitalize Asset", "Post Depreciation", "sequence"),
        ("Post Depreciation", "Retire Asset", "sequence"),
        ("Retire Asset", "Settle Asset", "sequence"),
        ("Post Depreciation", "Post Depreciation", "choice"),
        ("Post Depreciation", "Transfer Asset", "choice"),
        ("Transfer Asset", "Post Depreciation", "sequence"),
        ("Post Depreciation", "Revalue Asset", "choice"),
        ("Revalue Asset", "Post Depreciation", "sequence"),
        ("Post Depreciation", "Scrap Asset", "choice"),
        ("Scrap Asset", "Settle Asset", "sequence"),
        ("Capitalize Asset", "Retire Asset", "choice"),
        ("Capitalize Asset", "Scrap Asset", "choice"),
    ],
    start_activities=["Create Asset Master"],
    end_activities=["Settle Asset"],
    sla_targets={
        transition_key("Create Asset Master", "Post Asset Acquisition"): _sla(2, "days", "warning"),
        transition_key("Post Asset Acquisition", "Capitalize Asset"): _sla(5, "days", "warning"),
        transition_key("Capitalize Asset", "Post Depreciation"): _sla(30, "days", "warning"),
        transition_key("Retire Asset", "Settle Asset"): _sla(5, "days", "warning"),
        transition_key("Scrap Asset", "Settle Asset"): _sla(5, "days", "warning"),
        transition_key("Create Asset Master", "Capitalize Asset"): _sla(10, "days", "critical"),
    },
    critical_transitions=[
        transition_key("Post Asset Acquisition", "Capitalize Asset"),
        transition_key("Capitalize Asset", "Post Depreciation"),
        transition_key("Retire Asset", "Settle Asset"),
    ],
)

# ── H2R: Hire to Retire ────────────────────────────────────────────────────
H2R = ReferenceModel(
    id="H2R",
    name="Hire to Retire",
    activities=[
        "Create Employee", "Hire Action", "Assign Organizational Unit", "Assign Position",
        "Enter Basic Pay", "Onboard", "Change Position", "Promote", "Transfer",
        "Adjust Pay", "Process Payroll", "Terminate",
    ],
    edges=[
        ("Create Employee", "Hire Action", "sequence"),
        ("Hire Action", "Assign Organizational Unit", "sequence"),
        ("Assign Organizational Unit", "Assign Position", "sequence"),
        ("Assign Position", "Enter Basic Pay", "sequence"),
        ("Enter Basic Pay", "Onboard", "sequence"),
        ("Hire Action", "Assign Position", "parallel"),
        ("Hire Action", "Enter Basic Pay", "parallel"),
        ("Onboard", "Process Payroll", "sequence"),
        ("Onboard", "Change Position", "choice"),
        ("Onboard", "Promote", "choice"),
        ("Onboard", "Transfer", "choice"),
        ("Onboard", "Adjust Pay", "choice"),
        ("Change Position", "Process Payroll", "sequence"),
        ("Promote", "Adjust Pay", "sequence"),
        ("Adjust Pay", "Process Payroll", "sequence"),
        ("Transfer", "Assign Organizational Unit", "sequence"),
        ("Process Payroll", "Process Payroll", "choice"),
        ("Process Payroll", "Change Position", "choice"),
        ("Process Payroll", "Promote", "choice"),
        ("Process Payroll", "Transfer", "choice"),
        ("Process Payroll", "Adjust Pay", "choice"),
        ("Process Payroll", "Terminate", "sequence"),
        ("Onboard", "Terminate", "choice"),
    ],
    start_activities=["Create Employee"],
    end_activities=["Terminate"],
    sla_targets={
        transition_key("Create Employee", "Hire Action"): _sla(1, "days", "warning"),
        transition_key("Hire Action", "Onboard"): _sla(14, "days", "critical"),
        transition_key("Enter Basic Pay", "Onboard"): _sla(3, "days", "warning"),
        transition_key("Onboard", "Process Payroll"): _sla(30, "days", "warning"),
        transition_key("Process Payroll", "Process Payroll"): _sla(30, "days", "warning"),
        transition_key("Promote", "Adjust Pay"): _sla(5, "days", "warning"),
        transition_key("Change Position", "Process Payroll"): _sla(30, "days", "warning"),
        transition_key("Process Payroll", "Terminate"): _sla(30, "days", "warning"),
    },
    critical_transitions=[
        transition_key("Hire Action", "Onboard"),
        transition_key("Enter Basic Pay", "Onboard"),
        transition_key("Onboard", "Process Payroll"),
        transition_key("Process Payroll", "Terminate"),
    ],
)

# ── P2M: Plan to Manufacture ───────────────────────────────────────────────
P2M = ReferenceModel(
    id="P2M",
    name="Plan to Manufacture",
    activities=[
        "Create Production Order", "Plan Order", "Release Production Order",
        "Print Shop Floor Papers", "Issue Materials", "Start Operation",
        "Confirm Operation", "Partial Confirmation", "Goods Receipt",
        "Technically Complete", "Close Order", "Settle Order",
    ],
    edges=[
        ("Create Production Order", "Plan Order", "sequence"),
        ("Plan Order", "Release Production Order", "sequence"),
        ("Release Production Order", "Print Shop Floor Papers", "sequence"),
        ("Release Production Order", "Issue Materials", "parallel"),
        ("Print Shop Floor Papers", "Issue Materials", "sequence"),
        ("Issue Materials", "Start Operation", "sequence"),
        ("Start Operation", "Confirm Operation", "sequence"),
        ("Confirm Operation", "Goods Receipt", "sequence"),
        ("Goods Receipt", "Technically Complete", "sequence"),
        ("Technically Complete", "Close Order", "sequence"),
        ("Close Order", "Settle Order", "sequence"),
        ("Start Operation", "Partial Confirmation", "choice"),
        ("Partial Confirmation", "Start Operation", "sequence"),
        ("Partial Confirmation", "Confirm Operation", "sequence"),
        ("Confirm Operation", "Issue Materials", "parallel"),
        ("Goods Receipt", "Close Order", "parallel"),
        ("Confirm Operation", "Start Operation", "choice"),
    ],
    start_activities=["Create Production Order"],
    end_activities=["Settle Order"],
    sla_targets={
        transition_key("Create Production Order", "Plan Order"): _sla(1, "days", "warning"),
        transition_key("Plan Order", "Release Production Order"): _sla(2, "days", "warning"),
        transition_key("Release Production Order", "Issue Materials"): _sla(1, "days", "critical"),
        transition_key("Issue Materials", "Start Operation"): _sla(4, "hours", "warning"),
        transition_key("Start Operation", "Confirm Operation"): _sla(5, "days", "warning"),
        transition_key("Confirm Operation", "Goods Receipt"): _sla(1, "days", "warning"),
        transition_key("Goods Receipt", "Technically Complete"): _sla(2, "days", "warning"),
        transition_key("Technically Complete", "Settle Order"): _sla(5, "days", "warning"),
        transition_key("Release Production Order", "Goods Receipt"): _sla(10, "days", "critical"),
    },
    critical_transitions=[
        transition_key("Release Production Order", "Issue Materials"),
        transition_key("Confirm Operation", "Goods Receipt"),
        transition_key("Goods Receipt", "Technically Complete"),
        transition_key("Close Order", "Settle Order"),
    ],
)

# ── M2S: Maintain to Settle ────────────────────────────────────────────────
M2S = ReferenceModel(
    id="M2S",
    name="Maintain to Settle",
    activities=[
        "Create Notification", "Classify Notification", "Approve Notification",
        "Create Work Order", "Plan Work Order", "Release Work Order", "Print Work Order",
        "Issue Spare Parts", "Execute Maintenance", "Confirm Operations",
        "Technically Complete", "Settle Work Order",
    ],
    edges=[
        ("Create Notification", "Classify Notification", "sequence"),
        ("Classify Notification", "Approve Notification", "sequence"),
        ("Approve Notification", "Create Work Order", "sequence"),
        ("Create Work Order", "Plan Work Order", "sequence"),
        ("Plan Work Order", "Release Work Order", "sequence"),
        ("Release Work Order", "Print Work Order", "sequence"),
        ("Print Work Order", "Issue Spare Parts", "sequence"),
        ("Issue Spare Parts", "Execute Maintenance", "sequence"),
        ("Execute Maintenance", "Confirm Operations", "sequence"),
        ("Confirm Operations", "Technically Complete", "sequence"),
        ("Technically Complete", "Settle Work Order", "sequence"),
        ("Create Notification", "Create Work Order", "parallel"),
        ("Approve Notification", "Release Work Order", "parallel"),
        ("Release Work Order", "Issue Spare Parts", "parallel"),
        ("Release Work Order", "Execute Maintenance", "parallel"),
        ("Print Work Order", "Execute Maintenance", "parallel"),
        ("Confirm Operations", "Execute Maintenance", "choice"),
        ("Execute Maintenance", "Issue Spare Parts", "choice"),
    ],
    start_activities=["Create Notification"],
    end_activities=["Settle Work Order"],
    sla_targets={
        transition_key("Create Notification", "Classify Notification"): _sla(4, "hours", "warning"),
        transition_key("Classify Notification", "Approve Notification"): _sla(1, "days", "warning"),
        transition_key("Create Notification", "Create Work Order"): _sla(1, "days", "critical"),
        transition_key("Approve Notification", "Create Work Order"): _sla(5, "days", "warning"),
        transition_key("Plan Work Order", "Release Work Order"): _sla(3, "days", "warning"),
        transition_key("Release Work Order", "Execute Maintenance"): _sla(5, "days", "warning"),
        transition_key("Execute Maintenance", "Confirm Operations"): _sla(2, "days", "warning"),
        transition_key("Confirm Operations", "Technically Complete"): _sla(1, "days", "warning"),
        transition_key("Technically Complete", "Settle Work Order"): _sla(5, "days", "warning"),
        transition_key("Create Notification", "Settle Work Order"): _sla(30, "days", "critical"),
    },
    critical_transitions=[
        transition_key("Create Notification", "Create Work Order"),
        transition_key("Release Work Order", "Execute Maintenance"),
        transition_key("Execute Maintenance", "Confirm Operations"),
        transition_key("Technically Complete", "Settle Work Order"),
    ],
)


# ═════════════════════════════════════════════════════════════════════════════
# Registry
# ═════════════════════════════════════════════════════════════════════════════

REFERENCE_MODELS: dict[str, ReferenceModel] = {
    m.id: m for m in (O2C, P2P, R2R, A2R, H2R, P2M, M2S)
}


def get_reference_model(process_id: str) -> ReferenceModel | None:
    """Return the model for *process_id*, or None (with a warning) if absent."""
    model = REFERENCE_MODELS.get(process_id)
    if model is None:
        logger.warning("Reference model not found process_id=%s", process_id)
    return model


def all_reference_model_ids() -> list[str]:
    return list(REFERENCE_MODELS)
