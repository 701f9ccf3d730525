"""
Cutover planner — task DAG, critical path, go/no-go checklist, rollback plan.

Business logic for:
    - Task generation:       19 base tasks over prep → migrate → validate → test → golive
    - Verification tasks:    one per completed migration object (max 10), after task 5
    - Critical path:         memoized longest-duration dependency chain
    - Go/No-Go checklist:    15 fixed items, mandatory flag, initial status pending
    - Rollback plan:         trigger criteria, 8 timed steps, decision window
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from landscape.core.exceptions import ValidationError

logger = logging.getLogger(__name__)

PHASES = ("prep", "migrate", "validate", "test", "golive")
PRIORITIES = ("critical", "high", "medium", "low")
TASK_STATUSES = ("planned", "in-progress", "done", "blocked")
CHECKLIST_STATUSES = ("pending", "passed", "failed", "waived")

MAX_VERIFICATION_TASKS = 10
VERIFICATION_ANCHOR_TASK = 5

# (phase, name, durationHours, dependencies, priority); ids are positional from 1
BASE_TASKS: list[tuple[str, str, float, list[int], str]] = [
    ("prep", "System backup", 4, [], "critical"),
    ("prep", "Lock users in source system", 0.5, [1], "critical"),
    ("prep", "Verify no open transactions", 1, [2], "critical"),
    ("prep", "Export configuration transport", 2, [1], "high"),
    ("migrate", "Run master data migration", 3, [3], "critical"),
    ("migrate", "Run transactional data migration", 4, [5], "critical"),
    ("migrate", "Run open items migration", 2, [5], "high"),
    ("migrate", "Run configuration migration", 1, [3], "high"),
    ("validate", "Record count reconciliation", 1, [6, 7], "critical"),
    ("validate", "Financial balance reconciliation", 2, [6], "critical"),
    ("validate", "Master data spot checks", 1, [5], "high"),
    ("validate", "Data quality report review", 1, [9], "high"),
    ("test", "Execute critical business process tests", 3, [9, 10], "critical"),
    ("test", "Execute integration tests", 2, [13], "high"),
    ("test", "Execute performance tests", 2, [13], "medium"),
    ("golive", "Go/No-Go decision", 0.5, [13, 14], "critical"),
    ("golive", "Unlock users in target system", 0.5, [16], "critical"),
    ("golive", "Enable production interfaces", 1, [17], "critical"),
    ("golive", "Hypercare monitoring start", 0, [18], "critical"),
]

CHECKLIST: list[tuple[str, str, str, bool]] = [
    ("CHK-001", "Data", "All migration objects completed successfully", True),
    ("CHK-002", "Data", "Record count reconciliation passed", True),
    ("CHK-003", "Data", "Financial balance reconciliation passed", True),
    ("CHK-004", "Data", "Data quality report reviewed and accepted", True),
    ("CHK-005", "Testing", "All critical business process tests passed", True),
    ("CHK-006", "Testing", "Integration tests passed", True),
    ("CHK-007", "Testing", "Performance tests within SLA", False),
    ("CHK-008", "Technical", "System backup completed", True),
    ("CHK-009", "Technical", "Rollback plan tested", True),
    ("CHK-010", "Technical", "Network/firewall rules configured", True),
    ("CHK-011", "Organization", "Go-live communication sent", True),
    ("CHK-012", "Organization", "Support team on standby", True),
    ("CHK-013", "Organization", "Business sign-off received", True),
    ("CHK-014", "Technical", "Interfaces tested in production", False),
    ("CHK-015", "Technical", "Monitoring and alerting configured", True),
]

ROLLBACK_TRIGGERS = [
    "Critical business process failure that cannot be resolved within 4 hours",
    "Data integrity issue affecting financial reporting",
    "System performance below acceptable thresholds for more than 2 hours",
    "Business decision to abort go-live",
]

ROLLBACK_STEPS: list[tuple[str, int]] = [
    ("Lock users in target system", 5),
    ("Disable production interfaces", 15),
    ("Restore source system from backup", 120),
    ("Verify source system data integrity", 60),
    ("Re-enable source system interfaces", 30),
    ("Unlock users in source system", 5),
    ("Communicate rollback to stakeholders", 15),
    ("Root cause analysis", 240),
]

MAX_DECISION_WINDOW_HOURS = 4


def _task(task_id: int, phase: str, name: str, duration: float, deps: list[int], priority: str) -> dict:
    return {
        "id": task_id,
        "phase": phase,
        "name": name,
        "durationHours": duration,
        "dependencies": list(deps),
        "priority": priority,
        "status": "planned",
    }


def _round(hours: float) -> float:
    return round(hours * 10) / 10


def _duration(tasks: list[dict]) -> float:
    return sum(t["durationHours"] for t in tasks)


def _extracted_count(result: dict) -> int:
    extract = (result.get("phases") or {}).get("extract") or {}
    return extract.get("count", extract.get("recordCount", 0)) or 0


# ── Tasks ────────────────────────────────────────────────────────────────────


def generate_tasks(object_results: list[dict] | None = None) -> list[dict]:
    tasks = [_task(i, *spec) for i, spec in enumerate(BASE_TASKS, start=1)]
    seq = len(tasks)
    for result in (object_results or [])[:MAX_VERIFICATION_TASKS]:
        seq += 1
        tasks.append(_task(
            seq, "migrate",
            f"Verify {result.get('objectId')}: {_extracted_count(result)} records",
            0.5, [VERIFICATION_ANCHOR_TASK], "medium",
        ))
    validate_task_order(tasks)
    return tasks


def validate_task_order(tasks: list[dict]) -> None:
    """Every dependency must name a task defined earlier in the list."""
    seen: set[int] = set()
    for task in tasks:
        for dep in task["dependencies"]:
            if dep not in seen:
                raise ValidationError(
                    f"Task {task['id']} depends on {dep}, which is not defined earlier",
                    details={"taskId": task["id"], "dependency": dep},
                )
        seen.add(task["id"])


# ── Critical Path ────────────────────────────────────────────────────────────


def critical_path(tasks: list[dict]) -> list[dict]:
    """Longest-duration dependency chain, memoized per task."""
    by_id = {t["id"]: t for t in tasks}
    memo: dict[int, list[dict]] = {}

    def longest(task_id: int) -> list[dict]:
        if task_id in memo:
            return memo[task_id]
        task = by_id.get(task_id)
        if task is None:
            return []
        best: list[dict] = []
        for dep in task["dependencies"]:
            path = longest(dep)
            if _duration(path) > _duration(best):
                best = path
        memo[task_id] = best + [task]
        return memo[task_id]

    path: list[dict] = []
    for task in tasks:
        candidate = longest(task["id"])
        if _duration(candidate) > _duration(path):
            path = candidate
    return path


def phase_summary(tasks: list[dict]) -> dict[str, dict]:
    phases: dict[str, dict] = {}
    for task in tasks:
        bucket = phases.setdefault(task["phase"], {"count": 0, "durationHours": 0.0})
        bucket["count"] += 1
        bucket["durationHours"] = _round(bucket["durationHours"] + task["durationHours"])
    return phases


# ── Checklist & Rollback ─────────────────────────────────────────────────────


def generate_checklist() -> list[dict]:
    return [
        {"id": cid, "category": category, "item": item, "mandatory": mandatory, "status": "pending"}
        for cid, category, item, mandatory in CHECKLIST
    ]


def go_no_go_summary(checklist: list[dict]) -> dict:
    """
    Aggregate checklist statuses into a recommendation.

    GO only when every mandatory item passed (or was waived) and nothing failed.
    """
    counts = {status: 0 for status in CHECKLIST_STATUSES}
    for item in checklist:
        counts[item["status"]] = counts.get(item["status"], 0) + 1
    open_mandatory = [
        i["id"] for i in checklist
        if i["mandatory"] and i["status"] not in ("passed", "waived")
    ]

    if not checklist:
        overall = "no_items"
    elif counts["failed"]:
        overall = "no_go"
    elif open_mandatory:
        overall = "pending"
    else:
        overall = "go"
    return {"total": len(checklist), **counts, "openMandatory": open_mandatory, "overallRecommendation": overall}


def generate_rollback_plan() -> dict:
    steps = [
        {"seq": i, "action": action, "durationMin": minutes}
        for i, (action, minutes) in enumerate(ROLLBACK_STEPS, start=1)
    ]
    return {
        "triggerCriteria": list(ROLLBACK_TRIGGERS),
        "steps": steps,
        "totalRollbackTimeMin": sum(s["durationMin"] for s in steps),
        "maxDecisionWindowHours": MAX_DECISION_WINDOW_HOURS,
    }


# ── Plan ─────────────────────────────────────────────────────────────────────


class CutoverPlanner:
    def generate_plan(self, project: dict | None = None, object_results: list[dict] | None = None) -> dict:
        project = project or {}
        tasks = generate_tasks(object_results)
        checklist = generate_checklist()
        path = critical_path(tasks)

        plan = {
            "projectId": project.get("projectId"),
            "projectName": project.get("name"),
            "generatedAt": datetime.now(timezone.utc).isoformat(),
            "summary": {
                "totalTasks": len(tasks),
                "totalDurationHours": _round(_duration(tasks)),
                "criticalPathHours": _round(_duration(path)),
                "phases": phase_summary(tasks),
                "checklistItems": len(checklist),
            },
            "tasks": tasks,
            "criticalPath": [t["id"] for t in path],
            "checklist": checklist,
            "goNoGo": go_no_go_summary(checklist),
            "rollback": generate_rollback_plan(),
        }
        logger.info(
            "Cutover plan generated project=%s tasks=%d critical_path_hours=%s",
            plan["projectId"], len(tasks), plan["summary"]["criticalPathHours"],
        )
        return plan
