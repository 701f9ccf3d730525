"""
tests/test_cutover.py — Cutover plan generation.

Covers:
    1.  Task generation: base tasks, verification tasks, dependency order
    2.  Critical path: known base path, maximality against every chain
    3.  Go/No-Go checklist aggregation
    4.  Rollback plan
    5.  Full plan and workbook export
"""

import io

import pytest
from openpyxl import load_workbook

from landscape.core.exceptions import ValidationError
from landscape.cutover.planner import (
    BASE_TASKS,
    MAX_VERIFICATION_TASKS,
    CutoverPlanner,
    critical_path,
    generate_checklist,
    generate_rollback_plan,
    generate_tasks,
    go_no_go_summary,
    phase_summary,
    validate_task_order,
)
from landscape.services.export_service import export_cutover_plan_xlsx


def _object_result(object_id, count):
    return {"objectId": object_id, "status": "loaded", "phases": {"extract": {"count": count}}}


def _all_chain_durations(tasks):
    """Every dependency chain ending at each task, by brute force."""
    by_id = {t["id"]: t for t in tasks}

    def chains(task_id):
        task = by_id[task_id]
        if not task["dependencies"]:
            return [[task_id]]
        return [c + [task_id] for dep in task["dependencies"] for c in chains(dep)]

    return [
        sum(by_id[i]["durationHours"] for i in chain)
        for t in tasks
        for chain in chains(t["id"])
    ]


# ═════════════════════════════════════════════════════════════════════════════
# 1. Tasks
# ═════════════════════════════════════════════════════════════════════════════


class TestTasks:
    def test_base_tasks(self):
        tasks = generate_tasks()
        assert len(tasks) == len(BASE_TASKS) == 19
        assert tasks[0] == {
            "id": 1, "phase": "prep", "name": "System backup", "durationHours": 4,
            "dependencies": [], "priority": "critical", "status": "planned",
        }
        assert [t["id"] for t in tasks] == list(range(1, 20))

    def test_verification_tasks(self):
        tasks = generate_tasks([_object_result("ITEM", 25), _object_result("CUSTOMER", 40)])
        assert len(tasks) == 21
        extra = tasks[19:]
        assert [t["name"] for t in extra] == ["Verify ITEM: 25 records", "Verify CUSTOMER: 40 records"]
        assert all(t["dependencies"] == [5] and t["phase"] == "migrate" for t in extra)

    def test_verification_tasks_capped(self):
        results = [_object_result(f"OBJ{i}", i) for i in range(15)]
        assert len(generate_tasks(results)) == len(BASE_TASKS) + MAX_VERIFICATION_TASKS

    def test_dependencies_precede(self):
        tasks = generate_tasks([_object_result("ITEM", 1)])
        position = {t["id"]: i for i, t in enumerate(tasks)}
        for task in tasks:
            for dep in task["dependencies"]:
                assert position[dep] < position[task["id"]]

    def test_forward_reference_rejected(self):
        tasks = [
            {"id": 1, "dependencies": [2], "durationHours": 1},
            {"id": 2, "dependencies": [], "durationHours": 1},
        ]
        with pytest.raises(ValidationError) as exc:
            validate_task_order(tasks)
        assert exc.value.details == {"taskId": 1, "dependency": 2}

    def test_phase_summary(self):
        phases = phase_summary(generate_tasks())
        assert list(phases) == ["prep", "migrate", "validate", "test", "golive"]
        assert phases["prep"] == {"count": 4, "durationHours": 7.5}
        assert phases["golive"]["count"] == 4


# ═════════════════════════════════════════════════════════════════════════════
# 2. Critical path
# ═════════════════════════════════════════════════════════════════════════════


class TestCriticalPath:
    def test_base_path(self):
        path = critical_path(generate_tasks())
        assert [t["id"] for t in path] == [1, 2, 3, 5, 6, 10, 13, 14, 16, 17, 18]
        assert sum(t["durationHours"] for t in path) == 21.5

    def test_path_is_a_chain(self):
        path = critical_path(generate_tasks([_object_result("ITEM", 3)]))
        for prev, cur in zip(path, path[1:]):
            assert prev["id"] in cur["dependencies"]

    def test_maximal(self):
        tasks = generate_tasks([_object_result("ITEM", 3), _object_result("BOM", 10)])
        duration = sum(t["durationHours"] for t in critical_path(tasks))
        assert duration == max(_all_chain_durations(tasks))

    def test_maximal_with_long_verification(self):
        tasks = generate_tasks()
        tasks.append({
            "id": 20, "phase": "migrate", "name": "Long verify", "durationHours": 30,
            "dependencies": [5], "priority": "medium", "status": "planned",
        })
        path = critical_path(tasks)
        assert [t["id"] for t in path] == [1, 2, 3, 5, 20]
        assert sum(t["durationHours"] for t in path) == max(_all_chain_durations(tasks))

    def test_empty(self):
        assert critical_path([]) == []


# ═════════════════════════════════════════════════════════════════════════════
# 3. Go / No-Go
# ═════════════════════════════════════════════════════════════════════════════


class TestGoNoGo:
    def test_checklist(self):
        checklist = generate_checklist()
        assert len(checklist) == 15
        assert checklist[0]["id"] == "CHK-001"
        assert all(item["status"] == "pending" for item in checklist)
        assert sum(1 for item in checklist if not item["mandatory"]) == 2

    def test_pending_initially(self):
        summary = go_no_go_summary(generate_checklist())
        assert summary["overallRecommendation"] == "pending"
        assert summary["pending"] == 15
        assert len(summary["openMandatory"]) == 13

    def test_go_when_mandatory_passed(self):
        checklist = generate_checklist()
        for item in checklist:
            if item["mandatory"]:
                item["status"] = "passed"
        checklist[1]["status"] = "waived"
        summary = go_no_go_summary(checklist)
        assert summary["overallRecommendation"] == "go"
        assert summary["openMandatory"] == []

    def test_any_failure_is_no_go(self):
        checklist = generate_checklist()
        for item in checklist:
            item["status"] = "passed"
        checklist[6]["status"] = "failed"
        assert go_no_go_summary(checklist)["overallRecommendation"] == "no_go"

    def test_empty(self):
        assert go_no_go_summary([])["overallRecommendation"] == "no_items"


# ═════════════════════════════════════════════════════════════════════════════
# 4-5. Rollback and full plan
# ═════════════════════════════════════════════════════════════════════════════


class TestPlan:
    def test_rollback(self):
        rollback = generate_rollback_plan()
        assert len(rollback["steps"]) == 8
        assert [s["seq"] for s in rollback["steps"]] == list(range(1, 9))
        assert rollback["totalRollbackTimeMin"] == 490
        assert rollback["maxDecisionWindowHours"] == 4
        assert len(rollback["triggerCriteria"]) == 4

    def test_generate_plan(self):
        plan = CutoverPlanner().generate_plan(
            {"projectId": "P-1", "name": "Wave 1"},
            [_object_result("ITEM", 25), _object_result("CUSTOMER", 40)],
        )
        assert plan["projectId"] == "P-1"
        assert plan["summary"]["totalTasks"] == 21
        assert len(plan["tasks"]) == 21
        assert len(plan["checklist"]) == 15
        assert len(plan["rollback"]["steps"]) == 8
        assert plan["criticalPath"] == [1, 2, 3, 5, 6, 10, 13, 14, 16, 17, 18]
        assert plan["summary"]["criticalPathHours"] == 21.5
        assert plan["goNoGo"]["overallRecommendation"] == "pending"

    def test_workbook_export(self):
        plan = CutoverPlanner().generate_plan({}, [_object_result("ITEM", 25)])
        wb = load_workbook(io.BytesIO(export_cutover_plan_xlsx(plan)))
        assert wb.sheetnames == ["Tasks", "Go-No-Go", "Rollback"]
        tasks = wb["Tasks"]
        assert tasks.max_row == 1 + 20
        assert tasks.cell(row=2, column=8).value == "yes"
        assert wb["Go-No-Go"].max_row == 1 + 15
