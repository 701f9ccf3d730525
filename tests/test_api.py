"""
tests/test_api.py — HTTP surface of the analyzer blueprint.

Covers:
    1.  Runs: start (inline), status, progress, results, coverage, listing, resume
    2.  Run analysis: interpretations, process catalog, findings, gaps
    3.  Exports: structured / tabular / process-mining-log / workbook
    4.  Error contract: 404 / 422 / 409 / 400 / 403 bodies
    5.  Catalog endpoints: extractors, reference models, canonical model
    6.  Migration plan / run and cutover plan (JSON + workbook)
    7.  Security: tiers, approvals with X-User, audit trail, chain verification
    8.  Health
"""

import io
import json

from openpyxl import load_workbook

from landscape.integrations.source_gateway import MockSourceGateway
from landscape.models import db
from landscape.models.run import AnalysisRun
from landscape.services import run_service

API = "/api/v1"
DONE = ("completed", "completed_with_gaps")


def _run(client, **body):
    body.setdefault("wait", True)
    rv = client.post(f"{API}/runs", json=body, headers={"X-User": "alice"})
    assert rv.status_code == 201, rv.get_json()
    return rv.get_json()


def _approval(client, operation, user="alice"):
    rv = client.post(f"{API}/security/approvals", json={"operation": operation}, headers={"X-User": user})
    assert rv.status_code == 201
    return rv.get_json()


# ═════════════════════════════════════════════════════════════════════════════
# 1. Runs
# ═════════════════════════════════════════════════════════════════════════════


class TestRuns:
    def test_start_inline(self, client):
        run = _run(client, modules=["FI", "CO"])
        assert run["status"] in DONE
        assert run["exitCode"] == 0
        assert run["user"] == "alice"
        assert run["filters"]["modules"] == ["FI", "CO"]
        extractors = run["summary"]["extractors"]
        assert set(extractors) == {"FI_CONFIG", "CO_CONFIG"}
        assert all(s in DONE for s in extractors.values())

    def test_get_and_progress(self, client):
        run = _run(client, modules="FI")
        rv = client.get(f"{API}/runs/{run['runId']}")
        assert rv.status_code == 200
        assert rv.get_json()["runId"] == run["runId"]
        progress = client.get(f"{API}/runs/{run['runId']}/progress").get_json()
        assert progress["completed"] == progress["total"] == 1
        assert progress["status"] in DONE

    def test_results_and_coverage(self, client):
        run = _run(client, extractorIds=["FI_CONFIG"])
        results = client.get(f"{API}/runs/{run['runId']}/results").get_json()
        assert list(results) == ["FI_CONFIG"]
        assert results["FI_CONFIG"]["companyCodes"]
        one = client.get(f"{API}/runs/{run['runId']}/results?extractor=FI_CONFIG")
        assert one.status_code == 200
        missing = client.get(f"{API}/runs/{run['runId']}/results?extractor=MM_CONFIG")
        assert missing.status_code == 404
        coverage = client.get(f"{API}/runs/{run['runId']}/coverage").get_json()
        assert set(coverage) == {"system", "byModule", "byExtractor", "gaps", "tables"}
        assert "FI" in coverage["byModule"]

    def test_list_runs(self, client):
        _run(client, modules=["FI"])
        _run(client, modules=["CO"])
        data = client.get(f"{API}/runs").get_json()
        assert data["total"] == 2
        assert client.get(f"{API}/runs?status=failed").get_json()["total"] == 0

    def test_broken_stream_resumes_on_next_run(self, client, app, monkeypatch):
        monkeypatch.setitem(app.config, "GATEWAY_PAGE_SIZE", 10)
        broken = run_service.start_run(
            extractor_ids=["CHANGE_DOCUMENTS"], wait=True,
            gateway=MockSourceGateway(failures={"CDHDR": {"kind": "transport_error", "after_pages": 1}}),
        )
        first = client.get(f"{API}/runs/{broken.run_id}/coverage").get_json()
        cdhdr = next(t for t in first["tables"] if t["table"] == "CDHDR")
        assert cdhdr["status"] == "failed"

        run = _run(client, extractorIds=["CHANGE_DOCUMENTS"])
        assert run["runId"] != broken.run_id
        second = client.get(f"{API}/runs/{run['runId']}/coverage").get_json()
        cdhdr = next(t for t in second["tables"] if t["table"] == "CDHDR")
        assert cdhdr["status"] == "extracted"
        assert cdhdr["metadata"]["resumed"] is True


# ═════════════════════════════════════════════════════════════════════════════
# 2. Run analysis
# ═════════════════════════════════════════════════════════════════════════════


class TestRunAnalysis:
    def test_interpretations(self, client):
        run = _run(client, modules=["FI"])
        data = client.get(f"{API}/runs/{run['runId']}/interpretations").get_json()
        assert any(i["ruleId"] == "FI-COCD-001" for i in data["interpretations"])
        md = client.get(f"{API}/runs/{run['runId']}/interpretations?format=markdown")
        assert md.mimetype == "text/markdown"
        assert md.get_data(as_text=True).startswith("# Configuration Interpretation Report")

    def test_process_catalog(self, client):
        run = _run(client, modules=["PROCESS"])
        catalog = client.get(f"{API}/runs/{run['runId']}/process-catalog").get_json()
        ids = {p["id"] for p in catalog["processes"]}
        assert {"O2C", "P2P"} <= ids
        md = client.get(f"{API}/runs/{run['runId']}/process-catalog?format=markdown")
        assert md.get_data(as_text=True).startswith("# Process Catalog")

    def test_findings_and_gaps(self, client):
        run = _run(client)
        findings = client.get(f"{API}/runs/{run['runId']}/findings").get_json()
        assert findings["summary"]["totalFindings"] == len(findings["findings"])
        gaps = client.get(f"{API}/runs/{run['runId']}/gaps").get_json()
        assert set(gaps) == {"gaps", "confidence", "humanValidation"}


# ═════════════════════════════════════════════════════════════════════════════
# 3. Exports
# ═════════════════════════════════════════════════════════════════════════════


class TestExports:
    def test_structured(self, client):
        run = _run(client, modules=["FI"])
        rv = client.get(f"{API}/runs/{run['runId']}/export?format=structured")
        assert rv.status_code == 200
        assert rv.mimetype == "application/json"
        assert f"run-{run['runId'][:8]}.json" in rv.headers["Content-Disposition"]
        doc = json.loads(rv.get_data())
        assert doc["runId"] == run["runId"]
        assert "FI_CONFIG" in doc["results"]

    def test_tabular(self, client):
        run = _run(client, modules=["PROCESS"])
        rv = client.get(f"{API}/runs/{run['runId']}/export?format=tabular")
        assert rv.mimetype == "text/csv"
        lines = rv.get_data(as_text=True).splitlines()
        assert lines[0] == "caseId,activity,timestamp,user,transactionCode"
        assert len(lines) > 1

    def test_process_mining_log(self, client):
        run = _run(client, modules=["PROCESS"])
        rv = client.get(f"{API}/runs/{run['runId']}/export?format=process-mining-log")
        assert rv.mimetype == "application/xml"
        assert b"<trace>" in rv.get_data()

    def test_workbook(self, client):
        run = _run(client, modules=["FI", "PROCESS"])
        rv = client.get(f"{API}/runs/{run['runId']}/export?format=workbook")
        assert rv.mimetype == "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
        wb = load_workbook(io.BytesIO(rv.get_data()))
        assert wb.sheetnames == ["Coverage", "Gaps", "Interpretations", "Process Catalog"]

    def test_unknown_format(self, client):
        run = _run(client, modules=["FI"])
        rv = client.get(f"{API}/runs/{run['runId']}/export?format=pdf")
        assert rv.status_code == 422
        assert rv.get_json()["details"] == {"format": "pdf"}

    def test_export_is_logged(self, client):
        run = _run(client, modules=["FI"])
        client.get(f"{API}/runs/{run['runId']}/export", headers={"X-User": "bob"})
        trail = client.get(f"{API}/security/audit-trail?operation=extraction.export").get_json()
        assert trail["total"] == 1
        assert trail["entries"][0]["user"] == "bob"


# ═════════════════════════════════════════════════════════════════════════════
# 4. Error contract
# ═════════════════════════════════════════════════════════════════════════════


class TestErrors:
    def test_unknown_run(self, client):
        rv = client.get(f"{API}/runs/does-not-exist")
        assert rv.status_code == 404
        body = rv.get_json()
        assert body["code"] == "ERR_NOT_FOUND"
        assert "error" in body

    def test_unknown_extractor(self, client):
        rv = client.post(f"{API}/runs", json={"wait": True, "extractorIds": ["NOPE"]})
        assert rv.status_code == 422
        body = rv.get_json()
        assert body["code"] == "ERR_VALIDATION_INVALID"
        assert body["details"] == {"extractorIds": ["NOPE"]}

    def test_invalid_concurrency_and_mode(self, client):
        assert client.post(f"{API}/runs", json={"concurrency": 0}).status_code == 422
        assert client.post(f"{API}/runs", json={"concurrency": "many"}).status_code == 422
        assert client.post(f"{API}/runs", json={"mode": "turbo"}).status_code == 422

    def test_results_of_running_run_conflict(self, client):
        db.session.add(AnalysisRun(run_id="r-running", mode="mock", status="running", concurrency=1))
        db.session.commit()
        rv = client.get(f"{API}/runs/r-running/results")
        assert rv.status_code == 409
        assert rv.get_json()["code"] == "ERR_CONFLICT_STATE"

    def test_cancel_finished_run_conflict(self, client):
        run = _run(client, modules=["FI"])
        assert client.post(f"{API}/runs/{run['runId']}/cancel").status_code == 409

    def test_method_not_allowed_passes_through(self, client):
        assert client.delete(f"{API}/runs").status_code == 405


# ═════════════════════════════════════════════════════════════════════════════
# 5. Catalog endpoints
# ═════════════════════════════════════════════════════════════════════════════


class TestCatalogs:
    def test_extractors(self, client):
        data = client.get(f"{API}/extractors").get_json()
        assert len(data) == 15
        assert data[0]["extractorId"] == "SYSTEM_INFO"
        assert all("expectedTables" in d for d in data)

    def test_reference_models(self, client):
        data = client.get(f"{API}/reference-models").get_json()
        assert [m["id"] for m in data] == ["O2C", "P2P", "R2R", "A2R", "H2R", "P2M", "M2S"]
        o2c = client.get(f"{API}/reference-models/O2C").get_json()
        assert o2c["criticalPath"][0] == "Create Sales Order"
        assert o2c["criticalPath"][-1] == "Clear Invoice"
        assert client.get(f"{API}/reference-models/XYZ").status_code == 404

    def test_canonical(self, client):
        assert len(client.get(f"{API}/canonical/systems").get_json()) == 5
        entities = client.get(f"{API}/canonical/entities").get_json()
        assert entities["Item"]["itemId"]["required"] is True
        mappings = client.get(f"{API}/canonical/mappings/SAP/Item").get_json()
        assert {"source": "MATNR", "target": "itemId", "converted": False} in mappings
        assert client.get(f"{API}/canonical/mappings/SAP/Spaceship").status_code == 404
        assert client.get(f"{API}/canonical/mappings/ORACLE/Item").status_code == 422

    def test_canonical_validate(self, client):
        rv = client.post(f"{API}/canonical/validate", json={
            "entity": "Item", "family": "SAP", "record": {"MATNR": "M1", "MAKTX": "Pump", "MEINS": "EA"},
        })
        data = rv.get_json()
        assert data["itemId"] == "M1"
        assert data["validation"]["valid"] is True
        invalid = client.post(f"{API}/canonical/validate", json={"entity": "Item", "record": {}}).get_json()
        assert not invalid["validation"]["valid"]
        rv = client.post(f"{API}/canonical/validate", json={})
        assert rv.status_code == 400
        assert rv.get_json()["code"] == "ERR_VALIDATION_REQUIRED"


# ═════════════════════════════════════════════════════════════════════════════
# 6. Migration and cutover
# ═════════════════════════════════════════════════════════════════════════════


class TestMigrationAndCutover:
    def test_objects_and_plan(self, client):
        assert len(client.get(f"{API}/migration/objects").get_json()) == 12
        plan = client.get(f"{API}/migration/plan?objects=BOM,ITEM").get_json()
        assert plan["order"] == ["ITEM", "BOM"]

    def test_dry_run_by_default(self, client):
        data = client.post(f"{API}/migration/run", json={"objects": ["COST_CENTER"]}).get_json()
        assert data["dryRun"] is True
        assert data["results"][0]["status"] == "dry-run"

    def test_sandbox_load(self, client):
        data = client.post(
            f"{API}/migration/run",
            json={"objects": ["COST_CENTER", "WORK_CENTER"], "dryRun": False},
            headers={"X-User": "alice"},
        ).get_json()
        assert data["loaded"] == 2

    def test_staging_load_needs_approval(self, client):
        body = {"objects": ["COST_CENTER"], "dryRun": False, "target": "staging"}
        denied = client.post(f"{API}/migration/run", json=body, headers={"X-User": "alice"}).get_json()
        assert denied["denied"] == 1

        req = _approval(client, "migration.load_staging")
        client.post(f"{API}/security/approvals/{req['requestId']}/approve", headers={"X-User": "bob"})
        body["approvalId"] = req["requestId"]
        loaded = client.post(f"{API}/migration/run", json=body, headers={"X-User": "alice"}).get_json()
        assert loaded["loaded"] == 1
        replay = client.post(f"{API}/migration/run", json=body, headers={"X-User": "alice"}).get_json()
        assert replay["denied"] == 1
        status = client.get(f"{API}/security/approvals/{req['requestId']}").get_json()["status"]
        assert status == "consumed"

    def test_cutover_plan(self, client):
        results = [
            {"objectId": "ITEM", "phases": {"extract": {"count": 25}}},
            {"objectId": "CUSTOMER", "phases": {"extract": {"count": 40}}},
        ]
        plan = client.post(f"{API}/cutover/plan", json={"objectResults": results}).get_json()
        assert plan["summary"]["totalTasks"] == 21
        assert len(plan["checklist"]) == 15
        assert len(plan["rollback"]["steps"]) == 8

    def test_cutover_plan_workbook(self, client):
        rv = client.post(f"{API}/cutover/plan?format=xlsx", json={})
        assert rv.status_code == 200
        assert "cutover-plan.xlsx" in rv.headers["Content-Disposition"]
        wb = load_workbook(io.BytesIO(rv.get_data()))
        assert wb.sheetnames == ["Tasks", "Go-No-Go", "Rollback"]


# ═════════════════════════════════════════════════════════════════════════════
# 7. Security
# ═════════════════════════════════════════════════════════════════════════════


class TestSecurity:
    def test_tiers(self, client):
        data = client.get(f"{API}/security/tiers").get_json()
        assert [t["level"] for t in data["tiers"]] == [1, 2, 3, 4]
        only_four = client.get(f"{API}/security/tiers?tier=4").get_json()["operations"]
        assert all(o["tier"] == 4 for o in only_four)
        op = client.get(f"{API}/security/operations/migration.load_staging").get_json()
        assert op["tier"] == 3

    def test_approval_flow(self, client):
        req = _approval(client, "migration.load_production")
        assert req["requestedBy"] == "alice"
        assert req["status"] == "pending"
        rid = req["requestId"]

        rv = client.post(f"{API}/security/approvals/{rid}/approve", headers={"X-User": "alice"})
        assert rv.status_code == 422

        client.post(f"{API}/security/approvals/{rid}/approve", headers={"X-User": "bob"})
        rv = client.post(f"{API}/security/approvals/{rid}/approve", headers={"X-User": "bob"})
        assert rv.status_code == 409
        rv = client.post(f"{API}/security/approvals/{rid}/approve", json={"comment": "ok"}, headers={"X-User": "carol"})
        assert rv.get_json()["status"] == "approved"
        assert client.get(f"{API}/security/approvals/{rid}").get_json()["status"] == "approved"

    def test_pending_for_and_cancel(self, client):
        req = _approval(client, "migration.load_staging")
        pending = client.get(f"{API}/security/approvals?pendingFor=bob").get_json()
        assert [r["requestId"] for r in pending] == [req["requestId"]]
        assert client.get(f"{API}/security/approvals?pendingFor=alice").get_json() == []
        rv = client.post(f"{API}/security/approvals/{req['requestId']}/cancel", headers={"X-User": "alice"})
        assert rv.get_json()["status"] == "cancelled"

    def test_reject(self, client):
        req = _approval(client, "migration.load_staging")
        rv = client.post(
            f"{API}/security/approvals/{req['requestId']}/reject",
            json={"reason": "wrong window"}, headers={"X-User": "bob"},
        )
        assert rv.get_json()["rejection"]["reason"] == "wrong window"

    def test_auto_approved_tier(self, client):
        req = _approval(client, "migration.load_sandbox")
        assert req["autoApproved"] is True
        assert req["requestId"] is None

    def test_operation_required(self, client):
        rv = client.post(f"{API}/security/approvals", json={})
        assert rv.status_code == 400

    def test_unknown_approval(self, client):
        assert client.get(f"{API}/security/approvals/nope").status_code == 404

    def test_audit_verify(self, client):
        client.post(f"{API}/migration/run", json={"objects": ["COST_CENTER"], "dryRun": False})
        data = client.get(f"{API}/security/audit/verify").get_json()
        assert data["valid"] is True
        assert data["checkedCount"] == 3
        stats = client.get(f"{API}/security/audit-stats").get_json()
        assert stats["byOperation"]["system.audit_verify"] == 1


# ═════════════════════════════════════════════════════════════════════════════
# 8. Health
# ═════════════════════════════════════════════════════════════════════════════


class TestHealth:
    def test_health(self, client):
        rv = client.get(f"{API}/health")
        assert rv.status_code == 200
        data = rv.get_json()
        assert data["status"] == "ok"
        assert data["checks"]["database"]["status"] == "ok"
        assert data["checks"]["extractors"]["count"] == 15
        assert data["checks"]["referenceModels"]["count"] == 7
