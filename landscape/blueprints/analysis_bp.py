"""
Analysis Blueprint — REST surface over runs, models, migration, cutover and security.

Endpoint groups:
  Runs              POST/GET /api/v1/runs, GET /api/v1/runs/<run_id>
                    GET  /api/v1/runs/<run_id>/progress
                    POST /api/v1/runs/<run_id>/cancel
                    GET  /api/v1/runs/<run_id>/results[?extractor=]
                    GET  /api/v1/runs/<run_id>/coverage
                    GET  /api/v1/runs/<run_id>/interpretations[?format=markdown]
                    GET  /api/v1/runs/<run_id>/process-catalog[?format=markdown]
                    GET  /api/v1/runs/<run_id>/findings
                    GET  /api/v1/runs/<run_id>/gaps
                    GET  /api/v1/runs/<run_id>/export?format=structured|tabular|process-mining-log|workbook
  Extractors        GET  /api/v1/extractors
  Reference models  GET  /api/v1/reference-models, GET /api/v1/reference-models/<process_id>
  Canonical model   GET  /api/v1/canonical/systems, GET /api/v1/canonical/entities
                    GET  /api/v1/canonical/mappings/<family>/<entity>
                    POST /api/v1/canonical/validate
  Migration         GET  /api/v1/migration/objects, GET /api/v1/migration/plan
                    POST /api/v1/migration/run
  Cutover           POST /api/v1/cutover/plan[?format=xlsx]
  Security          GET  /api/v1/security/tiers, GET /api/v1/security/operations/<operation>
                    GET/POST /api/v1/security/approvals, GET /api/v1/security/approvals/<id>
                    POST /api/v1/security/approvals/<id>/approve|reject|cancel
                    GET  /api/v1/security/audit-trail, GET /api/v1/security/audit-stats
                    GET  /api/v1/security/audit/verify
  Health            GET  /api/v1/health

The acting user comes from the X-User header (no auth enforcement here).
Service layer owns all business logic and commits.
"""

from __future__ import annotations

import logging

from flask import Blueprint, Response, jsonify, request
from werkzeug.exceptions import HTTPException

import landscape.services.run_service as runs
from landscape.core.exceptions import (
    ApprovalRequiredError,
    ConflictError,
    FatalError,
    NotFoundError,
    ValidationError,
)
from landscape.cutover.planner import CutoverPlanner
from landscape.extraction.extractors import build_default_registry
from landscape.migration.canonical import (
    ENTITY_FIELDS,
    CanonicalEntity,
    describe_mappings,
    get_source_systems,
)
from landscape.migration.objects import MIGRATION_OBJECTS
from landscape.migration.pipeline import MigrationPipeline
from landscape.mining.reference_models import REFERENCE_MODELS, get_reference_model
from landscape.models import db
from landscape.models.audit import verify_audit_chain
from landscape.security.tier_manager import get_tier_manager
from landscape.security.tiers import TIERS, list_operations
from landscape.services.export_service import XLSX_TYPE, export_cutover_plan_xlsx
from landscape.utils.errors import E, api_error

logger = logging.getLogger(__name__)

analysis_bp = Blueprint("analysis", __name__, url_prefix="/api/v1")


# ── Helpers ──────────────────────────────────────────────────────────────────


def _current_user() -> str:
    return (
        request.headers.get("X-User", "")
        or request.headers.get("X-Forwarded-User", "")
        or "system"
    )


def _body() -> dict:
    return request.get_json(silent=True) or {}


def _as_list(value) -> list[str] | None:
    if value is None or value == "":
        return None
    if isinstance(value, str):
        return [v.strip() for v in value.split(",") if v.strip()]
    return list(value)


# ── Error handlers ───────────────────────────────────────────────────────────


@analysis_bp.errorhandler(NotFoundError)
def _handle_not_found(error: NotFoundError):
    return api_error(E.NOT_FOUND, str(error))


@analysis_bp.errorhandler(ValidationError)
def _handle_validation(error: ValidationError):
    return api_error(E.VALIDATION_INVALID, str(error), details=error.details)


@analysis_bp.errorhandler(ConflictError)
def _handle_conflict(error: ConflictError):
    return api_error(E.CONFLICT_STATE, str(error))


@analysis_bp.errorhandler(ApprovalRequiredError)
def _handle_approval_required(error: ApprovalRequiredError):
    return api_error(
        E.APPROVAL_REQUIRED, str(error),
        details={"operation": error.operation, "tier": error.tier, "reason": error.reason},
    )


@analysis_bp.errorhandler(FatalError)
def _handle_fatal(error: FatalError):
    logger.error("Fatal error endpoint=%s reason=%s", request.endpoint, error.reason)
    return api_error(E.FATAL, "Fatal error", details={"reason": error.reason})


@analysis_bp.errorhandler(Exception)
def _handle_unexpected(error: Exception):
    if isinstance(error, HTTPException):
        return error
    logger.exception("Unexpected error in analysis_bp endpoint=%s", request.endpoint)
    return api_error(E.INTERNAL, "Internal server error")


# ═════════════════════════════════════════════════════════════════════════════
# RUNS
# ═════════════════════════════════════════════════════════════════════════════


@analysis_bp.route("/runs", methods=["POST"])
def start_run():
    """Start an extraction run.

    Body: { modules?, categories?, extractorIds?, concurrency?, mode?, wait? }
    Returns: run row (202, or 201 when ``wait`` ran it inline).
    """
    data = _body()
    wait = bool(data.get("wait"))
    run = runs.start_run(
        modules=_as_list(data.get("modules")),
        categories=_as_list(data.get("categories")),
        extractor_ids=_as_list(data.get("extractorIds")),
        concurrency=data.get("concurrency"),
        mode=data.get("mode"),
        user=_current_user(),
        wait=wait,
    )
    return jsonify(run.to_dict()), 201 if wait else 202


@analysis_bp.route("/runs", methods=["GET"])
def list_runs():
    limit = request.args.get("limit", 50, type=int)
    items = runs.list_runs(status=request.args.get("status"), limit=min(max(limit, 1), 500))
    return jsonify({"items": [r.to_dict() for r in items], "total": len(items)})


@analysis_bp.route("/runs/<run_id>", methods=["GET"])
def get_run(run_id):
    return jsonify(runs.get_run(run_id).to_dict())


@analysis_bp.route("/runs/<run_id>/progress", methods=["GET"])
def get_progress(run_id):
    return jsonify(runs.get_progress(run_id))


@analysis_bp.route("/runs/<run_id>/cancel", methods=["POST"])
def cancel_run(run_id):
    run = runs.cancel_run(run_id, user=_current_user())
    return jsonify({"runId": run.run_id, "cancelRequested": True}), 202


@analysis_bp.route("/runs/<run_id>/results", methods=["GET"])
def get_results(run_id):
    return jsonify(runs.get_results(run_id, request.args.get("extractor")))


@analysis_bp.route("/runs/<run_id>/coverage", methods=["GET"])
def get_coverage(run_id):
    return jsonify(runs.get_coverage(run_id))


@analysis_bp.route("/runs/<run_id>/interpretations", methods=["GET"])
def get_interpretations(run_id):
    if request.args.get("format") == "markdown":
        return Response(runs.get_interpretations(run_id, "markdown"), mimetype="text/markdown")
    return jsonify(runs.get_interpretations(run_id))


@analysis_bp.route("/runs/<run_id>/process-catalog", methods=["GET"])
def get_process_catalog(run_id):
    if request.args.get("format") == "markdown":
        return Response(runs.get_process_catalog(run_id, "markdown"), mimetype="text/markdown")
    return jsonify(runs.get_process_catalog(run_id))


@analysis_bp.route("/runs/<run_id>/findings", methods=["GET"])
def get_findings(run_id):
    return jsonify(runs.get_findings(run_id))


@analysis_bp.route("/runs/<run_id>/gaps", methods=["GET"])
def get_gaps(run_id):
    return jsonify(runs.get_gap_report(run_id))


@analysis_bp.route("/runs/<run_id>/export", methods=["GET"])
def export_run(run_id):
    fmt = request.args.get("format", "structured")
    body, content_type, filename = runs.export_run(run_id, fmt, user=_current_user())
    return Response(
        body,
        mimetype=content_type,
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@analysis_bp.route("/extractors", methods=["GET"])
def list_extractors():
    return jsonify(build_default_registry().describe())


# ═════════════════════════════════════════════════════════════════════════════
# REFERENCE MODELS & CANONICAL MODEL
# ═════════════════════════════════════════════════════════════════════════════


@analysis_bp.route("/reference-models", methods=["GET"])
def list_reference_models():
    return jsonify([
        {"id": m.id, "name": m.name, "activityCount": len(m.activities), "criticalPath": m.critical_path()}
        for m in REFERENCE_MODELS.values()
    ])


@analysis_bp.route("/reference-models/<process_id>", methods=["GET"])
def get_reference_model_detail(process_id):
    model = get_reference_model(process_id)
    if model is None:
        raise NotFoundError(resource="ReferenceModel", resource_id=process_id)
    return jsonify(dict(model.to_dict(), criticalPath=model.critical_path()))


@analysis_bp.route("/canonical/systems", methods=["GET"])
def list_source_systems():
    return jsonify(get_source_systems())


@analysis_bp.route("/canonical/entities", methods=["GET"])
def list_canonical_entities():
    return jsonify({
        name: {field: fdef.to_dict() for field, fdef in fields.items()}
        for name, fields in ENTITY_FIELDS.items()
    })


@analysis_bp.route("/canonical/mappings/<family>/<entity>", methods=["GET"])
def get_canonical_mappings(family, entity):
    mappings = describe_mappings(family, entity)
    if mappings is None:
        raise NotFoundError(resource="Mapping", resource_id=f"{family}/{entity}")
    return jsonify(mappings)


@analysis_bp.route("/canonical/validate", methods=["POST"])
def validate_canonical():
    """Map a source record onto a canonical entity and validate it.

    Body: { entity, family?, record }
    """
    data = _body()
    entity_type = data.get("entity")
    if not entity_type:
        return api_error(E.VALIDATION_REQUIRED, "entity is required")
    record = data.get("record") or {}
    entity = CanonicalEntity(entity_type)
    if data.get("family"):
        entity.from_source(data["family"], record)
    else:
        entity.data = dict(record)
    return jsonify(dict(entity.to_dict(), validation=entity.validate()))


# ═════════════════════════════════════════════════════════════════════════════
# MIGRATION & CUTOVER
# ═════════════════════════════════════════════════════════════════════════════


@analysis_bp.route("/migration/objects", methods=["GET"])
def list_migration_objects():
    return jsonify([cls.describe() for cls in MIGRATION_OBJECTS.values()])


@analysis_bp.route("/migration/plan", methods=["GET"])
def migration_plan():
    pipeline = MigrationPipeline(_as_list(request.args.get("objects")))
    return jsonify(pipeline.plan())


@analysis_bp.route("/migration/run", methods=["POST"])
def migration_run():
    """Run the migration pipeline.

    Body: { objects?, dryRun? (default true), target? (sandbox|staging|production), approvalId? }
    """
    data = _body()
    pipeline = MigrationPipeline(
        _as_list(data.get("objects")),
        dry_run=bool(data.get("dryRun", True)),
        target=data.get("target", "sandbox"),
        user=_current_user(),
        approval_id=data.get("approvalId"),
    )
    return jsonify(pipeline.run())


@analysis_bp.route("/cutover/plan", methods=["POST"])
def cutover_plan():
    """Generate a cutover plan.

    Body: { project?: {projectId, name}, objectResults?: [...] }
    With ``?format=xlsx`` the plan is returned as a workbook.
    """
    data = _body()
    plan = CutoverPlanner().generate_plan(data.get("project"), data.get("objectResults"))
    if request.args.get("format") == "xlsx":
        return Response(
            export_cutover_plan_xlsx(plan),
            mimetype=XLSX_TYPE,
            headers={"Content-Disposition": "attachment; filename=cutover-plan.xlsx"},
        )
    return jsonify(plan)


# ═════════════════════════════════════════════════════════════════════════════
# SECURITY
# ═════════════════════════════════════════════════════════════════════════════


@analysis_bp.route("/security/tiers", methods=["GET"])
def list_tiers():
    return jsonify({
        "tiers": [t.to_dict() for t in TIERS.values()],
        "operations": list_operations(request.args.get("tier", type=int)),
    })


@analysis_bp.route("/security/operations/<operation>", methods=["GET"])
def classify_operation(operation):
    return jsonify(get_tier_manager().classify(operation))


@analysis_bp.route("/security/approvals", methods=["GET"])
def list_approvals():
    gate = get_tier_manager().gate
    pending_for = request.args.get("pendingFor")
    if pending_for:
        items = gate.pending_for(pending_for)
    else:
        items = gate.list_requests(status=request.args.get("status"), operation=request.args.get("operation"))
    return jsonify([r.to_dict() for r in items])


@analysis_bp.route("/security/approvals", methods=["POST"])
def request_approval():
    """Body: { operation, details? }"""
    data = _body()
    operation = (data.get("operation") or "").strip()
    if not operation:
        return api_error(E.VALIDATION_REQUIRED, "operation is required")
    req = get_tier_manager().gate.request_approval(operation, _current_user(), data.get("details"))
    return jsonify(req.to_dict()), 201


@analysis_bp.route("/security/approvals/<request_id>", methods=["GET"])
def get_approval(request_id):
    return jsonify(get_tier_manager().gate.get(request_id).to_dict())


@analysis_bp.route("/security/approvals/<request_id>/approve", methods=["POST"])
def approve(request_id):
    req = get_tier_manager().gate.approve(request_id, _current_user(), _body().get("comment"))
    return jsonify(req.to_dict())


@analysis_bp.route("/security/approvals/<request_id>/reject", methods=["POST"])
def reject(request_id):
    req = get_tier_manager().gate.reject(request_id, _current_user(), _body().get("reason"))
    return jsonify(req.to_dict())


@analysis_bp.route("/security/approvals/<request_id>/cancel", methods=["POST"])
def cancel_approval(request_id):
    req = get_tier_manager().gate.cancel(request_id, _current_user())
    return jsonify(req.to_dict())


@analysis_bp.route("/security/audit-trail", methods=["GET"])
def audit_trail():
    args = request.args
    return jsonify(get_tier_manager().op_logger.get_audit_trail(
        operation=args.get("operation"),
        tier=args.get("tier", type=int),
        user=args.get("user"),
        status=args.get("status"),
        since=args.get("since"),
        until=args.get("until"),
        limit=min(max(args.get("limit", 100, type=int), 1), 1000),
        offset=max(args.get("offset", 0, type=int), 0),
    ))


@analysis_bp.route("/security/audit-stats", methods=["GET"])
def audit_stats():
    return jsonify(get_tier_manager().op_logger.get_stats())


@analysis_bp.route("/security/audit/verify", methods=["GET"])
def audit_verify():
    result = get_tier_manager().execute("system.audit_verify", _current_user(), verify_audit_chain)
    return jsonify(result)


# ═════════════════════════════════════════════════════════════════════════════
# HEALTH
# ═════════════════════════════════════════════════════════════════════════════


@analysis_bp.route("/health", methods=["GET"])
def health():
    checks = {}
    try:
        db.session.execute(db.text("SELECT 1"))
        checks["database"] = {"status": "ok"}
    except Exception as exc:
        checks["database"] = {"status": "error", "detail": str(exc)}
        logger.error("Health check database failed: %s", exc)
    checks["extractors"] = {"status": "ok", "count": len(build_default_registry())}
    checks["referenceModels"] = {"status": "ok", "count": len(REFERENCE_MODELS)}
    ok = all(c["status"] == "ok" for c in checks.values())
    return jsonify({"status": "ok" if ok else "degraded", "checks": checks}), 200 if ok else 503
