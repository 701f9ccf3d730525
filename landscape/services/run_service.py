"""
Analysis run service — the command surface over extraction runs.

Business logic for:
    - start_run:            create the run row, wire a context, run the orchestrator
                            on a background thread (or inline with ``wait=True``)
    - get_progress:         live orchestrator progress, or the persisted counters
    - cancel_run:           cooperative cancellation of a running extraction
    - get_results / get_coverage / get_interpretations / get_process_catalog /
      get_findings / get_gap_report:  read the finished run from the registry
    - export_run:           structured | tabular | process-mining-log | workbook

Full results live in the in-process run registry; the ``analysis_runs`` row
carries status, exit code and the summary.
"""

from __future__ import annotations

import json
import logging
import threading
import uuid
from datetime import datetime, timezone

from flask import current_app

from landscape.core.exceptions import ConflictError, FatalError, NotFoundError, ValidationError
from landscape.extraction.context import ExtractionContext, build_extraction_context
from landscape.extraction.coverage import EXTRACTED
from landscape.extraction.extractors import build_default_registry
from landscape.extraction.gap_analyzer import GapAnalyzer
from landscape.extraction.orchestrator import (
    EXIT_FATAL,
    EXIT_VALIDATION,
    ExtractionOrchestrator,
    OrchestrationResult,
)
from landscape.mining.engine import ProcessMiningEngine
from landscape.models import db
from landscape.models.run import AnalysisRun
from landscape.rules.config_interpreter import ConfigInterpreter
from landscape.rules.simplification.scanner import SimplificationScanner
from landscape.security.tier_manager import get_tier_manager
from landscape.services import export_service

logger = logging.getLogger(__name__)

EXTRACTION_MODES = ("mock", "live")


class RunHandle:
    """Everything the registry keeps about one run."""

    def __init__(self, run_id: str, context: ExtractionContext, orchestrator: ExtractionOrchestrator,
                 filters: dict) -> None:
        self.run_id = run_id
        self.context = context
        self.orchestrator = orchestrator
        self.filters = filters
        self.status = "pending"
        self.exit_code: int | None = None
        self.error: str | None = None
        self.result: OrchestrationResult | None = None
        self.analysis: dict | None = None
        self.mining: ProcessMiningEngine | None = None
        self.thread: threading.Thread | None = None
        self.done = threading.Event()


_runs: dict[str, RunHandle] = {}
_runs_lock = threading.Lock()


def _register(handle: RunHandle) -> None:
    with _runs_lock:
        _runs[handle.run_id] = handle


def _handle(run_id: str) -> RunHandle | None:
    with _runs_lock:
        return _runs.get(run_id)


def clear_registry() -> None:
    with _runs_lock:
        _runs.clear()


def get_run(run_id: str) -> AnalysisRun:
    run = AnalysisRun.query.filter_by(run_id=run_id).first()
    if run is None:
        raise NotFoundError(resource="AnalysisRun", resource_id=run_id)
    return run


def list_runs(status: str | None = None, limit: int = 50) -> list[AnalysisRun]:
    q = AnalysisRun.query
    if status:
        q = q.filter(AnalysisRun.status == status)
    return q.order_by(AnalysisRun.id.desc()).limit(limit).all()


def _finished_handle(run_id: str) -> RunHandle:
    run = get_run(run_id)
    if not run.is_terminal:
        raise ConflictError(resource="AnalysisRun", field="status", value=run.status)
    handle = _handle(run_id)
    if handle is None or handle.result is None:
        raise NotFoundError(resource="RunResults", resource_id=run_id)
    return handle


# ── Start / progress / cancel ───────────────────────────────────────────────


def start_run(
    *,
    modules: list[str] | None = None,
    categories: list[str] | None = None,
    extractor_ids: list[str] | None = None,
    concurrency: int | None = None,
    mode: str | None = None,
    user: str = "system",
    gateway=None,
    wait: bool = False,
) -> AnalysisRun:
    """Create and launch an extraction run.  Returns the persisted row."""
    cfg = current_app.config
    mode = (mode or cfg.get("EXTRACTION_MODE") or "mock").lower()
    if mode not in EXTRACTION_MODES:
        raise ValidationError(f"mode must be one of {', '.join(EXTRACTION_MODES)}", details={"mode": mode})
    if concurrency is None:
        concurrency = cfg.get("EXTRACTION_CONCURRENCY") or 1
    try:
        concurrency = int(concurrency)
    except (TypeError, ValueError) as exc:
        raise ValidationError("concurrency must be an integer", details={"concurrency": concurrency}) from exc
    if concurrency < 1:
        raise ValidationError("concurrency must be >= 1", details={"concurrency": concurrency})

    filters = {"modules": modules or [], "categories": categories or [], "extractorIds": extractor_ids or []}
    registry = build_default_registry()
    unknown = [eid for eid in extractor_ids or [] if eid not in registry]
    if unknown:
        raise ValidationError("Unknown extractor id(s)", details={"extractorIds": unknown})

    run_id = str(uuid.uuid4())
    settings = dict(cfg)
    settings["EXTRACTION_MODE"] = mode
    context = build_extraction_context(settings, run_id=run_id, gateway=gateway)
    orchestrator = ExtractionOrchestrator(registry, context, concurrency=concurrency)

    run = AnalysisRun(
        run_id=run_id,
        mode=mode,
        status="pending",
        filters_json=json.dumps(filters),
        concurrency=concurrency,
        user=user,
    )
    db.session.add(run)
    db.session.commit()

    get_tier_manager().op_logger.log_operation(
        "extraction.run", 1, user, {"runId": run_id, "mode": mode, **filters}, {"status": "started"},
    )

    handle = RunHandle(run_id, context, orchestrator, filters)
    _register(handle)

    if wait:
        _execute(handle)
        db.session.refresh(run)
    else:
        app = current_app._get_current_object()
        handle.thread = threading.Thread(
            target=_worker, args=(app, handle), name=f"run-{run_id[:8]}", daemon=True,
        )
        handle.thread.start()
    return run


def _worker(app, handle: RunHandle) -> None:
    with app.app_context():
        _execute(handle)


def _execute(handle: RunHandle) -> None:
    run = get_run(handle.run_id)
    run.status = handle.status = "running"
    run.started_at = datetime.now(timezone.utc)
    db.session.commit()

    filters = handle.filters
    try:
        handle.result = handle.orchestrator.run(
            modules=filters["modules"] or None,
            categories=filters["categories"] or None,
            extractor_ids=filters["extractorIds"] or None,
        )
        handle.status = handle.result.status
        handle.exit_code = handle.result.exit_code
        handle.analysis = _analyze(handle)
    except ValidationError as exc:
        handle.status, handle.exit_code, handle.error = "failed", EXIT_VALIDATION, str(exc)
        logger.warning("Run rejected run_id=%s reason=%s", handle.run_id, exc)
    except FatalError as exc:
        handle.status, handle.exit_code, handle.error = "failed", EXIT_FATAL, exc.reason
        logger.error("Run aborted run_id=%s reason=%s", handle.run_id, exc.reason)
    except Exception as exc:
        handle.status, handle.exit_code, handle.error = "failed", EXIT_FATAL, str(exc)
        logger.exception("Run crashed run_id=%s", handle.run_id)

    progress = handle.orchestrator.progress()
    run.status = handle.status
    run.exit_code = handle.exit_code
    run.error_message = handle.error
    run.completed_count = progress["completed"]
    run.total_count = progress["total"]
    run.current = None
    run.completed_at = datetime.now(timezone.utc)
    run.summary_json = json.dumps(_summary(handle)) if handle.result is not None else None
    db.session.commit()
    handle.done.set()


def _analyze(handle: RunHandle) -> dict:
    """Interpretation, simplification scan, process mining and gap analysis."""
    results = handle.result.results
    coverage = handle.context.coverage

    interpreter = ConfigInterpreter(results)
    interpreter.interpret()

    tables_read = sorted({e["table"] for e in coverage.entries() if e["status"] == EXTRACTED})
    scanner = SimplificationScanner(results, tables_read=tables_read)
    scanner.scan()

    handle.mining = ProcessMiningEngine.from_results(results)
    catalog = handle.mining.analyze()

    gaps = GapAnalyzer(
        results, coverage,
        data_dictionary=handle.context.data_dictionary,
        modules={eid: o.module for eid, o in handle.result.outcomes.items()},
    )
    gap_report = gaps.analyze(
        interpretation_count=len(interpreter.interpretations),
        rules_evaluated=interpreter.rules_evaluated,
    )
    return {
        "interpretations": interpreter.to_dict(),
        "interpretationsMarkdown": interpreter.to_markdown(),
        "findings": scanner.findings,
        "findingsSummary": scanner.summary(),
        "catalog": catalog,
        "catalogMarkdown": handle.mining.to_markdown(),
        "gaps": gap_report,
        "confidence": gaps.confidence(),
        "humanValidation": gaps.human_validation_checklist(),
    }


def _summary(handle: RunHandle) -> dict:
    system = handle.context.coverage.system_report()
    summary = {
        "status": handle.status,
        "exitCode": handle.exit_code,
        "extractors": {eid: o.status for eid, o in handle.result.outcomes.items()},
        "coverage": {k: system[k] for k in ("total", "extracted", "failed", "skipped", "coverage") if k in system},
        "gapCount": len(handle.context.coverage.gaps()),
    }
    if handle.analysis:
        summary["interpretationCount"] = handle.analysis["interpretations"]["totalInterpretations"]
        summary["findingCount"] = len(handle.analysis["findings"])
        summary["processCount"] = handle.analysis["catalog"]["processCount"]
        summary["confidence"] = handle.analysis["confidence"]
    return summary


def get_progress(run_id: str) -> dict:
    run = get_run(run_id)
    handle = _handle(run_id)
    if handle is not None:
        progress = handle.orchestrator.progress()
        progress["status"] = handle.status if not run.is_terminal else run.status
        return progress
    return {
        "running": run.status == "running",
        "completed": run.completed_count or 0,
        "total": run.total_count or 0,
        "current": [],
        "startedAt": run.started_at.isoformat() if run.started_at else None,
        "status": run.status,
    }


def cancel_run(run_id: str, user: str = "system") -> AnalysisRun:
    run = get_run(run_id)
    handle = _handle(run_id)
    if run.is_terminal or handle is None:
        raise ConflictError(resource="AnalysisRun", field="status", value=run.status)
    get_tier_manager().execute(
        "extraction.cancel", user, handle.orchestrator.cancel, details={"runId": run_id},
    )
    return run


def wait_for_run(run_id: str, timeout: float | None = None) -> bool:
    handle = _handle(run_id)
    if handle is None:
        raise NotFoundError(resource="AnalysisRun", resource_id=run_id)
    return handle.done.wait(timeout)


# ── Results ─────────────────────────────────────────────────────────────────


def get_results(run_id: str, extractor_id: str | None = None) -> dict:
    handle = _finished_handle(run_id)
    results = handle.result.results
    if extractor_id is None:
        return results
    if extractor_id not in results:
        raise NotFoundError(resource="ExtractorResult", resource_id=extractor_id)
    return {extractor_id: results[extractor_id]}


def get_coverage(run_id: str) -> dict:
    handle = _finished_handle(run_id)
    report = handle.context.coverage.system_report()
    return {
        "system": {k: v for k, v in report.items() if k not in ("byModule", "byExtractor")},
        "byModule": report["byModule"],
        "byExtractor": report["byExtractor"],
        "gaps": handle.context.coverage.gaps(),
        "tables": handle.context.coverage.entries(),
    }


def _analysis(run_id: str) -> dict:
    handle = _finished_handle(run_id)
    if handle.analysis is None:
        raise NotFoundError(resource="RunAnalysis", resource_id=run_id)
    return handle.analysis


def get_interpretations(run_id: str, fmt: str = "json"):
    analysis = _analysis(run_id)
    if fmt == "markdown":
        return analysis["interpretationsMarkdown"]
    return analysis["interpretations"]


def get_process_catalog(run_id: str, fmt: str = "json"):
    analysis = _analysis(run_id)
    if fmt == "markdown":
        return analysis["catalogMarkdown"]
    return analysis["catalog"]


def get_findings(run_id: str) -> dict:
    analysis = _analysis(run_id)
    return {"summary": analysis["findingsSummary"], "findings": analysis["findings"]}


def get_gap_report(run_id: str) -> dict:
    analysis = _analysis(run_id)
    return {
        "gaps": analysis["gaps"],
        "confidence": analysis["confidence"],
        "humanValidation": analysis["humanValidation"],
    }


def export_run(run_id: str, fmt: str, user: str = "system") -> tuple[bytes, str, str]:
    """Render a finished run.  Returns ``(body, content_type, filename)``."""
    renderer = export_service.EXPORTERS.get(fmt)
    if renderer is None:
        raise ValidationError(
            f"format must be one of {', '.join(export_service.EXPORTERS)}",
            details={"format": fmt},
        )
    handle = _finished_handle(run_id)
    return get_tier_manager().execute(
        "extraction.export", user, lambda: renderer(handle), details={"runId": run_id, "format": fmt},
    )
