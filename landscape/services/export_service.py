"""
Run and plan exports.

Every run exporter takes a finished run handle and returns
``(body, content_type, filename)``:

    structured          JSON: results, coverage, interpretations, catalog, gaps
    tabular             CSV event log (caseId,activity,timestamp,user,transactionCode)
    process-mining-log  XES, one trace per case
    workbook            XLSX: coverage, gaps, interpretations, process catalog
"""

import io
import json
import logging
from datetime import datetime, timezone

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from landscape.mining.event_log import events_to_csv, traces_to_xes

logger = logging.getLogger(__name__)

HEADER_FILL = PatternFill(start_color="354A5F", end_color="354A5F", fill_type="solid")
HEADER_FONT = Font(color="FFFFFF", bold=True, size=11)
CRITICAL_FILL = PatternFill(start_color="E74C3C", end_color="E74C3C", fill_type="solid")
THIN_BORDER = Border(
    left=Side(style="thin"),
    right=Side(style="thin"),
    top=Side(style="thin"),
    bottom=Side(style="thin"),
)

JSON_TYPE = "application/json"
CSV_TYPE = "text/csv"
XES_TYPE = "application/xml"
XLSX_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _apply_header_style(ws, row: int, col_count: int) -> None:
    """Apply dark-header styling to an Excel row (1-indexed)."""
    for col in range(1, col_count + 1):
        cell = ws.cell(row=row, column=col)
        cell.fill = HEADER_FILL
        cell.font = HEADER_FONT
        cell.border = THIN_BORDER
        cell.alignment = Alignment(horizontal="center", vertical="center", wrap_text=True)


def _auto_width(ws) -> None:
    """Auto-size column widths based on content (capped at 60 chars)."""
    for col in ws.columns:
        max_len = 0
        col_letter = get_column_letter(col[0].column)
        for cell in col:
            if cell.value:
                max_len = max(max_len, min(len(str(cell.value)), 60))
        ws.column_dimensions[col_letter].width = max(max_len + 4, 12)


def _write_sheet(ws, headers: list[str], rows: list[list]) -> None:
    ws.append(headers)
    _apply_header_style(ws, 1, len(headers))
    for row in rows:
        ws.append(row)
        for col in range(1, len(headers) + 1):
            ws.cell(row=ws.max_row, column=col).border = THIN_BORDER
    ws.freeze_panes = "A2"
    _auto_width(ws)


def _save(wb: Workbook) -> bytes:
    buf = io.BytesIO()
    wb.save(buf)
    buf.seek(0)
    return buf.getvalue()


def _filename(handle, ext: str) -> str:
    return f"run-{handle.run_id[:8]}.{ext}"


# ── Run exporters ────────────────────────────────────────────────────────────


def export_structured(handle) -> tuple[bytes, str, str]:
    analysis = handle.analysis or {}
    doc = {
        "runId": handle.run_id,
        "exportedAt": datetime.now(timezone.utc).isoformat(),
        "status": handle.status,
        "system": handle.context.system.to_dict(),
        "results": handle.result.results,
        "coverage": handle.context.coverage.system_report(),
        "interpretations": analysis.get("interpretations"),
        "findings": analysis.get("findings"),
        "catalog": analysis.get("catalog"),
        "gaps": analysis.get("gaps"),
        "confidence": analysis.get("confidence"),
    }
    body = json.dumps(doc, indent=2, default=str).encode("utf-8")
    return body, JSON_TYPE, _filename(handle, "json")


def export_tabular(handle) -> tuple[bytes, str, str]:
    rows = handle.mining.event_rows() if handle.mining else []
    return events_to_csv(rows).encode("utf-8"), CSV_TYPE, _filename(handle, "csv")


def export_process_log(handle) -> tuple[bytes, str, str]:
    traces = handle.mining.traces if handle.mining else []
    return traces_to_xes(traces), XES_TYPE, _filename(handle, "xes")


def export_workbook(handle) -> tuple[bytes, str, str]:
    analysis = handle.analysis or {}
    coverage = handle.context.coverage

    wb = Workbook()
    ws = wb.active
    ws.title = "Coverage"
    report = coverage.system_report()
    _write_sheet(
        ws,
        ["Extractor", "Total", "Extracted", "Failed", "Skipped", "Coverage %"],
        [
            [eid, r["total"], r["extracted"], r.get("failed", 0), r.get("skipped", 0), r["coverage"]]
            for eid, r in report["byExtractor"].items()
        ],
    )

    _write_sheet(
        wb.create_sheet("Gaps"),
        ["Module", "Extractor", "Table", "Status", "Reason"],
        [[g["module"], g["extractorId"], g["table"], g["status"], str(g["reason"])] for g in coverage.gaps()],
    )

    interpretations = (analysis.get("interpretations") or {}).get("interpretations") or []
    _write_sheet(
        wb.create_sheet("Interpretations"),
        ["Rule", "Description", "Interpretation", "Target relevance"],
        [
            [i.get("ruleId"), i.get("description"), i.get("interpretation"), i.get("targetRelevance", "")]
            for i in interpretations
        ],
    )

    processes = (analysis.get("catalog") or {}).get("processes") or []
    _write_sheet(
        wb.create_sheet("Process Catalog"),
        ["Process", "Name", "Cases", "Variants", "Conformance rate"],
        [
            [p["id"], p["name"], p["caseCount"], p["variantCount"], p["conformance"]["rate"]]
            for p in processes
        ],
    )
    logger.info("Workbook export run_id=%s sheets=%d", handle.run_id, len(wb.sheetnames))
    return _save(wb), XLSX_TYPE, _filename(handle, "xlsx")


EXPORTERS = {
    "structured": export_structured,
    "tabular": export_tabular,
    "process-mining-log": export_process_log,
    "workbook": export_workbook,
}


# ── Cutover plan ─────────────────────────────────────────────────────────────


def export_cutover_plan_xlsx(plan: dict) -> bytes:
    """Tasks, checklist and rollback steps as a styled workbook."""
    critical = set(plan.get("criticalPath") or [])
    wb = Workbook()
    ws = wb.active
    ws.title = "Tasks"
    _write_sheet(
        ws,
        ["ID", "Phase", "Task", "Duration (h)", "Depends on", "Priority", "Status", "Critical path"],
        [
            [
                t["id"], t["phase"], t["name"], t["durationHours"],
                ", ".join(str(d) for d in t["dependencies"]), t["priority"], t["status"],
                "yes" if t["id"] in critical else "",
            ]
            for t in plan["tasks"]
        ],
    )
    for row in range(2, ws.max_row + 1):
        if ws.cell(row=row, column=8).value == "yes":
            ws.cell(row=row, column=8).fill = CRITICAL_FILL

    _write_sheet(
        wb.create_sheet("Go-No-Go"),
        ["ID", "Category", "Item", "Mandatory", "Status"],
        [[c["id"], c["category"], c["item"], "yes" if c["mandatory"] else "no", c["status"]] for c in plan["checklist"]],
    )

    rollback = plan["rollback"]
    ws = wb.create_sheet("Rollback")
    _write_sheet(
        ws,
        ["Step", "Action", "Duration (min)"],
        [[s["seq"], s["action"], s["durationMin"]] for s in rollback["steps"]],
    )
    ws.append([])
    ws.append(["Total", "", rollback["totalRollbackTimeMin"]])
    ws.append(["Decision window (h)", "", rollback["maxDecisionWindowHours"]])
    return _save(wb)
