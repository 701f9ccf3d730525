"""
Process-mining engine.

Turns change-document headers/items and usage statistics into per-case
event traces, aligns each trace with its reference model and builds a
process catalog: variants, conformance, transition metrics, bottlenecks
and SLA breaches.

Event order inside a case is (date, time, changeNumber, first item line);
two runs over the same input produce identical traces.

Usage:
    engine = ProcessMiningEngine.from_results(results)
    catalog = engine.analyze()
    print(engine.to_markdown())
"""

from __future__ import annotations

import logging
import statistics
from datetime import datetime

from landscape.mining.classifier import classify_activity, classify_case, normalize_tcode
from landscape.mining.reference_models import (
    REFERENCE_MODELS,
    ReferenceModel,
    sla_hours,
    transition_key,
)

logger = logging.getLogger(__name__)

CORE_PROCESSES = {"O2C", "P2P", "R2R", "P2M"}
TOP_VARIANT_LIMIT = 10
CUSTOM_TRANSACTION_MIN_EXECUTIONS = 100
ACTIVE_BATCH_STATUSES = {"S", "R"}

_ARROW = " → "


def _timestamp(date: str | None, time: str | None) -> datetime | None:
    if not date:
        return None
    try:
        return datetime.strptime(f"{date}{time or '000000'}", "%Y%m%d%H%M%S")
    except ValueError:
        logger.debug("Unparseable change document timestamp date=%s time=%s", date, time)
        return None


def _hours(start: datetime | None, end: datetime | None) -> float | None:
    if start is None or end is None:
        return None
    return round((end - start).total_seconds() / 3600, 2)


class Trace:
    """Ordered events of one business object."""

    __slots__ = ("case_id", "process_id", "object_class", "object_id", "events")

    def __init__(self, case_id: str, process_id: str, object_class: str, object_id: str) -> None:
        self.case_id = case_id
        self.process_id = process_id
        self.object_class = object_class
        self.object_id = object_id
        self.events: list[dict] = []

    @property
    def activities(self) -> list[str]:
        return [e["activity"] for e in self.events]

    def to_dict(self) -> dict:
        return {
            "caseId": self.case_id,
            "process": self.process_id,
            "objectClass": self.object_class,
            "objectId": self.object_id,
            "events": [
                {k: v for k, v in e.items() if k != "_ts"}
                for e in self.events
            ],
        }


class ProcessMiningEngine:
    def __init__(
        self,
        change_headers: list[dict],
        change_items: list[dict] | None = None,
        *,
        usage: list[dict] | None = None,
        batch_jobs: list[dict] | None = None,
        models: dict[str, ReferenceModel] | None = None,
    ) -> None:
        self.change_headers = change_headers or []
        self.change_items = change_items or []
        self.usage = usage or []
        self.batch_jobs = batch_jobs or []
        self.models = models or REFERENCE_MODELS
        self.traces: list[Trace] = []
        self.dropped_cases: dict[str, int] = {}
        self.unclassified: list[dict] = []
        self._catalog: dict | None = None

    @classmethod
    def from_results(cls, results: dict[str, dict]) -> ProcessMiningEngine:
        docs = results.get("CHANGE_DOCUMENTS") or {}
        usage = results.get("USAGE_STATISTICS") or {}
        jobs = results.get("BATCH_JOBS") or {}
        return cls(
            docs.get("changeHeaders") or [],
            docs.get("changeItems") or [],
            usage=usage.get("transactionUsage") or [],
            batch_jobs=jobs.get("batchJobs") or [],
        )

    # ── Trace construction ───────────────────────────────────────────────

    def build_traces(self) -> list[Trace]:
        fields_by_change: dict[tuple, list[str]] = {}
        first_line: dict[tuple, int] = {}
        for item in self.change_items:
            key = (item.get("objectClass"), item.get("objectId"), item.get("changeNumber"))
            fields_by_change.setdefault(key, []).append(item.get("field") or "")
            line = int(item.get("line") or 0)
            if key not in first_line or line < first_line[key]:
                first_line[key] = line

        traces: dict[tuple, Trace] = {}
        self.dropped_cases = {}
        self.unclassified = []
        dropped_keys: set[tuple] = set()

        for header in self.change_headers:
            cls_name = header.get("objectClass") or ""
            object_id = header.get("objectId") or ""
            case_key = (cls_name, object_id)
            process_id = classify_case(cls_name)
            if process_id is None or process_id not in self.models:
                if case_key not in dropped_keys:
                    dropped_keys.add(case_key)
                    self.dropped_cases[cls_name] = self.dropped_cases.get(cls_name, 0) + 1
                continue

            change_key = (cls_name, object_id, header.get("changeNumber"))
            activity = classify_activity(process_id, header.get("tcode"), fields_by_change.get(change_key, ()))
            if activity is None:
                self.unclassified.append({
                    "caseId": f"{cls_name}/{object_id}",
                    "process": process_id,
                    "transactionCode": header.get("tcode"),
                    "changeNumber": header.get("changeNumber"),
                })
                continue

            trace = traces.get(case_key)
            if trace is None:
                trace = traces[case_key] = Trace(f"{cls_name}/{object_id}", process_id, cls_name, object_id)
            ts = _timestamp(header.get("date"), header.get("time"))
            trace.events.append({
                "activity": activity,
                "timestamp": ts.isoformat() if ts else None,
                "user": header.get("user"),
                "transactionCode": normalize_tcode(header.get("tcode")),
                "changeNumber": str(header.get("changeNumber") or ""),
                "line": first_line.get(change_key, 0),
                "_ts": ts,
            })

        for trace in traces.values():
            trace.events.sort(key=lambda e: (
                e["_ts"] or datetime.min,
                e["changeNumber"],
                e["line"],
            ))
        self.traces = sorted(traces.values(), key=lambda t: (t.process_id, t.case_id))
        logger.info(
            "Traces built cases=%d dropped=%d unclassified=%d",
            len(self.traces), sum(self.dropped_cases.values()), len(self.unclassified),
        )
        return self.traces

    # ── Analysis ─────────────────────────────────────────────────────────

    def check_conformance(self, trace: Trace) -> list[dict]:
        model = self.models[trace.process_id]
        violations = []
        acts = trace.activities
        for i in range(1, len(acts)):
            if not model.is_valid_transition(acts[i - 1], acts[i]):
                violations.append({
                    "caseId": trace.case_id,
                    "from": acts[i - 1],
                    "to": acts[i],
                    "eventIndex": i,
                })
        return violations

    def _transition_metrics(self, model: ReferenceModel, traces: list[Trace]) -> list[dict]:
        durations: dict[tuple, list[float]] = {}
        counts: dict[tuple, int] = {}
        cases: dict[tuple, set] = {}
        for trace in traces:
            for prev, cur in zip(trace.events, trace.events[1:]):
                edge = (prev["activity"], cur["activity"])
                counts[edge] = counts.get(edge, 0) + 1
                cases.setdefault(edge, set()).add(trace.case_id)
                elapsed = _hours(prev["_ts"], cur["_ts"])
                if elapsed is not None:
                    durations.setdefault(edge, []).append(elapsed)

        metrics = []
        for edge in sorted(counts):
            values = durations.get(edge, [])
            median = round(statistics.median(values), 2) if values else None
            sla = model.sla_target(*edge)
            threshold = sla_hours(sla) if sla else None
            metrics.append({
                "from": edge[0],
                "to": edge[1],
                "count": counts[edge],
                "caseShare": round(len(cases[edge]) / len(traces), 3) if traces else 0,
                "medianHours": median,
                "minHours": min(values) if values else None,
                "maxHours": max(values) if values else None,
                "slaTargetHours": threshold,
                "inModel": model.is_valid_transition(*edge),
                "bottleneck": bool(threshold is not None and median is not None and median > threshold),
            })
        return metrics

    def _sla_breaches(self, model: ReferenceModel, traces: list[Trace]) -> list[dict]:
        breaches = []
        for trace in traces:
            for key, sla in model.sla_targets.items():
                src, dst = key.split(" -> ")
                start = next((e for e in trace.events if e["activity"] == src and e["_ts"]), None)
                if start is None:
                    continue
                end = next(
                    (e for e in trace.events
                     if e["activity"] == dst and e["_ts"] and e["_ts"] >= start["_ts"] and e is not start),
                    None,
                )
                if end is None:
                    continue
                elapsed = _hours(start["_ts"], end["_ts"])
                target = sla_hours(sla)
                if elapsed > target:
                    breaches.append({
                        "caseId": trace.case_id,
                        "transition": transition_key(src, dst),
                        "elapsedHours": elapsed,
                        "targetHours": target,
                        "severity": sla.get("severity", "warning"),
                    })
        breaches.sort(key=lambda b: (b["caseId"], b["transition"]))
        return breaches

    def _variants(self, traces: list[Trace]) -> list[dict]:
        counts: dict[tuple, int] = {}
        for trace in traces:
            seq = tuple(trace.activities)
            counts[seq] = counts.get(seq, 0) + 1
        ranked = sorted(counts.items(), key=lambda kv: (-kv[1], _ARROW.join(kv[0])))
        return [
            {
                "id": f"V{i}",
                "sequence": _ARROW.join(seq),
                "activities": list(seq),
                "caseCount": n,
                "share": round(n / len(traces), 3),
            }
            for i, (seq, n) in enumerate(ranked, start=1)
        ]

    def _process_entry(self, model: ReferenceModel, traces: list[Trace]) -> dict:
        violations = [v for t in traces for v in self.check_conformance(t)]
        violating_cases = {v["caseId"] for v in violations}
        variants = self._variants(traces)
        transitions = self._transition_metrics(model, traces)
        observed_tcodes = {e["transactionCode"] for t in traces for e in t.events}
        executions = sum(
            int(u.get("executions") or 0) for u in self.usage
            if normalize_tcode(u.get("tcode")) in observed_tcodes
        )
        return {
            "id": model.id,
            "name": model.name,
            "category": "core" if model.id in CORE_PROCESSES else "support",
            "caseCount": len(traces),
            "variantCount": len(variants),
            "evidenceCounts": {
                "cases": len(traces),
                "events": sum(len(t.events) for t in traces),
                "users": len({e["user"] for t in traces for e in t.events if e["user"]}),
                "transactionExecutions": executions,
                "unclassifiedEvents": sum(1 for u in self.unclassified if u["process"] == model.id),
            },
            "topVariants": variants[:TOP_VARIANT_LIMIT],
            "transitions": transitions,
            "bottleneckTransitions": [
                {"from": m["from"], "to": m["to"], "medianHours": m["medianHours"], "slaTargetHours": m["slaTargetHours"]}
                for m in transitions if m["bottleneck"]
            ],
            "slaBreaches": self._sla_breaches(model, traces),
            "conformance": {
                "conformantCases": len(traces) - len(violating_cases),
                "rate": round((len(traces) - len(violating_cases)) / len(traces), 3) if traces else 1.0,
                "violations": violations,
            },
        }

    def unused_transactions(self) -> list[dict]:
        observed = {e["transactionCode"] for t in self.traces for e in t.events}
        return [
            {"tcode": u["tcode"], "executions": int(u.get("executions") or 0)}
            for u in self.usage
            if u.get("tcode") and int(u.get("executions") or 0) > 0
            and normalize_tcode(u["tcode"]) not in observed
        ]

    def custom_transactions(self) -> list[dict]:
        return [
            {"tcode": u["tcode"], "executions": int(u.get("executions") or 0), "users": int(u.get("users") or 0)}
            for u in self.usage
            if str(u.get("tcode", ""))[:1] in ("Z", "Y")
            and int(u.get("executions") or 0) > CUSTOM_TRANSACTION_MIN_EXECUTIONS
        ]

    def batch_processes(self) -> list[dict]:
        return [
            {
                "jobName": j["jobName"],
                "status": j.get("statusText") or j.get("status"),
                "periodic": bool(j.get("periodic")),
                "programs": [s["program"] for s in j.get("steps") or []],
            }
            for j in self.batch_jobs
            if j.get("status") in ACTIVE_BATCH_STATUSES
        ]

    def analyze(self) -> dict:
        if not self.traces:
            self.build_traces()
        by_process: dict[str, list[Trace]] = {}
        for trace in self.traces:
            by_process.setdefault(trace.process_id, []).append(trace)

        processes = [
            self._process_entry(self.models[pid], by_process[pid])
            for pid in self.models if pid in by_process
        ]
        self._catalog = {
            "processes": processes,
            "processCount": len(processes),
            "totalCases": len(self.traces),
            "droppedCases": {"count": sum(self.dropped_cases.values()), "byClass": dict(sorted(self.dropped_cases.items()))},
            "unclassifiedEvents": list(self.unclassified),
            "unusedTransactions": self.unused_transactions(),
            "customTransactions": self.custom_transactions(),
            "batchProcesses": self.batch_processes(),
        }
        logger.info(
            "Process catalog built processes=%d cases=%d",
            len(processes), len(self.traces),
        )
        return self._catalog

    # ── Serialization ────────────────────────────────────────────────────

    def event_rows(self) -> list[dict]:
        """One flat row per event, in trace order."""
        if not self.traces:
            self.build_traces()
        return [
            {
                "caseId": t.case_id,
                "activity": e["activity"],
                "timestamp": e["timestamp"] or "",
                "user": e["user"] or "",
                "transactionCode": e["transactionCode"],
            }
            for t in self.traces
            for e in t.events
        ]

    def to_markdown(self) -> str:
        catalog = self._catalog or self.analyze()
        lines = ["# Process Catalog", ""]
        lines.append(f"Processes discovered: {catalog['processCount']}, cases: {catalog['totalCases']}")
        lines.append("")
        for proc in catalog["processes"]:
            conf = proc["conformance"]
            lines.append(f"## {proc['id']} — {proc['name']} ({proc['category']})")
            lines.append(f"- Cases: {proc['caseCount']}, variants: {proc['variantCount']}")
            lines.append(f"- Conformance: {conf['conformantCases']}/{proc['caseCount']} cases ({conf['rate']:.0%})")
            if proc["topVariants"]:
                lines.append("- Top variants:")
                for v in proc["topVariants"][:3]:
                    lines.append(f"  - {v['id']} ({v['caseCount']}): {v['sequence']}")
            for b in proc["bottleneckTransitions"]:
                lines.append(f"- Bottleneck: {b['from']} → {b['to']} median {b['medianHours']}h > {b['slaTargetHours']}h")
            if proc["slaBreaches"]:
                lines.append(f"- SLA breaches: {len(proc['slaBreaches'])}")
            lines.append("")
        if catalog["customTransactions"]:
            lines.append("## Custom transactions")
            for t in catalog["customTransactions"]:
                lines.append(f"- {t['tcode']}: {t['executions']} executions")
            lines.append("")
        if catalog["unusedTransactions"]:
            lines.append("## Transactions without change-document evidence")
            lines.append(", ".join(t["tcode"] for t in catalog["unusedTransactions"]))
            lines.append("")
        return "\n".join(lines)
