"""
Gap analysis — what the extraction could NOT see, stated explicitly.

Consumes the coverage tracker, the result map and (optionally) the
interpretation count, and produces a categorized gap report plus a
0-100 confidence score graded A-F.
"""

from __future__ import annotations

import logging

from landscape.extraction.coverage import EXTRACTED, FAILED, CoverageTracker

logger = logging.getLogger(__name__)

# Tables a complete assessment is expected to have read
CRITICAL_TABLES = (
    "T001", "T003", "T004", "BKPF", "SKA1", "KNA1", "LFA1", "MARA",
    "EKKO", "VBAK", "USR02", "AGR_DEFINE", "RFCDES", "E070", "TADIR",
    "CDHDR", "TBTCO", "DD02L",
)

_ACCESS_MARKERS = ("access", "auth", "denied", "forbidden")

# Modules that carry configuration interpretation rules
_INTERPRETED_MODULES = {"FI", "CO", "MM", "SD", "PP", "SEC", "INT"}
_UNINTERPRETED_OK = {"BASIS", "PROCESS", "CODE"}

_GRADES = ((90, "A"), (80, "B"), (70, "C"), (60, "D"))

HUMAN_VALIDATION_CHECKLIST = [
    "Verify the number of active users matches business expectations",
    "Confirm all company codes in scope are accounted for",
    "Validate that all interfaces are documented and active",
    "Review custom code objects for business-critical processes",
    "Verify batch job schedules match operational requirements",
    "Confirm data archiving policies and historical data availability",
    "Validate authorization concept against compliance requirements",
]


class GapAnalyzer:
    def __init__(
        self,
        results: dict[str, dict],
        coverage: CoverageTracker,
        *,
        data_dictionary=None,
        modules: dict[str, str] | None = None,
    ) -> None:
        self.results = results
        self.coverage = coverage
        self.data_dictionary = data_dictionary
        # extractor id -> module, for the interpretation gap check
        self.modules = modules or {}
        self._gaps: dict | None = None

    # ── Categories ───────────────────────────────────────────────────────────

    def extraction_gaps(self) -> dict:
        entries = self.coverage.entries()
        read = {e["table"] for e in entries if e["status"] == EXTRACTED}
        tracked = {e["table"] for e in entries}
        known = set(self.data_dictionary.tables) if self.data_dictionary else set()
        return {
            "totalTablesInDictionary": len(known),
            "totalTablesTracked": len(tracked),
            "totalTablesExtracted": len(read),
            "coveragePct": self.coverage.system_report()["coverage"],
            "missingCriticalTables": [t for t in CRITICAL_TABLES if t not in read],
        }

    def authorization_gaps(self) -> dict:
        denied = [
            g for g in self.coverage.gaps()
            if g["status"] == FAILED and (
                g.get("kind") == "access_denied"
                or any(m in str(g["reason"]).lower() for m in _ACCESS_MARKERS)
            )
        ]
        return {
            "count": len(denied),
            "tables": [{"table": g["table"], "extractorId": g["extractorId"], "reason": g["reason"]} for g in denied],
        }

    def data_volume_gaps(self) -> dict:
        partial = [
            e for e in self.coverage.entries()
            if e["status"] == FAILED and e["metadata"].get("partial")
        ]
        return {
            "count": len(partial),
            "tables": [
                {
                    "table": e["table"],
                    "extractorId": e["extractorId"],
                    "rowsExtracted": e["metadata"].get("rowCount", 0),
                    "reason": e["metadata"].get("reason", "partial extraction"),
                }
                for e in partial
            ],
        }

    def process_gaps(self) -> list[str]:
        gaps = []
        if not (self.results.get("CHANGE_DOCUMENTS") or {}).get("changeHeaders"):
            gaps.append("Change documents not available — process mining will be limited")
        if not (self.results.get("USAGE_STATISTICS") or {}).get("transactionUsage"):
            gaps.append("Usage statistics not available — cannot determine transaction frequency")
        if not (self.results.get("BATCH_JOBS") or {}).get("batchJobs"):
            gaps.append("Batch job data not available — scheduled processes not discovered")
        return gaps

    def interface_gaps(self) -> list[dict]:
        interfaces = self.results.get("INTERFACES")
        if not interfaces:
            return [{
                "type": "NO_INTERFACE_DATA",
                "description": "Interface landscape not extracted — cannot analyze system connectivity",
            }]
        hostless = [
            d["destination"] for d in interfaces.get("rfcDestinations", [])
            if d.get("type") == "3" and not d.get("host")
        ]
        if not hostless:
            return []
        return [{
            "type": "OUTBOUND_UNKNOWN",
            "description": "ABAP connections without a target host cannot be verified",
            "destinations": hostless[:20],
        }]

    def interpretation_gaps(self, interpretation_count: int | None = None, rules_evaluated: int | None = None) -> list[str]:
        gaps = []
        seen = []
        for eid in self.results:
            module = self.modules.get(eid) or eid.split("_")[0]
            if module not in seen:
                seen.append(module)
        for module in seen:
            if module not in _INTERPRETED_MODULES and module not in _UNINTERPRETED_OK:
                gaps.append(f"Module {module} was extracted but has no configuration interpretation rules")
        if interpretation_count is not None and rules_evaluated:
            if interpretation_count == 0:
                gaps.append(f"No interpretations produced from {rules_evaluated} rule(s) evaluated")
        return gaps

    # ── Report ───────────────────────────────────────────────────────────────

    def analyze(self, *, interpretation_count: int | None = None, rules_evaluated: int | None = None) -> dict:
        self._gaps = {
            "extraction": self.extraction_gaps(),
            "authorization": self.authorization_gaps(),
            "dataVolume": self.data_volume_gaps(),
            "process": self.process_gaps(),
            "interface": self.interface_gaps(),
            "interpretation": self.interpretation_gaps(interpretation_count, rules_evaluated),
            "coverageGaps": self.coverage.gaps(),
        }
        self._gaps["totalGapCount"] = self._count()
        logger.info("Gap analysis done total_gaps=%d", self._gaps["totalGapCount"])
        return self._gaps

    def _count(self) -> int:
        g = self._gaps or {}
        return (
            len(g["extraction"]["missingCriticalTables"])
            + g["authorization"]["count"]
            + g["dataVolume"]["count"]
            + len(g["process"])
            + len(g["interface"])
            + len(g["interpretation"])
        )

    def confidence(self) -> dict:
        """Weighted score: coverage 50%, extraction health 30%, evidence 20%."""
        if self._gaps is None:
            self.analyze()
        system = self.coverage.system_report()
        coverage_pct = system["coverage"]
        by_extractor = system.get("byExtractor", {})
        healthy = sum(1 for r in by_extractor.values() if r.get("failed", 0) == 0)
        health_pct = round(100 * healthy / len(by_extractor)) if by_extractor else 0
        evidence_missing = len(self._gaps["process"])
        evidence_pct = round(100 * (3 - evidence_missing) / 3)
        score = round(0.5 * coverage_pct + 0.3 * health_pct + 0.2 * evidence_pct)
        score = max(0, min(100, score))
        grade = next((g for threshold, g in _GRADES if score >= threshold), "F")
        return {
            "score": score,
            "grade": grade,
            "factors": {"coveragePct": coverage_pct, "healthPct": health_pct, "evidencePct": evidence_pct},
        }

    def human_validation_checklist(self) -> list[str]:
        items = list(HUMAN_VALIDATION_CHECKLIST)
        if self._gaps and self._gaps["authorization"]["count"]:
            items.append("Request additional authorization for tables that returned access errors")
        if self._gaps and self._gaps["process"]:
            items.append("Conduct process workshops to fill gaps in process documentation")
        return items
