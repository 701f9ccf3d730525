"""
Simplification scanner — matches rule patterns against custom code and
configuration identifiers and returns a prioritized remediation list.

Source rules run line by line over every custom program source.  Config
rules run against whole identifiers gathered from the extraction results
(tables read, transaction codes, custom object names, job programs).
Findings are sorted by severity, then category, then rule id and object.
"""

from __future__ import annotations

import logging

from landscape.rules.simplification import SEVERITY_ORDER, SEVERITY_WEIGHT, all_rules
from landscape.rules.simplification.base import PatternType, SimplificationRule

logger = logging.getLogger(__name__)


def check_source(source: str, object_name: str, rules: list[SimplificationRule] | None = None) -> list[dict]:
    findings = []
    lines = (source or "").split("\n")
    for rule in rules if rules is not None else all_rules():
        if rule.pattern_type != PatternType.SOURCE:
            continue
        matches = [
            {"line": i, "content": line.strip()}
            for i, line in enumerate(lines, start=1)
            if rule.matches(line)
        ]
        if matches:
            findings.append(_finding(rule, object_name, matches))
    return findings


def check_identifiers(identifiers: list[str], rules: list[SimplificationRule] | None = None) -> list[dict]:
    findings = []
    for rule in rules if rules is not None else all_rules():
        if rule.pattern_type != PatternType.CONFIG:
            continue
        for ident in identifiers:
            if rule.matches(ident):
                findings.append(_finding(rule, ident, [{"line": 0, "content": f"Identifier: {ident}"}]))
    return findings


def _finding(rule: SimplificationRule, object_name: str, matches: list[dict]) -> dict:
    return {
        "ruleId": rule.id,
        "title": rule.title,
        "severity": rule.severity.value,
        "category": rule.category,
        "patternType": rule.pattern_type.value,
        "object": object_name,
        "remediation": rule.remediation,
        "simplificationId": rule.simplification_id,
        "matches": matches,
    }


def sort_findings(findings: list[dict]) -> list[dict]:
    return sorted(
        findings,
        key=lambda f: (SEVERITY_ORDER[f["severity"]], f["category"], f["ruleId"], f["object"]),
    )


def collect_identifiers(results: dict[str, dict], tables_read: list[str] | None = None) -> list[str]:
    """Distinct config identifiers visible in a result map, sorted."""
    idents: set[str] = set(tables_read or [])
    usage = results.get("USAGE_STATISTICS") or {}
    idents.update(t["tcode"] for t in usage.get("transactionUsage") or [] if t.get("executions"))
    code = results.get("CUSTOM_CODE") or {}
    idents.update(o["name"] for o in code.get("customObjects") or [])
    for job in (results.get("BATCH_JOBS") or {}).get("batchJobs") or []:
        idents.update(s["program"] for s in job.get("steps") or [] if s.get("program"))
    return sorted(i for i in idents if i)


class SimplificationScanner:
    def __init__(self, results: dict[str, dict], *, tables_read: list[str] | None = None, rules=None) -> None:
        self.results = results
        self.tables_read = tables_read or []
        self.rules = rules
        self.findings: list[dict] = []

    def scan(self) -> list[dict]:
        findings: list[dict] = []
        sources = (self.results.get("CUSTOM_CODE") or {}).get("sources") or []
        for src in sources:
            findings.extend(check_source(src.get("source", ""), src["program"], self.rules))
        identifiers = collect_identifiers(self.results, self.tables_read)
        findings.extend(check_identifiers(identifiers, self.rules))
        self.findings = sort_findings(findings)
        logger.info(
            "Simplification scan done programs=%d identifiers=%d findings=%d",
            len(sources), len(identifiers), len(self.findings),
        )
        return self.findings

    def summary(self) -> dict:
        by_severity = {s.value: 0 for s in SEVERITY_ORDER}
        score = 0
        for f in self.findings:
            by_severity[f["severity"]] += 1
            score += SEVERITY_WEIGHT[f["severity"]]
        return {
            "totalFindings": len(self.findings),
            "bySeverity": by_severity,
            "affectedObjects": len({f["object"] for f in self.findings}),
            "remediationScore": score,
        }
