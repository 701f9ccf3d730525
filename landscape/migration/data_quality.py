"""
Data quality checker for transformed migration rows.

Check kinds and the severity a failure carries:
  - required        blocking
  - exactDuplicate  blocking
  - referential     blocking
  - fuzzyDuplicate  warning  (normalized Levenshtein similarity >= threshold)
  - format          warning  (regex)
  - range           warning  (numeric min / max)

Blocking failures prevent load; warnings are reported and carried forward.
"""

from __future__ import annotations

import logging
import re

from rapidfuzz.distance import Levenshtein

logger = logging.getLogger(__name__)

BLOCKING = "blocking"
WARNING = "warning"
PASS = "pass"

DEFAULT_FUZZY_THRESHOLD = 0.85
FUZZY_ROW_CAP = 10_000


def _empty(value) -> bool:
    return value is None or value == ""


def _result(name: str, failed: bool, severity: str, message: str, details: list[dict], **extra) -> dict:
    return {
        "name": name,
        "severity": severity if failed else PASS,
        "message": message,
        "details": details,
        "count": len(details),
        **extra,
    }


def similarity(a: str | None, b: str | None) -> float:
    """Symmetric similarity in [0, 1]; equal strings score 1.0."""
    return Levenshtein.normalized_similarity(a or "", b or "")


# ── Individual checks ────────────────────────────────────────────────────────

def check_required(rows: list[dict], fields: list[str]) -> dict:
    missing = [
        {"row": i, "field": f}
        for i, row in enumerate(rows)
        for f in fields
        if _empty(row.get(f))
    ]
    missing_fields = sorted({m["field"] for m in missing})
    msg = (
        f"{len(missing)} missing required value(s) in field(s): {', '.join(missing_fields)}"
        if missing else f"All required fields present: {', '.join(fields)}"
    )
    return _result("required", bool(missing), BLOCKING, msg, missing, fields=list(fields))


def find_exact_duplicates(rows: list[dict], keys: list[str]) -> dict:
    seen: dict[tuple, int] = {}
    duplicates = []
    for i, row in enumerate(rows):
        projection = tuple(row.get(k) for k in keys)
        if projection in seen:
            duplicates.append({"row": i, "duplicateOf": seen[projection], "key": list(projection)})
        else:
            seen[projection] = i
    msg = (
        f"{len(duplicates)} exact duplicate(s) on keys: {', '.join(keys)}"
        if duplicates else f"No exact duplicates on keys: {', '.join(keys)}"
    )
    return _result("exactDuplicate", bool(duplicates), BLOCKING, msg, duplicates, keys=list(keys))


def find_fuzzy_duplicates(rows: list[dict], keys: list[str], threshold: float = DEFAULT_FUZZY_THRESHOLD) -> dict:
    texts = [" ".join(str(r.get(k) or "").lower().strip() for k in keys) for r in rows]
    limit = min(len(texts), FUZZY_ROW_CAP)
    if len(texts) > FUZZY_ROW_CAP:
        logger.warning("Fuzzy duplicate check capped rows=%d cap=%d", len(texts), FUZZY_ROW_CAP)
    candidates = []
    for i in range(limit):
        for j in range(i + 1, limit):
            score = similarity(texts[i], texts[j])
            if score >= threshold:
                candidates.append({"rowA": i, "rowB": j, "similarity": round(score, 2)})
    msg = (
        f"{len(candidates)} potential fuzzy duplicate(s) (threshold: {threshold})"
        if candidates else f"No fuzzy duplicates detected (threshold: {threshold})"
    )
    return _result("fuzzyDuplicate", bool(candidates), WARNING, msg, candidates,
                   keys=list(keys), threshold=threshold)


def check_referential(rows: list[dict], field: str, valid_keys) -> dict:
    valid = set(valid_keys)
    violations = [
        {"row": i, "field": field, "value": row.get(field)}
        for i, row in enumerate(rows)
        if not _empty(row.get(field)) and row.get(field) not in valid
    ]
    msg = (
        f"{len(violations)} referential integrity violation(s) on {field}"
        if violations else f"Referential integrity OK for {field}"
    )
    return _result("referential", bool(violations), BLOCKING, msg, violations, field=field)


def check_format(rows: list[dict], field: str, pattern: str, description: str = "") -> dict:
    regex = re.compile(pattern)
    violations = [
        {"row": i, "field": field, "value": row.get(field)}
        for i, row in enumerate(rows)
        if not _empty(row.get(field)) and not regex.search(str(row.get(field)))
    ]
    msg = (
        f"{len(violations)} format violation(s) on {field} ({description or pattern})"
        if violations else f"Format OK for {field}"
    )
    return _result("format", bool(violations), WARNING, msg, violations, field=field)


def check_range(rows: list[dict], field: str, min_value=None, max_value=None) -> dict:
    violations = []
    for i, row in enumerate(rows):
        try:
            value = float(row.get(field))
        except (TypeError, ValueError):
            continue
        if min_value is not None and value < min_value:
            violations.append({"row": i, "field": field, "value": value, "reason": f"below min {min_value}"})
        if max_value is not None and value > max_value:
            violations.append({"row": i, "field": field, "value": value, "reason": f"above max {max_value}"})
    lo = "-inf" if min_value is None else min_value
    hi = "inf" if max_value is None else max_value
    msg = (
        f"{len(violations)} range violation(s) on {field} ({lo}..{hi})"
        if violations else f"Range OK for {field}"
    )
    return _result("range", bool(violations), WARNING, msg, violations, field=field)


# ── Runner ───────────────────────────────────────────────────────────────────

class DataQualityChecker:
    """Runs a declared set of checks over transformed rows.

    ``checks`` shape::

        {
            "required": ["BP-ID", "NAME"],
            "exactDuplicate": {"keys": ["BP-ID"]},
            "fuzzyDuplicate": [{"keys": ["NAME", "CITY"], "threshold": 0.9},
                               {"keys": ["TAX-ID"], "threshold": 0.95}],
            "referential": [{"field": "KUNNR", "validKeys": {...}}],
            "format": [{"field": "EMAIL", "pattern": "^[^@]+@[^@]+$"}],
            "range": [{"field": "QTY", "min": 0}],
        }

    ``fuzzyDuplicate`` also takes a single ``{"keys", "threshold"}`` mapping;
    each key set is scored separately.
    """

    def __init__(self, checks: dict | None = None) -> None:
        self.checks = checks or {}

    def run(self, rows: list[dict]) -> dict:
        cfg = self.checks
        results: list[dict] = []
        if cfg.get("required"):
            results.append(check_required(rows, cfg["required"]))
        if cfg.get("exactDuplicate"):
            results.append(find_exact_duplicates(rows, cfg["exactDuplicate"]["keys"]))
        fuzzy = cfg.get("fuzzyDuplicate") or []
        for key_set in [fuzzy] if isinstance(fuzzy, dict) else fuzzy:
            results.append(find_fuzzy_duplicates(
                rows, key_set["keys"], key_set.get("threshold", DEFAULT_FUZZY_THRESHOLD),
            ))
        for ref in cfg.get("referential") or []:
            results.append(check_referential(rows, ref["field"], ref.get("validKeys") or ()))
        for fmt in cfg.get("format") or []:
            results.append(check_format(rows, fmt["field"], fmt["pattern"], fmt.get("description", "")))
        for rng in cfg.get("range") or []:
            results.append(check_range(rows, rng["field"], rng.get("min"), rng.get("max")))

        blocking = [r for r in results if r["severity"] == BLOCKING]
        warnings = [r for r in results if r["severity"] == WARNING]
        status = "blocking" if blocking else "warnings" if warnings else "passed"
        logger.debug("Quality checks rows=%d blocking=%d warnings=%d", len(rows), len(blocking), len(warnings))
        return {
            "status": status,
            "totalRecords": len(rows),
            "checks": results,
            "blocking": blocking,
            "warnings": warnings,
            "blockingCount": len(blocking),
            "warningCount": len(warnings),
        }
