"""Simplification rule tables, one list per module."""

from landscape.rules.simplification.base import (
    SEVERITY_ORDER,
    SEVERITY_WEIGHT,
    PatternType,
    Severity,
    SimplificationRule,
)
from landscape.rules.simplification.finance import CO_RULES, FIN_RULES
from landscape.rules.simplification.logistics import MM_RULES, SD_RULES
from landscape.rules.simplification.platform import ABAP_RULES, BP_RULES, CFG_RULES

RULES_BY_MODULE: dict[str, list[SimplificationRule]] = {
    "FIN": FIN_RULES,
    "CO": CO_RULES,
    "MM": MM_RULES,
    "SD": SD_RULES,
    "BP": BP_RULES,
    "ABAP": ABAP_RULES,
    "CFG": CFG_RULES,
}


def all_rules() -> list[SimplificationRule]:
    return [r for rules in RULES_BY_MODULE.values() for r in rules]


def rules_by_severity(severity: str) -> list[SimplificationRule]:
    return [r for r in all_rules() if r.severity.value == severity]


def rules_by_category(category: str) -> list[SimplificationRule]:
    lower = category.lower()
    return [r for r in all_rules() if lower in r.category.lower()]


__all__ = [
    "ABAP_RULES", "BP_RULES", "CFG_RULES", "CO_RULES", "FIN_RULES", "MM_RULES", "SD_RULES",
    "RULES_BY_MODULE", "SEVERITY_ORDER", "SEVERITY_WEIGHT",
    "PatternType", "Severity", "SimplificationRule",
    "all_rules", "rules_by_category", "rules_by_severity",
]
