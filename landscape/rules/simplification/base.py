"""Simplification rule record and severity ordering."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum


class Severity(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class PatternType(str, Enum):
    SOURCE = "source"
    CONFIG = "config"


SEVERITY_ORDER = {Severity.CRITICAL: 0, Severity.HIGH: 1, Severity.MEDIUM: 2, Severity.LOW: 3}
SEVERITY_WEIGHT = {Severity.CRITICAL: 10, Severity.HIGH: 5, Severity.MEDIUM: 2, Severity.LOW: 1}


@dataclass(frozen=True)
class SimplificationRule:
    id: str
    title: str
    description: str
    severity: Severity
    category: str
    pattern: re.Pattern
    remediation: str
    simplification_id: str
    pattern_type: PatternType = PatternType.SOURCE

    def matches(self, text: str) -> bool:
        return bool(self.pattern.search(text))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "severity": self.severity.value,
            "category": self.category,
            "pattern": self.pattern.pattern,
            "patternType": self.pattern_type.value,
            "remediation": self.remediation,
            "simplificationId": self.simplification_id,
        }


def rule(
    id: str,
    category: str,
    severity: str,
    title: str,
    description: str,
    pattern: str,
    remediation: str,
    simplification_id: str,
    *,
    pattern_type: str = "source",
    flags: int = re.IGNORECASE,
) -> SimplificationRule:
    """Build a rule with its pattern compiled once at import."""
    return SimplificationRule(
        id=id,
        title=title,
        description=description,
        severity=Severity(severity),
        category=category,
        pattern=re.compile(pattern, flags),
        remediation=remediation,
        simplification_id=simplification_id,
        pattern_type=PatternType(pattern_type),
    )
