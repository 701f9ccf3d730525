"""
Security tiers and the operation → tier table.

Four closed tiers.  Every operation the analyzer performs resolves to one
of them: exact name first, then the ``family.*`` wildcard, then tier 4.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Tier:
    level: int
    label: str
    description: str
    requires_approval: bool
    approvers: int

    def to_dict(self) -> dict:
        return {
            "level": self.level,
            "label": self.label,
            "description": self.description,
            "requiresApproval": self.requires_approval,
            "approvers": self.approvers,
        }


TIERS: dict[int, Tier] = {
    1: Tier(1, "Assessment", "Read-only analysis and discovery", False, 0),
    2: Tier(2, "Development", "Development and sandbox changes", False, 0),
    3: Tier(3, "Staging", "Pre-production validation and staging loads", True, 1),
    4: Tier(4, "Production", "Production system changes", True, 2),
}

DEFAULT_TIER = 4

OPERATION_TIERS: dict[str, int] = {
    # Extraction (read-only)
    "extraction.run": 1,
    "extraction.cancel": 1,
    "extraction.export": 1,
    "extraction.*": 1,
    # Assessment
    "analysis.interpret": 1,
    "analysis.mine": 1,
    "analysis.export": 1,
    "analysis.*": 1,
    # Migration
    "migration.analyze": 1,
    "migration.plan": 1,
    "migration.transform": 2,
    "migration.validate": 2,
    "migration.load_sandbox": 2,
    "migration.load_staging": 3,
    "migration.cutover_rehearsal": 3,
    "migration.load_production": 4,
    "migration.cutover_execute": 4,
    "migration.*": 2,
    # Transport
    "transport.create": 2,
    "transport.release": 3,
    "transport.import_staging": 3,
    "transport.import": 4,
    "transport.import_production": 4,
    "transport.*": 3,
    # Code
    "code.read": 1,
    "code.analyze": 1,
    "code.generate": 2,
    "code.activate_staging": 3,
    "code.activate_production": 4,
    "code.*": 2,
    # Configuration
    "config.read": 1,
    "config.export": 1,
    "config.change_dev": 2,
    "config.change_staging": 3,
    "config.change_production": 4,
    "config.*": 3,
    # System
    "system.info": 1,
    "system.health_check": 1,
    "system.audit_verify": 1,
    "system.user_management": 3,
    "system.security_policy": 4,
    "system.*": 4,
}


def get_tier_for_operation(operation: str) -> int:
    tier = OPERATION_TIERS.get(operation)
    if tier is not None:
        return tier
    family = operation.split(".", 1)[0]
    return OPERATION_TIERS.get(f"{family}.*", DEFAULT_TIER)


def get_tier(level: int) -> Tier | None:
    return TIERS.get(level)


def requires_approval(operation: str) -> bool:
    return TIERS[get_tier_for_operation(operation)].requires_approval


def list_operations(tier: int | None = None) -> list[dict]:
    return [
        {"operation": op, "tier": t}
        for op, t in OPERATION_TIERS.items()
        if not op.endswith(".*") and (tier is None or t == tier)
    ]
