"""
Configuration interpreter — explains what the source is configured to DO.

Flattens the extraction result map into one lookup (later extractors
overwrite earlier keys, in result-map order), applies every rule in
CONFIG_RULES in isolation, then runs module helpers over the same view.
A failing rule is logged and skipped; it never fails the interpreter.

Usage:
    interpreter = ConfigInterpreter(results)
    findings = interpreter.interpret()
    markdown = interpreter.to_markdown()
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from landscape.core.exceptions import RuleEvaluationError
from landscape.rules.config_rules import CONFIG_RULES, ConfigRule

logger = logging.getLogger(__name__)

PRIMARY_COST_ELEMENT_CATEGORIES = frozenset({"1"})
# Extend here when new secondary categories appear
SECONDARY_COST_ELEMENT_CATEGORIES = frozenset({"41", "42", "43"})

CUSTOM_MOVEMENT_TYPE_FLOOR = 900


def flatten_results(results: dict[str, dict]) -> dict:
    flat: dict = {}
    for value in results.values():
        if isinstance(value, dict) and not value.get("error"):
            flat.update(value)
    return flat


def evaluate_rule(rule: ConfigRule, data: dict) -> dict | None:
    """Evaluate one rule.  Raises RuleEvaluationError if it raises."""
    try:
        if not rule.condition(data):
            return None
        text = rule.interpretation(data)
    except Exception as exc:
        raise RuleEvaluationError(rule.id, exc) from exc
    return {
        "ruleId": rule.id,
        "description": rule.description,
        "interpretation": text,
        "impact": rule.impact,
        "targetRelevance": rule.target_relevance,
    }


class ConfigInterpreter:
    def __init__(
        self,
        results: dict[str, dict],
        *,
        rules: list[ConfigRule] | None = None,
        secondary_categories: frozenset[str] = SECONDARY_COST_ELEMENT_CATEGORIES,
    ) -> None:
        self.results = results
        self.rules = list(CONFIG_RULES if rules is None else rules)
        self.secondary_categories = secondary_categories
        self._interpretations: list[dict] = []
        self.failed_rules: list[dict] = []
        self.rules_evaluated = 0

    def interpret(self) -> list[dict]:
        self._interpretations = []
        self.failed_rules = []
        self.rules_evaluated = 0
        data = flatten_results(self.results)

        for rule in self.rules:
            self.rules_evaluated += 1
            try:
                finding = evaluate_rule(rule, data)
            except RuleEvaluationError as exc:
                logger.warning("Config rule failed rule_id=%s error=%s", exc.rule_id, exc.cause)
                self.failed_rules.append({"ruleId": exc.rule_id, "error": str(exc.cause)})
                continue
            if finding:
                self._interpretations.append(finding)

        for helper in (
            self._interpret_fi,
            self._interpret_co,
            self._interpret_mm,
            self._interpret_sd,
            self._interpret_pp,
            self._interpret_integration_points,
        ):
            self.rules_evaluated += 1
            try:
                helper(data)
            except Exception as exc:
                logger.warning("Config helper failed helper=%s error=%s", helper.__name__, exc)
                self.failed_rules.append({"ruleId": helper.__name__, "error": str(exc)})

        logger.info(
            "Config interpretation done findings=%d failed=%d",
            len(self._interpretations), len(self.failed_rules),
        )
        return self._interpretations

    # ── Module helpers ───────────────────────────────────────────────────────

    def _add(self, rule_id: str, description: str, interpretation: str, target_relevance: str = "") -> None:
        self._interpretations.append({
            "ruleId": rule_id,
            "description": description,
            "interpretation": interpretation,
            "impact": "",
            "targetRelevance": target_relevance,
        })

    def _interpret_fi(self, data: dict) -> None:
        custom = [t["type"] for t in data.get("documentTypes") or [] if str(t.get("type", "")).startswith("Z")]
        if custom:
            self._add("FI-DOCTYPE", "Custom Document Types",
                      f"{len(custom)} custom document type(s): {', '.join(custom)}",
                      "Custom document types need review for target compatibility")
        if data.get("paymentConfig"):
            self._add("FI-PAYMENT", "Payment Program Configuration",
                      f"Payment program configured for {len(data['paymentConfig'])} company code(s)",
                      "The payment program carries over; review payment methods for bank connectivity")
        if data.get("assetClasses"):
            self._add("FI-AA", "Asset Accounting",
                      f"{len(data['assetClasses'])} asset class(es) configured with "
                      f"{len(data.get('depreciationAreas') or [])} depreciation area(s)",
                      "New asset accounting is required; parallel depreciation areas may simplify")

    def _interpret_co(self, data: dict) -> None:
        elements = data.get("costElements") or []
        if elements:
            primary = sum(1 for e in elements if str(e.get("category", "")) in PRIMARY_COST_ELEMENT_CATEGORIES)
            secondary = sum(1 for e in elements if str(e.get("category", "")) in self.secondary_categories)
            self._add("CO-ELEMENTS", "Cost Element Structure",
                      f"{len(elements)} cost element(s) — {primary} primary, {secondary} secondary",
                      "Cost elements merge with GL accounts in the target; review for conflicts")
        if data.get("costCenters"):
            self._add("CO-CCTR", "Cost Center Structure",
                      f"{len(data['costCenters'])} cost center(s) configured",
                      "Cost center hierarchy and assignments migrate to the target")

    def _interpret_mm(self, data: dict) -> None:
        custom = []
        for m in data.get("movementTypes") or []:
            try:
                code = int(m.get("type") or 0)
            except ValueError:
                continue
            if code >= CUSTOM_MOVEMENT_TYPE_FLOOR:
                custom.append(m["type"])
        if custom:
            self._add("MM-MVTYPE", "Custom Movement Types",
                      f"{len(custom)} custom movement type(s) (900+): {', '.join(custom)}",
                      "Custom movement types need validation against target inventory management")

    def _interpret_sd(self, data: dict) -> None:
        custom = [c for c in data.get("conditionTypes") or [] if str(c.get("type", "")).startswith("Z")]
        if custom:
            self._add("SD-COND", "Custom Condition Types",
                      f"{len(custom)} custom pricing condition type(s)",
                      "Custom condition types need review against the target condition technique")

    def _interpret_pp(self, data: dict) -> None:
        if data.get("orderTypes"):
            self._add("PP-ORDTYPE", "Production Order Types",
                      f"{len(data['orderTypes'])} production order type(s) configured",
                      "Review for the target manufacturing approach (discrete, process or repetitive)")

    def _interpret_integration_points(self, data: dict) -> None:
        points = []
        if data.get("companyCodes") and data.get("controllingAreas"):
            points.append("FI-CO: Company codes assigned to controlling areas")
        if data.get("plants") and data.get("companyCodes"):
            points.append("MM-FI: Plants assigned to company codes for valuation")
        if data.get("salesOrgs") and data.get("companyCodes"):
            points.append("SD-FI: Sales organizations linked to company codes for revenue posting")
        if points:
            self._add("INT-POINTS", "Integration Points",
                      f"{len(points)} cross-module integration point(s): {'; '.join(points)}",
                      "Integration points are critical path items for migration sequencing")

    # ── Output ───────────────────────────────────────────────────────────────

    @property
    def interpretations(self) -> list[dict]:
        return list(self._interpretations)

    def to_dict(self) -> dict:
        return {
            "generatedAt": datetime.now(timezone.utc).isoformat(),
            "totalInterpretations": len(self._interpretations),
            "rulesEvaluated": self.rules_evaluated,
            "failedRules": list(self.failed_rules),
            "interpretations": self.interpretations,
        }

    def to_markdown(self) -> str:
        lines = ["# Configuration Interpretation Report", ""]
        for item in self._interpretations:
            lines.append(f"## {item['description']}")
            lines.append(f"**{item['interpretation']}**")
            if item.get("impact"):
                lines.append(f"- Impact: {item['impact']}")
            if item.get("targetRelevance"):
                lines.append(f"- Target relevance: {item['targetRelevance']}")
            lines.append("")
        return "\n".join(lines)
