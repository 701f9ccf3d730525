"""
Configuration interpretation rules.

Each rule reads the flattened extraction view (one dict merged from every
extractor result) and, when its condition holds, states in plain words
what the source system is configured to do.

Usage:
    from landscape.rules.config_rules import CONFIG_RULES
    for rule in CONFIG_RULES:
        if rule.condition(data):
            print(rule.interpretation(data))
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field


@dataclass(frozen=True)
class ConfigRule:
    id: str
    description: str
    condition: Callable[[dict], bool]
    interpretation: Callable[[dict], str]
    impact: str = ""
    target_relevance: str = ""
    tables: tuple[str, ...] = field(default_factory=tuple)


def _has(key: str) -> Callable[[dict], bool]:
    return lambda data: bool(data.get(key))


def _company_codes(data: dict) -> str:
    codes = data["companyCodes"]
    listed = ", ".join(f"{c['code']} ({c.get('text') or c['code']})" for c in codes)
    return f"{len(codes)} company code(s) configured: {listed}"


def _document_splitting(data: dict) -> str:
    splits = data["documentSplitting"]
    active = any(s.get("splitActive") for s in splits)
    tail = "Active splitting rules found." if active else "Splitting configured but may not be active."
    return f"Document splitting is active for {len(splits)} configuration(s). {tail}"


def _ledgers(data: dict) -> str:
    ledgers = data["ledgerConfig"]
    listed = ", ".join(f"{l['ledger']} ({l.get('name') or 'no name'})" for l in ledgers)
    return f"{len(ledgers)} ledger(s) configured: {listed}"


def _controlling_areas(data: dict) -> str:
    areas = data["controllingAreas"]
    listed = ", ".join(f"{a['area']} (currency: {a.get('currency') or 'N/A'})" for a in areas)
    return f"{len(areas)} controlling area(s): {listed}"


def _plants(data: dict) -> str:
    plants = data["plants"]
    listed = ", ".join(f"{p['plant']} ({p.get('name') or p['plant']})" for p in plants)
    return f"{len(plants)} plant(s) configured: {listed}"


def _sap_all(data: dict) -> str:
    users = data["usersWithSapAll"]
    names = ", ".join(u["user"] if isinstance(u, dict) else str(u) for u in users)
    return f"WARNING: {len(users)} user(s) have SAP_ALL profile (full authorization): {names}"


def _rfc_destinations(data: dict) -> str:
    dests = data["rfcDestinations"]
    by_type: dict[str, int] = {}
    for d in dests:
        t = d.get("type") or "U"
        by_type[t] = by_type.get(t, 0) + 1
    parts = ", ".join(f"Type {t}: {c}" for t, c in by_type.items())
    return f"{len(dests)} RFC destination(s): {parts}"


CONFIG_RULES: list[ConfigRule] = [
    ConfigRule(
        id="FI-COCD-001",
        description="Company Code Configuration",
        tables=("T001",),
        condition=_has("companyCodes"),
        interpretation=_company_codes,
        impact="Company codes define the organizational structure for financial accounting",
        target_relevance="Company codes carry over to the target system without structural changes",
    ),
    ConfigRule(
        id="FI-DOC-SPLIT-001",
        description="Document Splitting Active",
        tables=("FAGL_ACTIVEC",),
        condition=_has("documentSplitting"),
        interpretation=_document_splitting,
        impact="All FI postings will be split according to splitting rules",
        target_relevance="Document splitting is mandatory in the target system; this is already aligned",
    ),
    ConfigRule(
        id="FI-LEDGER-001",
        description="Ledger Configuration",
        tables=("T881",),
        condition=_has("ledgerConfig"),
        interpretation=_ledgers,
        impact="Multiple ledgers indicate parallel accounting requirements",
        target_relevance="The target uses the leading ledger approach; verify ledger group assignments",
    ),
    ConfigRule(
        id="FI-TAX-001",
        description="Tax Code Configuration",
        tables=("T007A",),
        condition=_has("taxCodes"),
        interpretation=lambda data: f"{len(data['taxCodes'])} tax code(s) configured across all countries",
        impact="Tax codes drive automatic tax calculation in procurement and sales",
        target_relevance="Tax codes require review for advanced compliance reporting",
    ),
    ConfigRule(
        id="CO-AREA-001",
        description="Controlling Area Setup",
        tables=("TKA01",),
        condition=_has("controllingAreas"),
        interpretation=_controlling_areas,
        impact="Controlling areas define the CO organizational boundary",
        target_relevance="CO-FI integration is tighter in the target; 1:1 controlling area to company code is recommended",
    ),
    ConfigRule(
        id="MM-PLANT-001",
        description="Plant Configuration",
        tables=("T001W",),
        condition=_has("plants"),
        interpretation=_plants,
        impact="Plants are central to logistics; MRP, inventory and production operate at plant level",
        target_relevance="Plant structure carries over; review for stock management simplification",
    ),
    ConfigRule(
        id="SD-PRICING-001",
        description="Pricing Procedure Configuration",
        tables=("T683",),
        condition=_has("pricingProcedures"),
        interpretation=lambda data: f"{len(data['pricingProcedures'])} pricing procedure(s) configured",
        impact="Pricing procedures control price determination in sales orders and billing",
        target_relevance="Pricing procedures migrate; review compatibility with the new condition technique",
    ),
    ConfigRule(
        id="SEC-SAPALL-001",
        description="Users with SAP_ALL Profile",
        tables=("UST04",),
        condition=_has("usersWithSapAll"),
        interpretation=_sap_all,
        impact="SAP_ALL grants unrestricted access and is a significant security risk",
        target_relevance="Must be addressed before migration; SAP_ALL should be removed",
    ),
    ConfigRule(
        id="INT-RFC-001",
        description="RFC Destinations",
        tables=("RFCDES",),
        condition=_has("rfcDestinations"),
        interpretation=_rfc_destinations,
        impact="RFC destinations define system-to-system connectivity",
        target_relevance="All RFC destinations need review; some may point to deprecated systems",
    ),
]
