"""Finance (FI) and Controlling (CO) simplification rules."""

from __future__ import annotations

from landscape.rules.simplification.base import rule

# ── FI ───────────────────────────────────────────────────────────────────────

FIN_RULES = [
    rule(
        "SIMPL-FIN-001", "Finance - New GL", "critical",
        "BSEG direct access removed",
        "Table BSEG is replaced by the universal journal (ACDOCA). Direct reads on BSEG fail or return incomplete data.",
        r"\bBSEG\b",
        "Replace BSEG access with ACDOCA or the journal entry item views.",
        "S4TWL-FI-001",
    ),
    rule(
        "SIMPL-FIN-002", "Finance - New GL", "critical",
        "Customer/Vendor line item tables removed",
        "Tables BSID, BSIK, BSAD and BSAK (open and cleared items) are removed; the data lives in ACDOCA.",
        r"\b(BSID|BSIK|BSAD|BSAK)\b",
        "Use ACDOCA with account type filters or the operational accounting item views.",
        "S4TWL-FI-002",
    ),
    rule(
        "SIMPL-FIN-003", "Finance - New GL", "high",
        "GL line item tables removed",
        "Tables BSIS and BSAS (GL open and cleared items) are removed.",
        r"\b(BSIS|BSAS)\b",
        "Use ACDOCA with GL account filters.",
        "S4TWL-FI-003",
    ),
    rule(
        "SIMPL-FIN-004", "Finance - New GL", "high",
        "Cost element tables removed",
        "Tables CSKA and CSKB (cost element master) are removed; cost elements are GL accounts.",
        r"\b(CSKA|CSKB)\b",
        "Use the GL account master (SKA1/SKB1).",
        "S4TWL-CO-001",
    ),
    rule(
        "SIMPL-FIN-005", "Finance - Asset Accounting", "high",
        "Classic asset tables removed",
        "Tables ANLP and ANLC (asset periodic and cumulated values) are removed; new asset accounting posts to ACDOCA.",
        r"\b(ANLP|ANLC)\b",
        "Use ACDOCA for asset values or the fixed asset balance views.",
        "S4TWL-FI-AA-001",
    ),
]

# ── CO ───────────────────────────────────────────────────────────────────────

CO_RULES = [
    rule(
        "SIMPL-CO-001", "Controlling - CO-PA", "critical",
        "CO-PA operating concern tables restructured",
        "CE1*, CE2*, CE3* and CE4* tables are replaced by margin analysis in ACDOCA.",
        r"\b(CE1\w+|CE2\w+|CE3\w+|CE4\w+)\b",
        "Use ACDOCA-based margin analysis for profitability reporting.",
        "S4TWL-COPA-001",
    ),
    rule(
        "SIMPL-CO-002", "Controlling - CO-PA", "high",
        "Costing-based CO-PA removed",
        "Only account-based profitability analysis is supported.",
        r"\b(COPA_\w*|KE24|KE27|KE28|KE29|KE30)\b",
        "Migrate to account-based profitability analysis in ACDOCA.",
        "S4TWL-COPA-002",
    ),
    rule(
        "SIMPL-CO-003", "Controlling - CO-PA", "high",
        "CO-PA planning functions changed",
        "CO-PA planning (KEPM) is replaced by predictive accounting.",
        r"\bKEPM\b",
        "Use predictive accounting or an external planning tool.",
        "S4TWL-COPA-003",
    ),
    rule(
        "SIMPL-CO-004", "Controlling - Cost Elements", "critical",
        "Cost element category concept removed",
        "The separate cost element master is eliminated and merged into the GL account master.",
        r"\b(CSKB|CSKA|CSKE|KA01|KA02|KA03)\b",
        "Use the GL account master with cost element attributes.",
        "S4TWL-CO-CE-001",
    ),
    rule(
        "SIMPL-CO-005", "Controlling - Cost Elements", "high",
        "Cost element group changes",
        "Cost element groups (KAH*) are replaced by GL account groups with CO attributes.",
        r"\b(KAH1|KAH2|KAH3)\b|SETNODE.*KSTAR",
        "Use GL account groups with CO-relevant indicators.",
        "S4TWL-CO-CE-002",
    ),
    rule(
        "SIMPL-CO-006", "Controlling - Cost Centers", "medium",
        "Cost center assessment/distribution changes",
        "Assessment cycles (KSV5, KSUB) need review for ACDOCA integration.",
        r"\b(KSV5|KSUB)\b",
        "Review cost allocation cycles for ACDOCA compatibility.",
        "S4TWL-CO-CC-001",
    ),
    rule(
        "SIMPL-CO-007", "Controlling - Cost Centers", "medium",
        "Cost center totals tables removed",
        "COSP and COSS (CO totals) are deprecated.",
        r"\b(COSP|COSS)\b",
        "Use ACDOCA for CO totals.",
        "S4TWL-CO-CC-002",
    ),
    rule(
        "SIMPL-CO-008", "Controlling - Internal Orders", "medium",
        "Internal order settlement changes",
        "Order settlement to CO-PA changed with the CO-PA restructuring.",
        r"\b(KO88|BAPI_INTERNALORDER_\w+|AUFK)\b",
        "Review settlement rules for ACDOCA-based CO-PA.",
        "S4TWL-CO-IO-001",
    ),
]
