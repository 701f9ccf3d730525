"""Materials Management (MM) and Sales & Distribution (SD) simplification rules."""

from __future__ import annotations

from landscape.rules.simplification.base import rule

# ── MM ───────────────────────────────────────────────────────────────────────

MM_RULES = [
    rule(
        "SIMPL-MM-001", "Material Management", "medium",
        "Material number length changed",
        "MATNR is extended from 18 to 40 characters; hardcoded length assumptions break.",
        r"MATNR.*(?:TYPE C LENGTH 18|CHAR18|\(18\))",
        "Use the dictionary type matnr instead of hardcoded lengths and check interface file formats.",
        "S4TWL-MM-001",
    ),
    rule(
        "SIMPL-MM-002", "Material Management - Warehouse", "critical",
        "Warehouse Management (WM) replaced by EWM",
        "Classic WM (LAGP, LQUA, LTAP tables) is removed.",
        r"\b(LAGP|LQUA|LTAP|LTBP|L_TO_CREATE\w*)\b",
        "Migrate to embedded or decentralized EWM.",
        "S4TWL-WM-001",
    ),
    rule(
        "SIMPL-MM-003", "Material Management - Valuation", "medium",
        "Material Ledger tables restructured",
        "CKMLHD, CKMLCT and CKMLPP are restructured for mandatory actual costing.",
        r"\b(CKMLHD|CKMLCT|CKMLPP)\b",
        "Review actual costing data model changes.",
        "S4TWL-ML-001",
    ),
    rule(
        "SIMPL-MM-004", "Material Management - Inventory", "high",
        "Inventory document tables replaced",
        "MKPF and MSEG are replaced by MATDOC; aggregate tables MARD/MCHB are computed on the fly.",
        r"\b(MKPF|MSEG)\b",
        "Read material documents from MATDOC or the material document views.",
        "S4TWL-MM-IM-001",
    ),
]

# ── SD ───────────────────────────────────────────────────────────────────────

SD_RULES = [
    rule(
        "SIMPL-SD-001", "SD - Output Management", "high",
        "NAST-based output management deprecated",
        "Classic output determination (NAST) is replaced by BRF+ output management.",
        r"\b(NAST|TNAPR|NACH)\b",
        "Migrate to BRF+ based output management.",
        "S4TWL-SD-OUT-001",
    ),
    rule(
        "SIMPL-SD-002", "SD - Output Management", "high",
        "SAPscript forms deprecated",
        "SAPscript forms are deprecated in favour of the output management framework.",
        r"\b(OPEN_FORM|CLOSE_FORM|WRITE_FORM|START_FORM)\b",
        "Migrate forms to Adobe-based forms.",
        "S4TWL-SD-OUT-002",
    ),
    rule(
        "SIMPL-SD-003", "SD - Credit Management", "critical",
        "Classic credit management (FD32) removed",
        "FD32 and the classic credit tables are replaced by FSCM credit management.",
        r"\b(UKM_\w*|FD32|UKMBP_CMS)\b",
        "Migrate to SAP Credit Management.",
        "S4TWL-SD-CR-001",
    ),
    rule(
        "SIMPL-SD-004", "SD - Credit Management", "high",
        "Credit exposure calculation changed",
        "Credit exposure tables (S066, S067, KNKK) are removed.",
        r"\b(S066|S067|KNKK)\b",
        "Use credit management APIs for exposure checks.",
        "S4TWL-SD-CR-002",
    ),
    rule(
        "SIMPL-SD-005", "SD - Pricing", "medium",
        "Pricing condition tables changed",
        "KONV is replaced by PRCD_ELEMENTS; condition record access differs.",
        r"\b(KONH|KONP|KONV|KNUMH)\b",
        "Review condition access patterns and read PRCD_ELEMENTS instead of KONV.",
        "S4TWL-SD-PR-001",
    ),
    rule(
        "SIMPL-SD-006", "SD - ATP", "high",
        "Classic ATP replaced by aATP",
        "Classic availability check (CO06/CO09) is replaced by advanced ATP.",
        r"\b(CO06|CO09|BAPI_MATERIAL_AVAILABILITY|ATPCS)\b",
        "Evaluate advanced ATP and review ATP checks in order processing.",
        "S4TWL-SD-ATP-001",
    ),
    rule(
        "SIMPL-SD-007", "SD - Billing", "medium",
        "Billing document structure changes",
        "VBRK/VBRP carry structural changes.",
        r"\b(VBRK|VBRP)\b",
        "Review billing document field usage.",
        "S4TWL-SD-BIL-001",
    ),
    rule(
        "SIMPL-SD-008", "SD - Status Tables", "medium",
        "Sales document status tables removed",
        "VBUK and VBUP are removed; status fields moved into VBAK/VBAP and LIKP/LIPS.",
        r"\b(VBUK|VBUP)\b",
        "Read status fields from the document header and item tables.",
        "S4TWL-SD-STAT-001",
    ),
]
