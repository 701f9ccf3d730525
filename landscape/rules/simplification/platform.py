"""Business Partner, ABAP language and configuration simplification rules.

Configuration rules (pattern type ``config``) match whole identifiers
collected from the extraction results: table names, transaction codes,
custom object names and job programs.
"""

from __future__ import annotations

from landscape.rules.simplification.base import rule

# ── BP ───────────────────────────────────────────────────────────────────────

BP_RULES = [
    rule(
        "SIMPL-BP-001", "Business Partner", "high",
        "Customer master tables deprecated",
        "KNA1, KNB1 and KNVV are deprecated; the business partner (BUT000) is the master.",
        r"\b(KNA1|KNB1|KNVV|KNB5|KNVK)\b",
        "Use business partner tables or the business partner API.",
        "S4TWL-MD-BP-001",
    ),
    rule(
        "SIMPL-BP-002", "Business Partner", "high",
        "Vendor master tables deprecated",
        "LFA1 and LFB1 are deprecated; the business partner (BUT000) is the master.",
        r"\b(LFA1|LFB1|LFB5|LFBK)\b",
        "Use business partner tables or the business partner API.",
        "S4TWL-MD-BP-002",
    ),
    rule(
        "SIMPL-BP-003", "Business Partner", "medium",
        "Customer/Vendor BAPIs deprecated",
        "BAPI_CUSTOMER_* and BAPI_VENDOR_* function modules are deprecated.",
        r"\b(BAPI_CUSTOMER_|BAPI_VENDOR_)\w+",
        "Use the business partner API.",
        "S4TWL-MD-BP-003",
    ),
]

# ── ABAP ─────────────────────────────────────────────────────────────────────

ABAP_RULES = [
    rule(
        "SIMPL-ABAP-001", "ABAP Language", "low",
        "OCCURS keyword deprecated",
        "OCCURS is obsolete and marks legacy code.",
        r"\bOCCURS\s+\d+",
        "Replace with TYPE STANDARD TABLE OF declarations.",
        "S4TWL-ABAP-001",
    ),
    rule(
        "SIMPL-ABAP-002", "ABAP Language", "medium",
        "BDC (Batch Data Communication) usage",
        "CALL TRANSACTION relies on screen sequences that change in the target.",
        r"\bCALL\s+TRANSACTION\s+",
        "Replace with BAPI calls or released APIs.",
        "S4TWL-ABAP-002",
    ),
    rule(
        "SIMPL-ABAP-003", "ABAP Language", "medium",
        "Direct database modification statements",
        "Direct INSERT/UPDATE/DELETE on standard tables bypasses application logic.",
        r"\b(INSERT\s+INTO|UPDATE|DELETE\s+FROM)\s+(BKPF|BSEG|EKKO|EKPO|VBAK|VBAP|LIKP|LIPS|MKPF|MSEG)\b",
        "Use BAPIs or APIs instead of direct modifications on standard tables.",
        "S4TWL-ABAP-003",
    ),
    rule(
        "SIMPL-ABAP-004", "ABAP Language", "low",
        "SELECT * usage on large tables",
        "SELECT * reads every column including deprecated ones.",
        r"\bSELECT\s+\*\s+FROM\s+(BKPF|EKKO|EKPO|VBAK|VBAP|MARA|MARC|MARD)\b",
        "Specify an explicit column list.",
        "S4TWL-ABAP-004",
    ),
    rule(
        "SIMPL-ABAP-005", "Enhancements", "medium",
        "User exit usage (SMOD/CMOD)",
        "User exits are deprecated; BAdIs are the standard enhancement mechanism.",
        r"\bUSEREXIT_\w*|\bCUSTOMER-FUNCTION\b",
        "Migrate to the equivalent BAdI implementations.",
        "S4TWL-ENH-001",
    ),
]

# ── Configuration identifiers ────────────────────────────────────────────────

CFG_RULES = [
    rule(
        "SIMPL-CFG-001", "Configuration - Number Ranges", "high",
        "Number range configuration for the target",
        "Number ranges must be extended for universal journal documents, business partners and 40-character materials.",
        r"^(SNRO|FBN1|NRIV)$",
        "Review and extend number ranges before migration.",
        "S4TWL-CFG-NR-001",
        pattern_type="config",
    ),
    rule(
        "SIMPL-CFG-002", "Configuration - Controlling", "high",
        "Controlling area to company code assignment",
        "Cross-company-code controlling areas need redesign.",
        r"^(OKKP|OX06|TKA01|TKA02)$",
        "Assign controlling areas 1:1 to company codes where possible.",
        "S4TWL-CFG-CO-001",
        pattern_type="config",
    ),
    rule(
        "SIMPL-CFG-003", "Configuration - MM", "medium",
        "Plant and storage location configuration",
        "Plant and storage location settings change with embedded EWM.",
        r"^(OX10|OX09|T001W|T001L)$",
        "Review plant and storage location settings for the warehouse migration.",
        "S4TWL-CFG-MM-001",
        pattern_type="config",
    ),
    rule(
        "SIMPL-CFG-004", "Configuration - SD", "medium",
        "Sales document type configuration",
        "Sales, delivery and billing document types may need changes.",
        r"^(VOV8|TVAK|TVLK|TVFK)$",
        "Review document types for the target.",
        "S4TWL-CFG-SD-001",
        pattern_type="config",
    ),
    rule(
        "SIMPL-CFG-005", "Configuration - SD", "medium",
        "Pricing procedure configuration",
        "Pricing procedures and condition types need review.",
        r"^(V/08|T683S?|T685)$",
        "Review pricing procedures and condition types.",
        "S4TWL-CFG-SD-002",
        pattern_type="config",
    ),
    rule(
        "SIMPL-CFG-006", "Configuration - Finance", "medium",
        "Tax code configuration",
        "Tax codes and calculation procedures need review.",
        r"^(FTXP|OB40|T007A)$",
        "Review tax codes and procedures for the target.",
        "S4TWL-CFG-FI-004",
        pattern_type="config",
    ),
    rule(
        "SIMPL-CFG-007", "Configuration - Cross Module", "high",
        "Output management configuration",
        "Output types configured through NACE move to BRF+ output management.",
        r"^(NACE|NACH|NACD)$",
        "Migrate output types to BRF+ rules.",
        "S4TWL-CFG-OUT-001",
        pattern_type="config",
    ),
    rule(
        "SIMPL-CFG-008", "Enhancements", "medium",
        "Modification of standard objects",
        "Objects named like modifications require manual adjustment after each upgrade.",
        r"^(Y\d{3}|ZXXX)",
        "Replace modifications with BAdI or enhancement spot implementations.",
        "S4TWL-ENH-002",
        pattern_type="config",
    ),
]
