"""
Change-document classifier.

Maps a business-object class to a process family, and a change-document
header (transaction code + changed fields) to an activity of that
family's reference model.  Rules are checked in order, field-specific
rules first; the first match wins.  A header no rule matches is
unclassified and does not become an event.

Usage:
    from landscape.mining.classifier import classify_case, classify_activity

    process_id = classify_case("VERKBELEG")                    # "O2C"
    classify_activity("O2C", "VA02", {"CMGST"})                # "Credit Check"
"""

from __future__ import annotations

from typing import NamedTuple

# Business-object class -> process family.  Classes absent here are dropped.
CASE_CLASS_PROCESS: dict[str, str] = {
    "VERKBELEG": "O2C",
    "SALES-DOCUMENT": "O2C",
    "EINKBELEG": "P2P",
    "BANF": "P2P",
    "PURCHASING-DOCUMENT": "P2P",
    "PURCHASE-REQUISITION": "P2P",
    "BELEG": "R2R",
    "ACCOUNTING-DOCUMENT": "R2R",
    "ANLA": "A2R",
    "FIXED-ASSET": "A2R",
    "ORDER": "P2M",
    "PRODUCTION-ORDER": "P2M",
    "QMEL": "M2S",
    "MAINTENANCE-NOTIFICATION": "M2S",
    "PERSNR": "H2R",
    "EMPLOYEE": "H2R",
}

# Descriptive transaction names accepted from exported logs.
TCODE_ALIASES: dict[str, str] = {
    "CREATE-SALES-ORDER": "VA01",
    "CHANGE-SALES-ORDER": "VA02",
    "CREATE-DELIVERY": "VL01N",
    "CREATE-INVOICE": "VF01",
    "CREATE-PURCHASE-REQUISITION": "ME51N",
    "CREATE-PURCHASE-ORDER": "ME21N",
    "GOODS-RECEIPT": "MIGO",
    "INVOICE-RECEIPT": "MIRO",
    "CREATE-JOURNAL-ENTRY": "FB50",
    "POST-JOURNAL-ENTRY": "FB01",
    "CREATE-ASSET": "AS01",
    "CREATE-PRODUCTION-ORDER": "CO01",
    "CREATE-NOTIFICATION": "IW21",
    "CREATE-EMPLOYEE": "PB40",
}


class ActivityRule(NamedTuple):
    tcodes: frozenset[str]
    fields: frozenset[str] | None
    activity: str


def _r(tcodes: str, activity: str, fields: str | None = None) -> ActivityRule:
    return ActivityRule(
        frozenset(tcodes.split()),
        frozenset(fields.split()) if fields else None,
        activity,
    )


ACTIVITY_RULES: dict[str, list[ActivityRule]] = {
    "O2C": [
        _r("VA02", "Credit Check", "CMGST"),
        _r("VL02N", "Pick", "KOSTK"),
        _r("VL02N", "Pack", "PKSTK"),
        _r("VL02N", "Goods Issue", "WBSTK WADAT_IST"),
        _r("VA01", "Create Sales Order"),
        _r("VA02", "Change Sales Order"),
        _r("VKM1", "Block Order"),
        _r("VKM4", "Approve Credit"),
        _r("VKM3", "Release Order"),
        _r("VL01N", "Create Delivery"),
        _r("LT03 LT12", "Pick"),
        _r("VF01", "Create Invoice"),
        _r("VF31 VF02", "Send Invoice"),
        _r("F150", "Dunning"),
        _r("F-28", "Payment Received"),
        _r("F-32", "Clear Invoice"),
    ],
    "P2P": [
        _r("ME52N", "Reject Purchase Requisition", "LOEKZ"),
        _r("MIR4", "Block Invoice", "ZLSPR"),
        _r("ME51N", "Create Purchase Requisition"),
        _r("ME54N ME55", "Approve Purchase Requisition"),
        _r("ME21N", "Create Purchase Order"),
        _r("ME29N ME28", "Approve Purchase Order"),
        _r("ME9F", "Send Purchase Order"),
        _r("MIGO MB01", "Goods Receipt"),
        _r("MIRO", "Invoice Receipt"),
        _r("MRRL", "Three-Way Match"),
        _r("MRBR", "Release Invoice"),
        _r("F111", "Schedule Payment"),
        _r("F110", "Payment Run"),
        _r("F-44 F-53", "Payment Clearing"),
    ],
    "R2R": [
        _r("FB50 FB50L", "Create Journal Entry"),
        _r("FBV0 FV50", "Park Journal Entry"),
        _r("FBV2", "Approve Journal Entry"),
        _r("FB01 FB01L", "Post Journal Entry"),
        _r("FB08", "Reverse Journal Entry"),
        _r("F-03", "Clear Line Item"),
        _r("F.13", "Run Automatic Clearing"),
        _r("FAGL_FC_VAL", "Period Close Posting"),
        _r("F.03", "Execute Reconciliation"),
        _r("OB52", "Close Period"),
    ],
    "A2R": [
        _r("AS01", "Create Asset Master"),
        _r("AB01 F-90", "Post Asset Acquisition"),
        _r("AIBU", "Capitalize Asset"),
        _r("AFAB", "Post Depreciation"),
        _r("ABUMN", "Transfer Asset"),
        _r("ABAW", "Revalue Asset"),
        _r("ABAON", "Retire Asset"),
        _r("ABAVN", "Scrap Asset"),
        _r("AJAB", "Settle Asset"),
    ],
    "H2R": [
        _r("PA30", "Assign Organizational Unit", "ORGEH"),
        _r("PA30", "Assign Position", "PLANS"),
        _r("PA30", "Enter Basic Pay", "BETRG"),
        _r("PB40", "Create Employee"),
        _r("PA40", "Hire Action"),
        _r("PA42", "Onboard"),
        _r("PPOME", "Change Position"),
        _r("PC00_M99_CIPE PC00_M99_CALC", "Process Payroll"),
    ],
    "P2M": [
        _r("CO02", "Plan Order", "GSTRP GLTRP"),
        _r("CO02", "Technically Complete", "TECO"),
        _r("CO02", "Close Order", "CLSD"),
        _r("CO11N", "Start Operation", "ISDD"),
        _r("CO01", "Create Production Order"),
        _r("CO05N", "Release Production Order"),
        _r("CO04N", "Print Shop Floor Papers"),
        _r("MB1A", "Issue Materials"),
        _r("CO11N", "Partial Confirmation"),
        _r("CO15", "Confirm Operation"),
        _r("MB31 MIGO", "Goods Receipt"),
        _r("KO88 CO88", "Settle Order"),
    ],
    "M2S": [
        _r("IW22", "Classify Notification", "QMCOD FECOD"),
        _r("IW22", "Approve Notification", "STAT"),
        _r("IW32", "Plan Work Order", "ARBPL VORNR"),
        _r("IW32", "Release Work Order", "FTRMI"),
        _r("IW32", "Technically Complete", "TECO"),
        _r("IW21", "Create Notification"),
        _r("IW31", "Create Work Order"),
        _r("IW3D", "Print Work Order"),
        _r("MB1A MIGO", "Issue Spare Parts"),
        _r("IW42", "Execute Maintenance"),
        _r("IW41 IW44", "Confirm Operations"),
        _r("KO88", "Settle Work Order"),
    ],
}


def normalize_tcode(tcode: str | None) -> str:
    key = (tcode or "").strip().upper()
    return TCODE_ALIASES.get(key, key)


def classify_case(object_class: str | None) -> str | None:
    return CASE_CLASS_PROCESS.get((object_class or "").strip().upper())


def classify_activity(process_id: str, tcode: str | None, fields=()) -> str | None:
    code = normalize_tcode(tcode)
    changed = frozenset(f.upper() for f in fields or () if f)
    for rule in ACTIVITY_RULES.get(process_id, []):
        if code not in rule.tcodes:
            continue
        if rule.fields is None or rule.fields & changed:
            return rule.activity
    return None


def mapped_tcodes() -> set[str]:
    """Every transaction code some rule recognizes."""
    return {t for rules in ACTIVITY_RULES.values() for r in rules for t in r.tcodes}
