"""Basis extractors: system information, data dictionary, number ranges."""

from __future__ import annotations

import logging

from landscape.extraction.base import BaseExtractor, ExpectedTable
from landscape.extraction.context import DataDictionary

logger = logging.getLogger(__name__)

_CLIENT_ROLES = {"P": "production", "T": "test", "C": "customizing", "D": "demo", "E": "training", "S": "sap"}


class SystemInfoExtractor(BaseExtractor):
    extractor_id = "SYSTEM_INFO"
    module = "BASIS"
    category = "config"
    display_name = "System Information"
    bootstrap = True
    expected_tables = (
        ExpectedTable("CVERS", "Installed software components", critical=True),
        ExpectedTable("T000", "Clients"),
    )

    def extract_live(self) -> dict:
        reply = self.invoke_remote("RFC_SYSTEM_INFO") or {}
        info = reply.get("RFCSI_EXPORT") or {}
        components = [
            {
                "component": r.get("COMPONENT"),
                "release": r.get("RELEASE"),
                "patchLevel": r.get("EXTRELEASE"),
                "type": r.get("COMP_TYPE"),
            }
            for r in self.read_table("CVERS")
        ]
        clients = [
            {
                "client": r.get("MANDT"),
                "name": r.get("MTEXT"),
                "city": r.get("ORT01"),
                "role": _CLIENT_ROLES.get(r.get("CCCATEGORY") or "", "unknown"),
            }
            for r in self.read_table("T000")
        ]
        return {
            "systemInfo": {
                "sid": info.get("RFCSYSID"),
                "host": info.get("RFCHOST"),
                "database": info.get("RFCDBSYS"),
                "release": info.get("RFCSAPRL") or self.context.system.release,
                "kernel": info.get("RFCKERNRL"),
                "os": info.get("RFCOPSYS"),
                "family": self.context.system.family,
            },
            "components": components,
            "clients": clients,
            "remoteErrors": list(self.remote_errors),
        }


class DataDictionaryExtractor(BaseExtractor):
    extractor_id = "DATA_DICTIONARY"
    module = "BASIS"
    category = "config"
    display_name = "Data Dictionary"
    bootstrap = True
    expected_tables = (
        ExpectedTable("DD02L", "Table definitions", critical=True),
        ExpectedTable("DD03L", "Table fields"),
    )

    def extract_live(self) -> dict:
        tables = self.read_table("DD02L", fields=["TABNAME", "TABCLASS", "CONTFLAG"])
        fields = self.read_table("DD03L", fields=["TABNAME", "FIELDNAME", "POSITION", "KEYFLAG", "DATATYPE", "LENG"])
        dictionary = DataDictionary.from_rows(tables, fields)
        self.context.set_data_dictionary(dictionary)
        return {
            "dictionaryTables": [
                {"table": r["TABNAME"], "tableClass": r["TABCLASS"], "deliveryClass": r["CONTFLAG"]}
                for r in tables
            ],
            "dictionaryFields": [
                {
                    "table": r["TABNAME"],
                    "field": r["FIELDNAME"],
                    "position": int(r["POSITION"] or 0),
                    "key": r["KEYFLAG"] == "X",
                    "type": r["DATATYPE"],
                    "length": int(r["LENG"] or 0),
                }
                for r in fields
            ],
            "customTables": sorted(r["TABNAME"] for r in tables if r["TABNAME"][:1] in ("Z", "Y")),
        }


def _as_int(value) -> int | None:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return None


def interval_consumption(interval: dict) -> dict | None:
    """Percent of an internal interval already used, or None when the
    interval is external or not numeric."""
    if interval.get("external"):
        return None
    lo, hi = _as_int(interval.get("from")), _as_int(interval.get("to"))
    if lo is None or hi is None or hi <= lo:
        return None
    level = _as_int(interval.get("current"))
    if level is None or level < lo:
        level = lo
    pct = round(100 * (min(level, hi) - lo) / (hi - lo), 1)
    pct = max(0.0, min(100.0, pct))
    if pct >= 90:
        risk = "critical"
    elif pct >= 75:
        risk = "high"
    elif pct >= 50:
        risk = "medium"
    else:
        risk = "low"
    return {
        "object": interval["object"],
        "subobject": interval["subobject"],
        "range": interval["range"],
        "year": interval["year"],
        "consumptionPct": pct,
        "remaining": hi - max(level, lo),
        "risk": risk,
    }


class NumberRangeExtractor(BaseExtractor):
    extractor_id = "NUMBER_RANGES"
    module = "BASIS"
    category = "config"
    display_name = "Number Ranges"
    expected_tables = (
        ExpectedTable("NRIV", "Number range intervals", critical=True),
        ExpectedTable("TNRO", "Number range objects"),
    )

    def extract_live(self) -> dict:
        intervals = [
            {
                "object": r.get("OBJECT"),
                "subobject": r.get("SUBOBJECT") or "",
                "range": r.get("NRRANGENR"),
                "year": r.get("TOYEAR"),
                "from": r.get("FROMNUMBER"),
                "to": r.get("TONUMBER"),
                "current": r.get("NRLEVEL"),
                "external": r.get("EXTERNIND") == "X",
            }
            for r in self.read_table("NRIV")
        ]
        counts: dict[str, int] = {}
        for iv in intervals:
            counts[iv["object"]] = counts.get(iv["object"], 0) + 1

        objects = [
            {
                "object": r.get("OBJECT"),
                "domain": r.get("DOMLEN"),
                "warningPct": _as_int(r.get("PERCENTAGE")),
                "buffered": r.get("BUFFER") == "X",
                "bufferSize": _as_int(r.get("NOIVBUFFER")) or 0,
                "yearDependent": r.get("YEARIND") == "X",
                "intervalCount": counts.get(r.get("OBJECT"), 0),
            }
            for r in self.read_table("TNRO")
        ]
        known = {o["object"] for o in objects}
        for name in sorted(set(counts) - known):
            objects.append({
                "object": name, "domain": None, "warningPct": None, "buffered": False,
                "bufferSize": 0, "yearDependent": False, "intervalCount": counts[name],
            })

        consumption = [c for c in (interval_consumption(iv) for iv in intervals) if c is not None]
        at_risk = [c for c in consumption if c["risk"] in ("critical", "high")]
        if at_risk:
            logger.info("Number ranges near exhaustion count=%d", len(at_risk))
        return {
            "objects": objects,
            "intervals": intervals,
            "consumption": consumption,
            "summary": {
                "objectCount": len(objects),
                "intervalCount": len(intervals),
                "externalIntervals": sum(1 for iv in intervals if iv["external"]),
                "atRisk": len(at_risk),
            },
        }
