"""Interface and custom-code extractors."""

from __future__ import annotations

import re

from landscape.extraction.base import BaseExtractor, ExpectedTable

_RFC_TYPES = {
    "3": "ABAP connection",
    "G": "HTTP external",
    "H": "HTTP ABAP",
    "T": "TCP/IP",
    "L": "Logical",
    "I": "Internal",
}
_HOST_RE = re.compile(r"(?:^|,)H=([^,]*)")


def _parse_host(options: str | None) -> str | None:
    match = _HOST_RE.search(options or "")
    if not match or not match.group(1):
        return None
    return match.group(1)


def _is_custom(name: str | None) -> bool:
    return bool(name) and name[:1] in ("Z", "Y")


class InterfaceExtractor(BaseExtractor):
    extractor_id = "INTERFACES"
    module = "INT"
    category = "config"
    display_name = "Interfaces"
    expected_tables = (
        ExpectedTable("RFCDES", "RFC destinations", critical=True),
        ExpectedTable("EDP13", "IDoc partner profiles"),
    )

    def extract_live(self) -> dict:
        destinations = [
            {
                "destination": r["RFCDEST"],
                "type": r["RFCTYPE"],
                "typeText": _RFC_TYPES.get(r["RFCTYPE"], "other"),
                "host": _parse_host(r["RFCOPTIONS"]),
                "options": r["RFCOPTIONS"],
            }
            for r in self.read_table("RFCDES", fields=["RFCDEST", "RFCTYPE", "RFCOPTIONS"])
        ]
        partners = [
            {
                "partner": r["RCVPRN"],
                "partnerType": r["RCVPRT"],
                "messageType": r["MESTYP"],
                "idocType": r["IDOCTYP"],
                "port": r["RCVPOR"],
            }
            for r in self.read_table("EDP13", fields=["RCVPRN", "RCVPRT", "MESTYP", "IDOCTYP", "RCVPOR"])
        ]
        by_type: dict[str, int] = {}
        for d in destinations:
            by_type[d["type"]] = by_type.get(d["type"], 0) + 1
        return {
            "rfcDestinations": destinations,
            "idocPartners": partners,
            "summary": {
                "destinationCount": len(destinations),
                "byType": dict(sorted(by_type.items())),
                "messageTypes": sorted({p["messageType"] for p in partners}),
            },
        }


class CustomCodeExtractor(BaseExtractor):
    extractor_id = "CUSTOM_CODE"
    module = "CODE"
    category = "code"
    display_name = "Custom Code Inventory"
    expected_tables = (
        ExpectedTable("TADIR", "Repository objects", critical=True),
        ExpectedTable("REPOSRC", "Program sources"),
    )

    def extract_live(self) -> dict:
        objects = [
            {
                "objectType": r["OBJECT"],
                "name": r["OBJ_NAME"],
                "package": r["DEVCLASS"],
                "author": r["AUTHOR"],
                "createdOn": r["CREATED_ON"],
                "local": r["DEVCLASS"] == "$TMP",
            }
            for r in self.read_table("TADIR", fields=["PGMID", "OBJECT", "OBJ_NAME", "DEVCLASS", "AUTHOR", "CREATED_ON"])
            if _is_custom(r["OBJ_NAME"])
        ]
        programs = {o["name"] for o in objects if o["objectType"] == "PROG"}
        sources = [
            {"program": r["PROGNAME"], "lines": len((r["SOURCE"] or "").splitlines()), "source": r["SOURCE"] or ""}
            for r in self.read_table("REPOSRC", fields=["PROGNAME", "R3STATE", "SOURCE"])
            if r["PROGNAME"] in programs and r["R3STATE"] == "A"
        ]
        by_type: dict[str, int] = {}
        for o in objects:
            by_type[o["objectType"]] = by_type.get(o["objectType"], 0) + 1
        return {
            "customObjects": objects,
            "sources": sources,
            "summary": {
                "objectCount": len(objects),
                "byType": dict(sorted(by_type.items())),
                "localObjects": sum(1 for o in objects if o["local"]),
                "sourceLines": sum(s["lines"] for s in sources),
            },
        }
