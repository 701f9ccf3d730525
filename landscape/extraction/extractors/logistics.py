"""MM, SD and PP configuration extractors."""

from __future__ import annotations

from landscape.extraction.base import BaseExtractor, ExpectedTable


class MMConfigExtractor(BaseExtractor):
    extractor_id = "MM_CONFIG"
    module = "MM"
    category = "config"
    display_name = "Materials Management Configuration"
    expected_tables = (
        ExpectedTable("T001W", "Plants", critical=True),
        ExpectedTable("T001L", "Storage locations"),
        ExpectedTable("T156", "Movement types"),
    )

    def extract_live(self) -> dict:
        plants = [
            {"plant": r["WERKS"], "name": r["NAME1"], "valuationArea": r["BWKEY"],
             "country": r["LAND1"], "city": r["ORT01"]}
            for r in self.read_table("T001W", fields=["WERKS", "NAME1", "BWKEY", "LAND1", "ORT01"])
        ]
        locations = [
            {"plant": r["WERKS"], "location": r["LGORT"], "text": r["LGOBE"]}
            for r in self.read_table("T001L", fields=["WERKS", "LGORT", "LGOBE"])
        ]
        movement_types = [
            {"type": r["BWART"], "debitCredit": r["SHKZG"], "reversal": r["XSTBW"] == "X", "text": r["BTEXT"]}
            for r in self.read_table("T156", fields=["BWART", "SHKZG", "XSTBW", "BTEXT"])
        ]
        return {"plants": plants, "storageLocations": locations, "movementTypes": movement_types}


class SDConfigExtractor(BaseExtractor):
    extractor_id = "SD_CONFIG"
    module = "SD"
    category = "config"
    display_name = "Sales and Distribution Configuration"
    expected_tables = (
        ExpectedTable("TVAK", "Sales document types", critical=True),
        ExpectedTable("T683", "Pricing procedures"),
        ExpectedTable("T685", "Condition types"),
    )

    def extract_live(self) -> dict:
        doc_types = [
            {"type": r["AUART"], "category": r["VBTYP"], "numberRange": r["NUMKI"], "text": r["BEZEI"]}
            for r in self.read_table("TVAK", fields=["AUART", "VBTYP", "NUMKI", "BEZEI"])
        ]
        procedures: dict[tuple, dict] = {}
        for r in self.read_table("T683", fields=["KVEWE", "KAPPL", "KALSM", "STUNR"]):
            key = (r["KVEWE"], r["KAPPL"], r["KALSM"])
            entry = procedures.setdefault(
                key, {"usage": r["KVEWE"], "application": r["KAPPL"], "procedure": r["KALSM"], "steps": 0},
            )
            entry["steps"] += 1
        condition_types = [
            {"usage": r["KVEWE"], "application": r["KAPPL"], "type": r["KSCHL"], "text": r["VTEXT"]}
            for r in self.read_table("T685", fields=["KVEWE", "KAPPL", "KSCHL", "VTEXT"])
        ]
        return {
            "salesDocumentTypes": doc_types,
            "pricingProcedures": list(procedures.values()),
            "conditionTypes": condition_types,
        }


class PPConfigExtractor(BaseExtractor):
    extractor_id = "PP_CONFIG"
    module = "PP"
    category = "config"
    display_name = "Production Planning Configuration"
    expected_tables = (
        ExpectedTable("T003O", "Order types", critical=True),
        ExpectedTable("CRHD", "Work centers"),
    )

    def extract_live(self) -> dict:
        order_types = [
            {"type": r["AUART"], "category": r["AUTYP"], "text": r["TXT"]}
            for r in self.read_table("T003O", fields=["AUART", "AUTYP", "TXT"])
        ]
        work_centers = [
            {"id": r["OBJID"], "workCenter": r["ARBPL"], "plant": r["WERKS"], "usage": r["VERWE"], "text": r["KTEXT"]}
            for r in self.read_table("CRHD", fields=["OBJID", "ARBPL", "WERKS", "VERWE", "KTEXT"])
        ]
        return {"orderTypes": order_types, "workCenters": work_centers}
