"""FI and CO configuration extractors."""

from __future__ import annotations

from landscape.extraction.base import BaseExtractor, ExpectedTable


class FIConfigExtractor(BaseExtractor):
    extractor_id = "FI_CONFIG"
    module = "FI"
    category = "config"
    display_name = "Financial Accounting Configuration"
    expected_tables = (
        ExpectedTable("T001", "Company codes", critical=True),
        ExpectedTable("T003", "Document types"),
        ExpectedTable("T004", "Charts of accounts", critical=True),
        ExpectedTable("TBSL", "Posting keys"),
        ExpectedTable("T030", "Automatic account determination"),
        ExpectedTable("T007A", "Tax codes"),
        ExpectedTable("T005", "Countries"),
        ExpectedTable("FAGL_ACTIVEC", "New GL activation and document splitting"),
        ExpectedTable("T881", "Ledgers"),
    )

    def extract_live(self) -> dict:
        company_codes = [
            {
                "code": r["BUKRS"],
                "text": r["BUTXT"],
                "city": r["ORT01"],
                "country": r["LAND1"],
                "currency": r["WAERS"],
                "chartOfAccounts": r["KTOPL"],
                "fiscalYearVariant": r["PERIV"],
            }
            for r in self.read_table("T001", fields=["BUKRS", "BUTXT", "ORT01", "LAND1", "WAERS", "KTOPL", "PERIV"])
        ]
        document_types = [
            {"type": r["BLART"], "numberRange": r["NUMKR"], "text": r["LTEXT"]}
            for r in self.read_table("T003", fields=["BLART", "NUMKR", "LTEXT"])
        ]
        charts = [
            {"chart": r["KTOPL"], "language": r["DSPRA"], "text": r["KTPLT"]}
            for r in self.read_table("T004", fields=["KTOPL", "DSPRA", "KTPLT"])
        ]
        posting_keys = [
            {"key": r["BSCHL"], "debitCredit": r["SHKZG"], "accountType": r["KOART"], "text": r["LTEXT"]}
            for r in self.read_table("TBSL", fields=["BSCHL", "SHKZG", "KOART", "LTEXT"])
        ]
        account_determination = [
            {
                "chart": r["KTOPL"],
                "transaction": r["KTOSL"],
                "valuationModifier": r["BWMOD"],
                "debitAccount": r["KONTS"],
                "creditAccount": r["KONTH"],
            }
            for r in self.read_table("T030", fields=["KTOPL", "KTOSL", "BWMOD", "KONTS", "KONTH"])
        ]
        tax_codes = [
            {"procedure": r["KALSM"], "code": r["MWSKZ"], "taxType": r["MWART"], "text": r["TEXT1"]}
            for r in self.read_table("T007A", fields=["KALSM", "MWSKZ", "MWART", "TEXT1"])
        ]
        countries = [
            {"country": r["LAND1"], "name": r["LANDX"], "currency": r["WAERS"], "taxProcedure": r["KALSM"]}
            for r in self.read_table("T005", fields=["LAND1", "LANDX", "WAERS", "KALSM"])
        ]
        splitting = [
            {
                "newGlActive": r["ACTIVE"] == "X",
                "flexGlActive": r["GLFLEX_ACTIVE"] == "X",
                "splitActive": r["SPLIT_ACTIVE"] == "X",
            }
            for r in self.read_table("FAGL_ACTIVEC", fields=["ACTIVE", "GLFLEX_ACTIVE", "SPLIT_ACTIVE"])
        ]
        ledgers = [
            {"ledger": r["RLDNR"], "table": r["TAB"], "name": r["NAME"], "leading": r["XLEADING"] == "X"}
            for r in self.read_table("T881", fields=["RLDNR", "TAB", "NAME", "XLEADING"])
        ]
        return {
            "companyCodes": company_codes,
            "documentTypes": document_types,
            "chartsOfAccounts": charts,
            "postingKeys": posting_keys,
            "accountDetermination": account_determination,
            "taxCodes": tax_codes,
            "countries": countries,
            "documentSplitting": splitting,
            "ledgerConfig": ledgers,
        }


class COConfigExtractor(BaseExtractor):
    extractor_id = "CO_CONFIG"
    module = "CO"
    category = "config"
    display_name = "Controlling Configuration"
    expected_tables = (
        ExpectedTable("TKA01", "Controlling areas", critical=True),
        ExpectedTable("CSKB", "Cost elements"),
        ExpectedTable("CSKS", "Cost centers"),
    )

    def extract_live(self) -> dict:
        areas = [
            {"area": r["KOKRS"], "name": r["BEZEI"], "currency": r["WAERS"], "chartOfAccounts": r["KTOPL"]}
            for r in self.read_table("TKA01", fields=["KOKRS", "BEZEI", "WAERS", "KTOPL"])
        ]
        elements = [
            {"area": r["KOKRS"], "element": r["KSTAR"], "validTo": r["DATBI"], "category": r["KATYP"]}
            for r in self.read_table("CSKB", fields=["KOKRS", "KSTAR", "DATBI", "KATYP"])
        ]
        centers = [
            {
                "area": r["KOKRS"],
                "costCenter": r["KOSTL"],
                "validFrom": r["DATAB"],
                "validTo": r["DATBI"],
                "companyCode": r["BUKRS"],
                "category": r["KOSAR"],
                "responsible": r["VERAK"],
                "profitCenter": r["PRCTR"],
                "currency": r["WAERS"],
            }
            for r in self.read_table(
                "CSKS", fields=["KOKRS", "KOSTL", "DATBI", "DATAB", "BUKRS", "KOSAR", "VERAK", "PRCTR", "WAERS"],
            )
        ]
        return {"controllingAreas": areas, "costElements": elements, "costCenters": centers}
