"""
Concrete migration objects.

Every object reads SAP-shaped source rows (mock fixtures are deterministic
and of declared size) and writes target rows keyed ``GROUP-FIELD``.
Cross-object references are checked against the key sets of objects that
ran earlier in the same pipeline.
"""

from __future__ import annotations

from landscape.core.exceptions import NotFoundError
from landscape.migration.base import MigrationObject

_CITIES = [
    ("Walldorf", "69190", "DE"), ("Chicago", "60601", "US"), ("Lyon", "69002", "FR"),
    ("Madrid", "28001", "ES"), ("Leeds", "LS1 4AP", "GB"), ("Osaka", "530-0001", "JP"),
]
_CUSTOMER_NAMES = [
    "Alpine Foods", "Baltic Traders", "Cedar Health", "Delta Motors", "Ember Energy",
    "Fjord Shipping", "Granite Works", "Harbor Retail", "Iris Pharma", "Juniper Labs",
]
_VENDOR_NAMES = [
    "Acme Components", "Bright Metals", "Coastal Plastics", "Dynamo Electric", "Eagle Logistics",
]
_MATERIAL_TYPES = ["FERT", "HALB", "ROH", "HIBE", "ERSA"]
_UNITS = ["EA", "KG", "L"]


def _material(m: int) -> str:
    return f"MAT{m:05d}"


def _city(i: int) -> tuple[str, str, str]:
    return _CITIES[i % len(_CITIES)]


# ═════════════════════════════════════════════════════════════════════════════
# Finance
# ═════════════════════════════════════════════════════════════════════════════


class GlAccountObject(MigrationObject):
    object_id = "GL_ACCOUNT"
    name = "GL Account Master"
    entity = "ChartOfAccounts"
    source_table = "SKA1"
    mock_size = 24
    key_field = "GLACCOUNT-ID"

    _ACCOUNTS = [
        ("100000", "Petty Cash", "CASH", "X"), ("110000", "Bank Account - Main", "BANK", "X"),
        ("113100", "Accounts Receivable", "RECV", "X"), ("140000", "Raw Materials Inventory", "INVT", "X"),
        ("150000", "Fixed Assets", "FAAA", "X"), ("200000", "Accounts Payable", "PAYB", "X"),
        ("290000", "Retained Earnings", "EQTY", "X"), ("400000", "Sales Revenue - Domestic", "REVN", ""),
        ("410000", "Sales Revenue - Export", "REVN", ""), ("500000", "Cost of Goods Sold", "COGS", ""),
        ("600000", "Salaries and Wages", "PERS", ""), ("640000", "Depreciation Expense", "DEPR", ""),
    ]

    def field_mappings(self):
        return [
            {"source": "SAKNR", "target": "GLACCOUNT-ID", "convert": "padLeft10"},
            {"source": "TXT50", "target": "GLACCOUNT-TEXT", "convert": "trim"},
            {"source": "KTOKS", "target": "GLACCOUNT-GROUP"},
            {"source": "XBILK", "target": "GLACCOUNT-TYPE",
             "transform": lambda v, r: "BS" if v == "X" else "PL"},
            {"source": "BUKRS", "target": "COMPANY-CODE"},
            {"source": "WAERS", "target": "COMPANY-CURRENCY", "convert": "toUpperCase"},
            {"source": "MITKZ", "target": "COMPANY-RECON_TYPE"},
            {"target": "META-SOURCE_SYSTEM", "default": "ECC"},
        ]

    def quality_checks(self):
        return {
            "required": ["GLACCOUNT-ID", "GLACCOUNT-TEXT", "COMPANY-CODE"],
            "exactDuplicate": {"keys": ["GLACCOUNT-ID", "COMPANY-CODE"]},
            "format": [{"field": "COMPANY-CURRENCY", "pattern": r"^[A-Z]{3}$", "description": "ISO currency"}],
        }

    def mock_rows(self):
        rows = []
        for bukrs in ("1000", "2000"):
            for saknr, text, group, bs in self._ACCOUNTS:
                rows.append({
                    "SAKNR": saknr, "TXT50": text, "KTOKS": group, "XBILK": bs,
                    "BUKRS": bukrs, "WAERS": "usd" if bukrs == "1000" else "eur",
                    "MITKZ": {"113100": "D", "200000": "K"}.get(saknr, ""),
                    "GVTYP": "" if bs else "X",
                })
        return rows


class CostCenterObject(MigrationObject):
    object_id = "COST_CENTER"
    name = "Cost Center"
    entity = "CostCenter"
    source_table = "CSKS"
    mock_size = 12
    key_field = "COSTCENTER-ID"

    def field_mappings(self):
        return [
            {"source": "KOKRS", "target": "COSTCENTER-AREA"},
            {"source": "KOSTL", "target": "COSTCENTER-ID", "convert": "padLeft10"},
            {"source": "KTEXT", "target": "COSTCENTER-TEXT"},
            {"source": "VERAK", "target": "COSTCENTER-RESPONSIBLE"},
            {"source": "KOSAR", "target": "COSTCENTER-CATEGORY"},
            {"source": "BUKRS", "target": "COSTCENTER-COMPANY_CODE"},
            {"source": "PRCTR", "target": "COSTCENTER-PROFIT_CENTER", "convert": "padLeft10"},
            {"source": "DATAB", "target": "VALIDITY-FROM", "convert": "toDate"},
            {"source": "DATBI", "target": "VALIDITY-TO", "convert": "toDate"},
        ]

    def quality_checks(self):
        return {
            "required": ["COSTCENTER-AREA", "COSTCENTER-ID", "COSTCENTER-TEXT"],
            "exactDuplicate": {"keys": ["COSTCENTER-AREA", "COSTCENTER-ID"]},
        }

    def mock_rows(self):
        texts = ["Administration", "Finance", "Procurement", "Sales", "Production", "Maintenance"]
        return [
            {
                "KOKRS": "1000", "KOSTL": str(4100 + i), "KTEXT": f"{texts[i % 6]} {i // 6 + 1}",
                "VERAK": f"MANAGER{i % 4 + 1}", "KOSAR": "FHVE"[i % 4],
                "BUKRS": "1000" if i < 8 else "2000", "PRCTR": str(1000 + i % 3),
                "DATAB": "20200101", "DATBI": "99991231", "WAERS": "USD",
            }
            for i in range(12)
        ]


class FixedAssetObject(MigrationObject):
    object_id = "FIXED_ASSET"
    name = "Fixed Asset"
    entity = "FixedAsset"
    source_table = "ANLA"
    mock_size = 12
    key_field = "ASSET-ID"
    references = {"ASSET-COST_CENTER": ("COST_CENTER", "COSTCENTER-ID")}

    def field_mappings(self):
        return [
            {"sources": ["BUKRS", "ANLN1", "ANLN2"], "target": "ASSET-ID", "separator": "/"},
            {"source": "ANLN1", "target": "ASSET-MAIN_NUMBER", "convert": "stripLeadingZeros"},
            {"source": "ANLN2", "target": "ASSET-SUBNUMBER"},
            {"source": "ANLKL", "target": "ASSET-CLASS"},
            {"source": "TXA50", "target": "ASSET-TEXT"},
            {"source": "BUKRS", "target": "ASSET-COMPANY_CODE"},
            {"source": "KOSTL", "target": "ASSET-COST_CENTER", "convert": "padLeft10"},
            {"source": "AKTIV", "target": "VALUATION-CAPITALIZED_ON", "convert": "toDate"},
            {"source": "ANSWL", "target": "VALUATION-ACQUISITION_VALUE", "convert": "toDecimal"},
        ]

    def quality_checks(self):
        return {
            "required": ["ASSET-MAIN_NUMBER", "ASSET-CLASS", "ASSET-COMPANY_CODE"],
            "exactDuplicate": {"keys": ["ASSET-ID"]},
            "range": [{"field": "VALUATION-ACQUISITION_VALUE", "min": 0}],
        }

    def mock_rows(self):
        classes = [("3000", "Machinery"), ("3100", "Vehicles"), ("3200", "Office Equipment")]
        return [
            {
                "ANLN1": f"{10000 + i:012d}", "ANLN2": "0000",
                "ANLKL": classes[i % 3][0], "TXA50": f"{classes[i % 3][1]} {i + 1:02d}",
                "BUKRS": "1000", "KOSTL": str(4100 + i % 8),
                "AKTIV": f"20{18 + i % 5}0{i % 9 + 1}15", "ANSWL": f"{(i + 1) * 12500:.2f}",
                "MENGE": "1",
            }
            for i in range(12)
        ]


# ═════════════════════════════════════════════════════════════════════════════
# Business partners
# ═════════════════════════════════════════════════════════════════════════════


class CustomerObject(MigrationObject):
    object_id = "CUSTOMER"
    name = "Customer (Business Partner)"
    entity = "Customer"
    source_table = "KNA1"
    mock_size = 20
    key_field = "BP-PARTNER"

    def field_mappings(self):
        return [
            {"source": "KUNNR", "target": "BP-PARTNER", "convert": "padLeft10"},
            {"source": "KTOKD", "target": "BP-GROUPING", "valueMap": {"KUNA": "BP01", "CPD": "BP02"}, "default": "BP01"},
            {"source": "NAME1", "target": "BP-NAME"},
            {"sources": ["NAME1", "NAME2"], "target": "BP-FULL_NAME", "separator": " "},
            {"source": "SORTL", "target": "BP-SEARCH_TERM", "convert": "toUpperCase"},
            {"source": "STCEG", "target": "BP-TAX_NUMBER"},
            {"source": "STRAS", "target": "ADDRESS-STREET"},
            {"source": "ORT01", "target": "ADDRESS-CITY"},
            {"source": "PSTLZ", "target": "ADDRESS-POSTAL_CODE"},
            {"source": "LAND1", "target": "ADDRESS-COUNTRY"},
            {"source": "SMTP_ADDR", "target": "ADDRESS-EMAIL", "convert": "toLowerCase"},
            {"source": "VKORG", "target": "SALES-SALES_ORG"},
            {"source": "ZTERM", "target": "SALES-PAYMENT_TERMS"},
            {"source": "WAERS", "target": "SALES-CURRENCY"},
            {"target": "BP-ROLE", "default": "FLCU01"},
        ]

    def quality_checks(self):
        return {
            "required": ["BP-PARTNER", "BP-NAME", "ADDRESS-COUNTRY"],
            "exactDuplicate": {"keys": ["BP-PARTNER"]},
            "fuzzyDuplicate": [
                {"keys": ["BP-NAME", "ADDRESS-CITY"], "threshold": 0.9},
                {"keys": ["BP-TAX_NUMBER"], "threshold": 0.95},
            ],
            "format": [{"field": "ADDRESS-EMAIL", "pattern": r"^[^@\s]+@[^@\s]+\.[a-z]+$", "description": "e-mail"}],
        }

    def mock_rows(self):
        rows = []
        for i in range(20):
            name = _CUSTOMER_NAMES[i % 10]
            city, postal, country = _city(i)
            rows.append({
                "KUNNR": str(100000 + i), "KTOKD": "CPD" if i % 7 == 6 else "KUNA",
                "NAME1": f"{name} {city}", "NAME2": "GmbH" if country == "DE" else "Inc",
                "SORTL": name.split()[0], "STCEG": f"{country}{900000000 + i}",
                "STRAS": f"{i + 1} Market Street", "ORT01": city, "PSTLZ": postal, "LAND1": country,
                "REGIO": "", "TELF1": f"+1-555-01{i:02d}",
                "SMTP_ADDR": f"Orders{i}@{name.split()[0]}.example".upper() if i % 5 == 0
                             else f"orders{i}@{name.split()[0].lower()}.example",
                "VKORG": "1000", "VTWEG": "10", "ZTERM": "NT30", "WAERS": "USD",
            })
        return rows


class VendorObject(MigrationObject):
    object_id = "VENDOR"
    name = "Vendor (Business Partner)"
    entity = "Vendor"
    source_table = "LFA1"
    mock_size = 15
    key_field = "BP-PARTNER"

    def field_mappings(self):
        return [
            {"source": "LIFNR", "target": "BP-PARTNER", "convert": "padLeft10"},
            {"source": "KTOKK", "target": "BP-GROUPING", "valueMap": {"LIEF": "BP03", "CPDL": "BP04"}, "default": "BP03"},
            {"source": "NAME1", "target": "BP-NAME"},
            {"source": "STCEG", "target": "BP-TAX_NUMBER"},
            {"source": "STRAS", "target": "ADDRESS-STREET"},
            {"source": "ORT01", "target": "ADDRESS-CITY"},
            {"source": "PSTLZ", "target": "ADDRESS-POSTAL_CODE"},
            {"source": "LAND1", "target": "ADDRESS-COUNTRY"},
            {"source": "EKORG", "target": "PURCHASING-PURCHASING_ORG"},
            {"source": "ZTERM", "target": "PURCHASING-PAYMENT_TERMS"},
            {"source": "WAERS", "target": "PURCHASING-CURRENCY"},
            {"target": "BP-ROLE", "default": "FLVN01"},
        ]

    def quality_checks(self):
        return {
            "required": ["BP-PARTNER", "BP-NAME", "ADDRESS-COUNTRY"],
            "exactDuplicate": {"keys": ["BP-PARTNER"]},
            "fuzzyDuplicate": {"keys": ["BP-NAME"], "threshold": 0.92},
        }

    def mock_rows(self):
        rows = []
        for i in range(15):
            city, postal, country = _city(i + 2)
            rows.append({
                "LIFNR": str(300000 + i), "KTOKK": "LIEF",
                "NAME1": f"{_VENDOR_NAMES[i % 5]} {city}", "STCEG": f"{country}{800000000 + i}",
                "STRAS": f"{i + 10} Industrial Park", "ORT01": city, "PSTLZ": postal, "LAND1": country,
                "EKORG": "1000", "ZTERM": "NT45", "WAERS": "USD",
            })
        return rows


# ═════════════════════════════════════════════════════════════════════════════
# Logistics master data
# ═════════════════════════════════════════════════════════════════════════════


class ItemObject(MigrationObject):
    object_id = "ITEM"
    name = "Item (Product Master)"
    entity = "Item"
    source_table = "MARA"
    mock_size = 25
    key_field = "GENERAL-PRODUCT"

    def field_mappings(self):
        return [
            {"source": "MATNR", "target": "GENERAL-PRODUCT", "convert": "padLeft40"},
            {"source": "MAKTX", "target": "GENERAL-DESCRIPTION"},
            {"source": "MTART", "target": "GENERAL-PRODUCT_TYPE"},
            {"source": "MATKL", "target": "GENERAL-PRODUCT_GROUP"},
            {"source": "MEINS", "target": "GENERAL-BASE_UNIT", "convert": "toUpperCase"},
            {"source": "BRGEW", "target": "GENERAL-GROSS_WEIGHT", "convert": "toDecimal"},
            {"source": "NTGEW", "target": "GENERAL-NET_WEIGHT", "convert": "toDecimal"},
            {"source": "GEWEI", "target": "GENERAL-WEIGHT_UNIT"},
            {"source": "LVORM", "target": "GENERAL-DELETION_FLAG", "convert": "boolYN"},
            {"source": "ERSDA", "target": "GENERAL-CREATED_ON", "convert": "toDate"},
            {"source": "WERKS", "target": "PLANT-PLANT"},
            {"source": "DISMM", "target": "PLANT-MRP_TYPE"},
            {"source": "EISBE", "target": "PLANT-SAFETY_STOCK", "convert": "toDecimal"},
            {"target": "META-SOURCE_SYSTEM", "default": "ECC"},
        ]

    def quality_checks(self):
        return {
            "required": ["GENERAL-PRODUCT", "GENERAL-PRODUCT_TYPE", "GENERAL-BASE_UNIT"],
            "exactDuplicate": {"keys": ["GENERAL-PRODUCT", "PLANT-PLANT"]},
            "range": [{"field": "GENERAL-GROSS_WEIGHT", "min": 0}],
        }

    def mock_rows(self):
        rows = []
        for m in range(1, 26):
            mtart = _MATERIAL_TYPES[(m - 1) % 5]
            rows.append({
                "MATNR": _material(m), "MAKTX": f"{mtart.title()} material {m:03d}", "MTART": mtart,
                "MATKL": f"MG{(m - 1) % 10 + 1:02d}", "MEINS": _UNITS[m % 3].lower(),
                "BRGEW": f"{m * 1.25:.3f}", "NTGEW": f"{m * 1.1:.3f}", "GEWEI": "KG",
                "LVORM": "X" if m == 25 else "", "ERSDA": "20200101",
                "WERKS": "1000", "DISMM": "PD" if m % 2 == 0 else "ND", "EISBE": str(m * 10),
            })
        return rows


class WorkCenterObject(MigrationObject):
    object_id = "WORK_CENTER"
    name = "Work Center"
    entity = None
    source_table = "CRHD"
    mock_size = 8
    key_field = "WORKCENTER-ID"
    references = {"WORKCENTER-COST_CENTER": ("COST_CENTER", "COSTCENTER-ID")}

    def field_mappings(self):
        return [
            {"source": "ARBPL", "target": "WORKCENTER-ID", "convert": "toUpperCase"},
            {"source": "WERKS", "target": "WORKCENTER-PLANT"},
            {"source": "KTEXT", "target": "WORKCENTER-TEXT"},
            {"source": "VERWE", "target": "WORKCENTER-CATEGORY"},
            {"source": "KOSTL", "target": "WORKCENTER-COST_CENTER", "convert": "padLeft10"},
            {"source": "KAPAZ", "target": "CAPACITY-HOURS_PER_DAY", "convert": "toDecimal"},
        ]

    def quality_checks(self):
        return {
            "required": ["WORKCENTER-ID", "WORKCENTER-PLANT"],
            "exactDuplicate": {"keys": ["WORKCENTER-ID", "WORKCENTER-PLANT"]},
            "range": [{"field": "CAPACITY-HOURS_PER_DAY", "min": 0, "max": 24}],
        }

    def mock_rows(self):
        names = ["Assembly", "Paint", "Welding", "Packing"]
        return [
            {
                "ARBPL": f"wc-{names[i % 4][:3].lower()}{i // 4 + 1}", "WERKS": "1000",
                "KTEXT": f"{names[i % 4]} line {i // 4 + 1}", "VERWE": "0001",
                "KOSTL": str(4104 + i % 2), "KAPAZ": "16" if i % 2 else "8",
            }
            for i in range(8)
        ]


def _work_center(i: int) -> str:
    return WorkCenterObject().mock_rows()[i % 8]["ARBPL"].upper()


class BomObject(MigrationObject):
    object_id = "BOM"
    name = "Bill of Material"
    entity = "Bom"
    source_table = "STKO"
    mock_size = 10
    key_field = "HEADER-BOM"
    references = {
        "HEADER-MATERIAL": ("ITEM", "GENERAL-PRODUCT"),
        "ITEM-COMPONENT": ("ITEM", "GENERAL-PRODUCT"),
    }

    def field_mappings(self):
        return [
            {"source": "STLNR", "target": "HEADER-BOM", "convert": "padLeft10"},
            {"source": "MATNR", "target": "HEADER-MATERIAL", "convert": "padLeft40"},
            {"source": "WERKS", "target": "HEADER-PLANT"},
            {"source": "STLAN", "target": "HEADER-USAGE"},
            {"source": "BMENG", "target": "HEADER-BASE_QUANTITY", "convert": "toDecimal"},
            {"source": "DATUV", "target": "HEADER-VALID_FROM", "convert": "toDate"},
            {"source": "POSNR", "target": "ITEM-POSITION", "convert": "toInteger"},
            {"source": "IDNRK", "target": "ITEM-COMPONENT", "convert": "padLeft40"},
            {"source": "MENGE", "target": "ITEM-QUANTITY", "convert": "toDecimal"},
            {"source": "MEINS", "target": "ITEM-UNIT"},
        ]

    def quality_checks(self):
        return {
            "required": ["HEADER-BOM", "HEADER-MATERIAL", "ITEM-COMPONENT"],
            "exactDuplicate": {"keys": ["HEADER-BOM", "ITEM-POSITION"]},
            "range": [{"field": "ITEM-QUANTITY", "min": 0}],
        }

    def mock_rows(self):
        rows = []
        for b in range(5):
            finished = 1 + b * 5  # FERT materials
            for pos, component in enumerate((finished + 1, finished + 2), start=1):
                rows.append({
                    "STLNR": str(5000 + b), "MATNR": _material(finished), "WERKS": "1000",
                    "STLAN": "1", "BMENG": "1", "BMEIN": "EA", "DATUV": "20200101",
                    "POSNR": f"{pos * 10:04d}", "IDNRK": _material(component),
                    "MENGE": str(pos * 2), "MEINS": "EA",
                })
        return rows


class RoutingObject(MigrationObject):
    object_id = "ROUTING"
    name = "Routing"
    entity = "Routing"
    source_table = "PLKO"
    mock_size = 10
    key_field = "HEADER-ROUTING"
    references = {
        "HEADER-MATERIAL": ("ITEM", "GENERAL-PRODUCT"),
        "OPERATION-WORK_CENTER": ("WORK_CENTER", "WORKCENTER-ID"),
    }

    def field_mappings(self):
        return [
            {"source": "PLNNR", "target": "HEADER-ROUTING"},
            {"source": "MATNR", "target": "HEADER-MATERIAL", "convert": "padLeft40"},
            {"source": "WERKS", "target": "HEADER-PLANT"},
            {"source": "VERWE", "target": "HEADER-USAGE"},
            {"source": "VORNR", "target": "OPERATION-NUMBER"},
            {"source": "ARBPL", "target": "OPERATION-WORK_CENTER", "convert": "toUpperCase"},
            {"source": "LTXA1", "target": "OPERATION-TEXT"},
            {"source": "VGW01", "target": "OPERATION-SETUP_TIME", "convert": "toDecimal"},
        ]

    def quality_checks(self):
        return {
            "required": ["HEADER-ROUTING", "OPERATION-NUMBER", "OPERATION-WORK_CENTER"],
            "exactDuplicate": {"keys": ["HEADER-ROUTING", "OPERATION-NUMBER"]},
        }

    def mock_rows(self):
        rows = []
        for r in range(5):
            for op in range(2):
                rows.append({
                    "PLNNR": f"{60000 + r:08d}", "MATNR": _material(1 + r * 5), "WERKS": "1000",
                    "VERWE": "1", "VORNR": f"{(op + 1) * 10:04d}",
                    "ARBPL": _work_center(r * 2 + op), "LTXA1": "Assemble" if op == 0 else "Pack",
                    "VGW01": str(15 * (op + 1)),
                })
        return rows


# ═════════════════════════════════════════════════════════════════════════════
# Transactional data
# ═════════════════════════════════════════════════════════════════════════════


class SalesOrderObject(MigrationObject):
    object_id = "SALES_ORDER"
    name = "Open Sales Order"
    entity = "SalesOrder"
    source_table = "VBAK"
    mock_size = 30
    key_field = "HEADER-ORDER"
    references = {
        "HEADER-SOLD_TO": ("CUSTOMER", "BP-PARTNER"),
        "ITEM-MATERIAL": ("ITEM", "GENERAL-PRODUCT"),
    }

    def field_mappings(self):
        return [
            {"source": "VBELN", "target": "HEADER-ORDER", "convert": "padLeft10"},
            {"source": "AUART", "target": "HEADER-ORDER_TYPE", "valueMap": {"TA": "OR"}},
            {"source": "KUNNR", "target": "HEADER-SOLD_TO", "convert": "padLeft10"},
            {"source": "VKORG", "target": "HEADER-SALES_ORG"},
            {"source": "VTWEG", "target": "HEADER-DISTRIBUTION_CHANNEL"},
            {"source": "AUDAT", "target": "HEADER-ORDER_DATE", "convert": "toDate"},
            {"source": "WAERK", "target": "HEADER-CURRENCY"},
            {"source": "POSNR", "target": "ITEM-POSITION", "convert": "toInteger"},
            {"source": "MATNR", "target": "ITEM-MATERIAL", "convert": "padLeft40"},
            {"source": "KWMENG", "target": "ITEM-QUANTITY", "convert": "toDecimal"},
            {"source": "NETWR", "target": "ITEM-NET_VALUE", "convert": "toDecimal"},
        ]

    def quality_checks(self):
        return {
            "required": ["HEADER-ORDER", "HEADER-SOLD_TO", "ITEM-MATERIAL"],
            "exactDuplicate": {"keys": ["HEADER-ORDER", "ITEM-POSITION"]},
            "range": [{"field": "ITEM-QUANTITY", "min": 0}, {"field": "ITEM-NET_VALUE", "min": 0}],
        }

    def mock_rows(self):
        rows = []
        for o in range(15):
            for pos in range(2):
                qty = (o + 1) * (pos + 1)
                rows.append({
                    "VBELN": str(500000 + o), "AUART": "TA" if o % 4 else "ZOR",
                    "KUNNR": str(100000 + o % 20), "VKORG": "1000", "VTWEG": "10", "SPART": "00",
                    "AUDAT": f"202501{o % 28 + 1:02d}", "WAERK": "USD",
                    "POSNR": f"{(pos + 1) * 10:06d}", "MATNR": _material(1 + (o * 2 + pos) % 25),
                    "KWMENG": str(qty), "NETWR": f"{qty * 99.5:.2f}",
                })
        return rows


class PurchaseOrderObject(MigrationObject):
    object_id = "PURCHASE_ORDER"
    name = "Open Purchase Order"
    entity = "PurchaseOrder"
    source_table = "EKKO"
    mock_size = 24
    key_field = "HEADER-ORDER"
    references = {
        "HEADER-SUPPLIER": ("VENDOR", "BP-PARTNER"),
        "ITEM-MATERIAL": ("ITEM", "GENERAL-PRODUCT"),
    }

    def field_mappings(self):
        return [
            {"source": "EBELN", "target": "HEADER-ORDER"},
            {"source": "BSART", "target": "HEADER-ORDER_TYPE"},
            {"source": "LIFNR", "target": "HEADER-SUPPLIER", "convert": "padLeft10"},
            {"source": "EKORG", "target": "HEADER-PURCHASING_ORG"},
            {"source": "EKGRP", "target": "HEADER-PURCHASING_GROUP"},
            {"source": "BUKRS", "target": "HEADER-COMPANY_CODE"},
            {"source": "BEDAT", "target": "HEADER-ORDER_DATE", "convert": "toDate"},
            {"source": "WAERS", "target": "HEADER-CURRENCY"},
            {"source": "EBELP", "target": "ITEM-POSITION", "convert": "toInteger"},
            {"source": "MATNR", "target": "ITEM-MATERIAL", "convert": "padLeft40"},
            {"source": "MENGE", "target": "ITEM-QUANTITY", "convert": "toDecimal"},
            {"source": "NETPR", "target": "ITEM-NET_PRICE", "convert": "toDecimal"},
        ]

    def quality_checks(self):
        return {
            "required": ["HEADER-ORDER", "HEADER-SUPPLIER", "ITEM-MATERIAL"],
            "exactDuplicate": {"keys": ["HEADER-ORDER", "ITEM-POSITION"]},
            "range": [{"field": "ITEM-QUANTITY", "min": 0}],
        }

    def mock_rows(self):
        rows = []
        for o in range(12):
            for pos in range(2):
                rows.append({
                    "EBELN": str(4500000000 + o), "BSART": "NB", "LIFNR": str(300000 + o % 15),
                    "EKORG": "1000", "EKGRP": f"00{o % 3 + 1}", "BUKRS": "1000",
                    "BEDAT": f"202502{o % 28 + 1:02d}", "WAERS": "USD",
                    "EBELP": f"{(pos + 1) * 10:05d}", "MATNR": _material(3 + (o + pos * 5) % 20),
                    "MENGE": str(100 * (pos + 1)), "NETPR": f"{4.75 * (o + 1):.2f}",
                })
        return rows


class ProductionOrderObject(MigrationObject):
    object_id = "PRODUCTION_ORDER"
    name = "Open Production Order"
    entity = "ProductionOrder"
    source_table = "AUFK"
    mock_size = 15
    key_field = "ORDER-NUMBER"
    references = {"ORDER-MATERIAL": ("ITEM", "GENERAL-PRODUCT")}

    def field_mappings(self):
        return [
            {"source": "AUFNR", "target": "ORDER-NUMBER", "convert": "stripLeadingZeros"},
            {"source": "AUART", "target": "ORDER-TYPE"},
            {"source": "MATNR", "target": "ORDER-MATERIAL", "convert": "padLeft40"},
            {"source": "WERKS", "target": "ORDER-PLANT"},
            {"source": "GAMNG", "target": "ORDER-QUANTITY", "convert": "toDecimal"},
            {"source": "GMEIN", "target": "ORDER-UNIT"},
            {"source": "GSTRP", "target": "SCHEDULE-START", "convert": "toDate"},
            {"source": "GLTRP", "target": "SCHEDULE-FINISH", "convert": "toDate"},
            {"source": "TECO", "target": "STATUS-TECHNICALLY_COMPLETE", "convert": "boolTF"},
        ]

    def quality_checks(self):
        return {
            "required": ["ORDER-NUMBER", "ORDER-MATERIAL", "ORDER-PLANT"],
            "exactDuplicate": {"keys": ["ORDER-NUMBER"]},
            "range": [{"field": "ORDER-QUANTITY", "min": 1}],
        }

    def mock_rows(self):
        return [
            {
                "AUFNR": f"{1000000 + i:012d}", "AUART": "PP01", "MATNR": _material(1 + (i % 5) * 5),
                "WERKS": "1000", "GAMNG": str(50 + i * 10), "GMEIN": "EA",
                "GSTRP": f"202503{i % 28 + 1:02d}", "GLTRP": f"202504{i % 28 + 1:02d}",
                "TECO": "",
            }
            for i in range(15)
        ]


MIGRATION_OBJECTS: dict[str, type[MigrationObject]] = {
    cls.object_id: cls
    for cls in (
        GlAccountObject,
        CostCenterObject,
        CustomerObject,
        VendorObject,
        ItemObject,
        WorkCenterObject,
        BomObject,
        RoutingObject,
        SalesOrderObject,
        PurchaseOrderObject,
        ProductionOrderObject,
        FixedAssetObject,
    )
}


def get_migration_object(object_id: str) -> MigrationObject:
    cls = MIGRATION_OBJECTS.get(object_id)
    if cls is None:
        raise NotFoundError(resource="MigrationObject", resource_id=object_id)
    return cls()
