"""
Canonical data model — the source-agnostic shape every migration object
passes through.

Each entity declares its field definitions and required fields.  The
source-mapping registry maps the columns of each supported source family
onto a subset of those fields; every family covers at least Item,
Customer, Vendor and ChartOfAccounts.

Usage:
    from landscape.migration.canonical import CanonicalEntity, get_mappings

    item = CanonicalEntity("Item").from_source("SAP", {"MATNR": "100-200", ...})
    item.validate()     # {"valid": True, "errors": []}
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone

from landscape.core.exceptions import ValidationError

logger = logging.getLogger(__name__)

FIELD_TYPES = ("string", "number", "date", "boolean")


@dataclass(frozen=True)
class FieldDef:
    type: str = "string"
    required: bool = False
    max_length: int | None = None
    description: str = ""

    def to_dict(self) -> dict:
        out = {"type": self.type, "required": self.required, "description": self.description}
        if self.max_length:
            out["maxLength"] = self.max_length
        return out


def _s(description: str = "", max_length: int | None = None, required: bool = False) -> FieldDef:
    return FieldDef("string", required, max_length, description)


def _n(description: str = "", required: bool = False) -> FieldDef:
    return FieldDef("number", required, None, description)


def _d(description: str = "", required: bool = False) -> FieldDef:
    return FieldDef("date", required, None, description)


def _party(id_field: str, label: str) -> dict[str, FieldDef]:
    return {
        id_field: _s(f"{label} number", 10, True),
        "name": _s("Name", 35, True),
        "name2": _s("Name 2", 35),
        "searchTerm": _s("Search term", 20),
        "street": _s("Street", 60),
        "city": _s("City", 40),
        "postalCode": _s("Postal code", 10),
        "country": _s("Country key", 3),
        "region": _s("Region", 3),
        "phone": _s("Telephone", 30),
        "email": _s("E-mail address", 241),
        "taxNumber": _s("VAT registration number", 20),
        "paymentTerms": _s("Payment terms", 4),
        "currency": _s("Currency", 5),
        "accountGroup": _s("Account group", 4),
    }


# ── Entity definitions ───────────────────────────────────────────────────────

ENTITY_FIELDS: dict[str, dict[str, FieldDef]] = {
    "Item": {
        "itemId": _s("Material number", 40, True),
        "description": _s("Material description", 40, True),
        "baseUom": _s("Base unit of measure", 3, True),
        "itemType": _s("Material type", 4),
        "itemGroup": _s("Material group", 9),
        "grossWeight": _n("Gross weight"),
        "netWeight": _n("Net weight"),
        "weightUnit": _s("Weight unit", 3),
        "volume": _n("Volume"),
        "volumeUnit": _s("Volume unit", 3),
        "materialGroup": _s("Basic material", 48),
        "purchaseGroup": _s("Purchasing group", 3),
        "mrpType": _s("MRP type", 2),
        "lotSize": _s("Lot size", 2),
        "safetyStock": _n("Safety stock"),
    },
    "Customer": {**_party("customerId", "Customer"),
                 "salesOrg": _s("Sales organization", 4),
                 "distributionChannel": _s("Distribution channel", 2)},
    "Vendor": {**_party("vendorId", "Vendor"), "purchaseOrg": _s("Purchasing organization", 4)},
    "ChartOfAccounts": {
        "accountNumber": _s("GL account number", 10, True),
        "description": _s("Account description", 50, True),
        "accountType": _s("BS or PL"),
        "accountGroup": _s("Account group", 4),
        "balanceSheetIndicator": _s("Balance sheet account", 1),
        "plStatementType": _s("P&L statement type", 2),
        "currency": _s("Account currency", 5),
        "taxCategory": _s("Tax category", 2),
        "reconciliationType": _s("Reconciliation account type", 1),
    },
    "SalesOrder": {
        "orderNumber": _s("Sales document", 10, True),
        "orderType": _s("Sales document type", 4, True),
        "customerNumber": _s("Sold-to party", 10, True),
        "purchaseOrderNumber": _s("Customer reference", 35),
        "orderDate": _d("Document date"),
        "requestedDeliveryDate": _d("Requested delivery date"),
        "currency": _s("Document currency", 5),
        "salesOrg": _s("Sales organization", 4),
        "distributionChannel": _s("Distribution channel", 2),
        "division": _s("Division", 2),
    },
    "PurchaseOrder": {
        "orderNumber": _s("Purchasing document", 10, True),
        "orderType": _s("Purchasing document type", 4, True),
        "vendorNumber": _s("Vendor", 10, True),
        "orderDate": _d("Document date"),
        "currency": _s("Currency", 5),
        "purchaseOrg": _s("Purchasing organization", 4),
        "purchaseGroup": _s("Purchasing group", 3),
        "companyCode": _s("Company code", 4),
    },
    "ProductionOrder": {
        "orderNumber": _s("Order number", 12, True),
        "orderType": _s("Order type", 4),
        "materialNumber": _s("Material", 40, True),
        "quantity": _n("Total order quantity"),
        "unit": _s("Unit", 3),
        "startDate": _d("Basic start date"),
        "endDate": _d("Basic finish date"),
        "plant": _s("Plant", 4, True),
        "status": _s("Status"),
        "routingNumber": _s("Routing", 8),
        "bomNumber": _s("BOM", 8),
    },
    "Inventory": {
        "materialNumber": _s("Material", 40, True),
        "plant": _s("Plant", 4, True),
        "storageLocation": _s("Storage location", 4),
        "batch": _s("Batch", 10),
        "quantity": _n("Unrestricted stock", True),
        "unit": _s("Unit", 3),
        "qualityStatus": _s("Stock type", 1),
        "specialStock": _s("Special stock", 1),
    },
    "GlEntry": {
        "documentNumber": _s("Accounting document", 10, True),
        "companyCode": _s("Company code", 4, True),
        "fiscalYear": _s("Fiscal year", 4, True),
        "postingDate": _d("Posting date"),
        "documentDate": _d("Document date"),
        "documentType": _s("Document type", 2),
        "currency": _s("Currency", 5),
        "referenceNumber": _s("Reference", 16),
        "headerText": _s("Header text", 25),
    },
    "Employee": {
        "employeeId": _s("Personnel number", 8, True),
        "firstName": _s("First name", 40),
        "lastName": _s("Last name", 40, True),
        "fullName": _s("Formatted name", 80),
        "personnelArea": _s("Personnel area", 4),
        "personnelSubarea": _s("Personnel subarea", 4),
        "employeeGroup": _s("Employee group", 1),
        "employeeSubgroup": _s("Employee subgroup", 2),
        "position": _s("Position", 8),
        "jobTitle": _s("Job", 8),
        "orgUnit": _s("Organizational unit", 8),
        "costCenter": _s("Cost center", 10),
        "startDate": _d("Start date"),
        "email": _s("E-mail", 241),
    },
    "Bom": {
        "bomNumber": _s("Bill of material", 8, True),
        "materialNumber": _s("Material", 40, True),
        "plant": _s("Plant", 4),
        "bomUsage": _s("BOM usage", 1),
        "baseQuantity": _n("Base quantity"),
        "baseUnit": _s("Base unit", 3),
        "validFrom": _d("Valid from"),
        "validTo": _d("Valid to"),
    },
    "Routing": {
        "routingNumber": _s("Task list group", 8, True),
        "materialNumber": _s("Material", 40),
        "plant": _s("Plant", 4),
        "routingUsage": _s("Task list usage", 3),
    },
    "FixedAsset": {
        "assetNumber": _s("Main asset number", 12, True),
        "assetSubnumber": _s("Asset subnumber", 4),
        "description": _s("Asset description", 50, True),
        "assetClass": _s("Asset class", 8, True),
        "capitalizationDate": _d("Capitalization date"),
        "deactivationDate": _d("Deactivation date"),
        "companyCode": _s("Company code", 4, True),
        "costCenter": _s("Cost center", 10),
        "quantity": _n("Quantity"),
        "serialNumber": _s("Serial number", 18),
        "inventoryNumber": _s("Inventory number", 25),
    },
    "CostCenter": {
        "costCenterId": _s("Cost center", 10, True),
        "description": _s("Description", 40, True),
        "responsiblePerson": _s("Person responsible", 20),
        "costCenterCategory": _s("Category", 1),
        "companyCode": _s("Company code", 4),
        "controllingArea": _s("Controlling area", 4, True),
        "profitCenter": _s("Profit center", 10),
        "validFrom": _d("Valid from"),
        "validTo": _d("Valid to"),
        "currency": _s("Currency", 5),
    },
}

ENTITY_IDENTIFIER: dict[str, str] = {
    "Item": "itemId",
    "Customer": "customerId",
    "Vendor": "vendorId",
    "ChartOfAccounts": "accountNumber",
    "SalesOrder": "orderNumber",
    "PurchaseOrder": "orderNumber",
    "ProductionOrder": "orderNumber",
    "Inventory": "materialNumber",
    "GlEntry": "documentNumber",
    "Employee": "employeeId",
    "Bom": "bomNumber",
    "Routing": "routingNumber",
    "FixedAsset": "assetNumber",
    "CostCenter": "costCenterId",
}

CORE_ENTITIES = ("Item", "Customer", "Vendor", "ChartOfAccounts")


def required_fields(entity_type: str) -> list[str]:
    return [name for name, d in ENTITY_FIELDS[entity_type].items() if d.required]


# ── Converters used by the mappings ──────────────────────────────────────────

def _float(value, record=None) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _lookup(table: dict):
    def convert(value, record=None):
        return table.get(str(value), value)
    return convert


def _m(source: str, target: str, convert=None) -> dict:
    entry = {"source": source, "target": target}
    if convert is not None:
        entry["convert"] = convert
    return entry


def _party_map(cols: list[str], id_target: str) -> list[dict]:
    targets = [id_target, "name", "name2", "searchTerm", "street", "city", "postalCode",
               "country", "region", "phone", "email", "taxNumber", "paymentTerms", "currency"]
    return [_m(src, tgt) for src, tgt in zip(cols, targets) if src]


# ── Source mappings ──────────────────────────────────────────────────────────

_SAP_PARTY = ["", "NAME1", "NAME2", "SORTL", "STRAS", "ORT01", "PSTLZ", "LAND1", "REGIO",
              "TELF1", "SMTP_ADDR", "STCEG", "ZTERM", "WAERS"]

SAP = {
    "Item": [
        _m("MATNR", "itemId"), _m("MAKTX", "description"), _m("MEINS", "baseUom"),
        _m("MTART", "itemType"), _m("MATKL", "itemGroup"),
        _m("BRGEW", "grossWeight", _float), _m("NTGEW", "netWeight", _float), _m("GEWEI", "weightUnit"),
        _m("VOLUM", "volume", _float), _m("VOLEH", "volumeUnit"), _m("WRKST", "materialGroup"),
        _m("EKGRP", "purchaseGroup"), _m("DISMM", "mrpType"), _m("DISLS", "lotSize"),
        _m("EISBE", "safetyStock", _float),
    ],
    "Customer": [_m("KUNNR", "customerId"), *_party_map(_SAP_PARTY, "customerId"),
                 _m("KTOKD", "accountGroup"), _m("VKORG", "salesOrg"), _m("VTWEG", "distributionChannel")],
    "Vendor": [_m("LIFNR", "vendorId"), *_party_map(_SAP_PARTY, "vendorId"),
               _m("KTOKK", "accountGroup"), _m("EKORG", "purchaseOrg")],
    "ChartOfAccounts": [
        _m("SAKNR", "accountNumber"), _m("TXT50", "description"),
        _m("GVTYP", "accountType", lambda v, r=None: "BS" if v == "X" else "PL"),
        _m("KTOKS", "accountGroup"), _m("XBILK", "balanceSheetIndicator"), _m("ERTYP", "plStatementType"),
        _m("WAERS", "currency"), _m("MWSKZ", "taxCategory"), _m("MITKZ", "reconciliationType"),
    ],
    "SalesOrder": [
        _m("VBELN", "orderNumber"), _m("AUART", "orderType"), _m("KUNNR", "customerNumber"),
        _m("BSTNK", "purchaseOrderNumber"), _m("AUDAT", "orderDate"), _m("VDATU", "requestedDeliveryDate"),
        _m("WAERK", "currency"), _m("VKORG", "salesOrg"), _m("VTWEG", "distributionChannel"), _m("SPART", "division"),
    ],
    "PurchaseOrder": [
        _m("EBELN", "orderNumber"), _m("BSART", "orderType"), _m("LIFNR", "vendorNumber"),
        _m("BEDAT", "orderDate"), _m("WAERS", "currency"), _m("EKORG", "purchaseOrg"),
        _m("EKGRP", "purchaseGroup"), _m("BUKRS", "companyCode"),
    ],
    "ProductionOrder": [
        _m("AUFNR", "orderNumber"), _m("AUART", "orderType"), _m("MATNR", "materialNumber"),
        _m("GAMNG", "quantity", _float), _m("GMEIN", "unit"), _m("GSTRP", "startDate"), _m("GLTRP", "endDate"),
        _m("WERKS", "plant"), _m("STAT", "status"), _m("PLNNR", "routingNumber"), _m("STLNR", "bomNumber"),
    ],
    "Inventory": [
        _m("MATNR", "materialNumber"), _m("WERKS", "plant"), _m("LGORT", "storageLocation"), _m("CHARG", "batch"),
        _m("LABST", "quantity", _float), _m("MEINS", "unit"), _m("INSMK", "qualityStatus"), _m("SOBKZ", "specialStock"),
    ],
    "GlEntry": [
        _m("BELNR", "documentNumber"), _m("BUKRS", "companyCode"), _m("GJAHR", "fiscalYear"),
        _m("BUDAT", "postingDate"), _m("BLDAT", "documentDate"), _m("BLART", "documentType"),
        _m("WAERS", "currency"), _m("XBLNR", "referenceNumber"), _m("BKTXT", "headerText"),
    ],
    "Employee": [
        _m("PERNR", "employeeId"), _m("VORNA", "firstName"), _m("NACHN", "lastName"), _m("ENAME", "fullName"),
        _m("WERKS", "personnelArea"), _m("BTRTL", "personnelSubarea"), _m("PERSG", "employeeGroup"),
        _m("PERSK", "employeeSubgroup"), _m("PLANS", "position"), _m("STELL", "jobTitle"),
        _m("ORGEH", "orgUnit"), _m("KOSTL", "costCenter"), _m("BEGDA", "startDate"), _m("USRID_LONG", "email"),
    ],
    "Bom": [
        _m("STLNR", "bomNumber"), _m("MATNR", "materialNumber"), _m("WERKS", "plant"), _m("STLAN", "bomUsage"),
        _m("BMENG", "baseQuantity", _float), _m("BMEIN", "baseUnit"), _m("DATUV", "validFrom"), _m("DATUB", "validTo"),
    ],
    "Routing": [
        _m("PLNNR", "routingNumber"), _m("MATNR", "materialNumber"), _m("WERKS", "plant"), _m("VERWE", "routingUsage"),
    ],
    "FixedAsset": [
        _m("ANLN1", "assetNumber"), _m("ANLN2", "assetSubnumber"), _m("TXA50", "description"),
        _m("ANLKL", "assetClass"), _m("AKTIV", "capitalizationDate"), _m("DEAKT", "deactivationDate"),
        _m("BUKRS", "companyCode"), _m("KOSTL", "costCenter"), _m("MENGE", "quantity", _float),
        _m("SERNR", "serialNumber"), _m("INVNR", "inventoryNumber"),
    ],
    "CostCenter": [
        _m("KOSTL", "costCenterId"), _m("KTEXT", "description"), _m("VERAK", "responsiblePerson"),
        _m("KOSAR", "costCenterCategory"), _m("BUKRS", "companyCode"), _m("KOKRS", "controllingArea"),
        _m("PRCTR", "profitCenter"), _m("DATAB", "validFrom"), _m("DATBI", "validTo"), _m("WAERS", "currency"),
    ],
}

_LN_PARTY = ["T$BPID", "T$NAMA", "T$NAMB", "T$SEAK", "T$LNAD", "T$LNCI", "T$LNPC", "T$LNCC",
             "T$LNST", "T$TELP", "T$EMAL", "T$FOVN", "T$CPAY", "T$CCUR"]

INFOR_LN = {
    "Item": [
        _m("T$ITEM", "itemId"), _m("T$DSCA", "description"), _m("T$CUNI", "baseUom"),
        _m("T$CTYP", "itemType", _lookup({"1": "FERT", "2": "HALB", "3": "ROH", "4": "HIBE"})),
        _m("T$CITG", "itemGroup"), _m("T$GRWE", "grossWeight", _float),
        _m("T$NEWE", "netWeight", _float), _m("T$WUNI", "weightUnit"),
    ],
    "Customer": _party_map(_LN_PARTY, "customerId"),
    "Vendor": _party_map(_LN_PARTY, "vendorId"),
    "ChartOfAccounts": [
        _m("T$LEAC", "accountNumber"), _m("T$DESC", "description"),
        _m("T$ACTP", "accountType", _lookup({"1": "BS", "2": "PL"})),
        _m("T$AGRP", "accountGroup"), _m("T$CCUR", "currency"), _m("T$TAXC", "taxCategory"),
    ],
}

INFOR_M3 = {
    "Item": [
        _m("MMITNO", "itemId"), _m("MMITDS", "description"), _m("MMUNMS", "baseUom"),
        _m("MMITTY", "itemType", _lookup({"10": "FERT", "20": "HALB", "30": "ROH", "50": "HIBE"})),
        _m("MMITGR", "itemGroup"), _m("MMGRWE", "grossWeight", _float), _m("MMNEWE", "netWeight", _float),
        _m("MMWUOM", "weightUnit"), _m("MMVOL3", "volume", _float), _m("MMVUOM", "volumeUnit"),
    ],
    "Customer": _party_map(
        ["OKCUNO", "OKCUNM", "OKCUN2", "OKALCU", "OKCUA1", "OKTOWN", "OKPONO", "OKCSCD",
         "OKECAR", "OKPHNO", "OKMAIL", "", "OKTEPY", "OKCUCD"], "customerId"),
    "Vendor": _party_map(
        ["IISUNO", "IISUNM", "IISUN2", "IIALSU", "IISUA1", "IITOWN", "IIPONO", "IICSCD",
         "IIECAR", "IIPHNO", "IIMAIL", "", "IITEPY", "IICUCD"], "vendorId"),
    "ChartOfAccounts": [
        _m("AIAITM", "accountNumber"), _m("AIAITX", "description"),
        _m("AIAITT", "accountType", _lookup({"1": "BS", "2": "PL"})),
        _m("AIAIGR", "accountGroup"), _m("AICUCD", "currency"),
    ],
}

_CSI_PARTY = ["", "Name", "", "", "Addr1", "City", "Zip", "Country", "State", "Phone", "Email", "", "TermsCode", "CurrCode"]

INFOR_CSI = {
    "Item": [
        _m("Item", "itemId"), _m("Description", "description"), _m("UM", "baseUom"),
        _m("ProductCode", "itemType"), _m("ItemGroup", "itemGroup"),
        _m("UnitWeight", "grossWeight", _float), _m("NetWeight", "netWeight", _float), _m("WeightUnits", "weightUnit"),
    ],
    "Customer": [_m("CustNum", "customerId"), *_party_map(_CSI_PARTY, "customerId")],
    "Vendor": [_m("VendNum", "vendorId"), *_party_map(_CSI_PARTY, "vendorId")],
    "ChartOfAccounts": [
        _m("Acct", "accountNumber"), _m("Description", "description"),
        _m("Type", "accountType", _lookup({"B": "BS", "P": "PL"})),
        _m("AcctGroup", "accountGroup"), _m("CurrCode", "currency"),
    ],
}

_LAWSON_PARTY = ["", "NAME", "", "", "ADDRESS-1", "CITY", "POSTAL-CODE", "COUNTRY", "STATE",
                 "PHONE-NUMBER", "EMAIL-ADDRESS", "", "PAY-TERMS", "CURRENCY"]

INFOR_LAWSON = {
    "Item": [
        _m("ITEM-NUMBER", "itemId"), _m("DESCRIPTION", "description"), _m("UM", "baseUom"),
        _m("ITEM-TYPE", "itemType"), _m("ITEM-GROUP", "itemGroup"),
        _m("WEIGHT", "grossWeight", _float), _m("WEIGHT-UM", "weightUnit"),
    ],
    "Customer": [_m("CUSTOMER", "customerId"), *_party_map(_LAWSON_PARTY, "customerId")],
    "Vendor": [_m("VENDOR", "vendorId"), *_party_map(_LAWSON_PARTY, "vendorId")],
    "ChartOfAccounts": [
        _m("ACCOUNT", "accountNumber"), _m("DESCRIPTION", "description"),
        _m("ACCOUNT-TYPE", "accountType", _lookup({"B": "BS", "P": "PL", "R": "PL"})),
        _m("ACCOUNT-GROUP", "accountGroup"), _m("CURRENCY", "currency"),
    ],
}

SOURCE_MAPPINGS: dict[str, dict[str, list[dict]]] = {
    "SAP": SAP,
    "INFOR_LN": INFOR_LN,
    "INFOR_M3": INFOR_M3,
    "INFOR_CSI": INFOR_CSI,
    "INFOR_LAWSON": INFOR_LAWSON,
}


def get_source_systems() -> list[str]:
    return list(SOURCE_MAPPINGS)


def get_mappings(source_family: str, entity_type: str) -> list[dict] | None:
    """Mapping list for *entity_type*, or None if the family does not map it.

    Raises ValidationError for an unsupported family.
    """
    family = SOURCE_MAPPINGS.get(source_family)
    if family is None:
        raise ValidationError(
            f"Unsupported source system: {source_family}",
            details={"sourceSystem": source_family, "supported": get_source_systems()},
        )
    return family.get(entity_type)


def describe_mappings(source_family: str, entity_type: str) -> list[dict] | None:
    mappings = get_mappings(source_family, entity_type)
    if mappings is None:
        return None
    return [{"source": m["source"], "target": m["target"], "converted": "convert" in m} for m in mappings]


# ── Entity ───────────────────────────────────────────────────────────────────

class CanonicalEntity:
    def __init__(self, entity_type: str, data: dict | None = None) -> None:
        if entity_type not in ENTITY_FIELDS:
            raise ValidationError(f"Unknown canonical entity: {entity_type}",
                                  details={"supported": list(ENTITY_FIELDS)})
        self.entity_type = entity_type
        self.data: dict = dict(data or {})

    @property
    def field_definitions(self) -> dict[str, FieldDef]:
        return ENTITY_FIELDS[self.entity_type]

    @property
    def required_fields(self) -> list[str]:
        return required_fields(self.entity_type)

    def validate(self) -> dict:
        errors = []
        for name in self.required_fields:
            if self.data.get(name) in (None, ""):
                errors.append(f"Missing required field: {name}")

        for name, value in self.data.items():
            if value is None:
                continue
            fdef = self.field_definitions.get(name)
            if fdef is None:
                continue
            if fdef.type == "string" and not isinstance(value, str):
                errors.append(f"Field '{name}' must be a string, got {type(value).__name__}")
            elif fdef.type == "number" and (isinstance(value, bool) or not isinstance(value, (int, float))):
                errors.append(f"Field '{name}' must be a number, got {type(value).__name__}")
            elif fdef.type == "date" and not isinstance(value, (date, str)):
                errors.append(f"Field '{name}' must be a date or date string, got {type(value).__name__}")
            elif fdef.type == "boolean" and not isinstance(value, bool):
                errors.append(f"Field '{name}' must be a boolean, got {type(value).__name__}")
            if fdef.max_length and isinstance(value, str) and len(value) > fdef.max_length:
                errors.append(f"Field '{name}' exceeds max length {fdef.max_length} (got {len(value)})")

        return {"valid": not errors, "errors": errors}

    def from_source(self, source_family: str, record: dict) -> CanonicalEntity:
        mappings = get_mappings(source_family, self.entity_type)
        if not mappings:
            raise ValidationError(
                f"No mappings found for source '{source_family}' entity '{self.entity_type}'",
                details={"sourceSystem": source_family, "entityType": self.entity_type},
            )
        logger.debug("Mapping source=%s entity=%s fields=%d", source_family, self.entity_type, len(mappings))
        for mapping in mappings:
            value = record.get(mapping["source"])
            if value is None:
                continue
            convert = mapping.get("convert")
            self.data[mapping["target"]] = convert(value, record) if convert else value
        return self

    def to_dict(self) -> dict:
        return {
            "_entityType": self.entity_type,
            "_timestamp": datetime.now(timezone.utc).isoformat(),
            **self.data,
        }
