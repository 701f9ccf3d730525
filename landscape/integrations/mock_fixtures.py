"""
Deterministic fixtures served by MockSourceGateway.

Tables are keyed by name; every table declares its column list and rows.
Functions (remote procedures) are keyed by name and return a reply dict.
Nothing here depends on the clock or on randomness: two reads of the same
table always yield identical rows in identical order.
"""

from __future__ import annotations

from datetime import date, timedelta


def _table(columns: list[str], rows: list[tuple]) -> dict:
    return {"columns": list(columns), "rows": [dict(zip(columns, r)) for r in rows]}


# ═════════════════════════════════════════════════════════════════════════════
# BASIS
# ═════════════════════════════════════════════════════════════════════════════

_CVERS = _table(
    ["COMPONENT", "RELEASE", "EXTRELEASE", "COMP_TYPE"],
    [
        ("SAP_BASIS", "750", "0025", "S"),
        ("SAP_ABA", "750", "0025", "S"),
        ("SAP_APPL", "618", "0021", "S"),
        ("SAP_FIN", "618", "0021", "S"),
        ("SAP_HR", "608", "0098", "S"),
        ("EA-APPL", "618", "0021", "S"),
    ],
)

_T000 = _table(
    ["MANDT", "MTEXT", "ORT01", "CCCATEGORY", "CCNOCLIIND"],
    [
        ("000", "SAP AG Konzern", "Walldorf", "S", "1"),
        ("100", "Production", "Berlin", "P", "3"),
        ("200", "Quality Assurance", "Berlin", "T", "1"),
    ],
)

_DD02L = _table(
    ["TABNAME", "TABCLASS", "CONTFLAG", "AS4LOCAL"],
    [
        ("BKPF", "TRANSP", "A", "A"),
        ("BSEG", "CLUSTER", "A", "A"),
        ("KNA1", "TRANSP", "A", "A"),
        ("LFA1", "TRANSP", "A", "A"),
        ("MARA", "TRANSP", "A", "A"),
        ("T001", "TRANSP", "C", "A"),
        ("VBAK", "TRANSP", "A", "A"),
        ("EKKO", "TRANSP", "A", "A"),
        ("ZSD_ORDER_LOG", "TRANSP", "A", "A"),
        ("ZFI_RECON", "TRANSP", "A", "A"),
    ],
)

_DD03L = _table(
    ["TABNAME", "FIELDNAME", "POSITION", "KEYFLAG", "DATATYPE", "LENG"],
    [
        ("T001", "MANDT", "0001", "X", "CLNT", "000003"),
        ("T001", "BUKRS", "0002", "X", "CHAR", "000004"),
        ("T001", "BUTXT", "0003", "", "CHAR", "000025"),
        ("T001", "WAERS", "0004", "", "CUKY", "000005"),
        ("KNA1", "KUNNR", "0002", "X", "CHAR", "000010"),
        ("KNA1", "NAME1", "0003", "", "CHAR", "000035"),
        ("MARA", "MATNR", "0002", "X", "CHAR", "000018"),
        ("MARA", "MTART", "0003", "", "CHAR", "000004"),
        ("ZSD_ORDER_LOG", "VBELN", "0002", "X", "CHAR", "000010"),
        ("ZSD_ORDER_LOG", "UNAME", "0003", "", "CHAR", "000012"),
    ],
)

_NRIV = _table(
    ["OBJECT", "SUBOBJECT", "NRRANGENR", "TOYEAR", "FROMNUMBER", "TONUMBER", "NRLEVEL", "EXTERNIND"],
    [
        ("BKPF_BUKR", "1000", "01", "2024", "0100000000", "0199999999", "0100452310", ""),
        ("BKPF_BUKR", "2000", "01", "2024", "0100000000", "0199999999", "0100018822", ""),
        ("EINKBELEG", "", "45", "0000", "4500000000", "4599999999", "4500087211", ""),
        ("VERKBELEG", "", "01", "0000", "0000500000", "0000599999", "0000596400", ""),
        ("MATBELEG", "", "01", "2024", "4900000000", "4999999999", "4900231776", ""),
        ("DEBITOR", "", "01", "0000", "0000001000", "0000099999", "0000014501", ""),
        ("DEBITOR", "", "XX", "0000", "A", "ZZZZZZZZZZ", "", "X"),
        ("KREDITOR", "", "01", "0000", "0000100000", "0000199999", "0000104388", ""),
        ("MATERIALNR", "", "01", "0000", "000000000000100000", "000000000000999999", "000000000000123456", ""),
    ],
)

_TNRO = _table(
    ["OBJECT", "DOMLEN", "PERCENTAGE", "BUFFER", "NOIVBUFFER", "YEARIND"],
    [
        ("BKPF_BUKR", "BELNR_D", "10", "X", "0", "X"),
        ("EINKBELEG", "EBELN", "10", "X", "10", ""),
        ("VERKBELEG", "VBELN", "5", "X", "10", ""),
        ("MATBELEG", "MBLNR", "10", "X", "10", "X"),
        ("DEBITOR", "KUNNR", "5", "", "0", ""),
        ("KREDITOR", "LIFNR", "5", "", "0", ""),
        ("MATERIALNR", "MATNR", "5", "", "0", ""),
    ],
)


# ═════════════════════════════════════════════════════════════════════════════
# FI / CO
# ═════════════════════════════════════════════════════════════════════════════

_T001 = _table(
    ["BUKRS", "BUTXT", "ORT01", "LAND1", "WAERS", "KTOPL", "PERIV"],
    [
        ("1000", "Landscape Industries AG", "Berlin", "DE", "EUR", "INT", "K4"),
        ("2000", "Landscape Inc.", "Chicago", "US", "USD", "INT", "K4"),
        ("3000", "Landscape Ltd.", "London", "GB", "GBP", "INT", "V3"),
    ],
)

_T003 = _table(
    ["BLART", "NUMKR", "XSYBL", "LTEXT"],
    [
        ("SA", "01", "", "G/L account document"),
        ("KR", "19", "", "Vendor invoice"),
        ("DR", "18", "", "Customer invoice"),
        ("KZ", "15", "", "Vendor payment"),
        ("DZ", "14", "", "Customer payment"),
        ("AA", "01", "", "Asset posting"),
        ("ZA", "90", "", "Custom accrual"),
        ("ZR", "91", "", "Custom reclass"),
    ],
)

_T004 = _table(
    ["KTOPL", "DSPRA", "SAKLN", "KTPLT"],
    [("INT", "EN", "10", "Sample chart of accounts")],
)

_TBSL = _table(
    ["BSCHL", "SHKZG", "KOART", "LTEXT"],
    [
        ("01", "S", "D", "Invoice"),
        ("11", "H", "D", "Credit memo"),
        ("15", "H", "D", "Incoming payment"),
        ("25", "S", "K", "Outgoing payment"),
        ("31", "H", "K", "Invoice"),
        ("40", "S", "S", "Debit entry"),
        ("50", "H", "S", "Credit entry"),
        ("70", "S", "A", "Debit asset"),
    ],
)

_T030 = _table(
    ["KTOPL", "KTOSL", "BWMOD", "KOMOK", "KONTS", "KONTH"],
    [
        ("INT", "BSX", "0001", "", "300000", "300000"),
        ("INT", "WRX", "0001", "", "191100", "191100"),
        ("INT", "GBB", "0001", "VBR", "400000", "400000"),
        ("INT", "PRD", "0001", "", "281000", "281000"),
        ("INT", "KDF", "", "", "231500", "231500"),
    ],
)

_T007A = _table(
    ["KALSM", "MWSKZ", "MWART", "TEXT1"],
    [
        ("TAXD", "V1", "V", "Input tax 19%"),
        ("TAXD", "V2", "V", "Input tax 7%"),
        ("TAXD", "A1", "A", "Output tax 19%"),
        ("TAXD", "A2", "A", "Output tax 7%"),
        ("TAXUSJ", "I1", "V", "A/P sales tax"),
        ("TAXUSJ", "O1", "A", "A/R sales tax"),
        ("TAXGB", "V1", "V", "Input VAT 20%"),
    ],
)

_T005 = _table(
    ["LAND1", "LANDX", "WAERS", "KALSM"],
    [
        ("DE", "Germany", "EUR", "TAXD"),
        ("US", "USA", "USD", "TAXUSJ"),
        ("GB", "United Kingdom", "GBP", "TAXGB"),
        ("FR", "France", "EUR", "TAXF"),
    ],
)

_FAGL_ACTIVEC = _table(
    ["ACTIVE", "GLFLEX_ACTIVE", "SPLIT_ACTIVE"],
    [("X", "X", "X")],
)

_T881 = _table(
    ["RLDNR", "TAB", "NAME", "XLEADING"],
    [
        ("0L", "FAGLFLEXT", "Leading ledger", "X"),
        ("L1", "FAGLFLEXT", "Local GAAP", ""),
    ],
)

_TKA01 = _table(
    ["KOKRS", "BEZEI", "WAERS", "KTOPL", "LMONA"],
    [
        ("1000", "CO Europe", "EUR", "INT", "12"),
        ("2000", "CO North America", "USD", "INT", "12"),
    ],
)

_CSKB = _table(
    ["KOKRS", "KSTAR", "DATBI", "KATYP"],
    [
        ("1000", "0000400000", "99991231", "1"),
        ("1000", "0000410000", "99991231", "1"),
        ("1000", "0000420000", "99991231", "1"),
        ("1000", "0000430000", "99991231", "1"),
        ("1000", "0000620000", "99991231", "42"),
        ("1000", "0000625000", "99991231", "43"),
        ("1000", "0000640000", "99991231", "41"),
        ("2000", "0000400000", "99991231", "1"),
        ("2000", "0000629000", "99991231", "42"),
    ],
)

_CSKS = _table(
    ["KOKRS", "KOSTL", "DATBI", "DATAB", "BUKRS", "KOSAR", "VERAK", "PRCTR", "WAERS"],
    [
        ("1000", "0000001000", "99991231", "20100101", "1000", "V", "Board", "P1000", "EUR"),
        ("1000", "0000001100", "99991231", "20100101", "1000", "F", "Production Berlin", "P1100", "EUR"),
        ("1000", "0000001200", "99991231", "20100101", "1000", "V", "Sales Europe", "P1200", "EUR"),
        ("1000", "0000001300", "99991231", "20150101", "1000", "H", "IT Services", "P1000", "EUR"),
        ("2000", "0000002000", "99991231", "20120101", "2000", "V", "US Admin", "P2000", "USD"),
        ("2000", "0000002100", "99991231", "20120101", "2000", "F", "US Plant", "P2100", "USD"),
    ],
)


# ═════════════════════════════════════════════════════════════════════════════
# MM / SD / PP
# ═════════════════════════════════════════════════════════════════════════════

_T001W = _table(
    ["WERKS", "NAME1", "BWKEY", "LAND1", "ORT01"],
    [
        ("1000", "Berlin Plant", "1000", "DE", "Berlin"),
        ("1100", "Hamburg DC", "1100", "DE", "Hamburg"),
        ("2000", "Chicago Plant", "2000", "US", "Chicago"),
    ],
)

_T001L = _table(
    ["WERKS", "LGORT", "LGOBE"],
    [
        ("1000", "0001", "Raw materials"),
        ("1000", "0002", "Finished goods"),
        ("1100", "0001", "Central store"),
        ("2000", "0001", "Main store"),
        ("2000", "0088", "Quarantine"),
    ],
)

_T156 = _table(
    ["BWART", "SHKZG", "XSTBW", "BTEXT"],
    [
        ("101", "S", "", "GR goods receipt"),
        ("102", "H", "X", "GR for PO reversal"),
        ("201", "H", "", "GI for cost center"),
        ("261", "H", "", "GI for order"),
        ("301", "H", "", "Plant to plant transfer"),
        ("601", "H", "", "GD goods issue delivery"),
        ("901", "S", "", "Custom consignment receipt"),
        ("951", "H", "", "Custom scrap posting"),
    ],
)

_TVAK = _table(
    ["AUART", "VBTYP", "NUMKI", "BEZEI"],
    [
        ("OR", "C", "01", "Standard order"),
        ("RE", "H", "01", "Returns"),
        ("CR", "K", "01", "Credit memo request"),
        ("ZOR", "C", "01", "Custom standard order"),
        ("ZEX", "C", "01", "Export order"),
    ],
)

_T683 = _table(
    ["KVEWE", "KAPPL", "KALSM", "STUNR"],
    [
        ("A", "V", "RVAA01", "010"),
        ("A", "V", "RVAA02", "010"),
        ("A", "V", "ZVAA01", "010"),
        ("A", "M", "RM0000", "010"),
    ],
)

_T685 = _table(
    ["KVEWE", "KAPPL", "KSCHL", "VTEXT"],
    [
        ("A", "V", "PR00", "Price"),
        ("A", "V", "K004", "Material discount"),
        ("A", "V", "K007", "Customer discount"),
        ("A", "V", "MWST", "Output tax"),
        ("A", "V", "ZPR0", "Custom price"),
        ("A", "V", "ZFRT", "Custom freight"),
        ("A", "M", "PB00", "Gross price"),
    ],
)

_T003O = _table(
    ["AUART", "AUTYP", "TXT"],
    [
        ("PP01", "10", "Standard production order"),
        ("PP02", "10", "Production order w/o material"),
        ("PI01", "40", "Process order"),
        ("PM01", "30", "Maintenance order"),
    ],
)

_CRHD = _table(
    ["OBJID", "ARBPL", "WERKS", "VERWE", "KTEXT"],
    [
        ("10000001", "ASSY-01", "1000", "0001", "Assembly line 1"),
        ("10000002", "ASSY-02", "1000", "0001", "Assembly line 2"),
        ("10000003", "PAINT", "1000", "0001", "Paint shop"),
        ("10000004", "MAINT", "1000", "0005", "Maintenance crew"),
        ("20000001", "CNC-01", "2000", "0001", "CNC machining"),
    ],
)


# ═════════════════════════════════════════════════════════════════════════════
# Process evidence: change documents, usage, batch jobs
# ═════════════════════════════════════════════════════════════════════════════

_BASE_DAY = date(2024, 1, 8)

# case class, object id, user, [(tcode, [changed fields], day offset, HHMMSS)]
_CHANGE_CASES = [
    ("VERKBELEG", "0000500001", "JSMITH", [
        ("VA01", ["AUART"], 0, "090000"),
        ("VA02", ["CMGST"], 0, "093000"),
        ("VL01N", ["VBELN"], 1, "100000"),
        ("LT03", ["KOSTK"], 1, "140000"),
        ("VL02N", ["PKSTK"], 1, "160000"),
        ("VL02N", ["WBSTK", "WADAT_IST"], 2, "080000"),
        ("VF01", ["FKART"], 3, "090000"),
        ("VF31", ["NAST"], 3, "091500"),
        ("F-28", ["AUGBL"], 25, "110000"),
        ("F-32", ["AUGDT"], 26, "090000"),
    ]),
    ("VERKBELEG", "0000500002", "JSMITH", [
        ("VA01", ["AUART"], 2, "101500"),
        ("VA02", ["CMGST"], 2, "103000"),
        ("VKM1", ["CMGST"], 2, "104500"),
        ("VKM4", ["CMFRE"], 5, "090000"),
        ("VKM3", ["CMGST"], 5, "093000"),
        ("VL01N", ["VBELN"], 6, "080000"),
        ("LT03", ["KOSTK"], 6, "120000"),
        ("VL02N", ["PKSTK"], 6, "150000"),
        ("VL02N", ["WBSTK", "WADAT_IST"], 7, "090000"),
        ("VF01", ["FKART"], 8, "090000"),
        ("VF31", ["NAST"], 8, "100000"),
        ("F150", ["MAHNS"], 45, "070000"),
        ("F-28", ["AUGBL"], 50, "110000"),
        ("F-32", ["AUGDT"], 50, "150000"),
    ]),
    ("VERKBELEG", "0000500003", "MBROWN", [
        ("VA01", ["AUART"], 4, "081500"),
        ("VA02", ["NETWR"], 4, "110000"),
        ("VA02", ["CMGST"], 4, "111500"),
        ("VL01N", ["VBELN"], 9, "080000"),
        ("LT03", ["KOSTK"], 9, "100000"),
        ("VL02N", ["PKSTK"], 9, "130000"),
        ("VL02N", ["WBSTK", "WADAT_IST"], 10, "090000"),
        ("VF01", ["FKART"], 11, "090000"),
    ]),
    ("VERKBELEG", "0000500004", "MBROWN", [
        ("VA01", ["AUART"], 6, "090000"),
        ("VL02N", ["WBSTK", "WADAT_IST"], 6, "170000"),
        ("VF01", ["FKART"], 7, "090000"),
    ]),
    ("EINKBELEG", "4500000100", "KLEE", [
        ("ME21N", ["BSART"], 0, "100000"),
        ("ME29N", ["FRGZU"], 1, "110000"),
        ("ME9F", ["NAST"], 1, "113000"),
        ("MIGO", ["MBLNR"], 12, "080000"),
        ("MIRO", ["BELNR"], 14, "090000"),
        ("MRRL", ["RBSTAT"], 14, "093000"),
        ("F111", ["ZFBDT"], 16, "090000"),
        ("F110", ["LAUFD"], 20, "060000"),
        ("F-44", ["AUGBL"], 20, "063000"),
    ]),
    ("EINKBELEG", "4500000101", "KLEE", [
        ("ME21N", ["BSART"], 3, "091500"),
        ("ME29N", ["FRGZU"], 3, "140000"),
        ("ME9F", ["NAST"], 4, "080000"),
        ("MIGO", ["MBLNR"], 25, "080000"),
        ("MIRO", ["BELNR"], 26, "090000"),
        ("MRRL", ["RBSTAT"], 26, "100000"),
        ("MIR4", ["ZLSPR"], 26, "103000"),
        ("MRBR", ["ZLSPR"], 33, "090000"),
        ("F111", ["ZFBDT"], 34, "090000"),
        ("F110", ["LAUFD"], 35, "060000"),
        ("F-44", ["AUGBL"], 35, "063000"),
    ]),
    ("BANF", "0010000500", "TWHITE", [
        ("ME51N", ["BANFN"], 1, "083000"),
        ("ME54N", ["FRGZU"], 2, "090000"),
    ]),
    ("BANF", "0010000501", "TWHITE", [
        ("ME51N", ["BANFN"], 5, "083000"),
        ("ME52N", ["LOEKZ"], 6, "090000"),
    ]),
    ("BELEG", "1000010000452300", "RGREEN", [
        ("FB50", ["BLART"], 0, "100000"),
        ("FB01", ["BSTAT"], 0, "110000"),
        ("F-03", ["AUGBL"], 3, "090000"),
        ("F.13", ["AUGDT"], 4, "020000"),
        ("FAGL_FC_VAL", ["WRBTR"], 22, "030000"),
        ("F.03", ["RECON"], 23, "090000"),
        ("OB52", ["FRPE1"], 24, "180000"),
    ]),
    ("BELEG", "1000010000452301", "RGREEN", [
        ("FB50", ["BLART"], 1, "100000"),
        ("FBV0", ["BSTAT"], 1, "101500"),
        ("FBV2", ["BSTAT"], 2, "090000"),
        ("FB01", ["BSTAT"], 2, "100000"),
        ("FB08", ["STBLG"], 3, "090000"),
    ]),
    ("ANLA", "100000000010", "AWONG", [
        ("AS01", ["ANLKL"], 0, "090000"),
        ("AB01", ["ANBWA"], 1, "100000"),
        ("AIBU", ["AKTIV"], 4, "100000"),
        ("AFAB", ["NAFAG"], 30, "020000"),
        ("AFAB", ["NAFAG"], 60, "020000"),
        ("ABAVN", ["ABGDT"], 75, "090000"),
        ("AJAB", ["GJAHR"], 80, "180000"),
    ]),
    ("ORDER", "000001000100", "PBAKER", [
        ("CO01", ["AUART"], 0, "070000"),
        ("CO02", ["GSTRP", "GLTRP"], 0, "080000"),
        ("CO05N", ["FREI"], 1, "070000"),
        ("CO04N", ["DRUCK"], 1, "073000"),
        ("MB1A", ["BWART"], 1, "090000"),
        ("CO11N", ["ISDD"], 1, "100000"),
        ("CO15", ["AUERU"], 3, "150000"),
        ("MB31", ["BWART"], 3, "160000"),
        ("CO02", ["TECO"], 4, "090000"),
        ("CO02", ["CLSD"], 6, "090000"),
        ("KO88", ["BELNR"], 7, "020000"),
    ]),
    ("QMEL", "000010000200", "DHALL", [
        ("IW21", ["QMART"], 0, "080000"),
        ("IW22", ["QMCOD", "FECOD"], 0, "100000"),
        ("IW22", ["STAT"], 0, "150000"),
        ("IW31", ["AUFNR"], 1, "080000"),
        ("IW32", ["ARBPL", "VORNR"], 1, "110000"),
        ("IW32", ["FTRMI"], 2, "080000"),
        ("IW42", ["ISDD"], 3, "090000"),
        ("IW41", ["AUERU"], 4, "160000"),
        ("IW32", ["TECO"], 5, "090000"),
        ("KO88", ["BELNR"], 8, "020000"),
    ]),
    ("PERSNR", "00001001", "HRADMIN", [
        ("PB40", ["PERNR"], 0, "090000"),
        ("PA40", ["MASSN"], 1, "090000"),
        ("PA30", ["ORGEH"], 1, "093000"),
        ("PA30", ["PLANS"], 1, "094500"),
        ("PA30", ["BETRG"], 1, "100000"),
        ("PA42", ["PERSG"], 3, "090000"),
        ("PC00_M99_CIPE", ["ABKRS"], 25, "020000"),
    ]),
    ("DEBI", "0000001000", "ADMIN", [
        ("XD02", ["NAME1"], 9, "080000"),
    ]),
    ("MATERIAL", "000000000000100001", "MJONES", [
        ("MM02", ["MAKTX"], 10, "110000"),
    ]),
]


def _change_documents() -> tuple[dict, dict]:
    headers = []
    items = []
    changenr = 0
    for cls, object_id, user, steps in _CHANGE_CASES:
        for tcode, fields, offset, utime in steps:
            changenr += 1
            nr = f"{changenr:010d}"
            udate = (_BASE_DAY + timedelta(days=offset)).strftime("%Y%m%d")
            headers.append((cls, object_id, nr, user, udate, utime, tcode,
                            "I" if tcode.endswith("01") or tcode.endswith("01N") else "U"))
            for field in fields:
                items.append((cls, object_id, nr, "", field, "U", "X", ""))
    cdhdr = _table(
        ["OBJECTCLAS", "OBJECTID", "CHANGENR", "USERNAME", "UDATE", "UTIME", "TCODE", "CHANGE_IND"],
        headers,
    )
    cdpos = _table(
        ["OBJECTCLAS", "OBJECTID", "CHANGENR", "TABNAME", "FNAME", "CHNGIND", "VALUE_NEW", "VALUE_OLD"],
        items,
    )
    return cdhdr, cdpos


_CDHDR, _CDPOS = _change_documents()

_TCDOB = _table(
    ["OBJECT", "TABNAME"],
    [
        ("VERKBELEG", "VBAK"),
        ("VERKBELEG", "VBAP"),
        ("EINKBELEG", "EKKO"),
        ("EINKBELEG", "EKPO"),
        ("BANF", "EBAN"),
        ("BELEG", "BKPF"),
        ("ANLA", "ANLA"),
        ("ORDER", "AUFK"),
        ("QMEL", "QMEL"),
        ("DEBI", "KNA1"),
        ("MATERIAL", "MARA"),
    ],
)

_TSTC = _table(
    ["TCODE", "PGMNA", "DYPNO"],
    [
        ("VA01", "SAPMV45A", "0101"), ("VA02", "SAPMV45A", "0102"), ("VL01N", "SAPMV50A", "4001"),
        ("VF01", "SAPMV60A", "0101"), ("ME21N", "SAPLMEGUI", "0014"), ("MIGO", "SAPLMIGO", "0001"),
        ("MIRO", "SAPLMR1M", "6000"), ("FB50", "SAPMF05A", "1001"), ("FB01", "SAPMF05A", "0100"),
        ("F110", "SAPF110V", "1000"), ("AS01", "SAPLAIST", "0105"), ("CO01", "SAPLCOKO1", "0100"),
        ("IW21", "SAPLIQS0", "0100"), ("PA30", "SAPMP50A", "1000"), ("SE38", "SAPMS38M", "0101"),
        ("FBL5N", "RFITEMAR", "1000"), ("ME2N", "RM06EN00", "1000"), ("SU01", "SAPMSUU0", "0050"),
        ("ZSD_ORDER_UPLOAD", "ZSD_ORDER_UPLOAD", "1000"),
        ("ZFI_RECON", "ZFI_RECON", "1000"),
        ("ZMM_LABEL", "ZMM_LABEL_PRINT", "1000"),
        ("YHR_REPORT", "YHR_REPORT", "1000"),
    ],
)

_WORKLOAD = {
    "transactions": [
        {"tcode": "VA01", "executions": 18420, "avgResponseMs": 820, "users": 64},
        {"tcode": "VA02", "executions": 9310, "avgResponseMs": 640, "users": 58},
        {"tcode": "VL01N", "executions": 12044, "avgResponseMs": 910, "users": 31},
        {"tcode": "VF01", "executions": 11803, "avgResponseMs": 700, "users": 12},
        {"tcode": "ME21N", "executions": 7322, "avgResponseMs": 1100, "users": 40},
        {"tcode": "MIGO", "executions": 15210, "avgResponseMs": 980, "users": 72},
        {"tcode": "MIRO", "executions": 6100, "avgResponseMs": 1250, "users": 18},
        {"tcode": "FB50", "executions": 4200, "avgResponseMs": 540, "users": 22},
        {"tcode": "F110", "executions": 260, "avgResponseMs": 40200, "users": 3},
        {"tcode": "FBL5N", "executions": 8800, "avgResponseMs": 2300, "users": 45},
        {"tcode": "ME2N", "executions": 5400, "avgResponseMs": 1900, "users": 38},
        {"tcode": "SE38", "executions": 950, "avgResponseMs": 400, "users": 9},
        {"tcode": "SU01", "executions": 310, "avgResponseMs": 350, "users": 4},
        {"tcode": "ZSD_ORDER_UPLOAD", "executions": 450, "avgResponseMs": 5200, "users": 6},
        {"tcode": "ZFI_RECON", "executions": 120, "avgResponseMs": 14800, "users": 3},
        {"tcode": "ZMM_LABEL", "executions": 40, "avgResponseMs": 300, "users": 5},
        {"tcode": "YHR_REPORT", "executions": 0, "avgResponseMs": 0, "users": 0},
    ],
    "userTopTransactions": [
        {"user": "JSMITH", "tcodes": [{"tcode": "VA01", "count": 3100}, {"tcode": "VA02", "count": 1400}]},
        {"user": "KLEE", "tcodes": [{"tcode": "ME21N", "count": 2200}, {"tcode": "MIGO", "count": 900}]},
        {"user": "RGREEN", "tcodes": [{"tcode": "FB50", "count": 1800}, {"tcode": "ZFI_RECON", "count": 110}]},
        {"user": "MBROWN", "tcodes": [{"tcode": "VA01", "count": 2900}, {"tcode": "FBL5N", "count": 700}]},
    ],
}

_TBTCO = _table(
    ["JOBNAME", "JOBCOUNT", "STATUS", "SDLUNAME", "STRTDATE", "PERIODIC", "PRDDAYS", "PRDHOURS"],
    [
        ("SAP_REORG_JOBS", "00010001", "S", "BATCHADM", "20240107", "X", "1", "0"),
        ("SAP_COLLECTOR_FOR_PERFMONITOR", "00010002", "S", "BATCHADM", "20240107", "X", "0", "1"),
        ("Z_F110_DAILY_PAYMENT", "00010003", "S", "FIADMIN", "20240108", "X", "1", "0"),
        ("Z_SD_BILLING_DUE", "00010004", "F", "SDADMIN", "20240108", "X", "1", "0"),
        ("Z_MM_MRP_RUN", "00010005", "R", "PPADMIN", "20240108", "X", "1", "0"),
        ("Z_FI_RECON_MONTHLY", "00010006", "A", "FIADMIN", "20240101", "X", "30", "0"),
        ("RSBTCDEL2", "00010007", "F", "BATCHADM", "20240106", "", "0", "0"),
    ],
)

_TBTCP = _table(
    ["JOBNAME", "JOBCOUNT", "STEPCOUNT", "PROGNAME", "AUTHCKNAM"],
    [
        ("SAP_REORG_JOBS", "00010001", "1", "RSBTCDEL2", "BATCHADM"),
        ("SAP_COLLECTOR_FOR_PERFMONITOR", "00010002", "1", "RSCOLL00", "BATCHADM"),
        ("Z_F110_DAILY_PAYMENT", "00010003", "1", "SAPF110S", "FIADMIN"),
        ("Z_SD_BILLING_DUE", "00010004", "1", "SDBILLDL", "SDADMIN"),
        ("Z_MM_MRP_RUN", "00010005", "1", "RMMRP000", "PPADMIN"),
        ("Z_FI_RECON_MONTHLY", "00010006", "1", "ZFI_RECON", "FIADMIN"),
        ("Z_FI_RECON_MONTHLY", "00010006", "2", "ZFI_RECON_MAIL", "FIADMIN"),
        ("RSBTCDEL2", "00010007", "1", "RSBTCDEL2", "BATCHADM"),
    ],
)


# ═════════════════════════════════════════════════════════════════════════════
# Security / integration / custom code
# ═════════════════════════════════════════════════════════════════════════════

_AGR_DEFINE = _table(
    ["AGR_NAME", "PARENT_AGR", "CREATE_USR", "CREATE_DAT"],
    [
        ("Z_SD_SALES_CLERK", "", "SECADMIN", "20190301"),
        ("Z_MM_BUYER", "", "SECADMIN", "20190301"),
        ("Z_FI_ACCOUNTANT", "", "SECADMIN", "20190301"),
        ("Z_FI_ACCOUNTANT_1000", "Z_FI_ACCOUNTANT", "SECADMIN", "20190302"),
        ("Z_BASIS_ADMIN", "", "SECADMIN", "20180115"),
        ("SAP_BC_BASIS_ADMIN", "", "SAP", "20100101"),
    ],
)

_AGR_USERS = _table(
    ["AGR_NAME", "UNAME", "FROM_DAT", "TO_DAT"],
    [
        ("Z_SD_SALES_CLERK", "JSMITH", "20200101", "99991231"),
        ("Z_SD_SALES_CLERK", "MBROWN", "20200101", "99991231"),
        ("Z_MM_BUYER", "KLEE", "20200101", "99991231"),
        ("Z_FI_ACCOUNTANT_1000", "RGREEN", "20200101", "99991231"),
        ("Z_FI_ACCOUNTANT_1000", "KLEE", "20220101", "99991231"),
        ("Z_BASIS_ADMIN", "ADMIN", "20180115", "99991231"),
        ("SAP_BC_BASIS_ADMIN", "ADMIN", "20180115", "99991231"),
        ("Z_MM_BUYER", "OLDUSER", "20150101", "20211231"),
    ],
)

_USR02 = _table(
    ["BNAME", "USTYP", "GLTGB", "UFLAG", "TRDAT", "CLASS"],
    [
        ("ADMIN", "A", "00000000", "0", "20240110", "SUPER"),
        ("JSMITH", "A", "00000000", "0", "20240110", "SALES"),
        ("MBROWN", "A", "00000000", "0", "20240109", "SALES"),
        ("KLEE", "A", "00000000", "0", "20240110", "PURCH"),
        ("RGREEN", "A", "00000000", "0", "20240105", "FINANCE"),
        ("OLDUSER", "A", "20211231", "64", "20211120", "PURCH"),
        ("BATCHADM", "B", "00000000", "0", "20240110", "SYSTEM"),
        ("RFC_ECOM", "S", "00000000", "0", "20240110", "SYSTEM"),
        ("FIREFIGHT", "A", "00000000", "0", "20230301", "SUPER"),
    ],
)

_UST04 = _table(
    ["BNAME", "PROFILE"],
    [
        ("ADMIN", "SAP_ALL"),
        ("ADMIN", "SAP_NEW"),
        ("FIREFIGHT", "SAP_ALL"),
        ("JSMITH", "T-SD000001"),
        ("KLEE", "T-MM000001"),
        ("RGREEN", "T-FI000001"),
        ("BATCHADM", "S_BTCH_ADMIN"),
    ],
)

_RFCDES = _table(
    ["RFCDEST", "RFCTYPE", "RFCOPTIONS"],
    [
        ("BW_PROD", "3", "H=bwprod.landscape.local,S=00,"),
        ("CRM_PROD", "3", "H=crmprod.landscape.local,S=10,"),
        ("LEGACY_WMS", "3", "S=00,"),
        ("ECOM_GATEWAY", "G", "H=shop.landscape.example,I=/sap/orders,"),
        ("SUPPLIER_PORTAL", "H", "H=portal.landscape.example,"),
        ("TMSADM@SID.DOMAIN_SID", "3", "H=localhost,S=00,"),
        ("EDI_CONVERTER", "T", "N=edi_conv,"),
    ],
)

_EDP13 = _table(
    ["RCVPRN", "RCVPRT", "MESTYP", "IDOCTYP", "RCVPOR"],
    [
        ("EDI_CUST01", "KU", "ORDRSP", "ORDERS05", "EDIPORT"),
        ("EDI_CUST01", "KU", "INVOIC", "INVOIC02", "EDIPORT"),
        ("EDI_VEND01", "LI", "ORDERS", "ORDERS05", "EDIPORT"),
        ("BWPCLNT100", "LS", "MATMAS", "MATMAS05", "A000000001"),
        ("CRMCLNT100", "LS", "DEBMAS", "DEBMAS07", "A000000002"),
    ],
)

_TADIR = _table(
    ["PGMID", "OBJECT", "OBJ_NAME", "DEVCLASS", "AUTHOR", "CREATED_ON"],
    [
        ("R3TR", "PROG", "ZFI_RECON", "ZFI", "RGREEN", "20180412"),
        ("R3TR", "PROG", "ZSD_ORDER_UPLOAD", "ZSD", "DEVUSER1", "20170630"),
        ("R3TR", "PROG", "ZMM_LABEL_PRINT", "ZMM", "DEVUSER2", "20190101"),
        ("R3TR", "PROG", "ZCO_PA_REPORT", "ZCO", "DEVUSER1", "20160215"),
        ("R3TR", "PROG", "YHR_REPORT", "$TMP", "DEVUSER3", "20210910"),
        ("R3TR", "CLAS", "ZCL_CUSTOMER_SYNC", "ZSD", "DEVUSER1", "20200511"),
        ("R3TR", "FUGR", "ZFG_PRICING", "ZSD", "DEVUSER2", "20181120"),
        ("R3TR", "TABL", "ZSD_ORDER_LOG", "ZSD", "DEVUSER1", "20170630"),
        ("R3TR", "TABL", "ZFI_RECON", "ZFI", "RGREEN", "20180412"),
        ("R3TR", "PROG", "RFITEMAR", "FBAS", "SAP", "20000101"),
    ],
)

_REPOSRC = _table(
    ["PROGNAME", "R3STATE", "SOURCE"],
    [
        ("ZFI_RECON", "A", "\n".join([
            "REPORT zfi_recon.",
            "SELECT * FROM bseg INTO TABLE lt_bseg WHERE bukrs = p_bukrs.",
            "SELECT * FROM bsis INTO TABLE lt_open WHERE hkont = p_hkont.",
            "SELECT * FROM glt0 INTO TABLE lt_totals.",
        ])),
        ("ZSD_ORDER_UPLOAD", "A", "\n".join([
            "REPORT zsd_order_upload.",
            "SELECT SINGLE * FROM kna1 INTO ls_kna1 WHERE kunnr = lv_kunnr.",
            "SELECT * FROM vbuk INTO TABLE lt_status WHERE vbeln IN s_vbeln.",
            "CALL FUNCTION 'BAPI_CUSTOMER_GETDETAIL2'.",
            "DATA lv_matnr TYPE c LENGTH 18.",
        ])),
        ("ZMM_LABEL_PRINT", "A", "\n".join([
            "REPORT zmm_label_print.",
            "SELECT SINGLE * FROM mara INTO ls_mara WHERE matnr = p_matnr.",
            "SELECT * FROM mkpf INTO TABLE lt_mkpf.",
        ])),
        ("ZCO_PA_REPORT", "A", "\n".join([
            "REPORT zco_pa_report.",
            "SELECT * FROM ce1idea INTO TABLE lt_ce1.",
            "SELECT * FROM cska INTO TABLE lt_cska.",
        ])),
        ("YHR_REPORT", "A", "\n".join([
            "REPORT yhr_report.",
            "SELECT * FROM pa0001 INTO TABLE lt_p0001.",
        ])),
    ],
)


# ═════════════════════════════════════════════════════════════════════════════
# Registries
# ═════════════════════════════════════════════════════════════════════════════

TABLES: dict[str, dict] = {
    "CVERS": _CVERS,
    "T000": _T000,
    "DD02L": _DD02L,
    "DD03L": _DD03L,
    "NRIV": _NRIV,
    "TNRO": _TNRO,
    "T001": _T001,
    "T003": _T003,
    "T004": _T004,
    "TBSL": _TBSL,
    "T030": _T030,
    "T007A": _T007A,
    "T005": _T005,
    "FAGL_ACTIVEC": _FAGL_ACTIVEC,
    "T881": _T881,
    "TKA01": _TKA01,
    "CSKB": _CSKB,
    "CSKS": _CSKS,
    "T001W": _T001W,
    "T001L": _T001L,
    "T156": _T156,
    "TVAK": _TVAK,
    "T683": _T683,
    "T685": _T685,
    "T003O": _T003O,
    "CRHD": _CRHD,
    "CDHDR": _CDHDR,
    "CDPOS": _CDPOS,
    "TCDOB": _TCDOB,
    "TSTC": _TSTC,
    "TBTCO": _TBTCO,
    "TBTCP": _TBTCP,
    "AGR_DEFINE": _AGR_DEFINE,
    "AGR_USERS": _AGR_USERS,
    "USR02": _USR02,
    "UST04": _UST04,
    "RFCDES": _RFCDES,
    "EDP13": _EDP13,
    "TADIR": _TADIR,
    "REPOSRC": _REPOSRC,
}

FUNCTIONS: dict[str, dict] = {
    "RFC_SYSTEM_INFO": {
        "RFCSI_EXPORT": {
            "RFCSYSID": "PRD",
            "RFCHOST": "sapprd01",
            "RFCDBSYS": "ORACLE",
            "RFCSAPRL": "750",
            "RFCKERNRL": "753",
            "RFCOPSYS": "Linux",
            "RFCDBHOST": "dbprd01",
        },
    },
    "SWNC_GET_WORKLOAD_STATISTIC": _WORKLOAD,
}
