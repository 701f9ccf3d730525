"""
Declarative field mapping engine.

A mapping declaration turns one source record into one target record.
Each declaration applies exactly one strategy:

    simple         {"source": "MATNR", "target": "PRODUCT"}
    convert        {"source": "KUNNR", "target": "BP-ID", "convert": "padLeft10"}
    valueMap       {"source": "KTOKD", "target": "GROUPING", "valueMap": {...}, "default": "BP01"}
    transform      {"source": "GVTYP", "target": "TYPE", "transform": fn(value, record)}
    concatenation  {"sources": ["NAME1", "NAME2"], "target": "NAME", "separator": " "}
    default        {"target": "LANGU", "default": "EN"}   # default may be fn(record)

Target keys may be field paths such as ``HEADER-BUKRS`` so a transformed
row can be grouped into header / item shapes downstream.
"""

from __future__ import annotations

import logging
import re

logger = logging.getLogger(__name__)

_MISSING = object()


def _text(v) -> str:
    return "" if v is None else str(v)


def _to_date(v):
    if not v:
        return None
    digits = re.sub(r"[^0-9]", "", str(v))
    if len(digits) == 8:
        return f"{digits[:4]}-{digits[4:6]}-{digits[6:]}"
    return str(v)


def _to_decimal(v):
    if v is None or v == "":
        return 0
    try:
        return float(v)
    except (TypeError, ValueError):
        return 0


def _to_integer(v):
    if v is None or v == "":
        return 0
    try:
        return int(str(v).strip())
    except ValueError:
        return 0


def _truthy_flag(v) -> bool:
    return v in ("Y", "X", True, 1)


CONVERTERS = {
    "padLeft10": lambda v, record=None: _text(v).rjust(10, "0") if v is not None else "",
    "padLeft40": lambda v, record=None: _text(v).rjust(40, "0") if v is not None else "",
    "toUpperCase": lambda v, record=None: _text(v).upper(),
    "toLowerCase": lambda v, record=None: _text(v).lower(),
    "toDate": lambda v, record=None: _to_date(v),
    "toDecimal": lambda v, record=None: _to_decimal(v),
    "toInteger": lambda v, record=None: _to_integer(v),
    "boolYN": lambda v, record=None: _truthy_flag(v),
    "boolTF": lambda v, record=None: "T" if _truthy_flag(v) else "F",
    "stripLeadingZeros": lambda v, record=None: (_text(v).lstrip("0") or "0") if v is not None else "",
    "trim": lambda v, record=None: _text(v).strip(),
}

_STRATEGY_KEYS = ("valueMap", "convert", "transform")


def validate_mappings(mappings: list[dict]) -> dict:
    """Check declarations for common errors.

    Returns ``{"valid": bool, "errors": [..]}``.
    """
    errors = []
    targets: set[str] = set()
    for i, m in enumerate(mappings):
        target = m.get("target")
        if not target:
            errors.append(f"Mapping[{i}]: missing target field")
        if not m.get("source") and not m.get("sources") and "default" not in m:
            errors.append(f"Mapping[{i}]: no source, sources, or default defined")
        strategies = [k for k in _STRATEGY_KEYS if m.get(k) is not None]
        if len(strategies) > 1:
            errors.append(f"Mapping[{i}]: more than one of {', '.join(strategies)}")
        convert = m.get("convert")
        if isinstance(convert, str) and convert not in CONVERTERS:
            errors.append(f"Mapping[{i}]: unknown converter '{convert}'")
        if target and target in targets:
            errors.append(f"Mapping[{i}]: duplicate target '{target}'")
        if target:
            targets.add(target)
    return {"valid": not errors, "errors": errors}


class FieldMappingEngine:
    def __init__(self, mappings: list[dict], *, pass_through: bool = False) -> None:
        self.mappings = mappings
        self.pass_through = pass_through
        self._stats = {"processed": 0, "mapped": 0, "unmapped": 0, "errors": 0}

    @staticmethod
    def from_legacy(strings: list[str]) -> list[dict]:
        """Turn ``"SOURCE->TARGET"`` strings into simple declarations."""
        out = []
        for s in strings:
            source, target = (p.strip() for p in s.split("->", 1))
            out.append({"source": source, "target": target})
        return out

    def _apply_one(self, m: dict, record: dict):
        source = m.get("source")
        if m.get("sources"):
            sep = m.get("separator")
            parts = [_text(record.get(s)) for s in m["sources"]]
            return (" " if sep is None else sep).join(parts)
        if source and m.get("valueMap") is not None:
            raw = record.get(source)
            mapped = m["valueMap"].get(raw, _MISSING)
            if mapped is _MISSING or mapped is None:
                default = m.get("default")
                return raw if default is None else default
            return mapped
        if source and m.get("convert") is not None:
            convert = m["convert"]
            fn = convert if callable(convert) else CONVERTERS.get(convert)
            if fn is None:
                logger.warning("Unknown converter name=%s target=%s", convert, m.get("target"))
                return record.get(source)
            return fn(record.get(source), record)
        if source and m.get("transform") is not None:
            return m["transform"](record.get(source), record)
        if not source and "default" in m:
            default = m["default"]
            return default(record) if callable(default) else default
        return record.get(source)

    def apply_record(self, record: dict) -> dict:
        target: dict = {}
        used_sources: set[str] = set()
        for m in self.mappings:
            if m.get("source"):
                used_sources.add(m["source"])
            used_sources.update(m.get("sources") or ())
            try:
                target[m["target"]] = self._apply_one(m, record)
                self._stats["mapped"] += 1
            except (TypeError, ValueError, KeyError, AttributeError) as exc:
                self._stats["errors"] += 1
                logger.warning("Mapping error field=%s error=%s", m.get("source") or m.get("target"), exc)
                if m.get("target"):
                    target[m["target"]] = None

        if self.pass_through:
            for key, value in record.items():
                if key not in used_sources and key not in target:
                    target[key] = value
                    self._stats["unmapped"] += 1

        self._stats["processed"] += 1
        return target

    def apply_batch(self, records: list[dict]) -> list[dict]:
        return [self.apply_record(r) for r in records]

    def validate(self) -> dict:
        return validate_mappings(self.mappings)

    def summary(self) -> dict:
        return {"totalMappings": len(self.mappings), **self._stats}

    def reset_stats(self) -> None:
        self._stats = {"processed": 0, "mapped": 0, "unmapped": 0, "errors": 0}
