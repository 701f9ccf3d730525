"""
Event-log writers for process-mining tools.

CSV: one row per event, header ``caseId,activity,timestamp,user,transactionCode``.
XES: one <trace> per case, one <event> per change document; the log's
global event attributes declare the field order.
"""

from __future__ import annotations

import csv
import io
from xml.etree import ElementTree as ET

from landscape.mining.engine import Trace

EVENT_FIELDS = ["caseId", "activity", "timestamp", "user", "transactionCode"]

_XES_KEYS = {
    "activity": "concept:name",
    "timestamp": "time:timestamp",
    "user": "org:resource",
    "transactionCode": "sap:transactionCode",
}


def events_to_csv(rows: list[dict]) -> str:
    buf = io.StringIO()
    writer = csv.DictWriter(buf, fieldnames=EVENT_FIELDS, extrasaction="ignore", lineterminator="\n")
    writer.writeheader()
    for row in rows:
        writer.writerow(row)
    return buf.getvalue()


def _attr(parent: ET.Element, kind: str, key: str, value) -> None:
    ET.SubElement(parent, kind, {"key": key, "value": "" if value is None else str(value)})


def traces_to_xes(traces: list[Trace]) -> bytes:
    log = ET.Element("log", {"xes.version": "1.0", "xes.features": "nested-attributes"})
    ET.SubElement(log, "extension", {"name": "Concept", "prefix": "concept", "uri": "http://www.xes-standard.org/concept.xesext"})
    ET.SubElement(log, "extension", {"name": "Time", "prefix": "time", "uri": "http://www.xes-standard.org/time.xesext"})
    ET.SubElement(log, "extension", {"name": "Organizational", "prefix": "org", "uri": "http://www.xes-standard.org/org.xesext"})

    trace_globals = ET.SubElement(log, "global", {"scope": "trace"})
    _attr(trace_globals, "string", "concept:name", "")
    event_globals = ET.SubElement(log, "global", {"scope": "event"})
    for field in EVENT_FIELDS[1:]:
        _attr(event_globals, "string", _XES_KEYS[field], "")

    for trace in traces:
        node = ET.SubElement(log, "trace")
        _attr(node, "string", "concept:name", trace.case_id)
        _attr(node, "string", "process", trace.process_id)
        for event in trace.events:
            ev = ET.SubElement(node, "event")
            _attr(ev, "string", "concept:name", event["activity"])
            if event.get("timestamp"):
                _attr(ev, "date", "time:timestamp", event["timestamp"])
            _attr(ev, "string", "org:resource", event.get("user"))
            _attr(ev, "string", "sap:transactionCode", event.get("transactionCode"))
            _attr(ev, "string", "sap:changeNumber", event.get("changeNumber"))

    ET.indent(log)
    return ET.tostring(log, encoding="utf-8", xml_declaration=True)
