"""
tests/test_mining.py — Process mining: classifier, reference models, engine, event logs.

Covers:
    1.  Case / activity classification, aliases, field-specific rules
    2.  Reference models: registry, construction checks, transitions, critical path, SLA units
    3.  Trace construction: ordering, dropped classes, unclassified headers
    4.  Process catalog: evidence counts, conformance, bottlenecks, SLA breaches
    5.  Event-log writers (CSV, XES)
    6.  End-to-end over the mock change documents
"""

from xml.etree import ElementTree as ET

import pytest

from landscape.extraction.extractors.process import (
    BatchJobExtractor,
    ChangeDocumentExtractor,
    UsageStatisticsExtractor,
)
from landscape.mining.classifier import classify_activity, classify_case, mapped_tcodes, normalize_tcode
from landscape.mining.engine import ProcessMiningEngine
from landscape.mining.event_log import EVENT_FIELDS, events_to_csv, traces_to_xes
from landscape.mining.reference_models import (
    REFERENCE_MODELS,
    ReferenceModel,
    all_reference_model_ids,
    get_reference_model,
    sla_hours,
)


def _header(cls, object_id, nr, tcode, date="20240102", time="090000", user="JSMITH"):
    return {
        "objectClass": cls,
        "objectId": object_id,
        "changeNumber": nr,
        "user": user,
        "date": date,
        "time": time,
        "tcode": tcode,
    }


def _item(cls, object_id, nr, field, line=0):
    return {"objectClass": cls, "objectId": object_id, "changeNumber": nr, "field": field, "line": line}


# ═════════════════════════════════════════════════════════════════════════════
# 1. Classifier
# ═════════════════════════════════════════════════════════════════════════════


class TestClassifier:
    def test_case_classes(self):
        assert classify_case("VERKBELEG") == "O2C"
        assert classify_case("sales-document") == "O2C"
        assert classify_case("EINKBELEG") == "P2P"
        assert classify_case("DEBI") is None
        assert classify_case(None) is None

    def test_plain_tcodes(self):
        assert classify_activity("O2C", "VA01") == "Create Sales Order"
        assert classify_activity("P2P", "ME21N") == "Create Purchase Order"

    def test_aliases(self):
        assert normalize_tcode("create-sales-order") == "VA01"
        assert classify_activity("O2C", "create-sales-order") == "Create Sales Order"
        assert classify_activity("P2P", "Create-Purchase-Order") == "Create Purchase Order"

    def test_field_rules_take_precedence(self):
        assert classify_activity("O2C", "VA02", {"CMGST"}) == "Credit Check"
        assert classify_activity("O2C", "VA02", {"NETWR"}) == "Change Sales Order"
        assert classify_activity("O2C", "VL02N", ["pkstk"]) == "Pack"

    def test_unknown_tcode(self):
        assert classify_activity("O2C", "ZZ99") is None
        assert classify_activity("NOPE", "VA01") is None
        # Delivery change without a known status field has no activity
        assert classify_activity("O2C", "VL02N") is None

    def test_mapped_tcodes(self):
        codes = mapped_tcodes()
        assert {"VA01", "ME21N", "FB01", "CO01"} <= codes


# ═════════════════════════════════════════════════════════════════════════════
# 2. Reference models
# ═════════════════════════════════════════════════════════════════════════════


class TestReferenceModels:
    def test_registry(self):
        assert all_reference_model_ids() == ["O2C", "P2P", "R2R", "A2R", "H2R", "P2M", "M2S"]
        assert get_reference_model("NOPE") is None

    def test_every_edge_endpoint_is_an_activity(self):
        for model in REFERENCE_MODELS.values():
            acts = set(model.activities)
            for edge in model.edges:
                assert edge["from"] in acts, (model.id, edge)
                assert edge["to"] in acts, (model.id, edge)
            assert set(model.start_activities) <= acts
            assert set(model.end_activities) <= acts

    def test_malformed_models_rejected(self):
        base = dict(
            id="T", name="Test", activities=["A", "B"],
            edges=[("A", "B", "sequence")], start_activities=["A"], end_activities=["B"],
        )
        assert ReferenceModel(**base).is_valid_transition("A", "B")
        bad = [
            {"edges": [("A", "C", "sequence")]},
            {"edges": [("A", "B", "loop")]},
            {"start_activities": []},
            {"end_activities": []},
            {"start_activities": ["Z"]},
            {"end_activities": ["B", "Y"]},
        ]
        for override in bad:
            with pytest.raises(ValueError):
                ReferenceModel(**{**base, **override})

    def test_o2c_transitions(self):
        model = get_reference_model("O2C")
        assert model.is_valid_transition("Create Sales Order", "Credit Check")
        assert not model.is_valid_transition("Clear Invoice", "Create Sales Order")
        assert "Dunning" in model.successors("Dunning")
        assert model.predecessors("Create Delivery") == ["Credit Check", "Release Order", "Create Sales Order"]
        assert not model.is_acyclic()

    def test_o2c_critical_path(self):
        path = get_reference_model("O2C").critical_path()
        assert path[0] == "Create Sales Order"
        assert path[-1] == "Clear Invoice"
        assert len(path) == len(set(path))
        model = get_reference_model("O2C")
        for a, b in zip(path, path[1:]):
            assert model.is_valid_transition(a, b)

    def test_critical_paths_span_start_to_end(self):
        for model in REFERENCE_MODELS.values():
            path = model.critical_path()
            assert path, model.id
            assert model.is_start_activity(path[0])
            assert model.is_end_activity(path[-1])

    def test_sla_units(self):
        assert sla_hours({"target": 2, "unit": "hours"}) == 2.0
        assert sla_hours({"target": 3, "unit": "days"}) == 72.0
        assert sla_hours({"target": 1, "unit": "weeks"}) == 168.0
        assert get_reference_model("O2C").sla_target("Create Sales Order", "Create Delivery")["unit"] == "days"

    def test_to_dict(self):
        data = get_reference_model("P2P").to_dict()
        assert data["id"] == "P2P"
        assert data["startActivities"]
        assert all(set(e) == {"from", "to", "type"} for e in data["edges"])


# ═════════════════════════════════════════════════════════════════════════════
# 3. Trace construction
# ═════════════════════════════════════════════════════════════════════════════


class TestTraces:
    def test_events_ordered_by_time(self):
        headers = [
            _header("VERKBELEG", "1", "0003", "VL01N", date="20240103"),
            _header("VERKBELEG", "1", "0001", "VA01", date="20240101"),
            _header("VERKBELEG", "1", "0002", "VA02", date="20240101", time="120000"),
        ]
        items = [_item("VERKBELEG", "1", "0002", "CMGST")]
        traces = ProcessMiningEngine(headers, items).build_traces()
        assert len(traces) == 1
        assert traces[0].case_id == "VERKBELEG/1"
        assert traces[0].activities == ["Create Sales Order", "Credit Check", "Create Delivery"]

    def test_same_timestamp_ordered_by_change_number(self):
        headers = [
            _header("VERKBELEG", "1", "0002", "VL01N"),
            _header("VERKBELEG", "1", "0001", "VA01"),
        ]
        trace = ProcessMiningEngine(headers).build_traces()[0]
        assert [e["changeNumber"] for e in trace.events] == ["0001", "0002"]

    def test_traces_sorted_by_process_then_case(self):
        headers = [
            _header("EINKBELEG", "9", "0001", "ME21N"),
            _header("VERKBELEG", "2", "0002", "VA01"),
            _header("VERKBELEG", "1", "0003", "VA01"),
        ]
        traces = ProcessMiningEngine(headers).build_traces()
        assert [(t.process_id, t.case_id) for t in traces] == [
            ("O2C", "VERKBELEG/1"), ("O2C", "VERKBELEG/2"), ("P2P", "EINKBELEG/9"),
        ]

    def test_unknown_class_dropped(self):
        headers = [
            _header("DEBI", "C1", "0001", "XD01"),
            _header("DEBI", "C1", "0002", "XD02"),
            _header("DEBI", "C2", "0003", "XD02"),
        ]
        engine = ProcessMiningEngine(headers)
        assert engine.build_traces() == []
        assert engine.dropped_cases == {"DEBI": 2}

    def test_unclassified_headers_recorded(self):
        headers = [
            _header("VERKBELEG", "1", "0001", "VA01"),
            _header("VERKBELEG", "1", "0002", "ZZ99"),
        ]
        engine = ProcessMiningEngine(headers)
        traces = engine.build_traces()
        assert traces[0].activities == ["Create Sales Order"]
        assert engine.unclassified == [{
            "caseId": "VERKBELEG/1", "process": "O2C", "transactionCode": "ZZ99", "changeNumber": "0002",
        }]

    def test_deterministic(self):
        headers = [
            _header("VERKBELEG", "1", "0002", "VL01N", date="20240103"),
            _header("VERKBELEG", "1", "0001", "VA01"),
            _header("EINKBELEG", "2", "0003", "ME21N"),
        ]
        first = [t.to_dict() for t in ProcessMiningEngine(list(headers)).build_traces()]
        second = [t.to_dict() for t in ProcessMiningEngine(list(reversed(headers))).build_traces()]
        assert first == second


# ═════════════════════════════════════════════════════════════════════════════
# 4. Process catalog
# ═════════════════════════════════════════════════════════════════════════════


class TestCatalog:
    def test_descriptive_export_discovers_o2c_and_p2p(self):
        headers = [
            _header("sales-document", "500001", "001", "create-sales-order"),
            _header("purchasing-document", "450001", "001", "create-purchase-order"),
        ]
        catalog = ProcessMiningEngine(headers).analyze()
        by_id = {p["id"]: p for p in catalog["processes"]}
        assert set(by_id) == {"O2C", "P2P"}
        for proc in by_id.values():
            assert proc["evidenceCounts"]["cases"] >= 1
            assert proc["conformance"]["violations"] == []
            assert proc["conformance"]["rate"] == 1.0
        assert by_id["O2C"]["category"] == "core"

    def test_conformance_violation(self):
        headers = [
            _header("VERKBELEG", "1", "0001", "VA01", date="20240101"),
            _header("VERKBELEG", "1", "0002", "VF01", date="20240102"),
        ]
        proc = ProcessMiningEngine(headers).analyze()["processes"][0]
        assert proc["conformance"]["violations"] == [{
            "caseId": "VERKBELEG/1", "from": "Create Sales Order", "to": "Create Invoice", "eventIndex": 1,
        }]
        assert proc["conformance"]["conformantCases"] == 0

    def test_bottleneck_and_sla_breach(self):
        headers = [
            _header("VERKBELEG", "1", "0001", "VA01", date="20240101"),
            _header("VERKBELEG", "1", "0002", "VL01N", date="20240106"),
        ]
        proc = ProcessMiningEngine(headers).analyze()["processes"][0]
        assert proc["bottleneckTransitions"] == [{
            "from": "Create Sales Order", "to": "Create Delivery", "medianHours": 120.0, "slaTargetHours": 72.0,
        }]
        assert proc["slaBreaches"] == [{
            "caseId": "VERKBELEG/1",
            "transition": "Create Sales Order -> Create Delivery",
            "elapsedHours": 120.0,
            "targetHours": 72.0,
            "severity": "warning",
        }]

    def test_within_sla_is_not_a_bottleneck(self):
        headers = [
            _header("VERKBELEG", "1", "0001", "VA01", date="20240101"),
            _header("VERKBELEG", "1", "0002", "VL01N", date="20240102"),
        ]
        proc = ProcessMiningEngine(headers).analyze()["processes"][0]
        assert proc["bottleneckTransitions"] == []
        assert proc["slaBreaches"] == []
        assert proc["transitions"][0]["medianHours"] == 24.0

    def test_variants_ranked(self):
        headers = [
            _header("VERKBELEG", "1", "0001", "VA01"),
            _header("VERKBELEG", "2", "0002", "VA01"),
            _header("VERKBELEG", "3", "0003", "VA01"),
            _header("VERKBELEG", "3", "0004", "VL01N", date="20240103"),
        ]
        proc = ProcessMiningEngine(headers).analyze()["processes"][0]
        assert [v["caseCount"] for v in proc["topVariants"]] == [2, 1]
        assert proc["topVariants"][0]["sequence"] == "Create Sales Order"

    def test_usage_evidence(self):
        headers = [_header("VERKBELEG", "1", "0001", "VA01")]
        usage = [
            {"tcode": "VA01", "executions": 40},
            {"tcode": "ZSD_REPORT", "executions": 500, "users": 3},
            {"tcode": "ME21N", "executions": 0},
            {"tcode": "FB01", "executions": 12},
        ]
        catalog = ProcessMiningEngine(headers, usage=usage).analyze()
        assert catalog["processes"][0]["evidenceCounts"]["transactionExecutions"] == 40
        assert catalog["customTransactions"] == [{"tcode": "ZSD_REPORT", "executions": 500, "users": 3}]
        unused = {u["tcode"] for u in catalog["unusedTransactions"]}
        assert unused == {"ZSD_REPORT", "FB01"}

    def test_markdown(self):
        engine = ProcessMiningEngine([_header("VERKBELEG", "1", "0001", "VA01")])
        md = engine.to_markdown()
        assert md.startswith("# Process Catalog")
        assert "O2C" in md


# ═════════════════════════════════════════════════════════════════════════════
# 5. Event logs
# ═════════════════════════════════════════════════════════════════════════════


class TestEventLog:
    def _engine(self):
        return ProcessMiningEngine([
            _header("VERKBELEG", "1", "0001", "VA01", date="20240101"),
            _header("VERKBELEG", "1", "0002", "VL01N", date="20240102", user="MBROWN"),
        ])

    def test_csv(self):
        text = events_to_csv(self._engine().event_rows())
        lines = text.splitlines()
        assert lines[0] == ",".join(EVENT_FIELDS)
        assert lines[1] == "VERKBELEG/1,Create Sales Order,2024-01-01T09:00:00,JSMITH,VA01"
        assert len(lines) == 3

    def test_xes(self):
        engine = self._engine()
        data = traces_to_xes(engine.build_traces())
        assert data.startswith(b"<?xml")
        root = ET.fromstring(data)
        assert root.tag == "log"
        traces = root.findall("trace")
        assert len(traces) == 1
        events = traces[0].findall("event")
        names = [
            next(a.get("value") for a in ev if a.get("key") == "concept:name")
            for ev in events
        ]
        assert names == ["Create Sales Order", "Create Delivery"]


# ═════════════════════════════════════════════════════════════════════════════
# 6. Mock landscape end-to-end
# ═════════════════════════════════════════════════════════════════════════════


class TestMockLandscape:
    def _results(self, ctx):
        return {
            "CHANGE_DOCUMENTS": ChangeDocumentExtractor(ctx).extract().result,
            "USAGE_STATISTICS": UsageStatisticsExtractor(ctx).extract().result,
            "BATCH_JOBS": BatchJobExtractor(ctx).extract().result,
        }

    def test_catalog_from_mock(self, mock_context):
        engine = ProcessMiningEngine.from_results(self._results(mock_context))
        catalog = engine.analyze()
        ids = [p["id"] for p in catalog["processes"]]
        assert {"O2C", "P2P", "R2R"} <= set(ids)
        assert ids == [m for m in REFERENCE_MODELS if m in ids]
        assert catalog["droppedCases"]["count"] >= 1
        assert "DEBI" in catalog["droppedCases"]["byClass"]

    def test_happy_path_order_conformant(self, mock_context):
        engine = ProcessMiningEngine.from_results(self._results(mock_context))
        engine.build_traces()
        trace = next(t for t in engine.traces if t.case_id == "VERKBELEG/0000500001")
        assert trace.activities == [
            "Create Sales Order", "Credit Check", "Create Delivery", "Pick", "Pack",
            "Goods Issue", "Create Invoice", "Send Invoice", "Payment Received", "Clear Invoice",
        ]
        assert engine.check_conformance(trace) == []
