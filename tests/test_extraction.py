"""
tests/test_extraction.py — Extraction engine: extractors, coverage, checkpoints, registry, orchestrator.

Covers:
    1.  Number-range extractor in mock mode (objects, intervals, consumption, coverage)
    2.  FI / change-document / custom-code extractors over the mock fixtures
    3.  Coverage ledger: statuses, monotonic extracted, reports, gaps, serialization
    4.  Checkpoint store: round-trip, stale writes, schema/format discard, corruption, row chunks
    5.  Streaming: mid-stream failure keeps partial rows, resume across runs of one source system
    6.  Registry: ordering, filters, replacement, freeze
    7.  Orchestrator: filters, unknown ids, bootstrap ordering, partial, cancel, cycles
    8.  Gap analyzer: categories, confidence, human-validation checklist
    9.  Mock determinism: two runs produce identical results and coverage reports
   10.  Coverage accounting: every expected table of every extractor ends extracted, failed or skipped
"""

import json
import threading
import time

import pytest

from landscape.core.exceptions import (
    CorruptCheckpointError,
    FatalExtractorError,
    TransportError,
    ValidationError,
)
from landscape.extraction.base import BaseExtractor, ExpectedTable
from landscape.extraction.checkpoint import CheckpointStore
from landscape.extraction.context import (
    DataDictionary,
    ExtractionContext,
    SystemDescriptor,
    build_extraction_context,
    checkpoint_scope,
)
from landscape.extraction.coverage import CoverageTracker
from landscape.extraction.extractors import ALL_EXTRACTORS, build_default_registry
from landscape.extraction.extractors.basis import NumberRangeExtractor, interval_consumption
from landscape.extraction.extractors.finance import FIConfigExtractor
from landscape.extraction.extractors.integration import CustomCodeExtractor
from landscape.extraction.extractors.process import ChangeDocumentExtractor
from landscape.extraction.gap_analyzer import GapAnalyzer
from landscape.extraction.orchestrator import (
    EXIT_CANCELLED,
    EXIT_OK,
    EXIT_PARTIAL,
    ExtractionOrchestrator,
)
from landscape.extraction.registry import ExtractorRegistry
from landscape.integrations.source_gateway import MockSourceGateway


# ═════════════════════════════════════════════════════════════════════════════
# Helpers
# ═════════════════════════════════════════════════════════════════════════════


def _context(tmp_path, **gateway_kw):
    return ExtractionContext(
        gateway=MockSourceGateway(**gateway_kw),
        checkpoints=CheckpointStore(tmp_path / "cp"),
        run_id="unit",
    )


class _CrashingExtractor(BaseExtractor):
    extractor_id = "CRASHING"
    module = "TEST"
    category = "advisory"
    expected_tables = (ExpectedTable("T000"),)

    def extract_live(self):
        self.read_table("T000")
        raise RuntimeError("boom")


class _UndeclaredReader(BaseExtractor):
    extractor_id = "UNDECLARED"
    module = "TEST"
    category = "advisory"
    expected_tables = (ExpectedTable("T000"),)

    def extract_live(self):
        return {"rows": self.read_table("T001")}


class _CycleA(BaseExtractor):
    extractor_id = "CYCLE_A"
    module = "TEST"
    category = "advisory"
    depends_on = ("CYCLE_B",)

    def extract_live(self):
        return {}


class _CycleB(BaseExtractor):
    extractor_id = "CYCLE_B"
    module = "TEST"
    category = "advisory"
    depends_on = ("CYCLE_A",)

    def extract_live(self):
        return {}


# ═════════════════════════════════════════════════════════════════════════════
# 1. Number ranges
# ═════════════════════════════════════════════════════════════════════════════


class TestNumberRangeExtractor:
    def test_mock_extraction(self, mock_context):
        outcome = NumberRangeExtractor(mock_context).extract()
        assert outcome.status == "completed"
        result = outcome.result
        objects = {o["object"] for o in result["objects"]}
        assert {"BKPF_BUKR", "EINKBELEG", "VERKBELEG", "MATBELEG", "DEBITOR"} <= objects
        assert len(result["intervals"]) >= 5
        assert result["consumption"]
        for entry in result["consumption"]:
            assert 0 <= entry["consumptionPct"] <= 100
        assert mock_context.coverage.report("NUMBER_RANGES")["extracted"] == 2

    def test_external_interval_has_no_consumption(self):
        assert interval_consumption({"from": "A", "to": "ZZZ", "current": "", "external": True}) is None

    def test_result_published_to_context(self, mock_context):
        NumberRangeExtractor(mock_context).extract()
        assert "intervals" in mock_context.get_result("NUMBER_RANGES")

    def test_source_failure_recorded_not_raised(self, tmp_path):
        ctx = _context(tmp_path, failures={"NRIV": "access_denied"})
        outcome = NumberRangeExtractor(ctx).extract()
        assert outcome.status == "completed_with_gaps"
        assert ctx.coverage.status("NUMBER_RANGES", "NRIV") == "failed"
        assert ctx.coverage.status("NUMBER_RANGES", "TNRO") == "extracted"
        gap = ctx.coverage.gaps()[0]
        assert gap["table"] == "NRIV"
        assert gap["kind"] == "access_denied"


# ═════════════════════════════════════════════════════════════════════════════
# 2. Other extractors
# ═════════════════════════════════════════════════════════════════════════════


class TestExtractors:
    def test_fi_company_codes(self, mock_context):
        result = FIConfigExtractor(mock_context).extract().result
        assert [c["code"] for c in result["companyCodes"]] == ["1000", "2000", "3000"]
        for key in ("documentTypes", "chartsOfAccounts", "postingKeys", "taxCodes", "ledgerConfig"):
            assert key in result

    def test_change_documents_streamed(self, tmp_path):
        ctx = _context(tmp_path, page_size=7)
        ctx.page_size = 7
        result = ChangeDocumentExtractor(ctx).extract().result
        headers = result["changeHeaders"]
        assert headers
        assert {"objectClass", "objectId", "changeNumber", "user", "date", "time", "tcode"} <= set(headers[0])
        assert result["summary"]["headerCount"] == len(headers)
        cov = ctx.coverage.entries("CHANGE_DOCUMENTS")
        cdhdr = next(e for e in cov if e["table"] == "CDHDR")
        assert cdhdr["status"] == "extracted"
        assert cdhdr["metadata"]["pages"] > 1
        assert cdhdr["metadata"]["rowCount"] == len(headers)

    def test_custom_code_sources(self, mock_context):
        result = CustomCodeExtractor(mock_context).extract().result
        recon = next(s for s in result["sources"] if s["program"] == "ZFI_RECON")
        assert "bseg" in recon["source"]

    def test_undeclared_table_is_fatal(self, mock_context):
        with pytest.raises(FatalExtractorError):
            _UndeclaredReader(mock_context).extract()

    def test_identity_validated(self):
        class _Bad(BaseExtractor):
            extractor_id = "BAD"
            module = "TEST"
            category = "nonsense"

        with pytest.raises(FatalExtractorError):
            _Bad.validate_identity()


# ═════════════════════════════════════════════════════════════════════════════
# 3. Coverage
# ═════════════════════════════════════════════════════════════════════════════


class TestCoverageTracker:
    def test_empty_report(self):
        assert CoverageTracker().report("X") == {"extracted": 0, "total": 0, "coverage": 0}

    def test_invalid_status_rejected(self):
        with pytest.raises(ValueError):
            CoverageTracker().track("X", "T", "done")

    def test_extracted_never_reverts(self):
        cov = CoverageTracker()
        cov.track("X", "T", "extracted", {"rowCount": 3}, module="M")
        cov.track("X", "T", "failed", {"reason": "late"})
        cov.track("X", "T", "extracted", {"rowCount": 2})
        assert cov.status("X", "T") == "extracted"
        assert cov.entries("X")[0]["metadata"]["rowCount"] == 5

    def test_report_counts(self):
        cov = CoverageTracker()
        cov.register_expected("X", "FI", ["A", "B", "C", "D"])
        cov.track("X", "A", "extracted")
        cov.track("X", "B", "failed", {"reason": "denied"})
        cov.track("X", "C", "skipped", {"reason": "not read"})
        report = cov.report("X")
        assert report["total"] == 4
        assert report["extracted"] + report["failed"] + report["skipped"] + report["pending"] == 4
        assert report["coverage"] == 25

    def test_gaps_sorted(self):
        cov = CoverageTracker()
        cov.register_expected("Z", "SD", ["B", "A"])
        cov.register_expected("Y", "FI", ["C"])
        gaps = cov.gaps()
        assert [(g["module"], g["extractorId"], g["table"]) for g in gaps] == [
            ("FI", "Y", "C"), ("SD", "Z", "A"), ("SD", "Z", "B"),
        ]

    def test_system_report_and_round_trip(self):
        cov = CoverageTracker()
        cov.register_expected("X", "FI", ["A", "B"])
        cov.track("X", "A", "extracted", {"rowCount": 1})
        report = cov.system_report()
        assert report["extractorCount"] == 1
        assert "FI" in report["byModule"]
        restored = CoverageTracker.from_dict(json.loads(json.dumps(cov.to_dict())))
        assert restored.to_dict() == cov.to_dict()
        assert "X.A" in cov.to_dict()


# ═════════════════════════════════════════════════════════════════════════════
# 4. Checkpoints
# ═════════════════════════════════════════════════════════════════════════════


class TestCheckpointStore:
    def test_save_and_load(self, tmp_path):
        store = CheckpointStore(tmp_path)
        assert store.save("CHANGE_DOCUMENTS", {"cursor": "10"}, schema_version=2)
        assert store.load("CHANGE_DOCUMENTS", schema_version=2) == {"cursor": "10"}
        assert "CHANGE_DOCUMENTS" in store
        assert store.keys() == ["CHANGE_DOCUMENTS"]

    def test_record_format(self, tmp_path):
        store = CheckpointStore(tmp_path)
        store.save("X", {"a": 1}, schema_version=1)
        record = json.loads((tmp_path / "X.json").read_text())
        assert record["formatVersion"] == 1
        assert record["extractorId"] == "X"
        assert record["schemaVersion"] == 1
        assert record["payload"] == {"a": 1}

    def test_stale_write_dropped(self, tmp_path):
        from datetime import datetime, timedelta, timezone

        store = CheckpointStore(tmp_path)
        now = datetime.now(timezone.utc)
        assert store.save("X", {"v": "new"}, schema_version=1, timestamp=now)
        assert store.save("X", {"v": "old"}, schema_version=1, timestamp=now - timedelta(seconds=5)) is False
        assert store.load("X", schema_version=1) == {"v": "new"}

    def test_schema_mismatch_discards(self, tmp_path):
        store = CheckpointStore(tmp_path)
        store.save("X", {"v": 1}, schema_version=1)
        assert store.load("X", schema_version=2) is None
        assert "X" not in store

    def test_corrupt_file_raises(self, tmp_path):
        store = CheckpointStore(tmp_path)
        (tmp_path / "X.json").write_text("{not json")
        with pytest.raises(CorruptCheckpointError):
            store.load("X", schema_version=1)

    def test_invalid_key(self, tmp_path):
        with pytest.raises(ValueError):
            CheckpointStore(tmp_path).save("../escape", {}, schema_version=1)

    def test_clear(self, tmp_path):
        store = CheckpointStore(tmp_path)
        store.save("X", {}, schema_version=1)
        store.clear("X")
        assert store.keys() == []

    def test_row_chunks_append_and_load(self, tmp_path):
        store = CheckpointStore(tmp_path)
        store.append_rows("CHANGE_DOCUMENTS", "CDHDR", [{"n": 1}, {"n": 2}])
        store.append_rows("CHANGE_DOCUMENTS", "CDHDR", [{"n": 3}])
        assert store.load_rows("CHANGE_DOCUMENTS", "CDHDR", 3) == [{"n": 1}, {"n": 2}, {"n": 3}]
        assert store.load_rows("CHANGE_DOCUMENTS", "CDHDR", 4) is None
        # Rows past the recorded offset are cut so appends continue from it
        assert store.load_rows("CHANGE_DOCUMENTS", "CDHDR", 2) == [{"n": 1}, {"n": 2}]
        store.append_rows("CHANGE_DOCUMENTS", "CDHDR", [{"n": 9}])
        assert store.load_rows("CHANGE_DOCUMENTS", "CDHDR", 3) == [{"n": 1}, {"n": 2}, {"n": 9}]
        assert store.load_rows("CHANGE_DOCUMENTS", "CDHDR", 0) == []
        assert store.load_rows("CHANGE_DOCUMENTS", "CDPOS", 1) is None
        assert store.keys() == []

    def test_clear_drops_row_chunks(self, tmp_path):
        store = CheckpointStore(tmp_path)
        store.save("X", {"T": {"cursor": "1", "lastOffset": 1}}, schema_version=1)
        store.append_rows("X", "T", [{"n": 1}])
        store.clear("X")
        assert list(tmp_path.iterdir()) == []


# ═════════════════════════════════════════════════════════════════════════════
# 5. Streaming with failures and resume
# ═════════════════════════════════════════════════════════════════════════════


class TestStreaming:
    def test_mid_stream_failure_keeps_partial_rows(self, tmp_path):
        ctx = _context(tmp_path, page_size=10, failures={"CDHDR": {"kind": "transport_error", "after_pages": 2}})
        ctx.page_size = 10
        outcome = ChangeDocumentExtractor(ctx).extract()
        assert outcome.status == "completed_with_gaps"
        assert len(outcome.result["changeHeaders"]) == 20
        entry = next(e for e in ctx.coverage.entries("CHANGE_DOCUMENTS") if e["table"] == "CDHDR")
        assert entry["status"] == "failed"
        assert entry["metadata"]["partial"] is True
        # Cursor of the last durable page survives for the next run
        saved = ctx.checkpoints.load("CHANGE_DOCUMENTS", schema_version=2)
        assert saved["CDHDR"]["cursor"] == "20"

    def test_resume_from_checkpoint(self, tmp_path):
        first = _context(tmp_path, page_size=10, failures={"CDHDR": {"kind": "timeout", "after_pages": 2}})
        first.page_size = 10
        ChangeDocumentExtractor(first).extract()

        second = ExtractionContext(
            gateway=MockSourceGateway(page_size=10),
            checkpoints=CheckpointStore(tmp_path / "cp"),
            run_id="unit-2",
            page_size=10,
        )
        full = ChangeDocumentExtractor(_context(tmp_path / "fresh")).extract().result
        resumed = ChangeDocumentExtractor(second).extract()
        assert resumed.status == "completed"
        assert resumed.result["changeHeaders"] == full["changeHeaders"]
        entry = next(e for e in second.coverage.entries("CHANGE_DOCUMENTS") if e["table"] == "CDHDR")
        assert entry["metadata"]["resumed"] is True
        # Successful completion clears the checkpoint
        assert "CHANGE_DOCUMENTS" not in second.checkpoints

    def test_marker_holds_cursor_not_rows(self, tmp_path):
        ctx = _context(tmp_path, page_size=10, failures={"CDHDR": {"kind": "transport_error", "after_pages": 3}})
        ctx.page_size = 10
        ChangeDocumentExtractor(ctx).extract()
        saved = ctx.checkpoints.load("CHANGE_DOCUMENTS", schema_version=2)
        assert saved["CDHDR"] == {"cursor": "30", "lastOffset": 30}
        marker = (tmp_path / "cp" / "CHANGE_DOCUMENTS.json").stat().st_size
        chunks = tmp_path / "cp" / "CHANGE_DOCUMENTS.CDHDR.rows.jsonl"
        assert len(chunks.read_text().splitlines()) == 30
        assert marker < chunks.stat().st_size

    def test_lost_row_chunks_restart_stream(self, tmp_path):
        first = _context(tmp_path, page_size=10, failures={"CDHDR": {"kind": "timeout", "after_pages": 2}})
        first.page_size = 10
        ChangeDocumentExtractor(first).extract()
        (tmp_path / "cp" / "CHANGE_DOCUMENTS.CDHDR.rows.jsonl").unlink()

        second = _context(tmp_path, page_size=10)
        second.page_size = 10
        outcome = ChangeDocumentExtractor(second).extract()
        full = ChangeDocumentExtractor(_context(tmp_path / "fresh")).extract().result
        assert outcome.result["changeHeaders"] == full["changeHeaders"]
        entry = next(e for e in second.coverage.entries("CHANGE_DOCUMENTS") if e["table"] == "CDHDR")
        assert entry["metadata"]["resumed"] is False

    def test_injected_error_instance(self, tmp_path):
        gw = MockSourceGateway()
        gw.inject_failure("T001", TransportError("link down", table="T001"))
        ctx = ExtractionContext(gateway=gw, checkpoints=CheckpointStore(tmp_path))
        FIConfigExtractor(ctx).extract()
        assert ctx.coverage.status("FI_CONFIG", "T001") == "failed"


class TestCheckpointScope:
    SETTINGS = {"GATEWAY_PAGE_SIZE": 10}

    def _settings(self, tmp_path, **extra):
        return {**self.SETTINGS, "CHECKPOINT_DIR": str(tmp_path), **extra}

    def test_scope_names_system_and_mode(self):
        assert checkpoint_scope(SystemDescriptor(tenant="100"), "mock") == "SAP-100-mock"
        assert checkpoint_scope(SystemDescriptor(), "live") == "SAP-default-live"
        assert checkpoint_scope(SystemDescriptor(tenant="a/b"), "mock") == "SAP-a_b-mock"

    def test_next_run_resumes_broken_stream(self, tmp_path):
        broken = build_extraction_context(
            self._settings(tmp_path), run_id="run-1",
            gateway=MockSourceGateway(failures={"CDHDR": {"kind": "transport_error", "after_pages": 1}}),
        )
        first = ChangeDocumentExtractor(broken).extract()
        assert first.status == "completed_with_gaps"

        again = build_extraction_context(self._settings(tmp_path), run_id="run-2", gateway=MockSourceGateway())
        second = ChangeDocumentExtractor(again).extract()
        assert second.status == "completed"
        entry = next(e for e in again.coverage.entries("CHANGE_DOCUMENTS") if e["table"] == "CDHDR")
        assert entry["metadata"]["resumed"] is True
        full = ChangeDocumentExtractor(_context(tmp_path / "fresh")).extract().result
        assert second.result["changeHeaders"] == full["changeHeaders"]
        assert "CHANGE_DOCUMENTS" not in again.checkpoints

    def test_other_tenant_starts_fresh(self, tmp_path):
        broken = build_extraction_context(
            self._settings(tmp_path, SOURCE_TENANT="100"), run_id="run-1",
            gateway=MockSourceGateway(failures={"CDHDR": {"kind": "transport_error", "after_pages": 1}}),
        )
        ChangeDocumentExtractor(broken).extract()

        other = build_extraction_context(
            self._settings(tmp_path, SOURCE_TENANT="200"), run_id="run-2", gateway=MockSourceGateway(),
        )
        ChangeDocumentExtractor(other).extract()
        entry = next(e for e in other.coverage.entries("CHANGE_DOCUMENTS") if e["table"] == "CDHDR")
        assert entry["metadata"]["resumed"] is False
        assert "CHANGE_DOCUMENTS" in broken.checkpoints


# ═════════════════════════════════════════════════════════════════════════════
# 6. Registry
# ═════════════════════════════════════════════════════════════════════════════


class TestRegistry:
    def test_default_registry(self):
        registry = build_default_registry()
        assert len(registry) == 15
        assert registry.ids() == [cls.extractor_id for cls in ALL_EXTRACTORS]
        assert registry.ids()[:2] == ["SYSTEM_INFO", "DATA_DICTIONARY"]

    def test_filters(self):
        registry = build_default_registry()
        assert [c.extractor_id for c in registry.list(modules=["FI"])] == ["FI_CONFIG"]
        process = [c.extractor_id for c in registry.list(categories=["process"])]
        assert process == ["CHANGE_DOCUMENTS", "USAGE_STATISTICS", "BATCH_JOBS"]
        assert registry.list(modules=["FI"], categories=["security"]) == []

    def test_replace_keeps_position(self):
        class _Replacement(NumberRangeExtractor):
            pass

        registry = build_default_registry()
        pos = registry.position("NUMBER_RANGES")
        registry.register(_Replacement)
        assert registry.get("NUMBER_RANGES") is _Replacement
        assert registry.position("NUMBER_RANGES") == pos
        assert len(registry) == 15

    def test_frozen_registry_rejects_register(self):
        registry = build_default_registry()
        registry.freeze()
        with pytest.raises(FatalExtractorError):
            registry.register(_CrashingExtractor)

    def test_describe(self):
        described = build_default_registry().describe()
        change = next(d for d in described if d["extractorId"] == "CHANGE_DOCUMENTS")
        assert change["schemaVersion"] == 2
        assert any(t["streamed"] for t in change["expectedTables"])


# ═════════════════════════════════════════════════════════════════════════════
# 7. Orchestrator
# ═════════════════════════════════════════════════════════════════════════════


class TestOrchestrator:
    def test_full_mock_run(self, mock_context):
        result = ExtractionOrchestrator(build_default_registry(), mock_context, concurrency=4).run()
        assert result.exit_code == EXIT_OK
        assert result.status in ("completed", "completed_with_gaps")
        assert set(result.results) == set(build_default_registry().ids())

    def test_module_filter(self, mock_context):
        result = ExtractionOrchestrator(build_default_registry(), mock_context, concurrency=2).run(modules=["FI", "CO"])
        assert set(result.outcomes) == {"FI_CONFIG", "CO_CONFIG"}

    def test_unknown_extractor_rejected(self, mock_context):
        orch = ExtractionOrchestrator(build_default_registry(), mock_context, concurrency=1)
        with pytest.raises(ValidationError) as exc:
            orch.run(extractor_ids=["NOPE"])
        assert exc.value.details == {"extractorIds": ["NOPE"]}

    def test_invalid_concurrency(self, mock_context):
        with pytest.raises(ValidationError):
            ExtractionOrchestrator(build_default_registry(), mock_context, concurrency=0)

    def test_bootstrap_runs_first(self, mock_context):
        seen = []
        orch = ExtractionOrchestrator(
            build_default_registry(), mock_context, concurrency=4,
            progress_callback=lambda p: seen.append(list(p["current"])),
        )
        orch.run(extractor_ids=["SYSTEM_INFO", "DATA_DICTIONARY", "FI_CONFIG"])
        first_batch = next(c for c in seen if c)
        assert "FI_CONFIG" not in first_batch
        assert mock_context.data_dictionary is not None

    def test_dependency_order(self):
        registry = build_default_registry()
        deps = ExtractionOrchestrator.build_dependencies(registry.list())
        assert "ROLE_ASSIGNMENTS" in deps["SECURITY"]
        assert "SYSTEM_INFO" in deps["FI_CONFIG"]
        assert deps["SYSTEM_INFO"] == set()

    def test_cycle_is_fatal(self):
        with pytest.raises(FatalExtractorError):
            ExtractionOrchestrator.build_dependencies([_CycleA, _CycleB])

    def test_crash_gives_partial(self, mock_context):
        registry = ExtractorRegistry([NumberRangeExtractor, _CrashingExtractor])
        result = ExtractionOrchestrator(registry, mock_context, concurrency=2).run()
        assert result.status == "partial"
        assert result.exit_code == EXIT_PARTIAL
        assert result.outcomes["CRASHING"].status == "failed"
        assert "NUMBER_RANGES" in result.results
        assert "CRASHING" not in result.results

    def test_fatal_error_reraised(self, mock_context):
        registry = ExtractorRegistry([_UndeclaredReader])
        with pytest.raises(FatalExtractorError):
            ExtractionOrchestrator(registry, mock_context, concurrency=1).run()

    def test_cancel_before_run(self, mock_context):
        mock_context.cancel()
        result = ExtractionOrchestrator(build_default_registry(), mock_context, concurrency=1).run()
        assert result.status == "cancelled"
        assert result.exit_code == EXIT_CANCELLED
        statuses = {e["status"] for e in mock_context.coverage.entries()}
        assert statuses == {"skipped"}

    def test_cancel_mid_run(self, tmp_path):
        gate = threading.Event()

        class _Blocking(BaseExtractor):
            extractor_id = "BLOCKING"
            module = "TEST"
            category = "advisory"
            expected_tables = (ExpectedTable("T000"), ExpectedTable("T001"))

            def extract_live(self):
                self.read_table("T000")
                gate.wait(5)
                self.read_table("T001")
                return {}

        ctx = _context(tmp_path)
        orch = ExtractionOrchestrator(ExtractorRegistry([_Blocking, NumberRangeExtractor]), ctx, concurrency=1)
        holder = {}
        worker = threading.Thread(target=lambda: holder.update(result=orch.run()))
        worker.start()
        for _ in range(500):
            if orch.progress()["current"]:
                break
            time.sleep(0.01)
        orch.cancel()
        gate.set()
        worker.join(10)
        result = holder["result"]
        assert result.exit_code == EXIT_CANCELLED
        assert ctx.coverage.status("BLOCKING", "T000") == "extracted"
        assert ctx.coverage.status("BLOCKING", "T001") == "skipped"
        assert ctx.coverage.status("NUMBER_RANGES", "NRIV") == "skipped"

    def test_progress_after_run(self, mock_context):
        orch = ExtractionOrchestrator(build_default_registry(), mock_context, concurrency=2)
        orch.run(modules=["SD"])
        progress = orch.progress()
        assert progress["running"] is False
        assert progress["completed"] == progress["total"] == 1


# ═════════════════════════════════════════════════════════════════════════════
# 8. Gap analyzer
# ═════════════════════════════════════════════════════════════════════════════


class TestGapAnalyzer:
    def _run(self, ctx):
        result = ExtractionOrchestrator(build_default_registry(), ctx, concurrency=2).run()
        modules = {eid: o.module for eid, o in result.outcomes.items()}
        return GapAnalyzer(result.results, ctx.coverage, data_dictionary=ctx.data_dictionary, modules=modules)

    def test_report_shape(self, mock_context):
        report = self._run(mock_context).analyze(interpretation_count=3, rules_evaluated=9)
        for key in ("extraction", "authorization", "dataVolume", "process", "interface",
                    "interpretation", "coverageGaps", "totalGapCount"):
            assert key in report

    def test_failures_lower_confidence(self, tmp_path):
        clean = self._run(_context(tmp_path / "a"))
        clean.analyze()
        degraded = self._run(_context(tmp_path / "b", failures={"T001": "access_denied", "CDHDR": "timeout"}))
        degraded.analyze()
        assert degraded.confidence()["score"] < clean.confidence()["score"]
        assert degraded.analyze()["totalGapCount"] > 0

    def test_human_validation_checklist(self, mock_context):
        analyzer = self._run(mock_context)
        analyzer.analyze()
        checklist = analyzer.human_validation_checklist()
        assert len(checklist) >= 7


class TestDataDictionary:
    def test_from_rows(self):
        dd = DataDictionary.from_rows(
            [{"TABNAME": "T001"}],
            [{"TABNAME": "T001", "FIELDNAME": "BUKRS"}, {"TABNAME": "T001", "FIELDNAME": "BUTXT"}],
        )
        assert dd.has_table("T001")
        assert not dd.has_table("T999")
        assert dd.fields("T001") == ["BUKRS", "BUTXT"]


# ═════════════════════════════════════════════════════════════════════════════
# 9. Determinism
# ═════════════════════════════════════════════════════════════════════════════


class TestMockDeterminism:
    def test_identical_results(self, tmp_path):
        a = ExtractionOrchestrator(build_default_registry(), _context(tmp_path / "a"), concurrency=4).run()
        b = ExtractionOrchestrator(build_default_registry(), _context(tmp_path / "b"), concurrency=1).run()
        assert json.dumps(a.results, sort_keys=True, default=str) == json.dumps(b.results, sort_keys=True, default=str)

    def test_coverage_reports_identical(self, tmp_path):
        reports = []
        for name, concurrency in (("a", 4), ("b", 1)):
            ctx = _context(tmp_path / name)
            ExtractionOrchestrator(build_default_registry(), ctx, concurrency=concurrency).run()
            reports.append(json.dumps(
                {"system": ctx.coverage.system_report(), "gaps": ctx.coverage.gaps()}, sort_keys=True,
            ))
        assert reports[0] == reports[1]


class TestCoverageAccounting:
    @pytest.mark.parametrize("failures", [
        {},
        {"CDHDR": {"kind": "transport_error", "after_pages": 1}, "T001": {"kind": "access_denied"}},
    ])
    def test_every_expected_table_accounted(self, tmp_path, failures):
        ctx = _context(tmp_path, page_size=10, failures=failures)
        ctx.page_size = 10
        registry = build_default_registry()
        ExtractionOrchestrator(registry, ctx, concurrency=2).run()
        for eid in registry.ids():
            report = ctx.coverage.report(eid)
            expected = set(registry.get(eid).expected_table_names())
            assert report["extracted"] + report["failed"] + report["skipped"] == report["total"], eid
            assert report["total"] == len(expected), eid
            assert report["pending"] == 0, eid
            assert {e["table"] for e in ctx.coverage.entries(eid)} == expected, eid

    def test_cancelled_run_accounts_every_table(self, tmp_path):
        ctx = _context(tmp_path)
        ctx.cancel()
        registry = build_default_registry()
        ExtractionOrchestrator(registry, ctx, concurrency=2).run()
        for eid in registry.ids():
            report = ctx.coverage.report(eid)
            assert report["total"] == len(set(registry.get(eid).expected_table_names())), eid
            assert report["skipped"] == report["total"], eid
