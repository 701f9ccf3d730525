"""
tests/test_migration.py — Migration objects, mapping, quality, dependency graph, pipeline.

Covers:
    1.  Canonical model: source families, required fields, entity validation
    2.  Field mapping engine: strategies, converters, declaration checks
    3.  Data quality checks: required, exact / fuzzy duplicates, referential, format, range
    4.  Migration object lifecycle: phases, blocking failures, dry run, denied / failed load, audit
    5.  Dependency graph: order, waves, cycles
    6.  Pipeline: dry run, sandbox load, blocked successors, approved staging load, approval reuse
"""

import pytest

from landscape.core.exceptions import FatalError, NotFoundError, ValidationError
from landscape.migration.canonical import (
    CORE_ENTITIES,
    CanonicalEntity,
    describe_mappings,
    get_mappings,
    get_source_systems,
    required_fields,
)
from landscape.migration.data_quality import (
    BLOCKING,
    PASS,
    WARNING,
    DataQualityChecker,
    check_format,
    check_range,
    check_referential,
    check_required,
    find_exact_duplicates,
    find_fuzzy_duplicates,
    similarity,
)
from landscape.migration.dependency_graph import DEPENDENCIES, DependencyGraph
from landscape.migration.field_mapping import CONVERTERS, FieldMappingEngine, validate_mappings
from landscape.migration.load import TargetStore, nest_row, reconcile
from landscape.migration.objects import (
    MIGRATION_OBJECTS,
    BomObject,
    CostCenterObject,
    ItemObject,
    get_migration_object,
)
from landscape.migration.pipeline import MigrationPipeline
from landscape.models.audit import OperationAuditEntry
from landscape.security.tier_manager import get_tier_manager


def _item_row(**overrides):
    row = {"MAKTX": "Widget", "MTART": "FERT", "MEINS": "ea", "WERKS": "1000"}
    row.update(overrides)
    return row


# ═════════════════════════════════════════════════════════════════════════════
# 1. Canonical model
# ═════════════════════════════════════════════════════════════════════════════


class TestCanonical:
    def test_five_source_families_cover_item(self):
        families = get_source_systems()
        assert len(families) == 5
        for family in families:
            targets = {m["target"] for m in get_mappings(family, "Item")}
            assert {"itemId", "description", "baseUom"} <= targets, family

    def test_every_family_covers_core_entities(self):
        for family in get_source_systems():
            for entity in CORE_ENTITIES:
                assert get_mappings(family, entity), (family, entity)

    def test_unsupported_family(self):
        with pytest.raises(ValidationError) as exc:
            get_mappings("ORACLE", "Item")
        assert exc.value.details["sourceSystem"] == "ORACLE"

    def test_required_fields(self):
        assert required_fields("Item") == ["itemId", "description", "baseUom"]

    def test_from_sap_record(self):
        item = CanonicalEntity("Item").from_source(
            "SAP", {"MATNR": "MAT00001", "MAKTX": "Pump", "MEINS": "EA", "BRGEW": "1.5"},
        )
        assert item.data["itemId"] == "MAT00001"
        assert item.data["grossWeight"] == 1.5
        assert item.validate() == {"valid": True, "errors": []}

    def test_validation_errors(self):
        entity = CanonicalEntity("Item", {"itemId": "X", "baseUom": "PIECES", "grossWeight": "heavy"})
        errors = entity.validate()["errors"]
        assert "Missing required field: description" in errors
        assert any("baseUom" in e and "max length 3" in e for e in errors)
        assert any("grossWeight" in e and "must be a number" in e for e in errors)

    def test_unknown_entity(self):
        with pytest.raises(ValidationError):
            CanonicalEntity("Spaceship")

    def test_describe_mappings(self):
        described = describe_mappings("SAP", "Item")
        assert {"source": "BRGEW", "target": "grossWeight", "converted": True} in described
        assert describe_mappings("SAP", "Spaceship") is None

    def test_item_object_canonical_view(self):
        obj = ItemObject()
        view = obj.to_canonical(obj.mock_rows())
        assert view["entity"] == "Item"
        assert view["valid"] + view["invalid"] == ItemObject.mock_size


# ═════════════════════════════════════════════════════════════════════════════
# 2. Field mapping
# ═════════════════════════════════════════════════════════════════════════════


class TestFieldMapping:
    def test_strategies(self):
        engine = FieldMappingEngine([
            {"source": "MATNR", "target": "PRODUCT"},
            {"source": "KUNNR", "target": "BP", "convert": "padLeft10"},
            {"source": "KTOKD", "target": "GROUP", "valueMap": {"KUNA": "BP01"}, "default": "BP99"},
            {"sources": ["NAME1", "NAME2"], "target": "NAME"},
            {"target": "LANGU", "default": "EN"},
            {"source": "GVTYP", "target": "TYPE", "transform": lambda v, r: "BS" if v == "X" else "PL"},
        ])
        out = engine.apply_record({
            "MATNR": "M1", "KUNNR": "42", "KTOKD": "ZZZZ", "NAME1": "Acme", "NAME2": "Corp", "GVTYP": "X",
        })
        assert out == {
            "PRODUCT": "M1", "BP": "0000000042", "GROUP": "BP99",
            "NAME": "Acme Corp", "LANGU": "EN", "TYPE": "BS",
        }

    def test_value_map_hit(self):
        engine = FieldMappingEngine([{"source": "K", "target": "T", "valueMap": {"A": "alpha"}}])
        assert engine.apply_record({"K": "A"}) == {"T": "alpha"}
        # No default keeps the raw value
        assert engine.apply_record({"K": "B"}) == {"T": "B"}

    def test_converters(self):
        assert CONVERTERS["toDate"]("20240131") == "2024-01-31"
        assert CONVERTERS["toDecimal"]("abc") == 0
        assert CONVERTERS["toInteger"](" 0010 ") == 10
        assert CONVERTERS["boolYN"]("X") is True
        assert CONVERTERS["boolTF"]("") == "F"
        assert CONVERTERS["stripLeadingZeros"]("000") == "0"
        assert CONVERTERS["padLeft10"](None) == ""

    def test_pass_through_and_stats(self):
        engine = FieldMappingEngine([{"source": "A", "target": "X"}], pass_through=True)
        assert engine.apply_batch([{"A": 1, "B": 2}]) == [{"X": 1, "B": 2}]
        assert engine.summary() == {"totalMappings": 1, "processed": 1, "mapped": 1, "unmapped": 1, "errors": 0}
        engine.reset_stats()
        assert engine.summary()["processed"] == 0

    def test_transform_error_nulls_target(self):
        engine = FieldMappingEngine([{"source": "A", "target": "X", "transform": lambda v, r: int(v)}])
        assert engine.apply_record({"A": "nope"}) == {"X": None}
        assert engine.summary()["errors"] == 1

    def test_from_legacy(self):
        assert FieldMappingEngine.from_legacy(["MATNR -> PRODUCT"]) == [{"source": "MATNR", "target": "PRODUCT"}]

    def test_validate_mappings(self):
        result = validate_mappings([
            {"source": "A"},
            {"target": "T1"},
            {"source": "B", "target": "T2", "convert": "toDate", "valueMap": {}},
            {"source": "C", "target": "T3", "convert": "noSuchThing"},
            {"source": "D", "target": "T3"},
        ])
        assert not result["valid"]
        text = "\n".join(result["errors"])
        for fragment in (
            "missing target field",
            "no source, sources, or default defined",
            "more than one of",
            "unknown converter",
            "duplicate target",
        ):
            assert fragment in text

    def test_declared_objects_are_valid(self):
        for object_id in MIGRATION_OBJECTS:
            assert get_migration_object(object_id).validate_declarations()["valid"], object_id


# ═════════════════════════════════════════════════════════════════════════════
# 3. Data quality
# ═════════════════════════════════════════════════════════════════════════════


class TestDataQuality:
    def test_required(self):
        result = check_required([{"A": "x"}, {"A": ""}], ["A"])
        assert result["severity"] == BLOCKING
        assert result["details"] == [{"row": 1, "field": "A"}]
        assert check_required([{"A": "x"}], ["A"])["severity"] == PASS

    def test_exact_duplicates_iff_same_projection(self):
        rows = [
            {"ID": "1", "PLANT": "1000", "TEXT": "a"},
            {"ID": "1", "PLANT": "2000", "TEXT": "b"},
            {"ID": "1", "PLANT": "1000", "TEXT": "c"},
        ]
        result = find_exact_duplicates(rows, ["ID", "PLANT"])
        assert result["severity"] == BLOCKING
        assert result["details"] == [{"row": 2, "duplicateOf": 0, "key": ["1", "1000"]}]
        assert find_exact_duplicates(rows, ["TEXT"])["severity"] == PASS

    def test_fuzzy_duplicates(self):
        rows = [{"NAME": "Acme Corp"}, {"NAME": "ACME CORP."}, {"NAME": "Globex"}]
        result = find_fuzzy_duplicates(rows, ["NAME"])
        assert result["severity"] == WARNING
        assert result["details"] == [{"rowA": 0, "rowB": 1, "similarity": 0.9}]
        assert find_fuzzy_duplicates(rows, ["NAME"], threshold=0.95)["severity"] == PASS

    def test_fuzzy_duplicates_per_key_set(self):
        rows = [
            {"NAME": "Acme Corp", "CITY": "Berlin", "TAX": "DE123456789"},
            {"NAME": "Globex", "CITY": "Paris", "TAX": "DE123456780"},
        ]
        report = DataQualityChecker({"fuzzyDuplicate": [
            {"keys": ["NAME", "CITY"], "threshold": 0.9},
            {"keys": ["TAX"], "threshold": 0.9},
        ]}).run(rows)
        fuzzy = [c for c in report["checks"] if c["name"] == "fuzzyDuplicate"]
        assert [(c["keys"], c["severity"]) for c in fuzzy] == [(["NAME", "CITY"], PASS), (["TAX"], WARNING)]
        assert fuzzy[1]["details"] == [{"rowA": 0, "rowB": 1, "similarity": 0.91}]
        single = DataQualityChecker({"fuzzyDuplicate": {"keys": ["TAX"], "threshold": 0.95}}).run(rows)
        assert [c["severity"] for c in single["checks"]] == [PASS]

    def test_similarity(self):
        assert similarity("abc", "abc") == 1.0
        assert similarity("", "") == 1.0
        assert similarity("abc", "xyz") == 0.0
        assert similarity("kitten", "sitting") == similarity("sitting", "kitten")

    def test_referential(self):
        result = check_referential([{"CC": "A"}, {"CC": "B"}, {"CC": ""}], "CC", {"A"})
        assert result["severity"] == BLOCKING
        assert result["details"] == [{"row": 1, "field": "CC", "value": "B"}]

    def test_format_and_range_are_warnings(self):
        fmt = check_format([{"E": "a@b.c"}, {"E": "nope"}], "E", r"^[^@]+@[^@]+$")
        assert fmt["severity"] == WARNING
        assert fmt["count"] == 1
        rng = check_range([{"Q": "5"}, {"Q": "-1"}, {"Q": "x"}, {"Q": "30"}], "Q", 0, 24)
        assert [d["reason"] for d in rng["details"]] == ["below min 0", "above max 24"]

    def test_checker_summary(self):
        checker = DataQualityChecker({
            "required": ["ID"],
            "exactDuplicate": {"keys": ["ID"]},
            "range": [{"field": "Q", "min": 0}],
        })
        report = checker.run([{"ID": "1", "Q": -1}, {"ID": "2", "Q": 3}])
        assert report["status"] == "warnings"
        assert report["totalRecords"] == 2
        assert report["blockingCount"] == 0
        assert report["warningCount"] == 1
        assert DataQualityChecker({}).run([])["status"] == "passed"


# ═════════════════════════════════════════════════════════════════════════════
# 4. Migration object lifecycle
# ═════════════════════════════════════════════════════════════════════════════


class TestMigrationObject:
    def test_registry(self):
        assert len(MIGRATION_OBJECTS) == 12
        assert set(MIGRATION_OBJECTS) == set(DEPENDENCIES)
        with pytest.raises(NotFoundError):
            get_migration_object("NOPE")

    def test_mock_sizes_declared(self):
        for object_id, cls in MIGRATION_OBJECTS.items():
            assert len(cls().mock_rows()) == cls.mock_size, object_id

    def test_missing_material_blocks_load(self):
        result = ItemObject().run(rows=[_item_row()], store=TargetStore())
        assert result["status"] == "validate-failed"
        assert result["quality"]["blockingCount"] == 1
        assert result["quality"]["blocking"][0]["name"] == "required"
        assert result["phases"]["extract"]["fed"] is True
        assert result["phases"]["validate"]["outcome"] == "failed"
        assert result["phases"]["load"]["outcome"] == "skipped"
        assert result["reconciliation"] is None

    def test_direct_load_refused_after_blocking(self):
        obj = ItemObject()
        obj.run(rows=[_item_row()], store=TargetStore())
        with pytest.raises(ValidationError):
            obj.load(obj.transformed_rows, TargetStore())

    def test_dry_run_writes_nothing(self):
        store = TargetStore()
        result = CostCenterObject().run(store=store, dry_run=True)
        assert result["status"] == "dry-run"
        assert result["phases"]["load"]["reason"] == "dry run"
        assert store.summary() == {}

    def test_sandbox_load_and_reconcile(self):
        store = TargetStore()
        result = CostCenterObject().run(store=store)
        assert result["status"] == "loaded"
        assert result["phases"]["load"]["count"] == 12
        assert result["reconciliation"]["status"] == "matched"
        first = store.rows("sandbox", "COST_CENTER")[0]
        assert first["COSTCENTER"]["ID"] == "0000004100"
        assert first["VALIDITY"]["FROM"] == "2020-01-01"

    def test_staging_load_denied_without_approval(self):
        store = TargetStore()
        result = CostCenterObject().run(store=store, target="staging")
        assert result["status"] == "load-denied"
        assert result["phases"]["load"]["outcome"] == "denied"
        assert store.count("staging", "COST_CENTER") == 0

    def test_unknown_target_rejected(self):
        obj = CostCenterObject()
        obj.run(store=TargetStore(), dry_run=True)
        with pytest.raises(ValidationError):
            obj.load(obj.transformed_rows, TargetStore(), target="moon")

    def test_referential_check_skipped_without_predecessor_keys(self):
        obj = BomObject()
        report = obj.validate(obj.transform(obj.mock_rows()))
        assert "referential" not in [c["name"] for c in report["checks"]]

    def test_referential_check_against_loaded_keys(self):
        obj = BomObject()
        rows = obj.transform(obj.mock_rows())
        report = obj.validate(rows, {"ITEM": {"not-a-product"}})
        referential = [c for c in report["checks"] if c["name"] == "referential"]
        assert len(referential) == 2
        assert all(c["severity"] == BLOCKING for c in referential)

    def test_transform_and_validate_audited(self):
        ItemObject().run(dry_run=True, user="alice")
        entries = OperationAuditEntry.query.order_by(OperationAuditEntry.sequence).all()
        assert [e.operation for e in entries] == ["migration.transform", "migration.validate"]
        assert all(e.tier == 2 and e.user == "alice" and e.status == "success" for e in entries)

    def test_load_failure_marks_object(self):
        class BrokenStore(TargetStore):
            def write_batch(self, target, object_id, rows):
                raise OSError("disk full")

        obj = CostCenterObject()
        with pytest.raises(OSError):
            obj.run(store=BrokenStore())
        assert obj.status == "load-failed"
        assert obj.phases["load"]["outcome"] == "failed"
        assert obj.phases["load"]["error"] == "disk full"
        last = OperationAuditEntry.query.order_by(OperationAuditEntry.sequence.desc()).first()
        assert (last.operation, last.status) == ("migration.load_sandbox", "failed")


class TestLoadHelpers:
    def test_nest_row(self):
        assert nest_row({"HEADER-BOM": "1", "ITEM-POS": 10, "PLAIN": "x"}) == {
            "HEADER": {"BOM": "1"}, "ITEM": {"POS": 10}, "PLAIN": "x",
        }

    def test_reconcile(self):
        assert reconcile("X", 10, 10)["status"] == "matched"
        variance = reconcile("X", 10, 8)
        assert variance["status"] == "variance"
        assert variance["variancePct"] == 20.0
        assert reconcile("X", 0, 0)["variancePct"] == 0.0


# ═════════════════════════════════════════════════════════════════════════════
# 5. Dependency graph
# ═════════════════════════════════════════════════════════════════════════════


class TestDependencyGraph:
    def test_default_order_respects_dependencies(self):
        order = DependencyGraph().execution_order()
        for object_id, deps in DEPENDENCIES.items():
            for dep in deps:
                assert order.index(dep) < order.index(object_id)

    def test_ties_follow_declaration_order(self):
        assert DependencyGraph().execution_order(["BOM", "CUSTOMER", "ITEM"]) == ["CUSTOMER", "ITEM", "BOM"]

    def test_subset_ignores_absent_dependencies(self):
        assert DependencyGraph().execution_order(["BOM"]) == ["BOM"]

    def test_waves(self):
        waves = DependencyGraph().waves(["ITEM", "COST_CENTER", "WORK_CENTER", "ROUTING"])
        assert waves == [["ITEM", "COST_CENTER"], ["WORK_CENTER"], ["ROUTING"]]

    def test_cycle_is_fatal(self):
        graph = DependencyGraph({"A": ["B"], "B": ["A"], "C": []})
        with pytest.raises(FatalError):
            graph.execution_order()
        with pytest.raises(FatalError):
            graph.waves()
        assert graph.detect_cycles()
        assert not graph.validate(["A", "B", "C"])["valid"]

    def test_validate_missing_dependency(self):
        graph = DependencyGraph({"A": ["Z"]})
        assert graph.validate(["A"])["issues"] == [{"objectId": "A", "missingDependency": "Z"}]

    def test_transitive(self):
        deps = DependencyGraph().transitive_dependencies("PRODUCTION_ORDER")
        assert set(deps) == {"ITEM", "BOM", "ROUTING", "WORK_CENTER", "COST_CENTER"}


# ═════════════════════════════════════════════════════════════════════════════
# 6. Pipeline
# ═════════════════════════════════════════════════════════════════════════════


class TestPipeline:
    def test_plan(self):
        plan = MigrationPipeline(["BOM", "ITEM"]).plan()
        assert plan["order"] == ["ITEM", "BOM"]
        assert [o["objectId"] for o in plan["objects"]] == ["BOM", "ITEM"]

    def test_dry_run_loads_nothing(self):
        store = TargetStore()
        summary = MigrationPipeline(dry_run=True, store=store).run()
        assert summary["dryRun"] is True
        assert summary["objectCount"] == len(MIGRATION_OBJECTS)
        assert summary["loaded"] == 0
        assert summary["blocked"] == 0
        assert store.summary() == {}
        for result in summary["results"]:
            if result["status"] == "dry-run":
                assert result["phases"]["load"]["outcome"] == "skipped"

    def test_sandbox_load_in_dependency_order(self):
        store = TargetStore()
        pipeline = MigrationPipeline(["WORK_CENTER", "COST_CENTER"], store=store)
        summary = pipeline.run()
        assert summary["order"] == ["COST_CENTER", "WORK_CENTER"]
        assert summary["loaded"] == 2
        assert store.count("sandbox", "WORK_CENTER") == 8
        work_center = summary["results"][1]
        assert [c["name"] for c in work_center["quality"]["checks"]].count("referential") == 1
        assert len(pipeline.completed_results()) == 2

    def test_failed_predecessor_blocks_successor(self):
        summary = MigrationPipeline(
            ["ITEM", "BOM"],
            source_rows={"ITEM": [_item_row()]},
        ).run()
        item, bom = summary["results"]
        assert item["status"] == "validate-failed"
        assert bom["status"] == "blocked"
        assert bom["blockedBy"] == ["ITEM"]
        assert bom["phases"]["load"]["outcome"] == "blocked"
        assert summary["validateFailed"] == 1
        assert summary["blocked"] == 1

    def test_staging_denied_without_approval(self):
        summary = MigrationPipeline(["COST_CENTER", "WORK_CENTER"], target="staging").run()
        assert summary["denied"] == 1
        assert summary["blocked"] == 1

    def test_staging_with_approval(self):
        manager = get_tier_manager()
        request = manager.gate.request_approval("migration.load_staging", "alice")
        manager.gate.approve(request.request_id, "bob")
        store = TargetStore()
        summary = MigrationPipeline(
            ["COST_CENTER"], target="staging", user="alice",
            approval_id=request.request_id, tier_manager=manager, store=store,
        ).run()
        assert summary["loaded"] == 1
        assert store.count("staging", "COST_CENTER") == 12
        entries = manager.op_logger.get_operation_history("migration.load_staging")
        assert entries[-1]["result"]["status"] == "success"

    def test_one_approval_covers_one_pipeline_run(self):
        manager = get_tier_manager()
        request = manager.gate.request_approval("migration.load_staging", "alice")
        manager.gate.approve(request.request_id, "bob")
        first = MigrationPipeline(
            ["COST_CENTER", "WORK_CENTER"], target="staging", user="alice",
            approval_id=request.request_id, tier_manager=manager,
        ).run()
        assert first["loaded"] == 2
        assert request.status == "consumed"
        again = MigrationPipeline(
            ["COST_CENTER"], target="staging", user="alice",
            approval_id=request.request_id, tier_manager=manager,
        ).run()
        assert again["denied"] == 1
