"""
Migration object lifecycle: extract → transform → validate → load.

Concrete objects declare identity as class attributes and override
``field_mappings()``, ``quality_checks()`` and ``mock_rows()``.  Each phase
records ``{count, durationMs, outcome}`` in ``self.phases``.  Transform,
validate and load run through the tier manager, so each lands in the
operation audit chain.

Status transitions:

    pending → extracted → transformed → validated → loaded
                                      ↘ validate-failed   (load never runs)
                                                  ↘ load-denied / load-failed
    dry-run: validated objects end in ``dry-run`` and nothing is written.
"""

from __future__ import annotations

import logging
import time
from typing import ClassVar

from landscape.core.exceptions import ApprovalRequiredError, FatalError, SourceError, ValidationError
from landscape.migration.canonical import CanonicalEntity
from landscape.migration.data_quality import DataQualityChecker
from landscape.migration.field_mapping import FieldMappingEngine, validate_mappings
from landscape.migration.load import LOAD_BATCH_SIZE, LOAD_OPERATIONS, TargetStore, batched, reconcile
from landscape.security.tier_manager import get_tier_manager

logger = logging.getLogger(__name__)

DONE = "done"
FAILED = "failed"
SKIPPED = "skipped"
BLOCKED = "blocked"
DENIED = "denied"


class MigrationObject:
    object_id: ClassVar[str] = ""
    name: ClassVar[str] = ""
    # Canonical entity the source rows describe, if any
    entity: ClassVar[str | None] = None
    source_table: ClassVar[str] = ""
    mock_size: ClassVar[int] = 0
    # Target field -> (object_id, key field) it must reference
    references: ClassVar[dict[str, tuple[str, str]]] = {}
    # Target field that identifies a loaded row
    key_field: ClassVar[str] = ""

    def __init__(self) -> None:
        if not self.object_id or not self.name:
            raise FatalError(f"{type(self).__name__} is missing object_id or name")
        self.status = "pending"
        self.phases: dict[str, dict] = {}
        self.quality: dict | None = None
        self.transformed_rows: list[dict] = []
        self.reconciliation: dict | None = None
        self._engine: FieldMappingEngine | None = None

    # ── Declarations (override) ──────────────────────────────────────────────

    def field_mappings(self) -> list[dict]:
        raise NotImplementedError

    def quality_checks(self) -> dict:
        return {}

    def mock_rows(self) -> list[dict]:
        return []

    # ── Helpers ──────────────────────────────────────────────────────────────

    def _record(self, phase: str, count: int, started: float, outcome: str, **extra) -> dict:
        entry = {
            "count": count,
            "durationMs": int((time.perf_counter() - started) * 1000),
            "outcome": outcome,
            **extra,
        }
        self.phases[phase] = entry
        return entry

    @property
    def has_blocking_failures(self) -> bool:
        return bool(self.quality and self.quality["blockingCount"])

    def validate_declarations(self) -> dict:
        return validate_mappings(self.field_mappings())

    # ── Phases ───────────────────────────────────────────────────────────────

    def extract(self, gateway=None) -> list[dict]:
        started = time.perf_counter()
        if gateway is not None and gateway.mode == "live":
            rows = gateway.read_table(self.source_table).rows
        else:
            rows = self.mock_rows()
            if len(rows) != self.mock_size:
                raise FatalError(f"{self.object_id} mock produced {len(rows)} rows, declared {self.mock_size}")
        self.status = "extracted"
        self._record("extract", len(rows), started, DONE)
        logger.info("Migration extract object_id=%s rows=%d", self.object_id, len(rows))
        return rows

    def transform(self, rows: list[dict], *, user: str = "system", tier_manager=None) -> list[dict]:
        tier_manager = tier_manager or get_tier_manager()
        started = time.perf_counter()
        if self._engine is None:
            self._engine = FieldMappingEngine(self.field_mappings())
        out = tier_manager.execute(
            "migration.transform", user, lambda: self._engine.apply_batch(rows),
            details={"objectId": self.object_id, "rows": len(rows)},
        )
        self.status = "transformed"
        self._record("transform", len(out), started, DONE, mapping=self._engine.summary())
        return out

    def validate(self, rows: list[dict], reference_keys: dict[str, set] | None = None, *,
                 user: str = "system", tier_manager=None) -> dict:
        tier_manager = tier_manager or get_tier_manager()
        started = time.perf_counter()
        checks = dict(self.quality_checks())
        refs = []
        for field_name, (object_id, _) in self.references.items():
            if reference_keys and object_id in reference_keys:
                refs.append({"field": field_name, "validKeys": reference_keys[object_id]})
        if refs:
            checks["referential"] = list(checks.get("referential") or []) + refs

        self.quality = tier_manager.execute(
            "migration.validate", user, lambda: DataQualityChecker(checks).run(rows),
            details={"objectId": self.object_id, "rows": len(rows)},
        )
        blocking = self.quality["blockingCount"]
        self.status = "validate-failed" if blocking else "validated"
        self._record(
            "validate", len(rows), started, FAILED if blocking else DONE,
            blocking=blocking, warnings=self.quality["warningCount"],
        )
        if blocking:
            logger.warning(
                "Migration validate failed object_id=%s blocking=%d",
                self.object_id, blocking,
            )
        return self.quality

    def load(self, rows: list[dict], store: TargetStore, *, target: str = "sandbox",
             user: str = "system", approval_id: str | None = None, tier_manager=None,
             consume_approval: bool = True) -> dict:
        if self.has_blocking_failures:
            raise ValidationError(
                f"{self.object_id} has blocking quality failures; load refused",
                details={"blocking": self.quality["blockingCount"]},
            )
        if target not in LOAD_OPERATIONS:
            raise ValidationError(f"Unknown load target: {target}", details={"targets": list(LOAD_OPERATIONS)})
        tier_manager = tier_manager or get_tier_manager()

        started = time.perf_counter()

        def _write() -> dict:
            loaded = 0
            batches = 0
            for batch in batched(rows, LOAD_BATCH_SIZE):
                loaded += store.write_batch(target, self.object_id, batch)
                batches += 1
            return {"loaded": loaded, "batches": batches}

        outcome = tier_manager.execute(
            LOAD_OPERATIONS[target], user, _write,
            details={"objectId": self.object_id, "rows": len(rows), "target": target},
            approval_id=approval_id, consume_approval=consume_approval,
        )
        self.status = "loaded"
        self._record(
            "load", outcome["loaded"], started, DONE,
            target=target, batches=outcome["batches"], batchSize=LOAD_BATCH_SIZE,
        )
        return self.phases["load"]

    # ── Canonical view ───────────────────────────────────────────────────────

    def to_canonical(self, source_rows: list[dict], source_family: str = "SAP") -> dict:
        """Map source rows onto the canonical entity and validate each."""
        if not self.entity:
            return {"entity": None, "valid": 0, "invalid": 0, "errors": []}
        valid = 0
        errors = []
        for i, row in enumerate(source_rows):
            check = CanonicalEntity(self.entity).from_source(source_family, row).validate()
            if check["valid"]:
                valid += 1
            else:
                errors.append({"row": i, "errors": check["errors"]})
        return {"entity": self.entity, "valid": valid, "invalid": len(errors), "errors": errors[:20]}

    # ── Full run ─────────────────────────────────────────────────────────────

    def run(self, *, gateway=None, rows: list[dict] | None = None, store: TargetStore | None = None,
            dry_run: bool = False, target: str = "sandbox", user: str = "system",
            approval_id: str | None = None, reference_keys: dict[str, set] | None = None,
            tier_manager=None, consume_approval: bool = True) -> dict:
        """Run every phase.  ``rows`` replaces extraction with the given source rows."""
        self.status = "pending"
        self.phases = {}
        self.quality = None
        self.transformed_rows = []
        self.reconciliation = None
        try:
            if rows is None:
                source = self.extract(gateway)
            else:
                source = list(rows)
                self._record("extract", len(source), time.perf_counter(), DONE, fed=True)
                self.status = "extracted"
        except SourceError as exc:
            self.status = "error"
            self._record("extract", 0, time.perf_counter(), FAILED, error=str(exc))
            logger.warning("Migration extract failed object_id=%s error=%s", self.object_id, exc)
            return self.result()

        transformed = self.transform(source, user=user, tier_manager=tier_manager)
        self.validate(transformed, reference_keys, user=user, tier_manager=tier_manager)
        self.transformed_rows = transformed

        if self.has_blocking_failures:
            self._record("load", 0, time.perf_counter(), SKIPPED, reason="blocking quality failures")
        elif dry_run:
            self.status = "dry-run"
            self._record("load", 0, time.perf_counter(), SKIPPED, reason="dry run")
        else:
            store = store if store is not None else TargetStore()
            started = time.perf_counter()
            try:
                self.load(transformed, store, target=target, user=user,
                          approval_id=approval_id, tier_manager=tier_manager,
                          consume_approval=consume_approval)
            except ApprovalRequiredError as exc:
                self.status = "load-denied"
                self._record("load", 0, started, DENIED, reason=exc.reason)
            except Exception as exc:
                self.status = "load-failed"
                self._record("load", 0, started, FAILED, target=target, error=str(exc))
                logger.error("Migration load failed object_id=%s target=%s error=%s", self.object_id, target, exc)
                raise
            else:
                self.reconciliation = reconcile(self.object_id, len(source), store.count(target, self.object_id))
        return self.result()

    def key_values(self, rows: list[dict]) -> set:
        return {r.get(self.key_field) for r in rows if r.get(self.key_field) not in (None, "")}

    def result(self) -> dict:
        return {
            "objectId": self.object_id,
            "name": self.name,
            "entity": self.entity,
            "status": self.status,
            "phases": dict(self.phases),
            "quality": self.quality,
            "reconciliation": self.reconciliation,
        }

    @classmethod
    def describe(cls) -> dict:
        return {
            "objectId": cls.object_id,
            "name": cls.name,
            "entity": cls.entity,
            "sourceTable": cls.source_table,
            "mockSize": cls.mock_size,
            "references": {k: list(v) for k, v in cls.references.items()},
        }
