"""
Migration pipeline — runs migration objects in dependency order.

An object whose predecessors did not reach ``load=done`` is blocked and
never started.  In dry-run every object is extracted, transformed and
validated, nothing is loaded, and predecessor gating is not applied.
An approval passed to the pipeline covers all of its loads and is consumed
once the run has written (or tried to write) anything.

Usage:
    pipeline = MigrationPipeline(dry_run=True)
    summary = pipeline.run()
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from landscape.migration.base import BLOCKED, DONE, MigrationObject
from landscape.migration.dependency_graph import DependencyGraph
from landscape.migration.load import LOAD_OPERATIONS, TargetStore
from landscape.migration.objects import MIGRATION_OBJECTS, get_migration_object
from landscape.security.tier_manager import get_tier_manager

logger = logging.getLogger(__name__)


class MigrationPipeline:
    def __init__(
        self,
        object_ids: list[str] | None = None,
        *,
        graph: DependencyGraph | None = None,
        gateway=None,
        store: TargetStore | None = None,
        dry_run: bool = False,
        target: str = "sandbox",
        user: str = "system",
        approval_id: str | None = None,
        tier_manager=None,
        source_rows: dict[str, list[dict]] | None = None,
    ) -> None:
        self.object_ids = list(object_ids) if object_ids else list(MIGRATION_OBJECTS)
        self.graph = graph or DependencyGraph()
        self.gateway = gateway
        self.store = store if store is not None else TargetStore()
        self.dry_run = dry_run
        self.target = target
        self.user = user
        self.approval_id = approval_id
        self.tier_manager = tier_manager
        # object_id -> rows that replace extraction for that object
        self.source_rows = source_rows or {}
        self.results: dict[str, dict] = {}

    def plan(self) -> dict:
        return {
            "order": self.graph.execution_order(self.object_ids),
            "waves": self.graph.waves(self.object_ids),
            "objects": [MIGRATION_OBJECTS[i].describe() for i in self.object_ids if i in MIGRATION_OBJECTS],
        }

    def _blocked_by(self, object_id: str) -> list[str]:
        return [
            dep for dep in self.graph.get_dependencies(object_id)
            if dep in self.object_ids
            and (self.results.get(dep, {}).get("phases", {}).get("load", {}).get("outcome") != DONE)
        ]

    def run(self) -> dict:
        started = datetime.now(timezone.utc)
        order = self.graph.execution_order(self.object_ids)
        self.results = {}
        attempted: list[MigrationObject] = []
        try:
            self._run_objects(order, attempted)
        finally:
            self._consume_approval(attempted)

        statuses = [r["status"] for r in self.results.values()]
        summary = {
            "startedAt": started.isoformat(),
            "completedAt": datetime.now(timezone.utc).isoformat(),
            "dryRun": self.dry_run,
            "target": self.target,
            "order": order,
            "objectCount": len(order),
            "loaded": statuses.count("loaded"),
            "validateFailed": statuses.count("validate-failed"),
            "blocked": statuses.count("blocked"),
            "denied": statuses.count("load-denied"),
            "results": [self.results[i] for i in order],
        }
        logger.info(
            "Migration pipeline done objects=%d loaded=%d failed=%d blocked=%d dry_run=%s",
            summary["objectCount"], summary["loaded"], summary["validateFailed"],
            summary["blocked"], self.dry_run,
        )
        return summary

    def _run_objects(self, order: list[str], attempted: list[MigrationObject]) -> None:
        reference_keys: dict[str, set] = {}
        for object_id in order:
            obj = get_migration_object(object_id)
            blockers = [] if self.dry_run else self._blocked_by(object_id)
            if blockers:
                self.results[object_id] = {
                    "objectId": object_id,
                    "name": obj.name,
                    "entity": obj.entity,
                    "status": "blocked",
                    "phases": {"load": {"count": 0, "durationMs": 0, "outcome": BLOCKED}},
                    "blockedBy": blockers,
                    "quality": None,
                    "reconciliation": None,
                }
                logger.warning("Migration object blocked object_id=%s blocked_by=%s", object_id, blockers)
                continue

            attempted.append(obj)
            result = obj.run(
                gateway=self.gateway,
                rows=self.source_rows.get(object_id),
                store=self.store,
                dry_run=self.dry_run,
                target=self.target,
                user=self.user,
                approval_id=self.approval_id,
                reference_keys=reference_keys,
                tier_manager=self.tier_manager,
                consume_approval=False,
            )
            self.results[object_id] = result
            if not obj.has_blocking_failures and obj.transformed_rows:
                reference_keys[object_id] = obj.key_values(obj.transformed_rows)

    def _consume_approval(self, attempted: list[MigrationObject]) -> None:
        # One approval covers every load of a single pipeline run
        operation = LOAD_OPERATIONS.get(self.target)
        if not self.approval_id or operation is None:
            return
        if any(o.status in ("loaded", "load-failed") for o in attempted):
            (self.tier_manager or get_tier_manager()).gate.consume(self.approval_id, operation)

    def completed_results(self) -> list[dict]:
        return [r for r in self.results.values() if r["status"] in ("loaded", "dry-run")]
