"""
Extraction orchestrator — runs the selected extractors up to K at a time.

Scheduling:
  - bootstrap extractors (system info, data dictionary) run before every
    other selected extractor
  - a declared ``depends_on`` edge is respected when both ends are selected
  - among ready extractors, registry order wins
  - a dependency cycle is a contract violation and aborts before any work

Per-extractor errors are recovered here (the run continues and ends
``partial``).  FatalError aborts the run: scheduling stops, in-flight
extractors are cancelled at their next chunk boundary, and the error is
re-raised.  Retries never happen at this layer.
"""

from __future__ import annotations

import logging
import os
import threading
import time
from collections.abc import Callable
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from datetime import datetime, timezone
from graphlib import CycleError, TopologicalSorter

from landscape.core.exceptions import FatalError, FatalExtractorError, ValidationError
from landscape.extraction.base import BaseExtractor, ExtractorOutcome
from landscape.extraction.context import ExtractionContext
from landscape.extraction.coverage import PENDING, SKIPPED
from landscape.extraction.registry import ExtractorRegistry

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_VALIDATION = 2
EXIT_CANCELLED = 3
EXIT_PARTIAL = 4
EXIT_FATAL = 5


def default_concurrency() -> int:
    return max(1, os.cpu_count() or 1)


class OrchestrationResult:
    __slots__ = ("status", "exit_code", "results", "outcomes", "started_at", "finished_at")

    def __init__(self, *, status, exit_code, results, outcomes, started_at, finished_at) -> None:
        self.status = status
        self.exit_code = exit_code
        self.results = results
        self.outcomes = outcomes
        self.started_at = started_at
        self.finished_at = finished_at

    def to_dict(self) -> dict:
        return {
            "status": self.status,
            "exitCode": self.exit_code,
            "outcomes": {eid: o.to_dict() for eid, o in self.outcomes.items()},
            "startedAt": self.started_at.isoformat(),
            "finishedAt": self.finished_at.isoformat() if self.finished_at else None,
        }


class ExtractionOrchestrator:
    def __init__(
        self,
        registry: ExtractorRegistry,
        context: ExtractionContext,
        *,
        concurrency: int | None = None,
        progress_callback: Callable[[dict], None] | None = None,
    ) -> None:
        if concurrency is not None and int(concurrency) < 1:
            raise ValidationError("concurrency must be >= 1", details={"concurrency": concurrency})
        self.registry = registry
        self.context = context
        self.concurrency = int(concurrency or default_concurrency())
        self._progress_callback = progress_callback
        self._lock = threading.Lock()
        self._progress = {"running": False, "completed": 0, "total": 0, "current": [], "startedAt": None}

    # ── Progress ─────────────────────────────────────────────────────────────

    def progress(self) -> dict:
        with self._lock:
            return dict(self._progress, current=list(self._progress["current"]))

    def _publish(self, **changes) -> None:
        with self._lock:
            self._progress.update(changes)
            snapshot = dict(self._progress, current=list(self._progress["current"]))
        if self._progress_callback:
            self._progress_callback(snapshot)

    def cancel(self) -> None:
        logger.info("Cancellation requested run_id=%s", self.context.run_id)
        self.context.cancel()

    # ── Selection & ordering ─────────────────────────────────────────────────

    def select(
        self,
        *,
        modules: list[str] | None = None,
        categories: list[str] | None = None,
        extractor_ids: list[str] | None = None,
    ) -> list[type[BaseExtractor]]:
        unknown = [eid for eid in extractor_ids or [] if eid not in self.registry]
        if unknown:
            raise ValidationError("Unknown extractor id(s)", details={"extractorIds": unknown})
        return self.registry.list(modules=modules, categories=categories, extractor_ids=extractor_ids)

    @staticmethod
    def build_dependencies(selected: list[type[BaseExtractor]]) -> dict[str, set[str]]:
        """Dependency sets restricted to the selection.  Raises on a cycle."""
        ids = {cls.extractor_id for cls in selected}
        bootstrap = {cls.extractor_id for cls in selected if cls.bootstrap}
        deps: dict[str, set[str]] = {}
        for cls in selected:
            own = {d for d in cls.depends_on if d in ids}
            skipped = [d for d in cls.depends_on if d not in ids]
            if skipped:
                logger.debug("Dependencies not selected extractor_id=%s missing=%s", cls.extractor_id, skipped)
            if not cls.bootstrap:
                own |= bootstrap
            deps[cls.extractor_id] = own
        try:
            TopologicalSorter(deps).prepare()
        except CycleError as exc:
            raise FatalExtractorError(f"Extractor dependency cycle: {' -> '.join(exc.args[1])}") from exc
        return deps

    # ── Run ──────────────────────────────────────────────────────────────────

    def run(
        self,
        *,
        modules: list[str] | None = None,
        categories: list[str] | None = None,
        extractor_ids: list[str] | None = None,
    ) -> OrchestrationResult:
        self.registry.freeze()
        selected = self.select(modules=modules, categories=categories, extractor_ids=extractor_ids)
        deps = self.build_dependencies(selected)
        order = [cls.extractor_id for cls in selected]
        classes = {cls.extractor_id: cls for cls in selected}

        started_at = datetime.now(timezone.utc)
        self._publish(running=True, completed=0, total=len(order), current=[], startedAt=started_at.isoformat())
        logger.info(
            "Extraction started run_id=%s extractors=%d concurrency=%d",
            self.context.run_id, len(order), self.concurrency,
            extra={"run_id": self.context.run_id},
        )

        pending = list(order)
        finished: set[str] = set()
        outcomes: dict[str, ExtractorOutcome] = {}
        running: dict[Future, str] = {}
        fatal: FatalError | None = None

        with ThreadPoolExecutor(max_workers=self.concurrency, thread_name_prefix="extractor") as pool:
            while pending or running:
                if not self.context.is_cancelled() and fatal is None:
                    ready = [eid for eid in pending if deps[eid] <= finished]
                    for eid in ready:
                        if len(running) >= self.concurrency:
                            break
                        pending.remove(eid)
                        running[pool.submit(self._run_one, classes[eid])] = eid
                    self._publish(current=[running[f] for f in running])
                elif pending:
                    for eid in pending:
                        self._skip_unstarted(classes[eid])
                    pending.clear()

                if not running:
                    break
                done, _ = wait(list(running), return_when=FIRST_COMPLETED)
                for fut in sorted(done, key=lambda f: order.index(running[f])):
                    eid = running.pop(fut)
                    finished.add(eid)
                    try:
                        outcomes[eid] = fut.result()
                    except FatalError as exc:
                        logger.error("Fatal extractor error extractor_id=%s reason=%s", eid, exc.reason)
                        fatal = fatal or exc
                        self.context.cancel()
                    except Exception as exc:
                        outcomes[eid] = ExtractorOutcome(
                            extractor_id=eid, module=classes[eid].module, status="failed", result={},
                            coverage=self.context.coverage.report(eid), duration_ms=0, error=str(exc),
                        )
                self._publish(completed=len(finished), current=[running[f] for f in running])

        finished_at = datetime.now(timezone.utc)
        self._publish(running=False, current=[])
        if fatal is not None:
            raise fatal

        status, exit_code = self._classify(outcomes)
        results = {
            eid: outcomes[eid].result
            for eid in order
            if eid in outcomes and outcomes[eid].status in ("completed", "completed_with_gaps")
        }
        logger.info(
            "Extraction finished run_id=%s status=%s exit_code=%d duration_ms=%d",
            self.context.run_id, status, exit_code,
            int((finished_at - started_at).total_seconds() * 1000),
            extra={"run_id": self.context.run_id},
        )
        return OrchestrationResult(
            status=status, exit_code=exit_code, results=results, outcomes=outcomes,
            started_at=started_at, finished_at=finished_at,
        )

    def _run_one(self, cls: type[BaseExtractor]) -> ExtractorOutcome:
        t0 = time.perf_counter()
        logger.debug("Extractor starting extractor_id=%s", cls.extractor_id)
        outcome = cls(self.context).extract()
        logger.debug("Extractor done extractor_id=%s elapsed=%.3fs", cls.extractor_id, time.perf_counter() - t0)
        return outcome

    def _skip_unstarted(self, cls: type[BaseExtractor]) -> None:
        coverage = self.context.coverage
        coverage.register_expected(cls.extractor_id, cls.module, cls.expected_table_names())
        for entry in coverage.entries(cls.extractor_id):
            if entry["status"] == PENDING:
                coverage.track(cls.extractor_id, entry["table"], SKIPPED, {"reason": "cancelled"})

    def _classify(self, outcomes: dict[str, ExtractorOutcome]) -> tuple[str, int]:
        statuses = [o.status for o in outcomes.values()]
        if self.context.is_cancelled():
            return "cancelled", EXIT_CANCELLED
        if "failed" in statuses:
            return "partial", EXIT_PARTIAL
        if self.context.coverage.gaps():
            return "completed_with_gaps", EXIT_OK
        return "completed", EXIT_OK
