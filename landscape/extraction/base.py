"""
Base extractor — lifecycle, coverage tracking and error isolation.

A concrete extractor declares its identity and expected tables as class
attributes and implements ``extract_live``.  ``extract_mock`` defaults to
the live path because the mock gateway serves the same table contract.

Lifecycle of ``extract()``:
    1. register every expected table as ``pending``
    2. run the live or mock path; table reads go through ``read_table`` /
       ``stream_table`` which record extracted/failed per table and never
       raise on source errors
    3. cancellation at a chunk boundary marks the untouched tables
       ``skipped (cancelled)``
    4. tables never read are marked ``skipped (not read)``
    5. return an ExtractorOutcome with the result and a coverage snapshot
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, ClassVar

from landscape.core.exceptions import (
    ExtractionCancelled,
    FatalError,
    FatalExtractorError,
    SourceError,
)
from landscape.extraction.coverage import EXTRACTED, FAILED, PENDING, SKIPPED

logger = logging.getLogger(__name__)

CATEGORIES = ("config", "masterdata", "transaction", "process", "security", "code", "advisory")


@dataclass(frozen=True)
class ExpectedTable:
    name: str
    description: str = ""
    critical: bool = False
    streamed: bool = False

    def to_dict(self) -> dict:
        return {
            "tableName": self.name,
            "description": self.description,
            "critical": self.critical,
            "streamed": self.streamed,
        }


class ExtractorOutcome:
    """What one extractor produced in one run."""

    __slots__ = ("extractor_id", "module", "status", "result", "coverage", "duration_ms", "error")

    def __init__(
        self,
        *,
        extractor_id: str,
        module: str,
        status: str,
        result: dict,
        coverage: dict,
        duration_ms: int,
        error: str | None = None,
    ) -> None:
        self.extractor_id = extractor_id
        self.module = module
        self.status = status
        self.result = result
        self.coverage = coverage
        self.duration_ms = duration_ms
        self.error = error

    def to_dict(self) -> dict:
        return {
            "extractorId": self.extractor_id,
            "module": self.module,
            "status": self.status,
            "coverage": self.coverage,
            "durationMs": self.duration_ms,
            "error": self.error,
        }


class BaseExtractor:
    extractor_id: ClassVar[str] = ""
    module: ClassVar[str] = ""
    category: ClassVar[str] = ""
    display_name: ClassVar[str] = ""
    expected_tables: ClassVar[tuple[ExpectedTable, ...]] = ()
    depends_on: ClassVar[tuple[str, ...]] = ()
    schema_version: ClassVar[int] = 1
    # Bootstrap extractors run before all others in the same run
    bootstrap: ClassVar[bool] = False

    def __init__(self, context) -> None:
        self.validate_identity()
        self.context = context
        self.remote_errors: list[dict] = []
        self._checkpoint: dict = {}

    # ── Identity ─────────────────────────────────────────────────────────────

    @classmethod
    def validate_identity(cls) -> None:
        missing = [a for a in ("extractor_id", "module", "category") if not getattr(cls, a, "")]
        if missing:
            raise FatalExtractorError(f"{cls.__name__} is missing identity attributes: {', '.join(missing)}")
        if cls.category not in CATEGORIES:
            raise FatalExtractorError(f"{cls.extractor_id}: unknown category {cls.category!r}")
        names = [t.name for t in cls.expected_tables]
        if len(names) != len(set(names)):
            raise FatalExtractorError(f"{cls.extractor_id}: duplicate expected table")

    @classmethod
    def identity(cls) -> dict:
        return {
            "extractorId": cls.extractor_id,
            "module": cls.module,
            "category": cls.category,
            "displayName": cls.display_name or cls.extractor_id,
        }

    @classmethod
    def describe(cls) -> dict:
        data = cls.identity()
        data["expectedTables"] = [t.to_dict() for t in cls.expected_tables]
        data["dependsOn"] = list(cls.depends_on)
        data["schemaVersion"] = cls.schema_version
        return data

    @classmethod
    def expected_table_names(cls) -> list[str]:
        return [t.name for t in cls.expected_tables]

    # ── Paths (override) ─────────────────────────────────────────────────────

    def extract_live(self) -> dict:
        raise NotImplementedError

    def extract_mock(self) -> dict:
        return self.extract_live()

    # ── Lifecycle ────────────────────────────────────────────────────────────

    def extract(self) -> ExtractorOutcome:
        ctx = self.context
        eid = self.extractor_id
        ctx.coverage.register_expected(eid, self.module, self.expected_table_names())
        self._checkpoint = ctx.checkpoints.load(eid, schema_version=self.schema_version) or {}
        t0 = time.perf_counter()
        status = "completed"
        result: dict = {}
        try:
            ctx.raise_if_cancelled()
            result = self.extract_live() if ctx.mode == "live" else self.extract_mock()
        except ExtractionCancelled:
            status = "cancelled"
            self._mark_untouched(SKIPPED, "cancelled")
            logger.info("Extractor cancelled extractor_id=%s", eid)
        except FatalError:
            raise
        except Exception as exc:
            self._mark_untouched(FAILED, f"extractor error: {exc}")
            logger.exception("Extractor crashed extractor_id=%s", eid)
            raise
        else:
            self._mark_untouched(SKIPPED, "not read")
            # Streams that broke off keep their cursor for the next attempt
            if self._checkpoint:
                ctx.checkpoints.save(eid, self._checkpoint, schema_version=self.schema_version)
            else:
                ctx.checkpoints.clear(eid)
            if any(e["status"] == FAILED for e in ctx.coverage.entries(eid)):
                status = "completed_with_gaps"

        duration_ms = int((time.perf_counter() - t0) * 1000)
        if status != "cancelled":
            ctx.publish_result(eid, result)
        report = ctx.coverage.report(eid)
        logger.info(
            "Extractor finished extractor_id=%s status=%s coverage=%s",
            eid, status, report.get("coverage"),
            extra={"extractor_id": eid, "duration_ms": duration_ms},
        )
        return ExtractorOutcome(
            extractor_id=eid, module=self.module, status=status, result=result,
            coverage=report, duration_ms=duration_ms,
        )

    def _mark_untouched(self, status: str, reason: str) -> None:
        for entry in self.context.coverage.entries(self.extractor_id):
            if entry["status"] == PENDING:
                self.context.coverage.track(self.extractor_id, entry["table"], status, {"reason": reason})

    def _require_declared(self, table: str) -> None:
        if table not in self.expected_table_names():
            raise FatalExtractorError(f"{self.extractor_id} read undeclared table {table}")

    def _record_failure(self, table: str, exc: SourceError, **extra: Any) -> None:
        meta = {"reason": exc.reason, "kind": exc.kind}
        meta.update(extra)
        self.context.coverage.track(self.extractor_id, table, FAILED, meta, module=self.module)
        logger.warning(
            "Table read failed extractor_id=%s table=%s kind=%s reason=%s",
            self.extractor_id, table, exc.kind, exc.reason,
            extra={"extractor_id": self.extractor_id, "table": table},
        )

    # ── Table helpers ────────────────────────────────────────────────────────

    def table_ok(self, table: str) -> bool:
        return self.context.coverage.status(self.extractor_id, table) == EXTRACTED

    def read_table(
        self,
        table: str,
        *,
        fields: list[str] | None = None,
        where: dict | None = None,
        max_rows: int | None = None,
    ) -> list[dict]:
        """Bounded read.  Returns [] and records ``failed`` on any source error."""
        self._require_declared(table)
        self.context.raise_if_cancelled()
        try:
            res = self.context.gateway.read_table(table, fields=fields, where=where, max_rows=max_rows)
        except SourceError as exc:
            self._record_failure(table, exc)
            return []
        self.context.coverage.track(
            self.extractor_id, table, EXTRACTED,
            {"rowCount": len(res.rows), "columns": len(res.columns), "durationMs": res.duration_ms},
            module=self.module,
        )
        return res.rows

    def stream_table(
        self,
        table: str,
        *,
        fields: list[str] | None = None,
        where: dict | None = None,
        page_size: int | None = None,
    ) -> list[dict]:
        """Paged read with checkpoint resume.

        The checkpoint holds the cursor after the last durable page and the
        row count behind it; the rows themselves are appended per page to the
        store's row chunks.  Cancellation is observed before each page.  A
        source error mid-stream keeps the rows already read and records the
        table as ``failed`` with ``partial=True``.
        """
        self._require_declared(table)
        self.context.raise_if_cancelled()
        state = self._checkpoint.get(table) or {}
        store = self.context.checkpoints
        cursor = state.get("cursor")
        rows: list[dict] = []
        if cursor:
            restored = store.load_rows(self.extractor_id, table, int(state.get("lastOffset") or 0))
            if restored is None:
                cursor = None
            else:
                rows = restored
                logger.info("Resuming stream extractor_id=%s table=%s offset=%d",
                            self.extractor_id, table, len(rows))
        if not cursor:
            store.clear_rows(self.extractor_id, table)
        pages = 0
        try:
            stream = self.context.gateway.stream_table(
                table, fields=fields, where=where,
                page_size=page_size or self.context.page_size, cursor=cursor,
            )
            for page in stream:
                rows.extend(page.rows)
                pages += 1
                if page.cursor is None:
                    break
                self._save_stream_state(table, page.cursor, page.rows, len(rows))
                self.context.raise_if_cancelled()
        except SourceError as exc:
            self._record_failure(table, exc, rowCount=len(rows), pages=pages, partial=bool(rows))
            return rows
        self._checkpoint.pop(table, None)
        store.clear_rows(self.extractor_id, table)
        self.context.coverage.track(
            self.extractor_id, table, EXTRACTED,
            {"rowCount": len(rows), "pages": pages, "resumed": bool(cursor)},
            module=self.module,
        )
        return rows

    def _save_stream_state(self, table: str, cursor: str, page_rows: list[dict], offset: int) -> None:
        self.context.checkpoints.append_rows(self.extractor_id, table, page_rows)
        self._checkpoint[table] = {"cursor": cursor, "lastOffset": offset}
        self.context.checkpoints.save(self.extractor_id, self._checkpoint, schema_version=self.schema_version)

    def invoke_remote(self, name: str, args: dict | None = None) -> dict | None:
        """Remote call.  Returns None and remembers the error on failure."""
        self.context.raise_if_cancelled()
        try:
            return self.context.gateway.invoke_remote(name, args)
        except SourceError as exc:
            self.remote_errors.append({"function": name, "kind": exc.kind, "reason": exc.reason})
            logger.warning(
                "Remote call failed extractor_id=%s function=%s kind=%s",
                self.extractor_id, name, exc.kind,
            )
            return None
