"""
Extraction context — composition root shared by every extractor in a run.

Binds the source gateway, the checkpoint store, the coverage tracker and
an optional data dictionary to a system descriptor.  The store and the
tracker are fixed at construction; repeated reads return the same objects.

Checkpoints are scoped by source system and gateway mode, not by run, so a
run that stops mid-stream is picked up by the next run against the same
system.
"""

from __future__ import annotations

import logging
import os
import re
import threading
from collections.abc import Mapping
from dataclasses import asdict, dataclass
from typing import Any

from landscape.core.exceptions import ExtractionCancelled
from landscape.extraction.checkpoint import CheckpointStore
from landscape.extraction.coverage import CoverageTracker
from landscape.integrations.source_gateway import SourceGateway, build_source_gateway

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SystemDescriptor:
    family: str = "SAP"
    release: str | None = None
    tenant: str | None = None
    fiscal_period_from: str | None = None
    fiscal_period_to: str | None = None

    def to_dict(self) -> dict:
        data = asdict(self)
        return {
            "family": data["family"],
            "release": data["release"],
            "tenant": data["tenant"],
            "fiscalPeriodFrom": data["fiscal_period_from"],
            "fiscalPeriodTo": data["fiscal_period_to"],
        }


class DataDictionary:
    """Table → field definitions, filled by the DATA_DICTIONARY extractor."""

    def __init__(self, tables: dict[str, dict] | None = None) -> None:
        self.tables: dict[str, dict] = tables or {}

    @classmethod
    def from_rows(cls, table_rows: list[dict], field_rows: list[dict]) -> DataDictionary:
        tables: dict[str, dict] = {}
        for row in table_rows:
            tables[row["TABNAME"]] = {"tableClass": row.get("TABCLASS"), "fields": []}
        for row in field_rows:
            entry = tables.setdefault(row["TABNAME"], {"tableClass": None, "fields": []})
            entry["fields"].append({
                "name": row.get("FIELDNAME"),
                "key": row.get("KEYFLAG") == "X",
                "type": row.get("DATATYPE"),
                "length": int(row.get("LENG") or 0),
            })
        return cls(tables)

    def has_table(self, table: str) -> bool:
        return table in self.tables

    def fields(self, table: str) -> list[str]:
        return [f["name"] for f in self.tables.get(table, {}).get("fields", [])]

    def to_dict(self) -> dict:
        return {"tableCount": len(self.tables), "tables": self.tables}


class ExtractionContext:
    """Shared services for one extraction run."""

    def __init__(
        self,
        *,
        gateway: SourceGateway,
        checkpoints: CheckpointStore,
        coverage: CoverageTracker | None = None,
        system: SystemDescriptor | None = None,
        data_dictionary: DataDictionary | None = None,
        cancel_event: threading.Event | None = None,
        run_id: str | None = None,
        page_size: int = 500,
    ) -> None:
        self._gateway = gateway
        self._checkpoints = checkpoints
        self._coverage = coverage or CoverageTracker()
        self.system = system or SystemDescriptor()
        self.data_dictionary = data_dictionary
        self.cancel_event = cancel_event or threading.Event()
        self.run_id = run_id
        self.page_size = page_size
        self._results: dict[str, dict] = {}
        self._results_lock = threading.Lock()

    # ── Stable services ──────────────────────────────────────────────────────

    @property
    def gateway(self) -> SourceGateway:
        return self._gateway

    @property
    def checkpoints(self) -> CheckpointStore:
        return self._checkpoints

    @property
    def coverage(self) -> CoverageTracker:
        return self._coverage

    @property
    def mode(self) -> str:
        return self._gateway.mode

    # ── Cancellation ─────────────────────────────────────────────────────────

    def cancel(self) -> None:
        self.cancel_event.set()

    def is_cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def raise_if_cancelled(self) -> None:
        if self.cancel_event.is_set():
            raise ExtractionCancelled()

    # ── Results shared between extractors ────────────────────────────────────

    def publish_result(self, extractor_id: str, result: dict) -> None:
        with self._results_lock:
            self._results[extractor_id] = result

    def get_result(self, extractor_id: str) -> dict | None:
        with self._results_lock:
            return self._results.get(extractor_id)

    def results(self) -> dict[str, dict]:
        with self._results_lock:
            return dict(self._results)

    def set_data_dictionary(self, dictionary: DataDictionary) -> None:
        self.data_dictionary = dictionary

    def to_dict(self) -> dict:
        return {
            "runId": self.run_id,
            "mode": self.mode,
            "system": self.system.to_dict(),
            "dataDictionary": bool(self.data_dictionary),
        }


def checkpoint_scope(system: SystemDescriptor, mode: str) -> str:
    """Directory name under CHECKPOINT_DIR for one source system and mode."""
    raw = f"{system.family}-{system.tenant or 'default'}-{mode}"
    return re.sub(r"[^A-Za-z0-9_.-]", "_", raw)


def build_extraction_context(
    settings: Mapping[str, Any],
    *,
    run_id: str,
    gateway: SourceGateway | None = None,
    cancel_event: threading.Event | None = None,
) -> ExtractionContext:
    """Wire a context from Config-style settings (``app.config`` works)."""
    base_dir = settings.get("CHECKPOINT_DIR") or os.path.join("instance", "checkpoints")
    system = SystemDescriptor(
        family=settings.get("SOURCE_FAMILY") or "SAP",
        release=settings.get("SOURCE_RELEASE"),
        tenant=settings.get("SOURCE_TENANT"),
        fiscal_period_from=settings.get("FISCAL_PERIOD_FROM"),
        fiscal_period_to=settings.get("FISCAL_PERIOD_TO"),
    )
    gateway = gateway or build_source_gateway(settings)
    scope = checkpoint_scope(system, gateway.mode)
    ctx = ExtractionContext(
        gateway=gateway,
        checkpoints=CheckpointStore(os.path.join(base_dir, scope)),
        system=system,
        cancel_event=cancel_event,
        run_id=run_id,
        page_size=int(settings.get("GATEWAY_PAGE_SIZE") or 500),
    )
    logger.info("Extraction context ready run_id=%s mode=%s checkpoint_scope=%s", run_id, ctx.mode, scope)
    return ctx
