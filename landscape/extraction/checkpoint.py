"""
Checkpoint store — durable per-extractor progress markers.

One JSON file per extractor under ``<CHECKPOINT_DIR>/<scope>/``, where the
scope names the source system and gateway mode so a later run against the
same source picks up where a broken one stopped:

    {
      "formatVersion": 1,
      "extractorId": "CHANGE_DOCUMENTS",
      "schemaVersion": 2,
      "timestamp": "2024-01-08T10:00:00.000000+00:00",
      "payload": {"CDHDR": {"cursor": "1000", "lastOffset": 1000}}
    }

Rows of an unfinished stream are appended page by page to a sidecar
``<extractor>.<table>.rows.jsonl``; the marker only records how many of
those rows are durable.

Writes go to a sibling temp file followed by ``os.replace`` so a reader
sees either the previous marker or the new one, never a torn file.
Writes to one key are serialized; a write older than the stored one is
dropped (last-writer-wins by timestamp).
"""

from __future__ import annotations

import json
import logging
import os
import threading
from datetime import datetime, timezone
from pathlib import Path

from landscape.core.exceptions import CorruptCheckpointError

logger = logging.getLogger(__name__)

CHECKPOINT_FORMAT_VERSION = 1
_SUFFIX = ".json"
_ROWS_SUFFIX = ".rows.jsonl"


class CheckpointStore:
    """File-backed checkpoint store keyed by extractor id."""

    def __init__(self, directory: str | os.PathLike) -> None:
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)
        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()
        self._timestamps: dict[str, str] = {}

    # ── Internals ────────────────────────────────────────────────────────────

    def _lock_for(self, key: str) -> threading.Lock:
        with self._locks_guard:
            return self._locks.setdefault(key, threading.Lock())

    def _path(self, key: str) -> Path:
        if not key or "/" in key or "\\" in key or key.startswith("."):
            raise ValueError(f"Invalid checkpoint key: {key!r}")
        return self.directory / f"{key}{_SUFFIX}"

    def _rows_path(self, key: str, table: str) -> Path:
        safe = "".join(c if c.isalnum() or c in "_-" else "_" for c in table)
        return self._path(key).with_name(f"{key}.{safe}{_ROWS_SUFFIX}")

    def _drop_rows(self, key: str) -> None:
        for path in self.directory.glob(f"{key}.*{_ROWS_SUFFIX}"):
            path.unlink(missing_ok=True)

    def _read(self, key: str) -> dict | None:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            record = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise CorruptCheckpointError(key, str(exc)) from exc
        if not isinstance(record, dict) or "payload" not in record:
            raise CorruptCheckpointError(key, "record has no payload")
        return record

    # ── Public API ───────────────────────────────────────────────────────────

    def keys(self) -> list[str]:
        """Enumerate stored extractor ids without loading any contents."""
        return sorted(p.stem for p in self.directory.glob(f"*{_SUFFIX}"))

    def __contains__(self, key: str) -> bool:
        return self._path(key).exists()

    def save(
        self,
        key: str,
        payload: dict,
        *,
        schema_version: int,
        timestamp: datetime | None = None,
    ) -> bool:
        """Persist ``payload`` for ``key``.

        Returns False when a newer record already exists and this write was
        dropped.
        """
        ts = (timestamp or datetime.now(timezone.utc)).isoformat()
        record = {
            "formatVersion": CHECKPOINT_FORMAT_VERSION,
            "extractorId": key,
            "schemaVersion": int(schema_version),
            "timestamp": ts,
            "payload": payload,
        }
        path = self._path(key)
        tmp = path.with_name(f".{path.name}.{threading.get_ident()}.tmp")
        with self._lock_for(key):
            current = self._timestamps.get(key)
            if current is not None and current > ts:
                logger.debug("Checkpoint write dropped key=%s stale=%s current=%s", key, ts, current)
                return False
            tmp.write_text(json.dumps(record, sort_keys=True, default=str), encoding="utf-8")
            os.replace(tmp, path)
            self._timestamps[key] = ts
        return True

    def load(self, key: str, *, schema_version: int) -> dict | None:
        """Return the stored payload, or None.

        A record written by another schema or format version is discarded.

        Raises:
            CorruptCheckpointError: if the file exists but cannot be decoded.
        """
        with self._lock_for(key):
            record = self._read(key)
            if record is None:
                return None
            if (
                record.get("formatVersion") != CHECKPOINT_FORMAT_VERSION
                or record.get("schemaVersion") != int(schema_version)
            ):
                logger.warning(
                    "Discarding checkpoint key=%s schema=%s expected=%s format=%s",
                    key, record.get("schemaVersion"), schema_version, record.get("formatVersion"),
                )
                self._path(key).unlink(missing_ok=True)
                self._drop_rows(key)
                self._timestamps.pop(key, None)
                return None
            self._timestamps[key] = record.get("timestamp", "")
            return record["payload"]

    def clear(self, key: str) -> None:
        with self._lock_for(key):
            self._path(key).unlink(missing_ok=True)
            self._drop_rows(key)
            self._timestamps.pop(key, None)

    # ── Stream row chunks ────────────────────────────────────────────────────

    def append_rows(self, key: str, table: str, rows: list[dict]) -> None:
        """Append one page of rows for an unfinished stream."""
        path = self._rows_path(key, table)
        with self._lock_for(key), path.open("a", encoding="utf-8") as fh:
            for row in rows:
                fh.write(json.dumps(row, default=str))
                fh.write("\n")
            fh.flush()
            os.fsync(fh.fileno())

    def load_rows(self, key: str, table: str, count: int) -> list[dict] | None:
        """The first ``count`` appended rows, or None when fewer are durable.

        Rows past ``count`` belong to a page whose marker was never written;
        they are cut off so the next append continues from ``count``.
        """
        path = self._rows_path(key, table)
        rows: list[dict] = []
        with self._lock_for(key):
            if not count:
                return []
            if not path.exists():
                logger.warning("Stream rows missing key=%s table=%s need=%d", key, table, count)
                return None
            with path.open("r+b") as fh:
                for line in iter(fh.readline, b""):
                    try:
                        rows.append(json.loads(line))
                    except ValueError:
                        break
                    if len(rows) == count:
                        fh.truncate(fh.tell())
                        break
        if len(rows) < count:
            logger.warning("Stream rows short key=%s table=%s have=%d need=%d", key, table, len(rows), count)
            return None
        return rows

    def clear_rows(self, key: str, table: str) -> None:
        with self._lock_for(key):
            self._rows_path(key, table).unlink(missing_ok=True)
