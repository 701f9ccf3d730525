"""Source gateway — the only path from the analyzer to a source ERP.

Architecture:
  SourceGateway is an abstract Strategy with three operations:
    - read_table     — bounded unary read, returns rows + declared columns
    - stream_table   — lazy, finite sequence of pages with an opaque cursor
    - invoke_remote  — remote procedure call returning a structured reply
  Two implementations exist:
    - MockSourceGateway — deterministic fixtures from mock_fixtures.py
    - LiveSourceGateway — JSON over HTTP to a table-reader bridge

Every failure surfaces as a SourceError subclass (access denied, unknown
table, transport, timeout, malformed reply, schema mismatch).  Retry and
circuit breaking live here; extractors and the orchestrator never retry.

Live gateway constants:
  read timeout   = 30 s per unary call
  stream timeout = 300 s per page
  retry_max      = 2     (max retry attempts after initial failure)
  backoff        = [1, 4] seconds
  CB_threshold   = 5 failures in 60 s window → open circuit for 30 s
"""

from __future__ import annotations

import copy
import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Iterator, Mapping
from datetime import datetime, timedelta, timezone
from typing import Any

import requests

from landscape.core.exceptions import (
    SOURCE_ERROR_KINDS,
    AccessDeniedError,
    MalformedReplyError,
    SchemaMismatchError,
    SourceError,
    SourceTimeoutError,
    TransportError,
    UnknownTableError,
)
from landscape.integrations import mock_fixtures

logger = logging.getLogger(__name__)

# ── Gateway constants ────────────────────────────────────────────────────────

_DEFAULT_READ_TIMEOUT = 30
_DEFAULT_STREAM_TIMEOUT = 300
_DEFAULT_PAGE_SIZE = 500
_RETRY_MAX = 2                   # max extra attempts after first failure
_RETRY_BACKOFF_SECONDS = [1, 4]  # sleep before attempt 2 and 3

# Circuit breaker state, keyed by gateway base URL
_CB_FAILURE_THRESHOLD = 5
_CB_WINDOW_SECONDS = 60
_CB_OPEN_DURATION_SECONDS = 30

# Statuses that are answered immediately, never retried
_NO_RETRY_STATUSES = {401, 403, 404}


# ── Value objects ─────────────────────────────────────────────────────────────


class TableReadResult:
    """Bounded row set returned by read_table."""

    __slots__ = ("table", "rows", "columns", "duration_ms")

    def __init__(self, *, table: str, rows: list[dict], columns: list[str], duration_ms: int = 0) -> None:
        self.table = table
        self.rows = rows
        self.columns = columns
        self.duration_ms = duration_ms

    def __len__(self) -> int:
        return len(self.rows)


class TablePage:
    """One page of a streamed table.  ``cursor`` is None on the final page."""

    __slots__ = ("table", "rows", "columns", "cursor", "index")

    def __init__(self, *, table: str, rows: list[dict], columns: list[str],
                 cursor: str | None, index: int) -> None:
        self.table = table
        self.rows = rows
        self.columns = columns
        self.cursor = cursor
        self.index = index

    @property
    def is_last(self) -> bool:
        return self.cursor is None


class SourceGatewayResult:
    """Outcome of one live HTTP call.  Never raises; public methods convert
    failures to SourceError kinds."""

    __slots__ = ("ok", "status_code", "data", "error", "error_kind", "duration_ms")

    def __init__(
        self,
        *,
        ok: bool,
        status_code: int | None,
        data: Any,
        error: str | None,
        error_kind: str | None = None,
        duration_ms: int = 0,
    ) -> None:
        self.ok = ok
        self.status_code = status_code
        self.data = data
        self.error = error
        self.error_kind = error_kind
        self.duration_ms = duration_ms

    def to_log_dict(self) -> dict:
        """Structured representation for logging. Never includes row data."""
        return {
            "ok": self.ok,
            "status_code": self.status_code,
            "error": self.error,
            "error_kind": self.error_kind,
            "duration_ms": self.duration_ms,
        }


class GatewayConfigError(Exception):
    """Raised when live gateway settings are missing or invalid."""


# ── Abstract gateway ─────────────────────────────────────────────────────────


class SourceGateway(ABC):
    """Abstract access to a source ERP installation."""

    mode: str = "abstract"

    @abstractmethod
    def read_table(
        self,
        table: str,
        *,
        fields: list[str] | None = None,
        where: dict | None = None,
        max_rows: int | None = None,
    ) -> TableReadResult:
        """Read a bounded row set."""

    @abstractmethod
    def stream_table(
        self,
        table: str,
        *,
        fields: list[str] | None = None,
        where: dict | None = None,
        page_size: int | None = None,
        cursor: str | None = None,
    ) -> Iterator[TablePage]:
        """Yield pages until a page with ``cursor=None``.

        Passing a cursor from a previous page resumes after that page.
        """

    @abstractmethod
    def invoke_remote(self, name: str, args: dict | None = None) -> dict:
        """Invoke a remote procedure and return its structured reply."""


# ═════════════════════════════════════════════════════════════════════════════
# Mock gateway
# ═════════════════════════════════════════════════════════════════════════════


def _matches(row: dict, where: dict | None) -> bool:
    if not where:
        return True
    for key, expected in where.items():
        value = row.get(key)
        if isinstance(expected, (list, tuple, set, frozenset)):
            if value not in expected:
                return False
        elif value != expected:
            return False
    return True


class MockSourceGateway(SourceGateway):
    """Serves deterministic fixtures keyed by table or function name.

    Args:
        tables:    Override or extend the fixture tables.
        functions: Override or extend the fixture remote functions.
        failures:  Per-table (or per-function) injected failures.  A value is
                   either a SourceError instance, a kind name from
                   SOURCE_ERROR_KINDS, or {"kind": ..., "after_pages": n} to
                   fail a stream after n pages were delivered.
        page_size: Default streaming page size.
    """

    mode = "mock"

    def __init__(
        self,
        *,
        tables: Mapping[str, dict] | None = None,
        functions: Mapping[str, dict] | None = None,
        failures: Mapping[str, Any] | None = None,
        page_size: int = _DEFAULT_PAGE_SIZE,
    ) -> None:
        self._tables: dict[str, dict] = dict(mock_fixtures.TABLES)
        self._tables.update(tables or {})
        self._functions: dict[str, dict] = dict(mock_fixtures.FUNCTIONS)
        self._functions.update(functions or {})
        self._failures: dict[str, Any] = dict(failures or {})
        self._page_size = max(1, int(page_size))
        self.calls: list[tuple[str, str]] = []

    # ── Failure injection ────────────────────────────────────────────────────

    def inject_failure(self, name: str, failure: Any) -> None:
        self._failures[name] = failure

    def _failure_for(self, name: str, *, pages_delivered: int | None = None) -> SourceError | None:
        spec = self._failures.get(name)
        if spec is None:
            return None
        after_pages = None
        if isinstance(spec, dict):
            after_pages = spec.get("after_pages")
            spec = spec.get("kind", "transport_error")
        if after_pages is not None and (pages_delivered is None or pages_delivered < after_pages):
            return None
        if isinstance(spec, SourceError):
            return spec
        cls = SOURCE_ERROR_KINDS.get(str(spec), TransportError)
        return cls(f"injected {cls.kind}", table=name)

    # ── Fixture access ───────────────────────────────────────────────────────

    def _fixture(self, table: str) -> dict:
        fixture = self._tables.get(table)
        if fixture is None:
            raise UnknownTableError("table not found in source", table=table)
        return fixture

    @staticmethod
    def _project(table: str, fixture: dict, fields: list[str] | None) -> list[str]:
        columns = list(fixture["columns"])
        if not fields:
            return columns
        missing = [f for f in fields if f not in columns]
        if missing:
            raise SchemaMismatchError(table, missing)
        return list(fields)

    def _select(self, fixture: dict, columns: list[str], where: dict | None) -> list[dict]:
        return [
            {c: row.get(c) for c in columns}
            for row in fixture["rows"]
            if _matches(row, where)
        ]

    # ── Public operations ────────────────────────────────────────────────────

    def read_table(self, table, *, fields=None, where=None, max_rows=None):
        self.calls.append(("read", table))
        failure = self._failure_for(table)
        if failure is not None:
            raise failure
        fixture = self._fixture(table)
        columns = self._project(table, fixture, fields)
        rows = self._select(fixture, columns, where)
        if max_rows is not None:
            rows = rows[: max(0, int(max_rows))]
        return TableReadResult(table=table, rows=rows, columns=columns)

    def stream_table(self, table, *, fields=None, where=None, page_size=None, cursor=None):
        self.calls.append(("stream", table))
        spec = self._failures.get(table)
        if spec is not None and not (isinstance(spec, dict) and spec.get("after_pages")):
            raise self._failure_for(table, pages_delivered=0)
        fixture = self._fixture(table)
        columns = self._project(table, fixture, fields)
        rows = self._select(fixture, columns, where)
        size = max(1, int(page_size or self._page_size))
        try:
            offset = int(cursor) if cursor else 0
        except ValueError as exc:
            raise MalformedReplyError(f"invalid cursor {cursor!r}", table=table) from exc
        return self._pages(table, rows, columns, size, offset)

    def _pages(self, table, rows, columns, size, offset) -> Iterator[TablePage]:
        delivered = 0
        index = offset // size
        while True:
            failure = self._failure_for(table, pages_delivered=delivered)
            if failure is not None:
                raise failure
            chunk = rows[offset: offset + size]
            offset += len(chunk)
            next_cursor = str(offset) if offset < len(rows) else None
            yield TablePage(table=table, rows=chunk, columns=columns, cursor=next_cursor, index=index)
            delivered += 1
            index += 1
            if next_cursor is None:
                return

    def invoke_remote(self, name, args=None):
        self.calls.append(("invoke", name))
        failure = self._failure_for(name)
        if failure is not None:
            raise failure
        reply = self._functions.get(name)
        if reply is None:
            raise UnknownTableError("remote function not found", table=name)
        return copy.deepcopy(reply)


# ═════════════════════════════════════════════════════════════════════════════
# Live gateway
# ═════════════════════════════════════════════════════════════════════════════


class LiveSourceGateway(SourceGateway):
    """JSON-over-HTTP client for a table-reader bridge.

    Endpoints:
        POST {base}/tables/<name>/read     → {"rows": [...], "columns": [...]}
        POST {base}/tables/<name>/pages    → {"rows": [...], "columns": [...], "cursor": str|null}
        POST {base}/functions/<name>       → {...}

    Never instantiate directly outside this module. Use build_source_gateway().
    """

    mode = "live"

    # Class-level circuit breaker state: base_url → {failures: [datetime], open_until}
    _cb_state: dict[str, dict] = {}

    def __init__(
        self,
        *,
        base_url: str,
        user: str | None = None,
        password: str | None = None,
        read_timeout: int = _DEFAULT_READ_TIMEOUT,
        stream_timeout: int = _DEFAULT_STREAM_TIMEOUT,
        page_size: int = _DEFAULT_PAGE_SIZE,
        session: requests.Session | None = None,
    ) -> None:
        if not base_url:
            raise GatewayConfigError("SOURCE_GATEWAY_URL is required for live extraction.")
        self.base_url = base_url.rstrip("/")
        self.read_timeout = read_timeout
        self.stream_timeout = stream_timeout
        self.page_size = page_size
        self.session = session or requests.Session()
        if user:
            self.session.auth = (user, password or "")
        self.session.headers.update({"Accept": "application/json", "Content-Type": "application/json"})

    # ── Circuit breaker ───────────────────────────────────────────────────────

    def _circuit_closed(self) -> bool:
        """Return True if the circuit is closed (calls allowed)."""
        state = self._cb_state.get(self.base_url)
        if not state:
            return True
        now = datetime.now(timezone.utc)
        open_until = state.get("open_until")
        if open_until and now < open_until:
            return False
        window_start = now - timedelta(seconds=_CB_WINDOW_SECONDS)
        state["failures"] = [f for f in state.get("failures", []) if f > window_start]
        if len(state["failures"]) >= _CB_FAILURE_THRESHOLD:
            state["open_until"] = now + timedelta(seconds=_CB_OPEN_DURATION_SECONDS)
            return False
        state.pop("open_until", None)
        return True

    def _record_failure(self) -> None:
        now = datetime.now(timezone.utc)
        window_start = now - timedelta(seconds=_CB_WINDOW_SECONDS)
        state = self._cb_state.setdefault(self.base_url, {"failures": []})
        state["failures"] = [f for f in state["failures"] if f > window_start]
        state["failures"].append(now)
        if len(state["failures"]) >= _CB_FAILURE_THRESHOLD:
            state["open_until"] = now + timedelta(seconds=_CB_OPEN_DURATION_SECONDS)
            logger.warning(
                "Source gateway circuit breaker opened base_url=%s failures=%d",
                self.base_url,
                len(state["failures"]),
            )

    def _record_success(self) -> None:
        self._cb_state.pop(self.base_url, None)

    # ── Internal HTTP dispatch ────────────────────────────────────────────────

    def _call(self, path: str, body: dict, *, timeout: int) -> SourceGatewayResult:
        """POST with retry and circuit breaker.  Always returns, never raises.

          1. Circuit breaker check — reject immediately if open.
          2. Execute; on 2xx → decode JSON.
          3. 401/403/404 → answered immediately, no retry.
          4. Other failures → record CB failure, sleep, retry up to _RETRY_MAX.
        """
        if not self._circuit_closed():
            return SourceGatewayResult(
                ok=False, status_code=None, data=None,
                error="Circuit breaker open — source calls temporarily suspended",
                error_kind=TransportError.kind,
            )

        url = f"{self.base_url}{path}"
        last_error = "Unknown error"
        last_kind = TransportError.kind
        last_status: int | None = None

        for attempt in range(_RETRY_MAX + 1):
            try:
                t0 = time.perf_counter()
                resp = self.session.post(url, json=body, timeout=timeout)
                duration_ms = int((time.perf_counter() - t0) * 1000)
                last_status = resp.status_code

                if resp.ok:
                    self._record_success()
                    try:
                        data = resp.json()
                    except ValueError:
                        return SourceGatewayResult(
                            ok=False, status_code=resp.status_code, data=None,
                            error="Response body is not valid JSON",
                            error_kind=MalformedReplyError.kind, duration_ms=duration_ms,
                        )
                    return SourceGatewayResult(
                        ok=True, status_code=resp.status_code, data=data,
                        error=None, duration_ms=duration_ms,
                    )

                if resp.status_code in _NO_RETRY_STATUSES:
                    kind = UnknownTableError.kind if resp.status_code == 404 else AccessDeniedError.kind
                    return SourceGatewayResult(
                        ok=False, status_code=resp.status_code, data=None,
                        error=f"HTTP {resp.status_code}: {resp.text[:500]}",
                        error_kind=kind, duration_ms=duration_ms,
                    )

                last_error = f"HTTP {resp.status_code}: {resp.text[:500]}"
                last_kind = TransportError.kind
                self._record_failure()
                logger.warning(
                    "Source request failed attempt=%d/%d status=%d url=%s",
                    attempt + 1, _RETRY_MAX + 1, resp.status_code, url,
                )

            except requests.Timeout:
                last_error = f"Request timed out after {timeout}s"
                last_kind = SourceTimeoutError.kind
                self._record_failure()
                logger.warning(
                    "Source request timed out attempt=%d/%d url=%s",
                    attempt + 1, _RETRY_MAX + 1, url,
                )

            except requests.RequestException as exc:
                last_error = str(exc)[:500]
                last_kind = TransportError.kind
                self._record_failure()
                logger.warning(
                    "Source network error attempt=%d/%d url=%s error=%s",
                    attempt + 1, _RETRY_MAX + 1, url, last_error,
                )

            if attempt < _RETRY_MAX:
                sleep_s = _RETRY_BACKOFF_SECONDS[min(attempt, len(_RETRY_BACKOFF_SECONDS) - 1)]
                logger.info("Retrying source request in %ss (attempt %d) url=%s", sleep_s, attempt + 2, url)
                time.sleep(sleep_s)

        return SourceGatewayResult(
            ok=False, status_code=last_status, data=None,
            error=last_error, error_kind=last_kind,
        )

    @staticmethod
    def _raise_for(result: SourceGatewayResult, name: str) -> None:
        if result.ok:
            return
        cls = SOURCE_ERROR_KINDS.get(result.error_kind or "", TransportError)
        raise cls(result.error or "source call failed", table=name)

    @staticmethod
    def _require_rows(data: Any, name: str, *, paged: bool) -> tuple[list[dict], list[str]]:
        if not isinstance(data, dict):
            raise MalformedReplyError("reply is not an object", table=name)
        rows = data.get("rows")
        columns = data.get("columns")
        if not isinstance(rows, list) or not isinstance(columns, list):
            raise MalformedReplyError("reply lacks rows/columns lists", table=name)
        if paged and "cursor" not in data:
            raise MalformedReplyError("page lacks cursor", table=name)
        if any(not isinstance(r, dict) for r in rows):
            raise MalformedReplyError("rows must be objects", table=name)
        return rows, [str(c) for c in columns]

    # ── Public operations ────────────────────────────────────────────────────

    def read_table(self, table, *, fields=None, where=None, max_rows=None):
        body = {"fields": fields or [], "where": where or {}, "maxRows": max_rows}
        result = self._call(f"/tables/{table}/read", body, timeout=self.read_timeout)
        self._raise_for(result, table)
        rows, columns = self._require_rows(result.data, table, paged=False)
        if fields:
            missing = [f for f in fields if f not in columns]
            if missing:
                raise SchemaMismatchError(table, missing)
        return TableReadResult(table=table, rows=rows, columns=columns, duration_ms=result.duration_ms)

    def stream_table(self, table, *, fields=None, where=None, page_size=None, cursor=None):
        return self._pages(table, fields, where, int(page_size or self.page_size), cursor)

    def _pages(self, table, fields, where, page_size, cursor) -> Iterator[TablePage]:
        index = 0
        while True:
            body = {"fields": fields or [], "where": where or {}, "pageSize": page_size, "cursor": cursor}
            result = self._call(f"/tables/{table}/pages", body, timeout=self.stream_timeout)
            self._raise_for(result, table)
            rows, columns = self._require_rows(result.data, table, paged=True)
            if fields and index == 0:
                missing = [f for f in fields if f not in columns]
                if missing:
                    raise SchemaMismatchError(table, missing)
            next_cursor = result.data.get("cursor") or None
            if next_cursor is not None and next_cursor == cursor:
                raise MalformedReplyError("cursor did not advance", table=table)
            yield TablePage(table=table, rows=rows, columns=columns, cursor=next_cursor, index=index)
            if next_cursor is None:
                return
            cursor = next_cursor
            index += 1

    def invoke_remote(self, name, args=None):
        result = self._call(f"/functions/{name}", {"args": args or {}}, timeout=self.read_timeout)
        self._raise_for(result, name)
        if not isinstance(result.data, dict):
            raise MalformedReplyError("reply is not an object", table=name)
        return result.data


# ── Factory function ─────────────────────────────────────────────────────────


def build_source_gateway(settings: Mapping[str, Any]) -> SourceGateway:
    """Construct the gateway selected by EXTRACTION_MODE.

    ``settings`` is any mapping with the Config keys (``app.config`` works).
    In tests, inject failures on the mock:
        gw = build_source_gateway({"EXTRACTION_MODE": "mock"})
        gw.inject_failure("T001", "timeout")
    """
    mode = str(settings.get("EXTRACTION_MODE") or "mock").lower()
    page_size = int(settings.get("GATEWAY_PAGE_SIZE") or _DEFAULT_PAGE_SIZE)
    if mode == "mock":
        return MockSourceGateway(page_size=page_size)
    if mode != "live":
        raise GatewayConfigError(f"Unknown extraction mode: '{mode}'. Must be one of: mock, live.")

    password = None
    secret = settings.get("SOURCE_GATEWAY_SECRET")
    if secret:
        from landscape.utils.crypto import decrypt_secret

        password = decrypt_secret(secret)
    return LiveSourceGateway(
        base_url=settings.get("SOURCE_GATEWAY_URL") or "",
        user=settings.get("SOURCE_GATEWAY_USER"),
        password=password,
        read_timeout=int(settings.get("GATEWAY_READ_TIMEOUT") or _DEFAULT_READ_TIMEOUT),
        stream_timeout=int(settings.get("GATEWAY_STREAM_TIMEOUT") or _DEFAULT_STREAM_TIMEOUT),
        page_size=page_size,
    )
