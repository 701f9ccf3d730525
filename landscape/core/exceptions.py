"""
Analyzer-wide exception hierarchy.

Services, engines and blueprints all raise from this module so that one
set of blueprint handlers maps every failure to a consistent HTTP status
and every CLI wrapper to a consistent exit code.

Kinds:
  - NotFoundError / ValidationError / ConflictError — caller-facing.
  - SourceError and subclasses — gateway failures. Extractors record them
    in coverage and continue with the next table; they never abort a run.
  - FatalError and subclasses — programming-contract violations. They abort
    the run and surface to the caller with a reason.
  - ExtractionCancelled — cooperative cancellation at a chunk boundary.
  - RuleEvaluationError — a rule predicate or interpretation raised.

Usage:
    from landscape.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="Run", resource_id="a1b2")
    raise ValidationError("concurrency must be >= 1", details={"concurrency": 0})
"""

from __future__ import annotations


class NotFoundError(Exception):
    """Raised when a requested resource does not exist.

    Args:
        resource: Human-readable entity name (e.g. "Run", "ReferenceModel").
        resource_id: The identifier that was looked up.
    """

    def __init__(self, resource: str, resource_id: int | str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        super().__init__(msg)


class ValidationError(Exception):
    """Raised when caller-supplied input violates a declared constraint.

    Never retried. Maps to HTTP 422 and CLI exit code 2.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown. Keys are field names.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class ConflictError(Exception):
    """Raised when an operation conflicts with the current state of a resource.

    Maps to HTTP 409.
    """

    def __init__(self, resource: str, field: str, value: str | None = None) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        super().__init__(f"{resource} with {field}={value!r} conflicts with current state")


# ── Source gateway failures ──────────────────────────────────────────────────


class SourceError(Exception):
    """Base class for every failure surfaced by a SourceGateway call.

    ``kind`` is the stable, machine-readable failure kind recorded in coverage.
    """

    kind = "source_error"

    def __init__(self, reason: str, *, table: str | None = None) -> None:
        self.reason = reason
        self.table = table
        msg = reason if table is None else f"{table}: {reason}"
        super().__init__(msg)


class AccessDeniedError(SourceError):
    """The gateway authenticated but the backend refused the object."""

    kind = "access_denied"


class UnknownTableError(SourceError):
    """The named table or remote function does not exist in the source."""

    kind = "unknown_table"


class TransportError(SourceError):
    """Network or backend failure; the source is unavailable."""

    kind = "transport_error"


class SourceTimeoutError(TransportError):
    """The per-call deadline elapsed."""

    kind = "timeout"


class MalformedReplyError(SourceError):
    """The backend answered with a body that does not match the contract."""

    kind = "malformed_reply"


class SchemaMismatchError(SourceError):
    """A table exists but lacks one or more requested fields."""

    kind = "schema_mismatch"

    def __init__(self, table: str, missing_fields: list[str]) -> None:
        self.missing_fields = list(missing_fields)
        super().__init__(
            f"missing fields {', '.join(self.missing_fields)}", table=table,
        )


SOURCE_ERROR_KINDS: dict[str, type[SourceError]] = {
    cls.kind: cls
    for cls in (
        AccessDeniedError,
        UnknownTableError,
        TransportError,
        SourceTimeoutError,
        MalformedReplyError,
    )
}


# ── Fatal / contract violations ──────────────────────────────────────────────


class FatalError(Exception):
    """Programming-contract violation. Aborts the run; maps to exit code 5."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)


class FatalExtractorError(FatalError):
    """Missing identity, registration after the registry was frozen,
    dependency cycle, or a read of a table the extractor never declared."""


class CorruptCheckpointError(FatalError):
    """A checkpoint file exists but cannot be decoded."""

    def __init__(self, extractor_id: str, reason: str) -> None:
        self.extractor_id = extractor_id
        super().__init__(f"Corrupt checkpoint for {extractor_id}: {reason}")


# ── Cooperative / isolated signals ───────────────────────────────────────────


class ExtractionCancelled(Exception):
    """Raised at a chunk boundary once the run's cancellation token is set."""


class RuleEvaluationError(Exception):
    """A rule predicate or interpretation raised.

    The engines catch the underlying error, log the rule id, and continue;
    this type wraps it when a single rule is evaluated in isolation.
    """

    def __init__(self, rule_id: str, cause: Exception) -> None:
        self.rule_id = rule_id
        self.cause = cause
        super().__init__(f"Rule {rule_id} failed: {cause}")


class ApprovalRequiredError(Exception):
    """Raised when an operation's tier requires an approval that is missing,
    pending, rejected or expired."""

    def __init__(self, operation: str, tier: int, reason: str) -> None:
        self.operation = operation
        self.tier = tier
        self.reason = reason
        super().__init__(f"{operation} (tier {tier}) not authorized: {reason}")
