"""JSON error bodies for the analyzer API.

Every error leaves the API as ``{"error": <message>, "code": <E.*>, "details"?: {...}}``
with the HTTP status implied by the code:

    return api_error(E.NOT_FOUND, "Run not found")
    return api_error(E.APPROVAL_REQUIRED, "Tier 3 operation", details={"tier": 3})
"""

from __future__ import annotations

from flask import jsonify


class E:
    """Machine-readable error codes."""

    VALIDATION_REQUIRED = "ERR_VALIDATION_REQUIRED"   # missing input field
    VALIDATION_INVALID = "ERR_VALIDATION_INVALID"     # input present but rejected
    NOT_FOUND = "ERR_NOT_FOUND"
    CONFLICT_STATE = "ERR_CONFLICT_STATE"             # run or approval in the wrong state
    APPROVAL_REQUIRED = "ERR_APPROVAL_REQUIRED"       # security tier gate
    FATAL = "ERR_FATAL"                               # run-aborting condition
    INTERNAL = "ERR_INTERNAL"


STATUS_FOR_CODE: dict[str, int] = {
    E.VALIDATION_REQUIRED: 400,
    E.VALIDATION_INVALID: 422,
    E.NOT_FOUND: 404,
    E.CONFLICT_STATE: 409,
    E.APPROVAL_REQUIRED: 403,
    E.FATAL: 500,
    E.INTERNAL: 500,
}


def api_error(code: str, message: str, *, status: int | None = None, details: dict | None = None):
    """``(response, status)`` for a Flask view; status defaults from the code, else 400."""
    body: dict = {"error": message, "code": code}
    if details:
        body["details"] = details
    return jsonify(body), status or STATUS_FOR_CODE.get(code, 400)
