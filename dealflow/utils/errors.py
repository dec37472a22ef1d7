"""JSON error envelopes for the dealflow API.

Every error body has the same shape::

    {"error": "<message>", "code": "ERR_...", "request_id": "...", "details": {...}}

``details`` is omitted when empty; ``request_id`` echoes the id stamped by the
timing middleware so a client report can be matched to a log line.

Usage
-----
    from dealflow.utils.errors import api_error, error_for, E

    return api_error(E.ORG_SCOPE_REQUIRED, "Missing X-Organization-Id")
    return error_for(exc)   # service / HTTP exception -> envelope
"""

from __future__ import annotations

from flask import g, has_app_context, jsonify
from werkzeug.exceptions import HTTPException

from dealflow.core.exceptions import ConflictError, NotFoundError, ValidationError


class E:
    """Machine-readable error codes."""

    # Malformed request – HTTP 400
    VALIDATION_REQUIRED = "ERR_VALIDATION_REQUIRED"
    VALIDATION_INVALID = "ERR_VALIDATION_INVALID"
    ORG_SCOPE_REQUIRED = "ERR_ORG_SCOPE_REQUIRED"

    # Well-formed but rejected by a business rule – HTTP 422
    VALIDATION_CONSTRAINT = "ERR_VALIDATION_CONSTRAINT"

    NOT_FOUND = "ERR_NOT_FOUND"
    CONFLICT_DUPLICATE = "ERR_CONFLICT_DUPLICATE"
    INTERNAL = "ERR_INTERNAL"


_DEFAULT_STATUS: dict[str, int] = {
    E.VALIDATION_REQUIRED: 400,
    E.VALIDATION_INVALID: 400,
    E.ORG_SCOPE_REQUIRED: 400,
    E.VALIDATION_CONSTRAINT: 422,
    E.NOT_FOUND: 404,
    E.CONFLICT_DUPLICATE: 409,
    E.INTERNAL: 500,
}


def api_error(
    code: str,
    message: str,
    *,
    status: int | None = None,
    details: dict | None = None,
):
    """Build ``(response, status)`` for a Flask view or error handler.

    The status falls back to the code's default, then to 400.
    """
    body: dict = {"error": message, "code": code}
    request_id = getattr(g, "request_id", None) if has_app_context() else None
    if request_id:
        body["request_id"] = request_id
    if details:
        body["details"] = details
    return jsonify(body), status or _DEFAULT_STATUS.get(code, 400)


def error_for(exc: Exception):
    """Map a service or HTTP exception onto the envelope.

    Anything unrecognised becomes a bare 500; the caller logs it.
    """
    if isinstance(exc, NotFoundError):
        return api_error(E.NOT_FOUND, str(exc))
    if isinstance(exc, ValidationError):
        return api_error(E.VALIDATION_CONSTRAINT, str(exc), details=exc.details)
    if isinstance(exc, ConflictError):
        return api_error(E.CONFLICT_DUPLICATE, str(exc), details={exc.field: exc.value})
    if isinstance(exc, HTTPException):
        return api_error(f"ERR_HTTP_{exc.code}", exc.description or exc.name, status=exc.code)
    return api_error(E.INTERNAL, "Internal server error")
