"""Standardised API responses.

Every coordination endpoint answers with the same envelope::

    {"success": bool, "data": ..., "message": str, "error": str}

Usage
-----
    from app.utils.errors import api_error, api_success, E

    return api_error(E.NOT_FOUND, "Project not found")
    return api_error(E.TRANSITION_BLOCKED, "Status change blocked",
                     data={"blockers": [...]})
    return api_success(data, "Project status updated")
"""

from __future__ import annotations

import logging

from flask import jsonify
from werkzeug.exceptions import HTTPException

from app.core.exceptions import (
    AuthenticationRequiredError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from app.models import db


# ── Error code constants ──────────────────────────────────────────────
class E:
    """Machine-readable error code constants.

    Convention:
     • ERR_  prefix for every application error
    """

    # Identity – HTTP 401
    AUTH_REQUIRED = "ERR_AUTH_REQUIRED"

    # Validation – HTTP 400
    VALIDATION_INVALID = "ERR_VALIDATION_INVALID"

    # Not-found – HTTP 404
    NOT_FOUND = "ERR_NOT_FOUND"

    # Transition refused by status rules – HTTP 400
    TRANSITION_BLOCKED = "ERR_TRANSITION_BLOCKED"

    # Conflict – HTTP 409
    CONFLICT_STATE = "ERR_CONFLICT_STATE"

    # Project updated, some children failed – HTTP 207
    PARTIAL_CASCADE = "ERR_PARTIAL_CASCADE"

    # Rate limit – HTTP 429
    RATE_LIMITED = "ERR_RATE_LIMITED"

    # Server – HTTP 500
    INTERNAL = "ERR_INTERNAL"


# ── Default HTTP status mapping ───────────────────────────────────────
_DEFAULT_STATUS: dict[str, int] = {
    E.AUTH_REQUIRED: 401,
    E.VALIDATION_INVALID: 400,
    E.NOT_FOUND: 404,
    E.TRANSITION_BLOCKED: 400,
    E.CONFLICT_STATE: 409,
    E.PARTIAL_CASCADE: 207,
    E.RATE_LIMITED: 429,
    E.INTERNAL: 500,
}


def api_error(
    code: str,
    message: str,
    *,
    status: int | None = None,
    details: dict | None = None,
    data: dict | None = None,
    summary: str | None = None,
):
    """Return a standard JSON error response.

    Parameters
    ----------
    code : str
        Machine-readable error code (use ``E.*`` constants).
    message : str
        Short error label, e.g. ``"Validation failed"``.
    status : int, optional
        HTTP status override.  Falls back to ``_DEFAULT_STATUS[code]``,
        then to ``400``.
    details : dict, optional
        Field-level validation breakdown.
    data : dict, optional
        Structured payload (blockers, partial cascade results, etc.).
    summary : str, optional
        Longer human-readable text, returned as ``message``.

    Returns
    -------
    tuple[Response, int]
        ``(jsonify(body), http_status)`` – drop-in for Flask views.
    """

    http_status = status or _DEFAULT_STATUS.get(code, 400)

    body: dict = {
        "success": False,
        "error": message,
        "code": code,
    }
    if details:
        body["details"] = details
    if data is not None:
        body["data"] = data
    if summary:
        body["message"] = summary

    return jsonify(body), http_status


def api_success(data, message: str | None = None, *, status: int = 200):
    """Return the success envelope ``{success: true, data, message}``."""
    body: dict = {"success": True, "data": data}
    if message:
        body["message"] = message
    return jsonify(body), status


# ── Blueprint error handlers ──────────────────────────────────────────
_RESOURCE_LABELS = {
    "Project": "Project",
    "ScheduleProject": "Schedule project",
}


def register_error_handlers(bp) -> None:
    """Map the platform exception hierarchy onto envelope responses for *bp*."""
    logger = logging.getLogger(bp.import_name)

    @bp.errorhandler(AuthenticationRequiredError)
    def _handle_auth(error):
        return api_error(
            E.AUTH_REQUIRED, "Authentication required",
            summary="You must be logged in to perform this action.",
        )

    @bp.errorhandler(NotFoundError)
    def _handle_not_found(error):
        logger.info("Not found: %s", error)
        label = _RESOURCE_LABELS.get(error.resource, error.resource)
        return api_error(
            E.NOT_FOUND, f"{label} not found",
            summary="The requested resource does not exist or you do not have access to it.",
        )

    @bp.errorhandler(ValidationError)
    def _handle_validation(error):
        return api_error(
            E.VALIDATION_INVALID, "Validation failed",
            details=error.details, summary=str(error),
        )

    @bp.errorhandler(ConflictError)
    def _handle_conflict(error):
        db.session.rollback()
        logger.warning("Conflict: %s", error)
        return api_error(
            E.CONFLICT_STATE, "Concurrent status change",
            summary="The status was changed by another request. Reload and try again.",
        )

    @bp.errorhandler(Exception)
    def _handle_unexpected(error):
        if isinstance(error, HTTPException):
            return error
        db.session.rollback()
        logger.exception("Unexpected error in %s endpoint", bp.name)
        return api_error(
            E.INTERNAL, "Internal server error",
            summary="An unexpected error occurred.",
        )
