"""
Project Status Coordination Blueprint.

Endpoints:
    POST|PATCH /api/v1/projects/<project_id>/status-coordinated
           Body: { "status": "<project status>", "notes": "...",
                   "actualStartDate": "YYYY-MM-DD", "actualEndDate": "YYYY-MM-DD",
                   "skipChildValidation": false }
           Returns: 200 with project + cascade results,
                    207 when some schedule projects failed to cascade,
                    400 on invalid payload or blocked transition.

    GET    /api/v1/projects/<project_id>/status-coordinated
           Returns: 200 with the project/schedule consistency report.

    POST   /api/v1/projects/<project_id>/validate-status-change
           Body: { "newStatus": "<project status>" }
           Returns: 200 with the status validation result.

    GET    /api/v1/projects/<project_id>/status-summary
           Returns: 200 with counts and health indicators.

Every route requires the X-User-Id / X-Company-Id identity headers (401).

Layer contract:
    - Blueprint: parse + validate input, call the coordinator, map the
                 result onto the response envelope.
    - NO db.session writes here; the coordinator owns all commits.
"""

import logging

from flask import Blueprint, current_app, g, request

from app.core.exceptions import ValidationError
from app.middleware.identity_context import identity_required
from app.models import db
from app.models.project import PROJECT_STATUSES
from app.services.status_coordinator import (
    NOT_FOUND,
    PARTIAL_CASCADE_FAILURE,
    PERSIST_FAILED,
    TRANSITION_BLOCKED,
    StatusCoordinator,
)
from app.utils.errors import E, api_error, api_success, register_error_handlers
from app.utils.helpers import parse_bool, parse_date_input, parse_text

logger = logging.getLogger(__name__)

project_status_bp = Blueprint("project_status", __name__, url_prefix="/api/v1")

register_error_handlers(project_status_bp)


# ── Helpers ────────────────────────────────────────────────────────────────────


def _coordinator() -> StatusCoordinator:
    return StatusCoordinator(db.session)


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Validation failed", details={"body": "A JSON object is required."})
    return data


def _require_status(value, field: str) -> str:
    if not value:
        raise ValidationError("Validation failed", details={field: "Required."})
    if value not in PROJECT_STATUSES:
        raise ValidationError(
            "Validation failed",
            details={field: f"Must be one of: {', '.join(PROJECT_STATUSES)}"},
        )
    return value


def _parse_status_payload(data: dict) -> dict:
    """Validate the coordinated status change body. Raises ValidationError."""
    errors = {}
    payload = {}

    try:
        payload["status"] = _require_status(data.get("status"), "status")
    except ValidationError as exc:
        errors.update(exc.details)

    parsers = {
        "notes": ("notes", lambda v: parse_text(v, current_app.config["STATUS_NOTES_MAX_LENGTH"])),
        "actualStartDate": ("actual_start_date", parse_date_input),
        "actualEndDate": ("actual_end_date", parse_date_input),
        "skipChildValidation": ("skip_child_validation", parse_bool),
    }
    for field, (key, parse) in parsers.items():
        try:
            payload[key] = parse(data.get(field))
        except ValueError as exc:
            errors[field] = str(exc)

    if errors:
        raise ValidationError("Validation failed", details=errors)
    return payload


# ── Routes ─────────────────────────────────────────────────────────────────────


@project_status_bp.route(
    "/projects/<project_id>/status-coordinated", methods=["POST", "PATCH"],
)
@identity_required
def update_status_coordinated(project_id: str):
    """Change a project's status and cascade it to its schedule projects."""
    payload = _parse_status_payload(_json_body())

    result = _coordinator().update_project_status_with_cascade(
        project_id,
        g.tenant_id,
        payload["status"],
        notes=payload["notes"],
        acting_user_id=g.user_id,
        actual_start_date=payload["actual_start_date"],
        actual_end_date=payload["actual_end_date"],
        skip_child_validation=payload["skip_child_validation"],
    )

    if result.error_kind == NOT_FOUND:
        return api_error(E.NOT_FOUND, "Project not found", summary=result.message)
    if result.error_kind == TRANSITION_BLOCKED:
        return api_error(
            E.TRANSITION_BLOCKED, "Status change blocked",
            data=result.to_dict(), summary=result.message,
        )
    if result.error_kind == PERSIST_FAILED:
        return api_error(E.INTERNAL, "Failed to update project status", summary=result.message)
    if result.error_kind == PARTIAL_CASCADE_FAILURE:
        return api_error(
            E.PARTIAL_CASCADE, "Partial cascade failure",
            data=result.to_dict(), summary=result.message,
        )
    return api_success(result.to_dict(), result.message)


@project_status_bp.route("/projects/<project_id>/status-coordinated", methods=["GET"])
@identity_required
def status_consistency(project_id: str):
    """Report project/schedule project status combinations that disagree."""
    report = _coordinator().validate_status_consistency(project_id, g.tenant_id)
    message = (
        "Project status is consistent"
        if report["isConsistent"]
        else f"{len(report['inconsistencies'])} status inconsistency(ies) found"
    )
    return api_success(report, message)


@project_status_bp.route("/projects/<project_id>/validate-status-change", methods=["POST"])
@identity_required
def validate_status_change(project_id: str):
    """Dry-run the status rules for a prospective change. Never writes."""
    data = _json_body()
    new_status = _require_status(data.get("newStatus"), "newStatus")

    result = _coordinator().validate_status_change(project_id, g.tenant_id, new_status)
    message = (
        "Status change is allowed"
        if result.can_change
        else "Status change is blocked"
    )
    return api_success(result.to_dict(), message)


@project_status_bp.route("/projects/<project_id>/status-summary", methods=["GET"])
@identity_required
def status_summary(project_id: str):
    summary = _coordinator().get_status_summary(project_id, g.tenant_id)
    return api_success(summary, "Project status summary retrieved successfully")
