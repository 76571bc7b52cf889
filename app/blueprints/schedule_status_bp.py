"""
Schedule Project Status Blueprint.

Endpoints:
    PATCH|POST /api/v1/schedule-projects/<schedule_project_id>/status-coordinated
           Body: { "status": "<schedule status>", "progressPercentage": 0..100,
                   "actualHours": 0..999.99, "notes": "...",
                   "skipDependencyValidation": false, "skipProjectSync": false }
           Returns: 200 with the schedule project and the project sync result,
                    400 on invalid payload or when completion is blocked by
                    unresolved high/critical punchlist items.

    GET    /api/v1/schedule-projects/<schedule_project_id>/status-coordinated
           Returns: 200 with completion eligibility.
"""

import logging

from flask import Blueprint, current_app, g, request

from app.core.exceptions import ValidationError
from app.middleware.identity_context import identity_required
from app.models import db
from app.models.scheduling import SCHEDULE_STATUSES
from app.services.status_coordinator import TRANSITION_BLOCKED, StatusCoordinator
from app.utils.errors import E, api_error, api_success, register_error_handlers
from app.utils.helpers import parse_bool, parse_decimal_range, parse_int_range, parse_text

logger = logging.getLogger(__name__)

schedule_status_bp = Blueprint("schedule_status", __name__, url_prefix="/api/v1")

register_error_handlers(schedule_status_bp)

MAX_ACTUAL_HOURS = 999.99


def _parse_payload(data: dict) -> dict:
    errors = {}
    payload = {}

    status = data.get("status")
    if not status:
        errors["status"] = "Required."
    elif status not in SCHEDULE_STATUSES:
        errors["status"] = f"Must be one of: {', '.join(SCHEDULE_STATUSES)}"
    payload["status"] = status

    parsers = {
        "progressPercentage": ("progress_percentage", lambda v: parse_int_range(v, 0, 100)),
        "actualHours": ("actual_hours", lambda v: parse_decimal_range(v, 0, MAX_ACTUAL_HOURS)),
        "notes": ("notes", lambda v: parse_text(v, current_app.config["STATUS_NOTES_MAX_LENGTH"])),
        "skipDependencyValidation": ("skip_dependency_validation", parse_bool),
        "skipProjectSync": ("skip_project_sync", parse_bool),
    }
    for field, (key, parse) in parsers.items():
        try:
            payload[key] = parse(data.get(field))
        except ValueError as exc:
            errors[field] = str(exc)

    if errors:
        raise ValidationError("Validation failed", details=errors)
    return payload


@schedule_status_bp.route(
    "/schedule-projects/<schedule_project_id>/status-coordinated",
    methods=["PATCH", "POST"],
)
@identity_required
def update_schedule_status(schedule_project_id: str):
    """Change one schedule project's status, then re-derive its project's status."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Validation failed", details={"body": "A JSON object is required."})
    payload = _parse_payload(data)

    result = StatusCoordinator(db.session).update_schedule_project_status_with_sync(
        schedule_project_id,
        g.tenant_id,
        payload["status"],
        progress_percentage=payload["progress_percentage"],
        actual_hours=payload["actual_hours"],
        notes=payload["notes"],
        acting_user_id=g.user_id,
        skip_dependency_validation=payload["skip_dependency_validation"],
        skip_project_sync=payload["skip_project_sync"],
    )

    if result.error_kind == TRANSITION_BLOCKED:
        return api_error(
            E.TRANSITION_BLOCKED, result.error,
            data=result.to_dict(), summary=result.message,
        )
    return api_success(result.to_dict(), result.message)


@schedule_status_bp.route(
    "/schedule-projects/<schedule_project_id>/status-coordinated", methods=["GET"],
)
@identity_required
def completion_eligibility(schedule_project_id: str):
    eligibility = StatusCoordinator(db.session).can_complete_schedule_project(
        schedule_project_id, g.tenant_id,
    )
    message = (
        "Schedule project can be completed"
        if eligibility["canComplete"]
        else f"{eligibility['blockingCount']} punchlist item(s) block completion"
    )
    return api_success(eligibility, message)
