"""
Project → schedule project cascade policy.

Declarative mapping ``(project new status, child current status) → child
target status``. Any pair not listed is a skip. Completed and cancelled
children are never listed, so they never move.

behind_schedule carries no cascade: slipping a project does not say which
schedule projects slipped.
"""

from app.models.scheduling import SCHEDULE_TERMINAL_STATUSES


SCHEDULE_CASCADE_POLICY: dict[str, dict[str, str]] = {
    "not_started": {
        "in_progress": "planned",
        "delayed":     "planned",
    },
    "in_progress": {
        "delayed":     "in_progress",
    },
    "on_track": {
        "delayed":     "in_progress",
    },
    "ahead_of_schedule": {
        "delayed":     "in_progress",
    },
    "behind_schedule": {},
    "on_hold": {
        "planned":     "delayed",
        "in_progress": "delayed",
    },
    "completed": {
        "planned":     "completed",
        "in_progress": "completed",
        "delayed":     "completed",
    },
    "cancelled": {
        "planned":     "cancelled",
        "in_progress": "cancelled",
        "delayed":     "cancelled",
    },
}


def resolve_schedule_cascade(project_status, child_status):
    """Return the status a child should move to, or None to skip it."""
    if child_status in SCHEDULE_TERMINAL_STATUSES:
        return None
    target = SCHEDULE_CASCADE_POLICY.get(project_status, {}).get(child_status)
    if target is None or target == child_status:
        return None
    return target


def skip_reason(project_status, child_status):
    """Human-readable reason a child is left untouched."""
    if child_status in SCHEDULE_TERMINAL_STATUSES:
        return f"Schedule project is {child_status}"
    return f"No cascade from project status '{project_status}' for '{child_status}'"
