"""
Project status summary.

Aggregates schedule project and punchlist counts for one project and derives
fixed-threshold health indicators (thresholds live in
``app.services.status_rules.THRESHOLDS``).
"""

from __future__ import annotations

import math

from app.models.punchlist import PUNCHLIST_OPEN_STATUSES, PUNCHLIST_UNRESOLVED_STATUSES
from app.services.status_rules import THRESHOLDS


def completion_rate(schedule_counts: dict[str, int]) -> float:
    """Percentage of schedule projects in ``completed``; 0 when there are none."""
    total = sum(schedule_counts.values())
    if total == 0:
        return 0.0
    return schedule_counts.get("completed", 0) / total * 100


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up (12.5 -> 13)."""
    return math.floor(value + 0.5)


def overall_health(rate: float, critical: int) -> str:
    if rate >= THRESHOLDS["health_schedule_on_track_min_pct"] \
            and critical <= THRESHOLDS["health_good_max_critical_items"]:
        return "good"
    if rate >= THRESHOLDS["health_fair_min_pct"] \
            and critical <= THRESHOLDS["health_fair_max_critical_items"]:
        return "fair"
    return "needs_attention"


def build_status_summary(
    project,
    schedule_counts: dict[str, int],
    punchlist_counts: dict[tuple[str, str], int],
) -> dict:
    """Build the summary payload.

    Args:
        project: The Project row.
        schedule_counts: ``{status: count}`` of the project's schedule projects.
        punchlist_counts: ``{(status, priority): count}`` of its punchlist items.
    """
    rate = completion_rate(schedule_counts)

    punchlist_summary: dict[str, int] = {}
    for (status, priority), count in punchlist_counts.items():
        punchlist_summary[status] = punchlist_summary.get(status, 0) + count
        key = f"priority_{priority}"
        punchlist_summary[key] = punchlist_summary.get(key, 0) + count

    open_items = sum(punchlist_summary.get(s, 0) for s in PUNCHLIST_OPEN_STATUSES)
    critical = sum(
        count
        for (status, priority), count in punchlist_counts.items()
        if priority == "critical" and status in PUNCHLIST_UNRESOLVED_STATUSES
    )

    return {
        "project": {
            "id": project.id,
            "name": project.name,
            "status": project.status,
            "progress": project.progress or 0,
        },
        "scheduleProjects": {
            "total": sum(schedule_counts.values()),
            "summary": dict(schedule_counts),
            "completionRate": round_half_up(rate),
        },
        "punchlistItems": {
            "total": sum(punchlist_counts.values()),
            "open": open_items,
            "critical": critical,
            "summary": punchlist_summary,
        },
        "healthIndicators": {
            "scheduleOnTrack": rate >= THRESHOLDS["health_schedule_on_track_min_pct"],
            "punchlistManageable": (
                critical <= THRESHOLDS["punchlist_manageable_max_critical_items"]
                and open_items <= THRESHOLDS["punchlist_manageable_max_open_items"]
            ),
            "overallHealth": overall_health(rate, critical),
        },
    }
