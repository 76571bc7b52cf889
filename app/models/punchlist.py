"""
Construction Ops Platform
Punchlist item model.

Punchlist items are defects/snags raised against a project. The status
coordinator only counts them (by status and priority); it never mutates them.
"""

from app.models import db
from app.models.base import TenantModel


# ── Constants ────────────────────────────────────────────────────────────────

PUNCHLIST_STATUSES = (
    "open", "assigned", "in_progress", "pending_review", "completed", "rejected",
)

# Statuses that still need work on site
PUNCHLIST_UNRESOLVED_STATUSES = frozenset({
    "open", "assigned", "in_progress", "pending_review",
})

# Counted as "open" by the status summary
PUNCHLIST_OPEN_STATUSES = frozenset({"open", "assigned", "in_progress"})

PUNCHLIST_PRIORITIES = ("low", "medium", "high", "critical")

# Unresolved items at these priorities block schedule project completion
PUNCHLIST_BLOCKING_PRIORITIES = frozenset({"high", "critical"})


class PunchlistItem(TenantModel):
    """A snag list entry raised against a project."""

    __tablename__ = "punchlist_items"

    project_id = db.Column(
        db.String(36),
        db.ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    related_schedule_project_id = db.Column(
        db.String(36),
        db.ForeignKey("schedule_projects.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    title = db.Column(db.String(200), nullable=False)
    status = db.Column(db.String(20), nullable=False, default="open")
    priority = db.Column(db.String(20), nullable=False, default="medium")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "project_id": self.project_id,
            "related_schedule_project_id": self.related_schedule_project_id,
            "title": self.title,
            "status": self.status,
            "priority": self.priority,
        }
