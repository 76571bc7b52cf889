"""
Construction Ops Platform
Schedule project model.

A ScheduleProject is a scheduled unit of work (a trade, a phase, an
inspection window) under a Project. It references its Project weakly via
``project_id`` + ``tenant_id``.

Lifecycle states:
    planned → in_progress → completed
    planned | in_progress → delayed → in_progress
    any non-terminal → cancelled
"""

from app.models import db
from app.models.base import TenantModel


# ── Constants ────────────────────────────────────────────────────────────────

SCHEDULE_STATUSES = ("planned", "in_progress", "completed", "delayed", "cancelled")

SCHEDULE_TERMINAL_STATUSES = frozenset({"completed", "cancelled"})

SCHEDULE_OPEN_STATUSES = frozenset({"planned", "in_progress", "delayed"})


class ScheduleProject(TenantModel):
    """Scheduled work item belonging to one Project in the same tenant."""

    __tablename__ = "schedule_projects"

    project_id = db.Column(
        db.String(36),
        db.ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title = db.Column(db.String(200), nullable=False)
    status = db.Column(db.String(20), nullable=False, default="planned")
    notes = db.Column(db.Text, nullable=True)
    progress_percentage = db.Column(db.Integer, nullable=False, default=0)
    actual_hours = db.Column(db.Numeric(6, 2), nullable=True)

    __table_args__ = (
        db.Index("ix_schedule_projects_tenant_project", "tenant_id", "project_id"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "project_id": self.project_id,
            "title": self.title,
            "status": self.status,
            "notes": self.notes,
            "progress_percentage": self.progress_percentage or 0,
            "actual_hours": float(self.actual_hours) if self.actual_hours is not None else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<ScheduleProject {self.id}: {self.status}>"
