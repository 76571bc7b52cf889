"""
Construction Ops Platform
Project domain model.

Lifecycle states:
    not_started → in_progress | on_track | ahead_of_schedule | behind_schedule
                → on_hold → completed | cancelled

    Any non-terminal status may move to any other status. ``completed`` and
    ``cancelled`` are terminal: leaving them is decided by the status rules
    in ``app/services/status_rules.py``.
"""

from app.models import db
from app.models.base import TenantModel


# ── Constants ────────────────────────────────────────────────────────────────

PROJECT_STATUSES = (
    "not_started",
    "in_progress",
    "on_track",
    "ahead_of_schedule",
    "behind_schedule",
    "on_hold",
    "completed",
    "cancelled",
)

PROJECT_TERMINAL_STATUSES = frozenset({"completed", "cancelled"})

# Statuses in which work is actively being executed on site
PROJECT_ACTIVE_STATUSES = frozenset({
    "in_progress", "on_track", "ahead_of_schedule", "behind_schedule",
})

MEMBER_STATUSES = {"active", "inactive"}


class Project(TenantModel):
    """A construction project owned by exactly one tenant (company)."""

    __tablename__ = "projects"

    name = db.Column(db.String(200), nullable=False)
    notes = db.Column(db.Text, nullable=True)
    status = db.Column(db.String(30), nullable=False, default="not_started")
    progress = db.Column(db.Integer, nullable=False, default=0, comment="0..100")
    actual_start_date = db.Column(db.Date, nullable=True)
    actual_end_date = db.Column(db.Date, nullable=True)
    updated_by = db.Column(db.String(150), nullable=True)

    schedule_projects = db.relationship(
        "ScheduleProject", backref="project", lazy="dynamic",
        foreign_keys="ScheduleProject.project_id",
    )
    punchlist_items = db.relationship(
        "PunchlistItem", backref="project", lazy="dynamic",
        foreign_keys="PunchlistItem.project_id",
    )

    __table_args__ = (
        db.Index("ix_projects_tenant_status", "tenant_id", "status"),
    )

    def to_dict(self) -> dict:
        """Serialize core project fields for API responses."""
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "name": self.name,
            "notes": self.notes,
            "status": self.status,
            "progress": self.progress or 0,
            "actual_start_date": (
                self.actual_start_date.isoformat() if self.actual_start_date else None
            ),
            "actual_end_date": (
                self.actual_end_date.isoformat() if self.actual_end_date else None
            ),
            "updated_by": self.updated_by,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<Project {self.id}: {self.status}>"


class ProjectMember(TenantModel):
    """Assignment of a user to a project. Only counted by status rules."""

    __tablename__ = "project_members"

    project_id = db.Column(
        db.String(36),
        db.ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id = db.Column(db.String(150), nullable=False)
    status = db.Column(db.String(20), nullable=False, default="active")

    __table_args__ = (
        db.UniqueConstraint("project_id", "user_id", name="uq_project_members_project_user"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "project_id": self.project_id,
            "user_id": self.user_id,
            "status": self.status,
        }
