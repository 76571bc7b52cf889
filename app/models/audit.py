"""
Construction Ops Platform
Audit domain model.

Models:
    - AuditLog: immutable, append-only audit trail for status changes.
"""

import json
from datetime import UTC, datetime

from app.models import db


# ── Constants ────────────────────────────────────────────────────────────────

AUDIT_ENTITY_TYPES = {"project", "schedule_project"}

AUDIT_ACTIONS = {
    "project.status_change",
    "schedule_project.status_change",
}

# What caused the change
AUDIT_TRIGGERS = {"user", "project_cascade", "schedule_sync"}


class AuditLog(db.Model):
    """
    Immutable audit trail for every status change.

    One row per change. ``diff_json`` carries the old→new snapshot plus
    the free-text notes and the trigger that caused it.
    """

    __tablename__ = "audit_logs"
    __table_args__ = (
        db.Index("idx_audit_entity", "entity_type", "entity_id"),
        db.Index("idx_audit_project", "project_id"),
        db.Index("idx_audit_ts", "timestamp"),
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(
        db.String(36),
        db.ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    project_id = db.Column(db.String(36), nullable=True)

    entity_type = db.Column(db.String(30), nullable=False, comment="project | schedule_project")
    entity_id = db.Column(db.String(36), nullable=False)
    action = db.Column(db.String(60), nullable=False)
    actor = db.Column(db.String(150), nullable=False, default="system")
    trigger = db.Column(db.String(30), nullable=False, default="user")

    diff_json = db.Column(db.Text, default="{}", comment="JSON: {field: {old, new}, notes}")

    timestamp = db.Column(
        db.DateTime(timezone=True), nullable=False,
        default=lambda: datetime.now(UTC),
    )

    @property
    def diff(self) -> dict:
        """Deserialise *diff_json* to a Python dict."""
        try:
            return json.loads(self.diff_json or "{}")
        except (json.JSONDecodeError, TypeError):
            return {}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "project_id": self.project_id,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "action": self.action,
            "actor": self.actor,
            "trigger": self.trigger,
            "diff": self.diff,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
        }

    def __repr__(self):
        return f"<AuditLog {self.id}: {self.action} on {self.entity_type}/{self.entity_id}>"


# ── Convenience writer ───────────────────────────────────────────────────────

def write_status_audit(
    *,
    tenant_id: str,
    entity_type: str,
    entity_id: str,
    previous_status: str | None,
    new_status: str,
    actor: str | None = None,
    project_id: str | None = None,
    trigger: str = "user",
    notes: str | None = None,
    session=None,
) -> AuditLog:
    """
    Append a single status-change audit row. Uses ``flush`` so callers keep
    transaction control.
    """
    diff = {"status": {"old": previous_status, "new": new_status}}
    if notes:
        diff["notes"] = notes

    log = AuditLog(
        tenant_id=tenant_id,
        project_id=project_id,
        entity_type=entity_type,
        entity_id=str(entity_id),
        action=f"{entity_type}.status_change",
        actor=actor or "system",
        trigger=trigger,
        diff_json=json.dumps(diff, default=str),
    )
    session = session or db.session
    session.add(log)
    session.flush()
    return log
