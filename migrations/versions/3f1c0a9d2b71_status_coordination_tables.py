"""status_coordination_tables

Creates the tables the status coordinator works on:
  - tenants            — construction companies
  - projects           — tenant-owned projects with lifecycle status
  - schedule_projects  — scheduled work under a project
  - punchlist_items    — snags raised against a project
  - project_members    — user assignments (counted by status rules)
  - audit_logs         — append-only status change trail

Tables are created conditionally so the migration is safe against databases
that already received them via db.create_all() in development.

Revision ID: 3f1c0a9d2b71
Revises:
Create Date: 2026-10-18 09:12:40.118204
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect as sa_inspect


# revision identifiers, used by Alembic.
revision = "3f1c0a9d2b71"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade():
    bind = op.get_bind()
    inspector = sa_inspect(bind)
    existing = set(inspector.get_table_names())

    # ── Tenants ───────────────────────────────────────────────────────────
    if "tenants" not in existing:
        op.create_table(
            "tenants",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("name", sa.String(length=200), nullable=False),
            sa.Column("slug", sa.String(length=100), nullable=False),
            sa.Column("is_active", sa.Boolean(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=True),
            sa.Column("updated_at", sa.DateTime(), nullable=True),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("slug"),
        )

    # ── Projects ──────────────────────────────────────────────────────────
    if "projects" not in existing:
        op.create_table(
            "projects",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("tenant_id", sa.String(length=36), nullable=False),
            sa.Column("name", sa.String(length=200), nullable=False),
            sa.Column("notes", sa.Text(), nullable=True),
            sa.Column("status", sa.String(length=30), nullable=False,
                      server_default="not_started"),
            sa.Column("progress", sa.Integer(), nullable=False, server_default="0",
                      comment="0..100"),
            sa.Column("actual_start_date", sa.Date(), nullable=True),
            sa.Column("actual_end_date", sa.Date(), nullable=True),
            sa.Column("updated_by", sa.String(length=150), nullable=True),
            *_timestamps(),
            sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_projects_tenant_id", "projects", ["tenant_id"])
        op.create_index("ix_projects_tenant_status", "projects", ["tenant_id", "status"])

    # ── Schedule projects ─────────────────────────────────────────────────
    if "schedule_projects" not in existing:
        op.create_table(
            "schedule_projects",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("tenant_id", sa.String(length=36), nullable=False),
            sa.Column("project_id", sa.String(length=36), nullable=False),
            sa.Column("title", sa.String(length=200), nullable=False),
            sa.Column("status", sa.String(length=20), nullable=False,
                      server_default="planned",
                      comment="planned | in_progress | completed | delayed | cancelled"),
            sa.Column("notes", sa.Text(), nullable=True),
            sa.Column("progress_percentage", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("actual_hours", sa.Numeric(precision=6, scale=2), nullable=True),
            *_timestamps(),
            sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_schedule_projects_tenant_id", "schedule_projects", ["tenant_id"])
        op.create_index("ix_schedule_projects_project_id", "schedule_projects", ["project_id"])
        op.create_index(
            "ix_schedule_projects_tenant_project", "schedule_projects",
            ["tenant_id", "project_id"],
        )

    # ── Punchlist items ───────────────────────────────────────────────────
    if "punchlist_items" not in existing:
        op.create_table(
            "punchlist_items",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("tenant_id", sa.String(length=36), nullable=False),
            sa.Column("project_id", sa.String(length=36), nullable=False),
            sa.Column("related_schedule_project_id", sa.String(length=36), nullable=True),
            sa.Column("title", sa.String(length=200), nullable=False),
            sa.Column("status", sa.String(length=20), nullable=False, server_default="open"),
            sa.Column("priority", sa.String(length=20), nullable=False,
                      server_default="medium", comment="low | medium | high | critical"),
            *_timestamps(),
            sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(
                ["related_schedule_project_id"], ["schedule_projects.id"], ondelete="SET NULL",
            ),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_punchlist_items_tenant_id", "punchlist_items", ["tenant_id"])
        op.create_index("ix_punchlist_items_project_id", "punchlist_items", ["project_id"])
        op.create_index(
            "ix_punchlist_items_related_schedule_project_id", "punchlist_items",
            ["related_schedule_project_id"],
        )

    # ── Project members ───────────────────────────────────────────────────
    if "project_members" not in existing:
        op.create_table(
            "project_members",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("tenant_id", sa.String(length=36), nullable=False),
            sa.Column("project_id", sa.String(length=36), nullable=False),
            sa.Column("user_id", sa.String(length=150), nullable=False),
            sa.Column("status", sa.String(length=20), nullable=False, server_default="active"),
            *_timestamps(),
            sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("project_id", "user_id", name="uq_project_members_project_user"),
        )
        op.create_index("ix_project_members_tenant_id", "project_members", ["tenant_id"])
        op.create_index("ix_project_members_project_id", "project_members", ["project_id"])

    # ── Audit logs ────────────────────────────────────────────────────────
    if "audit_logs" not in existing:
        op.create_table(
            "audit_logs",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("tenant_id", sa.String(length=36), nullable=False),
            sa.Column("project_id", sa.String(length=36), nullable=True),
            sa.Column("entity_type", sa.String(length=30), nullable=False,
                      comment="project | schedule_project"),
            sa.Column("entity_id", sa.String(length=36), nullable=False),
            sa.Column("action", sa.String(length=60), nullable=False),
            sa.Column("actor", sa.String(length=150), nullable=False, server_default="system"),
            sa.Column("trigger", sa.String(length=30), nullable=False, server_default="user"),
            sa.Column("diff_json", sa.Text(), nullable=True,
                      comment="JSON: {field: {old, new}, notes}"),
            sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
            sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_audit_logs_tenant_id", "audit_logs", ["tenant_id"])
        op.create_index("idx_audit_entity", "audit_logs", ["entity_type", "entity_id"])
        op.create_index("idx_audit_project", "audit_logs", ["project_id"])
        op.create_index("idx_audit_ts", "audit_logs", ["timestamp"])


def downgrade():
    for table in (
        "audit_logs",
        "project_members",
        "punchlist_items",
        "schedule_projects",
        "projects",
        "tenants",
    ):
        op.drop_table(table)
