#!/usr/bin/env python3
"""
Construction Ops Platform — Demo Data Seed Script.

Company: Meridian Builders Ltd.

Creates one tenant with a mid-construction project, its schedule projects,
punchlist items and team members, so the status coordination endpoints have
something to act on.

Usage:
    python scripts/seed_demo_data.py
    python scripts/seed_demo_data.py --append
    flask seed-demo
"""

import argparse
import logging
import sys

sys.path.insert(0, ".")

from app.models import db
from app.models.auth import Tenant
from app.models.project import Project, ProjectMember
from app.models.punchlist import PunchlistItem
from app.models.scheduling import ScheduleProject

logger = logging.getLogger(__name__)

DEMO_TENANT_SLUG = "meridian-builders"

SCHEDULE_PROJECTS = [
    {"key": "groundworks", "title": "Groundworks & Foundations", "status": "completed",
     "progress_percentage": 100, "actual_hours": 412.5},
    {"key": "frame", "title": "Structural Steel Frame", "status": "in_progress",
     "progress_percentage": 60, "actual_hours": 288},
    {"key": "mep", "title": "MEP First Fix", "status": "planned"},
    {"key": "envelope", "title": "Building Envelope", "status": "delayed",
     "progress_percentage": 15, "actual_hours": 40},
]

PUNCHLIST_ITEMS = [
    {"title": "Anchor bolt misaligned at grid C4", "status": "completed",
     "priority": "high", "schedule": "groundworks"},
    {"title": "Missing fire stopping at level 2 riser", "status": "open",
     "priority": "critical", "schedule": "frame"},
    {"title": "Touch-up primer on beam B-112", "status": "assigned",
     "priority": "low", "schedule": "frame"},
    {"title": "Sleeve position clash with duct run", "status": "pending_review",
     "priority": "medium", "schedule": "mep"},
]

MEMBERS = [
    ("site-manager-01", "active"),
    ("planner-02", "active"),
    ("qs-03", "inactive"),
]


def seed_demo(append=False):
    """Insert the demo tenant and project. Returns a count summary.

    Must run inside an application context.
    """
    if not append:
        existing = db.session.execute(
            db.select(Tenant).where(Tenant.slug == DEMO_TENANT_SLUG)
        ).scalar_one_or_none()
        if existing is not None:
            db.session.delete(existing)
            db.session.commit()

    tenant = Tenant(name="Meridian Builders Ltd.", slug=DEMO_TENANT_SLUG)
    if append:
        tenant.slug = f"{DEMO_TENANT_SLUG}-{db.session.query(Tenant).count() + 1}"
    db.session.add(tenant)
    db.session.flush()

    project = Project(
        tenant_id=tenant.id,
        name="Harbourside Office Block",
        status="in_progress",
        progress=35,
    )
    db.session.add(project)
    db.session.flush()

    schedule_ids = {}
    for row in SCHEDULE_PROJECTS:
        sp = ScheduleProject(
            tenant_id=tenant.id,
            project_id=project.id,
            title=row["title"],
            status=row["status"],
            progress_percentage=row.get("progress_percentage", 0),
            actual_hours=row.get("actual_hours"),
        )
        db.session.add(sp)
        db.session.flush()
        schedule_ids[row["key"]] = sp.id

    for row in PUNCHLIST_ITEMS:
        db.session.add(PunchlistItem(
            tenant_id=tenant.id,
            project_id=project.id,
            related_schedule_project_id=schedule_ids[row["schedule"]],
            title=row["title"],
            status=row["status"],
            priority=row["priority"],
        ))

    for user_id, status in MEMBERS:
        db.session.add(ProjectMember(
            tenant_id=tenant.id, project_id=project.id, user_id=user_id, status=status,
        ))

    db.session.commit()

    summary = {
        "tenant_id": tenant.id,
        "project_id": project.id,
        "schedule_projects": len(SCHEDULE_PROJECTS),
        "punchlist_items": len(PUNCHLIST_ITEMS),
        "members": len(MEMBERS),
    }
    logger.info("Demo data seeded: %s", summary)
    return summary


def main():
    parser = argparse.ArgumentParser(description="Construction Ops demo seed")
    parser.add_argument("--append", action="store_true",
                        help="Keep the existing demo tenant and add another")
    args = parser.parse_args()

    from app import create_app

    app = create_app()
    print(f"  DB: {app.config['SQLALCHEMY_DATABASE_URI']}\n")

    with app.app_context():
        db.create_all()
        summary = seed_demo(append=args.append)

    print("  Seeded:")
    for key, value in summary.items():
        print(f"    {key:<20} {value}")
    print("\n  Try:")
    print(f"    curl -H 'X-User-Id: site-manager-01' -H 'X-Company-Id: {summary['tenant_id']}' \\")
    print(f"         http://localhost:5000/api/v1/projects/{summary['project_id']}/status-summary")


if __name__ == "__main__":
    main()
