"""
Tenant-scoped entity repositories.

Repositories are the only data accessors the status coordinator uses.
They are constructed explicitly with a SQLAlchemy session (the request's
``db.session`` in production) so tests can inject a failing or stale
repository instead of patching module globals.

    projects = ProjectRepository(db.session)
    project = projects.get_by_id(project_id, tenant_id)

Every read filters by ``tenant_id``. Cross-tenant lookups raise
NotFoundError exactly like a missing row.
"""

from __future__ import annotations

import logging

from sqlalchemy import func, select, update

from app.models.project import Project, ProjectMember
from app.models.punchlist import PunchlistItem
from app.models.scheduling import ScheduleProject
from app.services.helpers.scoped_queries import get_scoped

logger = logging.getLogger(__name__)


class _TenantRepository:
    """Shared get/update for tenant-scoped models."""

    model = None
    # Columns callers may change through ``update``
    writable_fields: frozenset[str] = frozenset()

    def __init__(self, session) -> None:
        self.session = session

    def get_by_id(self, entity_id: str, tenant_id: str):
        return get_scoped(self.model, entity_id, tenant_id=tenant_id, session=self.session)

    def update(self, entity_id: str, tenant_id: str, patch: dict):
        """Apply *patch* to one row and flush. Unknown keys raise ValueError."""
        unknown = set(patch) - self.writable_fields
        if unknown:
            raise ValueError(
                f"{self.model.__name__}: fields {sorted(unknown)} are not writable"
            )
        entity = self.get_by_id(entity_id, tenant_id)
        for field, value in patch.items():
            setattr(entity, field, value)
        self.session.flush()
        return entity


class _ProjectOwnedRepository(_TenantRepository):
    """Adds project-scoped listing and counting for children of a Project."""

    def list_by_project(self, project_id: str, tenant_id: str) -> list:
        """Full fetch of the project's rows, oldest first."""
        stmt = (
            select(self.model)
            .where(
                self.model.project_id == project_id,
                self.model.tenant_id == tenant_id,
            )
            .order_by(self.model.created_at, self.model.id)
        )
        return list(self.session.execute(stmt).scalars().all())

    def count_by_status(self, project_id: str, tenant_id: str) -> dict[str, int]:
        """Return ``{status: count}`` for the project's rows."""
        stmt = (
            select(self.model.status, func.count(self.model.id))
            .where(
                self.model.project_id == project_id,
                self.model.tenant_id == tenant_id,
            )
            .group_by(self.model.status)
        )
        return {status: count for status, count in self.session.execute(stmt).all()}


class ProjectRepository(_TenantRepository):
    model = Project
    writable_fields = frozenset({
        "status", "notes", "progress", "actual_start_date",
        "actual_end_date", "updated_by",
    })

    def update_status_if(
        self,
        project_id: str,
        tenant_id: str,
        expected_status: str,
        patch: dict,
    ) -> Project | None:
        """Compare-and-set write: apply *patch* only while the row still has
        *expected_status*.

        Returns the refreshed project, or None when no row matched (the
        status moved since it was read, or the project vanished).
        """
        unknown = set(patch) - self.writable_fields
        if unknown:
            raise ValueError(f"Project: fields {sorted(unknown)} are not writable")

        stmt = (
            update(Project)
            .where(
                Project.id == project_id,
                Project.tenant_id == tenant_id,
                Project.status == expected_status,
            )
            .values(**patch)
            .execution_options(synchronize_session=False)
        )
        result = self.session.execute(stmt)
        if result.rowcount != 1:
            logger.info(
                "Compare-and-set missed for project=%s expected_status=%s",
                project_id, expected_status,
            )
            return None

        project = self.get_by_id(project_id, tenant_id)
        self.session.refresh(project)
        return project


class ScheduleProjectRepository(_ProjectOwnedRepository):
    model = ScheduleProject
    writable_fields = frozenset({
        "status", "notes", "progress_percentage", "actual_hours",
    })


class PunchlistItemRepository(_ProjectOwnedRepository):
    model = PunchlistItem

    def count_by_status_and_priority(
        self, project_id: str, tenant_id: str,
    ) -> dict[tuple[str, str], int]:
        """Return ``{(status, priority): count}`` for the project's items."""
        stmt = (
            select(PunchlistItem.status, PunchlistItem.priority, func.count(PunchlistItem.id))
            .where(
                PunchlistItem.project_id == project_id,
                PunchlistItem.tenant_id == tenant_id,
            )
            .group_by(PunchlistItem.status, PunchlistItem.priority)
        )
        return {
            (status, priority): count
            for status, priority, count in self.session.execute(stmt).all()
        }

    def list_for_schedule_project(
        self,
        schedule_project_id: str,
        tenant_id: str,
        *,
        statuses=None,
        priorities=None,
    ) -> list[PunchlistItem]:
        stmt = select(PunchlistItem).where(
            PunchlistItem.related_schedule_project_id == schedule_project_id,
            PunchlistItem.tenant_id == tenant_id,
        )
        if statuses:
            stmt = stmt.where(PunchlistItem.status.in_(sorted(statuses)))
        if priorities:
            stmt = stmt.where(PunchlistItem.priority.in_(sorted(priorities)))
        return list(self.session.execute(stmt.order_by(PunchlistItem.id)).scalars().all())


class ProjectMemberRepository(_ProjectOwnedRepository):
    model = ProjectMember


__all__ = [
    "ProjectMemberRepository",
    "ProjectRepository",
    "PunchlistItemRepository",
    "ScheduleProjectRepository",
]
