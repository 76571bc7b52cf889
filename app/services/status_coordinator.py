"""
Status Coordinator

Authoritative operator for project status transitions and their cascade to
schedule projects.

    validate → compare-and-set project write (+ audit) → commit
             → load schedule projects → cascade policy per child
             → per-child savepoint writes → result report

The project write is committed before any cascade. A child whose write fails
is rolled back alone and reported in the ``failed`` bucket; its siblings
still cascade and the project change stays committed.

Blocked transitions and partial cascade failures are returned as
StatusCoordinationResult values, never raised. A second compare-and-set miss
raises ConcurrentStatusChangeError.

Usage:
    coordinator = StatusCoordinator(db.session)
    result = coordinator.update_project_status_with_cascade(
        project_id, tenant_id, "completed", acting_user_id=user_id,
    )
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date

from sqlalchemy.exc import SQLAlchemyError

from app.core.exceptions import ConcurrentStatusChangeError, NotFoundError, ValidationError
from app.models.audit import write_status_audit
from app.models.punchlist import PUNCHLIST_BLOCKING_PRIORITIES, PUNCHLIST_UNRESOLVED_STATUSES
from app.models.scheduling import SCHEDULE_STATUSES, SCHEDULE_TERMINAL_STATUSES
from app.services.cascade_policy import resolve_schedule_cascade, skip_reason
from app.services.repositories import (
    ProjectMemberRepository,
    ProjectRepository,
    PunchlistItemRepository,
    ScheduleProjectRepository,
)
from app.services.status_rules import (
    STATUS_RULES,
    StatusValidationResult,
    evaluate_status_change,
)
from app.services.status_summary import build_status_summary

logger = logging.getLogger(__name__)


# ── Result kinds ─────────────────────────────────────────────────────────────

TRANSITION_BLOCKED = "transition_blocked"
NOT_FOUND = "not_found"
PARTIAL_CASCADE_FAILURE = "partial_cascade_failure"
PERSIST_FAILED = "persist_failed"

# Compare-and-set: first try plus one re-read/re-validate retry
_CAS_ATTEMPTS = 2

# Entering these stamps actual_start_date when the project has none
_START_STATUSES = frozenset({"in_progress", "on_track"})

# Rule ids bypassed by skip_child_validation (mandatory rules still run)
_CHILD_VALIDATION_RULES = frozenset(rule.rule_id for rule in STATUS_RULES)


@dataclass
class StatusCoordinationResult:
    """Report of one coordinated project status change. Never persisted."""
    success: bool
    message: str
    project: dict | None = None
    updated: list[dict] = field(default_factory=list)
    skipped: list[dict] = field(default_factory=list)
    failed: list[dict] = field(default_factory=list)
    validation: StatusValidationResult | None = None
    error: str | None = None
    error_kind: str | None = None

    @property
    def updated_count(self) -> int:
        return len(self.updated)

    @property
    def skipped_count(self) -> int:
        return len(self.skipped)

    @property
    def failed_count(self) -> int:
        return len(self.failed)

    def to_dict(self) -> dict:
        data = {
            "project": self.project,
            "cascadeResults": {
                "scheduleProjectsUpdated": self.updated_count,
                "scheduleProjectsSkipped": self.skipped_count,
                "scheduleProjectsFailed": self.failed_count,
                "updatedScheduleProjects": self.updated,
                "skippedScheduleProjects": self.skipped,
                "failedScheduleProjects": self.failed,
            },
        }
        if self.validation is not None:
            data["validation"] = {
                "warnings": self.validation.warnings,
                "blockers": self.validation.blockers,
            }
            if self.error_kind == TRANSITION_BLOCKED:
                data["blockers"] = self.validation.blockers
                data["warnings"] = self.validation.warnings
        return data


@dataclass
class ScheduleStatusUpdateResult:
    """Report of one schedule project status change plus the reverse sync."""
    success: bool
    message: str
    schedule_project: dict | None = None
    project_sync: dict | None = None
    blocking_items: list[dict] = field(default_factory=list)
    error: str | None = None
    error_kind: str | None = None

    def to_dict(self) -> dict:
        data = {
            "scheduleProject": self.schedule_project,
            "projectSync": self.project_sync,
        }
        if self.blocking_items:
            data["blockingItems"] = self.blocking_items
        return data


def _schedule_patch(new_status, progress_percentage=None, actual_hours=None, notes=None) -> dict:
    patch = {"status": new_status}
    if progress_percentage is not None:
        patch["progress_percentage"] = progress_percentage
    if actual_hours is not None:
        patch["actual_hours"] = actual_hours
    if notes is not None:
        patch["notes"] = notes
    if new_status == "completed":
        patch["progress_percentage"] = 100
    return patch


class StatusCoordinator:
    """Coordinates project ↔ schedule project status changes for one request.

    Repositories default to ones built on *session*; tests pass their own.
    """

    def __init__(
        self,
        session,
        *,
        projects: ProjectRepository | None = None,
        schedule_projects: ScheduleProjectRepository | None = None,
        punchlist_items: PunchlistItemRepository | None = None,
        members: ProjectMemberRepository | None = None,
    ) -> None:
        self.session = session
        self.projects = projects or ProjectRepository(session)
        self.schedule_projects = schedule_projects or ScheduleProjectRepository(session)
        self.punchlist_items = punchlist_items or PunchlistItemRepository(session)
        self.members = members or ProjectMemberRepository(session)

    # ── Validation ───────────────────────────────────────────────────────

    def child_entity_counts(self, project_id: str, tenant_id: str) -> dict:
        """entity type → status → count, as consumed by the status rules."""
        punchlist = self.punchlist_items.count_by_status_and_priority(project_id, tenant_id)
        by_status: dict[str, int] = {}
        critical: dict[str, int] = {}
        for (status, priority), count in punchlist.items():
            by_status[status] = by_status.get(status, 0) + count
            if priority == "critical":
                critical[status] = critical.get(status, 0) + count

        members = self.members.count_by_status(project_id, tenant_id)
        return {
            "scheduleProjects": self.schedule_projects.count_by_status(project_id, tenant_id),
            "punchlistItems": by_status,
            "criticalPunchlistItems": critical,
            "teamMembers": {"active": members.get("active", 0)},
        }

    def validate_status_change(
        self, project_id: str, tenant_id: str, new_status: str,
    ) -> StatusValidationResult:
        """Run the status rules for a prospective change. Raises NotFoundError."""
        project = self.projects.get_by_id(project_id, tenant_id)
        return evaluate_status_change(
            project.status, new_status, self.child_entity_counts(project_id, tenant_id),
        )

    # ── Project → schedule projects ──────────────────────────────────────

    def update_project_status_with_cascade(
        self,
        project_id: str,
        tenant_id: str,
        new_status: str,
        notes: str | None = None,
        acting_user_id: str | None = None,
        actual_start_date: date | None = None,
        actual_end_date: date | None = None,
        skip_child_validation: bool = False,
    ) -> StatusCoordinationResult:
        logger.info(
            "Coordinating status change project=%s tenant=%s new_status=%s",
            project_id, tenant_id, new_status,
        )
        try:
            project = self.projects.get_by_id(project_id, tenant_id)
        except NotFoundError:
            return StatusCoordinationResult(
                success=False,
                message="The requested project does not exist or you do not have access to it.",
                error="Project not found",
                error_kind=NOT_FOUND,
            )

        skip_rules = _CHILD_VALIDATION_RULES if skip_child_validation else frozenset()

        for attempt in range(1, _CAS_ATTEMPTS + 1):
            expected_status = project.status
            validation = evaluate_status_change(
                expected_status,
                new_status,
                self.child_entity_counts(project_id, tenant_id),
                skip_rules=skip_rules,
            )
            if not validation.can_change:
                logger.info(
                    "Status change blocked project=%s %s -> %s: %s",
                    project_id, expected_status, new_status, validation.blockers,
                )
                return StatusCoordinationResult(
                    success=False,
                    message=f"Cannot change project status to {new_status}: "
                            + "; ".join(validation.blockers),
                    project=project.to_dict(),
                    validation=validation,
                    error="Status change blocked",
                    error_kind=TRANSITION_BLOCKED,
                )

            patch = self._project_patch(
                project, new_status, acting_user_id, actual_start_date, actual_end_date,
            )
            try:
                updated_project = self.projects.update_status_if(
                    project_id, tenant_id, expected_status, patch,
                )
                if updated_project is not None:
                    if expected_status != new_status:
                        write_status_audit(
                            tenant_id=tenant_id,
                            project_id=project_id,
                            entity_type="project",
                            entity_id=project_id,
                            previous_status=expected_status,
                            new_status=new_status,
                            actor=acting_user_id,
                            notes=notes,
                            session=self.session,
                        )
                    self.session.commit()
                    break
            except SQLAlchemyError:
                self.session.rollback()
                logger.exception("Persisting status failed for project=%s", project_id)
                return StatusCoordinationResult(
                    success=False,
                    message="Failed to update project status. No schedule projects were changed.",
                    validation=validation,
                    error="Failed to update project status",
                    error_kind=PERSIST_FAILED,
                )

            self.session.rollback()
            if attempt == _CAS_ATTEMPTS:
                logger.warning(
                    "Concurrent status change on project=%s (expected %s), giving up",
                    project_id, expected_status,
                )
                raise ConcurrentStatusChangeError(project_id, expected_status)

            logger.warning(
                "Concurrent status change on project=%s (expected %s), re-validating",
                project_id, expected_status,
            )
            try:
                project = self.projects.get_by_id(project_id, tenant_id)
            except NotFoundError:
                return StatusCoordinationResult(
                    success=False,
                    message="The requested project does not exist or you do not have access to it.",
                    error="Project not found",
                    error_kind=NOT_FOUND,
                )

        updated, skipped, failed = self._cascade(
            project_id, tenant_id, new_status, acting_user_id,
        )

        message = (
            f"Project status updated to {new_status}. "
            f"{len(updated)} schedule project(s) updated, {len(skipped)} skipped"
        )
        if failed:
            message += f", {len(failed)} failed"
        message += "."

        logger.info(
            "Status change done project=%s -> %s updated=%d skipped=%d failed=%d",
            project_id, new_status, len(updated), len(skipped), len(failed),
        )

        return StatusCoordinationResult(
            success=not failed,
            message=message,
            project=updated_project.to_dict(),
            updated=updated,
            skipped=skipped,
            failed=failed,
            validation=validation,
            error="Partial cascade failure" if failed else None,
            error_kind=PARTIAL_CASCADE_FAILURE if failed else None,
        )

    def _project_patch(self, project, new_status, acting_user_id=None,
                       actual_start_date=None, actual_end_date=None) -> dict:
        patch = {"status": new_status}
        if acting_user_id:
            patch["updated_by"] = acting_user_id
        if new_status in _START_STATUSES:
            if actual_start_date:
                patch["actual_start_date"] = actual_start_date
            elif project.actual_start_date is None:
                patch["actual_start_date"] = date.today()
        if new_status == "completed" and project.status != "completed":
            patch["progress"] = 100
            patch["actual_end_date"] = actual_end_date or date.today()
        return patch

    def _cascade(self, project_id, tenant_id, new_status, acting_user_id):
        """Apply the cascade policy to every schedule project of the project."""
        updated, skipped, failed = [], [], []

        for child in self.schedule_projects.list_by_project(project_id, tenant_id):
            child_id, title, current = child.id, child.title, child.status
            target = resolve_schedule_cascade(new_status, current)
            if target is None:
                skipped.append({
                    "id": child_id,
                    "title": title,
                    "status": current,
                    "reason": skip_reason(new_status, current),
                })
                continue

            try:
                with self.session.begin_nested():
                    self.schedule_projects.update(child_id, tenant_id, _schedule_patch(target))
                    write_status_audit(
                        tenant_id=tenant_id,
                        project_id=project_id,
                        entity_type="schedule_project",
                        entity_id=child_id,
                        previous_status=current,
                        new_status=target,
                        actor=acting_user_id,
                        trigger="project_cascade",
                        notes=f"Auto-updated due to project status change to {new_status}",
                        session=self.session,
                    )
                updated.append({
                    "id": child_id,
                    "title": title,
                    "previousStatus": current,
                    "newStatus": target,
                })
            except Exception as exc:
                logger.warning(
                    "Cascade to schedule project=%s (%s -> %s) failed: %s",
                    child_id, current, target, exc,
                )
                failed.append({
                    "id": child_id,
                    "title": title,
                    "status": current,
                    "targetStatus": target,
                    "error": "Database write failed"
                    if isinstance(exc, SQLAlchemyError) else "Schedule project update failed",
                })

        self.session.commit()
        return updated, skipped, failed

    # ── Consistency & summary ────────────────────────────────────────────

    def validate_status_consistency(self, project_id: str, tenant_id: str) -> dict:
        """Report project/schedule project combinations that contradict each other."""
        project = self.projects.get_by_id(project_id, tenant_id)
        children = self.schedule_projects.list_by_project(project_id, tenant_id)
        inconsistencies = []

        if project.status == "completed":
            incomplete = [c for c in children if c.status not in SCHEDULE_TERMINAL_STATUSES]
            if incomplete:
                inconsistencies.append({
                    "type": "project_schedule_mismatch",
                    "message": f"Project is completed but {len(incomplete)} "
                               "schedule projects are not completed",
                    "items": [{"id": c.id, "title": c.title, "status": c.status} for c in incomplete],
                })

        if project.status == "not_started":
            active = [c for c in children if c.status == "in_progress"]
            if active:
                inconsistencies.append({
                    "type": "project_schedule_mismatch",
                    "message": f"Project not started but {len(active)} "
                               "schedule projects are in progress",
                    "items": [{"id": c.id, "title": c.title, "status": c.status} for c in active],
                })

        return {
            "projectId": project.id,
            "projectStatus": project.status,
            "isConsistent": not inconsistencies,
            "inconsistencies": inconsistencies,
        }

    def get_status_summary(self, project_id: str, tenant_id: str) -> dict:
        project = self.projects.get_by_id(project_id, tenant_id)
        return build_status_summary(
            project,
            self.schedule_projects.count_by_status(project_id, tenant_id),
            self.punchlist_items.count_by_status_and_priority(project_id, tenant_id),
        )

    # ── Schedule project → project ───────────────────────────────────────

    def can_complete_schedule_project(self, schedule_project_id: str, tenant_id: str) -> dict:
        """Unresolved high/critical punchlist items block completion."""
        schedule_project = self.schedule_projects.get_by_id(schedule_project_id, tenant_id)
        blocking = self.punchlist_items.list_for_schedule_project(
            schedule_project.id,
            tenant_id,
            statuses=PUNCHLIST_UNRESOLVED_STATUSES,
            priorities=PUNCHLIST_BLOCKING_PRIORITIES,
        )
        return {
            "scheduleProjectId": schedule_project.id,
            "status": schedule_project.status,
            "canComplete": not blocking,
            "blockingCount": len(blocking),
            "blockingItems": [
                {"id": i.id, "title": i.title, "status": i.status, "priority": i.priority}
                for i in blocking
            ],
        }

    def update_schedule_project_status_with_sync(
        self,
        schedule_project_id: str,
        tenant_id: str,
        new_status: str,
        progress_percentage: int | None = None,
        actual_hours: float | None = None,
        notes: str | None = None,
        acting_user_id: str | None = None,
        skip_dependency_validation: bool = False,
        skip_project_sync: bool = False,
    ) -> ScheduleStatusUpdateResult:
        if new_status not in SCHEDULE_STATUSES:
            raise ValidationError(
                "Validation failed",
                details={"status": f"Must be one of: {', '.join(SCHEDULE_STATUSES)}"},
            )

        schedule_project = self.schedule_projects.get_by_id(schedule_project_id, tenant_id)
        previous_status = schedule_project.status

        if new_status == "completed" and not skip_dependency_validation:
            eligibility = self.can_complete_schedule_project(schedule_project.id, tenant_id)
            if not eligibility["canComplete"]:
                return ScheduleStatusUpdateResult(
                    success=False,
                    message=f"{eligibility['blockingCount']} high or critical punchlist "
                            "item(s) must be resolved before completion",
                    schedule_project=schedule_project.to_dict(),
                    blocking_items=eligibility["blockingItems"],
                    error="Cannot complete schedule project",
                    error_kind=TRANSITION_BLOCKED,
                )

        schedule_project = self.schedule_projects.update(
            schedule_project.id,
            tenant_id,
            _schedule_patch(new_status, progress_percentage, actual_hours, notes),
        )
        write_status_audit(
            tenant_id=tenant_id,
            project_id=schedule_project.project_id,
            entity_type="schedule_project",
            entity_id=schedule_project.id,
            previous_status=previous_status,
            new_status=new_status,
            actor=acting_user_id,
            notes=notes,
            session=self.session,
        )
        self.session.commit()
        logger.info(
            "Schedule project=%s status %s -> %s",
            schedule_project.id, previous_status, new_status,
        )

        project_sync = None
        if not skip_project_sync:
            project_sync = self.sync_project_from_schedule_projects(
                schedule_project.project_id, tenant_id, acting_user_id,
            )

        return ScheduleStatusUpdateResult(
            success=True,
            message=f"Schedule project status updated to {new_status}.",
            schedule_project=schedule_project.to_dict(),
            project_sync=project_sync,
        )

    def sync_project_from_schedule_projects(
        self, project_id: str, tenant_id: str, acting_user_id: str | None = None,
    ) -> dict:
        """Derive the project status from its schedule projects.

        all completed                              → completed
        any in_progress/completed, project not_started → in_progress
        all cancelled, project not terminal        → cancelled
        """
        project = self.projects.get_by_id(project_id, tenant_id)
        counts = self.schedule_projects.count_by_status(project_id, tenant_id)
        total = sum(counts.values())
        if total == 0:
            return {"updated": False, "reason": "No schedule projects found"}

        completed = counts.get("completed", 0)
        in_progress = counts.get("in_progress", 0)
        cancelled = counts.get("cancelled", 0)

        target = None
        if completed == total:
            if project.status != "completed":
                target = "completed"
        elif in_progress > 0 or completed > 0:
            if project.status == "not_started":
                target = "in_progress"
        elif cancelled == total:
            if project.status not in ("completed", "cancelled"):
                target = "cancelled"

        if target is None:
            return {
                "updated": False,
                "reason": f"No status change needed. Current: {project.status}, "
                          f"schedule counts: {dict(sorted(counts.items()))}",
            }

        previous_status = project.status
        updated_project = self.projects.update_status_if(
            project_id,
            tenant_id,
            previous_status,
            self._project_patch(project, target, acting_user_id),
        )
        if updated_project is None:
            self.session.rollback()
            logger.warning("Reverse sync skipped, project=%s status moved", project_id)
            return {"updated": False, "reason": "Project status changed concurrently"}

        write_status_audit(
            tenant_id=tenant_id,
            project_id=project_id,
            entity_type="project",
            entity_id=project_id,
            previous_status=previous_status,
            new_status=target,
            actor=acting_user_id,
            trigger="schedule_sync",
            session=self.session,
        )
        self.session.commit()
        logger.info("Reverse sync project=%s %s -> %s", project_id, previous_status, target)

        return {
            "updated": True,
            "previousStatus": previous_status,
            "newStatus": target,
            "reason": f"Based on schedule projects: {dict(sorted(counts.items()))}",
            "updatedBy": acting_user_id or "system",
        }
