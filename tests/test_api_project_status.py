"""
API tests for the project status coordination blueprint.

    POST|PATCH /api/v1/projects/<id>/status-coordinated
    GET        /api/v1/projects/<id>/status-coordinated
    POST       /api/v1/projects/<id>/validate-status-change
    GET        /api/v1/projects/<id>/status-summary
"""

import pytest
from sqlalchemy.exc import SQLAlchemyError

from app.models import db
from app.models.audit import AuditLog
from app.models.project import Project
from app.models.scheduling import ScheduleProject
from app.services.repositories import ProjectRepository, ScheduleProjectRepository

BASE = "/api/v1/projects"


def _url(project_id, suffix="status-coordinated"):
    return f"{BASE}/{project_id}/{suffix}"


class TestIdentity:
    @pytest.mark.parametrize("headers", [
        {},
        {"X-User-Id": "u1"},
        {"X-Company-Id": "t1"},
        {"X-User-Id": "  ", "X-Company-Id": "t1"},
    ])
    def test_missing_identity_is_401(self, client, make_project, headers):
        project = make_project()
        res = client.post(_url(project.id), json={"status": "in_progress"}, headers=headers)
        assert res.status_code == 401
        body = res.get_json()
        assert body["success"] is False
        assert body["code"] == "ERR_AUTH_REQUIRED"

    def test_summary_requires_identity(self, client, make_project):
        res = client.get(_url(make_project().id, "status-summary"))
        assert res.status_code == 401


class TestCoordinatedUpdate:
    def test_complete_cascades(
        self, client, auth_headers, make_project, make_schedule_project, make_member,
    ):
        project = make_project("in_progress")
        make_member(project)
        for status in ("planned", "planned", "in_progress"):
            make_schedule_project(project, status)

        res = client.post(
            _url(project.id),
            json={"status": "completed", "notes": "Practical completion certificate issued"},
            headers=auth_headers,
        )

        assert res.status_code == 200
        body = res.get_json()
        assert body["success"] is True
        assert body["message"].startswith("Project status updated to completed.")
        data = body["data"]
        assert data["project"]["status"] == "completed"
        assert data["project"]["progress"] == 100
        assert data["cascadeResults"]["scheduleProjectsUpdated"] == 3
        assert data["cascadeResults"]["scheduleProjectsSkipped"] == 0
        assert data["validation"]["blockers"] == []

    def test_patch_is_accepted(self, client, auth_headers, make_project):
        project = make_project("in_progress")
        res = client.patch(_url(project.id), json={"status": "on_hold"}, headers=auth_headers)
        assert res.status_code == 200
        assert res.get_json()["data"]["project"]["status"] == "on_hold"

    def test_acting_user_recorded(self, client, auth_headers, make_project):
        project = make_project("in_progress")
        client.post(_url(project.id), json={"status": "on_hold"}, headers=auth_headers)

        db.session.expire_all()
        assert db.session.get(Project, project.id).updated_by == auth_headers["X-User-Id"]
        log = AuditLog.query.one()
        assert log.actor == auth_headers["X-User-Id"]
        assert log.tenant_id == auth_headers["X-Company-Id"]

    def test_blocked_transition_is_400(
        self, client, auth_headers, make_project, make_punchlist_item,
    ):
        project = make_project("in_progress")
        make_punchlist_item(project, "open", "critical")

        res = client.post(_url(project.id), json={"status": "completed"}, headers=auth_headers)

        assert res.status_code == 400
        body = res.get_json()
        assert body["success"] is False
        assert body["code"] == "ERR_TRANSITION_BLOCKED"
        assert body["error"] == "Status change blocked"
        assert body["data"]["blockers"] == ["1 critical punchlist item(s) must be resolved first"]
        assert _status(project.id) == "in_progress"

    def test_skip_child_validation(self, client, auth_headers, make_project, make_punchlist_item):
        project = make_project("in_progress")
        make_punchlist_item(project, "open", "critical")

        res = client.post(
            _url(project.id),
            json={"status": "completed", "skipChildValidation": True},
            headers=auth_headers,
        )
        assert res.status_code == 200

    def test_unknown_project_is_404(self, client, auth_headers):
        res = client.post(_url("nope"), json={"status": "on_hold"}, headers=auth_headers)
        assert res.status_code == 404
        assert res.get_json()["error"] == "Project not found"

    def test_other_tenant_project_is_404(self, client, make_project, other_tenant):
        project = make_project("in_progress")
        res = client.post(
            _url(project.id),
            json={"status": "on_hold"},
            headers={"X-User-Id": "intruder", "X-Company-Id": other_tenant.id},
        )
        assert res.status_code == 404
        assert _status(project.id) == "in_progress"

    def test_partial_failure_is_207(
        self, client, auth_headers, make_project, make_schedule_project, monkeypatch,
    ):
        project = make_project("in_progress")
        ok = make_schedule_project(project, "planned")
        broken = make_schedule_project(project, "planned")
        original = ScheduleProjectRepository.update

        def _update(self, entity_id, tenant_id, patch):
            if entity_id == broken.id:
                raise SQLAlchemyError("lock timeout")
            return original(self, entity_id, tenant_id, patch)

        monkeypatch.setattr(ScheduleProjectRepository, "update", _update)

        res = client.post(_url(project.id), json={"status": "cancelled"}, headers=auth_headers)

        assert res.status_code == 207
        body = res.get_json()
        assert body["success"] is False
        assert body["code"] == "ERR_PARTIAL_CASCADE"
        assert body["error"] == "Partial cascade failure"
        results = body["data"]["cascadeResults"]
        assert results["scheduleProjectsUpdated"] == 1
        assert results["scheduleProjectsFailed"] == 1
        assert results["failedScheduleProjects"][0]["id"] == broken.id
        assert _status(project.id) == "cancelled"
        db.session.expire_all()
        assert db.session.get(ScheduleProject, ok.id).status == "cancelled"

    def test_concurrent_change_is_409(self, client, auth_headers, make_project, monkeypatch):
        project = make_project("in_progress")
        monkeypatch.setattr(
            ProjectRepository, "update_status_if",
            lambda self, *args, **kwargs: None,
        )

        res = client.post(_url(project.id), json={"status": "on_hold"}, headers=auth_headers)

        assert res.status_code == 409
        assert res.get_json()["code"] == "ERR_CONFLICT_STATE"
        assert _status(project.id) == "in_progress"


class TestPayloadValidation:
    @pytest.mark.parametrize("payload,field", [
        ({}, "status"),
        ({"status": "demolished"}, "status"),
        ({"status": "on_hold", "notes": "x" * 501}, "notes"),
        ({"status": "on_hold", "notes": 12}, "notes"),
        ({"status": "completed", "actualEndDate": "18/10/2026"}, "actualEndDate"),
        ({"status": "in_progress", "actualStartDate": "2026-02-30"}, "actualStartDate"),
        ({"status": "completed", "skipChildValidation": "yes"}, "skipChildValidation"),
    ])
    def test_invalid_payload_is_400(self, client, auth_headers, make_project, payload, field):
        project = make_project("in_progress")
        res = client.post(_url(project.id), json=payload, headers=auth_headers)
        assert res.status_code == 400
        body = res.get_json()
        assert body["code"] == "ERR_VALIDATION_INVALID"
        assert field in body["details"]
        assert _status(project.id) == "in_progress"

    def test_non_object_body(self, client, auth_headers, make_project):
        res = client.post(_url(make_project().id), json=["completed"], headers=auth_headers)
        assert res.status_code == 400

    def test_non_json_content_type_is_415(self, client, auth_headers, make_project):
        res = client.post(
            _url(make_project().id), data="status=completed",
            content_type="text/plain", headers=auth_headers,
        )
        assert res.status_code == 415


class TestReadEndpoints:
    def test_consistency(self, client, auth_headers, make_project, make_schedule_project):
        project = make_project("not_started")
        make_schedule_project(project, "in_progress")

        res = client.get(_url(project.id), headers=auth_headers)

        assert res.status_code == 200
        data = res.get_json()["data"]
        assert data["isConsistent"] is False
        assert data["inconsistencies"][0]["type"] == "project_schedule_mismatch"

    def test_consistency_unknown_project(self, client, auth_headers):
        res = client.get(_url("missing"), headers=auth_headers)
        assert res.status_code == 404
        assert res.get_json()["code"] == "ERR_NOT_FOUND"

    def test_validate_status_change_is_dry_run(
        self, client, auth_headers, make_project, make_schedule_project,
    ):
        project = make_project("in_progress")
        make_schedule_project(project, "in_progress")

        res = client.post(
            _url(project.id, "validate-status-change"),
            json={"newStatus": "cancelled"},
            headers=auth_headers,
        )

        assert res.status_code == 200
        data = res.get_json()["data"]
        assert data["canChange"] is True
        assert data["warnings"] == ["1 schedule project(s) are in progress and will be cancelled"]
        assert _status(project.id) == "in_progress"
        assert AuditLog.query.count() == 0

    def test_validate_status_change_requires_new_status(self, client, auth_headers, make_project):
        res = client.post(
            _url(make_project().id, "validate-status-change"), json={}, headers=auth_headers,
        )
        assert res.status_code == 400
        assert "newStatus" in res.get_json()["details"]

    def test_status_summary(
        self, client, auth_headers, make_project, make_schedule_project, make_punchlist_item,
    ):
        project = make_project("in_progress", progress=80)
        for _ in range(3):
            make_schedule_project(project, "completed")
        make_schedule_project(project, "in_progress")
        make_punchlist_item(project, "open", "low")

        res = client.get(_url(project.id, "status-summary"), headers=auth_headers)

        assert res.status_code == 200
        body = res.get_json()
        assert body["message"] == "Project status summary retrieved successfully"
        data = body["data"]
        assert data["project"]["progress"] == 80
        assert data["scheduleProjects"]["completionRate"] == 75
        assert data["healthIndicators"] == {
            "scheduleOnTrack": True,
            "punchlistManageable": True,
            "overallHealth": "good",
        }

    def test_unexpected_error_is_500(self, client, auth_headers, make_project, monkeypatch):
        from app.services.status_coordinator import StatusCoordinator

        def _boom(self, project_id, tenant_id):
            raise RuntimeError("boom")

        monkeypatch.setattr(StatusCoordinator, "get_status_summary", _boom)
        res = client.get(_url(make_project().id, "status-summary"), headers=auth_headers)

        assert res.status_code == 500
        body = res.get_json()
        assert body["code"] == "ERR_INTERNAL"
        assert "boom" not in body["error"]


def _status(project_id):
    db.session.expire_all()
    return db.session.get(Project, project_id).status
