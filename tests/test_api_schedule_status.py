"""
API tests for the schedule project status blueprint.

    PATCH|POST /api/v1/schedule-projects/<id>/status-coordinated
    GET        /api/v1/schedule-projects/<id>/status-coordinated
"""

import pytest

from app.models import db
from app.models.project import Project
from app.models.scheduling import ScheduleProject

BASE = "/api/v1/schedule-projects"


def _url(schedule_project_id):
    return f"{BASE}/{schedule_project_id}/status-coordinated"


class TestScheduleStatusUpdate:
    def test_update_with_reverse_sync(
        self, client, auth_headers, make_project, make_schedule_project,
    ):
        project = make_project("not_started")
        sp = make_schedule_project(project, "planned")

        res = client.patch(
            _url(sp.id),
            json={"status": "in_progress", "progressPercentage": 20, "actualHours": 7.25},
            headers=auth_headers,
        )

        assert res.status_code == 200
        body = res.get_json()
        assert body["success"] is True
        data = body["data"]
        assert data["scheduleProject"]["status"] == "in_progress"
        assert data["scheduleProject"]["progress_percentage"] == 20
        assert data["scheduleProject"]["actual_hours"] == 7.25
        assert data["projectSync"]["updated"] is True
        assert data["projectSync"]["newStatus"] == "in_progress"

        db.session.expire_all()
        assert db.session.get(Project, project.id).status == "in_progress"

    def test_post_is_accepted(self, client, auth_headers, make_project, make_schedule_project):
        sp = make_schedule_project(make_project("in_progress"), "planned")
        res = client.post(_url(sp.id), json={"status": "delayed"}, headers=auth_headers)
        assert res.status_code == 200

    def test_completion_blocked_by_punchlist(
        self, client, auth_headers, make_project, make_schedule_project, make_punchlist_item,
    ):
        project = make_project("in_progress")
        sp = make_schedule_project(project, "in_progress")
        item = make_punchlist_item(project, "open", "critical", schedule_project=sp)

        res = client.patch(_url(sp.id), json={"status": "completed"}, headers=auth_headers)

        assert res.status_code == 400
        body = res.get_json()
        assert body["code"] == "ERR_TRANSITION_BLOCKED"
        assert body["error"] == "Cannot complete schedule project"
        assert [i["id"] for i in body["data"]["blockingItems"]] == [item.id]

        db.session.expire_all()
        assert db.session.get(ScheduleProject, sp.id).status == "in_progress"

    def test_skip_project_sync(self, client, auth_headers, make_project, make_schedule_project):
        project = make_project("not_started")
        sp = make_schedule_project(project, "planned")

        res = client.patch(
            _url(sp.id),
            json={"status": "completed", "skipProjectSync": True},
            headers=auth_headers,
        )

        assert res.status_code == 200
        assert res.get_json()["data"]["projectSync"] is None
        db.session.expire_all()
        assert db.session.get(Project, project.id).status == "not_started"

    @pytest.mark.parametrize("payload,field", [
        ({}, "status"),
        ({"status": "on_hold"}, "status"),
        ({"status": "in_progress", "progressPercentage": 101}, "progressPercentage"),
        ({"status": "in_progress", "progressPercentage": "50"}, "progressPercentage"),
        ({"status": "in_progress", "actualHours": -1}, "actualHours"),
        ({"status": "in_progress", "actualHours": 1000}, "actualHours"),
        ({"status": "in_progress", "actualHours": 1.234}, "actualHours"),
        ({"status": "in_progress", "skipProjectSync": 1}, "skipProjectSync"),
    ])
    def test_invalid_payload(
        self, client, auth_headers, make_project, make_schedule_project, payload, field,
    ):
        sp = make_schedule_project(make_project(), "planned")
        res = client.patch(_url(sp.id), json=payload, headers=auth_headers)
        assert res.status_code == 400
        assert field in res.get_json()["details"]

    def test_unknown_schedule_project(self, client, auth_headers):
        res = client.patch(_url("missing"), json={"status": "delayed"}, headers=auth_headers)
        assert res.status_code == 404
        assert res.get_json()["error"] == "Schedule project not found"

    def test_requires_identity(self, client, make_project, make_schedule_project):
        sp = make_schedule_project(make_project(), "planned")
        res = client.patch(_url(sp.id), json={"status": "delayed"})
        assert res.status_code == 401


class TestCompletionEligibility:
    def test_eligible(self, client, auth_headers, make_project, make_schedule_project):
        sp = make_schedule_project(make_project(), "in_progress")
        res = client.get(_url(sp.id), headers=auth_headers)
        assert res.status_code == 200
        body = res.get_json()
        assert body["data"]["canComplete"] is True
        assert body["message"] == "Schedule project can be completed"

    def test_blocked(
        self, client, auth_headers, make_project, make_schedule_project, make_punchlist_item,
    ):
        project = make_project()
        sp = make_schedule_project(project, "in_progress")
        make_punchlist_item(project, "pending_review", "high", schedule_project=sp)

        res = client.get(_url(sp.id), headers=auth_headers)

        data = res.get_json()["data"]
        assert data["canComplete"] is False
        assert data["blockingCount"] == 1

    def test_other_tenant(self, client, make_project, make_schedule_project, other_tenant):
        sp = make_schedule_project(make_project(), "in_progress")
        res = client.get(
            _url(sp.id), headers={"X-User-Id": "u", "X-Company-Id": other_tenant.id},
        )
        assert res.status_code == 404
