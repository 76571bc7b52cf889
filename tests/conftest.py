"""
Shared pytest fixtures for the Construction Ops Platform test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - default_tenant / other_tenant: Pre-created Tenant entities
    - make_project / make_schedule_project / make_punchlist_item /
      make_member: ORM factories that bypass the coordinator
    - auth_headers: identity headers for the default tenant
"""

import pytest

from app import create_app
from app.models import db as _db
from app.models.auth import Tenant
from app.models.project import Project, ProjectMember
from app.models.punchlist import PunchlistItem
from app.models.scheduling import ScheduleProject

TEST_USER_ID = "user-pm-01"


def _ensure_tenant(name, slug):
    t = Tenant.query.filter_by(slug=slug).first()
    if not t:
        t = Tenant(name=name, slug=slug)
        _db.session.add(t)
        _db.session.commit()
    return t


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    application = create_app("testing")
    return application


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        _ensure_tenant("Test Default", "test-default")
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


@pytest.fixture()
def default_tenant():
    """Return the auto-created default test tenant."""
    return Tenant.query.filter_by(slug="test-default").first()


@pytest.fixture()
def other_tenant():
    """A second tenant for isolation tests."""
    return _ensure_tenant("Other Builders", "other-builders")


@pytest.fixture()
def auth_headers(default_tenant):
    """Identity headers the upstream auth gateway would forward."""
    return {"X-User-Id": TEST_USER_ID, "X-Company-Id": default_tenant.id}


# ── ORM factories (set arbitrary starting states) ────────────────────────


@pytest.fixture()
def make_project(default_tenant):
    def _make(status="not_started", *, tenant=None, name="Harbourside Office Block", **kw):
        p = Project(
            tenant_id=(tenant or default_tenant).id, name=name, status=status, **kw,
        )
        _db.session.add(p)
        _db.session.commit()
        return p
    return _make


@pytest.fixture()
def make_schedule_project(default_tenant):
    def _make(project, status="planned", *, title=None, **kw):
        sp = ScheduleProject(
            tenant_id=project.tenant_id,
            project_id=project.id,
            title=title or f"Work package ({status})",
            status=status,
            **kw,
        )
        _db.session.add(sp)
        _db.session.commit()
        return sp
    return _make


@pytest.fixture()
def make_punchlist_item():
    def _make(project, status="open", priority="medium", *, schedule_project=None, title="Snag"):
        item = PunchlistItem(
            tenant_id=project.tenant_id,
            project_id=project.id,
            related_schedule_project_id=schedule_project.id if schedule_project else None,
            title=title,
            status=status,
            priority=priority,
        )
        _db.session.add(item)
        _db.session.commit()
        return item
    return _make


@pytest.fixture()
def make_member():
    def _make(project, user_id="site-manager", status="active"):
        m = ProjectMember(
            tenant_id=project.tenant_id, project_id=project.id, user_id=user_id, status=status,
        )
        _db.session.add(m)
        _db.session.commit()
        return m
    return _make
