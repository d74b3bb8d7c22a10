"""
Shared pytest fixtures for the BuildBoard test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - make_user / make_project / make_scope / make_activity: row factories
    - assign_project / assign_to_scope: assignment helpers
    - auth_headers: Bearer header for a user id
    - cc_user / manager / site: common scenario data
"""

import pytest

from buildboard import create_app
from buildboard.models import db as _db
from buildboard.models.auth import (
    ROLE_CONSTRUCTION_MANAGER,
    ROLE_CONTROL_CENTER,
    ProjectAssignment,
    ScopeAssignment,
    User,
    UserProfile,
)
from buildboard.models.project import Activity, Project, Scope
from buildboard.services.jwt_service import generate_access_token


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    return create_app("testing")


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
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── Factories ────────────────────────────────────────────────────────────


@pytest.fixture()
def make_user():
    """Create a User and, unless ``role`` is None, its profile."""
    counter = {"n": 0}

    def _make(name="Test User", role=ROLE_CONSTRUCTION_MANAGER, email=None, job_title=None):
        counter["n"] += 1
        user = User(email=email or f"user{counter['n']}@example.com")
        _db.session.add(user)
        _db.session.flush()
        if role is not None:
            _db.session.add(UserProfile(
                user_id=user.id, name=name, role=role, job_title=job_title,
            ))
        _db.session.commit()
        return user

    return _make


@pytest.fixture()
def make_project():
    def _make(name="Solar Farm", **kw):
        project = Project(name=name, **kw)
        _db.session.add(project)
        _db.session.commit()
        return project

    return _make


@pytest.fixture()
def make_scope():
    def _make(project, name="Electrical"):
        scope = Scope(project_id=project.id, name=name)
        _db.session.add(scope)
        _db.session.commit()
        return scope

    return _make


@pytest.fixture()
def make_activity():
    def _make(scope, name="Trenching", unit="linear feet"):
        activity = Activity(
            scope_id=scope.id, project_id=scope.project_id, name=name, unit=unit,
        )
        _db.session.add(activity)
        _db.session.commit()
        return activity

    return _make


@pytest.fixture()
def assign_project():
    """Give a user a ProjectAssignment."""
    def _assign(user, project):
        _db.session.add(ProjectAssignment(user_id=user.id, project_id=project.id))
        _db.session.commit()

    return _assign


@pytest.fixture()
def assign_to_scope():
    def _assign(user, scope):
        _db.session.add(ScopeAssignment(
            user_id=user.id, scope_id=scope.id, project_id=scope.project_id,
        ))
        _db.session.commit()

    return _assign


@pytest.fixture()
def auth_headers():
    def _headers(user_id):
        return {"Authorization": f"Bearer {generate_access_token(user_id)}"}

    return _headers


# ── Scenario fixtures ────────────────────────────────────────────────────


@pytest.fixture()
def cc_user(make_user):
    return make_user("Casey Control", role=ROLE_CONTROL_CENTER, email="cc@example.com")


@pytest.fixture()
def manager(make_user):
    return make_user("Mike Rodriguez", email="mike@example.com", job_title="foreman")


@pytest.fixture()
def site(make_project, make_scope, make_activity):
    """One project with one scope and two activities."""
    project = make_project("Solar Farm Alpha")
    scope = make_scope(project, "Electrical")
    trenching = make_activity(scope, "DC Cable Trenching", "linear feet")
    wiring = make_activity(scope, "Panel Wiring", "panels")
    return {"project": project, "scope": scope, "trenching": trenching, "wiring": wiring}
