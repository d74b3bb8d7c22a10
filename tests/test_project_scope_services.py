"""
BuildBoard
Tests: project, scope, activity and assignment services.
"""

import pytest

from buildboard.core.exceptions import (
    AccessDeniedError,
    AuthenticationRequiredError,
    NotFoundError,
    ValidationError,
)
from buildboard.models import db as _db
from buildboard.models.auth import ProjectAssignment, ScopeAssignment
from buildboard.models.daily_entry import DailyEntry
from buildboard.models.project import Activity, Scope
from buildboard.services import entry_service, project_service, scope_service


# ═════════════════════════════════════════════════════════════════════════════
# PROJECTS
# ═════════════════════════════════════════════════════════════════════════════

class TestProjects:
    def test_create_project(self, cc_user):
        project = project_service.create_project(cc_user.id, {"name": "  Solar Farm  "})
        assert project.id is not None
        assert project.name == "Solar Farm"
        assert project.status == "active"
        assert project.leaderboard_enabled is True
        assert project.created_by == cc_user.id

    def test_create_requires_control_center(self, manager):
        with pytest.raises(AccessDeniedError):
            project_service.create_project(manager.id, {"name": "Nope"})
        with pytest.raises(AuthenticationRequiredError):
            project_service.create_project(None, {"name": "Nope"})

    @pytest.mark.parametrize("data", [{}, {"name": "  "}, {"name": "X", "status": "paused"}])
    def test_create_validation(self, cc_user, data):
        with pytest.raises(ValidationError):
            project_service.create_project(cc_user.id, data)

    def test_update_project(self, cc_user, site):
        project = project_service.update_project(
            cc_user.id, site["project"].id, {"status": "completed", "description": "Done"},
        )
        assert project.status == "completed"
        assert project.updated_by == cc_user.id

    def test_update_denied_for_assigned_manager(self, manager, site, assign_project):
        assign_project(manager, site["project"])
        with pytest.raises(AccessDeniedError):
            project_service.update_project(manager.id, site["project"].id, {"name": "X"})

    def test_leaderboard_mode(self, cc_user, site):
        project = project_service.set_leaderboard_mode(cc_user.id, site["project"].id, False)
        assert project.leaderboard_enabled is False
        with pytest.raises(ValidationError):
            project_service.set_leaderboard_mode(cc_user.id, site["project"].id, "no")
        with pytest.raises(NotFoundError):
            project_service.set_leaderboard_mode(cc_user.id, 999, True)

    def test_list_projects_by_role(self, cc_user, manager, make_user, make_project,
                                   assign_project):
        first = make_project("Alpha")
        make_project("Beta")
        assign_project(manager, first)
        newcomer = make_user(role=None)

        assert [p["name"] for p in project_service.list_projects(cc_user.id)] == ["Alpha", "Beta"]
        assert [p["name"] for p in project_service.list_projects(newcomer.id)] == ["Alpha", "Beta"]
        assert [p["name"] for p in project_service.list_projects(manager.id)] == ["Alpha"]
        assert project_service.list_projects(None) == []

    def test_assign_is_idempotent(self, cc_user, manager, site):
        first = project_service.assign_user(cc_user.id, site["project"].id, manager.id)
        second = project_service.assign_user(cc_user.id, site["project"].id, manager.id)
        assert first.id == second.id
        assert ProjectAssignment.query.count() == 1

        users = project_service.get_assigned_users(cc_user.id, site["project"].id)
        assert users[0]["name"] == "Mike Rodriguez"
        assert users[0]["email"] == "mike@example.com"

    def test_assign_missing_user(self, cc_user, site):
        with pytest.raises(NotFoundError):
            project_service.assign_user(cc_user.id, site["project"].id, 999)

    def test_unassign(self, cc_user, manager, site):
        project_service.assign_user(cc_user.id, site["project"].id, manager.id)
        project_service.unassign_user(cc_user.id, site["project"].id, manager.id)
        assert ProjectAssignment.query.count() == 0


# ═════════════════════════════════════════════════════════════════════════════
# SCOPES & ACTIVITIES
# ═════════════════════════════════════════════════════════════════════════════

class TestScopes:
    def test_create_and_list(self, cc_user, site):
        scope_service.create_scope(cc_user.id, site["project"].id, {"name": "Civil"})
        names = [s["name"] for s in scope_service.list_scopes(cc_user.id, site["project"].id)]
        assert names == ["Electrical", "Civil"]

    def test_create_in_missing_project(self, cc_user):
        with pytest.raises(NotFoundError):
            scope_service.create_scope(cc_user.id, 999, {"name": "Civil"})

    def test_create_denied_for_unassigned_manager(self, manager, site):
        with pytest.raises(AccessDeniedError):
            scope_service.create_scope(manager.id, site["project"].id, {"name": "Civil"})

    def test_create_requires_name(self, cc_user, site):
        with pytest.raises(ValidationError):
            scope_service.create_scope(cc_user.id, site["project"].id, {"name": ""})

    def test_scope_with_project(self, cc_user, manager, site):
        data = scope_service.get_scope_with_project(cc_user.id, site["scope"].id)
        assert data["project"]["name"] == "Solar Farm Alpha"
        assert scope_service.get_scope_with_project(manager.id, site["scope"].id) is None

    def test_delete_scope_cascades(self, cc_user, manager, site):
        entry_service.submit_forecast(cc_user.id, site["trenching"].id, "2024-06-01", 1, 1, 1)
        scope_service.assign_scope(cc_user.id, site["scope"].id, manager.id)
        scope_service.delete_scope(cc_user.id, site["scope"].id)
        assert Scope.query.count() == 0
        assert Activity.query.count() == 0
        assert DailyEntry.query.count() == 0
        assert ScopeAssignment.query.count() == 0


class TestActivities:
    def test_create_activity(self, cc_user, site):
        activity = scope_service.create_activity(
            cc_user.id, site["scope"].id, {"name": "Conduit", "unit": "linear feet"},
        )
        assert activity.project_id == site["project"].id
        with pytest.raises(ValidationError):
            scope_service.create_activity(cc_user.id, site["scope"].id, {"name": "No unit"})

    def test_list_for_project_has_scope_name(self, cc_user, site):
        rows = scope_service.list_activities_for_project(cc_user.id, site["project"].id)
        assert {r["scope_name"] for r in rows} == {"Electrical"}
        assert len(rows) == 2

    def test_update_and_delete(self, cc_user, site):
        updated = scope_service.update_activity(cc_user.id, site["wiring"].id, {"unit": "strings"})
        assert updated.unit == "strings"
        entry_service.submit_forecast(cc_user.id, site["wiring"].id, "2024-06-01", 1, 1, 1)
        scope_service.delete_activity(cc_user.id, site["wiring"].id)
        assert _db.session.get(Activity, site["wiring"].id) is None
        assert DailyEntry.query.count() == 0

    def test_missing_activity(self, cc_user):
        assert scope_service.get_activity(cc_user.id, 999) is None
        with pytest.raises(NotFoundError):
            scope_service.update_activity(cc_user.id, 999, {"name": "X"})


class TestScopeAssignments:
    def test_assign_grants_project_access(self, cc_user, manager, site):
        scope_service.assign_scope(cc_user.id, site["scope"].id, manager.id)
        assert ProjectAssignment.query.filter_by(
            user_id=manager.id, project_id=site["project"].id,
        ).count() == 1
        assert scope_service.list_scopes(manager.id, site["project"].id)

    def test_assign_is_idempotent(self, cc_user, manager, site):
        scope_service.assign_scope(cc_user.id, site["scope"].id, manager.id)
        scope_service.assign_scope(cc_user.id, site["scope"].id, manager.id)
        assert ScopeAssignment.query.count() == 1
        assert ProjectAssignment.query.count() == 1

    def test_assign_requires_control_center(self, manager, site):
        with pytest.raises(AccessDeniedError):
            scope_service.assign_scope(manager.id, site["scope"].id, manager.id)

    def test_assignment_listings(self, cc_user, manager, site):
        scope_service.assign_scope(cc_user.id, site["scope"].id, manager.id)
        rows = scope_service.list_scope_assignments(cc_user.id, site["scope"].id)
        assert rows[0]["name"] == "Mike Rodriguez"
        assert rows[0]["job_title"] == "foreman"

        lead = scope_service.get_assigned_manager(cc_user.id, site["scope"].id)
        assert lead["user_id"] == manager.id

        per_project = scope_service.list_project_scope_assignments(cc_user.id, site["project"].id)
        assert per_project[0]["scope_name"] == "Electrical"

        per_user = scope_service.list_user_scope_assignments(cc_user.id, manager.id)
        assert per_user[0]["project_name"] == "Solar Farm Alpha"

    def test_unassign_keeps_project_access(self, cc_user, manager, site):
        scope_service.assign_scope(cc_user.id, site["scope"].id, manager.id)
        scope_service.unassign_scope(cc_user.id, site["scope"].id, manager.id)
        assert ScopeAssignment.query.count() == 0
        assert ProjectAssignment.query.count() == 1
        assert scope_service.get_assigned_manager(cc_user.id, site["scope"].id) is None

    def test_available_managers(self, cc_user, manager):
        rows = scope_service.list_available_managers(cc_user.id)
        assert [r["user_id"] for r in rows] == [manager.id]
        assert scope_service.list_available_managers(None) == []
