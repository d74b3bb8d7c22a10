"""
BuildBoard
Tests: profiles and Control Center user management.
"""

import pytest

from buildboard.core.exceptions import (
    AccessDeniedError,
    AuthenticationRequiredError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from buildboard.models.auth import ProjectAssignment, User, UserProfile
from buildboard.services import permission_service, user_service


class TestOwnProfile:
    def test_upsert_creates_then_updates(self, make_user):
        user = make_user(role=None)
        assert user_service.get_current_profile(user.id) is None

        profile = user_service.upsert_profile(user.id, {"name": "Pat Lee"})
        assert profile.role == "construction_manager"
        profile = user_service.upsert_profile(
            user.id, {"name": "Pat Lee", "role": "control_center", "job_title": "superintendent"},
        )
        assert UserProfile.query.filter_by(user_id=user.id).count() == 1
        assert user_service.get_current_profile(user.id)["job_title"] == "superintendent"
        assert permission_service.is_control_center(user.id)

    @pytest.mark.parametrize("data", [
        {},
        {"name": "Pat", "role": "admin"},
        {"name": "Pat", "job_title": "wizard"},
    ])
    def test_upsert_validation(self, make_user, data):
        user = make_user(role=None)
        with pytest.raises(ValidationError):
            user_service.upsert_profile(user.id, data)

    def test_upsert_requires_auth(self):
        with pytest.raises(AuthenticationRequiredError):
            user_service.upsert_profile(None, {"name": "Pat"})

    def test_profile_by_user(self, cc_user, manager):
        assert user_service.get_profile_by_user(cc_user.id, manager.id)["name"] == "Mike Rodriguez"
        assert user_service.get_profile_by_user(None, manager.id) is None


class TestAccountManagement:
    def test_create_account_with_projects(self, cc_user, site):
        user = user_service.create_user_account(cc_user.id, {
            "email": " New.Foreman@Example.com ",
            "name": "New Foreman",
            "job_title": "foreman",
            "project_ids": [site["project"].id],
        })
        assert user.email == "new.foreman@example.com"
        assert ProjectAssignment.query.filter_by(user_id=user.id).count() == 1

        rows = user_service.list_users(cc_user.id)
        new = next(r for r in rows if r["user_id"] == user.id)
        assert new["assigned_projects"] == [{"id": site["project"].id, "name": "Solar Farm Alpha"}]

    def test_duplicate_email_conflicts(self, cc_user, manager):
        with pytest.raises(ConflictError):
            user_service.create_user_account(
                cc_user.id, {"email": "MIKE@example.com", "name": "Mike Two"},
            )

    def test_unknown_project(self, cc_user):
        with pytest.raises(NotFoundError):
            user_service.create_user_account(
                cc_user.id, {"email": "a@example.com", "name": "A", "project_ids": [999]},
            )

    def test_manager_cannot_manage_users(self, manager):
        with pytest.raises(AccessDeniedError):
            user_service.create_user_account(manager.id, {"email": "a@example.com", "name": "A"})
        assert user_service.list_users(manager.id) == []
        assert user_service.get_user_projects(manager.id, manager.id) == []

    def test_update_profile(self, cc_user, manager):
        profile = permission_service.get_profile(manager.id)
        updated = user_service.update_user_profile(
            cc_user.id, profile.id, {"role": "control_center"},
        )
        assert updated.role == "control_center"
        assert updated.name == "Mike Rodriguez"
        with pytest.raises(NotFoundError):
            user_service.update_user_profile(cc_user.id, 999, {"name": "X"})

    def test_delete_profile(self, cc_user, manager, site, assign_project):
        assign_project(manager, site["project"])
        profile = permission_service.get_profile(manager.id)
        user_service.delete_user_profile(cc_user.id, profile.id)
        assert permission_service.get_profile(manager.id) is None
        assert ProjectAssignment.query.count() == 0

    def test_cannot_delete_self(self, cc_user):
        own = permission_service.get_profile(cc_user.id)
        with pytest.raises(ValidationError):
            user_service.delete_user_profile(cc_user.id, own.id)

    def test_field_users_and_user_projects(self, cc_user, manager, site, assign_project):
        assign_project(manager, site["project"])
        assert [u["name"] for u in user_service.list_field_users(cc_user.id)] == ["Mike Rodriguez"]
        projects = user_service.get_user_projects(cc_user.id, manager.id)
        assert [p["name"] for p in projects] == ["Solar Farm Alpha"]

    def test_get_or_create_user(self):
        first = user_service.get_or_create_user("Ops@Example.com")
        second = user_service.get_or_create_user("ops@example.com")
        assert first.id == second.id
        assert User.query.count() == 1
