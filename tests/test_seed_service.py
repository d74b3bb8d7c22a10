"""
BuildBoard
Tests: demo data seeding and clearing.
"""

import random
from datetime import date

import pytest

from buildboard.core.exceptions import AccessDeniedError
from buildboard.models.auth import ProjectAssignment, ScopeAssignment
from buildboard.models.daily_entry import DailyEntry
from buildboard.models.project import Activity, Project, Scope
from buildboard.services import (
    leaderboard_service,
    permission_service,
    scope_service,
    seed_service,
)

# Monday; the 14-day window back from here holds 10 weekdays
TODAY = date(2024, 6, 17)


def _seed(user_id):
    return seed_service.seed_demo_data(user_id, rng=random.Random(7), today=TODAY)


class TestSeed:
    def test_seed_creates_demo_project(self, make_user):
        user = make_user(role=None)
        result = _seed(user.id)

        assert result["message"] == "Demo data with leaderboard created successfully"
        project = Project.query.one()
        assert project.name == "Solar Farm Alpha"
        assert result["project_id"] == project.id
        assert Scope.query.count() == 3
        assert Activity.query.count() == 7
        assert DailyEntry.query.count() == 7 * 10

        profile = permission_service.get_profile(user.id)
        assert profile.name == "Admin User"
        assert profile.is_control_center

    def test_seed_skips_weekends(self, make_user):
        user = make_user(role=None)
        _seed(user.id)
        for entry in DailyEntry.query.all():
            assert date.fromisoformat(entry.date).weekday() < 5

    def test_seed_entries_are_consistent(self, make_user):
        user = make_user(role=None)
        _seed(user.id)
        for entry in DailyEntry.query.all():
            assert entry.forecast_hours == pytest.approx(
                entry.forecast_crew_size * entry.forecast_hours_per_worker,
            )
            assert entry.actual_crew_size >= 1
            assert entry.foreman_name

    def test_seed_is_skipped_when_projects_exist(self, cc_user, site):
        result = _seed(cc_user.id)
        assert result == {"message": "Demo data already exists", "project_id": site["project"].id}
        assert DailyEntry.query.count() == 0

    def test_seeded_leaderboard_has_five_foremen(self, make_user):
        user = make_user(role=None)
        result = _seed(user.id)
        rows = leaderboard_service.get_project_leaderboard(user.id, result["project_id"])
        assert len(rows) == 5
        assert [r["rank"] for r in rows] == [1, 2, 3, 4, 5]


class TestClear:
    def test_clear_sample_keeps_projects(self, make_user, manager):
        user = make_user(role=None)
        _seed(user.id)
        scope = Scope.query.first()
        scope_service.assign_scope(user.id, scope.id, manager.id)

        result = seed_service.clear_sample_data(user.id)
        assert result["deleted_entries"] == 70
        assert result["deleted_activities"] == 7
        assert result["deleted_scopes"] == 3
        assert Project.query.count() == 1
        assert ScopeAssignment.query.count() == 0
        assert ProjectAssignment.query.count() == 1

    def test_clear_all(self, make_user):
        user = make_user(role=None)
        _seed(user.id)
        result = seed_service.clear_demo_data(user.id)
        assert result["message"] == "All demo data cleared"
        assert result["deleted_projects"] == 1
        assert Project.query.count() == 0

    def test_clear_requires_control_center(self, manager):
        with pytest.raises(AccessDeniedError):
            seed_service.clear_sample_data(manager.id)
        with pytest.raises(AccessDeniedError):
            seed_service.clear_demo_data(manager.id)
