"""
BuildBoard
Tests: HTTP API.

Covers:
    - health probes, request id / timing headers
    - bearer token parsing and error status mapping (401/403/404/409/415/422)
    - project → scope → activity → entries flow through the API
    - dashboard, leaderboard, user and admin routes
"""

import pytest

from buildboard.models.daily_entry import DailyEntry

DAY = "2024-06-01"


def _json(res, status):
    assert res.status_code == status, res.get_json()
    return res.get_json()


# ═════════════════════════════════════════════════════════════════════════════
# INFRASTRUCTURE
# ═════════════════════════════════════════════════════════════════════════════

class TestInfrastructure:
    def test_health_probes(self, client):
        assert _json(client.get("/api/v1/health/ready"), 200)["status"] == "ok"
        data = _json(client.get("/api/v1/health/live"), 200)
        assert data["checks"]["database"]["status"] == "ok"

    def test_request_headers(self, client):
        res = client.get("/api/v1/projects", headers={"X-Request-ID": "abc123"})
        assert res.headers["X-Request-ID"] == "abc123"
        assert "X-Request-Duration-Ms" in res.headers

    def test_unknown_route_is_json_404(self, client):
        data = _json(client.get("/api/v1/nope"), 404)
        assert data["error"] == "Not found"

    def test_method_not_allowed(self, client):
        _json(client.patch("/api/v1/projects"), 405)

    def test_non_json_body_rejected(self, client, cc_user, auth_headers):
        res = client.post(
            "/api/v1/projects", data="name=x", headers=auth_headers(cc_user.id),
            content_type="text/plain",
        )
        assert res.status_code == 415


class TestAuth:
    def test_reads_without_token_are_empty(self, client, site):
        assert _json(client.get("/api/v1/projects"), 200) == []
        assert _json(client.get(f"/api/v1/projects/{site['project'].id}/kpis"), 200) is None

    def test_invalid_token_is_anonymous(self, client, site):
        headers = {"Authorization": "Bearer not-a-token"}
        assert _json(client.get("/api/v1/projects", headers=headers), 200) == []

    def test_write_without_token_is_401(self, client):
        _json(client.post("/api/v1/projects", json={"name": "X"}), 401)

    def test_write_by_manager_is_403(self, client, manager, auth_headers):
        data = _json(client.post(
            "/api/v1/projects", json={"name": "X"}, headers=auth_headers(manager.id),
        ), 403)
        assert "Control Center" in data["error"]

    def test_update_project_decorator_denies(self, client, manager, site, auth_headers):
        res = client.put(
            f"/api/v1/projects/{site['project'].id}", json={"name": "X"},
            headers=auth_headers(manager.id),
        )
        assert res.status_code == 403


# ═════════════════════════════════════════════════════════════════════════════
# HIERARCHY + ENTRIES
# ═════════════════════════════════════════════════════════════════════════════

class TestProjectFlow:
    def test_full_flow(self, client, cc_user, manager, auth_headers):
        cc = auth_headers(cc_user.id)
        project = _json(client.post("/api/v1/projects", json={"name": "Solar Farm"}, headers=cc), 201)
        pid = project["id"]

        scope = _json(client.post(
            f"/api/v1/projects/{pid}/scopes", json={"name": "Electrical"}, headers=cc,
        ), 201)
        activity = _json(client.post(
            f"/api/v1/scopes/{scope['id']}/activities",
            json={"name": "Trenching", "unit": "linear feet"}, headers=cc,
        ), 201)
        aid = activity["id"]

        _json(client.post(
            f"/api/v1/scopes/{scope['id']}/assignments", json={"user_id": manager.id}, headers=cc,
        ), 201)

        mgr = auth_headers(manager.id)
        _json(client.post("/api/v1/entries/forecast", json={
            "activity_id": aid, "date": DAY, "quantity": 100,
            "crew_size": 5, "hours_per_worker": 8,
        }, headers=mgr), 201)
        _json(client.post("/api/v1/entries/actuals", json={
            "activity_id": aid, "date": DAY, "quantity": 90,
            "crew_size": 5, "hours_per_worker": 8, "notes": "rain after lunch",
        }, headers=mgr), 201)

        entry = _json(client.get(f"/api/v1/activities/{aid}/entries/{DAY}", headers=mgr), 200)
        assert entry["forecast_hours"] == 40
        assert entry["actual_hours"] == 40
        assert entry["foreman_name"] == "Mike Rodriguez"
        assert entry["notes"] == "rain after lunch"
        assert DailyEntry.query.count() == 1

        kpis = _json(client.get(f"/api/v1/activities/{aid}/kpis", headers=mgr), 200)
        assert kpis["quantity_variance"] == -10
        assert kpis["production_rate"] == pytest.approx(2.25)

        listing = _json(client.get(f"/api/v1/projects/{pid}/entries?date={DAY}", headers=mgr), 200)
        assert listing[0]["user_name"] == "Mike Rodriguez"

        board = _json(client.get(f"/api/v1/projects/{pid}/leaderboard", headers=mgr), 200)
        assert board[0]["production_factor"] == 0.9
        assert board[0]["rank"] == 1

    def test_entry_validation(self, client, cc_user, site, auth_headers):
        headers = auth_headers(cc_user.id)
        aid = site["trenching"].id
        res = client.post("/api/v1/entries/forecast", json={
            "activity_id": aid, "date": "June 1", "quantity": 1,
            "crew_size": 1, "hours_per_worker": 1,
        }, headers=headers)
        data = _json(res, 422)
        assert data["details"] == {"date": "invalid date"}

        _json(client.post("/api/v1/entries/forecast", json={
            "activity_id": aid, "date": DAY, "quantity": 1,
        }, headers=headers), 422)
        _json(client.post("/api/v1/entries", json={"date": DAY}, headers=headers), 422)

    def test_entry_on_missing_activity(self, client, cc_user, auth_headers):
        _json(client.post("/api/v1/entries", json={
            "activity_id": 999, "date": DAY, "forecast_quantity": 5,
        }, headers=auth_headers(cc_user.id)), 404)

    def test_generic_entry_and_delete(self, client, cc_user, site, auth_headers):
        headers = auth_headers(cc_user.id)
        created = _json(client.post("/api/v1/entries", json={
            "activity_id": site["wiring"].id, "date": DAY,
            "forecast_quantity": 10, "forecast_crew_size": 2, "forecast_hours_per_worker": 8,
        }, headers=headers), 201)
        _json(client.delete(f"/api/v1/entries/{created['id']}", headers=headers), 200)
        _json(client.delete(f"/api/v1/entries/{created['id']}", headers=headers), 404)

    def test_entry_lookup_normalizes_path_date(self, client, cc_user, site, auth_headers):
        headers = auth_headers(cc_user.id)
        aid = site["trenching"].id
        _json(client.post("/api/v1/entries/forecast", json={
            "activity_id": aid, "date": DAY, "quantity": 100,
            "crew_size": 5, "hours_per_worker": 8,
        }, headers=headers), 201)

        entry = _json(client.get(f"/api/v1/activities/{aid}/entries/2024-6-1", headers=headers), 200)
        assert entry["date"] == DAY
        assert entry["forecast_hours"] == 40

        data = _json(client.get(f"/api/v1/activities/{aid}/entries/June-1", headers=headers), 422)
        assert data["details"] == {"date": "invalid date"}

    def test_range_listing_requires_dates(self, client, cc_user, site, auth_headers):
        pid = site["project"].id
        headers = auth_headers(cc_user.id)
        _json(client.get(f"/api/v1/projects/{pid}/entries", headers=headers), 422)
        rows = _json(client.get(
            f"/api/v1/projects/{pid}/entries?start_date=2024-06-01&end_date=2024-06-30",
            headers=headers,
        ), 200)
        assert rows == []

    def test_scope_routes(self, client, cc_user, site, auth_headers):
        headers = auth_headers(cc_user.id)
        sid = site["scope"].id
        data = _json(client.get(f"/api/v1/scopes/{sid}", headers=headers), 200)
        assert data["project"]["id"] == site["project"].id
        _json(client.put(f"/api/v1/scopes/{sid}", json={"name": "Electrical East"}, headers=headers), 200)
        activities = _json(client.get(f"/api/v1/projects/{site['project'].id}/activities",
                                      headers=headers), 200)
        assert {a["scope_name"] for a in activities} == {"Electrical East"}
        _json(client.delete(f"/api/v1/scopes/{sid}", headers=headers), 200)
        assert _json(client.get(f"/api/v1/scopes/{sid}", headers=headers), 200) is None

    def test_leaderboard_mode_requires_flag(self, client, cc_user, site, auth_headers):
        url = f"/api/v1/projects/{site['project'].id}/leaderboard-mode"
        headers = auth_headers(cc_user.id)
        _json(client.put(url, json={}, headers=headers), 422)
        data = _json(client.put(url, json={"enabled": False}, headers=headers), 200)
        assert data["leaderboard_enabled"] is False
        summary = _json(client.get(
            f"/api/v1/projects/{site['project'].id}/team-summary", headers=headers,
        ), 200)
        assert summary["leaderboard_enabled"] is False


# ═════════════════════════════════════════════════════════════════════════════
# DASHBOARD / USERS / ADMIN
# ═════════════════════════════════════════════════════════════════════════════

class TestDashboardRoutes:
    def test_control_center_overview(self, client, cc_user, site, auth_headers):
        headers = auth_headers(cc_user.id)
        client.post("/api/v1/entries/forecast", json={
            "activity_id": site["trenching"].id, "date": DAY, "quantity": 100,
            "crew_size": 5, "hours_per_worker": 8,
        }, headers=headers)

        kpis = _json(client.get("/api/v1/dashboard/kpis", headers=headers), 200)
        assert kpis["total_projects"] == 1
        assert len(_json(client.get("/api/v1/dashboard/projects", headers=headers), 200)) == 1
        assert len(_json(client.get("/api/v1/dashboard/scopes", headers=headers), 200)) == 1
        logs = _json(client.get("/api/v1/dashboard/work-logs/recent?limit=5", headers=headers), 200)
        assert logs[0]["created_by_name"] == "Casey Control"

        trend = _json(client.get(
            "/api/v1/dashboard/trend?start_date=2024-06-01&end_date=2024-06-30", headers=headers,
        ), 200)
        assert trend[0]["date"] == DAY
        days = _json(client.get(
            "/api/v1/dashboard/work-logs?start_date=2024-06-01&end_date=2024-06-30",
            headers=headers,
        ), 200)
        assert days[0]["entry_count"] == 1

        pid = site["project"].id
        inside = _json(client.get(
            f"/api/v1/projects/{pid}/kpis?start_date=2024-06-01&end_date=2024-06-01",
            headers=headers,
        ), 200)
        assert inside["entries_count"] == 1
        after = _json(client.get(
            f"/api/v1/projects/{pid}/kpis?start_date=2024-06-02", headers=headers,
        ), 200)
        assert after["entries_count"] == 0

    def test_manager_gets_no_overview(self, client, manager, auth_headers):
        headers = auth_headers(manager.id)
        assert _json(client.get("/api/v1/dashboard/kpis", headers=headers), 200) is None
        assert _json(client.get("/api/v1/dashboard/projects", headers=headers), 200) == []


class TestUserRoutes:
    def test_profile_roundtrip(self, client, make_user, auth_headers):
        user = make_user(role=None)
        headers = auth_headers(user.id)
        assert _json(client.get("/api/v1/profile", headers=headers), 200) is None
        _json(client.put("/api/v1/profile", json={"name": "Pat Lee"}, headers=headers), 200)
        assert _json(client.get("/api/v1/profile", headers=headers), 200)["name"] == "Pat Lee"

    def test_create_user_and_conflict(self, client, cc_user, auth_headers):
        headers = auth_headers(cc_user.id)
        body = {"email": "new@example.com", "name": "New Person"}
        created = _json(client.post("/api/v1/users", json=body, headers=headers), 201)
        assert created["success"] is True
        _json(client.post("/api/v1/users", json=body, headers=headers), 409)
        users = _json(client.get("/api/v1/users", headers=headers), 200)
        assert {u["email"] for u in users} == {"cc@example.com", "new@example.com"}

    def test_profile_management(self, client, cc_user, manager, auth_headers):
        headers = auth_headers(cc_user.id)
        profile = _json(client.get(f"/api/v1/users/{manager.id}/profile", headers=headers), 200)
        _json(client.put(f"/api/v1/profiles/{profile['id']}", json={"job_title": "superintendent"},
                         headers=headers), 200)
        field = _json(client.get("/api/v1/field-users", headers=headers), 200)
        assert field[0]["job_title"] == "superintendent"
        _json(client.delete(f"/api/v1/profiles/{profile['id']}", headers=headers), 200)
        assert _json(client.get("/api/v1/field-users", headers=headers), 200) == []


class TestAdminRoutes:
    def test_seed_and_clear(self, client, make_user, auth_headers):
        headers = auth_headers(make_user(role=None).id)
        seeded = _json(client.post("/api/v1/admin/seed", headers=headers), 200)
        assert seeded["project_id"]
        again = _json(client.post("/api/v1/admin/seed", headers=headers), 200)
        assert again["message"] == "Demo data already exists"

        cleared = _json(client.post("/api/v1/admin/clear-all", headers=headers), 200)
        assert cleared["deleted_projects"] == 1

    def test_seed_requires_auth(self, client):
        _json(client.post("/api/v1/admin/seed"), 401)

    def test_clear_requires_control_center(self, client, manager, auth_headers):
        _json(client.post("/api/v1/admin/clear-sample", headers=auth_headers(manager.id)), 403)
