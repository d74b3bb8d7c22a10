"""
Leaderboard Service: foreman rankings and production-factor drill-downs.

Production Factor (PF) = actual quantity / forecast quantity.
PF > 1.0 means the crew beat its forecast; PF < 1.0 means it fell short.

Entries are grouped by ``foreman_name``. Entries recorded without a
foreman name fall back to the key ``user:<submitter id>`` and are shown
under that user's profile name.

Ranking: PF descending, ties broken by foreman name ascending; ranks are
1..N with no gaps and no shared ranks.

All functions are reads: unauthenticated or denied callers get [] / None.
"""

import logging
from collections import defaultdict

from buildboard.models import db
from buildboard.models.auth import ROLE_CONSTRUCTION_MANAGER
from buildboard.models.daily_entry import DailyEntry
from buildboard.models.project import Activity, Project, Scope
from buildboard.services import permission_service
from buildboard.utils.helpers import round_half_up, safe_ratio

logger = logging.getLogger(__name__)

USER_KEY_PREFIX = "user:"
TARGET_PF = 1.0

# (lower bound, band) checked top-down
PERFORMANCE_BANDS = (
    (1.10, "excellent"),
    (1.00, "on_target"),
    (0.90, "watch"),
    (0.80, "at_risk"),
)


def performance_band(production_factor: float) -> str:
    for threshold, band in PERFORMANCE_BANDS:
        if production_factor >= threshold:
            return band
    return "critical"


def production_factor(actual_qty, forecast_qty) -> float:
    return round_half_up(safe_ratio(actual_qty, forecast_qty), 2)


def variance_percent(actual_qty, forecast_qty) -> float:
    return round_half_up(safe_ratio(actual_qty - forecast_qty, forecast_qty) * 100, 1)


def _ratios(totals) -> dict:
    return {
        "production_factor": production_factor(
            totals["total_actual_quantity"], totals["total_forecast_quantity"],
        ),
        "variance_percent": variance_percent(
            totals["total_actual_quantity"], totals["total_forecast_quantity"],
        ),
    }


class _Group:
    """Running totals for one leaderboard / breakdown row."""

    def __init__(self):
        self.actual_qty = 0.0
        self.actual_hrs = 0.0
        self.forecast_qty = 0.0
        self.forecast_hrs = 0.0
        self.entries = 0
        self.activities = set()
        self.scopes = set()
        self.foremen = []

    def add(self, entry):
        self.actual_qty += entry.actual_quantity or 0
        self.actual_hrs += entry.actual_hours or 0
        self.forecast_qty += entry.forecast_quantity or 0
        self.forecast_hrs += entry.forecast_hours or 0
        self.entries += 1
        self.activities.add(entry.activity_id)
        self.scopes.add(entry.scope_id)
        if entry.foreman_name and entry.foreman_name not in self.foremen:
            self.foremen.append(entry.foreman_name)

    def totals(self) -> dict:
        return {
            "total_actual_quantity": self.actual_qty,
            "total_actual_hours": self.actual_hrs,
            "total_forecast_quantity": self.forecast_qty,
            "total_forecast_hours": self.forecast_hrs,
        }


def grouping_key(entry) -> str:
    if entry.foreman_name:
        return entry.foreman_name
    return f"{USER_KEY_PREFIX}{entry.user_id}"


def display_name(key: str) -> str:
    """Resolve ``user:<id>`` keys to a profile name; names pass through."""
    if ":" not in key:
        return key
    try:
        user_id = int(key.split(":", 1)[1])
    except ValueError:
        return "Unknown"
    profile = permission_service.get_profile(user_id)
    return profile.name if profile else "Unknown"


def _filter_dates(query, start_date=None, end_date=None):
    if start_date:
        query = query.filter(DailyEntry.date >= start_date)
    if end_date:
        query = query.filter(DailyEntry.date <= end_date)
    return query


def rank_rows(rows: list[dict]) -> list[dict]:
    """Sort by PF descending (name ascending on ties) and number 1..N."""
    rows.sort(key=lambda r: (-r["production_factor"], r["foreman_name"]))
    for position, row in enumerate(rows, start=1):
        row["rank"] = position
    return rows


def _leaderboard(entries, with_scopes=False):
    groups = defaultdict(_Group)
    for entry in entries:
        groups[grouping_key(entry)].add(entry)

    scope_names = {}
    if with_scopes:
        scope_ids = {sid for g in groups.values() for sid in g.scopes}
        if scope_ids:
            scope_names = {
                s.id: s.name for s in Scope.query.filter(Scope.id.in_(scope_ids))
            }

    rows = []
    for key, group in groups.items():
        row = {
            "foreman_name": display_name(key),
            **group.totals(),
            "production_rate": round_half_up(safe_ratio(group.actual_qty, group.actual_hrs), 2),
            **_ratios(group.totals()),
            "entries_count": group.entries,
        }
        row["performance_band"] = performance_band(row["production_factor"])
        if with_scopes:
            row["scope_names"] = sorted(
                scope_names[sid] for sid in group.scopes if sid in scope_names
            )
            row["activities_count"] = len(group.activities)
        rows.append(row)
    return rank_rows(rows)


# ── Rankings ─────────────────────────────────────────────────────────────


def get_project_leaderboard(user_id, project_id, start_date=None, end_date=None):
    if user_id is None or not permission_service.can_access_project(user_id, project_id):
        return []
    query = _filter_dates(DailyEntry.query.filter_by(project_id=project_id), start_date, end_date)
    return _leaderboard(query.all(), with_scopes=True)


def get_scope_leaderboard(user_id, scope_id, start_date=None, end_date=None):
    if user_id is None:
        return []
    scope = db.session.get(Scope, scope_id)
    if scope is None or not permission_service.can_access_project(user_id, scope.project_id):
        return []
    query = _filter_dates(DailyEntry.query.filter_by(scope_id=scope_id), start_date, end_date)
    return _leaderboard(query.all())


def get_team_summary(user_id, project_id, start_date=None, end_date=None):
    """Team-level figures shown instead of rankings when leaderboard mode is off."""
    if user_id is None or not permission_service.can_access_project(user_id, project_id):
        return None
    project = db.session.get(Project, project_id)
    if project is None:
        return None

    rows = get_project_leaderboard(user_id, project_id, start_date, end_date)
    members = len(rows)
    average_pf = safe_ratio(sum(r["production_factor"] for r in rows), members)
    return {
        "project_id": project.id,
        "leaderboard_enabled": project.leaderboard_enabled is not False,
        "total_members": members,
        "average_production_factor": round_half_up(average_pf, 2),
        "top_production_factor": rows[0]["production_factor"] if rows else 0,
        "total_production": sum(r["total_actual_quantity"] for r in rows),
        "above_target": sum(1 for r in rows if r["production_factor"] >= TARGET_PF),
        "performance_band": performance_band(average_pf),
    }


# ── Drill-downs ──────────────────────────────────────────────────────────


def get_scope_breakdown(user_id, project_id, start_date=None, end_date=None):
    """One row per scope of the project, including scopes with no entries."""
    if user_id is None or not permission_service.can_access_project(user_id, project_id):
        return []

    groups = defaultdict(_Group)
    query = _filter_dates(DailyEntry.query.filter_by(project_id=project_id), start_date, end_date)
    for entry in query.all():
        groups[entry.scope_id].add(entry)

    rows = []
    for scope in Scope.query.filter_by(project_id=project_id).order_by(Scope.id).all():
        group = groups.get(scope.id) or _Group()
        rows.append({
            "scope_id": scope.id,
            "scope_name": scope.name,
            **group.totals(),
            **_ratios(group.totals()),
            "entries_count": group.entries,
            "activities_count": len(group.activities),
            "foremen_count": len(group.foremen),
            "foremen_names": list(group.foremen),
        })
    rows.sort(key=lambda r: -r["production_factor"])
    return rows


def get_activity_breakdown(user_id, scope_id, start_date=None, end_date=None):
    """One row per activity of the scope, including activities with no entries."""
    if user_id is None:
        return []
    scope = db.session.get(Scope, scope_id)
    if scope is None or not permission_service.can_access_project(user_id, scope.project_id):
        return []

    groups = defaultdict(_Group)
    query = _filter_dates(DailyEntry.query.filter_by(scope_id=scope_id), start_date, end_date)
    for entry in query.all():
        groups[entry.activity_id].add(entry)

    rows = []
    for activity in Activity.query.filter_by(scope_id=scope_id).order_by(Activity.id).all():
        group = groups.get(activity.id) or _Group()
        rows.append({
            "activity_id": activity.id,
            "activity_name": activity.name,
            "unit": activity.unit,
            **group.totals(),
            **_ratios(group.totals()),
            "entries_count": group.entries,
            "foremen_names": list(group.foremen),
        })
    rows.sort(key=lambda r: -r["production_factor"])
    return rows


def get_user_stats(user_id, project_id, target_user_id, start_date=None, end_date=None):
    """Totals for the entries one user submitted in one project."""
    if user_id is None or not permission_service.can_access_project(user_id, project_id):
        return None

    query = DailyEntry.query.filter_by(project_id=project_id, user_id=target_user_id)
    group = _Group()
    for entry in _filter_dates(query, start_date, end_date).all():
        group.add(entry)

    profile = permission_service.get_profile(target_user_id)
    return {
        "user_id": target_user_id,
        "user_name": profile.name if profile else "Unknown",
        "role": profile.role if profile else ROLE_CONSTRUCTION_MANAGER,
        **group.totals(),
        "production_rate": safe_ratio(group.actual_qty, group.actual_hrs),
        "variance": group.actual_qty - group.forecast_qty,
        "entries_count": group.entries,
    }
