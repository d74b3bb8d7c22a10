"""
KPI Service: forecast vs. actual aggregation.

Every granularity (activity, scope, project, all projects) folds its entries
through the same reducer, ``summarize_entries``. The trend series adds a
weighted production factor per date:

    PF(date) = Σ(actual_qty / forecast_qty × forecast_hours) / Σ forecast_hours

over the entries of that date with forecast_qty > 0 and forecast_hours > 0.
Man-hours are the weighting basis because quantities in different units
(feet, units, acres) cannot be added up meaningfully.

All functions are reads: unauthenticated or denied callers get None / [].
"""

import logging
from collections import defaultdict

from buildboard.models import db
from buildboard.models.auth import UserProfile
from buildboard.models.daily_entry import DailyEntry
from buildboard.models.project import Activity, Project, Scope
from buildboard.services import permission_service
from buildboard.utils.helpers import round_half_up, safe_ratio

logger = logging.getLogger(__name__)

PRODUCTION_FACTOR_DIGITS = 2
PERCENT_DIGITS = 1


# ── Reducers ─────────────────────────────────────────────────────────────


def summarize_entries(entries) -> dict:
    """Sum quantities and man-hours; missing values count as 0."""
    forecast_qty = actual_qty = forecast_hrs = actual_hrs = 0.0
    count = 0
    for entry in entries:
        forecast_qty += entry.forecast_quantity or 0
        actual_qty += entry.actual_quantity or 0
        forecast_hrs += entry.forecast_hours or 0
        actual_hrs += entry.actual_hours or 0
        count += 1

    return {
        "total_forecast_quantity": forecast_qty,
        "total_actual_quantity": actual_qty,
        "total_forecast_hours": forecast_hrs,
        "total_actual_hours": actual_hrs,
        "quantity_variance": actual_qty - forecast_qty,
        "hours_variance": actual_hrs - forecast_hrs,
        "production_rate": safe_ratio(actual_qty, actual_hrs),
        "entries_count": count,
    }


def efficiency_percent(actual_qty, forecast_qty):
    return round_half_up(safe_ratio(actual_qty, forecast_qty) * 100, PERCENT_DIGITS)


def build_trend_series(entries) -> list[dict]:
    """Per-date series with weighted production factor, ascending by date."""
    by_date = defaultdict(lambda: {
        "total_forecast": 0.0,
        "total_actual": 0.0,
        "forecast_hours": 0.0,
        "actual_hours": 0.0,
        "weighted_pf_sum": 0.0,
        "weight_sum": 0.0,
    })

    for entry in entries:
        day = by_date[entry.date]
        forecast = entry.forecast_quantity or 0
        actual = entry.actual_quantity or 0
        forecast_hours = entry.forecast_hours or 0

        day["total_forecast"] += forecast
        day["total_actual"] += actual
        day["forecast_hours"] += forecast_hours
        day["actual_hours"] += entry.actual_hours or 0

        if forecast > 0 and forecast_hours > 0:
            day["weighted_pf_sum"] += (actual / forecast) * forecast_hours
            day["weight_sum"] += forecast_hours

    series = []
    for date in sorted(by_date):
        day = by_date[date]
        pf = safe_ratio(day["weighted_pf_sum"], day["weight_sum"])
        series.append({
            "date": date,
            "production_factor": round_half_up(pf, PRODUCTION_FACTOR_DIGITS),
            "forecast_hours": day["forecast_hours"],
            "actual_hours": day["actual_hours"],
            "total_forecast": day["total_forecast"],
            "total_actual": day["total_actual"],
        })
    return series


def _in_range(query, start_date=None, end_date=None):
    if start_date:
        query = query.filter(DailyEntry.date >= start_date)
    if end_date:
        query = query.filter(DailyEntry.date <= end_date)
    return query


# ── Project / scope / activity KPIs ──────────────────────────────────────
# start_date / end_date are optional inclusive YYYY-MM-DD bounds.


def get_project_kpis(user_id, project_id, start_date=None, end_date=None):
    if user_id is None or not permission_service.can_access_project(user_id, project_id):
        return None
    query = _in_range(DailyEntry.query.filter_by(project_id=project_id), start_date, end_date)
    return summarize_entries(query.all())


def get_scope_kpis(user_id, scope_id, start_date=None, end_date=None):
    if user_id is None:
        return None
    scope = db.session.get(Scope, scope_id)
    if scope is None:
        return None
    if not permission_service.can_access_project(user_id, scope.project_id):
        return None

    query = _in_range(DailyEntry.query.filter_by(scope_id=scope_id), start_date, end_date)
    entries = query.all()
    return {"scope_name": scope.name, **summarize_entries(entries)}


def get_activity_kpis(user_id, activity_id, start_date=None, end_date=None):
    if user_id is None:
        return None
    activity = db.session.get(Activity, activity_id)
    if activity is None:
        return None
    if not permission_service.can_access_project(user_id, activity.project_id):
        return None

    scope = db.session.get(Scope, activity.scope_id)
    query = _in_range(DailyEntry.query.filter_by(activity_id=activity_id), start_date, end_date)
    entries = query.all()
    return {
        "activity_name": activity.name,
        "activity_unit": activity.unit,
        "scope_name": scope.name if scope else "Unknown",
        **summarize_entries(entries),
    }


def get_all_scope_kpis(user_id, project_id, start_date=None, end_date=None):
    """One KPI row per scope of the project."""
    if user_id is None or not permission_service.can_access_project(user_id, project_id):
        return []

    scopes = Scope.query.filter_by(project_id=project_id).order_by(Scope.id).all()
    entries_by_scope = defaultdict(list)
    query = _in_range(DailyEntry.query.filter_by(project_id=project_id), start_date, end_date)
    for entry in query.all():
        entries_by_scope[entry.scope_id].append(entry)

    rows = []
    for scope in scopes:
        summary = summarize_entries(entries_by_scope.get(scope.id, []))
        summary.pop("hours_variance")
        rows.append({"scope_id": scope.id, "scope_name": scope.name, **summary})
    return rows


def get_trend_data(user_id, project_id, start_date, end_date):
    if user_id is None or not permission_service.can_access_project(user_id, project_id):
        return []
    query = _in_range(DailyEntry.query.filter_by(project_id=project_id), start_date, end_date)
    return build_trend_series(query.all())


# ── Control Center overview ──────────────────────────────────────────────


def get_all_projects_kpis(user_id):
    """Portfolio KPIs across every project (Control Center only)."""
    if not permission_service.is_control_center(user_id):
        return None

    projects = Project.query.all()
    summary = summarize_entries(DailyEntry.query.all())
    return {
        "total_projects": len(projects),
        "active_projects": sum(1 for p in projects if p.status == "active"),
        **summary,
        "efficiency": efficiency_percent(
            summary["total_actual_quantity"], summary["total_forecast_quantity"],
        ),
        "total_entries": summary["entries_count"],
    }


def get_projects_summary(user_id):
    """Per-project overview rows (Control Center only)."""
    if not permission_service.is_control_center(user_id):
        return []

    entries_by_project = defaultdict(list)
    for entry in DailyEntry.query.all():
        entries_by_project[entry.project_id].append(entry)

    rows = []
    for project in Project.query.order_by(Project.id).all():
        summary = summarize_entries(entries_by_project.get(project.id, []))
        rows.append({
            "project_id": project.id,
            "name": project.name,
            "status": project.status,
            "scope_count": project.scopes.count(),
            "total_forecast": summary["total_forecast_quantity"],
            "total_actual": summary["total_actual_quantity"],
            "total_hours": summary["total_actual_hours"],
            "efficiency": efficiency_percent(
                summary["total_actual_quantity"], summary["total_forecast_quantity"],
            ),
            "entries_count": summary["entries_count"],
        })
    return rows


def get_all_projects_trend_data(user_id, start_date, end_date):
    if not permission_service.is_control_center(user_id):
        return []
    return build_trend_series(_in_range(DailyEntry.query, start_date, end_date).all())


def get_all_scopes_breakdown(user_id):
    """Forecast/actual totals for every scope of every project (Control Center only)."""
    if not permission_service.is_control_center(user_id):
        return []

    entries_by_scope = defaultdict(list)
    for entry in DailyEntry.query.all():
        entries_by_scope[entry.scope_id].append(entry)

    project_names = {p.id: p.name for p in Project.query.all()}
    rows = []
    for scope in Scope.query.order_by(Scope.project_id, Scope.id).all():
        summary = summarize_entries(entries_by_scope.get(scope.id, []))
        rows.append({
            "scope_id": scope.id,
            "scope_name": scope.name,
            "project_id": scope.project_id,
            "project_name": project_names.get(scope.project_id, "Unknown"),
            "total_forecast": summary["total_forecast_quantity"],
            "total_actual": summary["total_actual_quantity"],
            "variance": summary["quantity_variance"],
        })
    return rows


# ── Work logs ────────────────────────────────────────────────────────────


def _lookup_tables(entries):
    activity_ids = {e.activity_id for e in entries}
    scope_ids = {e.scope_id for e in entries}
    project_ids = {e.project_id for e in entries}
    activities = {a.id: a for a in Activity.query.filter(Activity.id.in_(activity_ids))} \
        if activity_ids else {}
    scopes = {s.id: s.name for s in Scope.query.filter(Scope.id.in_(scope_ids))} \
        if scope_ids else {}
    projects = {p.id: p.name for p in Project.query.filter(Project.id.in_(project_ids))} \
        if project_ids else {}
    return activities, scopes, projects


def _work_log_row(entry, activities, scopes, projects) -> dict:
    activity = activities.get(entry.activity_id)
    return {
        "id": entry.id,
        "date": entry.date,
        "project_id": entry.project_id,
        "project_name": projects.get(entry.project_id, "Unknown"),
        "scope_name": scopes.get(entry.scope_id, "Unknown"),
        "activity_name": activity.name if activity else "Unknown",
        "activity_unit": activity.unit if activity else "units",
        "forecast_quantity": entry.forecast_quantity,
        "forecast_hours": entry.forecast_hours,
        "actual_quantity": entry.actual_quantity,
        "actual_hours": entry.actual_hours,
        "foreman_name": entry.foreman_name,
    }


def get_recent_work_logs(user_id, limit=50):
    """Latest entries across all projects, newest date first (Control Center only)."""
    if not permission_service.is_control_center(user_id):
        return []

    entries = (
        DailyEntry.query
        .order_by(DailyEntry.date.desc(), DailyEntry.created_at.desc(), DailyEntry.id.desc())
        .limit(limit)
        .all()
    )
    activities, scopes, projects = _lookup_tables(entries)
    creator_ids = {e.created_by for e in entries if e.created_by is not None}
    creators = {
        p.user_id: p.name
        for p in UserProfile.query.filter(UserProfile.user_id.in_(creator_ids))
    } if creator_ids else {}

    logs = []
    for entry in entries:
        row = _work_log_row(entry, activities, scopes, projects)
        row["created_by_name"] = (
            creators.get(entry.created_by) or entry.foreman_name or "Unknown"
        )
        row["created_at"] = entry.created_at.isoformat() if entry.created_at else None
        row["notes"] = entry.notes
        logs.append(row)
    return logs


def get_work_logs_by_date(user_id, start_date, end_date):
    """Entries grouped per day with day totals, newest day first.

    Control Center sees every project; anyone else only the projects they
    are assigned to.
    """
    if user_id is None:
        return []

    query = _in_range(DailyEntry.query, start_date, end_date)
    if not permission_service.is_control_center(user_id):
        project_ids = permission_service.assigned_project_ids(user_id)
        if not project_ids:
            return []
        query = query.filter(DailyEntry.project_id.in_(project_ids))

    entries = query.order_by(DailyEntry.date.desc(), DailyEntry.id).all()
    activities, scopes, projects = _lookup_tables(entries)

    by_date = defaultdict(list)
    for entry in entries:
        by_date[entry.date].append(entry)

    days = []
    for date in sorted(by_date, reverse=True):
        day_entries = by_date[date]
        summary = summarize_entries(day_entries)
        days.append({
            "date": date,
            "total_forecast": summary["total_forecast_quantity"],
            "total_actual": summary["total_actual_quantity"],
            "total_forecast_hours": summary["total_forecast_hours"],
            "total_actual_hours": summary["total_actual_hours"],
            "entry_count": summary["entries_count"],
            "entries": [
                _work_log_row(e, activities, scopes, projects) for e in day_entries
            ],
        })
    return days
