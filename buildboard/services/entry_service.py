"""Daily entry service: the forecast/actuals recorder.

Transaction policy: methods use flush() for ID generation, never commit().
Caller (route handler) is responsible for db.session.commit().

Write operations:
- submit_forecast / submit_actuals / submit_entry: upsert on (activity, date)
- remove_entry

Read operations return None / [] for unauthenticated or denied callers
instead of raising.
"""
import logging
from datetime import datetime, timezone

from sqlalchemy.exc import IntegrityError

from buildboard.core.exceptions import AccessDeniedError, NotFoundError
from buildboard.models import db
from buildboard.models.auth import ScopeAssignment, UserProfile
from buildboard.models.daily_entry import DailyEntry
from buildboard.models.project import Activity, Scope
from buildboard.services import permission_service
from buildboard.utils.helpers import parse_iso_date, parse_quantity

logger = logging.getLogger(__name__)

# Caller-supplied inputs; *_hours is always derived
INPUT_FIELDS = (
    "forecast_quantity",
    "forecast_crew_size",
    "forecast_hours_per_worker",
    "actual_quantity",
    "actual_crew_size",
    "actual_hours_per_worker",
)

# side → (crew field, hours-per-worker field, derived field)
_DERIVED = {
    "forecast": ("forecast_crew_size", "forecast_hours_per_worker", "forecast_hours"),
    "actual": ("actual_crew_size", "actual_hours_per_worker", "actual_hours"),
}


# ── Write path ───────────────────────────────────────────────────────────


def submit_forecast(user_id, activity_id, date, quantity, crew_size, hours_per_worker,
                    notes=None):
    """Record the morning forecast for one activity and day. Returns the entry id."""
    return _record(user_id, activity_id, date, {
        "forecast_quantity": quantity,
        "forecast_crew_size": crew_size,
        "forecast_hours_per_worker": hours_per_worker,
    }, notes)


def submit_actuals(user_id, activity_id, date, quantity, crew_size, hours_per_worker,
                   notes=None):
    """Record the end-of-day actuals for one activity and day. Returns the entry id."""
    return _record(user_id, activity_id, date, {
        "actual_quantity": quantity,
        "actual_crew_size": crew_size,
        "actual_hours_per_worker": hours_per_worker,
    }, notes)


def submit_entry(user_id, activity_id, date, notes=None, **fields):
    """Record any subset of forecast and actual inputs in one call.

    Keyword arguments are limited to ``INPUT_FIELDS``; a value of None
    counts as "not supplied" and leaves the stored value untouched. Derived
    hours come only from the crew and hours/worker passed in the same call.
    """
    unknown = set(fields) - set(INPUT_FIELDS)
    if unknown:
        raise TypeError(f"Unexpected entry fields: {', '.join(sorted(unknown))}")
    supplied = {k: v for k, v in fields.items() if v is not None}
    return _record(user_id, activity_id, date, supplied, notes)


def remove_entry(user_id, entry_id):
    permission_service.require_authenticated(user_id)
    entry = db.session.get(DailyEntry, entry_id)
    if entry is None:
        raise NotFoundError("Entry", entry_id)
    if not permission_service.can_access_project(user_id, entry.project_id):
        logger.warning("User %s denied delete of entry %s", user_id, entry_id)
        raise AccessDeniedError()

    db.session.delete(entry)
    db.session.flush()
    logger.info("Entry %s removed by user %s", entry_id, user_id)


def _record(user_id, activity_id, date, inputs, notes):
    permission_service.require_authenticated(user_id)
    day = parse_iso_date(date)
    values = {
        field: parse_quantity(value, field)
        for field, value in inputs.items() if value is not None
    }

    activity = db.session.get(Activity, activity_id)
    if activity is None:
        raise NotFoundError("Activity", activity_id)
    if not permission_service.can_access_project(user_id, activity.project_id):
        logger.warning(
            "User %s denied entry on activity %s (project %s)",
            user_id, activity_id, activity.project_id,
        )
        raise AccessDeniedError()

    foreman_name = resolve_foreman_name(activity.scope_id, user_id)

    # A side whose crew or hours/worker is supplied gets its hours rewritten
    for crew_field, hpw_field, hours_field in _DERIVED.values():
        if crew_field not in values and hpw_field not in values:
            continue
        crew, hpw = values.get(crew_field), values.get(hpw_field)
        values[hours_field] = crew * hpw if crew and hpw else None

    existing = get_entry(activity_id, day)
    if existing is not None:
        _patch(existing, user_id, values, notes, foreman_name)
        db.session.flush()
        logger.info("Entry %s updated by user %s (%s)", existing.id, user_id, day)
        return existing.id

    entry = DailyEntry(
        activity_id=activity.id,
        scope_id=activity.scope_id,
        project_id=activity.project_id,
        date=day,
        user_id=user_id,
        foreman_name=foreman_name,
        notes=notes,
        created_by=user_id,
        created_at=datetime.now(timezone.utc),
        **values,
    )
    db.session.add(entry)
    try:
        db.session.flush()
    except IntegrityError:
        # Another request inserted the same (activity, date) first
        db.session.rollback()
        existing = get_entry(activity_id, day)
        if existing is None:
            raise
        logger.info("Entry insert for activity %s on %s lost a race; patching %s",
                    activity_id, day, existing.id)
        _patch(existing, user_id, values, notes, foreman_name)
        db.session.flush()
        return existing.id

    logger.info("Entry %s created by user %s (activity %s, %s)",
                entry.id, user_id, activity_id, day)
    return entry.id


def _patch(entry, user_id, values, notes, foreman_name):
    for field, value in values.items():
        setattr(entry, field, value)
    if notes is not None:
        entry.notes = notes
    if foreman_name is not None:
        entry.foreman_name = foreman_name
    entry.updated_by = user_id
    entry.updated_at = datetime.now(timezone.utc)


def resolve_foreman_name(scope_id, user_id):
    """Name of the scope's responsible foreman, else the submitter's, else None."""
    assignment = (
        ScopeAssignment.query
        .filter_by(scope_id=scope_id)
        .order_by(ScopeAssignment.id)
        .first()
    )
    if assignment is not None:
        profile = permission_service.get_profile(assignment.user_id)
        if profile is not None:
            return profile.name

    profile = permission_service.get_profile(user_id)
    return profile.name if profile else None


def get_entry(activity_id, date):
    return DailyEntry.query.filter_by(activity_id=activity_id, date=date).first()


# ── Read path ────────────────────────────────────────────────────────────


def get_entry_for_activity_date(user_id, activity_id, date):
    """Entry dict for one activity and day, or None."""
    if user_id is None:
        return None
    activity = db.session.get(Activity, activity_id)
    if activity is None:
        return None
    if not permission_service.can_access_project(user_id, activity.project_id):
        return None
    entry = get_entry(activity_id, date)
    return entry.to_dict() if entry else None


def list_entries_for_project_date(user_id, project_id, date):
    """Entries of one project on one day, with activity, scope and submitter names."""
    if user_id is None or not permission_service.can_access_project(user_id, project_id):
        return []
    entries = (
        DailyEntry.query
        .filter_by(project_id=project_id, date=date)
        .order_by(DailyEntry.id)
        .all()
    )
    return enrich_entries(entries, with_user_name=True)


def list_entries_for_project_range(user_id, project_id, start_date, end_date):
    """Entries of one project inside the inclusive date range."""
    if user_id is None or not permission_service.can_access_project(user_id, project_id):
        return []
    entries = (
        DailyEntry.query
        .filter(
            DailyEntry.project_id == project_id,
            DailyEntry.date >= start_date,
            DailyEntry.date <= end_date,
        )
        .order_by(DailyEntry.date, DailyEntry.id)
        .all()
    )
    return enrich_entries(entries)


def enrich_entries(entries, with_user_name=False):
    """Serialize entries adding activity name/unit, scope name and optionally user name."""
    activity_ids = {e.activity_id for e in entries}
    scope_ids = {e.scope_id for e in entries}
    activities = {
        a.id: a for a in Activity.query.filter(Activity.id.in_(activity_ids)).all()
    } if activity_ids else {}
    scopes = {
        s.id: s for s in Scope.query.filter(Scope.id.in_(scope_ids)).all()
    } if scope_ids else {}
    names = {}
    if with_user_name:
        user_ids = {e.user_id for e in entries}
        if user_ids:
            names = {
                p.user_id: p.name
                for p in UserProfile.query.filter(UserProfile.user_id.in_(user_ids)).all()
            }

    result = []
    for entry in entries:
        data = entry.to_dict()
        activity = activities.get(entry.activity_id)
        scope = scopes.get(entry.scope_id)
        data["activity_name"] = activity.name if activity else "Unknown"
        data["activity_unit"] = activity.unit if activity else "units"
        data["scope_name"] = scope.name if scope else "Unknown"
        if with_user_name:
            data["user_name"] = names.get(entry.user_id, "Unknown")
        result.append(data)
    return result


