"""Demo data: a solar farm with two weeks of foreman production.

Transaction policy: methods use flush() for ID generation, never commit().
Caller (route handler / CLI command) is responsible for db.session.commit().
"""
import logging
import random
from datetime import date, datetime, time, timedelta, timezone

from buildboard.models import db
from buildboard.models.auth import (
    ROLE_CONTROL_CENTER,
    ProjectAssignment,
    ScopeAssignment,
    UserProfile,
)
from buildboard.models.daily_entry import DailyEntry
from buildboard.models.project import Activity, Project, Scope
from buildboard.services import permission_service
from buildboard.utils.helpers import round_half_up

logger = logging.getLogger(__name__)

SEED_DAYS = 14

# name → performance multiplier applied to the forecast
DEMO_FOREMEN = (
    ("Mike Rodriguez", 1.15),
    ("Sarah Chen", 1.08),
    ("James Wilson", 1.02),
    ("Maria Garcia", 0.95),
    ("David Thompson", 0.88),
)

DEMO_SCOPES = (
    ("Electrical", "All electrical installation work"),
    ("Mechanical", "Mechanical systems and equipment"),
    ("Civil", "Civil works and site preparation"),
)

# (scope, activity, unit, description, foreman index, base qty, crew, hours/worker)
DEMO_ACTIVITIES = (
    ("Electrical", "Underground Electrical", "linear feet", "Underground cable installation", 0, 500, 8, 8),
    ("Electrical", "DC Cable Trenching", "linear feet", "Trenching for DC cables", 1, 300, 6, 8),
    ("Electrical", "Panel Wiring", "panels", "Wiring solar panels", 2, 50, 4, 8),
    ("Mechanical", "Tracker Installation", "units", "Solar tracker installation", 3, 10, 6, 8),
    ("Mechanical", "Panel Mounting", "panels", "Mounting panels on trackers", 4, 40, 5, 8),
    ("Civil", "Site Grading", "acres", "Land grading and preparation", 0, 5, 3, 10),
    ("Civil", "Road Construction", "linear feet", "Access road construction", 1, 200, 8, 8),
)


def seed_demo_data(user_id, rng=None, today=None):
    """Create the demo project unless any project exists.

    The caller gets a Control Center profile if they have none yet.
    Returns ``{"message", "project_id"}``.
    """
    permission_service.require_authenticated(user_id)
    rng = rng or random.Random()
    today = today or date.today()

    if permission_service.get_profile(user_id) is None:
        db.session.add(UserProfile(user_id=user_id, name="Admin User", role=ROLE_CONTROL_CENTER))
        db.session.flush()

    existing = Project.query.order_by(Project.id).first()
    if existing is not None:
        return {"message": "Demo data already exists", "project_id": existing.id}

    project = Project(
        name="Solar Farm Alpha",
        description="500MW Solar Installation Project",
        status="active",
        created_by=user_id,
    )
    db.session.add(project)
    db.session.flush()

    scopes = {}
    for name, description in DEMO_SCOPES:
        scope = Scope(project_id=project.id, name=name, description=description,
                      created_by=user_id)
        db.session.add(scope)
        scopes[name] = scope
    db.session.flush()

    plan = []
    for scope_name, name, unit, description, foreman, qty, crew, hpw in DEMO_ACTIVITIES:
        activity = Activity(
            scope_id=scopes[scope_name].id,
            project_id=project.id,
            name=name,
            unit=unit,
            description=description,
            created_by=user_id,
        )
        db.session.add(activity)
        plan.append((activity, DEMO_FOREMEN[foreman], qty, crew, hpw))
    db.session.flush()

    created = 0
    for offset in range(SEED_DAYS - 1, -1, -1):
        day = today - timedelta(days=offset)
        if day.weekday() >= 5:
            continue
        stamp = datetime.combine(day, time(17, 0), tzinfo=timezone.utc)
        for activity, (foreman_name, multiplier), qty, crew, hpw in plan:
            db.session.add(_demo_entry(
                rng, user_id, activity, day.isoformat(), stamp,
                foreman_name, multiplier, qty, crew, hpw,
            ))
            created += 1

    db.session.flush()
    logger.info("Demo project %s seeded with %d entries by user %s",
                project.id, created, user_id)
    return {"message": "Demo data with leaderboard created successfully",
            "project_id": project.id}


def _demo_entry(rng, user_id, activity, day, stamp, foreman_name, multiplier,
                base_qty, base_crew, base_hpw):
    daily_variance = 0.85 + rng.random() * 0.3
    performance = multiplier * (0.9 + rng.random() * 0.2)

    forecast_qty = round_half_up(base_qty * daily_variance, 0)
    forecast_hpw = round_half_up(base_hpw * daily_variance, 1)
    actual_qty = round_half_up(forecast_qty * performance, 0)
    actual_crew = max(1, base_crew + rng.randint(0, 2) - 1)
    actual_hpw = round_half_up(forecast_hpw / performance, 1)

    return DailyEntry(
        activity_id=activity.id,
        scope_id=activity.scope_id,
        project_id=activity.project_id,
        date=day,
        user_id=user_id,
        foreman_name=foreman_name,
        forecast_quantity=forecast_qty,
        forecast_crew_size=base_crew,
        forecast_hours_per_worker=forecast_hpw,
        forecast_hours=base_crew * forecast_hpw,
        actual_quantity=actual_qty,
        actual_crew_size=actual_crew,
        actual_hours_per_worker=actual_hpw,
        actual_hours=actual_crew * actual_hpw,
        created_by=user_id,
        created_at=stamp,
    )


def clear_sample_data(user_id):
    """Delete entries, activities and scopes. Projects and users stay."""
    permission_service.require_control_center(user_id, "Only Control Center can clear data")

    entries = DailyEntry.query.delete(synchronize_session=False)
    activities = Activity.query.delete(synchronize_session=False)
    ScopeAssignment.query.delete(synchronize_session=False)
    scopes = Scope.query.delete(synchronize_session=False)
    db.session.flush()
    db.session.expire_all()

    logger.info("Sample data cleared by user %s: %d entries, %d activities, %d scopes",
                user_id, entries, activities, scopes)
    return {
        "message": "Sample data cleared (users and projects preserved)",
        "deleted_entries": entries,
        "deleted_activities": activities,
        "deleted_scopes": scopes,
    }


def clear_demo_data(user_id):
    """Delete all production data including projects and their assignments."""
    result = clear_sample_data(user_id)
    assignments = ProjectAssignment.query.delete(synchronize_session=False)
    projects = Project.query.delete(synchronize_session=False)
    db.session.flush()
    db.session.expire_all()

    logger.info("Demo data cleared by user %s: %d projects, %d assignments",
                user_id, projects, assignments)
    return {
        **result,
        "message": "All demo data cleared",
        "deleted_projects": projects,
        "deleted_assignments": assignments,
    }
