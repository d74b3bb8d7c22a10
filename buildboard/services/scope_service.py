"""Scope service: scopes, activities and responsible-foreman assignments.

Transaction policy: methods use flush() for ID generation, never commit().
Caller (route handler) is responsible for db.session.commit().

Scopes and activities may be edited by anyone who passes the project gate.
Scope assignments are managed by the Control Center only.
"""
import logging

from buildboard.core.exceptions import NotFoundError, ValidationError
from buildboard.models import db
from buildboard.models.auth import (
    ROLE_CONSTRUCTION_MANAGER,
    ProjectAssignment,
    ScopeAssignment,
    User,
    UserProfile,
)
from buildboard.models.daily_entry import DailyEntry
from buildboard.models.project import Activity, Project, Scope
from buildboard.services import permission_service

logger = logging.getLogger(__name__)


def _required_text(data, field):
    value = (data.get(field) or "").strip()
    if not value:
        raise ValidationError(f"{field} is required", {field: "required"})
    return value


def _readable_scope(user_id, scope_id):
    """Scope if the caller may read it, else None."""
    if user_id is None:
        return None
    scope = db.session.get(Scope, scope_id)
    if scope is None or not permission_service.can_access_project(user_id, scope.project_id):
        return None
    return scope


def _writable_scope(user_id, scope_id) -> Scope:
    permission_service.require_authenticated(user_id)
    scope = db.session.get(Scope, scope_id)
    if scope is None:
        raise NotFoundError("Scope", scope_id)
    permission_service.require_project_access(user_id, scope.project_id)
    return scope


def _writable_activity(user_id, activity_id) -> Activity:
    permission_service.require_authenticated(user_id)
    activity = db.session.get(Activity, activity_id)
    if activity is None:
        raise NotFoundError("Activity", activity_id)
    permission_service.require_project_access(user_id, activity.project_id)
    return activity


# ═══════════════════════════════════════════════════════════════
# SCOPES
# ═══════════════════════════════════════════════════════════════


def list_scopes(user_id, project_id):
    if user_id is None or not permission_service.can_access_project(user_id, project_id):
        return []
    scopes = Scope.query.filter_by(project_id=project_id).order_by(Scope.id).all()
    return [s.to_dict() for s in scopes]


def get_scope(user_id, scope_id):
    scope = _readable_scope(user_id, scope_id)
    return scope.to_dict() if scope else None


def get_scope_with_project(user_id, scope_id):
    scope = _readable_scope(user_id, scope_id)
    if scope is None:
        return None
    project = db.session.get(Project, scope.project_id)
    return {**scope.to_dict(), "project": project.to_dict() if project else None}


def create_scope(user_id, project_id, data):
    permission_service.require_authenticated(user_id)
    if db.session.get(Project, project_id) is None:
        raise NotFoundError("Project", project_id)
    permission_service.require_project_access(user_id, project_id)

    scope = Scope(
        project_id=project_id,
        name=_required_text(data, "name"),
        description=data.get("description"),
        created_by=user_id,
    )
    db.session.add(scope)
    db.session.flush()
    logger.info("Scope %s created in project %s by user %s", scope.id, project_id, user_id)
    return scope


def update_scope(user_id, scope_id, data):
    scope = _writable_scope(user_id, scope_id)
    if "name" in data:
        scope.name = _required_text(data, "name")
    if "description" in data:
        scope.description = data["description"]
    scope.touch(user_id)
    db.session.flush()
    logger.info("Scope %s updated by user %s", scope_id, user_id)
    return scope


def delete_scope(user_id, scope_id):
    """Delete a scope with its activities, their entries and its assignments."""
    scope = _writable_scope(user_id, scope_id)

    entries = DailyEntry.query.filter_by(scope_id=scope_id).delete(synchronize_session=False)
    Activity.query.filter_by(scope_id=scope_id).delete(synchronize_session=False)
    ScopeAssignment.query.filter_by(scope_id=scope_id).delete(synchronize_session=False)
    db.session.delete(scope)
    db.session.flush()
    logger.info("Scope %s deleted by user %s (%d entries removed)", scope_id, user_id, entries)


# ═══════════════════════════════════════════════════════════════
# ACTIVITIES
# ═══════════════════════════════════════════════════════════════


def list_activities_for_scope(user_id, scope_id):
    scope = _readable_scope(user_id, scope_id)
    if scope is None:
        return []
    activities = Activity.query.filter_by(scope_id=scope_id).order_by(Activity.id).all()
    return [a.to_dict() for a in activities]


def list_activities_for_project(user_id, project_id):
    if user_id is None or not permission_service.can_access_project(user_id, project_id):
        return []
    rows = (
        db.session.query(Activity, Scope.name)
        .outerjoin(Scope, Scope.id == Activity.scope_id)
        .filter(Activity.project_id == project_id)
        .order_by(Activity.id)
        .all()
    )
    return [{**a.to_dict(), "scope_name": name or "Unknown"} for a, name in rows]


def get_activity(user_id, activity_id):
    if user_id is None:
        return None
    activity = db.session.get(Activity, activity_id)
    if activity is None:
        return None
    if not permission_service.can_access_project(user_id, activity.project_id):
        return None
    scope = db.session.get(Scope, activity.scope_id)
    return {**activity.to_dict(), "scope_name": scope.name if scope else "Unknown"}


def create_activity(user_id, scope_id, data):
    scope = _writable_scope(user_id, scope_id)
    activity = Activity(
        scope_id=scope.id,
        project_id=scope.project_id,
        name=_required_text(data, "name"),
        unit=_required_text(data, "unit"),
        description=data.get("description"),
        created_by=user_id,
    )
    db.session.add(activity)
    db.session.flush()
    logger.info("Activity %s created in scope %s by user %s", activity.id, scope_id, user_id)
    return activity


def update_activity(user_id, activity_id, data):
    activity = _writable_activity(user_id, activity_id)
    for field in ("name", "unit"):
        if field in data:
            setattr(activity, field, _required_text(data, field))
    if "description" in data:
        activity.description = data["description"]
    activity.touch(user_id)
    db.session.flush()
    logger.info("Activity %s updated by user %s", activity_id, user_id)
    return activity


def delete_activity(user_id, activity_id):
    activity = _writable_activity(user_id, activity_id)
    DailyEntry.query.filter_by(activity_id=activity_id).delete(synchronize_session=False)
    db.session.delete(activity)
    db.session.flush()
    logger.info("Activity %s deleted by user %s", activity_id, user_id)


# ═══════════════════════════════════════════════════════════════
# SCOPE ASSIGNMENTS
# ═══════════════════════════════════════════════════════════════


def list_scope_assignments(user_id, scope_id):
    """Users responsible for a scope, with name, email and job title."""
    scope = _readable_scope(user_id, scope_id)
    if scope is None:
        return []
    rows = (
        db.session.query(ScopeAssignment, UserProfile, User)
        .outerjoin(UserProfile, UserProfile.user_id == ScopeAssignment.user_id)
        .outerjoin(User, User.id == ScopeAssignment.user_id)
        .filter(ScopeAssignment.scope_id == scope_id)
        .order_by(ScopeAssignment.id)
        .all()
    )
    return [
        {
            "id": assignment.id,
            "user_id": assignment.user_id,
            "scope_id": assignment.scope_id,
            "name": profile.name if profile else "Unknown",
            "email": user.email if user else "Unknown",
            "job_title": profile.job_title if profile else None,
        }
        for assignment, profile, user in rows
    ]


def get_assigned_manager(user_id, scope_id):
    """The first user assigned to the scope (the responsible foreman), or None."""
    if _readable_scope(user_id, scope_id) is None:
        return None
    assignment = (
        ScopeAssignment.query.filter_by(scope_id=scope_id)
        .order_by(ScopeAssignment.id)
        .first()
    )
    if assignment is None:
        return None
    profile = permission_service.get_profile(assignment.user_id)
    return {
        "user_id": assignment.user_id,
        "name": profile.name if profile else "Unknown",
        "job_title": profile.job_title if profile else None,
    }


def list_project_scope_assignments(user_id, project_id):
    if user_id is None or not permission_service.can_access_project(user_id, project_id):
        return []
    rows = (
        db.session.query(ScopeAssignment, UserProfile, Scope)
        .outerjoin(UserProfile, UserProfile.user_id == ScopeAssignment.user_id)
        .outerjoin(Scope, Scope.id == ScopeAssignment.scope_id)
        .filter(ScopeAssignment.project_id == project_id)
        .order_by(ScopeAssignment.id)
        .all()
    )
    return [
        {
            "id": assignment.id,
            "user_id": assignment.user_id,
            "user_name": profile.name if profile else "Unknown",
            "job_title": profile.job_title if profile else None,
            "scope_id": assignment.scope_id,
            "scope_name": scope.name if scope else "Unknown",
        }
        for assignment, profile, scope in rows
    ]


def list_user_scope_assignments(user_id, target_user_id):
    """Scopes a user is responsible for, across projects."""
    if user_id is None:
        return []
    rows = (
        db.session.query(ScopeAssignment, Scope, Project)
        .outerjoin(Scope, Scope.id == ScopeAssignment.scope_id)
        .outerjoin(Project, Project.id == ScopeAssignment.project_id)
        .filter(ScopeAssignment.user_id == target_user_id)
        .order_by(ScopeAssignment.id)
        .all()
    )
    return [
        {
            "id": assignment.id,
            "scope_id": assignment.scope_id,
            "scope_name": scope.name if scope else "Unknown",
            "project_id": assignment.project_id,
            "project_name": project.name if project else "Unknown",
        }
        for assignment, scope, project in rows
    ]


def assign_scope(user_id, scope_id, target_user_id):
    """Make a user responsible for a scope; also grants project access."""
    permission_service.require_control_center(
        user_id, "Only Control Center can assign users to scopes",
    )
    scope = db.session.get(Scope, scope_id)
    if scope is None:
        raise NotFoundError("Scope", scope_id)
    if db.session.get(User, target_user_id) is None:
        raise NotFoundError("User", target_user_id)

    existing = ScopeAssignment.query.filter_by(
        user_id=target_user_id, scope_id=scope_id,
    ).first()
    if existing is not None:
        return existing

    has_project = ProjectAssignment.query.filter_by(
        user_id=target_user_id, project_id=scope.project_id,
    ).first()
    if has_project is None:
        db.session.add(ProjectAssignment(user_id=target_user_id, project_id=scope.project_id))

    assignment = ScopeAssignment(
        user_id=target_user_id, scope_id=scope_id, project_id=scope.project_id,
    )
    db.session.add(assignment)
    db.session.flush()
    logger.info("User %s assigned to scope %s by %s", target_user_id, scope_id, user_id)
    return assignment


def unassign_scope(user_id, scope_id, target_user_id):
    permission_service.require_control_center(
        user_id, "Only Control Center can unassign users from scopes",
    )
    assignment = ScopeAssignment.query.filter_by(
        user_id=target_user_id, scope_id=scope_id,
    ).first()
    if assignment is not None:
        db.session.delete(assignment)
        db.session.flush()
        logger.info("User %s unassigned from scope %s by %s", target_user_id, scope_id, user_id)


def list_available_managers(user_id):
    """Construction managers that can be put in charge of a scope."""
    if user_id is None:
        return []
    rows = (
        db.session.query(UserProfile, User)
        .outerjoin(User, User.id == UserProfile.user_id)
        .filter(UserProfile.role == ROLE_CONSTRUCTION_MANAGER)
        .order_by(UserProfile.name)
        .all()
    )
    return [
        {
            "user_id": profile.user_id,
            "name": profile.name,
            "email": user.email if user else "Unknown",
            "job_title": profile.job_title,
        }
        for profile, user in rows
    ]
