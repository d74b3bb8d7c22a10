"""Project service: projects and construction-manager assignments.

Transaction policy: methods use flush() for ID generation, never commit().
Caller (route handler) is responsible for db.session.commit().

Creating, editing and staffing projects is reserved for the Control Center.
"""
import logging

from buildboard.core.exceptions import NotFoundError, ValidationError
from buildboard.models import db
from buildboard.models.auth import ROLE_CONSTRUCTION_MANAGER, ProjectAssignment, User
from buildboard.models.project import PROJECT_STATUSES, Project
from buildboard.services import permission_service

logger = logging.getLogger(__name__)


def _validate_status(status):
    if status not in PROJECT_STATUSES:
        raise ValidationError(
            f"status must be one of: {', '.join(PROJECT_STATUSES)}",
            {"status": "invalid"},
        )


def _get_or_raise(project_id) -> Project:
    project = db.session.get(Project, project_id)
    if project is None:
        raise NotFoundError("Project", project_id)
    return project


# ── Reads ────────────────────────────────────────────────────────────────


def list_projects(user_id):
    """All projects for Control Center and profile-less users, else assigned ones."""
    if user_id is None:
        return []
    profile = permission_service.get_profile(user_id)
    if profile is None or profile.is_control_center:
        projects = Project.query.order_by(Project.id).all()
    else:
        projects = (
            Project.query
            .join(ProjectAssignment, ProjectAssignment.project_id == Project.id)
            .filter(ProjectAssignment.user_id == user_id)
            .order_by(Project.id)
            .all()
        )
    return [p.to_dict() for p in projects]


def get_project(user_id, project_id):
    if user_id is None or not permission_service.can_access_project(user_id, project_id):
        return None
    project = db.session.get(Project, project_id)
    return project.to_dict() if project else None


def get_assigned_users(user_id, project_id):
    if user_id is None or not permission_service.can_access_project(user_id, project_id):
        return []

    rows = (
        db.session.query(ProjectAssignment, User)
        .outerjoin(User, User.id == ProjectAssignment.user_id)
        .filter(ProjectAssignment.project_id == project_id)
        .order_by(ProjectAssignment.id)
        .all()
    )
    result = []
    for assignment, user in rows:
        profile = user.profile if user else None
        result.append({
            "assignment_id": assignment.id,
            "user_id": assignment.user_id,
            "name": profile.name if profile else "Unknown",
            "email": user.email if user else "Unknown",
            "role": profile.role if profile else ROLE_CONSTRUCTION_MANAGER,
        })
    return result


# ── Writes (Control Center) ──────────────────────────────────────────────


def create_project(user_id, data):
    permission_service.require_control_center(user_id, "Only Control Center can create projects")

    name = (data.get("name") or "").strip()
    if not name:
        raise ValidationError("name is required", {"name": "required"})
    status = data.get("status", "active")
    _validate_status(status)

    project = Project(
        name=name,
        description=data.get("description"),
        status=status,
        leaderboard_enabled=bool(data.get("leaderboard_enabled", True)),
        created_by=user_id,
    )
    db.session.add(project)
    db.session.flush()
    logger.info("Project %s created by user %s", project.id, user_id)
    return project


def update_project(user_id, project_id, data):
    permission_service.require_project_access(user_id, project_id)
    permission_service.require_control_center(user_id, "Only Control Center can update projects")
    project = _get_or_raise(project_id)

    if "name" in data:
        name = (data["name"] or "").strip()
        if not name:
            raise ValidationError("name cannot be empty", {"name": "required"})
        project.name = name
    if "description" in data:
        project.description = data["description"]
    if "status" in data:
        _validate_status(data["status"])
        project.status = data["status"]

    project.touch(user_id)
    db.session.flush()
    logger.info("Project %s updated by user %s", project_id, user_id)
    return project


def set_leaderboard_mode(user_id, project_id, enabled):
    """Switch between competitive rankings (True) and team mode (False)."""
    permission_service.require_control_center(
        user_id, "Only Control Center can change leaderboard settings",
    )
    if not isinstance(enabled, bool):
        raise ValidationError("enabled must be a boolean", {"enabled": "invalid"})
    project = _get_or_raise(project_id)
    project.leaderboard_enabled = enabled
    project.touch(user_id)
    db.session.flush()
    logger.info("Project %s leaderboard_enabled=%s (user %s)", project_id, enabled, user_id)
    return project


def assign_user(user_id, project_id, target_user_id):
    """Give a user access to a project. Returns the (possibly existing) assignment."""
    permission_service.require_control_center(
        user_id, "Only Control Center can assign users to projects",
    )
    _get_or_raise(project_id)
    if db.session.get(User, target_user_id) is None:
        raise NotFoundError("User", target_user_id)

    existing = ProjectAssignment.query.filter_by(
        user_id=target_user_id, project_id=project_id,
    ).first()
    if existing is not None:
        return existing

    assignment = ProjectAssignment(user_id=target_user_id, project_id=project_id)
    db.session.add(assignment)
    db.session.flush()
    logger.info("User %s assigned to project %s by %s", target_user_id, project_id, user_id)
    return assignment


def unassign_user(user_id, project_id, target_user_id):
    permission_service.require_control_center(
        user_id, "Only Control Center can unassign users from projects",
    )
    assignment = ProjectAssignment.query.filter_by(
        user_id=target_user_id, project_id=project_id,
    ).first()
    if assignment is not None:
        db.session.delete(assignment)
        db.session.flush()
        logger.info("User %s unassigned from project %s by %s",
                    target_user_id, project_id, user_id)
