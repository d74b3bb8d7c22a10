"""User service: profiles, roles and account management.

Transaction policy: methods use flush() for ID generation, never commit().
Caller (route handler) is responsible for db.session.commit().

Credentials are handled outside BuildBoard: an account here is a User row
(email) plus its UserProfile. Managing other users is a Control Center task.
"""
import logging

from buildboard.core.exceptions import ConflictError, NotFoundError, ValidationError
from buildboard.models import db
from buildboard.models.auth import (
    JOB_TITLES,
    ROLE_CONSTRUCTION_MANAGER,
    ROLES,
    ProjectAssignment,
    User,
    UserProfile,
)
from buildboard.models.project import Project
from buildboard.services import permission_service

logger = logging.getLogger(__name__)


def _validate_role(role):
    if role not in ROLES:
        raise ValidationError(f"role must be one of: {', '.join(ROLES)}", {"role": "invalid"})


def _validate_job_title(job_title):
    if job_title is not None and job_title not in JOB_TITLES:
        raise ValidationError(
            f"job_title must be one of: {', '.join(JOB_TITLES)}",
            {"job_title": "invalid"},
        )


def _required_name(data):
    name = (data.get("name") or "").strip()
    if not name:
        raise ValidationError("name is required", {"name": "required"})
    return name


# ── Own profile ──────────────────────────────────────────────────────────


def get_current_profile(user_id):
    profile = permission_service.get_profile(user_id)
    return profile.to_dict() if profile else None


def get_profile_by_user(user_id, target_user_id):
    if user_id is None:
        return None
    profile = permission_service.get_profile(target_user_id)
    return profile.to_dict() if profile else None


def upsert_profile(user_id, data):
    """Create or replace the caller's own profile."""
    permission_service.require_authenticated(user_id)
    if db.session.get(User, user_id) is None:
        raise NotFoundError("User", user_id)

    name = _required_name(data)
    role = data.get("role", ROLE_CONSTRUCTION_MANAGER)
    _validate_role(role)
    job_title = data.get("job_title")
    _validate_job_title(job_title)

    profile = permission_service.get_profile(user_id)
    if profile is None:
        profile = UserProfile(user_id=user_id)
        db.session.add(profile)
    profile.name = name
    profile.role = role
    profile.job_title = job_title
    db.session.flush()
    logger.info("Profile saved for user %s (role=%s)", user_id, role)
    return profile


# ── Control Center user management ───────────────────────────────────────


def list_users(user_id):
    """Every profile with email and assigned projects (Control Center only)."""
    if not permission_service.is_control_center(user_id):
        return []

    projects = {p.id: p.name for p in Project.query.all()}
    assigned = {}
    for assignment in ProjectAssignment.query.order_by(ProjectAssignment.id).all():
        if assignment.project_id in projects:
            assigned.setdefault(assignment.user_id, []).append({
                "id": assignment.project_id,
                "name": projects[assignment.project_id],
            })

    rows = (
        db.session.query(UserProfile, User)
        .outerjoin(User, User.id == UserProfile.user_id)
        .order_by(UserProfile.name)
        .all()
    )
    return [
        {
            **profile.to_dict(),
            "email": user.email if user else "Unknown",
            "assigned_projects": assigned.get(profile.user_id, []),
        }
        for profile, user in rows
    ]


def create_user_account(user_id, data):
    """Create a User + UserProfile, optionally assigning projects.

    Returns the new User.
    """
    permission_service.require_control_center(
        user_id, "Only Control Center users can create accounts",
    )

    email = (data.get("email") or "").strip().lower()
    if not email or "@" not in email:
        raise ValidationError("A valid email is required", {"email": "invalid"})
    name = _required_name(data)
    role = data.get("role", ROLE_CONSTRUCTION_MANAGER)
    _validate_role(role)
    job_title = data.get("job_title")
    _validate_job_title(job_title)

    if User.query.filter_by(email=email).first() is not None:
        raise ConflictError("User", "email", email)

    user = User(email=email)
    db.session.add(user)
    db.session.flush()
    db.session.add(UserProfile(user_id=user.id, name=name, role=role, job_title=job_title))

    for project_id in data.get("project_ids") or []:
        if db.session.get(Project, project_id) is None:
            raise NotFoundError("Project", project_id)
        exists = ProjectAssignment.query.filter_by(
            user_id=user.id, project_id=project_id,
        ).first()
        if exists is None:
            db.session.add(ProjectAssignment(user_id=user.id, project_id=project_id))

    db.session.flush()
    logger.info("User account %s (%s) created by %s", user.id, email, user_id)
    return user


def update_user_profile(user_id, profile_id, data):
    permission_service.require_control_center(
        user_id, "Only Control Center users can manage other users",
    )
    profile = db.session.get(UserProfile, profile_id)
    if profile is None:
        raise NotFoundError("Profile", profile_id)

    if "name" in data:
        profile.name = _required_name(data)
    if "role" in data:
        _validate_role(data["role"])
        profile.role = data["role"]
    if "job_title" in data:
        _validate_job_title(data["job_title"])
        profile.job_title = data["job_title"]
    db.session.flush()
    logger.info("Profile %s updated by %s", profile_id, user_id)
    return profile


def delete_user_profile(user_id, profile_id):
    """Remove a profile and its project assignments. Entries are kept."""
    permission_service.require_control_center(
        user_id, "Only Control Center users can delete users",
    )
    profile = db.session.get(UserProfile, profile_id)
    if profile is None:
        raise NotFoundError("Profile", profile_id)
    if profile.user_id == user_id:
        raise ValidationError("Cannot delete your own profile")

    ProjectAssignment.query.filter_by(user_id=profile.user_id).delete(synchronize_session=False)
    db.session.delete(profile)
    db.session.flush()
    logger.info("Profile %s (user %s) deleted by %s", profile_id, profile.user_id, user_id)


def list_field_users(user_id):
    """Construction managers, for entry and leaderboard pickers."""
    if user_id is None:
        return []
    profiles = (
        UserProfile.query.filter_by(role=ROLE_CONSTRUCTION_MANAGER)
        .order_by(UserProfile.name)
        .all()
    )
    return [
        {"id": p.id, "user_id": p.user_id, "name": p.name, "job_title": p.job_title}
        for p in profiles
    ]


def get_user_projects(user_id, target_user_id):
    if not permission_service.is_control_center(user_id):
        return []
    projects = (
        Project.query
        .join(ProjectAssignment, ProjectAssignment.project_id == Project.id)
        .filter(ProjectAssignment.user_id == target_user_id)
        .order_by(Project.id)
        .all()
    )
    return [p.to_dict() for p in projects]


def get_or_create_user(email):
    """Look up a User by email, creating it if missing. Used by the CLI."""
    email = email.strip().lower()
    user = User.query.filter_by(email=email).first()
    if user is None:
        user = User(email=email)
        db.session.add(user)
        db.session.flush()
        logger.info("User %s created for %s", user.id, email)
    return user
