"""
Permission Service: role + assignment based project access.

Decision table for ``can_access_project``:
  - no profile              → allow (new user, can look around)
  - role control_center     → allow
  - role construction_manager → allow only with a ProjectAssignment row

Evaluated from the database on every call; there is no permission cache.

The ``require_*`` helpers turn a refusal into an exception for write paths.
Read paths call ``can_access_project`` directly and return an empty result.
"""

import logging

from buildboard.core.exceptions import AccessDeniedError, AuthenticationRequiredError
from buildboard.models.auth import (
    ROLE_CONTROL_CENTER,
    ProjectAssignment,
    UserProfile,
)

logger = logging.getLogger(__name__)


def get_profile(user_id: int | None) -> UserProfile | None:
    if user_id is None:
        return None
    return UserProfile.query.filter_by(user_id=user_id).first()


def is_control_center(user_id: int | None) -> bool:
    profile = get_profile(user_id)
    return profile is not None and profile.role == ROLE_CONTROL_CENTER


def has_project_assignment(user_id: int, project_id: int) -> bool:
    return (
        ProjectAssignment.query
        .filter_by(user_id=user_id, project_id=project_id)
        .first()
    ) is not None


def can_access_project(user_id: int | None, project_id: int) -> bool:
    """Return True if the user may read/write the project's data."""
    if user_id is None:
        return False

    profile = get_profile(user_id)
    if profile is None:
        return True
    if profile.role == ROLE_CONTROL_CENTER:
        return True
    return has_project_assignment(user_id, project_id)


def assigned_project_ids(user_id: int) -> set[int]:
    """Project ids a construction manager is assigned to."""
    rows = ProjectAssignment.query.filter_by(user_id=user_id).all()
    return {row.project_id for row in rows}


# ── Raising variants for write paths ─────────────────────────────────────────

def require_authenticated(user_id: int | None) -> int:
    if user_id is None:
        raise AuthenticationRequiredError()
    return user_id


def require_project_access(user_id: int | None, project_id: int) -> None:
    require_authenticated(user_id)
    if not can_access_project(user_id, project_id):
        logger.warning("User %s denied write access to project %s", user_id, project_id)
        raise AccessDeniedError()


def require_control_center(user_id: int | None, message: str) -> UserProfile:
    require_authenticated(user_id)
    profile = get_profile(user_id)
    if profile is None or profile.role != ROLE_CONTROL_CENTER:
        logger.warning("User %s refused control-center operation: %s", user_id, message)
        raise AccessDeniedError(message)
    return profile
