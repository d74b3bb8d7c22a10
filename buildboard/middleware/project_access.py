"""
Project Access Middleware: Verifies project access for write routes.

Provides the `@require_project_access` decorator that runs the access gate
for the project named in the URL before the view executes.

Usage:
    @bp.route("/projects/<int:project_id>", methods=["PUT"])
    @require_project_access("project_id")
    def update_project(project_id):
        ...  # Only reachable if the gate allows the current user

Unlike read routes, a missing token answers 401 and a refusal answers 403.
"""

import functools
import logging

from flask import g, jsonify, request

from buildboard.services.permission_service import can_access_project

logger = logging.getLogger(__name__)


def require_project_access(param_name: str = "project_id"):
    """
    Decorator: require the JWT user to pass the access gate for the project
    identified by the given route parameter.

    Args:
        param_name: Name of the Flask route parameter containing the project ID.
    """
    def decorator(f):
        @functools.wraps(f)
        def decorated(*args, **kwargs):
            user_id = getattr(g, "jwt_user_id", None)
            if user_id is None:
                return jsonify({"error": "Not authenticated"}), 401

            project_id = kwargs.get(param_name)
            if project_id is None:
                project_id = (request.view_args or {}).get(param_name)

            if project_id is None:
                return f(*args, **kwargs)

            if not can_access_project(user_id, project_id):
                logger.warning(
                    "User %d denied access to project %d: not assigned",
                    user_id, project_id,
                )
                return jsonify({
                    "error": "You do not have access to this project"
                }), 403

            return f(*args, **kwargs)
        return decorated
    return decorator
