"""
Scopes & activities blueprint.

Endpoint groups:
  Scopes              GET/POST /api/v1/projects/<pid>/scopes
                      GET/PUT/DELETE /api/v1/scopes/<sid>
  Activities          GET/POST /api/v1/scopes/<sid>/activities
                      GET /api/v1/projects/<pid>/activities
                      GET/PUT/DELETE /api/v1/activities/<aid>
  Scope assignments   GET/POST /api/v1/scopes/<sid>/assignments
                      DELETE /api/v1/scopes/<sid>/assignments/<uid>
                      GET /api/v1/scopes/<sid>/assigned-manager
                      GET /api/v1/projects/<pid>/scope-assignments
                      GET /api/v1/users/<uid>/scope-assignments
                      GET /api/v1/construction-managers
"""

import logging

from flask import Blueprint, jsonify

import buildboard.services.scope_service as svc
from buildboard.blueprints import json_body
from buildboard.core.exceptions import ValidationError
from buildboard.middleware.jwt_auth import current_user_id
from buildboard.middleware.project_access import require_project_access
from buildboard.utils.helpers import db_commit_or_error

logger = logging.getLogger(__name__)

scopes_bp = Blueprint("scopes", __name__, url_prefix="/api/v1")


def _commit(payload, status=200):
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(payload), status


# ═════════════════════════════════════════════════════════════════════════
# Scopes
# ═════════════════════════════════════════════════════════════════════════


@scopes_bp.route("/projects/<int:project_id>/scopes", methods=["GET"])
def list_scopes(project_id):
    return jsonify(svc.list_scopes(current_user_id(), project_id))


@scopes_bp.route("/projects/<int:project_id>/scopes", methods=["POST"])
@require_project_access("project_id")
def create_scope(project_id):
    """Body: {name, description?}"""
    scope = svc.create_scope(current_user_id(), project_id, json_body())
    return _commit(scope.to_dict(), 201)


@scopes_bp.route("/scopes/<int:scope_id>", methods=["GET"])
def get_scope(scope_id):
    """Scope with its project embedded."""
    return jsonify(svc.get_scope_with_project(current_user_id(), scope_id))


@scopes_bp.route("/scopes/<int:scope_id>", methods=["PUT"])
def update_scope(scope_id):
    scope = svc.update_scope(current_user_id(), scope_id, json_body())
    return _commit(scope.to_dict())


@scopes_bp.route("/scopes/<int:scope_id>", methods=["DELETE"])
def delete_scope(scope_id):
    svc.delete_scope(current_user_id(), scope_id)
    return _commit({"message": "Scope deleted"})


# ═════════════════════════════════════════════════════════════════════════
# Activities
# ═════════════════════════════════════════════════════════════════════════


@scopes_bp.route("/scopes/<int:scope_id>/activities", methods=["GET"])
def list_activities(scope_id):
    return jsonify(svc.list_activities_for_scope(current_user_id(), scope_id))


@scopes_bp.route("/scopes/<int:scope_id>/activities", methods=["POST"])
def create_activity(scope_id):
    """Body: {name, unit, description?}"""
    activity = svc.create_activity(current_user_id(), scope_id, json_body())
    return _commit(activity.to_dict(), 201)


@scopes_bp.route("/projects/<int:project_id>/activities", methods=["GET"])
def list_project_activities(project_id):
    return jsonify(svc.list_activities_for_project(current_user_id(), project_id))


@scopes_bp.route("/activities/<int:activity_id>", methods=["GET"])
def get_activity(activity_id):
    return jsonify(svc.get_activity(current_user_id(), activity_id))


@scopes_bp.route("/activities/<int:activity_id>", methods=["PUT"])
def update_activity(activity_id):
    activity = svc.update_activity(current_user_id(), activity_id, json_body())
    return _commit(activity.to_dict())


@scopes_bp.route("/activities/<int:activity_id>", methods=["DELETE"])
def delete_activity(activity_id):
    svc.delete_activity(current_user_id(), activity_id)
    return _commit({"message": "Activity deleted"})


# ═════════════════════════════════════════════════════════════════════════
# Scope assignments
# ═════════════════════════════════════════════════════════════════════════


@scopes_bp.route("/scopes/<int:scope_id>/assignments", methods=["GET"])
def list_scope_assignments(scope_id):
    return jsonify(svc.list_scope_assignments(current_user_id(), scope_id))


@scopes_bp.route("/scopes/<int:scope_id>/assignments", methods=["POST"])
def assign_scope(scope_id):
    """Body: {user_id}"""
    target = json_body().get("user_id")
    if not isinstance(target, int):
        raise ValidationError("user_id is required", {"user_id": "required"})
    assignment = svc.assign_scope(current_user_id(), scope_id, target)
    return _commit(assignment.to_dict(), 201)


@scopes_bp.route("/scopes/<int:scope_id>/assignments/<int:user_id>", methods=["DELETE"])
def unassign_scope(scope_id, user_id):
    svc.unassign_scope(current_user_id(), scope_id, user_id)
    return _commit({"message": "Unassigned"})


@scopes_bp.route("/scopes/<int:scope_id>/assigned-manager", methods=["GET"])
def get_assigned_manager(scope_id):
    return jsonify(svc.get_assigned_manager(current_user_id(), scope_id))


@scopes_bp.route("/projects/<int:project_id>/scope-assignments", methods=["GET"])
def list_project_scope_assignments(project_id):
    return jsonify(svc.list_project_scope_assignments(current_user_id(), project_id))


@scopes_bp.route("/users/<int:user_id>/scope-assignments", methods=["GET"])
def list_user_scope_assignments(user_id):
    return jsonify(svc.list_user_scope_assignments(current_user_id(), user_id))


@scopes_bp.route("/construction-managers", methods=["GET"])
def list_available_managers():
    return jsonify(svc.list_available_managers(current_user_id()))
