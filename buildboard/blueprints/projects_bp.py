"""
Projects blueprint.

Endpoints:
    GET/POST  /api/v1/projects
    GET/PUT   /api/v1/projects/<project_id>
    PUT       /api/v1/projects/<project_id>/leaderboard-mode
    GET/POST  /api/v1/projects/<project_id>/assignments
    DELETE    /api/v1/projects/<project_id>/assignments/<user_id>

Reads answer 200 with null / [] when the caller may not see the project.
"""

import logging

from flask import Blueprint, jsonify

import buildboard.services.project_service as svc
from buildboard.blueprints import json_body
from buildboard.core.exceptions import ValidationError
from buildboard.middleware.jwt_auth import current_user_id
from buildboard.middleware.project_access import require_project_access
from buildboard.utils.helpers import db_commit_or_error

logger = logging.getLogger(__name__)

projects_bp = Blueprint("projects", __name__, url_prefix="/api/v1")


@projects_bp.route("/projects", methods=["GET"])
def list_projects():
    return jsonify(svc.list_projects(current_user_id()))


@projects_bp.route("/projects", methods=["POST"])
def create_project():
    """Body: {name, description?, status?, leaderboard_enabled?}"""
    project = svc.create_project(current_user_id(), json_body())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(project.to_dict()), 201


@projects_bp.route("/projects/<int:project_id>", methods=["GET"])
def get_project(project_id):
    return jsonify(svc.get_project(current_user_id(), project_id))


@projects_bp.route("/projects/<int:project_id>", methods=["PUT"])
@require_project_access("project_id")
def update_project(project_id):
    project = svc.update_project(current_user_id(), project_id, json_body())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(project.to_dict())


@projects_bp.route("/projects/<int:project_id>/leaderboard-mode", methods=["PUT"])
def set_leaderboard_mode(project_id):
    """Body: {enabled: bool}"""
    data = json_body()
    if "enabled" not in data:
        raise ValidationError("enabled is required", {"enabled": "required"})
    project = svc.set_leaderboard_mode(current_user_id(), project_id, data["enabled"])
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(project.to_dict())


@projects_bp.route("/projects/<int:project_id>/assignments", methods=["GET"])
def list_assigned_users(project_id):
    return jsonify(svc.get_assigned_users(current_user_id(), project_id))


@projects_bp.route("/projects/<int:project_id>/assignments", methods=["POST"])
def assign_user(project_id):
    """Body: {user_id}"""
    target = json_body().get("user_id")
    if not isinstance(target, int):
        raise ValidationError("user_id is required", {"user_id": "required"})
    assignment = svc.assign_user(current_user_id(), project_id, target)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(assignment.to_dict()), 201


@projects_bp.route("/projects/<int:project_id>/assignments/<int:user_id>", methods=["DELETE"])
def unassign_user(project_id, user_id):
    svc.unassign_user(current_user_id(), project_id, user_id)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"message": "Unassigned"})
