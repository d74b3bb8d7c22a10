"""
Users blueprint: profiles and Control Center user management.

Endpoints:
    GET/PUT     /api/v1/profile                  current user's profile
    GET/POST    /api/v1/users                    list (CC) / create account (CC)
    GET         /api/v1/users/<uid>/profile
    GET         /api/v1/users/<uid>/projects     (CC)
    PUT/DELETE  /api/v1/profiles/<profile_id>    (CC)
    GET         /api/v1/field-users
"""

import logging

from flask import Blueprint, jsonify

import buildboard.services.user_service as svc
from buildboard.blueprints import json_body
from buildboard.middleware.jwt_auth import current_user_id
from buildboard.utils.helpers import db_commit_or_error

logger = logging.getLogger(__name__)

users_bp = Blueprint("users", __name__, url_prefix="/api/v1")


@users_bp.route("/profile", methods=["GET"])
def get_profile():
    return jsonify(svc.get_current_profile(current_user_id()))


@users_bp.route("/profile", methods=["PUT"])
def upsert_profile():
    """Body: {name, role, job_title?}"""
    profile = svc.upsert_profile(current_user_id(), json_body())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(profile.to_dict())


@users_bp.route("/users", methods=["GET"])
def list_users():
    return jsonify(svc.list_users(current_user_id()))


@users_bp.route("/users", methods=["POST"])
def create_user():
    """Body: {email, name, role, job_title?, project_ids?}"""
    user = svc.create_user_account(current_user_id(), json_body())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"success": True, "user_id": user.id}), 201


@users_bp.route("/users/<int:user_id>/profile", methods=["GET"])
def get_user_profile(user_id):
    return jsonify(svc.get_profile_by_user(current_user_id(), user_id))


@users_bp.route("/users/<int:user_id>/projects", methods=["GET"])
def get_user_projects(user_id):
    return jsonify(svc.get_user_projects(current_user_id(), user_id))


@users_bp.route("/profiles/<int:profile_id>", methods=["PUT"])
def update_profile(profile_id):
    profile = svc.update_user_profile(current_user_id(), profile_id, json_body())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(profile.to_dict())


@users_bp.route("/profiles/<int:profile_id>", methods=["DELETE"])
def delete_profile(profile_id):
    svc.delete_user_profile(current_user_id(), profile_id)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"message": "Profile deleted"})


@users_bp.route("/field-users", methods=["GET"])
def list_field_users():
    return jsonify(svc.list_field_users(current_user_id()))
