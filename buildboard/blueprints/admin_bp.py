"""
Admin blueprint: demo data management.

Endpoints:
    POST /api/v1/admin/seed           seed the demo project (any signed-in user)
    POST /api/v1/admin/clear-sample   drop entries, activities, scopes (CC)
    POST /api/v1/admin/clear-all      also drop projects and assignments (CC)
"""

import logging

from flask import Blueprint, jsonify

import buildboard.services.seed_service as svc
from buildboard.middleware.jwt_auth import current_user_id
from buildboard.utils.helpers import db_commit_or_error

logger = logging.getLogger(__name__)

admin_bp = Blueprint("admin", __name__, url_prefix="/api/v1/admin")


def _done(result, status=200):
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(result), status


@admin_bp.route("/seed", methods=["POST"])
def seed():
    return _done(svc.seed_demo_data(current_user_id()))


@admin_bp.route("/clear-sample", methods=["POST"])
def clear_sample():
    return _done(svc.clear_sample_data(current_user_id()))


@admin_bp.route("/clear-all", methods=["POST"])
def clear_all():
    return _done(svc.clear_demo_data(current_user_id()))
