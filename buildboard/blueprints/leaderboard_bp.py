"""
Leaderboard blueprint: foreman rankings and PF drill-downs.

Every route accepts optional ``start_date`` / ``end_date`` query params
(YYYY-MM-DD, inclusive, each applied when present).

    GET /api/v1/projects/<pid>/leaderboard
    GET /api/v1/scopes/<sid>/leaderboard
    GET /api/v1/projects/<pid>/team-summary
    GET /api/v1/projects/<pid>/scope-breakdown
    GET /api/v1/scopes/<sid>/activity-breakdown
    GET /api/v1/projects/<pid>/users/<uid>/stats
"""

from flask import Blueprint, jsonify

import buildboard.services.leaderboard_service as svc
from buildboard.blueprints import date_range_args
from buildboard.middleware.jwt_auth import current_user_id

leaderboard_bp = Blueprint("leaderboard", __name__, url_prefix="/api/v1")


@leaderboard_bp.route("/projects/<int:project_id>/leaderboard", methods=["GET"])
def project_leaderboard(project_id):
    return jsonify(svc.get_project_leaderboard(current_user_id(), project_id, *date_range_args()))


@leaderboard_bp.route("/scopes/<int:scope_id>/leaderboard", methods=["GET"])
def scope_leaderboard(scope_id):
    return jsonify(svc.get_scope_leaderboard(current_user_id(), scope_id, *date_range_args()))


@leaderboard_bp.route("/projects/<int:project_id>/team-summary", methods=["GET"])
def team_summary(project_id):
    return jsonify(svc.get_team_summary(current_user_id(), project_id, *date_range_args()))


@leaderboard_bp.route("/projects/<int:project_id>/scope-breakdown", methods=["GET"])
def scope_breakdown(project_id):
    return jsonify(svc.get_scope_breakdown(current_user_id(), project_id, *date_range_args()))


@leaderboard_bp.route("/scopes/<int:scope_id>/activity-breakdown", methods=["GET"])
def activity_breakdown(scope_id):
    return jsonify(svc.get_activity_breakdown(current_user_id(), scope_id, *date_range_args()))


@leaderboard_bp.route("/projects/<int:project_id>/users/<int:user_id>/stats", methods=["GET"])
def user_stats(project_id, user_id):
    return jsonify(
        svc.get_user_stats(current_user_id(), project_id, user_id, *date_range_args())
    )
