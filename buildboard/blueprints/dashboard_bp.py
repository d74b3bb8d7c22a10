"""
Dashboard blueprint: KPI and trend endpoints.

Project views (gated by project access; optional ?start_date=&end_date=):
    GET /api/v1/projects/<pid>/kpis
    GET /api/v1/projects/<pid>/scope-kpis
    GET /api/v1/projects/<pid>/trend
    GET /api/v1/scopes/<sid>/kpis
    GET /api/v1/activities/<aid>/kpis

Control Center overview:
    GET /api/v1/dashboard/kpis
    GET /api/v1/dashboard/projects
    GET /api/v1/dashboard/trend?start_date=&end_date=
    GET /api/v1/dashboard/scopes
    GET /api/v1/dashboard/work-logs/recent?limit=
    GET /api/v1/dashboard/work-logs?start_date=&end_date=   (also for managers)

All routes are reads: no token or no access answers 200 with null / [].
"""

import logging
from datetime import date, timedelta

from flask import Blueprint, current_app, jsonify, request

import buildboard.services.kpi_service as svc
from buildboard.blueprints import date_range_args
from buildboard.middleware.jwt_auth import current_user_id

logger = logging.getLogger(__name__)

dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api/v1")

DEFAULT_TREND_DAYS = 30
MAX_WORK_LOGS = 500


def _trend_window():
    """Requested range, defaulting to the last DEFAULT_TREND_DAYS days."""
    start, end = date_range_args()
    today = date.today()
    end = end or today.isoformat()
    start = start or (today - timedelta(days=DEFAULT_TREND_DAYS - 1)).isoformat()
    return start, end


@dashboard_bp.route("/projects/<int:project_id>/kpis", methods=["GET"])
def project_kpis(project_id):
    return jsonify(svc.get_project_kpis(current_user_id(), project_id, *date_range_args()))


@dashboard_bp.route("/projects/<int:project_id>/scope-kpis", methods=["GET"])
def project_scope_kpis(project_id):
    return jsonify(svc.get_all_scope_kpis(current_user_id(), project_id, *date_range_args()))


@dashboard_bp.route("/projects/<int:project_id>/trend", methods=["GET"])
def project_trend(project_id):
    start, end = _trend_window()
    return jsonify(svc.get_trend_data(current_user_id(), project_id, start, end))


@dashboard_bp.route("/scopes/<int:scope_id>/kpis", methods=["GET"])
def scope_kpis(scope_id):
    return jsonify(svc.get_scope_kpis(current_user_id(), scope_id, *date_range_args()))


@dashboard_bp.route("/activities/<int:activity_id>/kpis", methods=["GET"])
def activity_kpis(activity_id):
    return jsonify(svc.get_activity_kpis(current_user_id(), activity_id, *date_range_args()))


# ── Control Center ───────────────────────────────────────────────────────


@dashboard_bp.route("/dashboard/kpis", methods=["GET"])
def all_projects_kpis():
    return jsonify(svc.get_all_projects_kpis(current_user_id()))


@dashboard_bp.route("/dashboard/projects", methods=["GET"])
def projects_summary():
    return jsonify(svc.get_projects_summary(current_user_id()))


@dashboard_bp.route("/dashboard/trend", methods=["GET"])
def all_projects_trend():
    start, end = _trend_window()
    return jsonify(svc.get_all_projects_trend_data(current_user_id(), start, end))


@dashboard_bp.route("/dashboard/scopes", methods=["GET"])
def all_scopes_breakdown():
    return jsonify(svc.get_all_scopes_breakdown(current_user_id()))


@dashboard_bp.route("/dashboard/work-logs/recent", methods=["GET"])
def recent_work_logs():
    default = current_app.config.get("RECENT_WORK_LOGS_LIMIT", 50)
    limit = request.args.get("limit", default, type=int)
    limit = max(1, min(limit, MAX_WORK_LOGS))
    return jsonify(svc.get_recent_work_logs(current_user_id(), limit=limit))


@dashboard_bp.route("/dashboard/work-logs", methods=["GET"])
def work_logs_by_date():
    start, end = _trend_window()
    return jsonify(svc.get_work_logs_by_date(current_user_id(), start, end))
