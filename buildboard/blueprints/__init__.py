"""
BuildBoard
Blueprint registry and shared request helpers.
"""

from flask import request

from buildboard.utils.helpers import parse_date_arg


def json_body() -> dict:
    """Request JSON as a dict; empty dict for missing or non-object bodies."""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def date_range_args() -> tuple[str | None, str | None]:
    """Optional ``start_date`` / ``end_date`` query params, each applied on its own."""
    return (
        parse_date_arg(request.args.get("start_date")),
        parse_date_arg(request.args.get("end_date")),
    )


def get_blueprints():
    from buildboard.blueprints.admin_bp import admin_bp
    from buildboard.blueprints.dashboard_bp import dashboard_bp
    from buildboard.blueprints.entries_bp import entries_bp
    from buildboard.blueprints.health_bp import health_bp
    from buildboard.blueprints.leaderboard_bp import leaderboard_bp
    from buildboard.blueprints.projects_bp import projects_bp
    from buildboard.blueprints.scopes_bp import scopes_bp
    from buildboard.blueprints.users_bp import users_bp

    return (
        health_bp,
        projects_bp,
        scopes_bp,
        entries_bp,
        dashboard_bp,
        leaderboard_bp,
        users_bp,
        admin_bp,
    )
