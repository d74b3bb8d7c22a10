"""
BuildBoard: construction progress tracking.
Flask Application Factory.

Usage:
    from buildboard import create_app
    app = create_app()           # defaults to APP_ENV or "development"
    app = create_app("testing")  # explicit config
"""

import logging
import os

import click
from flask import Flask, abort, jsonify, request
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate
from sqlalchemy import engine as _sa_engine
from sqlalchemy import event as _sa_event

from buildboard.config import config
from buildboard.core.exceptions import (
    AccessDeniedError,
    AuthenticationRequiredError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from buildboard.middleware.jwt_auth import init_jwt_middleware
from buildboard.middleware.logging_config import configure_logging
from buildboard.middleware.rate_limiter import init_rate_limits
from buildboard.middleware.timing import init_request_timing
from buildboard.models import db

logger = logging.getLogger(__name__)


# ── SQLite FK enforcement (global engine event) ─────────────────────────
@_sa_event.listens_for(_sa_engine.Engine, "connect")
def _enable_sqlite_fk(dbapi_conn, connection_record):
    """Enable foreign key enforcement for SQLite connections."""
    if "sqlite" in type(dbapi_conn).__module__:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


migrate = Migrate()
# Storage is read from RATELIMIT_STORAGE_URI at init_app
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],                     # no global limit, applied per blueprint
)


def _register_error_handlers(app):
    """Translate service exceptions and HTTP errors into JSON bodies."""

    @app.errorhandler(NotFoundError)
    def _handle_not_found(error):
        return jsonify({"error": str(error)}), 404

    @app.errorhandler(ValidationError)
    def _handle_validation(error):
        return jsonify({"error": str(error), "details": error.details}), 422

    @app.errorhandler(ConflictError)
    def _handle_conflict(error):
        return jsonify({"error": str(error)}), 409

    @app.errorhandler(AuthenticationRequiredError)
    def _handle_unauthenticated(error):
        return jsonify({"error": str(error)}), 401

    @app.errorhandler(AccessDeniedError)
    def _handle_denied(error):
        return jsonify({"error": str(error)}), 403

    @app.errorhandler(404)
    def not_found(e):
        return jsonify({"error": "Not found", "path": request.path}), 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return jsonify({"error": "Method not allowed"}), 405

    @app.errorhandler(415)
    def unsupported_media_type(e):
        return jsonify({"error": e.description}), 415

    @app.errorhandler(429)
    def rate_limited(e):
        return jsonify({"error": "Rate limit exceeded", "detail": str(e.description)}), 429

    @app.errorhandler(500)
    def server_error(e):
        logger.error("500 error: %s", e, exc_info=True)
        return jsonify({"error": "Internal server error"}), 500


def _register_cli(app):
    @app.cli.command("seed-demo")
    @click.option("--email", required=True, help="Account that owns the demo data.")
    def seed_demo_cmd(email):
        """Seed the "Solar Farm Alpha" demo project for EMAIL."""
        from buildboard.services import seed_service, user_service

        user = user_service.get_or_create_user(email)
        result = seed_service.seed_demo_data(user.id)
        db.session.commit()
        click.echo(result["message"])

    @app.cli.command("issue-token")
    @click.option("--email", required=True, help="Account to issue the token for.")
    def issue_token_cmd(email):
        """Print a bearer access token for EMAIL, creating the account if needed."""
        from buildboard.services import jwt_service, user_service

        user = user_service.get_or_create_user(email)
        db.session.commit()
        click.echo(jwt_service.generate_access_token(user.id))


def create_app(config_name=None):
    """
    Create and configure the Flask application.

    Args:
        config_name: Configuration environment name.
                     One of: "development", "testing", "production".
                     Defaults to APP_ENV env var, or "development" if unset.

    Returns:
        Configured Flask application instance.
    """
    if config_name is None:
        config_name = os.getenv("APP_ENV", "development")

    app = Flask(__name__, instance_relative_config=True)
    # Instantiate so ProductionConfig can refuse to start on missing env vars
    app.config.from_object(config[config_name]())

    # ── Structured logging (must be first) ───────────────────────────────
    configure_logging(app)

    # ── Extensions ───────────────────────────────────────────────────────
    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)
    cors_origins = app.config.get("CORS_ORIGINS", "*")
    if cors_origins and cors_origins != "*":
        CORS(app, origins=[o.strip() for o in cors_origins.split(",") if o.strip()])
    else:
        CORS(app)

    # ── Request middleware ───────────────────────────────────────────────
    init_request_timing(app)
    init_jwt_middleware(app)

    app.config.setdefault("MAX_CONTENT_LENGTH", 1024 * 1024)  # 1 MB

    @app.before_request
    def _guard_request():
        if request.method in ("POST", "PUT", "PATCH") and request.path.startswith("/api/"):
            ct = request.content_type or ""
            if request.data and "json" not in ct:
                abort(415, description="Content-Type must be application/json")

    _register_error_handlers(app)

    # ── Models + tables ──────────────────────────────────────────────────
    from buildboard.models import auth as _auth_models              # noqa: F401
    from buildboard.models import daily_entry as _entry_models      # noqa: F401
    from buildboard.models import project as _project_models        # noqa: F401

    if app.config["SQLALCHEMY_DATABASE_URI"].startswith("sqlite:///") and \
            ":memory:" not in app.config["SQLALCHEMY_DATABASE_URI"]:
        os.makedirs(os.path.join(os.path.dirname(app.root_path), "instance"), exist_ok=True)

    with app.app_context():
        db.create_all()

    # ── Blueprints ───────────────────────────────────────────────────────
    from buildboard.blueprints import get_blueprints

    for bp in get_blueprints():
        app.register_blueprint(bp)

    init_rate_limits(app, limiter)
    _register_cli(app)

    return app
