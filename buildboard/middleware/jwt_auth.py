"""
JWT Auth Middleware: Parses JWT from Authorization header, sets g.jwt_user_id.

A request without a valid bearer token is not rejected here. It simply runs
with ``g.jwt_user_id = None``; read services answer such callers with empty
results and write services raise AuthenticationRequiredError.
"""

import logging

import jwt as pyjwt
from flask import g, request

from buildboard.services.jwt_service import decode_access_token, user_id_from_payload

logger = logging.getLogger(__name__)

# Paths that skip JWT auth entirely
JWT_SKIP_PREFIXES = (
    "/api/v1/health",
    "/static/",
)


def current_user_id() -> int | None:
    return getattr(g, "jwt_user_id", None)


def init_jwt_middleware(app):
    """Register JWT middleware as a before_request hook."""

    @app.before_request
    def _jwt_auth():
        g.jwt_user_id = None

        path = request.path
        if not path.startswith("/api/v1/"):
            return
        for prefix in JWT_SKIP_PREFIXES:
            if path.startswith(prefix):
                return

        auth_header = request.headers.get("Authorization", "")
        if not auth_header.startswith("Bearer "):
            return

        token = auth_header[7:]  # Strip "Bearer "

        try:
            payload = decode_access_token(token)
        except pyjwt.ExpiredSignatureError:
            logger.debug("Expired bearer token on %s", path)
            return
        except pyjwt.InvalidTokenError:
            logger.debug("Invalid bearer token on %s", path)
            return

        g.jwt_user_id = user_id_from_payload(payload)
