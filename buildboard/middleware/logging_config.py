"""
Logging setup for BuildBoard.

Every record emitted while a request is being served is stamped with the
request id, the caller's user id and the project the URL points at, so a
service line such as "Entry 12 updated by user 3" can be traced back to the
request and project that produced it.

- LOG_FORMAT "json": one JSON object per line (production default)
- LOG_FORMAT "readable": short coloured lines (development/testing default)
- LOG_LEVEL overrides the level (DEBUG in development, INFO otherwise)
"""

import json
import logging
import sys
from datetime import datetime, timezone

from flask import g, has_request_context, request

# Stamped by RequestContextFilter; "-" when outside a request
CONTEXT_FIELDS = ("request_id", "user_id", "project_id")

# Set by the timing middleware on its per-request line
REQUEST_FIELDS = ("method", "path", "status", "duration_ms")


def _project_id_from_request():
    view_args = request.view_args or {}
    raw = view_args.get("project_id") or request.args.get("project_id")
    try:
        return int(raw) if raw is not None else None
    except (TypeError, ValueError):
        return None


class RequestContextFilter(logging.Filter):
    """Attach request id, user id and project id to each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        if has_request_context():
            context = {
                "request_id": getattr(g, "request_id", None),
                "user_id": getattr(g, "jwt_user_id", None),
                "project_id": _project_id_from_request(),
            }
        else:
            context = dict.fromkeys(CONTEXT_FIELDS)
        for key, value in context.items():
            if getattr(record, key, None) is None:
                setattr(record, key, value)
        return True


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        for key in CONTEXT_FIELDS + REQUEST_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                payload[key] = value
        if record.exc_info and record.exc_info[0] is not None:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


class ReadableFormatter(logging.Formatter):
    """``12:00:01 INFO  entry_service [req=ab12 user=3 project=7] message``"""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self, color=True):
        super().__init__()
        self.color = color

    def _context(self, record):
        parts = []
        for label, key in (("req", "request_id"), ("user", "user_id"), ("project", "project_id")):
            value = getattr(record, key, None)
            if value is not None:
                parts.append(f"{label}={value}")
        return f" [{' '.join(parts)}]" if parts else ""

    def format(self, record: logging.LogRecord) -> str:
        level = f"{record.levelname:<7}"
        if self.color:
            level = f"{self.COLORS.get(record.levelname, '')}{level}{self.RESET}"
        ts = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        name = record.name.rsplit(".", 1)[-1]
        line = f"{ts} {level} {name}{self._context(record)} {record.getMessage()}"
        if record.exc_info and record.exc_info[0] is not None:
            line += "\n" + self.formatException(record.exc_info)
        return line


def configure_logging(app):
    """Install one stderr handler on the root logger using app config."""
    is_testing = app.config.get("TESTING", False)
    is_prod = not app.config.get("DEBUG", False) and not is_testing

    level_name = (app.config.get("LOG_LEVEL") or ("INFO" if is_prod else "DEBUG")).upper()
    level = getattr(logging, level_name, logging.INFO)
    log_format = app.config.get("LOG_FORMAT") or ("json" if is_prod else "readable")

    handler = logging.StreamHandler(sys.stderr)
    if log_format == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(ReadableFormatter(color=sys.stderr.isatty()))
    handler.addFilter(RequestContextFilter())
    handler.setLevel(level)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for noisy in ("werkzeug", "sqlalchemy.engine"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
    app.logger.setLevel(level)

    if not is_testing:
        app.logger.info("Logging configured: level=%s format=%s", level_name, log_format)
