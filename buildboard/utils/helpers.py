"""Shared utility functions for services and blueprints.

parse_iso_date:      strict YYYY-MM-DD parsing (raises ValidationError)
parse_date_arg:      lenient query-string date parsing (None on bad input)
parse_quantity:      non-negative number coercion for entry fields
round_half_up:       rounding used by every displayed ratio
safe_ratio:          division that yields 0 on a zero denominator
db_commit_or_error:  commit the request's unit of work from a route handler
"""
import logging
import math
from datetime import date, datetime

from flask import jsonify
from sqlalchemy.exc import IntegrityError, OperationalError

from buildboard.core.exceptions import ValidationError
from buildboard.models import db

logger = logging.getLogger(__name__)


def _normalize(text):
    return datetime.strptime(text.strip(), "%Y-%m-%d").date().isoformat()


def parse_iso_date(value, field="date"):
    """Validate an ISO calendar date and return it as a ``YYYY-MM-DD`` string.

    Entries store their date as text, so the normalized string is what the
    recorder keys on. Unpadded month/day (``2024-6-1``) is zero-padded and
    ``date`` objects are accepted and formatted.
    """
    if isinstance(value, date):
        return value.isoformat()
    if not value or not isinstance(value, str):
        raise ValidationError(f"{field} is required", {field: "required"})
    try:
        return _normalize(value)
    except ValueError as exc:
        raise ValidationError(
            f"Invalid {field}. Use YYYY-MM-DD.", {field: "invalid date"},
        ) from exc


def parse_date_arg(value):
    """Parse an optional query-string date; returns None for empty/invalid input."""
    if not value:
        return None
    try:
        return _normalize(str(value))
    except ValueError:
        return None


def parse_quantity(value, field):
    """Coerce an entry number. None passes through; negatives are rejected."""
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number", {field: "not a number"})
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"{field} must be a number", {field: "not a number"}) from exc
    if math.isnan(number) or math.isinf(number):
        raise ValidationError(f"{field} must be a finite number", {field: "not finite"})
    if number < 0:
        raise ValidationError(f"{field} must be >= 0", {field: "negative"})
    return number


def round_half_up(value, digits):
    """Round by scaling, adding one half and flooring.

    ``round()`` rounds half to even, which would show 0.125 as 0.12.
    """
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def safe_ratio(numerator, denominator):
    """numerator / denominator, or 0 when the denominator is zero."""
    if not denominator:
        return 0
    return numerator / denominator


# ── Database commit helper ───────────────────────────────────────────────────

def db_commit_or_error():
    """Commit the current SQLAlchemy session, returning an error response on failure.

    Returns:
        None on success.
        (response, status_code) tuple on failure, ready for ``return``.

    Usage::

        err = db_commit_or_error()
        if err:
            return err

    IntegrityError → 409 (duplicate / constraint violation)
    OperationalError → 500 (connection / lock issues)
    """
    try:
        db.session.commit()
        return None
    except IntegrityError as exc:
        db.session.rollback()
        logger.warning("Integrity error on commit: %s", exc.orig)
        return jsonify({"error": "Duplicate or constraint violation"}), 409
    except OperationalError:
        db.session.rollback()
        logger.exception("Database operational error on commit")
        return jsonify({"error": "Database error"}), 500
