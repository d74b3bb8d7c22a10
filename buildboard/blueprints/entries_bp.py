"""
Daily entries blueprint: forecast / actuals recording.

Endpoints:
    POST   /api/v1/entries/forecast       morning forecast
    POST   /api/v1/entries/actuals        end-of-day actuals
    POST   /api/v1/entries                any subset of both sides
    DELETE /api/v1/entries/<entry_id>
    GET    /api/v1/activities/<activity_id>/entries/<date>
    GET    /api/v1/projects/<project_id>/entries?date=YYYY-MM-DD
    GET    /api/v1/projects/<project_id>/entries?start_date=&end_date=

Write bodies carry ``activity_id`` and ``date`` plus the numeric fields;
submissions for an (activity, date) that already has an entry update it.
"""

import logging

from flask import Blueprint, jsonify, request

import buildboard.services.entry_service as svc
from buildboard.blueprints import json_body
from buildboard.core.exceptions import ValidationError
from buildboard.middleware.jwt_auth import current_user_id
from buildboard.utils.helpers import db_commit_or_error, parse_date_arg, parse_iso_date

logger = logging.getLogger(__name__)

entries_bp = Blueprint("entries", __name__, url_prefix="/api/v1")


def _activity_id(data) -> int:
    activity_id = data.get("activity_id")
    if not isinstance(activity_id, int) or isinstance(activity_id, bool):
        raise ValidationError("activity_id is required", {"activity_id": "required"})
    return activity_id


def _require_fields(data, *fields):
    missing = [f for f in fields if data.get(f) is None]
    if missing:
        raise ValidationError(
            f"Missing required fields: {', '.join(missing)}",
            {f: "required" for f in missing},
        )


def _saved(entry_id, status):
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"id": entry_id}), status


@entries_bp.route("/entries/forecast", methods=["POST"])
def submit_forecast():
    """Body: {activity_id, date, quantity, crew_size, hours_per_worker, notes?}"""
    data = json_body()
    _require_fields(data, "quantity", "crew_size", "hours_per_worker")
    entry_id = svc.submit_forecast(
        current_user_id(), _activity_id(data), data.get("date"),
        data["quantity"], data["crew_size"], data["hours_per_worker"],
        notes=data.get("notes"),
    )
    return _saved(entry_id, 201)


@entries_bp.route("/entries/actuals", methods=["POST"])
def submit_actuals():
    """Body: {activity_id, date, quantity, crew_size, hours_per_worker, notes?}"""
    data = json_body()
    _require_fields(data, "quantity", "crew_size", "hours_per_worker")
    entry_id = svc.submit_actuals(
        current_user_id(), _activity_id(data), data.get("date"),
        data["quantity"], data["crew_size"], data["hours_per_worker"],
        notes=data.get("notes"),
    )
    return _saved(entry_id, 201)


@entries_bp.route("/entries", methods=["POST"])
def submit_entry():
    """Body: {activity_id, date, forecast_quantity?, forecast_crew_size?, ...,
    actual_hours_per_worker?, notes?}"""
    data = json_body()
    fields = {f: data[f] for f in svc.INPUT_FIELDS if f in data}
    entry_id = svc.submit_entry(
        current_user_id(), _activity_id(data), data.get("date"),
        notes=data.get("notes"), **fields,
    )
    return _saved(entry_id, 201)


@entries_bp.route("/entries/<int:entry_id>", methods=["DELETE"])
def remove_entry(entry_id):
    svc.remove_entry(current_user_id(), entry_id)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"message": "Entry deleted"})


@entries_bp.route("/activities/<int:activity_id>/entries/<date>", methods=["GET"])
def get_entry(activity_id, date):
    day = parse_iso_date(date)
    return jsonify(svc.get_entry_for_activity_date(current_user_id(), activity_id, day))


@entries_bp.route("/projects/<int:project_id>/entries", methods=["GET"])
def list_entries(project_id):
    """``?date=`` for one day, or ``?start_date=&end_date=`` for a range."""
    user_id = current_user_id()
    day = parse_date_arg(request.args.get("date"))
    if day:
        return jsonify(svc.list_entries_for_project_date(user_id, project_id, day))

    start = parse_date_arg(request.args.get("start_date"))
    end = parse_date_arg(request.args.get("end_date"))
    if not (start and end):
        raise ValidationError(
            "Provide date, or start_date and end_date (YYYY-MM-DD)",
            {"date": "required"},
        )
    return jsonify(svc.list_entries_for_project_range(user_id, project_id, start, end))
