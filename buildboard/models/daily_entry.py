"""
Daily production entry: the central fact table.

One row per (activity, date). The morning forecast and the end-of-day
actuals land on the same row; each side carries quantity, crew size,
hours per worker and the derived man-hours (crew × hours per worker).
"""

from datetime import datetime, timezone

from buildboard.models import db

FORECAST_FIELDS = (
    "forecast_quantity",
    "forecast_crew_size",
    "forecast_hours_per_worker",
    "forecast_hours",
)
ACTUAL_FIELDS = (
    "actual_quantity",
    "actual_crew_size",
    "actual_hours_per_worker",
    "actual_hours",
)


class DailyEntry(db.Model):
    __tablename__ = "daily_entries"

    id = db.Column(db.Integer, primary_key=True)
    activity_id = db.Column(
        db.Integer, db.ForeignKey("activities.id", ondelete="CASCADE"), nullable=False,
    )
    scope_id = db.Column(
        db.Integer, db.ForeignKey("scopes.id", ondelete="CASCADE"), nullable=False,
    )
    project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False,
    )
    date = db.Column(db.String(10), nullable=False, comment="ISO YYYY-MM-DD")
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    # Responsible foreman at submission time (leaderboard grouping key)
    foreman_name = db.Column(db.String(200), nullable=True)

    # Forecast (morning entry)
    forecast_quantity = db.Column(db.Float, nullable=True)
    forecast_crew_size = db.Column(db.Float, nullable=True)
    forecast_hours_per_worker = db.Column(db.Float, nullable=True)
    forecast_hours = db.Column(db.Float, nullable=True)

    # Actuals (end of day entry)
    actual_quantity = db.Column(db.Float, nullable=True)
    actual_crew_size = db.Column(db.Float, nullable=True)
    actual_hours_per_worker = db.Column(db.Float, nullable=True)
    actual_hours = db.Column(db.Float, nullable=True)

    notes = db.Column(db.Text, nullable=True)

    created_by = db.Column(db.Integer, nullable=True)
    created_at = db.Column(
        db.DateTime(timezone=True), nullable=True,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_by = db.Column(db.Integer, nullable=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=True)

    __table_args__ = (
        db.UniqueConstraint("activity_id", "date", name="uq_daily_entries_activity_date"),
        db.Index("ix_daily_entries_project_date", "project_id", "date"),
        db.Index("ix_daily_entries_scope_date", "scope_id", "date"),
        db.Index("ix_daily_entries_user_date", "user_id", "date"),
        db.Index("ix_daily_entries_date", "date"),
        db.Index("ix_daily_entries_foreman_project", "foreman_name", "project_id"),
    )

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "activity_id": self.activity_id,
            "scope_id": self.scope_id,
            "project_id": self.project_id,
            "date": self.date,
            "user_id": self.user_id,
            "foreman_name": self.foreman_name,
            "notes": self.notes,
            "created_by": self.created_by,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_by": self.updated_by,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
        for field in FORECAST_FIELDS + ACTUAL_FIELDS:
            data[field] = getattr(self, field)
        return data

    def __repr__(self) -> str:
        return f"<DailyEntry {self.id}: activity={self.activity_id} date={self.date}>"
