"""Project → Scope → Activity hierarchy."""

from datetime import datetime, timezone

from buildboard.models import db

PROJECT_STATUSES = ("active", "completed", "on_hold")


def _utcnow():
    return datetime.now(timezone.utc)


def _iso(value):
    return value.isoformat() if value else None


class AuditMixin:
    """created/updated stamps shared by the editable hierarchy tables."""

    created_by = db.Column(db.Integer, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=True, default=_utcnow)
    updated_by = db.Column(db.Integer, nullable=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def touch(self, user_id):
        self.updated_by = user_id
        self.updated_at = _utcnow()

    def _audit_dict(self) -> dict:
        return {
            "created_by": self.created_by,
            "created_at": _iso(self.created_at),
            "updated_by": self.updated_by,
            "updated_at": _iso(self.updated_at),
        }


class Project(AuditMixin, db.Model):
    """Construction project (e.g. a solar farm build)."""

    __tablename__ = "projects"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    status = db.Column(
        db.String(20), nullable=False, default="active",
        comment="active | completed | on_hold",
    )
    # True = competitive mode (individual rankings), False = team mode
    leaderboard_enabled = db.Column(db.Boolean, nullable=False, default=True)

    scopes = db.relationship(
        "Scope", backref="project", lazy="dynamic",
        cascade="all, delete-orphan", passive_deletes=True,
    )

    __table_args__ = (
        db.Index("ix_projects_status", "status"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "status": self.status,
            "leaderboard_enabled": self.leaderboard_enabled is not False,
            **self._audit_dict(),
        }

    def __repr__(self) -> str:
        return f"<Project {self.id}: {self.name}>"


class Scope(AuditMixin, db.Model):
    """Work discipline inside a project (Electrical, Mechanical, Civil)."""

    __tablename__ = "scopes"

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)

    activities = db.relationship(
        "Activity", backref="scope", lazy="dynamic",
        cascade="all, delete-orphan", passive_deletes=True,
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "name": self.name,
            "description": self.description,
            **self._audit_dict(),
        }


class Activity(AuditMixin, db.Model):
    """Measurable unit of work inside a scope, tracked in its own unit."""

    __tablename__ = "activities"

    id = db.Column(db.Integer, primary_key=True)
    scope_id = db.Column(
        db.Integer, db.ForeignKey("scopes.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    # Denormalized from the scope for project-wide queries
    project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    name = db.Column(db.String(200), nullable=False)
    unit = db.Column(db.String(50), nullable=False, comment="linear feet | units | acres | ...")
    description = db.Column(db.Text, nullable=True)

    entries = db.relationship(
        "DailyEntry", backref="activity", lazy="dynamic",
        cascade="all, delete-orphan", passive_deletes=True,
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "scope_id": self.scope_id,
            "project_id": self.project_id,
            "name": self.name,
            "unit": self.unit,
            "description": self.description,
            **self._audit_dict(),
        }
