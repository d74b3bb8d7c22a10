"""
Identity Models: users, profiles, project assignments, scope assignments.

A User row is the identity the bearer token points at. Everything the
dashboard needs to know about a person (display name, role, job title)
lives on the UserProfile, which is optional: a user without a profile is
treated as a new, unconfigured account.
"""

from datetime import datetime, timezone

from buildboard.models import db

ROLE_CONTROL_CENTER = "control_center"
ROLE_CONSTRUCTION_MANAGER = "construction_manager"

ROLES = (ROLE_CONTROL_CENTER, ROLE_CONSTRUCTION_MANAGER)

JOB_TITLES = (
    "foreman",
    "construction_manager",
    "project_manager",
    "assistant_project_manager",
    "superintendent",
    "project_controls",
    "field_engineer",
    "field_quality_manager",
)


# ═══════════════════════════════════════════════════════════════
# 1. USERS
# ═══════════════════════════════════════════════════════════════
class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(200), nullable=False, unique=True)
    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    profile = db.relationship(
        "UserProfile", back_populates="user", uselist=False,
        cascade="all, delete-orphan",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "email": self.email,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self) -> str:
        return f"<User {self.id}: {self.email}>"


# ═══════════════════════════════════════════════════════════════
# 2. USER PROFILES
# ═══════════════════════════════════════════════════════════════
class UserProfile(db.Model):
    __tablename__ = "user_profiles"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False, unique=True,
    )
    name = db.Column(db.String(200), nullable=False)
    role = db.Column(
        db.String(30), nullable=False, default=ROLE_CONSTRUCTION_MANAGER,
        comment="control_center | construction_manager",
    )
    job_title = db.Column(db.String(50), nullable=True)

    user = db.relationship("User", back_populates="profile")

    __table_args__ = (
        db.Index("ix_user_profiles_role", "role"),
    )

    @property
    def is_control_center(self) -> bool:
        return self.role == ROLE_CONTROL_CENTER

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "name": self.name,
            "role": self.role,
            "job_title": self.job_title,
        }


# ═══════════════════════════════════════════════════════════════
# 3. PROJECT ASSIGNMENTS (construction manager → project)
# ═══════════════════════════════════════════════════════════════
class ProjectAssignment(db.Model):
    __tablename__ = "project_assignments"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True,
    )

    __table_args__ = (
        db.UniqueConstraint("user_id", "project_id", name="uq_project_assignment_user_project"),
    )

    def to_dict(self):
        return {"id": self.id, "user_id": self.user_id, "project_id": self.project_id}


# ═══════════════════════════════════════════════════════════════
# 4. SCOPE ASSIGNMENTS (responsible foreman → scope)
# ═══════════════════════════════════════════════════════════════
class ScopeAssignment(db.Model):
    __tablename__ = "scope_assignments"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    scope_id = db.Column(
        db.Integer, db.ForeignKey("scopes.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True,
    )

    __table_args__ = (
        db.UniqueConstraint("user_id", "scope_id", name="uq_scope_assignment_user_scope"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "scope_id": self.scope_id,
            "project_id": self.project_id,
        }
