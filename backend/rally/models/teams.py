from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


ROLE_STUDENT = "STUDENT"
ROLE_COACH = "COACH"
ROLE_STAFF = "STAFF"
ROLE_ADMIN = "ADMIN"
ROLES = (ROLE_STUDENT, ROLE_COACH, ROLE_STAFF, ROLE_ADMIN)

# Roles allowed to review submissions, award manual points and sell products
REVIEWER_ROLES = (ROLE_COACH, ROLE_STAFF, ROLE_ADMIN)


class Team(db.Model):
    """
    Fundraising team.

    Score is never stored here: it is always the live sum of the team's
    PointAward rows (see scoring_service.team_score).
    """
    __tablename__ = "teams"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False, unique=True)

    # Opaque join token; redemption lives outside the core
    team_code = db.Column(db.String(32), nullable=False, unique=True, index=True)

    # Plain column: users.team_id already points back at teams
    coach_id = db.Column(db.Integer, nullable=True, index=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Team id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "team_code": self.team_code,
            "coach_id": self.coach_id,
            "is_active": self.is_active,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
        }


class User(db.Model):
    """
    Competition participant or organizer.

    Identity and credentials belong to the upstream identity provider; the
    core only needs the role and the current team membership.
    """
    __tablename__ = "users"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(255), nullable=False, unique=True, index=True)
    role = db.Column(db.String(16), nullable=False, default=ROLE_STUDENT, index=True)

    team_id = db.Column(db.Integer, db.ForeignKey("teams.id"), nullable=True, index=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    team = db.relationship("Team", foreign_keys=[team_id], backref=db.backref("members", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r} role={self.role}>"

    @property
    def is_reviewer(self) -> bool:
        return self.role in REVIEWER_ROLES

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "team_id": self.team_id,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }
