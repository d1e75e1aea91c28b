from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


SOURCE_MANUAL = "MANUAL"
SOURCE_SUBMISSION = "SUBMISSION"
SOURCE_SALE = "SALE"
SOURCE_TYPES = (SOURCE_MANUAL, SOURCE_SUBMISSION, SOURCE_SALE)


class PointAward(db.Model):
    """
    Award ledger record: one point grant tied to exactly one source event.

    Points are always positive. Reversal stamps voided_at instead of writing
    a negative row, so "is this award live" is a single column check and
    team/user totals are plain sums over live rows.

    INVARIANT: at most one live award per (source_type, source_id), enforced
    by the partial unique index below.
    """
    __tablename__ = "point_awards"
    __table_args__ = (
        db.Index(
            "uq_point_awards_live_source",
            "source_type",
            "source_id",
            unique=True,
            sqlite_where=db.text("voided_at IS NULL"),
            postgresql_where=db.text("voided_at IS NULL"),
        ),
        db.Index("ix_point_awards_team_voided", "team_id", "voided_at"),
        db.Index("ix_point_awards_user_voided", "user_id", "voided_at"),
        db.CheckConstraint("points > 0", name="ck_point_awards_points_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    source_type = db.Column(db.String(16), nullable=False)
    source_id = db.Column(db.Integer, nullable=False)

    # Null only for inline-identity ticket buyers
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    team_id = db.Column(db.Integer, db.ForeignKey("teams.id"), nullable=True)
    points = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    voided_at = db.Column(db.DateTime(timezone=True), nullable=True)
    voided_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}

    @property
    def is_live(self) -> bool:
        return self.voided_at is None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "source_type": self.source_type,
            "source_id": self.source_id,
            "user_id": self.user_id,
            "team_id": self.team_id,
            "points": self.points,
            "is_live": self.is_live,
            "created_at": to_utc_z(self.created_at),
            "voided_at": to_utc_z(self.voided_at),
            "voided_by_id": self.voided_by_id,
        }


class ManualPointsAward(db.Model):
    """Coach/staff points grant. No intermediate state: created, or hard-deleted with reversal."""
    __tablename__ = "manual_points_awards"
    __table_args__ = (
        db.Index("ix_manual_points_awards_awarded_by_created", "awarded_by_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    team_id = db.Column(db.Integer, db.ForeignKey("teams.id"), nullable=True, index=True)
    awarded_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    points = db.Column(db.Integer, nullable=False)
    description = db.Column(db.String(255), nullable=False)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    user = db.relationship("User", foreign_keys=[user_id])
    awarded_by = db.relationship("User", foreign_keys=[awarded_by_id])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "user_name": self.user.name if self.user else None,
            "team_id": self.team_id,
            "awarded_by_id": self.awarded_by_id,
            "points": self.points,
            "description": self.description,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
        }
