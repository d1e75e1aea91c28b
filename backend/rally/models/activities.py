from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


STATUS_PENDING = "PENDING"
STATUS_APPROVED = "APPROVED"
STATUS_REJECTED = "REJECTED"
SUBMISSION_STATUSES = (STATUS_PENDING, STATUS_APPROVED, STATUS_REJECTED)


class Activity(db.Model):
    """
    Point-bearing activity students can submit evidence for.

    The point value may be edited at any time. Approved submissions keep the
    value snapshotted at approval, so edits never rewrite past awards.
    """
    __tablename__ = "activities"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    points = db.Column(db.Integer, nullable=False, default=0)

    allow_photo_upload = db.Column(db.Boolean, nullable=False, default=False)
    allow_online_purchase = db.Column(db.Boolean, nullable=False, default=False)
    allow_submission = db.Column(db.Boolean, nullable=False, default=True)
    is_published = db.Column(db.Boolean, nullable=False, default=False)

    created_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "points": self.points,
            "allow_photo_upload": self.allow_photo_upload,
            "allow_online_purchase": self.allow_online_purchase,
            "allow_submission": self.allow_submission,
            "is_published": self.is_published,
            "created_by_id": self.created_by_id,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class ActivitySubmission(db.Model):
    """
    A student's submission for one activity.

    Lifecycle: PENDING -> APPROVED | REJECTED, APPROVED -> PENDING (unapprove),
    REJECTED -> PENDING (resubmit). points_awarded is non-null only while
    APPROVED, and mirrors the live SUBMISSION award in the ledger.
    """
    __tablename__ = "activity_submissions"
    __table_args__ = (
        db.UniqueConstraint("activity_id", "user_id", name="uq_activity_submissions_activity_user"),
        db.Index("ix_activity_submissions_status_created", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    activity_id = db.Column(db.Integer, db.ForeignKey("activities.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    status = db.Column(db.String(16), nullable=False, default=STATUS_PENDING, index=True)

    # Opaque to the core; photo fields are blob-store URLs
    submission_data = db.Column(db.JSON, nullable=False, default=dict)
    notes = db.Column(db.Text, nullable=True)

    points_awarded = db.Column(db.Integer, nullable=True)
    reviewed_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    review_notes = db.Column(db.Text, nullable=True)
    reviewed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    activity = db.relationship("Activity", backref=db.backref("submissions", lazy=True))
    user = db.relationship("User", foreign_keys=[user_id])
    reviewed_by = db.relationship("User", foreign_keys=[reviewed_by_id])
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "activity_id": self.activity_id,
            "user_id": self.user_id,
            "status": self.status,
            "submission_data": self.submission_data,
            "notes": self.notes,
            "points_awarded": self.points_awarded,
            "reviewed_by_id": self.reviewed_by_id,
            "review_notes": self.review_notes,
            "reviewed_at": to_utc_z(self.reviewed_at),
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
