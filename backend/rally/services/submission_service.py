"""
Submission Service - activity submission lifecycle and its ledger effects

States: PENDING (initial), APPROVED, REJECTED. None is hard-terminal:
- submit / resubmit:  (none) | PENDING | REJECTED -> PENDING
- approve:            PENDING -> APPROVED   (creates the SUBMISSION award)
- reject:             PENDING -> REJECTED   (no ledger effect)
- unapprove:          APPROVED -> PENDING   (voids the award)
- delete:             any -> (gone)         (voids the award if APPROVED)

Every transition is one transaction: the row is re-read under a write lock
and written through its version_id. A reviewer who loses a race sees a stale
version, retries, finds the status moved on and gets AlreadyReviewed instead
of double-applying points.
"""

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..errors import AlreadyReviewed, Forbidden, InvalidQuantity, InvalidTransition, NotFound
from ..models import Activity, ActivitySubmission, User
from ..models.activities import STATUS_APPROVED, STATUS_PENDING, STATUS_REJECTED, SUBMISSION_STATUSES
from ..models.ledger import SOURCE_SUBMISSION
from ..time_utils import utcnow
from ..validation import ValidationError
from . import award_ledger_service, leaderboard_service
from .concurrency import begin_write, lock_for_update, run_with_retry


def _load_locked(submission_id: int) -> ActivitySubmission:
    submission = lock_for_update(
        db.session.query(ActivitySubmission).filter_by(id=submission_id)
    ).populate_existing().first()
    if submission is None:
        raise NotFound("Submission not found", details={"submission_id": submission_id})
    return submission


def _reset_to_pending(submission: ActivitySubmission, data: dict | None, notes: str | None) -> None:
    submission.submission_data = data or {}
    submission.notes = notes
    submission.status = STATUS_PENDING
    submission.points_awarded = None
    submission.reviewed_by_id = None
    submission.review_notes = None
    submission.reviewed_at = None


def _check_data(data) -> None:
    if data is not None and not isinstance(data, dict):
        raise ValidationError("submission_data must be an object")


def submit(activity_id: int, user_id: int, data: dict | None, notes: str | None = None) -> ActivitySubmission:
    """
    Create a PENDING submission, or send an existing PENDING/REJECTED one
    back to PENDING with new data. An APPROVED submission cannot be
    overwritten (unapprove it first).
    """
    _check_data(data)

    def _op():
        begin_write()
        activity = db.session.get(Activity, activity_id)
        if activity is None:
            raise NotFound("Activity not found", details={"activity_id": activity_id})
        if not activity.is_published or not activity.allow_submission:
            raise Forbidden("Activity is not available for submission", details={"activity_id": activity_id})
        if db.session.get(User, user_id) is None:
            raise NotFound("User not found", details={"user_id": user_id})

        existing = lock_for_update(
            db.session.query(ActivitySubmission).filter_by(activity_id=activity_id, user_id=user_id)
        ).first()

        if existing is not None:
            if existing.status == STATUS_APPROVED:
                raise Forbidden(
                    "Submission already approved",
                    details={"submission_id": existing.id},
                )
            _reset_to_pending(existing, data, notes)
            submission = existing
        else:
            submission = ActivitySubmission(
                activity_id=activity_id,
                user_id=user_id,
                status=STATUS_PENDING,
                submission_data=data or {},
                notes=notes,
            )
            db.session.add(submission)

        db.session.commit()
        return submission

    return run_with_retry(_op)


def resubmit(submission_id: int, user_id: int, data: dict | None, notes: str | None = None) -> ActivitySubmission:
    """Owner edit of a PENDING or REJECTED submission; always lands in PENDING."""
    _check_data(data)

    def _op():
        begin_write()
        submission = _load_locked(submission_id)
        if submission.user_id != user_id:
            raise Forbidden("Only the submitter can edit a submission", details={"submission_id": submission_id})
        if submission.status == STATUS_APPROVED:
            raise Forbidden("Submission already approved", details={"submission_id": submission_id})
        _reset_to_pending(submission, data, notes)
        db.session.commit()
        return submission

    return run_with_retry(_op)


def approve(
    submission_id: int,
    reviewer_id: int | None,
    points_override: int | None = None,
    notes: str | None = None,
) -> ActivitySubmission:
    """
    PENDING -> APPROVED and create the SUBMISSION award.

    The awarded value is the override or the activity's point value at this
    moment; later activity edits never touch it. A zero value approves
    without a ledger record.
    """
    if points_override is not None:
        if isinstance(points_override, bool) or not isinstance(points_override, int) or points_override < 0:
            raise InvalidQuantity("points_override must be an integer >= 0", details={"points": points_override})

    def _op():
        begin_write()
        submission = _load_locked(submission_id)
        if submission.status != STATUS_PENDING:
            raise AlreadyReviewed(
                "Submission has already been reviewed",
                details={"submission_id": submission_id, "status": submission.status},
            )

        points = points_override if points_override is not None else submission.activity.points
        submission.status = STATUS_APPROVED
        submission.points_awarded = points
        submission.reviewed_by_id = reviewer_id
        submission.reviewed_at = utcnow()
        submission.review_notes = notes
        # Version-checked UPDATE; a concurrent review makes this stale
        db.session.flush()

        team_id = submission.user.team_id
        if points > 0:
            award_ledger_service.create_award(
                SOURCE_SUBMISSION,
                submission.id,
                submission.user_id,
                team_id,
                points,
            )

        db.session.commit()
        return submission, team_id, points

    submission, team_id, points = run_with_retry(_op)
    current_app.logger.info(
        "Submission %s approved by %s for %s points", submission_id, reviewer_id, points,
    )
    if points > 0:
        leaderboard_service.publish("submission.approved", team_ids=[team_id])
    return submission


def reject(submission_id: int, reviewer_id: int | None, reason: str | None = None) -> ActivitySubmission:
    """PENDING -> REJECTED. Never had an award, so the ledger is untouched."""

    def _op():
        begin_write()
        submission = _load_locked(submission_id)
        if submission.status != STATUS_PENDING:
            raise AlreadyReviewed(
                "Submission has already been reviewed",
                details={"submission_id": submission_id, "status": submission.status},
            )
        submission.status = STATUS_REJECTED
        submission.points_awarded = None
        submission.reviewed_by_id = reviewer_id
        submission.reviewed_at = utcnow()
        submission.review_notes = reason
        db.session.commit()
        return submission

    submission = run_with_retry(_op)
    current_app.logger.info("Submission %s rejected by %s", submission_id, reviewer_id)
    return submission


def unapprove(submission_id: int, reviewer_id: int | None) -> ActivitySubmission:
    """APPROVED -> PENDING, voiding the award so the user can be re-reviewed."""

    def _op():
        begin_write()
        submission = _load_locked(submission_id)
        if submission.status != STATUS_APPROVED:
            raise InvalidTransition(
                "Only approved submissions can be unapproved",
                details={"submission_id": submission_id, "status": submission.status},
            )

        team_id = None
        if submission.points_awarded:
            award = award_ledger_service.void_award(SOURCE_SUBMISSION, submission.id, reviewer_id)
            team_id = award.team_id

        submission.status = STATUS_PENDING
        submission.points_awarded = None
        submission.reviewed_by_id = None
        submission.reviewed_at = None
        submission.review_notes = None
        db.session.commit()
        return submission, team_id

    submission, team_id = run_with_retry(_op)
    current_app.logger.info("Submission %s unapproved by %s", submission_id, reviewer_id)
    if team_id is not None:
        leaderboard_service.publish("submission.unapproved", team_ids=[team_id])
    return submission


def delete(submission_id: int, actor_id: int | None) -> dict:
    """
    Hard-delete a submission from any state.

    An APPROVED submission's award is voided in the same transaction, so a
    failure can never leave a live award pointing at a deleted row.
    """

    def _op():
        begin_write()
        submission = _load_locked(submission_id)
        snapshot = submission.to_dict()

        points_removed = 0
        team_id = None
        if submission.status == STATUS_APPROVED and submission.points_awarded:
            award = award_ledger_service.void_award(SOURCE_SUBMISSION, submission.id, actor_id)
            points_removed = award.points
            team_id = award.team_id

        db.session.delete(submission)
        db.session.commit()
        return snapshot, points_removed, team_id

    snapshot, points_removed, team_id = run_with_retry(_op)
    current_app.logger.info(
        "Submission %s deleted by %s (points removed: %s)", submission_id, actor_id, points_removed,
    )
    if points_removed:
        leaderboard_service.publish("submission.deleted", team_ids=[team_id])
    return {"submission": snapshot, "points_removed": points_removed}


def get_submission(submission_id: int) -> ActivitySubmission:
    submission = db.session.get(ActivitySubmission, submission_id)
    if submission is None:
        raise NotFound("Submission not found", details={"submission_id": submission_id})
    return submission


def list_submissions(
    *,
    status: str | None = None,
    activity_id: int | None = None,
    team_id: int | None = None,
    user_id: int | None = None,
    limit: int = 200,
) -> list[ActivitySubmission]:
    query = db.session.query(ActivitySubmission)
    if status is not None:
        if status not in SUBMISSION_STATUSES:
            raise ValidationError(f"status must be one of: {', '.join(SUBMISSION_STATUSES)}")
        query = query.filter(ActivitySubmission.status == status)
    if activity_id is not None:
        query = query.filter(ActivitySubmission.activity_id == activity_id)
    if user_id is not None:
        query = query.filter(ActivitySubmission.user_id == user_id)
    if team_id is not None:
        query = query.join(User, ActivitySubmission.user_id == User.id).filter(User.team_id == team_id)
    return (
        query.order_by(ActivitySubmission.created_at.desc(), ActivitySubmission.id.desc())
        .limit(limit)
        .all()
    )
