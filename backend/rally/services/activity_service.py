# Overview: Activity catalogue; point edits apply to future approvals only.

from __future__ import annotations

from ..extensions import db
from ..errors import InvalidQuantity, NotFound
from ..models import Activity, ActivitySubmission
from ..models.activities import STATUS_APPROVED, STATUS_PENDING
from .concurrency import run_with_retry

ACTIVITY_MUTABLE_FIELDS = {
    "title",
    "description",
    "points",
    "allow_photo_upload",
    "allow_online_purchase",
    "allow_submission",
    "is_published",
}


def _check_points(patch: dict) -> None:
    if "points" in patch:
        points = patch["points"]
        if isinstance(points, bool) or not isinstance(points, int) or points < 0:
            raise InvalidQuantity("points must be an integer >= 0", details={"points": points})


def apply_activity_patch(activity: Activity, patch: dict) -> None:
    for k, v in patch.items():
        if k not in ACTIVITY_MUTABLE_FIELDS:
            continue
        setattr(activity, k, v)


def create_activity(patch: dict, created_by_id: int | None = None) -> Activity:
    _check_points(patch)
    activity = Activity(created_by_id=created_by_id)
    apply_activity_patch(activity, patch)
    db.session.add(activity)
    db.session.commit()
    return activity


def update_activity(activity_id: int, patch: dict) -> Activity:
    """
    Edit an activity. Changing points never rewrites existing awards:
    approved submissions keep the value snapshotted at approval.
    """
    _check_points(patch)

    def _op():
        activity = db.session.get(Activity, activity_id)
        if activity is None:
            raise NotFound("Activity not found", details={"activity_id": activity_id})
        apply_activity_patch(activity, patch)
        db.session.commit()
        return activity

    return run_with_retry(_op)


def list_activities(*, published_only: bool = False) -> list[dict]:
    query = db.session.query(Activity)
    if published_only:
        query = query.filter(Activity.is_published.is_(True))
    activities = query.order_by(Activity.created_at.desc(), Activity.id.desc()).all()

    items = []
    for activity in activities:
        statuses = [
            status for (status,) in db.session.query(ActivitySubmission.status)
            .filter(ActivitySubmission.activity_id == activity.id)
            .all()
        ]
        items.append({
            **activity.to_dict(),
            "submission_count": len(statuses),
            "pending_count": statuses.count(STATUS_PENDING),
            "approved_count": statuses.count(STATUS_APPROVED),
        })
    return items
