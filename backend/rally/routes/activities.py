# Overview: Flask API routes for the activity catalogue.

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth, require_role
from ..errors import RallyError
from ..models import Activity
from ..models.teams import REVIEWER_ROLES, ROLE_ADMIN, ROLE_STAFF
from ..services import activity_service
from ..validation import ModelValidationPolicy, ValidationError, enforce_rules_points, validate_payload

ACTIVITY_POLICY = ModelValidationPolicy(
    writable_fields={
        "title",
        "description",
        "points",
        "allow_photo_upload",
        "allow_online_purchase",
        "allow_submission",
        "is_published",
    },
    required_on_create={"title", "points"},
)

activities_bp = Blueprint("activities", __name__, url_prefix="/api/activities")


@activities_bp.get("/")
@require_auth
def list_activities_route():
    """Students only see published activities."""
    published_only = g.current_user.role not in REVIEWER_ROLES
    return jsonify({"activities": activity_service.list_activities(published_only=published_only)}), 200


@activities_bp.post("/")
@require_auth
@require_role(ROLE_STAFF, ROLE_ADMIN)
def create_activity_route():
    try:
        patch = validate_payload(
            model=Activity,
            payload=request.get_json(silent=True),
            policy=ACTIVITY_POLICY,
            partial=False,
        )
        enforce_rules_points(patch)
        activity = activity_service.create_activity(patch, created_by_id=g.current_user.id)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except RallyError as e:
        return jsonify(e.to_dict()), e.status_code

    return jsonify({"activity": activity.to_dict()}), 201


@activities_bp.patch("/<int:activity_id>")
@require_auth
@require_role(ROLE_STAFF, ROLE_ADMIN)
def update_activity_route(activity_id: int):
    """Point changes apply to approvals made after the edit."""
    try:
        patch = validate_payload(
            model=Activity,
            payload=request.get_json(silent=True),
            policy=ACTIVITY_POLICY,
            partial=True,
        )
        enforce_rules_points(patch)
        activity = activity_service.update_activity(activity_id, patch)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except RallyError as e:
        return jsonify(e.to_dict()), e.status_code

    return jsonify({"activity": activity.to_dict()}), 200
