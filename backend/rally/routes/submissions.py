# Overview: Flask API routes for activity submissions and their review lifecycle.

# backend/rally/routes/submissions.py
"""Submission API routes with role enforcement"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_role
from ..errors import RallyError
from ..models.teams import REVIEWER_ROLES, ROLE_STUDENT
from ..services import submission_service
from ..validation import ValidationError, parse_strict_int


submissions_bp = Blueprint("submissions", __name__, url_prefix="/api/submissions")


@submissions_bp.post("/")
@require_auth
def submit_route():
    """
    Submit (or resubmit) the caller's work for an activity.

    Available to: any authenticated user
    """
    try:
        data = request.get_json(silent=True) or {}
        if data.get("activity_id") is None:
            return jsonify({"error": "activity_id required"}), 400

        submission = submission_service.submit(
            parse_strict_int(data["activity_id"], "activity_id"),
            g.current_user.id,
            data.get("submission_data"),
            data.get("notes"),
        )
        return jsonify({"submission": submission.to_dict()}), 201

    except RallyError as e:
        return jsonify(e.to_dict()), e.status_code
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to submit activity")
        return jsonify({"error": "Internal server error"}), 500


@submissions_bp.put("/<int:submission_id>")
@require_auth
def resubmit_route(submission_id: int):
    """Owner edit of a pending or rejected submission."""
    try:
        data = request.get_json(silent=True) or {}
        submission = submission_service.resubmit(
            submission_id,
            g.current_user.id,
            data.get("submission_data"),
            data.get("notes"),
        )
        return jsonify({"submission": submission.to_dict()}), 200

    except RallyError as e:
        return jsonify(e.to_dict()), e.status_code
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to resubmit")
        return jsonify({"error": "Internal server error"}), 500


@submissions_bp.post("/<int:submission_id>/approve")
@require_auth
@require_role(*REVIEWER_ROLES)
def approve_route(submission_id: int):
    """
    Approve a pending submission and award its points.

    Body: {"points": optional override, "notes": optional}
    Available to: coach, staff, admin
    """
    try:
        data = request.get_json(silent=True) or {}
        points = data.get("points")
        if points is not None:
            points = parse_strict_int(points, "points")

        submission = submission_service.approve(
            submission_id,
            g.current_user.id,
            points_override=points,
            notes=data.get("notes"),
        )
        return jsonify({"submission": submission.to_dict()}), 200

    except RallyError as e:
        return jsonify(e.to_dict()), e.status_code
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to approve submission")
        return jsonify({"error": "Internal server error"}), 500


@submissions_bp.post("/<int:submission_id>/reject")
@require_auth
@require_role(*REVIEWER_ROLES)
def reject_route(submission_id: int):
    try:
        data = request.get_json(silent=True) or {}
        submission = submission_service.reject(submission_id, g.current_user.id, data.get("reason"))
        return jsonify({"submission": submission.to_dict()}), 200

    except RallyError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to reject submission")
        return jsonify({"error": "Internal server error"}), 500


@submissions_bp.post("/<int:submission_id>/unapprove")
@require_auth
@require_role(*REVIEWER_ROLES)
def unapprove_route(submission_id: int):
    try:
        submission = submission_service.unapprove(submission_id, g.current_user.id)
        return jsonify({"submission": submission.to_dict()}), 200

    except RallyError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to unapprove submission")
        return jsonify({"error": "Internal server error"}), 500


@submissions_bp.delete("/<int:submission_id>")
@require_auth
@require_role(*REVIEWER_ROLES)
def delete_route(submission_id: int):
    try:
        result = submission_service.delete(submission_id, g.current_user.id)
        return jsonify(result), 200

    except RallyError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete submission")
        return jsonify({"error": "Internal server error"}), 500


@submissions_bp.get("/<int:submission_id>")
@require_auth
def get_submission_route(submission_id: int):
    try:
        submission = submission_service.get_submission(submission_id)
    except RallyError as e:
        return jsonify(e.to_dict()), e.status_code

    # Students only see their own work
    if g.current_user.role == ROLE_STUDENT and submission.user_id != g.current_user.id:
        return jsonify({"error": "Submission not found"}), 404

    return jsonify({"submission": submission.to_dict()}), 200


@submissions_bp.get("/")
@require_auth
def list_submissions_route():
    """
    List submissions, newest first.

    Query: status, activity_id, team_id, user_id, limit
    Students are always restricted to their own submissions.
    """
    try:
        filters = {}
        for field in ("activity_id", "team_id", "user_id", "limit"):
            if request.args.get(field):
                filters[field] = parse_strict_int(request.args[field], field)
        if request.args.get("status"):
            filters["status"] = request.args["status"].strip().upper()

        if g.current_user.role == ROLE_STUDENT:
            filters["user_id"] = g.current_user.id

        submissions = submission_service.list_submissions(**filters)
        return jsonify({"submissions": [s.to_dict() for s in submissions]}), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
