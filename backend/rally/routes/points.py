# Overview: Flask API routes for manual points awards, their history and team resets.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_role
from ..errors import RallyError
from ..models import ManualPointsAward
from ..models.teams import REVIEWER_ROLES, ROLE_ADMIN, ROLE_COACH
from ..services import award_ledger_service, points_service
from ..validation import (
    ModelValidationPolicy,
    ValidationError,
    enforce_rules_points,
    parse_strict_int,
    validate_payload,
)


points_bp = Blueprint("points", __name__, url_prefix="/api/points")

MANUAL_AWARD_POLICY = ModelValidationPolicy(
    writable_fields={"user_id", "points", "description", "notes"},
    required_on_create={"user_id", "points", "description"},
)


@points_bp.post("/")
@require_auth
@require_role(*REVIEWER_ROLES)
def award_points_route():
    """
    Award manual points to a team member.

    Available to: coach, staff, admin
    """
    try:
        patch = validate_payload(
            model=ManualPointsAward,
            payload=request.get_json(silent=True),
            policy=MANUAL_AWARD_POLICY,
            partial=False,
        )
        enforce_rules_points(patch)

        award = points_service.award_manual_points(
            user_id=patch["user_id"],
            awarded_by_id=g.current_user.id,
            points=patch["points"],
            description=patch["description"],
            notes=patch.get("notes"),
        )
        return jsonify({"award": award.to_dict()}), 201

    except RallyError as e:
        return jsonify(e.to_dict()), e.status_code
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to award manual points")
        return jsonify({"error": "Internal server error"}), 500


@points_bp.delete("/<int:award_id>")
@require_auth
@require_role(*REVIEWER_ROLES)
def delete_award_route(award_id: int):
    try:
        result = points_service.delete_manual_award(award_id, g.current_user.id)
        return jsonify(result), 200

    except RallyError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete manual award")
        return jsonify({"error": "Internal server error"}), 500


@points_bp.post("/teams/<int:team_id>/reset")
@require_auth
@require_role(ROLE_ADMIN)
def reset_team_route(team_id: int):
    """
    Remove every manual award held by a team.

    Available to: admin
    """
    try:
        result = points_service.reset_team_manual_points(team_id, g.current_user.id)
        return jsonify(result), 200

    except RallyError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to reset team manual points")
        return jsonify({"error": "Internal server error"}), 500


@points_bp.get("/history")
@require_auth
@require_role(*REVIEWER_ROLES)
def history_route():
    """
    Manual award history, newest first. Coaches only see awards they granted.

    Query: team_id, user_id, awarded_by_id, limit
    """
    try:
        filters = {}
        for field in ("team_id", "user_id", "awarded_by_id", "limit"):
            if request.args.get(field):
                filters[field] = parse_strict_int(request.args[field], field)
        if g.current_user.role == ROLE_COACH:
            filters["awarded_by_id"] = g.current_user.id

        awards = points_service.manual_points_history(**filters)
        return jsonify({"awards": [a.to_dict() for a in awards]}), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400


@points_bp.get("/ledger")
@require_auth
@require_role(*REVIEWER_ROLES)
def ledger_route():
    """
    Raw award ledger across all sources.

    Query: team_id, user_id, source_type, include_voided, limit
    """
    try:
        filters = {}
        for field in ("team_id", "user_id", "limit"):
            if request.args.get(field):
                filters[field] = parse_strict_int(request.args[field], field)
        if request.args.get("source_type"):
            filters["source_type"] = request.args["source_type"].strip().upper()
        filters["include_voided"] = request.args.get("include_voided", "").lower() in {"1", "true", "yes"}

        awards = award_ledger_service.list_awards(**filters)
        return jsonify({"awards": [a.to_dict() for a in awards]}), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
