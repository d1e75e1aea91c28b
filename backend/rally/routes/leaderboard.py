# Overview: Flask API routes for read-only scoring views: leaderboard, team breakdown, user contribution.

from flask import Blueprint, jsonify, g

from ..decorators import require_auth
from ..errors import RallyError
from ..models.teams import ROLE_STUDENT
from ..services import scoring_service

leaderboard_bp = Blueprint("leaderboard", __name__, url_prefix="/api/leaderboard")


@leaderboard_bp.get("/")
def leaderboard_route():
    """Public ranking; the same payload the socket channel pushes."""
    return jsonify({"leaderboard": scoring_service.compute_leaderboard()}), 200


@leaderboard_bp.get("/teams/<int:team_id>")
def team_breakdown_route(team_id: int):
    try:
        return jsonify(scoring_service.team_breakdown(team_id)), 200
    except RallyError as e:
        return jsonify(e.to_dict()), e.status_code


@leaderboard_bp.get("/users/<int:user_id>")
@require_auth
def user_contribution_route(user_id: int):
    if g.current_user.role == ROLE_STUDENT and g.current_user.id != user_id:
        return jsonify({"error": "Permission denied"}), 403
    try:
        return jsonify(scoring_service.user_contribution(user_id)), 200
    except RallyError as e:
        return jsonify(e.to_dict()), e.status_code
