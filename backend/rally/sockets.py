# Overview: Socket.IO handlers letting clients subscribe to leaderboard and team rooms.

from flask import current_app
from flask_socketio import join_room, leave_room

from .extensions import socketio
from .services.leaderboard_service import team_room
from .services.scoring_service import compute_leaderboard


@socketio.on("join-leaderboard")
def handle_join_leaderboard(_data=None):
    """Subscribe to leaderboard pushes; the ack carries the current ranking as backfill."""
    join_room(current_app.config.get("LEADERBOARD_ROOM", "leaderboard"))
    return {"leaderboard": compute_leaderboard()}


@socketio.on("leave-leaderboard")
def handle_leave_leaderboard(_data=None):
    leave_room(current_app.config.get("LEADERBOARD_ROOM", "leaderboard"))


@socketio.on("join-team")
def handle_join_team(data=None):
    team_id = (data or {}).get("team_id")
    if team_id is None:
        return {"error": "team_id required"}
    join_room(team_room(team_id))
    return {"room": team_room(team_id)}
