# Overview: Leaderboard publisher; pushes the ranked team list after ledger-affecting commits.

from __future__ import annotations

from typing import Iterable

from flask import current_app

from ..extensions import socketio
from .scoring_service import compute_leaderboard
"""
Publication contract:

- publish() is called by services only after their transaction committed,
  so a pushed score can never roll back.
- Publication is fire-and-forget relative to the triggering operation: a
  failure here is logged and never undoes or fails the committed work.
- Delivery guarantees (reconnect, backfill) belong to the socket clients.
"""


LEADERBOARD_EVENT = "leaderboard-update"
TEAM_SCORE_EVENT = "team-score-update"


def team_room(team_id: int) -> str:
    return f"team-{team_id}"


def publish(reason: str, team_ids: Iterable[int | None] = ()) -> list[dict] | None:
    """
    Recompute the ranking and emit it.

    Emits LEADERBOARD_EVENT to the leaderboard room and, for each affected
    team, TEAM_SCORE_EVENT to that team's room. Returns the ranking that was
    sent, or None when publishing is disabled or failed.
    """
    app = current_app._get_current_object()
    if not app.config.get("LEADERBOARD_PUBLISH_ENABLED", True):
        return None

    try:
        ranking = compute_leaderboard()
        payload = {"reason": reason, "leaderboard": ranking}
        socketio.emit(LEADERBOARD_EVENT, payload, to=app.config.get("LEADERBOARD_ROOM", "leaderboard"))

        by_team = {entry["team_id"]: entry for entry in ranking}
        for team_id in {t for t in team_ids if t is not None}:
            entry = by_team.get(team_id)
            if entry is None:
                continue
            socketio.emit(
                TEAM_SCORE_EVENT,
                {
                    "reason": reason,
                    "team_id": team_id,
                    "total_score": entry["total_score"],
                    "rank": entry["rank"],
                    "leaderboard": ranking,
                },
                to=team_room(team_id),
            )
    except Exception:
        app.logger.exception("Failed to publish leaderboard update (reason=%s)", reason)
        return None

    app.logger.info("Leaderboard update published (reason=%s, teams=%d)", reason, len(ranking))
    return ranking

