# Overview: Score aggregation; every figure is recomputed from the award ledger on read.

from __future__ import annotations

from sqlalchemy import func

from ..extensions import db
from ..errors import NotFound
from ..models import Team, User
from ..models.ledger import SOURCE_MANUAL, SOURCE_SALE, SOURCE_SUBMISSION
from . import award_ledger_service, donation_service
"""
Scores are a computed view:

- team_score(team) == sum of points over live PointAward rows for the team.
- Nothing caches a running total, so the aggregate cannot drift from its
  sources no matter which service wrote or voided the awards.
- Donation totals are financial and reported alongside, never added to points.
"""


def team_score(team_id: int) -> int:
    return award_ledger_service.sum_live_by_team(team_id)


def user_contribution(user_id: int) -> dict:
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFound("User not found", details={"user_id": user_id})

    split = award_ledger_service.sum_live_by_user_split(user_id)
    return {
        "user_id": user.id,
        "team_id": user.team_id,
        "manual_points": split[SOURCE_MANUAL],
        "submission_points": split[SOURCE_SUBMISSION],
        "sale_points": split[SOURCE_SALE],
        "total_points": sum(split.values()),
        "donation_total_cents": donation_service.total_by_user(user_id),
    }


def _member_counts() -> dict[int, int]:
    rows = (
        db.session.query(User.team_id, func.count(User.id))
        .filter(User.team_id.isnot(None), User.is_active.is_(True))
        .group_by(User.team_id)
        .all()
    )
    return dict(rows)


def team_breakdown(team_id: int) -> dict:
    team = db.session.get(Team, team_id)
    if team is None:
        raise NotFound("Team not found", details={"team_id": team_id})

    split = award_ledger_service.sum_live_by_team_split(team_id)
    return {
        "team": team.to_dict(),
        "total_score": sum(split.values()),
        "manual_points": split[SOURCE_MANUAL],
        "submission_points": split[SOURCE_SUBMISSION],
        "sale_points": split[SOURCE_SALE],
        "donation_total_cents": donation_service.total_by_team(team_id),
        "member_count": _member_counts().get(team_id, 0),
    }


def compute_leaderboard() -> list[dict]:
    """
    Rank every active team by live score, descending.

    Teams are loaded in creation order and the sort is stable, so ties keep
    creation order.
    """
    teams = (
        db.session.query(Team)
        .filter(Team.is_active.is_(True))
        .order_by(Team.created_at.asc(), Team.id.asc())
        .all()
    )
    scores = award_ledger_service.live_totals_by_team()
    donations = donation_service.totals_by_team()
    members = _member_counts()

    entries = [
        {
            "team_id": team.id,
            "name": team.name,
            "total_score": scores.get(team.id, 0),
            "donation_total_cents": donations.get(team.id, 0),
            "member_count": members.get(team.id, 0),
        }
        for team in teams
    ]
    entries.sort(key=lambda entry: entry["total_score"], reverse=True)

    for rank, entry in enumerate(entries, start=1):
        entry["rank"] = rank
    return entries
