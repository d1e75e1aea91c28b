# Overview: Manual points awarded by coaches and staff, and their reversal.

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..errors import Forbidden, InvalidQuantity, NotFound
from ..models import ManualPointsAward, Team, User
from ..models.ledger import SOURCE_MANUAL
from ..validation import ValidationError
from . import award_ledger_service, leaderboard_service
from .concurrency import begin_write, lock_for_update, run_with_retry


def award_manual_points(
    *,
    user_id: int,
    awarded_by_id: int | None,
    points: int,
    description: str,
    notes: str | None = None,
) -> ManualPointsAward:
    """
    Grant points to a team member. The record and its MANUAL ledger award
    are written together; the team is snapshotted from the member now.
    """
    if isinstance(points, bool) or not isinstance(points, int) or points <= 0:
        raise InvalidQuantity("points must be a positive integer", details={"points": points})
    if not description or not str(description).strip():
        raise ValidationError("description is required")

    def _op():
        begin_write()
        user = db.session.get(User, user_id)
        if user is None:
            raise NotFound("User not found", details={"user_id": user_id})
        if user.team_id is None:
            raise Forbidden("User does not belong to a team", details={"user_id": user_id})

        award = ManualPointsAward(
            user_id=user.id,
            team_id=user.team_id,
            awarded_by_id=awarded_by_id,
            points=points,
            description=str(description).strip(),
            notes=notes,
        )
        db.session.add(award)
        db.session.flush()

        award_ledger_service.create_award(SOURCE_MANUAL, award.id, user.id, user.team_id, points)
        db.session.commit()
        return award

    award = run_with_retry(_op)
    current_app.logger.info(
        "Manual award %s: %s points to user %s by %s", award.id, points, user_id, awarded_by_id,
    )
    leaderboard_service.publish("manual.awarded", team_ids=[award.team_id])
    return award


def delete_manual_award(award_id: int, actor_id: int | None) -> dict:
    """Hard-delete a manual award, voiding its ledger record in the same transaction."""

    def _op():
        begin_write()
        award = lock_for_update(db.session.query(ManualPointsAward).filter_by(id=award_id)).first()
        if award is None:
            raise NotFound("Manual award not found", details={"award_id": award_id})

        snapshot = award.to_dict()
        ledger_award = award_ledger_service.void_award(SOURCE_MANUAL, award.id, actor_id)
        db.session.delete(award)
        db.session.commit()
        return snapshot, ledger_award.team_id, ledger_award.points

    snapshot, team_id, points = run_with_retry(_op)
    current_app.logger.info("Manual award %s deleted by %s (%s points)", award_id, actor_id, points)
    leaderboard_service.publish("manual.deleted", team_ids=[team_id])
    return {"award": snapshot, "points_removed": points}


def reset_team_manual_points(team_id: int, actor_id: int | None) -> dict:
    """
    Admin reset: remove every manual award held by a team.

    Submission and sale awards stay; they are reversed through their own
    lifecycles.
    """

    def _op():
        begin_write()
        if db.session.get(Team, team_id) is None:
            raise NotFound("Team not found", details={"team_id": team_id})

        awards = lock_for_update(
            db.session.query(ManualPointsAward).filter_by(team_id=team_id)
        ).all()
        removed_points = 0
        for award in awards:
            if award_ledger_service.is_live(SOURCE_MANUAL, award.id):
                removed_points += award_ledger_service.void_award(SOURCE_MANUAL, award.id, actor_id).points
            db.session.delete(award)
        db.session.commit()
        return len(awards), removed_points

    removed, removed_points = run_with_retry(_op)
    current_app.logger.info(
        "Team %s manual points reset by %s (%s awards, %s points)", team_id, actor_id, removed, removed_points,
    )
    if removed:
        leaderboard_service.publish("manual.reset", team_ids=[team_id])
    return {"team_id": team_id, "awards_removed": removed, "points_removed": removed_points}


def manual_points_history(
    *,
    awarded_by_id: int | None = None,
    team_id: int | None = None,
    user_id: int | None = None,
    limit: int = 200,
) -> list[ManualPointsAward]:
    query = db.session.query(ManualPointsAward)
    if awarded_by_id is not None:
        query = query.filter(ManualPointsAward.awarded_by_id == awarded_by_id)
    if team_id is not None:
        query = query.filter(ManualPointsAward.team_id == team_id)
    if user_id is not None:
        query = query.filter(ManualPointsAward.user_id == user_id)
    return (
        query.order_by(ManualPointsAward.created_at.desc(), ManualPointsAward.id.desc())
        .limit(limit)
        .all()
    )
