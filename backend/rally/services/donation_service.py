# Overview: Donation ledger; append-only financial records that never carry points.

from __future__ import annotations

from sqlalchemy import func

from ..extensions import db
from ..errors import InvalidQuantity, NotFound
from ..models import Donation, Team, User
from .concurrency import run_with_retry


def record_donation(
    *,
    amount_cents: int,
    team_id: int | None = None,
    user_id: int | None = None,
    currency: str = "usd",
) -> Donation:
    """Record a standalone donation. Financial only: the leaderboard is not touched."""
    if isinstance(amount_cents, bool) or not isinstance(amount_cents, int) or amount_cents <= 0:
        raise InvalidQuantity("amount_cents must be a positive integer", details={"amount_cents": amount_cents})

    def _op():
        if team_id is not None and db.session.get(Team, team_id) is None:
            raise NotFound("Team not found", details={"team_id": team_id})
        if user_id is not None and db.session.get(User, user_id) is None:
            raise NotFound("User not found", details={"user_id": user_id})

        donation = Donation(
            amount_cents=amount_cents,
            currency=currency,
            team_id=team_id,
            user_id=user_id,
        )
        db.session.add(donation)
        db.session.commit()
        return donation

    return run_with_retry(_op)


def add_sale_donation(*, sale_id: int, amount_cents: int, team_id: int | None, user_id: int | None) -> Donation:
    """Financial side of a product sale; joins the sale's transaction."""
    donation = Donation(
        amount_cents=amount_cents,
        team_id=team_id,
        user_id=user_id,
        product_sale_id=sale_id,
    )
    db.session.add(donation)
    db.session.flush()
    return donation


def remove_sale_donation(sale_id: int) -> int:
    """Delete the donation written for a sale; returns rows removed (0 or 1)."""
    return (
        db.session.query(Donation)
        .filter(Donation.product_sale_id == sale_id)
        .delete(synchronize_session=False)
    )


def total_by_team(team_id: int) -> int:
    total = (
        db.session.query(func.coalesce(func.sum(Donation.amount_cents), 0))
        .filter(Donation.team_id == team_id)
        .scalar()
    )
    return int(total or 0)


def total_by_user(user_id: int) -> int:
    total = (
        db.session.query(func.coalesce(func.sum(Donation.amount_cents), 0))
        .filter(Donation.user_id == user_id)
        .scalar()
    )
    return int(total or 0)


def totals_by_team() -> dict[int, int]:
    rows = (
        db.session.query(Donation.team_id, func.coalesce(func.sum(Donation.amount_cents), 0))
        .filter(Donation.team_id.isnot(None))
        .group_by(Donation.team_id)
        .all()
    )
    return {team_id: int(total or 0) for team_id, total in rows}


def list_donations(*, team_id: int | None = None, limit: int = 200) -> list[Donation]:
    query = db.session.query(Donation)
    if team_id is not None:
        query = query.filter(Donation.team_id == team_id)
    return query.order_by(Donation.created_at.desc(), Donation.id.desc()).limit(limit).all()
