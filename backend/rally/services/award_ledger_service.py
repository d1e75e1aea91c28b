# Overview: Service-layer operations for the award ledger; the only code that writes PointAward rows.

from __future__ import annotations

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..errors import DuplicateAward, InvalidQuantity, NotFound
from ..models import PointAward
from ..models.ledger import SOURCE_TYPES
from ..time_utils import utcnow
from ..validation import ValidationError
from .concurrency import lock_for_update
"""
Rally Award Ledger Invariants (authoritative)

- One row per point grant, tagged with its source stream and source id.
- Points are always positive; reversal voids the row (voided_at), it never
  inserts a negative entry and never deletes.
- At most one live award per (source_type, source_id). Changing a value is
  always void-then-create.
- Voiding a missing or already-void award raises NotFound and changes
  nothing, so double reversals are visible to the caller.
- Team and user totals are sums over live rows, recomputed on every read.
- All writes join the caller's transaction; nothing here commits.
"""


def _require_source_type(source_type: str) -> str:
    if source_type not in SOURCE_TYPES:
        raise ValidationError(f"unknown award source_type {source_type!r}")
    return source_type


def _require_points(points) -> int:
    if isinstance(points, bool) or not isinstance(points, int):
        raise InvalidQuantity("points must be an integer", details={"points": points})
    if points <= 0:
        raise InvalidQuantity("points must be > 0", details={"points": points})
    return points


def _live_query(source_type: str, source_id: int):
    return db.session.query(PointAward).filter(
        PointAward.source_type == source_type,
        PointAward.source_id == source_id,
        PointAward.voided_at.is_(None),
    )


def get_live_award(source_type: str, source_id: int) -> PointAward | None:
    return _live_query(_require_source_type(source_type), source_id).first()


def is_live(source_type: str, source_id: int) -> bool:
    return get_live_award(source_type, source_id) is not None


def create_award(
    source_type: str,
    source_id: int,
    user_id: int | None,
    team_id: int | None,
    points: int,
) -> PointAward:
    """
    Record a live award for one source event.

    Raises DuplicateAward if the source already holds a live award. The
    partial unique index catches the race the pre-check cannot see.
    """
    _require_source_type(source_type)
    points = _require_points(points)

    existing = _live_query(source_type, source_id).first()
    if existing is not None:
        raise DuplicateAward(
            "Source already has a live award",
            details={"source_type": source_type, "source_id": source_id, "award_id": existing.id},
        )

    award = PointAward(
        source_type=source_type,
        source_id=source_id,
        user_id=user_id,
        team_id=team_id,
        points=points,
    )
    db.session.add(award)
    try:
        db.session.flush()
    except IntegrityError as exc:
        # Session is unusable until the caller's unit of work rolls back
        raise DuplicateAward(
            "Source already has a live award",
            details={"source_type": source_type, "source_id": source_id},
        ) from exc
    return award


def void_award(source_type: str, source_id: int, voided_by_id: int | None = None) -> PointAward:
    """
    Void the live award for a source. Raises NotFound if there is none.
    """
    _require_source_type(source_type)
    award = lock_for_update(_live_query(source_type, source_id)).first()
    if award is None:
        raise NotFound(
            "No live award for source",
            details={"source_type": source_type, "source_id": source_id},
        )
    award.voided_at = utcnow()
    award.voided_by_id = voided_by_id
    db.session.flush()
    return award


def _sum_live(*criteria) -> int:
    total = (
        db.session.query(func.coalesce(func.sum(PointAward.points), 0))
        .filter(PointAward.voided_at.is_(None), *criteria)
        .scalar()
    )
    return int(total or 0)


def _split_live(*criteria) -> dict[str, int]:
    rows = (
        db.session.query(PointAward.source_type, func.coalesce(func.sum(PointAward.points), 0))
        .filter(PointAward.voided_at.is_(None), *criteria)
        .group_by(PointAward.source_type)
        .all()
    )
    split = {source_type: 0 for source_type in SOURCE_TYPES}
    for source_type, total in rows:
        split[source_type] = int(total or 0)
    return split


def sum_live_by_team(team_id: int) -> int:
    return _sum_live(PointAward.team_id == team_id)


def sum_live_by_user(user_id: int) -> int:
    return _sum_live(PointAward.user_id == user_id)


def sum_live_by_team_split(team_id: int) -> dict[str, int]:
    return _split_live(PointAward.team_id == team_id)


def sum_live_by_user_split(user_id: int) -> dict[str, int]:
    return _split_live(PointAward.user_id == user_id)


def live_totals_by_team() -> dict[int, int]:
    """Live totals for every team holding at least one live award (single grouped query)."""
    rows = (
        db.session.query(PointAward.team_id, func.coalesce(func.sum(PointAward.points), 0))
        .filter(PointAward.voided_at.is_(None), PointAward.team_id.isnot(None))
        .group_by(PointAward.team_id)
        .all()
    )
    return {team_id: int(total or 0) for team_id, total in rows}


def list_awards(
    *,
    team_id: int | None = None,
    user_id: int | None = None,
    source_type: str | None = None,
    include_voided: bool = False,
    limit: int = 200,
) -> list[PointAward]:
    query = db.session.query(PointAward)
    if team_id is not None:
        query = query.filter(PointAward.team_id == team_id)
    if user_id is not None:
        query = query.filter(PointAward.user_id == user_id)
    if source_type is not None:
        query = query.filter(PointAward.source_type == _require_source_type(source_type))
    if not include_voided:
        query = query.filter(PointAward.voided_at.is_(None))
    return query.order_by(PointAward.created_at.desc(), PointAward.id.desc()).limit(limit).all()
