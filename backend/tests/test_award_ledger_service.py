import pytest

from rally.errors import DuplicateAward, InvalidQuantity, NotFound
from rally.models import PointAward
from rally.models.ledger import SOURCE_MANUAL, SOURCE_SALE, SOURCE_SUBMISSION
from rally.services import award_ledger_service
from rally.validation import ValidationError


def test_create_award_counts_toward_team_and_user(db_session, student, red_team):
    award_ledger_service.create_award(SOURCE_SUBMISSION, 1, student.id, red_team.id, 30)
    db_session.commit()

    assert award_ledger_service.sum_live_by_team(red_team.id) == 30
    assert award_ledger_service.sum_live_by_user(student.id) == 30
    assert award_ledger_service.is_live(SOURCE_SUBMISSION, 1)


def test_second_live_award_for_same_source_is_rejected(db_session, student, red_team):
    award_ledger_service.create_award(SOURCE_SALE, 7, student.id, red_team.id, 50)
    db_session.commit()

    with pytest.raises(DuplicateAward):
        award_ledger_service.create_award(SOURCE_SALE, 7, student.id, red_team.id, 50)
    db_session.rollback()

    assert award_ledger_service.sum_live_by_team(red_team.id) == 50


def test_same_source_id_in_different_streams_is_independent(db_session, student, red_team):
    award_ledger_service.create_award(SOURCE_SALE, 3, student.id, red_team.id, 10)
    award_ledger_service.create_award(SOURCE_MANUAL, 3, student.id, red_team.id, 5)
    db_session.commit()

    split = award_ledger_service.sum_live_by_team_split(red_team.id)
    assert split == {SOURCE_MANUAL: 5, SOURCE_SUBMISSION: 0, SOURCE_SALE: 10}


def test_void_then_recreate(db_session, student, red_team):
    award_ledger_service.create_award(SOURCE_SUBMISSION, 9, student.id, red_team.id, 30)
    db_session.commit()

    voided = award_ledger_service.void_award(SOURCE_SUBMISSION, 9)
    db_session.commit()
    assert voided.voided_at is not None
    assert award_ledger_service.sum_live_by_team(red_team.id) == 0

    award_ledger_service.create_award(SOURCE_SUBMISSION, 9, student.id, red_team.id, 40)
    db_session.commit()
    assert award_ledger_service.sum_live_by_team(red_team.id) == 40

    # Voided rows are kept, never deleted or negated
    rows = db_session.query(PointAward).filter_by(source_type=SOURCE_SUBMISSION, source_id=9).all()
    assert len(rows) == 2
    assert all(row.points > 0 for row in rows)


def test_double_void_raises_not_found(db_session, student, red_team):
    award_ledger_service.create_award(SOURCE_MANUAL, 4, student.id, red_team.id, 15)
    award_ledger_service.void_award(SOURCE_MANUAL, 4)
    db_session.commit()

    with pytest.raises(NotFound):
        award_ledger_service.void_award(SOURCE_MANUAL, 4)


@pytest.mark.parametrize("points", [0, -5, 2.5, True])
def test_points_must_be_positive_integers(db_session, student, red_team, points):
    with pytest.raises(InvalidQuantity):
        award_ledger_service.create_award(SOURCE_MANUAL, 1, student.id, red_team.id, points)


def test_unknown_source_type(db_session, student, red_team):
    with pytest.raises(ValidationError):
        award_ledger_service.create_award("BONUS", 1, student.id, red_team.id, 5)


def test_live_totals_and_listing(db_session, student, blue_student, red_team, blue_team):
    award_ledger_service.create_award(SOURCE_MANUAL, 1, student.id, red_team.id, 5)
    award_ledger_service.create_award(SOURCE_MANUAL, 2, blue_student.id, blue_team.id, 8)
    award_ledger_service.create_award(SOURCE_MANUAL, 3, blue_student.id, blue_team.id, 2)
    award_ledger_service.void_award(SOURCE_MANUAL, 3)
    db_session.commit()

    assert award_ledger_service.live_totals_by_team() == {red_team.id: 5, blue_team.id: 8}
    assert len(award_ledger_service.list_awards(team_id=blue_team.id)) == 1
    assert len(award_ledger_service.list_awards(team_id=blue_team.id, include_voided=True)) == 2
