import logging

import pytest

from rally import create_app
from rally.extensions import db, socketio
from rally.models import Team
from rally.services import donation_service, leaderboard_service, points_service, sale_service, scoring_service


def test_leaderboard_sorted_by_score(db_session, student, blue_student, coach, red_team, blue_team):
    points_service.award_manual_points(user_id=blue_student.id, awarded_by_id=coach.id, points=40, description="x")
    points_service.award_manual_points(user_id=student.id, awarded_by_id=coach.id, points=10, description="y")

    board = scoring_service.compute_leaderboard()

    assert [(e["team_id"], e["total_score"], e["rank"]) for e in board] == [
        (blue_team.id, 40, 1),
        (red_team.id, 10, 2),
    ]


def test_ties_keep_creation_order(db_session, red_team, blue_team):
    green = Team(name="Green", team_code="GREEN")
    db_session.add(green)
    db_session.commit()

    board = scoring_service.compute_leaderboard()

    assert [e["team_id"] for e in board] == [red_team.id, blue_team.id, green.id]
    assert all(e["total_score"] == 0 for e in board)


def test_inactive_teams_are_hidden(db_session, red_team, blue_team):
    blue_team.is_active = False
    db_session.commit()

    assert [e["team_id"] for e in scoring_service.compute_leaderboard()] == [red_team.id]


def test_donations_reported_alongside_points(db_session, student, red_team):
    donation_service.record_donation(amount_cents=1500, team_id=red_team.id, user_id=student.id)

    entry = scoring_service.compute_leaderboard()[0]
    assert entry["donation_total_cents"] == 1500
    assert entry["total_score"] == 0
    assert scoring_service.user_contribution(student.id)["donation_total_cents"] == 1500


def test_team_breakdown_and_user_contribution(db_session, hoodie, student, teammate, coach, red_team):
    points_service.award_manual_points(user_id=student.id, awarded_by_id=coach.id, points=5, description="x")
    sale_service.sell(
        product_id=hoodie.id, size="M", quantity=1, buyer_id=teammate.id, coach_id=coach.id,
        payment_method="CASH", amount_paid_cents=4000,
    )

    breakdown = scoring_service.team_breakdown(red_team.id)
    assert breakdown["total_score"] == 55
    assert breakdown["manual_points"] == 5
    assert breakdown["sale_points"] == 50
    assert breakdown["member_count"] == 3

    contribution = scoring_service.user_contribution(teammate.id)
    assert contribution["sale_points"] == 50
    assert contribution["total_points"] == 50


def test_publish_emits_leaderboard_and_team_rooms(app, db_session, red_team, blue_team, published):
    ranking = leaderboard_service.publish("test", team_ids=[red_team.id, None])

    assert [e["team_id"] for e in ranking] == [red_team.id, blue_team.id]
    events = [(e["event"], e["to"]) for e in published]
    assert events == [
        ("leaderboard-update", app.config["LEADERBOARD_ROOM"]),
        ("team-score-update", f"team-{red_team.id}"),
    ]


def test_publish_disabled(app, db_session, red_team, published, monkeypatch):
    monkeypatch.setitem(app.config, "LEADERBOARD_PUBLISH_ENABLED", False)

    assert leaderboard_service.publish("test") is None
    assert published == []


def test_publish_failure_is_logged_and_does_not_undo_commit(
    app, db_session, student, coach, red_team, monkeypatch, caplog,
):
    def broken_emit(*args, **kwargs):
        raise RuntimeError("socket down")

    monkeypatch.setattr(socketio, "emit", broken_emit)

    with caplog.at_level(logging.ERROR, logger=app.logger.name):
        award = points_service.award_manual_points(
            user_id=student.id, awarded_by_id=coach.id, points=12, description="x",
        )

    assert award.id is not None
    assert scoring_service.team_score(red_team.id) == 12
    assert "Failed to publish leaderboard update" in caplog.text

    # Committed state survives a fresh session
    db.session.expire_all()
    assert scoring_service.team_score(red_team.id) == 12


def test_donation_listing(db_session, red_team, blue_team):
    donation_service.record_donation(amount_cents=500, team_id=red_team.id)
    donation_service.record_donation(amount_cents=700, team_id=blue_team.id)

    assert [d.amount_cents for d in donation_service.list_donations(team_id=red_team.id)] == [500]
    assert donation_service.totals_by_team() == {red_team.id: 500, blue_team.id: 700}


def test_join_leaderboard_acks_current_ranking(socket_client, db_session, red_team):
    client = socket_client
    ack = client.emit("join-leaderboard", {}, callback=True)

    assert [e["team_id"] for e in ack["leaderboard"]] == [red_team.id]

    assert client.emit("join-team", {"team_id": red_team.id}, callback=True) == {"room": f"team-{red_team.id}"}
    assert "error" in client.emit("join-team", {}, callback=True)


@pytest.fixture
def second_app():
    """A separately built app, as the threaded suites create per test."""
    return create_app({
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
        "LEADERBOARD_PUBLISH_ENABLED": False,
    })


def test_socket_events_still_served_after_another_app_is_built(second_app, socket_client, db_session, red_team):
    ack = socket_client.emit("join-leaderboard", {}, callback=True)

    assert ack is not None
    assert [e["team_id"] for e in ack["leaderboard"]] == [red_team.id]
