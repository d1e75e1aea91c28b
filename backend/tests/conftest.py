"""
Pytest fixtures for Rally backend tests.

Provides test database setup, a small two-team competition, a caller-identity
helper for the test client, and a recorder for leaderboard pushes.
"""

import pytest
from rally import create_app
from rally.extensions import db, socketio
from rally.models import Activity, Team, User
from rally.models.teams import ROLE_ADMIN, ROLE_COACH, ROLE_STAFF, ROLE_STUDENT
from rally.services import products_service


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'LEADERBOARD_PUBLISH_ENABLED': True,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def published(monkeypatch):
    """Record every Socket.IO emit instead of sending it."""
    events = []

    def fake_emit(event, data=None, **kwargs):
        events.append({"event": event, "data": data, "to": kwargs.get("to")})

    monkeypatch.setattr(socketio, "emit", fake_emit)
    return events


@pytest.fixture(scope='function')
def socket_client(app):
    """
    Socket.IO test client on the shared app.

    Each create_app() call rebinds the module-level server, so suites that
    build their own app leave it pointing elsewhere; bind it back first.
    """
    socketio.init_app(
        app,
        async_mode=app.config.get("SOCKETIO_ASYNC_MODE", "threading"),
        cors_allowed_origins=app.config.get("CORS_ORIGINS", []),
    )
    client = socketio.test_client(app)
    yield client
    if client.is_connected():
        client.disconnect()


@pytest.fixture(scope='function')
def red_team(db_session):
    team = Team(name="Red", team_code="RED")
    db_session.add(team)
    db_session.commit()
    return team


@pytest.fixture(scope='function')
def blue_team(db_session, red_team):
    """Created after red_team so creation order is deterministic."""
    team = Team(name="Blue", team_code="BLUE")
    db_session.add(team)
    db_session.commit()
    return team


def _make_user(session, name, role, team=None):
    user = User(
        name=name,
        email=f"{name.lower()}@rally.test",
        role=role,
        team_id=team.id if team else None,
    )
    session.add(user)
    session.commit()
    return user


@pytest.fixture(scope='function')
def student(db_session, red_team):
    return _make_user(db_session, "Ada", ROLE_STUDENT, red_team)


@pytest.fixture(scope='function')
def teammate(db_session, red_team):
    return _make_user(db_session, "Grace", ROLE_STUDENT, red_team)


@pytest.fixture(scope='function')
def blue_student(db_session, blue_team):
    return _make_user(db_session, "Linus", ROLE_STUDENT, blue_team)


@pytest.fixture(scope='function')
def teamless_student(db_session):
    return _make_user(db_session, "Nomad", ROLE_STUDENT)


@pytest.fixture(scope='function')
def coach(db_session, red_team):
    return _make_user(db_session, "Coach", ROLE_COACH, red_team)


@pytest.fixture(scope='function')
def other_coach(db_session, blue_team):
    return _make_user(db_session, "Trainer", ROLE_COACH, blue_team)


@pytest.fixture(scope='function')
def staff(db_session):
    return _make_user(db_session, "Staff", ROLE_STAFF)


@pytest.fixture(scope='function')
def admin(db_session):
    return _make_user(db_session, "Admin", ROLE_ADMIN)


@pytest.fixture(scope='function')
def activity(db_session):
    """Published 30-point activity open for submissions."""
    activity = Activity(title="Car wash", points=30, is_published=True, allow_submission=True)
    db_session.add(activity)
    db_session.commit()
    return activity


@pytest.fixture(scope='function')
def hoodie(db_session):
    """Garment with two medium hoodies in stock, worth 50 points each."""
    return products_service.create_product(
        {"name": "Hoodie", "price_cents": 4000, "points": 50},
        sizes={"M": 2},
    )


@pytest.fixture(scope='function')
def ticket(db_session, blue_team):
    """Gala ticket worth 20 points; team-less buyers credit the blue team."""
    return products_service.create_product(
        {"name": "Gala Ticket", "type": "TICKET", "price_cents": 2500, "points": 20, "team_id": blue_team.id},
        sizes={"ONESIZE": 3},
    )


@pytest.fixture(scope='function')
def as_user():
    """Build headers that identify the caller to the API."""
    def _headers(user):
        return {"X-User-Id": str(user.id)}
    return _headers
