from datetime import date, datetime, time, timedelta, timezone

import pytest

from scoreline import create_app, db
from scoreline.models import Match, Prediction, Team, User
from scoreline.models.user import ROLE_ADMIN, ROLE_USER

PASSWORD = "Password123"


def make_user(username, role=ROLE_USER, points=0, created_at=None):
    user = User(username=username, role=role, points=points)
    user.set_password(PASSWORD)
    if created_at is not None:
        user.created_at = created_at
    db.session.add(user)
    db.session.commit()
    return user.id


def make_team(name):
    team = Team(name=name)
    db.session.add(team)
    db.session.commit()
    return team.id


def make_match(team1_id, team2_id, score1=0, score2=0, is_finished=False):
    match = Match(
        team1_id=team1_id,
        team2_id=team2_id,
        date=date.today() + timedelta(days=1),
        time=time(15, 0),
        score1=score1,
        score2=score2,
        is_finished=is_finished,
    )
    db.session.add(match)
    db.session.commit()
    return match.id


def make_prediction(user_id, match_id, predicted_team_id, status=None):
    prediction = Prediction(
        user_id=user_id,
        match_id=match_id,
        predicted_team_id=predicted_team_id,
        status=status,
    )
    db.session.add(prediction)
    db.session.commit()
    return prediction.id


def login(client, username, password=PASSWORD):
    return client.post("/auth/login", json={"username": username, "password": password})


@pytest.fixture
def app():
    app = create_app("testing")
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def ctx(app):
    """Application context for service-level tests"""
    with app.app_context():
        yield


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def users(app):
    """Three regular users registered one second apart"""
    base = datetime(2026, 1, 1, tzinfo=timezone.utc)
    with app.app_context():
        return {
            name: make_user(name, created_at=base + timedelta(seconds=i))
            for i, name in enumerate(["alice", "bob", "carol"])
        }


@pytest.fixture
def admin(app):
    with app.app_context():
        return make_user("admin", role=ROLE_ADMIN)


@pytest.fixture
def teams(app):
    with app.app_context():
        return make_team("Rovers"), make_team("United")


@pytest.fixture
def match(app, teams):
    """An open match between the two teams"""
    with app.app_context():
        return make_match(*teams)


@pytest.fixture
def user_client(app, users):
    client = app.test_client()
    login(client, "alice")
    return client


@pytest.fixture
def admin_client(app, admin):
    client = app.test_client()
    login(client, "admin")
    return client
