from config import TestingConfig
from scoreline import create_app, db
from scoreline.models import AdminAction, Match, Prediction, User

from conftest import PASSWORD, login, make_match


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.get_json()["status"] == "healthy"
    assert response.headers["X-Content-Type-Options"] == "nosniff"


def test_register_and_me(client):
    response = client.post(
        "/auth/register", json={"username": "dave", "password": "Password123"}
    )

    assert response.status_code == 201
    assert response.get_json()["role"] == "user"

    me = client.get("/auth/me").get_json()
    assert me["username"] == "dave"
    assert me["prediction_stats"]["total_predictions"] == 0


def test_register_duplicate_username(client, users):
    response = client.post(
        "/auth/register", json={"username": "alice", "password": "Password123"}
    )

    assert response.status_code == 409
    assert response.get_json()["error"] == "conflict"


def test_register_weak_password(client):
    response = client.post("/auth/register", json={"username": "dave", "password": "short"})

    assert response.status_code == 400
    body = response.get_json()
    assert body["error"] == "invalid_input"
    assert "password" in body["details"]


def test_login_wrong_password(client, users):
    response = login(client, "alice", "WrongPassword1")

    assert response.status_code == 401
    assert response.get_json()["error"] == "unauthorized"


def test_login_required_is_json(client):
    response = client.post("/api/predictions", json={"match_id": 1, "predicted_team_id": 0})

    assert response.status_code == 401
    assert response.get_json()["error"] == "unauthorized"


def test_submit_and_update_prediction(user_client, teams, match):
    response = user_client.post(
        "/api/predictions", json={"match_id": match, "predicted_team_id": teams[0]}
    )
    assert response.status_code == 201
    assert response.get_json()["created"] is True

    response = user_client.post(
        "/api/predictions", json={"match_id": match, "predicted_team_id": 0}
    )
    assert response.status_code == 200
    body = response.get_json()
    assert body["created"] is False
    assert body["predicted_outcome"] == "draw"
    assert body["status_label"] == "pending"

    listing = user_client.get("/api/predictions").get_json()
    assert listing["total"] == 1
    assert listing["items"][0]["match"]["id"] == match


def test_submit_prediction_missing_field(user_client, match):
    response = user_client.post("/api/predictions", json={"match_id": match})

    assert response.status_code == 400
    assert "predicted_team_id" in response.get_json()["details"]


def test_submit_prediction_invalid_outcome(user_client, match):
    response = user_client.post(
        "/api/predictions", json={"match_id": match, "predicted_team_id": 4242}
    )

    assert response.status_code == 400
    assert response.get_json()["error"] == "invalid_input"


def test_submit_prediction_unknown_match(user_client):
    response = user_client.post(
        "/api/predictions", json={"match_id": 999, "predicted_team_id": 0}
    )

    assert response.status_code == 404
    assert response.get_json()["error"] == "not_found"


def test_non_admin_cannot_finish(user_client, match):
    response = user_client.put(f"/api/matches/{match}/finish", json={"score1": 1, "score2": 0})

    assert response.status_code == 403


def test_finish_flow(app, user_client, admin_client, users, teams, match):
    user_client.post(
        "/api/predictions", json={"match_id": match, "predicted_team_id": teams[0]}
    )

    response = admin_client.put(f"/api/matches/{match}/finish", json={"score1": 2, "score2": 1})
    assert response.status_code == 200
    body = response.get_json()
    assert body["match"]["is_finished"] is True
    assert body["match"]["outcome"] == "team1_win"
    assert body["settlement"]["correct_count"] == 1
    assert body["settlement"]["awards"] == {str(users["alice"]): 10}

    again = admin_client.put(f"/api/matches/{match}/finish", json={"score1": 0, "score2": 3})
    assert again.status_code == 200
    assert again.get_json()["settlement"]["already_finished"] is True

    late = user_client.post(
        "/api/predictions", json={"match_id": match, "predicted_team_id": teams[1]}
    )
    assert late.status_code == 409
    assert late.get_json()["error"] == "invalid_state"

    board = user_client.get("/api/leaderboard").get_json()
    assert board[0] == {"rank": 1, "id": users["alice"], "username": "alice", "points": 10}

    rank = user_client.get("/api/leaderboard/my-rank").get_json()
    assert rank["rank"] == 1
    assert rank["prediction_stats"]["correct_predictions"] == 1

    with app.app_context():
        assert db.session.get(User, users["alice"]).points == 10
        actions = AdminAction.query.filter_by(action_type="finish_match").all()
        assert len(actions) == 2


def test_finish_with_negative_score(admin_client, match):
    response = admin_client.put(f"/api/matches/{match}/finish", json={"score1": -1, "score2": 0})

    assert response.status_code == 400
    assert response.get_json()["error"] == "invalid_input"


def test_patch_score_finishes_match(app, admin_client, match):
    response = admin_client.patch(f"/api/matches/{match}", json={"score1": 0, "score2": 0})

    assert response.status_code == 200
    body = response.get_json()
    assert body["match"]["is_finished"] is True
    assert body["settlement"]["outcome"] == "draw"

    refused = admin_client.patch(f"/api/matches/{match}", json={"score1": 1})
    assert refused.status_code == 409
    assert refused.get_json()["error"] == "invalid_state"


def test_patch_schedule_only(admin_client, match):
    response = admin_client.patch(f"/api/matches/{match}", json={"time": "18:30"})

    assert response.status_code == 200
    body = response.get_json()
    assert body["settlement"] is None
    assert body["match"]["time"] == "18:30:00"
    assert body["match"]["is_finished"] is False


def test_create_match(admin_client, teams):
    response = admin_client.post(
        "/api/matches",
        json={
            "team1_id": teams[0],
            "team2_id": teams[1],
            "date": "2026-11-01",
            "time": "15:00",
        },
    )

    assert response.status_code == 201
    body = response.get_json()
    assert body["status"] == "open"
    assert (body["score1"], body["score2"]) == (0, 0)


def test_create_match_same_teams(admin_client, teams):
    response = admin_client.post(
        "/api/matches",
        json={"team1_id": teams[0], "team2_id": teams[0], "date": "2026-11-01", "time": "15:00"},
    )

    assert response.status_code == 400


def test_delete_match_cascades_predictions(app, admin_client, users, teams, match):
    with app.app_context():
        db.session.add(Prediction(user_id=users["bob"], match_id=match, predicted_team_id=0))
        db.session.commit()

    response = admin_client.delete(f"/api/matches/{match}")

    assert response.status_code == 200
    with app.app_context():
        assert db.session.get(Match, match) is None
        assert Prediction.query.count() == 0


def test_match_list_and_detail(client, teams, match):
    listing = client.get("/api/matches?status=open").get_json()
    assert listing["total"] == 1

    detail = client.get(f"/api/matches/{match}").get_json()
    assert detail["predictions_count"]["total"] == 0

    missing = client.get("/api/matches/999")
    assert missing.status_code == 404
    assert missing.get_json()["error"] == "not_found"


def test_team_admin(client, admin_client, teams, match):
    created = admin_client.post("/api/teams", json={"name": "Athletic"})
    assert created.status_code == 201

    duplicate = admin_client.post("/api/teams", json={"name": "Athletic"})
    assert duplicate.status_code == 409

    referenced = admin_client.delete(f"/api/teams/{teams[0]}")
    assert referenced.status_code == 409
    assert referenced.get_json()["error"] == "conflict"

    deleted = admin_client.delete(f"/api/teams/{created.get_json()['id']}")
    assert deleted.status_code == 200

    names = [team["name"] for team in client.get("/api/teams").get_json()]
    assert names == ["Rovers", "United"]


def test_news_admin(client, admin_client):
    created = admin_client.post(
        "/api/news", json={"title": "Derby day", "content": "Kickoff at three."}
    )
    assert created.status_code == 201

    listing = client.get("/api/news").get_json()
    assert listing["items"][0]["title"] == "Derby day"

    forbidden = client.post("/api/news", json={"title": "x", "content": "y"})
    assert forbidden.status_code == 401


def test_settle_finished_endpoint(app, admin_client, users, teams):
    with app.app_context():
        match_id = make_match(*teams, score1=2, score2=0, is_finished=True)
        db.session.add(
            Prediction(user_id=users["carol"], match_id=match_id, predicted_team_id=teams[0])
        )
        db.session.commit()

    response = admin_client.post("/api/admin/settle-finished")

    assert response.status_code == 200
    body = response.get_json()
    assert body["matches_settled"] == 1
    assert body["points_awarded"] == 10

    actions = admin_client.get("/api/admin/actions?action_type=settle_pending").get_json()
    assert actions[0]["match_id"] == match_id


def test_admin_predictions_filter(user_client, admin_client, teams, match):
    user_client.post("/api/predictions", json={"match_id": match, "predicted_team_id": 0})

    listing = admin_client.get(f"/api/predictions/all?match_id={match}").get_json()

    assert listing["total"] == 1
    assert listing["items"][0]["user"]["username"] == "alice"

    assert user_client.get("/api/predictions/all").status_code == 403


def test_leaderboard_stats_public(client, users):
    response = client.get("/api/leaderboard/stats")

    assert response.status_code == 200
    assert response.get_json()["total_users"] == 3


def test_register_numeric_username_is_read_as_text(client):
    response = client.post("/auth/register", json={"username": 12345, "password": PASSWORD})

    assert response.status_code == 201
    assert response.get_json()["username"] == "12345"


def test_register_nested_username_is_invalid(client):
    response = client.post(
        "/auth/register", json={"username": ["alice"], "password": PASSWORD}
    )

    assert response.status_code == 400
    body = response.get_json()
    assert body["error"] == "invalid_input"
    assert "username" in body["details"]


def test_patch_numeric_date_is_invalid(admin_client, match):
    response = admin_client.patch(f"/api/matches/{match}", json={"date": 20261101})

    assert response.status_code == 400
    body = response.get_json()
    assert body["error"] == "invalid_input"
    assert "date" in body["details"]


def test_patch_is_finished_false_keeps_match_open(admin_client, match):
    response = admin_client.patch(
        f"/api/matches/{match}", json={"is_finished": False, "time": "20:00"}
    )

    assert response.status_code == 200
    assert response.get_json()["match"]["is_finished"] is False


def test_finish_with_fractional_score(admin_client, match):
    response = admin_client.put(f"/api/matches/{match}/finish", json={"score1": 2.5, "score2": 0})

    assert response.status_code == 400
    assert "score1" in response.get_json()["details"]


def test_team_name_object_is_invalid(admin_client):
    response = admin_client.post("/api/teams", json={"name": {"en": "Athletic"}})

    assert response.status_code == 400
    assert response.get_json()["error"] == "invalid_input"


def test_new_registration_appears_on_cached_leaderboard(monkeypatch):
    monkeypatch.setattr(TestingConfig, "CACHE_TYPE", "SimpleCache")
    app = create_app("testing")

    first = app.test_client()
    first.post("/auth/register", json={"username": "dave", "password": PASSWORD})
    assert [e["username"] for e in first.get("/api/leaderboard").get_json()] == ["dave"]

    second = app.test_client()
    second.post("/auth/register", json={"username": "erin", "password": PASSWORD})
    board = second.get("/api/leaderboard").get_json()

    assert [e["username"] for e in board] == ["dave", "erin"]

    with app.app_context():
        db.session.remove()
        db.drop_all()
