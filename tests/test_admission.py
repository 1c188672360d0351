import pytest

from scoreline import db
from scoreline.models import Match, Prediction
from scoreline.services import admission
from scoreline.services.admission import submit_prediction
from scoreline.utils.errors import InvalidInputError, InvalidStateError, NotFoundError

from conftest import make_match


def test_new_prediction_is_pending(ctx, users, teams, match):
    prediction, created = submit_prediction(users["alice"], match, teams[0])

    assert created
    assert prediction.status is None
    assert prediction.predicted_team_id == teams[0]


def test_draw_sentinel_accepted(ctx, users, match):
    prediction, created = submit_prediction(users["alice"], match, 0)

    assert created
    assert prediction.is_draw_prediction


def test_resubmission_updates_single_row(ctx, users, teams, match):
    submit_prediction(users["alice"], match, teams[0])
    prediction, created = submit_prediction(users["alice"], match, teams[1])

    assert not created
    assert prediction.predicted_team_id == teams[1]
    assert Prediction.query.filter_by(user_id=users["alice"], match_id=match).count() == 1


def test_resubmission_resets_status(ctx, users, teams, match):
    prediction, _ = submit_prediction(users["alice"], match, teams[0])
    prediction.status = False
    db.session.commit()

    prediction, _ = submit_prediction(users["alice"], match, 0)

    assert prediction.status is None


def test_unknown_match(ctx, users):
    with pytest.raises(NotFoundError):
        submit_prediction(users["alice"], 999, 0)


def test_unknown_user(ctx, match):
    with pytest.raises(NotFoundError):
        submit_prediction(999, match, 0)


def test_finished_match_rejected(ctx, users, teams):
    match_id = make_match(*teams, score1=1, score2=0, is_finished=True)

    with pytest.raises(InvalidStateError):
        submit_prediction(users["alice"], match_id, teams[0])

    assert Prediction.query.count() == 0


def test_finished_check_comes_before_outcome_check(ctx, users, teams):
    match_id = make_match(*teams, is_finished=True)

    with pytest.raises(InvalidStateError):
        submit_prediction(users["alice"], match_id, 12345)


@pytest.mark.parametrize("bad_value", [12345, -1, True, "1"])
def test_invalid_outcome_rejected(ctx, users, match, bad_value):
    with pytest.raises(InvalidInputError):
        submit_prediction(users["alice"], match, bad_value)


def test_score_on_open_match_does_not_close_it(ctx, users, teams, match):
    db.session.get(Match, match).score1 = 3
    db.session.commit()

    prediction, created = submit_prediction(users["alice"], match, teams[1])

    assert created
    assert prediction.status is None


def test_concurrent_insert_turns_into_update(ctx, users, teams, match, monkeypatch):
    real_upsert = admission._upsert
    raced = []

    def upsert_after_competing_insert(user_id, match_id, predicted_team_id):
        if raced:
            return real_upsert(user_id, match_id, predicted_team_id)
        raced.append(True)
        # Our lookup found nothing, then a parallel request stored its pick
        db.session.add(Prediction(user_id=user_id, match_id=match_id, predicted_team_id=teams[0]))
        db.session.commit()
        prediction = Prediction(
            user_id=user_id, match_id=match_id, predicted_team_id=predicted_team_id
        )
        db.session.add(prediction)
        return prediction, True

    monkeypatch.setattr(admission, "_upsert", upsert_after_competing_insert)

    prediction, created = submit_prediction(users["alice"], match, 0)

    assert not created
    rows = Prediction.query.filter_by(user_id=users["alice"], match_id=match).all()
    assert len(rows) == 1
    assert rows[0].id == prediction.id
    assert rows[0].predicted_team_id == 0
    assert rows[0].status is None


def test_concurrent_insert_on_finished_match_is_rejected(ctx, users, teams, match, monkeypatch):
    def upsert_then_finish(user_id, match_id, predicted_team_id):
        db.session.add(Prediction(user_id=user_id, match_id=match_id, predicted_team_id=teams[0]))
        db.session.get(Match, match_id).is_finished = True
        db.session.commit()
        prediction = Prediction(
            user_id=user_id, match_id=match_id, predicted_team_id=predicted_team_id
        )
        db.session.add(prediction)
        return prediction, True

    monkeypatch.setattr(admission, "_upsert", upsert_then_finish)

    with pytest.raises(InvalidStateError):
        submit_prediction(users["alice"], match, 0)

    rows = Prediction.query.filter_by(user_id=users["alice"], match_id=match).all()
    assert [row.predicted_team_id for row in rows] == [teams[0]]
