from datetime import date

import pytest
from sqlalchemy import update
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.attributes import set_committed_value

from scoreline import db
from scoreline.models import Match, Prediction, User
from scoreline.services import ledger, settlement
from scoreline.services.admission import submit_prediction
from scoreline.utils.errors import (
    InvalidInputError,
    InvalidStateError,
    NotFoundError,
    SettlementError,
)
from scoreline.utils.scoring import DRAW, TEAM1_WIN

from conftest import make_match, make_prediction, make_team


def points(user_id):
    return db.session.get(User, user_id).points


def statuses(match_id):
    return {
        p.user_id: p.status
        for p in Prediction.query.filter_by(match_id=match_id).all()
    }


@pytest.fixture
def predicted_match(ctx, users, teams, match):
    """alice picks team1, bob picks team2, carol picks a draw"""
    submit_prediction(users["alice"], match, teams[0])
    submit_prediction(users["bob"], match, teams[1])
    submit_prediction(users["carol"], match, 0)
    return match


def test_team1_win_settles_every_prediction(predicted_match, users, teams):
    result = settlement.finish_match(predicted_match, 2, 1)

    assert result.outcome == TEAM1_WIN
    assert result.winning_team_id == teams[0]
    assert not result.already_finished
    assert result.settled_count == 3
    assert result.correct_count == 1
    assert result.awards == {users["alice"]: 10}

    assert statuses(predicted_match) == {
        users["alice"]: True,
        users["bob"]: False,
        users["carol"]: False,
    }
    assert points(users["alice"]) == 10
    assert points(users["bob"]) == 0
    assert points(users["carol"]) == 0

    match = db.session.get(Match, predicted_match)
    assert match.is_finished
    assert (match.score1, match.score2) == (2, 1)


def test_goalless_draw_rewards_draw_predictions(predicted_match, users):
    result = settlement.finish_match(predicted_match, 0, 0)

    assert result.outcome == DRAW
    assert result.winning_team_id is None
    assert statuses(predicted_match)[users["carol"]] is True
    assert points(users["carol"]) == 10
    assert points(users["alice"]) == 0


def test_no_prediction_left_pending(predicted_match):
    settlement.finish_match(predicted_match, 1, 3)

    assert None not in statuses(predicted_match).values()


def test_finishing_twice_is_a_noop(predicted_match, users):
    settlement.finish_match(predicted_match, 2, 1)
    again = settlement.finish_match(predicted_match, 0, 5)

    assert again.already_finished
    assert again.settled_count == 0
    assert (again.score1, again.score2) == (2, 1)
    assert points(users["alice"]) == 10

    match = db.session.get(Match, predicted_match)
    assert (match.score1, match.score2) == (2, 1)


def test_identical_correctness_gets_identical_awards(ctx, users, teams, match):
    for user_id in users.values():
        submit_prediction(user_id, match, teams[1])

    result = settlement.finish_match(match, 0, 1)

    assert set(result.awards.values()) == {10}
    assert {points(user_id) for user_id in users.values()} == {10}


def test_finish_with_stored_scores(ctx, users, teams):
    match_id = make_match(*teams, score1=3, score2=1)
    submit_prediction(users["alice"], match_id, teams[0])

    result = settlement.finish_match(match_id)

    assert result.outcome == TEAM1_WIN
    assert points(users["alice"]) == 10


def test_predict_after_finish_is_rejected(predicted_match, users, teams):
    settlement.finish_match(predicted_match, 2, 1)

    with pytest.raises(InvalidStateError):
        submit_prediction(users["bob"], predicted_match, teams[0])

    assert statuses(predicted_match)[users["bob"]] is False


def test_unknown_match(ctx):
    with pytest.raises(NotFoundError):
        settlement.finish_match(999, 1, 0)


@pytest.mark.parametrize("score1, score2", [(-1, 0), (0, -2), (1.5, 0), (True, 0)])
def test_invalid_scores_leave_match_open(predicted_match, score1, score2):
    with pytest.raises(InvalidInputError):
        settlement.finish_match(predicted_match, score1, score2)

    assert not db.session.get(Match, predicted_match).is_finished


def test_store_failure_rolls_back_everything(predicted_match, users, monkeypatch):
    def failing_credit(user_id, amount):
        raise OperationalError("UPDATE users", {}, Exception("database is locked"))

    monkeypatch.setattr(ledger, "credit", failing_credit)

    with pytest.raises(SettlementError):
        settlement.finish_match(predicted_match, 2, 1)

    match = db.session.get(Match, predicted_match)
    assert not match.is_finished
    assert (match.score1, match.score2) == (0, 0)
    assert set(statuses(predicted_match).values()) == {None}
    assert points(users["alice"]) == 0


def test_retry_after_failure_settles_once(predicted_match, users, monkeypatch):
    original_credit = ledger.credit

    def failing_credit(user_id, amount):
        raise OperationalError("UPDATE users", {}, Exception("database is locked"))

    monkeypatch.setattr(ledger, "credit", failing_credit)
    with pytest.raises(SettlementError):
        settlement.finish_match(predicted_match, 2, 1)

    monkeypatch.setattr(ledger, "credit", original_credit)
    result = settlement.finish_match(predicted_match, 2, 1)

    assert result.settled_count == 3
    assert points(users["alice"]) == 10


def test_settle_pending_on_imported_finished_match(ctx, users, teams):
    match_id = make_match(*teams, score1=0, score2=2, is_finished=True)
    make_prediction(users["alice"], match_id, teams[1])
    make_prediction(users["bob"], match_id, teams[0])
    # Already settled rows are never touched again
    make_prediction(users["carol"], match_id, teams[1], status=True)

    result = settlement.settle_pending_predictions(match_id)

    assert result.settled_count == 2
    assert result.awards == {users["alice"]: 10}
    assert points(users["carol"]) == 0

    again = settlement.settle_pending_predictions(match_id)
    assert again.settled_count == 0
    assert points(users["alice"]) == 10


def test_settle_pending_requires_finished_match(ctx, match):
    with pytest.raises(InvalidStateError):
        settlement.settle_pending_predictions(match)


def test_settle_finished_matches_rescans_only_pending(ctx, users, teams, match):
    finished_id = make_match(*teams, score1=1, score2=1, is_finished=True)
    make_prediction(users["alice"], finished_id, 0)
    make_prediction(users["bob"], match, teams[0])

    results = settlement.settle_finished_matches()

    assert [r.match_id for r in results] == [finished_id]
    assert points(users["alice"]) == 10
    assert statuses(match)[users["bob"]] is None
    assert settlement.settle_finished_matches() == []


def test_update_match_schedule_only(ctx, match):
    match_obj, result = settlement.update_match(match, {"date": date(2030, 5, 1)})

    assert result is None
    assert match_obj.date == date(2030, 5, 1)
    assert not match_obj.is_finished


def test_update_match_score_finishes_implicitly(predicted_match, users):
    match_obj, result = settlement.update_match(predicted_match, {"score1": 2, "score2": 1})

    assert result is not None
    assert result.outcome == TEAM1_WIN
    assert match_obj.is_finished
    assert points(users["alice"]) == 10


def test_update_match_is_finished_uses_stored_scores(predicted_match, users):
    _, result = settlement.update_match(predicted_match, {"is_finished": True})

    assert result.outcome == DRAW
    assert points(users["carol"]) == 10


def test_update_match_refuses_score_change_once_finished(predicted_match):
    settlement.finish_match(predicted_match, 2, 1)

    with pytest.raises(InvalidStateError):
        settlement.update_match(predicted_match, {"score2": 4})

    # Re-sending the final score is harmless
    _, result = settlement.update_match(predicted_match, {"score1": 2, "score2": 1})
    assert result is None


def test_update_match_refuses_team_change_with_predictions(predicted_match, teams):
    other = make_team("City")

    with pytest.raises(InvalidStateError):
        settlement.update_match(predicted_match, {"team2_id": other})


def test_update_match_team_change_without_predictions(ctx, teams, match):
    other = make_team("City")
    match_obj, _ = settlement.update_match(match, {"team2_id": other})

    assert match_obj.team2_id == other


def test_result_to_dict(predicted_match, users):
    data = settlement.finish_match(predicted_match, 2, 1).to_dict()

    assert data["score"] == "2-1"
    assert data["total_awarded"] == 10
    assert data["awards"] == {str(users["alice"]): 10}


def test_losing_the_finish_race_reports_the_winner(predicted_match, users, monkeypatch):
    real_get_match = settlement._get_match
    raced = []

    def get_match_then_lose_race(match_id):
        match = real_get_match(match_id)
        if not raced:
            raced.append(True)
            # A concurrent request finishes the match right after our read
            settlement.finish_match(match_id, 3, 0)
            set_committed_value(match, "is_finished", False)
        return match

    monkeypatch.setattr(settlement, "_get_match", get_match_then_lose_race)

    result = settlement.finish_match(predicted_match, 2, 1)

    assert result.already_finished
    assert (result.score1, result.score2) == (3, 0)
    assert result.settled_count == 0
    assert points(users["alice"]) == 10
    assert sum(points(user_id) for user_id in users.values()) == 10

    match = db.session.get(Match, predicted_match)
    assert (match.score1, match.score2) == (3, 0)


def test_prediction_settled_concurrently_is_skipped(predicted_match, users, monkeypatch):
    real_rule = settlement.is_prediction_correct
    swept = []

    def rule_after_concurrent_sweep(predicted_team_id, outcome, team1_id, team2_id):
        if not swept:
            swept.append(True)
            # Another sweep settles and credits alice between our read and write
            db.session.execute(
                update(Prediction)
                .where(
                    Prediction.user_id == users["alice"],
                    Prediction.match_id == predicted_match,
                )
                .values(status=True)
            )
            ledger.credit(users["alice"], 10)
        return real_rule(predicted_team_id, outcome, team1_id, team2_id)

    monkeypatch.setattr(settlement, "is_prediction_correct", rule_after_concurrent_sweep)

    result = settlement.finish_match(predicted_match, 2, 1)

    assert result.settled_count == 2
    assert users["alice"] not in result.awards
    assert points(users["alice"]) == 10
    assert None not in statuses(predicted_match).values()
