"""
Match settlement engine.

Finishing a match flips it to finished, decides the outcome from the score,
marks every pending prediction correct or incorrect and credits the flat
reward for each correct one. All of that happens in one transaction:

- the finished flag is claimed with a compare-and-set on is_finished, so two
  concurrent finish calls cannot both run the sweep;
- each prediction status is written with a compare-and-set on status IS NULL,
  so a prediction is credited at most once even across re-scans;
- any store failure rolls back the flag, the statuses and the credits
  together and surfaces as SettlementError. Calling again is the recovery.
"""

import logging

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError

from scoreline import db
from scoreline.models import Match, Prediction, Team
from scoreline.services import ledger
from scoreline.utils.cache_utils import invalidate_model_cache
from scoreline.utils.errors import (
    InvalidInputError,
    InvalidStateError,
    NotFoundError,
    SettlementError,
)
from scoreline.utils.logging_config import ContextualLogger
from scoreline.utils.performance import timer
from scoreline.utils.scoring import (
    CORRECT_PREDICTION_POINTS,
    calculate_prediction_points,
    determine_outcome,
    is_prediction_correct,
    winning_team_id,
)
from scoreline.utils.timezone_utils import get_utc_time

logger = logging.getLogger(__name__)


class SettlementResult:
    """Summary of one settlement run, for callers and the audit trail"""

    def __init__(
        self, match_id, score1, score2, team1_id, team2_id, already_finished=False
    ):
        self.match_id = match_id
        self.score1 = score1
        self.score2 = score2
        self.outcome = determine_outcome(score1, score2)
        self.winning_team_id = winning_team_id(self.outcome, team1_id, team2_id)
        self.already_finished = already_finished
        self.settled_count = 0
        self.correct_count = 0
        self.awards = {}

    @classmethod
    def for_finished_match(cls, match, already_finished=True):
        return cls(
            match.id,
            match.score1,
            match.score2,
            match.team1_id,
            match.team2_id,
            already_finished=already_finished,
        )

    def record(self, user_id, correct, points):
        self.settled_count += 1
        if correct:
            self.correct_count += 1
        if points:
            self.awards[user_id] = self.awards.get(user_id, 0) + points

    @property
    def total_awarded(self):
        return sum(self.awards.values())

    def to_dict(self):
        return {
            "match_id": self.match_id,
            "score": f"{self.score1}-{self.score2}",
            "outcome": self.outcome,
            "winning_team_id": self.winning_team_id,
            "already_finished": self.already_finished,
            "settled_count": self.settled_count,
            "correct_count": self.correct_count,
            "total_awarded": self.total_awarded,
            # JSON object keys are strings
            "awards": {str(user_id): points for user_id, points in self.awards.items()},
        }


def _validate_score(value, name):
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidInputError(f"{name} must be an integer")
    if value < 0:
        raise InvalidInputError(f"{name} must not be negative")


def _get_match(match_id):
    match = db.session.get(Match, match_id)
    if match is None:
        raise NotFoundError(f"Match {match_id} not found")
    return match


def _reward():
    return current_app.config.get("CORRECT_PREDICTION_POINTS", CORRECT_PREDICTION_POINTS)


def _settle_pending(match, result, reward):
    """Settle every pending prediction of a finished match into result"""
    pending = (
        db.session.query(Prediction.id, Prediction.user_id, Prediction.predicted_team_id)
        .filter(Prediction.match_id == match.id, Prediction.status.is_(None))
        .order_by(Prediction.id)
        .all()
    )
    now = get_utc_time()

    for prediction_id, user_id, predicted_team_id in pending:
        correct = is_prediction_correct(
            predicted_team_id, result.outcome, match.team1_id, match.team2_id
        )

        claimed = db.session.execute(
            update(Prediction)
            .where(Prediction.id == prediction_id, Prediction.status.is_(None))
            .values(status=correct, updated_at=now)
            .execution_options(synchronize_session=False)
        ).rowcount
        if not claimed:
            # Settled by a concurrent sweep
            continue

        points = calculate_prediction_points(correct, reward)
        if points:
            ledger.credit(user_id, points)

        result.record(user_id, correct, points)


def _commit_settlement(match_id, log):
    try:
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        log.exception("Settlement commit failed, rolled back")
        raise SettlementError(
            f"Settlement of match {match_id} failed and was rolled back"
        ) from e


@timer
def finish_match(match_id, score1=None, score2=None):
    """
    Finish a match and settle its predictions.

    Args:
        match_id: Match to finish
        score1: Final team1 score (defaults to the stored score)
        score2: Final team2 score (defaults to the stored score)

    Returns:
        SettlementResult; already_finished is set and nothing is written
        when the match was finished before this call.

    Raises:
        NotFoundError: unknown match
        InvalidInputError: negative or non-integer score
        SettlementError: store failure, everything rolled back
    """
    log = ContextualLogger(__name__, {"match_id": match_id})
    match = _get_match(match_id)

    score1 = match.score1 if score1 is None else score1
    score2 = match.score2 if score2 is None else score2
    _validate_score(score1, "score1")
    _validate_score(score2, "score2")

    if match.is_finished:
        log.info("Finish requested for an already finished match, nothing to do")
        return SettlementResult.for_finished_match(match)

    try:
        claimed = db.session.execute(
            update(Match)
            .where(Match.id == match_id, Match.is_finished.is_(False))
            .values(
                score1=score1, score2=score2, is_finished=True, updated_at=get_utc_time()
            )
            .execution_options(synchronize_session=False)
        ).rowcount

        if not claimed:
            # Another request finished the match between our read and write
            db.session.rollback()
            log.info("Lost the finish race to a concurrent settlement")
            return SettlementResult.for_finished_match(_get_match(match_id))

        result = SettlementResult(
            match_id, score1, score2, match.team1_id, match.team2_id
        )
        _settle_pending(match, result, _reward())
    except SQLAlchemyError as e:
        db.session.rollback()
        log.exception("Settlement failed, rolled back")
        raise SettlementError(
            f"Settlement of match {match_id} failed and was rolled back"
        ) from e
    except Exception:
        db.session.rollback()
        raise

    _commit_settlement(match_id, log)
    invalidate_model_cache("leaderboard")

    log.info(
        f"Match finished {score1}-{score2} ({result.outcome}): "
        f"{result.correct_count}/{result.settled_count} correct, "
        f"{result.total_awarded} points awarded"
    )
    return result


@timer
def settle_pending_predictions(match_id):
    """
    Settle the pending predictions of an already finished match.

    Used to recover matches that were marked finished without a sweep
    (imported data, older releases). Settled predictions are never
    touched again, so calling this repeatedly awards nothing twice.

    Raises:
        NotFoundError: unknown match
        InvalidStateError: the match is still open
        SettlementError: store failure, everything rolled back
    """
    log = ContextualLogger(__name__, {"match_id": match_id})
    match = _get_match(match_id)

    if not match.is_finished:
        raise InvalidStateError(f"Match {match_id} is not finished yet")

    result = SettlementResult.for_finished_match(match, already_finished=False)

    try:
        _settle_pending(match, result, _reward())
    except SQLAlchemyError as e:
        db.session.rollback()
        log.exception("Pending settlement failed, rolled back")
        raise SettlementError(
            f"Settlement of match {match_id} failed and was rolled back"
        ) from e
    except Exception:
        db.session.rollback()
        raise

    _commit_settlement(match_id, log)

    if result.settled_count:
        invalidate_model_cache("leaderboard")
        log.info(
            f"Settled {result.settled_count} pending predictions, "
            f"{result.total_awarded} points awarded"
        )

    return result


def settle_finished_matches():
    """
    Re-scan finished matches and settle any prediction still pending.

    Returns:
        list of SettlementResult, one per match that had pending predictions
    """
    match_ids = [
        match_id
        for (match_id,) in db.session.query(Match.id)
        .join(Prediction, Prediction.match_id == Match.id)
        .filter(Match.is_finished.is_(True), Prediction.status.is_(None))
        .distinct()
        .order_by(Match.id)
        .all()
    ]

    if not match_ids:
        logger.info("Re-scan found no finished matches with pending predictions")
        return []

    logger.info(f"Re-scan settling {len(match_ids)} finished matches")
    return [settle_pending_predictions(match_id) for match_id in match_ids]


def update_match(match_id, changes):
    """
    Apply an admin edit to a match.

    Schedule fields (team1_id, team2_id, date, time) update an open match.
    Supplying score1/score2 while the match is open finishes it with those
    scores, and is_finished=True finishes it with the stored scores. A
    finished match keeps its score.

    Args:
        match_id: Match to edit
        changes: dict of supplied fields; None values are ignored

    Returns:
        (match, SettlementResult or None)
    """
    match = _get_match(match_id)

    scores = {
        name: changes[name]
        for name in ("score1", "score2")
        if changes.get(name) is not None
    }
    schedule = {
        name: changes[name]
        for name in ("team1_id", "team2_id", "date", "time")
        if changes.get(name) is not None
    }
    finish_requested = bool(changes.get("is_finished"))

    for name, value in scores.items():
        _validate_score(value, name)

    team1_id = schedule.get("team1_id", match.team1_id)
    team2_id = schedule.get("team2_id", match.team2_id)
    teams_changed = (team1_id, team2_id) != (match.team1_id, match.team2_id)

    if match.is_finished:
        if any(getattr(match, name) != value for name, value in scores.items()):
            raise InvalidStateError(f"Match {match_id} already finished; its score is final")
        if teams_changed:
            raise InvalidStateError(f"Teams of finished match {match_id} cannot change")

    if teams_changed:
        if team1_id == team2_id:
            raise InvalidInputError("team1_id and team2_id must differ")
        for team_id in (team1_id, team2_id):
            if db.session.get(Team, team_id) is None:
                raise NotFoundError(f"Team {team_id} not found")
        if match.predictions.count():
            raise InvalidStateError(
                f"Teams of match {match_id} cannot change once predictions exist"
            )

    for name, value in schedule.items():
        setattr(match, name, value)

    if not match.is_finished and (scores or finish_requested):
        result = finish_match(match_id, scores.get("score1"), scores.get("score2"))
        return match, result

    db.session.commit()
    return match, None
