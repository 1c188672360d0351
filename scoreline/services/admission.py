"""
Prediction admission: validates and stores a user's pick for an open match.
"""

import logging

from sqlalchemy.exc import IntegrityError

from scoreline import db
from scoreline.models import Match, Prediction, User
from scoreline.utils.errors import (
    ConflictError,
    InvalidInputError,
    InvalidStateError,
    NotFoundError,
)

logger = logging.getLogger(__name__)


def _load_open_match(match_id):
    # Shared lock so a concurrent finish waits for this admission to commit
    match = (
        db.session.query(Match)
        .filter(Match.id == match_id)
        .with_for_update(read=True)
        .first()
    )
    if match is None:
        raise NotFoundError(f"Match {match_id} not found")
    return match


def _validate_pick(match, predicted_team_id):
    if isinstance(predicted_team_id, bool) or not isinstance(predicted_team_id, int):
        raise InvalidInputError("predicted_team_id must be an integer")

    if predicted_team_id not in match.valid_outcomes():
        raise InvalidInputError(
            f"Invalid outcome for this match: expected {match.team1_id}, "
            f"{match.team2_id} or 0 for a draw",
            details={"valid_values": list(match.valid_outcomes())},
        )


def _upsert(user_id, match_id, predicted_team_id):
    prediction = Prediction.query.filter_by(user_id=user_id, match_id=match_id).first()

    if prediction is not None:
        prediction.predicted_team_id = predicted_team_id
        prediction.status = None
        return prediction, False

    prediction = Prediction(
        user_id=user_id, match_id=match_id, predicted_team_id=predicted_team_id
    )
    db.session.add(prediction)
    return prediction, True


def submit_prediction(user_id, match_id, predicted_team_id):
    """
    Create or replace a user's prediction for a match.

    Args:
        user_id: Predicting user
        match_id: Match being predicted
        predicted_team_id: team1_id, team2_id, or 0 for a draw

    Returns:
        (Prediction, created) where created is False for a replaced pick

    Raises:
        NotFoundError: unknown match or user
        InvalidStateError: the match is finished
        InvalidInputError: the pick is not one of the match's outcomes
    """
    match = _load_open_match(match_id)

    if db.session.get(User, user_id) is None:
        raise NotFoundError(f"User {user_id} not found")

    if match.is_finished:
        raise InvalidStateError(f"Match {match_id} already finished; predictions are closed")

    _validate_pick(match, predicted_team_id)

    prediction, created = _upsert(user_id, match_id, predicted_team_id)

    try:
        db.session.commit()
    except IntegrityError:
        # A concurrent request inserted the same (user, match) first
        db.session.rollback()
        if not created:
            raise

        match = _load_open_match(match_id)
        if match.is_finished:
            raise InvalidStateError(
                f"Match {match_id} already finished; predictions are closed"
            )

        prediction, created = _upsert(user_id, match_id, predicted_team_id)
        if created:
            db.session.rollback()
            raise ConflictError("Prediction could not be stored, please retry")
        db.session.commit()

    logger.info(
        f"User {user_id} {'placed' if created else 'updated'} prediction "
        f"{predicted_team_id} for match {match_id}"
    )
    return prediction, created
