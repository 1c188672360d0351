"""
Scoring ledger: the only writer of User.points, plus standings reads.

Credits are SQL-side increments so concurrent settlements crediting the
same user cannot lose an update. The ledger never commits; callers own
the transaction the credit belongs to.
"""

import logging

from sqlalchemy import and_, func, or_, update

from scoreline import db
from scoreline.models import Prediction, User
from scoreline.models.user import ROLE_USER
from scoreline.utils.cache_utils import cached_query
from scoreline.utils.errors import InvalidInputError, NotFoundError
from scoreline.utils.scoring import CORRECT_PREDICTION_POINTS

logger = logging.getLogger(__name__)


def credit(user_id, amount):
    """
    Atomically add points to a user inside the current transaction.

    Args:
        user_id: User to credit
        amount: Non-negative integer number of points

    Raises:
        InvalidInputError: amount is negative or not an integer
        NotFoundError: no such user
    """
    if isinstance(amount, bool) or not isinstance(amount, int) or amount < 0:
        raise InvalidInputError(f"Credit amount must be a non-negative integer, got {amount!r}")

    if amount == 0:
        return

    result = db.session.execute(
        update(User)
        .where(User.id == user_id)
        .values(points=User.points + amount)
        .execution_options(synchronize_session=False)
    )

    if result.rowcount == 0:
        raise NotFoundError(f"User {user_id} not found")

    logger.info(f"Credited {amount} points to user {user_id}")


def _leaderboard_order():
    return (User.points.desc(), User.created_at.asc(), User.id.asc())


@cached_query("leaderboard")
def get_leaderboard(limit=10):
    """
    Top users by points, excluding admins.

    Ties on points go to the earlier account (created_at, then id).

    Returns:
        list of dicts with rank, id, username and points
    """
    users = (
        User.query.filter(User.role == ROLE_USER)
        .order_by(*_leaderboard_order())
        .limit(limit)
        .all()
    )

    return [
        {
            "rank": index + 1,
            "id": user.id,
            "username": user.username,
            "points": user.points or 0,
        }
        for index, user in enumerate(users)
    ]


def get_rank(user_id):
    """
    1-based leaderboard position of a user.

    Counts users with more points, or equal points and an earlier
    (created_at, id), and adds one.

    Raises:
        NotFoundError: unknown user, or an admin (admins are not ranked)
    """
    user = db.session.get(User, user_id)
    if user is None or user.role != ROLE_USER:
        raise NotFoundError("User not found in leaderboard")

    ahead = (
        db.session.query(func.count(User.id))
        .filter(
            User.role == ROLE_USER,
            or_(
                User.points > user.points,
                and_(
                    User.points == user.points,
                    or_(
                        User.created_at < user.created_at,
                        and_(User.created_at == user.created_at, User.id < user.id),
                    ),
                ),
            ),
        )
        .scalar()
    )
    total_users = User.query.filter(User.role == ROLE_USER).count()

    return {
        "rank": ahead + 1,
        "id": user.id,
        "username": user.username,
        "points": user.points or 0,
        "total_users": total_users,
    }


@cached_query("leaderboard")
def get_leaderboard_stats():
    """Aggregate figures over all ranked users"""
    total_users, highest, average, total_points = (
        db.session.query(
            func.count(User.id),
            func.max(User.points),
            func.avg(User.points),
            func.sum(User.points),
        )
        .filter(User.role == ROLE_USER)
        .one()
    )

    top_user = (
        User.query.filter(User.role == ROLE_USER)
        .order_by(*_leaderboard_order())
        .first()
    )

    return {
        "total_users": total_users or 0,
        "highest_score": highest or 0,
        "average_score": round(float(average or 0), 2),
        "total_points": int(total_points or 0),
        "top_user": (
            {"username": top_user.username, "points": top_user.points or 0}
            if top_user
            else None
        ),
    }


def get_prediction_stats(user_id):
    """Prediction counts and accuracy for one user"""
    rows = (
        db.session.query(Prediction.status, func.count(Prediction.id))
        .filter(Prediction.user_id == user_id)
        .group_by(Prediction.status)
        .all()
    )
    counts = {status: count for status, count in rows}

    correct = counts.get(True, 0)
    incorrect = counts.get(False, 0)
    pending = counts.get(None, 0)
    settled = correct + incorrect

    return {
        "total_predictions": correct + incorrect + pending,
        "correct_predictions": correct,
        "incorrect_predictions": incorrect,
        "pending_predictions": pending,
        "accuracy_percentage": round(correct / settled * 100, 2) if settled else 0,
    }


def audit_points(reward=CORRECT_PREDICTION_POINTS):
    """
    Compare each user's points with what their correct predictions earned.

    Returns:
        list of dicts for users whose stored points differ from
        reward * correct predictions
    """
    correct_counts = dict(
        db.session.query(Prediction.user_id, func.count(Prediction.id))
        .filter(Prediction.status.is_(True))
        .group_by(Prediction.user_id)
        .all()
    )

    mismatches = []
    for user in User.query.order_by(User.id).all():
        expected = correct_counts.get(user.id, 0) * reward
        if (user.points or 0) != expected:
            mismatches.append(
                {
                    "user_id": user.id,
                    "username": user.username,
                    "points": user.points or 0,
                    "expected_points": expected,
                    "difference": (user.points or 0) - expected,
                }
            )

    if mismatches:
        logger.warning(f"Points audit found {len(mismatches)} mismatched users")

    return mismatches
