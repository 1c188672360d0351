from scoreline import db  # noqa: F401 - imported for model imports

from .admin_action import AdminAction
from .match import Match
from .news import News
from .prediction import Prediction
from .team import Team
from .user import User

__all__ = [
    "User",
    "Team",
    "Match",
    "Prediction",
    "News",
    "AdminAction",
]
