from datetime import datetime, timezone

from scoreline import db
from scoreline.utils.scoring import DRAW_SENTINEL

STATUS_PENDING = "pending"
STATUS_CORRECT = "correct"
STATUS_INCORRECT = "incorrect"


class Prediction(db.Model):
    __tablename__ = "predictions"

    id = db.Column(db.Integer, primary_key=True)

    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    match_id = db.Column(
        db.Integer, db.ForeignKey("matches.id", ondelete="CASCADE"), nullable=False
    )

    # team1_id, team2_id or DRAW_SENTINEL; no foreign key since a draw has no team
    predicted_team_id = db.Column(db.Integer, nullable=False)

    # NULL = pending, True = correct, False = incorrect
    status = db.Column(db.Boolean, nullable=True, default=None)

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Constraints and indexes
    __table_args__ = (
        db.UniqueConstraint("user_id", "match_id", name="unique_user_match_prediction"),
        db.Index("idx_prediction_match_status", "match_id", "status"),
        db.Index("idx_prediction_user", "user_id"),
    )

    def __repr__(self):
        return f"<Prediction user_id={self.user_id} match_id={self.match_id} team={self.predicted_team_id}>"

    @property
    def is_draw_prediction(self):
        return self.predicted_team_id == DRAW_SENTINEL

    @property
    def predicted_outcome(self):
        """Prediction expressed as team1 / team2 / draw"""
        if self.is_draw_prediction:
            return "draw"
        if self.match and self.predicted_team_id == self.match.team1_id:
            return "team1"
        if self.match and self.predicted_team_id == self.match.team2_id:
            return "team2"
        return None

    @property
    def status_label(self):
        if self.status is None:
            return STATUS_PENDING
        return STATUS_CORRECT if self.status else STATUS_INCORRECT

    def to_dict(self, include_match=True, include_user=False):
        """Convert prediction to dictionary for API responses"""
        data = {
            "id": self.id,
            "user_id": self.user_id,
            "match_id": self.match_id,
            "predicted_team_id": self.predicted_team_id,
            "predicted_outcome": self.predicted_outcome,
            "status": self.status,
            "status_label": self.status_label,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

        if include_match:
            data["match"] = self.match.to_dict() if self.match else None
        if include_user:
            data["user"] = (
                {"id": self.user.id, "username": self.user.username}
                if self.user
                else None
            )

        return data
