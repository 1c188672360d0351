from datetime import datetime, timezone

from scoreline import db
from scoreline.utils.scoring import DRAW_SENTINEL, determine_outcome, winning_team_id


class Match(db.Model):
    __tablename__ = "matches"

    id = db.Column(db.Integer, primary_key=True)

    # Teams
    team1_id = db.Column(db.Integer, db.ForeignKey("teams.id"), nullable=False)
    team2_id = db.Column(db.Integer, db.ForeignKey("teams.id"), nullable=False)

    # Kickoff, stored as local date and time like the fixture list shows them
    date = db.Column(db.Date, nullable=False)
    time = db.Column(db.Time, nullable=False)

    # Scores; 0-0 is a real result once the match is finished
    score1 = db.Column(db.Integer, nullable=False, default=0, server_default="0")
    score2 = db.Column(db.Integer, nullable=False, default=0, server_default="0")

    # Match status
    is_finished = db.Column(
        db.Boolean, nullable=False, default=False, server_default=db.false()
    )

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    predictions = db.relationship(
        "Prediction",
        backref="match",
        lazy="dynamic",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        db.Index("idx_match_date_time", "date", "time"),
        db.Index("idx_match_finished", "is_finished"),
        db.CheckConstraint("team1_id != team2_id", name="different_teams"),
        db.CheckConstraint("score1 >= 0", name="non_negative_score1"),
        db.CheckConstraint("score2 >= 0", name="non_negative_score2"),
    )

    def __repr__(self):
        return f'<Match {self.team1.name if self.team1 else "TBD"} vs {self.team2.name if self.team2 else "TBD"} on {self.date}>'

    @property
    def outcome(self):
        """Settled outcome (None while the match is open)"""
        if not self.is_finished:
            return None
        return determine_outcome(self.score1, self.score2)

    @property
    def winning_team_id(self):
        """Winning team id (None while open or for a draw)"""
        if not self.is_finished:
            return None
        return winning_team_id(self.outcome, self.team1_id, self.team2_id)

    @property
    def status(self):
        """Get match status as string"""
        return "finished" if self.is_finished else "open"

    @property
    def kickoff(self):
        """Kickoff as an aware datetime in the application's timezone"""
        from scoreline.utils.timezone_utils import combine_kickoff

        return combine_kickoff(self.date, self.time)

    def valid_outcomes(self):
        """Predicted-team values accepted for this match"""
        return (self.team1_id, self.team2_id, DRAW_SENTINEL)

    def get_predictions_count(self):
        """Count predictions per outcome"""
        team1 = self.predictions.filter_by(predicted_team_id=self.team1_id).count()
        team2 = self.predictions.filter_by(predicted_team_id=self.team2_id).count()
        draw = self.predictions.filter_by(predicted_team_id=DRAW_SENTINEL).count()

        return {
            "team1": team1,
            "team2": team2,
            "draw": draw,
            "total": team1 + team2 + draw,
        }

    def to_dict(self, include_predictions_count=False):
        """Convert match to dictionary for API responses"""
        from scoreline.utils.timezone_utils import convert_to_utc, format_kickoff

        data = {
            "id": self.id,
            "team1": self.team1.to_dict() if self.team1 else None,
            "team2": self.team2.to_dict() if self.team2 else None,
            "date": self.date.isoformat() if self.date else None,
            "time": self.time.strftime("%H:%M:%S") if self.time else None,
            "kickoff": self.kickoff.isoformat() if self.date and self.time else None,
            "kickoff_utc": (
                convert_to_utc(self.kickoff).isoformat()
                if self.date and self.time
                else None
            ),
            "kickoff_display": format_kickoff(self.date, self.time),
            "score1": self.score1,
            "score2": self.score2,
            "is_finished": self.is_finished,
            "status": self.status,
            "outcome": self.outcome,
            "winning_team_id": self.winning_team_id,
        }

        if include_predictions_count:
            data["predictions_count"] = self.get_predictions_count()

        return data
