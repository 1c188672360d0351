from datetime import datetime, timezone

from scoreline import db


class Team(db.Model):
    __tablename__ = "teams"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), unique=True, nullable=False, index=True)
    logo_url = db.Column(db.String(500))

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Matches reference teams; they do not own them
    home_matches = db.relationship(
        "Match",
        foreign_keys="Match.team1_id",
        backref=db.backref("team1", lazy="joined"),
        lazy="dynamic",
    )
    away_matches = db.relationship(
        "Match",
        foreign_keys="Match.team2_id",
        backref=db.backref("team2", lazy="joined"),
        lazy="dynamic",
    )

    def __repr__(self):
        return f"<Team {self.name}>"

    def get_all_matches(self):
        """Get all matches this team plays in, either side"""
        from .match import Match

        return (
            Match.query.filter(
                db.or_(Match.team1_id == self.id, Match.team2_id == self.id)
            )
            .order_by(Match.date, Match.time)
            .all()
        )

    def is_referenced(self):
        """True once any match points at this team"""
        from .match import Match

        return (
            db.session.query(Match.id)
            .filter(db.or_(Match.team1_id == self.id, Match.team2_id == self.id))
            .first()
            is not None
        )

    def get_record(self):
        """Get the team's win-draw-loss record over finished matches"""
        wins = draws = losses = 0

        for match in self.get_all_matches():
            if not match.is_finished:
                continue

            if match.score1 == match.score2:
                draws += 1
            elif match.winning_team_id == self.id:
                wins += 1
            else:
                losses += 1

        return wins, draws, losses

    def to_dict(self, include_record=False):
        """Convert team to dictionary for API responses"""
        data = {
            "id": self.id,
            "name": self.name,
            "logo_url": self.logo_url,
        }

        if include_record:
            wins, draws, losses = self.get_record()
            data.update({"wins": wins, "draws": draws, "losses": losses})

        return data
