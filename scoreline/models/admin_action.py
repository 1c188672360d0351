from datetime import datetime, timezone

from scoreline import db


class AdminAction(db.Model):
    __tablename__ = "admin_actions"

    id = db.Column(db.Integer, primary_key=True)

    # Action details
    admin_user_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    # Action type and details
    action_type = db.Column(
        db.String(50), nullable=False
    )  # 'finish_match', 'settle_pending', 'create_match', 'delete_team', etc.
    action_description = db.Column(db.String(500), nullable=False)

    # Related match, kept as a plain id so the trail survives match deletion
    match_id = db.Column(db.Integer, nullable=True)

    # Additional context data (JSON)
    action_metadata = db.Column(db.JSON, nullable=True)

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    # Relationships
    admin_user = db.relationship(
        "User", foreign_keys=[admin_user_id], backref="admin_actions_performed"
    )

    # Indexes
    __table_args__ = (
        db.Index("idx_admin_action_admin", "admin_user_id"),
        db.Index("idx_admin_action_type", "action_type"),
        db.Index("idx_admin_action_match", "match_id"),
        db.Index("idx_admin_action_created", "created_at"),
    )

    def __repr__(self):
        return f'<AdminAction {self.action_type} by {self.admin_user.username if self.admin_user else "system"}>'

    @staticmethod
    def log_action(
        admin_user_id,
        action_type,
        description,
        match_id=None,
        action_metadata=None,
    ):
        """Log an admin action"""
        action = AdminAction(
            admin_user_id=admin_user_id,
            action_type=action_type,
            action_description=description,
            match_id=match_id,
            action_metadata=action_metadata or {},
        )

        db.session.add(action)
        return action

    @staticmethod
    def log_settlement(admin_user, result, action_type="finish_match"):
        """Convenience method for logging a settlement result"""
        if result.already_finished:
            description = f"Finish requested for match {result.match_id}: already finished, nothing changed"
        else:
            description = (
                f"Settled match {result.match_id} at {result.score1}-{result.score2} "
                f"({result.outcome}): {result.correct_count}/{result.settled_count} correct"
            )

        return AdminAction.log_action(
            admin_user_id=admin_user.id if admin_user else None,
            action_type=action_type,
            description=description,
            match_id=result.match_id,
            action_metadata=result.to_dict(),
        )

    @staticmethod
    def get_recent_actions(limit=50, action_type=None, match_id=None):
        """Get recent admin actions, newest first"""
        query = AdminAction.query

        if action_type:
            query = query.filter_by(action_type=action_type)
        if match_id is not None:
            query = query.filter_by(match_id=match_id)

        return query.order_by(AdminAction.created_at.desc(), AdminAction.id.desc()).limit(limit).all()

    def to_dict(self):
        """Convert admin action to dictionary for API responses"""
        return {
            "id": self.id,
            "admin_user_id": self.admin_user_id,
            "admin_username": self.admin_user.username if self.admin_user else None,
            "action_type": self.action_type,
            "action_description": self.action_description,
            "match_id": self.match_id,
            "action_metadata": self.action_metadata,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
