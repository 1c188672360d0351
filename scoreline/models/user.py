from datetime import datetime, timezone

from flask_login import UserMixin
from werkzeug.security import check_password_hash, generate_password_hash

from scoreline import db

ROLE_USER = "user"
ROLE_ADMIN = "admin"


class User(UserMixin, db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(80), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)

    # Cumulative score; only the scoring ledger writes this column
    points = db.Column(db.Integer, nullable=False, default=0, server_default="0")

    role = db.Column(
        db.Enum(ROLE_USER, ROLE_ADMIN, name="user_role"),
        nullable=False,
        default=ROLE_USER,
        server_default=ROLE_USER,
    )

    # Account status
    is_active = db.Column(db.Boolean, default=True)

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
    last_login = db.Column(db.DateTime)

    # Relationships
    predictions = db.relationship(
        "Prediction",
        backref="user",
        lazy="dynamic",
        cascade="all, delete-orphan",
    )

    # Leaderboard ordering: points DESC, created_at ASC, id ASC
    __table_args__ = (
        db.Index("idx_user_role_points", "role", "points"),
        db.Index("idx_user_created_at", "created_at"),
        db.CheckConstraint("points >= 0", name="non_negative_points"),
    )

    def __repr__(self):
        return f"<User {self.username}>"

    @property
    def is_admin(self):
        return self.role == ROLE_ADMIN

    def set_password(self, password):
        """Set password hash"""
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        """Check password against hash"""
        return check_password_hash(self.password_hash, password)

    def update_last_login(self):
        """Update last login timestamp"""
        self.last_login = datetime.now(timezone.utc)
        db.session.commit()

    def to_dict(self):
        """Convert user to dictionary for API responses"""
        return {
            "id": self.id,
            "username": self.username,
            "points": self.points or 0,
            "role": self.role,
            "is_active": self.is_active,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "last_login": self.last_login.isoformat() if self.last_login else None,
        }
