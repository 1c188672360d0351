#!/usr/bin/env python3
"""
Scoreline Startup Script

Prepares the application on container startup:
- Waits for the database
- Applies migrations
- Creates the default admin user
- Settles predictions left pending on finished matches
"""

import os
import sys
import time

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Set up environment
os.environ.setdefault("FLASK_APP", "run.py")
os.environ.setdefault("FLASK_CONFIG", "production")

from flask_migrate import upgrade  # noqa: E402
from sqlalchemy.exc import OperationalError, SQLAlchemyError  # noqa: E402

from scoreline import create_app, db  # noqa: E402
from scoreline.models import User  # noqa: E402
from scoreline.models.user import ROLE_ADMIN  # noqa: E402
from scoreline.services import settlement  # noqa: E402
from scoreline.utils.errors import ScorelineError  # noqa: E402


def wait_for_db(app, max_retries=30):
    """Wait for database to be ready"""
    print("Waiting for database connection...")

    for i in range(max_retries):
        try:
            with app.app_context():
                db.session.execute(db.text("SELECT 1")).fetchone()
                print("Database connected!")
                return True
        except OperationalError as e:
            if i < max_retries - 1:
                print(f"Attempt {i+1}/{max_retries} failed, retrying in 2s...")
                print(f"   Error: {str(e)}")
                time.sleep(2)
            else:
                print(f"Database connection failed after {max_retries} attempts: {e}")
                return False
    return False


def create_default_admin():
    """Create default admin user if none exists"""
    admin = User.query.filter_by(role=ROLE_ADMIN).first()

    if admin:
        print(f"Admin user already exists ({admin.username})")
        return admin

    print("Creating default admin user...")

    admin = User(username="admin", role=ROLE_ADMIN, is_active=True)

    # Use environment variable for admin password, fallback to insecure default
    admin_password = os.environ.get("DEFAULT_ADMIN_PASSWORD", "ChangeMe123!")
    admin.set_password(admin_password)

    db.session.add(admin)
    db.session.commit()

    print("Created default admin user (username: admin)")
    print("WARNING: Please change the default password after first login!")
    if not os.environ.get("DEFAULT_ADMIN_PASSWORD"):
        print("WARNING: Using default password. Set DEFAULT_ADMIN_PASSWORD environment variable for security!")

    return admin


def settle_leftover_predictions():
    """Settle predictions still pending on finished matches (idempotent)"""
    print("\nChecking for pending predictions on finished matches...")

    try:
        results = settlement.settle_finished_matches()
    except ScorelineError as e:
        print(f"WARNING: Re-scan failed, run 'manage.py match settle-finished' later: {e.message}")
        return False

    if not results:
        print("   No pending predictions on finished matches")
        return True

    for result in results:
        print(
            f"   Match {result.match_id}: settled {result.settled_count} predictions, "
            f"{result.total_awarded} points awarded"
        )
    return True


def main():
    """Main initialization function"""
    print("Scoreline Startup")
    print("=" * 50)

    app = create_app()

    # Wait for database (outside app context first)
    if not wait_for_db(app):
        print("ERROR: Startup failed - database not available")
        sys.exit(1)

    with app.app_context():
        try:
            upgrade()
            print("Database migrations applied")
        except SQLAlchemyError as e:
            print(f"ERROR: Failed to apply migrations: {e}")
            sys.exit(1)

        create_default_admin()
        settle_leftover_predictions()

    print("=" * 50)
    print("SUCCESS: Scoreline is ready!")
    print("=" * 50)


if __name__ == "__main__":
    main()
