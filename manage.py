#!/usr/bin/env python3
"""
Scoreline Management CLI

This script provides command-line management functionality for the Scoreline application.
"""

import os
import sys

import click
from flask.cli import with_appcontext
from flask_migrate import downgrade, migrate, upgrade
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from scoreline import create_app, db
from scoreline.models import AdminAction, Match, Prediction, User
from scoreline.models.user import ROLE_ADMIN, ROLE_USER
from scoreline.services import ledger, settlement
from scoreline.utils.cache_utils import get_cache_stats
from scoreline.utils.errors import ScorelineError

app = create_app()


def fail(message):
    click.echo(f"❌ {message}")
    sys.exit(1)


@click.group()
def cli():
    """Scoreline Management CLI"""
    pass


# User Management Commands
@cli.group()
def user():
    """User management commands"""
    pass


@user.command()
@click.argument("username")
@click.password_option()
@with_appcontext
def create_admin(username, password):
    """Create an admin user"""
    if User.query.filter_by(username=username).first():
        fail(f"User with username '{username}' already exists!")

    admin = User(username=username, role=ROLE_ADMIN, is_active=True)
    admin.set_password(password)
    db.session.add(admin)

    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        fail(f"User with username '{username}' already exists!")

    click.echo(f"✅ Created admin user '{username}'")


@user.command()
@with_appcontext
def list_users():
    """List all users"""
    users = User.query.order_by(User.created_at.desc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("Users:")
    for u in users:
        status = "🟢" if u.is_active else "🔴"
        role = "👑" if u.is_admin else "  "
        click.echo(f"  {status} {role} {u.username} - {u.points} points")


# Match Commands
@cli.group()
def match():
    """Match settlement commands"""
    pass


@match.command()
@click.argument("match_id", type=int)
@click.option("--score1", type=click.IntRange(min=0), help="Final team1 score")
@click.option("--score2", type=click.IntRange(min=0), help="Final team2 score")
@with_appcontext
def finish(match_id, score1, score2):
    """Finish a match and settle its predictions"""
    try:
        result = settlement.finish_match(match_id, score1, score2)
    except ScorelineError as e:
        fail(e.message)

    AdminAction.log_settlement(None, result)
    db.session.commit()

    if result.already_finished:
        click.echo(
            f"⚠️  Match {match_id} was already finished "
            f"({result.score1}-{result.score2}), nothing changed"
        )
        return

    click.echo(f"✅ Match {match_id} finished {result.score1}-{result.score2} ({result.outcome})")
    click.echo(
        f"   {result.correct_count}/{result.settled_count} predictions correct, "
        f"{result.total_awarded} points awarded"
    )


@match.command()
@with_appcontext
def settle_finished():
    """Settle predictions still pending on finished matches"""
    try:
        results = settlement.settle_finished_matches()
    except ScorelineError as e:
        fail(e.message)

    if not results:
        click.echo("✅ No pending predictions on finished matches")
        return

    for result in results:
        AdminAction.log_settlement(None, result, action_type="settle_pending")
        click.echo(
            f"✅ Match {result.match_id}: settled {result.settled_count} predictions, "
            f"{result.total_awarded} points awarded"
        )
    db.session.commit()


# Leaderboard Commands
@cli.group()
def leaderboard():
    """Leaderboard commands"""
    pass


@leaderboard.command()
@click.option("--limit", default=10, type=click.IntRange(min=1), help="Number of users")
@with_appcontext
def show(limit):
    """Show the leaderboard"""
    entries = ledger.get_leaderboard(limit=limit)

    if not entries:
        click.echo("No users on the leaderboard yet.")
        return

    for entry in entries:
        click.echo(f"  {entry['rank']:>3}. {entry['username']:<30} {entry['points']:>6}")


@leaderboard.command()
@with_appcontext
def audit():
    """Compare stored points with correct predictions"""
    mismatches = ledger.audit_points(reward=app.config["CORRECT_PREDICTION_POINTS"])

    if not mismatches:
        click.echo("✅ All user points match their correct predictions")
        return

    click.echo(f"⚠️  {len(mismatches)} users with mismatched points:")
    for m in mismatches:
        click.echo(
            f"  {m['username']}: {m['points']} stored, {m['expected_points']} expected "
            f"({m['difference']:+d})"
        )
    sys.exit(1)


# Database Commands
@cli.group()
def db_cmd():
    """Database commands"""
    pass


@db_cmd.command()
@with_appcontext
def init_db():
    """Initialize database tables"""
    try:
        db.create_all()
    except SQLAlchemyError as e:
        fail(f"Error initializing database: {str(e)}")
    click.echo("✅ Database tables created successfully!")


@db_cmd.command()
@with_appcontext
def reset():
    """⚠️  DANGER: Drop and recreate all tables"""
    if not click.confirm("This will DELETE ALL DATA. Are you sure?"):
        click.echo("Cancelled.")
        return

    try:
        db.drop_all()
        db.create_all()
    except SQLAlchemyError as e:
        fail(f"Error resetting database: {str(e)}")
    click.echo("✅ Database reset successfully!")


# Database Migration Commands
@cli.group()
def db_migrate():
    """Database migration commands"""
    pass


@db_migrate.command()
@click.option("-m", "--message", required=True, help="Migration message")
@with_appcontext
def create_migration(message):
    """Create a new migration"""
    migrate(message=message)
    click.echo(f"✅ Migration created: {message}")


@db_migrate.command()
@click.option("--revision", default="head", help="Revision to upgrade to")
@with_appcontext
def apply_migrations(revision):
    """Apply migrations to database"""
    upgrade(revision=revision)
    click.echo(f"✅ Migrations applied to {revision}")


@db_migrate.command()
@click.option("--revision", required=True, help="Revision to downgrade to")
@with_appcontext
def rollback_migration(revision):
    """Rollback migrations to specific revision"""
    downgrade(revision=revision)
    click.echo(f"✅ Rolled back to {revision}")


# Info Commands
@cli.command()
@with_appcontext
def status():
    """Show application status"""
    click.echo("⚽ Scoreline Application Status")
    click.echo("=" * 40)

    # Database connection
    try:
        db.session.execute(db.text("SELECT 1"))
        click.echo("✅ Database: Connected")
    except SQLAlchemyError as e:
        fail(f"Database: Error - {str(e)}")

    user_count = User.query.filter_by(role=ROLE_USER, is_active=True).count()
    click.echo(f"👥 Active Users: {user_count}")

    match_count = Match.query.count()
    finished_count = Match.query.filter(Match.is_finished.is_(True)).count()
    click.echo(f"🏟️  Matches: {finished_count}/{match_count} finished")

    pending_on_finished = (
        Prediction.query.join(Match, Prediction.match_id == Match.id)
        .filter(Match.is_finished.is_(True), Prediction.status.is_(None))
        .count()
    )
    if pending_on_finished:
        click.echo(
            f"⚠️  {pending_on_finished} predictions pending on finished matches "
            "(run: match settle-finished)"
        )
    else:
        click.echo("✅ All predictions on finished matches are settled")

    cache_stats = get_cache_stats()
    click.echo(f"🗄️  Cache: {cache_stats['type']} (timeout {cache_stats['timeout']}s)")

    click.echo(f"⚙️  Config: {os.environ.get('FLASK_CONFIG', 'default')}")


if __name__ == "__main__":
    with app.app_context():
        cli()
