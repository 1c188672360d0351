import logging
import os

from flask import Flask, jsonify, request
from flask_caching import Cache
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_login import LoginManager
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

from config import config

logger = logging.getLogger(__name__)

db = SQLAlchemy()
login_manager = LoginManager()
cache = Cache()
migrate = Migrate()


def get_real_ip():
    """
    Get the real client IP address, accounting for reverse proxies.
    Checks X-Forwarded-For, X-Real-IP, and falls back to remote_addr.
    """
    # X-Forwarded-For: client, proxy1, proxy2, ...
    if request.headers.get("X-Forwarded-For"):
        return request.headers.get("X-Forwarded-For").split(",")[0].strip()
    if request.headers.get("X-Real-IP"):
        return request.headers.get("X-Real-IP")
    return get_remote_address()


# Use Redis in production for shared rate limiting across multiple workers
limiter_storage_uri = os.environ.get("RATELIMIT_STORAGE_URI", "memory://")

limiter = Limiter(
    key_func=get_real_ip,
    default_limits=["10000 per day", "1000 per hour"],
    storage_uri=limiter_storage_uri,
)


def create_app(config_name=None):
    app = Flask(__name__)

    # Determine configuration
    if config_name is None:
        config_name = os.environ.get("FLASK_CONFIG", "default")

    app.config.from_object(config[config_name]())

    app.config["SESSION_COOKIE_SAMESITE"] = "Lax"
    app.config["SESSION_COOKIE_HTTPONLY"] = True
    app.config["SESSION_COOKIE_SECURE"] = (
        False
        if app.config.get("DEBUG") or app.config.get("TESTING")
        else app.config.get("FLASK_ENV") == "production"
    )
    app.config["PERMANENT_SESSION_LIFETIME"] = 86400  # 24 hours

    # Initialize extensions
    db.init_app(app)
    login_manager.init_app(app)
    cache.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)

    # Import and register blueprints
    from scoreline.routes.auth import bp as auth_bp

    app.register_blueprint(auth_bp, url_prefix="/auth")

    from scoreline.routes.catalog import bp as catalog_bp

    app.register_blueprint(catalog_bp, url_prefix="/api")

    from scoreline.routes.matches import bp as matches_bp

    app.register_blueprint(matches_bp, url_prefix="/api/matches")

    from scoreline.routes.predictions import bp as predictions_bp

    app.register_blueprint(predictions_bp, url_prefix="/api/predictions")

    from scoreline.routes.leaderboard import bp as leaderboard_bp

    app.register_blueprint(leaderboard_bp, url_prefix="/api/leaderboard")

    from scoreline.routes.admin import bp as admin_bp

    app.register_blueprint(admin_bp, url_prefix="/api/admin")

    from scoreline.routes.users import bp as users_bp

    app.register_blueprint(users_bp, url_prefix="/api/users")

    register_error_handlers(app)
    register_health_check(app)

    # Setup logging
    from scoreline.utils.logging_config import setup_logging

    setup_logging(app)

    show_config_warnings(app, config_name)

    # Migrations own the schema unless explicitly told otherwise
    if app.config.get("AUTO_CREATE_SCHEMA"):
        with app.app_context():
            db.create_all()

    return app


def show_config_warnings(app, config_name):
    """Log configuration warnings and status"""
    logger.info(f"Scoreline starting with '{config_name}' configuration")

    if config_name == "production" and app.config.get("DEBUG"):
        logger.warning("DEBUG mode is enabled in production!")

    db_url = app.config.get("SQLALCHEMY_DATABASE_URI", "")
    if "sqlite" in db_url:
        logger.info(
            "Using SQLite database (%s)",
            "in-memory" if "memory" in db_url else "file",
        )
    elif "postgresql" in db_url:
        logger.info("Using PostgreSQL database")
    else:
        logger.info(
            f"Using database: {db_url.split('://')[0] if '://' in db_url else 'Unknown'}"
        )


def register_health_check(app):
    @app.route("/health")
    def health():
        try:
            db.session.execute(db.text("SELECT 1"))
        except SQLAlchemyError as e:
            logger.error(f"Health check failed: {e}")
            return jsonify({"status": "unhealthy", "database": "unreachable"}), 503
        return jsonify({"status": "healthy", "database": "connected"})


def register_error_handlers(app):
    """Register global error handlers"""
    from scoreline.utils.errors import ScorelineError

    @app.after_request
    def after_request(response):
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Cache-Control"] = "no-store"

        if not app.config.get("DEBUG"):
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains"
            )

        return response

    @app.errorhandler(ScorelineError)
    def handle_scoreline_error(error):
        if error.status_code >= 500:
            db.session.rollback()
            app.logger.error(f"{error.error_code}: {error.message}")
        else:
            app.logger.info(
                f"{error.error_code}: {error.message} - Path: {request.path}"
            )
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        if error.code == 400:
            app.logger.warning(
                f"400 Bad Request: {str(error)} - Path: {request.path} - Method: {request.method}"
            )
        return (
            jsonify({"error": error.name.lower().replace(" ", "_"), "message": error.description}),
            error.code,
        )

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        return jsonify({"error": "internal", "message": "Internal server error"}), 500


from scoreline import models  # noqa: F401, E402 - imported for model registration
