import os
import secrets
import warnings

from dotenv import load_dotenv

basedir = os.path.abspath(os.path.dirname(__file__))
load_dotenv(os.path.join(basedir, ".env"))


class Config:
    # Generate a secure key if not provided (with a warning)
    _secret_key = os.environ.get("SECRET_KEY")

    if not _secret_key:
        _secret_key = secrets.token_urlsafe(32)
        warnings.warn(
            "SECRET_KEY not set! Using auto-generated key. "
            "Sessions will reset on app restart.",
            UserWarning,
        )

    SECRET_KEY = _secret_key

    # Database configuration - built from environment at initialization
    def __init__(self):
        """Initialize configuration with dynamic database URI"""
        self.SQLALCHEMY_DATABASE_URI = self._build_database_uri()

    def _build_database_uri(self):
        """Build database URI from environment variables"""
        database_url = os.environ.get("DATABASE_URL")

        if database_url:
            return database_url

        db_type = os.environ.get("DB_TYPE", "sqlite")

        if db_type.lower() == "postgresql":
            db_host = os.environ.get("DB_HOST") or "localhost"
            db_port = os.environ.get("DB_PORT") or "5432"
            db_name = os.environ.get("DB_NAME") or "scoreline_db"
            db_user = os.environ.get("DB_USER") or "scoreline_user"
            db_password = os.environ.get("DB_PASSWORD") or "scoreline_password"

            return f"postgresql+psycopg://{db_user}:{db_password}@{db_host}:{db_port}/{db_name}"
        else:
            # Default to SQLite for development
            return "sqlite:///" + os.path.join(basedir, "scoreline.db")

    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Create tables on startup instead of running migrations
    AUTO_CREATE_SCHEMA = (
        os.environ.get("AUTO_CREATE_SCHEMA", "False").lower() == "true"
    )

    # Application settings
    ITEMS_PER_PAGE = int(os.environ.get("ITEMS_PER_PAGE") or 10)
    MAX_ITEMS_PER_PAGE = int(os.environ.get("MAX_ITEMS_PER_PAGE") or 100)
    LEADERBOARD_LIMIT = int(os.environ.get("LEADERBOARD_LIMIT") or 10)
    CORRECT_PREDICTION_POINTS = int(os.environ.get("CORRECT_PREDICTION_POINTS") or 10)
    TIMEZONE = os.environ.get("TIMEZONE", "UTC")  # Default to UTC if not specified

    # Caching configuration
    CACHE_TYPE = os.environ.get("CACHE_TYPE", "RedisCache")
    CACHE_DEFAULT_TIMEOUT = int(
        os.environ.get("CACHE_DEFAULT_TIMEOUT", 300)
    )  # 5 minutes
    CACHE_REDIS_URL = os.environ.get("CACHE_REDIS_URL", "redis://localhost:6379/0")
    CACHE_KEY_PREFIX = "scoreline:"
    LEADERBOARD_CACHE_TIMEOUT = int(os.environ.get("LEADERBOARD_CACHE_TIMEOUT", 60))

    # Rate limiting
    RATELIMIT_ENABLED = os.environ.get("RATELIMIT_ENABLED", "True").lower() == "true"

    # Logging configuration
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
    LOG_TO_CONSOLE = os.environ.get("LOG_TO_CONSOLE", "True").lower() == "true"
    LOG_TO_FILE = os.environ.get("LOG_TO_FILE", "True").lower() == "true"
    LOG_DIR = os.environ.get("LOG_DIR", "logs")
    SLOW_FUNCTION_THRESHOLD = float(os.environ.get("SLOW_FUNCTION_THRESHOLD", "1.0"))

    # Environment detection
    FLASK_ENV = os.environ.get("FLASK_ENV", "development")
    DEBUG = FLASK_ENV == "development"
    TESTING = False


class DevelopmentConfig(Config):
    """Development configuration with helpful defaults"""

    DEBUG = True
    AUTO_CREATE_SCHEMA = (
        os.environ.get("AUTO_CREATE_SCHEMA", "True").lower() == "true"
    )
    SQLALCHEMY_ECHO = os.environ.get("SQLALCHEMY_ECHO", "False").lower() == "true"

    def __init__(self):
        super().__init__()
        # Fallback to SimpleCache if Redis isn't reachable in development
        import redis

        try:
            redis_client = redis.Redis.from_url(self.CACHE_REDIS_URL)
            redis_client.ping()
        except redis.exceptions.ConnectionError:
            self.CACHE_TYPE = "SimpleCache"
            warnings.warn(
                "Redis not available, falling back to SimpleCache for development.",
                UserWarning,
            )


class ProductionConfig(Config):
    """Production configuration with security focus"""

    DEBUG = False

    # In production, require explicit environment variables
    def __init__(self):
        super().__init__()  # Call parent __init__ to build database URI

        if not os.environ.get("SECRET_KEY"):
            warnings.warn(
                "PRODUCTION WARNING: SECRET_KEY not explicitly set! "
                "Using auto-generated key is not recommended for production.",
                UserWarning,
            )


class TestingConfig(Config):
    """Testing configuration"""

    TESTING = True
    DEBUG = False
    SECRET_KEY = "testing-secret-key"
    AUTO_CREATE_SCHEMA = True
    CACHE_TYPE = "NullCache"
    RATELIMIT_ENABLED = False
    LOG_TO_CONSOLE = False
    LOG_TO_FILE = False

    def _build_database_uri(self):
        return "sqlite:///:memory:"


# Configuration mapping
config = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
    "default": DevelopmentConfig,
}
