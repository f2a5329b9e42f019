import os
import secrets
import warnings

from dotenv import load_dotenv

basedir = os.path.abspath(os.path.dirname(__file__))
load_dotenv(os.path.join(basedir, ".env"))


class Config:
    # Generate a secure key if not provided (with warning)
    _secret_key = os.environ.get("SECRET_KEY")

    if not _secret_key:
        _secret_key = secrets.token_urlsafe(32)
        warnings.warn(
            "🔐 SECRET_KEY not set! Using auto-generated key. "
            "Run 'python3 generate_secrets.py' to generate secure keys.",
            UserWarning,
        )

    SECRET_KEY = _secret_key

    # Shared bearer tokens for administrative and scheduled callers
    ADMIN_API_TOKEN = os.environ.get("ADMIN_API_TOKEN")
    CRON_SECRET_TOKEN = os.environ.get("CRON_SECRET_TOKEN")

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
            db_name = os.environ.get("DB_NAME") or "loser_pool_db"
            db_user = os.environ.get("DB_USER") or "pool_user"
            db_password = os.environ.get("DB_PASSWORD") or "pool_password"

            return f"postgresql+psycopg://{db_user}:{db_password}@{db_host}:{db_port}/{db_name}"
        else:
            # Default to SQLite for development
            return "sqlite:///" + os.path.join(basedir, "app.db")

    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Schedule provider configuration
    SCHEDULE_PROVIDER = os.environ.get("SCHEDULE_PROVIDER", "espn")
    NFL_API_BASE_URL = (
        os.environ.get("NFL_API_BASE_URL")
        or "https://site.api.espn.com/apis/site/v2/sports/football/nfl"
    )
    SPORTSDATA_API_KEY = os.environ.get("SPORTSDATA_API_KEY")
    SPORTSDATA_BASE_URL = (
        os.environ.get("SPORTSDATA_BASE_URL") or "https://api.sportsdata.io/v3/nfl"
    )
    NFLCOM_SCHEDULE_URL = (
        os.environ.get("NFLCOM_SCHEDULE_URL") or "https://www.nfl.com/schedules"
    )

    # Season calendar
    PRESEASON_START_DATE = os.environ.get("PRESEASON_START_DATE", "2025-08-07")
    NFL_SEASON_YEAR = int(
        os.environ.get("NFL_SEASON_YEAR") or PRESEASON_START_DATE[:4]
    )
    TIMEZONE = os.environ.get("TIMEZONE", "America/New_York")

    # Sync behaviour
    SYNC_REQUEST_TIMEOUT = float(os.environ.get("SYNC_REQUEST_TIMEOUT", 15))
    SYNC_MAX_RETRIES = int(os.environ.get("SYNC_MAX_RETRIES", 3))
    SYNC_RETRY_BASE_DELAY = float(os.environ.get("SYNC_RETRY_BASE_DELAY", 2.0))
    SYNC_INTERVAL_MINUTES = int(os.environ.get("SYNC_INTERVAL_MINUTES", 30))
    SYNC_MIN_REQUEST_INTERVAL = float(os.environ.get("SYNC_MIN_REQUEST_INTERVAL", 0.5))
    SYNC_MAX_REQUESTS_PER_MINUTE = int(os.environ.get("SYNC_MAX_REQUESTS_PER_MINUTE", 60))

    # Caching configuration
    CACHE_TYPE = os.environ.get("CACHE_TYPE", "RedisCache")
    CACHE_DEFAULT_TIMEOUT = int(
        os.environ.get("CACHE_DEFAULT_TIMEOUT", 300)
    )  # 5 minutes
    CACHE_REDIS_URL = os.environ.get("CACHE_REDIS_URL", "redis://localhost:6379/0")
    CACHE_KEY_PREFIX = "loser_pool:"

    # Rate limiting
    RATELIMIT_ENABLED = True

    # Scheduler configuration
    SCHEDULER_ENABLED = os.environ.get("SCHEDULER_ENABLED", "True").lower() == "true"

    # Logging configuration
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
    LOG_TO_CONSOLE = os.environ.get("LOG_TO_CONSOLE", "True").lower() == "true"
    LOG_TO_FILE = os.environ.get("LOG_TO_FILE", "True").lower() == "true"
    LOG_DIR = os.environ.get("LOG_DIR", "logs")

    # Environment detection
    FLASK_ENV = os.environ.get("FLASK_ENV", "development")
    DEBUG = FLASK_ENV == "development"
    TESTING = False


class DevelopmentConfig(Config):
    """Development configuration with helpful defaults"""

    DEBUG = True
    SQLALCHEMY_ECHO = os.environ.get("SQLALCHEMY_ECHO", "False").lower() == "true"

    def __init__(self):
        super().__init__()
        # Fallback to SimpleCache if Redis isn't available in development
        import redis

        try:
            redis_client = redis.Redis.from_url(self.CACHE_REDIS_URL)
            redis_client.ping()
        except redis.exceptions.ConnectionError:
            self.CACHE_TYPE = "SimpleCache"
            warnings.warn(
                "🔶 Redis not available, falling back to SimpleCache for development.",
                UserWarning,
            )


class ProductionConfig(Config):
    """Production configuration with security focus"""

    DEBUG = False

    # In production, require explicit environment variables
    def __init__(self):
        super().__init__()

        if not os.environ.get("SECRET_KEY"):
            warnings.warn(
                "🚨 PRODUCTION WARNING: SECRET_KEY not explicitly set!",
                UserWarning,
            )
        if not self.ADMIN_API_TOKEN or not self.CRON_SECRET_TOKEN:
            warnings.warn(
                "🚨 PRODUCTION WARNING: ADMIN_API_TOKEN / CRON_SECRET_TOKEN not set, "
                "admin and cron endpoints will reject every request.",
                UserWarning,
            )


class TestingConfig(Config):
    """Testing configuration"""

    TESTING = True
    DEBUG = False
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    CACHE_TYPE = "NullCache"
    RATELIMIT_ENABLED = False
    SCHEDULER_ENABLED = False
    LOG_TO_FILE = False
    LOG_TO_CONSOLE = False
    SCHEDULE_PROVIDER = "mock"
    PRESEASON_START_DATE = "2025-08-07"
    NFL_SEASON_YEAR = 2025
    TIMEZONE = "UTC"
    SYNC_RETRY_BASE_DELAY = 0
    SYNC_MIN_REQUEST_INTERVAL = 0
    ADMIN_API_TOKEN = "test-admin-token"
    CRON_SECRET_TOKEN = "test-cron-token"

    def _build_database_uri(self):
        return "sqlite:///:memory:"


# Configuration mapping
config = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
    "default": DevelopmentConfig,
}
