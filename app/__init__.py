import logging
import os

from flask import Flask, jsonify, request
from flask_caching import Cache
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy

from config import config

logger = logging.getLogger(__name__)

db = SQLAlchemy()
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


def _limiter_storage_uri():
    """Use Redis for shared rate limiting across workers when it is reachable"""
    redis_url = os.environ.get("REDIS_URL") or os.environ.get("CACHE_REDIS_URL")
    if not redis_url:
        return "memory://"

    import redis

    try:
        redis_client = redis.Redis.from_url(redis_url)
        redis_client.ping()
        print(f"✓ Rate limiter using Redis storage at {redis_url}")
        return redis_url
    except redis.exceptions.ConnectionError as e:
        print(f"⚠ Redis not available for rate limiter, using memory storage: {e}")
        return "memory://"


limiter = Limiter(
    key_func=get_real_ip,
    default_limits=["5000 per day", "500 per hour"],
    storage_uri=_limiter_storage_uri(),
)


def create_app(config_name=None):
    app = Flask(__name__)

    # Determine configuration
    if config_name is None:
        config_name = os.environ.get("FLASK_CONFIG", "default")

    app.config.from_object(config[config_name]())

    # Initialize extensions
    db.init_app(app)
    cache.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)

    # Import and register blueprints
    from app.routes.api import bp as api_bp

    app.register_blueprint(api_bp, url_prefix="/api")

    from app.routes.admin import bp as admin_bp

    app.register_blueprint(admin_bp, url_prefix="/api/admin")

    from app.routes.cron import bp as cron_bp

    app.register_blueprint(cron_bp, url_prefix="/api/cron")

    # Register error handlers
    register_error_handlers(app)

    # Setup logging
    from app.utils.logging_config import setup_logging

    setup_logging(app)

    # Show configuration warnings
    show_config_warnings(app, config_name)

    # Create database tables
    with app.app_context():
        db.create_all()

    # Initialize and start background scheduler
    if not app.config.get("TESTING", False):
        from app.services.scheduler_service import scheduler_service

        scheduler_service.init_app(app)

    return app


def show_config_warnings(app, config_name):
    """Log configuration warnings and status"""
    if app.config.get("TESTING"):
        return

    logger.info(f"Loser pool starting with '{config_name}' configuration")

    if config_name == "production" and app.config.get("DEBUG"):
        logger.warning("DEBUG mode is enabled in production!")

    if not app.config.get("ADMIN_API_TOKEN"):
        logger.warning("ADMIN_API_TOKEN not set - admin endpoints are disabled")

    if not app.config.get("CRON_SECRET_TOKEN"):
        logger.warning("CRON_SECRET_TOKEN not set - cron endpoints are disabled")

    provider = app.config.get("SCHEDULE_PROVIDER")
    if provider == "sportsdata" and not app.config.get("SPORTSDATA_API_KEY"):
        logger.warning(
            "SCHEDULE_PROVIDER is 'sportsdata' but SPORTSDATA_API_KEY is missing; "
            "matchup syncs will fail until it is configured"
        )

    db_url = app.config.get("SQLALCHEMY_DATABASE_URI", "")
    db_kind = db_url.split("://")[0] if "://" in db_url else "Unknown"
    logger.info(f"Using database: {db_kind}, schedule provider: {provider}")


def register_error_handlers(app):
    """Register global error handlers"""

    @app.after_request
    def after_request(response):
        # Add security headers to all responses
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"

        # Add Strict-Transport-Security in production
        if not app.config.get("DEBUG") and not app.config.get("TESTING"):
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains"
            )

        return response

    @app.errorhandler(400)
    def bad_request_error(error):
        app.logger.warning(
            f"400 Bad Request: {str(error)} - Path: {request.path} - Method: {request.method}"
        )
        message = getattr(error, "description", None) or "Bad request"
        return jsonify({"success": False, "error": message}), 400

    @app.errorhandler(401)
    def unauthorized_error(error):
        return jsonify({"success": False, "error": "Unauthorized"}), 401

    @app.errorhandler(404)
    def not_found_error(error):
        return jsonify({"success": False, "error": "Resource not found"}), 404

    @app.errorhandler(405)
    def method_not_allowed_error(error):
        return jsonify({"success": False, "error": "Method not allowed"}), 405

    @app.errorhandler(429)
    def too_many_requests_error(error):
        return jsonify({"success": False, "error": "Too many requests"}), 429

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        return jsonify({"success": False, "error": "Internal server error"}), 500


from app import models  # noqa: F401, E402 - imported for model registration
