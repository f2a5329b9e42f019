#!/usr/bin/env python3
"""
Loser Pool Startup Script

Initializes the service on container startup:
- Waits for the database
- Creates tables
- Stores the current week
- Loads the current and next week's matchups when none are stored yet
"""

import os
import sys
import time

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

os.environ.setdefault("FLASK_ENV", "production")
os.environ.setdefault("FLASK_CONFIG", "production")
os.environ.setdefault("SCHEDULER_ENABLED", "False")

from sqlalchemy.exc import OperationalError  # noqa: E402

from app import create_app, db  # noqa: E402
from app.exceptions import ConfigurationError  # noqa: E402
from app.models import Matchup  # noqa: E402
from app.providers import get_schedule_provider  # noqa: E402
from app.services import week_service  # noqa: E402
from app.services.matchup_sync import MatchupSynchronizer  # noqa: E402


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


def initialize(app):
    with app.app_context():
        db.create_all()

        success, outcome = week_service.update_global_current_week()
        if not success:
            print(f"ERROR: Could not store current week: {outcome}")
            return False
        print(f"✅ Current week: {outcome.week} ({outcome.label})")

        if Matchup.query.count():
            print("✅ Matchups already loaded")
            return True

        try:
            synchronizer = MatchupSynchronizer(get_schedule_provider())
        except ConfigurationError as e:
            print(f"ERROR: {e}")
            return False

        batch = synchronizer.sync_current_and_next()
        print(("✅ " if batch.success else "⚠️  ") + batch.message)
        return batch.success


def main():
    app = create_app(os.environ.get("FLASK_CONFIG"))

    if not wait_for_db(app):
        sys.exit(1)

    # A failed first sync is retried by the scheduler; keep starting up
    if not initialize(app):
        print("⚠️  Startup initialization incomplete")


if __name__ == "__main__":
    main()
