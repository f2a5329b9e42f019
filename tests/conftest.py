"""
Pytest configuration and shared fixtures.

Provides:
- Flask application bound to an in-memory SQLite database
- Test client with admin/cron bearer headers
- StaticScheduleProvider, a provider double that returns canned games
"""

from datetime import datetime, timezone

import pytest

from app import create_app, db
from app.exceptions import ConfigurationError, SourceFetchError
from app.providers.base import GameRecord, ScheduleProvider
from app.services.persistence import MatchupStore, SettingsStore


class StaticScheduleProvider(ScheduleProvider):
    """Returns the same records for every week; can be told to fail"""

    name = "static"

    def __init__(self, records=None, fetch_error=None, config_error=None):
        super().__init__({"NFL_SEASON_YEAR": 2025})
        self.records = list(records or [])
        self.fetch_error = fetch_error
        self.config_error = config_error
        self.calls = []

    def check_configuration(self):
        if self.config_error:
            raise ConfigurationError(self.config_error)

    def fetch_week_schedule(self, week, season_type):
        self.calls.append((season_type, week))
        if self.fetch_error:
            raise SourceFetchError(self.fetch_error, source=self.name)
        return list(self.records)


def make_record(away, home, kickoff=None, status="scheduled", **kwargs):
    """Build a GameRecord with a sensible default kickoff"""
    if kickoff is None:
        kickoff = datetime(2025, 8, 14, 23, 0, tzinfo=timezone.utc)
    return GameRecord(away_team=away, home_team=home, kickoff=kickoff, status=status, **kwargs)


# ============================================================================
# APPLICATION FIXTURES
# ============================================================================


@pytest.fixture
def app():
    """Application with a fresh in-memory database per test"""
    app = create_app("testing")

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin_headers(app):
    return {"Authorization": f"Bearer {app.config['ADMIN_API_TOKEN']}"}


@pytest.fixture
def cron_headers(app):
    return {"Authorization": f"Bearer {app.config['CRON_SECRET_TOKEN']}"}


@pytest.fixture
def store(app):
    return MatchupStore()


@pytest.fixture
def settings(app):
    return SettingsStore()


# ============================================================================
# PROVIDER FIXTURES
# ============================================================================


@pytest.fixture
def preseason_records():
    """Three preseason games in provider spelling"""
    return [
        make_record("KC", "DET", datetime(2025, 8, 14, 23, 0, tzinfo=timezone.utc)),
        make_record("WSH", "NE", datetime(2025, 8, 15, 23, 30, tzinfo=timezone.utc)),
        make_record("Green Bay Packers", "Denver Broncos", "2025-08-16T20:00:00Z"),
    ]


@pytest.fixture
def static_provider(preseason_records):
    return StaticScheduleProvider(preseason_records)
