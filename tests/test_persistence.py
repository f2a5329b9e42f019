"""
Tests for the matchup and settings stores, pool lock state and the
current week service
"""

from datetime import date, datetime, timedelta, timezone
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from app import db
from app.exceptions import DuplicateMatchupError, PersistenceError
from app.models import Matchup
from app.services import week_service
from app.services.persistence import (
    CURRENT_SEASON_TYPE,
    CURRENT_WEEK,
    POOL_LOCK_DATE,
    POOL_LOCKED,
    PRESEASON_START_DATE,
    PoolState,
    parse_lock_date,
    validate_setting,
)

NOW = datetime(2025, 9, 1, 12, 0, tzinfo=timezone.utc)


def matchup_fields(**overrides):
    fields = {
        "week": 4,
        "season": "REG1",
        "away_team": "DAL",
        "home_team": "PHI",
        "game_time": datetime(2025, 9, 5, 0, 20, tzinfo=timezone.utc),
        "status": "scheduled",
    }
    fields.update(overrides)
    return fields


class TestMatchupStore:
    def test_insert_and_find(self, store):
        matchup_id = store.insert_matchup(matchup_fields())

        found = store.find_matchup("REG1", "DAL", "PHI")
        assert found.id == matchup_id
        assert len(matchup_id) == 36
        assert store.get_matchup(matchup_id) is found

    def test_duplicate_insert_reports_existing_id(self, store):
        matchup_id = store.insert_matchup(matchup_fields())

        with pytest.raises(DuplicateMatchupError) as excinfo:
            store.insert_matchup(matchup_fields(status="live"))

        assert excinfo.value.matchup_id == matchup_id
        assert Matchup.query.count() == 1

    def test_check_constraint_is_a_persistence_error(self, store):
        with pytest.raises(PersistenceError) as excinfo:
            store.insert_matchup(matchup_fields(home_team="DAL"))
        assert not isinstance(excinfo.value, DuplicateMatchupError)

    def test_update_keeps_id(self, store):
        matchup_id = store.insert_matchup(matchup_fields())

        matchup = store.update_matchup(matchup_id, {"id": "something-else", "status": "final"})

        assert matchup.id == matchup_id
        assert store.get_matchup(matchup_id).status == "final"

    def test_update_missing_matchup(self, store):
        with pytest.raises(PersistenceError):
            store.update_matchup("does-not-exist", {"status": "final"})

    def test_failed_lookup_is_a_persistence_error(self, store):
        connection_lost = OperationalError("SELECT", {}, Exception("connection lost"))

        with patch.object(Matchup, "query") as query, patch.object(db.session, "rollback") as rollback:
            query.filter_by.return_value.first.side_effect = connection_lost
            with pytest.raises(PersistenceError, match="connection lost"):
                store.find_matchup("REG1", "DAL", "PHI")

        rollback.assert_called_once()

    def test_failed_get_is_a_persistence_error(self, store):
        connection_lost = OperationalError("SELECT", {}, Exception("connection lost"))

        with patch.object(db.session, "get", side_effect=connection_lost):
            with pytest.raises(PersistenceError, match="connection lost"):
                store.get_matchup("some-id")

    def test_delete_by_season(self, store):
        store.insert_matchup(matchup_fields())
        store.insert_matchup(matchup_fields(season="REG2", week=5))

        assert store.delete_matchups(season="REG1") == 1
        assert [m.season for m in Matchup.query.all()] == ["REG2"]
        assert store.delete_matchups() == 1
        assert Matchup.query.count() == 0


class TestSettingsStore:
    def test_missing_setting(self, settings):
        assert settings.get_setting(CURRENT_WEEK) is None
        assert settings.get_setting(CURRENT_WEEK, "7") == "7"
        assert settings.get_int(CURRENT_WEEK, 1) == 1
        assert settings.get_bool(POOL_LOCKED) is False

    def test_set_settings_reports_changes(self, settings):
        assert settings.set_settings({CURRENT_WEEK: 5, CURRENT_SEASON_TYPE: "REG"}) is True
        assert settings.set_settings({CURRENT_WEEK: 5, CURRENT_SEASON_TYPE: "REG"}) is False
        assert settings.set_setting(CURRENT_WEEK, 6) is True

        assert settings.get_int(CURRENT_WEEK) == 6
        assert settings.all_settings() == {CURRENT_SEASON_TYPE: "REG", CURRENT_WEEK: "6"}

    def test_non_integer_value(self, settings):
        settings.set_setting(CURRENT_WEEK, "five")
        assert settings.get_int(CURRENT_WEEK, 1) == 1

    def test_failed_write_raises(self, settings):
        with patch.object(db.session, "commit", side_effect=SQLAlchemyError("disk full")):
            with pytest.raises(PersistenceError):
                settings.set_settings({CURRENT_WEEK: 5})

        assert settings.get_setting(CURRENT_WEEK) is None


class TestValidateSetting:
    @pytest.mark.parametrize(
        "key,value,expected",
        [
            (CURRENT_WEEK, 5, "5"),
            (CURRENT_WEEK, "25", "25"),
            (CURRENT_SEASON_TYPE, "reg", "REG"),
            (POOL_LOCKED, True, "true"),
            (POOL_LOCKED, "off", "false"),
            (POOL_LOCK_DATE, "2025-09-04T20:00:00-04:00", "2025-09-05T00:00:00+00:00"),
            (POOL_LOCK_DATE, "2025-09-05T00:00:00Z", "2025-09-05T00:00:00+00:00"),
            (POOL_LOCK_DATE, None, ""),
            (PRESEASON_START_DATE, "2026-08-06", "2026-08-06"),
        ],
    )
    def test_valid(self, key, value, expected):
        assert validate_setting(key, value) == expected

    @pytest.mark.parametrize(
        "key,value",
        [
            (CURRENT_WEEK, 0),
            (CURRENT_WEEK, 26),
            (CURRENT_WEEK, "five"),
            (CURRENT_WEEK, True),
            (CURRENT_SEASON_TYPE, "OFF"),
            (POOL_LOCKED, "maybe"),
            (POOL_LOCK_DATE, "tomorrow"),
            (PRESEASON_START_DATE, "August"),
            ("favorite_team", "DET"),
        ],
    )
    def test_invalid(self, key, value):
        with pytest.raises(ValueError):
            validate_setting(key, value)


class TestPoolState:
    def test_unlocked_without_settings(self, settings):
        state = settings.get_pool_state(now=NOW)

        assert not state.is_locked
        assert state.can_purchase
        assert state.seconds_until_lock is None
        assert state.current_week is None

    def test_manual_lock(self, settings):
        settings.set_setting(POOL_LOCKED, "true")
        state = settings.get_pool_state(now=NOW)

        assert state.is_locked
        assert state.manually_locked
        assert not state.can_purchase

    def test_future_lock_date(self, settings):
        settings.set_setting(POOL_LOCK_DATE, (NOW + timedelta(hours=2)).isoformat())
        state = settings.get_pool_state(now=NOW)

        assert not state.is_locked
        assert state.seconds_until_lock == 7200

    def test_lock_date_reached(self, settings):
        settings.set_setting(POOL_LOCK_DATE, NOW.isoformat())
        state = settings.get_pool_state(now=NOW)

        assert state.is_locked
        assert not state.manually_locked
        assert state.seconds_until_lock is None

    def test_malformed_lock_date_is_ignored(self, settings):
        settings.set_setting(POOL_LOCK_DATE, "someday")
        assert not settings.get_pool_state(now=NOW).is_locked

    def test_parse_lock_date(self):
        assert parse_lock_date("") is None
        assert parse_lock_date("2025-09-05T00:00:00") == datetime(2025, 9, 5, tzinfo=timezone.utc)

    def test_to_dict(self):
        state = PoolState(current_week=5, current_season_type="REG", checked_at=NOW)
        data = state.to_dict()

        assert data["current_week"] == 5
        assert data["is_locked"] is False
        assert data["can_register"] is True
        assert data["lock_date"] is None
        assert data["checked_at"] == NOW.isoformat()


class TestWeekService:
    def test_update_stores_week_and_phase(self, settings):
        success, week_info = week_service.update_global_current_week(now=date(2025, 9, 10))

        assert success
        assert week_info.week == 5
        assert settings.get_setting(CURRENT_WEEK) == "5"
        assert settings.get_setting(CURRENT_SEASON_TYPE) == "REG"

    def test_change_invalidates_cache(self, settings):
        with patch("app.services.week_service.invalidate_model_cache") as invalidate:
            week_service.update_global_current_week(now=date(2025, 9, 10))

        invalidate.assert_called_once_with("current_week")

    def test_update_is_a_noop_when_unchanged(self, settings):
        week_service.update_global_current_week(now=date(2025, 9, 10))

        with patch("app.services.week_service.invalidate_model_cache") as invalidate:
            with patch.object(db.session, "commit") as commit:
                success, week_info = week_service.update_global_current_week(now=date(2025, 9, 9))

        assert success
        assert week_info.week == 5
        commit.assert_not_called()
        invalidate.assert_not_called()

    def test_fallback_week_is_not_stored(self, settings):
        week_service.update_global_current_week(now=date(2025, 10, 1))
        settings.set_setting(PRESEASON_START_DATE, "not a date")

        with patch("app.services.week_service.invalidate_model_cache") as invalidate:
            success, error = week_service.update_global_current_week(now=date(2025, 10, 2))

        assert success is False
        assert "defaulting to week 1" in error
        assert settings.get_int(CURRENT_WEEK) == 8
        invalidate.assert_not_called()

    def test_update_failure(self, settings):
        with patch.object(db.session, "commit", side_effect=SQLAlchemyError("read only")):
            success, error = week_service.update_global_current_week(now=date(2025, 9, 10))

        assert success is False
        assert "read only" in error

    def test_preseason_start_setting_wins(self, settings):
        settings.set_setting(PRESEASON_START_DATE, "2025-08-14")

        assert week_service.get_preseason_start() == "2025-08-14"
        assert week_service.calculate_current_week(now=date(2025, 8, 14)).week == 1
        assert week_service.calculate_current_week(now=date(2025, 8, 21)).week == 2

    def test_preseason_start_from_config(self, app):
        assert week_service.get_preseason_start() == app.config["PRESEASON_START_DATE"]

    def test_stored_week_is_returned(self, settings):
        settings.set_setting(CURRENT_WEEK, "12")
        week_info = week_service.get_current_week()

        assert week_info.week == 12
        assert week_info.season_tag == "REG9"

    def test_out_of_range_stored_week_is_recalculated(self, settings):
        settings.set_setting(CURRENT_WEEK, "99")
        assert 1 <= week_service.get_current_week().week <= 25
