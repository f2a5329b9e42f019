"""
HTTP tests for the public API, admin and cron blueprints
"""

from datetime import datetime, timedelta, timezone

import pytest

from app.models import Matchup
from app.services.persistence import CURRENT_WEEK, SettingsStore
from tests.conftest import StaticScheduleProvider, make_record


@pytest.fixture
def use_provider(monkeypatch):
    """Route every sync request to the given provider"""

    def install(provider):
        monkeypatch.setattr(
            "app.routes.sync_helpers.get_schedule_provider", lambda name=None: provider
        )
        return provider

    return install


class TestAuthentication:
    @pytest.mark.parametrize(
        "method,path",
        [
            ("get", "/api/admin/settings"),
            ("post", "/api/admin/sync-matchups"),
            ("post", "/api/admin/pool-lock/lock"),
            ("delete", "/api/admin/matchups"),
            ("post", "/api/cron/update-matchups"),
            ("post", "/api/cron/update-current-week"),
        ],
    )
    def test_missing_token(self, client, method, path):
        response = getattr(client, method)(path)
        assert response.status_code == 401
        assert response.get_json() == {"success": False, "error": "Unauthorized"}

    def test_wrong_token(self, client):
        response = client.get("/api/admin/settings", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401

    def test_tokens_are_not_interchangeable(self, client, admin_headers, cron_headers):
        assert client.post("/api/cron/update-current-week", headers=admin_headers).status_code == 401
        assert client.get("/api/admin/settings", headers=cron_headers).status_code == 401

    def test_unconfigured_token_rejects_everything(self, app, client):
        app.config["ADMIN_API_TOKEN"] = None
        response = client.get("/api/admin/settings", headers={"Authorization": "Bearer "})
        assert response.status_code == 401

    def test_public_endpoints_need_no_token(self, client):
        assert client.get("/api/current-week").status_code == 200
        assert client.get("/api/health").status_code == 200


class TestPublicApi:
    def test_current_week_from_settings(self, client, settings):
        settings.set_setting(CURRENT_WEEK, "13")
        data = client.get("/api/current-week").get_json()

        assert data["success"] is True
        assert data["current_week"]["week"] == 13
        assert data["current_week"]["season_tag"] == "REG10"

    def test_weeks(self, client, settings):
        settings.set_setting(CURRENT_WEEK, "2")
        data = client.get("/api/weeks").get_json()

        assert len(data["weeks"]) == 25
        assert [w["week"] for w in data["weeks"] if w["is_current"]] == [2]
        assert data["weeks"][24]["round_name"] == "Super Bowl"

    def test_matchups_for_season_and_week(self, client, store, static_provider):
        from app.services.matchup_sync import MatchupSynchronizer

        MatchupSynchronizer(static_provider, store=store).sync_week(2, "PRE")

        by_season = client.get("/api/matchups?season=pre2").get_json()
        assert by_season["season"] == "PRE2"
        assert by_season["count"] == 3
        times = [m["game_time"] for m in by_season["matchups"]]
        assert times == sorted(times)

        by_week = client.get("/api/matchups?week=2").get_json()
        assert by_week["count"] == 3
        assert client.get("/api/matchups?week=3").get_json()["count"] == 0

    def test_matchups_default_to_current_week(self, client, settings):
        settings.set_setting(CURRENT_WEEK, "7")
        data = client.get("/api/matchups").get_json()
        assert data["week"] == 7

    @pytest.mark.parametrize("query", ["week=abc", "week=0", "week=26", "season=REG19", "season=WEEK1"])
    def test_invalid_matchup_filters(self, client, query):
        response = client.get(f"/api/matchups?{query}")
        assert response.status_code == 400
        assert response.get_json()["success"] is False

    def test_matchup_detail(self, client, store, static_provider):
        from app.services.matchup_sync import MatchupSynchronizer

        MatchupSynchronizer(static_provider, store=store).sync_week(2, "PRE")
        matchup = Matchup.query.first()

        data = client.get(f"/api/matchups/{matchup.id}").get_json()
        assert data["matchup"]["id"] == matchup.id
        assert data["matchup"]["winner"] is None

        assert client.get("/api/matchups/missing").status_code == 404

    def test_pool_status(self, client):
        data = client.get("/api/pool-status").get_json()
        assert data["pool"]["is_locked"] is False
        assert data["pool"]["can_register"] is True
        assert "current_week" in data


class TestSyncEndpoints:
    def test_sync_week_with_generated_schedule(self, client, admin_headers):
        response = client.post(
            "/api/admin/sync-matchups",
            json={"action": "sync-week", "week": 2, "season_type": "PRE"},
            headers=admin_headers,
        )

        assert response.status_code == 200
        data = response.get_json()
        assert data["success"] is True
        assert data["created"] == 16
        assert data["results"][0]["season"] == "PRE2"
        assert Matchup.query.filter_by(season="PRE2").count() == 16

    def test_weeks_list(self, client, admin_headers, use_provider):
        provider = use_provider(StaticScheduleProvider([make_record("BUF", "MIA")]))

        response = client.post(
            "/api/admin/sync-matchups",
            json={"weeks": [1, 2], "season_type": "REG"},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert provider.calls == [("REG", 1), ("REG", 2)]

    def test_unified_weeks(self, client, admin_headers, use_provider):
        provider = use_provider(StaticScheduleProvider([]))

        response = client.post(
            "/api/admin/sync-matchups", json={"unified_weeks": [3, 4]}, headers=admin_headers
        )

        assert response.status_code == 200
        assert provider.calls == [("PRE", 3), ("REG", 1)]

    def test_source_failure_is_502(self, client, admin_headers, use_provider):
        use_provider(StaticScheduleProvider(fetch_error="ESPN timed out"))

        response = client.post(
            "/api/admin/sync-matchups", json={"action": "current"}, headers=admin_headers
        )

        assert response.status_code == 502
        data = response.get_json()
        assert data["success"] is False
        assert data["results"][0]["error_type"] == "source"
        assert data["created"] == 0

    def test_configuration_failure_is_503(self, client, admin_headers, use_provider):
        use_provider(StaticScheduleProvider(config_error="SPORTSDATA_API_KEY is not set"))

        response = client.post(
            "/api/admin/sync-matchups", json={"action": "current"}, headers=admin_headers
        )

        assert response.status_code == 503
        assert response.get_json()["results"][0]["error_type"] == "configuration"

    def test_unknown_provider_is_503(self, client, admin_headers):
        response = client.post(
            "/api/admin/sync-matchups", json={"provider": "fantasy-feed"}, headers=admin_headers
        )
        assert response.status_code == 503

    @pytest.mark.parametrize(
        "body",
        [
            {"action": "sync-week", "week": 9, "season_type": "PRE"},
            {"action": "sync-week"},
            {"action": "sync-week", "week": "two"},
            {"unified_weeks": [1, 30]},
            {"unified_weeks": []},
            {"weeks": [1]},
            {"weeks": [1, 2], "season_type": "offseason"},
            {"action": "rewind"},
        ],
    )
    def test_invalid_requests_are_400(self, client, admin_headers, use_provider, body):
        provider = use_provider(StaticScheduleProvider([]))

        response = client.post("/api/admin/sync-matchups", json=body, headers=admin_headers)

        assert response.status_code == 400
        assert provider.calls == []

    def test_non_object_body(self, client, admin_headers):
        response = client.post("/api/admin/sync-matchups", json=[1, 2], headers=admin_headers)
        assert response.status_code == 400

    def test_cron_update_matchups(self, client, cron_headers, use_provider):
        provider = use_provider(StaticScheduleProvider([]))

        response = client.post("/api/cron/update-matchups?action=current", headers=cron_headers)

        assert response.status_code == 200
        assert len(provider.calls) == 1
        assert "current_week" in response.get_json()

    def test_cron_default_is_current_and_next(self, client, cron_headers, use_provider):
        provider = use_provider(StaticScheduleProvider([]))

        client.post("/api/cron/update-matchups", json={}, headers=cron_headers)

        assert len(provider.calls) in (1, 2)

    def test_cron_update_current_week(self, client, cron_headers):
        response = client.post("/api/cron/update-current-week", headers=cron_headers)

        assert response.status_code == 200
        week = response.get_json()["current_week"]["week"]
        assert SettingsStore().get_int(CURRENT_WEEK) == week


class TestAdminWeek:
    def test_calculate_for_date(self, client, admin_headers, settings):
        settings.set_setting(CURRENT_WEEK, "3")

        data = client.get(
            "/api/admin/calculate-current-week?date=2025-09-10", headers=admin_headers
        ).get_json()

        assert data["calculated"]["week"] == 5
        assert data["stored_week"] == 3
        assert data["would_change"] is True
        assert settings.get_int(CURRENT_WEEK) == 3

    def test_calculate_rejects_bad_date(self, client, admin_headers):
        response = client.get(
            "/api/admin/calculate-current-week?date=last-tuesday", headers=admin_headers
        )
        assert response.status_code == 400

    def test_update_current_week(self, client, admin_headers, settings):
        response = client.post("/api/admin/update-current-week", headers=admin_headers)

        assert response.status_code == 200
        assert settings.get_int(CURRENT_WEEK) == response.get_json()["current_week"]["week"]


class TestAdminSettings:
    def test_list_settings(self, client, admin_headers, settings):
        settings.set_setting(CURRENT_WEEK, "4")
        data = client.get("/api/admin/settings", headers=admin_headers).get_json()

        assert data["settings"] == {"current_week": "4"}
        assert "pool_lock_date" in data["known_settings"]

    def test_update_settings(self, client, admin_headers, settings):
        response = client.post(
            "/api/admin/settings",
            json={"settings": {"current_week": 6, "current_season_type": "reg"}},
            headers=admin_headers,
        )

        assert response.status_code == 200
        data = response.get_json()
        assert data["changed"] is True
        assert data["settings"] == {"current_season_type": "REG", "current_week": "6"}

    def test_flat_body(self, client, admin_headers, settings):
        client.post("/api/admin/settings", json={"current_week": 8}, headers=admin_headers)
        assert settings.get_int(CURRENT_WEEK) == 8

    @pytest.mark.parametrize(
        "body",
        [{"settings": {"current_week": 30}}, {"favorite_team": "DET"}, {}, {"settings": {}}],
    )
    def test_invalid_settings(self, client, admin_headers, settings, body):
        response = client.post("/api/admin/settings", json=body, headers=admin_headers)

        assert response.status_code == 400
        assert settings.all_settings() == {}


class TestPoolLock:
    def test_lock_and_unlock(self, client, admin_headers):
        locked = client.post("/api/admin/pool-lock/lock", headers=admin_headers).get_json()
        assert locked["pool"]["is_locked"] is True
        assert locked["pool"]["manually_locked"] is True
        assert locked["pool"]["can_purchase"] is False

        assert client.get("/api/pool-status").get_json()["pool"]["is_locked"] is True

        unlocked = client.post("/api/admin/pool-lock/unlock", headers=admin_headers).get_json()
        assert unlocked["pool"]["is_locked"] is False

    def test_future_lock_date(self, client, admin_headers):
        lock_date = (datetime.now(timezone.utc) + timedelta(days=2)).isoformat()

        data = client.post(
            "/api/admin/pool-lock/update-date", json={"lock_date": lock_date}, headers=admin_headers
        ).get_json()

        assert data["pool"]["is_locked"] is False
        assert data["pool"]["seconds_until_lock"] > 0

    def test_past_lock_date_locks(self, client, admin_headers):
        data = client.post(
            "/api/admin/pool-lock/update-date",
            json={"lock_date": "2025-09-04T20:00:00-04:00"},
            headers=admin_headers,
        ).get_json()

        assert data["pool"]["is_locked"] is True
        assert data["pool"]["lock_date"] == "2025-09-05T00:00:00+00:00"

    def test_clear_lock_date(self, client, admin_headers):
        client.post(
            "/api/admin/pool-lock/update-date",
            json={"lock_date": "2025-09-05T00:00:00Z"},
            headers=admin_headers,
        )
        data = client.post(
            "/api/admin/pool-lock/update-date", json={"lock_date": None}, headers=admin_headers
        ).get_json()

        assert data["message"] == "Lock date cleared"
        assert data["pool"]["lock_date"] is None
        assert data["pool"]["is_locked"] is False

    @pytest.mark.parametrize("body", [{}, {"lock_date": "next week"}])
    def test_invalid_lock_date(self, client, admin_headers, body):
        response = client.post("/api/admin/pool-lock/update-date", json=body, headers=admin_headers)
        assert response.status_code == 400


class TestMatchupReset:
    @pytest.fixture
    def seeded(self, store, static_provider):
        from app.services.matchup_sync import MatchupSynchronizer

        synchronizer = MatchupSynchronizer(static_provider, store=store)
        synchronizer.sync_week(1, "PRE")
        synchronizer.sync_week(2, "PRE")

    @pytest.mark.parametrize("body", [{}, {"confirm": "yes"}, {"confirm": 1}])
    def test_requires_confirmation(self, client, admin_headers, seeded, body):
        response = client.delete("/api/admin/matchups", json=body, headers=admin_headers)

        assert response.status_code == 400
        assert Matchup.query.count() == 6

    def test_reset_one_season(self, client, admin_headers, seeded):
        data = client.delete(
            "/api/admin/matchups", json={"confirm": True, "season": "pre1"}, headers=admin_headers
        ).get_json()

        assert data["deleted"] == 3
        assert data["season"] == "PRE1"
        assert Matchup.query.count() == 3

    def test_reset_everything(self, client, admin_headers, seeded):
        data = client.delete(
            "/api/admin/matchups", json={"confirm": True}, headers=admin_headers
        ).get_json()

        assert data["deleted"] == 6
        assert Matchup.query.count() == 0


class TestSpreadOverride:
    @pytest.fixture
    def synced(self, store):
        from app.services.matchup_sync import MatchupSynchronizer

        synchronizer = MatchupSynchronizer(StaticScheduleProvider([make_record("BUF", "MIA")]), store=store)
        synchronizer.sync_week(1, "REG")
        return synchronizer

    def test_set_spreads(self, client, admin_headers, synced):
        matchup_id = Matchup.query.one().id

        response = client.post(
            f"/api/admin/matchups/{matchup_id}/spreads",
            json={"away_spread": "+3.5", "home_spread": -3.5, "over_under": 44},
            headers=admin_headers,
        )

        assert response.status_code == 200
        data = response.get_json()
        assert data["spreads"] == {"away_spread": 3.5, "home_spread": -3.5, "over_under": 44.0}
        assert data["matchup"]["id"] == matchup_id

        matchup = Matchup.query.one()
        assert (matchup.away_spread, matchup.home_spread, matchup.over_under) == (3.5, -3.5, 44.0)

    def test_sync_without_lines_keeps_manual_spreads(self, client, admin_headers, synced):
        matchup_id = Matchup.query.one().id
        client.post(
            f"/api/admin/matchups/{matchup_id}/spreads",
            json={"home_spread": "PK", "over_under": 41.5},
            headers=admin_headers,
        )

        result = synced.sync_week(1, "REG")

        assert result.unchanged == 1
        matchup = Matchup.query.one()
        assert matchup.id == matchup_id
        assert (matchup.away_spread, matchup.home_spread, matchup.over_under) == (None, 0.0, 41.5)

    @pytest.mark.parametrize(
        "body", [{}, {"away_spread": "lots"}, {"over_under": None}, {"home_spread": True}]
    )
    def test_invalid_spreads(self, client, admin_headers, synced, body):
        matchup_id = Matchup.query.one().id
        response = client.post(
            f"/api/admin/matchups/{matchup_id}/spreads", json=body, headers=admin_headers
        )

        assert response.status_code == 400
        assert Matchup.query.one().over_under is None

    def test_unknown_matchup(self, client, admin_headers):
        response = client.post(
            "/api/admin/matchups/no-such-id/spreads", json={"over_under": 40}, headers=admin_headers
        )
        assert response.status_code == 404

    def test_requires_admin_token(self, client, cron_headers):
        response = client.post(
            "/api/admin/matchups/any/spreads", json={"over_under": 40}, headers=cron_headers
        )
        assert response.status_code == 401


class TestAdminScheduler:
    def test_status(self, client, admin_headers):
        data = client.get("/api/admin/scheduler", headers=admin_headers).get_json()
        assert data["is_running"] is False
        assert data["jobs"] == []

    def test_run_without_scheduler(self, client, admin_headers):
        response = client.post(
            "/api/admin/scheduler/run", json={"job": "week"}, headers=admin_headers
        )
        assert response.status_code == 503
