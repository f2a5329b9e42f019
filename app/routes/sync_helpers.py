"""
Request handling shared by the admin and cron sync endpoints
"""

from flask import jsonify

from app.exceptions import ConfigurationError, MappingError
from app.providers import get_schedule_provider
from app.services.matchup_sync import (
    ERROR_CONFIGURATION,
    MatchupSynchronizer,
    SyncBatchResult,
)
from app.utils.field_mapping import map_season_type
from app.utils.week_calculator import from_unified_week, to_unified_week

SYNC_ACTIONS = ("current", "next", "current_next", "sync-week", "full-update")

# Accepted spellings for the same actions
ACTION_ALIASES = {
    "current-next": "current_next",
    "current_and_next": "current_next",
    "sync_week": "sync-week",
    "week": "sync-week",
    "full_update": "full-update",
    "season": "full-update",
}


def json_body(request):
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError("Request body must be a JSON object")
    return data


def _int_list(value, name):
    if not isinstance(value, list) or not value:
        raise ValueError(f"'{name}' must be a non-empty list of week numbers")
    if any(isinstance(item, bool) for item in value):
        raise ValueError(f"'{name}' must contain only integers")
    try:
        return [int(item) for item in value]
    except (TypeError, ValueError):
        raise ValueError(f"'{name}' must contain only integers")


def _season_type(value):
    if value is None:
        raise ValueError("'season_type' is required")
    try:
        return map_season_type(value)
    except MappingError as e:
        raise ValueError(str(e))


def build_synchronizer(provider_name=None):
    """Raises ConfigurationError for an unknown provider name"""
    return MatchupSynchronizer(get_schedule_provider(provider_name))


def run_sync_request(synchronizer, data, default_action="current_next"):
    """
    Run the sync described by a request body.

    Accepted shapes:
        {"action": "current" | "next" | "current_next" | "full-update"}
        {"action": "sync-week", "week": 2, "season_type": "PRE"}
        {"action": "sync-week", "week": 5}              (unified week)
        {"weeks": [1, 2], "season_type": "PRE"}
        {"unified_weeks": [1, 2, 3]}

    Raises:
        ValueError: the request does not describe a valid sync
    """
    if data.get("unified_weeks") is not None:
        weeks = _int_list(data["unified_weeks"], "unified_weeks")
        for week in weeks:
            from_unified_week(week)
        return SyncBatchResult(results=[synchronizer.sync_unified_week(week) for week in weeks])

    if data.get("weeks") is not None:
        weeks = _int_list(data["weeks"], "weeks")
        season_type = _season_type(data.get("season_type"))
        for week in weeks:
            to_unified_week(season_type, week)
        return synchronizer.sync_weeks(weeks, season_type)

    action = str(data.get("action") or default_action).strip().lower()
    action = ACTION_ALIASES.get(action, action)

    if action == "current":
        return synchronizer.sync_current_week()
    if action == "next":
        return synchronizer.sync_next_week()
    if action == "current_next":
        return synchronizer.sync_current_and_next()
    if action == "full-update":
        return synchronizer.sync_season()
    if action == "sync-week":
        if data.get("week") is None:
            raise ValueError("'week' is required for sync-week")
        try:
            week = int(data["week"])
        except (TypeError, ValueError):
            raise ValueError(f"Invalid week: {data['week']!r}")
        if data.get("season_type") is None:
            return SyncBatchResult(results=[synchronizer.sync_unified_week(week)])
        return SyncBatchResult(
            results=[synchronizer.sync_week(week, _season_type(data["season_type"]))]
        )

    raise ValueError(f"Unknown action {action!r}; expected one of {', '.join(SYNC_ACTIONS)}")


def sync_response(batch):
    """200 on success, 503 for configuration failures, 502 for source failures"""
    status = 200
    if not batch.success:
        error_types = {result.error_type for result in batch.results if result.error_type}
        status = 503 if ERROR_CONFIGURATION in error_types else 502
    return jsonify(batch.to_dict()), status


def handle_sync_request(data, provider_name=None, default_action="current_next"):
    """Full request flow: build the synchronizer, run it, map the outcome"""
    try:
        synchronizer = build_synchronizer(provider_name)
    except ConfigurationError as e:
        return jsonify({"success": False, "error": str(e), "error_type": ERROR_CONFIGURATION}), 503

    try:
        batch = run_sync_request(synchronizer, data, default_action=default_action)
    except ValueError as e:
        return jsonify({"success": False, "error": str(e)}), 400

    return sync_response(batch)
