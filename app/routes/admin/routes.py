import logging
from datetime import datetime

from flask import jsonify, request

from app import limiter
from app.exceptions import PersistenceError
from app.routes.admin import bp
from app.routes.sync_helpers import handle_sync_request, json_body
from app.services import week_service
from app.services.persistence import (
    KNOWN_SETTINGS,
    POOL_LOCK_DATE,
    POOL_LOCKED,
    MatchupStore,
    SettingsStore,
    validate_setting,
)
from app.services.scheduler_service import scheduler_service
from app.utils.cache_utils import invalidate_model_cache
from app.utils.field_mapping import parse_number
from app.utils.security import token_required
from app.utils.week_calculator import parse_season_tag

logger = logging.getLogger(__name__)

admin_required = token_required("ADMIN_API_TOKEN")


def _bad_request(message):
    return jsonify({"success": False, "error": message}), 400


def _save_settings(values, message):
    """Validate and store settings, then answer with the resulting pool state"""
    try:
        cleaned = {key: validate_setting(key, value) for key, value in values.items()}
    except ValueError as e:
        return _bad_request(str(e))

    settings = SettingsStore()
    try:
        changed = settings.set_settings(cleaned)
    except PersistenceError as e:
        logger.error(f"Admin settings update failed: {e}")
        return jsonify({"success": False, "error": str(e)}), 500

    if changed:
        invalidate_model_cache("settings")

    logger.info(f"Admin settings update {sorted(cleaned)} (changed={changed})")
    return jsonify(
        {
            "success": True,
            "message": message,
            "changed": changed,
            "settings": settings.all_settings(),
            "pool": settings.get_pool_state().to_dict(),
        }
    )


@bp.route("/calculate-current-week")
@admin_required
def calculate_current_week():
    """Preview the week for now or ?date=YYYY-MM-DD without storing it"""
    date_value = request.args.get("date")
    if date_value:
        try:
            datetime.fromisoformat(date_value.strip().replace("Z", "+00:00"))
        except ValueError:
            return _bad_request(f"Invalid date: {date_value!r}")

    week_info = week_service.calculate_current_week(now=date_value or None)
    stored = week_service.get_current_week()
    return jsonify(
        {
            "success": True,
            "calculated": week_info.to_dict(),
            "stored_week": stored.week,
            "would_change": stored.week != week_info.week,
        }
    )


@bp.route("/update-current-week", methods=["POST"])
@admin_required
def update_current_week():
    success, outcome = week_service.update_global_current_week()
    if not success:
        return jsonify({"success": False, "error": outcome}), 500

    return jsonify(
        {
            "success": True,
            "message": f"Current week is {outcome.week} ({outcome.label})",
            "current_week": outcome.to_dict(),
        }
    )


@bp.route("/sync-matchups", methods=["POST"])
@admin_required
@limiter.limit("30 per minute")
def sync_matchups():
    try:
        data = json_body(request)
    except ValueError as e:
        return _bad_request(str(e))

    logger.info(f"Admin matchup sync requested: {data}")
    return handle_sync_request(data, provider_name=data.get("provider"))


@bp.route("/settings", methods=["GET"])
@admin_required
def get_settings():
    settings = SettingsStore()
    return jsonify(
        {
            "success": True,
            "settings": settings.all_settings(),
            "known_settings": list(KNOWN_SETTINGS),
            "pool": settings.get_pool_state().to_dict(),
        }
    )


@bp.route("/settings", methods=["POST"])
@admin_required
def update_settings():
    try:
        data = json_body(request)
    except ValueError as e:
        return _bad_request(str(e))

    values = data.get("settings", data)
    if not isinstance(values, dict) or not values:
        return _bad_request("No settings provided")

    return _save_settings(values, "Settings updated")


@bp.route("/pool-lock/lock", methods=["POST"])
@admin_required
def lock_pool():
    return _save_settings({POOL_LOCKED: True}, "Pool locked")


@bp.route("/pool-lock/unlock", methods=["POST"])
@admin_required
def unlock_pool():
    return _save_settings({POOL_LOCKED: False}, "Pool unlocked")


@bp.route("/pool-lock/update-date", methods=["POST"])
@admin_required
def update_lock_date():
    try:
        data = json_body(request)
    except ValueError as e:
        return _bad_request(str(e))

    if "lock_date" not in data:
        return _bad_request("'lock_date' is required (ISO timestamp, or null to clear)")

    message = "Lock date cleared" if not data["lock_date"] else "Lock date updated"
    return _save_settings({POOL_LOCK_DATE: data["lock_date"]}, message)


@bp.route("/matchups", methods=["DELETE"])
@admin_required
def reset_matchups():
    """Delete all matchups (or one season phase); requires {"confirm": true}"""
    try:
        data = json_body(request)
    except ValueError as e:
        return _bad_request(str(e))

    if data.get("confirm") is not True:
        return _bad_request("Matchup reset requires {\"confirm\": true}")

    season = data.get("season")
    if season:
        try:
            season_type, week_in_phase = parse_season_tag(season)
        except ValueError as e:
            return _bad_request(str(e))
        season = f"{season_type}{week_in_phase}"

    try:
        deleted = MatchupStore().delete_matchups(season=season)
    except PersistenceError as e:
        return jsonify({"success": False, "error": str(e)}), 500

    invalidate_model_cache("matchups")
    return jsonify({"success": True, "deleted": deleted, "season": season})


SPREAD_FIELDS = ("away_spread", "home_spread", "over_under")


@bp.route("/matchups/<matchup_id>/spreads", methods=["POST"])
@admin_required
def set_spreads(matchup_id):
    """
    Manually set the betting lines on one matchup.

    Body: any of away_spread, home_spread, over_under. Provider syncs that
    carry no lines leave these values in place.
    """
    try:
        data = json_body(request)
    except ValueError as e:
        return _bad_request(str(e))

    spreads = {}
    for name in SPREAD_FIELDS:
        if name not in data:
            continue
        value = parse_number(data[name])
        if value is None:
            return _bad_request(f"{name} must be a number, got {data[name]!r}")
        spreads[name] = value

    if not spreads:
        return _bad_request(f"Provide at least one of {', '.join(SPREAD_FIELDS)}")

    store = MatchupStore()
    try:
        if store.get_matchup(matchup_id) is None:
            return jsonify({"success": False, "error": f"Matchup {matchup_id} not found"}), 404
        matchup = store.update_matchup(matchup_id, spreads)
    except PersistenceError as e:
        logger.error(f"Spread update for {matchup_id} failed: {e}")
        return jsonify({"success": False, "error": str(e)}), 500

    invalidate_model_cache("matchups")
    logger.info(f"Admin set spreads on {matchup_id}: {spreads}")
    return jsonify(
        {
            "success": True,
            "message": "Spreads updated",
            "spreads": spreads,
            "matchup": matchup.to_dict(),
        }
    )


@bp.route("/scheduler", methods=["GET"])
@admin_required
def scheduler_status():
    return jsonify({"success": True, **scheduler_service.get_status()})


@bp.route("/scheduler/run", methods=["POST"])
@admin_required
def scheduler_run():
    """Run a scheduler job now: week, current_next or season"""
    try:
        data = json_body(request)
    except ValueError as e:
        return _bad_request(str(e))

    if scheduler_service.app is None:
        return jsonify({"success": False, "error": "Scheduler is not initialized"}), 503

    success, message = scheduler_service.force_sync(data.get("job", "current_next"))
    return jsonify({"success": success, "message": message}), 200 if success else 500
