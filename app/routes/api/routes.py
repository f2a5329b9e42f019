from flask import abort, jsonify, request
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from app import db
from app.models import Matchup
from app.routes.api import bp
from app.services import week_service
from app.services.persistence import SettingsStore
from app.utils.cache_utils import cached_route
from app.utils.week_calculator import MAX_WEEK, get_all_weeks, parse_season_tag


@bp.route("/current-week")
@cached_route(timeout=300, key_prefix="current_week")
def current_week():
    """Stored current week (calculated when nothing is stored yet)"""
    week_info = week_service.get_current_week()
    return {"success": True, "current_week": week_info.to_dict()}


@bp.route("/weeks")
@cached_route(timeout=3600, key_prefix="weeks")
def weeks():
    """All 25 weeks of the season"""
    current = week_service.get_current_week().week
    return {
        "success": True,
        "current_week": current,
        "weeks": [
            {**week.to_dict(), "is_current": week.week == current} for week in get_all_weeks()
        ],
    }


def _matchup_filter():
    """Resolve ?season=REG2 or ?week=5 (default: current week) into a filter"""
    season = request.args.get("season")
    week = request.args.get("week")

    if season:
        try:
            season_type, week_in_phase = parse_season_tag(season)
        except ValueError as e:
            abort(400, description=str(e))
        return {"season": f"{season_type}{week_in_phase}"}

    if week:
        try:
            week = int(week)
        except ValueError:
            abort(400, description=f"Invalid week: {week!r}")
        if week < 1 or week > MAX_WEEK:
            abort(400, description=f"Week must be between 1 and {MAX_WEEK}")
        return {"week": week}

    return {"week": week_service.get_current_week().week}


@bp.route("/matchups")
@cached_route(timeout=60, key_prefix="matchups")
def matchups():
    """Matchups for a season phase tag or unified week, in kickoff order"""
    criteria = _matchup_filter()
    rows = (
        Matchup.query.filter_by(**criteria)
        .order_by(Matchup.game_time, Matchup.away_team)
        .all()
    )
    return {
        "success": True,
        **criteria,
        "count": len(rows),
        "matchups": [matchup.to_dict() for matchup in rows],
    }


@bp.route("/matchups/<matchup_id>")
def matchup_detail(matchup_id):
    matchup = db.session.get(Matchup, matchup_id)
    if matchup is None:
        abort(404)
    return jsonify({"success": True, "matchup": matchup.to_dict()})


@bp.route("/pool-status")
def pool_status():
    """Pool lock state and current week"""
    state = SettingsStore().get_pool_state()
    week_info = week_service.get_current_week()
    return jsonify(
        {
            "success": True,
            "pool": state.to_dict(),
            "current_week": week_info.to_dict(),
        }
    )


@bp.route("/health")
def health():
    """Liveness check including the database connection"""
    try:
        db.session.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        db.session.rollback()
        return jsonify({"success": False, "status": "unhealthy", "error": str(e)}), 503

    return jsonify({"success": True, "status": "healthy"})
