import logging

from flask import jsonify, request

from app.routes.cron import bp
from app.routes.sync_helpers import handle_sync_request, json_body
from app.services import week_service
from app.utils.security import token_required

logger = logging.getLogger(__name__)

cron_required = token_required("CRON_SECRET_TOKEN")


@bp.route("/update-matchups", methods=["POST"])
@cron_required
def update_matchups():
    """Scheduled matchup refresh; action defaults to current_next"""
    try:
        data = json_body(request)
    except ValueError as e:
        return jsonify({"success": False, "error": str(e)}), 400

    # Cron callers may also pass the action as a query parameter
    if "action" not in data and request.args.get("action"):
        data = {**data, "action": request.args["action"]}

    logger.info(f"Cron matchup update: {data.get('action', 'current_next')}")
    return handle_sync_request(data, provider_name=data.get("provider"))


@bp.route("/update-current-week", methods=["POST"])
@cron_required
def update_current_week():
    success, outcome = week_service.update_global_current_week()
    if not success:
        return jsonify({"success": False, "error": outcome}), 500

    return jsonify({"success": True, "current_week": outcome.to_dict()})
