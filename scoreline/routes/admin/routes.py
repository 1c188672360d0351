import logging

from flask import jsonify, request
from flask_login import current_user, login_required

from scoreline import db
from scoreline.models import AdminAction
from scoreline.routes.admin import bp
from scoreline.services import settlement
from scoreline.utils.decorators import admin_required

logger = logging.getLogger(__name__)


@bp.route("/settle-finished", methods=["POST"])
@login_required
@admin_required
def settle_finished():
    """Settle predictions still pending on finished matches"""
    results = settlement.settle_finished_matches()

    for result in results:
        AdminAction.log_settlement(current_user, result, action_type="settle_pending")
    db.session.commit()

    logger.info(
        f"Admin {current_user.username} re-scanned finished matches: "
        f"{len(results)} matches settled"
    )
    return jsonify(
        {
            "matches_settled": len(results),
            "predictions_settled": sum(r.settled_count for r in results),
            "points_awarded": sum(r.total_awarded for r in results),
            "results": [r.to_dict() for r in results],
        }
    )


@bp.route("/actions")
@login_required
@admin_required
def actions():
    """Recent admin actions, newest first"""
    limit = min(max(request.args.get("limit", 50, type=int), 1), 500)
    actions = AdminAction.get_recent_actions(
        limit=limit,
        action_type=request.args.get("action_type"),
        match_id=request.args.get("match_id", type=int),
    )
    return jsonify([action.to_dict() for action in actions])
