from flask import current_app, jsonify, request
from flask_login import current_user, login_required

from scoreline.routes.leaderboard import bp
from scoreline.services import ledger


@bp.route("")
def leaderboard():
    """Top users by points"""
    default_limit = current_app.config.get("LEADERBOARD_LIMIT", 10)
    limit = request.args.get("limit", default_limit, type=int)
    limit = min(max(limit, 1), current_app.config.get("MAX_ITEMS_PER_PAGE", 100))

    return jsonify(ledger.get_leaderboard(limit=limit))


@bp.route("/my-rank")
@login_required
def my_rank():
    data = ledger.get_rank(current_user.id)
    data["prediction_stats"] = ledger.get_prediction_stats(current_user.id)
    return jsonify(data)


@bp.route("/stats")
def stats():
    return jsonify(ledger.get_leaderboard_stats())
