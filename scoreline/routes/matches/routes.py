import logging

from flask import jsonify, request
from flask_login import current_user, login_required

from scoreline import db
from scoreline.forms.matches import FinishMatchForm, MatchCreateForm, MatchUpdateForm
from scoreline.models import AdminAction, Match, Team
from scoreline.routes.matches import bp
from scoreline.services import settlement
from scoreline.utils.decorators import admin_required
from scoreline.utils.errors import InvalidInputError, NotFoundError
from scoreline.utils.pagination import paginate

logger = logging.getLogger(__name__)


def _get_match(match_id):
    match = db.session.get(Match, match_id)
    if match is None:
        raise NotFoundError(f"Match {match_id} not found")
    return match


def _settlement_response(match, result):
    return jsonify(
        {
            "match": match.to_dict(),
            "settlement": result.to_dict() if result else None,
        }
    )


@bp.route("")
def match_list():
    """Get matches by kickoff, optionally filtered by status or team"""
    query = Match.query

    status = request.args.get("status")
    if status == "open":
        query = query.filter(Match.is_finished.is_(False))
    elif status == "finished":
        query = query.filter(Match.is_finished.is_(True))
    elif status:
        raise InvalidInputError("status must be 'open' or 'finished'")

    team_id = request.args.get("team_id", type=int)
    if team_id:
        query = query.filter(db.or_(Match.team1_id == team_id, Match.team2_id == team_id))

    query = query.order_by(Match.date, Match.time, Match.id)
    return jsonify(paginate(query, lambda match: match.to_dict()))


@bp.route("/<int:match_id>")
def match_detail(match_id):
    return jsonify(_get_match(match_id).to_dict(include_predictions_count=True))


@bp.route("", methods=["POST"])
@login_required
@admin_required
def create_match():
    form = MatchCreateForm().validate_or_raise()

    for team_id in (form.team1_id.data, form.team2_id.data):
        if db.session.get(Team, team_id) is None:
            raise NotFoundError(f"Team {team_id} not found")

    match = Match(
        team1_id=form.team1_id.data,
        team2_id=form.team2_id.data,
        date=form.date.data,
        time=form.time.data,
    )
    db.session.add(match)
    db.session.flush()

    AdminAction.log_action(
        admin_user_id=current_user.id,
        action_type="create_match",
        description=f"Created match {match.id} ({match.team1_id} vs {match.team2_id})",
        match_id=match.id,
    )
    db.session.commit()

    logger.info(f"Admin {current_user.username} created match {match.id}")
    return jsonify(match.to_dict()), 201


@bp.route("/<int:match_id>", methods=["PUT", "PATCH"])
@login_required
@admin_required
def update_match(match_id):
    _get_match(match_id)
    form = MatchUpdateForm().validate_or_raise()
    changes = form.changes()

    match, result = settlement.update_match(match_id, changes)

    if result is not None:
        AdminAction.log_settlement(current_user, result)
    else:
        AdminAction.log_action(
            admin_user_id=current_user.id,
            action_type="update_match",
            description=f"Updated match {match_id}: {', '.join(sorted(changes)) or 'no changes'}",
            match_id=match_id,
            action_metadata={"fields": sorted(changes)},
        )
    db.session.commit()

    return _settlement_response(match, result)


@bp.route("/<int:match_id>/finish", methods=["PUT"])
@login_required
@admin_required
def finish_match(match_id):
    """Finish a match with the supplied or stored score and settle it"""
    form = FinishMatchForm().validate_or_raise()

    result = settlement.finish_match(match_id, form.score1.data, form.score2.data)

    AdminAction.log_settlement(current_user, result)
    db.session.commit()

    return _settlement_response(_get_match(match_id), result)


@bp.route("/<int:match_id>", methods=["DELETE"])
@login_required
@admin_required
def delete_match(match_id):
    match = _get_match(match_id)
    predictions = match.predictions.count()

    AdminAction.log_action(
        admin_user_id=current_user.id,
        action_type="delete_match",
        description=f"Deleted match {match_id} with {predictions} predictions",
        match_id=match_id,
        action_metadata={
            "team1_id": match.team1_id,
            "team2_id": match.team2_id,
            "is_finished": match.is_finished,
            "predictions": predictions,
        },
    )
    db.session.delete(match)
    db.session.commit()

    logger.info(f"Admin {current_user.username} deleted match {match_id}")
    return jsonify({"success": True})
