from flask import jsonify, request
from flask_login import current_user, login_required

from scoreline.forms.predictions import PredictionForm
from scoreline.models import Prediction
from scoreline.routes.predictions import bp
from scoreline.services.admission import submit_prediction
from scoreline.utils.decorators import admin_required
from scoreline.utils.errors import InvalidInputError
from scoreline.utils.pagination import paginate

STATUS_FILTERS = {
    "pending": Prediction.status.is_(None),
    "correct": Prediction.status.is_(True),
    "incorrect": Prediction.status.is_(False),
}


def _filter_by_status(query):
    status = request.args.get("status")
    if not status:
        return query
    if status not in STATUS_FILTERS:
        raise InvalidInputError("status must be one of: pending, correct, incorrect")
    return query.filter(STATUS_FILTERS[status])


@bp.route("", methods=["POST"])
@login_required
def create_prediction():
    """Create or replace the current user's prediction for a match"""
    form = PredictionForm().validate_or_raise()

    prediction, created = submit_prediction(
        current_user.id, form.match_id.data, form.predicted_team_id.data
    )

    data = prediction.to_dict()
    data["created"] = created
    return jsonify(data), 201 if created else 200


@bp.route("")
@login_required
def user_predictions():
    """Get the current user's predictions, newest first"""
    query = _filter_by_status(Prediction.query.filter_by(user_id=current_user.id))
    query = query.order_by(Prediction.created_at.desc(), Prediction.id.desc())
    return jsonify(paginate(query, lambda prediction: prediction.to_dict()))


@bp.route("/all")
@login_required
@admin_required
def all_predictions():
    """Get every prediction, optionally for one match"""
    query = _filter_by_status(Prediction.query)

    match_id = request.args.get("match_id", type=int)
    if match_id is not None:
        query = query.filter_by(match_id=match_id)

    query = query.order_by(Prediction.match_id, Prediction.id)
    return jsonify(
        paginate(
            query,
            lambda prediction: prediction.to_dict(include_match=False, include_user=True),
        )
    )
