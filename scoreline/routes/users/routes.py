import logging

from flask import jsonify, request
from flask_login import current_user, login_required
from sqlalchemy.exc import IntegrityError

from scoreline import db
from scoreline.forms.users import UserCreateForm, UserUpdateForm
from scoreline.models import AdminAction, User
from scoreline.routes.users import bp
from scoreline.services import ledger
from scoreline.utils.cache_utils import invalidate_model_cache
from scoreline.utils.decorators import admin_required, owner_or_admin_required
from scoreline.utils.errors import (
    ConflictError,
    InvalidInputError,
    InvalidStateError,
    NotFoundError,
)
from scoreline.utils.pagination import paginate

logger = logging.getLogger(__name__)


def _get_user(user_id):
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundError(f"User {user_id} not found")
    return user


def _commit_user(username):
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError(f"Username '{username}' already exists")
    invalidate_model_cache("leaderboard")


@bp.route("")
@login_required
@admin_required
def user_list():
    """All accounts, oldest first"""
    query = User.query.order_by(User.created_at.asc(), User.id.asc())

    role = request.args.get("role")
    if role:
        query = query.filter(User.role == role)

    return jsonify(paginate(query, lambda user: user.to_dict()))


@bp.route("", methods=["POST"])
@login_required
@admin_required
def create_user():
    form = UserCreateForm().validate_or_raise()

    if User.query.filter_by(username=form.username.data).first():
        raise ConflictError(f"Username '{form.username.data}' already exists")

    user = User(username=form.username.data, role=form.role.data)
    user.set_password(form.password.data)
    db.session.add(user)
    _commit_user(form.username.data)

    logger.info(f"Admin {current_user.username} created {user.role} account {user.username}")
    return jsonify(user.to_dict()), 201


@bp.route("/<int:user_id>")
@login_required
@owner_or_admin_required
def user_detail(user_id):
    data = _get_user(user_id).to_dict()
    data["prediction_stats"] = ledger.get_prediction_stats(user_id)
    return jsonify(data)


@bp.route("/<int:user_id>", methods=["PUT", "PATCH"])
@login_required
@owner_or_admin_required
def update_user(user_id):
    user = _get_user(user_id)
    form = UserUpdateForm().validate_or_raise()

    if "points" in (request.get_json(silent=True) or {}):
        raise InvalidInputError("Points are only changed by match settlement")

    if (form.supplied("role") or form.supplied("is_active")) and not current_user.is_admin:
        return (
            jsonify({"error": "forbidden", "message": "Only admins can change role or status"}),
            403,
        )
    if user.id == current_user.id and (
        (form.supplied("role") and form.role.data != user.role)
        or (form.supplied("is_active") and not form.is_active.data)
    ):
        raise InvalidStateError("Admins cannot demote or deactivate their own account")

    if form.username.data:
        user.username = form.username.data
    if form.password.data:
        user.set_password(form.password.data)
    if form.supplied("role"):
        user.role = form.role.data
    if form.supplied("is_active"):
        user.is_active = form.is_active.data

    _commit_user(user.username)
    return jsonify(user.to_dict())


@bp.route("/<int:user_id>", methods=["DELETE"])
@login_required
@admin_required
def delete_user(user_id):
    """Delete an account together with its predictions"""
    user = _get_user(user_id)

    if user.id == current_user.id:
        raise InvalidStateError("Admins cannot delete their own account")

    predictions_deleted = user.predictions.count()
    AdminAction.log_action(
        admin_user_id=current_user.id,
        action_type="delete_user",
        description=f"Deleted user {user.username} and {predictions_deleted} predictions",
        action_metadata={
            "user_id": user.id,
            "username": user.username,
            "points": user.points,
            "predictions_deleted": predictions_deleted,
        },
    )
    db.session.delete(user)
    db.session.commit()
    invalidate_model_cache("leaderboard")

    logger.info(f"Admin {current_user.username} deleted user {user_id}")
    return jsonify({"success": True, "predictions_deleted": predictions_deleted})
