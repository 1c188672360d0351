import logging

from flask import jsonify
from flask_login import current_user, login_required, login_user, logout_user
from sqlalchemy.exc import IntegrityError

from scoreline import db, limiter, login_manager
from scoreline.forms.auth import LoginForm, RegistrationForm
from scoreline.models import User
from scoreline.routes.auth import bp
from scoreline.services import ledger
from scoreline.utils.cache_utils import invalidate_model_cache
from scoreline.utils.errors import ConflictError

logger = logging.getLogger(__name__)


@login_manager.user_loader
def load_user(user_id):
    return db.session.get(User, int(user_id))


@login_manager.unauthorized_handler
def unauthorized():
    return jsonify({"error": "unauthorized", "message": "Login required"}), 401


@bp.route("/register", methods=["POST"])
@limiter.limit("5 per hour")
def register():
    form = RegistrationForm().validate_or_raise()

    if User.query.filter_by(username=form.username.data).first():
        raise ConflictError("Username already exists")

    user = User(username=form.username.data)
    user.set_password(form.password.data)

    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Username already exists")
    invalidate_model_cache("leaderboard")

    logger.info(f"New user registered: {user.username}")
    login_user(user)

    return jsonify(user.to_dict()), 201


@bp.route("/login", methods=["POST"])
@limiter.limit("10 per minute")
def login():
    form = LoginForm().validate_or_raise()

    user = User.query.filter_by(username=form.username.data).first()

    if not user or not user.check_password(form.password.data):
        logger.info(f"Failed login for username: {form.username.data}")
        return (
            jsonify({"error": "unauthorized", "message": "Invalid username or password"}),
            401,
        )

    if not user.is_active:
        return (
            jsonify({"error": "forbidden", "message": "Your account has been deactivated"}),
            403,
        )

    login_user(user, remember=form.remember_me.data)
    user.update_last_login()

    return jsonify(user.to_dict())


@bp.route("/logout", methods=["POST"])
@login_required
def logout():
    logout_user()
    return jsonify({"success": True})


@bp.route("/me")
@login_required
def me():
    data = current_user.to_dict()
    data["prediction_stats"] = ledger.get_prediction_stats(current_user.id)
    return jsonify(data)
