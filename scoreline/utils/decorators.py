from functools import wraps

from flask import jsonify
from flask_login import current_user


def admin_required(f):
    """Reject non-admin users with a JSON 403; use below @login_required"""

    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not current_user.is_authenticated or not current_user.is_admin:
            return (
                jsonify({"error": "forbidden", "message": "Admin privileges required"}),
                403,
            )
        return f(*args, **kwargs)

    return decorated_function


def owner_or_admin_required(f):
    """Allow admins, or the user named by the user_id view argument"""

    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not current_user.is_authenticated or (
            not current_user.is_admin and current_user.id != kwargs.get("user_id")
        ):
            return (
                jsonify({"error": "forbidden", "message": "You can only access your own account"}),
                403,
            )
        return f(*args, **kwargs)

    return decorated_function
