from flask import Blueprint

bp = Blueprint("matches", __name__)

from scoreline.routes.matches import routes  # noqa: E402, F401
