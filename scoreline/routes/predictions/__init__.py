from flask import Blueprint

bp = Blueprint("predictions", __name__)

from scoreline.routes.predictions import routes  # noqa: E402, F401
