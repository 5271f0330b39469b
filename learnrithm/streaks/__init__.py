from flask import Blueprint

streak_bp = Blueprint('streak', __name__)

from . import routes  # noqa: E402, F401
