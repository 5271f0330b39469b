# ================================================================================
# Auth Module
# ================================================================================
# Registration, login, session tokens, password reset and email verification,
# plus the Google-account variants under /api/v3/google.
# ================================================================================

from flask import Blueprint

auth_bp = Blueprint('auth', __name__)
google_bp = Blueprint('google', __name__)

from . import routes, google  # noqa: E402, F401
