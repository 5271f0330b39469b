# ================================================================================
# Users Module
# ================================================================================
# Profile endpoints (v2, by email), the older by-id endpoints (v1) and the
# admin user management endpoints.
# ================================================================================

from flask import Blueprint

user_bp = Blueprint('user', __name__)
user_v1_bp = Blueprint('user_v1', __name__)
admin_bp = Blueprint('admin', __name__)

from . import routes, admin  # noqa: E402, F401
