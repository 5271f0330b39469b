# ================================================================================
# API Versions
# ================================================================================
# Each version is a parent blueprint that nests the endpoint groups it serves.
#
#   /api/v1  auth, user (by id), admin, upload, chat, chatbot
#   /api/v2  auth, user (by email), upload, payment, streak, notification
#   /api/v3  google, upload
# ================================================================================

from flask import Blueprint

from .auth import auth_bp, google_bp
from .chat import chat_bp
from .notifications import notification_bp
from .payments import payment_bp
from .streaks import streak_bp
from .uploads import upload_bp
from .users import user_bp, user_v1_bp, admin_bp

api_v1 = Blueprint('api_v1', __name__)
api_v1.register_blueprint(auth_bp, url_prefix='/auth')
api_v1.register_blueprint(user_v1_bp, url_prefix='/user')
api_v1.register_blueprint(admin_bp, url_prefix='/admin')
api_v1.register_blueprint(upload_bp)
api_v1.register_blueprint(chat_bp)

api_v2 = Blueprint('api_v2', __name__)
api_v2.register_blueprint(auth_bp, url_prefix='/auth')
api_v2.register_blueprint(user_bp, url_prefix='/user')
api_v2.register_blueprint(upload_bp)
api_v2.register_blueprint(payment_bp, url_prefix='/payment')
api_v2.register_blueprint(streak_bp, url_prefix='/streak')
api_v2.register_blueprint(notification_bp, url_prefix='/notification')

api_v3 = Blueprint('api_v3', __name__)
api_v3.register_blueprint(google_bp, url_prefix='/google')
api_v3.register_blueprint(upload_bp)


def register_api(app):
    app.register_blueprint(api_v1, url_prefix='/api/v1')
    app.register_blueprint(api_v2, url_prefix='/api/v2')
    app.register_blueprint(api_v3, url_prefix='/api/v3')
