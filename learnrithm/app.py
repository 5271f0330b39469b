# ================================================================================
# Learnrithm Backend
# ================================================================================
#
# REST API for the Learnrithm e-learning platform.
#
# FEATURES INCLUDED:
#   - Email/Password and Google account registration & login
#   - JWT Access & Refresh Tokens (refresh token in an httpOnly cookie)
#   - Email Verification and Password Reset (Mailgun)
#   - Lemon Squeezy checkout and subscription webhooks
#   - Learning streaks and scores
#   - OpenAI chat proxy
#   - Rate Limiting (flask-limiter)
#
# PROJECT STRUCTURE:
#   learnrithm/
#   ├── app.py              # This file - Flask app setup
#   ├── api.py              # /api/v1, /api/v2, /api/v3 blueprints
#   ├── config.py           # Configuration management
#   ├── models.py           # Database models
#   ├── errors.py           # API errors and JSON error handlers
#   ├── logging_config.py   # Logging setup and request log
#   ├── security.py         # Rate limiter and security headers
#   ├── validation.py       # Request schemas (pydantic)
#   ├── email_service.py    # Email sending
#   ├── uploads.py          # PDF / image uploads
#   ├── auth/               # Auth and Google routes, tokens, decorators
#   ├── users/              # Profiles and admin user management
#   ├── payments/           # Checkout, products, webhooks
#   ├── streaks/            # Streak and score tracking
#   ├── notifications/      # Pending user notifications
#   └── chat/               # OpenAI chat and chatbot
#
# GETTING STARTED:
#   1. Create a .env file with your values (see config.py)
#   2. pip install -e .
#   3. python -m learnrithm.app
#   4. Open http://localhost:5000/health
#
# ================================================================================

import click
from flask import Flask, jsonify
from flask_cors import CORS

from .api import register_api
from .config import get_config
from .errors import register_error_handlers
from .logging_config import configure_logging, register_request_logging
from .models import db, utcnow
from .security import limiter, register_security_headers


def create_app(config_class=None):
    """Application factory pattern."""

    app = Flask(__name__)

    # Load configuration
    if config_class is None:
        config_class = get_config()
    app.config.from_object(config_class)

    configure_logging(app)

    # Initialize extensions
    db.init_app(app)

    # ================================================================================
    # CORS (Cross-Origin Resource Sharing)
    # ================================================================================
    # The refresh token is a cookie, so the frontend origins must be listed
    # explicitly and credentials allowed.
    # ================================================================================
    CORS(app, origins=app.config['ALLOWED_ORIGINS'], supports_credentials=True)

    # Flask-Limiter for rate limiting
    # Uses memory by default, configure REDIS_URL for production
    limiter.init_app(app)

    register_error_handlers(app)
    register_request_logging(app)
    register_security_headers(app)
    register_api(app)
    register_commands(app)

    @app.route('/')
    def index():
        return jsonify({'success': True, 'message': 'Learnrithm AI API is running'})

    @app.route('/health')
    @limiter.exempt
    def health():
        return jsonify({'status': 'ok', 'timestamp': utcnow().isoformat()})

    # Create database tables
    with app.app_context():
        db.create_all()

    app.logger.info(f"Learnrithm API started ({app.config.get('ENV_NAME')})")
    return app


# ================================================================================
# CLI COMMANDS
# ================================================================================

def register_commands(app):

    @app.cli.command('init-db')
    def init_db():
        """Create all database tables."""
        db.create_all()
        click.echo('Database tables created.')

    @app.cli.command('sync-products')
    def sync_products_command():
        """Replace the local product table with Lemon Squeezy's variants."""
        from .payments.service import sync_products
        products = sync_products()
        click.echo(f'Synced {len(products)} product variants.')


# ================================================================================
# MAIN
# ================================================================================

if __name__ == '__main__':
    app = create_app()

    print("=" * 70)
    print("Learnrithm AI Backend")
    print("=" * 70)
    print("Server: http://localhost:5000")
    print("")
    print("Configuration Status:")
    print(f"  Environment: {app.config.get('ENV_NAME')}")
    print(f"  Database: {app.config.get('SQLALCHEMY_DATABASE_URI')}")
    print(f"  Mailgun: {'CONFIGURED' if app.config.get('MAILGUN_API_KEY') else 'NOT CONFIGURED (emails simulated)'}")
    print(f"  OpenAI: {'CONFIGURED' if app.config.get('OPENAI_API_KEY') else 'NOT CONFIGURED'}")
    print(f"  Lemon Squeezy: {'CONFIGURED' if app.config.get('LEMON_SQUEEZY_API_KEY') else 'NOT CONFIGURED'}")
    print("=" * 70)

    app.run(debug=app.config.get('DEBUG', False), port=5000)
