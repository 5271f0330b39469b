# ================================================================================
# Configuration Management
# ================================================================================
# Centralized configuration for the application.
# Uses environment variables with sensible defaults for development.
# ================================================================================

import os
from dotenv import load_dotenv

load_dotenv()


def _int_env(name, default):
    value = os.environ.get(name)
    return int(value) if value else default


def _list_env(name, default):
    value = os.environ.get(name, default)
    return [item.strip() for item in value.split(',') if item.strip()]


class Config:
    """Base configuration."""

    ENV_NAME = 'development'

    # Flask
    SECRET_KEY = os.environ.get('SECRET_KEY', 'dev-secret-key-change-in-production')
    # Whole request body; the per-file limits below are checked on each upload.
    # The headroom covers multipart boundaries and part headers.
    MAX_CONTENT_LENGTH = 4 * 1024 * 1024 + 64 * 1024

    # Database
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL', 'sqlite:///learnrithm.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # JWT Configuration (expirations are minutes/days, as the clients expect)
    JWT_SECRET = os.environ.get('JWT_SECRET', SECRET_KEY)
    JWT_ACCESS_EXPIRATION_MINUTES = _int_env('JWT_ACCESS_EXPIRATION_MINUTES', 30)
    JWT_REFRESH_EXPIRATION_DAYS = _int_env('JWT_REFRESH_EXPIRATION_DAYS', 30)
    JWT_RESET_PASSWORD_EXPIRATION_MINUTES = _int_env('JWT_RESET_PASSWORD_EXPIRATION_MINUTES', 10)
    JWT_VERIFY_EMAIL_EXPIRATION_MINUTES = _int_env('JWT_VERIFY_EMAIL_EXPIRATION_MINUTES', 10)

    # Cookies (milliseconds in the old env files, seconds here)
    COOKIE_MAX_AGE = _int_env('COOKIE_MAX_AGE', 24 * 60 * 60)
    COOKIE_MAX_AGE_REMEMBER_ME = _int_env('COOKIE_MAX_AGE_REMEMBER_ME', 30 * 24 * 60 * 60)

    # Application
    CLIENT_URL = os.environ.get('CLIENT_URL', 'http://localhost:3000')
    SERVER_API_URL = os.environ.get('SERVER_API_URL', 'http://localhost:5000/api/v2')
    ALLOWED_ORIGINS = _list_env('ALLOWED_ORIGINS', 'http://localhost:3000')

    # Passwords
    BCRYPT_LOG_ROUNDS = _int_env('BCRYPT_LOG_ROUNDS', 10)
    PASSWORD_MIN_LENGTH = 8

    # Mailgun
    MAILGUN_API_KEY = os.environ.get('MAILGUN_API_KEY', '')
    MAILGUN_DOMAIN = os.environ.get('MAILGUN_DOMAIN', '')
    MAILGUN_FROM_EMAIL = os.environ.get('MAILGUN_FROM_EMAIL', 'Learnrithm AI <support@learnrithm.com>')

    # OpenAI
    OPENAI_API_KEY = os.environ.get('OPENAI_API_KEY', '')
    OPENAI_MODEL = os.environ.get('OPENAI_MODEL', 'gpt-4o')
    OPENAI_CHAT_MODEL = os.environ.get('OPENAI_CHAT_MODEL', 'gpt-3.5-turbo')
    OPENAI_TEMPERATURE = 0.7
    OPENAI_MAX_TOKENS = 500

    # Lemon Squeezy
    LEMON_SQUEEZY_API_KEY = os.environ.get('LEMON_SQUEEZY_API_KEY', '')
    LEMON_SQUEEZY_STORE_ID = os.environ.get('LEMON_SQUEEZY_STORE_ID', '161228')
    LEMON_SQUEEZY_WEBHOOK_SECRET = os.environ.get('LEMON_SQUEEZY_WEBHOOK_SECRET', '')
    LEMON_SQUEEZY_TEST_MODE = True

    # Uploads
    UPLOAD_FOLDER = os.environ.get('UPLOAD_FOLDER', os.path.join(os.getcwd(), 'uploads', 'docs'))
    POSTS_FOLDER = os.environ.get('POSTS_FOLDER', os.path.join(os.getcwd(), 'public', 'posts'))
    MAX_FILE_SIZE_PDF_MB = 4
    MAX_FILE_SIZE_POST_MB = 2

    # Rate Limiting (flask-limiter)
    RATELIMIT_STORAGE_URI = os.environ.get('REDIS_URL', 'memory://')
    RATELIMIT_DEFAULT = os.environ.get('RATELIMIT_DEFAULT', '10 per minute')
    RATELIMIT_HEADERS_ENABLED = True

    # Logging
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')


class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'DEBUG')


class ProductionConfig(Config):
    """Production configuration."""
    ENV_NAME = 'production'
    DEBUG = False
    RATELIMIT_ENABLED = True


class TestingConfig(Config):
    """Testing configuration."""
    ENV_NAME = 'testing'
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    JWT_SECRET = 'test-jwt-secret'
    RATELIMIT_ENABLED = False
    BCRYPT_LOG_ROUNDS = 4
    MAILGUN_API_KEY = ''
    MAILGUN_DOMAIN = ''
    OPENAI_API_KEY = 'test-openai-key'
    LEMON_SQUEEZY_API_KEY = 'test-lemon-key'
    LEMON_SQUEEZY_WEBHOOK_SECRET = 'test-webhook-secret'
    LOG_LEVEL = 'WARNING'


# Configuration dictionary
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}


def get_config():
    """Get configuration based on environment."""
    env = os.environ.get('FLASK_ENV', 'development')
    return config.get(env, config['default'])
