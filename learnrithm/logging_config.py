# ================================================================================
# Logging Configuration
# ================================================================================
# Console logging for the app and a per-request access log line.
# ================================================================================

import logging
import time
from logging.config import dictConfig

from flask import g, request


def configure_logging(app):
    """Configure root and Flask loggers from app.config['LOG_LEVEL']."""
    level = app.config.get('LOG_LEVEL', 'INFO')
    dictConfig({
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': {
            'default': {
                'format': '%(asctime)s %(levelname)s [%(name)s] %(message)s',
                'datefmt': '%Y-%m-%d %H:%M:%S',
            },
        },
        'handlers': {
            'console': {
                'class': 'logging.StreamHandler',
                'formatter': 'default',
            },
        },
        'root': {'level': level, 'handlers': ['console']},
        'loggers': {
            # werkzeug's own access log duplicates ours
            'werkzeug': {'level': 'WARNING'},
        },
    })
    app.logger.setLevel(level)


def register_request_logging(app):
    """Log one line per request, like morgan's dev format."""
    access_logger = logging.getLogger('learnrithm.access')

    @app.before_request
    def start_timer():
        g.request_started = time.perf_counter()

    @app.after_request
    def log_request(response):
        started = g.get('request_started')
        duration_ms = (time.perf_counter() - started) * 1000 if started else 0.0
        # Path only: reset and verify links carry their token in the query string
        line = f"{request.method} {request.path} {response.status_code} - {duration_ms:.1f} ms"

        if response.status_code >= 500:
            access_logger.error(line)
        elif response.status_code >= 400:
            error = g.get('error_message')
            access_logger.warning(f"{line} - {error}" if error else line)
        else:
            access_logger.info(line)
        return response
