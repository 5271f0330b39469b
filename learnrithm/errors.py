# ================================================================================
# Error Handling
# ================================================================================
# API exceptions and the application-wide error handlers.
# ================================================================================

from flask import current_app, g, jsonify, request
from werkzeug.exceptions import HTTPException, RequestEntityTooLarge

from .models import db


class ApiError(Exception):
    """An error that maps directly onto an HTTP response."""

    status_code = 500
    code = 'SERVER_ERROR'

    def __init__(self, message=None, status_code=None, code=None, details=None):
        super().__init__(message or 'An error occurred')
        self.message = message or 'An error occurred'
        if status_code is not None:
            self.status_code = status_code
        if code is not None:
            self.code = code
        self.details = details

    def to_dict(self):
        data = {'success': False, 'error': self.message, 'code': self.code}
        if self.details is not None:
            data['details'] = self.details
        return data


class BadRequest(ApiError):
    status_code = 400
    code = 'BAD_REQUEST'


class Unauthorized(ApiError):
    status_code = 401
    code = 'UNAUTHORIZED'


class Forbidden(ApiError):
    status_code = 403
    code = 'FORBIDDEN'


class NotFound(ApiError):
    status_code = 404
    code = 'NOT_FOUND'


class Conflict(ApiError):
    status_code = 409
    code = 'CONFLICT'


class ExternalServiceError(ApiError):
    """A third-party API (Lemon Squeezy, OpenAI, geo lookup) failed."""
    status_code = 502
    code = 'EXTERNAL_SERVICE_ERROR'


def error_response(message, status_code=400, code=None, **extra):
    g.error_message = message
    response = {'success': False, 'error': message}
    if code:
        response['code'] = code
    response.update(extra)
    return jsonify(response), status_code


def register_error_handlers(app):
    """Attach JSON error handlers to the app."""

    @app.errorhandler(ApiError)
    def handle_api_error(e):
        g.error_message = e.message
        if e.status_code >= 500:
            current_app.logger.error(f"{request.method} {request.path} failed: {e.message}")
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(429)
    def ratelimit_handler(e):
        current_app.logger.warning(f"Rate limit hit by {request.remote_addr} on {request.path}")
        return error_response('Too many requests. Please slow down.', 429, 'RATE_LIMITED')

    @app.errorhandler(RequestEntityTooLarge)
    def file_too_large(e):
        if request.path.endswith('/upload/post'):
            limit_mb = current_app.config.get('MAX_FILE_SIZE_POST_MB', 2)
        else:
            limit_mb = current_app.config.get('MAX_FILE_SIZE_PDF_MB', 4)
        return error_response(f'File too large. Maximum allowed size is {limit_mb}MB', 413, 'FILE_TOO_LARGE')

    @app.errorhandler(HTTPException)
    def handle_http_exception(e):
        return error_response(e.description, e.code, e.name.upper().replace(' ', '_'))

    @app.errorhandler(Exception)
    def handle_exception(e):
        db.session.rollback()
        current_app.logger.exception(f"Unhandled exception in {request.method} {request.path}")
        if current_app.config.get('ENV_NAME') == 'development':
            message = str(e)
        else:
            message = 'Internal Server Error'
        return error_response(message, 500, 'SERVER_ERROR')
