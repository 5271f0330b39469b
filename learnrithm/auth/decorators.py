# ================================================================================
# Authentication Decorators
# ================================================================================
# Reusable decorators for protecting routes and checking permissions.
# ================================================================================

from functools import wraps

import jwt
from flask import request, g, current_app

from ..errors import error_response
from ..models import db, User, TokenType


def get_token_from_header():
    """Extract JWT token from Authorization header."""
    auth_header = request.headers.get('Authorization')
    if not auth_header:
        return None

    parts = auth_header.split(' ')
    if len(parts) != 2 or parts[0] != 'Bearer':
        return None

    return parts[1]


def decode_token(token):
    """Decode and validate JWT token."""
    try:
        decoded = jwt.decode(token, current_app.config['JWT_SECRET'], algorithms=['HS256'])
        return decoded, None
    except jwt.ExpiredSignatureError:
        return None, 'Token expired'
    except jwt.InvalidTokenError:
        return None, 'Invalid token'


def token_required(f):
    """
    Decorator that requires a valid access token.

    Usage:
        @bp.route('/protected')
        @token_required
        def protected_route():
            user = g.current_user
            ...
    """
    @wraps(f)
    def decorated(*args, **kwargs):
        token = get_token_from_header()
        if not token:
            return error_response('Please authenticate', 401, 'UNAUTHORIZED')

        decoded, error = decode_token(token)
        if error:
            current_app.logger.debug(f"Rejected access token: {error}")
            return error_response('Please authenticate', 401, 'UNAUTHORIZED')

        if decoded.get('type') != TokenType.ACCESS:
            return error_response('Please authenticate', 401, 'UNAUTHORIZED')

        user = db.session.get(User, decoded.get('sub'))
        if not user or user.archived:
            return error_response('Please authenticate', 401, 'UNAUTHORIZED')

        g.current_user = user
        return f(*args, **kwargs)
    return decorated


def admin_required(f):
    """
    Decorator that requires admin role.
    Must be used after @token_required.
    """
    @wraps(f)
    def decorated(*args, **kwargs):
        if g.current_user.role != 'admin':
            return error_response('Admin access required', 403, 'FORBIDDEN')
        return f(*args, **kwargs)
    return decorated


def owner_or_admin_required(field='id'):
    """
    Decorator that only lets a user act on their own record.
    The user id is read from the JSON body; admins may act on anyone.
    Must be used after @token_required.
    """
    def decorator(f):
        @wraps(f)
        def decorated(*args, **kwargs):
            data = request.get_json(silent=True) or {}
            user = g.current_user
            if data.get(field) != user.id and user.role != 'admin':
                return error_response('You can only modify your own account', 403, 'FORBIDDEN')
            return f(*args, **kwargs)
        return decorated
    return decorator
