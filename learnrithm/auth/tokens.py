# ================================================================================
# Token Utilities
# ================================================================================
# Issue, store, verify and rotate the JWTs used for sessions, password resets
# and email verification.
#
# Only tokens that must be looked up again are stored (refresh, reset, verify).
# Access tokens are stateless and checked by @token_required alone.
# ================================================================================

import uuid
from datetime import timedelta

import jwt
from flask import current_app

from ..errors import Unauthorized
from ..models import db, Token, TokenType, isoformat, utcnow


class TokenError(Unauthorized):
    """The token is malformed, has a bad signature or the wrong type."""


class TokenExpiredError(TokenError):
    pass


class TokenNotFoundError(TokenError):
    """The token decodes but was revoked or rotated away."""


def _secret():
    return current_app.config['JWT_SECRET']


def generate_token(user_id, expires, token_type, secret=None):
    """Create an HS256 token with sub, iat, exp and type claims."""
    payload = {
        'sub': str(user_id),
        'iat': utcnow(),
        'exp': expires,
        'type': token_type,
        # Two tokens issued in the same second must still differ
        'jti': uuid.uuid4().hex,
    }
    return jwt.encode(payload, secret or _secret(), algorithm='HS256')


def save_token(token, user_id, expires, token_type, email):
    record = Token(
        token=token,
        user_id=user_id,
        token_expires=expires,
        token_type=token_type,
        email=email.lower()
    )
    db.session.add(record)
    db.session.commit()
    return record


def delete_existing_tokens(user_id, token_type):
    Token.query.filter_by(user_id=user_id, token_type=token_type).delete()
    db.session.commit()


def delete_token(token, token_type):
    """Remove a stored token. Returns the number of rows deleted."""
    deleted = Token.query.filter_by(token=token, token_type=token_type).delete()
    db.session.commit()
    return deleted


def verify_token(token, token_type):
    """
    Decode a token and return its stored Token row.

    Raises TokenExpiredError, TokenError or TokenNotFoundError (all 401s).
    """
    try:
        payload = jwt.decode(token, _secret(), algorithms=['HS256'])
    except jwt.ExpiredSignatureError:
        raise TokenExpiredError('Token expired')
    except jwt.InvalidTokenError:
        raise TokenError('Invalid token')

    if payload.get('type') != token_type:
        raise TokenError('Invalid token type')

    record = Token.query.filter_by(
        token=token,
        token_type=token_type,
        user_id=payload.get('sub')
    ).first()
    if not record:
        raise TokenNotFoundError('Token not found')
    return record


def generate_access_token(user):
    minutes = current_app.config.get('JWT_ACCESS_EXPIRATION_MINUTES', 30)
    expires = utcnow() + timedelta(minutes=minutes)
    token = generate_token(user.id, expires, TokenType.ACCESS)
    return {'token': token, 'expires': isoformat(expires)}


def generate_auth_tokens(user):
    """Access + refresh pair. Only the refresh token is persisted."""
    days = current_app.config.get('JWT_REFRESH_EXPIRATION_DAYS', 30)
    refresh_expires = utcnow() + timedelta(days=days)
    refresh_token = generate_token(user.id, refresh_expires, TokenType.REFRESH)
    save_token(refresh_token, user.id, refresh_expires, TokenType.REFRESH, user.email)

    return {
        'access': generate_access_token(user),
        'refresh': {'token': refresh_token, 'expires': isoformat(refresh_expires)}
    }


def _generate_rotated_token(user, token_type, minutes):
    delete_existing_tokens(user.id, token_type)
    expires = utcnow() + timedelta(minutes=minutes)
    token = generate_token(user.id, expires, token_type)
    save_token(token, user.id, expires, token_type, user.email)
    return token


def generate_reset_password_token(user):
    minutes = current_app.config.get('JWT_RESET_PASSWORD_EXPIRATION_MINUTES', 10)
    return _generate_rotated_token(user, TokenType.PASSWORD_RESET, minutes)


def generate_verify_email_token(user):
    minutes = current_app.config.get('JWT_VERIFY_EMAIL_EXPIRATION_MINUTES', 10)
    return _generate_rotated_token(user, TokenType.EMAIL_VALIDATION, minutes)
