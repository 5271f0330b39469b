# ================================================================================
# Refresh Token Cookie
# ================================================================================
# The refresh token travels in an httpOnly cookie named "jwt".
# ================================================================================

from flask import current_app, request

REFRESH_COOKIE = 'jwt'


def _is_production():
    return current_app.config.get('ENV_NAME') == 'production'


def set_refresh_cookie(response, token, remember_me=False):
    if remember_me:
        max_age = current_app.config.get('COOKIE_MAX_AGE_REMEMBER_ME')
    else:
        max_age = current_app.config.get('COOKIE_MAX_AGE')

    response.set_cookie(
        REFRESH_COOKIE,
        token,
        max_age=max_age,
        httponly=True,
        secure=_is_production(),
        samesite='Strict' if _is_production() else 'Lax'
    )
    return response


def clear_refresh_cookie(response):
    response.delete_cookie(
        REFRESH_COOKIE,
        httponly=True,
        secure=_is_production(),
        samesite='Strict' if _is_production() else 'Lax'
    )
    return response


def get_refresh_token():
    """Refresh token from the cookie, falling back to a JSON "refreshToken"."""
    token = request.cookies.get(REFRESH_COOKIE)
    if token:
        return token
    data = request.get_json(silent=True) or {}
    return data.get('refreshToken')
