# ================================================================================
# Security Middleware
# ================================================================================
# Rate limiting (flask-limiter) and the response headers helmet used to set.
# ================================================================================

from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

# Limits, storage and the on/off switch come from app.config (RATELIMIT_*)
limiter = Limiter(key_func=get_remote_address)

SECURITY_HEADERS = {
    'X-Content-Type-Options': 'nosniff',
    'X-Frame-Options': 'SAMEORIGIN',
    'Referrer-Policy': 'no-referrer',
    'Cross-Origin-Opener-Policy': 'same-origin',
    'X-DNS-Prefetch-Control': 'off',
}


def register_security_headers(app):
    @app.after_request
    def set_security_headers(response):
        for header, value in SECURITY_HEADERS.items():
            response.headers.setdefault(header, value)
        if app.config.get('ENV_NAME') == 'production':
            response.headers.setdefault('Strict-Transport-Security', 'max-age=15552000; includeSubDomains')
        return response
