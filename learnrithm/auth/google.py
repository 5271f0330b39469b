# ================================================================================
# Google Account Routes
# ================================================================================
# The frontend completes Google Sign-In itself and posts the resulting profile
# here. Mounted under /api/v3/google.
# ================================================================================

import ipaddress

import requests
from flask import request, jsonify, g, current_app

from . import google_bp
from .cookies import set_refresh_cookie
from .tokens import generate_auth_tokens
from ..email_service import send_register_email
from ..errors import error_response
from ..models import db, User, utcnow
from ..validation import validate, GoogleRegisterBody, GoogleLoginBody


def get_client_ip():
    """Get client IP address."""
    if request.headers.get('X-Forwarded-For'):
        return request.headers.get('X-Forwarded-For').split(',')[0].strip()
    return request.remote_addr


def lookup_country(ip):
    """Country name for an IP address, "Unknown" when it cannot be resolved."""
    try:
        address = ipaddress.ip_address(ip)
    except (TypeError, ValueError):
        return 'Unknown'
    if address.is_private or address.is_loopback or address.is_reserved:
        return 'Unknown'

    try:
        response = requests.get(f'https://ipapi.co/{ip}/json/', timeout=5)
        response.raise_for_status()
        return response.json().get('country_name') or 'Unknown'
    except (requests.RequestException, ValueError) as e:
        current_app.logger.warning(f"Country lookup failed for {ip}: {e}")
        return 'Unknown'


@google_bp.route('/register', methods=['POST'])
@validate(body=GoogleRegisterBody)
def google_register():
    """Create an account from a Google profile."""
    data = g.body
    if not data.email or not data.name:
        return error_response('Email and name are required', 400)

    if User.query.filter_by(email=data.email).first():
        return error_response('User already exists', 409)

    user = User(
        email=data.email,
        name=data.name,
        image=data.image,
        method='google',
        plan='free',
        country=lookup_country(get_client_ip()),
        # Google has already verified the address
        is_verified=True
    )
    db.session.add(user)
    db.session.commit()

    send_register_email(user.email, user.name)
    current_app.logger.info(f"New Google user registered: {user.email} from {user.country}")

    return jsonify({
        'success': True,
        'message': f'User {user.email} created successfully!',
        'user': user.to_client()
    }), 201


@google_bp.route('/login', methods=['POST'])
@validate(body=GoogleLoginBody)
def google_login():
    data = g.body
    user = User.query.filter_by(email=data.email, method='google', archived=False).first()
    if not user:
        return error_response('User with that email not found', 404)

    if data.image:
        user.image = data.image
    user.last_login = utcnow()
    db.session.commit()

    tokens = generate_auth_tokens(user)

    response = jsonify({
        'success': True,
        'message': f'Login successful: {user.name}!',
        'user': user.to_client(tokens)
    })
    set_refresh_cookie(response, tokens['refresh']['token'])
    return response
