# ================================================================================
# Authentication Routes
# ================================================================================
# Mounted under /api/v1/auth and /api/v2/auth.
# ================================================================================

from flask import jsonify, g, current_app
from sqlalchemy import or_

from . import auth_bp
from .cookies import set_refresh_cookie, clear_refresh_cookie, get_refresh_token
from .passwords import hash_password, is_password_match
from .tokens import (
    TokenError, TokenExpiredError,
    delete_existing_tokens, delete_token, verify_token,
    generate_access_token, generate_auth_tokens,
    generate_reset_password_token, generate_verify_email_token
)
from ..email_service import (
    send_register_email, send_verification_email,
    send_reset_password_email, send_reset_password_success_email
)
from ..errors import error_response
from ..models import db, User, Notifier, NotificationType, Referral, ReferralCode, TokenType, isoformat, naive_utc, utcnow
from ..validation import (
    validate, RegisterUserBody, LoginBody, EmailBody, ResetPasswordBody, TokenQuery
)


# ================================================================================
# HELPER FUNCTIONS
# ================================================================================

def record_referral(user, code):
    """Record that a new user signed up with another user's referral code."""
    referral_code = ReferralCode.query.filter_by(code=code).first()
    if not referral_code:
        current_app.logger.info(f"Unknown referral code '{code}' used by {user.email}")
        return None

    referral = Referral(
        user_id=user.id,
        referred_user_id=referral_code.user_id,
        email=user.email,
        referred_user_email=referral_code.email,
        ref_code_used=code
    )
    db.session.add(referral)
    db.session.commit()
    return referral


def send_verification(user):
    """Rotate the verify token, email it and leave a pending notifier."""
    token = generate_verify_email_token(user)
    send_verification_email(user.email, user.name, token)

    db.session.add(Notifier(
        user_id=user.id,
        email=user.email,
        notify_type=NotificationType.EMAIL_VALIDATION
    ))
    db.session.commit()


# ================================================================================
# REGISTRATION
# ================================================================================

@auth_bp.route('/register', methods=['POST'])
@validate(body=RegisterUserBody)
def register():
    """Register a new user with email/password or a Google profile."""
    data = g.body

    missing = [field for field in ('email', 'name', 'method') if not getattr(data, field)]
    if missing:
        return error_response('Email, name and method are required', 400, missingFields=missing)

    if User.query.filter_by(email=data.email).first():
        return error_response('User already exists', 409)

    if data.method == 'normal' and not data.password:
        return error_response('Password is required for this sign-up method', 401)

    user = User(
        email=data.email,
        name=data.name,
        method=data.method,
        password=hash_password(data.password) if data.password else None,
        image=data.image,
        country=data.country,
        plan='free',
        language='english',
        how_did_you_find_us=data.how_did_you_find_us or 'Not specified',
        who_are_you=data.who_are_you,
        age=data.age,
        birth_date=naive_utc(data.birthday)
    )
    db.session.add(user)
    db.session.commit()

    tokens = generate_auth_tokens(user)

    if data.referral_code:
        record_referral(user, data.referral_code)

    send_register_email(user.email, user.name)
    if user.method == 'normal':
        send_verification(user)

    current_app.logger.info(f"New user registered: {user.email} ({user.method})")

    response = jsonify({
        'success': True,
        'message': f'User {user.email} created successfully!',
        'user': user.to_client(tokens)
    })
    set_refresh_cookie(response, tokens['refresh']['token'])
    return response, 201


# ================================================================================
# LOGIN
# ================================================================================

@auth_bp.route('/login', methods=['POST'])
@validate(body=LoginBody)
def login():
    """Login with email (or username) and password, or a Google account."""
    data = g.body
    identifier = data.login_identifier

    user = User.query.filter(
        or_(User.email == identifier.lower(), User.username == identifier),
        User.method == data.method,
        User.archived.is_(False)
    ).first()

    if not user:
        return error_response('User with that email not found', 404)

    if data.method == 'normal':
        if not is_password_match(data.password, user.password):
            current_app.logger.info(f"Failed login for {user.email}")
            return error_response('Invalid password', 401)
    elif data.image:
        user.image = data.image

    user.last_login = utcnow()
    db.session.commit()

    tokens = generate_auth_tokens(user)

    response = jsonify({
        'success': True,
        'message': f'Login successful: {user.name}!',
        'user': user.to_client(tokens)
    })
    set_refresh_cookie(response, tokens['refresh']['token'], remember_me=data.remember_me)
    return response


# ================================================================================
# SESSION
# ================================================================================

@auth_bp.route('/logout', methods=['POST'])
def logout():
    """Logout - delete the stored refresh token and clear the cookie."""
    token = get_refresh_token()
    if not token:
        return '', 204

    if not delete_token(token, TokenType.REFRESH):
        return error_response('Refresh token not found', 404)

    response = current_app.make_response(('', 204))
    clear_refresh_cookie(response)
    return response


@auth_bp.route('/refresh-tokens', methods=['POST'])
def refresh_tokens():
    """Get a new access token using the refresh token."""
    token = get_refresh_token()
    if not token:
        return error_response('Refresh token not found', 401)

    try:
        record = verify_token(token, TokenType.REFRESH)
    except TokenExpiredError:
        delete_token(token, TokenType.REFRESH)
        response, status = error_response('Refresh token expired. Please log in again.', 401)
        clear_refresh_cookie(response)
        return response, status
    except TokenError as e:
        return error_response(e.message, 401)

    user = db.session.get(User, record.user_id)
    if not user:
        return error_response('User not found', 404)

    return jsonify({
        'success': True,
        'message': 'Access token regenerated',
        'tokens': {
            'access': generate_access_token(user),
            'refresh': {'token': record.token, 'expires': isoformat(record.token_expires)}
        }
    })


# ================================================================================
# PASSWORD RESET
# ================================================================================

@auth_bp.route('/forgot-password', methods=['POST'])
@validate(body=EmailBody)
def forgot_password():
    """Request password reset."""
    user = User.query.filter_by(email=g.body.email, method='normal').first()
    if not user:
        return error_response('User with that email not found', 404)

    token = generate_reset_password_token(user)
    send_reset_password_email(user.email, user.name, token)

    current_app.logger.info(f"Password reset requested for {user.email}")
    return jsonify({'success': True, 'message': 'Check your email for further instructions'})


@auth_bp.route('/reset-password', methods=['POST'])
@validate(body=ResetPasswordBody, query=TokenQuery)
def reset_password():
    """Reset password with the token from the reset email."""
    invalid_message = ('The password reset token you provided is either invalid or has expired. '
                       'Please request a new one.')
    try:
        record = verify_token(g.query.token, TokenType.PASSWORD_RESET)
    except TokenError:
        return error_response(invalid_message, 404)

    user = db.session.get(User, record.user_id)
    if not user:
        return error_response(invalid_message, 404)

    user.password = hash_password(g.body.password)
    db.session.commit()
    delete_existing_tokens(user.id, TokenType.PASSWORD_RESET)

    send_reset_password_success_email(user.email, user.name)

    current_app.logger.info(f"Password reset for {user.email}")
    return jsonify({'success': True, 'message': 'Your password has been changed successfully'})


# ================================================================================
# EMAIL VERIFICATION
# ================================================================================

@auth_bp.route('/send-verification-email', methods=['POST'])
@validate(body=EmailBody)
def send_verification_email_route():
    """Send (or resend) the verification email."""
    user = User.query.filter_by(email=g.body.email).first()
    if not user:
        return error_response('User with that email not found', 404)

    send_verification(user)
    return jsonify({'success': True, 'message': 'Verification email sent'})


@auth_bp.route('/verify-email', methods=['POST'])
@validate(query=TokenQuery)
def verify_email():
    """Verify email with token."""
    try:
        record = verify_token(g.query.token, TokenType.EMAIL_VALIDATION)
    except TokenError:
        return error_response('Email verification failed. The link is invalid or has expired.', 404)

    user = db.session.get(User, record.user_id)
    if not user:
        return error_response('User not found', 404)

    user.is_verified = True
    Notifier.query.filter_by(user_id=user.id, notify_type=NotificationType.EMAIL_VALIDATION).delete()
    db.session.commit()
    delete_existing_tokens(user.id, TokenType.EMAIL_VALIDATION)

    current_app.logger.info(f"Email verified for {user.email}")
    return '', 204
