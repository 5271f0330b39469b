# ================================================================================
# Email Service
# ================================================================================
# Handles all transactional email using the Mailgun API.
# When Mailgun is not configured, emails are logged instead of sent.
# ================================================================================

import re
from typing import Any, Dict, Optional

import requests
from flask import current_app


def send_email(
    to_email: str,
    subject: str,
    html_content: str,
    text_content: Optional[str] = None
) -> Dict[str, Any]:
    """Send an email using Mailgun API."""

    api_key = current_app.config.get('MAILGUN_API_KEY')
    domain = current_app.config.get('MAILGUN_DOMAIN')
    from_email = current_app.config.get('MAILGUN_FROM_EMAIL')

    if not api_key or not domain:
        # Development mode - log instead of sending
        current_app.logger.info(f"EMAIL (simulated) to {to_email}: {subject}")
        return {
            'success': True,
            'message': 'Email simulated (Mailgun not configured)',
            'simulated': True
        }

    if text_content is None:
        text_content = re.sub(r'<[^>]+>', '', html_content)
        text_content = re.sub(r'\s+', ' ', text_content).strip()

    try:
        response = requests.post(
            f'https://api.mailgun.net/v3/{domain}/messages',
            auth=('api', api_key),
            data={
                'from': from_email,
                'to': to_email,
                'subject': subject,
                'html': html_content,
                'text': text_content
            },
            timeout=10
        )
    except requests.RequestException as e:
        current_app.logger.error(f"Email exception: {e}")
        return {'success': False, 'error': str(e)}

    if response.status_code == 200:
        current_app.logger.info(f"An e-mail has been sent to {to_email}: {subject}")
        return {'success': True, 'message': 'Email sent'}

    current_app.logger.error(f"Mailgun error: {response.status_code} - {response.text}")
    return {'success': False, 'error': f'Email service error: {response.status_code}'}


def _layout(title: str, color: str, body: str) -> str:
    """Shared HTML shell for all Learnrithm emails."""
    return f'''
    <!DOCTYPE html>
    <html>
    <body style="margin: 0; padding: 0; font-family: Arial, sans-serif; background-color: #f4f4f4;">
        <table width="100%" cellspacing="0" cellpadding="0" style="max-width: 600px; margin: 0 auto; background: #fff;">
            <tr>
                <td style="padding: 40px 30px; text-align: center; background: {color};">
                    <h1 style="color: #fff; margin: 0;">{title}</h1>
                </td>
            </tr>
            <tr>
                <td style="padding: 40px 30px;">
                    {body}
                    <p style="color: #666;">Best regards,<br/>Learnrithm AI Team</p>
                </td>
            </tr>
        </table>
    </body>
    </html>
    '''


def _button(link: str, label: str, color: str) -> str:
    return f'''
    <table style="margin: 30px auto;"><tr>
        <td style="background: {color}; border-radius: 5px;">
            <a href="{link}" style="display: inline-block; padding: 15px 30px; color: #fff; text-decoration: none; font-weight: bold;">
                {label}
            </a>
        </td>
    </tr></table>
    '''


def _client_url(path: str) -> str:
    return f"{current_app.config.get('CLIENT_URL', '').rstrip('/')}{path}"


# ================================================================================
# ACCOUNT EMAILS
# ================================================================================

def send_register_email(to_email: str, name: str) -> Dict[str, Any]:
    """Send welcome email after registration."""
    html = _layout('Welcome to Learnrithm!', '#673AB7', f'''
        <p style="font-size: 18px;">Hi <strong>{name}</strong>,</p>
        <p>Your Learnrithm account has been created. Start your first course whenever you are ready.</p>
        {_button(_client_url('/dashboard'), 'Start Learning', '#673AB7')}
    ''')
    return send_email(to_email, 'Welcome to Learnrithm AI', html)


def send_verification_email(to_email: str, name: str, token: str) -> Dict[str, Any]:
    """Send verification email."""
    verification_link = _client_url(f'/verify-email?token={token}')
    html = _layout('Verify Your Email', '#4CAF50', f'''
        <p>Hello <strong>{name}</strong>,</p>
        <p>Thank you for registering with us. Please verify your email address by clicking the button below:</p>
        {_button(verification_link, 'Verify Email', '#4CAF50')}
        <p style="font-size: 12px; color: #666;">If you did not create an account, please ignore this email or contact support.</p>
        <p style="font-size: 11px; color: #999; word-break: break-all;">{verification_link}</p>
    ''')
    return send_email(to_email, 'Email Verification', html)


def send_reset_password_email(to_email: str, name: str, token: str) -> Dict[str, Any]:
    """Send password reset email."""
    reset_link = _client_url(f'/reset-password?token={token}')
    html = _layout('Reset Your Password', '#2196F3', f'''
        <p>Hey <strong>{name}</strong>,</p>
        <p>You are receiving this because you (or someone else) have requested the <strong>reset of the password</strong> for your account.</p>
        {_button(reset_link, 'Reset Password', '#2196F3')}
        <p style="font-size: 12px; color: #856404; background: #fff3cd; padding: 10px; border-radius: 5px;">
            If you did not request this, please ignore this email and your password will remain unchanged.
        </p>
    ''')
    return send_email(to_email, 'Reset password', html)


def send_reset_password_success_email(to_email: str, name: str) -> Dict[str, Any]:
    """Confirm a completed password reset."""
    html = _layout('Password Reset Successfully', '#2196F3', f'''
        <p>Hey <strong>{name}</strong>,</p>
        <p>This is a confirmation that the password for your account {to_email} has been successfully reset.</p>
        <p>If you did not request this, please contact us immediately.</p>
    ''')
    return send_email(to_email, 'Password Reset Successfully', html)


# ================================================================================
# SUBSCRIPTION EMAILS
# ================================================================================

def send_subscription_created_email(to_email: str, name: str, product: str, renews_at=None) -> Dict[str, Any]:
    renews = f'<p>Your plan renews on <strong>{renews_at:%B %d, %Y}</strong>.</p>' if renews_at else ''
    html = _layout('Subscription Activated', '#4CAF50', f'''
        <p>Hi <strong>{name}</strong>,</p>
        <p>Thank you for subscribing to <strong>{product}</strong>. All premium features are now unlocked.</p>
        {renews}
    ''')
    return send_email(to_email, 'Your Learnrithm subscription is active', html)


def send_subscription_cancelled_email(to_email: str, name: str, product: str, ends_at=None) -> Dict[str, Any]:
    ends = f'<p>You keep access until <strong>{ends_at:%B %d, %Y}</strong>.</p>' if ends_at else ''
    html = _layout('Subscription Cancelled', '#FF9800', f'''
        <p>Hi <strong>{name}</strong>,</p>
        <p>Your <strong>{product}</strong> subscription has been cancelled.</p>
        {ends}
        <p>You can resume it at any time from your account settings.</p>
    ''')
    return send_email(to_email, 'Your Learnrithm subscription was cancelled', html)


def send_subscription_expired_email(to_email: str, name: str, product: str) -> Dict[str, Any]:
    html = _layout('Subscription Expired', '#9E9E9E', f'''
        <p>Hi <strong>{name}</strong>,</p>
        <p>Your <strong>{product}</strong> subscription has expired and your account is back on the free plan.</p>
        {_button(_client_url('/pricing'), 'Renew Subscription', '#673AB7')}
    ''')
    return send_email(to_email, 'Your Learnrithm subscription has expired', html)


def send_payment_success_email(to_email: str, name: str, product: str, total: int) -> Dict[str, Any]:
    html = _layout('Payment Received', '#4CAF50', f'''
        <p>Hi <strong>{name}</strong>,</p>
        <p>We received your payment of <strong>${total / 100:.2f}</strong> for <strong>{product}</strong>.</p>
    ''')
    return send_email(to_email, 'Payment received', html)


def send_payment_failed_email(to_email: str, name: str, product: str) -> Dict[str, Any]:
    html = _layout('Payment Failed', '#F44336', f'''
        <p>Hi <strong>{name}</strong>,</p>
        <p>We could not process the payment for your <strong>{product}</strong> subscription.</p>
        <p>Please update your payment method to keep your premium access.</p>
    ''')
    return send_email(to_email, 'Payment failed', html)


def send_payment_refunded_email(to_email: str, name: str, product: str) -> Dict[str, Any]:
    html = _layout('Payment Refunded', '#607D8B', f'''
        <p>Hi <strong>{name}</strong>,</p>
        <p>Your payment for <strong>{product}</strong> has been refunded.</p>
    ''')
    return send_email(to_email, 'Payment refunded', html)
