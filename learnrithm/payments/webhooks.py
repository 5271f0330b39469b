# ================================================================================
# Lemon Squeezy Webhooks
# ================================================================================
# Signature check and one handler per subscription event. Handlers keep the
# local Subscription / SubscriptionInvoice tables and the user's plan in step
# with the provider, leave a Notifier for the frontend and send an email.
# ================================================================================

import hashlib
import hmac
from datetime import datetime, timezone

from flask import current_app

from .service import get_end_date
from .. import email_service
from ..errors import BadRequest
from ..models import (
    db, User, Notifier, NotificationType, Product, Subscription, SubscriptionInvoice, utcnow
)


def verify_signature(raw_body, signature, secret):
    """X-Signature is the hex HMAC-SHA256 of the raw request body."""
    if not signature:
        return False
    expected = hmac.new(secret.encode('utf-8'), raw_body, hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected, signature)


def parse_datetime(value):
    """Provider timestamps ("2024-01-31T10:00:00.000000Z") as naive UTC."""
    if not value:
        return None
    parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


# ================================================================================
# HELPER FUNCTIONS
# ================================================================================

def _plan_for(status, interval):
    """Map a subscription onto the user's plan name, e.g. 'trial_monthly'."""
    period = 'yearly' if interval == 'year' else 'monthly'
    kind = 'trial' if status == 'on_trial' else 'charged'
    return f'{kind}_{period}'


def _interval_for(attributes):
    product = Product.query.filter_by(variant_id=str(attributes.get('variant_id'))).first()
    return product.interval if product else 'month'


def _notify(user, notify_type):
    if user:
        db.session.add(Notifier(user_id=user.id, email=user.email, notify_type=notify_type))


def _user_name(user, attributes):
    if user and user.name:
        return user.name
    return attributes.get('user_name') or 'there'


def _upsert_subscription(subscription_id, email, user, attributes):
    subscription = db.session.get(Subscription, subscription_id)
    if subscription is None:
        subscription = Subscription(id=subscription_id, email=email, status=attributes.get('status') or 'active')
        db.session.add(subscription)

    subscription.user_id = user.id if user else subscription.user_id
    subscription.status = attributes.get('status') or subscription.status
    subscription.product = attributes.get('product_name') or subscription.product
    subscription.variant = attributes.get('variant_name') or subscription.variant
    subscription.card_brand = attributes.get('card_brand') or subscription.card_brand
    subscription.card_last_four = attributes.get('card_last_four') or subscription.card_last_four
    subscription.trial_ends_at = parse_datetime(attributes.get('trial_ends_at')) or subscription.trial_ends_at
    subscription.renews_at = parse_datetime(attributes.get('renews_at')) or subscription.renews_at
    subscription.ends_at = parse_datetime(attributes.get('ends_at')) or subscription.ends_at
    return subscription


def _apply_plan(user, subscription, attributes):
    if not user:
        return
    user.plan = _plan_for(subscription.status, _interval_for(attributes))
    if subscription.status == 'on_trial' and subscription.trial_ends_at:
        user.expiration_subscription = subscription.trial_ends_at
    else:
        user.expiration_subscription = subscription.renews_at or subscription.ends_at


# ================================================================================
# SUBSCRIPTION EVENTS
# ================================================================================

def subscription_created(data, email, user):
    attributes = data['attributes']
    subscription = _upsert_subscription(str(data['id']), email, user, attributes)
    _apply_plan(user, subscription, attributes)
    _notify(user, NotificationType.SUBSCRIPTION_CREATED)
    db.session.commit()

    email_service.send_subscription_created_email(
        email, _user_name(user, attributes), subscription.product, subscription.renews_at
    )
    return 'Subscription created'


def subscription_updated(data, email, user):
    attributes = data['attributes']
    subscription = _upsert_subscription(str(data['id']), email, user, attributes)
    if subscription.status in ('active', 'on_trial'):
        _apply_plan(user, subscription, attributes)
    _notify(user, NotificationType.SUBSCRIPTION_UPDATED)
    db.session.commit()
    return 'Subscription updated'


def subscription_resumed(data, email, user):
    attributes = dict(data['attributes'], status='active')
    subscription = _upsert_subscription(str(data['id']), email, user, attributes)
    subscription.ends_at = None
    _apply_plan(user, subscription, attributes)
    db.session.commit()
    return 'Subscription resumed'


def subscription_cancelled(data, email, user):
    attributes = dict(data['attributes'], status='cancelled')
    subscription = _upsert_subscription(str(data['id']), email, user, attributes)
    if user and subscription.ends_at:
        # Access lasts until the end of the paid period
        user.expiration_subscription = subscription.ends_at
    _notify(user, NotificationType.SUBSCRIPTION_CANCELLED)
    db.session.commit()

    email_service.send_subscription_cancelled_email(
        email, _user_name(user, attributes), subscription.product, subscription.ends_at
    )
    return 'Subscription cancelled'


def subscription_expired(data, email, user):
    attributes = dict(data['attributes'], status='expired')
    subscription = _upsert_subscription(str(data['id']), email, user, attributes)
    if user:
        user.plan = 'free'
        user.expiration_subscription = None
    _notify(user, NotificationType.SUBSCRIPTION_EXPIRED)
    db.session.commit()

    email_service.send_subscription_expired_email(email, _user_name(user, attributes), subscription.product)
    return 'Subscription expired'


# ================================================================================
# INVOICE EVENTS
# ================================================================================

def _record_invoice(data, email, user, status):
    attributes = data['attributes']
    subscription_id = str(attributes.get('subscription_id'))

    subscription = db.session.get(Subscription, subscription_id)
    if subscription is None:
        # The invoice can arrive before subscription_created
        subscription = _upsert_subscription(subscription_id, email, user, {'status': 'active'})

    start = parse_datetime(attributes.get('created_at')) or utcnow()
    end = subscription.renews_at
    if end is None:
        product = Product.query.filter_by(name=subscription.product, variant=subscription.variant).first()
        end = get_end_date(product.interval if product else 'month', start)

    invoice = db.session.get(SubscriptionInvoice, str(data['id']))
    if invoice is None:
        invoice = SubscriptionInvoice(
            id=str(data['id']),
            subscription_id=subscription.id,
            email=email,
            subscription_start_at=start,
            subscription_end_at=end
        )
        db.session.add(invoice)

    invoice.user_id = user.id if user else None
    invoice.status = status
    invoice.billing_reason = attributes.get('billing_reason')
    invoice.product = subscription.product
    invoice.card_brand = attributes.get('card_brand') or subscription.card_brand
    invoice.card_last_four = attributes.get('card_last_four') or subscription.card_last_four
    invoice.total = attributes.get('total') or 0
    return invoice


def subscription_payment_success(data, email, user):
    invoice = _record_invoice(data, email, user, 'paid')
    _notify(user, NotificationType.SUBSCRIPTION_PAYMENT_SUCCESS)
    db.session.commit()

    email_service.send_payment_success_email(
        email, _user_name(user, data['attributes']), invoice.product, invoice.total
    )
    return 'Payment recorded'


def subscription_payment_failed(data, email, user):
    invoice = _record_invoice(data, email, user, 'failed')
    _notify(user, NotificationType.SUBSCRIPTION_PAYMENT_FAILED)
    db.session.commit()

    email_service.send_payment_failed_email(email, _user_name(user, data['attributes']), invoice.product)
    return 'Payment failure recorded'


def subscription_payment_refunded(data, email, user):
    invoice = _record_invoice(data, email, user, 'refunded')
    if user:
        user.plan = 'free'
        user.expiration_subscription = None
    _notify(user, NotificationType.SUBSCRIPTION_PAYMENT_REFUNDED)
    db.session.commit()

    email_service.send_payment_refunded_email(email, _user_name(user, data['attributes']), invoice.product)
    return 'Refund recorded'


EVENT_HANDLERS = {
    'subscription_created': subscription_created,
    'subscription_updated': subscription_updated,
    'subscription_resumed': subscription_resumed,
    'subscription_cancelled': subscription_cancelled,
    'subscription_expired': subscription_expired,
    'subscription_payment_success': subscription_payment_success,
    'subscription_payment_failed': subscription_payment_failed,
    'subscription_payment_refunded': subscription_payment_refunded,
}


def handle_event(payload):
    """Dispatch a webhook payload. Returns the message for the response."""
    event_name = (payload.get('meta') or {}).get('event_name')
    handler = EVENT_HANDLERS.get(event_name)
    if handler is None:
        current_app.logger.info(f"Ignoring webhook event '{event_name}'")
        return 'Event ignored'

    data = payload.get('data') or {}
    attributes = data.get('attributes') or {}
    email = (attributes.get('user_email') or '').lower()
    if not email or 'id' not in data:
        raise BadRequest('Webhook payload is missing the subscriber email or object id')

    user = User.query.filter_by(email=email).first()
    message = handler(data, email, user)
    current_app.logger.info(f"Webhook {event_name} processed for {email}")
    return message
