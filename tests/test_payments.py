"""Checkout, product catalogue, date helpers and Lemon Squeezy webhooks."""

import hashlib
import hmac
import json
import logging
from datetime import datetime

import pytest

from learnrithm.errors import ExternalServiceError
from learnrithm.models import db, Notifier, NotificationType, Product, Subscription, SubscriptionInvoice, User
from learnrithm.payments import service
from learnrithm.payments.service import LemonSqueezyClient, add_months, add_years, get_end_date, sync_products

PAYMENT = '/api/v2/payment'


def _post_webhook(client, payload, secret='test-webhook-secret', signature=None):
    body = json.dumps(payload).encode('utf-8')
    if signature is None:
        signature = hmac.new(secret.encode('utf-8'), body, hashlib.sha256).hexdigest()
    return client.post(
        f'{PAYMENT}/webhook',
        data=body,
        headers={'X-Signature': signature, 'Content-Type': 'application/json'}
    )


def _subscription_event(event_name, email='learner@gmail.com', **attributes):
    data = {
        'user_email': email,
        'user_name': 'Ada Learner',
        'product_name': 'Learnrithm Pro',
        'variant_name': 'Monthly',
        'variant_id': 55,
        'status': 'active',
        'card_brand': 'mastercard',
        'card_last_four': '4242',
        'trial_ends_at': None,
        'renews_at': '2030-01-15T10:00:00.000000Z',
        'ends_at': None,
    }
    data.update(attributes)
    return {
        'meta': {'event_name': event_name},
        'data': {'type': 'subscriptions', 'id': '1001', 'attributes': data},
    }


def _invoice_event(event_name, email='learner@gmail.com', invoice_id='9001', **attributes):
    data = {
        'subscription_id': 1001,
        'user_email': email,
        'status': 'paid',
        'billing_reason': 'initial',
        'total': 999,
        'card_brand': 'visa',
        'card_last_four': '4242',
        'created_at': '2029-12-15T10:00:00.000000Z',
    }
    data.update(attributes)
    return {
        'meta': {'event_name': event_name},
        'data': {'type': 'subscription-invoices', 'id': invoice_id, 'attributes': data},
    }


@pytest.fixture
def monthly_product(app):
    with app.app_context():
        db.session.add(Product(
            name='Learnrithm Pro', name_id='1', variant='Monthly', variant_id='55',
            interval='month', price=999, free_trial_amount=7
        ))
        db.session.commit()


# ================================================================================
# DATE HELPERS
# ================================================================================

def test_add_months_clamps_to_month_end():
    assert add_months(datetime(2024, 1, 31), 1) == datetime(2024, 2, 29)
    assert add_months(datetime(2024, 11, 15), 3) == datetime(2025, 2, 15)


def test_add_years_handles_leap_day():
    assert add_years(datetime(2024, 2, 29), 1) == datetime(2025, 2, 28)
    assert add_years(datetime(2024, 6, 1), 2) == datetime(2026, 6, 1)


def test_get_end_date_by_interval():
    start = datetime(2024, 3, 10, 12, 0)
    assert get_end_date('day', start, 3) == datetime(2024, 3, 13, 12, 0)
    assert get_end_date('week', start) == datetime(2024, 3, 17, 12, 0)
    assert get_end_date('month', start) == datetime(2024, 4, 10, 12, 0)
    assert get_end_date('year', start) == datetime(2025, 3, 10, 12, 0)
    with pytest.raises(ValueError):
        get_end_date('fortnight', start)


# ================================================================================
# CHECKOUT AND PRODUCTS
# ================================================================================

def test_create_checkout_url(client, monkeypatch, monthly_product):
    calls = []

    def fake_checkout(self, variant_id, email, product_name, customer_name=None):
        calls.append((variant_id, email, product_name))
        return f'https://learnrithm.lemonsqueezy.com/checkout/buy/{variant_id}'

    monkeypatch.setattr(LemonSqueezyClient, 'create_checkout', fake_checkout)

    response = client.post(f'{PAYMENT}/createUrl', json={
        'email': 'learner@gmail.com', 'orderName': 'Learnrithm Pro', 'orderVariant': 'Monthly'
    })

    assert response.status_code == 200
    assert response.get_json()['url'] == 'https://learnrithm.lemonsqueezy.com/checkout/buy/55'
    assert calls == [('55', 'learner@gmail.com', 'Learnrithm Pro')]


def test_create_checkout_url_unknown_product(client):
    response = client.post(f'{PAYMENT}/createUrl', json={
        'email': 'learner@gmail.com', 'orderName': 'Nope', 'orderVariant': 'Monthly'
    })

    assert response.status_code == 400
    assert response.get_json()['error'] == 'Order Name invalid. Create payment failed.'


def test_create_checkout_url_without_provider_url(client, monkeypatch, monthly_product):
    monkeypatch.setattr(LemonSqueezyClient, 'create_checkout', lambda self, *args, **kwargs: None)

    response = client.post(f'{PAYMENT}/createUrl', json={
        'email': 'learner@gmail.com', 'orderName': 'Learnrithm Pro', 'orderVariant': 'Monthly'
    })
    assert response.status_code == 400


class FakeResponse:
    def __init__(self, status_code, payload):
        self.status_code = status_code
        self._payload = payload
        self.text = json.dumps(payload)

    def json(self):
        return self._payload


def test_client_builds_checkout_request(app, monkeypatch):
    requests_made = []

    def fake_request(method, url, headers=None, timeout=None, json=None):
        requests_made.append({'method': method, 'url': url, 'headers': headers, 'json': json})
        return FakeResponse(201, {'data': {'attributes': {'url': 'https://checkout.test/abc'}}})

    monkeypatch.setattr(service.requests, 'request', fake_request)

    with app.app_context():
        url = LemonSqueezyClient.from_config().create_checkout('55', 'learner@gmail.com', 'Learnrithm Pro')

    assert url == 'https://checkout.test/abc'
    sent = requests_made[0]
    assert sent['url'] == 'https://api.lemonsqueezy.com/v1/checkouts'
    assert sent['headers']['Authorization'] == 'Bearer test-lemon-key'
    relationships = sent['json']['data']['relationships']
    assert relationships['store']['data']['id'] == '161228'
    assert relationships['variant']['data']['id'] == '55'
    assert sent['json']['data']['attributes']['checkout_data']['email'] == 'learner@gmail.com'


def test_client_raises_on_provider_error(app, monkeypatch):
    monkeypatch.setattr(service.requests, 'request', lambda *args, **kwargs: FakeResponse(500, {'errors': []}))

    with app.app_context():
        with pytest.raises(ExternalServiceError):
            LemonSqueezyClient.from_config().get_product(1)


def test_sync_products_replaces_catalogue(app, monthly_product):
    class FakeClient:
        def list_variants(self):
            return [
                {'id': 11, 'attributes': {'product_id': 1, 'name': 'Yearly', 'interval': 'year',
                                          'price': 9999, 'trial_interval_count': 7}},
                {'id': 12, 'attributes': {'product_id': 1, 'name': 'Lifetime', 'interval': None}},
            ]

        def get_product(self, product_id):
            return {'id': product_id, 'attributes': {'name': 'Learnrithm Pro'}}

    with app.app_context():
        created = sync_products(FakeClient())
        assert len(created) == 1
        products = Product.query.all()
        assert [(p.name, p.variant, p.interval) for p in products] == [('Learnrithm Pro', 'Yearly', 'year')]


def test_list_products(client, monthly_product):
    response = client.get(f'{PAYMENT}/products')
    assert response.get_json()['products'] == [{'name': 'Learnrithm Pro', 'variant': 'Monthly'}]


def test_sync_products_route_requires_admin(client, make_user, auth_headers):
    user = make_user()

    response = client.post(f'{PAYMENT}/products/sync', headers=auth_headers(user))
    assert response.status_code == 403


# ================================================================================
# WEBHOOKS
# ================================================================================

def test_webhook_rejects_bad_signature(client):
    response = _post_webhook(client, _subscription_event('subscription_created'), signature='deadbeef')
    assert response.status_code == 401


def test_webhook_ignores_unknown_events(client):
    response = _post_webhook(client, {'meta': {'event_name': 'order_created'}, 'data': {}})

    assert response.status_code == 200
    assert response.get_json()['message'] == 'Event ignored'


def test_webhook_requires_email(client):
    response = _post_webhook(client, _subscription_event('subscription_created', email=''))
    assert response.status_code == 400


def test_subscription_created_sets_plan(app, client, make_user, sent_emails, monthly_product):
    user = make_user()

    response = _post_webhook(client, _subscription_event(
        'subscription_created', status='on_trial', trial_ends_at='2029-12-22T10:00:00.000000Z'
    ))

    assert response.status_code == 200
    with app.app_context():
        subscription = db.session.get(Subscription, '1001')
        assert subscription.user_id == user['id']
        assert subscription.status == 'on_trial'
        assert subscription.renews_at == datetime(2030, 1, 15, 10, 0)

        updated = db.session.get(User, user['id'])
        assert updated.plan == 'trial_monthly'
        assert updated.expiration_subscription == datetime(2029, 12, 22, 10, 0)
        assert Notifier.query.filter_by(
            user_id=user['id'], notify_type=NotificationType.SUBSCRIPTION_CREATED
        ).count() == 1
    assert sent_emails[-1]['subject'] == 'Your Learnrithm subscription is active'


def test_payment_success_then_check_status(app, client, make_user):
    make_user()
    _post_webhook(client, _subscription_event('subscription_created'))

    response = _post_webhook(client, _invoice_event('subscription_payment_success'))
    assert response.status_code == 200

    with app.app_context():
        invoice = db.session.get(SubscriptionInvoice, '9001')
        assert invoice.status == 'paid'
        assert invoice.total == 999
        assert invoice.subscription_end_at == datetime(2030, 1, 15, 10, 0)

    status = client.post(f'{PAYMENT}/checkStatus', json={'email': 'learner@gmail.com'})
    assert status.status_code == 200
    subscription = status.get_json()['subscription']
    assert subscription['status'] == 'paid'
    assert subscription['cardBrand'] == 'mastercard'


def test_invoice_before_subscription_creates_placeholder(app, client):
    response = _post_webhook(client, _invoice_event('subscription_payment_success', email='new@gmail.com'))

    assert response.status_code == 200
    with app.app_context():
        assert db.session.get(Subscription, '1001').email == 'new@gmail.com'


def test_payment_failed_records_failed_invoice(app, client, make_user, sent_emails):
    make_user()
    _post_webhook(client, _subscription_event('subscription_created'))

    _post_webhook(client, _invoice_event('subscription_payment_failed', status='pending'))

    with app.app_context():
        assert db.session.get(SubscriptionInvoice, '9001').status == 'failed'
    assert sent_emails[-1]['subject'] == 'Payment failed'

    status = client.post(f'{PAYMENT}/checkStatus', json={'email': 'learner@gmail.com'})
    assert status.status_code == 404


def test_cancel_then_expire_subscription(app, client, make_user):
    user = make_user()
    _post_webhook(client, _subscription_event('subscription_created'))

    _post_webhook(client, _subscription_event('subscription_cancelled', ends_at='2030-01-15T10:00:00.000000Z'))
    with app.app_context():
        assert db.session.get(Subscription, '1001').status == 'cancelled'
        assert db.session.get(User, user['id']).expiration_subscription == datetime(2030, 1, 15, 10, 0)

    _post_webhook(client, _subscription_event('subscription_expired'))
    with app.app_context():
        assert db.session.get(Subscription, '1001').status == 'expired'
        updated = db.session.get(User, user['id'])
        assert updated.plan == 'free'
        assert updated.expiration_subscription is None


def test_resume_clears_end_date(app, client, make_user):
    make_user()
    _post_webhook(client, _subscription_event('subscription_created'))
    _post_webhook(client, _subscription_event('subscription_cancelled', ends_at='2030-01-15T10:00:00.000000Z'))

    _post_webhook(client, _subscription_event('subscription_resumed'))

    with app.app_context():
        subscription = db.session.get(Subscription, '1001')
        assert subscription.status == 'active'
        assert subscription.ends_at is None


def test_refund_returns_user_to_free_plan(app, client, make_user):
    user = make_user()
    _post_webhook(client, _subscription_event('subscription_created'))
    _post_webhook(client, _invoice_event('subscription_payment_success'))

    response = _post_webhook(client, _invoice_event('subscription_payment_refunded', status='refunded'))

    assert response.status_code == 200
    with app.app_context():
        assert db.session.get(SubscriptionInvoice, '9001').status == 'refunded'
        assert db.session.get(User, user['id']).plan == 'free'


def test_subscription_updated_changes_plan_only_while_active(app, client, make_user):
    user = make_user()
    with app.app_context():
        db.session.add(Product(
            name='Learnrithm Pro', name_id='1', variant='Yearly', variant_id='66',
            interval='year', price=9999
        ))
        db.session.commit()
    _post_webhook(client, _subscription_event('subscription_created'))

    _post_webhook(client, _subscription_event(
        'subscription_updated', status='past_due', variant_id=66, renews_at='2031-01-15T10:00:00.000000Z'
    ))
    with app.app_context():
        assert db.session.get(Subscription, '1001').status == 'past_due'
        unchanged = db.session.get(User, user['id'])
        assert unchanged.plan == 'charged_monthly'
        assert unchanged.expiration_subscription == datetime(2030, 1, 15, 10, 0)

    response = _post_webhook(client, _subscription_event(
        'subscription_updated', status='active', variant_id=66, renews_at='2031-01-15T10:00:00.000000Z'
    ))

    assert response.get_json()['message'] == 'Subscription updated'
    with app.app_context():
        updated = db.session.get(User, user['id'])
        assert updated.plan == 'charged_yearly'
        assert updated.expiration_subscription == datetime(2031, 1, 15, 10, 0)


def test_webhook_without_secret_skips_signature_check(app, client, make_user, caplog):
    make_user()
    app.config['LEMON_SQUEEZY_WEBHOOK_SECRET'] = ''

    with caplog.at_level(logging.WARNING):
        response = _post_webhook(client, _subscription_event('subscription_created'), signature='')

    assert response.status_code == 200
    assert any('signature not checked' in record.getMessage() for record in caplog.records)
