"""Google account endpoints (/api/v3/google)."""

import requests

from learnrithm.auth import google
from learnrithm.models import User

GOOGLE = '/api/v3/google'


def test_register_google_user_with_country_from_ip(app, client, monkeypatch, sent_emails):
    seen = []

    def fake_lookup(ip):
        seen.append(ip)
        return 'Nigeria'

    monkeypatch.setattr(google, 'lookup_country', fake_lookup)

    response = client.post(
        f'{GOOGLE}/register',
        json={'email': 'Ada@Gmail.com', 'Name': 'Ada Lovelace', 'image': 'https://img.learnrithm.com/a.png'},
        headers={'X-Forwarded-For': '102.89.1.10, 10.0.0.1'}
    )

    assert response.status_code == 201
    assert seen == ['102.89.1.10']
    with app.app_context():
        user = User.query.filter_by(email='ada@gmail.com').one()
        assert user.method == 'google'
        assert user.country == 'Nigeria'
        assert user.password is None
    assert sent_emails[0]['subject'] == 'Welcome to Learnrithm AI'


def test_register_google_requires_email_and_name(client):
    response = client.post(f'{GOOGLE}/register', json={'email': 'ada@gmail.com'})
    assert response.status_code == 400


def test_register_google_rejects_existing_email(client, make_user):
    make_user(email='ada@gmail.com')

    response = client.post(f'{GOOGLE}/register', json={'email': 'ada@gmail.com', 'name': 'Ada'})
    assert response.status_code == 409


def test_login_google_user(client, make_user):
    make_user(email='ada@gmail.com', password=None, method='google')

    response = client.post(f'{GOOGLE}/login', json={'email': 'ada@gmail.com'})

    assert response.status_code == 200
    assert 'refresh' in response.get_json()['user']['tokens']


def test_login_google_does_not_match_password_accounts(client, make_user):
    make_user(email='ada@gmail.com')

    response = client.post(f'{GOOGLE}/login', json={'email': 'ada@gmail.com'})
    assert response.status_code == 404


def test_lookup_country_skips_private_addresses(app, monkeypatch):
    def fail(*args, **kwargs):
        raise AssertionError('no lookup expected')

    monkeypatch.setattr(google.requests, 'get', fail)
    with app.app_context():
        assert google.lookup_country('127.0.0.1') == 'Unknown'
        assert google.lookup_country('192.168.1.20') == 'Unknown'
        assert google.lookup_country('not-an-ip') == 'Unknown'


def test_lookup_country_handles_provider_failure(app, monkeypatch):
    def boom(*args, **kwargs):
        raise requests.ConnectionError('offline')

    monkeypatch.setattr(google.requests, 'get', boom)
    with app.app_context():
        assert google.lookup_country('8.8.8.8') == 'Unknown'
