"""Shared fixtures: a fresh app with an in-memory database per test."""

import pytest

from learnrithm import create_app
from learnrithm.auth.passwords import hash_password
from learnrithm.auth.tokens import generate_access_token
from learnrithm.chat.service import message_store
from learnrithm.config import TestingConfig
from learnrithm.models import db, User


@pytest.fixture
def make_app(tmp_path):
    """Build an app from TestingConfig plus keyword overrides."""
    apps = []

    def _make(**overrides):
        settings = {
            'UPLOAD_FOLDER': str(tmp_path / 'uploads' / 'docs'),
            'POSTS_FOLDER': str(tmp_path / 'public' / 'posts'),
        }
        settings.update(overrides)
        app = create_app(type('Config', (TestingConfig,), settings))
        apps.append(app)
        return app

    yield _make

    for app in apps:
        with app.app_context():
            db.session.remove()
            db.drop_all()
    message_store.clear()


@pytest.fixture
def app(make_app):
    return make_app()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(app):
    """Insert a user and return its id, email and plain password."""

    def _make(email='learner@gmail.com', password='Password123', name='Ada Learner', **fields):
        with app.app_context():
            user = User(
                email=email,
                password=hash_password(password) if password else None,
                name=name,
                **fields
            )
            db.session.add(user)
            db.session.commit()
            return {'id': user.id, 'email': user.email, 'password': password, 'name': name}

    return _make


@pytest.fixture
def auth_headers(app):
    """Bearer header carrying a fresh access token for the given user."""

    def _headers(user):
        with app.app_context():
            token = generate_access_token(db.session.get(User, user['id']))['token']
        return {'Authorization': f'Bearer {token}'}

    return _headers


@pytest.fixture
def sent_emails(monkeypatch):
    """Record every email instead of simulating it through Mailgun."""
    from learnrithm import email_service

    sent = []

    def fake_send(to_email, subject, html_content, text_content=None):
        sent.append({'to': to_email, 'subject': subject, 'html': html_content})
        return {'success': True, 'simulated': True}

    monkeypatch.setattr(email_service, 'send_email', fake_send)
    return sent
