"""App-wide behaviour: health, headers, error shapes and the access log."""

import logging


def test_health(client):
    response = client.get('/health')

    assert response.status_code == 200
    assert response.get_json()['status'] == 'ok'


def test_index(client):
    assert client.get('/').get_json()['success'] is True


def test_security_headers(client):
    response = client.get('/health')

    assert response.headers['X-Content-Type-Options'] == 'nosniff'
    assert response.headers['X-Frame-Options'] == 'SAMEORIGIN'
    assert 'Strict-Transport-Security' not in response.headers


def test_cors_allows_configured_origin_with_credentials(client):
    response = client.get('/health', headers={'Origin': 'http://localhost:3000'})

    assert response.headers['Access-Control-Allow-Origin'] == 'http://localhost:3000'
    assert response.headers['Access-Control-Allow-Credentials'] == 'true'


def test_unknown_route_returns_json(client):
    response = client.get('/api/v2/nothing-here')

    assert response.status_code == 404
    data = response.get_json()
    assert data['success'] is False
    assert data['code'] == 'NOT_FOUND'


def test_unhandled_exception_is_hidden(app, client):
    def explode():
        raise RuntimeError('database password is hunter2')

    app.add_url_rule('/explode', 'explode', explode)

    response = client.get('/explode')

    assert response.status_code == 500
    assert response.get_json()['error'] == 'Internal Server Error'


def test_validation_errors_list_fields(client):
    response = client.post('/api/v2/payment/createUrl', json={'email': 'learner@gmail.com'})

    assert response.status_code == 400
    data = response.get_json()
    assert data['error'] == 'Validation failed'
    assert {error['field'] for error in data['errors']} == {'orderName', 'orderVariant'}


def test_client_errors_are_logged_with_reason(client, caplog):
    with caplog.at_level(logging.WARNING, logger='learnrithm.access'):
        client.post('/api/v2/auth/login', json={'email': 'ghost@gmail.com', 'password': 'Password123'})

    lines = [record.getMessage() for record in caplog.records if record.name == 'learnrithm.access']
    assert len(lines) == 1
    assert lines[0].startswith('POST /api/v2/auth/login 404')


def test_access_log_omits_query_tokens(client, caplog):
    with caplog.at_level(logging.INFO, logger='learnrithm.access'):
        client.post('/api/v2/auth/verify-email?token=secret-link-token')

    lines = [record.getMessage() for record in caplog.records if record.name == 'learnrithm.access']
    assert lines[0].startswith('POST /api/v2/auth/verify-email 404')
    assert 'secret-link-token' not in lines[0]


def test_rate_limit_returns_json_429(make_app):
    client = make_app(RATELIMIT_ENABLED=True).test_client()

    statuses = [client.get('/').status_code for _ in range(11)]
    assert statuses[:10] == [200] * 10
    assert statuses[10] == 429

    response = client.get('/')
    assert response.status_code == 429
    assert response.get_json()['code'] == 'RATE_LIMITED'

    # Health checks are exempt
    assert client.get('/health').status_code == 200
