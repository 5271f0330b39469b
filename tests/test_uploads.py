"""PDF and post image uploads."""

import io
import os


def _file(content, filename, content_type):
    return (io.BytesIO(content), filename, content_type)


def test_upload_pdf(app, client):
    response = client.post('/api/v2/upload', data={
        'files': [_file(b'%PDF-1.4 notes', 'notes.pdf', 'application/pdf'),
                  _file(b'%PDF-1.4 more', 'more.pdf', 'application/pdf')]
    }, content_type='multipart/form-data')

    assert response.status_code == 200
    files = response.get_json()['files']
    assert len(files) == 2
    assert files[0]['filename'].startswith('files-')
    assert files[0]['filename'].endswith('.pdf')
    assert files[0]['originalName'] == 'notes.pdf'
    assert os.path.exists(os.path.join(app.config['UPLOAD_FOLDER'], files[0]['filename']))


def test_upload_is_served_on_every_api_version(client):
    for version in ('v1', 'v3'):
        response = client.post(f'/api/{version}/upload', data={
            'files': _file(b'%PDF-1.4', 'notes.pdf', 'application/pdf')
        }, content_type='multipart/form-data')
        assert response.status_code == 200


def test_upload_rejects_non_pdf(client):
    response = client.post('/api/v2/upload', data={
        'files': _file(b'hello', 'notes.txt', 'text/plain')
    }, content_type='multipart/form-data')

    assert response.status_code == 400
    assert response.get_json()['details'] == {'rejected': ['notes.txt']}


def test_upload_without_file(client):
    response = client.post('/api/v2/upload', data={}, content_type='multipart/form-data')

    assert response.status_code == 400
    assert response.get_json()['error'] == 'No file uploaded'


def test_upload_too_large(client):
    big = b'0' * (4 * 1024 * 1024 + 1)

    response = client.post('/api/v2/upload', data={
        'files': _file(big, 'big.pdf', 'application/pdf')
    }, content_type='multipart/form-data')

    assert response.status_code == 413
    assert response.get_json()['error'] == 'File too large. Maximum allowed size is 4MB'


def test_upload_pdf_at_the_size_limit(client):
    for size in (4 * 1024 * 1024, 4 * 1024 * 1024 - 100):
        response = client.post('/api/v2/upload', data={
            'files': _file(b'0' * size, 'limit.pdf', 'application/pdf')
        }, content_type='multipart/form-data')

        assert response.status_code == 200
        assert response.get_json()['files'][0]['size'] == size


def test_oversized_body_reports_the_route_limit(client):
    big = b'0' * (5 * 1024 * 1024)

    response = client.post('/api/v2/upload/post', data={
        'image': _file(big, 'cover.png', 'image/png')
    }, content_type='multipart/form-data')

    assert response.status_code == 413
    assert response.get_json()['error'] == 'File too large. Maximum allowed size is 2MB'


def test_upload_post_image(app, client):
    response = client.post('/api/v2/upload/post', data={
        'image': _file(b'\x89PNG', 'cover.png', 'image/png')
    }, content_type='multipart/form-data')

    assert response.status_code == 200
    saved = response.get_json()['file']
    assert saved['filename'].startswith('image-')
    assert os.path.exists(os.path.join(app.config['POSTS_FOLDER'], saved['filename']))


def test_upload_post_rejects_other_types(client):
    response = client.post('/api/v2/upload/post', data={
        'image': _file(b'GIF89a', 'cover.gif', 'image/gif')
    }, content_type='multipart/form-data')
    assert response.status_code == 400


def test_upload_post_image_size_limit(client):
    big = b'0' * (2 * 1024 * 1024 + 1)

    response = client.post('/api/v2/upload/post', data={
        'image': _file(big, 'cover.jpg', 'image/jpeg')
    }, content_type='multipart/form-data')

    assert response.status_code == 413
    assert response.get_json()['error'] == 'File too large. Maximum allowed size is 2MB'
