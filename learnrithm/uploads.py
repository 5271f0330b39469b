# ================================================================================
# File Uploads
# ================================================================================
# PDF documents for the chat (multipart field "files") and images for posts.
# Mounted under /api/v1, /api/v2 and /api/v3.
# ================================================================================

import os
import re
import secrets
import time

from flask import Blueprint, request, jsonify, current_app
from werkzeug.utils import secure_filename

from .errors import ApiError, BadRequest

upload_bp = Blueprint('upload', __name__)

PDF_MIMETYPES = ('application/pdf',)
IMAGE_EXTENSIONS = re.compile(r'jpeg|jpg|png|webp')


def is_pdf(file):
    return file.mimetype in PDF_MIMETYPES


def is_image(file):
    """Both the extension and the mimetype must name an allowed image type."""
    ext = os.path.splitext(file.filename or '')[1].lower().lstrip('.')
    return bool(IMAGE_EXTENSIONS.fullmatch(ext)) and bool(IMAGE_EXTENSIONS.search(file.mimetype or ''))


def file_size(file):
    stream = file.stream
    stream.seek(0, os.SEEK_END)
    size = stream.tell()
    stream.seek(0)
    return size


def unique_filename(field, original):
    """<field>-<timestamp>-<random><ext>, e.g. files-1700000000000-123456789.pdf"""
    ext = os.path.splitext(secure_filename(original or ''))[1].lower()
    return f'{field}-{int(time.time() * 1000)}-{secrets.randbelow(10 ** 9)}{ext}'


def save_upload(file, folder, field, max_mb):
    size = file_size(file)
    if size > max_mb * 1024 * 1024:
        raise ApiError(f'File too large. Maximum allowed size is {max_mb}MB', 413, 'FILE_TOO_LARGE')

    os.makedirs(folder, exist_ok=True)
    filename = unique_filename(field, file.filename)
    file.save(os.path.join(folder, filename))
    return {
        'filename': filename,
        'originalName': file.filename,
        'mimetype': file.mimetype,
        'size': size,
    }


@upload_bp.route('/upload', methods=['POST'])
def upload_documents():
    files = [f for f in request.files.getlist('files') if f and f.filename]
    if not files:
        raise BadRequest('No file uploaded')

    rejected = [f.filename for f in files if not is_pdf(f)]
    if rejected:
        raise BadRequest('Only PDF files are allowed', details={'rejected': rejected})

    config = current_app.config
    saved = [
        save_upload(f, config['UPLOAD_FOLDER'], 'files', config.get('MAX_FILE_SIZE_PDF_MB', 4))
        for f in files
    ]

    current_app.logger.info(f"Uploaded {len(saved)} PDF file(s)")
    return jsonify({'success': True, 'message': 'File uploaded successfully', 'files': saved})


@upload_bp.route('/upload/post', methods=['POST'])
def upload_post_image():
    file = request.files.get('image')
    if not file or not file.filename:
        raise BadRequest('No file uploaded')
    if not is_image(file):
        raise BadRequest('Only images are allowed (jpeg, jpg, png, webp)')

    config = current_app.config
    saved = save_upload(file, config['POSTS_FOLDER'], 'image', config.get('MAX_FILE_SIZE_POST_MB', 2))
    return jsonify({'success': True, 'message': 'Image uploaded successfully', 'file': saved})
