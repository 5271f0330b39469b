# ================================================================================
# User Routes
# ================================================================================
# v2 (/api/v2/user): profile lookups by email and self-service updates.
# v1 (/api/v1/user): lookups by id and PATCH /info, /password.
# ================================================================================

from datetime import datetime

from flask import jsonify, g, current_app

from . import user_bp, user_v1_bp
from .profile import build_profile
from ..auth.decorators import token_required, owner_or_admin_required
from ..auth.passwords import hash_password, is_password_match
from ..errors import error_response
from ..models import db, User, naive_utc
from ..validation import (
    validate, UpdateInfoBody, UpdatePasswordBody, UpdatePlanBody,
    PatchInfoBody, PatchPasswordBody
)


def apply_changes(user, changes):
    for field, value in changes.items():
        setattr(user, field, naive_utc(value) if isinstance(value, datetime) else value)
    db.session.commit()


# ================================================================================
# V2 - BY EMAIL
# ================================================================================

@user_bp.route('/<email>', methods=['GET'])
@token_required
def get_profile(email):
    user = User.query.filter_by(email=email.lower()).first()
    if not user:
        return error_response('User not found', 404)
    return jsonify({'success': True, 'user': build_profile(user)})


@user_bp.route('/get-country-plan/<email>', methods=['GET'])
@token_required
def get_country_plan(email):
    user = User.query.filter_by(email=email.lower()).first()
    if not user:
        return error_response('User not found', 404)
    return jsonify({'success': True, 'country': user.country, 'plan': user.plan})


@user_bp.route('/update-password', methods=['POST'])
@token_required
@owner_or_admin_required('id')
@validate(body=UpdatePasswordBody)
def update_password():
    """Change password (requires current password)."""
    data = g.body
    user = db.session.get(User, data.id)
    if not user:
        return error_response('User not found', 404)

    if not is_password_match(data.password, user.password):
        return error_response('Current password incorrect', 401)

    user.password = hash_password(data.new_password)
    db.session.commit()

    current_app.logger.info(f"Password changed for {user.email}")
    return jsonify({'success': True, 'message': 'Password updated successfully'})


@user_bp.route('/update-plan', methods=['POST'])
@token_required
@owner_or_admin_required('id')
@validate(body=UpdatePlanBody)
def update_plan():
    data = g.body
    user = db.session.get(User, data.id)
    if not user:
        return error_response('User not found', 404)

    user.plan = data.plan
    user.expiration_subscription = naive_utc(data.expiration_subscription)
    db.session.commit()

    current_app.logger.info(f"Plan for {user.email} set to {user.plan}")
    return jsonify({'success': True, 'message': 'Plan updated successfully', 'user': user.to_dict()})


@user_bp.route('/update-info', methods=['POST'])
@token_required
@owner_or_admin_required('id')
@validate(body=UpdateInfoBody)
def update_info():
    data = g.body
    user = db.session.get(User, data.id)
    if not user:
        return error_response('User not found', 404)

    apply_changes(user, data.changes())
    return jsonify({'success': True, 'message': 'User info updated successfully', 'user': user.to_dict()})


# ================================================================================
# V1 - BY ID
# ================================================================================

@user_v1_bp.route('/<user_id>', methods=['GET'])
@token_required
def get_user(user_id):
    user = db.session.get(User, user_id)
    if not user:
        return error_response('User not found', 404)
    return jsonify({'success': True, 'user': user.to_dict()})


@validate(body=PatchInfoBody)
def patch_info():
    user = db.session.get(User, g.body.id)
    if not user:
        return error_response('User not found', 404)

    apply_changes(user, g.body.changes())
    return jsonify({'success': True, 'user': user.to_dict()})


@validate(body=PatchPasswordBody)
def patch_password():
    user = db.session.get(User, g.body.id)
    if not user:
        return error_response('User not found', 404)

    user.password = hash_password(g.body.password)
    db.session.commit()
    return jsonify({'success': True, 'message': 'Password updated successfully'})


PATCH_HANDLERS = {
    'info': patch_info,
    'password': patch_password,
}


@user_v1_bp.route('/<update_type>', methods=['PATCH'])
@token_required
@owner_or_admin_required('id')
def patch_user(update_type):
    handler = PATCH_HANDLERS.get(update_type)
    if handler is None:
        return error_response(f"Unknown update type '{update_type}'. Use 'info' or 'password'.", 400)
    return handler()
