# ================================================================================
# Admin User Management
# ================================================================================
# Mounted under /api/v1/admin/users. Every route needs an admin access token.
# ================================================================================

from flask import jsonify, g, current_app
from sqlalchemy import or_

from . import admin_bp
from ..auth.decorators import token_required, admin_required
from ..auth.passwords import hash_password
from ..errors import error_response
from ..models import db, User, Subscription, SubscriptionInvoice, Referral, ReferralCode
from ..validation import validate, CreateUserBody, UserListQuery


@admin_bp.route('/users', methods=['GET'])
@token_required
@admin_required
@validate(query=UserListQuery)
def list_users():
    """Paginated user list with a case-insensitive search on email and name."""
    query = g.query
    users = User.query
    if query.search:
        pattern = f'%{query.search}%'
        users = users.filter(or_(User.email.ilike(pattern), User.name.ilike(pattern)))

    total = users.count()
    page = (
        users.order_by(User.created_at.desc())
        .offset((query.page - 1) * query.limit)
        .limit(query.limit)
        .all()
    )
    if not page:
        return error_response('No users found', 404)

    return jsonify({
        'success': True,
        'data': {
            'total_users': total,
            'page': query.page,
            'limit': query.limit,
            'users': [user.to_dict() for user in page]
        }
    })


@admin_bp.route('/users', methods=['POST'])
@token_required
@admin_required
@validate(body=CreateUserBody)
def create_user():
    data = g.body
    if User.query.filter_by(email=data.email).first():
        return error_response('User already exists', 409)

    user = User(
        email=data.email,
        password=hash_password(data.password),
        name=data.name or data.email.split('@')[0],
        method='normal',
        plan=data.plan,
        role=data.role,
        country=data.country
    )
    db.session.add(user)
    db.session.commit()

    current_app.logger.info(f"Admin {g.current_user.email} created user {user.email}")
    return jsonify({'success': True, 'user': user.to_dict()}), 201


@admin_bp.route('/users/<user_id>', methods=['DELETE'])
@token_required
@admin_required
def delete_user(user_id):
    user = db.session.get(User, user_id)
    if not user:
        return error_response('User not found', 404)

    # Billing history is kept, detached from the account
    Subscription.query.filter_by(user_id=user.id).update({'user_id': None})
    SubscriptionInvoice.query.filter_by(user_id=user.id).update({'user_id': None})
    Referral.query.filter_by(user_id=user.id).delete()
    ReferralCode.query.filter_by(user_id=user.id).delete()

    db.session.delete(user)
    db.session.commit()

    current_app.logger.info(f"Admin {g.current_user.email} deleted user {user.email}")
    return jsonify({'success': True, 'message': 'User deleted successfully'})
