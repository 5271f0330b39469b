# ================================================================================
# Notification Routes
# ================================================================================
# Mounted under /api/v2/notification. A Notifier row is a pending message the
# frontend shows until it is deleted.
# ================================================================================

from flask import jsonify, g, current_app

from . import notification_bp
from ..errors import error_response
from ..models import db, User, Notifier, isoformat
from ..validation import validate, CreateNotificationBody, DeleteNotificationBody


def notifier_to_dict(notifier):
    return {
        'id': notifier.id,
        'email': notifier.email,
        'type': notifier.notify_type,
        'notify': isoformat(notifier.notify),
    }


@notification_bp.route('', methods=['POST'])
@validate(body=CreateNotificationBody)
def create_notification():
    data = g.body
    email = data.email.lower()
    user = User.query.filter_by(email=email).first()
    if not user:
        current_app.logger.warning(f"Notification of type {data.type} not created: cannot find user {email}")
        return error_response('cannot find user', 404)

    notifier = Notifier(user_id=user.id, email=email, notify_type=data.type)
    db.session.add(notifier)
    db.session.commit()

    current_app.logger.info(f"Notification of type {data.type} created for {email}")
    return jsonify({'success': True, 'message': 'Notification Created', 'notification': notifier_to_dict(notifier)})


@notification_bp.route('/<email>', methods=['GET'])
def list_notifications(email):
    notifiers = (
        Notifier.query
        .filter_by(email=email.lower())
        .order_by(Notifier.notify.desc())
        .all()
    )
    return jsonify({'success': True, 'notifications': [notifier_to_dict(n) for n in notifiers]})


@notification_bp.route('', methods=['DELETE'])
@validate(body=DeleteNotificationBody)
def delete_notification():
    """Delete one notification by id, or every notification of a type for a user."""
    data = g.body
    if data.id is not None:
        deleted = Notifier.query.filter_by(id=data.id).delete()
        message = 'Notification Deleted using id'
    else:
        deleted = Notifier.query.filter_by(email=data.email.lower(), notify_type=data.type).delete()
        message = 'Notification Deleted using email'
    db.session.commit()

    if not deleted:
        return error_response('Notification not found', 404)

    current_app.logger.info(f"{message} ({deleted} removed)")
    return jsonify({'success': True, 'message': message, 'deleted': deleted})
