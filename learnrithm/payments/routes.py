# ================================================================================
# Payment Routes
# ================================================================================
# Mounted under /api/v2/payment.
# ================================================================================

from flask import request, jsonify, g, current_app

from . import payment_bp
from .service import LemonSqueezyClient, search_product, list_products, sync_products, get_time_difference
from .webhooks import verify_signature, handle_event, parse_datetime
from ..auth.decorators import token_required, admin_required
from ..errors import error_response
from ..models import User
from ..security import limiter
from ..users.profile import get_current_subscription
from ..validation import validate, CreatePaymentBody, PaymentStatusBody


@payment_bp.route('/createUrl', methods=['POST'])
@validate(body=CreatePaymentBody)
def create_payment():
    """Create a Lemon Squeezy checkout URL for a product variant."""
    data = g.body
    product = search_product(data.order_name, data.order_variant)
    if not product:
        return error_response('Order Name invalid. Create payment failed.', 400)

    user = User.query.filter_by(email=data.email).first()
    client = LemonSqueezyClient.from_config()
    url = client.create_checkout(
        product.variant_id,
        data.email,
        product.name,
        customer_name=user.name if user else None
    )
    if not url:
        return error_response('Failed to create Checkout URL.', 400)

    current_app.logger.info(f"Checkout created for {data.email}: {product.name} / {product.variant}")
    return jsonify({'success': True, 'message': 'Checkout URL created successfully.', 'url': url})


@payment_bp.route('/checkStatus', methods=['POST'])
@validate(body=PaymentStatusBody)
def check_status():
    subscription = get_current_subscription(g.body.email)
    if not subscription:
        return error_response('No active subscription found', 404)

    end = parse_datetime(subscription['subscriptionEndAt'])
    remaining = get_time_difference(end) if end else None
    return jsonify({
        'success': True,
        'subscription': subscription,
        'remainingDays': max(remaining.days, 0) if remaining is not None else None
    })


@payment_bp.route('/products', methods=['GET'])
def get_products():
    return jsonify({'success': True, 'products': list_products()})


@payment_bp.route('/products/sync', methods=['POST'])
@token_required
@admin_required
def sync_product_catalogue():
    products = sync_products()
    return jsonify({'success': True, 'message': 'Products synced', 'count': len(products)})


@payment_bp.route('/webhook', methods=['POST'])
@limiter.exempt
def webhook():
    """Lemon Squeezy subscription and invoice events."""
    secret = current_app.config.get('LEMON_SQUEEZY_WEBHOOK_SECRET')
    if secret:
        if not verify_signature(request.get_data(), request.headers.get('X-Signature'), secret):
            current_app.logger.warning(f"Rejected webhook with a bad signature from {request.remote_addr}")
            return error_response('Invalid signature', 401)
    else:
        current_app.logger.warning('LEMON_SQUEEZY_WEBHOOK_SECRET is not set; webhook signature not checked')

    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return error_response('Invalid webhook payload', 400)

    return jsonify({'success': True, 'message': handle_event(payload)})
