from ..models import db, Subscription, SubscriptionInvoice, isoformat

ACTIVE_INVOICE_STATUSES = ('paid', 'on_trial')

# Shown when the provider did not send card details
DEFAULT_CARD_BRAND = 'visa'
DEFAULT_CARD_LAST_FOUR = '9999'


def invoice_to_dict(invoice):
    return {
        'id': invoice.id,
        'subscriptionId': invoice.subscription_id,
        'status': invoice.status,
        'billingReason': invoice.billing_reason,
        'product': invoice.product,
        'total': invoice.total,
        'cardBrand': invoice.card_brand or DEFAULT_CARD_BRAND,
        'cardLastFour': invoice.card_last_four or DEFAULT_CARD_LAST_FOUR,
        'subscriptionStartAt': isoformat(invoice.subscription_start_at),
        'subscriptionEndAt': isoformat(invoice.subscription_end_at),
        'createdAt': isoformat(invoice.created_at),
    }


def get_current_subscription(email):
    """
    The newest paid or trialing invoice for an email, joined with its
    subscription. None when the user has never paid.
    """
    invoice = (
        SubscriptionInvoice.query
        .filter(SubscriptionInvoice.email == email, SubscriptionInvoice.status.in_(ACTIVE_INVOICE_STATUSES))
        .order_by(SubscriptionInvoice.created_at.desc())
        .first()
    )
    if not invoice:
        return None

    subscription = db.session.get(Subscription, invoice.subscription_id)
    data = invoice_to_dict(invoice)
    data.update({
        'subscriptionStatus': subscription.status if subscription else None,
        'variant': subscription.variant if subscription else None,
        'renewsAt': isoformat(subscription.renews_at) if subscription else None,
        'endsAt': isoformat(subscription.ends_at) if subscription else None,
        'trialEndsAt': isoformat(subscription.trial_ends_at) if subscription else None,
    })
    if subscription:
        data['cardBrand'] = subscription.card_brand or data['cardBrand']
        data['cardLastFour'] = subscription.card_last_four or data['cardLastFour']
    return data


def build_profile(user):
    invoices = (
        SubscriptionInvoice.query
        .filter_by(email=user.email)
        .order_by(SubscriptionInvoice.created_at.desc())
        .all()
    )

    return {
        'userId': user.id,
        'country': user.country,
        'plan': user.plan,
        'expirationSubscription': isoformat(user.expiration_subscription),
        'createdAt': isoformat(user.created_at),
        'userDetails': {
            'name': user.name,
            'email': user.email,
            'isVerified': user.is_verified,
            'lastLogin': isoformat(user.last_login),
            'image': user.image,
            'birthDate': isoformat(user.birth_date),
            'phoneNumber': user.phone_number,
            'institution': user.institution,
            'linkedin': user.linkedin,
            'instagram': user.instagram,
            'facebook': user.facebook,
            'x': user.x,
        },
        'subscriptions': [invoice_to_dict(invoice) for invoice in invoices],
        'currentSubscription': get_current_subscription(user.email),
    }
