# ================================================================================
# Payment Service
# ================================================================================
# Lemon Squeezy REST client, the local product catalogue and date helpers
# for subscription periods.
# ================================================================================

import calendar
from datetime import timedelta

import requests
from flask import current_app

from ..errors import ExternalServiceError
from ..models import db, Product, utcnow

LEMON_SQUEEZY_API_URL = 'https://api.lemonsqueezy.com/v1'


class LemonSqueezyClient:
    """Minimal JSON:API client for the Lemon Squeezy endpoints we use."""

    def __init__(self, api_key, store_id, test_mode=True, timeout=15):
        self.api_key = api_key
        self.store_id = str(store_id)
        self.test_mode = test_mode
        self.timeout = timeout

    @classmethod
    def from_config(cls):
        config = current_app.config
        return cls(
            api_key=config.get('LEMON_SQUEEZY_API_KEY'),
            store_id=config.get('LEMON_SQUEEZY_STORE_ID'),
            test_mode=config.get('LEMON_SQUEEZY_TEST_MODE', True)
        )

    def _request(self, method, path, **kwargs):
        if not self.api_key:
            raise ExternalServiceError('Lemon Squeezy is not configured')

        headers = {
            'Accept': 'application/vnd.api+json',
            'Content-Type': 'application/vnd.api+json',
            'Authorization': f'Bearer {self.api_key}'
        }
        url = path if path.startswith('http') else f'{LEMON_SQUEEZY_API_URL}{path}'

        try:
            response = requests.request(method, url, headers=headers, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            current_app.logger.error(f"Lemon Squeezy request failed: {method} {url}: {e}")
            raise ExternalServiceError('Payment provider is unavailable')

        if response.status_code >= 400:
            current_app.logger.error(
                f"Lemon Squeezy error: {method} {url} -> {response.status_code} {response.text}"
            )
            raise ExternalServiceError(f'Payment provider error: {response.status_code}')

        return response.json()

    def create_checkout(self, variant_id, email, product_name, customer_name=None):
        """Create a hosted checkout and return its URL (None if the provider sent none)."""
        body = {
            'data': {
                'type': 'checkouts',
                'attributes': {
                    'product_options': {
                        'name': product_name,
                        'description': f'Learnrithm AI {product_name} subscription'
                    },
                    'checkout_options': {'embed': True, 'media': True, 'logo': True},
                    'checkout_data': {
                        'email': email,
                        'name': customer_name or email.split('@')[0],
                        'custom': {'email': email}
                    },
                    'expires_at': None,
                    'preview': True,
                    'test_mode': self.test_mode
                },
                'relationships': {
                    'store': {'data': {'type': 'stores', 'id': self.store_id}},
                    'variant': {'data': {'type': 'variants', 'id': str(variant_id)}}
                }
            }
        }
        payload = self._request('POST', '/checkouts', json=body)
        return (payload.get('data') or {}).get('attributes', {}).get('url')

    def list_variants(self):
        """Every variant of every product, following pagination."""
        variants = []
        url = '/variants'
        while url:
            payload = self._request('GET', url)
            variants.extend(payload.get('data', []))
            url = (payload.get('links') or {}).get('next')
        return variants

    def get_product(self, product_id):
        return self._request('GET', f'/products/{product_id}').get('data')


# ================================================================================
# LOCAL PRODUCTS
# ================================================================================

def search_product(name, variant):
    return Product.query.filter_by(name=name, variant=variant).first()


def list_products():
    return [{'name': product.name, 'variant': product.variant} for product in Product.query.all()]


def sync_products(client=None):
    """Replace the local product table with the provider's variants."""
    client = client or LemonSqueezyClient.from_config()
    variants = client.list_variants()

    Product.query.delete()
    products = {}
    created = []
    for variant in variants:
        attributes = variant.get('attributes', {})
        interval = attributes.get('interval')
        if not interval:
            # One-off purchases have no billing interval
            continue

        product_id = attributes.get('product_id')
        if product_id not in products:
            products[product_id] = client.get_product(product_id)
        product = products[product_id]
        if not product:
            continue

        record = Product(
            name=product['attributes']['name'],
            name_id=str(product['id']),
            variant=attributes.get('name'),
            variant_id=str(variant['id']),
            interval=interval,
            price=attributes.get('price') or 0,
            free_trial_amount=attributes.get('trial_interval_count') or 0
        )
        db.session.add(record)
        created.append(record)

    db.session.commit()
    current_app.logger.info(f"Products synced: {len(created)} variants")
    return created


# ================================================================================
# DATE HELPERS
# ================================================================================

def add_months(date, months):
    """Same day N months later, clamped to the end of shorter months."""
    month_index = date.month - 1 + months
    year = date.year + month_index // 12
    month = month_index % 12 + 1
    day = min(date.day, calendar.monthrange(year, month)[1])
    return date.replace(year=year, month=month, day=day)


def add_years(date, years):
    try:
        return date.replace(year=date.year + years)
    except ValueError:
        # 29 February in a non-leap year
        return date.replace(year=date.year + years, day=28)


def get_end_date(interval, start=None, count=1):
    """End of a billing period of `count` intervals ('day', 'week', 'month', 'year')."""
    start = start or utcnow()
    if interval == 'day':
        return start + timedelta(days=count)
    if interval == 'week':
        return start + timedelta(weeks=count)
    if interval == 'month':
        return add_months(start, count)
    if interval == 'year':
        return add_years(start, count)
    raise ValueError(f"Unknown billing interval '{interval}'")


def get_time_difference(date):
    """Time left until `date` (negative once it has passed)."""
    return date - utcnow()
