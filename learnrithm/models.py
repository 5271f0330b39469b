# ================================================================================
# Database Models
# ================================================================================
# All SQLAlchemy models in one place for easy reference.
# ================================================================================

import uuid
from datetime import datetime, timezone
from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()


def utcnow():
    """Naive UTC timestamp, the form every DateTime column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def naive_utc(value):
    """Convert an aware datetime from a request body to naive UTC."""
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def new_id():
    return str(uuid.uuid4())


def isoformat(value):
    return value.isoformat() if value else None


class TokenType:
    ACCESS = 'access'
    REFRESH = 'refresh'
    PASSWORD_RESET = 'password_reset'
    EMAIL_VALIDATION = 'email_validation'


class NotificationType:
    EMAIL_VALIDATION = 'email_validation'
    PASSWORD_RESET = 'password_reset'
    STREAK_COURSE = 'streak_course'
    STREAK_QUIZ = 'streak_quiz'
    STREAK_SIGN = 'streak_sign'
    STREAK_HIT = 'streak_hit'
    ALL_USER = 'all_user'
    UPDATE = 'update'
    NEW_FEATURE = 'new_feature'
    SUBSCRIPTION_CREATED = 'subscription_created'
    SUBSCRIPTION_UPDATED = 'subscription_updated'
    SUBSCRIPTION_CANCELLED = 'subscription_cancelled'
    SUBSCRIPTION_EXPIRED = 'subscription_expired'
    SUBSCRIPTION_PAYMENT_SUCCESS = 'subscription_payment_success'
    SUBSCRIPTION_PAYMENT_FAILED = 'subscription_payment_failed'
    SUBSCRIPTION_PAYMENT_REFUNDED = 'subscription_payment_refunded'

    ALL = (
        EMAIL_VALIDATION, PASSWORD_RESET,
        STREAK_COURSE, STREAK_QUIZ, STREAK_SIGN, STREAK_HIT,
        ALL_USER, UPDATE, NEW_FEATURE,
        SUBSCRIPTION_CREATED, SUBSCRIPTION_UPDATED, SUBSCRIPTION_CANCELLED, SUBSCRIPTION_EXPIRED,
        SUBSCRIPTION_PAYMENT_SUCCESS, SUBSCRIPTION_PAYMENT_FAILED, SUBSCRIPTION_PAYMENT_REFUNDED,
    )


class User(db.Model):
    """
    User model with support for:
    - Email/password ("normal") and Google sign-in accounts
    - Email verification
    - Subscription plan and expiry
    - Role-based access
    """
    __tablename__ = 'users'

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    username = db.Column(db.String(100), unique=True, nullable=True, index=True)
    name = db.Column(db.String(100), nullable=True)
    password = db.Column(db.String(255), nullable=True)  # Null for Google accounts
    method = db.Column(db.String(20), default='normal')  # 'normal', 'google'
    role = db.Column(db.String(20), default='user')  # 'user', 'admin'
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)
    last_login = db.Column(db.DateTime, nullable=True)

    # Profile
    image = db.Column(db.String(500), nullable=True)
    country = db.Column(db.String(100), nullable=True)
    language = db.Column(db.String(50), default='english')
    how_did_you_find_us = db.Column(db.String(255), default='Not specified')
    who_are_you = db.Column(db.String(100), nullable=True)
    age = db.Column(db.Integer, nullable=True)
    birth_date = db.Column(db.DateTime, nullable=True)
    phone_number = db.Column(db.String(50), nullable=True)
    institution = db.Column(db.String(255), nullable=True)
    linkedin = db.Column(db.String(255), nullable=True)
    instagram = db.Column(db.String(255), nullable=True)
    facebook = db.Column(db.String(255), nullable=True)
    x = db.Column(db.String(255), nullable=True)

    # Plan
    plan = db.Column(db.String(50), default='free')
    expiration_subscription = db.Column(db.DateTime, nullable=True)

    # Status
    is_verified = db.Column(db.Boolean, default=False)
    archived = db.Column(db.Boolean, default=False)

    tokens = db.relationship('Token', backref='user', lazy=True, cascade='all, delete-orphan')
    notifiers = db.relationship('Notifier', backref='user', lazy=True, cascade='all, delete-orphan')

    def to_client(self, tokens=None):
        """The user object returned by register and login."""
        data = {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'method': self.method,
            'lastLogin': isoformat(self.last_login),
            'image': self.image,
            'plan': self.plan,
            'country': self.country,
            'howDidYouFindUs': self.how_did_you_find_us,
            'whoAreYou': self.who_are_you,
            'age': self.age,
            'birthDate': isoformat(self.birth_date),
        }
        if tokens is not None:
            data['tokens'] = tokens
        return data

    def to_dict(self):
        """Full record without the password hash."""
        data = self.to_client()
        data.update({
            'username': self.username,
            'role': self.role,
            'language': self.language,
            'isVerified': self.is_verified,
            'archived': self.archived,
            'phoneNumber': self.phone_number,
            'institution': self.institution,
            'linkedin': self.linkedin,
            'instagram': self.instagram,
            'facebook': self.facebook,
            'x': self.x,
            'expirationSubscription': isoformat(self.expiration_subscription),
            'createdAt': isoformat(self.created_at),
            'updatedAt': isoformat(self.updated_at),
        })
        return data


class Token(db.Model):
    """Issued JWTs that must be looked up again (refresh, reset, verify)."""
    __tablename__ = 'tokens'

    id = db.Column(db.Integer, primary_key=True)
    token = db.Column(db.Text, nullable=False)
    email = db.Column(db.String(255), nullable=False)
    user_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=False, index=True)
    token_type = db.Column(db.String(30), nullable=False, index=True)
    token_expires = db.Column(db.DateTime, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow)


class Subscription(db.Model):
    """A Lemon Squeezy subscription, keyed by the provider's id."""
    __tablename__ = 'subscriptions'

    id = db.Column(db.String(64), primary_key=True)
    user_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=True, index=True)
    email = db.Column(db.String(255), nullable=False, index=True)
    status = db.Column(db.String(30), nullable=False)
    product = db.Column(db.String(255), nullable=True)
    variant = db.Column(db.String(255), nullable=True)
    card_brand = db.Column(db.String(30), nullable=True)
    card_last_four = db.Column(db.String(4), nullable=True)
    trial_ends_at = db.Column(db.DateTime, nullable=True)
    renews_at = db.Column(db.DateTime, nullable=True)
    ends_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    invoices = db.relationship('SubscriptionInvoice', backref='subscription', lazy=True)

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'status': self.status,
            'product': self.product,
            'variant': self.variant,
            'cardBrand': self.card_brand,
            'cardLastFour': self.card_last_four,
            'trialEndsAt': isoformat(self.trial_ends_at),
            'renewsAt': isoformat(self.renews_at),
            'endsAt': isoformat(self.ends_at),
        }


class SubscriptionInvoice(db.Model):
    """One billing event of a subscription."""
    __tablename__ = 'subscription_invoices'

    id = db.Column(db.String(64), primary_key=True)
    subscription_id = db.Column(db.String(64), db.ForeignKey('subscriptions.id'), nullable=False, index=True)
    user_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=True, index=True)
    email = db.Column(db.String(255), nullable=False, index=True)
    status = db.Column(db.String(30), nullable=False)  # 'paid', 'pending', 'failed', 'refunded', 'on_trial'
    billing_reason = db.Column(db.String(30), nullable=True)
    product = db.Column(db.String(255), nullable=True)
    card_brand = db.Column(db.String(30), nullable=True)
    card_last_four = db.Column(db.String(4), nullable=True)
    total = db.Column(db.Integer, default=0)
    subscription_start_at = db.Column(db.DateTime, nullable=False)
    subscription_end_at = db.Column(db.DateTime, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow)


class Streak(db.Model):
    """One day of activity for a learner."""
    __tablename__ = 'streaks'
    __table_args__ = (db.UniqueConstraint('email', 'date', name='uq_streak_email_date'),)

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), nullable=False, index=True)
    date = db.Column(db.Date, nullable=False)
    activities = db.Column(db.JSON, default=list)
    point = db.Column(db.Integer, default=1)

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'date': self.date.isoformat(),
            'activities': list(self.activities or []),
            'point': self.point,
        }


class Score(db.Model):
    __tablename__ = 'scores'

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False)
    score = db.Column(db.Integer, default=0)


class Notifier(db.Model):
    """Pending notification for a user, e.g. an unanswered verification email."""
    __tablename__ = 'notifiers'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=False, index=True)
    email = db.Column(db.String(255), nullable=False)
    notify_type = db.Column(db.String(50), nullable=False)
    notify = db.Column(db.DateTime, default=utcnow)


class Product(db.Model):
    """Local copy of a Lemon Squeezy product variant."""
    __tablename__ = 'products'
    __table_args__ = (db.UniqueConstraint('name', 'variant', name='uq_product_name_variant'),)

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    name_id = db.Column(db.String(64), nullable=False)
    variant = db.Column(db.String(255), nullable=False)
    variant_id = db.Column(db.String(64), nullable=False)
    interval = db.Column(db.String(20), nullable=False)
    price = db.Column(db.Integer, default=0)
    free_trial_amount = db.Column(db.Integer, default=0)


class ReferralCode(db.Model):
    __tablename__ = 'referral_codes'

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(50), unique=True, nullable=False)
    user_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=False)
    email = db.Column(db.String(255), nullable=False)


class Referral(db.Model):
    __tablename__ = 'referrals'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=False)
    referred_user_id = db.Column(db.String(36), nullable=False)
    email = db.Column(db.String(255), nullable=False)
    referred_user_email = db.Column(db.String(255), nullable=False)
    date = db.Column(db.DateTime, default=utcnow)
    ref_code_used = db.Column(db.String(50), nullable=False)
    referring_type = db.Column(db.String(30), default='sign')
    referring_source = db.Column(db.String(30), default='signup')
