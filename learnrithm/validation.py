# ================================================================================
# Request Validation
# ================================================================================
# Pydantic schemas for every request body/query, plus the @validate decorator
# that parses them and stores the result on flask.g.
# ================================================================================

from datetime import datetime
from functools import wraps
from typing import Annotated, List, Literal, Optional

from flask import g, jsonify, request
from pydantic import AfterValidator, BaseModel, ConfigDict, EmailStr, Field, ValidationError, field_validator, model_validator

from .models import NotificationType


class Schema(BaseModel):
    """Base schema: camelCase aliases accepted alongside field names."""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)


# Emails are stored and looked up lower-cased
LowerEmail = Annotated[EmailStr, AfterValidator(str.lower)]


def validate(body=None, query=None):
    """
    Decorator that validates the JSON body and/or query string.

    Usage:
        @bp.route('/login', methods=['POST'])
        @validate(body=LoginBody)
        def login():
            data = g.body
    """
    def decorator(f):
        @wraps(f)
        def decorated(*args, **kwargs):
            try:
                if body is not None:
                    g.body = body.model_validate(request.get_json(silent=True) or {})
                if query is not None:
                    g.query = query.model_validate(request.args.to_dict())
            except ValidationError as e:
                errors = [
                    {'field': '.'.join(str(part) for part in err['loc']), 'message': err['msg']}
                    for err in e.errors()
                ]
                g.error_message = 'Validation failed'
                return jsonify({'success': False, 'error': 'Validation failed', 'errors': errors}), 400
            return f(*args, **kwargs)
        return decorated
    return decorator


# ================================================================================
# AUTH
# ================================================================================

class RegisterUserBody(Schema):
    # Presence of email/name/method is reported by the route as missingFields
    email: Optional[LowerEmail] = None
    name: Optional[str] = None
    method: Optional[Literal['normal', 'google']] = None
    password: Optional[str] = Field(default=None, min_length=6)
    image: Optional[str] = None
    country: Optional[str] = None
    referral_code: Optional[str] = Field(default=None, alias='referralCode')
    how_did_you_find_us: Optional[str] = Field(default=None, alias='howDidYouFindUs')
    who_are_you: Optional[str] = Field(default=None, alias='whoAreYou')
    age: Optional[int] = Field(default=None, ge=0, le=150)
    birthday: Optional[datetime] = None


class LoginBody(Schema):
    email: Optional[str] = None
    identifier: Optional[str] = None
    password: Optional[str] = None
    method: Literal['normal', 'google'] = 'normal'
    image: Optional[str] = None
    remember_me: bool = Field(default=False, alias='rememberMe')

    @model_validator(mode='after')
    def _require_identifier(self):
        if not (self.email or self.identifier):
            raise ValueError('email or identifier is required')
        return self

    @property
    def login_identifier(self):
        """As sent: emails are matched lower-cased, usernames exactly."""
        return self.email or self.identifier


class EmailBody(Schema):
    email: LowerEmail


class ResetPasswordBody(Schema):
    password: str = Field(min_length=6)


class TokenQuery(Schema):
    token: str = Field(min_length=1)


class GoogleRegisterBody(Schema):
    email: Optional[LowerEmail] = None
    name: Optional[str] = Field(default=None, alias='Name')
    image: Optional[str] = None


class GoogleLoginBody(Schema):
    email: LowerEmail
    image: Optional[str] = None


# ================================================================================
# USER
# ================================================================================

class UpdateInfoBody(Schema):
    id: str = Field(min_length=1)
    name: Optional[str] = None
    last_login: Optional[datetime] = Field(default=None, alias='lastLogin')
    image: Optional[str] = None
    birth_date: Optional[datetime] = Field(default=None, alias='birthDate')
    phone_number: Optional[str] = Field(default=None, alias='phoneNumber')
    institution: Optional[str] = None
    linkedin: Optional[str] = None
    instagram: Optional[str] = None
    facebook: Optional[str] = None
    x: Optional[str] = None

    def changes(self):
        """Only the fields the client actually sent."""
        return self.model_dump(exclude={'id'}, exclude_unset=True)


class UpdatePasswordBody(Schema):
    id: str = Field(min_length=1)
    password: str = Field(min_length=8)
    new_password: str = Field(min_length=8, alias='newPassword')


class UpdatePlanBody(Schema):
    id: str = Field(min_length=1)
    plan: str = Field(min_length=1)
    expiration_subscription: Optional[datetime] = Field(default=None, alias='expirationSubscription')


class PatchInfoBody(Schema):
    """v1 PATCH /user/info: at least one field, and a plan needs its expiry."""
    id: str = Field(min_length=1)
    name: Optional[str] = None
    last_login: Optional[datetime] = Field(default=None, alias='lastLogin')
    image: Optional[str] = Field(default=None, alias='imgThumbnail')
    plan: Optional[Literal['trial_monthly', 'trial_yearly', 'charged_monthly', 'charged_yearly']] = None
    expiration_subscription: Optional[datetime] = Field(default=None, alias='ExpirationSubscription')

    @model_validator(mode='after')
    def _check_fields(self):
        if not self.changes():
            raise ValueError('At least one field to update is required.')
        if self.plan and not self.expiration_subscription:
            raise ValueError('If a plan is provided, ExpirationSubscription is required.')
        return self

    def changes(self):
        return self.model_dump(exclude={'id'}, exclude_unset=True)


class PatchPasswordBody(Schema):
    id: str = Field(min_length=1)
    password: str = Field(min_length=8)


class CreateUserBody(Schema):
    email: LowerEmail
    password: str = Field(min_length=8)
    name: Optional[str] = None
    plan: str = 'free'
    role: Literal['user', 'admin'] = 'user'
    country: Optional[str] = None


class UserListQuery(Schema):
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=100)
    search: Optional[str] = None


# ================================================================================
# PAYMENT
# ================================================================================

class CreatePaymentBody(Schema):
    email: LowerEmail
    order_name: str = Field(min_length=1, alias='orderName')
    order_variant: str = Field(min_length=1, alias='orderVariant')


class PaymentStatusBody(Schema):
    email: LowerEmail


# ================================================================================
# STREAK / NOTIFICATION / CHAT
# ================================================================================

class StreakBody(Schema):
    email: Optional[str] = None
    activity: Optional[str] = None


class CreateNotificationBody(Schema):
    email: str = Field(min_length=1)
    type: str

    @field_validator('type')
    @classmethod
    def _known_type(cls, value):
        if value not in NotificationType.ALL:
            raise ValueError(f"Unknown notification type '{value}'")
        return value


class DeleteNotificationBody(Schema):
    id: Optional[int] = None
    email: Optional[str] = None
    type: Optional[str] = None

    @model_validator(mode='after')
    def _id_or_email_type(self):
        if self.id is None and not (self.email and self.type):
            raise ValueError('Provide an id, or an email and a type')
        return self


class FilePreview(Schema):
    id: str
    name: str
    size: int
    type: str


class ChatMessageBody(Schema):
    message_content: str = Field(min_length=1, alias='messageContent')
    files: Optional[List[FilePreview]] = None


class ChatbotBody(Schema):
    message: str = Field(min_length=1)
    context: Optional[str] = None
