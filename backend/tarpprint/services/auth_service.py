# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication Service

WHY: Every action must be attributable. Uses bcrypt for secure password
hashing and validates password strength.

One interface, two credential back ends: the IdentityProvider selected by
AUTH_PROVIDER checks credentials (see identity_providers.py); this module
owns everything around it (validation, sessions, profile upkeep).

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12)
- Minimum 8 characters with at least one letter and one digit
- Wrong email and wrong password are indistinguishable to the caller
- Session tokens managed separately (see session_service.py)
"""

import re

import bcrypt
from flask import current_app, has_app_context

from ..extensions import db
from ..models import User
from ..models.auth import USER_ROLES
from . import session_service
from .identity_providers import get_identity_provider, IdentityServiceError
from tarpprint.time_utils import utcnow


INVALID_CREDENTIALS = "Invalid email or password"

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

PROFILE_FIELDS = ("name", "phone", "address")


class PasswordValidationError(Exception):
    """Raised when password doesn't meet strength requirements."""
    pass


class AuthError(Exception):
    """Raised for authentication failures; status_code maps to the HTTP response."""
    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Requirements:
    - Minimum 8 characters
    - At least one letter
    - At least one digit

    Raises PasswordValidationError if requirements not met.
    """
    if not isinstance(password, str) or len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Za-z]', password):
        raise PasswordValidationError("Password must contain at least one letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")


def validate_email(email) -> str:
    if not isinstance(email, str) or not EMAIL_PATTERN.match(email.strip()):
        raise AuthError("Invalid email format", 400)
    return email.strip().lower()


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt with cost factor 12.

    Password is validated for strength before hashing.
    """
    validate_password_strength(password)
    rounds = current_app.config.get("BCRYPT_ROUNDS", 12) if has_app_context() else 12
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str | None) -> bool:
    """
    Verify password against bcrypt hash.

    WHY timing-safe: bcrypt.checkpw() prevents timing attacks automatically.
    Accounts without a local hash (managed provider) never match.
    """
    if not isinstance(password, str) or not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        # Malformed hash in the database
        return False


def create_user(
    email: str,
    password: str,
    name: str,
    role: str = "customer",
    phone: str | None = None,
    address: str | None = None,
) -> User:
    """
    Create a local-credential user with any role (CLI / seeding path).

    Raises:
        AuthError: invalid email, unknown role, or duplicate email
        PasswordValidationError: weak password
    """
    email = validate_email(email)
    if role not in USER_ROLES:
        raise AuthError(f"role must be one of {', '.join(USER_ROLES)}", 400)
    if not name or not str(name).strip():
        raise AuthError("Name is required", 400)

    existing = db.session.query(User).filter(db.func.lower(User.email) == email).first()
    if existing:
        raise AuthError("Email already exists", 409)

    now = utcnow()
    user = User(
        email=email,
        name=str(name).strip(),
        role=role,
        phone=phone,
        address=address,
        password_hash=hash_password(password),
        auth_provider="local",
        created_at=now,
        updated_at=now,
    )
    db.session.add(user)
    db.session.commit()
    return user


def register(
    *,
    email,
    password,
    name,
    phone: str | None = None,
    address: str | None = None,
    user_agent: str | None = None,
    ip_address: str | None = None,
):
    """
    Self-registration. Always creates a customer.

    Returns (user, session, plaintext_token).
    """
    for field, value in (("email", email), ("password", password), ("name", name)):
        if not value or (isinstance(value, str) and not value.strip()):
            raise AuthError(f"{field.capitalize()} is required", 400)

    email = validate_email(email)
    validate_password_strength(password)

    provider = get_identity_provider()
    try:
        user = provider.register(
            email=email,
            password=password,
            name=str(name).strip(),
            phone=phone,
            address=address,
        )
    except IdentityServiceError:
        current_app.logger.exception("Identity service registration failed")
        raise AuthError("Authentication service unavailable", 503)

    session, token = session_service.create_session(
        user_id=user.id, user_agent=user_agent, ip_address=ip_address
    )
    current_app.logger.info("Registered customer user_id=%s", user.id)
    return user, session, token


def authenticate(email, password) -> User | None:
    """
    Check credentials through the configured provider.

    Returns User if credentials valid and account active, None otherwise.
    Updates last_login_at on success.
    """
    if not email or not password or not isinstance(email, str):
        return None

    provider = get_identity_provider()
    try:
        user = provider.authenticate(email.strip().lower(), password)
    except IdentityServiceError:
        current_app.logger.exception("Identity service login failed")
        raise AuthError("Authentication service unavailable", 503)

    if not user or not user.is_active:
        return None

    user.last_login_at = utcnow()
    db.session.commit()
    return user


def update_profile(user: User, changes: dict) -> tuple[dict, dict]:
    """
    Update name/phone/address. Email and role are not editable here.

    Returns (old_values, new_values) for auditing.
    """
    if not isinstance(changes, dict):
        raise AuthError("Invalid JSON payload", 400)

    unknown = sorted(set(changes) - set(PROFILE_FIELDS))
    if unknown:
        raise AuthError(f"Field not allowed: {', '.join(unknown)}", 400)

    old_values, new_values = {}, {}
    for field in PROFILE_FIELDS:
        if field not in changes:
            continue
        value = changes[field]
        if value is not None:
            value = str(value).strip()
        if field == "name" and not value:
            raise AuthError("Name cannot be blank", 400)
        if getattr(user, field) != value:
            old_values[field] = getattr(user, field)
            new_values[field] = value
            setattr(user, field, value or None)

    if new_values:
        user.updated_at = utcnow()
        db.session.commit()
    return old_values, new_values


def change_password(user: User, current_password: str, new_password: str) -> None:
    """
    Change a local-credential password after re-verifying the current one.

    Managed-provider accounts change passwords at the identity service.
    """
    if user.auth_provider != "local":
        raise AuthError("Password is managed by the external identity service", 400)
    if not verify_password(current_password, user.password_hash):
        raise AuthError("Current password is incorrect", 401)
    validate_password_strength(new_password)

    user.password_hash = hash_password(new_password)
    user.updated_at = utcnow()
    db.session.commit()
