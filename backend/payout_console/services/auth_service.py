# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication Service

WHY: Sales and settlements must be attributable. Console users sign in with
email and password; their role (admin, manager, sales) gates what they can
do. A user without a role is treated as sales staff.

SECURITY NOTES:
- Passwords hashed with bcrypt (BCRYPT_ROUNDS, default 12)
- Minimum 8 characters, mixed case, digit and special char
- Session tokens managed separately (see session_service.py)
"""

import re

import bcrypt
from flask import current_app

from ..errors import ConflictError, ValidationError
from ..extensions import db
from ..models import User
from ..models.auth import VALID_ROLES
from ..time_utils import utcnow


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""


def validate_password_strength(password: str) -> None:
    """Raise PasswordValidationError unless the password is strong enough."""
    if len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str) -> str:
    validate_password_strength(password)
    rounds = current_app.config.get("BCRYPT_ROUNDS", 12)
    hashed = bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt(rounds=rounds))
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """Timing-safe bcrypt check; malformed hashes never match."""
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def _normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()


def create_user(
    email: str,
    password: str,
    role: str | None = None,
    display_name: str | None = None,
) -> User:
    """
    Create a console user.

    Raises PasswordValidationError for weak passwords, ValidationError for an
    unknown role and ConflictError for a duplicate email.
    """
    email = _normalize_email(email)
    if not email or "@" not in email:
        raise ValidationError("A valid email is required")

    if role is not None and role not in VALID_ROLES:
        raise ValidationError(f"role must be one of: {', '.join(sorted(VALID_ROLES))}")

    if db.session.query(User).filter_by(email=email).first():
        raise ConflictError(f"User {email} already exists")

    user = User(
        email=email,
        display_name=display_name,
        password_hash=hash_password(password),
        role=role,
    )
    db.session.add(user)
    db.session.commit()
    return user


def set_role(user_id: int, role: str | None) -> User:
    if role is not None and role not in VALID_ROLES:
        raise ValidationError(f"role must be one of: {', '.join(sorted(VALID_ROLES))}")
    user = db.session.get(User, user_id)
    if not user:
        raise ValidationError("User not found")
    user.role = role
    db.session.commit()
    return user


def authenticate(email: str, password: str) -> User | None:
    """
    Return the active user matching the credentials, or None.

    Updates last_login_at on success.
    """
    user = db.session.query(User).filter_by(email=_normalize_email(email)).first()
    if not user or not user.is_active:
        return None

    if not verify_password(password, user.password_hash):
        return None

    user.last_login_at = utcnow()
    db.session.commit()
    return user
