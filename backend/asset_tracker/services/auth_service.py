# Overview: Service-layer operations for auth; password hashing and user administration.

"""
Authentication and user administration.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor from BCRYPT_ROUNDS, default 12)
- Minimum 6 characters
- New users and admin resets force a password change on next login
- Changing / resetting a password or deactivating a user revokes all of
  the user's tokens (see token_service.py)
"""

import bcrypt
from flask import current_app

from ..extensions import db
from ..models import User
from ..time_utils import utcnow
from ..validation import ConflictError, NotFoundError, ValidationError
from .concurrency import run_atomic
from .plant_service import get_active_plant
from . import token_service

ROLES = ("admin", "operator")
MIN_PASSWORD_LENGTH = 6


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""


def validate_password_strength(password: str | None) -> None:
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise PasswordValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")


def hash_password(password: str) -> str:
    """Validate then hash a password with bcrypt."""
    validate_password_strength(password)
    rounds = current_app.config.get("BCRYPT_ROUNDS", 12)
    hashed = bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt(rounds=rounds))
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    A malformed stored hash verifies as False rather than raising.
    """
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def get_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundError(f"User {user_id} not found", kind="USER_NOT_FOUND")
    return user


def list_users() -> list[User]:
    return db.session.query(User).order_by(User.username).all()


def create_user(username: str, password: str, role: str, plant_id: int | None = None) -> User:
    """
    Create a user. Operators must belong to a plant; admins never do.

    Raises:
        ValidationError / PasswordValidationError: bad input
        ConflictError(DUPLICATE_USER): username taken
    """
    def _op():
        name = (username or "").strip()
        if not name:
            raise ValidationError("username is required")
        if role not in ROLES:
            raise ValidationError(f"role must be one of: {', '.join(ROLES)}")
        if role != "admin" and plant_id is None:
            raise ValidationError("Plant is mandatory for non-admin users")
        if role != "admin":
            get_active_plant(plant_id)

        if db.session.query(User).filter_by(username=name).first():
            raise ConflictError(f"User {name} already exists", kind="DUPLICATE_USER")

        user = User(
            username=name,
            password_hash=hash_password(password),
            role=role,
            plant_id=None if role == "admin" else plant_id,
            is_active=True,
            force_password_change=True,
        )
        db.session.add(user)
        db.session.flush()
        return user

    return run_atomic(_op)


def authenticate(username: str, password: str) -> User | None:
    """Return the active user for these credentials, or None."""
    user = db.session.query(User).filter_by(username=(username or "").strip(), is_active=True).first()
    if not user or not verify_password(password or "", user.password_hash):
        return None

    user.last_login_at = utcnow()
    db.session.commit()
    return user


def change_password(user: User, current_password: str, new_password: str) -> None:
    """
    Change own password. Clears force_password_change and revokes every
    existing token so other devices must log in again.
    """
    def _op():
        if not current_password or not new_password:
            raise ValidationError("All fields required")
        if not verify_password(current_password, user.password_hash):
            raise ValidationError("Current password incorrect", kind="BAD_CREDENTIALS")
        user.password_hash = hash_password(new_password)
        user.force_password_change = False
        token_service.revoke_all_user_tokens(user.id, reason="Password changed")

    run_atomic(_op)


def reset_password(user_id: int, new_password: str) -> User:
    """Admin reset: sets a temporary password and forces a change at next login."""
    def _op():
        user = get_user(user_id)
        user.password_hash = hash_password(new_password)
        user.force_password_change = True
        token_service.revoke_all_user_tokens(user.id, reason="Password reset")
        return user

    return run_atomic(_op)


def toggle_user(user_id: int) -> User:
    def _op():
        user = get_user(user_id)
        user.is_active = not user.is_active
        if not user.is_active:
            token_service.revoke_all_user_tokens(user.id, reason="User deactivated")
        return user

    return run_atomic(_op)
