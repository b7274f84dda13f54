# Overview: Service-layer operations for auth; password hashing, user management and login checks.

"""
Authentication Service

Every sale and void is attributed to a user. Passwords are hashed with
bcrypt (cost factor 12); the plaintext is never stored.

Password rules: at least 8 characters, containing a letter and a digit.
"""

import logging
import re

import bcrypt

from ..errors import ConflictError, NotFound, ValidationError
from ..extensions import db
from ..models import User, ROLE_ADMIN, ROLE_CASHIER
from ..time_utils import utcnow
from . import session_service


VALID_ROLES = (ROLE_ADMIN, ROLE_CASHIER)

log = logging.getLogger(__name__)


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""


def validate_password_strength(password: str) -> None:
    if len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Za-z]', password):
        raise PasswordValidationError("Password must contain at least one letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")


def hash_password(password: str, *, rounds: int = 12) -> str:
    """Hash password using bcrypt. Password is validated for strength before hashing."""
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """Return True if password matches hash. Malformed hashes never match."""
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def create_user(
    username: str,
    password: str,
    role: str = ROLE_CASHIER,
    full_name: str | None = None,
    *,
    rounds: int = 12,
) -> User:
    """
    Create new user with bcrypt password hashing.

    Raises:
        ValidationError: bad username/role, or PasswordValidationError
        ConflictError: username already taken
    """
    username = (username or "").strip()
    if not username:
        raise ValidationError("username is required")

    role = (role or "").upper()
    if role not in VALID_ROLES:
        raise ValidationError(f"role must be one of: {', '.join(VALID_ROLES)}")

    if db.session.query(User).filter_by(username=username).first():
        raise ConflictError(f"Username '{username}' already exists")

    user = User(
        username=username,
        full_name=full_name,
        password_hash=hash_password(password, rounds=rounds),
        role=role,
        is_active=True,
    )
    db.session.add(user)
    db.session.commit()
    return user


def authenticate(username: str, password: str) -> User | None:
    """
    Return the active user for username/password, or None.

    Updates last_login_at on success.
    """
    user = db.session.query(User).filter_by(username=(username or "").strip()).first()
    if not user or not user.is_active:
        return None

    if not verify_password(password or "", user.password_hash):
        return None

    user.last_login_at = utcnow()
    db.session.commit()
    return user


def list_users(include_inactive: bool = False) -> list[User]:
    query = db.session.query(User)
    if not include_inactive:
        query = query.filter(User.is_active.is_(True))
    return query.order_by(User.username.asc()).all()


def get_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if not user:
        raise NotFound("User not found", details={"user_id": user_id})
    return user


def update_user(
    user_id: int,
    *,
    username: str | None = None,
    full_name: str | None = None,
    role: str | None = None,
    password: str | None = None,
    rounds: int = 12,
) -> User:
    """
    Change a user's username, display name, role or password.

    Arguments left as None are not touched; an empty password also leaves
    the current one in place.
    """
    user = get_user(user_id)

    if username is not None:
        username = username.strip()
        if not username:
            raise ValidationError("username cannot be blank")
        taken = db.session.query(User).filter(User.username == username, User.id != user_id).first()
        if taken:
            raise ConflictError(f"Username '{username}' already exists")
        user.username = username

    if full_name is not None:
        user.full_name = full_name.strip() or None

    if role is not None:
        role = role.upper()
        if role not in VALID_ROLES:
            raise ValidationError(f"role must be one of: {', '.join(VALID_ROLES)}")
        user.role = role

    if password:
        user.password_hash = hash_password(password, rounds=rounds)

    db.session.commit()
    return user


def deactivate_user(user_id: int, *, acting_user_id: int | None = None) -> int:
    """
    Deactivate a user account and revoke all of its sessions.

    The user can no longer log in and any open terminal session (and its
    cart) is dropped. Sale history keeps pointing at the user row.
    Returns the number of sessions revoked.
    """
    user = get_user(user_id)
    if not user.is_active:
        raise ValidationError("User is already deactivated")
    if acting_user_id is not None and acting_user_id == user_id:
        raise ValidationError("Cannot deactivate your own account")

    user.is_active = False
    revoked = session_service.revoke_all_user_sessions(user.id, reason="Account deactivated")
    log.info("User %s deactivated, %d sessions revoked", user.username, revoked)
    return revoked


def reactivate_user(user_id: int) -> User:
    user = get_user(user_id)
    if user.is_active:
        raise ValidationError("User is already active")
    user.is_active = True
    db.session.commit()
    return user
