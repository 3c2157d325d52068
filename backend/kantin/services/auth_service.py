# Overview: Service-layer operations for auth; password hashing and user accounts.

"""
Authentication Service

WHY: Every sale is attributable to the cashier logged in at the till.
Passwords are hashed with bcrypt and validated for strength.

SECURITY NOTES:
- Cost factor comes from BCRYPT_ROUNDS (12 in production)
- Minimum 8 characters, upper, lower, digit and special char
- Session tokens managed separately (see session_service.py)
"""

import re

import bcrypt
from flask import current_app

from ..extensions import db
from ..models import User
from kantin.time_utils import utcnow


class PasswordValidationError(Exception):
    """Raised when password doesn't meet strength requirements."""
    pass


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Raises PasswordValidationError if requirements not met.
    """
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
    """Validate strength, then hash with bcrypt."""
    validate_password_strength(password)
    rounds = current_app.config.get("BCRYPT_ROUNDS", 12)
    hashed = bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt(rounds=rounds))
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    # bcrypt.checkpw is timing-safe
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        # Malformed hash in the database
        return False


def create_user(username: str, password: str, display_name: str | None = None) -> User:
    """
    Create a cashier account.

    Raises:
        ValueError: blank or duplicate username
        PasswordValidationError: weak password
    """
    username = (username or "").strip()
    if not username:
        raise ValueError("Username is required")

    existing = db.session.query(User).filter(User.username == username).first()
    if existing:
        raise ValueError("Username already exists")

    user = User(
        username=username,
        display_name=(display_name or "").strip() or None,
        password_hash=hash_password(password),
    )
    db.session.add(user)
    db.session.commit()
    return user


def authenticate(username: str, password: str) -> User | None:
    """
    Returns User if credentials are valid and the account is active, else None.
    Updates last_login_at on success.
    """
    user = db.session.query(User).filter(
        User.username == (username or "").strip(),
        User.is_active.is_(True),
    ).first()

    if not user or not verify_password(password or "", user.password_hash):
        return None

    user.last_login_at = utcnow()
    db.session.commit()
    return user


def set_active(username: str, is_active: bool) -> User:
    user = db.session.query(User).filter_by(username=username).first()
    if not user:
        raise ValueError("User not found")
    user.is_active = is_active
    db.session.commit()
    return user
