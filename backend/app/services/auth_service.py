# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication Service

Admin/staff accounts. Uses bcrypt for password hashing; the token side
(signing, verification) lives in token_service.py.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor from BCRYPT_ROUNDS, default 12)
- Minimum 8 characters required on creation
- Emails are matched case-insensitively (stored lower-cased)
- authenticate() returns None for both "unknown email" and "wrong password"
"""

import bcrypt
from flask import current_app
from ..extensions import db
from ..models import User
from ..models.auth import ROLE_ADMIN


class PasswordValidationError(Exception):
    """Raised when password doesn't meet strength requirements."""
    pass


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Raises PasswordValidationError if requirements not met.
    """
    if not password or len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")
    if len(password) > 200:
        raise PasswordValidationError("Password must be at most 200 characters long")


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt.

    Password is validated for strength before hashing.
    """
    validate_password_strength(password)
    rounds = current_app.config.get("BCRYPT_ROUNDS", 12)
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    Returns True if password matches hash, False otherwise (including
    malformed hashes).
    """
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def create_user(email: str, password: str, name: str | None = None, role: str = ROLE_ADMIN) -> User:
    """
    Create new user with bcrypt password hashing.

    Raises:
        ValueError: If a user with this email already exists
        PasswordValidationError: If password doesn't meet requirements
    """
    email = normalize_email(email)
    existing = db.session.query(User).filter_by(email=email).first()
    if existing:
        raise ValueError("A user with this email already exists")

    user = User(email=email, name=name, role=role, password_hash=hash_password(password))
    db.session.add(user)
    db.session.commit()
    return user


def upsert_admin(email: str, password: str, name: str | None = None) -> User:
    """
    Create or reset an admin account (bootstrap flow).

    An existing account with the same email gets its password and name
    replaced and its role forced to ADMIN.
    """
    email = normalize_email(email)
    password_hash = hash_password(password)

    user = db.session.query(User).filter_by(email=email).first()
    if user is None:
        user = User(email=email)
        db.session.add(user)
    user.name = name
    user.role = ROLE_ADMIN
    user.password_hash = password_hash
    db.session.commit()
    return user


def authenticate(email: str, password: str) -> User | None:
    """
    Authenticate user with email and password.

    Returns User if credentials valid, None otherwise. Callers must not tell
    the client which of the two checks failed.
    """
    user = db.session.query(User).filter_by(email=normalize_email(email)).first()
    if not user:
        return None
    if not verify_password(password, user.password_hash):
        return None
    return user


def get_user(user_id: str) -> User | None:
    return db.session.get(User, user_id)
