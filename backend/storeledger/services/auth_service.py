# Overview: Service-layer operations for back-office users and password login.

"""
Authentication Service

WHY: Every mutation is attributed to an actor. Users log in with a
username and password; the username is then passed to ledger operations
as the opaque actor identifier.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12)
- Minimum 8 characters required
- Inactive users cannot log in
"""

import bcrypt

from ..extensions import db
from ..models import User
from ..errors import NotFoundError, ValidationError
from .audit_service import record_audit
from .concurrency import run_atomic


ROLES = ("admin", "employee")
MIN_PASSWORD_LENGTH = 8

DEFAULT_USERS = (
    ("admin", "admin123", "admin"),
    ("employee", "employee123", "employee"),
)


def hash_password(password: str, rounds: int = 12) -> str:
    """Hash password using bcrypt. Stored as a UTF-8 string."""
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(password.encode('utf-8'), salt).decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """Return True if password matches the bcrypt hash."""
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        # Malformed stored hash
        return False


def create_user(username: str, password: str, role: str = "employee", actor: str | None = None,
                *, rounds: int = 12) -> User:
    """
    Create a back-office user.

    Raises:
        ValidationError: Unknown role, short password or duplicate username
    """
    username = (username or "").strip()
    if not username:
        raise ValidationError("username required")
    if role not in ROLES:
        raise ValidationError(f"Invalid role: {role}. Must be one of {list(ROLES)}")
    password_hash = hash_password(password, rounds=rounds)

    def _op():
        if db.session.query(User).filter_by(username=username).first():
            raise ValidationError(f"User '{username}' already exists")

        user = User(username=username, password_hash=password_hash, role=role, is_active=True)
        db.session.add(user)
        db.session.flush()
        record_audit(entity_kind="user", entity_id=user.id, action="create",
                     after=user.to_dict(), actor=actor)
        return user

    return run_atomic(_op)


def authenticate(username: str, password: str) -> User:
    """
    Check credentials.

    Raises:
        NotFoundError: Unknown or inactive user
        ValidationError: Wrong password
    """
    user = db.session.query(User).filter_by(username=(username or "").strip(), is_active=True).first()
    if not user:
        raise NotFoundError("User not found")
    if not verify_password(password or "", user.password_hash):
        raise ValidationError("Incorrect password")
    return user


def seed_default_users(*, rounds: int = 12) -> list[User]:
    """
    Create the default admin/employee users when no user exists yet.

    Safe to call repeatedly (idempotent). Change these passwords after
    first login.
    """
    if db.session.query(User).count():
        return []
    return [
        create_user(username, password, role, actor="system", rounds=rounds)
        for username, password, role in DEFAULT_USERS
    ]
