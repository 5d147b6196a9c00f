"""Authentication service: credential checks and login bookkeeping."""

import logging

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from apps.api.auth.models import User
from apps.api.auth.security import create_access_token, verify_password
from db.models.base_model import utcnow

logger = logging.getLogger(__name__)

# =============================================================================
# Exceptions
# =============================================================================


class AuthError(Exception):
    """Base auth error."""

    pass


class InvalidCredentialsError(AuthError):
    """Invalid email or password."""

    pass


class AccessDeniedError(AuthError):
    """User account has no access to the admin API."""

    pass


# =============================================================================
# User Operations
# =============================================================================


def get_user_by_email(db: Session, email: str) -> User | None:
    """Get user by email (case-insensitive)."""
    stmt = select(User).where(func.lower(User.email) == email.lower())
    return db.execute(stmt).scalar_one_or_none()


def authenticate_user(db: Session, email: str, password: str) -> User:
    """Authenticate user with email and password."""
    user = get_user_by_email(db, email)

    if not user or not verify_password(password, user.password_hash):
        raise InvalidCredentialsError("Invalid credentials")

    if not user.has_access:
        raise AccessDeniedError("Access denied. Contact administrator.")

    return user


def record_login(db: Session, user: User) -> str:
    """Update login counters and return a fresh access token."""
    user.last_login = utcnow()
    user.login_count = (user.login_count or 0) + 1
    db.commit()
    db.refresh(user)
    logger.info("User %s logged in", user.id)
    return create_access_token(user.id, user.role.value)
