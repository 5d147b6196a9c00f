"""Security utilities for password hashing and JWT tokens."""

import secrets
from datetime import UTC, datetime, timedelta

import jwt
from passlib.context import CryptContext

from apps.api.config import get_settings

# =============================================================================
# Configuration
# =============================================================================

ALGORITHM = "HS256"

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


# =============================================================================
# Password Hashing
# =============================================================================


def hash_password(password: str) -> str:
    """Hash a password using bcrypt."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    return pwd_context.verify(plain_password, hashed_password)


# =============================================================================
# JWT Access Tokens
# =============================================================================


def create_access_token(
    user_id: str,
    role: str,
    expires_delta: timedelta | None = None,
) -> str:
    """Create a JWT access token."""
    now = datetime.now(UTC)
    if expires_delta is None:
        expires_delta = timedelta(minutes=get_settings().access_token_expire_minutes)

    payload = {
        "sub": str(user_id),
        "role": role,
        "exp": now + expires_delta,
        "iat": now,
        "jti": secrets.token_hex(16),  # unique token id
    }

    return jwt.encode(payload, get_settings().secret_key, algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict | None:
    """Decode and validate a JWT access token.

    Returns:
        Token payload dict if valid, None if invalid/expired.
    """
    try:
        return jwt.decode(token, get_settings().secret_key, algorithms=[ALGORITHM])
    except jwt.ExpiredSignatureError:
        return None
    except jwt.InvalidTokenError:
        return None


def get_access_token_expiry() -> int:
    """Get access token expiry in seconds."""
    return get_settings().access_token_expire_minutes * 60
