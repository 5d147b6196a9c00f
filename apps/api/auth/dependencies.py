"""FastAPI dependencies for authentication and authorization."""

from collections.abc import Callable

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from apps.api.auth.models import User, UserRole
from apps.api.auth.security import decode_access_token
from apps.api.db import get_db

# Bearer token scheme
bearer_scheme = HTTPBearer(auto_error=False)

NOT_AUTHORIZED = "Not authorized to access this route"


# =============================================================================
# User Authentication
# =============================================================================


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    """Get current authenticated user from JWT token."""
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=NOT_AUTHORIZED,
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = decode_access_token(credentials.credentials)
    user_id = payload.get("sub") if payload else None

    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=NOT_AUTHORIZED,
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = db.get(User, user_id)

    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=NOT_AUTHORIZED,
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.has_access:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied. Contact administrator.",
        )

    return user


# =============================================================================
# Role-Based Access Control
# =============================================================================


def require_role(allowed_roles: list[UserRole]) -> Callable[..., User]:
    """
    Dependency factory that checks the current user's role.

    Usage:
        @router.post("/studies")
        def create_study(user: User = Depends(require_role([UserRole.ADMIN]))):
            ...
    """

    def role_checker(user: User = Depends(get_current_user)) -> User:
        if user.role not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"User role {user.role.value} is not authorized to access this route",
            )
        return user

    return role_checker


# Convenience dependency
require_admin = require_role([UserRole.ADMIN])
