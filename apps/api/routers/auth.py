"""Authentication routes."""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from apps.api.audit import log_activity, recent_activity
from apps.api.auth.dependencies import get_current_user
from apps.api.auth.models import User
from apps.api.auth.schemas import ActivityResponse, LoginResponse, UserLogin, UserResponse
from apps.api.auth.security import get_access_token_expiry
from apps.api.auth.service import (
    AccessDeniedError,
    InvalidCredentialsError,
    authenticate_user,
    record_login,
)
from apps.api.db import get_db
from apps.api.ratelimit import rate_limit_auth

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/login", dependencies=[Depends(rate_limit_auth)])
def login(
    data: UserLogin,
    request: Request,
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    """Login with email and password."""
    try:
        user = authenticate_user(db, data.email, data.password)
    except InvalidCredentialsError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
        ) from None
    except AccessDeniedError as e:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=str(e),
        ) from None

    token = record_login(db, user)
    log_activity(db, user, "login", request)

    response = LoginResponse(
        token=token,
        expires_in=get_access_token_expiry(),
        user=UserResponse.model_validate(user),
    )
    return response.model_dump(mode="json", by_alias=True)


@router.get("/me")
def get_me(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    """Current user profile with recent activity."""
    return {
        "success": True,
        "data": UserResponse.model_validate(user).model_dump(mode="json", by_alias=True),
        "activity": [
            ActivityResponse.model_validate(entry).model_dump(mode="json", by_alias=True)
            for entry in recent_activity(db, user)
        ],
    }


@router.post("/logout")
def logout(
    request: Request,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    """
    Record a logout.

    Tokens are stateless; the client discards its bearer token.
    """
    log_activity(db, user, "logout", request)
    return {"success": True, "message": "Logged out successfully"}
