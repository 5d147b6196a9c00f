"""Pydantic schemas for authentication."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from apps.api.auth.models import UserRole

# =============================================================================
# Request Schemas
# =============================================================================


class UserLogin(BaseModel):
    """User login request."""

    email: EmailStr
    password: str = Field(min_length=1)


# =============================================================================
# Response Schemas
# =============================================================================


class UserResponse(BaseModel):
    """User profile."""

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: str = Field(serialization_alias="_id")
    name: str
    email: str
    role: UserRole
    has_access: bool = Field(serialization_alias="hasAccess")
    last_login: datetime | None = Field(default=None, serialization_alias="lastLogin")
    login_count: int = Field(default=0, serialization_alias="loginCount")
    created_at: datetime | None = Field(default=None, serialization_alias="createdAt")


class LoginResponse(BaseModel):
    """Login response with bearer token and profile."""

    success: bool = True
    token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserResponse


class ActivityResponse(BaseModel):
    """Audit trail entry."""

    model_config = ConfigDict(from_attributes=True)

    action: str
    ip_address: str | None = Field(default=None, serialization_alias="ipAddress")
    user_agent: str | None = Field(default=None, serialization_alias="userAgent")
    timestamp: datetime
