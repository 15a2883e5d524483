"""Schemas for authentication and user management."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from hkidash.models.user import UserRole
from hkidash.schemas.record import CamelModel


class LoginRequest(BaseModel):
    """User login request."""

    email: EmailStr
    password: str


class RefreshTokenRequest(BaseModel):
    refresh_token: str = Field(..., alias="refreshToken")

    model_config = {"populate_by_name": True}


class TokenResponse(CamelModel):
    """Authentication token response."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int


class UserResponse(CamelModel):
    """User profile response."""

    id: str
    email: str
    full_name: str
    role: UserRole
    last_login_at: Optional[datetime] = None
    created_at: datetime


class UserCreate(BaseModel):
    """
    Create a dashboard account.

    Password length is checked against ``settings.password_min_length`` by
    the service, since the minimum is configurable.
    """

    email: EmailStr
    password: str
    full_name: str = Field(..., min_length=1, max_length=255, alias="fullName")
    role: UserRole = UserRole.USER

    model_config = {"populate_by_name": True, "str_strip_whitespace": True}


class UserUpdate(BaseModel):
    full_name: Optional[str] = Field(default=None, min_length=1, max_length=255, alias="fullName")
    role: Optional[UserRole] = None
    password: Optional[str] = None

    model_config = {"populate_by_name": True, "str_strip_whitespace": True}
