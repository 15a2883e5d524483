"""
Authentication endpoints.

Handles login, token refresh and the current profile.
"""

from fastapi import APIRouter

from hkidash.api.deps import CurrentUser, DbSession
from hkidash.core.exceptions import AuthenticationError
from hkidash.core.logging import get_logger
from hkidash.core.security import create_token_pair, verify_token
from hkidash.models.user import UserProfile
from hkidash.schemas.user import LoginRequest, RefreshTokenRequest, TokenResponse, UserResponse
from hkidash.services.user_service import UserService

logger = get_logger(__name__)

router = APIRouter()


@router.post("/login", response_model=TokenResponse)
async def login(request_obj: LoginRequest, db: DbSession) -> TokenResponse:
    """
    Authenticate a user and return tokens.

    Validates email/password and returns access and refresh tokens.
    """
    user = await UserService().authenticate(db, request_obj.email, request_obj.password)
    token_pair = create_token_pair(user.id, role=user.role)

    logger.info("User logged in", extra={"user_id": user.id})
    return TokenResponse(**token_pair.model_dump())


@router.post("/refresh", response_model=TokenResponse)
async def refresh_token(request_obj: RefreshTokenRequest, db: DbSession) -> TokenResponse:
    """Exchange a refresh token for a new token pair."""
    payload = verify_token(request_obj.refresh_token, token_type="refresh")
    if payload is None:
        raise AuthenticationError("Invalid or expired refresh token", code="INVALID_TOKEN")

    user = await db.get(UserProfile, payload.sub)
    if user is None:
        raise AuthenticationError("User not found", code="USER_NOT_FOUND")

    token_pair = create_token_pair(user.id, role=user.role)
    return TokenResponse(**token_pair.model_dump())


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: CurrentUser) -> UserProfile:
    """Get the current user's profile."""
    return current_user
