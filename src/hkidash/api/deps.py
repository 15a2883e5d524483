"""
FastAPI dependency injection functions.

Provides reusable dependencies for authentication, database sessions and
certificate storage.
"""

from typing import Annotated

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from hkidash.core.exceptions import AuthenticationError, AuthorizationError
from hkidash.core.security import verify_token
from hkidash.db.session import get_db
from hkidash.models.user import UserProfile
from hkidash.services.storage_service import StorageService, get_storage_service

# HTTP Bearer token security scheme
bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    db: Annotated[AsyncSession, Depends(get_db)],
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> UserProfile:
    """
    Get the current authenticated user from the JWT access token.

    The role is always read from the stored profile, never from the token.

    Raises:
        AuthenticationError: If the token is missing, invalid or expired,
            or its profile no longer exists
    """
    if credentials is None:
        raise AuthenticationError()

    payload = verify_token(credentials.credentials, token_type="access")
    if payload is None:
        raise AuthenticationError("Invalid or expired token", code="INVALID_TOKEN")

    user = await db.get(UserProfile, payload.sub)
    if user is None:
        raise AuthenticationError("User not found", code="USER_NOT_FOUND")

    return user


async def get_current_admin(
    current_user: Annotated[UserProfile, Depends(get_current_user)],
) -> UserProfile:
    """
    Get the current user if they are an admin.

    Raises:
        AuthorizationError: If the user is not an admin
    """
    if not current_user.is_admin:
        raise AuthorizationError("Admin access required")
    return current_user


# Type aliases for cleaner dependency injection
CurrentUser = Annotated[UserProfile, Depends(get_current_user)]
AdminUser = Annotated[UserProfile, Depends(get_current_admin)]
DbSession = Annotated[AsyncSession, Depends(get_db)]
Storage = Annotated[StorageService, Depends(get_storage_service)]
