"""
User management endpoints. Admin only.
"""

from fastapi import APIRouter, status

from hkidash.api.deps import AdminUser, DbSession
from hkidash.models.user import UserProfile
from hkidash.schemas.user import UserCreate, UserResponse, UserUpdate
from hkidash.services.user_service import UserService

router = APIRouter()

user_service = UserService()


@router.get("", response_model=list[UserResponse])
async def list_users(db: DbSession, current_user: AdminUser) -> list[UserProfile]:
    return await user_service.list_users(db)


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    request_obj: UserCreate,
    db: DbSession,
    current_user: AdminUser,
) -> UserProfile:
    """Create a login and its profile. Duplicate emails are rejected."""
    return await user_service.create_user(db, request_obj)


@router.patch("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: str,
    request_obj: UserUpdate,
    db: DbSession,
    current_user: AdminUser,
) -> UserProfile:
    """Change name, role or password. The super admin cannot be edited."""
    return await user_service.update_user(db, user_id, request_obj)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(user_id: str, db: DbSession, current_user: AdminUser) -> None:
    """Delete an account other than your own and other than the super admin."""
    await user_service.delete_user(db, user_id, current_user)
