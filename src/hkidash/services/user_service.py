"""
User service for dashboard accounts.

Admins list, create, edit and delete accounts. The configured super
admin cannot be edited or deleted through the API, and no admin can
delete their own account.
"""

from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from hkidash.core.config import settings
from hkidash.core.exceptions import (
    AuthorizationError,
    ConflictError,
    InvalidCredentialsError,
    NotFoundError,
    ValidationError,
)
from hkidash.core.logging import get_logger
from hkidash.core.security import hash_password, verify_password
from hkidash.models.user import UserProfile, UserRole
from hkidash.schemas.user import UserCreate, UserUpdate

logger = get_logger(__name__)


def _normalize_email(email: str) -> str:
    return email.strip().lower()


def _check_password(password: str) -> None:
    if len(password) < settings.password_min_length:
        raise ValidationError(
            f"Password minimal {settings.password_min_length} karakter.",
            errors=[{"field": "password", "min_length": settings.password_min_length}],
        )


def is_super_admin(user: UserProfile) -> bool:
    return bool(settings.super_admin_email) and user.email == _normalize_email(
        settings.super_admin_email
    )


class UserService:
    """Service for dashboard account operations."""

    async def get_by_email(self, db: AsyncSession, email: str) -> UserProfile | None:
        result = await db.execute(
            select(UserProfile).where(UserProfile.email == _normalize_email(email))
        )
        return result.scalar_one_or_none()

    async def get_user(self, db: AsyncSession, user_id: str) -> UserProfile:
        user = await db.get(UserProfile, user_id)
        if user is None:
            raise NotFoundError("User", user_id)
        return user

    async def authenticate(self, db: AsyncSession, email: str, password: str) -> UserProfile:
        """
        Check credentials and stamp the login time.

        Raises:
            InvalidCredentialsError: Unknown email or wrong password
        """
        user = await self.get_by_email(db, email)
        if user is None or not verify_password(password, user.hashed_password):
            logger.info("Failed login attempt", extra={"email": _normalize_email(email)})
            raise InvalidCredentialsError()

        user.last_login_at = datetime.now(timezone.utc)
        await db.commit()
        return user

    async def list_users(self, db: AsyncSession) -> list[UserProfile]:
        result = await db.execute(select(UserProfile).order_by(UserProfile.created_at.desc()))
        return list(result.scalars().all())

    async def create_user(self, db: AsyncSession, data: UserCreate) -> UserProfile:
        """
        Create a login and its profile.

        Raises:
            ValidationError: Password shorter than the configured minimum
            ConflictError: Email already registered
        """
        _check_password(data.password)
        email = _normalize_email(data.email)
        if await self.get_by_email(db, email) is not None:
            raise ConflictError("Email sudah terdaftar.", resource="user")

        user = UserProfile(
            email=email,
            hashed_password=hash_password(data.password),
            full_name=data.full_name,
            role=data.role.value,
        )
        db.add(user)
        try:
            await db.commit()
        except IntegrityError as e:
            await db.rollback()
            raise ConflictError("Email sudah terdaftar.", resource="user") from e
        await db.refresh(user)

        logger.info(f"Created user {user.id}", extra={"role": user.role})
        return user

    async def update_user(self, db: AsyncSession, user_id: str, data: UserUpdate) -> UserProfile:
        """
        Update name, role and optionally password.

        Raises:
            NotFoundError: Unknown user
            AuthorizationError: Target is the super admin
            ValidationError: Nothing to update, or password too short
        """
        user = await self.get_user(db, user_id)
        if is_super_admin(user):
            raise AuthorizationError("Akun super admin tidak dapat diubah.", code="SUPER_ADMIN_PROTECTED")

        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if not changes:
            raise ValidationError("Tidak ada data untuk diperbarui.")

        if "password" in changes:
            _check_password(changes["password"])
            user.hashed_password = hash_password(changes["password"])
        if "full_name" in changes:
            user.full_name = changes["full_name"]
        if "role" in changes:
            user.role = UserRole(changes["role"]).value

        await db.commit()
        await db.refresh(user)
        logger.info(f"Updated user {user_id}", extra={"fields": sorted(changes)})
        return user

    async def delete_user(self, db: AsyncSession, user_id: str, current_user: UserProfile) -> None:
        """
        Delete an account.

        Raises:
            AuthorizationError: Self-delete, or the target is the super admin
            NotFoundError: Unknown user
        """
        if user_id == current_user.id:
            raise AuthorizationError("Anda tidak dapat menghapus akun Anda sendiri.", code="SELF_DELETE")

        user = await self.get_user(db, user_id)
        if is_super_admin(user):
            raise AuthorizationError("Akun super admin tidak dapat dihapus.", code="SUPER_ADMIN_PROTECTED")

        await db.delete(user)
        await db.commit()
        logger.info(f"Deleted user {user_id}")

    async def ensure_super_admin(self, db: AsyncSession) -> UserProfile | None:
        """Create the configured super admin account if it does not exist."""
        if not settings.super_admin_email or not settings.super_admin_password:
            return None

        existing = await self.get_by_email(db, settings.super_admin_email)
        if existing is not None:
            return existing

        user = UserProfile(
            email=_normalize_email(settings.super_admin_email),
            hashed_password=hash_password(settings.super_admin_password),
            full_name="Super Admin",
            role=UserRole.ADMIN.value,
        )
        db.add(user)
        await db.commit()
        logger.info("Created super admin account")
        return user
