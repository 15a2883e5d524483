"""
Security utilities: password hashing and JWT tokens.
"""

import secrets
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel

from hkidash.core.config import settings

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

ALGORITHM = "HS256"


class TokenPayload(BaseModel):
    """Decoded JWT claims."""

    sub: str  # profile id
    exp: datetime
    iat: datetime
    type: str  # "access" or "refresh"
    role: str | None = None
    jti: str | None = None


class TokenPair(BaseModel):
    """Access and refresh token pair."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int


# =============================================================================
# Password Hashing
# =============================================================================


def hash_password(password: str) -> str:
    """Hash a password using bcrypt."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Check a plain password against its bcrypt hash."""
    return pwd_context.verify(plain_password, hashed_password)


# =============================================================================
# JWT Token Handling
# =============================================================================


def _encode(subject: str, token_type: str, lifetime: timedelta, claims: dict[str, Any]) -> str:
    now = datetime.now(timezone.utc)
    to_encode: dict[str, Any] = {
        "sub": str(subject),
        "exp": now + lifetime,
        "iat": now,
        "type": token_type,
        "jti": secrets.token_urlsafe(16),
        **claims,
    }
    return jwt.encode(to_encode, settings.secret_key, algorithm=ALGORITHM)


def create_access_token(
    subject: str,
    role: str | None = None,
    expires_delta: timedelta | None = None,
) -> str:
    """
    Create a JWT access token.

    Args:
        subject: Profile id
        role: Role claim copied into the token for logging only;
            authorization always re-reads the profile
        expires_delta: Custom expiration time

    Returns:
        Encoded JWT token
    """
    lifetime = expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    claims = {"role": role} if role else {}
    return _encode(subject, "access", lifetime, claims)


def create_refresh_token(subject: str, expires_delta: timedelta | None = None) -> str:
    """Create a JWT refresh token."""
    lifetime = expires_delta or timedelta(days=settings.refresh_token_expire_days)
    return _encode(subject, "refresh", lifetime, {})


def create_token_pair(subject: str, role: str | None = None) -> TokenPair:
    """Create an access and refresh token pair for a profile."""
    return TokenPair(
        access_token=create_access_token(subject, role=role),
        refresh_token=create_refresh_token(subject),
        expires_in=settings.access_token_expire_minutes * 60,
    )


def decode_token(token: str) -> TokenPayload | None:
    """
    Decode and validate a JWT token.

    Returns:
        TokenPayload if the signature and expiry are valid, None otherwise
    """
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
        return TokenPayload(
            sub=payload["sub"],
            exp=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
            iat=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
            type=payload.get("type", "access"),
            role=payload.get("role"),
            jti=payload.get("jti"),
        )
    except (JWTError, KeyError):
        return None


def verify_token(token: str, token_type: str = "access") -> TokenPayload | None:
    """Decode a token and check it is of the expected type and unexpired."""
    payload = decode_token(token)
    if payload is None or payload.type != token_type:
        return None
    if payload.exp < datetime.now(timezone.utc):
        return None
    return payload
