"""
Security utilities for the Taskboard API.

Includes password hashing, session token handling and the cookie-based
authentication dependencies.
"""

from datetime import datetime, timedelta, timezone
from typing import Annotated, Optional

from fastapi import Depends, HTTPException, Request, Response, status
from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from api.core.config import settings
from api.models.database import User, get_db
from api.models.schemas import SessionPayload

# =============================================================================
# Password Hashing
# =============================================================================

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.password_hash_rounds,
)


def hash_password(password: str) -> str:
    """Hash a password using bcrypt."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    return pwd_context.verify(plain_password, hashed_password)


# =============================================================================
# Session Token Handling
# =============================================================================

def create_session_token(
    user_id: int,
    email: str,
    expires_delta: timedelta | None = None,
) -> str:
    """
    Create a signed session token for a user.

    Args:
        user_id: The user's id
        email: The user's email, carried for display only
        expires_delta: Optional custom expiration time

    Returns:
        Encoded JWT token string
    """
    now = datetime.now(timezone.utc)
    if expires_delta:
        expire = now + expires_delta
    else:
        expire = now + timedelta(days=settings.jwt_expire_days)

    payload = {
        "sub": str(user_id),
        "email": email,
        "exp": expire,
        "iat": now,
    }

    return jwt.encode(
        payload,
        settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
    )


def decode_session_token(token: str) -> SessionPayload:
    """
    Decode and validate a session token.

    Expiry is checked by the JWT library itself.

    Raises:
        HTTPException: If token is invalid or expired
    """
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
        return SessionPayload(sub=payload["sub"], email=payload.get("email", ""))
    except (JWTError, KeyError, ValidationError) as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid session: {str(e)}",
        )


# =============================================================================
# Session Cookie
# =============================================================================

def set_session_cookie(response: Response, token: str) -> None:
    """Attach the session token as an HTTP-only, same-site cookie."""
    response.set_cookie(
        key=settings.auth_cookie_name,
        value=token,
        max_age=settings.jwt_expire_days * 24 * 3600,
        httponly=True,
        secure=settings.auth_cookie_secure,
        samesite=settings.auth_cookie_samesite,
        path="/",
    )


def clear_session_cookie(response: Response) -> None:
    """Expire the session cookie on the client."""
    response.delete_cookie(
        key=settings.auth_cookie_name,
        httponly=True,
        secure=settings.auth_cookie_secure,
        samesite=settings.auth_cookie_samesite,
        path="/",
    )


# =============================================================================
# Authentication Dependencies
# =============================================================================

def session_user_id(request: Request) -> Optional[int]:
    """User id carried by the request's session cookie, or None. Never raises."""
    token = request.cookies.get(settings.auth_cookie_name)
    if not token:
        return None
    try:
        return decode_session_token(token).sub
    except HTTPException:
        return None


async def get_optional_user(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Optional[User]:
    """
    FastAPI dependency resolving the session cookie to a user.

    Returns None for a missing, malformed or expired cookie and for
    tokens whose user no longer exists. Never raises.
    """
    user_id = session_user_id(request)
    if user_id is None:
        return None

    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_current_user(
    user: Annotated[Optional[User], Depends(get_optional_user)],
) -> User:
    """
    FastAPI dependency to get the current authenticated user.

    Raises:
        HTTPException: If no valid session is present
    """
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    return user


# Type aliases for dependency injection
OptionalUser = Annotated[Optional[User], Depends(get_optional_user)]
CurrentUser = Annotated[User, Depends(get_current_user)]
