"""
Authentication routes for the Taskboard API.

Handles user registration, login, logout and the current-session lookup.
The session travels as an HTTP-only cookie; no token is returned in the body.
"""

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from api.core.security import (
    OptionalUser,
    clear_session_cookie,
    create_session_token,
    hash_password,
    set_session_cookie,
    verify_password,
)
from api.models.database import User, get_db
from api.models.schemas import (
    ErrorResponse,
    OkResponse,
    RegisterRequest,
    UserCredentials,
    UserResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


# =============================================================================
# Registration
# =============================================================================

@router.post(
    "/register",
    response_model=OkResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        201: {"description": "User created successfully"},
        400: {"description": "User already exists", "model": ErrorResponse},
    },
    summary="Register a new user",
    description="Create a new user account with email and password.",
)
async def register(
    user_data: RegisterRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> OkResponse:
    """
    Register a new user.

    - **email**: Valid email address (must be unique)
    - **password**: Password (minimum length is configurable)

    Registration does not log the user in.
    """
    existing = await db.execute(
        select(User).where(User.email == user_data.email)
    )
    if existing.scalar_one_or_none():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="User already exists",
        )

    new_user = User(
        email=user_data.email,
        hashed_password=hash_password(user_data.password),
    )

    try:
        db.add(new_user)
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="User already exists",
        )

    logger.info(f"Registered user {new_user.id}")
    return OkResponse()


# =============================================================================
# Login / Logout
# =============================================================================

@router.post(
    "/login",
    response_model=OkResponse,
    responses={
        200: {"description": "Login successful, session cookie set"},
        401: {"description": "Invalid credentials", "model": ErrorResponse},
    },
    summary="Login and start a session",
    description="Authenticate with email and password; the session is stored in a cookie.",
)
async def login(
    credentials: UserCredentials,
    response: Response,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> OkResponse:
    """Authenticate user and set the session cookie."""
    result = await db.execute(
        select(User).where(User.email == credentials.email)
    )
    user = result.scalar_one_or_none()

    if not user or not verify_password(credentials.password, user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )

    set_session_cookie(response, create_session_token(user.id, user.email))
    return OkResponse()


@router.post(
    "/logout",
    response_model=OkResponse,
    summary="Logout",
    description="Clear the session cookie. Succeeds with or without a session.",
)
async def logout(response: Response) -> OkResponse:
    """Clear the session cookie."""
    clear_session_cookie(response)
    return OkResponse()


# =============================================================================
# Current User
# =============================================================================

@router.get(
    "/me",
    response_model=Optional[UserResponse],
    summary="Get current user",
    description="Identity behind the session cookie, or null when there is none.",
)
async def get_current_user_info(
    current_user: OptionalUser,
) -> Optional[UserResponse]:
    """Reflect the session cookie; never fails for a missing session."""
    if current_user is None:
        return None
    return UserResponse.model_validate(current_user)
