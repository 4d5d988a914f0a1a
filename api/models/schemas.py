"""
Pydantic schemas for the Taskboard API.

Request and response bodies for the auth, project, todo and cookie routes.
"""

from typing import Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, EmailStr, Field

from api.core.config import settings


# =============================================================================
# Authentication Schemas
# =============================================================================

class UserCredentials(BaseModel):
    """Schema for user login."""
    email: EmailStr
    password: str


class RegisterRequest(UserCredentials):
    """Schema for user registration."""
    password: str = Field(
        ...,
        min_length=settings.password_min_length,
        max_length=72,
    )


class UserResponse(BaseModel):
    """Authenticated identity (no password material)."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str


class OkResponse(BaseModel):
    """Acknowledgement returned by auth and cookie mutations."""
    ok: bool = True


class SessionPayload(BaseModel):
    """Decoded session token claims."""
    sub: int
    email: str


# =============================================================================
# Project Schemas
# =============================================================================

class ProjectCreate(BaseModel):
    """Schema for creating a project."""
    name: str = Field(..., min_length=1, max_length=255)


class ProjectUpdate(BaseModel):
    """Schema for renaming a project."""
    name: str = Field(..., min_length=1, max_length=255)


class ProjectResponse(BaseModel):
    """Project as returned to the owner."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    owner_user_id: int = Field(
        ..., validation_alias=AliasChoices("owner_user_id", "user_id")
    )


# =============================================================================
# Todo Schemas
# =============================================================================

class TodoCreate(BaseModel):
    """Schema for creating a todo."""
    content: str = Field(..., min_length=1, max_length=255)
    project_id: int


class TodoUpdate(BaseModel):
    """Schema for toggling a todo."""
    completed: int = Field(..., ge=0, le=1)


class TodoResponse(BaseModel):
    """Todo as returned to the owner."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    content: str
    completed: int
    project_id: int
    owner_user_id: int = Field(
        ..., validation_alias=AliasChoices("owner_user_id", "user_id")
    )


# =============================================================================
# Cookie Schemas
# =============================================================================

class CookieOptions(BaseModel):
    """Subset of Set-Cookie attributes a caller may choose."""
    httponly: bool = False
    secure: bool = False
    samesite: Optional[Literal["lax", "strict", "none"]] = "lax"
    max_age: Optional[int] = Field(None, ge=0)
    path: str = "/"


class CookieSet(BaseModel):
    """Schema for adding or replacing a cookie."""
    name: str = Field(..., min_length=1, max_length=255)
    value: str
    options: CookieOptions = Field(default_factory=CookieOptions)


# =============================================================================
# Common Response Schemas
# =============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str
    detail: Optional[str] = None
    status_code: int


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str
    database: str
