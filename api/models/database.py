"""
SQLAlchemy async models for the Taskboard API.

Uses SQLite via aiosqlite by default; PostgreSQL works through asyncpg.
"""

from datetime import datetime

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    func,
)
from sqlalchemy.ext.asyncio import AsyncAttrs, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from api.core.config import settings


# =============================================================================
# Database Engine and Session
# =============================================================================

def _engine_options(url: str) -> dict:
    """Pool options for the configured backend."""
    if url.startswith("sqlite"):
        return {"echo": settings.debug}
    return {
        "echo": settings.debug,
        "pool_pre_ping": True,
        "pool_size": 10,
        "max_overflow": 20,
    }


engine = create_async_engine(
    settings.database_url,
    **_engine_options(settings.database_url),
)

AsyncSessionLocal = async_sessionmaker(
    engine,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


async def get_db():
    """Dependency to get database session."""
    async with AsyncSessionLocal() as session:
        yield session


# =============================================================================
# Base Model
# =============================================================================

class Base(AsyncAttrs, DeclarativeBase):
    """Base class for all database models."""
    pass


# =============================================================================
# User Model
# =============================================================================

class User(Base):
    """User account model."""
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )
    hashed_password: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    # Relationships
    projects: Mapped[list["Project"]] = relationship(
        back_populates="owner",
        cascade="all, delete-orphan",
    )


# =============================================================================
# Project Model
# =============================================================================

class Project(Base):
    """A named group of todos owned by one user."""
    __tablename__ = "projects"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )
    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Relationships
    owner: Mapped["User"] = relationship(back_populates="projects")
    todos: Mapped[list["Todo"]] = relationship(
        back_populates="project",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


# =============================================================================
# Todo Model
# =============================================================================

class Todo(Base):
    """A single todo item inside a project."""
    __tablename__ = "todos"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )
    content: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    # 0/1 flag rather than a boolean on the wire
    completed: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )
    project_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Relationships
    project: Mapped["Project"] = relationship(back_populates="todos")

    __table_args__ = (
        Index("ix_todos_owner_project", "user_id", "project_id"),
    )


# =============================================================================
# Database Initialization
# =============================================================================

async def init_db():
    """Initialize database tables."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def drop_db():
    """Drop all database tables (use with caution)."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
