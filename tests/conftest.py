"""
Shared fixtures: a throwaway SQLite database wired into the API and
store/gateway doubles for the client tests.
"""

import os
import tempfile

# Cheap hashing and an isolated database before the api package reads settings
os.environ.setdefault("PASSWORD_HASH_ROUNDS", "4")
os.environ.setdefault(
    "DATABASE_URL",
    "sqlite+aiosqlite:///" + os.path.join(tempfile.gettempdir(), "taskboard_test.db"),
)

from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from client.snapshot import MemorySnapshotStorage, SnapshotCache
from client.store import TodoProjectStore

SNAPSHOT_KEY = "todo-project-store"


@pytest.fixture
def override_db(tmp_path):
    """Point the API's get_db dependency at a fresh SQLite file."""
    from api.main import app
    from api.models.database import Base, get_db

    db_file = tmp_path / "api.db"

    sync_engine = create_engine(f"sqlite:///{db_file}")
    Base.metadata.create_all(sync_engine)
    sync_engine.dispose()

    # NullPool: each request may run on its own event loop
    engine = create_async_engine(f"sqlite+aiosqlite:///{db_file}", poolclass=NullPool)
    session_factory = async_sessionmaker(engine, expire_on_commit=False)

    async def get_test_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = get_test_db
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def api_client(override_db):
    """TestClient bound to the test database."""
    from fastapi.testclient import TestClient
    return TestClient(override_db)


@pytest.fixture
def other_api_client(override_db):
    """Second client with its own cookie jar, for a second user."""
    from fastapi.testclient import TestClient
    return TestClient(override_db)


@pytest.fixture
def fake_gateway():
    """Gateway double whose calls are AsyncMocks."""
    gateway = MagicMock()
    for name in ("register", "login", "logout", "me"):
        setattr(gateway.auth, name, AsyncMock(return_value=None))
    for name in (
        "list_projects", "create_project", "update_project", "delete_project",
        "list_todos", "create_todo", "update_todo", "delete_todo",
    ):
        setattr(gateway.todos, name, AsyncMock(return_value=None))
    gateway.auth.me.return_value = None
    gateway.todos.list_projects.return_value = []
    gateway.todos.list_todos.return_value = []
    return gateway


@pytest.fixture
def storage():
    return MemorySnapshotStorage()


@pytest.fixture
def store(fake_gateway, storage):
    return TodoProjectStore(fake_gateway, SnapshotCache(storage, key=SNAPSHOT_KEY))
