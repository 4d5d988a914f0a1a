"""
End-to-end tests: the real store and gateway talking to the API in-process.
"""

import asyncio

import httpx
import pytest

from client.config import ClientConfig
from client.gateway import AuthenticationError, Gateway, ValidationError
from client.snapshot import MemorySnapshotStorage, SnapshotCache
from client.store import TodoProjectStore

SNAPSHOT_KEY = "todo-project-store"


@pytest.fixture
def connect(override_db):
    """Build a store wired to the in-process API."""
    def factory(storage=None):
        gateway = Gateway(
            ClientConfig(api_base_url="http://testserver/api/v1"),
            transport=httpx.ASGITransport(app=override_db),
        )
        snapshots = SnapshotCache(storage or MemorySnapshotStorage(), key=SNAPSHOT_KEY)
        return TodoProjectStore(gateway, snapshots)
    return factory


def test_full_session(connect):
    storage = MemorySnapshotStorage()
    store = connect(storage)

    async def scenario():
        async with store.gateway:
            await store.register("alice@example.com", "secret1")
            assert store.state.user is None

            await store.login("alice@example.com", "secret1")
            assert store.state.user.email == "alice@example.com"

            await store.create_project("Home")
            await store.create_project("Work")
            home, work = store.state.projects
            assert (home.name, work.name) == ("Home", "Work")

            await store.create_todo("Buy milk", home.id)
            await store.create_todo("Ship report", work.id)
            await store.fetch_todos(home.id)
            milk = store.get_todos_by_project(home.id)[0]
            assert milk.content == "Buy milk"
            assert milk.completed == 0

            await store.update_todo(milk.id, 1)
            assert store.state.find_todo(milk.id).completed == 1
            await store.update_todo(milk.id, 0)
            assert store.state.find_todo(milk.id).completed == 0

            await store.update_project(work.id, "Office")
            assert [p.name for p in store.state.projects] == ["Home", "Office"]

            await store.delete_todo(milk.id)
            assert store.get_todos_by_project(home.id) == []

            await store.delete_project(work.id)
            assert [p.id for p in store.state.projects] == [home.id]

            assert SNAPSHOT_KEY in storage.data
            await store.logout()

    asyncio.run(scenario())

    assert store.state.user is None
    assert store.state.projects == ()
    assert SNAPSHOT_KEY not in storage.data


def test_bad_login_surfaces_server_message(connect):
    store = connect()

    async def scenario():
        async with store.gateway:
            await store.register("alice@example.com", "secret1")
            await store.login("alice@example.com", "not-the-password")

    with pytest.raises(AuthenticationError, match="Invalid email or password"):
        asyncio.run(scenario())
    assert store.state.error_user == "Invalid email or password"


def test_duplicate_registration(connect):
    store = connect()

    async def scenario():
        async with store.gateway:
            await store.register("alice@example.com", "secret1")
            await store.register("alice@example.com", "secret1")

    with pytest.raises(ValidationError, match="User already exists"):
        asyncio.run(scenario())


def test_reads_without_session_record_errors(connect):
    store = connect()

    async def scenario():
        async with store.gateway:
            await store.fetch_user()
            await store.fetch_projects()
            await store.fetch_todos(1)

    asyncio.run(scenario())

    assert store.state.user is None
    assert store.state.error_projects == "Not authenticated"
    assert store.state.error_todos == "Not authenticated"


def test_empty_project_name_is_rejected(connect):
    store = connect()

    async def scenario():
        async with store.gateway:
            await store.register("alice@example.com", "secret1")
            await store.login("alice@example.com", "secret1")
            await store.create_project("")

    with pytest.raises(ValidationError):
        asyncio.run(scenario())
    assert store.state.projects == ()


def test_snapshot_serves_next_session(connect):
    storage = MemorySnapshotStorage()

    async def first_session():
        store = connect(storage)
        async with store.gateway:
            await store.register("alice@example.com", "secret1")
            await store.login("alice@example.com", "secret1")
            await store.create_project("Home")
            return store.gateway.cookies.get("auth_token")

    token = asyncio.run(first_session())
    assert token

    second = connect(storage)
    seen_during_load = []

    def record(state):
        if state.loading_projects:
            seen_during_load.append([p.name for p in state.projects])

    async def second_session():
        async with second.gateway:
            second.gateway.cookies.set("auth_token", token)
            second.subscribe(record)
            await second.fetch_projects()

    asyncio.run(second_session())

    assert seen_during_load and seen_during_load[0] == ["Home"]
    assert [p.name for p in second.state.projects] == ["Home"]


def test_users_do_not_see_each_other(connect):
    alice, bob = connect(), connect()

    async def scenario():
        async with alice.gateway, bob.gateway:
            await alice.register("alice@example.com", "secret1")
            await alice.login("alice@example.com", "secret1")
            await alice.create_project("Alice's")

            await bob.register("bob@example.com", "secret1")
            await bob.login("bob@example.com", "secret1")
            await bob.fetch_projects()
            assert bob.state.projects == ()

            project_id = alice.state.projects[0].id
            await bob.fetch_todos(project_id)
            assert bob.get_todos_by_project(project_id) == []

    asyncio.run(scenario())
