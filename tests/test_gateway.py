"""
Tests for the HTTP gateway: request shapes and error mapping.
"""

import asyncio
import json

import httpx
import pytest

from client.config import ClientConfig
from client.gateway import (
    AuthenticationError,
    Gateway,
    GatewayError,
    NetworkError,
    NotFoundError,
    ValidationError,
)
from client.models import Project, Todo, User


def make_gateway(handler):
    config = ClientConfig(api_base_url="http://testserver/api/v1")
    return Gateway(config, transport=httpx.MockTransport(handler))


def run(gateway, coro_factory):
    """Run one gateway call and close the client afterwards."""
    async def go():
        async with gateway:
            return await coro_factory(gateway)
    return asyncio.run(go())


class TestRequests:

    def test_list_todos_sends_project_id(self):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["project_id"] = request.url.params.get("project_id")
            return httpx.Response(200, json=[
                {"id": 1, "content": "a", "completed": 0, "project_id": 3, "owner_user_id": 9},
            ])

        todos = run(make_gateway(handler), lambda g: g.todos.list_todos(3))
        assert seen == {"path": "/api/v1/todos", "project_id": "3"}
        assert todos == [Todo(id=1, content="a", completed=0, project_id=3, owner_user_id=9)]

    def test_create_project_body(self):
        seen = {}

        def handler(request):
            seen["method"] = request.method
            seen["body"] = json.loads(request.content)
            return httpx.Response(201, json={"id": 5, "name": "Home", "owner_user_id": 9})

        project = run(make_gateway(handler), lambda g: g.todos.create_project("Home"))
        assert seen == {"method": "POST", "body": {"name": "Home"}}
        assert project == Project(id=5, name="Home", owner_user_id=9)

    def test_update_todo(self):
        seen = {}

        def handler(request):
            seen["method"] = request.method
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=True)

        result = run(make_gateway(handler), lambda g: g.todos.update_todo(10, 1))
        assert result is True
        assert seen == {"method": "PATCH", "path": "/api/v1/todos/10", "body": {"completed": 1}}

    def test_me_returns_user(self):
        def handler(request):
            return httpx.Response(200, json={"id": 7, "email": "alice@example.com"})

        user = run(make_gateway(handler), lambda g: g.auth.me())
        assert user == User(id=7, email="alice@example.com")

    def test_me_without_session(self):
        def handler(request):
            return httpx.Response(200, content=b"null", headers={"content-type": "application/json"})

        assert run(make_gateway(handler), lambda g: g.auth.me()) is None

    def test_session_cookie_is_replayed(self):
        seen = []

        def handler(request):
            if request.url.path.endswith("/auth/login"):
                return httpx.Response(
                    200, json={"ok": True},
                    headers={"set-cookie": "auth_token=abc; Path=/; HttpOnly"},
                )
            seen.append(request.headers.get("cookie"))
            return httpx.Response(200, json=[])

        async def flow(g):
            await g.auth.login("alice@example.com", "secret1")
            return await g.todos.list_projects()

        assert run(make_gateway(handler), flow) == []
        assert seen == ["auth_token=abc"]


class TestErrors:

    @pytest.mark.parametrize("status_code,error_cls", [
        (400, ValidationError),
        (401, AuthenticationError),
        (403, AuthenticationError),
        (404, NotFoundError),
        (500, GatewayError),
    ])
    def test_status_mapping(self, status_code, error_cls):
        def handler(request):
            return httpx.Response(
                status_code,
                json={"error": "Something", "detail": None, "status_code": status_code},
            )

        with pytest.raises(error_cls) as exc_info:
            run(make_gateway(handler), lambda g: g.todos.list_projects())
        assert str(exc_info.value) == "Something"
        assert exc_info.value.status_code == status_code

    def test_server_message_is_kept(self):
        def handler(request):
            return httpx.Response(
                401,
                json={"error": "Invalid email or password", "detail": None, "status_code": 401},
            )

        with pytest.raises(AuthenticationError, match="Invalid email or password"):
            run(make_gateway(handler), lambda g: g.auth.login("a@example.com", "nope"))

    def test_validation_detail_included(self):
        def handler(request):
            return httpx.Response(422, json={
                "error": "Validation Error",
                "detail": "body -> name: String should have at least 1 character",
                "status_code": 422,
            })

        with pytest.raises(ValidationError) as exc_info:
            run(make_gateway(handler), lambda g: g.todos.create_project(""))
        assert "body -> name" in str(exc_info.value)

    def test_non_json_error_body(self):
        def handler(request):
            return httpx.Response(502, text="Bad gateway")

        with pytest.raises(GatewayError, match="Bad gateway"):
            run(make_gateway(handler), lambda g: g.todos.list_projects())

    def test_connection_failure(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(NetworkError):
            run(make_gateway(handler), lambda g: g.todos.list_projects())

    def test_subclasses_share_base(self):
        for cls in (AuthenticationError, ValidationError, NotFoundError, NetworkError):
            assert issubclass(cls, GatewayError)


class TestMalformedSuccessBodies:

    def test_undecodable_body(self):
        def handler(request):
            return httpx.Response(200, text="<html>proxy</html>")

        with pytest.raises(GatewayError, match="Invalid response") as exc_info:
            run(make_gateway(handler), lambda g: g.auth.me())
        assert exc_info.value.status_code == 200

    @pytest.mark.parametrize("call,body", [
        (lambda g: g.auth.me(), {"id": 7}),
        (lambda g: g.auth.me(), ["alice@example.com"]),
        (lambda g: g.todos.list_projects(), [{"id": 1}]),
        (lambda g: g.todos.list_projects(), {"projects": []}),
        (lambda g: g.todos.list_todos(1), [{"id": 1, "content": "a"}]),
        (lambda g: g.todos.list_todos(1), None),
        (lambda g: g.todos.create_todo("a", 1), {"id": "not-a-number"}),
        (lambda g: g.todos.create_project("Home"), "Home"),
    ])
    def test_wrong_shape(self, call, body):
        def handler(request):
            return httpx.Response(200, json=body)

        with pytest.raises(GatewayError, match="Invalid response"):
            run(make_gateway(handler), call)
