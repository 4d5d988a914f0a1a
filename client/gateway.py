"""
Taskboard - Remote Data Gateway

Typed async client for the Taskboard API. Calls are grouped by resource the
same way the server groups them (``gateway.auth.*`` and ``gateway.todos.*``).

The session cookie set by ``auth.login`` lives in the HTTP client's cookie
jar and is sent implicitly; nothing here reads or writes it directly.
"""

import logging
from typing import Any, Callable, Optional, TypeVar

import httpx

from .config import ClientConfig
from .models import Project, Todo, User

logger = logging.getLogger("taskboard.gateway")

T = TypeVar("T")


# =============================================================================
# Exceptions
# =============================================================================

class GatewayError(Exception):
    """Base exception for gateway calls. ``str(err)`` is the server message."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class AuthenticationError(GatewayError):
    """No valid session, or bad credentials."""


class ValidationError(GatewayError):
    """Input rejected by the server."""


class NotFoundError(GatewayError):
    """Row missing or owned by another user."""


class NetworkError(GatewayError):
    """Transport-level failure; the server was never heard from."""


_STATUS_ERRORS: dict[int, type[GatewayError]] = {
    400: ValidationError,
    401: AuthenticationError,
    403: AuthenticationError,
    404: NotFoundError,
    422: ValidationError,
}


def _parse(parse: Callable[[Any], T], data: Any) -> T:
    """Build models from a decoded body; a body of the wrong shape is a GatewayError."""
    try:
        return parse(data)
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise GatewayError(f"Invalid response: {e}") from e


def _error_from_response(response: httpx.Response) -> GatewayError:
    """Build the matching GatewayError from an error response."""
    message = None
    try:
        body = response.json()
    except ValueError:
        body = None

    if isinstance(body, dict):
        message = body.get("error") or body.get("detail")
        if response.status_code == 422 and body.get("detail"):
            message = f"{body.get('error', 'Validation Error')}: {body['detail']}"

    if not message:
        message = response.text or f"HTTP {response.status_code}"

    error_cls = _STATUS_ERRORS.get(response.status_code, GatewayError)
    return error_cls(str(message), status_code=response.status_code)


# =============================================================================
# Resources
# =============================================================================

class AuthResource:
    """``auth.*`` calls."""

    def __init__(self, gateway: "Gateway"):
        self._gateway = gateway

    async def register(self, email: str, password: str) -> dict[str, Any]:
        return await self._gateway.request(
            "POST", "/auth/register", json={"email": email, "password": password}
        )

    async def login(self, email: str, password: str) -> dict[str, Any]:
        return await self._gateway.request(
            "POST", "/auth/login", json={"email": email, "password": password}
        )

    async def logout(self) -> dict[str, Any]:
        return await self._gateway.request("POST", "/auth/logout")

    async def me(self) -> Optional[User]:
        """Identity behind the current session, or None."""
        data = await self._gateway.request("GET", "/auth/me")
        return _parse(User.from_dict, data) if data is not None else None


class TodosResource:
    """``todos.*`` calls: projects and the todos inside them."""

    def __init__(self, gateway: "Gateway"):
        self._gateway = gateway

    # === Projects ===

    async def list_projects(self) -> list[Project]:
        data = await self._gateway.request("GET", "/todos/projects")
        return _parse(lambda rows: [Project.from_dict(p) for p in rows], data)

    async def create_project(self, name: str) -> Project:
        data = await self._gateway.request("POST", "/todos/projects", json={"name": name})
        return _parse(Project.from_dict, data)

    async def update_project(self, project_id: int, name: str) -> bool:
        return await self._gateway.request(
            "PATCH", f"/todos/projects/{project_id}", json={"name": name}
        )

    async def delete_project(self, project_id: int) -> bool:
        return await self._gateway.request("DELETE", f"/todos/projects/{project_id}")

    # === Todos ===

    async def list_todos(self, project_id: int) -> list[Todo]:
        data = await self._gateway.request(
            "GET", "/todos", params={"project_id": project_id}
        )
        return _parse(lambda rows: [Todo.from_dict(t) for t in rows], data)

    async def create_todo(self, content: str, project_id: int) -> Todo:
        data = await self._gateway.request(
            "POST", "/todos", json={"content": content, "project_id": project_id}
        )
        return _parse(Todo.from_dict, data)

    async def update_todo(self, todo_id: int, completed: int) -> bool:
        return await self._gateway.request(
            "PATCH", f"/todos/{todo_id}", json={"completed": completed}
        )

    async def delete_todo(self, todo_id: int) -> bool:
        return await self._gateway.request("DELETE", f"/todos/{todo_id}")


# =============================================================================
# Gateway
# =============================================================================

class Gateway:
    """HTTP client for the Taskboard API."""

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config or ClientConfig()
        self._transport = transport
        self._http_client: Optional[httpx.AsyncClient] = None

        self.auth = AuthResource(self)
        self.todos = TodosResource(self)

    @property
    def http_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None or self._http_client.is_closed:
            self._http_client = httpx.AsyncClient(
                base_url=self.config.api_base_url,
                timeout=httpx.Timeout(self.config.api_timeout),
                transport=self._transport,
            )
        return self._http_client

    @property
    def cookies(self) -> httpx.Cookies:
        """Cookie jar carrying the session."""
        return self.http_client.cookies

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._http_client and not self._http_client.is_closed:
            await self._http_client.aclose()

    async def __aenter__(self) -> "Gateway":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def request(self, method: str, endpoint: str, **kwargs) -> Any:
        """
        Perform one API call and return the decoded JSON body.

        Raises:
            GatewayError: (or a subclass) carrying the server's message
        """
        try:
            response = await self.http_client.request(method, endpoint, **kwargs)
        except httpx.RequestError as e:
            logger.warning(f"Network error on {method} {endpoint}: {e}")
            raise NetworkError(f"Network error: {e}") from e

        if response.is_error:
            error = _error_from_response(response)
            logger.debug(f"{method} {endpoint} failed: {response.status_code} {error}")
            raise error

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            logger.warning(f"{method} {endpoint} returned an undecodable body: {e}")
            raise GatewayError(
                f"Invalid response: {e}", status_code=response.status_code
            ) from e
