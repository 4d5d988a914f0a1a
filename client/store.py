"""
Taskboard - Data Synchronization Store

Client-side state for the authenticated user, their projects and a global
todo cache. The store sits between a view and the gateway:

- reads (``fetch_*``) serve cached data, refresh it from the server and
  record failures in the matching ``error_*`` field instead of raising;
- writes (``create_*``, ``update_*``, ``delete_*``, auth calls) patch the
  cache as soon as the server accepts the mutation, re-fetch the canonical
  list, and re-raise any gateway error to the caller;
- every transition is applied atomically and persisted through the
  snapshot cache, which is also consulted on a cold fetch.

One store is constructed per session and handed to the view explicitly.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass, replace
from typing import Callable, Iterable, Optional

from .gateway import Gateway, GatewayError
from .models import Project, Todo, User
from .snapshot import Snapshot, SnapshotCache

logger = logging.getLogger("taskboard.store")

Listener = Callable[["StoreState"], None]


# =============================================================================
# State
# =============================================================================

@dataclass(frozen=True)
class StoreState:
    """Immutable view of the store. A new instance is produced per transition."""

    projects: tuple[Project, ...] = ()
    all_todos: tuple[Todo, ...] = ()
    loading_projects: bool = False
    revalidating_projects: bool = False
    loading_todos: bool = False
    revalidating_todos: bool = False
    error_projects: Optional[str] = None
    error_todos: Optional[str] = None
    user: Optional[User] = None
    loading_user: bool = False
    error_user: Optional[str] = None

    def todos_for(self, project_id: int) -> list[Todo]:
        return [t for t in self.all_todos if t.project_id == project_id]

    def find_todo(self, todo_id: int) -> Optional[Todo]:
        return next((t for t in self.all_todos if t.id == todo_id), None)

    def snapshot(self) -> Snapshot:
        """The persisted subset; loading and error fields never leave memory."""
        return Snapshot(projects=self.projects, all_todos=self.all_todos, user=self.user)


def _upsert(items: tuple, item) -> tuple:
    """Replace the entry with item's id, or append item."""
    if any(existing.id == item.id for existing in items):
        return tuple(item if existing.id == item.id else existing for existing in items)
    return (*items, item)


def _replace_scope(
    todos: tuple[Todo, ...],
    project_id: int,
    fresh: Iterable[Todo],
) -> tuple[Todo, ...]:
    """Swap one project's todos for fresh ones, leaving other projects alone."""
    fresh = tuple(fresh)
    fresh_ids = {t.id for t in fresh}
    kept = tuple(
        t for t in todos
        if t.project_id != project_id and t.id not in fresh_ids
    )
    return kept + fresh


# =============================================================================
# Store
# =============================================================================

class TodoProjectStore:
    """Synchronizes projects and todos between a view and the Taskboard API."""

    def __init__(self, gateway: Gateway, snapshots: Optional[SnapshotCache] = None):
        self.gateway = gateway
        self.snapshots = snapshots or SnapshotCache()
        self._state = StoreState()
        self._persisted = Snapshot()
        self._listeners: list[Listener] = []

    @property
    def state(self) -> StoreState:
        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register a callback invoked with the new state after every transition.

        Returns:
            A function that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set(self, **changes) -> None:
        """Apply one atomic transition, persist it and notify listeners."""
        self._state = replace(self._state, **changes)

        snapshot = self._state.snapshot()
        if snapshot != self._persisted:
            self.snapshots.save(snapshot)
            self._persisted = snapshot

        for listener in list(self._listeners):
            listener(self._state)

    @contextmanager
    def _busy(self, flag: str, sibling: Optional[str] = None, **changes):
        """Raise ``flag`` for the duration of the block and always lower it."""
        changes[flag] = True
        if sibling:
            changes[sibling] = False
        self._set(**changes)
        try:
            yield
        finally:
            self._set(**{flag: False})

    # =========================================================================
    # Authentication
    # =========================================================================

    async def login(self, email: str, password: str) -> None:
        with self._busy("loading_user", error_user=None):
            try:
                await self.gateway.auth.login(email, password)
                await self.fetch_user()
            except GatewayError as e:
                logger.error(f"login failed: {e}")
                self._set(error_user=str(e) or "Login failed")
                raise

    async def register(self, email: str, password: str) -> None:
        with self._busy("loading_user", error_user=None):
            try:
                await self.gateway.auth.register(email, password)
                await self.fetch_user()
            except GatewayError as e:
                logger.error(f"registration failed: {e}")
                self._set(error_user=str(e) or "Registration failed")
                raise

    async def logout(self) -> None:
        """
        End the session and forget everything cached for it.

        The persisted snapshot is erased so the next user of this device
        does not see the previous user's data.
        """
        with self._busy("loading_user", error_user=None):
            try:
                await self.gateway.auth.logout()
            except GatewayError as e:
                logger.error(f"logout failed: {e}")
                self._set(error_user=str(e) or "Logout failed")
                raise
            self._set(user=None, projects=(), all_todos=())
            self.snapshots.erase()
            self._persisted = self._state.snapshot()
            logger.info("Logged out; local cache cleared")

    async def fetch_user(self) -> None:
        """Reflect the server's view of the session. Never raises."""
        try:
            user = await self.gateway.auth.me()
        except GatewayError as e:
            logger.debug(f"Session lookup failed: {e}")
            user = None
        self._set(user=user)

    # =========================================================================
    # Projects
    # =========================================================================

    async def fetch_projects(self) -> None:
        """Load projects, hydrating from the snapshot on a cold cache."""
        if not self._state.projects:
            changes = {}
            cached = self.snapshots.lookup()
            if cached and cached.projects:
                changes["projects"] = cached.projects
            self._set(
                loading_projects=True,
                revalidating_projects=False,
                error_projects=None,
                **changes,
            )
        else:
            self._set(
                revalidating_projects=True,
                loading_projects=False,
                error_projects=None,
            )

        try:
            projects = await self.gateway.todos.list_projects()
        except GatewayError as e:
            self._set(
                error_projects=str(e),
                loading_projects=False,
                revalidating_projects=False,
            )
            return

        self._set(
            projects=tuple(projects),
            loading_projects=False,
            revalidating_projects=False,
        )

    async def _reconcile_projects(self) -> None:
        self._set(projects=tuple(await self.gateway.todos.list_projects()))

    async def create_project(self, name: str) -> None:
        with self._busy("revalidating_projects", sibling="loading_projects"):
            try:
                project = await self.gateway.todos.create_project(name)
                self._set(projects=_upsert(self._state.projects, project))
                await self._reconcile_projects()
            except GatewayError as e:
                logger.error(f"create_project failed: {e}")
                raise

    async def update_project(self, project_id: int, name: str) -> None:
        with self._busy("revalidating_projects", sibling="loading_projects"):
            try:
                await self.gateway.todos.update_project(project_id, name)
                self._set(projects=tuple(
                    replace(p, name=name) if p.id == project_id else p
                    for p in self._state.projects
                ))
                await self._reconcile_projects()
            except GatewayError as e:
                logger.error(f"update_project failed: {e}")
                raise

    async def delete_project(self, project_id: int) -> None:
        with self._busy("revalidating_projects", sibling="loading_projects"):
            try:
                await self.gateway.todos.delete_project(project_id)
                self._set(projects=tuple(
                    p for p in self._state.projects if p.id != project_id
                ))
                await self._reconcile_projects()
            except GatewayError as e:
                logger.error(f"delete_project failed: {e}")
                raise

    def set_projects(self, projects: Iterable[Project]) -> None:
        """Seed projects from an initial payload, bypassing the load flags."""
        self._set(projects=tuple(projects))

    # =========================================================================
    # Todos
    # =========================================================================

    def get_todos_by_project(self, project_id: int) -> list[Todo]:
        """Cached todos of one project. No network, no state change."""
        return self._state.todos_for(project_id)

    async def fetch_todos(self, project_id: int) -> None:
        """Load one project's todos, hydrating from the snapshot on a cold cache."""
        if not self._state.todos_for(project_id):
            changes = {}
            cached = self.snapshots.lookup()
            stored = cached.todos_for(project_id) if cached else []
            if stored:
                changes["all_todos"] = _replace_scope(self._state.all_todos, project_id, stored)
            self._set(
                loading_todos=True,
                revalidating_todos=False,
                error_todos=None,
                **changes,
            )
        else:
            self._set(
                revalidating_todos=True,
                loading_todos=False,
                error_todos=None,
            )

        try:
            todos = await self.gateway.todos.list_todos(project_id)
        except GatewayError as e:
            self._set(
                error_todos=str(e),
                loading_todos=False,
                revalidating_todos=False,
            )
            return

        self._set(
            all_todos=_replace_scope(self._state.all_todos, project_id, todos),
            loading_todos=False,
            revalidating_todos=False,
        )

    async def _reconcile_todos(self, project_id: int) -> None:
        todos = await self.gateway.todos.list_todos(project_id)
        self._set(all_todos=_replace_scope(self._state.all_todos, project_id, todos))

    async def create_todo(self, content: str, project_id: int) -> None:
        with self._busy("revalidating_todos", sibling="loading_todos"):
            try:
                todo = await self.gateway.todos.create_todo(content, project_id)
                self._set(all_todos=_upsert(self._state.all_todos, todo))
                await self._reconcile_todos(project_id)
            except GatewayError as e:
                logger.error(f"create_todo failed: {e}")
                raise

    async def update_todo(self, todo_id: int, completed: int) -> None:
        """Set a todo's completed flag. Unknown ids are ignored."""
        todo = self._state.find_todo(todo_id)
        if todo is None:
            return

        with self._busy("revalidating_todos", sibling="loading_todos"):
            try:
                await self.gateway.todos.update_todo(todo_id, completed)
                self._set(all_todos=tuple(
                    replace(t, completed=completed) if t.id == todo_id else t
                    for t in self._state.all_todos
                ))
                await self._reconcile_todos(todo.project_id)
            except GatewayError as e:
                logger.error(f"update_todo failed: {e}")
                raise

    async def delete_todo(self, todo_id: int) -> None:
        """Delete a todo. Unknown ids are ignored."""
        todo = self._state.find_todo(todo_id)
        if todo is None:
            return

        with self._busy("revalidating_todos", sibling="loading_todos"):
            try:
                await self.gateway.todos.delete_todo(todo_id)
                self._set(all_todos=tuple(
                    t for t in self._state.all_todos if t.id != todo_id
                ))
                await self._reconcile_todos(todo.project_id)
            except GatewayError as e:
                logger.error(f"delete_todo failed: {e}")
                raise

    def set_todos_for_project(self, project_id: int, todos: Iterable[Todo]) -> None:
        """Seed one project's todos from an initial payload, bypassing the load flags."""
        self._set(all_todos=_replace_scope(self._state.all_todos, project_id, todos))
