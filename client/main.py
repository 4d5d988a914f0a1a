#!/usr/bin/env python3
"""
Taskboard - Command Line Client

A small terminal view over the synchronization store.

Usage:
    taskboard register alice@example.com
    taskboard login alice@example.com
    taskboard projects
    taskboard add-project "Home"
    taskboard todos 1
    taskboard add-todo 1 "Buy milk"
    taskboard done 10
"""

import argparse
import asyncio
import getpass
import json
import logging
import sys
from pathlib import Path
from typing import Optional

from .config import ClientConfig
from .gateway import Gateway, GatewayError
from .snapshot import SnapshotCache, SQLiteSnapshotStorage
from .store import StoreState, TodoProjectStore

logger = logging.getLogger("taskboard.cli")


# =============================================================================
# Session Cookie Persistence
# =============================================================================

def load_cookies(gateway: Gateway, path: Path) -> None:
    """Restore cookies saved by a previous run."""
    if not path.exists():
        return
    try:
        saved = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.warning(f"Ignoring unreadable cookie file {path}: {e}")
        return
    for cookie in saved:
        gateway.cookies.set(
            cookie["name"],
            cookie["value"],
            domain=cookie.get("domain", ""),
            path=cookie.get("path", "/"),
        )


def save_cookies(gateway: Gateway, path: Path) -> None:
    """Write the cookie jar so the next run keeps the session."""
    cookies = [
        {"name": c.name, "value": c.value, "domain": c.domain, "path": c.path}
        for c in gateway.cookies.jar
    ]
    path.write_text(json.dumps(cookies), encoding="utf-8")


# =============================================================================
# Rendering
# =============================================================================

def print_projects(state: StoreState) -> None:
    if state.error_projects:
        print(f"Error: {state.error_projects}")
    if not state.projects:
        print("No projects.")
        return
    for project in state.projects:
        print(f"  [{project.id}] {project.name}")


def print_todos(store: TodoProjectStore, project_id: int) -> None:
    state = store.state
    if state.error_todos:
        print(f"Error: {state.error_todos}")
    todos = store.get_todos_by_project(project_id)
    if not todos:
        print("No todos.")
        return
    for todo in todos:
        mark = "x" if todo.is_done else " "
        print(f"  [{mark}] {todo.id}: {todo.content}")


# =============================================================================
# Commands
# =============================================================================

def hydrate(store: TodoProjectStore) -> None:
    """Seed the store from the snapshot left by the previous run."""
    snapshot = store.snapshots.lookup()
    if snapshot is None:
        return
    store.set_projects(snapshot.projects)
    for project_id in {t.project_id for t in snapshot.all_todos}:
        store.set_todos_for_project(project_id, snapshot.todos_for(project_id))


async def run_command(store: TodoProjectStore, args: argparse.Namespace) -> int:
    """Execute one parsed command. Returns the process exit code."""
    command = args.command

    if command in ("register", "login"):
        password = args.password or getpass.getpass("Password: ")
        if command == "register":
            await store.register(args.email, password)
            print("Registered. You can now log in.")
        else:
            await store.login(args.email, password)
            print(f"Logged in as {store.state.user.email if store.state.user else args.email}")
        return 0

    if command == "logout":
        await store.logout()
        print("Logged out.")
        return 0

    if command == "whoami":
        await store.fetch_user()
        user = store.state.user
        print(f"{user.email} (id {user.id})" if user else "Not logged in.")
        return 0 if user else 1

    if command == "projects":
        await store.fetch_projects()
        print_projects(store.state)
        return 1 if store.state.error_projects else 0

    if command == "add-project":
        await store.create_project(args.name)
        print_projects(store.state)
        return 0

    if command == "rename-project":
        await store.update_project(args.project_id, args.name)
        print_projects(store.state)
        return 0

    if command == "rm-project":
        await store.delete_project(args.project_id)
        print_projects(store.state)
        return 0

    if command == "todos":
        await store.fetch_todos(args.project_id)
        print_todos(store, args.project_id)
        return 1 if store.state.error_todos else 0

    if command == "add-todo":
        await store.create_todo(args.content, args.project_id)
        print_todos(store, args.project_id)
        return 0

    if command in ("done", "undone", "rm-todo"):
        todo = store.state.find_todo(args.todo_id)
        if todo is None:
            print(f"Unknown todo {args.todo_id}; list its project with 'todos' first.")
            return 1
        if command == "rm-todo":
            await store.delete_todo(args.todo_id)
        else:
            await store.update_todo(args.todo_id, 1 if command == "done" else 0)
        print_todos(store, todo.project_id)
        return 0

    raise ValueError(f"Unknown command: {command}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="taskboard", description="Taskboard command line client")
    parser.add_argument("--api-url", help="API base URL (default: %(default)s)",
                        default=ClientConfig.api_base_url)
    parser.add_argument("--cache-dir", type=Path, help="Where to keep the snapshot and session")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")

    sub = parser.add_subparsers(dest="command", required=True)

    for name in ("register", "login"):
        p = sub.add_parser(name, help=f"{name.capitalize()} with email and password")
        p.add_argument("email")
        p.add_argument("--password", help="Password (prompted when omitted)")

    sub.add_parser("logout", help="End the session and clear the local cache")
    sub.add_parser("whoami", help="Show the logged-in user")
    sub.add_parser("projects", help="List projects")

    p = sub.add_parser("add-project", help="Create a project")
    p.add_argument("name")

    p = sub.add_parser("rename-project", help="Rename a project")
    p.add_argument("project_id", type=int)
    p.add_argument("name")

    p = sub.add_parser("rm-project", help="Delete a project")
    p.add_argument("project_id", type=int)

    p = sub.add_parser("todos", help="List the todos of a project")
    p.add_argument("project_id", type=int)

    p = sub.add_parser("add-todo", help="Add a todo to a project")
    p.add_argument("project_id", type=int)
    p.add_argument("content")

    for name, text in (("done", "Mark a todo complete"),
                       ("undone", "Mark a todo incomplete"),
                       ("rm-todo", "Delete a todo")):
        p = sub.add_parser(name, help=text)
        p.add_argument("todo_id", type=int)

    return parser


async def main_async(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    config = ClientConfig(api_base_url=args.api_url)
    if args.cache_dir:
        config.cache_dir = args.cache_dir
    config.ensure_cache_dir()

    snapshots = SnapshotCache(
        storage=SQLiteSnapshotStorage(config.snapshot_db_path),
        key=config.snapshot_key,
    )

    async with Gateway(config) as gateway:
        load_cookies(gateway, config.cookie_file_path)
        store = TodoProjectStore(gateway, snapshots)
        hydrate(store)
        try:
            return await run_command(store, args)
        except GatewayError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
        finally:
            save_cookies(gateway, config.cookie_file_path)


def main() -> None:
    sys.exit(asyncio.run(main_async()))


if __name__ == "__main__":
    main()
