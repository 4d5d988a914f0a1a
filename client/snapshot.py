"""
Taskboard - Persistent Snapshot Store

Key-value storage for the serialized store snapshot, plus the two-phase
cache the store uses on top of it:

1. ``SnapshotCache.lookup()`` - synchronous, returns the persisted
   ``Snapshot`` or None.
2. The store's asynchronous refresh from the gateway, which always
   supersedes whatever the lookup returned.

Serialized form::

    {"state": {"projects": [...], "allTodos": [...], "user": {...}|null},
     "version": 0}
"""

import json
import logging
import sqlite3
import time
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from .models import Project, Todo, User

logger = logging.getLogger("taskboard.snapshot")

SNAPSHOT_VERSION = 0


# =============================================================================
# Snapshot Value
# =============================================================================

@dataclass(frozen=True)
class Snapshot:
    """The persisted subset of store state."""
    projects: tuple[Project, ...] = ()
    all_todos: tuple[Todo, ...] = ()
    user: Optional[User] = None

    def todos_for(self, project_id: int) -> list[Todo]:
        return [t for t in self.all_todos if t.project_id == project_id]

    def to_json(self) -> str:
        return json.dumps({
            "state": {
                "projects": [p.to_dict() for p in self.projects],
                "allTodos": [t.to_dict() for t in self.all_todos],
                "user": self.user.to_dict() if self.user else None,
            },
            "version": SNAPSHOT_VERSION,
        })

    @classmethod
    def from_json(cls, raw: str) -> "Snapshot":
        """
        Parse a serialized snapshot.

        Raises:
            ValueError: If the payload is not a snapshot
        """
        try:
            state = json.loads(raw)["state"]
            projects = tuple(Project.from_dict(p) for p in state.get("projects") or [])
            todos = tuple(Todo.from_dict(t) for t in state.get("allTodos") or [])
            user = User.from_dict(state["user"]) if state.get("user") else None
        except (TypeError, KeyError, AttributeError, json.JSONDecodeError) as e:
            raise ValueError(f"Malformed snapshot: {e}") from e
        return cls(projects=projects, all_todos=todos, user=user)


# =============================================================================
# Storage Backends
# =============================================================================

class SnapshotStorage(ABC):
    """Minimal key-value contract the snapshot cache needs."""

    @abstractmethod
    def read(self, key: str) -> Optional[str]:
        """Serialized value for key, or None when absent."""

    @abstractmethod
    def write(self, key: str, value: str) -> None:
        """Store value under key, replacing any previous one."""

    @abstractmethod
    def clear(self, key: str) -> None:
        """Remove key. Missing keys are ignored."""


class MemorySnapshotStorage(SnapshotStorage):
    """Process-local storage; nothing survives a restart."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self.data: dict[str, str] = dict(initial or {})

    def read(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def write(self, key: str, value: str) -> None:
        self.data[key] = value

    def clear(self, key: str) -> None:
        self.data.pop(key, None)


class SQLiteSnapshotStorage(SnapshotStorage):
    """SQLite-backed storage that survives restarts of the client."""

    SCHEMA = """
    CREATE TABLE IF NOT EXISTS snapshots (
        key TEXT PRIMARY KEY,
        data TEXT NOT NULL,
        updated_at TEXT NOT NULL
    );
    """

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _init_db(self) -> None:
        """Initialize the database schema."""
        with self._get_connection() as conn:
            conn.executescript(self.SCHEMA)
            conn.commit()

    @contextmanager
    def _get_connection(self):
        """Get a database connection with proper cleanup and retry for SQLITE_BUSY."""
        conn = None
        for attempt in range(5):
            try:
                conn = sqlite3.connect(str(self.db_path), timeout=30.0)
                conn.row_factory = sqlite3.Row
                break
            except sqlite3.OperationalError as e:
                if "database is locked" in str(e) and attempt < 4:
                    time.sleep(0.1 * (2 ** attempt))
                else:
                    raise
        try:
            yield conn
        finally:
            if conn:
                conn.close()

    def read(self, key: str) -> Optional[str]:
        with self._get_connection() as conn:
            cursor = conn.execute("SELECT data FROM snapshots WHERE key = ?", (key,))
            row = cursor.fetchone()
            return row["data"] if row else None

    def write(self, key: str, value: str) -> None:
        with self._get_connection() as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO snapshots (key, data, updated_at)
                VALUES (?, ?, ?)
                """,
                (key, value, datetime.now(timezone.utc).isoformat()),
            )
            conn.commit()

    def clear(self, key: str) -> None:
        with self._get_connection() as conn:
            conn.execute("DELETE FROM snapshots WHERE key = ?", (key,))
            conn.commit()


# =============================================================================
# Snapshot Cache
# =============================================================================

@dataclass
class SnapshotCache:
    """Reads and writes the store snapshot under one fixed key."""
    storage: SnapshotStorage = field(default_factory=MemorySnapshotStorage)
    key: str = "todo-project-store"

    def lookup(self) -> Optional[Snapshot]:
        """
        Synchronous local-cache lookup.

        Absent or malformed data counts as an empty cache, never as an error.
        """
        raw = self.storage.read(self.key)
        if not raw:
            return None
        try:
            return Snapshot.from_json(raw)
        except ValueError as e:
            logger.debug(f"Ignoring persisted snapshot under {self.key!r}: {e}")
            return None

    def save(self, snapshot: Snapshot) -> None:
        self.storage.write(self.key, snapshot.to_json())

    def erase(self) -> None:
        """Drop the persisted snapshot entirely."""
        self.storage.clear(self.key)
        logger.debug(f"Erased persisted snapshot {self.key!r}")
