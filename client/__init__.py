"""
Taskboard - Client

Async gateway to the Taskboard API and the data synchronization store
that views render from.
"""

from .config import ClientConfig
from .gateway import (
    AuthenticationError,
    Gateway,
    GatewayError,
    NetworkError,
    NotFoundError,
    ValidationError,
)
from .models import Project, Todo, User
from .snapshot import (
    MemorySnapshotStorage,
    Snapshot,
    SnapshotCache,
    SnapshotStorage,
    SQLiteSnapshotStorage,
)
from .store import StoreState, TodoProjectStore

__version__ = "0.1.0"
__all__ = [
    # Main classes
    "Gateway",
    "TodoProjectStore",
    "StoreState",

    # Configuration
    "ClientConfig",

    # Data models
    "User",
    "Project",
    "Todo",

    # Snapshot persistence
    "Snapshot",
    "SnapshotCache",
    "SnapshotStorage",
    "MemorySnapshotStorage",
    "SQLiteSnapshotStorage",

    # Exceptions
    "GatewayError",
    "AuthenticationError",
    "ValidationError",
    "NotFoundError",
    "NetworkError",
]
