"""
Client-side data models.

Plain dataclasses mirroring the API payloads. They are frozen so the store
can share them between state snapshots without defensive copies.
"""

from dataclasses import asdict, dataclass
from typing import Any


@dataclass(frozen=True)
class User:
    """Authenticated identity. No credential material is held client-side."""
    id: int
    email: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "User":
        return cls(id=int(d["id"]), email=str(d["email"]))


@dataclass(frozen=True)
class Project:
    """A project owned by one user."""
    id: int
    name: str
    owner_user_id: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "Project":
        return cls(
            id=int(d["id"]),
            name=str(d["name"]),
            owner_user_id=int(d["owner_user_id"]),
        )


@dataclass(frozen=True)
class Todo:
    """A todo inside a project. ``completed`` is 0 or 1."""
    id: int
    content: str
    completed: int
    project_id: int
    owner_user_id: int

    @property
    def is_done(self) -> bool:
        return self.completed == 1

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "Todo":
        return cls(
            id=int(d["id"]),
            content=str(d["content"]),
            completed=int(d.get("completed", 0)),
            project_id=int(d["project_id"]),
            owner_user_id=int(d["owner_user_id"]),
        )
