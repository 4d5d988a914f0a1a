"""
Taskboard client configuration.
"""

from dataclasses import dataclass, field
from pathlib import Path


@dataclass
class ClientConfig:
    """Configuration for the gateway and the snapshot cache."""

    # API settings
    api_base_url: str = "http://localhost:8000/api/v1"
    api_timeout: float = 30.0

    # Snapshot settings
    cache_dir: Path = field(default_factory=lambda: Path.home() / ".taskboard")
    snapshot_db_name: str = "snapshot.db"
    snapshot_key: str = "todo-project-store"
    cookie_file_name: str = "session.json"

    def __post_init__(self):
        self.cache_dir = Path(self.cache_dir)

    @property
    def snapshot_db_path(self) -> Path:
        """Full path to the snapshot database."""
        return self.cache_dir / self.snapshot_db_name

    @property
    def cookie_file_path(self) -> Path:
        """Where the command-line client keeps the session cookie between runs."""
        return self.cache_dir / self.cookie_file_name

    def ensure_cache_dir(self) -> Path:
        """Create the cache directory if needed."""
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        return self.cache_dir
