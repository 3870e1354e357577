"""CLI context management for database connections and shared state."""

import os
from dataclasses import dataclass, field

from scaffolddb import ScaffoldDB

DEFAULT_DATABASE_URL = "sqlite:///./scaffold.db"
DEFAULT_SCHEMA_PATH = "scaffold.yml"


def get_database_url(url: str | None) -> str:
    """Resolve database URL from CLI arg, environment variable, or default.

    Priority:
    1. Explicit URL argument
    2. SCAFFOLDDB_URL environment variable
    3. Default: sqlite:///./scaffold.db
    """
    if url:
        return url
    if env_url := os.getenv("SCAFFOLDDB_URL"):
        return env_url
    return DEFAULT_DATABASE_URL


def get_schema_path(path: str | None) -> str:
    """Resolve schema file path from CLI arg, environment variable, or default.

    Priority:
    1. Explicit path argument
    2. SCAFFOLDDB_SCHEMA environment variable
    3. Default: scaffold.yml
    """
    if path:
        return path
    if env_path := os.getenv("SCAFFOLDDB_SCHEMA"):
        return env_path
    return DEFAULT_SCHEMA_PATH


@dataclass
class CLIContext:
    """Shared context for CLI commands.

    Manages the ScaffoldDB lifecycle and output preferences. Opening the
    database runs migration and seeding, so every command sees current tables.
    """

    database_url: str
    schema_path: str
    echo: bool
    json_output: bool
    _db: ScaffoldDB | None = field(default=None, init=False, repr=False)

    def get_db(self) -> ScaffoldDB:
        """Get or create the ScaffoldDB instance (lazy initialization)."""
        if self._db is None:
            self._db = ScaffoldDB.from_file(
                self.schema_path, url=self.database_url, echo=self.echo
            )
        return self._db

    def close(self) -> None:
        """Close database connection if open."""
        if self._db is not None:
            self._db.close()
            self._db = None
