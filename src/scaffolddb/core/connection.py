"""Datastore connection management for scaffolddb."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import Engine, create_engine, event, text
from sqlalchemy.pool import StaticPool

from scaffolddb.exceptions import ConnectionError

if TYPE_CHECKING:
    from sqlalchemy.engine.url import URL


def _normalize_sqlite_url(url: str) -> str:
    """Normalize a SQLite URL.

    Supports:
    - sqlite:///path/to/scaffold.db
    - sqlite:///:memory:
    - a bare filesystem path (turned into sqlite:///<path>)

    Args:
        url: Database URL or file path

    Returns:
        Normalized URL
    """
    if url.startswith("sqlite"):
        return url
    if "://" not in url:
        return f"sqlite:///{url}"
    return url


def _set_sqlite_pragmas(dbapi_connection: Any, connection_record: Any) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class DatabaseConnection:
    """Owns the single shared datastore connection of a process.

    The engine is backed by one SQLite connection (``StaticPool``) that is
    opened lazily and held until ``close()``. The database file is put in
    write-ahead-log mode. The connection may be handed between threads but
    must be used by one thread at a time: transactions opened concurrently
    from two threads share it and are not isolated from each other.
    """

    SUPPORTED_DIALECTS = ("sqlite",)

    def __init__(self, url: str | URL, echo: bool = False) -> None:
        """Initialize database connection.

        Args:
            url: Database connection URL, e.g. "sqlite:///scaffold.db" or
                 "sqlite:///:memory:". A bare path is treated as a SQLite file.
            echo: Whether to echo SQL statements (for debugging)
        """
        self._url = _normalize_sqlite_url(str(url))
        self._echo = echo
        self._engine: Engine | None = None

    @property
    def url(self) -> str:
        return self._url

    @property
    def engine(self) -> Engine:
        """Get or create the SQLAlchemy engine.

        Raises:
            ConnectionError: If the engine cannot be created or the dialect is
                not supported
        """
        if self._engine is None:
            try:
                engine = create_engine(
                    self._url,
                    echo=self._echo,
                    poolclass=StaticPool,
                    connect_args={"check_same_thread": False},
                )
            except Exception as e:
                raise ConnectionError(f"Failed to create database engine: {e}") from e

            if engine.dialect.name not in self.SUPPORTED_DIALECTS:
                engine.dispose()
                raise ConnectionError(
                    f"Unsupported database dialect: {engine.dialect.name}. "
                    f"Supported: {', '.join(self.SUPPORTED_DIALECTS)}"
                )

            event.listen(engine, "connect", _set_sqlite_pragmas)
            self._engine = engine
        return self._engine

    def test_connection(self) -> bool:
        """Test if the database connection works.

        Returns:
            True if connection is successful

        Raises:
            ConnectionError: If connection test fails
        """
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except ConnectionError:
            raise
        except Exception as e:
            raise ConnectionError(f"Database connection test failed: {e}") from e

    def journal_mode(self) -> str:
        """Return the active SQLite journal mode (``wal`` for file databases)."""
        with self.engine.connect() as conn:
            return str(conn.execute(text("PRAGMA journal_mode")).scalar())

    def close(self) -> None:
        """Close the connection and dispose of the engine."""
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None

    def __enter__(self) -> DatabaseConnection:
        """Context manager entry."""
        self.test_connection()
        return self

    def __exit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        """Context manager exit."""
        self.close()
