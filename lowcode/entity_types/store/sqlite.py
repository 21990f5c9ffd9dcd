"""
SQLite connection handling shared by the registry stores and the SQLite
Schema Executor.

Invariants:
    - One connection per operation, closed when the operation ends
    - Connections run in autocommit mode; multi-statement writes open an
      explicit transaction
    - Identifiers are always double-quoted, never interpolated raw
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..config import StorageConfig

logger = logging.getLogger(__name__)


def quote_identifier(name: str) -> str:
    """Quote a table or column name for use in SQL."""
    return '"' + name.replace('"', '""') + '"'


class SqliteDatabase:
    """A SQLite database file opened per operation.

    Thread safety:
        Each connection is created per-operation.
        SQLite handles concurrent access via WAL mode.

    Example:
        >>> db = SqliteDatabase("/var/lib/entity-types/entity_types.db")
        >>> with db.connect() as conn:
        ...     conn.execute("SELECT 1")
    """

    def __init__(
        self,
        path: str | Path,
        wal_mode: bool = True,
        busy_timeout_ms: int = 5000,
    ) -> None:
        """Initialize the database handle.

        Args:
            path: Database file path
            wal_mode: Enable SQLite WAL mode
            busy_timeout_ms: SQLite busy timeout
        """
        self.path = Path(path)
        self.wal_mode = wal_mode
        self.busy_timeout_ms = busy_timeout_ms

    @classmethod
    def from_config(cls, config: "StorageConfig") -> SqliteDatabase:
        return cls(
            config.database_path,
            wal_mode=config.wal_mode,
            busy_timeout_ms=config.busy_timeout_ms,
        )

    @contextmanager
    def connect(self) -> Iterator[sqlite3.Connection]:
        """Open a configured connection.

        Yields:
            SQLite connection
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)

        conn = sqlite3.connect(
            str(self.path),
            timeout=self.busy_timeout_ms / 1000.0,
            isolation_level=None,  # Autocommit by default, explicit transactions
        )
        conn.row_factory = sqlite3.Row

        try:
            conn.execute(f"PRAGMA busy_timeout = {self.busy_timeout_ms}")
            if self.wal_mode:
                conn.execute("PRAGMA journal_mode = WAL")
            conn.execute("PRAGMA synchronous = NORMAL")

            yield conn
        finally:
            conn.close()

    def table_exists(self, table_name: str) -> bool:
        with self.connect() as conn:
            cursor = conn.execute(
                "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = ?",
                (table_name,),
            )
            return cursor.fetchone() is not None

    def table_columns(self, table_name: str) -> list[sqlite3.Row]:
        """Column info rows (cid, name, type, notnull, dflt_value, pk) in order."""
        with self.connect() as conn:
            cursor = conn.execute(f"PRAGMA table_info({quote_identifier(table_name)})")
            return cursor.fetchall()
