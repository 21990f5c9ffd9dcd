"""
Field metadata store.

Every entity type owns a side table listing its declared fields in
declaration order. The table is created through the Schema Executor; rows
are written and read directly by the store.

Table schema:
    <fields table>:
        - id INTEGER PRIMARY KEY AUTOINCREMENT
        - field_name VARCHAR NOT NULL
        - field_type TEXT NOT NULL (JSON list, lowercase type name first)

Invariants:
    - Rows are append-only; row id order is declaration order
    - field_type keeps the raw ordered parameter list so new parameter
      shapes need no schema change
"""

from __future__ import annotations

import json
import logging
import sqlite3
import threading
from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Dict, List, Protocol, Tuple, runtime_checkable

from ..errors import RegistryStorageError
from ..schema.types import ColumnKind, ColumnSpec, ExecutionResult, TableSpec
from .sqlite import SqliteDatabase, quote_identifier

if TYPE_CHECKING:
    from ..materialize.base import SchemaExecutor

logger = logging.getLogger(__name__)


def fields_table_spec(table_name: str) -> TableSpec:
    """The fixed table-creation intent for a fields table."""
    return TableSpec(
        name=table_name,
        columns=(
            ColumnSpec.identifier(),
            ColumnSpec("field_name", ColumnKind.VARCHAR, nullable=False),
            ColumnSpec("field_type", ColumnKind.TEXT, nullable=False),
        ),
    )


def encode_spec(params: List[Any]) -> str:
    """Encode a param list for the field_type column.

    Raises:
        RegistryStorageError: If the params are not JSON-serializable
    """
    try:
        return json.dumps(list(params))
    except (TypeError, ValueError) as e:
        raise RegistryStorageError(f"Cannot encode field spec {params!r}: {e}") from e


def decode_spec(raw: str) -> List[Any]:
    return json.loads(raw)


@runtime_checkable
class FieldMetadataStore(Protocol):
    """Protocol for per-type field metadata tables."""

    @abstractmethod
    def create_table(self, table_name: str) -> ExecutionResult:
        """Create an empty fields table through the Schema Executor."""
        ...

    @abstractmethod
    def insert_field(self, table_name: str, field_name: str, params: List[Any]) -> None:
        """Append one field row.

        Raises:
            RegistryStorageError: If the row cannot be written
        """
        ...

    @abstractmethod
    def list_fields(self, table_name: str) -> List[Tuple[str, List[Any]]]:
        """All rows as (field_name, decoded params), in insertion order.

        Raises:
            RegistryStorageError: If the table cannot be read
        """
        ...


class SqliteFieldMetadataStore:
    """Field metadata tables stored in the registry's SQLite database.

    Example:
        >>> store = SqliteFieldMetadataStore(db, SqliteSchemaExecutor(db))
        >>> store.create_table("invoice_fields")
        >>> store.insert_field("invoice_fields", "total", ["decimal"])
        >>> store.list_fields("invoice_fields")
        [('total', ['decimal'])]
    """

    def __init__(self, database: SqliteDatabase, executor: "SchemaExecutor") -> None:
        self.database = database
        self.executor = executor

    def create_table(self, table_name: str) -> ExecutionResult:
        return self.executor.apply_create_table(fields_table_spec(table_name))

    def insert_field(self, table_name: str, field_name: str, params: List[Any]) -> None:
        try:
            with self.database.connect() as conn:
                conn.execute(
                    f"INSERT INTO {quote_identifier(table_name)} (field_name, field_type) "
                    "VALUES (?, ?)",
                    (field_name, encode_spec(params)),
                )
        except sqlite3.Error as e:
            raise RegistryStorageError(
                f"Failed to insert field '{field_name}' into {table_name}: {e}"
            ) from e
        logger.debug(f"Recorded field {field_name} {params} in {table_name}")

    def list_fields(self, table_name: str) -> List[Tuple[str, List[Any]]]:
        try:
            with self.database.connect() as conn:
                cursor = conn.execute(
                    f"SELECT field_name, field_type FROM {quote_identifier(table_name)} "
                    "ORDER BY id"
                )
                rows = cursor.fetchall()
        except sqlite3.Error as e:
            raise RegistryStorageError(f"Failed to read fields from {table_name}: {e}") from e
        return [(row["field_name"], decode_spec(row["field_type"])) for row in rows]


class InMemoryFieldMetadataStore:
    """In-memory field metadata tables, for tests.

    Rows are still encoded to JSON so reads go through the same decode
    path as the SQLite store.
    """

    def __init__(self, executor: "SchemaExecutor") -> None:
        self.executor = executor
        self._rows: Dict[str, List[Tuple[str, str]]] = {}
        self._lock = threading.Lock()

    def create_table(self, table_name: str) -> ExecutionResult:
        result = self.executor.apply_create_table(fields_table_spec(table_name))
        if result.ok:
            with self._lock:
                self._rows[table_name] = []
        return result

    def insert_field(self, table_name: str, field_name: str, params: List[Any]) -> None:
        with self._lock:
            if table_name not in self._rows or not self.executor.table_exists(table_name):
                raise RegistryStorageError(f"no such table: {table_name}")
            self._rows[table_name].append((field_name, encode_spec(params)))

    def list_fields(self, table_name: str) -> List[Tuple[str, List[Any]]]:
        with self._lock:
            if table_name not in self._rows or not self.executor.table_exists(table_name):
                raise RegistryStorageError(f"no such table: {table_name}")
            return [(name, decode_spec(raw)) for name, raw in self._rows[table_name]]
