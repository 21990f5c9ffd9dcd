"""
Type repository: persistent directory of registered entity types.

Table schema:
    entity_types:
        - id INTEGER PRIMARY KEY AUTOINCREMENT
        - entity_type_name TEXT NOT NULL UNIQUE
        - entity_class_name TEXT NOT NULL UNIQUE (handler identifier)
        - fields_info_table TEXT NOT NULL
        - entity_table_name TEXT NOT NULL

Invariants:
    - Rows are inserted once and never updated or deleted
    - Ids start at 1 and are never reused
    - UNIQUE constraints back the registry's uniqueness checks across
      processes sharing one database file
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from abc import abstractmethod
from typing import Dict, List, Optional, Protocol, runtime_checkable

from ..errors import DuplicateHandlerError, DuplicateNameError, RegistryStorageError
from ..schema.types import TypeDefinition
from .sqlite import SqliteDatabase

logger = logging.getLogger(__name__)

REGISTRY_TABLE = "entity_types"


@runtime_checkable
class TypeRepository(Protocol):
    """Protocol for TypeDefinition storage."""

    @abstractmethod
    def create(
        self,
        name: str,
        handler_id: str,
        fields_table_name: str,
        entity_table_name: str,
    ) -> TypeDefinition:
        """Persist a new definition and return it with its assigned id.

        Raises:
            DuplicateNameError: If name is already stored
            DuplicateHandlerError: If handler_id is already stored
            RegistryStorageError: For other storage failures
        """
        ...

    @abstractmethod
    def get(self, type_id: int) -> Optional[TypeDefinition]:
        ...

    @abstractmethod
    def find_by_name(self, name: str) -> Optional[TypeDefinition]:
        ...

    @abstractmethod
    def find_by_handler(self, handler_id: str) -> Optional[TypeDefinition]:
        ...

    @abstractmethod
    def list_all(self) -> List[TypeDefinition]:
        """All definitions ordered by id."""
        ...


class SqliteTypeRepository:
    """TypeDefinition storage in the registry's SQLite database.

    Example:
        >>> repo = SqliteTypeRepository(db)
        >>> repo.initialize()
        >>> repo.create("Invoice", "invoice.handler.v1", "invoice_fields", "invoice")
        TypeDefinition(type_id=1, name='Invoice', ...)
    """

    def __init__(self, database: SqliteDatabase) -> None:
        self.database = database

    def initialize(self) -> None:
        """Create the registry table if it does not exist."""
        try:
            with self.database.connect() as conn:
                conn.execute(f"""
                    CREATE TABLE IF NOT EXISTS {REGISTRY_TABLE} (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        entity_type_name TEXT NOT NULL UNIQUE,
                        entity_class_name TEXT NOT NULL UNIQUE,
                        fields_info_table TEXT NOT NULL,
                        entity_table_name TEXT NOT NULL
                    )
                """)
        except sqlite3.Error as e:
            raise RegistryStorageError(f"Failed to initialize {REGISTRY_TABLE}: {e}") from e
        logger.info(f"Initialized registry table in {self.database.path}")

    def create(
        self,
        name: str,
        handler_id: str,
        fields_table_name: str,
        entity_table_name: str,
    ) -> TypeDefinition:
        try:
            with self.database.connect() as conn:
                cursor = conn.execute(
                    f"""
                    INSERT INTO {REGISTRY_TABLE} (entity_type_name, entity_class_name,
                                                  fields_info_table, entity_table_name)
                    VALUES (?, ?, ?, ?)
                    """,
                    (name, handler_id, fields_table_name, entity_table_name),
                )
                type_id = cursor.lastrowid
        except sqlite3.IntegrityError as e:
            message = str(e)
            if "entity_type_name" in message:
                raise DuplicateNameError(name) from e
            if "entity_class_name" in message:
                raise DuplicateHandlerError(handler_id) from e
            raise RegistryStorageError(f"Failed to persist type '{name}': {e}") from e
        except sqlite3.Error as e:
            raise RegistryStorageError(f"Failed to persist type '{name}': {e}") from e

        return TypeDefinition(
            type_id=type_id,
            name=name,
            handler_id=handler_id,
            fields_table_name=fields_table_name,
            entity_table_name=entity_table_name,
        )

    def get(self, type_id: int) -> Optional[TypeDefinition]:
        return self._fetch_one("id", type_id)

    def find_by_name(self, name: str) -> Optional[TypeDefinition]:
        return self._fetch_one("entity_type_name", name)

    def find_by_handler(self, handler_id: str) -> Optional[TypeDefinition]:
        return self._fetch_one("entity_class_name", handler_id)

    def list_all(self) -> List[TypeDefinition]:
        try:
            with self.database.connect() as conn:
                rows = conn.execute(f"SELECT * FROM {REGISTRY_TABLE} ORDER BY id").fetchall()
        except sqlite3.Error as e:
            raise RegistryStorageError(f"Failed to list entity types: {e}") from e
        return [TypeDefinition.from_dict(dict(row)) for row in rows]

    def _fetch_one(self, column: str, value: object) -> Optional[TypeDefinition]:
        try:
            with self.database.connect() as conn:
                row = conn.execute(
                    f"SELECT * FROM {REGISTRY_TABLE} WHERE {column} = ?",
                    (value,),
                ).fetchone()
        except sqlite3.Error as e:
            raise RegistryStorageError(f"Failed to read entity types: {e}") from e
        if row is None:
            return None
        return TypeDefinition.from_dict(dict(row))


class InMemoryTypeRepository:
    """In-memory TypeDefinition storage, for tests."""

    def __init__(self) -> None:
        self._types: Dict[int, TypeDefinition] = {}
        self._next_id = 1
        self._lock = threading.Lock()

    def create(
        self,
        name: str,
        handler_id: str,
        fields_table_name: str,
        entity_table_name: str,
    ) -> TypeDefinition:
        with self._lock:
            for existing in self._types.values():
                if existing.name == name:
                    raise DuplicateNameError(name)
                if existing.handler_id == handler_id:
                    raise DuplicateHandlerError(handler_id)
            definition = TypeDefinition(
                type_id=self._next_id,
                name=name,
                handler_id=handler_id,
                fields_table_name=fields_table_name,
                entity_table_name=entity_table_name,
            )
            self._types[definition.type_id] = definition
            self._next_id += 1
            return definition

    def get(self, type_id: int) -> Optional[TypeDefinition]:
        with self._lock:
            return self._types.get(type_id)

    def find_by_name(self, name: str) -> Optional[TypeDefinition]:
        with self._lock:
            return next((t for t in self._types.values() if t.name == name), None)

    def find_by_handler(self, handler_id: str) -> Optional[TypeDefinition]:
        with self._lock:
            return next((t for t in self._types.values() if t.handler_id == handler_id), None)

    def list_all(self) -> List[TypeDefinition]:
        with self._lock:
            return [self._types[tid] for tid in sorted(self._types)]
