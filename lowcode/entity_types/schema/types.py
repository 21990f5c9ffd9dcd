"""
Core type definitions for the entity type registry.

This module defines the value types shared by the registry, the stores and
the Schema Materializer:
- TypeDefinition: A registered entity type (registry row)
- FieldSpec: A declared field with its ordered parameter list
- ColumnKind / ColumnSpec / TableSpec: Table-creation intents handed to
  the Schema Executor
- ExecutionResult: Outcome reported by the Schema Executor

Invariants:
    - TypeDefinition is immutable once created
    - FieldSpec.params[0] is always the lowercase catalog type name
    - TableSpec columns are ordered; the identifier column comes first

How to change safely:
    - Add new ColumnKind members together with a catalog entry
    - Keep FieldSpec.params a plain list so stored specs stay forward compatible

Example:
    >>> from lowcode.entity_types.schema.types import ColumnKind, ColumnSpec, TableSpec
    >>> TableSpec("invoice", (ColumnSpec.identifier(), ColumnSpec("code", ColumnKind.CHAR, 8)))
    TableSpec(name='invoice', columns=(...))
"""

from __future__ import annotations

from dataclasses import dataclass
from dataclasses import field as dataclass_field
from enum import Enum
from typing import Any


IDENTIFIER_COLUMN = "id"


@dataclass(frozen=True)
class TypeDefinition:
    """A registered entity type.

    Attributes:
        type_id: Repository-assigned identifier (positive, never reused)
        name: Entity type name, globally unique
        handler_id: Application component interpreting instances, globally unique
        fields_table_name: Table holding the declared fields
        entity_table_name: Table holding the entity rows

    Invariants:
        - name and handler_id are unique across all definitions
        - table names are derived from name, never supplied by callers
    """

    type_id: int
    name: str
    handler_id: str
    fields_table_name: str
    entity_table_name: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to the registry row representation."""
        return {
            "id": self.type_id,
            "entity_type_name": self.name,
            "entity_class_name": self.handler_id,
            "fields_info_table": self.fields_table_name,
            "entity_table_name": self.entity_table_name,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TypeDefinition:
        """Create from the registry row representation."""
        return cls(
            type_id=data["id"],
            name=data["entity_type_name"],
            handler_id=data["entity_class_name"],
            fields_table_name=data["fields_info_table"],
            entity_table_name=data["entity_table_name"],
        )


@dataclass(frozen=True)
class FieldSpec:
    """A declared field.

    Attributes:
        name: Field name, unique within its type
        params: Ordered parameter list, lowercase type name first
    """

    name: str
    params: list[Any] = dataclass_field(default_factory=list)

    @property
    def type_name(self) -> str:
        """The catalog type name (first parameter)."""
        return self.params[0]

    @property
    def type_params(self) -> list[Any]:
        """Type-specific positional parameters after the type name."""
        return list(self.params[1:])


class ColumnKind(Enum):
    """Column kinds the Schema Executor knows how to create."""

    VARCHAR = "VARCHAR"
    INTEGER = "INTEGER"
    BIGINT = "BIGINT"
    FLOAT = "FLOAT"
    DOUBLE = "DOUBLE"
    DECIMAL = "DECIMAL"
    BOOLEAN = "BOOLEAN"
    CHAR = "CHAR"
    TEXT = "TEXT"
    LONGTEXT = "LONGTEXT"
    BINARY = "BINARY"
    BLOB = "BLOB"
    DATE = "DATE"
    DATETIME = "DATETIME"
    TIME = "TIME"
    JSON = "JSON"
    UUID = "UUID"


@dataclass(frozen=True)
class ColumnSpec:
    """A single column of a table-creation intent.

    Attributes:
        name: Column name
        kind: Column kind
        length: Size for sized kinds (CHAR), None otherwise
        nullable: Whether NULL is allowed
        primary_key: Whether this is the auto-assigned identifier column
    """

    name: str
    kind: ColumnKind
    length: int | None = None
    nullable: bool = True
    primary_key: bool = False

    @classmethod
    def identifier(cls) -> ColumnSpec:
        """The auto-assigned integer identifier column every table starts with."""
        return cls(IDENTIFIER_COLUMN, ColumnKind.BIGINT, nullable=False, primary_key=True)

    @property
    def type_sql(self) -> str:
        """Column type as written in DDL, e.g. ``CHAR(8)``."""
        if self.length is not None:
            return f"{self.kind.value}({self.length})"
        return self.kind.value


@dataclass(frozen=True)
class TableSpec:
    """A table-creation intent.

    Attributes:
        name: Table name
        columns: Ordered column specifications
    """

    name: str
    columns: tuple[ColumnSpec, ...] = dataclass_field(default_factory=tuple)

    def __post_init__(self) -> None:
        """Validate table spec."""
        if not self.name:
            raise ValueError("Table name cannot be empty")
        names = [c.name for c in self.columns]
        if len(names) != len(set(names)):
            raise ValueError(f"Duplicate column name in table '{self.name}'")

    def column_names(self) -> list[str]:
        """Column names in declaration order."""
        return [c.name for c in self.columns]


@dataclass(frozen=True)
class ExecutionResult:
    """Outcome of one Schema Executor request.

    Attributes:
        ok: Whether the request was applied
        status: Short status label ("ok", "error", "exists", ...)
        diagnostic: Executor-provided detail, empty on success
    """

    ok: bool
    status: str = "ok"
    diagnostic: str = ""

    @classmethod
    def success(cls) -> ExecutionResult:
        return cls(ok=True)

    @classmethod
    def failure(cls, diagnostic: str, status: str = "error") -> ExecutionResult:
        return cls(ok=False, status=status, diagnostic=diagnostic)
