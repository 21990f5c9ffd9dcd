"""
Base protocol for the Schema Executor.

The Schema Executor is the only component that mutates live schema. The
materializer hands it table-creation intents and gets back a structured
result instead of an exception, so every backend reports failures the
same way.

Invariants:
    - apply_create_table never creates a table that already exists
    - A failed request leaves no partially created table behind
    - Failures are reported as ExecutionResult, not raised

How to change safely:
    - Protocol changes require updating all implementations
    - New backends must be added to ExecutorBackend and create_schema_executor
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from ..schema.types import ExecutionResult, TableSpec

if TYPE_CHECKING:
    from ..config import RegistryConfig


@runtime_checkable
class SchemaExecutor(Protocol):
    """Protocol for backends that apply table-creation intents.

    Example:
        >>> executor = SqliteSchemaExecutor(db)
        >>> result = executor.apply_create_table(spec)
        >>> if not result.ok:
        ...     print(result.status, result.diagnostic)
    """

    @abstractmethod
    def apply_create_table(self, spec: TableSpec) -> ExecutionResult:
        """Create a table with the given ordered columns.

        Args:
            spec: Table name and ordered column specifications

        Returns:
            ExecutionResult; ok is False with a diagnostic on failure
        """
        ...

    @abstractmethod
    def apply_drop_table(self, table_name: str) -> ExecutionResult:
        """Drop a table created by an aborted registration.

        Dropping a table that does not exist succeeds.
        """
        ...

    @abstractmethod
    def table_exists(self, table_name: str) -> bool:
        """Whether a table with this name exists in live storage."""
        ...


def create_schema_executor(config: "RegistryConfig") -> SchemaExecutor:
    """Factory function to create a Schema Executor from configuration.

    Args:
        config: Registry configuration

    Returns:
        Appropriate SchemaExecutor implementation

    Raises:
        ValueError: If backend is not supported
    """
    from ..config import ExecutorBackend
    from ..store.sqlite import SqliteDatabase
    from .memory import InMemorySchemaExecutor
    from .sqlite import SqliteSchemaExecutor

    backend = config.materializer.executor
    if backend == ExecutorBackend.SQLITE:
        return SqliteSchemaExecutor(SqliteDatabase.from_config(config.storage))
    elif backend == ExecutorBackend.MEMORY:
        return InMemorySchemaExecutor()
    else:
        raise ValueError(f"Unsupported schema executor backend: {backend}")
