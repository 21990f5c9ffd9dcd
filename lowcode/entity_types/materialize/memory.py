"""
In-memory Schema Executor for testing.

Records every table-creation intent instead of touching a database.
Useful for:
- Unit tests of the materializer's DDL translation and step ordering
- Failure injection (fail a chosen table) without a real database

Invariants:
    - All tables are lost on process exit
    - Same existence semantics as the SQLite executor
"""

from __future__ import annotations

import logging
import threading
from typing import Dict, Iterable, List, Optional, Set

from ..schema.types import ExecutionResult, TableSpec

logger = logging.getLogger(__name__)


class InMemorySchemaExecutor:
    """In-memory implementation of SchemaExecutor.

    Attributes:
        tables: Currently existing tables by name
        applied: Every successfully applied spec, in order
        dropped: Names of tables dropped, in order
        fail_on: Table names whose creation is reported as failed

    Example:
        >>> executor = InMemorySchemaExecutor(fail_on={"invoice"})
        >>> executor.apply_create_table(TableSpec("invoice")).ok
        False
    """

    def __init__(
        self,
        fail_on: Optional[Iterable[str]] = None,
        fail_drop_on: Optional[Iterable[str]] = None,
    ) -> None:
        """Initialize the executor.

        Args:
            fail_on: Table names whose creation fails
            fail_drop_on: Table names whose drop fails
        """
        self.tables: Dict[str, TableSpec] = {}
        self.applied: List[TableSpec] = []
        self.dropped: List[str] = []
        self.fail_on: Set[str] = set(fail_on or ())
        self.fail_drop_on: Set[str] = set(fail_drop_on or ())
        self._lock = threading.Lock()

    def apply_create_table(self, spec: TableSpec) -> ExecutionResult:
        with self._lock:
            if spec.name in self.fail_on:
                logger.debug(f"Injected failure creating table {spec.name}")
                return ExecutionResult.failure(f"injected failure for table '{spec.name}'")
            if spec.name in self.tables:
                return ExecutionResult.failure(
                    f"table '{spec.name}' already exists", status="exists"
                )
            self.tables[spec.name] = spec
            self.applied.append(spec)
            logger.debug(f"Created in-memory table {spec.name}: {spec.column_names()}")
            return ExecutionResult.success()

    def apply_drop_table(self, table_name: str) -> ExecutionResult:
        with self._lock:
            if table_name in self.fail_drop_on:
                return ExecutionResult.failure(f"injected failure dropping '{table_name}'")
            self.tables.pop(table_name, None)
            self.dropped.append(table_name)
            return ExecutionResult.success()

    def table_exists(self, table_name: str) -> bool:
        return table_name in self.tables
