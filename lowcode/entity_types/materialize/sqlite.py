"""
SQLite Schema Executor.

Renders table-creation intents to DDL and applies them to the registry's
SQLite database. The identifier column becomes SQLite's auto-assigned
``INTEGER PRIMARY KEY AUTOINCREMENT``; every other column keeps its
declared type name (SQLite maps it to a storage affinity).
"""

from __future__ import annotations

import logging
import sqlite3

from ..schema.types import ColumnSpec, ExecutionResult, TableSpec
from ..store.sqlite import SqliteDatabase, quote_identifier

logger = logging.getLogger(__name__)


def render_column(column: ColumnSpec) -> str:
    """Render one column definition."""
    if column.primary_key:
        return f"{quote_identifier(column.name)} INTEGER PRIMARY KEY AUTOINCREMENT"
    sql = f"{quote_identifier(column.name)} {column.type_sql}"
    if not column.nullable:
        sql += " NOT NULL"
    return sql


def render_create_table(spec: TableSpec) -> str:
    """Render a CREATE TABLE statement for a table-creation intent."""
    columns = ",\n    ".join(render_column(c) for c in spec.columns)
    return f"CREATE TABLE {quote_identifier(spec.name)} (\n    {columns}\n)"


class SqliteSchemaExecutor:
    """SchemaExecutor backed by a SQLite database.

    Example:
        >>> executor = SqliteSchemaExecutor(SqliteDatabase("/tmp/types.db"))
        >>> executor.apply_create_table(spec)
        ExecutionResult(ok=True, status='ok', diagnostic='')
    """

    def __init__(self, database: SqliteDatabase) -> None:
        self.database = database

    def apply_create_table(self, spec: TableSpec) -> ExecutionResult:
        ddl = render_create_table(spec)
        try:
            with self.database.connect() as conn:
                conn.execute(ddl)
        except sqlite3.Error as e:
            logger.error(f"Failed to create table {spec.name}: {e}")
            return ExecutionResult.failure(str(e))
        logger.info(f"Created table {spec.name} ({len(spec.columns)} columns)")
        return ExecutionResult.success()

    def apply_drop_table(self, table_name: str) -> ExecutionResult:
        try:
            with self.database.connect() as conn:
                conn.execute(f"DROP TABLE IF EXISTS {quote_identifier(table_name)}")
        except sqlite3.Error as e:
            return ExecutionResult.failure(str(e))
        logger.info(f"Dropped table {table_name}")
        return ExecutionResult.success()

    def table_exists(self, table_name: str) -> bool:
        return self.database.table_exists(table_name)
