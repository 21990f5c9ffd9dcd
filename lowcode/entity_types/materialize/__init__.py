"""
Schema materialization for entity types.

This module provides a pluggable Schema Executor interface supporting:
- SQLite (applies DDL to the registry database)
- In-memory (for testing)

and the SchemaMaterializer that drives it during registration.

Invariants:
    - Executors report failures as ExecutionResult, never by raising
    - Each table creation is an independent request, no shared transaction
"""

from .base import SchemaExecutor, create_schema_executor
from .materializer import SchemaMaterializer, column_for, entity_table_spec
from .memory import InMemorySchemaExecutor
from .sqlite import SqliteSchemaExecutor, render_create_table

__all__ = [
    # Protocol and factory
    "SchemaExecutor",
    "create_schema_executor",
    # Implementations
    "SqliteSchemaExecutor",
    "InMemorySchemaExecutor",
    "render_create_table",
    # Materializer
    "SchemaMaterializer",
    "column_for",
    "entity_table_spec",
]
