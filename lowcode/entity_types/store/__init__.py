"""
Storage for the entity type registry.

This module handles:
- SQLite connection handling shared with the SQLite Schema Executor
- The registry table of TypeDefinitions
- Per-type field metadata tables

Each store has a SQLite implementation and an in-memory one for tests.
"""

from .fields_store import (
    FieldMetadataStore,
    InMemoryFieldMetadataStore,
    SqliteFieldMetadataStore,
    fields_table_spec,
)
from .repository import InMemoryTypeRepository, SqliteTypeRepository, TypeRepository
from .sqlite import SqliteDatabase

__all__ = [
    "SqliteDatabase",
    "TypeRepository",
    "SqliteTypeRepository",
    "InMemoryTypeRepository",
    "FieldMetadataStore",
    "SqliteFieldMetadataStore",
    "InMemoryFieldMetadataStore",
    "fields_table_spec",
]
