"""
Entity Types - runtime-defined record schemas backed by generated tables.

A host application registers an entity type (a name, a handler identifier
and an ordered set of typed fields). The registry validates it, creates a
fields table describing the declared fields, creates the entity table with
one column per field, and records the type in its directory.

Architecture:
    ┌──────────────────┐     ┌──────────────┐     ┌────────────────┐
    │EntityTypeRegistry│────▶│ Type Catalog │     │ TypeRepository │
    └────────┬─────────┘     └──────────────┘     └────────────────┘
             │
             ▼
    ┌──────────────────┐     ┌────────────────────┐
    │SchemaMaterializer│────▶│ FieldMetadataStore │
    └────────┬─────────┘     └─────────┬──────────┘
             │                         │
             ▼                         ▼
    ┌─────────────────────────────────────────────┐
    │        SchemaExecutor (SQLite / memory)     │
    └─────────────────────────────────────────────┘

Invariants:
    - Type names and handler identifiers are globally unique
    - All validation runs before any table is created
    - Registered types are never altered or dropped

Version: see _version.py.
"""

from ._version import __version__
from .errors import (
    DuplicateHandlerError,
    DuplicateNameError,
    EntityRegistryError,
    FieldNotFoundError,
    InvalidFieldSpecError,
    InvalidNameError,
    NotFoundError,
    RegistryStorageError,
    SchemaExecutionError,
    UnsupportedTypeError,
)
from .schema.registry import EntityTypeRegistry, create_registry

__all__ = [
    "__version__",
    # Registry
    "EntityTypeRegistry",
    "create_registry",
    # Errors
    "EntityRegistryError",
    "DuplicateNameError",
    "DuplicateHandlerError",
    "UnsupportedTypeError",
    "InvalidFieldSpecError",
    "InvalidNameError",
    "NotFoundError",
    "FieldNotFoundError",
    "SchemaExecutionError",
    "RegistryStorageError",
]
