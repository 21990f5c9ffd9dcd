"""
Schema module for entity types.

This module provides the type system for runtime-defined entity types:
- Type definitions (TypeDefinition, FieldSpec, TableSpec, ColumnSpec)
- The type catalog of supported scalar kinds
- Table name derivation

The registry itself lives in schema.registry and is imported from there,
since it depends on the stores and the materializer.

Invariants:
    - Catalog lookups are case-insensitive; stored type names are lowercase
    - Table names derive from the type name with a fixed camel-to-snake rule
"""

from .catalog import (
    DEFAULT_CHAR_LENGTH,
    SUPPORTED_TYPES,
    TypeKind,
    is_supported,
    normalize_field_spec,
    normalize_fields,
)
from .naming import camel_to_snake, entity_table_name, fields_table_name
from .types import (
    ColumnKind,
    ColumnSpec,
    ExecutionResult,
    FieldSpec,
    TableSpec,
    TypeDefinition,
)

__all__ = [
    # Types
    "TypeDefinition",
    "FieldSpec",
    "ColumnKind",
    "ColumnSpec",
    "TableSpec",
    "ExecutionResult",
    # Catalog
    "TypeKind",
    "SUPPORTED_TYPES",
    "DEFAULT_CHAR_LENGTH",
    "is_supported",
    "normalize_field_spec",
    "normalize_fields",
    # Naming
    "camel_to_snake",
    "entity_table_name",
    "fields_table_name",
]
