"""
Error types for the entity type registry.

This module defines every exception raised by the public registry operations:
- EntityRegistryError: Base exception
- DuplicateNameError / DuplicateHandlerError: Uniqueness violations
- UnsupportedTypeError / InvalidFieldSpecError / InvalidNameError: Validation
- NotFoundError / FieldNotFoundError: Lookups
- SchemaExecutionError: Schema Executor failures during materialization
- RegistryStorageError: Registry or field metadata storage failures

Invariants:
    - All errors inherit from EntityRegistryError
    - Every error carries a stable code for programmatic handling
    - Validation errors are raised before any schema mutation
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class EntityRegistryError(Exception):
    """Base exception for all registry errors.

    Attributes:
        message: Error message
        code: Error code for programmatic handling
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or "ENTITY_REGISTRY_ERROR"
        self.details = details or {}


class DuplicateNameError(EntityRegistryError):
    """An entity type with this name is already registered."""

    def __init__(self, name: str) -> None:
        super().__init__(
            f"An entity of the '{name}' type already exists",
            code="DUPLICATE_NAME",
            details={"name": name},
        )
        self.name = name


class DuplicateHandlerError(EntityRegistryError):
    """An entity type with this handler identifier is already registered."""

    def __init__(self, handler_id: str) -> None:
        super().__init__(
            f"An entity type handled by '{handler_id}' already exists",
            code="DUPLICATE_HANDLER",
            details={"handler_id": handler_id},
        )
        self.handler_id = handler_id


class UnsupportedTypeError(EntityRegistryError):
    """A field declares a type name outside the type catalog."""

    def __init__(self, type_name: Any, field_name: Optional[str] = None) -> None:
        msg = f"The '{type_name}' type is not supported"
        if field_name is not None:
            msg += f" (field '{field_name}')"
        super().__init__(
            msg,
            code="UNSUPPORTED_TYPE",
            details={"type_name": type_name, "field_name": field_name},
        )
        self.type_name = type_name
        self.field_name = field_name


class InvalidFieldSpecError(EntityRegistryError):
    """A field spec is malformed (empty, bad parameters, reserved name)."""

    def __init__(self, field_name: Any, reason: str) -> None:
        super().__init__(
            f"Invalid spec for field '{field_name}': {reason}",
            code="INVALID_FIELD_SPEC",
            details={"field_name": field_name, "reason": reason},
        )
        self.field_name = field_name
        self.reason = reason


class InvalidNameError(EntityRegistryError):
    """A type name or handler identifier is unusable."""

    def __init__(self, value: Any, reason: str) -> None:
        super().__init__(
            f"Invalid name {value!r}: {reason}",
            code="INVALID_NAME",
            details={"value": value, "reason": reason},
        )
        self.value = value
        self.reason = reason


class NotFoundError(EntityRegistryError):
    """No entity type is registered under this id."""

    def __init__(self, type_id: Any) -> None:
        super().__init__(
            f"The entity type with ID {type_id} was not found",
            code="NOT_FOUND",
            details={"type_id": type_id},
        )
        self.type_id = type_id


class FieldNotFoundError(EntityRegistryError):
    """The entity type exists but does not declare this field."""

    def __init__(
        self,
        type_id: int,
        field_name: str,
        type_name: Optional[str] = None,
    ) -> None:
        owner = f"'{type_name}' entity" if type_name else f"entity type {type_id}"
        super().__init__(
            f"The '{field_name}' field does not exist in the {owner}",
            code="FIELD_NOT_FOUND",
            details={"type_id": type_id, "field_name": field_name},
        )
        self.type_id = type_id
        self.field_name = field_name
        self.type_name = type_name


class SchemaExecutionError(EntityRegistryError):
    """A schema-mutating step of registration failed.

    Attributes:
        stage: Materialization step that failed (preflight,
            create_fields_table, populate_fields_table, create_entity_table)
        diagnostic: Diagnostic reported by the Schema Executor
        table_name: Table the failing step targeted
    """

    def __init__(
        self,
        stage: str,
        diagnostic: str,
        table_name: Optional[str] = None,
    ) -> None:
        msg = f"The system failed to register the type at stage '{stage}'"
        if table_name:
            msg += f" (table '{table_name}')"
        msg += f": {diagnostic}"
        super().__init__(
            msg,
            code="SCHEMA_EXECUTION_ERROR",
            details={"stage": stage, "diagnostic": diagnostic, "table_name": table_name},
        )
        self.stage = stage
        self.diagnostic = diagnostic
        self.table_name = table_name


class RegistryStorageError(EntityRegistryError):
    """The registry table or a fields table could not be read or written."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="STORAGE_ERROR")
