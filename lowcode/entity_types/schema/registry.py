"""
Entity Type Registry.

The EntityTypeRegistry is the public entry point for runtime-defined entity
types. It provides:
- Registration of a named type with its handler and ordered fields
- Lookup of a type and its declared fields by id
- Field existence checks

Registration order:
    1. name and handler uniqueness
    2. every field spec against the type catalog
    3. fields table created and populated (Schema Materializer)
    4. entity table created (Schema Materializer)
    5. registry row persisted, id returned

Invariants:
    - All validation happens before any schema mutation
    - A registry row exists only for fully materialized types
    - Registrations are serialized; lookups take no lock
    - Types are never altered or removed once registered

How to change safely:
    - Keep the get_type_info keys stable; callers index by them
    - New validation must run before the materializer is invoked

Example:
    >>> registry = create_registry(config)
    >>> type_id = registry.register_type(
    ...     "Invoice", "invoice.handler.v1", {"total": ["decimal"], "code": ["char", 8]}
    ... )
    >>> registry.get_type_info(type_id)["ENTITY_FIELDS_INFO"]
    {'total': ['decimal'], 'code': ['char', 8]}
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional

from ..errors import (
    DuplicateHandlerError,
    DuplicateNameError,
    EntityRegistryError,
    FieldNotFoundError,
    InvalidFieldSpecError,
    InvalidNameError,
    NotFoundError,
)
from ..materialize.materializer import SchemaMaterializer
from ..store.fields_store import FieldMetadataStore
from ..store.repository import TypeRepository
from .catalog import normalize_fields
from .naming import DEFAULT_FIELDS_TABLE_SUFFIX, entity_table_name, fields_table_name
from .types import TypeDefinition

if TYPE_CHECKING:
    from ..config import RegistryConfig

logger = logging.getLogger(__name__)

ENTITY_TYPE_ID = "ENTITY_TYPE_ID"
ENTITY_TYPE_NAME = "ENTITY_TYPE_NAME"
ENTITY_CLASS_NAME = "ENTITY_CLASS_NAME"
ENTITY_TABLE_NAME = "ENTITY_TABLE_NAME"
ENTITY_FIELDS_INFO_TABLE_NAME = "ENTITY_FIELDS_INFO_TABLE_NAME"
ENTITY_FIELDS_INFO = "ENTITY_FIELDS_INFO"


def _require_name(value: Any, label: str) -> None:
    if not isinstance(value, str) or not value.strip():
        raise InvalidNameError(value, f"{label} must be a non-empty string")


class EntityTypeRegistry:
    """Directory of runtime-defined entity types.

    Thread-safety:
        - register_type holds an internal lock for its whole duration
        - Lookups are lock-free and see every committed registration

    Attributes:
        repository: Storage for TypeDefinitions
        field_store: Storage for each type's declared fields
        materializer: Creates the fields and entity tables
        fields_table_suffix: Appended to the type name to name its fields table
    """

    def __init__(
        self,
        repository: TypeRepository,
        field_store: FieldMetadataStore,
        materializer: SchemaMaterializer,
        fields_table_suffix: str = DEFAULT_FIELDS_TABLE_SUFFIX,
    ) -> None:
        self.repository = repository
        self.field_store = field_store
        self.materializer = materializer
        self.fields_table_suffix = fields_table_suffix
        self._lock = threading.Lock()

    def register_type(
        self,
        name: str,
        handler_id: str,
        fields: Mapping[str, Any],
    ) -> int:
        """Register a new entity type and materialize its tables.

        Args:
            name: Entity type name, e.g. "PurchaseOrder"
            handler_id: Identifier of the component interpreting instances
            fields: Ordered mapping of field name to param list, type name
                first, e.g. {"code": ["char", 8]}

        Returns:
            The new type id

        Raises:
            InvalidNameError: If name or handler_id is empty
            DuplicateNameError: If name is already registered
            DuplicateHandlerError: If handler_id is already registered
            UnsupportedTypeError: If a field type is outside the catalog
            InvalidFieldSpecError: If a field spec is malformed or two field
                names differ only in case
            SchemaExecutionError: If materialization fails
            RegistryStorageError: If the registry row cannot be written
        """
        _require_name(name, "type name")
        _require_name(handler_id, "handler id")
        if not isinstance(fields, Mapping):
            raise InvalidFieldSpecError(None, "fields must be a mapping of name to spec")

        with self._lock:
            if self.repository.find_by_name(name) is not None:
                raise DuplicateNameError(name)
            if self.repository.find_by_handler(handler_id) is not None:
                raise DuplicateHandlerError(handler_id)

            specs = normalize_fields(fields)

            fields_table = fields_table_name(name, self.fields_table_suffix)
            entity_table = entity_table_name(name)

            created = self.materializer.materialize(fields_table, entity_table, specs)
            try:
                definition = self.repository.create(name, handler_id, fields_table, entity_table)
            except EntityRegistryError:
                self.materializer.compensate(created)
                raise

            logger.info(
                f"Registered entity type: {name} (type_id={definition.type_id}, "
                f"handler={handler_id}, table={entity_table})"
            )
            return definition.type_id

    def get_type(self, type_id: int) -> TypeDefinition:
        """Get a registered type by id.

        Raises:
            NotFoundError: If no type has this id
        """
        definition = self.repository.get(type_id)
        if definition is None:
            raise NotFoundError(type_id)
        return definition

    def get_type_by_name(self, name: str) -> TypeDefinition:
        """Get a registered type by name.

        Raises:
            NotFoundError: If no type has this name
        """
        definition = self.repository.find_by_name(name)
        if definition is None:
            raise NotFoundError(name)
        return definition

    def get_fields(self, type_id: int) -> Dict[str, List[Any]]:
        """Declared fields of a type, in declaration order."""
        definition = self.get_type(type_id)
        return dict(self.field_store.list_fields(definition.fields_table_name))

    def get_type_info(self, type_id: int) -> Dict[str, Any]:
        """Get a type and its declared fields.

        Returns:
            Dictionary keyed by ENTITY_TYPE_ID, ENTITY_TYPE_NAME,
            ENTITY_CLASS_NAME, ENTITY_TABLE_NAME,
            ENTITY_FIELDS_INFO_TABLE_NAME and ENTITY_FIELDS_INFO (field
            name -> param list, in declaration order)

        Raises:
            NotFoundError: If no type has this id
        """
        definition = self.get_type(type_id)
        return self._info(definition)

    def get_all_types_info(self) -> List[Dict[str, Any]]:
        """get_type_info for every registered type, ordered by id."""
        return [self._info(definition) for definition in self.repository.list_all()]

    def type_ids(self) -> List[int]:
        """Ids of every registered type, ascending."""
        return [definition.type_id for definition in self.repository.list_all()]

    def check_field_exists(self, type_id: int, field_name: str) -> bool:
        """Check that a type declares a field.

        Returns:
            True if the field is declared

        Raises:
            NotFoundError: If no type has this id
            FieldNotFoundError: If the field is not declared
        """
        info = self.get_type_info(type_id)
        if field_name in info[ENTITY_FIELDS_INFO]:
            return True
        raise FieldNotFoundError(type_id, field_name, info[ENTITY_TYPE_NAME])

    def _info(self, definition: TypeDefinition) -> Dict[str, Any]:
        fields = self.field_store.list_fields(definition.fields_table_name)
        return {
            ENTITY_TYPE_ID: definition.type_id,
            ENTITY_TYPE_NAME: definition.name,
            ENTITY_CLASS_NAME: definition.handler_id,
            ENTITY_TABLE_NAME: definition.entity_table_name,
            ENTITY_FIELDS_INFO_TABLE_NAME: definition.fields_table_name,
            ENTITY_FIELDS_INFO: dict(fields),
        }


def create_registry(config: Optional["RegistryConfig"] = None) -> EntityTypeRegistry:
    """Factory function to build a registry from configuration.

    The SQLite executor shares one database file with the registry table
    and the fields tables. The memory executor pairs with in-memory stores.

    Args:
        config: Registry configuration (loaded from env if not provided)

    Returns:
        Ready-to-use EntityTypeRegistry
    """
    from ..config import ExecutorBackend, RegistryConfig
    from ..materialize.base import create_schema_executor
    from ..store.fields_store import InMemoryFieldMetadataStore, SqliteFieldMetadataStore
    from ..store.repository import InMemoryTypeRepository, SqliteTypeRepository
    from ..store.sqlite import SqliteDatabase

    config = config or RegistryConfig.from_env()
    executor = create_schema_executor(config)

    repository: TypeRepository
    field_store: FieldMetadataStore
    if config.materializer.executor == ExecutorBackend.MEMORY:
        repository = InMemoryTypeRepository()
        field_store = InMemoryFieldMetadataStore(executor)
    else:
        database = SqliteDatabase.from_config(config.storage)
        sqlite_repository = SqliteTypeRepository(database)
        sqlite_repository.initialize()
        repository = sqlite_repository
        field_store = SqliteFieldMetadataStore(database, executor)

    materializer = SchemaMaterializer(
        executor,
        field_store,
        compensate_on_failure=config.materializer.compensate_on_failure,
        check_table_collisions=config.materializer.check_table_collisions,
    )
    return EntityTypeRegistry(
        repository,
        field_store,
        materializer,
        fields_table_suffix=config.materializer.fields_table_suffix,
    )
