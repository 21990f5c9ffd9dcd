"""
Schema Materializer: turns validated field specs into live tables.

Registration materializes two tables per entity type, in this order:
1. the fields table (fixed schema), created through the Schema Executor
2. one row per declared field in the fields table, in declaration order
3. the entity table: identifier column plus one column per field, in
   declaration order

Each step is an independent executor request; there is no shared
transaction. A failed step raises SchemaExecutionError immediately and no
further step runs. When compensation is enabled, tables this registration
already created are dropped again, newest first.

Invariants:
    - Field specs reaching this module were validated against the catalog
    - The column mapping covers every catalog kind
    - Cleanup failures are logged and never replace the original error
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, List, Sequence

from ..errors import RegistryStorageError, SchemaExecutionError
from ..schema.catalog import TypeKind, char_length
from ..schema.types import ColumnKind, ColumnSpec, ExecutionResult, FieldSpec, TableSpec

if TYPE_CHECKING:
    from ..store.fields_store import FieldMetadataStore
    from .base import SchemaExecutor

logger = logging.getLogger(__name__)

STAGE_PREFLIGHT = "preflight"
STAGE_CREATE_FIELDS_TABLE = "create_fields_table"
STAGE_POPULATE_FIELDS_TABLE = "populate_fields_table"
STAGE_CREATE_ENTITY_TABLE = "create_entity_table"

COLUMN_KINDS = {
    TypeKind.STRING: ColumnKind.VARCHAR,
    TypeKind.INTEGER: ColumnKind.INTEGER,
    TypeKind.BIGINTEGER: ColumnKind.BIGINT,
    TypeKind.FLOAT: ColumnKind.FLOAT,
    TypeKind.DOUBLE: ColumnKind.DOUBLE,
    TypeKind.DECIMAL: ColumnKind.DECIMAL,
    TypeKind.BOOLEAN: ColumnKind.BOOLEAN,
    TypeKind.CHAR: ColumnKind.CHAR,
    TypeKind.TEXT: ColumnKind.TEXT,
    TypeKind.LONGTEXT: ColumnKind.LONGTEXT,
    TypeKind.BINARY: ColumnKind.BINARY,
    TypeKind.BLOB: ColumnKind.BLOB,
    TypeKind.DATE: ColumnKind.DATE,
    TypeKind.DATETIME: ColumnKind.DATETIME,
    TypeKind.TIME: ColumnKind.TIME,
    TypeKind.JSON: ColumnKind.JSON,
    TypeKind.UUID: ColumnKind.UUID,
}


def column_for(spec: FieldSpec) -> ColumnSpec:
    """Map one field spec to its entity table column.

    Raises:
        UnsupportedTypeError: If the type name is outside the catalog
    """
    kind = TypeKind.from_str(spec.type_name)
    if kind is TypeKind.CHAR:
        return ColumnSpec(spec.name, ColumnKind.CHAR, length=char_length(spec.params))
    return ColumnSpec(spec.name, COLUMN_KINDS[kind])


def entity_table_spec(table_name: str, fields: Sequence[FieldSpec]) -> TableSpec:
    """Table-creation intent for an entity table."""
    return TableSpec(
        name=table_name,
        columns=(ColumnSpec.identifier(), *(column_for(f) for f in fields)),
    )


class SchemaMaterializer:
    """Drives the Schema Executor and the field store for one registration.

    Attributes:
        executor: Schema Executor applying table creation
        field_store: Store owning the fields tables
        compensate_on_failure: Drop already-created tables when a step fails
        check_table_collisions: Refuse to start when a target table exists

    Example:
        >>> materializer = SchemaMaterializer(executor, field_store)
        >>> materializer.materialize("invoice_fields", "invoice", fields)
        ['invoice_fields', 'invoice']
    """

    def __init__(
        self,
        executor: "SchemaExecutor",
        field_store: "FieldMetadataStore",
        compensate_on_failure: bool = True,
        check_table_collisions: bool = True,
    ) -> None:
        self.executor = executor
        self.field_store = field_store
        self.compensate_on_failure = compensate_on_failure
        self.check_table_collisions = check_table_collisions

    def materialize(
        self,
        fields_table_name: str,
        entity_table_name: str,
        fields: Sequence[FieldSpec],
    ) -> List[str]:
        """Create and populate the fields table, then create the entity table.

        Args:
            fields_table_name: Name of the fields table to create
            entity_table_name: Name of the entity table to create
            fields: Validated field specs in declaration order

        Returns:
            Names of the tables created, in creation order

        Raises:
            SchemaExecutionError: If any step fails
        """
        entity_spec = entity_table_spec(entity_table_name, fields)

        if self.check_table_collisions:
            for table_name in (fields_table_name, entity_table_name):
                if self.executor.table_exists(table_name):
                    raise SchemaExecutionError(
                        STAGE_PREFLIGHT, "table already exists", table_name
                    )

        created: List[str] = []
        try:
            self._check(
                self.field_store.create_table(fields_table_name),
                STAGE_CREATE_FIELDS_TABLE,
                fields_table_name,
            )
            created.append(fields_table_name)

            for spec in fields:
                try:
                    self.field_store.insert_field(fields_table_name, spec.name, spec.params)
                except RegistryStorageError as e:
                    raise SchemaExecutionError(
                        STAGE_POPULATE_FIELDS_TABLE, e.message, fields_table_name
                    ) from e

            self._check(
                self.executor.apply_create_table(entity_spec),
                STAGE_CREATE_ENTITY_TABLE,
                entity_table_name,
            )
            created.append(entity_table_name)
        except SchemaExecutionError:
            self.compensate(created)
            raise

        logger.info(
            f"Materialized {entity_table_name} with {len(fields)} field(s), "
            f"metadata in {fields_table_name}"
        )
        return created

    def compensate(self, created: Sequence[str]) -> None:
        """Drop tables created by an aborted registration, newest first.

        Does nothing when compensation is disabled; the tables stay behind.
        """
        if not created:
            return
        if not self.compensate_on_failure:
            logger.warning(f"Registration aborted; leaving orphaned tables {list(created)}")
            return
        for table_name in reversed(created):
            result = self.executor.apply_drop_table(table_name)
            if result.ok:
                logger.warning(f"Dropped {table_name} after aborted registration")
            else:
                logger.error(
                    f"Failed to drop {table_name} after aborted registration: "
                    f"{result.status}: {result.diagnostic}"
                )

    @staticmethod
    def _check(result: ExecutionResult, stage: str, table_name: str) -> None:
        if not result.ok:
            diagnostic = result.diagnostic or result.status
            raise SchemaExecutionError(stage, diagnostic, table_name)
