"""
Unit tests for the entity type registry on in-memory stores.

Tests cover:
- Registration and lookup
- Uniqueness of names and handlers
- Validation before any schema mutation
- Field existence checks
- Failure handling and compensation
- Serialized concurrent registration and lock-safe reads
"""

import threading
from decimal import Decimal

import pytest

from lowcode.entity_types.errors import (
    DuplicateHandlerError,
    DuplicateNameError,
    FieldNotFoundError,
    InvalidFieldSpecError,
    InvalidNameError,
    NotFoundError,
    RegistryStorageError,
    SchemaExecutionError,
    UnsupportedTypeError,
)
from lowcode.entity_types.materialize.materializer import SchemaMaterializer
from lowcode.entity_types.materialize.memory import InMemorySchemaExecutor
from lowcode.entity_types.schema.registry import (
    ENTITY_CLASS_NAME,
    ENTITY_FIELDS_INFO,
    ENTITY_FIELDS_INFO_TABLE_NAME,
    ENTITY_TABLE_NAME,
    ENTITY_TYPE_ID,
    ENTITY_TYPE_NAME,
    EntityTypeRegistry,
)
from lowcode.entity_types.store.fields_store import InMemoryFieldMetadataStore
from lowcode.entity_types.store.repository import InMemoryTypeRepository

INVOICE_FIELDS = {"total": ["decimal"], "code": ["char", 8]}


class FailingRepository(InMemoryTypeRepository):
    """Repository whose writes always fail."""

    def create(self, name, handler_id, fields_table_name, entity_table_name):
        raise RegistryStorageError("database is locked")


def build_registry(executor=None, repository=None, compensate_on_failure=True):
    executor = executor or InMemorySchemaExecutor()
    store = InMemoryFieldMetadataStore(executor)
    materializer = SchemaMaterializer(
        executor, store, compensate_on_failure=compensate_on_failure
    )
    return EntityTypeRegistry(repository or InMemoryTypeRepository(), store, materializer)


class TestRegisterType:
    """Tests for EntityTypeRegistry.register_type."""

    @pytest.fixture
    def executor(self):
        return InMemorySchemaExecutor()

    @pytest.fixture
    def registry(self, executor):
        return build_registry(executor)

    def test_register_returns_first_id(self, registry):
        """First registration gets id 1 and round-trips its fields."""
        type_id = registry.register_type("Invoice", "invoice.handler.v1", INVOICE_FIELDS)

        assert type_id == 1
        assert registry.get_type_info(1)[ENTITY_FIELDS_INFO] == {
            "total": ["decimal"],
            "code": ["char", 8],
        }

    def test_ids_increase(self, registry):
        """Each registration gets a fresh id."""
        first = registry.register_type("Invoice", "invoice.handler", INVOICE_FIELDS)
        second = registry.register_type("Customer", "customer.handler", {"name": ["string"]})
        assert second == first + 1
        assert registry.type_ids() == [first, second]

    def test_tables_materialized(self, registry, executor):
        """Fields table and entity table are created with derived names."""
        registry.register_type("PurchaseOrder", "po.handler", {"placedAt": ["datetime"]})

        assert executor.table_exists("purchase_order_fields")
        assert executor.table_exists("purchase_order")
        assert executor.tables["purchase_order"].column_names() == ["id", "placedAt"]

    def test_type_info_keys(self, registry):
        """get_type_info exposes the stable keys."""
        type_id = registry.register_type("PurchaseOrder", "po.handler", INVOICE_FIELDS)
        info = registry.get_type_info(type_id)

        assert info == {
            ENTITY_TYPE_ID: type_id,
            ENTITY_TYPE_NAME: "PurchaseOrder",
            ENTITY_CLASS_NAME: "po.handler",
            ENTITY_TABLE_NAME: "purchase_order",
            ENTITY_FIELDS_INFO_TABLE_NAME: "purchase_order_fields",
            ENTITY_FIELDS_INFO: {"total": ["decimal"], "code": ["char", 8]},
        }

    def test_declaration_order_preserved(self, registry):
        """Fields come back in the order they were declared."""
        fields = {"c": ["string"], "a": ["integer"], "b": ["boolean"]}
        type_id = registry.register_type("Ordered", "ordered.handler", fields)

        assert list(registry.get_type_info(type_id)[ENTITY_FIELDS_INFO]) == ["c", "a", "b"]

    def test_type_name_stored_lowercase(self, registry):
        """Mixed-case type names are stored lowercase."""
        type_id = registry.register_type("Note", "note.handler", {"body": ["LongText"]})
        assert registry.get_type_info(type_id)[ENTITY_FIELDS_INFO] == {"body": ["longtext"]}

    def test_char_without_length_stored_as_declared(self, registry, executor):
        """Char default length applies to the column, not the stored spec."""
        type_id = registry.register_type("Tag", "tag.handler", {"code": ["char"]})

        assert registry.get_type_info(type_id)[ENTITY_FIELDS_INFO] == {"code": ["char"]}
        assert executor.tables["tag"].columns[1].type_sql == "CHAR(16)"

    def test_duplicate_name_raises(self, registry, executor):
        """Same name with another handler fails and writes nothing."""
        registry.register_type("Invoice", "invoice.handler.v1", INVOICE_FIELDS)
        applied = len(executor.applied)

        with pytest.raises(DuplicateNameError) as exc_info:
            registry.register_type("Invoice", "invoice.handler.v2", INVOICE_FIELDS)

        assert exc_info.value.name == "Invoice"
        assert registry.type_ids() == [1]
        assert len(executor.applied) == applied

    def test_duplicate_handler_raises(self, registry, executor):
        """Same handler with another name fails and writes nothing."""
        registry.register_type("Invoice", "invoice.handler.v1", INVOICE_FIELDS)
        applied = len(executor.applied)

        with pytest.raises(DuplicateHandlerError):
            registry.register_type("Bill", "invoice.handler.v1", INVOICE_FIELDS)

        assert registry.type_ids() == [1]
        assert len(executor.applied) == applied

    def test_unsupported_type_before_any_table(self, registry, executor):
        """An unknown field type fails before the executor is called."""
        with pytest.raises(UnsupportedTypeError) as exc_info:
            registry.register_type(
                "Invoice", "invoice.handler", {"total": ["decimal"], "amount": ["currency"]}
            )

        assert exc_info.value.type_name == "currency"
        assert executor.applied == []
        assert registry.type_ids() == []

    def test_invalid_field_spec_before_any_table(self, registry, executor):
        """A malformed spec fails before the executor is called."""
        with pytest.raises(InvalidFieldSpecError):
            registry.register_type("Invoice", "invoice.handler", {"code": ["char", 0]})
        assert executor.applied == []

    def test_unstorable_param_before_any_table(self, registry, executor):
        """A parameter that cannot be stored fails before the executor is called."""
        with pytest.raises(InvalidFieldSpecError) as exc_info:
            registry.register_type("Invoice", "invoice.handler", {"total": ["decimal", Decimal("10.2")]})

        assert exc_info.value.field_name == "total"
        assert executor.applied == []
        assert executor.tables == {}
        assert registry.type_ids() == []

    def test_case_colliding_fields_before_any_table(self, registry, executor):
        """Field names differing only in case fail before the executor is called."""
        with pytest.raises(InvalidFieldSpecError, match="collides"):
            registry.register_type("Invoice", "invoice.handler", {"Code": ["string"], "code": ["integer"]})

        assert executor.applied == []
        assert registry.type_ids() == []

    def test_fields_must_be_mapping(self, registry):
        """A list of fields is rejected."""
        with pytest.raises(InvalidFieldSpecError):
            registry.register_type("Invoice", "invoice.handler", [("total", ["decimal"])])

    @pytest.mark.parametrize("name, handler", [("", "h"), ("   ", "h"), ("Invoice", ""), (None, "h")])
    def test_empty_names_rejected(self, registry, name, handler):
        """Name and handler must be non-empty strings."""
        with pytest.raises(InvalidNameError):
            registry.register_type(name, handler, {})

    def test_executor_failure_persists_nothing(self, executor):
        """A failed entity table leaves no registry row and no tables."""
        executor.fail_on.add("invoice")
        registry = build_registry(executor)

        with pytest.raises(SchemaExecutionError) as exc_info:
            registry.register_type("Invoice", "invoice.handler", INVOICE_FIELDS)

        assert exc_info.value.stage == "create_entity_table"
        assert registry.type_ids() == []
        assert executor.dropped == ["invoice_fields"]

    def test_retry_after_compensated_failure(self, executor):
        """Once the executor recovers, the same registration succeeds."""
        executor.fail_on.add("invoice")
        registry = build_registry(executor)
        with pytest.raises(SchemaExecutionError):
            registry.register_type("Invoice", "invoice.handler", INVOICE_FIELDS)

        executor.fail_on.clear()
        type_id = registry.register_type("Invoice", "invoice.handler", INVOICE_FIELDS)

        assert registry.get_type_info(type_id)[ENTITY_FIELDS_INFO] == INVOICE_FIELDS

    def test_orphaned_table_blocks_retry_without_compensation(self, executor):
        """With compensation off the orphaned fields table trips the preflight."""
        executor.fail_on.add("invoice")
        registry = build_registry(executor, compensate_on_failure=False)
        with pytest.raises(SchemaExecutionError):
            registry.register_type("Invoice", "invoice.handler", INVOICE_FIELDS)

        executor.fail_on.clear()
        with pytest.raises(SchemaExecutionError) as exc_info:
            registry.register_type("Invoice", "invoice.handler", INVOICE_FIELDS)

        assert exc_info.value.stage == "preflight"
        assert exc_info.value.table_name == "invoice_fields"

    def test_persist_failure_drops_tables(self, executor):
        """A registry write failure drops both tables, newest first."""
        registry = build_registry(executor, repository=FailingRepository())

        with pytest.raises(RegistryStorageError):
            registry.register_type("Invoice", "invoice.handler", INVOICE_FIELDS)

        assert executor.dropped == ["invoice", "invoice_fields"]
        assert executor.tables == {}


class TestLookups:
    """Tests for get_type_info, check_field_exists and friends."""

    @pytest.fixture
    def registry(self):
        reg = build_registry()
        reg.register_type("Invoice", "invoice.handler.v1", INVOICE_FIELDS)
        return reg

    def test_unknown_id_raises(self, registry):
        """Unknown ids raise NotFoundError."""
        with pytest.raises(NotFoundError) as exc_info:
            registry.get_type_info(99)
        assert exc_info.value.type_id == 99

    def test_check_field_exists_true(self, registry):
        """Declared fields are found."""
        assert registry.check_field_exists(1, "total") is True
        assert registry.check_field_exists(1, "code") is True

    def test_check_field_missing_raises(self, registry):
        """Absent fields raise instead of returning False."""
        with pytest.raises(FieldNotFoundError) as exc_info:
            registry.check_field_exists(1, "missing")

        assert exc_info.value.type_id == 1
        assert exc_info.value.field_name == "missing"
        assert "Invoice" in str(exc_info.value)

    def test_check_field_is_case_sensitive(self, registry):
        """Field names match exactly."""
        with pytest.raises(FieldNotFoundError):
            registry.check_field_exists(1, "Total")

    def test_check_field_unknown_type_raises(self, registry):
        """Unknown type ids raise NotFoundError before the field check."""
        with pytest.raises(NotFoundError):
            registry.check_field_exists(42, "total")

    def test_get_type_by_name(self, registry):
        """Types can be looked up by name."""
        definition = registry.get_type_by_name("Invoice")
        assert definition.type_id == 1
        assert definition.handler_id == "invoice.handler.v1"

        with pytest.raises(NotFoundError):
            registry.get_type_by_name("Missing")

    def test_get_all_types_info(self, registry):
        """All types are listed in id order."""
        registry.register_type("Customer", "customer.handler", {"name": ["string"]})

        infos = registry.get_all_types_info()

        assert [i[ENTITY_TYPE_NAME] for i in infos] == ["Invoice", "Customer"]
        assert infos[1][ENTITY_FIELDS_INFO] == {"name": ["string"]}


class TestConcurrentRegistration:
    """Registrations from several threads."""

    def test_distinct_names_all_succeed(self):
        """Concurrent registrations of distinct types get distinct ids."""
        registry = build_registry()
        ids = []
        errors = []

        def register(i):
            try:
                ids.append(registry.register_type(f"Type{i}", f"handler.{i}", {"v": ["integer"]}))
            except Exception as e:  # pragma: no cover - surfaced by the assert below
                errors.append(e)

        threads = [threading.Thread(target=register, args=(i,)) for i in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert sorted(ids) == list(range(1, 9))

    def test_same_name_registers_once(self):
        """Racing registrations of one name produce exactly one type."""
        registry = build_registry()
        outcomes = []

        def register(i):
            try:
                registry.register_type("Invoice", f"handler.{i}", INVOICE_FIELDS)
                outcomes.append("ok")
            except DuplicateNameError:
                outcomes.append("duplicate")

        threads = [threading.Thread(target=register, args=(i,)) for i in range(6)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert outcomes.count("ok") == 1
        assert outcomes.count("duplicate") == 5
        assert registry.type_ids() == [1]

    def test_reads_during_registrations(self):
        """Lookups running alongside registrations never fail."""
        registry = build_registry()
        stop = threading.Event()
        errors = []

        def read():
            while not stop.is_set():
                try:
                    registry.repository.find_by_name("Type0")
                    registry.repository.find_by_handler("handler.0")
                    registry.type_ids()
                except Exception as e:  # pragma: no cover - surfaced by the assert below
                    errors.append(e)
                    return

        reader = threading.Thread(target=read)
        reader.start()
        try:
            for i in range(2000):
                registry.register_type(f"Type{i}", f"handler.{i}", {})
        finally:
            stop.set()
            reader.join()

        assert errors == []
        assert len(registry.type_ids()) == 2000
