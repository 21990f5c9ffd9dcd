"""
Type catalog for entity fields.

The catalog is the fixed set of scalar kinds a field may declare, together
with the parameter rules for each kind. Lookup is case-insensitive; stored
specs always carry the lowercase name.

Invariants:
    - The catalog is static; there is no runtime registration of kinds
    - Only ``char`` takes a parameter (its length, default 16)
    - Extra parameters on other kinds are preserved but never interpreted;
      they must be JSON-storable (strings, numbers, booleans, null, lists)
    - Field names are unique ignoring case

How to change safely:
    - Add the kind here, a ColumnKind member, and a materializer mapping
    - Never remove a kind: stored specs may reference it
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Mapping, Sequence

from ..errors import InvalidFieldSpecError, UnsupportedTypeError
from .types import IDENTIFIER_COLUMN, FieldSpec

DEFAULT_CHAR_LENGTH = 16


class TypeKind(Enum):
    """Scalar kinds a field may declare."""

    STRING = "string"
    INTEGER = "integer"
    BIGINTEGER = "biginteger"
    FLOAT = "float"
    DOUBLE = "double"
    DECIMAL = "decimal"
    BOOLEAN = "boolean"
    CHAR = "char"
    TEXT = "text"
    LONGTEXT = "longtext"
    BINARY = "binary"
    BLOB = "blob"
    DATE = "date"
    DATETIME = "datetime"
    TIME = "time"
    JSON = "json"
    UUID = "uuid"

    @classmethod
    def from_str(cls, value: str) -> TypeKind:
        """Convert a type name to TypeKind, ignoring case.

        Raises:
            UnsupportedTypeError: If value is not in the catalog
        """
        if isinstance(value, str):
            lowered = value.lower()
            for kind in cls:
                if kind.value == lowered:
                    return kind
        raise UnsupportedTypeError(value)


SUPPORTED_TYPES = frozenset(kind.value for kind in TypeKind)


def is_supported(type_name: Any) -> bool:
    """Whether type_name names a catalog kind (case-insensitive)."""
    return isinstance(type_name, str) and type_name.lower() in SUPPORTED_TYPES


def char_length(params: Sequence[Any]) -> int:
    """Length of a ``char`` field from its full param list."""
    if len(params) > 1:
        return params[1]
    return DEFAULT_CHAR_LENGTH


def _is_plain_value(value: Any) -> bool:
    if value is None or isinstance(value, (str, int, float, bool)):
        return True
    if isinstance(value, (list, tuple)):
        return all(_is_plain_value(v) for v in value)
    return False


def normalize_field_spec(field_name: Any, params: Any) -> FieldSpec:
    """Validate one declared field and return its normalized FieldSpec.

    Args:
        field_name: Declared field name
        params: Ordered parameter list, type name first

    Returns:
        FieldSpec with the lowercase type name first

    Raises:
        InvalidFieldSpecError: Bad field name, empty spec, bad char length,
            or a parameter that cannot be stored as JSON
        UnsupportedTypeError: Type name outside the catalog
    """
    if not isinstance(field_name, str) or not field_name:
        raise InvalidFieldSpecError(field_name, "field name must be a non-empty string")
    if field_name.lower() == IDENTIFIER_COLUMN:
        raise InvalidFieldSpecError(
            field_name, f"'{IDENTIFIER_COLUMN}' is reserved for the identifier column"
        )
    if isinstance(params, str) or not isinstance(params, (list, tuple)) or not params:
        raise InvalidFieldSpecError(
            field_name, "spec must be a non-empty list with the type name first"
        )

    type_name = params[0]
    if not is_supported(type_name):
        raise UnsupportedTypeError(type_name, field_name)

    kind = TypeKind.from_str(type_name)
    if kind is TypeKind.CHAR and len(params) > 1:
        length = params[1]
        if isinstance(length, bool) or not isinstance(length, int) or length <= 0:
            raise InvalidFieldSpecError(
                field_name, f"char length must be a positive integer, got {length!r}"
            )

    # Params are stored as a JSON list
    for param in params[1:]:
        if not _is_plain_value(param):
            raise InvalidFieldSpecError(
                field_name,
                f"parameter {param!r} must be a string, number, boolean, null or list",
            )

    return FieldSpec(name=field_name, params=[kind.value, *params[1:]])


def normalize_fields(fields: Mapping[Any, Any]) -> List[FieldSpec]:
    """Validate every declared field, in declaration order.

    Column names are case-insensitive in the backing tables, so two fields
    differing only in case are rejected here.

    Raises:
        InvalidFieldSpecError: A field is malformed or its name collides
        UnsupportedTypeError: A type name is outside the catalog
    """
    specs: List[FieldSpec] = []
    seen: Dict[str, str] = {}
    for field_name, params in fields.items():
        spec = normalize_field_spec(field_name, params)
        folded = spec.name.lower()
        if folded in seen:
            raise InvalidFieldSpecError(
                spec.name, f"collides with field '{seen[folded]}' (names are case-insensitive)"
            )
        seen[folded] = spec.name
        specs.append(spec)
    return specs
