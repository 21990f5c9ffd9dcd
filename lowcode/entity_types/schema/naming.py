"""
Table name derivation for entity types.

Both tables of an entity type are named from the type name with a fixed
camel-to-snake transform: an underscore goes before every uppercase letter
that is not the first character, then the whole string is lowercased.

    Invoice          -> invoice
    PurchaseOrder    -> purchase_order
    HTTPRequest      -> h_t_t_p_request
    Invoice + Fields -> invoice_fields
"""

from __future__ import annotations

import re

DEFAULT_FIELDS_TABLE_SUFFIX = "Fields"

_UPPER_NOT_FIRST = re.compile(r"(?<!^)[A-Z]")


def camel_to_snake(name: str) -> str:
    """Apply the camel-to-snake transform used for every derived table name."""
    return _UPPER_NOT_FIRST.sub(r"_\g<0>", name).lower()


def entity_table_name(type_name: str) -> str:
    return camel_to_snake(type_name)


def fields_table_name(type_name: str, suffix: str = DEFAULT_FIELDS_TABLE_SUFFIX) -> str:
    return camel_to_snake(f"{type_name}{suffix}")
