"""Mapping of relational column types onto document field types."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, NamedTuple

from conversion.issues import Issue, unsupported_type
from conversion.types import DocumentType

if TYPE_CHECKING:
    from collections.abc import Iterable

    from conversion.types import Table

# Relational type name -> document type
TYPE_MAP: dict[str, DocumentType] = {
    "integer": DocumentType.NUMBER,
    "int": DocumentType.NUMBER,
    "int2": DocumentType.NUMBER,
    "int4": DocumentType.NUMBER,
    "int8": DocumentType.NUMBER,
    "bigint": DocumentType.NUMBER,
    "smallint": DocumentType.NUMBER,
    "tinyint": DocumentType.NUMBER,
    "serial": DocumentType.NUMBER,
    "bigserial": DocumentType.NUMBER,
    "smallserial": DocumentType.NUMBER,
    "numeric": DocumentType.NUMBER,
    "decimal": DocumentType.NUMBER,
    "real": DocumentType.NUMBER,
    "float": DocumentType.NUMBER,
    "double": DocumentType.NUMBER,
    "double precision": DocumentType.NUMBER,
    "text": DocumentType.STRING,
    "varchar": DocumentType.STRING,
    "char": DocumentType.STRING,
    "character": DocumentType.STRING,
    "character varying": DocumentType.STRING,
    "nvarchar": DocumentType.STRING,
    "time": DocumentType.STRING,
    "uuid": DocumentType.STRING,
    "boolean": DocumentType.BOOLEAN,
    "bool": DocumentType.BOOLEAN,
    "timestamp": DocumentType.DATE,
    "timestamptz": DocumentType.DATE,
    "timestamp with time zone": DocumentType.DATE,
    "timestamp without time zone": DocumentType.DATE,
    "datetime": DocumentType.DATE,
    "date": DocumentType.DATE,
    "json": DocumentType.OBJECT,
    "jsonb": DocumentType.OBJECT,
    "bytea": DocumentType.BINARY,
    "blob": DocumentType.BINARY,
}

_PARAMETERS = re.compile(r"\s*\([^)]*\)")
_WHITESPACE = re.compile(r"\s+")


class TypeMapping(NamedTuple):
    """Document types of every column, keyed by (table, column)."""

    types: dict[tuple[str, str], DocumentType]
    array_columns: frozenset[tuple[str, str]]
    unsupported_columns: frozenset[tuple[str, str]]

    def of(self, table: str, column: str) -> DocumentType:
        """Document type of a column."""
        return self.types[table, column]


def normalize_type(type_name: str) -> str:
    """Normalize a relational type name for lookup.

    Examples:
        VARCHAR(255) -> varchar
        NUMERIC(10, 2) -> numeric
        character  varying(40) -> character varying

    """
    normalized = _PARAMETERS.sub("", type_name.strip().lower())
    return _WHITESPACE.sub(" ", normalized).strip()


def is_array_type(type_name: str) -> bool:
    """Check for array column types such as ``text[]`` or ``ARRAY``."""
    normalized = normalize_type(type_name)
    return normalized.endswith("[]") or normalized.startswith("array")


def map_type(type_name: str) -> DocumentType | None:
    """Map a relational type to a document type, ``None`` when unknown."""
    if is_array_type(type_name):
        return DocumentType.ARRAY
    return TYPE_MAP.get(normalize_type(type_name))


def map_schema_types(tables: Iterable[Table]) -> tuple[TypeMapping, list[Issue]]:
    """Map every column once, reporting each unmapped column exactly once."""
    types: dict[tuple[str, str], DocumentType] = {}
    arrays: set[tuple[str, str]] = set()
    unsupported: set[tuple[str, str]] = set()
    issues: list[Issue] = []

    for table in tables:
        for column in table.columns:
            key = (table.name, column.name)
            document_type = map_type(column.type)
            if document_type is None:
                document_type = DocumentType.STRING
                unsupported.add(key)
                issues.append(unsupported_type(table.name, column.name, column.type))
            elif document_type is DocumentType.ARRAY:
                arrays.add(key)
            types[key] = document_type

    return TypeMapping(types, frozenset(arrays), frozenset(unsupported)), issues
