"""TypedDict schemas for the JSON schema snapshot format."""

from typing import NotRequired, TypedDict


class ColumnSnapshot(TypedDict):
    """Schema for a relational column."""

    name: str
    type: str
    nullable: NotRequired[bool]
    primary_key: NotRequired[bool]
    default: NotRequired[object]


class ForeignKeySnapshot(TypedDict):
    """Schema for a single-column foreign key."""

    column: str
    referenced_table: str
    referenced_column: str


class TableSnapshot(TypedDict):
    """Schema for a relational table."""

    name: str
    columns: list[ColumnSnapshot]
    primary_key: NotRequired[str | None]
    foreign_keys: NotRequired[list[ForeignKeySnapshot]]


class SchemaSnapshot(TypedDict):
    """Root schema: tables plus optional row counts keyed by table name."""

    tables: list[TableSnapshot]
    row_counts: NotRequired[dict[str, int]]
